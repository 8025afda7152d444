"""Quote-level validation run before any leg is priced.

Each validator returns a list of ValidationItems (possibly empty); the
calculator stops before pricing if any of them is BLOCKING.
"""

from collections.abc import Sequence
from datetime import date

from quote_engine.calculation.context import CalculationContext
from quote_engine.config import Settings
from quote_engine.errors import BlockingCode, CalculationErrorCode, WarningCode
from quote_engine.models.common import MarkupType
from quote_engine.models.inputs import (
    InterResortTransferInput,
    LegCalculationInput,
    QuoteCalculationInput,
)
from quote_engine.models.validation import (
    ValidationItem,
    blocking,
    leg_scope,
    transfer_scope,
    warning,
)
from quote_engine.utils.dates import leg_gap_days, nights_between


def verify_currency(ctx: CalculationContext) -> list[ValidationItem]:
    """Check that the quote currency exists in the catalogue."""
    if ctx.data.get_currency(ctx.quote_currency) is None:
        return [
            blocking(
                BlockingCode.INVALID_CURRENCY,
                f"Currency {ctx.quote_currency} is not supported",
                resolution_hint="Choose a configured quote currency",
                currency_code=ctx.quote_currency,
            )
        ]
    return []


def verify_validity(validity_days: int, settings: Settings) -> list[ValidationItem]:
    """Check the quote validity period.

    Args:
        validity_days: Requested validity in days
        settings: Engine settings with the allowed range

    Returns:
        A blocking item when out of range, a warning when close to expiry
    """
    if not settings.min_validity_days <= validity_days <= settings.max_validity_days:
        return [
            blocking(
                BlockingCode.QUOTE_VALIDITY_OUT_OF_RANGE,
                f"Validity of {validity_days} days is outside "
                f"{settings.min_validity_days}-{settings.max_validity_days}",
                validity_days=validity_days,
            )
        ]
    if validity_days <= settings.quote_expiry_warning_days:
        return [
            warning(
                WarningCode.QUOTE_EXPIRY_APPROACHING,
                f"Quote expires in {validity_days} day(s)",
                validity_days=validity_days,
            )
        ]
    return []


def verify_leg_dates(
    legs: Sequence[LegCalculationInput], booking_date: date
) -> list[ValidationItem]:
    """Check each leg's own dates against each other and the booking date."""
    items: list[ValidationItem] = []
    if not legs:
        return [
            blocking(
                BlockingCode.NO_LEGS_SPECIFIED,
                "Quote has no legs",
                resolution_hint="Add at least one resort stay",
            )
        ]
    for index, leg in enumerate(legs):
        if leg.check_out_date <= leg.check_in_date:
            items.append(
                blocking(
                    BlockingCode.INVALID_DATE_SEQUENCE,
                    "Check-out must be after check-in",
                    scope=leg_scope(index),
                    check_in_date=leg.check_in_date.isoformat(),
                    check_out_date=leg.check_out_date.isoformat(),
                )
            )
        if leg.check_in_date < booking_date:
            items.append(
                blocking(
                    BlockingCode.INVALID_CHECK_IN_DATE,
                    f"Check-in {leg.check_in_date.isoformat()} is before the booking date",
                    scope=leg_scope(index),
                    check_in_date=leg.check_in_date.isoformat(),
                    booking_date=booking_date.isoformat(),
                )
            )
    return items


def verify_leg_sequence(
    legs: Sequence[LegCalculationInput], settings: Settings
) -> list[ValidationItem]:
    """Check how consecutive legs fit together."""
    items: list[ValidationItem] = []

    for index in range(1, len(legs)):
        previous, current = legs[index - 1], legs[index]
        gap = leg_gap_days(previous.check_out_date, current.check_in_date)
        if gap < 0:
            items.append(
                blocking(
                    BlockingCode.LEG_DATE_SEQUENCE_ERROR,
                    f"Leg {index + 1} starts before leg {index} ends",
                    scope=leg_scope(index),
                    previous_check_out=previous.check_out_date.isoformat(),
                    check_in_date=current.check_in_date.isoformat(),
                )
            )
        elif gap > 0:
            items.append(
                warning(
                    WarningCode.ACCOMMODATION_GAP,
                    f"{gap} night(s) without accommodation before leg {index + 1}",
                    scope=leg_scope(index),
                    gap_nights=gap,
                )
            )
        if previous.resort_id == current.resort_id:
            items.append(
                warning(
                    WarningCode.DUPLICATE_RESORT_CONSECUTIVE,
                    f"Legs {index} and {index + 1} are at the same resort",
                    scope=leg_scope(index),
                    resort_id=current.resort_id,
                )
            )
        if (previous.adults_count, len(previous.children)) != (
            current.adults_count,
            len(current.children),
        ):
            items.append(
                blocking(
                    BlockingCode.GUEST_MISMATCH_ACROSS_LEGS,
                    f"Leg {index + 1} guests differ from leg {index}",
                    scope=leg_scope(index),
                    resolution_hint="Quote separate parties as separate quotes",
                    previous_adults=previous.adults_count,
                    previous_children=len(previous.children),
                    adults=current.adults_count,
                    children=len(current.children),
                )
            )

    total_nights = sum(
        nights_between(leg.check_in_date, leg.check_out_date)
        for leg in legs
        if leg.check_out_date > leg.check_in_date
    )
    if total_nights > settings.extended_stay_nights:
        items.append(
            warning(
                WarningCode.EXTENDED_STAY_DURATION,
                f"Itinerary totals {total_nights} nights",
                total_nights=total_nights,
            )
        )
    return items


def verify_inter_resort_transfers(
    transfers: Sequence[InterResortTransferInput], leg_count: int
) -> list[ValidationItem]:
    """Check that transfers reference existing, consecutive legs (0-based)."""
    items: list[ValidationItem] = []
    for index, transfer in enumerate(transfers):
        scope = transfer_scope(index)
        indices = (transfer.from_leg_index, transfer.to_leg_index)
        if any(i < 0 or i >= leg_count for i in indices):
            items.append(
                blocking(
                    BlockingCode.INTER_RESORT_TRANSFER_LEG_INVALID,
                    f"Transfer references leg outside 0-{leg_count - 1}",
                    scope=scope,
                    from_leg_index=transfer.from_leg_index,
                    to_leg_index=transfer.to_leg_index,
                    leg_count=leg_count,
                )
            )
            continue
        if transfer.to_leg_index != transfer.from_leg_index + 1:
            items.append(
                blocking(
                    BlockingCode.INTER_RESORT_TRANSFER_SEQUENCE_ERROR,
                    "Transfer must connect a leg to the one that follows it",
                    scope=scope,
                    from_leg_index=transfer.from_leg_index,
                    to_leg_index=transfer.to_leg_index,
                )
            )
    return items


def verify_quote_level_markup(calculation_input: QuoteCalculationInput) -> list[ValidationItem]:
    markup = calculation_input.quote_level_markup
    if markup is None:
        return []
    if markup.markup_type != MarkupType.FIXED:
        return [
            blocking(
                BlockingCode.PERCENTAGE_OVERRIDE_NOT_SUPPORTED,
                "Quote-level markup must be a fixed amount",
                resolution_hint="Enter the override as a fixed amount in the quote currency",
            )
        ]
    if markup.markup_value < 0:
        return [
            blocking(
                CalculationErrorCode.CALC_MARKUP_INVALID,
                "Quote-level markup cannot be negative",
                markup_value=str(markup.markup_value),
            )
        ]
    return []


def verify_exchange_rates(
    ctx: CalculationContext, transfers: Sequence[InterResortTransferInput]
) -> list[ValidationItem]:
    """Warn on implausible locked rates; block transfers with no rate."""
    items: list[ValidationItem] = []
    low = ctx.settings.exchange_rate_extreme_low
    high = ctx.settings.exchange_rate_extreme_high
    for code, rate in sorted(ctx.exchange_rates.items()):
        if code == ctx.quote_currency:
            continue
        if rate < low:
            items.append(
                warning(
                    WarningCode.EXCHANGE_RATE_EXTREME_LOW,
                    f"Exchange rate {code}->{ctx.quote_currency} of {rate} is unusually low",
                    currency_code=code,
                    rate=str(rate),
                )
            )
        elif rate > high:
            items.append(
                warning(
                    WarningCode.EXCHANGE_RATE_EXTREME_HIGH,
                    f"Exchange rate {code}->{ctx.quote_currency} of {rate} is unusually high",
                    currency_code=code,
                    rate=str(rate),
                )
            )

    for index, transfer in enumerate(transfers):
        code = transfer.currency_code
        if code != ctx.quote_currency and code not in ctx.exchange_rates:
            items.append(
                blocking(
                    BlockingCode.EXCHANGE_RATE_MISSING,
                    f"No exchange rate for {code} -> {ctx.quote_currency}",
                    scope=transfer_scope(index),
                    resolution_hint="Provide a manual exchange rate",
                    currency_code=code,
                )
            )
    return items


def run_validators(
    *,
    calculation_input: QuoteCalculationInput,
    ctx: CalculationContext,
) -> list[ValidationItem]:
    """Run all quote-level validators and collect their items."""
    items: list[ValidationItem] = []
    items.extend(verify_currency(ctx))
    items.extend(verify_validity(calculation_input.validity_days, ctx.settings))
    items.extend(verify_leg_dates(calculation_input.legs, ctx.booking_date))
    items.extend(verify_leg_sequence(calculation_input.legs, ctx.settings))
    items.extend(
        verify_inter_resort_transfers(
            calculation_input.inter_resort_transfers, len(calculation_input.legs)
        )
    )
    items.extend(verify_quote_level_markup(calculation_input))
    items.extend(verify_exchange_rates(ctx, calculation_input.inter_resort_transfers))
    return items
