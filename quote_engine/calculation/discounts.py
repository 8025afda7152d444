"""Discount engine: eligibility, stacking and non-compounding reductions.

Discounts run strictly before taxes and their base is built only from
pre-tax lines, so a tax line can never be part of a discount base.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.types import DiscountApplication, DiscountOutcome, PreTaxLine
from quote_engine.errors import BlockingCode, BlockingValidationError, WarningCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import (
    PRE_TAX_LINE_ITEM_TYPES,
    TAX_LINE_ITEM_TYPES,
    DiscountBaseType,
    DiscountType,
    LineItemType,
)
from quote_engine.models.reference import Discount, Resort
from quote_engine.models.validation import blocking, warning
from quote_engine.utils.arithmetic import HUNDRED, ZERO, percentage_of, safe_subtract, safe_sum
from quote_engine.utils.dates import days_between


def validate_discount_configuration(discount: Discount) -> list[str]:
    """Return configuration problems; an empty list means the discount is usable."""
    errors: list[str] = []
    if discount.discount_type == DiscountType.PERCENTAGE:
        if discount.discount_value <= ZERO or discount.discount_value > HUNDRED:
            errors.append("percentage must be greater than 0 and at most 100")
    else:
        if discount.discount_value <= ZERO:
            errors.append("fixed discount must be positive")
        if not discount.discount_currency_code:
            errors.append("fixed discount requires discount_currency_code")
    if (
        discount.minimum_nights is not None
        and discount.maximum_nights is not None
        and discount.minimum_nights > discount.maximum_nights
    ):
        errors.append("minimum_nights exceeds maximum_nights")
    return errors


def check_eligibility(
    ctx: CalculationContext,
    discount: Discount,
    nights: int,
    check_in: date,
    season_ids: set[str],
) -> str | None:
    """Return the reason a discount is ineligible, or None if it applies.

    Checks run in order: validity window, minimum nights, maximum nights,
    booking window, blackout seasons.
    """
    if not discount.is_valid_on(check_in):
        return f"check-in {check_in.isoformat()} is outside the discount validity window"
    if discount.minimum_nights is not None and nights < discount.minimum_nights:
        return f"requires at least {discount.minimum_nights} nights (stay is {nights})"
    if discount.maximum_nights is not None and nights > discount.maximum_nights:
        return f"allows at most {discount.maximum_nights} nights (stay is {nights})"
    if discount.booking_window_days is not None:
        days_ahead = days_between(ctx.booking_date, check_in)
        if days_ahead < discount.booking_window_days:
            return (
                f"requires booking {discount.booking_window_days} days ahead "
                f"(booked {days_ahead} days ahead)"
            )
    blacked_out = season_ids & set(discount.blackout_season_ids)
    if blacked_out:
        return f"not valid in season(s) {', '.join(sorted(blacked_out))}"
    return None


def is_mutually_stackable(first: Discount, second: Discount) -> bool:
    """Two discounts combine only if each lists the other in stackable_with."""
    return (
        first.is_stackable
        and second.is_stackable
        and second.id in first.stackable_with
        and first.id in second.stackable_with
    )


def resolve_stacking(
    eligible: Sequence[Discount],
) -> tuple[list[Discount], list[tuple[Discount, Discount]]]:
    """Accept discounts in request order while every pair stays compatible.

    Returns:
        (accepted discounts, [(dropped discount, conflicting accepted discount)])
    """
    accepted: list[Discount] = []
    dropped: list[tuple[Discount, Discount]] = []
    for candidate in eligible:
        conflict = next((d for d in accepted if not is_mutually_stackable(d, candidate)), None)
        if conflict is None:
            accepted.append(candidate)
        else:
            dropped.append((candidate, conflict))
    return accepted, dropped


def line_in_base(
    line: PreTaxLine, base_type: DiscountBaseType, include_mandatory_festive: bool
) -> bool:
    """Whether a pre-tax line contributes to a discount base."""
    if line.line_item_type in TAX_LINE_ITEM_TYPES:
        return False
    if base_type == DiscountBaseType.ROOM_ONLY:
        return line.line_item_type == LineItemType.ROOM
    if line.line_item_type == LineItemType.FESTIVE_SUPPLEMENT and line.is_mandatory:
        return include_mandatory_festive
    return True


def discount_base(
    lines: Sequence[PreTaxLine], base_type: DiscountBaseType, include_mandatory_festive: bool
) -> tuple[Decimal, tuple[LineItemType, ...], tuple[LineItemType, ...]]:
    """Base amount plus the line types included in and excluded from it."""
    included = [line for line in lines if line_in_base(line, base_type, include_mandatory_festive)]
    included_types = {line.line_item_type for line in included}
    composition = tuple(t for t in PRE_TAX_LINE_ITEM_TYPES if t in included_types)
    excluded = tuple(t for t in LineItemType if t not in composition)
    return safe_sum(line.cost for line in included), composition, excluded


def compute_discount_amount(ctx: CalculationContext, discount: Discount, base: Decimal) -> Decimal:
    if discount.discount_type == DiscountType.PERCENTAGE:
        return percentage_of(base, discount.percentage)
    return ctx.convert(discount.fixed_amount, discount.discount_currency_code or ctx.quote_currency)


def apply_discounts(
    ctx: CalculationContext,
    resort: Resort,
    codes: Sequence[str],
    lines: Sequence[PreTaxLine],
    nights: int,
    check_in: date,
    season_ids: set[str],
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
    scope: str = "quote",
) -> DiscountOutcome:
    """Validate, stack and apply the requested discount codes.

    Every accepted discount is computed on the same original base
    (non-compounding) and the reductions are summed. Reductions are clamped
    to their base and the sum to the pre-tax subtotal.

    Raises:
        BlockingValidationError: DISCOUNT_CONFIG_INVALID for broken configurations
    """
    if not codes:
        return DiscountOutcome()

    include_mandatory_festive = ctx.settings.discount_mandatory_festive_in_base
    eligible: list[Discount] = []

    for code in codes:
        discount = ctx.data.get_discount_by_code(code, resort.id)
        if discount is None:
            audit.add_warning(
                warning(
                    WarningCode.DISCOUNT_CODE_NOT_FOUND,
                    f"Discount code {code} not found for {resort.name}",
                    scope=scope,
                    code=code,
                )
            )
            continue

        config_errors = validate_discount_configuration(discount)
        if config_errors:
            raise BlockingValidationError(
                [
                    blocking(
                        BlockingCode.DISCOUNT_CONFIG_INVALID,
                        f"Discount {discount.code} is misconfigured: {'; '.join(config_errors)}",
                        scope=scope,
                        resolution_hint="Fix the discount configuration",
                        discount_id=discount.id,
                    )
                ]
            )

        reason = check_eligibility(ctx, discount, nights, check_in, season_ids)
        if reason is not None:
            audit.add_step(
                AuditStepType.DISCOUNT_REMOVED,
                f"Discount {discount.code} removed: {reason}",
                {"discount_id": discount.id, "code": discount.code, "nights": nights},
                {"reason": reason},
                leg_index=leg_index,
            )
            audit.add_warning(
                warning(
                    WarningCode.DISCOUNT_AUTO_REMOVED,
                    f"Discount {discount.code} removed: {reason}",
                    scope=scope,
                    discount_id=discount.id,
                    code=discount.code,
                    reason=reason,
                )
            )
            continue

        _warn_early_bird_closing(ctx, discount, check_in, audit, scope)
        eligible.append(discount)

    accepted, dropped = resolve_stacking(eligible)
    for discount, conflict in dropped:
        audit.add_step(
            AuditStepType.DISCOUNT_STACKING_RESOLVED,
            f"Discount {discount.code} cannot be combined with {conflict.code}",
            {"discount_id": discount.id, "conflicts_with": conflict.id},
            {"kept": conflict.code, "dropped": discount.code},
            leg_index=leg_index,
        )
        audit.add_warning(
            warning(
                WarningCode.DISCOUNT_NOT_STACKABLE,
                f"Discount {discount.code} cannot be combined with {conflict.code} and was dropped",
                scope=scope,
                discount_id=discount.id,
                conflicts_with=conflict.id,
            )
        )

    subtotal = safe_sum(line.cost for line in lines)
    remaining = subtotal
    applications: list[DiscountApplication] = []

    for discount in accepted:
        base, composition, excluded = discount_base(
            lines, discount.base_type, include_mandatory_festive
        )
        raw_amount = compute_discount_amount(ctx, discount, base)
        amount = min(raw_amount, base, remaining)
        clamped = amount < raw_amount
        if clamped:
            audit.add_warning(
                warning(
                    WarningCode.DISCOUNT_EXCEEDS_BASE,
                    f"Discount {discount.code} of {raw_amount} exceeds its base; "
                    f"clamped to {amount}",
                    scope=scope,
                    discount_id=discount.id,
                    requested=str(raw_amount),
                    applied=str(amount),
                )
            )
        remaining = safe_subtract(remaining, amount)
        applications.append(
            DiscountApplication(
                discount=discount,
                base_amount=base,
                base_composition=composition,
                excluded_from_base=excluded,
                amount=amount,
                clamped=clamped,
            )
        )
        audit.add_step(
            AuditStepType.DISCOUNT,
            f"Discount {discount.code}: {discount.discount_type.value} {discount.discount_value} "
            f"on {discount.base_type.value}",
            {
                "discount_id": discount.id,
                "discount_type": discount.discount_type,
                "discount_value": discount.discount_value,
                "base_type": discount.base_type,
                "base_amount": base,
                "base_composition": composition,
            },
            {"discount_amount": amount, "clamped": clamped},
            amount,
            leg_index=leg_index,
        )

    return DiscountOutcome(
        applications=tuple(applications),
        total=safe_sum(a.amount for a in applications),
    )


def _warn_early_bird_closing(
    ctx: CalculationContext, discount: Discount, check_in: date, audit: AuditBuilder, scope: str
) -> None:
    if discount.booking_window_days is None:
        return
    days_left = days_between(ctx.booking_date, check_in) - discount.booking_window_days
    if days_left <= ctx.settings.early_bird_warning_days:
        audit.add_warning(
            warning(
                WarningCode.EARLY_BIRD_APPROACHING,
                f"Early-bird discount {discount.code} closes in {days_left} day(s)",
                scope=scope,
                resolution_hint="Confirm the booking before the early-bird window closes",
                discount_id=discount.id,
                days_left=days_left,
            )
        )
