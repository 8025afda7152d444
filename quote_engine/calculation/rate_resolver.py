"""Season and room-rate resolution, one calendar night at a time."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.types import NightlyCost
from quote_engine.errors import (
    BlockingCode,
    BlockingValidationError,
    CalculationError,
    CalculationErrorCode,
    WarningCode,
)
from quote_engine.models.audit import AuditStepType
from quote_engine.models.reference import Resort, RoomType, Season
from quote_engine.models.validation import blocking, leg_scope, warning
from quote_engine.utils.arithmetic import safe_sum
from quote_engine.utils.dates import days_between, iter_stay_nights


@dataclass(frozen=True)
class SeasonResolution:
    season: Season
    used_default: bool = False


def resolve_season(
    ctx: CalculationContext, resort: Resort, night: date, *, leg_index: int = 0
) -> SeasonResolution:
    """Find the season a night belongs to.

    Explicit date ranges win; the resort's default season is used only when
    fallback is enabled.

    Raises:
        BlockingValidationError: OVERLAPPING_SEASONS_DATA_ERROR when two seasons claim the night
        CalculationError: CALC_SEASON_NOT_FOUND when nothing covers the night
    """
    covering = ctx.data.get_seasons_covering(resort.id, night)
    if len(covering) > 1:
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.OVERLAPPING_SEASONS_DATA_ERROR,
                    f"{night.isoformat()} is covered by more than one season at {resort.name}",
                    scope=leg_scope(leg_index),
                    resolution_hint="Fix the overlapping season date ranges",
                    night=night.isoformat(),
                    season_ids=[s.id for s in covering],
                )
            ]
        )
    if covering:
        return SeasonResolution(season=covering[0])

    if resort.allow_default_season_fallback and resort.default_season_id:
        default_season = ctx.data.get_season(resort.default_season_id)
        if default_season is not None:
            return SeasonResolution(season=default_season, used_default=True)

    raise CalculationError(
        CalculationErrorCode.CALC_SEASON_NOT_FOUND,
        f"No season covers {night.isoformat()} at {resort.name}",
        {"resort_id": resort.id, "night": night.isoformat()},
    )


def resolve_nightly_rates(
    ctx: CalculationContext,
    resort: Resort,
    room_type: RoomType,
    check_in: date,
    check_out: date,
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
) -> list[NightlyCost]:
    """Resolve season and rate for every night of [check_in, check_out).

    Args:
        ctx: Calculation context
        resort: Resort of the leg
        room_type: Room type being priced
        check_in: First night
        check_out: Departure date (not a night)
        audit: Audit accumulator (one RATE_LOOKUP step per night)
        leg_index: 0-based leg position, for scoping warnings

    Returns:
        One NightlyCost per night, cost converted to the quote currency

    Raises:
        CalculationError: CALC_SEASON_NOT_FOUND / CALC_RATE_NOT_FOUND
    """
    scope = leg_scope(leg_index)
    nightly: list[NightlyCost] = []

    for night in iter_stay_nights(check_in, check_out):
        resolution = resolve_season(ctx, resort, night, leg_index=leg_index)
        rate = ctx.data.get_rate(room_type.id, resolution.season.id, night)
        if rate is None:
            raise CalculationError(
                CalculationErrorCode.CALC_RATE_NOT_FOUND,
                f"No rate for {room_type.name} in season {resolution.season.name} "
                f"on {night.isoformat()}",
                {
                    "room_type_id": room_type.id,
                    "season_id": resolution.season.id,
                    "night": night.isoformat(),
                },
            )

        cost = ctx.convert(rate.cost_amount, rate.currency_code)
        nightly.append(
            NightlyCost(
                night=night,
                season=resolution.season,
                rate=rate,
                cost=cost,
                used_default_season=resolution.used_default,
            )
        )
        audit.add_step(
            AuditStepType.RATE_LOOKUP,
            f"Room rate for {night.isoformat()}: {resolution.season.name}",
            {
                "night": night.isoformat(),
                "room_type_id": room_type.id,
                "season_id": resolution.season.id,
                "rate_id": rate.id,
                "source_amount": rate.cost_amount,
                "source_currency": rate.currency_code,
                "used_default_season": resolution.used_default,
            },
            {"cost_amount": cost},
            cost,
            leg_index=leg_index,
        )

    fallback_nights = [n.night.isoformat() for n in nightly if n.used_default_season]
    if fallback_nights:
        audit.add_warning(
            warning(
                WarningCode.SEASON_DEFAULT_FALLBACK_USED,
                f"{len(fallback_nights)} night(s) at {resort.name} priced with the default season",
                scope=scope,
                resolution_hint="Confirm seasonal pricing for these dates",
                nights=fallback_nights,
            )
        )

    for previous, current in zip(nightly, nightly[1:]):
        if previous.season.id != current.season.id:
            audit.add_warning(
                warning(
                    WarningCode.SEASON_BOUNDARY_CROSSING,
                    f"Stay crosses from {previous.season.name} to {current.season.name} "
                    f"on {current.night.isoformat()}",
                    scope=scope,
                    from_season_id=previous.season.id,
                    to_season_id=current.season.id,
                    night=current.night.isoformat(),
                )
            )

    _warn_expiring_rates(ctx, nightly, audit, scope)
    return nightly


def _warn_expiring_rates(
    ctx: CalculationContext, nightly: list[NightlyCost], audit: AuditBuilder, scope: str
) -> None:
    window = ctx.settings.rate_expiry_warning_days
    seen: set[str] = set()
    for night in nightly:
        rate = night.rate
        if rate.id in seen or rate.valid_to is None:
            continue
        seen.add(rate.id)
        days_left = days_between(ctx.booking_date, rate.valid_to)
        if 0 <= days_left <= window:
            audit.add_warning(
                warning(
                    WarningCode.RATE_EXPIRING_SOON,
                    f"Rate {rate.id} expires on {rate.valid_to.isoformat()}",
                    scope=scope,
                    resolution_hint="Confirm the booking before the rate expires",
                    rate_id=rate.id,
                    valid_to=rate.valid_to.isoformat(),
                )
            )


def room_cost(nightly: list[NightlyCost]) -> Decimal:
    return safe_sum(n.cost for n in nightly)
