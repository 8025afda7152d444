"""Component pricers: meal plans, transfers, activities and festive supplements.

Each pricer returns cost-only lines in the quote currency; markup and
discounts are applied by later stages.
"""

from collections.abc import Mapping
from datetime import date
from decimal import Decimal

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.types import ComponentCost, GuestCounts
from quote_engine.errors import BlockingCode, BlockingValidationError, WarningCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import GuestType, LineItemType, PricingMode
from quote_engine.models.reference import (
    Activity,
    ChildAgeBand,
    FestiveSupplement,
    MealPlan,
    TransferType,
)
from quote_engine.models.validation import blocking, warning
from quote_engine.utils.arithmetic import ZERO, safe_multiply, safe_sum
from quote_engine.utils.dates import iter_stay_nights

_AUDIT_STEP_FOR = {
    LineItemType.MEAL_PLAN: AuditStepType.MEAL_PLAN,
    LineItemType.TRANSFER: AuditStepType.TRANSFER,
    LineItemType.ACTIVITY: AuditStepType.ACTIVITY,
    LineItemType.FESTIVE_SUPPLEMENT: AuditStepType.FESTIVE_SUPPLEMENT,
}


def _per_person_lines(
    ctx: CalculationContext,
    *,
    line_item_type: LineItemType,
    reference_id: str,
    name: str,
    adult_cost: Decimal | None,
    child_costs_by_band: Mapping[str, Decimal],
    currency_code: str,
    guests: GuestCounts,
    bands_by_id: Mapping[str, ChildAgeBand],
    multiplier: int,
    pricing_mode: PricingMode,
    is_mandatory: bool = False,
) -> list[ComponentCost]:
    """Adult line plus one line per child age band; zero-cost bands are free."""
    lines: list[ComponentCost] = []

    if guests.adults > 0 and adult_cost is not None:
        unit = ctx.convert(adult_cost, currency_code)
        lines.append(
            ComponentCost(
                line_item_type=line_item_type,
                reference_id=reference_id,
                description=f"{name} - adult",
                quantity=guests.adults,
                unit_cost=unit,
                pricing_mode=pricing_mode,
                cost=safe_multiply(safe_multiply(unit, guests.adults), multiplier),
                guest_type=GuestType.adult,
                is_mandatory=is_mandatory,
            )
        )

    for band_id, count in guests.children_by_band().items():
        band_cost = child_costs_by_band.get(band_id)
        if band_cost is None or band_cost == ZERO:
            continue
        unit = ctx.convert(band_cost, currency_code)
        band = bands_by_id.get(band_id)
        lines.append(
            ComponentCost(
                line_item_type=line_item_type,
                reference_id=reference_id,
                description=f"{name} - {band.name if band else band_id}",
                quantity=count,
                unit_cost=unit,
                pricing_mode=pricing_mode,
                cost=safe_multiply(safe_multiply(unit, count), multiplier),
                guest_type=GuestType.child,
                age_band_id=band_id,
                is_mandatory=is_mandatory,
            )
        )

    return lines


def _flat_line(
    ctx: CalculationContext,
    *,
    line_item_type: LineItemType,
    reference_id: str,
    name: str,
    amount: Decimal,
    currency_code: str,
    pricing_mode: PricingMode,
    quantity: int = 1,
    is_mandatory: bool = False,
) -> ComponentCost:
    unit = ctx.convert(amount, currency_code)
    return ComponentCost(
        line_item_type=line_item_type,
        reference_id=reference_id,
        description=name,
        quantity=quantity,
        unit_cost=unit,
        pricing_mode=pricing_mode,
        cost=safe_multiply(unit, quantity),
        is_mandatory=is_mandatory,
    )


def _record(
    audit: AuditBuilder,
    lines: list[ComponentCost],
    line_item_type: LineItemType,
    description: str,
    inputs: dict,
    leg_index: int,
) -> None:
    total = safe_sum(line.cost for line in lines)
    audit.add_step(
        _AUDIT_STEP_FOR[line_item_type],
        description,
        inputs,
        {
            "lines": [
                {"description": line.description, "quantity": line.quantity, "cost": line.cost}
                for line in lines
            ],
            "total_cost": total,
        },
        total,
        leg_index=leg_index,
    )


def price_meal_plan(
    ctx: CalculationContext,
    meal_plan: MealPlan,
    guests: GuestCounts,
    nights: int,
    age_bands: list[ChildAgeBand],
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
) -> list[ComponentCost]:
    """Price a meal plan.

    PER_PERSON_PER_NIGHT: cost x guests x nights; PER_PERSON: cost x guests;
    PER_STAY / PER_BOOKING: the adult cost once.
    """
    if meal_plan.pricing_mode in (PricingMode.PER_STAY, PricingMode.PER_BOOKING):
        lines = [
            _flat_line(
                ctx,
                line_item_type=LineItemType.MEAL_PLAN,
                reference_id=meal_plan.id,
                name=meal_plan.name,
                amount=meal_plan.adult_cost,
                currency_code=meal_plan.currency_code,
                pricing_mode=meal_plan.pricing_mode,
            )
        ]
    else:
        multiplier = nights if meal_plan.pricing_mode == PricingMode.PER_PERSON_PER_NIGHT else 1
        lines = _per_person_lines(
            ctx,
            line_item_type=LineItemType.MEAL_PLAN,
            reference_id=meal_plan.id,
            name=meal_plan.name,
            adult_cost=meal_plan.adult_cost,
            child_costs_by_band=meal_plan.child_costs_by_band,
            currency_code=meal_plan.currency_code,
            guests=guests,
            bands_by_id={b.id: b for b in age_bands},
            multiplier=multiplier,
            pricing_mode=meal_plan.pricing_mode,
        )

    _record(
        audit,
        lines,
        LineItemType.MEAL_PLAN,
        f"Meal plan: {meal_plan.name}",
        {
            "meal_plan_id": meal_plan.id,
            "pricing_mode": meal_plan.pricing_mode,
            "adults": guests.adults,
            "children": guests.child_count,
            "nights": nights,
        },
        leg_index,
    )
    return lines


def price_transfer(
    ctx: CalculationContext,
    transfer: TransferType,
    guests: GuestCounts,
    age_bands: list[ChildAgeBand],
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
) -> list[ComponentCost]:
    """Price a resort transfer (PER_PERSON, or flat PER_BOOKING / PER_TRIP)."""
    if transfer.pricing_mode == PricingMode.PER_PERSON:
        lines = _per_person_lines(
            ctx,
            line_item_type=LineItemType.TRANSFER,
            reference_id=transfer.id,
            name=transfer.name,
            adult_cost=transfer.adult_cost,
            child_costs_by_band=transfer.child_costs_by_band,
            currency_code=transfer.currency_code,
            guests=guests,
            bands_by_id={b.id: b for b in age_bands},
            multiplier=1,
            pricing_mode=transfer.pricing_mode,
        )
    else:
        lines = [
            _flat_line(
                ctx,
                line_item_type=LineItemType.TRANSFER,
                reference_id=transfer.id,
                name=transfer.name,
                amount=transfer.cost_amount or ZERO,
                currency_code=transfer.currency_code,
                pricing_mode=transfer.pricing_mode,
            )
        ]

    _record(
        audit,
        lines,
        LineItemType.TRANSFER,
        f"Transfer: {transfer.name}",
        {
            "transfer_type_id": transfer.id,
            "direction": transfer.direction,
            "pricing_mode": transfer.pricing_mode,
            "adults": guests.adults,
            "children": guests.child_count,
        },
        leg_index,
    )
    return lines


def activity_available(activity: Activity, check_in: date, check_out: date) -> bool:
    """Date-specific activities need an available date inside the stay."""
    if not activity.is_date_specific:
        return True
    available = set(activity.available_dates)
    return any(night in available for night in iter_stay_nights(check_in, check_out))


def price_activity(
    ctx: CalculationContext,
    activity: Activity,
    guests: GuestCounts,
    age_bands: list[ChildAgeBand],
    check_in: date,
    check_out: date,
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
    scope: str = "quote",
) -> list[ComponentCost]:
    """Price an activity after checking its availability during the stay.

    Raises:
        BlockingValidationError: ACTIVITY_DATE_UNAVAILABLE
    """
    if not activity_available(activity, check_in, check_out):
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.ACTIVITY_DATE_UNAVAILABLE,
                    f"{activity.name} is not available between {check_in.isoformat()} "
                    f"and {check_out.isoformat()}",
                    scope=scope,
                    resolution_hint="Remove the activity or change the stay dates",
                    activity_id=activity.id,
                )
            ]
        )

    if activity.pricing_mode == PricingMode.PER_BOOKING:
        lines = [
            _flat_line(
                ctx,
                line_item_type=LineItemType.ACTIVITY,
                reference_id=activity.id,
                name=activity.name,
                amount=activity.cost_amount or ZERO,
                currency_code=activity.currency_code,
                pricing_mode=activity.pricing_mode,
            )
        ]
    else:
        lines = _per_person_lines(
            ctx,
            line_item_type=LineItemType.ACTIVITY,
            reference_id=activity.id,
            name=activity.name,
            adult_cost=activity.adult_cost,
            child_costs_by_band=activity.child_costs_by_band,
            currency_code=activity.currency_code,
            guests=guests,
            bands_by_id={b.id: b for b in age_bands},
            multiplier=1,
            pricing_mode=activity.pricing_mode,
        )

    _record(
        audit,
        lines,
        LineItemType.ACTIVITY,
        f"Activity: {activity.name}",
        {"activity_id": activity.id, "pricing_mode": activity.pricing_mode},
        leg_index,
    )
    return lines


def festive_trigger_nights(
    supplement: FestiveSupplement, check_in: date, check_out: date
) -> list[date]:
    """Trigger dates inside [check_in, check_out) and inside the validity window."""
    return sorted(
        d
        for d in supplement.trigger_dates
        if check_in <= d < check_out and supplement.is_valid_on(d)
    )


def price_festive_supplements(
    ctx: CalculationContext,
    supplements: list[FestiveSupplement],
    guests: GuestCounts,
    age_bands: list[ChildAgeBand],
    check_in: date,
    check_out: date,
    excluded_ids: list[str],
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
    scope: str = "quote",
) -> list[ComponentCost]:
    """Auto-apply festive supplements triggered by the stay.

    Mandatory supplements ignore caller exclusions. PER_PERSON is charged
    once per guest; PER_ROOM_PER_NIGHT once per triggered night.
    """
    bands_by_id = {b.id: b for b in age_bands}
    all_lines: list[ComponentCost] = []

    for supplement in supplements:
        triggers = festive_trigger_nights(supplement, check_in, check_out)
        if not triggers:
            continue
        if supplement.id in excluded_ids and not supplement.is_mandatory:
            continue

        if supplement.pricing_mode == PricingMode.PER_ROOM_PER_NIGHT:
            lines = [
                _flat_line(
                    ctx,
                    line_item_type=LineItemType.FESTIVE_SUPPLEMENT,
                    reference_id=supplement.id,
                    name=supplement.name,
                    amount=supplement.adult_cost,
                    currency_code=supplement.currency_code,
                    pricing_mode=supplement.pricing_mode,
                    quantity=len(triggers),
                    is_mandatory=supplement.is_mandatory,
                )
            ]
        else:
            lines = _per_person_lines(
                ctx,
                line_item_type=LineItemType.FESTIVE_SUPPLEMENT,
                reference_id=supplement.id,
                name=supplement.name,
                adult_cost=supplement.adult_cost,
                child_costs_by_band=supplement.child_costs_by_band,
                currency_code=supplement.currency_code,
                guests=guests,
                bands_by_id=bands_by_id,
                multiplier=1,
                pricing_mode=supplement.pricing_mode,
                is_mandatory=supplement.is_mandatory,
            )

        _record(
            audit,
            lines,
            LineItemType.FESTIVE_SUPPLEMENT,
            f"Festive supplement: {supplement.name}",
            {
                "supplement_id": supplement.id,
                "trigger_dates": [d.isoformat() for d in triggers],
                "pricing_mode": supplement.pricing_mode,
                "is_mandatory": supplement.is_mandatory,
            },
            leg_index,
        )
        audit.add_warning(
            warning(
                WarningCode.FESTIVE_SUPPLEMENT_APPLIED,
                f"{supplement.name} applied for {', '.join(d.isoformat() for d in triggers)}",
                scope=scope,
                supplement_id=supplement.id,
                is_mandatory=supplement.is_mandatory,
            )
        )
        all_lines.extend(lines)

    return all_lines
