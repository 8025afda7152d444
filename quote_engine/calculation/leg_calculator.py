"""Leg calculator - runs the per-leg pipeline and assembles the priced leg."""

from dataclasses import dataclass

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.components import (
    price_activity,
    price_festive_supplements,
    price_meal_plan,
    price_transfer,
)
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.discounts import apply_discounts
from quote_engine.calculation.guests import (
    calculate_extra_person_charges,
    resolve_children,
    validate_guests,
    validate_occupancy,
)
from quote_engine.calculation.markup import (
    MarkupPolicy,
    discount_markup_reduction,
    resolve_markup_policy,
)
from quote_engine.calculation.rate_resolver import resolve_nightly_rates, room_cost
from quote_engine.calculation.stay_rules import check_blackouts, check_minimum_stay
from quote_engine.calculation.taxes import calculate_taxes
from quote_engine.calculation.types import ComponentCost, GuestCounts, PreTaxLine, TaxCost
from quote_engine.errors import BlockingCode, BlockingValidationError, WarningCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import PricingBreakdown
from quote_engine.models.inputs import LegCalculationInput
from quote_engine.models.reference import ChildAgeBand, Resort, RoomType
from quote_engine.models.results import (
    AppliedDiscount,
    ExtraPersonChargeResult,
    LegCalculationResult,
    LegTotals,
    LineItemResult,
    NightlyRoomRate,
    ResortSnapshot,
    RoomTypeSnapshot,
    TaxLineResult,
)
from quote_engine.models.validation import ValidationItem, blocking, leg_scope, warning
from quote_engine.utils.arithmetic import safe_add, safe_subtract, safe_sum
from quote_engine.utils.dates import nights_between


@dataclass(frozen=True)
class LegCalculationOutcome:
    """A priced leg plus the markup policy used, for inter-resort transfer pricing."""

    result: LegCalculationResult
    markup_policy: MarkupPolicy


def _raise_if_blocking(items: list[ValidationItem], audit: AuditBuilder) -> None:
    """Send warnings to the audit; raise if any item is blocking."""
    blocking_items = [item for item in items if item.is_blocking]
    audit.add_warnings(item for item in items if not item.is_blocking)
    if blocking_items:
        raise BlockingValidationError(blocking_items)


def resolve_leg_entities(
    ctx: CalculationContext, leg: LegCalculationInput, *, scope: str
) -> tuple[Resort, RoomType]:
    """Look up the leg's resort and room type.

    Raises:
        BlockingValidationError: RESORT_NOT_FOUND / ROOM_TYPE_NOT_FOUND
    """
    resort = ctx.data.get_resort(leg.resort_id)
    if resort is None:
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.RESORT_NOT_FOUND,
                    f"Resort {leg.resort_id} not found",
                    scope=scope,
                    resort_id=leg.resort_id,
                )
            ]
        )
    room_type = ctx.data.get_room_type(leg.room_type_id, resort.id)
    if room_type is None:
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.ROOM_TYPE_NOT_FOUND,
                    f"Room type {leg.room_type_id} not found at {resort.name}",
                    scope=scope,
                    room_type_id=leg.room_type_id,
                )
            ]
        )
    return resort, room_type


def price_leg_components(
    ctx: CalculationContext,
    leg: LegCalculationInput,
    resort: Resort,
    guests: GuestCounts,
    nights: int,
    age_bands: list[ChildAgeBand],
    audit: AuditBuilder,
    *,
    leg_index: int,
) -> list[ComponentCost]:
    """Meal plan, transfer and activities for a leg.

    Raises:
        BlockingValidationError: unknown references, or a required transfer missing
    """
    scope = leg_scope(leg_index)
    components: list[ComponentCost] = []
    errors: list[ValidationItem] = []

    if leg.meal_plan_id is not None:
        meal_plan = ctx.data.get_meal_plan(leg.meal_plan_id, resort.id)
        if meal_plan is None:
            errors.append(
                blocking(
                    BlockingCode.MEAL_PLAN_NOT_FOUND,
                    f"Meal plan {leg.meal_plan_id} not found at {resort.name}",
                    scope=scope,
                    meal_plan_id=leg.meal_plan_id,
                )
            )
    else:
        meal_plan = ctx.data.get_default_meal_plan(resort.id)

    if leg.transfer_type_id is not None:
        transfer = ctx.data.get_transfer_type(leg.transfer_type_id, resort.id)
        if transfer is None:
            errors.append(
                blocking(
                    BlockingCode.TRANSFER_NOT_FOUND,
                    f"Transfer {leg.transfer_type_id} not found at {resort.name}",
                    scope=scope,
                    transfer_type_id=leg.transfer_type_id,
                )
            )
    else:
        transfer = ctx.data.get_default_transfer_type(resort.id)
        if transfer is None and resort.transfer_required:
            errors.append(
                blocking(
                    BlockingCode.TRANSFER_REQUIRED_MISSING,
                    f"{resort.name} requires a transfer but none was selected",
                    scope=scope,
                    resolution_hint=resort.transfer_required_reason
                    or "Select a transfer type for this resort",
                    resort_id=resort.id,
                )
            )
        elif transfer is None:
            audit.add_warning(
                warning(
                    WarningCode.TRANSFER_NOT_SELECTED,
                    f"No transfer selected for {resort.name}",
                    scope=scope,
                    resort_id=resort.id,
                )
            )

    activities = []
    for activity_id in leg.activity_ids:
        activity = ctx.data.get_activity(activity_id, resort.id)
        if activity is None:
            errors.append(
                blocking(
                    BlockingCode.ACTIVITY_NOT_FOUND,
                    f"Activity {activity_id} not found at {resort.name}",
                    scope=scope,
                    activity_id=activity_id,
                )
            )
        else:
            activities.append(activity)

    if errors:
        raise BlockingValidationError(errors)

    if meal_plan is not None:
        components.extend(
            price_meal_plan(ctx, meal_plan, guests, nights, age_bands, audit, leg_index=leg_index)
        )
    if transfer is not None:
        components.extend(
            price_transfer(ctx, transfer, guests, age_bands, audit, leg_index=leg_index)
        )
    for activity in activities:
        components.extend(
            price_activity(
                ctx,
                activity,
                guests,
                age_bands,
                leg.check_in_date,
                leg.check_out_date,
                audit,
                leg_index=leg_index,
                scope=scope,
            )
        )
    return components


def calculate_leg(
    ctx: CalculationContext,
    leg: LegCalculationInput,
    leg_index: int,
    audit: AuditBuilder,
    *,
    override_active: bool = False,
) -> LegCalculationOutcome:
    """Price one leg: rates, guests, components, discounts, taxes, markup, totals.

    Args:
        ctx: Calculation context
        leg: Leg input
        leg_index: 0-based position of the leg in the quote
        audit: Audit accumulator, appended to by every stage
        override_active: True when a quote-level fixed markup replaces line-item markup

    Returns:
        LegCalculationOutcome with the priced leg and its markup policy

    Raises:
        BlockingValidationError: business-rule violations for this leg
        CalculationError: data or configuration failures (rate, season, tax, markup, FX)
    """
    scope = leg_scope(leg_index)
    resort, room_type = resolve_leg_entities(ctx, leg, scope=scope)
    nights = nights_between(leg.check_in_date, leg.check_out_date)

    # Guests and occupancy
    age_bands = ctx.data.get_child_age_bands(resort.id)
    children, child_items = resolve_children(
        leg.children, age_bands, max_child_age=ctx.settings.max_child_age, scope=scope
    )
    guest_items = child_items + validate_guests(
        resort, leg.adults_count, len(leg.children), scope=scope
    )
    guest_items += validate_occupancy(room_type, leg.adults_count, len(leg.children), scope=scope)
    guest_items += check_blackouts(
        ctx, resort, room_type, leg.check_in_date, leg.check_out_date, scope=scope
    )
    _raise_if_blocking(guest_items, audit)
    guests = GuestCounts(adults=leg.adults_count, children=tuple(children))

    # Rates and seasons
    nightly = resolve_nightly_rates(
        ctx, resort, room_type, leg.check_in_date, leg.check_out_date, audit, leg_index=leg_index
    )
    season_ids = {n.season.id for n in nightly}
    _raise_if_blocking(
        check_minimum_stay(
            ctx, resort, room_type, leg.check_in_date, nights, season_ids, scope=scope
        ),
        audit,
    )

    # Extra guests and components
    extra_person = calculate_extra_person_charges(
        ctx, resort, room_type, guests, nightly, age_bands, audit, leg_index=leg_index
    )
    components = price_leg_components(
        ctx, leg, resort, guests, nights, age_bands, audit, leg_index=leg_index
    )
    festive = price_festive_supplements(
        ctx,
        ctx.data.get_festive_supplements(resort.id),
        guests,
        age_bands,
        leg.check_in_date,
        leg.check_out_date,
        leg.excluded_festive_supplement_ids,
        audit,
        leg_index=leg_index,
        scope=scope,
    )

    room_total = room_cost(nightly)
    extra_person_cost = safe_sum(e.cost for e in extra_person)
    component_cost = safe_sum(c.cost for c in components)
    festive_cost = safe_sum(f.cost for f in festive)
    pre_tax_lines: list[PreTaxLine] = [*nightly, *extra_person, *components, *festive]
    pre_tax_subtotal = safe_sum(line.cost for line in pre_tax_lines)

    audit.add_step(
        AuditStepType.PRE_TAX_SUBTOTAL,
        "Pre-tax subtotal",
        {
            "room_cost": room_total,
            "extra_person_cost": extra_person_cost,
            "component_cost": component_cost,
            "festive_cost": festive_cost,
        },
        {"pre_tax_subtotal": pre_tax_subtotal},
        pre_tax_subtotal,
        leg_index=leg_index,
    )

    # Discounts (before taxes), then taxes on the discounted subtotal
    discount_outcome = apply_discounts(
        ctx,
        resort,
        leg.discount_codes,
        pre_tax_lines,
        nights,
        leg.check_in_date,
        season_ids,
        audit,
        leg_index=leg_index,
        scope=scope,
    )
    post_discount_subtotal = safe_subtract(pre_tax_subtotal, discount_outcome.total)

    taxes = calculate_taxes(
        ctx,
        resort,
        leg.check_in_date,
        post_discount_subtotal,
        guests,
        nights,
        audit,
        leg_index=leg_index,
    )
    total_taxes = safe_sum(t.cost for t in taxes)

    # Markup
    policy = resolve_markup_policy(
        ctx, resort, leg.check_in_date, override_active=override_active, scope=scope
    )
    include_mandatory_festive = ctx.settings.discount_mandatory_festive_in_base

    priced_lines: list[PreTaxLine | TaxCost] = [*pre_tax_lines, *taxes]
    line_markups = policy.allocate([(line.line_item_type, line.cost) for line in priced_lines])
    markup_by_line = {id(line): markup for line, markup in zip(priced_lines, line_markups)}
    pre_tax_markups = [markup_by_line[id(line)] for line in pre_tax_lines]

    def priced(line: PreTaxLine | TaxCost) -> PricingBreakdown:
        return PricingBreakdown.of(line.cost, markup_by_line[id(line)])

    nightly_results = tuple(
        NightlyRoomRate(
            night=n.night,
            season_id=n.season.id,
            season_name=n.season.name,
            rate_id=n.rate.id,
            used_default_season=n.used_default_season,
            pricing=priced(n),
        )
        for n in nightly
    )
    extra_results = tuple(
        ExtraPersonChargeResult(
            charge_id=e.charge.id,
            guest_type=e.guest_type,
            age_band_id=e.age_band.id if e.age_band else None,
            age_band_name=e.age_band.name if e.age_band else None,
            child_age=e.child_age,
            count=e.count,
            nights=e.nights,
            pricing_mode=e.charge.pricing_mode,
            per_unit_cost=e.per_unit_cost,
            pricing=priced(e),
        )
        for e in extra_person
    )
    component_results = tuple(_line_result(c, priced(c)) for c in components)
    festive_results = tuple(_line_result(f, priced(f)) for f in festive)
    tax_results = tuple(
        TaxLineResult(
            tax_configuration_id=t.config.id,
            tax_type=t.config.tax_type,
            name=t.config.name,
            line_item_type=t.line_item_type,
            calculation_method=t.config.calculation_method,
            rate_value=t.config.rate_value,
            calculation_order=t.config.calculation_order,
            base_amount=t.base_amount,
            guest_nights=t.guest_nights,
            is_cumulative_base=t.config.is_cumulative_base,
            pricing=priced(t),
        )
        for t in taxes
    )
    discount_results = tuple(
        AppliedDiscount(
            discount_id=a.discount.id,
            name=a.discount.name,
            code=a.discount.code,
            discount_type=a.discount.discount_type,
            discount_value=a.discount.discount_value,
            base_type=a.discount.base_type,
            base_amount=a.base_amount,
            base_composition=a.base_composition,
            excluded_from_base=a.excluded_from_base,
            clamped=a.clamped,
            reduction=PricingBreakdown.of(
                a.amount,
                discount_markup_reduction(
                    a, pre_tax_lines, pre_tax_markups, include_mandatory_festive
                ),
            ),
        )
        for a in discount_outcome.applications
    )

    line_pricings = [
        *(r.pricing for r in nightly_results),
        *(r.pricing for r in extra_results),
        *(r.pricing for r in component_results),
        *(r.pricing for r in festive_results),
        *(r.pricing for r in tax_results),
    ]
    line_item_markup_total = safe_sum(p.markup_amount for p in line_pricings)
    discount_markup_total = safe_sum(d.reduction.markup_amount for d in discount_results)
    leg_cost = safe_add(post_discount_subtotal, total_taxes)
    leg_markup = safe_subtract(line_item_markup_total, discount_markup_total)
    leg_pricing = PricingBreakdown.of(leg_cost, leg_markup)

    audit.add_step(
        AuditStepType.MARKUP,
        "Line-item markup"
        if policy.config is not None
        else "Line-item markup replaced by quote-level override",
        {
            "markup_configuration_id": policy.config.id if policy.config else None,
            "markup_type": policy.config.markup_type if policy.config else None,
            "markup_value": policy.config.markup_value if policy.config else None,
            "applies_to_taxes": policy.config.applies_to_taxes if policy.config else None,
            "override_active": override_active,
        },
        {
            "line_item_markup_total": line_item_markup_total,
            "discount_markup_reduction": discount_markup_total,
            "leg_markup": leg_markup,
        },
        leg_markup,
        leg_index=leg_index,
    )
    audit.add_step(
        AuditStepType.LEG_TOTAL,
        f"Leg {leg_index + 1} total: {resort.name}",
        {
            "pre_tax_subtotal": pre_tax_subtotal,
            "total_discount": discount_outcome.total,
            "post_discount_subtotal": post_discount_subtotal,
            "total_taxes": total_taxes,
        },
        {
            "total_cost": leg_pricing.cost_amount,
            "total_markup": leg_pricing.markup_amount,
            "total_sell": leg_pricing.sell_amount,
        },
        leg_pricing.sell_amount,
        leg_index=leg_index,
    )

    result = LegCalculationResult(
        leg_index=leg_index,
        resort=ResortSnapshot(id=resort.id, name=resort.name),
        room_type=RoomTypeSnapshot(id=room_type.id, name=room_type.name),
        check_in_date=leg.check_in_date,
        check_out_date=leg.check_out_date,
        nights=nights,
        adults_count=leg.adults_count,
        children=tuple(children),
        nightly_rates=nightly_results,
        extra_person_charges=extra_results,
        components=component_results,
        festive_supplements=festive_results,
        taxes=tax_results,
        discounts=discount_results,
        markup_configuration_id=policy.config.id if policy.config else None,
        totals=LegTotals(
            room_cost=room_total,
            extra_person_cost=extra_person_cost,
            component_cost=component_cost,
            festive_cost=festive_cost,
            pre_tax_subtotal=pre_tax_subtotal,
            total_discount=discount_outcome.total,
            post_discount_subtotal=post_discount_subtotal,
            total_taxes=total_taxes,
            line_item_markup_total=line_item_markup_total,
            pricing=leg_pricing,
        ),
    )
    return LegCalculationOutcome(result=result, markup_policy=policy)


def _line_result(line: ComponentCost, pricing: PricingBreakdown) -> LineItemResult:
    return LineItemResult(
        line_item_type=line.line_item_type,
        reference_id=line.reference_id,
        description=line.description,
        guest_type=line.guest_type,
        age_band_id=line.age_band_id,
        quantity=line.quantity,
        unit_cost=line.unit_cost,
        pricing_mode=line.pricing_mode,
        is_mandatory=line.is_mandatory,
        pricing=pricing,
    )
