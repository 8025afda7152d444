"""Guest resolution: child age bands, occupancy limits and extra-person charges."""

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.types import ExtraPersonCost, GuestCounts, NightlyCost
from quote_engine.errors import BlockingCode, WarningCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import GuestType, PricingMode
from quote_engine.models.inputs import ChildInput
from quote_engine.models.reference import ChildAgeBand, ExtraPersonCharge, Resort, RoomType
from quote_engine.models.results import ResolvedChild
from quote_engine.models.validation import ValidationItem, blocking, warning
from quote_engine.utils.arithmetic import ZERO, safe_add, safe_multiply


def resolve_children(
    children: list[ChildInput],
    age_bands: list[ChildAgeBand],
    *,
    max_child_age: int,
    scope: str,
) -> tuple[list[ResolvedChild], list[ValidationItem]]:
    """Resolve every child to an age band.

    An explicit age_band_id takes precedence over the age lookup; an age
    outside that band's range is reported as a warning, never silently
    re-banded.

    Returns:
        (resolved children, validation items); resolved children are only
        complete when no BLOCKING item was returned
    """
    bands_by_id = {b.id: b for b in age_bands}
    resolved: list[ResolvedChild] = []
    items: list[ValidationItem] = []

    for position, child in enumerate(children):
        if child.age is None:
            items.append(
                blocking(
                    BlockingCode.MISSING_CHILD_AGE,
                    f"Child {position + 1} has no age",
                    scope=scope,
                    resolution_hint="Enter the age of every child",
                    child_position=position,
                )
            )
            continue
        if child.age < 0 or child.age > max_child_age:
            items.append(
                blocking(
                    BlockingCode.INVALID_CHILD_AGE,
                    f"Child {position + 1} age {child.age} is outside 0-{max_child_age}",
                    scope=scope,
                    resolution_hint=f"Guests aged {max_child_age + 1} and over travel as adults",
                    child_position=position,
                    age=child.age,
                )
            )
            continue

        if child.age_band_id is not None:
            band = bands_by_id.get(child.age_band_id)
            if band is None:
                items.append(
                    blocking(
                        BlockingCode.INVALID_CHILD_AGE,
                        f"Child {position + 1} references unknown age band {child.age_band_id}",
                        scope=scope,
                        child_position=position,
                        age_band_id=child.age_band_id,
                    )
                )
                continue
            if not band.contains_age(child.age):
                items.append(
                    warning(
                        WarningCode.CHILD_AGE_BAND_MISMATCH,
                        f"Child {position + 1} age {child.age} is outside band {band.name} "
                        f"({band.min_age}-{band.max_age}); the explicit band is used",
                        scope=scope,
                        child_position=position,
                        age=child.age,
                        age_band_id=band.id,
                    )
                )
        else:
            band = next((b for b in age_bands if b.contains_age(child.age)), None)
            if band is None:
                items.append(
                    blocking(
                        BlockingCode.INVALID_CHILD_AGE,
                        f"No age band covers child {position + 1} aged {child.age}",
                        scope=scope,
                        resolution_hint="Configure child age bands covering 0-11",
                        child_position=position,
                        age=child.age,
                    )
                )
                continue

        resolved.append(ResolvedChild(age=child.age, age_band_id=band.id, age_band_name=band.name))

    return resolved, items


def validate_guests(
    resort: Resort, adults: int, children: int, *, scope: str
) -> list[ValidationItem]:
    """Check that the leg has guests and an adult where the resort requires one."""
    if adults + children == 0:
        return [
            blocking(
                BlockingCode.NO_GUESTS_SPECIFIED,
                "No guests specified",
                scope=scope,
                resolution_hint="Add at least one guest",
            )
        ]
    if adults == 0:
        if resort.require_adult_guest:
            return [
                blocking(
                    BlockingCode.ADULTS_REQUIRED,
                    f"{resort.name} requires at least one adult guest",
                    scope=scope,
                    resort_id=resort.id,
                )
            ]
        return [
            warning(
                WarningCode.ADULTS_ZERO_REVIEW,
                "Booking has no adult guests; review before sending",
                scope=scope,
            )
        ]
    return []


def validate_occupancy(
    room_type: RoomType, adults: int, children: int, *, scope: str
) -> list[ValidationItem]:
    """Report every exceeded occupancy limit of the room type."""
    items: list[ValidationItem] = []
    if adults > room_type.max_occupancy_adults:
        items.append(
            blocking(
                BlockingCode.ADULT_OCCUPANCY_EXCEEDED,
                f"{adults} adults exceed {room_type.name} maximum of "
                f"{room_type.max_occupancy_adults}",
                scope=scope,
                adults=adults,
                max_adults=room_type.max_occupancy_adults,
            )
        )
    if children > room_type.max_occupancy_children:
        items.append(
            blocking(
                BlockingCode.CHILD_OCCUPANCY_EXCEEDED,
                f"{children} children exceed {room_type.name} maximum of "
                f"{room_type.max_occupancy_children}",
                scope=scope,
                children=children,
                max_children=room_type.max_occupancy_children,
            )
        )
    if adults + children > room_type.max_occupancy_total:
        items.append(
            blocking(
                BlockingCode.TOTAL_OCCUPANCY_EXCEEDED,
                f"{adults + children} guests exceed {room_type.name} maximum of "
                f"{room_type.max_occupancy_total}",
                scope=scope,
                total=adults + children,
                max_total=room_type.max_occupancy_total,
            )
        )
    return items


def _find_charge(
    charges: list[ExtraPersonCharge],
    guest_type: GuestType,
    age_band_id: str | None,
    night: NightlyCost,
) -> ExtraPersonCharge | None:
    """Season-specific charge for the night, else a season-agnostic one."""
    matching = [
        c
        for c in charges
        if c.applies_to == guest_type
        and (guest_type == GuestType.adult or c.child_age_band_id == age_band_id)
        and c.is_valid_on(night.night)
    ]
    for charge in matching:
        if charge.season_id == night.season.id:
            return charge
    for charge in matching:
        if charge.season_id is None:
            return charge
    return None


def _price_extra_guest(
    ctx: CalculationContext,
    charges: list[ExtraPersonCharge],
    guest_type: GuestType,
    count: int,
    nightly: list[NightlyCost],
    age_band: ChildAgeBand | None = None,
    child_age: int | None = None,
) -> ExtraPersonCost | None:
    """Price one group of extra guests.

    The check-in night's charge decides the mode. A PER_STAY charge there is
    taken once for the whole stay. Otherwise each night is priced with its own
    per-night charge; PER_STAY charges on later nights do not apply.
    """
    if not nightly:
        return None
    band_id = age_band.id if age_band else None

    check_in_charge = _find_charge(charges, guest_type, band_id, nightly[0])
    if check_in_charge is not None and check_in_charge.pricing_mode == PricingMode.PER_STAY:
        unit = ctx.convert(check_in_charge.cost_amount, check_in_charge.currency_code)
        return ExtraPersonCost(
            charge=check_in_charge,
            guest_type=guest_type,
            count=count,
            nights=len(nightly),
            per_unit_cost=unit,
            cost=safe_multiply(unit, count),
            age_band=age_band,
            child_age=child_age,
        )

    first_charge: ExtraPersonCharge | None = None
    total = ZERO
    charged_nights = 0
    for night in nightly:
        charge = _find_charge(charges, guest_type, band_id, night)
        if charge is None or charge.pricing_mode == PricingMode.PER_STAY:
            continue
        if first_charge is None:
            first_charge = charge
        unit = ctx.convert(charge.cost_amount, charge.currency_code)
        total = safe_add(total, safe_multiply(unit, count))
        charged_nights += 1

    if first_charge is None:
        return None
    return ExtraPersonCost(
        charge=first_charge,
        guest_type=guest_type,
        count=count,
        nights=charged_nights,
        per_unit_cost=ctx.convert(first_charge.cost_amount, first_charge.currency_code),
        cost=total,
        age_band=age_band,
        child_age=child_age,
    )


def calculate_extra_person_charges(
    ctx: CalculationContext,
    resort: Resort,
    room_type: RoomType,
    guests: GuestCounts,
    nightly: list[NightlyCost],
    age_bands: list[ChildAgeBand],
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
) -> list[ExtraPersonCost]:
    """Price guests beyond the room's base occupancy.

    Extra adults are priced as one group; each extra child gets its own
    result. Children fill the base child allowance in input order.
    """
    charges = ctx.data.get_extra_person_charges(resort.id, room_type.id)
    bands_by_id = {b.id: b for b in age_bands}
    results: list[ExtraPersonCost] = []

    extra_adults = max(0, guests.adults - room_type.base_occupancy_adults)
    if extra_adults > 0:
        adult_cost = _price_extra_guest(ctx, charges, GuestType.adult, extra_adults, nightly)
        if adult_cost is not None:
            results.append(adult_cost)

    for child in guests.children[room_type.base_occupancy_children :]:
        child_cost = _price_extra_guest(
            ctx,
            charges,
            GuestType.child,
            1,
            nightly,
            age_band=bands_by_id.get(child.age_band_id),
            child_age=child.age,
        )
        if child_cost is not None:
            results.append(child_cost)

    for result in results:
        label = result.age_band.name if result.age_band else "adult"
        audit.add_step(
            AuditStepType.EXTRA_PERSON,
            f"Extra {result.guest_type.value} charge ({label}): "
            f"{result.count} x {result.nights} night(s)",
            {
                "charge_id": result.charge.id,
                "guest_type": result.guest_type,
                "age_band_id": result.age_band.id if result.age_band else None,
                "child_age": result.child_age,
                "count": result.count,
                "nights": result.nights,
                "pricing_mode": result.charge.pricing_mode,
                "per_unit_cost": result.per_unit_cost,
            },
            {"total_cost": result.cost},
            result.cost,
            leg_index=leg_index,
        )

    return results
