"""Blackout-date and minimum-stay rules for a leg."""

from datetime import date

from quote_engine.calculation.context import CalculationContext
from quote_engine.errors import BlockingCode
from quote_engine.models.reference import Resort, RoomType
from quote_engine.models.validation import ValidationItem, blocking


def check_blackouts(
    ctx: CalculationContext,
    resort: Resort,
    room_type: RoomType,
    check_in: date,
    check_out: date,
    *,
    scope: str,
) -> list[ValidationItem]:
    """Report active blackouts overlapping the stay (resort-wide or for this room)."""
    items: list[ValidationItem] = []
    for blackout in ctx.data.get_blackout_dates(resort.id, check_in, check_out):
        if blackout.room_type_id is None:
            code = BlockingCode.BLACKOUT_DATE_RESORT_WIDE
            subject = resort.name
        elif blackout.room_type_id == room_type.id:
            code = BlockingCode.BLACKOUT_DATE_ROOM_SPECIFIC
            subject = room_type.name
        else:
            continue
        items.append(
            blocking(
                code,
                f"{subject} is blacked out {blackout.start_date.isoformat()} to "
                f"{blackout.end_date.isoformat()}"
                + (f": {blackout.reason}" if blackout.reason else ""),
                scope=scope,
                resolution_hint="Choose different dates or another room type",
                blackout_id=blackout.id,
            )
        )
    return items


def applicable_minimum_nights(
    ctx: CalculationContext,
    resort: Resort,
    room_type: RoomType,
    check_in: date,
    season_ids: set[str],
) -> int:
    """Strictest minimum stay among rules matching the room, seasons and check-in date."""
    minimum = 1
    for rule in ctx.data.get_minimum_stay_rules(resort.id):
        if rule.room_type_id is not None and rule.room_type_id != room_type.id:
            continue
        if rule.season_id is not None and rule.season_id not in season_ids:
            continue
        if not rule.is_valid_on(check_in):
            continue
        minimum = max(minimum, rule.minimum_nights)
    return minimum


def check_minimum_stay(
    ctx: CalculationContext,
    resort: Resort,
    room_type: RoomType,
    check_in: date,
    nights: int,
    season_ids: set[str],
    *,
    scope: str,
) -> list[ValidationItem]:
    minimum = applicable_minimum_nights(ctx, resort, room_type, check_in, season_ids)
    if nights >= minimum:
        return []
    return [
        blocking(
            BlockingCode.MINIMUM_STAY_VIOLATION,
            f"{room_type.name} requires at least {minimum} nights; stay is {nights}",
            scope=scope,
            resolution_hint=f"Extend the stay to {minimum} nights",
            minimum_nights=minimum,
            nights=nights,
        )
    ]
