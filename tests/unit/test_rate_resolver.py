"""Tests for nightly season and rate resolution."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.rate_resolver import resolve_nightly_rates, resolve_season, room_cost
from quote_engine.errors import BlockingValidationError, CalculationError, CalculationErrorCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.reference import DateRange, Rate, Resort, RoomType, Season
from quote_engine.models.store import DataStore


def make_store(seasons: list[Season], rates: list[Rate], resort: Resort) -> DataStore:
    """Helper to create a single-room store."""
    room = RoomType(
        id="room", resort_id=resort.id, name="Villa", max_occupancy_adults=2, max_occupancy_total=2
    )
    return DataStore(
        resorts=(resort,), room_types=(room,), seasons=tuple(seasons), rates=tuple(rates)
    )


def make_season(season_id: str, start: date, end: date) -> Season:
    """Helper to create a one-range season."""
    return Season(
        id=season_id,
        resort_id="r1",
        name=season_id.title(),
        date_ranges=[DateRange(start_date=start, end_date=end)],
    )


def make_rate(season_id: str, amount: str, valid_to: date | None = None) -> Rate:
    """Helper to create a USD rate for the single room."""
    return Rate(
        id=f"rate-{season_id}",
        resort_id="r1",
        room_type_id="room",
        season_id=season_id,
        cost_amount=amount,
        currency_code="USD",
        valid_to=valid_to,
    )


def test_resolves_one_rate_per_night(
    make_context: Callable[..., CalculationContext],
    catalogue: CalculationDataAccess,
    audit: AuditBuilder,
) -> None:
    """Test 4 high-season nights at $650."""
    ctx = make_context()
    resort = catalogue.get_resort("res-coral")
    room = catalogue.get_room_type("room-beach-villa", "res-coral")
    assert resort is not None and room is not None

    nightly = resolve_nightly_rates(ctx, resort, room, date(2027, 2, 10), date(2027, 2, 14), audit)

    assert [n.night for n in nightly] == [date(2027, 2, d) for d in (10, 11, 12, 13)]
    assert all(n.cost == Decimal("650") for n in nightly)
    assert room_cost(nightly) == Decimal("2600")
    frozen = audit.build()
    assert len(frozen.steps_of_type(AuditStepType.RATE_LOOKUP)) == 4
    assert frozen.warnings == ()


def test_season_boundary_attributes_each_night(
    make_context: Callable[..., CalculationContext],
    catalogue: CalculationDataAccess,
    audit: AuditBuilder,
) -> None:
    """Test a stay spanning high and low season."""
    ctx = make_context()
    resort = catalogue.get_resort("res-coral")
    room = catalogue.get_room_type("room-beach-villa", "res-coral")
    assert resort is not None and room is not None

    nightly = resolve_nightly_rates(ctx, resort, room, date(2027, 4, 28), date(2027, 5, 2), audit)

    assert [n.season.id for n in nightly] == [
        "season-coral-high",
        "season-coral-high",
        "season-coral-high",
        "season-coral-low",
    ]
    assert [n.cost for n in nightly] == [Decimal("650")] * 3 + [Decimal("450")]
    warnings = audit.build().warnings
    assert [w.code for w in warnings] == ["SEASON_BOUNDARY_CROSSING"]
    assert warnings[0].details["night"] == "2027-05-01"


def test_default_season_fallback_warns(
    make_context: Callable[..., CalculationContext],
    catalogue: CalculationDataAccess,
    audit: AuditBuilder,
) -> None:
    """Test that nights outside explicit seasons use the default season when allowed."""
    ctx = make_context()
    resort = catalogue.get_resort("res-atoll")
    room = catalogue.get_room_type("room-lagoon-suite", "res-atoll")
    assert resort is not None and room is not None

    nightly = resolve_nightly_rates(ctx, resort, room, date(2027, 10, 30), date(2027, 11, 2), audit)

    assert [n.used_default_season for n in nightly] == [False, False, True]
    # EUR 700 at 1.08
    assert nightly[0].cost == Decimal("756.00")
    codes = [w.code for w in audit.build().warnings]
    assert "SEASON_DEFAULT_FALLBACK_USED" in codes


def test_no_season_raises(
    make_context: Callable[..., CalculationContext], audit: AuditBuilder
) -> None:
    """Test CALC_SEASON_NOT_FOUND without fallback."""
    resort = Resort(id="r1", name="Resort")
    store = make_store(
        [make_season("high", date(2027, 1, 1), date(2027, 1, 31))],
        [make_rate("high", "500")],
        resort,
    )
    ctx = make_context(store=store)
    room = ctx.data.get_room_type("room", "r1")
    assert room is not None

    with pytest.raises(CalculationError) as exc_info:
        resolve_nightly_rates(ctx, resort, room, date(2027, 1, 30), date(2027, 2, 2), audit)
    assert exc_info.value.code == CalculationErrorCode.CALC_SEASON_NOT_FOUND
    assert not exc_info.value.retryable


def test_missing_rate_raises(
    make_context: Callable[..., CalculationContext], audit: AuditBuilder
) -> None:
    """Test CALC_RATE_NOT_FOUND when a season has no rate."""
    resort = Resort(id="r1", name="Resort")
    store = make_store([make_season("high", date(2027, 1, 1), date(2027, 1, 31))], [], resort)
    ctx = make_context(store=store)
    room = ctx.data.get_room_type("room", "r1")
    assert room is not None

    with pytest.raises(CalculationError) as exc_info:
        resolve_nightly_rates(ctx, resort, room, date(2027, 1, 10), date(2027, 1, 12), audit)
    assert exc_info.value.code == CalculationErrorCode.CALC_RATE_NOT_FOUND


def test_overlapping_seasons_block(make_context: Callable[..., CalculationContext]) -> None:
    """Test that two seasons covering one night is a data error."""
    resort = Resort(id="r1", name="Resort")
    store = make_store(
        [
            make_season("high", date(2027, 1, 1), date(2027, 1, 31)),
            make_season("peak", date(2027, 1, 15), date(2027, 1, 20)),
        ],
        [],
        resort,
    )
    ctx = make_context(store=store)

    with pytest.raises(BlockingValidationError) as exc_info:
        resolve_season(ctx, resort, date(2027, 1, 16))
    assert exc_info.value.items[0].code == "OVERLAPPING_SEASONS_DATA_ERROR"


def test_rate_expiring_soon_warns(
    make_context: Callable[..., CalculationContext], audit: AuditBuilder
) -> None:
    """Test RATE_EXPIRING_SOON when a used rate ends within the window."""
    resort = Resort(id="r1", name="Resort")
    store = make_store(
        [make_season("high", date(2026, 11, 1), date(2027, 1, 31))],
        [make_rate("high", "500", valid_to=date(2026, 11, 10))],
        resort,
    )
    ctx = make_context(store=store, booking_date=date(2026, 11, 1))
    room = ctx.data.get_room_type("room", "r1")
    assert room is not None

    resolve_nightly_rates(ctx, resort, room, date(2026, 11, 5), date(2026, 11, 7), audit)
    warnings = audit.build().warnings
    assert [w.code for w in warnings] == ["RATE_EXPIRING_SOON"]
