"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

import pytest

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.adapters.fixtures import load_fixture_data_access
from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext, build_context
from quote_engine.config import Settings
from quote_engine.models.inputs import LegCalculationInput, QuoteCalculationInput
from quote_engine.models.store import DataStore

BOOKING_DATE = date(2026, 11, 1)
FIXED_NOW = datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def catalogue() -> CalculationDataAccess:
    """The bundled Maldives catalogue, loaded once per session."""
    return load_fixture_data_access()


@pytest.fixture
def settings() -> Settings:
    """Default engine settings."""
    return Settings()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic clock for calculations."""
    return lambda: FIXED_NOW


@pytest.fixture
def audit() -> AuditBuilder:
    """Fresh audit builder with a fixed clock."""
    return AuditBuilder(clock=lambda: FIXED_NOW)


@pytest.fixture
def make_context(
    catalogue: CalculationDataAccess, settings: Settings
) -> Callable[..., CalculationContext]:
    """Factory for calculation contexts.

    Usage:
        ctx = make_context()                       # USD over the catalogue
        ctx = make_context(currency_code="EUR")
        ctx = make_context(store=DataStore(...))   # custom reference data
    """

    def _make(
        *,
        store: DataStore | None = None,
        currency_code: str = "USD",
        booking_date: date = BOOKING_DATE,
        manual_exchange_rates: dict[str, str] | None = None,
        context_settings: Settings | None = None,
    ) -> CalculationContext:
        data = CalculationDataAccess(store) if store is not None else catalogue
        calculation_input = QuoteCalculationInput(
            client_name="Fixture Client",
            currency_code=currency_code,
            booking_date=booking_date,
            manual_exchange_rates=manual_exchange_rates,
        )
        return build_context(
            calculation_input, data, now=FIXED_NOW, settings=context_settings or settings
        )

    return _make


@pytest.fixture
def make_leg() -> Callable[..., LegCalculationInput]:
    """Factory for legs; defaults to 2 adults in a Coral beach villa on half board.

    Usage:
        leg = make_leg()                                   # Feb 10-14, seaplane
        leg = make_leg(children=[ChildInput(age=8)])
        leg = make_leg(resort_id="res-atoll", room_type_id="room-water-villa")
    """

    def _make(**overrides: Any) -> LegCalculationInput:
        data: dict[str, Any] = {
            "resort_id": "res-coral",
            "room_type_id": "room-beach-villa",
            "check_in_date": date(2027, 2, 10),
            "check_out_date": date(2027, 2, 14),
            "adults_count": 2,
            "meal_plan_id": "meal-coral-hb",
            "transfer_type_id": "transfer-coral-seaplane",
        }
        data.update(overrides)
        return LegCalculationInput(**data)

    return _make


@pytest.fixture
def make_quote(
    make_leg: Callable[..., LegCalculationInput],
) -> Callable[..., QuoteCalculationInput]:
    """Factory for quote inputs booked on BOOKING_DATE; one default leg unless `legs` is given."""

    def _make(**overrides: Any) -> QuoteCalculationInput:
        data: dict[str, Any] = {
            "client_name": "Ahmed Family",
            "currency_code": "USD",
            "booking_date": BOOKING_DATE,
            "legs": [make_leg()],
        }
        data.update(overrides)
        return QuoteCalculationInput(**data)

    return _make
