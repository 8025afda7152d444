"""Failure paths: blocking results, collected errors and propagated exceptions."""

from collections.abc import Callable, Iterator, Sequence
from datetime import date, datetime
from decimal import Decimal

import pytest

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.calculation import quote_calculator
from quote_engine.calculation.aggregator import aggregate_quote
from quote_engine.calculation.quote_calculator import (
    CalculationLogger,
    CalculationMetrics,
    calculate,
)
from quote_engine.config import get_settings
from quote_engine.errors import (
    CalculationArithmeticError,
    CalculationErrorCode,
    CalculationVerificationError,
)
from quote_engine.models.audit import AuditVerification, QuoteCalculationAudit
from quote_engine.models.common import PricingBreakdown
from quote_engine.models.inputs import (
    ChildInput,
    InterResortTransferInput,
    LegCalculationInput,
    QuoteCalculationInput,
    QuoteLevelMarkupInput,
)
from quote_engine.models.results import LegCalculationResult

QuoteFactory = Callable[..., QuoteCalculationInput]
LegFactory = Callable[..., LegCalculationInput]


class RecordingMetrics(CalculationMetrics):
    """Collects metric calls in memory."""

    def __init__(self) -> None:
        self.latencies: list[tuple[str, str]] = []
        self.blocking: list[str] = []
        self.warnings: list[str] = []

    def record_latency(self, currency: str, outcome: str, latency_ms: float) -> None:
        self.latencies.append((currency, outcome))

    def inc_blocking(self, code: str) -> None:
        self.blocking.append(code)

    def inc_warning(self, code: str) -> None:
        self.warnings.append(code)


class RecordingLogger(CalculationLogger):
    """Collects (outcome, blocking codes) per logged calculation."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str]]] = []

    def log_calculation(
        self,
        client_name: str,
        currency_code: str,
        outcome: str,
        latency_ms: float,
        leg_count: int,
        warning_count: int = 0,
        blocking_codes: list[str] | None = None,
        total_sell: str | None = None,
    ) -> None:
        self.calls.append((outcome, blocking_codes or []))


def blocking_codes(result) -> list[str]:
    return [item.code for item in result.blocking_errors]


# Quote-level validation


def test_no_legs(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    """Test that an empty itinerary is blocked."""
    result = calculate(make_quote(legs=[]), catalogue, clock=clock)

    assert not result.success
    assert blocking_codes(result) == ["NO_LEGS_SPECIFIED"]
    assert result.legs == ()
    assert result.audit is None


def test_unsupported_currency_keeps_rate_snapshot(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    """Test INVALID_CURRENCY; the locked rates are still reported."""
    result = calculate(make_quote(currency_code="JPY"), catalogue, clock=clock)

    assert blocking_codes(result) == ["INVALID_CURRENCY"]
    assert result.exchange_rates is not None
    assert result.exchange_rates.quote_currency == "JPY"


def test_percentage_override_rejected(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    calculation_input = make_quote(
        quote_level_markup=QuoteLevelMarkupInput(markup_type="PERCENTAGE", markup_value="12")
    )

    result = calculate(calculation_input, catalogue, clock=clock)

    assert blocking_codes(result) == ["PERCENTAGE_OVERRIDE_NOT_SUPPORTED"]


def test_guest_mismatch_across_legs(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that every leg must carry the same party."""
    legs = [
        make_leg(),
        make_leg(
            resort_id="res-atoll",
            room_type_id="room-lagoon-suite",
            check_in_date=date(2027, 2, 14),
            check_out_date=date(2027, 2, 18),
            meal_plan_id=None,
            transfer_type_id="transfer-atoll-speedboat",
            children=[ChildInput(age=8)],
        ),
    ]

    result = calculate(make_quote(legs=legs), catalogue, clock=clock)

    assert blocking_codes(result) == ["GUEST_MISMATCH_ACROSS_LEGS"]
    assert result.blocking_errors[0].scope == "leg[1]"


def test_inter_resort_transfer_to_missing_leg(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    transfer = InterResortTransferInput(
        from_leg_index=0,
        to_leg_index=1,
        description="Domestic flight",
        cost_amount="300",
        currency_code="USD",
    )

    result = calculate(make_quote(inter_resort_transfers=[transfer]), catalogue, clock=clock)

    assert blocking_codes(result) == ["INTER_RESORT_TRANSFER_LEG_INVALID"]
    assert result.blocking_errors[0].scope == "transfer[0]"


def test_manual_quote_currency_rate_fails_lock(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    """Test that a manual rate for the quote currency other than 1 cannot be locked."""
    result = calculate(
        make_quote(manual_exchange_rates={"USD": "1.1"}), catalogue, clock=clock
    )

    assert blocking_codes(result) == ["CALC_FX_LOCK_FAILED"]
    details = result.blocking_errors[0].details
    assert details["retryable"] is True
    assert details["calculation_error_code"] == "CALC_FX_LOCK_FAILED"
    assert result.exchange_rates is None


# Leg-level rules


def test_required_transfer_missing(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that an island reachable only by boat needs a transfer."""
    leg = make_leg(
        resort_id="res-atoll",
        room_type_id="room-lagoon-suite",
        meal_plan_id=None,
        transfer_type_id=None,
    )

    result = calculate(make_quote(legs=[leg]), catalogue, clock=clock)

    assert blocking_codes(result) == ["TRANSFER_REQUIRED_MISSING"]
    item = result.blocking_errors[0]
    assert item.scope == "leg[0]"
    assert item.resolution_hint == "The island is only reachable by speedboat"


def test_minimum_stay_violation(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test the 3-night high-season minimum at Coral Lagoon."""
    leg = make_leg(check_out_date=date(2027, 2, 12))

    result = calculate(make_quote(legs=[leg]), catalogue, clock=clock)

    assert blocking_codes(result) == ["MINIMUM_STAY_VIOLATION"]
    assert result.blocking_errors[0].details["minimum_nights"] == 3
    assert result.blocking_errors[0].details["nights"] == 2


def test_room_specific_blackout(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    leg = make_leg(
        resort_id="res-atoll",
        room_type_id="room-lagoon-suite",
        check_in_date=date(2027, 8, 5),
        check_out_date=date(2027, 8, 8),
        meal_plan_id=None,
        transfer_type_id="transfer-atoll-speedboat",
    )

    result = calculate(make_quote(legs=[leg]), catalogue, clock=clock)

    assert blocking_codes(result) == ["BLACKOUT_DATE_ROOM_SPECIFIC"]
    assert result.blocking_errors[0].details["blackout_id"] == "blackout-atoll-refurb"
    assert "Suite refurbishment" in result.blocking_errors[0].message


def test_night_without_season(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that an uncovered night is reported as NO_SEASON_COVERAGE."""
    leg = make_leg(check_in_date=date(2027, 12, 5), check_out_date=date(2027, 12, 8))

    result = calculate(make_quote(legs=[leg]), catalogue, clock=clock)

    assert blocking_codes(result) == ["NO_SEASON_COVERAGE"]
    details = result.blocking_errors[0].details
    assert details["calculation_error_code"] == "CALC_SEASON_NOT_FOUND"
    assert details["night"] == "2027-12-05"
    assert details["retryable"] is False


def test_errors_collected_across_legs(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that a failing leg does not hide errors in later legs."""
    legs = [
        make_leg(check_out_date=date(2027, 2, 12)),
        make_leg(
            resort_id="res-atoll",
            room_type_id="room-lagoon-suite",
            check_in_date=date(2027, 2, 12),
            check_out_date=date(2027, 2, 15),
            meal_plan_id="meal-coral-hb",
            transfer_type_id="transfer-atoll-speedboat",
        ),
    ]

    result = calculate(make_quote(legs=legs), catalogue, clock=clock)

    assert [(item.code, item.scope) for item in result.blocking_errors] == [
        ("MINIMUM_STAY_VIOLATION", "leg[0]"),
        ("MEAL_PLAN_NOT_FOUND", "leg[1]"),
    ]


# Exceptions


def test_overflow_propagates(
    make_quote: QuoteFactory,
    make_leg: LegFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that exceeding the safe amount raises instead of returning a result."""
    huge_rate = catalogue.store.rates[0].model_copy(
        update={"cost_amount": Decimal("900000000000")}
    )
    store = catalogue.store.model_copy(update={"rates": (huge_rate,)})
    leg = make_leg(
        check_in_date=date(2027, 3, 1),
        check_out_date=date(2027, 3, 4),
        meal_plan_id=None,
        transfer_type_id=None,
    )
    metrics = RecordingMetrics()
    logger = RecordingLogger()

    with pytest.raises(CalculationArithmeticError):
        calculate(make_quote(legs=[leg]), store, clock=clock, metrics=metrics, logger=logger)

    assert metrics.latencies == [("USD", "error")]
    assert logger.calls == [("error", ["CALC_ARITHMETIC_ERROR"])]


@pytest.fixture
def low_safe_amount(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Cap safe amounts at 1,000 through the environment."""
    monkeypatch.setenv("MAX_SAFE_AMOUNT", "1000")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_safe_amount_ceiling_read_from_environment(
    catalogue: CalculationDataAccess,
    low_safe_amount: None,
    make_quote: QuoteFactory,
    clock: Callable[[], datetime],
) -> None:
    """Test that the arithmetic ceiling follows MAX_SAFE_AMOUNT for every calculation."""
    with pytest.raises(CalculationArithmeticError) as exc_info:
        calculate(make_quote(), catalogue, clock=clock)

    assert exc_info.value.code == CalculationErrorCode.CALC_ARITHMETIC_ERROR


def test_audit_mismatch_raises(
    monkeypatch: pytest.MonkeyPatch,
    make_quote: QuoteFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that an audit trail disagreeing with the totals raises instead of returning."""

    def mismatched(
        audit: QuoteCalculationAudit, expected_total_sell: object, tolerance: object = None
    ) -> AuditVerification:
        return AuditVerification(
            valid=False,
            audit_total=Decimal("6900.00"),
            expected_total=Decimal("6926.16"),
            difference=Decimal("26.16"),
            message="Audit total 6900.00 differs from expected 6926.16 by 26.16",
        )

    monkeypatch.setattr(quote_calculator, "verify_audit_totals", mismatched)
    metrics = RecordingMetrics()
    logger = RecordingLogger()

    with pytest.raises(CalculationVerificationError) as exc_info:
        calculate(make_quote(), catalogue, clock=clock, metrics=metrics, logger=logger)

    assert exc_info.value.code == CalculationErrorCode.CALC_VERIFICATION_FAILED
    assert not exc_info.value.retryable
    assert exc_info.value.context == {"audit_total": "6900.00", "expected_total": "6926.16"}
    assert metrics.latencies == [("USD", "error")]
    assert logger.calls == [("error", ["CALC_VERIFICATION_FAILED"])]


def with_sell(leg: LegCalculationResult, cost: str) -> LegCalculationResult:
    totals = leg.totals.model_copy(update={"pricing": PricingBreakdown.of(cost)})
    return leg.model_copy(update={"totals": totals})


def test_negative_leg_total_blocks(
    monkeypatch: pytest.MonkeyPatch,
    make_quote: QuoteFactory,
    catalogue: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> None:
    """Test that a negative final amount becomes a blocking item, not an exception."""

    def aggregate_negative(legs: Sequence[LegCalculationResult], *args: object) -> object:
        return aggregate_quote([with_sell(legs[0], "-25.00")], *args)

    monkeypatch.setattr(quote_calculator, "aggregate_quote", aggregate_negative)

    result = calculate(make_quote(), catalogue, clock=clock)

    assert not result.success
    assert blocking_codes(result) == ["CALC_NEGATIVE_FINAL_AMOUNT"]
    item = result.blocking_errors[0]
    assert item.details["field"] == "leg[0] sell amount"
    assert item.details["amount"] == "-25.00"
    assert item.details["retryable"] is False


# Observability on failure


def test_blocked_outcome_reported(
    make_quote: QuoteFactory, catalogue: CalculationDataAccess, clock: Callable[[], datetime]
) -> None:
    metrics = RecordingMetrics()
    logger = RecordingLogger()

    calculate(make_quote(legs=[]), catalogue, clock=clock, metrics=metrics, logger=logger)

    assert metrics.latencies == [("USD", "blocked")]
    assert metrics.blocking == ["NO_LEGS_SPECIFIED"]
    assert logger.calls == [("blocked", ["NO_LEGS_SPECIFIED"])]
