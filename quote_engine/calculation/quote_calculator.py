"""Quote calculator - the single entry point of the engine.

calculate() validates the quote, prices every leg, prices inter-resort
transfers, aggregates totals and verifies the audit trail. Business-rule
failures come back as BLOCKING items on an unsuccessful result; arithmetic
and audit verification failures propagate as exceptions.
"""

import time
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.calculation.aggregator import aggregate_quote, price_inter_resort_transfers
from quote_engine.calculation.audit_builder import AuditBuilder, utc_now
from quote_engine.calculation.context import CalculationContext, build_context
from quote_engine.calculation.leg_calculator import LegCalculationOutcome, calculate_leg
from quote_engine.config import get_settings
from quote_engine.errors import (
    BlockingCode,
    BlockingValidationError,
    CalculationArithmeticError,
    CalculationError,
    CalculationErrorCode,
    CalculationVerificationError,
)
from quote_engine.models.inputs import QuoteCalculationInput
from quote_engine.models.results import QuoteCalculationResult
from quote_engine.models.store import DataStore
from quote_engine.models.validation import ValidationItem, blocking, leg_scope
from quote_engine.utils.arithmetic import safe_add, safe_sum, to_decimal
from quote_engine.utils.currency import format_money
from quote_engine.verification.audit import verify_audit_totals
from quote_engine.verification.validators import run_validators

# Calculation errors reported under a client-facing blocking code
_BLOCKING_CODE_FOR = {
    CalculationErrorCode.CALC_CURRENCY_CONVERSION_FAILED: BlockingCode.EXCHANGE_RATE_MISSING,
    CalculationErrorCode.CALC_SEASON_NOT_FOUND: BlockingCode.NO_SEASON_COVERAGE,
    CalculationErrorCode.CALC_RATE_NOT_FOUND: BlockingCode.MISSING_RATE,
}


# Metrics interface (implemented by utils.metrics.PrometheusCalculationMetrics)
class CalculationMetrics:
    """Interface for calculation metrics."""

    def record_latency(self, currency: str, outcome: str, latency_ms: float) -> None:
        """Record calculation latency."""
        pass

    def inc_blocking(self, code: str) -> None:
        """Increment blocking item counter."""
        pass

    def inc_warning(self, code: str) -> None:
        """Increment warning counter."""
        pass


# Logging interface (implemented by utils.logging.StructuredCalculationLogger)
class CalculationLogger:
    """Interface for structured logging."""

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
        """Log one calculation."""
        pass


def blocking_from_error(error: CalculationError, scope: str = "quote") -> ValidationItem:
    """Report a data or configuration CalculationError as a BLOCKING item."""
    return blocking(
        _BLOCKING_CODE_FOR.get(error.code, error.code),
        error.message,
        scope=scope,
        resolution_hint=error.metadata.resolution,
        calculation_error_code=error.code.value,
        retryable=error.retryable,
        **{k: _json_scalar(v) for k, v in error.context.items()},
    )


def _json_scalar(value: object) -> str | int | bool | None:
    if value is None or isinstance(value, (str, int, bool)):
        return value
    return str(value)


def _initialize(
    calculation_input: QuoteCalculationInput,
    data: CalculationDataAccess,
    now: datetime,
) -> CalculationContext:
    """Build the calculation context.

    Raises:
        CalculationError: CALC_INIT_FAILED if settings cannot be loaded,
            CALC_FX_LOCK_FAILED if exchange rates cannot be locked
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise CalculationError(
            CalculationErrorCode.CALC_INIT_FAILED,
            "Engine settings could not be loaded",
            {"errors": str(e.error_count())},
        ) from e
    return build_context(calculation_input, data, now=now, settings=settings)


def _failure(
    calculation_input: QuoteCalculationInput,
    audit: AuditBuilder,
    items: list[ValidationItem],
    now: datetime,
    ctx: CalculationContext | None,
) -> QuoteCalculationResult:
    warnings = [*audit.discard(), *items]
    return QuoteCalculationResult(
        success=False,
        currency_code=calculation_input.currency_code,
        warnings=tuple(warnings),
        exchange_rates=ctx.snapshot() if ctx is not None else None,
        calculated_at=now,
    )


def _run(
    calculation_input: QuoteCalculationInput,
    data: CalculationDataAccess,
    clock: Callable[[], datetime],
) -> QuoteCalculationResult:
    now = clock()
    audit = AuditBuilder(clock=clock)

    try:
        ctx = _initialize(calculation_input, data, now)
    except (CalculationArithmeticError, CalculationVerificationError):
        raise
    except CalculationError as e:
        return _failure(calculation_input, audit, [blocking_from_error(e)], now, None)

    validation_items = run_validators(calculation_input=calculation_input, ctx=ctx)
    audit.add_warnings(item for item in validation_items if not item.is_blocking)
    blocking_items = [item for item in validation_items if item.is_blocking]
    if blocking_items:
        return _failure(calculation_input, audit, blocking_items, now, ctx)

    override_active = calculation_input.quote_level_markup is not None
    outcomes: list[LegCalculationOutcome] = []
    for index, leg in enumerate(calculation_input.legs):
        try:
            outcomes.append(
                calculate_leg(ctx, leg, index, audit, override_active=override_active)
            )
        except BlockingValidationError as e:
            blocking_items.extend(e.items)
        except (CalculationArithmeticError, CalculationVerificationError):
            raise
        except CalculationError as e:
            blocking_items.append(blocking_from_error(e, leg_scope(index)))
    if blocking_items:
        return _failure(calculation_input, audit, blocking_items, now, ctx)

    legs = [outcome.result for outcome in outcomes]
    try:
        transfers = price_inter_resort_transfers(
            ctx,
            calculation_input.inter_resort_transfers,
            [outcome.markup_policy for outcome in outcomes],
            audit,
        )
        totals, taxes = aggregate_quote(
            legs, transfers, calculation_input.quote_level_markup, audit
        )
    except (CalculationArithmeticError, CalculationVerificationError):
        raise
    except CalculationError as e:
        return _failure(calculation_input, audit, [blocking_from_error(e)], now, ctx)

    frozen_audit = audit.build()
    override = calculation_input.quote_level_markup
    expected_total = safe_add(
        safe_sum(leg.totals.pricing.sell_amount for leg in legs),
        safe_sum(transfer.pricing.sell_amount for transfer in transfers),
    )
    if override is not None:
        expected_total = safe_add(expected_total, to_decimal(override.markup_value))
    verification = verify_audit_totals(
        frozen_audit, expected_total, ctx.settings.verification_tolerance
    )
    if not verification.valid:
        raise CalculationVerificationError(
            verification.message,
            {
                "audit_total": str(verification.audit_total),
                "expected_total": str(verification.expected_total),
            },
        )

    return QuoteCalculationResult(
        success=True,
        currency_code=ctx.quote_currency,
        legs=tuple(legs),
        inter_resort_transfers=tuple(transfers),
        taxes_breakdown=taxes,
        totals=totals,
        warnings=frozen_audit.warnings,
        audit=frozen_audit,
        exchange_rates=ctx.snapshot(),
        calculated_at=now,
    )


def calculate(
    calculation_input: QuoteCalculationInput,
    data_access: CalculationDataAccess | DataStore,
    *,
    clock: Callable[[], datetime] | None = None,
    metrics: CalculationMetrics | None = None,
    logger: CalculationLogger | None = None,
) -> QuoteCalculationResult:
    """Price a quote.

    Engine settings come from the environment through get_settings(); they
    are process-wide because the arithmetic bounds and the money tolerance
    read them too.

    Args:
        calculation_input: Itinerary to price
        data_access: Reference data, as a query facade or a raw DataStore
        clock: Source of "now" for timestamps and the default booking date
        metrics: Metrics sink (no-op by default)
        logger: Structured logger (no-op by default)

    Returns:
        QuoteCalculationResult; check `success` before using any amount

    Raises:
        CalculationArithmeticError: safe arithmetic bound violated
        CalculationVerificationError: audit total does not match the aggregated total
    """
    metrics = metrics or CalculationMetrics()
    logger = logger or CalculationLogger()
    data = (
        data_access
        if isinstance(data_access, CalculationDataAccess)
        else CalculationDataAccess(data_access)
    )
    currency = calculation_input.currency_code
    start = time.perf_counter()

    try:
        result = _run(calculation_input, data, clock or utc_now)
    except CalculationError as e:
        latency_ms = (time.perf_counter() - start) * 1000
        metrics.record_latency(currency, "error", latency_ms)
        logger.log_calculation(
            calculation_input.client_name,
            currency,
            "error",
            latency_ms,
            len(calculation_input.legs),
            blocking_codes=[e.code.value],
        )
        raise

    latency_ms = (time.perf_counter() - start) * 1000
    outcome = "success" if result.success else "blocked"
    metrics.record_latency(currency, outcome, latency_ms)
    for item in result.warnings:
        if item.is_blocking:
            metrics.inc_blocking(item.code)
        else:
            metrics.inc_warning(item.code)
    logger.log_calculation(
        calculation_input.client_name,
        currency,
        outcome,
        latency_ms,
        len(calculation_input.legs),
        warning_count=len(result.non_blocking_warnings),
        blocking_codes=[item.code for item in result.blocking_errors],
        total_sell=format_money(result.totals.total_sell, currency) if result.success else None,
    )
    return result
