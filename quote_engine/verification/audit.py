"""Audit verification - re-derive the quote total from the audit trail."""

from collections import Counter
from decimal import Decimal

from quote_engine.config import get_settings
from quote_engine.models.audit import (
    AuditStepType,
    AuditSummary,
    AuditVerification,
    QuoteCalculationAudit,
)
from quote_engine.utils.arithmetic import Number, safe_subtract, to_decimal


def audit_total_sell(audit: QuoteCalculationAudit) -> Decimal | None:
    """Total sell recorded by the QUOTE_AGGREGATION step, if any."""
    for step in audit.steps_of_type(AuditStepType.QUOTE_AGGREGATION):
        total = step.outputs.get("total_sell")
        if total is not None:
            return to_decimal(total)
    return None


def verify_audit_totals(
    audit: QuoteCalculationAudit,
    expected_total_sell: Number,
    tolerance: Number | None = None,
) -> AuditVerification:
    """Compare the audit's own total sell with an externally computed total.

    Args:
        audit: Frozen audit trail
        expected_total_sell: Total computed outside the audit
        tolerance: Allowed absolute difference (defaults to settings)

    Returns:
        AuditVerification; valid is False when the audit has no aggregation
        step or the totals differ by more than the tolerance
    """
    expected = to_decimal(expected_total_sell)
    if tolerance is None:
        tolerance = get_settings().verification_tolerance
    allowed = to_decimal(tolerance)
    recorded = audit_total_sell(audit)
    if recorded is None:
        return AuditVerification(
            valid=False,
            audit_total=None,
            expected_total=expected,
            difference=None,
            message="Audit has no QUOTE_AGGREGATION step with a total sell amount",
        )

    difference = abs(safe_subtract(recorded, expected))
    valid = difference <= allowed
    return AuditVerification(
        valid=valid,
        audit_total=recorded,
        expected_total=expected,
        difference=difference,
        message="Audit total matches"
        if valid
        else f"Audit total {recorded} differs from expected {expected} by {difference}",
    )


def summarize_audit(audit: QuoteCalculationAudit) -> AuditSummary:
    """Step counts by type, warning counts and the final total."""
    steps_by_type = Counter(step.step_type.value for step in audit.calculation_steps)
    blocking_count = sum(1 for w in audit.warnings if w.is_blocking)
    return AuditSummary(
        total_steps=audit.step_count,
        steps_by_type=dict(steps_by_type),
        warning_count=len(audit.warnings) - blocking_count,
        blocking_count=blocking_count,
        final_total_sell=audit_total_sell(audit),
    )
