"""Audit trail models - the reconciliation record of a calculation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models.common import Money
from quote_engine.models.validation import ValidationItem


class AuditStepType(str, Enum):
    """Kinds of recorded calculation actions."""

    RATE_LOOKUP = "RATE_LOOKUP"
    EXTRA_PERSON = "EXTRA_PERSON"
    MEAL_PLAN = "MEAL_PLAN"
    TRANSFER = "TRANSFER"
    ACTIVITY = "ACTIVITY"
    FESTIVE_SUPPLEMENT = "FESTIVE_SUPPLEMENT"
    PRE_TAX_SUBTOTAL = "PRE_TAX_SUBTOTAL"
    DISCOUNT = "DISCOUNT"
    DISCOUNT_REMOVED = "DISCOUNT_REMOVED"
    DISCOUNT_STACKING_RESOLVED = "DISCOUNT_STACKING_RESOLVED"
    TAX_CALCULATION = "TAX_CALCULATION"
    MARKUP = "MARKUP"
    LEG_TOTAL = "LEG_TOTAL"
    INTER_RESORT_TRANSFER = "INTER_RESORT_TRANSFER"
    QUOTE_LEVEL_MARKUP = "QUOTE_LEVEL_MARKUP"
    QUOTE_AGGREGATION = "QUOTE_AGGREGATION"


class AuditStep(BaseModel):
    """One recorded action with its inputs/outputs snapshot."""

    model_config = ConfigDict(frozen=True)

    step_number: int = Field(..., ge=1)
    step_type: AuditStepType
    description: str
    leg_index: int | None = None
    timestamp: datetime
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    result_amount: Money | None = None


class QuoteCalculationAudit(BaseModel):
    """Frozen audit trail produced by AuditBuilder.build()."""

    model_config = ConfigDict(frozen=True)

    calculation_steps: tuple[AuditStep, ...] = ()
    warnings: tuple[ValidationItem, ...] = ()

    @property
    def step_count(self) -> int:
        return len(self.calculation_steps)

    def steps_of_type(self, step_type: AuditStepType) -> list[AuditStep]:
        return [s for s in self.calculation_steps if s.step_type == step_type]


class AuditVerification(BaseModel):
    """Outcome of re-deriving the total sell price from an audit."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    audit_total: Decimal | None
    expected_total: Decimal
    difference: Decimal | None
    message: str


class AuditSummary(BaseModel):
    """Compact view of an audit for logs and reviews."""

    model_config = ConfigDict(frozen=True)

    total_steps: int
    steps_by_type: dict[str, int]
    warning_count: int
    blocking_count: int
    final_total_sell: Decimal | None
