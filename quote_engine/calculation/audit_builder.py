"""Append-only audit accumulator, finalized once into a frozen audit."""

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from quote_engine.errors import AuditBuilderClosedError
from quote_engine.models.audit import AuditStep, AuditStepType, QuoteCalculationAudit
from quote_engine.models.common import Money
from quote_engine.models.validation import ValidationItem


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot_value(value: Any) -> Any:
    """Copy a value into the audit, flattening enums and containers."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _snapshot_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_snapshot_value(v) for v in value]
    return value


class AuditBuilder:
    """Collects audit steps and warnings for exactly one calculation.

    The builder is handed from stage to stage; stages may only append.
    `build()` or `discard()` consumes it, after which any use raises
    AuditBuilderClosedError.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now
        self._steps: list[AuditStep] = []
        self._warnings: list[ValidationItem] = []
        self._sequence_counter = 0
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise AuditBuilderClosedError("audit builder has already been finalized")

    def next_sequence(self) -> int:
        """Get next step number (1-based)."""
        self._sequence_counter += 1
        return self._sequence_counter

    def add_step(
        self,
        step_type: AuditStepType,
        description: str,
        inputs: dict[str, Any] | None = None,
        outputs: dict[str, Any] | None = None,
        amount: Decimal | None = None,
        *,
        leg_index: int | None = None,
    ) -> int:
        """Append a step and return its step number."""
        self._ensure_open()
        step = AuditStep(
            step_number=self.next_sequence(),
            step_type=step_type,
            description=description,
            leg_index=leg_index,
            timestamp=self._clock(),
            inputs=_snapshot_value(inputs or {}),
            outputs=_snapshot_value(outputs or {}),
            result_amount=Money(amount) if amount is not None else None,
        )
        self._steps.append(step)
        return step.step_number

    def add_warning(self, item: ValidationItem) -> None:
        self._ensure_open()
        self._warnings.append(item)

    def add_warnings(self, items: Iterable[ValidationItem]) -> None:
        for item in items:
            self.add_warning(item)

    @property
    def step_count(self) -> int:
        return len(self._steps)

    def build(self) -> QuoteCalculationAudit:
        """Freeze the accumulated steps and warnings."""
        self._ensure_open()
        self._closed = True
        return QuoteCalculationAudit(
            calculation_steps=tuple(self._steps),
            warnings=tuple(self._warnings),
        )

    def discard(self) -> tuple[ValidationItem, ...]:
        """Abandon the trail of a failed calculation, keeping only its warnings."""
        self._ensure_open()
        self._closed = True
        return tuple(self._warnings)
