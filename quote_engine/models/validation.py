"""Validation items - blocking errors and warnings attached to a calculation."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quote_engine.errors import code_value

# JSON-serializable value types for item details
JsonValue = str | int | float | bool | None | dict[str, Any] | list[Any]


class ValidationSeverity(str, Enum):
    """Severity levels for validation items."""

    BLOCKING = "BLOCKING"
    WARNING = "WARNING"


class ValidationItem(BaseModel):
    """A business-rule observation about a quote.

    Blocking items make the calculation unsuccessful; warnings are
    informational and always travel with the result.
    """

    model_config = ConfigDict(frozen=True)

    code: str  # Machine-usable code, e.g., "TRANSFER_REQUIRED_MISSING"
    severity: ValidationSeverity
    message: str
    scope: str = "quote"  # "quote", "leg[0]", "transfer[1]"
    resolution_hint: str | None = None
    details: dict[str, JsonValue] = Field(default_factory=dict)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        """Store enum codes as their plain string value."""
        return code_value(v) if isinstance(v, Enum) else v

    @property
    def is_blocking(self) -> bool:
        return self.severity == ValidationSeverity.BLOCKING


def blocking(
    code: str | Enum,
    message: str,
    *,
    scope: str = "quote",
    resolution_hint: str | None = None,
    **details: JsonValue,
) -> ValidationItem:
    """Build a BLOCKING validation item."""
    return ValidationItem(
        code=code,
        severity=ValidationSeverity.BLOCKING,
        message=message,
        scope=scope,
        resolution_hint=resolution_hint,
        details=details,
    )


def warning(
    code: str | Enum,
    message: str,
    /,
    *,
    scope: str = "quote",
    resolution_hint: str | None = None,
    **details: JsonValue,
) -> ValidationItem:
    """Build a WARNING validation item."""
    return ValidationItem(
        code=code,
        severity=ValidationSeverity.WARNING,
        message=message,
        scope=scope,
        resolution_hint=resolution_hint,
        details=details,
    )


def leg_scope(leg_index: int) -> str:
    return f"leg[{leg_index}]"


def transfer_scope(transfer_index: int) -> str:
    return f"transfer[{transfer_index}]"
