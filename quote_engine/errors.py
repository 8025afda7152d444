"""Error and warning code taxonomy plus the engine's exception types."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class BlockingCode(str, Enum):
    """Codes that make a calculation result unsuccessful.

    Members listed in RESERVED_CODES belong to the shared quote taxonomy but
    are never emitted by the calculation engine.
    """

    # Date
    INVALID_CHECK_IN_DATE = "INVALID_CHECK_IN_DATE"
    INVALID_DATE_SEQUENCE = "INVALID_DATE_SEQUENCE"
    LEG_DATE_SEQUENCE_ERROR = "LEG_DATE_SEQUENCE_ERROR"
    BLACKOUT_DATE_RESORT_WIDE = "BLACKOUT_DATE_RESORT_WIDE"
    BLACKOUT_DATE_ROOM_SPECIFIC = "BLACKOUT_DATE_ROOM_SPECIFIC"

    # Season
    NO_SEASON_COVERAGE = "NO_SEASON_COVERAGE"
    OVERLAPPING_SEASONS_DATA_ERROR = "OVERLAPPING_SEASONS_DATA_ERROR"
    MISSING_RATE = "MISSING_RATE"

    # Occupancy
    NO_GUESTS_SPECIFIED = "NO_GUESTS_SPECIFIED"
    ADULTS_REQUIRED = "ADULTS_REQUIRED"
    ADULT_OCCUPANCY_EXCEEDED = "ADULT_OCCUPANCY_EXCEEDED"
    CHILD_OCCUPANCY_EXCEEDED = "CHILD_OCCUPANCY_EXCEEDED"
    TOTAL_OCCUPANCY_EXCEEDED = "TOTAL_OCCUPANCY_EXCEEDED"
    INVALID_CHILD_AGE = "INVALID_CHILD_AGE"
    MISSING_CHILD_AGE = "MISSING_CHILD_AGE"

    # Component
    RESORT_NOT_FOUND = "RESORT_NOT_FOUND"
    ROOM_TYPE_NOT_FOUND = "ROOM_TYPE_NOT_FOUND"
    MEAL_PLAN_NOT_FOUND = "MEAL_PLAN_NOT_FOUND"
    TRANSFER_NOT_FOUND = "TRANSFER_NOT_FOUND"
    TRANSFER_REQUIRED_MISSING = "TRANSFER_REQUIRED_MISSING"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    ACTIVITY_DATE_UNAVAILABLE = "ACTIVITY_DATE_UNAVAILABLE"
    TAX_CONFIG_MISSING = "TAX_CONFIG_MISSING"
    DISCOUNT_CONFIG_INVALID = "DISCOUNT_CONFIG_INVALID"

    # Currency / markup
    INVALID_CURRENCY = "INVALID_CURRENCY"
    EXCHANGE_RATE_MISSING = "EXCHANGE_RATE_MISSING"
    MARKUP_CONFIG_MISSING = "MARKUP_CONFIG_MISSING"
    FIXED_MARKUP_CURRENCY_MISMATCH = "FIXED_MARKUP_CURRENCY_MISMATCH"
    PERCENTAGE_OVERRIDE_NOT_SUPPORTED = "PERCENTAGE_OVERRIDE_NOT_SUPPORTED"

    # Multi-resort
    NO_LEGS_SPECIFIED = "NO_LEGS_SPECIFIED"
    GUEST_MISMATCH_ACROSS_LEGS = "GUEST_MISMATCH_ACROSS_LEGS"
    LEG_SEQUENCE_GAP = "LEG_SEQUENCE_GAP"
    INTER_RESORT_TRANSFER_LEG_INVALID = "INTER_RESORT_TRANSFER_LEG_INVALID"
    INTER_RESORT_TRANSFER_SEQUENCE_ERROR = "INTER_RESORT_TRANSFER_SEQUENCE_ERROR"

    # Lifecycle
    NO_VERSION_EXISTS = "NO_VERSION_EXISTS"
    VERSION_HAS_BLOCKING_ERRORS = "VERSION_HAS_BLOCKING_ERRORS"
    QUOTE_VALIDITY_OUT_OF_RANGE = "QUOTE_VALIDITY_OUT_OF_RANGE"
    QUOTE_EXPIRED = "QUOTE_EXPIRED"

    # Minimum stay
    MINIMUM_STAY_VIOLATION = "MINIMUM_STAY_VIOLATION"


class WarningCode(str, Enum):
    """Informational codes attached to a result regardless of outcome."""

    ADULTS_ZERO_REVIEW = "ADULTS_ZERO_REVIEW"
    CHILD_AGE_BAND_MISMATCH = "CHILD_AGE_BAND_MISMATCH"
    SEASON_BOUNDARY_CROSSING = "SEASON_BOUNDARY_CROSSING"
    SEASON_DEFAULT_FALLBACK_USED = "SEASON_DEFAULT_FALLBACK_USED"
    DISCOUNT_CODE_NOT_FOUND = "DISCOUNT_CODE_NOT_FOUND"
    DISCOUNT_ELIGIBLE_NOT_APPLIED = "DISCOUNT_ELIGIBLE_NOT_APPLIED"
    DISCOUNT_AUTO_REMOVED = "DISCOUNT_AUTO_REMOVED"
    DISCOUNT_NOT_STACKABLE = "DISCOUNT_NOT_STACKABLE"
    DISCOUNT_EXCEEDS_BASE = "DISCOUNT_EXCEEDS_BASE"
    EARLY_BIRD_APPROACHING = "EARLY_BIRD_APPROACHING"
    RATE_EXPIRING_SOON = "RATE_EXPIRING_SOON"
    QUOTE_EXPIRY_APPROACHING = "QUOTE_EXPIRY_APPROACHING"
    FESTIVE_SUPPLEMENT_APPLIED = "FESTIVE_SUPPLEMENT_APPLIED"
    TRANSFER_NOT_SELECTED = "TRANSFER_NOT_SELECTED"
    ACCOMMODATION_GAP = "ACCOMMODATION_GAP"
    DUPLICATE_RESORT_CONSECUTIVE = "DUPLICATE_RESORT_CONSECUTIVE"
    EXTENDED_STAY_DURATION = "EXTENDED_STAY_DURATION"
    EXCESSIVE_VERSION_COUNT = "EXCESSIVE_VERSION_COUNT"
    EXCHANGE_RATE_EXTREME_LOW = "EXCHANGE_RATE_EXTREME_LOW"
    EXCHANGE_RATE_EXTREME_HIGH = "EXCHANGE_RATE_EXTREME_HIGH"


# Owned by the quote lifecycle, or superseded inside the engine:
# a missing tax configuration fails as CALC_TAX_CONFIG_INVALID, gaps between
# legs are the non-blocking ACCOMMODATION_GAP, and discounts are only
# evaluated when requested by code.
RESERVED_CODES: frozenset[BlockingCode | WarningCode] = frozenset(
    {
        BlockingCode.TAX_CONFIG_MISSING,
        BlockingCode.LEG_SEQUENCE_GAP,
        BlockingCode.NO_VERSION_EXISTS,
        BlockingCode.VERSION_HAS_BLOCKING_ERRORS,
        BlockingCode.QUOTE_EXPIRED,
        WarningCode.DISCOUNT_ELIGIBLE_NOT_APPLIED,
        WarningCode.EXCESSIVE_VERSION_COUNT,
    }
)


class CalculationErrorCode(str, Enum):
    """Internal calculation failure codes."""

    CALC_INIT_FAILED = "CALC_INIT_FAILED"
    CALC_FX_LOCK_FAILED = "CALC_FX_LOCK_FAILED"
    CALC_RATE_NOT_FOUND = "CALC_RATE_NOT_FOUND"
    CALC_SEASON_NOT_FOUND = "CALC_SEASON_NOT_FOUND"
    CALC_CURRENCY_CONVERSION_FAILED = "CALC_CURRENCY_CONVERSION_FAILED"
    CALC_ARITHMETIC_ERROR = "CALC_ARITHMETIC_ERROR"
    CALC_NEGATIVE_FINAL_AMOUNT = "CALC_NEGATIVE_FINAL_AMOUNT"
    CALC_TAX_CONFIG_INVALID = "CALC_TAX_CONFIG_INVALID"
    CALC_MARKUP_INVALID = "CALC_MARKUP_INVALID"
    CALC_VERIFICATION_FAILED = "CALC_VERIFICATION_FAILED"


class ErrorCategory(str, Enum):
    """Classification of calculation errors (metadata only, not control flow)."""

    TRANSIENT = "TRANSIENT"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFIG = "CONFIG"
    INVARIANT = "INVARIANT"
    EXTERNAL = "EXTERNAL"


@dataclass(frozen=True)
class ErrorMetadata:
    """Descriptive metadata for a calculation error code."""

    category: ErrorCategory
    retryable: bool
    description: str
    resolution: str


CALCULATION_ERROR_METADATA: dict[CalculationErrorCode, ErrorMetadata] = {
    CalculationErrorCode.CALC_INIT_FAILED: ErrorMetadata(
        ErrorCategory.TRANSIENT,
        True,
        "Calculation initialization failed",
        "Retry the calculation",
    ),
    CalculationErrorCode.CALC_FX_LOCK_FAILED: ErrorMetadata(
        ErrorCategory.TRANSIENT,
        True,
        "Failed to lock exchange rates",
        "Retry or enter exchange rates manually",
    ),
    CalculationErrorCode.CALC_RATE_NOT_FOUND: ErrorMetadata(
        ErrorCategory.CONFIG,
        False,
        "Room rate not found for the specified dates",
        "Configure rates for this room and season",
    ),
    CalculationErrorCode.CALC_SEASON_NOT_FOUND: ErrorMetadata(
        ErrorCategory.CONFIG,
        False,
        "No season configured for the specified dates",
        "Configure seasons covering these dates",
    ),
    CalculationErrorCode.CALC_CURRENCY_CONVERSION_FAILED: ErrorMetadata(
        ErrorCategory.CONFIG,
        False,
        "Currency conversion failed",
        "Add the missing exchange rate",
    ),
    CalculationErrorCode.CALC_ARITHMETIC_ERROR: ErrorMetadata(
        ErrorCategory.INVARIANT,
        False,
        "Arithmetic overflow or underflow occurred",
        "Values exceed the safe calculation range",
    ),
    CalculationErrorCode.CALC_NEGATIVE_FINAL_AMOUNT: ErrorMetadata(
        ErrorCategory.VALIDATION,
        False,
        "Final amount is negative",
        "Review and reduce discounts",
    ),
    CalculationErrorCode.CALC_TAX_CONFIG_INVALID: ErrorMetadata(
        ErrorCategory.CONFIG,
        False,
        "Tax configuration is invalid",
        "Fix the resort's tax configuration",
    ),
    CalculationErrorCode.CALC_MARKUP_INVALID: ErrorMetadata(
        ErrorCategory.CONFIG,
        False,
        "Markup configuration is invalid",
        "Fix the markup configuration",
    ),
    CalculationErrorCode.CALC_VERIFICATION_FAILED: ErrorMetadata(
        ErrorCategory.INVARIANT,
        False,
        "Sum verification failed - totals do not match",
        "Start a fresh calculation; do not reuse partial state",
    ),
}


def code_value(code: str | Enum) -> str:
    """Return the plain string form of a code."""
    return code.value if isinstance(code, Enum) else code


def is_retryable(code: str | Enum) -> bool:
    """Check whether a calculation error code is safe to retry."""
    try:
        metadata = CALCULATION_ERROR_METADATA[CalculationErrorCode(code_value(code))]
    except ValueError:
        return False
    return metadata.retryable


def is_blocking_code(code: str | Enum) -> bool:
    """Check whether a code belongs to the blocking taxonomy."""
    value = code_value(code)
    return value in BlockingCode.__members__ or value in CalculationErrorCode.__members__


# Exceptions


class QuoteEngineError(Exception):
    """Base class for engine errors."""

    pass


class CalculationError(QuoteEngineError):
    """Calculation failed with a classified error code."""

    def __init__(
        self,
        code: CalculationErrorCode,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{code.value}: {message}")
        self.code = code
        self.message = message
        self.context = context or {}

    @property
    def metadata(self) -> ErrorMetadata:
        return CALCULATION_ERROR_METADATA[self.code]

    @property
    def retryable(self) -> bool:
        return self.metadata.retryable


class ArithmeticErrorKind(str, Enum):
    """Reason a safe arithmetic operation was rejected."""

    OVERFLOW = "OVERFLOW"
    UNDERFLOW = "UNDERFLOW"
    INVALID_INPUT = "INVALID_INPUT"
    DIVIDE_BY_ZERO = "DIVIDE_BY_ZERO"


class CalculationArithmeticError(CalculationError):
    """Safe arithmetic bound or validity check failed."""

    def __init__(
        self,
        kind: ArithmeticErrorKind,
        message: str,
        operands: tuple[Any, ...] = (),
    ) -> None:
        super().__init__(
            CalculationErrorCode.CALC_ARITHMETIC_ERROR,
            f"{kind.value}: {message}",
            {"kind": kind.value, "operands": [str(operand) for operand in operands]},
        )
        self.kind = kind


class CalculationVerificationError(CalculationError):
    """Audit trail total does not match the aggregated total."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(CalculationErrorCode.CALC_VERIFICATION_FAILED, message, context)


class BlockingValidationError(QuoteEngineError):
    """One or more blocking validation items were raised during resolution."""

    def __init__(self, items: list[Any]) -> None:
        codes = ", ".join(code_value(item.code) for item in items)
        super().__init__(f"Blocking validation errors: {codes}")
        self.items = items


class AuditBuilderClosedError(QuoteEngineError):
    """Audit builder was used after build()."""

    pass
