"""Bounded Decimal arithmetic for money calculations.

Every operation is checked against the configured safe ceiling and rejects
non-finite operands and results. No rounding happens here.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from quote_engine.config import get_settings
from quote_engine.errors import ArithmeticErrorKind, CalculationArithmeticError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

Number = Decimal | int | str


def to_decimal(value: Number | float) -> Decimal:
    """Convert a numeric value to a finite Decimal.

    Floats go through their shortest repr so 0.1 becomes Decimal("0.1").

    Raises:
        CalculationArithmeticError: INVALID_INPUT for unparseable or non-finite values
    """
    if isinstance(value, bool):
        raise CalculationArithmeticError(
            ArithmeticErrorKind.INVALID_INPUT, "boolean is not a number", (value,)
        )
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise CalculationArithmeticError(
                ArithmeticErrorKind.INVALID_INPUT, f"not a number: {value!r}", (value,)
            ) from e
    if not result.is_finite():
        raise CalculationArithmeticError(
            ArithmeticErrorKind.INVALID_INPUT, f"non-finite value: {value!r}", (value,)
        )
    return result


def check_bounds(value: Decimal, operation: str, operands: tuple[Number, ...] = ()) -> Decimal:
    """Reject results outside the safe range."""
    if not value.is_finite():
        raise CalculationArithmeticError(
            ArithmeticErrorKind.INVALID_INPUT, f"{operation} produced {value}", operands
        )
    ceiling = get_settings().max_safe_amount
    if value > ceiling:
        raise CalculationArithmeticError(
            ArithmeticErrorKind.OVERFLOW, f"{operation} exceeds {ceiling}", operands
        )
    if value < -ceiling:
        raise CalculationArithmeticError(
            ArithmeticErrorKind.UNDERFLOW, f"{operation} below {-ceiling}", operands
        )
    return value


def safe_add(a: Number, b: Number) -> Decimal:
    return check_bounds(to_decimal(a) + to_decimal(b), "add", (a, b))


def safe_subtract(a: Number, b: Number) -> Decimal:
    return check_bounds(to_decimal(a) - to_decimal(b), "subtract", (a, b))


def safe_multiply(a: Number, b: Number) -> Decimal:
    return check_bounds(to_decimal(a) * to_decimal(b), "multiply", (a, b))


def safe_divide(a: Number, b: Number) -> Decimal:
    """Divide a by b, rejecting a zero divisor explicitly."""
    divisor = to_decimal(b)
    if divisor == ZERO:
        raise CalculationArithmeticError(
            ArithmeticErrorKind.DIVIDE_BY_ZERO, f"cannot divide {a} by zero", (a, b)
        )
    return check_bounds(to_decimal(a) / divisor, "divide", (a, b))


def safe_sum(values: Iterable[Number]) -> Decimal:
    """Sum values, bound-checking every partial sum."""
    total = ZERO
    for value in values:
        total = safe_add(total, value)
    return total


def percentage_of(amount: Number, percentage: Number) -> Decimal:
    """Return `percentage` percent of `amount`."""
    return safe_divide(safe_multiply(amount, percentage), HUNDRED)


def ratio_as_percentage(numerator: Number, denominator: Number) -> Decimal:
    """numerator / denominator x 100, or 0 when the denominator is 0."""
    if to_decimal(denominator) == ZERO:
        return ZERO
    return safe_multiply(safe_divide(numerator, denominator), HUNDRED)


def within_tolerance(a: Number, b: Number, tolerance: Number | None = None) -> bool:
    """Check |a - b| <= tolerance (defaults to the verification tolerance)."""
    if tolerance is None:
        tolerance = get_settings().verification_tolerance
    limit = to_decimal(tolerance)
    return abs(safe_subtract(a, b)) <= limit
