"""Tests for bounded Decimal arithmetic and currency rounding."""

from decimal import Decimal

import pytest

from quote_engine.errors import ArithmeticErrorKind, CalculationArithmeticError
from quote_engine.utils.arithmetic import (
    percentage_of,
    ratio_as_percentage,
    safe_add,
    safe_divide,
    safe_multiply,
    safe_subtract,
    safe_sum,
    to_decimal,
    within_tolerance,
)
from quote_engine.utils.currency import format_money, round_currency, round_exchange_rate


def test_to_decimal_converts_floats_via_repr() -> None:
    """Test that floats convert through their shortest repr."""
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("650.00") == Decimal("650")
    assert to_decimal(7) == Decimal("7")


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", True])
def test_to_decimal_rejects_invalid_input(value: object) -> None:
    """Test that non-numeric, non-finite and boolean inputs are rejected."""
    with pytest.raises(CalculationArithmeticError) as exc_info:
        to_decimal(value)  # type: ignore[arg-type]
    assert exc_info.value.kind == ArithmeticErrorKind.INVALID_INPUT


def test_safe_operations_do_not_round() -> None:
    """Test that intermediate results keep full precision."""
    assert safe_multiply("0.333", 3) == Decimal("0.999")
    assert safe_add("0.005", "0.005") == Decimal("0.010")
    assert safe_subtract("4660", "466.005") == Decimal("4193.995")


def test_safe_add_overflow_raises() -> None:
    """Test that results above the ceiling raise OVERFLOW."""
    with pytest.raises(CalculationArithmeticError) as exc_info:
        safe_add("999999999999.99", "0.01")
    assert exc_info.value.kind == ArithmeticErrorKind.OVERFLOW


def test_safe_subtract_underflow_raises() -> None:
    """Test that results below the negative ceiling raise UNDERFLOW."""
    with pytest.raises(CalculationArithmeticError) as exc_info:
        safe_subtract("-999999999999.99", "1")
    assert exc_info.value.kind == ArithmeticErrorKind.UNDERFLOW


def test_safe_divide_by_zero_raises() -> None:
    """Test that division by zero is rejected explicitly."""
    with pytest.raises(CalculationArithmeticError) as exc_info:
        safe_divide(100, 0)
    assert exc_info.value.kind == ArithmeticErrorKind.DIVIDE_BY_ZERO
    assert exc_info.value.code.value == "CALC_ARITHMETIC_ERROR"


def test_safe_sum_and_percentages() -> None:
    """Test sums and percentage helpers."""
    assert safe_sum(["650", "650", "650", "650"]) == Decimal("2600")
    assert safe_sum([]) == Decimal("0")
    assert percentage_of("3150", "10") == Decimal("315")
    assert ratio_as_percentage("932", "4660") == Decimal("20")


def test_ratio_as_percentage_zero_denominator_is_zero() -> None:
    """Test that a zero denominator yields 0 instead of raising."""
    assert ratio_as_percentage("100", "0") == Decimal("0")


def test_within_tolerance_uses_one_cent_default() -> None:
    """Test the default one-cent tolerance."""
    assert within_tolerance("100.00", "100.01")
    assert not within_tolerance("100.00", "100.02")
    assert within_tolerance("100", "105", tolerance="5")


def test_round_currency_is_half_up() -> None:
    """Test half-up rounding to cents and exchange-rate precision."""
    assert round_currency("2.345") == Decimal("2.35")
    assert round_currency("-2.345") == Decimal("-2.35")
    assert round_currency("820.16") == Decimal("820.16")
    assert round_exchange_rate("0.9259259259") == Decimal("0.925926")


def test_format_money() -> None:
    """Test money formatting for messages."""
    assert format_money("2600", "USD") == "USD 2,600.00"
