"""Test the error taxonomy and settings defaults."""

from decimal import Decimal

import pytest

from quote_engine.calculation.quote_calculator import blocking_from_error
from quote_engine.config import Settings, get_settings
from quote_engine.errors import (
    CALCULATION_ERROR_METADATA,
    RESERVED_CODES,
    ArithmeticErrorKind,
    BlockingCode,
    BlockingValidationError,
    CalculationArithmeticError,
    CalculationError,
    CalculationErrorCode,
    WarningCode,
    code_value,
    is_blocking_code,
    is_retryable,
)
from quote_engine.models.validation import blocking


def test_every_calculation_error_has_metadata() -> None:
    """Test that the metadata table covers every calculation error code."""
    assert set(CALCULATION_ERROR_METADATA) == set(CalculationErrorCode)


def test_only_transient_errors_are_retryable() -> None:
    """Test the retry classification."""
    retryable = {code for code in CalculationErrorCode if is_retryable(code)}

    assert retryable == {
        CalculationErrorCode.CALC_INIT_FAILED,
        CalculationErrorCode.CALC_FX_LOCK_FAILED,
    }
    assert not is_retryable("NOT_A_CODE")


def test_code_value_accepts_enums_and_strings() -> None:
    assert code_value(BlockingCode.MISSING_RATE) == "MISSING_RATE"
    assert code_value("MISSING_RATE") == "MISSING_RATE"


def test_blocking_and_warning_codes_are_disjoint() -> None:
    """Test that no code is both blocking and a warning."""
    assert not {c.value for c in BlockingCode} & {c.value for c in WarningCode}
    assert is_blocking_code(BlockingCode.TRANSFER_REQUIRED_MISSING)
    assert is_blocking_code("CALC_ARITHMETIC_ERROR")
    assert not is_blocking_code(WarningCode.TRANSFER_NOT_SELECTED)


def test_reserved_codes_stay_in_taxonomy() -> None:
    """Test that reserved codes keep their classification for stored quotes."""
    assert BlockingCode.TAX_CONFIG_MISSING in RESERVED_CODES
    assert WarningCode.DISCOUNT_ELIGIBLE_NOT_APPLIED in RESERVED_CODES
    assert is_blocking_code("LEG_SEQUENCE_GAP")
    assert not is_blocking_code(WarningCode.EXCESSIVE_VERSION_COUNT)
    assert not RESERVED_CODES & {BlockingCode.MISSING_RATE, WarningCode.ACCOMMODATION_GAP}


def test_arithmetic_error_carries_kind() -> None:
    """Test that arithmetic errors are calculation errors with a kind."""
    error = CalculationArithmeticError(ArithmeticErrorKind.OVERFLOW, "too big", (Decimal("1"),))

    assert isinstance(error, CalculationError)
    assert error.code == CalculationErrorCode.CALC_ARITHMETIC_ERROR
    assert error.context == {"kind": "OVERFLOW", "operands": ["1"]}
    assert not error.retryable


def test_blocking_validation_error_message() -> None:
    error = BlockingValidationError(
        [blocking(BlockingCode.MISSING_RATE, "x"), blocking(BlockingCode.ADULTS_REQUIRED, "y")]
    )

    assert str(error) == "Blocking validation errors: MISSING_RATE, ADULTS_REQUIRED"


@pytest.mark.parametrize(
    ("error_code", "expected"),
    [
        (CalculationErrorCode.CALC_CURRENCY_CONVERSION_FAILED, "EXCHANGE_RATE_MISSING"),
        (CalculationErrorCode.CALC_SEASON_NOT_FOUND, "NO_SEASON_COVERAGE"),
        (CalculationErrorCode.CALC_RATE_NOT_FOUND, "MISSING_RATE"),
        (CalculationErrorCode.CALC_TAX_CONFIG_INVALID, "CALC_TAX_CONFIG_INVALID"),
    ],
)
def test_calculation_errors_reported_as_blocking(
    error_code: CalculationErrorCode, expected: str
) -> None:
    """Test that data errors surface under client-facing blocking codes."""
    error = CalculationError(error_code, "failed", {"day": "2027-02-10"})

    item = blocking_from_error(error, "leg[1]")

    assert item.is_blocking
    assert item.code == expected
    assert item.scope == "leg[1]"
    assert item.details["calculation_error_code"] == error_code.value
    assert item.details["day"] == "2027-02-10"


# Settings tests


def test_settings_defaults() -> None:
    """Test engine defaults."""
    settings = Settings()

    assert settings.max_safe_amount == Decimal("999999999999.99")
    assert settings.verification_tolerance == Decimal("0.01")
    assert settings.min_validity_days < settings.max_validity_days
    assert settings.max_child_age == 11
    assert settings.discount_mandatory_festive_in_base is False


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables override defaults."""
    monkeypatch.setenv("EXTENDED_STAY_NIGHTS", "21")
    monkeypatch.setenv("VERIFICATION_TOLERANCE", "0.05")

    settings = Settings()

    assert settings.extended_stay_nights == 21
    assert settings.verification_tolerance == Decimal("0.05")


def test_get_settings_cached() -> None:
    assert get_settings() is get_settings()
