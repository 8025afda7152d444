"""Calculation context - the locked, read-only inputs shared by every stage."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.config import Settings, get_settings
from quote_engine.errors import CalculationError, CalculationErrorCode
from quote_engine.models.common import ExchangeRateSource
from quote_engine.models.inputs import QuoteCalculationInput
from quote_engine.models.results import ExchangeRateSnapshot
from quote_engine.utils.arithmetic import Number, safe_multiply, to_decimal
from quote_engine.utils.currency import round_exchange_rate

ONE = Decimal("1")


@dataclass(frozen=True)
class CalculationContext:
    """Per-calculation context. Exchange rates convert source amounts into the quote currency."""

    quote_currency: str
    exchange_rates: Mapping[str, Decimal]
    exchange_rate_source: ExchangeRateSource
    locked_at: datetime
    booking_date: date
    data: CalculationDataAccess
    settings: Settings

    def rate_for(self, currency_code: str) -> Decimal:
        """Exchange rate from `currency_code` into the quote currency.

        Raises:
            CalculationError: CALC_CURRENCY_CONVERSION_FAILED if no rate is locked
        """
        if currency_code == self.quote_currency:
            return ONE
        rate = self.exchange_rates.get(currency_code)
        if rate is None:
            raise CalculationError(
                CalculationErrorCode.CALC_CURRENCY_CONVERSION_FAILED,
                f"No exchange rate for {currency_code} -> {self.quote_currency}",
                {"source_currency": currency_code, "quote_currency": self.quote_currency},
            )
        return rate

    def convert(self, amount: Number, currency_code: str) -> Decimal:
        """Convert an amount into the quote currency without rounding."""
        if currency_code == self.quote_currency:
            return to_decimal(amount)
        return safe_multiply(amount, self.rate_for(currency_code))

    def snapshot(self) -> ExchangeRateSnapshot:
        return ExchangeRateSnapshot(
            quote_currency=self.quote_currency,
            rates={code: round_exchange_rate(rate) for code, rate in self.exchange_rates.items()},
            source=self.exchange_rate_source,
            locked_at=self.locked_at,
        )


def lock_exchange_rates(
    data: CalculationDataAccess,
    quote_currency: str,
    manual_rates: Mapping[str, Decimal] | None,
) -> tuple[dict[str, Decimal], ExchangeRateSource]:
    """Lock rates for a calculation: store defaults, overlaid by manual entries.

    The quote currency is always 1.

    Raises:
        CalculationError: CALC_FX_LOCK_FAILED if a manual rate contradicts the quote currency
    """
    rates: dict[str, Decimal] = {
        r.from_currency: r.rate for r in data.get_exchange_rates_to(quote_currency)
    }
    source = ExchangeRateSource.SYSTEM_DEFAULT
    if manual_rates:
        manual_quote_rate = manual_rates.get(quote_currency)
        if manual_quote_rate is not None and to_decimal(manual_quote_rate) != ONE:
            raise CalculationError(
                CalculationErrorCode.CALC_FX_LOCK_FAILED,
                f"Manual rate for quote currency {quote_currency} must be 1",
                {"quote_currency": quote_currency, "rate": str(manual_quote_rate)},
            )
        rates.update({code: to_decimal(rate) for code, rate in manual_rates.items()})
        source = ExchangeRateSource.MANUAL_ENTRY
    rates[quote_currency] = ONE
    return rates, source


def build_context(
    calculation_input: QuoteCalculationInput,
    data: CalculationDataAccess,
    *,
    now: datetime,
    settings: Settings | None = None,
) -> CalculationContext:
    """Create the calculation context from input and reference data.

    `settings` tunes the context's own thresholds only; arithmetic bounds
    always come from get_settings().
    """
    rates, source = lock_exchange_rates(
        data, calculation_input.currency_code, calculation_input.manual_exchange_rates
    )
    return CalculationContext(
        quote_currency=calculation_input.currency_code,
        exchange_rates=MappingProxyType(rates),
        exchange_rate_source=source,
        locked_at=now,
        booking_date=calculation_input.booking_date or now.date(),
        data=data,
        settings=settings or get_settings(),
    )
