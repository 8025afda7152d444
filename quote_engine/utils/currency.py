"""Currency rounding helpers, used only at the storage boundary."""

from decimal import ROUND_HALF_UP, Decimal

from quote_engine.utils.arithmetic import Number, to_decimal

CURRENCY_QUANTUM = Decimal("0.01")
EXCHANGE_RATE_QUANTUM = Decimal("0.000001")


def round_currency(amount: Number) -> Decimal:
    """Round half-up to two decimal places."""
    return to_decimal(amount).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


def round_exchange_rate(rate: Number) -> Decimal:
    """Round half-up to six decimal places."""
    return to_decimal(rate).quantize(EXCHANGE_RATE_QUANTUM, rounding=ROUND_HALF_UP)


def format_money(amount: Number, currency_code: str) -> str:
    """Format an amount for log and audit messages, e.g. 'USD 2,600.00'."""
    return f"{currency_code} {round_currency(amount):,.2f}"
