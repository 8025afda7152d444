"""Common value types and enums shared by reference data, inputs and results."""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, GetCoreSchemaHandler, model_validator
from pydantic_core import core_schema

from quote_engine.errors import CalculationArithmeticError
from quote_engine.utils.arithmetic import (
    Number,
    check_bounds,
    safe_add,
    to_decimal,
    within_tolerance,
)


class _ValidatedDecimal(Decimal):
    """Decimal subclass validated on construction and usable as a pydantic field type."""

    def __new__(cls, value: Number | float = "0") -> "_ValidatedDecimal":
        return super().__new__(cls, cls._check(to_decimal(value)))

    @classmethod
    def _check(cls, value: Decimal) -> Decimal:
        return value

    @classmethod
    def _coerce(cls, value: Any) -> "_ValidatedDecimal":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except CalculationArithmeticError as e:
            raise ValueError(e.message) from e

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str, when_used="json"),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self}')"


class Money(_ValidatedDecimal):
    """Finite currency amount within the safe arithmetic range.

    Arithmetic on Money yields plain Decimal; wrap the result again when it
    crosses into a model field or result value.
    """

    @classmethod
    def _check(cls, value: Decimal) -> Decimal:
        return check_bounds(value, "money")


class Percentage(_ValidatedDecimal):
    """Finite percentage value (10 means 10%)."""

    pass


def _non_negative(value: Money) -> Money:
    if value < 0:
        raise ValueError("amount must be non-negative")
    return value


NonNegativeMoney = Annotated[Money, AfterValidator(_non_negative)]


class PricingMode(str, Enum):
    """How a component's unit cost multiplies out."""

    PER_PERSON_PER_NIGHT = "PER_PERSON_PER_NIGHT"
    PER_ROOM_PER_NIGHT = "PER_ROOM_PER_NIGHT"
    PER_STAY = "PER_STAY"
    PER_PERSON = "PER_PERSON"
    PER_BOOKING = "PER_BOOKING"
    PER_TRIP = "PER_TRIP"


class GuestType(str, Enum):
    """Guest classification for pricing."""

    adult = "adult"
    child = "child"


class TaxType(str, Enum):
    """Kinds of resort taxes and charges."""

    GREEN_TAX = "GREEN_TAX"
    SERVICE_CHARGE = "SERVICE_CHARGE"
    GST = "GST"
    VAT = "VAT"
    OTHER = "OTHER"


class TaxCalculationMethod(str, Enum):
    """How a tax amount is derived."""

    PERCENTAGE = "PERCENTAGE"
    FIXED_PER_PERSON_PER_NIGHT = "FIXED_PER_PERSON_PER_NIGHT"


class TaxAppliesTo(str, Enum):
    """Descriptive tax scope; the engine always taxes the explicit computed base."""

    ACCOMMODATION_ONLY = "ACCOMMODATION_ONLY"
    SUBTOTAL_BEFORE_TAX = "SUBTOTAL_BEFORE_TAX"
    CUMULATIVE = "CUMULATIVE"


class DiscountType(str, Enum):
    """Discount value interpretation."""

    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class DiscountBaseType(str, Enum):
    """Which line items a discount is computed against."""

    ROOM_ONLY = "ROOM_ONLY"
    PRE_TAX_TOTAL = "PRE_TAX_TOTAL"


class MarkupType(str, Enum):
    """Markup value interpretation."""

    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class MarkupScope(str, Enum):
    """Where a markup configuration applies."""

    GLOBAL = "GLOBAL"
    RESORT = "RESORT"
    QUOTE = "QUOTE"


class TransferDirection(str, Enum):
    """Transfer direction."""

    ARRIVAL = "ARRIVAL"
    DEPARTURE = "DEPARTURE"
    ROUND_TRIP = "ROUND_TRIP"


class LineItemType(str, Enum):
    """Priced line item categories."""

    ROOM = "ROOM"
    EXTRA_PERSON = "EXTRA_PERSON"
    MEAL_PLAN = "MEAL_PLAN"
    TRANSFER = "TRANSFER"
    ACTIVITY = "ACTIVITY"
    FESTIVE_SUPPLEMENT = "FESTIVE_SUPPLEMENT"
    GREEN_TAX = "GREEN_TAX"
    SERVICE_CHARGE = "SERVICE_CHARGE"
    GST = "GST"
    VAT = "VAT"
    OTHER_TAX = "OTHER_TAX"
    INTER_RESORT_TRANSFER = "INTER_RESORT_TRANSFER"


class ExchangeRateSource(str, Enum):
    """Origin of the exchange rates locked for a calculation."""

    SYSTEM_DEFAULT = "SYSTEM_DEFAULT"
    MANUAL_ENTRY = "MANUAL_ENTRY"
    API_FEED = "API_FEED"


TAX_LINE_ITEM_TYPES = frozenset(
    {
        LineItemType.GREEN_TAX,
        LineItemType.SERVICE_CHARGE,
        LineItemType.GST,
        LineItemType.VAT,
        LineItemType.OTHER_TAX,
    }
)

PRE_TAX_LINE_ITEM_TYPES = (
    LineItemType.ROOM,
    LineItemType.EXTRA_PERSON,
    LineItemType.MEAL_PLAN,
    LineItemType.TRANSFER,
    LineItemType.ACTIVITY,
    LineItemType.FESTIVE_SUPPLEMENT,
)


def is_tax_line_item(item_type: LineItemType) -> bool:
    return item_type in TAX_LINE_ITEM_TYPES


def is_government_pass_through(item_type: LineItemType) -> bool:
    """Government levies are passed through at cost and never marked up."""
    return item_type == LineItemType.GREEN_TAX


def line_item_type_for_tax(tax_type: TaxType) -> LineItemType:
    if tax_type == TaxType.OTHER:
        return LineItemType.OTHER_TAX
    return LineItemType(tax_type.value)


class PricingBreakdown(BaseModel):
    """Three-layer price: sell = cost + markup."""

    model_config = ConfigDict(frozen=True)

    cost_amount: Money
    markup_amount: Money
    sell_amount: Money

    @model_validator(mode="after")
    def validate_three_layer(self) -> "PricingBreakdown":
        """Ensure sell equals cost plus markup."""
        if not within_tolerance(self.sell_amount, safe_add(self.cost_amount, self.markup_amount)):
            raise ValueError(
                f"sell_amount {self.sell_amount} != cost_amount {self.cost_amount} "
                f"+ markup_amount {self.markup_amount}"
            )
        return self

    @classmethod
    def of(cls, cost: Number, markup: Number = "0") -> "PricingBreakdown":
        """Build a breakdown whose sell is derived from cost and markup."""
        return cls(
            cost_amount=Money(cost),
            markup_amount=Money(markup),
            sell_amount=Money(safe_add(cost, markup)),
        )

    @classmethod
    def zero(cls) -> "PricingBreakdown":
        return cls.of("0", "0")

    def plus(self, other: "PricingBreakdown") -> "PricingBreakdown":
        return PricingBreakdown.of(
            safe_add(self.cost_amount, other.cost_amount),
            safe_add(self.markup_amount, other.markup_amount),
        )
