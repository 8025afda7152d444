"""Reference data entities - the catalogue a quote is priced against."""

from datetime import date
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from quote_engine.models.common import (
    DiscountBaseType,
    DiscountType,
    GuestType,
    MarkupScope,
    MarkupType,
    Money,
    NonNegativeMoney,
    Percentage,
    PricingMode,
    TaxAppliesTo,
    TaxCalculationMethod,
    TaxType,
    TransferDirection,
)
from quote_engine.utils.dates import is_within

CurrencyCode = Annotated[str, Field(min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")]


class ReferenceModel(BaseModel):
    """Base for immutable reference records."""

    model_config = ConfigDict(frozen=True)


class ValidityWindow(ReferenceModel):
    """Inclusive validity window; missing bounds are open."""

    valid_from: date | None = None
    valid_to: date | None = None

    @field_validator("valid_to")
    @classmethod
    def validate_to_after_from(cls, v: date | None, info: ValidationInfo) -> date | None:
        """Ensure valid_to >= valid_from."""
        start = info.data.get("valid_from")
        if v is not None and start is not None and v < start:
            raise ValueError("valid_to must be >= valid_from")
        return v

    def is_valid_on(self, day: date) -> bool:
        return is_within(day, self.valid_from, self.valid_to)


class DateRange(ReferenceModel):
    """Inclusive date range."""

    start_date: date
    end_date: date

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end_date >= start_date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class Currency(ReferenceModel):
    code: CurrencyCode
    name: str
    symbol: str = ""


class ExchangeRate(ReferenceModel):
    """System default rate converting `from_currency` amounts into `to_currency`."""

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    rate: Decimal = Field(..., gt=0, description="Multiplier from source to target")


class Resort(ReferenceModel):
    id: str
    name: str
    destination: str = ""
    default_currency_code: CurrencyCode = "USD"
    default_markup_configuration_id: str | None = None
    transfer_required: bool = False
    transfer_required_reason: str | None = None
    allow_default_season_fallback: bool = False
    default_season_id: str | None = None
    require_adult_guest: bool = True
    is_active: bool = True

    @model_validator(mode="after")
    def validate_fallback(self) -> "Resort":
        """A default-season fallback needs a default season."""
        if self.allow_default_season_fallback and not self.default_season_id:
            raise ValueError("allow_default_season_fallback requires default_season_id")
        return self


class RoomType(ReferenceModel):
    id: str
    resort_id: str
    name: str
    category: str = ""
    max_occupancy_adults: int = Field(..., ge=1)
    max_occupancy_children: int = Field(0, ge=0)
    max_occupancy_total: int = Field(..., ge=1)
    base_occupancy_adults: int = Field(2, ge=0)
    base_occupancy_children: int = Field(0, ge=0)
    is_active: bool = True


class ChildAgeBand(ReferenceModel):
    id: str
    resort_id: str
    name: str
    min_age: int = Field(..., ge=0)
    max_age: int = Field(..., ge=0)

    @field_validator("max_age")
    @classmethod
    def validate_range(cls, v: int, info: ValidationInfo) -> int:
        if "min_age" in info.data and v < info.data["min_age"]:
            raise ValueError("max_age must be >= min_age")
        return v

    def contains_age(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


class Season(ReferenceModel):
    id: str
    resort_id: str
    name: str
    date_ranges: list[DateRange] = Field(default_factory=list)

    def covers(self, day: date) -> bool:
        return any(r.contains(day) for r in self.date_ranges)


class Rate(ValidityWindow):
    id: str
    resort_id: str
    room_type_id: str
    season_id: str
    cost_amount: NonNegativeMoney
    currency_code: CurrencyCode


class ExtraPersonCharge(ValidityWindow):
    id: str
    resort_id: str
    room_type_id: str
    season_id: str | None = None  # None = season-agnostic
    applies_to: GuestType
    child_age_band_id: str | None = None
    pricing_mode: PricingMode = PricingMode.PER_PERSON_PER_NIGHT
    cost_amount: NonNegativeMoney
    currency_code: CurrencyCode

    @field_validator("pricing_mode")
    @classmethod
    def validate_pricing_mode(cls, v: PricingMode) -> PricingMode:
        if v not in (PricingMode.PER_PERSON_PER_NIGHT, PricingMode.PER_STAY):
            raise ValueError("extra-person charges are PER_PERSON_PER_NIGHT or PER_STAY")
        return v


class MealPlan(ValidityWindow):
    id: str
    resort_id: str
    name: str
    code: str = ""
    pricing_mode: PricingMode = PricingMode.PER_PERSON_PER_NIGHT
    adult_cost: NonNegativeMoney
    child_costs_by_band: dict[str, NonNegativeMoney] = Field(default_factory=dict)
    currency_code: CurrencyCode
    is_default: bool = False
    is_active: bool = True


class TransferType(ValidityWindow):
    id: str
    resort_id: str
    name: str
    direction: TransferDirection = TransferDirection.ROUND_TRIP
    pricing_mode: PricingMode = PricingMode.PER_PERSON
    adult_cost: NonNegativeMoney | None = None
    child_costs_by_band: dict[str, NonNegativeMoney] = Field(default_factory=dict)
    cost_amount: NonNegativeMoney | None = None  # PER_BOOKING / PER_TRIP
    currency_code: CurrencyCode
    is_default: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def validate_costs(self) -> "TransferType":
        """Per-person transfers need an adult cost; flat ones need cost_amount."""
        if self.pricing_mode == PricingMode.PER_PERSON and self.adult_cost is None:
            raise ValueError("PER_PERSON transfer requires adult_cost")
        if self.pricing_mode in (PricingMode.PER_BOOKING, PricingMode.PER_TRIP) and (
            self.cost_amount is None
        ):
            raise ValueError(f"{self.pricing_mode.value} transfer requires cost_amount")
        return self


class Activity(ValidityWindow):
    id: str
    resort_id: str
    name: str
    pricing_mode: PricingMode = PricingMode.PER_PERSON
    adult_cost: NonNegativeMoney | None = None
    child_costs_by_band: dict[str, NonNegativeMoney] = Field(default_factory=dict)
    cost_amount: NonNegativeMoney | None = None  # PER_BOOKING
    currency_code: CurrencyCode
    is_date_specific: bool = False
    available_dates: list[date] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_costs(self) -> "Activity":
        """Activities are PER_PERSON (adult_cost) or PER_BOOKING (cost_amount)."""
        if self.pricing_mode == PricingMode.PER_PERSON and self.adult_cost is None:
            raise ValueError("PER_PERSON activity requires adult_cost")
        if self.pricing_mode == PricingMode.PER_BOOKING and self.cost_amount is None:
            raise ValueError("PER_BOOKING activity requires cost_amount")
        if self.pricing_mode not in (PricingMode.PER_PERSON, PricingMode.PER_BOOKING):
            raise ValueError("activities are PER_PERSON or PER_BOOKING")
        return self


class FestiveSupplement(ValidityWindow):
    id: str
    resort_id: str
    name: str
    trigger_dates: list[date] = Field(..., min_length=1)
    pricing_mode: PricingMode = PricingMode.PER_PERSON
    adult_cost: NonNegativeMoney
    child_costs_by_band: dict[str, NonNegativeMoney] = Field(default_factory=dict)
    currency_code: CurrencyCode
    is_mandatory: bool = True

    @field_validator("pricing_mode")
    @classmethod
    def validate_pricing_mode(cls, v: PricingMode) -> PricingMode:
        if v not in (PricingMode.PER_PERSON, PricingMode.PER_ROOM_PER_NIGHT):
            raise ValueError("festive supplements are PER_PERSON or PER_ROOM_PER_NIGHT")
        return v


class TaxConfiguration(ValidityWindow):
    id: str
    resort_id: str
    tax_type: TaxType
    name: str
    calculation_method: TaxCalculationMethod
    rate_value: Decimal  # percent for PERCENTAGE, amount per guest-night for FIXED
    currency_code: CurrencyCode | None = None  # FIXED_PER_PERSON_PER_NIGHT only
    applies_to: TaxAppliesTo = TaxAppliesTo.SUBTOTAL_BEFORE_TAX
    is_cumulative_base: bool = False
    calculation_order: int = Field(..., ge=1)
    applies_to_children: bool = True
    child_age_threshold: int | None = None

    @property
    def percentage(self) -> Percentage:
        return Percentage(self.rate_value)

    @property
    def fixed_amount(self) -> Money:
        return Money(self.rate_value)


class Discount(ValidityWindow):
    id: str
    resort_id: str | None = None  # None = any resort
    code: str
    name: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_currency_code: CurrencyCode | None = None  # FIXED only
    base_type: DiscountBaseType = DiscountBaseType.ROOM_ONLY
    minimum_nights: int | None = None
    maximum_nights: int | None = None
    booking_window_days: int | None = None  # early-bird: book at least N days ahead
    is_stackable: bool = False
    stackable_with: list[str] = Field(default_factory=list)  # discount ids
    blackout_season_ids: list[str] = Field(default_factory=list)
    is_active: bool = True

    @property
    def percentage(self) -> Percentage:
        return Percentage(self.discount_value)

    @property
    def fixed_amount(self) -> Money:
        return Money(self.discount_value)


class MarkupConfiguration(ValidityWindow):
    id: str
    scope: MarkupScope = MarkupScope.RESORT
    resort_id: str | None = None
    markup_type: MarkupType
    markup_value: Decimal
    fixed_markup_currency: CurrencyCode | None = None
    applies_to_taxes: bool = False
    excluded_components: list[str] = Field(default_factory=list)  # LineItemType values
    is_active: bool = True

    @property
    def percentage(self) -> Percentage:
        return Percentage(self.markup_value)

    @property
    def fixed_amount(self) -> Money:
        return Money(self.markup_value)


class BlackoutDate(ReferenceModel):
    id: str
    resort_id: str
    room_type_id: str | None = None  # None = resort-wide
    start_date: date
    end_date: date
    reason: str = ""
    is_active: bool = True


class MinimumStayRule(ValidityWindow):
    id: str
    resort_id: str
    room_type_id: str | None = None
    season_id: str | None = None
    minimum_nights: int = Field(..., ge=1)
