"""Calculation results - priced legs, transfers, totals and the audit."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models.audit import QuoteCalculationAudit
from quote_engine.models.common import (
    DiscountBaseType,
    DiscountType,
    ExchangeRateSource,
    GuestType,
    LineItemType,
    Money,
    Percentage,
    PricingBreakdown,
    PricingMode,
    TaxCalculationMethod,
    TaxType,
)
from quote_engine.models.validation import ValidationItem, ValidationSeverity
from quote_engine.utils.currency import round_currency, round_exchange_rate


class ResultModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ResortSnapshot(ResultModel):
    id: str
    name: str


class RoomTypeSnapshot(ResultModel):
    id: str
    name: str


class ResolvedChild(ResultModel):
    age: int
    age_band_id: str
    age_band_name: str


class NightlyRoomRate(ResultModel):
    """Room price for one calendar night."""

    night: date
    season_id: str
    season_name: str
    rate_id: str
    used_default_season: bool = False
    pricing: PricingBreakdown


class ExtraPersonChargeResult(ResultModel):
    charge_id: str
    guest_type: GuestType
    age_band_id: str | None = None
    age_band_name: str | None = None
    child_age: int | None = None
    count: int
    nights: int
    pricing_mode: PricingMode
    per_unit_cost: Money
    pricing: PricingBreakdown


class LineItemResult(ResultModel):
    """A priced component line (meal plan, transfer, activity, festive supplement)."""

    line_item_type: LineItemType
    reference_id: str
    description: str
    guest_type: GuestType | None = None
    age_band_id: str | None = None
    quantity: int
    unit_cost: Money
    pricing_mode: PricingMode
    is_mandatory: bool = False
    pricing: PricingBreakdown


class TaxLineResult(ResultModel):
    tax_configuration_id: str
    tax_type: TaxType
    name: str
    line_item_type: LineItemType
    calculation_method: TaxCalculationMethod
    rate_value: Decimal
    calculation_order: int
    base_amount: Money
    guest_nights: int | None = None
    is_cumulative_base: bool = False
    pricing: PricingBreakdown


class AppliedDiscount(ResultModel):
    discount_id: str
    name: str
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    base_type: DiscountBaseType
    base_amount: Money
    base_composition: tuple[LineItemType, ...]
    excluded_from_base: tuple[LineItemType, ...]
    clamped: bool = False
    reduction: PricingBreakdown


class LegTotals(ResultModel):
    """Leg-level sums; `pricing` is the leg's three-layer total."""

    room_cost: Money
    extra_person_cost: Money
    component_cost: Money  # meal plan + transfer + activity
    festive_cost: Money
    pre_tax_subtotal: Money
    total_discount: Money
    post_discount_subtotal: Money
    total_taxes: Money
    line_item_markup_total: Money
    pricing: PricingBreakdown


class LegCalculationResult(ResultModel):
    leg_index: int
    resort: ResortSnapshot
    room_type: RoomTypeSnapshot
    check_in_date: date
    check_out_date: date
    nights: int
    adults_count: int
    children: tuple[ResolvedChild, ...] = ()
    nightly_rates: tuple[NightlyRoomRate, ...] = ()
    extra_person_charges: tuple[ExtraPersonChargeResult, ...] = ()
    components: tuple[LineItemResult, ...] = ()
    festive_supplements: tuple[LineItemResult, ...] = ()
    taxes: tuple[TaxLineResult, ...] = ()
    discounts: tuple[AppliedDiscount, ...] = ()
    markup_configuration_id: str | None = None
    totals: LegTotals

    def taxes_of_type(self, tax_type: TaxType) -> list[TaxLineResult]:
        return [t for t in self.taxes if t.tax_type == tax_type]


class InterResortTransferResult(ResultModel):
    transfer_index: int
    from_leg_index: int
    to_leg_index: int
    description: str
    original_amount: Money
    original_currency: str
    exchange_rate: Decimal
    notes: str | None = None
    pricing: PricingBreakdown


class TaxesBreakdown(ResultModel):
    green_tax: Money = Money("0")
    service_charge: Money = Money("0")
    gst: Money = Money("0")
    vat: Money = Money("0")
    other: Money = Money("0")
    total: Money = Money("0")


class QuoteTotals(ResultModel):
    legs_cost: Money = Money("0")
    legs_markup: Money = Money("0")
    legs_sell: Money = Money("0")
    transfers_cost: Money = Money("0")
    transfers_markup: Money = Money("0")
    transfers_sell: Money = Money("0")
    quote_level_markup: Money | None = None
    total_cost: Money = Money("0")
    total_markup: Money = Money("0")
    total_sell: Money = Money("0")
    markup_percentage: Percentage = Percentage("0")
    margin_percentage: Percentage = Percentage("0")
    total_taxes: Money = Money("0")
    total_discount: Money = Money("0")


class ExchangeRateSnapshot(ResultModel):
    quote_currency: str
    rates: dict[str, Decimal]
    source: ExchangeRateSource
    locked_at: datetime


class QuoteCalculationResult(ResultModel):
    """Engine output. Callers must check `success` before persisting."""

    success: bool
    currency_code: str
    legs: tuple[LegCalculationResult, ...] = ()
    inter_resort_transfers: tuple[InterResortTransferResult, ...] = ()
    taxes_breakdown: TaxesBreakdown = Field(default_factory=TaxesBreakdown)
    totals: QuoteTotals = Field(default_factory=QuoteTotals)
    warnings: tuple[ValidationItem, ...] = ()
    audit: QuoteCalculationAudit | None = None
    exchange_rates: ExchangeRateSnapshot | None = None
    calculated_at: datetime

    @property
    def blocking_errors(self) -> list[ValidationItem]:
        return [w for w in self.warnings if w.severity == ValidationSeverity.BLOCKING]

    @property
    def non_blocking_warnings(self) -> list[ValidationItem]:
        return [w for w in self.warnings if w.severity == ValidationSeverity.WARNING]

    def has_code(self, code: str) -> bool:
        return any(w.code == code for w in self.warnings)

    def to_storage_dict(self) -> dict[str, Any]:
        """Serialize for persistence, rounding money to 2dp and rates to 6dp."""
        data = self.model_dump(mode="python")
        return _round_for_storage(data)


_RATE_KEYS = frozenset({"exchange_rate", "rates", "rate_value", "discount_value", "markup_value"})


def _round_for_storage(value: Any, key: str | None = None) -> Any:
    if isinstance(value, dict):
        if key == "rates":
            return {k: str(round_exchange_rate(v)) for k, v in value.items()}
        return {k: _round_for_storage(v, k) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_round_for_storage(v, key) for v in value]
    if isinstance(value, Decimal):
        if key in _RATE_KEYS:
            return str(round_exchange_rate(value))
        return str(round_currency(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
