"""Calculation inputs - the itinerary a caller asks the engine to price."""

from datetime import date
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quote_engine.models.common import MarkupType, NonNegativeMoney
from quote_engine.models.reference import CurrencyCode


class InputModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ChildInput(InputModel):
    """A child guest. The age may be missing so the engine can report it."""

    age: int | None = None
    age_band_id: str | None = None


class LegCalculationInput(InputModel):
    """One resort stay within a quote."""

    resort_id: str
    room_type_id: str
    check_in_date: date
    check_out_date: date
    adults_count: int = Field(..., ge=0)
    children: list[ChildInput] = Field(default_factory=list)
    meal_plan_id: str | None = None
    transfer_type_id: str | None = None
    activity_ids: list[str] = Field(default_factory=list)
    discount_codes: list[str] = Field(default_factory=list)
    excluded_festive_supplement_ids: list[str] = Field(default_factory=list)

    @field_validator("discount_codes")
    @classmethod
    def normalize_codes(cls, v: list[str]) -> list[str]:
        """Upper-case and de-duplicate discount codes, keeping request order."""
        seen: list[str] = []
        for code in v:
            normalized = code.strip().upper()
            if normalized and normalized not in seen:
                seen.append(normalized)
        return seen


class InterResortTransferInput(InputModel):
    """Transfer between two consecutive legs, referenced by 0-based leg index."""

    from_leg_index: int
    to_leg_index: int
    description: str
    cost_amount: NonNegativeMoney
    currency_code: CurrencyCode
    notes: str | None = None


class QuoteLevelMarkupInput(InputModel):
    """Quote-wide markup override. Only FIXED is supported."""

    markup_type: MarkupType = MarkupType.FIXED
    markup_value: Decimal
    override_reason: str | None = None


class QuoteCalculationInput(InputModel):
    """Everything needed to price a quote."""

    client_name: str
    client_email: str | None = None
    currency_code: CurrencyCode
    validity_days: int = 14
    booking_date: date | None = None
    legs: list[LegCalculationInput] = Field(default_factory=list)
    inter_resort_transfers: list[InterResortTransferInput] = Field(default_factory=list)
    quote_level_markup: QuoteLevelMarkupInput | None = None
    manual_exchange_rates: dict[str, Annotated[Decimal, Field(gt=0)]] | None = None
