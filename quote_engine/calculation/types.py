"""Intermediate, cost-only values passed between pipeline stages."""

from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from quote_engine.models.common import GuestType, LineItemType, PricingMode
from quote_engine.models.reference import (
    ChildAgeBand,
    Discount,
    ExtraPersonCharge,
    Rate,
    Season,
    TaxConfiguration,
)
from quote_engine.models.results import ResolvedChild


@dataclass(frozen=True)
class GuestCounts:
    """Resolved guests for one leg."""

    adults: int
    children: tuple[ResolvedChild, ...] = ()

    @property
    def child_count(self) -> int:
        return len(self.children)

    @property
    def total_guests(self) -> int:
        return self.adults + len(self.children)

    def children_by_band(self) -> dict[str, int]:
        """Child counts per age band id, in first-seen order."""
        return dict(Counter(c.age_band_id for c in self.children))


@dataclass(frozen=True)
class NightlyCost:
    night: date
    season: Season
    rate: Rate
    cost: Decimal
    used_default_season: bool = False
    line_item_type: LineItemType = LineItemType.ROOM
    is_mandatory: bool = False


@dataclass(frozen=True)
class ExtraPersonCost:
    charge: ExtraPersonCharge
    guest_type: GuestType
    count: int
    nights: int
    per_unit_cost: Decimal
    cost: Decimal
    age_band: ChildAgeBand | None = None
    child_age: int | None = None
    line_item_type: LineItemType = LineItemType.EXTRA_PERSON
    is_mandatory: bool = False


@dataclass(frozen=True)
class ComponentCost:
    line_item_type: LineItemType
    reference_id: str
    description: str
    quantity: int
    unit_cost: Decimal
    pricing_mode: PricingMode
    cost: Decimal
    guest_type: GuestType | None = None
    age_band_id: str | None = None
    is_mandatory: bool = False


@dataclass(frozen=True)
class TaxCost:
    config: TaxConfiguration
    line_item_type: LineItemType
    base_amount: Decimal
    cost: Decimal
    guest_nights: int | None = None
    is_mandatory: bool = False


@dataclass(frozen=True)
class DiscountApplication:
    """A discount accepted for a leg, with its cost reduction."""

    discount: Discount
    base_amount: Decimal
    base_composition: tuple[LineItemType, ...]
    excluded_from_base: tuple[LineItemType, ...]
    amount: Decimal
    clamped: bool = False


@dataclass(frozen=True)
class DiscountOutcome:
    applications: tuple[DiscountApplication, ...] = ()
    total: Decimal = Decimal("0")


PreTaxLine = NightlyCost | ExtraPersonCost | ComponentCost
