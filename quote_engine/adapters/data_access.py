"""Read-only query facade over a DataStore."""

from datetime import date

from quote_engine.models.common import MarkupScope
from quote_engine.models.reference import (
    Activity,
    BlackoutDate,
    ChildAgeBand,
    Currency,
    Discount,
    ExchangeRate,
    ExtraPersonCharge,
    FestiveSupplement,
    MarkupConfiguration,
    MealPlan,
    MinimumStayRule,
    Rate,
    Resort,
    RoomType,
    Season,
    TaxConfiguration,
    TransferType,
)
from quote_engine.models.store import DataStore
from quote_engine.utils.dates import overlaps_stay


class CalculationDataAccess:
    """Lookups the calculation pipeline needs, indexed once per store.

    Holds no mutable state after construction, so one instance may be shared
    by concurrent calculations.
    """

    def __init__(self, store: DataStore) -> None:
        self._store = store
        self._resorts = {r.id: r for r in store.resorts}
        self._room_types = {r.id: r for r in store.room_types}
        self._seasons = {s.id: s for s in store.seasons}
        self._meal_plans = {m.id: m for m in store.meal_plans}
        self._transfer_types = {t.id: t for t in store.transfer_types}
        self._activities = {a.id: a for a in store.activities}
        self._currencies = {c.code: c for c in store.currencies}

    @property
    def store(self) -> DataStore:
        return self._store

    # Core

    def get_currency(self, code: str) -> Currency | None:
        return self._currencies.get(code)

    def get_exchange_rates_to(self, target_currency: str) -> list[ExchangeRate]:
        return [r for r in self._store.exchange_rates if r.to_currency == target_currency]

    def get_resort(self, resort_id: str) -> Resort | None:
        resort = self._resorts.get(resort_id)
        return resort if resort and resort.is_active else None

    def get_room_type(self, room_type_id: str, resort_id: str) -> RoomType | None:
        room_type = self._room_types.get(room_type_id)
        if room_type is None or not room_type.is_active or room_type.resort_id != resort_id:
            return None
        return room_type

    # Seasons and rates

    def get_season(self, season_id: str) -> Season | None:
        return self._seasons.get(season_id)

    def get_seasons_covering(self, resort_id: str, day: date) -> list[Season]:
        """All explicit seasons of a resort whose date ranges include `day`."""
        return [s for s in self._store.seasons if s.resort_id == resort_id and s.covers(day)]

    def get_rate(self, room_type_id: str, season_id: str, day: date) -> Rate | None:
        for rate in self._store.rates:
            if (
                rate.room_type_id == room_type_id
                and rate.season_id == season_id
                and rate.is_valid_on(day)
            ):
                return rate
        return None

    # Guests

    def get_child_age_bands(self, resort_id: str) -> list[ChildAgeBand]:
        bands = [b for b in self._store.child_age_bands if b.resort_id == resort_id]
        return sorted(bands, key=lambda b: b.min_age)

    def get_extra_person_charges(
        self, resort_id: str, room_type_id: str
    ) -> list[ExtraPersonCharge]:
        return [
            c
            for c in self._store.extra_person_charges
            if c.resort_id == resort_id and c.room_type_id == room_type_id
        ]

    # Components

    def get_meal_plan(self, meal_plan_id: str, resort_id: str) -> MealPlan | None:
        plan = self._meal_plans.get(meal_plan_id)
        if plan is None or not plan.is_active or plan.resort_id != resort_id:
            return None
        return plan

    def get_default_meal_plan(self, resort_id: str) -> MealPlan | None:
        for plan in self._store.meal_plans:
            if plan.resort_id == resort_id and plan.is_default and plan.is_active:
                return plan
        return None

    def get_transfer_type(self, transfer_type_id: str, resort_id: str) -> TransferType | None:
        transfer = self._transfer_types.get(transfer_type_id)
        if transfer is None or not transfer.is_active or transfer.resort_id != resort_id:
            return None
        return transfer

    def get_default_transfer_type(self, resort_id: str) -> TransferType | None:
        for transfer in self._store.transfer_types:
            if transfer.resort_id == resort_id and transfer.is_default and transfer.is_active:
                return transfer
        return None

    def get_activity(self, activity_id: str, resort_id: str) -> Activity | None:
        activity = self._activities.get(activity_id)
        if activity is None or not activity.is_active or activity.resort_id != resort_id:
            return None
        return activity

    def get_festive_supplements(self, resort_id: str) -> list[FestiveSupplement]:
        return [f for f in self._store.festive_supplements if f.resort_id == resort_id]

    # Financial

    def get_tax_configurations(self, resort_id: str, day: date) -> list[TaxConfiguration]:
        """Taxes valid on `day`, in ascending calculation order."""
        taxes = [
            t
            for t in self._store.tax_configurations
            if t.resort_id == resort_id and t.is_valid_on(day)
        ]
        return sorted(taxes, key=lambda t: t.calculation_order)

    def get_discount_by_code(self, code: str, resort_id: str) -> Discount | None:
        for discount in self._store.discounts:
            if (
                discount.code.upper() == code.upper()
                and discount.is_active
                and discount.resort_id in (None, resort_id)
            ):
                return discount
        return None

    def get_markup_configuration(self, resort: Resort, day: date) -> MarkupConfiguration | None:
        """Markup configuration for a resort valid on `day`.

        Precedence: the resort's default configuration id, then any
        resort-scoped configuration, then a global one.
        """
        candidates = [
            m for m in self._store.markup_configurations if m.is_active and m.is_valid_on(day)
        ]
        resort_id = resort.id
        for config in candidates:
            if config.id == resort.default_markup_configuration_id:
                return config
        for config in candidates:
            if config.scope == MarkupScope.RESORT and config.resort_id == resort_id:
                return config
        for config in candidates:
            if config.scope == MarkupScope.GLOBAL:
                return config
        return None

    # Rules

    def get_blackout_dates(
        self, resort_id: str, check_in: date, check_out: date
    ) -> list[BlackoutDate]:
        return [
            b
            for b in self._store.blackout_dates
            if b.resort_id == resort_id
            and b.is_active
            and overlaps_stay(b.start_date, b.end_date, check_in, check_out)
        ]

    def get_minimum_stay_rules(self, resort_id: str) -> list[MinimumStayRule]:
        return [r for r in self._store.minimum_stay_rules if r.resort_id == resort_id]
