"""DataStore - closed, immutable snapshot of the reference catalogue."""

from pydantic import BaseModel, ConfigDict

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


class DataStore(BaseModel):
    """Reference collections lent to the engine for one or more calculations.

    Collections are tuples so a store cannot be mutated once loaded.
    """

    model_config = ConfigDict(frozen=True)

    currencies: tuple[Currency, ...] = ()
    exchange_rates: tuple[ExchangeRate, ...] = ()
    resorts: tuple[Resort, ...] = ()
    room_types: tuple[RoomType, ...] = ()
    seasons: tuple[Season, ...] = ()
    rates: tuple[Rate, ...] = ()
    extra_person_charges: tuple[ExtraPersonCharge, ...] = ()
    meal_plans: tuple[MealPlan, ...] = ()
    transfer_types: tuple[TransferType, ...] = ()
    activities: tuple[Activity, ...] = ()
    tax_configurations: tuple[TaxConfiguration, ...] = ()
    discounts: tuple[Discount, ...] = ()
    markup_configurations: tuple[MarkupConfiguration, ...] = ()
    festive_supplements: tuple[FestiveSupplement, ...] = ()
    child_age_bands: tuple[ChildAgeBand, ...] = ()
    minimum_stay_rules: tuple[MinimumStayRule, ...] = ()
    blackout_dates: tuple[BlackoutDate, ...] = ()
