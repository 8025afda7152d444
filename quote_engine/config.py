"""Typed settings configuration - single source of truth."""

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Read process-wide through get_settings(). Money bounds and the three-layer
    tolerance are checked inside model validation, so they always follow the
    environment rather than any per-call context.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Safe arithmetic bounds
    max_safe_amount: Decimal = Decimal("999999999999.99")

    # Audit verification tolerance (currency units)
    verification_tolerance: Decimal = Decimal("0.01")

    # Quote validity (days)
    min_validity_days: int = 1
    max_validity_days: int = 90
    quote_expiry_warning_days: int = 3

    # Guests
    max_child_age: int = 11

    # Warning windows (days)
    rate_expiry_warning_days: int = 14
    early_bird_warning_days: int = 7
    extended_stay_nights: int = 30

    # Exchange rate sanity bounds
    exchange_rate_extreme_low: Decimal = Decimal("0.0001")
    exchange_rate_extreme_high: Decimal = Decimal("10000")

    # Markup
    max_markup_percentage: Decimal = Decimal("1000")

    # Whether mandatory festive supplements are part of a PRE_TAX_TOTAL discount base
    discount_mandatory_festive_in_base: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
