from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="OD_", extra="ignore")

    app_name: str = "Orderdesk Pricing Core"
    env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./orderdesk.db"

    bootstrap_default_rates_on_startup: bool = False

    base_currency: str = "USD"
    default_commission_rate: Decimal = Field(
        default=Decimal("0.15"),
        description="Commission fraction stored on a shipping rate created without one",
    )
    staleness_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        description="Largest order value drift tolerated before a calculation is stale",
    )

    # {"CNY": {"USD": "0.14"}}; reciprocal is used when only the reverse pair exists
    fx_mid_rates: dict[str, dict[str, Decimal]] = Field(default_factory=dict)

    @field_validator("base_currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    def model_post_init(self, __context) -> None:
        if not Decimal("0") <= self.default_commission_rate <= Decimal("1"):
            raise ValueError("OD_DEFAULT_COMMISSION_RATE must be a fraction between 0 and 1")
        if self.staleness_epsilon < 0:
            raise ValueError("OD_STALENESS_EPSILON must not be negative")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
