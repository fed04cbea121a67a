"""Application configuration and environment helpers."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEZONE = "UTC"
DEFAULT_BASE_CURRENCY = "USD"
DEFAULT_TARGET_CURRENCY = "EUR"


class AppSettings(BaseSettings):
    """Configuration options for the FX rate sync service."""

    app_name: str = Field(default="FX Rate Sync")
    timezone: str = Field(default=DEFAULT_TIMEZONE, description="Zone that defines the current rate date.")

    exchangerates_base_url: str = Field(default="http://api.exchangeratesapi.io/v1")
    exchangerates_api_key: str = Field(default="", description="Access key appended to every rate request.")
    http_timeout_seconds: float = Field(default=15.0, gt=0)

    fetch_retries: int = Field(default=3, ge=0, description="Retries after the first attempt.")
    fetch_backoff_seconds: float = Field(default=30.0, ge=0)
    fetch_backoff_factor: float = Field(default=1.0, ge=1.0, description="1.0 keeps the backoff fixed.")

    history_window_days: int = Field(default=3, ge=0, le=31)
    default_base_currency: str = Field(default=DEFAULT_BASE_CURRENCY)
    default_target_currency: str = Field(default=DEFAULT_TARGET_CURRENCY)
    default_amount: Decimal = Field(default=Decimal("100"))

    rate_store: Literal["database", "file"] = Field(default="database")
    rate_store_path: str = Field(default="fx_rates.json")
    database_url: str = Field(
        default="sqlite+aiosqlite:///./fx_rates.db",
        description="SQLAlchemy database URL.",
    )

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="fx-rate-sync")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"exchangerates_api_key"}
        return {k: ("***" if k in hidden else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_TARGET_CURRENCY",
    "DEFAULT_TIMEZONE",
    "get_settings",
]
