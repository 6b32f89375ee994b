"""Centralized configuration management using Pydantic Settings.

Configuration is loaded from environment variables and an optional .env file.
Every field has a default, so the engine runs without any configuration.

Example:
    >>> from polygon_weather.config import get_settings
    >>> print(get_settings().provider.openmeteo_endpoint)
    >>> print(get_settings().provider.base_url)
"""

from __future__ import annotations

import logging
import threading
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)

_SECTION_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
)


class ProviderSettings(BaseSettings):
    """Open-Meteo weather provider configuration."""

    model_config = _SECTION_CONFIG

    openmeteo_endpoint: Literal["archive", "forecast"] = Field(
        default="archive",
        description="Which Open-Meteo endpoint serves hourly series",
    )
    openmeteo_archive_url: str = Field(
        default="https://archive-api.open-meteo.com/v1/archive",
        description="Open-Meteo historical archive endpoint URL",
    )
    openmeteo_forecast_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Open-Meteo forecast endpoint URL",
    )
    openmeteo_timezone: str = Field(
        default="UTC",
        description="Timezone requested for returned timestamps",
    )
    openmeteo_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for a single provider request",
    )

    @field_validator("openmeteo_archive_url", "openmeteo_forecast_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Ensure endpoint starts with http:// or https://."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Open-Meteo endpoint must start with http:// or https://")
        return v.rstrip("/")

    @property
    def base_url(self) -> str:
        """URL of the selected endpoint."""
        if self.openmeteo_endpoint == "forecast":
            return self.openmeteo_forecast_url
        return self.openmeteo_archive_url


class DashboardSettings(BaseSettings):
    """Polygon store and fetch orchestration configuration."""

    model_config = _SECTION_CONFIG

    default_range_days_before: int = Field(
        default=15,
        ge=0,
        description="Days before now covered by the default time range",
    )
    default_range_days_after: int = Field(
        default=15,
        ge=0,
        description="Days after now covered by the default time range",
    )
    coalesce_inflight_fetches: bool = Field(
        default=True,
        description="Share one provider request between concurrent fetches of the same key",
    )
    state_file: str = Field(
        default="dashboard_state.json",
        description="Path of the JSON state file used by the command line tool",
    )


class Settings(BaseSettings):
    """Root settings container.

    Example .env file:
        OPENMETEO_ENDPOINT=forecast
        OPENMETEO_TIMEOUT_SECONDS=10
        COALESCE_INFLIGHT_FETCHES=false
        LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    log_level: str = Field(
        default="INFO",
        description="Root log level for the command line tool",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# Lazy initialization - only create settings when accessed
_settings: Optional[Settings] = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the Settings singleton (thread-safe).

    Returns:
        Settings instance loaded from environment variables/.env file.

    Raises:
        ValidationError: If a configured value is invalid.
    """
    global _settings

    if _settings is not None:
        return _settings

    with _settings_lock:
        if _settings is None:
            LOGGER.debug("Initializing Settings from environment variables and .env file")
            try:
                _settings = Settings()
            except ValidationError as e:
                LOGGER.error("Configuration validation failed: %s", e)
                raise

    return _settings


def reset_settings() -> None:
    """Drop the cached singleton so the next get_settings() reloads."""
    global _settings
    with _settings_lock:
        _settings = None


__all__ = [
    "ProviderSettings",
    "DashboardSettings",
    "Settings",
    "get_settings",
    "reset_settings",
]
