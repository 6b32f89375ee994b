from __future__ import annotations
from .client import OpenMeteoClient, WeatherProvider, parse_weather_payload
from .constants import (
    COMPANION_VARIABLES,
    DEFAULT_ENDPOINT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TIMEZONE,
    WEATHER_ENDPOINTS,
)
from .models import (
    HourlySeries,
    OpenMeteoAPIError,
    OpenMeteoRateLimitError,
    ProviderQuery,
    WeatherData,
)

__all__ = [
    # Client
    "OpenMeteoClient",
    "WeatherProvider",
    "parse_weather_payload",
    # Models
    "ProviderQuery",
    "HourlySeries",
    "WeatherData",
    # Exceptions
    "OpenMeteoAPIError",
    "OpenMeteoRateLimitError",
    # Constants
    "WEATHER_ENDPOINTS",
    "DEFAULT_ENDPOINT",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_TIMEZONE",
    "COMPANION_VARIABLES",
]
