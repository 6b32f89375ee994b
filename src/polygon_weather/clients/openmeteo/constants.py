from __future__ import annotations
from typing import Dict, Tuple

# API Endpoints
WEATHER_ENDPOINTS = {
    "archive": "https://archive-api.open-meteo.com/v1/archive",
    "forecast": "https://api.open-meteo.com/v1/forecast",
}
DEFAULT_ENDPOINT = "archive"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TIMEZONE = "UTC"

# Extra hourly variables requested alongside a primary variable
COMPANION_VARIABLES: Dict[str, Tuple[str, ...]] = {
    "temperature_2m": ("relative_humidity_2m",),
}

__all__ = [
    "WEATHER_ENDPOINTS",
    "DEFAULT_ENDPOINT",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_TIMEZONE",
    "COMPANION_VARIABLES",
]
