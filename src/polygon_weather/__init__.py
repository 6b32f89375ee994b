"""Polygon weather dashboard engine.

Polygons drawn on a map are bound to a weather variable, fetched from
Open-Meteo at their centroid and colored by threshold rules at a chosen
instant.
"""

from __future__ import annotations

from polygon_weather.errors import (
    PolygonNotFoundError,
    PolygonWeatherError,
    ProviderError,
    StorageError,
    ValidationError,
)
from polygon_weather.models import DATA_SOURCES, ColorRule, DataSource, LatLng, Polygon, TimeRange

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "PolygonWeatherError",
    "ValidationError",
    "PolygonNotFoundError",
    "ProviderError",
    "StorageError",
    "DATA_SOURCES",
    "DataSource",
    "LatLng",
    "ColorRule",
    "Polygon",
    "TimeRange",
]
