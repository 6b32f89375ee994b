"""Polygon weather-state engine.

Example:
    >>> from polygon_weather.engine import PolygonStore, WeatherFetcher
    >>> from polygon_weather.clients.openmeteo import OpenMeteoClient
    >>> store = PolygonStore(WeatherFetcher(OpenMeteoClient()))
    >>> polygon = store.create(vertices, "Zone A", "temperature_2m")
    >>> await store.refresh()
    >>> store.render()
"""

from __future__ import annotations

from .cache import WeatherCache, cache_key
from .color_rules import (
    BLUE,
    DEFAULT_COLOR,
    GREEN,
    LIVE_RULE_TOLERANCE,
    RED,
    RULE_TOLERANCE,
    default_color_rules,
    evaluation_order,
    generate_id,
    make_rule,
    resolve_color,
)
from .display import ColorSource, DisplayColor, RenderedPolygon, display_color, effective_color
from .fetcher import WeatherFetcher, requested_variables
from .geometry import compute_centroid, is_valid_vertex
from .store import PolygonStore, validate_vertices
from .time_lookup import nearest_unconditional, nearest_within_window, value_at

__all__ = [
    # Geometry
    "compute_centroid",
    "is_valid_vertex",
    # Color rules
    "DEFAULT_COLOR",
    "RED",
    "BLUE",
    "GREEN",
    "RULE_TOLERANCE",
    "LIVE_RULE_TOLERANCE",
    "default_color_rules",
    "evaluation_order",
    "generate_id",
    "make_rule",
    "resolve_color",
    # Time lookup
    "nearest_unconditional",
    "nearest_within_window",
    "value_at",
    # Cache and fetching
    "WeatherCache",
    "cache_key",
    "WeatherFetcher",
    "requested_variables",
    # Display
    "ColorSource",
    "DisplayColor",
    "RenderedPolygon",
    "display_color",
    "effective_color",
    # Store
    "PolygonStore",
    "validate_vertices",
]
