"""Single source of truth for the color a polygon is drawn with."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple
from polygon_weather.engine.color_rules import DEFAULT_COLOR
from polygon_weather.models import LatLng, Polygon


class ColorSource(str, Enum):
    CUSTOM = "custom"
    RULE_DERIVED = "rule_derived"
    DEFAULT = "default"


@dataclass(frozen=True)
class DisplayColor:
    """Resolved color plus where it came from."""
    source: ColorSource
    color: str


@dataclass(frozen=True)
class RenderedPolygon:
    """What the map surface needs to draw one polygon."""
    id: str
    coordinates: Tuple[LatLng, ...]
    label: str
    data_source: str
    effective_color: str
    color_source: ColorSource
    is_highlighted: bool


def display_color(polygon: Polygon) -> DisplayColor:
    """Custom color wins over the rule-derived color, which wins over gray."""
    if polygon.custom_color:
        return DisplayColor(ColorSource.CUSTOM, polygon.custom_color)
    if polygon.current_color:
        return DisplayColor(ColorSource.RULE_DERIVED, polygon.current_color)
    return DisplayColor(ColorSource.DEFAULT, DEFAULT_COLOR)


def effective_color(polygon: Polygon) -> str:
    return display_color(polygon).color


def render_polygon(polygon: Polygon) -> RenderedPolygon:
    resolved = display_color(polygon)
    return RenderedPolygon(
        id=polygon.id,
        coordinates=polygon.coordinates,
        label=polygon.label,
        data_source=polygon.data_source,
        effective_color=resolved.color,
        color_source=resolved.source,
        is_highlighted=polygon.is_highlighted,
    )


def render_polygons(polygons: Iterable[Polygon]) -> List[RenderedPolygon]:
    return [render_polygon(polygon) for polygon in polygons]


__all__ = [
    "ColorSource",
    "DisplayColor",
    "RenderedPolygon",
    "display_color",
    "effective_color",
    "render_polygon",
    "render_polygons",
]
