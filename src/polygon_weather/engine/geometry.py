"""Polygon centroid computation.

The centroid is a planar arithmetic mean of the vertices; polygons are
assumed small relative to the Earth's curvature.
"""
from __future__ import annotations
import logging
import math
from numbers import Real
from typing import Any, Iterable, Optional, Tuple
from polygon_weather.models import LatLng

LOGGER = logging.getLogger(__name__)

ORIGIN = LatLng(lat=0.0, lng=0.0)


def _component(coord: Any, name: str) -> Any:
    if isinstance(coord, dict):
        return coord.get(name)
    return getattr(coord, name, None)


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def vertex_components(coord: Any) -> Optional[Tuple[float, float]]:
    """Return ``(lat, lng)`` for a usable vertex, or None."""
    lat = _finite(_component(coord, "lat"))
    lng = _finite(_component(coord, "lng"))
    if lat is None or lng is None:
        return None
    return lat, lng


def is_valid_vertex(coord: Any) -> bool:
    return vertex_components(coord) is not None


def compute_centroid(coordinates: Iterable[Any]) -> LatLng:
    """Arithmetic mean of latitude and longitude across all valid vertices.

    Accepts LatLng objects or ``{"lat": ..., "lng": ...}`` mappings. Vertices
    with missing, non-numeric or non-finite components are skipped.

    Returns:
        The centroid, or ``LatLng(0, 0)`` when no valid vertex is given.
    """
    coords = list(coordinates) if coordinates is not None else []
    if not coords:
        LOGGER.warning("Empty polygon coordinates, using (0, 0) as centroid")
        return ORIGIN

    lat_sum = 0.0
    lng_sum = 0.0
    count = 0
    for coord in coords:
        components = vertex_components(coord)
        if components is None:
            LOGGER.warning("Skipping invalid coordinate: %r", coord)
            continue
        lat_sum += components[0]
        lng_sum += components[1]
        count += 1

    if count == 0:
        LOGGER.warning("No valid coordinates among %d vertices, using (0, 0) as centroid", len(coords))
        return ORIGIN
    return LatLng(lat=lat_sum / count, lng=lng_sum / count)


__all__ = ["ORIGIN", "compute_centroid", "is_valid_vertex", "vertex_components"]
