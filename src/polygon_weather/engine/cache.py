"""Process-lifetime cache of fetched weather series."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, Iterator, Optional
from polygon_weather.clients.openmeteo.models import WeatherData
from polygon_weather.engine.geometry import compute_centroid

LOGGER = logging.getLogger(__name__)


def cache_key(
    coordinates: Iterable[Any],
    data_source: str,
    start_date: str,
    end_date: str,
) -> str:
    """Deterministic key for one fetched series.

    Format: ``<lat>_<lng>_<data_source>_<start>_<end>`` with the centroid
    rounded to 4 decimals and dates as YYYY-MM-DD.

    Examples:
        >>> cache_key([{"lat": 0, "lng": 0}, {"lat": 2, "lng": 0}, {"lat": 1, "lng": 2}],
        ...           "temperature_2m", "2024-01-01", "2024-01-31")
        '1.0000_0.6667_temperature_2m_2024-01-01_2024-01-31'
    """
    centroid = compute_centroid(coordinates)
    return f"{centroid.lat:.4f}_{centroid.lng:.4f}_{data_source}_{start_date}_{end_date}"


class WeatherCache:
    """Key/value store of weather series.

    No TTL, no capacity bound, last write wins. Stored objects are returned
    as-is (WeatherData is immutable).
    """

    def __init__(self) -> None:
        self._entries: Dict[str, WeatherData] = {}

    def get(self, key: str) -> Optional[WeatherData]:
        return self._entries.get(key)

    def put(self, key: str, data: WeatherData) -> None:
        if key in self._entries:
            LOGGER.debug("Overwriting cached series %s", key)
        self._entries[key] = data

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["cache_key", "WeatherCache"]
