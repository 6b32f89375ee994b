"""Fetch orchestration: cache check, provider request, cache write.

Everything runs on one asyncio event loop. Within one polygon the order is
cache check -> provider request -> cache write -> ``on_fetched`` callback;
across polygons no completion order is guaranteed.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from polygon_weather.clients.openmeteo.client import OpenMeteoClient, WeatherProvider
from polygon_weather.clients.openmeteo.constants import COMPANION_VARIABLES, DEFAULT_TIMEZONE
from polygon_weather.clients.openmeteo.models import ProviderQuery, WeatherData
from polygon_weather.config.settings import Settings
from polygon_weather.engine.cache import WeatherCache, cache_key
from polygon_weather.engine.geometry import compute_centroid, is_valid_vertex
from polygon_weather.errors import ProviderError, ValidationError
from polygon_weather.models import Polygon, TimeRange, coerce_time_range, get_data_source

LOGGER = logging.getLogger(__name__)

OnFetched = Callable[[Polygon, WeatherData], None]


def requested_variables(data_source: str) -> Tuple[str, ...]:
    """Primary variable plus its companions (humidity rides along with temperature)."""
    return (data_source,) + COMPANION_VARIABLES.get(data_source, ())


def validate_polygon_for_fetch(polygon: Polygon) -> None:
    """Raise ValidationError when the polygon cannot be fetched for."""
    coordinates = polygon.coordinates
    if not coordinates:
        raise ValidationError(f"Polygon {polygon.id} has no coordinates")
    if not any(is_valid_vertex(coord) for coord in coordinates):
        raise ValidationError(f"Polygon {polygon.id} has no valid coordinates")
    get_data_source(polygon.data_source)


class WeatherFetcher:
    """Resolves weather series for polygons through a shared cache.

    Args:
        provider: Weather provider (e.g. OpenMeteoClient).
        cache: Cache to read and populate; a fresh one when omitted.
        timezone: Timezone requested from the provider.
        coalesce: Share one provider request between concurrent fetches of
            the same key. When False, duplicate requests race and the later
            cache write wins.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        cache: Optional[WeatherCache] = None,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        coalesce: bool = True,
    ) -> None:
        self._provider = provider
        self._cache = cache if cache is not None else WeatherCache()
        self._timezone = timezone
        self._coalesce = coalesce
        self._inflight: Dict[str, "asyncio.Future[WeatherData]"] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: Optional[WeatherProvider] = None,
        cache: Optional[WeatherCache] = None,
    ) -> "WeatherFetcher":
        return cls(
            provider or OpenMeteoClient.from_settings(settings.provider),
            cache,
            timezone=settings.provider.openmeteo_timezone,
            coalesce=settings.dashboard.coalesce_inflight_fetches,
        )

    @property
    def cache(self) -> WeatherCache:
        return self._cache

    @property
    def provider(self) -> WeatherProvider:
        return self._provider

    def key_for(self, polygon: Polygon, time_range: TimeRange) -> str:
        return cache_key(
            polygon.coordinates, polygon.data_source, time_range.start_date, time_range.end_date
        )

    def build_query(self, polygon: Polygon, time_range: Any) -> Tuple[str, ProviderQuery]:
        """Validate inputs and derive the cache key and provider query.

        Raises:
            ValidationError: Empty/malformed coordinates, unknown data source,
                or invalid time range.
        """
        validate_polygon_for_fetch(polygon)
        time_range = coerce_time_range(time_range)
        centroid = compute_centroid(polygon.coordinates)
        query = ProviderQuery(
            latitude=centroid.lat,
            longitude=centroid.lng,
            start_date=time_range.start_date,
            end_date=time_range.end_date,
            variables=requested_variables(polygon.data_source),
            timezone=self._timezone,
        )
        return self.key_for(polygon, time_range), query

    async def fetch_for_polygon(self, polygon: Polygon, time_range: Any) -> WeatherData:
        """Series for the polygon's centroid, served from cache when possible.

        Raises:
            ValidationError: See build_query.
            ProviderError: The provider request failed; nothing is cached.
        """
        key, query = self.build_query(polygon, time_range)
        cached = self._cache.get(key)
        if cached is not None:
            LOGGER.debug("Using cached weather data for polygon %s (%s)", polygon.id, key)
            return cached

        if not self._coalesce:
            return await self._request_and_store(key, query)

        pending = self._inflight.get(key)
        if pending is not None:
            LOGGER.debug("Joining in-flight request for polygon %s (%s)", polygon.id, key)
            return await pending
        task = asyncio.ensure_future(self._request_and_store(key, query))
        self._inflight[key] = task
        task.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await task

    async def _request_and_store(self, key: str, query: ProviderQuery) -> WeatherData:
        data = await self._provider.fetch_hourly(query)
        self._cache.put(key, data)
        LOGGER.info("Cached %d hourly points under %s", len(data.hourly.time), key)
        return data

    async def fetch_all_for_store(
        self,
        polygons: Iterable[Polygon],
        time_range: Any,
        on_fetched: Optional[OnFetched] = None,
    ) -> None:
        """Fetch every polygon concurrently, best effort.

        A failure for one polygon is logged and does not affect the others.
        ``on_fetched(polygon, data)`` runs right after each successful fetch.

        Raises:
            ValidationError: Only when ``time_range`` itself is invalid.
        """
        time_range = coerce_time_range(time_range)
        polygons = list(polygons)

        async def _fetch_one(polygon: Polygon) -> bool:
            try:
                data = await self.fetch_for_polygon(polygon, time_range)
                if on_fetched is not None:
                    on_fetched(polygon, data)
            except (ProviderError, ValidationError) as exc:
                LOGGER.error(
                    "Failed to fetch weather data for polygon %s (%s): %s",
                    polygon.id,
                    polygon.label,
                    exc,
                )
                return False
            except Exception:  # pragma: no cover - unexpected errors
                LOGGER.exception("Unexpected error fetching weather data for polygon %s", polygon.id)
                return False
            return True

        results = await asyncio.gather(*(_fetch_one(polygon) for polygon in polygons))
        LOGGER.info(
            "Weather fetch finished: %d/%d polygons succeeded", sum(results), len(results)
        )


__all__ = [
    "OnFetched",
    "requested_variables",
    "validate_polygon_for_fetch",
    "WeatherFetcher",
]
