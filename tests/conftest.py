"""Shared pytest fixtures for polygon weather tests."""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

import pytest

from polygon_weather.clients.openmeteo.models import ProviderQuery, WeatherData
from polygon_weather.errors import ProviderError

UTC = dt.timezone.utc

SETTINGS_ENV_VARS = [
    "OPENMETEO_ENDPOINT",
    "OPENMETEO_ARCHIVE_URL",
    "OPENMETEO_FORECAST_URL",
    "OPENMETEO_TIMEZONE",
    "OPENMETEO_TIMEOUT_SECONDS",
    "DEFAULT_RANGE_DAYS_BEFORE",
    "DEFAULT_RANGE_DAYS_AFTER",
    "COALESCE_INFLIGHT_FETCHES",
    "STATE_FILE",
    "LOG_LEVEL",
]


def hourly_times(start: dt.datetime, hours: int) -> List[str]:
    """Open-Meteo style naive ISO timestamps (``2024-01-01T00:00``)."""
    return [(start + dt.timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(hours)]


def make_payload(
    values: Dict[str, Sequence[Optional[float]]],
    *,
    start: dt.datetime = dt.datetime(2024, 1, 1),
    latitude: float = 51.5,
    longitude: float = -0.1,
) -> Dict[str, Any]:
    """Build a provider response body with one series per variable."""
    length = len(next(iter(values.values()))) if values else 0
    hourly: Dict[str, Any] = {"time": hourly_times(start, length)}
    hourly.update({name: list(series) for name, series in values.items()})
    return {
        "latitude": latitude,
        "longitude": longitude,
        "generationtime_ms": 0.5,
        "utc_offset_seconds": 0,
        "timezone": "GMT",
        "hourly": hourly,
    }


def make_weather(values: Dict[str, Sequence[Optional[float]]], **kwargs: Any) -> WeatherData:
    return WeatherData.model_validate(make_payload(values, **kwargs))


class FakeProvider:
    """In-memory provider recording every query.

    ``series`` maps a variable to the values returned for it; queries whose
    latitude appears in ``fail_latitudes`` raise ProviderError.
    """

    def __init__(
        self,
        series: Optional[Dict[str, Sequence[Optional[float]]]] = None,
        *,
        fail_latitudes: Sequence[float] = (),
        delay: float = 0.0,
    ) -> None:
        self.series = dict(series or {"temperature_2m": [8.0] * 24})
        self.fail_latitudes = [round(lat, 4) for lat in fail_latitudes]
        self.delay = delay
        self.queries: List[ProviderQuery] = []

    async def fetch_hourly(self, query: ProviderQuery) -> WeatherData:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        if round(query.latitude, 4) in self.fail_latitudes:
            raise ProviderError(f"upstream failure at {query.latitude}")
        length = len(next(iter(self.series.values())))
        values = {name: self.series.get(name, [None] * length) for name in query.variables}
        return make_weather(values, latitude=query.latitude, longitude=query.longitude)


def square(lat: float, lng: float, size: float = 0.02) -> List[Dict[str, float]]:
    """Four vertices of a small square whose centroid is (lat, lng)."""
    half = size / 2
    return [
        {"lat": lat - half, "lng": lng - half},
        {"lat": lat - half, "lng": lng + half},
        {"lat": lat + half, "lng": lng + half},
        {"lat": lat + half, "lng": lng - half},
    ]


@pytest.fixture
def triangle() -> List[Dict[str, float]]:
    return [{"lat": 0.0, "lng": 0.0}, {"lat": 2.0, "lng": 0.0}, {"lat": 1.0, "lng": 2.0}]


@pytest.fixture
def january_range() -> Dict[str, dt.datetime]:
    return {
        "start": dt.datetime(2024, 1, 1, tzinfo=UTC),
        "end": dt.datetime(2024, 1, 2, tzinfo=UTC),
    }


@pytest.fixture
def fake_provider_factory() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove all polygon weather env vars for isolated testing."""
    for var in SETTINGS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings singleton between tests to ensure isolation."""
    from polygon_weather.config import settings as settings_module

    settings_module.reset_settings()
    yield
    settings_module.reset_settings()
