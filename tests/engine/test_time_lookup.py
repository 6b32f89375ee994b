"""Tests for nearest-in-time weather value lookup."""

from __future__ import annotations

import datetime as dt

import pytest

from conftest import make_weather
from polygon_weather.engine.time_lookup import (
    nearest_unconditional,
    nearest_within_window,
    value_at,
)

UTC = dt.timezone.utc


@pytest.fixture
def weather():
    """24 hourly points from 2024-01-01T00:00 UTC; value equals the hour."""
    return make_weather({"temperature_2m": [float(h) for h in range(24)]})


class TestNearestUnconditional:
    def test_picks_closest_hour(self, weather) -> None:
        instant = dt.datetime(2024, 1, 1, 2, 20, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_unconditional()) == 2.0

    def test_tie_goes_to_earlier_timestamp(self, weather) -> None:
        instant = dt.datetime(2024, 1, 1, 2, 30, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_unconditional()) == 2.0

    def test_far_instant_still_matches(self, weather) -> None:
        """No distance limit: a month later still resolves to the last hour."""
        instant = dt.datetime(2024, 2, 1, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_unconditional()) == 23.0

    def test_is_default_strategy(self, weather) -> None:
        instant = dt.datetime(2023, 12, 1, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant) == 0.0

    def test_converts_other_timezones(self, weather) -> None:
        instant = dt.datetime(2024, 1, 1, 5, 0, tzinfo=dt.timezone(dt.timedelta(hours=2)))
        assert value_at(weather, "temperature_2m", instant) == 3.0

    def test_naive_instant_is_utc(self, weather) -> None:
        assert value_at(weather, "temperature_2m", dt.datetime(2024, 1, 1, 7, 0)) == 7.0


class TestNearestWithinWindow:
    def test_inside_window(self, weather) -> None:
        instant = dt.datetime(2024, 1, 1, 2, 29, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_within_window(30)) == 2.0

    def test_window_bound_is_exclusive(self, weather) -> None:
        """Exactly 30 minutes from both neighbours matches neither."""
        instant = dt.datetime(2024, 1, 1, 2, 30, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_within_window(30)) is None

    def test_outside_series(self, weather) -> None:
        instant = dt.datetime(2024, 2, 1, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_within_window(30)) is None

    def test_wider_window(self, weather) -> None:
        instant = dt.datetime(2024, 1, 2, 0, 30, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant, nearest_within_window(120)) == 23.0

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_rejects_non_positive_window(self, minutes: float) -> None:
        with pytest.raises(ValueError, match="positive"):
            nearest_within_window(minutes)


class TestValueAtMissingData:
    def test_unknown_variable(self, weather) -> None:
        instant = dt.datetime(2024, 1, 1, 1, tzinfo=UTC)
        assert value_at(weather, "precipitation", instant) is None

    def test_null_value(self) -> None:
        weather = make_weather({"temperature_2m": [1.0, None, 3.0]})
        instant = dt.datetime(2024, 1, 1, 1, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant) is None

    def test_empty_series(self) -> None:
        weather = make_weather({"temperature_2m": []})
        instant = dt.datetime(2024, 1, 1, tzinfo=UTC)
        assert value_at(weather, "temperature_2m", instant) is None
