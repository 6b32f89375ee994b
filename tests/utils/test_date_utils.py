"""Tests for date utilities module."""

from __future__ import annotations

import argparse
import datetime as dt

import pytest

from polygon_weather.utils.date_utils import (
    default_time_range,
    format_date,
    parse_date,
    parse_date_argparse,
    parse_datetime,
    parse_datetime_argparse,
    to_utc,
    utc_now,
)

UTC = dt.timezone.utc


class TestToUtc:
    """Tests for to_utc normalization."""

    def test_naive_is_assumed_utc(self) -> None:
        assert to_utc(dt.datetime(2024, 1, 15, 12, 0)) == dt.datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    def test_aware_is_converted(self) -> None:
        value = dt.datetime(2024, 1, 15, 12, 0, tzinfo=dt.timezone(dt.timedelta(hours=7)))
        result = to_utc(value)
        assert result.tzinfo == UTC
        assert result.hour == 5

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None


class TestFormatDate:
    def test_uses_utc_calendar_date(self) -> None:
        """23:30 at UTC-5 is already the next day in UTC."""
        value = dt.datetime(2024, 1, 31, 23, 30, tzinfo=dt.timezone(dt.timedelta(hours=-5)))
        assert format_date(value) == "2024-02-01"

    def test_naive(self) -> None:
        assert format_date(dt.datetime(2024, 3, 5, 1, 0)) == "2024-03-05"


class TestDefaultTimeRange:
    def test_fifteen_days_each_side(self) -> None:
        now = dt.datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
        start, end = default_time_range(now=now)
        assert start == dt.datetime(2024, 5, 31, 12, 0, tzinfo=UTC)
        assert end == dt.datetime(2024, 6, 30, 12, 0, tzinfo=UTC)

    def test_custom_offsets(self) -> None:
        now = dt.datetime(2024, 6, 15, tzinfo=UTC)
        start, end = default_time_range(1, 0, now=now)
        assert (now - start).days == 1
        assert end == now

    def test_negative_offset_raises(self) -> None:
        with pytest.raises(ValueError, match="must not be negative"):
            default_time_range(-1, 15)


class TestParseDate:
    """Tests for parse_date function."""

    def test_parse_date_valid(self) -> None:
        assert parse_date("2024-01-15") == dt.date(2024, 1, 15)

    @pytest.mark.parametrize("value", ["2024/01/15", "2024-02-30", ""])
    def test_parse_date_invalid(self, value: str) -> None:
        with pytest.raises(ValueError, match="Invalid date"):
            parse_date(value)

    def test_argparse_variant(self) -> None:
        assert parse_date_argparse("2024-12-31") == dt.date(2024, 12, 31)
        with pytest.raises(argparse.ArgumentTypeError, match="YYYY-MM-DD"):
            parse_date_argparse("31-12-2024")


class TestParseDatetime:
    """Tests for parse_datetime function."""

    def test_naive_becomes_utc(self) -> None:
        assert parse_datetime("2024-01-15T10:30") == dt.datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def test_offset_is_converted(self) -> None:
        assert parse_datetime("2024-01-15T10:30:00+02:00") == dt.datetime(2024, 1, 15, 8, 30, tzinfo=UTC)

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="ISO 8601"):
            parse_datetime("yesterday")

    def test_argparse_variant(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_datetime_argparse("noon")
