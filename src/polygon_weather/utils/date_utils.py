from __future__ import annotations
import argparse
import datetime as dt
from typing import Optional, Tuple


def to_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes are assumed to already be in UTC.

    Examples:
        >>> to_utc(dt.datetime(2024, 1, 15, 12, 0))
        datetime.datetime(2024, 1, 15, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def format_date(value: dt.datetime) -> str:
    """Format the UTC calendar date of ``value`` as YYYY-MM-DD."""
    return to_utc(value).date().isoformat()


def default_time_range(
    days_before: int = 15,
    days_after: int = 15,
    now: Optional[dt.datetime] = None,
) -> Tuple[dt.datetime, dt.datetime]:
    """Window of ``days_before`` days back to ``days_after`` days ahead of ``now``.

    Args:
        days_before: Days before ``now`` (must not be negative).
        days_after: Days after ``now`` (must not be negative).
        now: Reference instant; defaults to the current UTC time.

    Returns:
        Tuple of (start, end) as UTC datetimes.

    Raises:
        ValueError: If either offset is negative.
    """
    if days_before < 0 or days_after < 0:
        raise ValueError(
            f"Range offsets must not be negative, got {days_before} / {days_after}"
        )
    reference = to_utc(now) if now is not None else utc_now()
    return (
        reference - dt.timedelta(days=days_before),
        reference + dt.timedelta(days=days_after),
    )


def parse_date(value: str) -> dt.date:
    """Parse an ISO format date string (YYYY-MM-DD).

    Raises:
        ValueError: If the date string is invalid.

    Examples:
        >>> parse_date("2024-01-15")
        datetime.date(2024, 1, 15)
    """
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD format.") from exc


def parse_date_argparse(value: str) -> dt.date:
    """Same as parse_date but raises argparse.ArgumentTypeError."""
    try:
        return parse_date(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_datetime(value: str) -> dt.datetime:
    """Parse an ISO format datetime string into a UTC datetime.

    Supports formats:
    - YYYY-MM-DDTHH:MM[:SS]
    - YYYY-MM-DDTHH:MM[:SS]+HH:MM (with timezone)

    Raises:
        ValueError: If the datetime string is invalid.
    """
    try:
        return to_utc(dt.datetime.fromisoformat(value))
    except ValueError as exc:
        raise ValueError(
            f"Invalid datetime '{value}'. Expected ISO 8601 format."
        ) from exc


def parse_datetime_argparse(value: str) -> dt.datetime:
    """Same as parse_datetime but raises argparse.ArgumentTypeError."""
    try:
        return parse_datetime(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


__all__ = [
    "to_utc",
    "utc_now",
    "format_date",
    "default_time_range",
    "parse_date",
    "parse_date_argparse",
    "parse_datetime",
    "parse_datetime_argparse",
]
