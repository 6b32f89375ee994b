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
from polygon_weather.utils.logging_config import configure_logging

__all__ = [
    # Date utilities
    "default_time_range",
    "format_date",
    "parse_date",
    "parse_date_argparse",
    "parse_datetime",
    "parse_datetime_argparse",
    "to_utc",
    "utc_now",
    # Logging
    "configure_logging",
]
