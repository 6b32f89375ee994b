"""Data models for polygons, color rules, time ranges and weather data sources.

Polygons and rules are immutable pydantic models; every mutation in the store
produces a new record. Field aliases keep the camelCase names used by the
persisted dashboard state (``dataSource``, ``colorRules`` ...).
"""
from __future__ import annotations
import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from polygon_weather.errors import ValidationError
from polygon_weather.utils.date_utils import format_date, to_utc

Operator = Literal["<", "<=", ">", ">=", "=", "!="]
OPERATORS: Tuple[str, ...] = ("<", "<=", ">", ">=", "=", "!=")

MIN_VERTICES = 3
MAX_VERTICES = 12


@dataclass(frozen=True)
class DataSource:
    """Weather variable a polygon can be bound to."""
    id: str
    label: str
    unit: str
    api_field: str


DATA_SOURCES: Dict[str, DataSource] = {
    source.id: source
    for source in (
        DataSource("temperature_2m", "Temperature (2m)", "°C", "temperature_2m"),
        DataSource("relative_humidity_2m", "Relative Humidity (2m)", "%", "relative_humidity_2m"),
        DataSource("precipitation", "Precipitation", "mm", "precipitation"),
        DataSource("wind_speed_10m", "Wind Speed (10m)", "km/h", "wind_speed_10m"),
    )
}


def get_data_source(source_id: Any) -> DataSource:
    """Look up a data source by id.

    Raises:
        ValidationError: If the id is not one of the recognized variables.
    """
    if not isinstance(source_id, str) or source_id not in DATA_SOURCES:
        raise ValidationError(
            f"Unknown data source: {source_id!r} (expected one of {', '.join(DATA_SOURCES)})"
        )
    return DATA_SOURCES[source_id]


class LatLng(BaseModel):
    """Geographic coordinate in decimal degrees.

    Attributes:
        lat: Latitude.
        lng: Longitude.
    """

    lat: float
    lng: float

    model_config = {"frozen": True}


class ColorRule(BaseModel):
    """Threshold condition plus the color assigned when it matches.

    Attributes:
        id: Identifier, unique within its polygon.
        operator: Comparison applied as ``value <operator> rule.value``.
        value: Threshold.
        color: Color token (e.g. ``#ef4444``).
    """

    id: str
    operator: Operator
    value: float
    color: str

    model_config = {"frozen": True}


class Polygon(BaseModel):
    """User-drawn polygon bound to a weather variable."""

    id: str
    coordinates: Tuple[LatLng, ...]
    label: str
    data_source: str = Field(alias="dataSource")
    color_rules: Tuple[ColorRule, ...] = Field(default=(), alias="colorRules")
    current_color: Optional[str] = Field(None, alias="currentColor")
    custom_color: Optional[str] = Field(None, alias="customColor")
    is_highlighted: bool = Field(False, alias="isHighlighted")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("color_rules")
    @classmethod
    def unique_rule_ids(cls, v: Tuple[ColorRule, ...]) -> Tuple[ColorRule, ...]:
        """Rule ids must be unique within one polygon."""
        seen = set()
        for rule in v:
            if rule.id in seen:
                raise ValueError(f"Duplicate color rule id: {rule.id}")
            seen.add(rule.id)
        return v


class TimeRange(BaseModel):
    """Window for which weather data is fetched.

    Naive datetimes are taken as UTC; both bounds are stored timezone-aware.
    """

    start: dt.datetime
    end: dt.datetime

    model_config = {"frozen": True}

    @field_validator("start", "end")
    @classmethod
    def normalize_utc(cls, v: dt.datetime) -> dt.datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError(f"Range start ({self.start}) must not be after end ({self.end})")
        return self

    @property
    def start_date(self) -> str:
        """Start as ``YYYY-MM-DD`` (UTC calendar date)."""
        return format_date(self.start)

    @property
    def end_date(self) -> str:
        """End as ``YYYY-MM-DD`` (UTC calendar date)."""
        return format_date(self.end)

    @classmethod
    def parse(cls, start: Any, end: Any) -> "TimeRange":
        """Build a range from datetimes or ISO strings.

        Raises:
            ValidationError: If a bound is missing, unparseable, or start > end.
        """
        if start is None or end is None:
            raise ValidationError("Invalid date range: start and end are required")
        try:
            return cls(start=start, end=end)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid date range: {exc}") from exc


def coerce_time_range(value: Any) -> TimeRange:
    """Accept a TimeRange, a ``{start, end}`` mapping or a 2-tuple."""
    if isinstance(value, TimeRange):
        return value
    if isinstance(value, dict):
        return TimeRange.parse(value.get("start"), value.get("end"))
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return TimeRange.parse(value[0], value[1])
    raise ValidationError(f"Invalid date range: {value!r}")


__all__ = [
    "Operator",
    "OPERATORS",
    "MIN_VERTICES",
    "MAX_VERTICES",
    "DataSource",
    "DATA_SOURCES",
    "get_data_source",
    "LatLng",
    "ColorRule",
    "Polygon",
    "TimeRange",
    "coerce_time_range",
]
