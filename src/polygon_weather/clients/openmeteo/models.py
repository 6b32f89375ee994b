"""Data models and custom exceptions for the Open-Meteo weather client."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import httpx
import pandas as pd
from pydantic import BaseModel, Field, model_validator
from polygon_weather.errors import ProviderError
from .constants import DEFAULT_TIMEZONE


@dataclass(frozen=True)
class ProviderQuery:
    """Hourly series request for a single geographic point."""
    latitude: float
    longitude: float
    start_date: str
    end_date: str
    variables: Tuple[str, ...]
    timezone: str = DEFAULT_TIMEZONE

    def to_params(self) -> Dict[str, str]:
        return {
            "latitude": f"{self.latitude:.5f}",
            "longitude": f"{self.longitude:.5f}",
            "start_date": self.start_date,
            "end_date": self.end_date,
            "hourly": ",".join(self.variables),
            "timezone": self.timezone,
        }


class HourlySeries(BaseModel):
    """Hourly timestamps plus one index-aligned value sequence per variable.

    On the wire the variables sit next to ``time`` in the ``hourly`` object;
    they are collected into ``variables`` on load.
    """

    time: Tuple[str, ...]
    variables: Dict[str, Tuple[Optional[float], ...]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def collect_variables(cls, data: Any) -> Any:
        if isinstance(data, dict) and "variables" not in data:
            rest = dict(data)
            time = rest.pop("time", None)
            return {"time": time, "variables": rest}
        return data

    @model_validator(mode="after")
    def check_alignment(self) -> "HourlySeries":
        for name, values in self.variables.items():
            if len(values) != len(self.time):
                raise ValueError(
                    f"Hourly '{name}' has {len(values)} values for {len(self.time)} timestamps"
                )
        try:
            pd.to_datetime(list(self.time))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Unparseable hourly timestamps: {exc}") from exc
        return self

    def series(self, variable: str) -> Optional[Tuple[Optional[float], ...]]:
        return self.variables.get(variable)

    def to_payload(self) -> Dict[str, List[Any]]:
        payload: Dict[str, List[Any]] = {"time": list(self.time)}
        payload.update({name: list(values) for name, values in self.variables.items()})
        return payload


class WeatherData(BaseModel):
    """Hourly time series for one point, as returned by the provider.

    Attributes:
        latitude: Latitude of the grid cell the provider answered for.
        longitude: Longitude of that grid cell.
        utc_offset_seconds: Offset of the returned timestamps from UTC.
        hourly: Timestamps and per-variable values.
    """

    latitude: float
    longitude: float
    utc_offset_seconds: int = 0
    hourly: HourlySeries

    model_config = {"frozen": True, "extra": "ignore"}

    def to_frame(self) -> pd.DataFrame:
        """Hourly values as a DataFrame indexed by UTC timestamp."""
        index = pd.DatetimeIndex(pd.to_datetime(list(self.hourly.time)), name="time")
        if index.tz is None:
            index = (index - pd.Timedelta(seconds=self.utc_offset_seconds)).tz_localize("UTC")
        else:
            index = index.tz_convert("UTC")
        columns = {name: list(values) for name, values in self.hourly.variables.items()}
        return pd.DataFrame(columns, index=index, dtype="float64")


class OpenMeteoAPIError(ProviderError):
    """API request failed with an error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
        response: Optional[httpx.Response] = None,
    ) -> None:
        super().__init__(message, status_code=status_code, detail=detail)
        self.response = response


class OpenMeteoRateLimitError(OpenMeteoAPIError):
    """Rate limit exceeded (HTTP 429)."""
    pass


__all__ = [
    "ProviderQuery",
    "HourlySeries",
    "WeatherData",
    "OpenMeteoAPIError",
    "OpenMeteoRateLimitError",
]
