"""Nearest-in-time lookup of a weather value.

Two independent policies are kept on purpose, one per call site:

* ``nearest_unconditional()`` - the live color updater; always picks the
  closest timestamp, however far away.
* ``nearest_within_window(minutes)`` - the auxiliary value lookup; picks the
  closest timestamp strictly inside the window, or nothing.

Both break ties towards the lowest index.
"""
from __future__ import annotations
import datetime as dt
import math
from dataclasses import dataclass
from typing import Optional, Protocol
import numpy as np
import pandas as pd
from polygon_weather.clients.openmeteo.models import WeatherData
from polygon_weather.utils.date_utils import to_utc

DEFAULT_WINDOW_MINUTES = 30.0


class TimeMatchStrategy(Protocol):
    name: str

    def index_for(self, times: pd.DatetimeIndex, instant: dt.datetime) -> Optional[int]:
        ...


def _abs_deltas(times: pd.DatetimeIndex, instant: dt.datetime) -> np.ndarray:
    target = pd.Timestamp(to_utc(instant))
    return np.abs((times - target).to_numpy())


@dataclass(frozen=True)
class NearestUnconditional:
    name: str = "nearest_unconditional"

    def index_for(self, times: pd.DatetimeIndex, instant: dt.datetime) -> Optional[int]:
        if len(times) == 0:
            return None
        # argmin returns the first occurrence of the minimum
        return int(np.argmin(_abs_deltas(times, instant)))


@dataclass(frozen=True)
class NearestWithinWindow:
    tolerance_minutes: float = DEFAULT_WINDOW_MINUTES
    name: str = "nearest_within_window"

    def index_for(self, times: pd.DatetimeIndex, instant: dt.datetime) -> Optional[int]:
        if len(times) == 0:
            return None
        deltas = _abs_deltas(times, instant)
        limit = np.timedelta64(int(self.tolerance_minutes * 60 * 1_000_000), "us")
        candidates = np.flatnonzero(deltas < limit)
        if candidates.size == 0:
            return None
        return int(candidates[np.argmin(deltas[candidates])])


def nearest_unconditional() -> NearestUnconditional:
    return NearestUnconditional()


def nearest_within_window(tolerance_minutes: float = DEFAULT_WINDOW_MINUTES) -> NearestWithinWindow:
    if tolerance_minutes <= 0:
        raise ValueError(f"Window must be positive, got {tolerance_minutes} minutes")
    return NearestWithinWindow(tolerance_minutes=tolerance_minutes)


def value_at(
    weather: WeatherData,
    variable: str,
    instant: dt.datetime,
    strategy: Optional[TimeMatchStrategy] = None,
) -> Optional[float]:
    """Value of ``variable`` at the timestamp ``strategy`` picks for ``instant``.

    Returns:
        The value, or None when the variable is absent, no timestamp matches,
        or the provider reported null for that hour.
    """
    strategy = strategy or nearest_unconditional()
    frame = weather.to_frame()
    if variable not in frame.columns:
        return None
    index = strategy.index_for(frame.index, instant)
    if index is None:
        return None
    value = frame[variable].iloc[index]
    if value is None or math.isnan(value):
        return None
    return float(value)


__all__ = [
    "DEFAULT_WINDOW_MINUTES",
    "TimeMatchStrategy",
    "NearestUnconditional",
    "NearestWithinWindow",
    "nearest_unconditional",
    "nearest_within_window",
    "value_at",
]
