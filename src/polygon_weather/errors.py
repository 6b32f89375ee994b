"""Exception hierarchy for the polygon weather engine."""
from __future__ import annotations
from typing import Optional


class PolygonWeatherError(Exception):
    """Base exception for all polygon weather errors."""
    pass


class ValidationError(PolygonWeatherError, ValueError):
    """Malformed input: bad vertex count, missing label, unknown data source, bad range."""
    pass


class PolygonNotFoundError(PolygonWeatherError, KeyError):
    """No polygon with the requested id exists in the store."""

    def __init__(self, polygon_id: str) -> None:
        super().__init__(f"Polygon not found: {polygon_id}")
        self.polygon_id = polygon_id

    def __str__(self) -> str:
        return f"Polygon not found: {self.polygon_id}"


class ProviderError(PolygonWeatherError):
    """Weather provider request failed or returned a malformed payload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class StorageError(PolygonWeatherError):
    """Persisted dashboard state could not be read or written."""
    pass


__all__ = [
    "PolygonWeatherError",
    "ValidationError",
    "PolygonNotFoundError",
    "ProviderError",
    "StorageError",
]
