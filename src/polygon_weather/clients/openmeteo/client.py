from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Protocol
import httpx
from pydantic import ValidationError as PydanticValidationError
from polygon_weather.config.settings import ProviderSettings
from polygon_weather.errors import ProviderError
from .constants import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT_SECONDS, WEATHER_ENDPOINTS
from .models import (
    OpenMeteoAPIError,
    OpenMeteoRateLimitError,
    ProviderQuery,
    WeatherData,
)

LOGGER = logging.getLogger(__name__)


class WeatherProvider(Protocol):
    async def fetch_hourly(self, query: ProviderQuery) -> WeatherData:
        ...


def _augment_http_error(exc: httpx.HTTPStatusError) -> OpenMeteoAPIError:
    """Convert httpx.HTTPStatusError to OpenMeteoAPIError with additional details."""
    response = exc.response
    status_code = response.status_code
    detail: Optional[str] = None
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("reason") or body.get("error")
            if detail is not None:
                detail = str(detail)
    except ValueError:
        detail = response.text[:200] or None

    message = f"Open-Meteo request failed with HTTP {status_code}"
    if detail:
        message = f"{message} (details: {detail})"

    if status_code == 429:
        return OpenMeteoRateLimitError(
            message, status_code=status_code, detail=detail, response=response
        )
    return OpenMeteoAPIError(
        message, status_code=status_code, detail=detail, response=response
    )


def parse_weather_payload(payload: Any, query: ProviderQuery) -> WeatherData:
    """Validate a decoded response body against the query that produced it.

    Raises:
        ProviderError: If the body is not a series for every requested variable.
    """
    if not isinstance(payload, dict):
        raise ProviderError(f"Unexpected Open-Meteo payload type: {type(payload).__name__}")
    hourly = payload.get("hourly")
    if not isinstance(hourly, dict) or "time" not in hourly:
        raise ProviderError("Open-Meteo payload has no hourly time series")
    missing = [name for name in query.variables if name not in hourly]
    if missing:
        raise ProviderError(f"Open-Meteo payload is missing hourly variables: {', '.join(missing)}")
    try:
        return WeatherData.model_validate(payload)
    except PydanticValidationError as exc:
        raise ProviderError(f"Malformed Open-Meteo payload: {exc}") from exc


class OpenMeteoClient:
    """Async client for the Open-Meteo hourly archive/forecast API.

    A single GET is issued per query; failures are raised, never retried.
    Pass ``http_client`` to share a connection pool or inject a mock transport.
    """

    def __init__(
        self,
        base_url: str = WEATHER_ENDPOINTS[DEFAULT_ENDPOINT],
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: ProviderSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "OpenMeteoClient":
        return cls(
            settings.base_url,
            timeout=settings.openmeteo_timeout_seconds,
            http_client=http_client,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "OpenMeteoClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def fetch_hourly(self, query: ProviderQuery) -> WeatherData:
        """Fetch the hourly series described by ``query``.

        Raises:
            OpenMeteoAPIError: Non-success HTTP status.
            OpenMeteoRateLimitError: HTTP 429.
            ProviderError: Transport failure or unparseable/malformed body.
        """
        params: Dict[str, str] = query.to_params()
        LOGGER.info(
            "Requesting %s for (%s, %s) %s -> %s",
            params["hourly"],
            params["latitude"],
            params["longitude"],
            query.start_date,
            query.end_date,
        )
        try:
            response = await self._http_client.get(self._base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _augment_http_error(exc) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"Open-Meteo request to {self._base_url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(f"Open-Meteo returned a non-JSON body: {exc}") from exc
        return parse_weather_payload(payload, query)


__all__ = [
    "WeatherProvider",
    "OpenMeteoClient",
    "parse_weather_payload",
]
