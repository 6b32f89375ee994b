"""Unit tests for the async Open-Meteo client and its payload models."""

from __future__ import annotations

import asyncio
import json

import httpx
import pandas as pd
import pytest

from conftest import make_payload
from polygon_weather.clients.openmeteo import (
    OpenMeteoAPIError,
    OpenMeteoClient,
    OpenMeteoRateLimitError,
    ProviderQuery,
    WeatherData,
)
from polygon_weather.clients.openmeteo.client import parse_weather_payload
from polygon_weather.clients.openmeteo.constants import WEATHER_ENDPOINTS
from polygon_weather.config.settings import ProviderSettings
from polygon_weather.errors import ProviderError


@pytest.fixture
def query() -> ProviderQuery:
    return ProviderQuery(
        latitude=51.505123456,
        longitude=-0.09,
        start_date="2024-01-01",
        end_date="2024-01-02",
        variables=("temperature_2m", "relative_humidity_2m"),
    )


def run_fetch(handler, query: ProviderQuery, base_url: str = WEATHER_ENDPOINTS["archive"]) -> WeatherData:
    async def scenario() -> WeatherData:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = OpenMeteoClient(base_url, http_client=http_client)
            return await client.fetch_hourly(query)

    return asyncio.run(scenario())


class TestProviderQuery:
    def test_to_params(self, query) -> None:
        params = query.to_params()
        assert params == {
            "latitude": "51.50512",
            "longitude": "-0.09000",
            "start_date": "2024-01-01",
            "end_date": "2024-01-02",
            "hourly": "temperature_2m,relative_humidity_2m",
            "timezone": "UTC",
        }


class TestWeatherData:
    def test_collects_wire_variables(self) -> None:
        data = WeatherData.model_validate(make_payload({"temperature_2m": [1.0, 2.0], "precipitation": [0.0, None]}))
        assert data.hourly.series("temperature_2m") == (1.0, 2.0)
        assert data.hourly.series("precipitation") == (0.0, None)
        assert data.hourly.series("wind_speed_10m") is None

    def test_to_frame_is_utc_indexed(self) -> None:
        frame = WeatherData.model_validate(make_payload({"temperature_2m": [1.0, None, 3.0]})).to_frame()
        assert str(frame.index.tz) == "UTC"
        assert frame.index[0] == pd.Timestamp("2024-01-01T00:00", tz="UTC")
        assert frame["temperature_2m"].isna().tolist() == [False, True, False]

    def test_to_frame_applies_offset(self) -> None:
        payload = make_payload({"temperature_2m": [1.0]})
        payload["utc_offset_seconds"] = 3600
        frame = WeatherData.model_validate(payload).to_frame()
        assert frame.index[0] == pd.Timestamp("2023-12-31T23:00", tz="UTC")

    def test_misaligned_series_rejected(self) -> None:
        payload = make_payload({"temperature_2m": [1.0, 2.0]})
        payload["hourly"]["temperature_2m"] = [1.0]
        with pytest.raises(ValueError, match="values for 2 timestamps"):
            WeatherData.model_validate(payload)

    def test_to_payload(self) -> None:
        hourly = WeatherData.model_validate(make_payload({"precipitation": [0.5]})).hourly
        assert hourly.to_payload() == {"time": ["2024-01-01T00:00"], "precipitation": [0.5]}


class TestParseWeatherPayload:
    def test_valid(self, query) -> None:
        payload = make_payload({"temperature_2m": [1.0], "relative_humidity_2m": [80.0]})
        assert parse_weather_payload(payload, query).latitude == 51.5

    def test_not_a_dict(self, query) -> None:
        with pytest.raises(ProviderError, match="payload type"):
            parse_weather_payload(["nope"], query)

    def test_missing_hourly(self, query) -> None:
        with pytest.raises(ProviderError, match="no hourly"):
            parse_weather_payload({"latitude": 1.0, "longitude": 2.0}, query)

    def test_missing_variable(self, query) -> None:
        with pytest.raises(ProviderError, match="relative_humidity_2m"):
            parse_weather_payload(make_payload({"temperature_2m": [1.0]}), query)

    def test_malformed_values(self, query) -> None:
        payload = make_payload({"temperature_2m": ["warm"], "relative_humidity_2m": [1.0]})
        with pytest.raises(ProviderError, match="Malformed"):
            parse_weather_payload(payload, query)


class TestOpenMeteoClient:
    def test_sends_query_params(self, query) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=make_payload({"temperature_2m": [7.5], "relative_humidity_2m": [60.0]})
            )

        data = run_fetch(handler, query)

        assert len(seen) == 1
        request = seen[0]
        assert str(request.url).startswith(WEATHER_ENDPOINTS["archive"])
        assert request.url.params["latitude"] == "51.50512"
        assert request.url.params["hourly"] == "temperature_2m,relative_humidity_2m"
        assert data.hourly.series("temperature_2m") == (7.5,)

    def test_http_error_is_not_retried(self, query) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": True, "reason": "Invalid date"})

        with pytest.raises(OpenMeteoAPIError) as exc_info:
            run_fetch(handler, query)

        assert len(calls) == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid date"
        assert "HTTP 400" in str(exc_info.value)

    def test_rate_limit(self, query) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="slow down")

        with pytest.raises(OpenMeteoRateLimitError) as exc_info:
            run_fetch(handler, query)
        assert exc_info.value.detail == "slow down"

    def test_transport_error(self, query) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError, match="connection refused"):
            run_fetch(handler, query)

    def test_non_json_body(self, query) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ProviderError, match="non-JSON"):
            run_fetch(handler, query)

    def test_api_errors_are_provider_errors(self) -> None:
        assert issubclass(OpenMeteoRateLimitError, OpenMeteoAPIError)
        assert issubclass(OpenMeteoAPIError, ProviderError)

    def test_from_settings_selects_endpoint(self, monkeypatch, clean_env) -> None:
        monkeypatch.setenv("OPENMETEO_ENDPOINT", "forecast")
        client = OpenMeteoClient.from_settings(ProviderSettings())
        try:
            assert client.base_url == WEATHER_ENDPOINTS["forecast"]
        finally:
            asyncio.run(client.aclose())

    def test_context_manager_keeps_injected_client_open(self) -> None:
        async def scenario() -> bool:
            http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
            async with OpenMeteoClient(http_client=http_client):
                pass
            closed = http_client.is_closed
            await http_client.aclose()
            return closed

        assert asyncio.run(scenario()) is False

    def test_body_is_json_encoded_payload(self, query) -> None:
        payload = make_payload({"temperature_2m": [1.0], "relative_humidity_2m": [2.0]})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(payload).encode(), headers={"content-type": "application/json"})

        assert run_fetch(handler, query).hourly.to_payload()["relative_humidity_2m"] == [2.0]
