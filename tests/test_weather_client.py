"""Tests for weather lookup, caching and fallback."""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest

from presence.devices.weather_client import (
    IpLocator,
    LocationError,
    StaticLocator,
    WeatherClient,
    WeatherCondition,
    WeatherError,
    is_daytime,
    map_weather_code,
)
from presence.store.kv_store import WEATHER_CACHE_KEY, MemoryStore

NOW_S = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = NOW_S) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _forecast(code: int = 61, is_day: int = 1, temp: float = 12.5) -> dict:
    return {"current": {"temperature_2m": temp, "weather_code": code, "is_day": is_day}}


class CountingHandler:
    def __init__(self, response: httpx.Response | None = None) -> None:
        self.calls: list[httpx.Request] = []
        self.response = response or httpx.Response(200, json=_forecast())

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.response


def _client(store, handler, clock=None, locator=None) -> WeatherClient:
    return WeatherClient(
        store,
        locator or StaticLocator(52.5, 13.4),
        transport=httpx.MockTransport(handler),
        clock=clock or FakeClock(),
    )


@pytest.mark.parametrize(
    "code, condition",
    [
        (0, WeatherCondition.CLEAR),
        (2, WeatherCondition.PARTLY_CLOUDY),
        (3, WeatherCondition.CLOUDY),
        (48, WeatherCondition.FOG),
        (53, WeatherCondition.DRIZZLE),
        (61, WeatherCondition.RAIN),
        (65, WeatherCondition.HEAVY_RAIN),
        (77, WeatherCondition.SNOW),
        (86, WeatherCondition.HEAVY_SNOW),
        (82, WeatherCondition.HEAVY_RAIN),
        (95, WeatherCondition.THUNDERSTORM),
        (999, WeatherCondition.CLEAR),
        ("61", WeatherCondition.CLEAR),
        (None, WeatherCondition.CLEAR),
    ],
)
def test_weather_code_table(code, condition):
    assert map_weather_code(code) == condition


def test_daytime_window():
    assert not is_daytime(5)
    assert is_daytime(6)
    assert is_daytime(19)
    assert not is_daytime(20)


@pytest.mark.asyncio
async def test_fetch_parses_current_block(store):
    handler = CountingHandler(httpx.Response(200, json=_forecast(95, 0, -1.0)))
    client = _client(store, handler)
    await client.start()
    sample = await client.fetch(52.5, 13.4)
    await client.stop()

    assert sample.condition == WeatherCondition.THUNDERSTORM
    assert sample.is_day is False
    assert sample.temperature == -1.0
    params = handler.calls[0].url.params
    assert params["latitude"] == "52.5"
    assert params["current"] == "temperature_2m,weather_code,is_day"


@pytest.mark.asyncio
async def test_fetch_errors_are_wrapped(store):
    client = _client(store, CountingHandler(httpx.Response(503)))
    await client.start()
    with pytest.raises(WeatherError):
        await client.fetch(0, 0)
    await client.stop()

    client = _client(store, CountingHandler(httpx.Response(200, json={"hourly": {}})))
    await client.start()
    with pytest.raises(WeatherError):
        await client.fetch(0, 0)
    await client.stop()


@pytest.mark.asyncio
async def test_fetch_requires_start(store):
    client = _client(store, CountingHandler())
    with pytest.raises(RuntimeError):
        await client.fetch(0, 0)


@pytest.mark.asyncio
async def test_refresh_caches_for_window(store):
    clock = FakeClock()
    handler = CountingHandler()
    client = _client(store, handler, clock)
    await client.start()

    first = await client.refresh()
    assert first.condition == WeatherCondition.RAIN
    assert client.loaded
    cached = store.get(WEATHER_CACHE_KEY)
    assert cached["data"] == {"condition": "rain", "isDay": True, "temperature": 12.5}
    assert cached["lat"] == 52.5 and cached["lon"] == 13.4

    clock.now += 29 * 60
    await client.refresh()
    assert len(handler.calls) == 1

    clock.now += 2 * 60
    await client.refresh()
    assert len(handler.calls) == 2
    await client.stop()


@pytest.mark.asyncio
async def test_stale_cache_preferred_on_failure(store):
    clock = FakeClock()
    handler = CountingHandler(httpx.Response(200, json=_forecast(71)))
    client = _client(store, handler, clock)
    await client.start()
    await client.refresh()

    clock.now += 60 * 60
    handler.response = httpx.Response(500)
    sample = await client.refresh()
    await client.stop()

    assert sample.condition == WeatherCondition.SNOW
    assert sample.error
    assert client.current is sample


@pytest.mark.asyncio
async def test_location_failure_falls_back_to_clock():
    def locate_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    locator = IpLocator(transport=httpx.MockTransport(locate_handler))
    handler = CountingHandler()
    clock = FakeClock()
    client = _client(MemoryStore(), handler, clock, locator=locator)
    await client.start()
    sample = await client.refresh()
    await client.stop()

    assert handler.calls == []
    assert sample.condition == WeatherCondition.CLEAR
    assert sample.is_day == is_daytime(datetime.fromtimestamp(clock.now).hour)
    assert sample.error


@pytest.mark.asyncio
async def test_ip_locator_reads_coordinates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"latitude": 48.1, "longitude": 11.6, "city": "x"})

    locator = IpLocator(transport=httpx.MockTransport(handler))
    assert await locator.locate() == (48.1, 11.6)


@pytest.mark.asyncio
async def test_ip_locator_rejects_missing_coordinates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": True, "reason": "RateLimited"})

    locator = IpLocator(transport=httpx.MockTransport(handler))
    with pytest.raises(LocationError):
        await locator.locate()


@pytest.mark.asyncio
async def test_corrupt_cache_is_ignored():
    store = MemoryStore({WEATHER_CACHE_KEY: {"data": {"condition": "hail"}, "timestamp": NOW_S * 1000}})
    handler = CountingHandler()
    client = _client(store, handler)
    await client.start()
    sample = await client.refresh()
    await client.stop()
    assert sample.condition == WeatherCondition.RAIN
    assert len(handler.calls) == 1
