"""Ambient weather sampling (Open-Meteo, no API key).

Resolution order on each refresh:
  1. fresh cache (younger than ``cache_s``) → use as is
  2. locate → forecast lookup → cache and use
  3. any failure → stale cache if present, else clear sky with a
     clock-derived day/night guess

Nothing here raises into the caller; the render loop only ever reads
``WeatherClient.current``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Final, Protocol

import httpx

from presence.store.kv_store import WEATHER_CACHE_KEY, KeyValueStore

log = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
IP_LOCATE_URL = "https://ipapi.co/json/"
CACHE_DURATION_S = 30 * 60
DAY_START_HOUR = 6
DAY_END_HOUR = 20


class WeatherError(RuntimeError):
    """Raised when the forecast lookup fails or returns garbage."""


class LocationError(RuntimeError):
    """Raised when no coordinates can be determined."""


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    FOG = "fog"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    HEAVY_RAIN = "heavy_rain"
    SNOW = "snow"
    HEAVY_SNOW = "heavy_snow"
    THUNDERSTORM = "thunderstorm"


# WMO weather interpretation codes → condition.
WEATHER_CODES: Final[dict[int, WeatherCondition]] = {
    0: WeatherCondition.CLEAR,
    1: WeatherCondition.CLEAR,
    2: WeatherCondition.PARTLY_CLOUDY,
    3: WeatherCondition.CLOUDY,
    45: WeatherCondition.FOG,
    48: WeatherCondition.FOG,
    51: WeatherCondition.DRIZZLE,
    53: WeatherCondition.DRIZZLE,
    55: WeatherCondition.DRIZZLE,
    61: WeatherCondition.RAIN,
    63: WeatherCondition.RAIN,
    65: WeatherCondition.HEAVY_RAIN,
    71: WeatherCondition.SNOW,
    73: WeatherCondition.SNOW,
    75: WeatherCondition.HEAVY_SNOW,
    77: WeatherCondition.SNOW,
    80: WeatherCondition.RAIN,
    81: WeatherCondition.RAIN,
    82: WeatherCondition.HEAVY_RAIN,
    85: WeatherCondition.SNOW,
    86: WeatherCondition.HEAVY_SNOW,
    95: WeatherCondition.THUNDERSTORM,
    96: WeatherCondition.THUNDERSTORM,
    99: WeatherCondition.THUNDERSTORM,
}


def map_weather_code(code: object) -> WeatherCondition:
    """Unknown or non-integer codes map to clear."""
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return WeatherCondition.CLEAR
    if isinstance(code, float) and not code.is_integer():
        return WeatherCondition.CLEAR
    return WEATHER_CODES.get(int(code), WeatherCondition.CLEAR)


def is_daytime(hour: int) -> bool:
    return DAY_START_HOUR <= hour < DAY_END_HOUR


@dataclass(slots=True)
class WeatherSample:
    condition: WeatherCondition = WeatherCondition.CLEAR
    is_day: bool = True
    temperature: float | None = None
    timestamp_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "condition": self.condition.value,
            "is_day": self.is_day,
            "temperature": self.temperature,
            "timestamp_ms": self.timestamp_ms,
            "error": self.error,
        }


# -- location ----------------------------------------------------------------


class Locator(Protocol):
    async def locate(self) -> tuple[float, float]: ...


class StaticLocator:
    """Fixed coordinates from configuration."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._coords = (float(latitude), float(longitude))

    async def locate(self) -> tuple[float, float]:
        return self._coords


class IpLocator:
    """Coarse location from the public IP address."""

    def __init__(
        self,
        url: str = IP_LOCATE_URL,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    async def locate(self) -> tuple[float, float]:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                resp = await client.get(self._url)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise LocationError(f"location lookup failed: {msg}") from e

        if resp.status_code != 200:
            raise LocationError(f"location lookup returned {resp.status_code}")
        try:
            body = resp.json()
            lat = float(body["latitude"])
            lon = float(body["longitude"])
        except (ValueError, KeyError, TypeError) as e:
            raise LocationError("location lookup returned no coordinates") from e
        return lat, lon


# -- forecast ----------------------------------------------------------------


class WeatherClient:
    """Cached ambient weather for the atmosphere layer."""

    def __init__(
        self,
        store: KeyValueStore,
        locator: Locator,
        base_url: str = OPEN_METEO_URL,
        timeout_s: float = 10.0,
        cache_s: float = CACHE_DURATION_S,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._locator = locator
        self._base_url = base_url
        self._timeout_s = timeout_s
        self._cache_s = cache_s
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None
        self._current = self._fallback(None)
        self._loaded = False

    @property
    def current(self) -> WeatherSample:
        return self._current

    @property
    def loaded(self) -> bool:
        """False until the first refresh finished (render skips weather until then)."""
        return self._loaded

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
            )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def refresh(self) -> WeatherSample:
        cached = self._load_cache()
        now_ms = self._now_ms()
        if cached is not None and now_ms - cached.timestamp_ms < self._cache_s * 1000:
            self._set_current(cached)
            return cached

        try:
            lat, lon = await self._locator.locate()
        except LocationError as e:
            log.warning("weather: %s", e)
            return self._set_current(self._degrade(cached, str(e)))

        try:
            sample = await self.fetch(lat, lon)
        except WeatherError as e:
            log.warning("weather: %s", e)
            return self._set_current(self._degrade(cached, str(e)))

        self._save_cache(sample, lat, lon)
        log.info(
            "weather: %s (%s) %s",
            sample.condition.value,
            "day" if sample.is_day else "night",
            "n/a" if sample.temperature is None else f"{sample.temperature:.1f}C",
        )
        return self._set_current(sample)

    async def fetch(self, lat: float, lon: float) -> WeatherSample:
        client = self._require_client()
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m,weather_code,is_day",
        }
        try:
            resp = await client.get(self._base_url, params=params)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise WeatherError(f"request failed: {msg}") from e

        if resp.status_code != 200:
            raise WeatherError(f"forecast returned {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise WeatherError("invalid JSON response from forecast") from e

        current = body.get("current") if isinstance(body, dict) else None
        if not isinstance(current, dict):
            raise WeatherError("invalid forecast payload: missing current block")

        temp = current.get("temperature_2m")
        return WeatherSample(
            condition=map_weather_code(current.get("weather_code", 0)),
            is_day=current.get("is_day") == 1,
            temperature=float(temp) if isinstance(temp, (int, float)) else None,
            timestamp_ms=self._now_ms(),
        )

    async def run(self, interval_s: float | None = None) -> None:
        """Refresh once per cache window until cancelled."""
        interval = self._cache_s if interval_s is None else interval_s
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("weather: refresh failed")
            await asyncio.sleep(interval)

    # -- internals -----------------------------------------------------------

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("weather client not started")
        return self._client

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _set_current(self, sample: WeatherSample) -> WeatherSample:
        self._current = sample
        self._loaded = True
        return sample

    def _fallback(self, error: str | None) -> WeatherSample:
        hour = datetime.fromtimestamp(self._clock()).hour
        return WeatherSample(
            condition=WeatherCondition.CLEAR,
            is_day=is_daytime(hour),
            temperature=None,
            timestamp_ms=0,
            error=error,
        )

    def _degrade(self, cached: WeatherSample | None, error: str) -> WeatherSample:
        if cached is not None:
            cached.error = error
            return cached
        return self._fallback(error)

    def _load_cache(self) -> WeatherSample | None:
        try:
            raw = self._store.get(WEATHER_CACHE_KEY)
        except Exception as e:
            log.warning("weather: failed to read cache: %s", e)
            return None
        if not isinstance(raw, dict):
            return None
        data = raw.get("data")
        if not isinstance(data, dict):
            return None
        try:
            temp = data.get("temperature")
            return WeatherSample(
                condition=WeatherCondition(data.get("condition", "clear")),
                is_day=bool(data.get("isDay", True)),
                temperature=float(temp) if temp is not None else None,
                timestamp_ms=int(raw.get("timestamp", 0)),
            )
        except (TypeError, ValueError):
            return None

    def _save_cache(self, sample: WeatherSample, lat: float, lon: float) -> None:
        payload = {
            "data": {
                "condition": sample.condition.value,
                "isDay": sample.is_day,
                "temperature": sample.temperature,
            },
            "timestamp": sample.timestamp_ms,
            "lat": lat,
            "lon": lon,
        }
        try:
            self._store.set(WEATHER_CACHE_KEY, payload)
        except Exception as e:
            log.warning("weather: failed to write cache: %s", e)
