"""Weather underlay: atmosphere wash, sun/moon, precipitation and stars.

Precipitation and star motion are pure updates on ``WeatherParticle``;
``ThunderFlash`` keeps its own clock so flash timing is testable with an
injected ``random.Random``.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass

import pygame

from presence.devices.weather_client import WeatherCondition, WeatherSample
from presence.render.constants import (
    MOON_ALPHA,
    MOON_COLOR,
    MOON_RADIUS,
    RAIN_COLOR,
    RAIN_SPEED_SCALE,
    RAIN_STREAK_LEN,
    RESPAWN_Y,
    SNOW_COLOR,
    SNOW_DRIFT_AMP,
    SNOW_DRIFT_FREQ,
    STAR_COLOR,
    STAR_DRIFT_SCALE,
    STAR_TWINKLE_STEP,
    STAR_WRAP_MARGIN,
    SUN_ALPHA,
    SUN_COLOR,
    SUN_RADIUS,
    THUNDER_FLASH_DECAY,
    THUNDER_FLASH_OPACITY,
    THUNDER_INTERVAL_SPREAD_MS,
    THUNDER_MIN_INTERVAL_MS,
    WASH_FOG,
    WASH_NIGHT,
    WASH_RADIUS,
    WASH_RAIN,
    WASH_SNOW,
    WASH_STEPS,
    WASH_SUNNY,
    WEATHER_COUNT_DEFAULT,
    WEATHER_COUNTS,
)
from presence.render.effects import draw_circle, draw_radial_wash, fill_overlay, rgba

log = logging.getLogger(__name__)

RAIN_LIKE = frozenset(
    {
        WeatherCondition.RAIN,
        WeatherCondition.DRIZZLE,
        WeatherCondition.HEAVY_RAIN,
        WeatherCondition.THUNDERSTORM,
    }
)
SNOW_LIKE = frozenset({WeatherCondition.SNOW, WeatherCondition.HEAVY_SNOW})

WashStops = tuple[tuple[int, int, int, float], tuple[int, int, int, float]]


@dataclass(slots=True)
class WeatherParticle:
    x: float
    y: float
    size: float
    speed: float
    opacity: float
    drift: float
    twinkle: float


def particle_count(condition: WeatherCondition) -> int:
    return WEATHER_COUNTS.get(condition.value, WEATHER_COUNT_DEFAULT)


def create_particle(
    rng: random.Random, width: float, height: float, condition: WeatherCondition
) -> WeatherParticle:
    falling = condition in RAIN_LIKE or condition in SNOW_LIKE
    return WeatherParticle(
        x=rng.random() * width,
        y=RESPAWN_Y if falling else rng.random() * height,
        size=rng.random() * 3 + 1,
        speed=rng.random() * 2 + 1,
        opacity=rng.random() * 0.5 + 0.3,
        drift=(rng.random() - 0.5) * 0.5,
        twinkle=rng.random() * math.pi * 2,
    )


def update_particle(
    p: WeatherParticle,
    t: float,
    width: float,
    height: float,
    condition: WeatherCondition,
    rng: random.Random,
) -> None:
    if condition in RAIN_LIKE:
        p.y += p.speed * RAIN_SPEED_SCALE
        p.x += p.drift
        if p.y > height:
            p.y = RESPAWN_Y
            p.x = rng.random() * width
    elif condition in SNOW_LIKE:
        p.y += p.speed
        p.x += math.sin(t * SNOW_DRIFT_FREQ + p.twinkle) * SNOW_DRIFT_AMP
        if p.y > height:
            p.y = RESPAWN_Y
            p.x = rng.random() * width
    else:
        p.twinkle += STAR_TWINKLE_STEP
        p.x += p.drift * STAR_DRIFT_SCALE
        if p.x > width + STAR_WRAP_MARGIN:
            p.x = -STAR_WRAP_MARGIN
        if p.x < -STAR_WRAP_MARGIN:
            p.x = width + STAR_WRAP_MARGIN


def star_opacity(p: WeatherParticle) -> float:
    return (math.sin(p.twinkle) + 1.0) / 2.0 * p.opacity


def draw_particle(
    surface: pygame.Surface,
    p: WeatherParticle,
    condition: WeatherCondition,
    is_day: bool,
) -> None:
    if condition in RAIN_LIKE:
        pygame.draw.line(
            surface,
            rgba(RAIN_COLOR, p.opacity),
            (int(p.x), int(p.y)),
            (int(p.x + p.drift), int(p.y + RAIN_STREAK_LEN)),
            1,
        )
    elif condition in SNOW_LIKE:
        draw_circle(surface, SNOW_COLOR, p.opacity, (p.x, p.y), p.size)
    elif not is_day:
        draw_circle(surface, STAR_COLOR, star_opacity(p), (p.x, p.y), p.size * 0.5)


def wash_for(condition: WeatherCondition, is_day: bool) -> WashStops | None:
    if not is_day:
        return WASH_NIGHT
    if condition in (WeatherCondition.CLEAR, WeatherCondition.PARTLY_CLOUDY):
        return WASH_SUNNY
    if condition in (
        WeatherCondition.RAIN,
        WeatherCondition.HEAVY_RAIN,
        WeatherCondition.THUNDERSTORM,
    ):
        return WASH_RAIN
    if condition in SNOW_LIKE:
        return WASH_SNOW
    if condition == WeatherCondition.FOG:
        return WASH_FOG
    return None


def draw_atmosphere(
    surface: pygame.Surface, condition: WeatherCondition, is_day: bool
) -> None:
    """Sun or moon plus the radial wash for the current sky."""
    width, height = surface.get_size()
    if not is_day:
        draw_circle(surface, MOON_COLOR, MOON_ALPHA, (width * 0.8, height * 0.2), MOON_RADIUS)
    elif condition in (WeatherCondition.CLEAR, WeatherCondition.PARTLY_CLOUDY):
        draw_circle(surface, SUN_COLOR, SUN_ALPHA, (width * 0.85, height * 0.15), SUN_RADIUS)

    stops = wash_for(condition, is_day)
    if stops is None:
        return
    wash = pygame.Surface((width, height), pygame.SRCALPHA)
    inner, outer = stops
    draw_radial_wash(wash, (width / 2, height / 2), width * WASH_RADIUS, inner, outer, WASH_STEPS)
    surface.blit(wash, (0, 0))


class ThunderFlash:
    """Full-screen white flash at random 3-8 s intervals during storms."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.opacity = 0.0
        self.last_flash_ms = 0.0
        self.interval_ms = self._draw_interval()
        self.flash_count = 0

    def _draw_interval(self) -> float:
        return THUNDER_MIN_INTERVAL_MS + self._rng.random() * THUNDER_INTERVAL_SPREAD_MS

    def update(self, t_ms: float, active: bool) -> float:
        """Advance one frame.  Returns the opacity to draw this frame."""
        if active and t_ms - self.last_flash_ms > self.interval_ms:
            self.opacity = THUNDER_FLASH_OPACITY
            self.last_flash_ms = t_ms
            self.interval_ms = self._draw_interval()
            self.flash_count += 1
            log.debug("weather: thunder flash at %.0fms", t_ms)
        current = self.opacity
        if self.opacity > 0.0:
            self.opacity = max(0.0, self.opacity - THUNDER_FLASH_DECAY)
        return current

    def draw(self, surface: pygame.Surface, opacity: float) -> None:
        fill_overlay(surface, (255, 255, 255), opacity)


class WeatherLayer:
    """Per-condition particle set, reseeded when the sky or surface changes."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.particles: list[WeatherParticle] = []
        self.condition: WeatherCondition | None = None
        self._size: tuple[int, int] = (0, 0)
        self.thunder = ThunderFlash(self._rng)

    def ensure(self, condition: WeatherCondition, width: int, height: int) -> bool:
        if self.condition == condition and self._size == (width, height):
            return False
        self.condition = condition
        self._size = (width, height)
        self.particles = [
            create_particle(self._rng, width, height, condition)
            for _ in range(particle_count(condition))
        ]
        log.debug("weather: seeded %d particles for %s", len(self.particles), condition.value)
        return True

    def render(
        self,
        surface: pygame.Surface,
        t_ms: float,
        sample: WeatherSample,
    ) -> float:
        """Draw the underlay into ``surface``; returns this frame's flash opacity."""
        width, height = surface.get_size()
        self.ensure(sample.condition, width, height)
        draw_atmosphere(surface, sample.condition, sample.is_day)
        for p in self.particles:
            update_particle(p, t_ms, width, height, sample.condition, self._rng)
            draw_particle(surface, p, sample.condition, sample.is_day)
        return self.thunder.update(
            t_ms, sample.condition == WeatherCondition.THUNDERSTORM
        )
