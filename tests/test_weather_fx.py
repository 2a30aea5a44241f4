"""Tests for weather particles, atmosphere and thunder flashes."""

from __future__ import annotations

import random

import pygame
import pytest

from presence.devices.weather_client import WeatherCondition, WeatherSample
from presence.render.constants import RESPAWN_Y, THUNDER_FLASH_DECAY, THUNDER_FLASH_OPACITY
from presence.render.weather_fx import (
    ThunderFlash,
    WeatherLayer,
    WeatherParticle,
    create_particle,
    particle_count,
    update_particle,
    wash_for,
)


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.mark.parametrize(
    "condition, count",
    [
        (WeatherCondition.RAIN, 100),
        (WeatherCondition.DRIZZLE, 100),
        (WeatherCondition.HEAVY_RAIN, 200),
        (WeatherCondition.SNOW, 50),
        (WeatherCondition.HEAVY_SNOW, 100),
        (WeatherCondition.THUNDERSTORM, 150),
        (WeatherCondition.CLEAR, 20),
        (WeatherCondition.FOG, 20),
    ],
)
def test_particle_counts(condition, count):
    assert particle_count(condition) == count


def test_precipitation_starts_above_screen():
    rng = random.Random(1)
    assert create_particle(rng, 400, 400, WeatherCondition.SNOW).y == RESPAWN_Y
    star = create_particle(rng, 400, 400, WeatherCondition.CLEAR)
    assert 0 <= star.y <= 400


def test_rain_falls_and_respawns():
    p = WeatherParticle(x=10, y=395, size=2, speed=2, opacity=0.5, drift=0.2, twinkle=0)
    update_particle(p, 0.0, 400, 400, WeatherCondition.RAIN, FixedRandom(0.5))
    assert p.y == RESPAWN_Y
    assert p.x == 200

    p = WeatherParticle(x=10, y=0, size=2, speed=2, opacity=0.5, drift=0.2, twinkle=0)
    update_particle(p, 0.0, 400, 400, WeatherCondition.THUNDERSTORM, FixedRandom(0.5))
    assert p.y == pytest.approx(10.0)
    assert p.x == pytest.approx(10.2)


def test_stars_twinkle_and_wrap():
    p = WeatherParticle(x=451, y=10, size=2, speed=1, opacity=0.5, drift=0.25, twinkle=0)
    update_particle(p, 0.0, 400, 400, WeatherCondition.CLEAR, random.Random())
    assert p.twinkle == pytest.approx(0.02)
    assert p.x == -50


def test_wash_selection():
    assert wash_for(WeatherCondition.CLOUDY, False) is not None
    assert wash_for(WeatherCondition.CLEAR, True) != wash_for(WeatherCondition.FOG, True)
    assert wash_for(WeatherCondition.CLOUDY, True) is None


def test_thunder_flash_decays_per_frame():
    flash = ThunderFlash(FixedRandom(0.0))  # interval = 3000ms
    assert flash.update(1000.0, True) == 0.0
    assert flash.update(3001.0, True) == THUNDER_FLASH_OPACITY
    assert flash.update(3017.0, True) == pytest.approx(THUNDER_FLASH_OPACITY - THUNDER_FLASH_DECAY)
    assert flash.update(3034.0, True) == pytest.approx(THUNDER_FLASH_OPACITY - 2 * THUNDER_FLASH_DECAY)
    for _ in range(30):
        last = flash.update(3050.0, True)
    assert last == 0.0
    assert flash.flash_count == 1


def test_thunder_interval_redrawn_after_flash():
    rng = FixedRandom(1.0)
    flash = ThunderFlash(rng)
    assert flash.interval_ms == 8000.0
    rng.value = 0.5
    flash.update(9000.0, True)
    assert flash.interval_ms == 5500.0


def test_no_flash_outside_storms():
    flash = ThunderFlash(FixedRandom(0.0))
    assert flash.update(100_000.0, False) == 0.0
    assert flash.flash_count == 0


def test_layer_reseeds_on_condition_change():
    layer = WeatherLayer(random.Random(4))
    assert layer.ensure(WeatherCondition.RAIN, 400, 400)
    assert not layer.ensure(WeatherCondition.RAIN, 400, 400)
    assert layer.ensure(WeatherCondition.SNOW, 400, 400)
    assert len(layer.particles) == 50


def test_layer_renders_night_sky():
    layer = WeatherLayer(random.Random(4))
    surface = pygame.Surface((400, 400), pygame.SRCALPHA)
    sample = WeatherSample(condition=WeatherCondition.CLEAR, is_day=False)
    assert layer.render(surface, 0.0, sample) == 0.0
    # Night wash darkens the corners.
    assert surface.get_at((0, 0)).a > 0
