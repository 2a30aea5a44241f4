"""Ambient particle field driven by presence state.

Update functions are pure motion math on a ``Particle`` (time + phase in,
position/opacity/size out) so they can be tested without a display.
Drawing is the only part that touches pygame.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable

import pygame

from presence.devices.protocol import PresenceState
from presence.render.constants import (
    BURST_FREQ,
    BURST_RADIUS,
    BURST_WOBBLE_AMP,
    BURST_WOBBLE_FREQ,
    DEFAULT_PARTICLE_COLOR,
    ERROR_PARTICLE_COLOR,
    FLOAT_AMP_X,
    FLOAT_AMP_Y,
    FLOAT_FREQ_X,
    FLOAT_FREQ_Y,
    FLOAT_PULSE_AMP,
    FLOAT_PULSE_FREQ,
    GLOW_OPACITY_SCALE,
    GLOW_SIZE_SCALE,
    ORBIT_OPACITY_GAIN,
    ORBIT_RADIUS,
    ORBIT_STEP,
    ORBIT_WOBBLE_FREQ,
    PROFILES,
    SEED_RING_RADIUS,
    SEED_RING_SPREAD,
    SHAKE_INTENSITY,
    Behavior,
    ProfileConfig,
)
from presence.render.effects import draw_glow_dot

log = logging.getLogger(__name__)

TWO_PI = math.pi * 2.0


@dataclass(slots=True)
class Particle:
    x: float
    y: float
    base_x: float
    base_y: float
    angle: float
    orbit_angle: float
    size: float
    opacity: float
    speed_multiplier: float
    phase_offset: float
    pulse_phase: float


def profile_for_state(state: PresenceState) -> ProfileConfig:
    if state == PresenceState.THINKING:
        return PROFILES["thinking"]
    if state == PresenceState.SPEAKING:
        return PROFILES["speaking"]
    if state == PresenceState.ERROR:
        return PROFILES["error"]
    return PROFILES["idle"]


def particle_color(
    state: PresenceState, primary: tuple[int, int, int] = DEFAULT_PARTICLE_COLOR
) -> tuple[int, int, int]:
    if state == PresenceState.ERROR:
        return ERROR_PARTICLE_COLOR
    return primary


def seed_particle(
    rng: random.Random, width: float, height: float, cfg: ProfileConfig
) -> Particle:
    """New particle on a ring around the centre."""
    cx, cy = width / 2.0, height / 2.0
    radius = min(width, height) * SEED_RING_RADIUS
    angle = rng.random() * TWO_PI
    lo, hi = SEED_RING_SPREAD
    distance = radius * (lo + rng.random() * (hi - lo))
    x = cx + math.cos(angle) * distance
    y = cy + math.sin(angle) * distance
    return Particle(
        x=x,
        y=y,
        base_x=x,
        base_y=y,
        angle=angle,
        orbit_angle=angle,
        size=cfg.size_min + rng.random() * (cfg.size_max - cfg.size_min),
        opacity=cfg.opacity_min + rng.random() * (cfg.opacity_max - cfg.opacity_min),
        speed_multiplier=0.5 + rng.random(),
        phase_offset=rng.random() * TWO_PI,
        pulse_phase=rng.random() * TWO_PI,
    )


# ── Behaviours ───────────────────────────────────────────────────────


def update_float(
    p: Particle, t: float, width: float, height: float, cfg: ProfileConfig, rng: random.Random
) -> None:
    p.x = p.base_x + math.sin(t * FLOAT_FREQ_X + p.phase_offset) * FLOAT_AMP_X
    p.y = p.base_y + math.cos(t * FLOAT_FREQ_Y + p.phase_offset) * FLOAT_AMP_Y
    p.opacity = cfg.opacity_min + math.sin(t * FLOAT_PULSE_FREQ + p.pulse_phase) * FLOAT_PULSE_AMP


def update_orbit(
    p: Particle, t: float, width: float, height: float, cfg: ProfileConfig, rng: random.Random
) -> None:
    cx, cy = width / 2.0, height / 2.0
    p.orbit_angle += cfg.speed * p.speed_multiplier * ORBIT_STEP
    radius = min(width, height) * ORBIT_RADIUS * (
        0.8 + math.sin(t * ORBIT_WOBBLE_FREQ + p.phase_offset) * 0.2
    )
    p.x = cx + math.cos(p.orbit_angle) * radius
    p.y = cy + math.sin(p.orbit_angle) * radius
    p.opacity = cfg.opacity_min + abs(math.sin(p.orbit_angle)) * ORBIT_OPACITY_GAIN


def update_burst(
    p: Particle, t: float, width: float, height: float, cfg: ProfileConfig, rng: random.Random
) -> None:
    cx, cy = width / 2.0, height / 2.0
    phase = (t * BURST_FREQ + p.phase_offset) % TWO_PI
    pulse = math.sin(phase)
    radius = min(width, height) * BURST_RADIUS * (0.5 + pulse * 0.5)
    p.x = cx + math.cos(p.angle) * radius * (
        1.0 + math.sin(t * BURST_WOBBLE_FREQ) * BURST_WOBBLE_AMP
    )
    p.y = cy + math.sin(p.angle) * radius * (
        1.0 + math.cos(t * BURST_WOBBLE_FREQ) * BURST_WOBBLE_AMP
    )
    p.opacity = cfg.opacity_max * (0.5 + pulse * 0.5)
    p.size = max(0.0, cfg.size_min + (cfg.size_max - cfg.size_min) * pulse)


def update_shake(
    p: Particle, t: float, width: float, height: float, cfg: ProfileConfig, rng: random.Random
) -> None:
    p.x = p.base_x + (rng.random() - 0.5) * SHAKE_INTENSITY
    p.y = p.base_y + (rng.random() - 0.5) * SHAKE_INTENSITY
    p.opacity = cfg.opacity_min + rng.random() * (cfg.opacity_max - cfg.opacity_min)


UpdateFn = Callable[[Particle, float, float, float, ProfileConfig, random.Random], None]

BEHAVIORS: dict[Behavior, UpdateFn] = {
    Behavior.FLOAT: update_float,
    Behavior.ORBIT: update_orbit,
    Behavior.BURST: update_burst,
    Behavior.SHAKE: update_shake,
}


# ── Pool ─────────────────────────────────────────────────────────────


class ParticlePool:
    """Particles for one profile.  Reseeded wholesale when anything changes."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.particles: list[Particle] = []
        self.profile: ProfileConfig | None = None
        self._size: tuple[int, int] = (0, 0)
        self.reseed_count = 0

    def ensure(self, profile: ProfileConfig, width: int, height: int) -> bool:
        """Reseed if profile, count or surface size changed.  Returns True on reseed."""
        if (
            self.profile == profile
            and len(self.particles) == max(0, profile.count)
            and self._size == (width, height)
        ):
            return False
        self.profile = profile
        self._size = (width, height)
        self.particles = [
            seed_particle(self._rng, width, height, profile)
            for _ in range(max(0, profile.count))
        ]
        self.reseed_count += 1
        log.debug("particles: reseeded %d for %s", len(self.particles), profile.name)
        return True

    def update(self, t: float) -> None:
        cfg = self.profile
        if cfg is None or not self.particles:
            return
        fn = BEHAVIORS[cfg.behavior]
        w, h = self._size
        for p in self.particles:
            fn(p, t, w, h, cfg, self._rng)

    def draw(self, surface: pygame.Surface, color: tuple[int, int, int]) -> None:
        for p in self.particles:
            draw_glow_dot(
                surface,
                color,
                p.opacity,
                (p.x, p.y),
                p.size,
                GLOW_SIZE_SCALE,
                GLOW_OPACITY_SCALE,
            )
