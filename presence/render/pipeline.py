"""Per-frame compositor.

Layer order, back to front::

    background fill
    weather underlay   (wash, sun/moon, precipitation; 0.6 alpha)
    particle field     (state-driven profile; 0.8 alpha)
    face               (rings, eyes, mouth, halo)
    HUD                (identity, status, reply bubble)
    thunder flash      (full-screen white, decays per frame)

Each layer is a SRCALPHA surface that is cleared and redrawn every frame.
A frame that raises is skipped. Errors are keyed by exception type and the
line that raised, so the first occurrence is logged with a traceback and
repeats are counted only, however much their message varies.
"""

from __future__ import annotations

import logging
import os
import random
import traceback
from dataclasses import dataclass, field

import pygame

from presence.devices.protocol import PresenceState
from presence.devices.weather_client import WeatherSample
from presence.inputs.pointer import PointerVector
from presence.render.constants import BG_COLOR, PARTICLE_LAYER_ALPHA, WEATHER_LAYER_ALPHA
from presence.render.face import FaceStyle, render_face
from presence.render.hud import Hud, HudStyle
from presence.render.particles import ParticlePool, particle_color, profile_for_state
from presence.render.weather_fx import WeatherLayer

log = logging.getLogger(__name__)


@dataclass(slots=True)
class FrameInputs:
    state: PresenceState = PresenceState.DISCONNECTED
    message: str = ""
    response: str = ""
    pointer: PointerVector = field(default_factory=PointerVector)
    halo: tuple[int, int, int] | None = None
    weather: WeatherSample | None = None


def error_key(e: BaseException) -> str:
    """``"ValueError at particles.py:88"``; the message is left out."""
    frames = traceback.extract_tb(e.__traceback__)
    if not frames:
        return type(e).__name__
    last = frames[-1]
    return f"{type(e).__name__} at {os.path.basename(last.filename)}:{last.lineno}"


class RenderPipeline:
    def __init__(
        self,
        face_style: FaceStyle | None = None,
        hud_style: HudStyle | None = None,
        background: tuple[int, int, int] = BG_COLOR,
        particles_enabled: bool = True,
        weather_enabled: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        rng = rng or random.Random()
        self.face_style = face_style or FaceStyle()
        self.hud = Hud(hud_style)
        self.background = background
        self.particles_enabled = particles_enabled
        self.weather_enabled = weather_enabled
        self.pool = ParticlePool(rng)
        self.weather = WeatherLayer(rng)
        self._layers: dict[str, pygame.Surface] = {}
        self._size: tuple[int, int] = (0, 0)
        self._seen_errors: dict[str, int] = {}
        self.frames = 0
        self.skipped = 0

    @property
    def error_counts(self) -> dict[str, int]:
        return dict(self._seen_errors)

    def frame(self, surface: pygame.Surface, t_ms: float, inputs: FrameInputs) -> bool:
        """Render one frame.  Returns False if the frame was skipped."""
        try:
            self._render(surface, t_ms, inputs)
        except Exception as e:
            key = error_key(e)
            count = self._seen_errors.get(key, 0)
            self._seen_errors[key] = count + 1
            if count == 0:
                log.exception("render: frame failed, skipping")
            self.skipped += 1
            return False
        self.frames += 1
        return True

    # -- internals -----------------------------------------------------------

    def _layer(self, name: str) -> pygame.Surface:
        layer = self._layers.get(name)
        if layer is None:
            layer = pygame.Surface(self._size, pygame.SRCALPHA)
            self._layers[name] = layer
        layer.fill((0, 0, 0, 0))
        return layer

    def _render(self, surface: pygame.Surface, t_ms: float, inputs: FrameInputs) -> None:
        size = surface.get_size()
        if size != self._size:
            self._size = size
            self._layers.clear()
        width, height = size

        surface.fill(self.background)

        flash_opacity = 0.0
        if self.weather_enabled and inputs.weather is not None:
            under = self._layer("weather")
            flash_opacity = self.weather.render(under, t_ms, inputs.weather)
            under.set_alpha(int(255 * WEATHER_LAYER_ALPHA))
            surface.blit(under, (0, 0))

        if self.particles_enabled:
            profile = profile_for_state(inputs.state)
            self.pool.ensure(profile, width, height)
            if self.pool.particles:
                field_layer = self._layer("particles")
                self.pool.update(t_ms)
                self.pool.draw(
                    field_layer, particle_color(inputs.state, self.face_style.primary)
                )
                field_layer.set_alpha(int(255 * PARTICLE_LAYER_ALPHA))
                surface.blit(field_layer, (0, 0))

        face = self._layer("face")
        render_face(face, t_ms, inputs.state, self.face_style, inputs.pointer, inputs.halo)
        surface.blit(face, (0, 0))

        hud = self._layer("hud")
        self.hud.render(hud, inputs.state, inputs.message, inputs.response)
        surface.blit(hud, (0, 0))

        if flash_opacity > 0.0:
            flash = self._layer("flash")
            self.weather.thunder.draw(flash, flash_opacity)
            surface.blit(flash, (0, 0))
