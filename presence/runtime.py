"""Frame loop: pygame events in, one composited frame out, at display fps."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

import pygame

from presence.config import PresenceConfig
from presence.devices.avatar_client import AvatarClient
from presence.devices.gateway_client import GatewayClient
from presence.devices.protocol import STATE_LABELS
from presence.devices.weather_client import WeatherClient
from presence.inputs.pointer import PointerTracker
from presence.personality.mood import MoodEngine
from presence.render.effects import hex_to_rgb
from presence.render.face import FaceStyle
from presence.render.hud import HudStyle
from presence.render.pipeline import FrameInputs, RenderPipeline

log = logging.getLogger(__name__)

_JITTER_WARN_MS = 50.0


def pipeline_from_config(cfg: PresenceConfig) -> RenderPipeline:
    theme = cfg.theme
    primary = hex_to_rgb(theme.primary)
    face_style = FaceStyle(
        primary=primary,
        accent=hex_to_rgb(theme.accent, (251, 191, 36)),
        eye_shape=cfg.face.eye_shape,
    )
    hud_style = HudStyle(
        name=cfg.identity.name,
        emoji=cfg.identity.emoji,
        tagline=cfg.identity.tagline,
        show_name=cfg.identity.show_name,
        show_status=cfg.face.show_status,
        show_bubble=cfg.face.show_bubble,
        text=hex_to_rgb(theme.text, (248, 250, 252)),
        primary=primary,
    )
    return RenderPipeline(
        face_style=face_style,
        hud_style=hud_style,
        background=hex_to_rgb(theme.background, (15, 23, 42)),
        particles_enabled=cfg.features.particles,
        weather_enabled=cfg.features.weather,
    )


def face_rect(size: tuple[int, int]) -> tuple[float, float, float, float]:
    """The centred square the face is drawn into, as (left, top, w, h)."""
    w, h = size
    side = min(w, h)
    return ((w - side) / 2.0, (h - side) / 2.0, float(side), float(side))


class Runtime:
    """Owns the window and drives the render pipeline from live state."""

    def __init__(
        self,
        config: PresenceConfig,
        gateway: GatewayClient,
        mood: MoodEngine,
        avatar: AvatarClient,
        weather: WeatherClient | None = None,
        pipeline: RenderPipeline | None = None,
        headless: bool = False,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._mood = mood
        self._avatar = avatar
        self._weather = weather
        self._pipeline = pipeline or pipeline_from_config(config)
        self._headless = headless
        size = (config.display.width, config.display.height)
        self._pointer = PointerTracker(face_rect(size), enabled=config.features.eye_tracking)
        self._surface: pygame.Surface | None = None
        self._weather_task: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._running = False
        self._frame_count = 0
        self._started_mono = 0.0

        gateway.subscribe(mood.observe_state)

    @property
    def gateway(self) -> GatewayClient:
        return self._gateway

    @property
    def mood(self) -> MoodEngine:
        return self._mood

    @property
    def avatar(self) -> AvatarClient:
        return self._avatar

    @property
    def weather(self) -> WeatherClient | None:
        return self._weather

    @property
    def pointer(self) -> PointerTracker:
        return self._pointer

    @property
    def running(self) -> bool:
        return self._running

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def status(self) -> dict:
        gw = self._gateway
        weather = self._weather.current.to_dict() if self._weather and self._weather.loaded else None
        return {
            "state": gw.state.value,
            "label": gw.message or STATE_LABELS[gw.state],
            "message": gw.message,
            "last_response": gw.last_response,
            "mood": self._mood.mood.value,
            "weather": weather,
            "custom_avatar": self._avatar.custom_avatar,
            "frames": self._frame_count,
        }

    def frame_inputs(self) -> FrameInputs:
        weather = None
        if self._weather is not None and self._weather.loaded:
            weather = self._weather.current
        return FrameInputs(
            state=self._gateway.state,
            message=self._gateway.message,
            response=self._gateway.last_response,
            pointer=self._pointer.step(),
            halo=self._mood.halo_color,
            weather=weather,
        )

    async def run(self) -> None:
        """Open the window and render until stop() or window close.

        The gateway connect runs as its own task so frames keep coming while
        the websocket is still opening.
        """
        self._running = True
        self._surface = self._open_surface()
        try:
            if self._weather is not None and self._config.features.weather:
                await self._weather.start()
                self._weather_task = asyncio.create_task(self._weather.run())
            self._connect_task = asyncio.create_task(self._gateway.connect())
            await self._frame_loop()
        finally:
            await self._teardown()

    def stop(self) -> None:
        self._running = False

    def render_once(self, t_ms: float) -> bool:
        """Render a single frame into the current surface (no event pump)."""
        if self._surface is None:
            self._surface = self._open_surface()
        ok = self._pipeline.frame(self._surface, t_ms, self.frame_inputs())
        self._frame_count += 1
        return ok

    # -- internals -----------------------------------------------------------

    def _open_surface(self) -> pygame.Surface:
        disp = self._config.display
        size = (disp.width, disp.height)
        if self._headless:
            return pygame.Surface(size)
        pygame.init()
        flags = pygame.FULLSCREEN if disp.fullscreen else 0
        screen = pygame.display.set_mode(size, flags)
        pygame.display.set_caption(self._config.identity.name or "Presence")
        self._pointer.rect = face_rect(screen.get_size())
        return screen

    async def _frame_loop(self) -> None:
        fps = max(1, int(self._config.display.fps))
        period_s = 1.0 / fps
        self._started_mono = time.monotonic()
        log.info("runtime: starting %d fps frame loop", fps)

        while self._running:
            t0 = time.monotonic()
            if not self._headless:
                self._pump_events()
                if not self._running:
                    break

            self.render_once((t0 - self._started_mono) * 1000.0)
            if not self._headless:
                pygame.display.flip()

            elapsed = time.monotonic() - t0
            if elapsed * 1000.0 > _JITTER_WARN_MS:
                log.debug("runtime: slow frame %.1fms", elapsed * 1000.0)
            await asyncio.sleep(max(0.0, period_s - elapsed))

    def _pump_events(self) -> None:
        surface = self._surface
        size = surface.get_size() if surface is not None else (1, 1)
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self._running = False
            elif event.type == pygame.VIDEORESIZE:
                self._pointer.rect = face_rect(event.size)
            else:
                self._pointer.handle_event(event, size)

    async def _teardown(self) -> None:
        self._running = False
        for task in (self._connect_task, self._weather_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._connect_task = None
        self._weather_task = None
        try:
            await self._gateway.disconnect()
        except Exception:
            log.exception("runtime: gateway disconnect failed")
        if self._weather is not None:
            await self._weather.stop()
        if not self._headless:
            pygame.quit()
        log.info("runtime: stopped after %d frames", self._frame_count)
