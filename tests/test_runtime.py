"""Tests for the headless frame loop and its wiring."""

from __future__ import annotations

import asyncio
import json

import pytest

from presence.config import PresenceConfig
from presence.devices.avatar_client import AvatarClient
from presence.devices.gateway_client import GatewayClient
from presence.devices.protocol import PresenceState
from presence.personality.mood import MoodEngine
from presence.runtime import Runtime, face_rect, pipeline_from_config
from presence.store.kv_store import MemoryStore


class FakeWebSocket:
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def feed(self, frame: dict) -> None:
        self._queue.put_nowait(json.dumps(frame))


def _runtime(cfg: PresenceConfig | None = None):
    cfg = cfg or PresenceConfig()
    cfg.gateway.token = "tok"
    cfg.display.width = cfg.display.height = 200
    cfg.display.fps = 200
    sockets: list[FakeWebSocket] = []

    async def connect(url: str) -> FakeWebSocket:
        ws = FakeWebSocket()
        sockets.append(ws)
        return ws

    store = MemoryStore()
    gateway = GatewayClient(cfg.gateway, connect=connect)
    mood = MoodEngine(store)
    runtime = Runtime(cfg, gateway, mood, AvatarClient(store), headless=True)
    return runtime, sockets


def test_face_rect_is_centred_square():
    assert face_rect((800, 400)) == (200.0, 0.0, 400.0, 400.0)


def test_pipeline_from_config_applies_theme():
    cfg = PresenceConfig()
    cfg.theme.primary = "#ff0000"
    cfg.face.eye_shape = "round"
    cfg.features.particles = False
    pipe = pipeline_from_config(cfg)
    assert pipe.face_style.primary == (255, 0, 0)
    assert pipe.face_style.eye_shape == "round"
    assert pipe.particles_enabled is False


def test_render_once_headless():
    runtime, _ = _runtime()
    assert runtime.render_once(0.0)
    assert runtime.frame_count == 1


def test_status_snapshot():
    runtime, _ = _runtime()
    status = runtime.status()
    assert status["state"] == "disconnected"
    assert status["label"] == "Disconnected"
    assert status["mood"] == "neutral"
    assert status["weather"] is None


def test_gateway_transitions_feed_mood():
    runtime, _ = _runtime()
    runtime.gateway.handle_frame('{"type": "error", "message": "x"}')
    runtime.gateway.handle_frame('{"type": "connected"}')
    runtime.gateway.handle_frame('{"type": "error", "message": "y"}')
    assert runtime.mood.mood.value == "angry"


@pytest.mark.asyncio
async def test_run_renders_until_stopped_and_tears_down():
    runtime, sockets = _runtime()
    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.05)
    sockets[0].feed({"type": "connected"})
    await asyncio.sleep(0.05)
    assert runtime.gateway.state == PresenceState.IDLE
    assert runtime.running

    runtime.stop()
    await asyncio.wait_for(task, timeout=2.0)

    assert runtime.frame_count > 0
    assert sockets[0].closed
    assert runtime.gateway.state == PresenceState.DISCONNECTED
    assert not runtime.gateway.reconnect_pending


@pytest.mark.asyncio
async def test_cancel_still_tears_down():
    runtime, sockets = _runtime()
    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert sockets[0].closed
    assert not runtime.running


@pytest.mark.asyncio
async def test_frames_render_while_gateway_is_still_opening():
    cfg = PresenceConfig()
    cfg.gateway.token = "tok"
    cfg.display.width = cfg.display.height = 200
    cfg.display.fps = 200
    opened = asyncio.Event()

    async def slow_connect(url: str) -> FakeWebSocket:
        await asyncio.sleep(2.0)
        opened.set()
        raise OSError("open timed out")

    store = MemoryStore()
    gateway = GatewayClient(cfg.gateway, connect=slow_connect)
    runtime = Runtime(cfg, gateway, MoodEngine(store), AvatarClient(store), headless=True)

    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.2)
    assert runtime.frame_count > 0
    assert gateway.state == PresenceState.CONNECTING

    runtime.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert not opened.is_set()
    assert gateway.state == PresenceState.DISCONNECTED
    assert not gateway.reconnect_pending
