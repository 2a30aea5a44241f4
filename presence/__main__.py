"""Presence face entry point.

Usage:
    python -m presence                          # defaults, token from PRESENCE_TOKEN
    python -m presence --config face.yaml
    python -m presence --url ws://10.0.0.5:18789 --token abc
    python -m presence --http-port 8090         # also serve the control API
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

import uvicorn

from presence.api.http_server import create_app
from presence.config import PresenceConfig, load_config
from presence.devices.avatar_client import AvatarClient
from presence.devices.gateway_client import GatewayClient
from presence.devices.weather_client import IpLocator, Locator, StaticLocator, WeatherClient
from presence.personality.mood import MoodEngine
from presence.runtime import Runtime
from presence.store.kv_store import JsonFileStore

log = logging.getLogger("presence")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Animated presence face for a chat agent")
    p.add_argument("--config", default="", help="YAML/JSON config file")
    p.add_argument("--url", default="", help="Gateway websocket URL")
    p.add_argument("--token", default="", help="Gateway auth token")
    p.add_argument("--session", default="", help="Gateway session id")
    p.add_argument("--headless", action="store_true", help="Render off-screen (no window)")
    p.add_argument(
        "--http-port",
        type=int,
        default=0,
        help="Serve the control API on this port (0 = use config)",
    )
    p.add_argument("--log-level", default="INFO", help="Log level")
    return p.parse_args(argv)


def apply_args(cfg: PresenceConfig, args: argparse.Namespace) -> PresenceConfig:
    if args.url:
        cfg.gateway.url = args.url
    if args.token:
        cfg.gateway.token = args.token
    if args.session:
        cfg.gateway.session = args.session
    if args.http_port:
        cfg.network.enabled = True
        cfg.network.http_port = args.http_port
    return cfg


def build_locator(cfg: PresenceConfig) -> Locator:
    wc = cfg.weather
    if wc.latitude is not None and wc.longitude is not None:
        return StaticLocator(wc.latitude, wc.longitude)
    return IpLocator(timeout_s=wc.timeout_s)


async def async_main(args: argparse.Namespace) -> None:
    cfg = apply_args(load_config(args.config or None), args)

    store = JsonFileStore(Path(cfg.store.path).expanduser())
    log.info("store at %s", store.path)

    gateway = GatewayClient(cfg.gateway)
    mood = MoodEngine(store)
    avatar = AvatarClient(store, timeout_s=cfg.weather.timeout_s)
    weather: WeatherClient | None = None
    if cfg.features.weather:
        weather = WeatherClient(
            store,
            build_locator(cfg),
            timeout_s=cfg.weather.timeout_s,
            cache_s=cfg.weather.cache_s,
        )

    runtime = Runtime(cfg, gateway, mood, avatar, weather=weather, headless=args.headless)

    server: uvicorn.Server | None = None
    if cfg.network.enabled:
        app = create_app(runtime)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=cfg.network.host,
                port=cfg.network.http_port,
                log_level="warning",
            )
        )
        log.info("control API on http://%s:%d", cfg.network.host, cfg.network.http_port)

    if server is None:
        await runtime.run()
        return

    serve_task = asyncio.create_task(server.serve())
    try:
        await runtime.run()
    finally:
        server.should_exit = True
        await serve_task


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)-20s %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )

    loop = asyncio.new_event_loop()
    main_task = loop.create_task(async_main(args))

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, main_task.cancel)

    try:
        loop.run_until_complete(main_task)
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        loop.close()
    log.info("presence face shut down")


if __name__ == "__main__":
    main()
