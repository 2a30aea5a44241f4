"""Presence face configuration with defaults, loadable from YAML or JSON."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

TOKEN_ENV_VAR = "PRESENCE_TOKEN"


@dataclass
class GatewayConfig:
    url: str = "ws://127.0.0.1:18789"
    token: str = ""
    session: str = "main"
    reconnect_delay_s: float = 3.0


@dataclass
class ThemeConfig:
    primary: str = "#3b82f6"
    secondary: str = "#1e40af"
    accent: str = "#fbbf24"
    background: str = "#0f172a"
    glow: str = "#3b82f6"
    text: str = "#f8fafc"


@dataclass
class IdentityConfig:
    name: str = "Moltbot"
    emoji: str = ""
    tagline: str = ""
    show_name: bool = True


@dataclass
class FaceConfig:
    eye_shape: str = "angular"  # "angular" | "round"
    show_status: bool = True
    show_bubble: bool = True


@dataclass
class FeatureConfig:
    eye_tracking: bool = True
    weather: bool = True
    particles: bool = True


@dataclass
class WeatherConfig:
    # Static coordinates skip the IP lookup when both are set.
    latitude: float | None = None
    longitude: float | None = None
    cache_s: float = 30 * 60
    timeout_s: float = 10.0


@dataclass
class DisplayConfig:
    width: int = 800
    height: int = 800
    fps: int = 60
    fullscreen: bool = False


@dataclass
class NetworkConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    http_port: int = 8090


@dataclass
class StoreConfig:
    path: str = "~/.config/presence-face/store.json"


@dataclass
class PresenceConfig:
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    face: FaceConfig = field(default_factory=FaceConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    environment: str = "production"


_SECTIONS = (
    "gateway",
    "theme",
    "identity",
    "face",
    "features",
    "weather",
    "display",
    "network",
    "store",
)


def load_config(path: str | Path | None = None) -> PresenceConfig:
    """Load config from a YAML (or JSON) file, falling back to defaults."""
    if path is None:
        return _apply_env(PresenceConfig())

    path = Path(path)
    if not path.exists():
        log.warning("config file not found: %s, using defaults", path)
        return _apply_env(PresenceConfig())

    try:
        import yaml

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        cfg = PresenceConfig()
        for section in _SECTIONS:
            values = raw.get(section)
            if not isinstance(values, dict):
                continue
            target = getattr(cfg, section)
            for k, v in values.items():
                if hasattr(target, k):
                    setattr(target, k, v)
                else:
                    log.warning("config: unknown key %s.%s ignored", section, k)
        cfg.environment = str(raw.get("environment", cfg.environment))

        log.info("config loaded from %s", path)
        return _apply_env(cfg)
    except Exception as e:
        log.warning("config load error: %s, using defaults", e)
        return _apply_env(PresenceConfig())


def _apply_env(cfg: PresenceConfig) -> PresenceConfig:
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if token and not cfg.gateway.token:
        cfg.gateway.token = token
    return cfg
