"""Tests for config loading."""

from __future__ import annotations

import json

from presence.config import TOKEN_ENV_VAR, PresenceConfig, load_config


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    cfg = load_config(None)
    assert cfg.gateway.url == "ws://127.0.0.1:18789"
    assert cfg.gateway.session == "main"
    assert cfg.gateway.reconnect_delay_s == 3.0
    assert cfg.display.fps == 60
    assert cfg.network.http_port == 8090
    assert cfg.features.weather is True


def test_missing_file_falls_back(tmp_path, monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg == PresenceConfig()


def test_yaml_sections_override_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    path = tmp_path / "face.yaml"
    path.write_text(
        "gateway:\n"
        "  url: ws://10.0.0.5:18789\n"
        "  token: abc\n"
        "theme:\n"
        "  primary: '#ff0000'\n"
        "face:\n"
        "  eye_shape: round\n"
        "features:\n"
        "  particles: false\n"
        "environment: dev\n"
    )
    cfg = load_config(path)
    assert cfg.gateway.url == "ws://10.0.0.5:18789"
    assert cfg.gateway.token == "abc"
    assert cfg.theme.primary == "#ff0000"
    assert cfg.face.eye_shape == "round"
    assert cfg.features.particles is False
    assert cfg.features.weather is True
    assert cfg.environment == "dev"


def test_json_file_is_accepted(tmp_path, monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    path = tmp_path / "face.json"
    path.write_text(json.dumps({"identity": {"name": "Kratos"}, "display": {"fps": 30}}))
    cfg = load_config(path)
    assert cfg.identity.name == "Kratos"
    assert cfg.display.fps == 30


def test_unknown_keys_ignored(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    path = tmp_path / "face.yaml"
    path.write_text("gateway:\n  bogus: 1\n")
    cfg = load_config(path)
    assert not hasattr(cfg.gateway, "bogus")
    assert any("unknown key" in r.message for r in caplog.records)


def test_broken_yaml_falls_back(tmp_path, monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    path = tmp_path / "face.yaml"
    path.write_text("gateway: [unclosed\n")
    assert load_config(path) == PresenceConfig()


def test_env_token_fills_missing_token(tmp_path, monkeypatch):
    monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
    assert load_config(None).gateway.token == "from-env"

    path = tmp_path / "face.yaml"
    path.write_text("gateway:\n  token: from-file\n")
    assert load_config(path).gateway.token == "from-file"
