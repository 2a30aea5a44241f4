"""Shared fixtures.  pygame runs against the dummy SDL drivers."""

from __future__ import annotations

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from presence.store.kv_store import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
