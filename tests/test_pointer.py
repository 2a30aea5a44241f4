"""Tests for pointer smoothing and eye offsets."""

from __future__ import annotations

import math
import random

import pygame
import pytest

from presence.inputs.pointer import (
    LERP_FACTOR,
    MAX_EYE_OFFSET,
    PointerTracker,
    PointerVector,
    eye_offset,
    lerp,
    normalize_pointer,
)

RECT = (0.0, 0.0, 400.0, 400.0)


def test_normalize_centre_is_zero():
    vec = normalize_pointer(200, 200, RECT)
    assert (vec.x, vec.y) == (0.0, 0.0)


def test_normalize_clamps_to_unit_square():
    vec = normalize_pointer(5000, -5000, RECT)
    assert (vec.x, vec.y) == (1.0, -1.0)
    vec = normalize_pointer(300, 200, RECT)
    assert vec.x == pytest.approx(0.5)


def test_lerp_step():
    assert lerp(0.0, 1.0) == pytest.approx(LERP_FACTOR)
    assert lerp(0.5, 0.5) == 0.5


def test_eye_offset_never_exceeds_cap():
    rng = random.Random(7)
    for _ in range(500):
        vec = PointerVector(rng.uniform(-1e6, 1e6), rng.uniform(-1e6, 1e6))
        dx, dy = eye_offset(vec)
        assert math.hypot(dx, dy) <= MAX_EYE_OFFSET + 1e-9


@pytest.mark.parametrize(
    "vec",
    [PointerVector(math.inf, 0.0), PointerVector(math.nan, 1.0), PointerVector(0.0, 0.0)],
)
def test_eye_offset_degenerate_input(vec):
    assert eye_offset(vec) == (0.0, 0.0)


def test_eye_offset_is_linear_inside_unit_circle():
    assert eye_offset(PointerVector(0.5, 0.0), 4.0) == pytest.approx((2.0, 0.0))


def test_tracker_eases_toward_target():
    tracker = PointerTracker(RECT)
    tracker.on_pointer_move(400, 200)
    assert tracker.target.x == 1.0
    first = tracker.step()
    assert first.x == pytest.approx(0.1)
    second = tracker.step()
    assert second.x == pytest.approx(0.19)


def test_leave_resets_target_to_centre():
    tracker = PointerTracker(RECT)
    tracker.on_pointer_move(0, 0)
    tracker.step()
    tracker.on_pointer_leave()
    assert (tracker.target.x, tracker.target.y) == (0.0, 0.0)
    assert not tracker.active
    for _ in range(200):
        pos = tracker.step()
    assert abs(pos.x) < 1e-6 and abs(pos.y) < 1e-6


def test_disabled_tracker_stays_centred():
    tracker = PointerTracker(RECT, enabled=False)
    tracker.on_pointer_move(400, 400)
    assert tracker.step() == PointerVector()


def test_pygame_events_feed_tracker():
    tracker = PointerTracker(RECT)
    tracker.handle_event(pygame.event.Event(pygame.MOUSEMOTION, pos=(400, 200)), (400, 400))
    assert tracker.target.x == 1.0

    tracker.handle_event(pygame.event.Event(pygame.FINGERMOTION, x=0.0, y=0.5), (400, 400))
    assert tracker.target.x == -1.0

    tracker.handle_event(pygame.event.Event(pygame.WINDOWLEAVE), (400, 400))
    assert tracker.target.x == 0.0
