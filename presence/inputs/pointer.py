"""Smoothed pointer tracking for eye movement.

Raw mouse/touch samples are normalized against the face's bounding rect,
clamped to [-1, 1] per axis and then eased toward once per frame.  Pointer
leave (or touch end) sends the target back to centre.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import pygame

LERP_FACTOR = 0.1
MAX_EYE_OFFSET = 5.0


@dataclass(slots=True)
class PointerVector:
    x: float = 0.0
    y: float = 0.0

    @property
    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def lerp(current: float, target: float, factor: float = LERP_FACTOR) -> float:
    return current + (target - current) * factor


def normalize_pointer(
    px: float, py: float, rect: tuple[float, float, float, float]
) -> PointerVector:
    """Map a screen point to [-1, 1]² relative to ``rect`` = (left, top, w, h)."""
    left, top, width, height = rect
    cx = left + width / 2.0
    cy = top + height / 2.0
    max_distance = max(width, height) or 1.0
    x = (px - cx) / max_distance
    y = (py - cy) / max_distance
    return PointerVector(_clamp(x * 2.0, -1.0, 1.0), _clamp(y * 2.0, -1.0, 1.0))


def eye_offset(vec: PointerVector, max_offset: float = MAX_EYE_OFFSET) -> tuple[float, float]:
    """Linear pupil offset with magnitude capped at ``max_offset``."""
    mag = vec.magnitude
    if not math.isfinite(mag) or mag == 0.0:
        return (0.0, 0.0)
    scale = min(1.0, 1.0 / mag) * max_offset
    return (vec.x * scale, vec.y * scale)


class PointerTracker:
    """Eases the eye target toward the latest pointer sample."""

    def __init__(
        self,
        rect: tuple[float, float, float, float] = (0.0, 0.0, 1.0, 1.0),
        enabled: bool = True,
        factor: float = LERP_FACTOR,
    ) -> None:
        self.rect = rect
        self.enabled = enabled
        self.factor = factor
        self.active = False
        self._target = PointerVector()
        self._current = PointerVector()

    @property
    def target(self) -> PointerVector:
        return PointerVector(self._target.x, self._target.y)

    @property
    def position(self) -> PointerVector:
        if not self.enabled:
            return PointerVector()
        return PointerVector(self._current.x, self._current.y)

    def on_pointer_move(self, px: float, py: float) -> None:
        if not self.enabled:
            return
        vec = normalize_pointer(px, py, self.rect)
        if not (math.isfinite(vec.x) and math.isfinite(vec.y)):
            return
        self._target = vec
        self.active = True

    def on_pointer_leave(self) -> None:
        self._target = PointerVector()
        self.active = False

    def step(self) -> PointerVector:
        """Advance one frame of smoothing and return the current vector."""
        if not self.enabled:
            self._current = PointerVector()
            return PointerVector()
        self._current.x = lerp(self._current.x, self._target.x, self.factor)
        self._current.y = lerp(self._current.y, self._target.y, self.factor)
        return self.position

    def handle_event(
        self, event: pygame.event.Event, window_size: tuple[int, int]
    ) -> None:
        """Feed a pygame event.  Finger events arrive in 0..1 window units."""
        if event.type == pygame.MOUSEMOTION:
            self.on_pointer_move(*event.pos)
        elif event.type in (pygame.FINGERMOTION, pygame.FINGERDOWN):
            self.on_pointer_move(event.x * window_size[0], event.y * window_size[1])
        elif event.type in (pygame.FINGERUP, pygame.WINDOWLEAVE):
            self.on_pointer_leave()
