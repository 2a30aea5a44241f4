"""Face renderer: rings, eyes, mouth, lightning accent, status ring, halo.

Geometry is authored in a 400×400 unit square (see constants.py) and mapped
onto the largest centred square of the target surface.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import pygame

from presence.devices.protocol import PresenceState
from presence.inputs.pointer import PointerVector, eye_offset
from presence.render.constants import (
    DISCONNECTED_FACE_COLOR,
    ERROR_FACE_COLOR,
    EYE_CY,
    EYE_HALF_H,
    EYE_HALF_W,
    FACE_CX,
    FACE_CY,
    FACE_UNITS,
    GLINT_RX,
    GLINT_RY,
    HALO_ALPHA,
    HALO_RADIUS,
    INNER_RING_R,
    LEFT_EYE_CX,
    LIGHTNING_POINTS,
    MAX_PUPIL_OFFSET,
    MOUTH_Y,
    OUTER_RING_R,
    RIGHT_EYE_CX,
    SMILE_POINTS,
    SPEAKING_BAR_OFFSETS,
    STATUS_RING_R,
    THINKING_DOT_OFFSETS,
)
from presence.render.effects import draw_circle, rgba

BLINK_PERIOD_MS = 4000.0
BLINK_DURATION_MS = 150.0
BAR_WAVE_MS = 300.0
DOT_PULSE_MS = 1000.0


@dataclass(slots=True)
class FaceStyle:
    primary: tuple[int, int, int] = (59, 130, 246)
    accent: tuple[int, int, int] = (251, 191, 36)
    eye_shape: str = "angular"


def face_color(
    state: PresenceState, primary: tuple[int, int, int]
) -> tuple[int, int, int]:
    if state == PresenceState.ERROR:
        return ERROR_FACE_COLOR
    if state in (PresenceState.DISCONNECTED, PresenceState.CONNECTING):
        return DISCONNECTED_FACE_COLOR
    return primary


def _is_dim(state: PresenceState) -> bool:
    return state in (PresenceState.DISCONNECTED, PresenceState.CONNECTING)


class _Frame:
    """Maps 400-unit face coordinates onto a surface."""

    def __init__(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        self.scale = min(w, h) / FACE_UNITS
        self.ox = (w - FACE_UNITS * self.scale) / 2.0
        self.oy = (h - FACE_UNITS * self.scale) / 2.0

    def pt(self, x: float, y: float) -> tuple[int, int]:
        return (int(self.ox + x * self.scale), int(self.oy + y * self.scale))

    def dist(self, d: float) -> float:
        return d * self.scale

    def width(self, d: float) -> int:
        return max(1, int(round(d * self.scale)))

    def rect(self, cx: float, cy: float, rx: float, ry: float) -> pygame.Rect:
        x, y = self.pt(cx - rx, cy - ry)
        return pygame.Rect(x, y, max(1, int(2 * rx * self.scale)), max(1, int(2 * ry * self.scale)))


def blink_scale(t_ms: float, phase_ms: float = 0.0) -> float:
    """Vertical eye scale: 1 most of the time, dips to 0.1 once per period."""
    into = (t_ms + phase_ms) % BLINK_PERIOD_MS
    if into > BLINK_DURATION_MS:
        return 1.0
    half = BLINK_DURATION_MS / 2.0
    return 0.1 + 0.9 * abs(into - half) / half


def _dashed_circle(
    surface: pygame.Surface,
    color: tuple[int, int, int, int],
    rect: pygame.Rect,
    radius_px: float,
    dash_px: float,
    gap_px: float,
    width: int,
    rotation: float = 0.0,
) -> None:
    if radius_px <= 0:
        return
    circumference = 2.0 * math.pi * radius_px
    step = dash_px + gap_px
    if step <= 0:
        return
    for i in range(int(circumference // step)):
        start = rotation + (i * step) / radius_px
        stop = start + dash_px / radius_px
        pygame.draw.arc(surface, color, rect, start, stop, width)


def _draw_eye(
    surface: pygame.Surface,
    f: _Frame,
    cx: float,
    color: tuple[int, int, int],
    alpha: float,
    style: FaceStyle,
    squash: float,
    glint: tuple[float, float],
) -> None:
    ry = EYE_HALF_H * squash
    if style.eye_shape == "angular":
        points = [
            f.pt(cx - EYE_HALF_W, EYE_CY),
            f.pt(cx, EYE_CY - ry),
            f.pt(cx + EYE_HALF_W, EYE_CY),
            f.pt(cx, EYE_CY + ry),
        ]
        pygame.draw.polygon(surface, rgba(color, alpha), points)
        gx, gy = glint
        pygame.draw.ellipse(
            surface,
            rgba(style.accent, 1.0),
            f.rect(cx + gx, EYE_CY + gy, GLINT_RX, GLINT_RY * squash),
        )
    else:
        pygame.draw.ellipse(surface, rgba(color, alpha), f.rect(cx, EYE_CY, EYE_HALF_W, ry))


def _draw_mouth(
    surface: pygame.Surface,
    f: _Frame,
    state: PresenceState,
    color: tuple[int, int, int],
    t_ms: float,
) -> None:
    if state == PresenceState.SPEAKING:
        for i, offset in enumerate(SPEAKING_BAR_OFFSETS):
            wave = 0.75 + 0.25 * math.sin(2 * math.pi * (t_ms / BAR_WAVE_MS) - i * 0.5)
            height = (20.0 + math.sin(i * 1.5) * 10.0) * wave
            x, y = f.pt(195.0 + offset, MOUTH_Y - height / 2.0)
            rect = pygame.Rect(x, y, f.width(6.0), f.width(height))
            pygame.draw.rect(surface, rgba(color, 1.0), rect, border_radius=f.width(3.0))
    elif state == PresenceState.THINKING:
        for i, offset in enumerate(THINKING_DOT_OFFSETS):
            pulse = 0.5 + 0.5 * math.sin(2 * math.pi * (t_ms / DOT_PULSE_MS) - i * 1.2)
            draw_circle(
                surface,
                color,
                0.4 + 0.6 * pulse,
                f.pt(FACE_CX + offset, MOUTH_Y),
                f.dist(6.0 * (0.8 + 0.2 * pulse)),
            )
    else:
        (x0, y0), (qx, qy), (x1, y1) = SMILE_POINTS
        # Quadratic curve through the control point, sampled as a polyline.
        points = []
        for i in range(17):
            u = i / 16
            x = (1 - u) ** 2 * x0 + 2 * (1 - u) * u * qx + u**2 * x1
            y = (1 - u) ** 2 * y0 + 2 * (1 - u) * u * qy + u**2 * y1
            points.append(f.pt(x, y))
        alpha = 0.3 if _is_dim(state) else 0.8
        pygame.draw.lines(surface, rgba(color, alpha), False, points, f.width(4.0))


def render_face(
    surface: pygame.Surface,
    t_ms: float,
    state: PresenceState,
    style: FaceStyle,
    pointer: PointerVector | None = None,
    halo: tuple[int, int, int] | None = None,
) -> None:
    """Draw the whole face onto a SRCALPHA ``surface``."""
    f = _Frame(surface)
    color = face_color(state, style.primary)
    dim = _is_dim(state)
    centre = f.pt(FACE_CX, FACE_CY)

    if halo is not None:
        draw_circle(surface, halo, HALO_ALPHA, centre, f.dist(HALO_RADIUS), f.width(8.0))

    # Rings
    draw_circle(surface, color, 0.3 if dim else 0.8, centre, f.dist(OUTER_RING_R), f.width(3.0))
    _dashed_circle(
        surface,
        rgba(color, 0.3),
        f.rect(FACE_CX, FACE_CY, INNER_RING_R, INNER_RING_R),
        f.dist(INNER_RING_R),
        f.dist(10.0),
        f.dist(5.0),
        f.width(1.0),
    )

    # Eyes
    glint = eye_offset(pointer or PointerVector(), MAX_PUPIL_OFFSET)
    eye_alpha = 0.3 if dim else 1.0
    _draw_eye(surface, f, LEFT_EYE_CX, color, eye_alpha, style, blink_scale(t_ms), glint)
    _draw_eye(surface, f, RIGHT_EYE_CX, color, eye_alpha, style, blink_scale(t_ms, -100.0), glint)

    _draw_mouth(surface, f, state, color, t_ms)

    # Lightning accent
    bolt_alpha = 0.1 if dim else 0.4
    if state in (PresenceState.THINKING, PresenceState.SPEAKING):
        bolt_alpha += 0.2 * (0.5 + 0.5 * math.sin(t_ms * 0.004))
    pygame.draw.polygon(
        surface,
        rgba(style.accent, bolt_alpha),
        [f.pt(x, y) for x, y in LIGHTNING_POINTS],
    )

    # Status ring: solid when idle, spinning dashes while busy
    ring_rect = f.rect(FACE_CX, FACE_CY, STATUS_RING_R, STATUS_RING_R)
    ring_r = f.dist(STATUS_RING_R)
    if state == PresenceState.SPEAKING:
        spin = 2 * math.pi * (t_ms % 2000.0) / 2000.0
        _dashed_circle(surface, rgba(color, 0.5), ring_rect, ring_r, f.dist(20.0), f.dist(10.0), f.width(2.0), spin)
    elif state == PresenceState.THINKING:
        spin = 2 * math.pi * (t_ms % 4000.0) / 4000.0
        _dashed_circle(surface, rgba(color, 0.5), ring_rect, ring_r, f.dist(5.0), f.dist(10.0), f.width(2.0), spin)
    else:
        draw_circle(surface, color, 0.5, centre, ring_r, f.width(2.0))
