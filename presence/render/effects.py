"""Color utilities and alpha-blended primitives shared by the render layers."""

from __future__ import annotations

import pygame


# ── Color utilities ──────────────────────────────────────────────────


def clamp_color(c: tuple[int, int, int]) -> tuple[int, int, int]:
    return (
        max(0, min(255, int(c[0]))),
        max(0, min(255, int(c[1]))),
        max(0, min(255, int(c[2]))),
    )


def mix_color(
    c1: tuple[int, int, int], c2: tuple[int, int, int], t: float
) -> tuple[int, int, int]:
    t = max(0.0, min(1.0, t))
    return (
        int(c1[0] + (c2[0] - c1[0]) * t),
        int(c1[1] + (c2[1] - c1[1]) * t),
        int(c1[2] + (c2[2] - c1[2]) * t),
    )


def hex_to_rgb(
    value: str, default: tuple[int, int, int] = (59, 130, 246)
) -> tuple[int, int, int]:
    """'#3b82f6' → (59, 130, 246).  Anything unparsable returns ``default``."""
    s = value.strip().lstrip("#") if isinstance(value, str) else ""
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        return default
    try:
        return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
    except ValueError:
        return default


def rgba(color: tuple[int, int, int], alpha: float) -> tuple[int, int, int, int]:
    """RGB + 0..1 alpha → pygame RGBA."""
    a = max(0.0, min(1.0, alpha))
    r, g, b = clamp_color(color)
    return (r, g, b, int(round(a * 255)))


# ── Primitives (all draw onto SRCALPHA surfaces) ─────────────────────


def draw_circle(
    surface: pygame.Surface,
    color: tuple[int, int, int],
    alpha: float,
    center: tuple[float, float],
    radius: float,
    width: int = 0,
) -> None:
    if alpha <= 0.0 or radius <= 0.0:
        return
    pygame.draw.circle(
        surface,
        rgba(color, alpha),
        (int(center[0]), int(center[1])),
        max(1, int(radius)),
        width,
    )


def draw_glow_dot(
    surface: pygame.Surface,
    color: tuple[int, int, int],
    alpha: float,
    center: tuple[float, float],
    radius: float,
    glow_scale: float,
    glow_alpha_scale: float,
) -> None:
    """Solid dot plus a larger faint halo of the same color."""
    draw_circle(surface, color, alpha * glow_alpha_scale, center, radius * glow_scale)
    draw_circle(surface, color, alpha, center, radius)


def fill_overlay(
    surface: pygame.Surface, color: tuple[int, int, int], alpha: float
) -> None:
    if alpha <= 0.0:
        return
    surface.fill(rgba(color, alpha))


def draw_radial_wash(
    surface: pygame.Surface,
    center: tuple[float, float],
    radius: float,
    inner: tuple[int, int, int, float],
    outer: tuple[int, int, int, float],
    steps: int,
) -> None:
    """Approximate a radial gradient with concentric filled circles.

    Outside ``radius`` the outer stop is held, as a canvas gradient does.
    """
    outer_rgb = (outer[0], outer[1], outer[2])
    inner_rgb = (inner[0], inner[1], inner[2])
    if outer[3] > 0.0:
        surface.fill(rgba(outer_rgb, outer[3]))
    if steps <= 0 or radius <= 0:
        return
    for i in range(steps, 0, -1):
        t = i / steps  # 1 at rim, → 0 at centre
        color = mix_color(inner_rgb, outer_rgb, t)
        alpha = inner[3] + (outer[3] - inner[3]) * t
        pygame.draw.circle(
            surface,
            rgba(color, alpha),
            (int(center[0]), int(center[1])),
            max(1, int(radius * t)),
        )
