"""HUD: identity and status pill at the top, response bubble at the bottom."""

from __future__ import annotations

from dataclasses import dataclass

import pygame

from presence.devices.protocol import STATE_COLORS, STATE_LABELS, PresenceState
from presence.render.effects import rgba

BUBBLE_MAX_CHARS = 200
BUBBLE_MAX_LINES = 5
HUD_MARGIN = 12
LINE_HEIGHT = 20


@dataclass(slots=True)
class HudStyle:
    name: str = "Moltbot"
    emoji: str = ""
    tagline: str = ""
    show_name: bool = True
    show_status: bool = True
    show_bubble: bool = True
    text: tuple[int, int, int] = (248, 250, 252)
    primary: tuple[int, int, int] = (59, 130, 246)


def status_label(state: PresenceState, message: str = "") -> str:
    return message or STATE_LABELS.get(state, "Unknown")


def status_color(
    state: PresenceState, fallback: tuple[int, int, int] = (59, 130, 246)
) -> tuple[int, int, int]:
    return STATE_COLORS.get(state, fallback)


def bubble_text(text: str) -> str:
    """Keep the tail of long replies, like a chat view scrolled to the bottom."""
    if len(text) > BUBBLE_MAX_CHARS:
        return "..." + text[-BUBBLE_MAX_CHARS:]
    return text


def wrap_text(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    for para in text.splitlines() or [""]:
        line = ""
        for word in para.split(" "):
            candidate = f"{line} {word}" if line else word
            if line and font.size(candidate)[0] > max_width:
                lines.append(line)
                line = word
            else:
                line = candidate
        lines.append(line)
    return lines


class Hud:
    """Renders identity, status and the last reply with pygame fonts."""

    def __init__(self, style: HudStyle | None = None) -> None:
        self.style = style or HudStyle()
        self.font: pygame.font.Font | None = None
        self.title_font: pygame.font.Font | None = None

    def init_font(self) -> tuple[pygame.font.Font, pygame.font.Font]:
        """Load (body, title) fonts once and return them."""
        if self.font is None or self.title_font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self.font = pygame.font.SysFont("sans", 16)
            self.title_font = pygame.font.SysFont("sans", 22, bold=True)
        return self.font, self.title_font

    def render(
        self,
        surface: pygame.Surface,
        state: PresenceState,
        message: str,
        response: str,
    ) -> None:
        font, title_font = self.init_font()

        st = self.style
        width, height = surface.get_size()

        if st.show_status:
            x = HUD_MARGIN
            if st.show_name:
                ident = f"{st.emoji} {st.name}".strip()
                x = self._draw(surface, title_font, ident, st.text, x, HUD_MARGIN) + 8
                if st.tagline:
                    x = self._draw(surface, font, f"- {st.tagline}", st.text, x, HUD_MARGIN + 4) + 16

            label = status_label(state, message)
            color = status_color(state, st.primary)
            pill_w = font.size(label)[0] + 36
            pill = pygame.Rect(max(x, width - pill_w - HUD_MARGIN), HUD_MARGIN - 4, pill_w, 30)
            pygame.draw.rect(surface, (0, 0, 0, 77), pill, border_radius=15)
            pygame.draw.circle(surface, rgba(color, 1.0), (pill.x + 14, pill.centery), 4)
            self._draw(surface, font, label, st.text, pill.x + 26, pill.y + 6)

        text = bubble_text(response)
        if st.show_bubble and text:
            max_w = min(width - 2 * HUD_MARGIN, 640)
            lines = wrap_text(font, text, max_w - 32)[-BUBBLE_MAX_LINES:]
            box_h = len(lines) * LINE_HEIGHT + 24
            box = pygame.Rect((width - max_w) // 2, height - box_h - HUD_MARGIN, max_w, box_h)
            pygame.draw.rect(surface, (0, 0, 0, 102), box, border_radius=16)
            pygame.draw.rect(surface, rgba(st.primary, 1.0), box, 1, border_radius=16)
            y = box.y + 12
            for line in lines:
                self._draw(surface, font, line, st.text, box.x + 16, y)
                y += LINE_HEIGHT

    @staticmethod
    def _draw(
        surface: pygame.Surface,
        font: pygame.font.Font,
        text: str,
        color: tuple[int, int, int],
        x: int,
        y: int,
    ) -> int:
        """Blit ``text`` at (x, y) and return the x just past it."""
        rendered = font.render(text, True, color)
        surface.blit(rendered, (x, y))
        return x + rendered.get_width()
