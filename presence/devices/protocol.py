"""Gateway wire protocol: presence states, inbound envelopes, outbound frames.

Wire format: one JSON object per websocket text frame.

Outbound::

    {"type": "connect", "token": "...", "session": "main"}
    {"type": "chat.send", "content": "..."}

Inbound tags come in several aliases (``chat.delta``/``chat.stream``,
``chat.end``/``chat``) and carry text in either ``content`` or ``text``.
``parse_frame`` folds all of that into one ``InboundEnvelope`` so nothing
downstream looks at raw dicts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final


class PresenceState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    IDLE = "idle"
    THINKING = "thinking"
    SPEAKING = "speaking"
    LISTENING = "listening"
    ERROR = "error"


STATE_LABELS: Final[dict[PresenceState, str]] = {
    PresenceState.DISCONNECTED: "Disconnected",
    PresenceState.CONNECTING: "Connecting...",
    PresenceState.CONNECTED: "Connected",
    PresenceState.IDLE: "Ready",
    PresenceState.THINKING: "Thinking...",
    PresenceState.SPEAKING: "Speaking...",
    PresenceState.LISTENING: "Listening...",
    PresenceState.ERROR: "Error",
}

STATE_COLORS: Final[dict[PresenceState, tuple[int, int, int]]] = {
    PresenceState.DISCONNECTED: (100, 116, 139),
    PresenceState.CONNECTING: (245, 158, 11),
    PresenceState.CONNECTED: (34, 197, 94),
    PresenceState.IDLE: (34, 197, 94),
    PresenceState.THINKING: (59, 130, 246),
    PresenceState.SPEAKING: (139, 92, 246),
    PresenceState.LISTENING: (6, 182, 212),
    PresenceState.ERROR: (239, 68, 68),
}

# States in which the transport is up and the agent is not mid-reply.
READY_STATES: Final[frozenset[PresenceState]] = frozenset(
    {PresenceState.IDLE, PresenceState.CONNECTED, PresenceState.LISTENING}
)


class EnvelopeKind(str, Enum):
    CONNECTED = "connected"
    CHAT_START = "chat_start"
    CHAT_DELTA = "chat_delta"
    CHAT_END = "chat_end"
    ERROR_NOTICE = "error_notice"
    OTHER = "other"


_TAG_TO_KIND: Final[dict[str, EnvelopeKind]] = {
    "connected": EnvelopeKind.CONNECTED,
    "chat.start": EnvelopeKind.CHAT_START,
    "thinking": EnvelopeKind.CHAT_START,
    "chat.stream": EnvelopeKind.CHAT_DELTA,
    "chat.delta": EnvelopeKind.CHAT_DELTA,
    "chat.end": EnvelopeKind.CHAT_END,
    "chat": EnvelopeKind.CHAT_END,
    "error": EnvelopeKind.ERROR_NOTICE,
}


@dataclass(slots=True, frozen=True)
class InboundEnvelope:
    """One normalized inbound message."""

    kind: EnvelopeKind
    tag: str = ""
    text: str = ""  # delta fragment or final reply; empty when absent
    message: str = ""  # error notice text

    @property
    def has_text(self) -> bool:
        return bool(self.text)


def _pick_text(d: dict[str, Any]) -> str:
    for key in ("content", "text"):
        val = d.get(key)
        if isinstance(val, str) and val:
            return val
    return ""


def envelope_from_dict(d: dict[str, Any]) -> InboundEnvelope:
    """Normalize a decoded JSON object.  Raises ``ValueError`` without a tag."""
    tag = d.get("type")
    if not isinstance(tag, str):
        raise ValueError("missing or non-string 'type'")

    kind = _TAG_TO_KIND.get(tag, EnvelopeKind.OTHER)
    if kind in (EnvelopeKind.CHAT_DELTA, EnvelopeKind.CHAT_END):
        return InboundEnvelope(kind=kind, tag=tag, text=_pick_text(d))
    if kind == EnvelopeKind.ERROR_NOTICE:
        msg = d.get("message")
        return InboundEnvelope(
            kind=kind, tag=tag, message=msg if isinstance(msg, str) else ""
        )
    return InboundEnvelope(kind=kind, tag=tag)


def parse_frame(raw: str | bytes) -> InboundEnvelope:
    """Parse one websocket frame.  Raises ``ValueError`` on malformed input."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode()
        except UnicodeDecodeError as e:
            raise ValueError(f"frame is not UTF-8: {e}") from None
    raw = raw.strip()
    if not raw:
        raise ValueError("empty frame")
    try:
        d = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e.msg}") from None
    if not isinstance(d, dict):
        raise ValueError("expected JSON object")
    return envelope_from_dict(d)


# -- outbound ----------------------------------------------------------------


def encode_connect(token: str, session: str) -> str:
    return json.dumps({"type": "connect", "token": token, "session": session})


def encode_chat_send(content: str) -> str:
    return json.dumps({"type": "chat.send", "content": content})
