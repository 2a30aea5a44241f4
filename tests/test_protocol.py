"""Tests for gateway frame parsing and encoding."""

from __future__ import annotations

import json

import pytest

from presence.devices.protocol import (
    READY_STATES,
    STATE_COLORS,
    STATE_LABELS,
    EnvelopeKind,
    PresenceState,
    encode_chat_send,
    encode_connect,
    envelope_from_dict,
    parse_frame,
)


@pytest.mark.parametrize(
    "tag, kind",
    [
        ("connected", EnvelopeKind.CONNECTED),
        ("chat.start", EnvelopeKind.CHAT_START),
        ("thinking", EnvelopeKind.CHAT_START),
        ("chat.stream", EnvelopeKind.CHAT_DELTA),
        ("chat.delta", EnvelopeKind.CHAT_DELTA),
        ("chat.end", EnvelopeKind.CHAT_END),
        ("chat", EnvelopeKind.CHAT_END),
        ("error", EnvelopeKind.ERROR_NOTICE),
        ("presence.ping", EnvelopeKind.OTHER),
    ],
)
def test_tag_aliases(tag, kind):
    assert parse_frame(json.dumps({"type": tag})).kind == kind


def test_delta_prefers_content_over_text():
    env = envelope_from_dict({"type": "chat.delta", "content": "a", "text": "b"})
    assert env.text == "a"
    env = envelope_from_dict({"type": "chat.delta", "text": "b"})
    assert env.text == "b"
    assert env.has_text


def test_end_without_text_has_no_text():
    env = parse_frame('{"type": "chat.end"}')
    assert env.kind == EnvelopeKind.CHAT_END
    assert not env.has_text


def test_error_message_extracted():
    env = parse_frame('{"type": "error", "message": "quota exceeded"}')
    assert env.message == "quota exceeded"
    env = parse_frame('{"type": "error", "message": 42}')
    assert env.message == ""


def test_bytes_frame_decoded():
    env = parse_frame(b'{"type": "connected"}')
    assert env.kind == EnvelopeKind.CONNECTED


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "not json", "[1, 2]", '{"content": "no type"}', '{"type": 5}', b"\xff\xfe"],
)
def test_malformed_frames_raise(raw):
    with pytest.raises(ValueError):
        parse_frame(raw)


def test_outbound_frames():
    assert json.loads(encode_connect("tok", "main")) == {
        "type": "connect",
        "token": "tok",
        "session": "main",
    }
    assert json.loads(encode_chat_send("hi")) == {"type": "chat.send", "content": "hi"}


def test_every_state_has_label_and_color():
    for state in PresenceState:
        assert state in STATE_LABELS
        assert state in STATE_COLORS
    assert STATE_LABELS[PresenceState.IDLE] == "Ready"
    assert PresenceState.THINKING not in READY_STATES
