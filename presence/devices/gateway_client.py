"""Gateway client: owns the agent websocket and the presence state machine.

Every transport and protocol event ends up as one of the discrete
``PresenceState`` values; nothing else crosses this boundary.

Transitions (inbound tags are normalized by ``protocol.parse_frame``):
    DISCONNECTED → CONNECTING   connect() with a token
    DISCONNECTED → ERROR        connect() without a token (terminal)
    any          → IDLE         ``connected``
    any          → THINKING     ``chat.start`` / ``thinking``
    any          → SPEAKING     ``chat.delta`` / ``chat.stream`` (appends text)
    any          → IDLE         ``chat.end`` / ``chat`` (replaces text)
    any          → ERROR        ``error`` envelope or transport error
    any          → DISCONNECTED transport closed; one reconnect is scheduled
    ready        → LISTENING    send()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Protocol, cast

from presence.config import GatewayConfig
from presence.devices.protocol import (
    EnvelopeKind,
    InboundEnvelope,
    PresenceState,
    encode_chat_send,
    encode_connect,
    parse_frame,
)

log = logging.getLogger(__name__)

RECONNECT_DELAY_S = 3.0
MISSING_TOKEN_MESSAGE = "Missing token. Set PRESENCE_TOKEN or pass --token"

StateListener = Callable[[PresenceState, PresenceState], None]


class _WebSocketConn(Protocol):
    async def send(self, message: str) -> None: ...
    async def close(self) -> None: ...
    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


ConnectFn = Callable[[str], Awaitable[_WebSocketConn]]


async def websockets_connect(url: str) -> _WebSocketConn:
    import websockets

    return cast(
        _WebSocketConn,
        await websockets.connect(url, ping_interval=20, ping_timeout=10),
    )


@dataclass(slots=True)
class Session:
    """One authenticated gateway session and the resources it owns."""

    token: str
    session_id: str
    ws: _WebSocketConn | None = None
    reconnect_attempts: int = 0
    reconnect_timer: asyncio.TimerHandle | None = None
    receive_task: asyncio.Task[None] | None = None

    @property
    def reconnect_pending(self) -> bool:
        return self.reconnect_timer is not None and not self.reconnect_timer.cancelled()

    def cancel_reconnect(self) -> None:
        if self.reconnect_timer is not None:
            self.reconnect_timer.cancel()
            self.reconnect_timer = None


class GatewayClient:
    """Presence state machine over a single gateway websocket."""

    def __init__(
        self,
        config: GatewayConfig,
        connect: ConnectFn | None = None,
        reconnect_delay_s: float | None = None,
    ) -> None:
        self._config = config
        self._connect_fn: ConnectFn = connect or websockets_connect
        self._reconnect_delay_s = (
            config.reconnect_delay_s if reconnect_delay_s is None else reconnect_delay_s
        )
        self._state = PresenceState.DISCONNECTED
        self._message = ""
        self._last_response = ""
        self._session: Session | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._listeners: list[StateListener] = []
        self._terminal = False
        self._stopping = False

        self._rx_frames = 0
        self._rx_bad_frames = 0
        self._rx_unknown = 0
        self._tx_frames = 0

    # -- read-only state -----------------------------------------------------

    @property
    def state(self) -> PresenceState:
        return self._state

    @property
    def message(self) -> str:
        return self._message

    @property
    def last_response(self) -> str:
        return self._last_response

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def connected(self) -> bool:
        return self._session is not None and self._session.ws is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._session is not None and self._session.reconnect_pending

    def subscribe(self, listener: StateListener) -> None:
        """Register ``listener(state, prev_state)``, called on every change."""
        self._listeners.append(listener)

    def configure(self, config: GatewayConfig) -> None:
        """Swap in new gateway settings.  Takes effect on the next connect()."""
        self._config = config
        self._reconnect_delay_s = config.reconnect_delay_s
        self._terminal = False

    # -- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> GatewayClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Open (or replace) the gateway session."""
        url = self._config.url
        if not url:
            log.warning("gateway: no url configured, not connecting")
            return

        self._stopping = False
        await self._teardown()

        token = (self._config.token or "").strip()
        if not token:
            self._terminal = True
            self._set_state(PresenceState.ERROR, MISSING_TOKEN_MESSAGE)
            log.error("gateway: %s", MISSING_TOKEN_MESSAGE)
            return

        self._terminal = False
        session = Session(token=token, session_id=self._config.session or "main")
        self._session = session
        await self._open(session)

    async def disconnect(self) -> None:
        """Cancel timers and tasks, close the transport.  Safe to call twice."""
        self._stopping = True
        await self._teardown()
        self._set_state(PresenceState.DISCONNECTED, "Disconnected")
        log.info("gateway disconnected")

    async def send(self, content: str) -> bool:
        """Send a chat message if a transport is live; otherwise drop it."""
        session = self._session
        ws = session.ws if session is not None else None
        if ws is None:
            log.debug("gateway: dropping send, no live transport")
            return False

        self._last_response = ""
        self._set_state(PresenceState.LISTENING)
        try:
            await ws.send(encode_chat_send(content))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("gateway: send failed: %s", e)
            return False
        self._tx_frames += 1
        return True

    # -- inbound -------------------------------------------------------------

    def handle_frame(self, raw: str | bytes) -> None:
        """Parse and apply one raw frame.  Malformed frames are dropped."""
        self._rx_frames += 1
        try:
            envelope = parse_frame(raw)
        except ValueError as e:
            self._rx_bad_frames += 1
            log.warning("gateway: dropping malformed frame: %s", e)
            return
        self.handle_envelope(envelope)

    def handle_envelope(self, envelope: InboundEnvelope) -> None:
        kind = envelope.kind
        if kind == EnvelopeKind.CONNECTED:
            if self._session is not None:
                self._session.reconnect_attempts = 0
            self._set_state(PresenceState.IDLE, "Connected")

        elif kind == EnvelopeKind.CHAT_START:
            self._set_state(PresenceState.THINKING, "Thinking...")

        elif kind == EnvelopeKind.CHAT_DELTA:
            if envelope.has_text:
                self._last_response += envelope.text
            self._set_state(PresenceState.SPEAKING)

        elif kind == EnvelopeKind.CHAT_END:
            if envelope.has_text:
                self._last_response = envelope.text
            self._set_state(PresenceState.IDLE, "")

        elif kind == EnvelopeKind.ERROR_NOTICE:
            log.warning("gateway: agent error: %s", envelope.message or "(none)")
            self._set_state(PresenceState.ERROR, envelope.message or "Error")

        else:
            self._rx_unknown += 1
            log.debug("gateway: ignoring frame type %r", envelope.tag)

    # -- debug ---------------------------------------------------------------

    def debug_snapshot(self) -> dict:
        session = self._session
        return {
            "state": self._state.value,
            "message": self._message,
            "connected": self.connected,
            "terminal": self._terminal,
            "session_id": session.session_id if session else None,
            "reconnect_attempts": session.reconnect_attempts if session else 0,
            "reconnect_pending": self.reconnect_pending,
            "rx_frames": self._rx_frames,
            "rx_bad_frames": self._rx_bad_frames,
            "rx_unknown": self._rx_unknown,
            "tx_frames": self._tx_frames,
        }

    # -- internals -----------------------------------------------------------

    def _set_state(self, state: PresenceState, message: str | None = None) -> None:
        if message is not None:
            self._message = message
        prev = self._state
        if state == prev:
            return
        self._state = state
        log.info("gateway: %s -> %s", prev.value, state.value)
        for listener in list(self._listeners):
            try:
                listener(state, prev)
            except Exception:
                log.exception("gateway: state listener failed")

    async def _open(self, session: Session) -> None:
        url = self._config.url
        if session.ws is not None:
            old, session.ws = session.ws, None
            with contextlib.suppress(Exception):
                await old.close()

        self._set_state(PresenceState.CONNECTING, "Connecting...")
        try:
            ws = await self._connect_fn(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("gateway: connect to %s failed: %s", url, e)
            if session is self._session and not self._stopping:
                self._set_state(PresenceState.ERROR, "Connection error")
                self._on_transport_closed(session)
            return

        if session is not self._session or self._stopping:
            # Replaced or torn down while the handshake was in flight.
            with contextlib.suppress(Exception):
                await ws.close()
            return

        session.ws = ws
        try:
            await ws.send(encode_connect(session.token, session.session_id))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("gateway: handshake send failed: %s", e)
            session.ws = None
            with contextlib.suppress(Exception):
                await ws.close()
            self._set_state(PresenceState.ERROR, "Connection error")
            self._on_transport_closed(session)
            return

        self._tx_frames += 1
        session.receive_task = asyncio.create_task(self._receive_loop(session, ws))
        log.info("gateway: transport open to %s (session=%s)", url, session.session_id)

    async def _receive_loop(self, session: Session, ws: _WebSocketConn) -> None:
        try:
            async for raw in ws:
                self.handle_frame(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("gateway: transport error: %s", e)
            if session is self._session and not self._stopping:
                self._set_state(PresenceState.ERROR, "Connection error")

        if session.ws is ws:
            session.ws = None
        self._on_transport_closed(session)

    def _on_transport_closed(self, session: Session) -> None:
        if session is not self._session or self._stopping:
            return
        session.ws = None
        self._set_state(PresenceState.DISCONNECTED, "Disconnected")
        if self._terminal:
            return
        if session.reconnect_pending:
            log.debug("gateway: reconnect already pending")
            return

        loop = asyncio.get_running_loop()
        session.reconnect_timer = loop.call_later(
            self._reconnect_delay_s, self._fire_reconnect, session
        )
        log.info("gateway: reconnecting in %.1fs", self._reconnect_delay_s)

    def _fire_reconnect(self, session: Session) -> None:
        session.reconnect_timer = None
        if session is not self._session or self._stopping:
            return
        session.reconnect_attempts += 1
        log.info("gateway: reconnect attempt %d", session.reconnect_attempts)
        self._reconnect_task = asyncio.create_task(self._open(session))

    async def _teardown(self) -> None:
        current = asyncio.current_task()

        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not current:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        session = self._session
        self._session = None
        if session is None:
            return

        session.cancel_reconnect()

        recv = session.receive_task
        session.receive_task = None
        if recv is not None and not recv.done() and recv is not current:
            recv.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await recv

        ws = session.ws
        session.ws = None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
