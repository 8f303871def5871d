"""Persistent stream connection with fixed-delay reconnect.

State machine::

    disconnected --connect--> connecting --open--> connected
    connected --close/error--> reconnecting --delay--> connecting
    connecting --handshake failure--> reconnecting
    any --teardown--> disconnected (terminal)

The manager owns the socket and the reconnect timer.  Inbound frames are
handed to ``on_frame`` one at a time from a single reader task, so they
are processed strictly in receipt order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import urlencode

import aiohttp

from hydrai._redact import redact_url
from hydrai.config import HydraiConfig
from hydrai.exceptions import HydraiConnectionError, HydraiSessionClosedError, NotConnectedError
from hydrai.state.events import ConnectionState

_logger = logging.getLogger(__name__)

WsConnect = Callable[[str], Awaitable[aiohttp.ClientWebSocketResponse]]
FrameHandler = Callable[[str | bytes], None]
StateListener = Callable[[ConnectionState, ConnectionState], None]

_CONNECT_ERRORS = (aiohttp.ClientError, OSError, TimeoutError)


def build_stream_url(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


class ConnectionManager:
    """One logical streaming connection for a client session.

    Parameters
    ----------
    config : HydraiConfig
        Provides the stream URL and reconnect delay.
    ws_connect : callable
        ``async (url) -> websocket``; usually bound to
        :meth:`aiohttp.ClientSession.ws_connect`.
    on_frame : callable
        Receives every TEXT/BINARY frame payload.
    on_state : callable, optional
        Receives ``(new_state, previous_state)`` on every transition.
    """

    def __init__(
        self,
        config: HydraiConfig,
        *,
        ws_connect: WsConnect,
        on_frame: FrameHandler,
        on_state: StateListener | None = None,
    ) -> None:
        self._config = config
        self._ws_connect = ws_connect
        self._on_frame = on_frame
        self._on_state = on_state

        self._state = ConnectionState.DISCONNECTED
        self._token: str | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._torn_down = False
        self._connect_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def connect_attempts(self) -> int:
        """Number of handshakes started so far."""
        return self._connect_attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def connect(self, token: str) -> None:
        """Open the stream with *token*.

        No-op while ``connected`` or ``connecting``.  While
        ``reconnecting`` the pending timer is cancelled and the connection
        is attempted immediately.  A failed handshake schedules a
        reconnect instead of raising.
        """
        if self._torn_down:
            raise HydraiSessionClosedError("Connection was torn down; create a new client")
        if self._state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            _logger.debug("Connect ignored, stream already %s", self._state)
            return

        self._token = token
        self._cancel_reconnect()
        await self._open()

    async def send(self, message: Mapping[str, Any] | str) -> None:
        """Send one frame; raises :class:`NotConnectedError` unless connected."""
        ws = self._ws
        if self._state is not ConnectionState.CONNECTED or ws is None:
            raise NotConnectedError(f"Cannot send while {self._state}")
        data = message if isinstance(message, str) else json.dumps(dict(message), separators=(",", ":"))
        _logger.debug("Sending frame %s", data)
        try:
            await ws.send_str(data)
        except (ConnectionError, aiohttp.ClientError) as exc:
            raise HydraiConnectionError(f"Send failed: {exc}") from exc

    async def teardown(self) -> None:
        """Close the stream for good.

        The state moves to ``disconnected`` before the socket is detached
        and closed, so the close handler sees an intentional close and
        does not schedule a reconnect.
        """
        self._torn_down = True
        self._set_state(ConnectionState.DISCONNECTED)
        self._cancel_reconnect()

        ws = self._ws
        self._ws = None
        reader = self._reader
        self._reader = None

        if ws is not None:
            try:
                await ws.close()
            except (ConnectionError, aiohttp.ClientError):
                _logger.debug("Error while closing stream", exc_info=True)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        _logger.debug("Stream torn down")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        _logger.debug("Stream state %s -> %s", previous, state)
        if self._on_state is not None:
            self._on_state(state, previous)

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _open(self) -> None:
        assert self._token is not None  # noqa: S101
        self._set_state(ConnectionState.CONNECTING)
        self._connect_attempts += 1
        url = build_stream_url(self._config.ws_url, self._token)
        _logger.debug("Connecting to %s", redact_url(url))

        try:
            ws = await self._ws_connect(url)
        except _CONNECT_ERRORS as exc:
            if self._state is not ConnectionState.CONNECTING:
                return
            _logger.warning("Stream handshake failed: %s", exc)
            self._schedule_reconnect()
            return

        if self._state is not ConnectionState.CONNECTING:
            # Torn down while the handshake was in flight.
            await ws.close()
            return

        self._ws = ws
        self._set_state(ConnectionState.CONNECTED)
        _logger.info("Stream connected")
        self._reader = asyncio.get_running_loop().create_task(self._read(ws))

    async def _read(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                try:
                    self._on_frame(msg.data)
                except Exception:
                    _logger.warning("Frame handler failed", exc_info=True)
            elif msg.type is aiohttp.WSMsgType.ERROR:
                _logger.warning("Stream error: %s", ws.exception())
                break
        self._handle_closed(ws)

    def _handle_closed(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        if self._state is ConnectionState.DISCONNECTED or ws is not self._ws:
            return
        self._ws = None
        self._reader = None
        _logger.warning("Stream closed (code=%s); reconnecting in %.1fs", ws.close_code, self._config.reconnect_delay)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        self._set_state(ConnectionState.RECONNECTING)
        if self.reconnect_pending:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self._config.reconnect_delay)
        if self._state is not ConnectionState.RECONNECTING:
            return
        self._reconnect_task = None
        await self._open()
