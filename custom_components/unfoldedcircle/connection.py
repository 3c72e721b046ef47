"""Persistent WebSocket connection to the remote."""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
import logging
from typing import Any

import aiohttp

from .const import API_KEY_HEADER, HEARTBEAT_INTERVAL, RECONNECT_DELAY

_LOGGER = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle of the WebSocket connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RemoteConnection:
    """WebSocket connector with automatic reconnect.

    Owns the only socket and the only reconnect timer for one remote:
    - a close by the peer or a network failure schedules one reconnect after
      ``reconnect_delay`` seconds, replacing any attempt already scheduled
    - a failed connect attempt is treated like a close
    - a peer that stops answering pings within ``heartbeat`` seconds counts
      as a close
    - ``async_disconnect`` cancels the timer and closes the socket for good

    Every reconnect is a cold start: ``on_connected`` is called again and the
    caller is expected to resubscribe and refetch the full entity list.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        token: str | None,
        *,
        reconnect_delay: float = RECONNECT_DELAY,
        heartbeat: float | None = HEARTBEAT_INTERVAL,
        on_connected: Callable[[], Awaitable[None]] | None = None,
        on_disconnected: Callable[[], Awaitable[None]] | None = None,
        on_message: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the connector."""
        if not url:
            raise ValueError("WebSocket URL must not be empty")
        self._session = session
        self._url = url
        self._headers = {API_KEY_HEADER: token} if token else {}
        self._reconnect_delay = reconnect_delay
        self._heartbeat = heartbeat
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._on_message = on_message

        self._state = ConnectionState.DISCONNECTED
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task | None = None
        self._connect_task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._closing = False

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Return True if the socket is open."""
        return self._state is ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        """Return True if a reconnect attempt is scheduled."""
        return self._reconnect_handle is not None

    async def async_connect(self) -> None:
        """Open the WebSocket, replacing an existing socket."""
        if self._closing:
            _LOGGER.debug("Connector was shut down - not connecting")
            return

        self._cancel_reconnect()
        await self._async_close_socket()

        self._state = ConnectionState.CONNECTING
        _LOGGER.info("Connecting to Unfolded Circle Remote WebSocket: %s", self._url)
        try:
            ws = await self._session.ws_connect(
                self._url, headers=self._headers, heartbeat=self._heartbeat
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as err:
            _LOGGER.error("WebSocket connection to %s failed: %s", self._url, err)
            self._state = ConnectionState.DISCONNECTED
            self._schedule_reconnect()
            return

        if self._closing:
            await ws.close()
            return

        self._ws = ws
        self._state = ConnectionState.CONNECTED
        _LOGGER.info("WebSocket connected to remote")
        await self._async_notify(self._on_connected)
        self._reader_task = asyncio.create_task(self._async_read(ws))

    async def async_disconnect(self) -> None:
        """Tear down the connection without scheduling a reconnect."""
        self._closing = True
        self._cancel_reconnect()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._connect_task = None

        was_connected = self.connected
        await self._async_close_socket()
        self._state = ConnectionState.DISCONNECTED
        if was_connected:
            await self._async_notify(self._on_disconnected)
        _LOGGER.info("WebSocket connection closed")

    async def async_send_json(self, payload: dict[str, Any]) -> bool:
        """Send a JSON message; returns False if it could not be sent.

        A failed send is only logged. The transport's own close event decides
        whether the connection is gone.
        """
        ws = self._ws
        if ws is None or not self.connected or ws.closed:
            _LOGGER.error("Cannot send %s: WebSocket not connected", payload.get("msg"))
            return False
        try:
            await ws.send_json(payload)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as err:
            _LOGGER.error("Error sending %s: %s", payload.get("msg"), err)
            return False
        return True

    async def _async_read(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Hand inbound frames to the message handler until the socket closes."""
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self._async_handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    await self._async_handle_text(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _LOGGER.error("WebSocket error: %s", ws.exception())
        except asyncio.CancelledError:
            raise
        except Exception as err:
            _LOGGER.error("Error reading from WebSocket: %s", err)

        if ws is self._ws:
            await self._async_handle_closed()

    async def _async_handle_text(self, data: str) -> None:
        if self._on_message is None:
            return
        try:
            await self._on_message(data)
        except Exception as err:
            _LOGGER.error("Error handling WebSocket message: %s", err, exc_info=True)

    async def _async_handle_closed(self) -> None:
        self._ws = None
        self._reader_task = None
        self._state = ConnectionState.DISCONNECTED
        await self._async_notify(self._on_disconnected)
        if self._closing:
            return
        _LOGGER.warning(
            "WebSocket disconnected. Reconnecting in %s seconds", self._reconnect_delay
        )
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Schedule one reconnect attempt, replacing a pending one."""
        if self._closing:
            return
        self._cancel_reconnect()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self._reconnect_delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if self._closing:
            return
        self._connect_task = asyncio.create_task(self.async_connect())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    async def _async_close_socket(self) -> None:
        ws = self._ws
        reader = self._reader_task
        self._ws = None
        self._reader_task = None
        if ws is not None and not ws.closed:
            try:
                await ws.close()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as err:
                _LOGGER.debug("Error closing WebSocket: %s", err)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    async def _async_notify(self, callback: Callable[[], Awaitable[None]] | None) -> None:
        if callback is None:
            return
        try:
            await callback()
        except Exception as err:
            _LOGGER.error("Error in connection callback: %s", err, exc_info=True)
