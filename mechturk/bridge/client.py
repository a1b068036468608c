"""WebSocket client that calls named operations inside a running target."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from mechturk.bridge.errors import (
    BridgeConnectionClosedError,
    BridgeConnectionError,
    BridgeProtocolError,
    BridgeRemoteError,
    BridgeTimeoutError,
)
from mechturk.bridge.protocol import HANDLER_ERROR, BridgeRequest, parse_response
from mechturk.config.schema import DEFAULT_BRIDGE_HOST, DEFAULT_BRIDGE_PORT, BridgeConfig

Connector = Callable[[str], Awaitable[Any]]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


@dataclass
class PendingCall:
    id: str
    method: str
    future: asyncio.Future[Any]
    connection: Any
    timeout_ms: int
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)


async def _websocket_connector(url: str) -> Any:
    # Screenshots travel as base64 text, so frames are not size-capped.
    return await websockets.connect(url, max_size=None)


class BridgeClient:
    """Single persistent connection to a target's bridge listener.

    Each request gets a fresh correlation id and waits in the pending table
    until the matching response, its deadline, or connection loss settles it.
    Completion order follows response arrival, not send order.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        connect_timeout_ms: int = 5000,
        request_timeout_ms: int = 30000,
        connector: Connector | None = None,
    ):
        self.host = host or DEFAULT_BRIDGE_HOST
        self.port = port or DEFAULT_BRIDGE_PORT
        self.connect_timeout_ms = connect_timeout_ms
        self.request_timeout_ms = request_timeout_ms
        self._connector = connector or _websocket_connector
        self._ws: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._connect_task: asyncio.Future[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[str, PendingCall] = {}
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: BridgeConfig, **kwargs: Any) -> "BridgeClient":
        return cls(
            config.host,
            config.port,
            connect_timeout_ms=config.connect_timeout_ms,
            request_timeout_ms=config.request_timeout_ms,
            **kwargs,
        )

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._state is ConnectionState.OPEN

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def __aenter__(self) -> "BridgeClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Open the connection, or join an attempt that is already in flight."""
        if self.is_connected:
            return
        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._open())
        task = self._connect_task
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._connect_task is task:
                self._connect_task = None

    async def _open(self) -> None:
        self._state = ConnectionState.CONNECTING
        logger.debug("Connecting to bridge at {}", self.url)
        try:
            ws = await asyncio.wait_for(self._connector(self.url), timeout=self.connect_timeout_ms / 1000.0)
        except asyncio.TimeoutError as exc:
            self._state = ConnectionState.DISCONNECTED
            raise BridgeConnectionError(self.url, f"timed out after {self.connect_timeout_ms}ms") from exc
        except (OSError, InvalidHandshake, InvalidURI) as exc:
            self._state = ConnectionState.DISCONNECTED
            logger.debug("Bridge connection error: {}", exc)
            raise BridgeConnectionError(self.url, str(exc) or type(exc).__name__) from exc
        self._ws = ws
        self._state = ConnectionState.OPEN
        self._reader_task = asyncio.ensure_future(self._read_loop(ws))
        logger.info("Connected to bridge at {}", self.url)

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                self._handle_message(raw)
        except ConnectionClosed as exc:
            logger.debug("Bridge connection dropped: {}", exc)
        finally:
            self._handle_close(ws)

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            response = parse_response(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("Failed to parse bridge message: {}", exc)
            return
        call = self._pending.pop(response.id, None)
        if call is None:
            logger.debug("Dropping bridge response for unknown id {}", response.id)
            return
        if call.timer is not None:
            call.timer.cancel()
        if call.future.done():
            return
        if response.error is not None:
            code = response.error.get("code")
            call.future.set_exception(
                BridgeRemoteError(
                    code if isinstance(code, int) else HANDLER_ERROR,
                    str(response.error.get("message") or "unknown error"),
                    response.error.get("data"),
                )
            )
        else:
            call.future.set_result(response.result)

    def _handle_close(self, ws: Any) -> None:
        if self._ws is ws:
            self._ws = None
            self._state = ConnectionState.DISCONNECTED
            self._reader_task = None
        doomed = [call_id for call_id, call in self._pending.items() if call.connection is ws]
        for call_id in doomed:
            self._settle(call_id, BridgeConnectionClosedError(self._pending[call_id].method))
        logger.info("Disconnected from bridge at {} ({} pending call(s) rejected)", self.url, len(doomed))

    def _expire(self, call_id: str) -> None:
        call = self._pending.get(call_id)
        if call is None:
            return
        logger.debug("Bridge request {} ({}) timed out", call_id, call.method)
        self._settle(call_id, BridgeTimeoutError(call.method, call.timeout_ms))

    def _settle(self, call_id: str, exc: Exception | None = None) -> None:
        call = self._pending.pop(call_id, None)
        if call is None:
            return
        if call.timer is not None:
            call.timer.cancel()
        if exc is not None and not call.future.done():
            call.future.set_exception(exc)

    async def request(self, method: str, params: Any = None, timeout_ms: int | None = None) -> Any:
        """Call `method` on the target and wait for its result."""
        if not self.is_connected:
            await self.connect()
        ws = self._ws
        if ws is None or self._state is not ConnectionState.OPEN:
            # The reader may already have seen the peer close.
            raise BridgeConnectionClosedError(method)
        deadline_ms = self.request_timeout_ms if timeout_ms is None else timeout_ms
        call_id = str(next(self._ids))
        try:
            payload = BridgeRequest(id=call_id, method=method, params=params).to_json()
        except (TypeError, ValueError) as exc:
            raise BridgeProtocolError(f"Cannot encode params for '{method}': {exc}") from exc

        loop = asyncio.get_running_loop()
        call = PendingCall(
            id=call_id,
            method=method,
            future=loop.create_future(),
            connection=ws,
            timeout_ms=deadline_ms,
        )
        call.timer = loop.call_later(max(0, deadline_ms) / 1000.0, self._expire, call_id)
        self._pending[call_id] = call

        logger.debug("Sending bridge request {} {}", call_id, method)
        try:
            await ws.send(payload)
        except (ConnectionClosed, OSError) as exc:
            logger.debug("Bridge send {} failed: {}", call_id, exc)
            self._settle(call_id, BridgeConnectionClosedError(method))
        except BaseException:
            self._settle(call_id)
            raise
        try:
            return await call.future
        except asyncio.CancelledError:
            self._settle(call_id)
            raise

    async def disconnect(self) -> None:
        """Close the connection if open. Pending calls are rejected by the close handler."""
        ws = self._ws
        if ws is None:
            return
        self._state = ConnectionState.CLOSING
        reader = self._reader_task
        await ws.close()
        if reader is not None:
            await reader
        else:
            self._handle_close(ws)
