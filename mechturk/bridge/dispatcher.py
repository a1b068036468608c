"""Target-side request dispatcher driven by the host's per-frame tick."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generator

from loguru import logger
from websockets.exceptions import ConnectionClosed

from mechturk.bridge.protocol import (
    HANDLER_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    UNKNOWN_ID,
    BridgeResponse,
    error_response,
)
from mechturk.codec import encode_value
from mechturk.utils.exceptions import HandlerError, MechTurkError, classify_exception, sanitize_error_message

Handler = Callable[[Any], Any]


class PeerState(Enum):
    ACCEPTING = "accepting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Peer:
    """One accepted controller connection and its queue of unprocessed frames."""

    peer_id: str
    transport: Any
    remote: str | None = None
    state: PeerState = PeerState.ACCEPTING
    inbox: deque[str | bytes] = field(default_factory=deque)

    def push_frame(self, raw: str | bytes) -> bool:
        """Queue an inbound frame; refused once the peer has started closing."""
        if self.state not in (PeerState.ACCEPTING, PeerState.OPEN):
            return False
        self.inbox.append(raw)
        return True

    def begin_close(self) -> None:
        if self.state is PeerState.ACCEPTING:
            self.state = PeerState.CLOSED
        elif self.state is PeerState.OPEN:
            self.state = PeerState.CLOSING


class Deferred:
    """Handler result that is only known after a later event (e.g. the next drawn frame).

    Handlers return one of these, or any other awaitable, and the dispatcher
    sends the response once it completes.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: Any = None) -> None:
        if not self._future.done():
            self._future.set_result(value)

    def reject(self, exc: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(exc)

    def __await__(self) -> Generator[Any, None, Any]:
        return self._future.__await__()


class Dispatcher:
    """Routes inbound request frames to registered handlers.

    All state is owned by the event loop running `tick()`; nothing here is
    thread-safe.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._sealed = False
        self._peers: dict[str, Peer] = {}
        self._incoming: deque[Peer] = deque()
        self._continuations: set[asyncio.Task[None]] = set()
        self._peer_ids = itertools.count(1)

    # -- registry -----------------------------------------------------------

    def register_handler(self, method: str, handler: Handler) -> None:
        if self._sealed:
            raise RuntimeError(f"handler registry is sealed; cannot register {method!r}")
        if not method or not isinstance(method, str):
            raise ValueError("method name must be a non-empty string")
        if method in self._handlers:
            raise ValueError(f"handler already registered for {method!r}")
        self._handlers[method] = handler

    def seal(self) -> None:
        self._sealed = True

    @property
    def methods(self) -> list[str]:
        return sorted(self._handlers)

    # -- peers ----------------------------------------------------------------

    def accept(self, transport: Any, *, remote: str | None = None) -> Peer:
        """Hand over a new transport; it becomes an open peer on the next tick."""
        peer = Peer(peer_id=f"peer-{next(self._peer_ids)}", transport=transport, remote=remote)
        self._incoming.append(peer)
        return peer

    def disconnect(self, peer: Peer) -> None:
        """Called by the transport layer once the peer's connection has ended."""
        peer.begin_close()

    @property
    def peers(self) -> list[Peer]:
        return list(self._peers.values())

    @property
    def pending_deferred(self) -> int:
        return len(self._continuations)

    async def tick(self) -> None:
        """One scheduling step: accept new peers, dispatch queued frames, drop closed peers."""
        while self._incoming:
            peer = self._incoming.popleft()
            if peer.state is PeerState.ACCEPTING:
                peer.state = PeerState.OPEN
                self._peers[peer.peer_id] = peer
                logger.info("Bridge peer {} connected ({})", peer.peer_id, peer.remote or "local")

        for peer in list(self._peers.values()):
            while peer.inbox and peer.state in (PeerState.OPEN, PeerState.CLOSING):
                await self.handle_frame(peer, peer.inbox.popleft())
            if peer.state is PeerState.CLOSING:
                peer.state = PeerState.CLOSED

        for peer_id, peer in list(self._peers.items()):
            if peer.state is PeerState.CLOSED:
                del self._peers[peer_id]
                logger.info("Bridge peer {} disconnected", peer_id)

    async def close(self) -> None:
        """Drop every peer and abandon deferred responses still in flight."""
        for task in list(self._continuations):
            task.cancel()
        if self._continuations:
            await asyncio.gather(*self._continuations, return_exceptions=True)
        self._continuations.clear()
        for peer in [*self._incoming, *self._peers.values()]:
            peer.state = PeerState.CLOSED
        self._incoming.clear()
        self._peers.clear()

    # -- dispatch -------------------------------------------------------------

    async def handle_frame(self, peer: Peer, raw: str | bytes) -> None:
        try:
            text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
            frame = json.loads(text)
        except (ValueError, UnicodeDecodeError) as exc:
            logger.debug("Unparseable frame from {}: {}", peer.peer_id, exc)
            await self._send(peer, error_response(UNKNOWN_ID, PARSE_ERROR, f"Parse error: {exc}"))
            return

        if not isinstance(frame, dict):
            await self._send(peer, error_response(UNKNOWN_ID, INVALID_REQUEST, "Invalid request: frame must be an object"))
            return
        req_id = frame.get("id")
        if req_id is None:
            req_id = UNKNOWN_ID
        method = frame.get("method")
        if not isinstance(method, str) or not method:
            await self._send(peer, error_response(req_id, INVALID_REQUEST, "Invalid request: missing method"))
            return
        handler = self._handlers.get(method)
        if handler is None:
            await self._send(peer, error_response(req_id, METHOD_NOT_FOUND, f"Method not found: {method}"))
            return

        params = frame.get("params")
        logger.debug("Bridge call {} {} from {}", req_id, method, peer.peer_id)
        try:
            outcome = handler({} if params is None else params)
        except Exception as exc:
            await self._send(peer, self._failure(req_id, method, exc))
            return

        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(self._complete_deferred(peer, req_id, method, outcome))
            self._continuations.add(task)
            task.add_done_callback(self._continuations.discard)
            return
        await self._send(peer, BridgeResponse(id=req_id, result=encode_value(outcome)))

    async def _complete_deferred(self, peer: Peer, req_id: Any, method: str, outcome: Any) -> None:
        try:
            value = await outcome
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            response = self._failure(req_id, method, exc)
        else:
            response = BridgeResponse(id=req_id, result=encode_value(value))
        await self._send(peer, response)

    def _failure(self, req_id: Any, method: str, exc: Exception) -> BridgeResponse:
        if isinstance(exc, HandlerError):
            logger.warning("Bridge method {} failed: {}", method, exc.message)
            return error_response(req_id, exc.rpc_code, exc.message, exc.details or None)
        if isinstance(exc, MechTurkError):
            logger.warning("Bridge method {} failed with {}: {}", method, exc.code, exc.message)
            return error_response(req_id, HANDLER_ERROR, exc.message, exc.details or None)
        code, _, _ = classify_exception(exc)
        sanitized = sanitize_error_message(str(exc)) or type(exc).__name__
        logger.exception("Bridge method {} failed with [{}]: {}", method, code, sanitized)
        return error_response(req_id, HANDLER_ERROR, sanitized)

    async def _send(self, peer: Peer, response: BridgeResponse) -> None:
        if peer.state is not PeerState.OPEN:
            logger.debug("Dropping response {} for {} peer {}", response.id, peer.state.value, peer.peer_id)
            return
        try:
            text = response.to_json()
        except (TypeError, ValueError) as exc:
            text = error_response(response.id, HANDLER_ERROR, f"Result is not JSON serializable: {exc}").to_json()
        try:
            await peer.transport.send(text)
        except (ConnectionClosed, ConnectionError) as exc:
            logger.debug("Send to {} failed: {}", peer.peer_id, exc)
            peer.begin_close()
