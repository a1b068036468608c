"""WebSocket listener that feeds controller frames into a Dispatcher."""

from __future__ import annotations

from typing import Any

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed

from mechturk.bridge.dispatcher import Dispatcher


class BridgeServer:
    """Accepts controller connections and queues their frames for the next tick.

    The dispatcher, not this class, decides when frames run; the connection
    handler only moves text frames into the peer's inbox.
    """

    def __init__(self, dispatcher: Dispatcher, host: str = "127.0.0.1", port: int = 9080):
        self.dispatcher = dispatcher
        self.host = host
        self._requested_port = port
        self._server: Any = None

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        """Bound port; differs from the requested one when that was 0."""
        if self._server is None:
            return self._requested_port
        sockets = list(self._server.sockets or [])
        if not sockets:
            return self._requested_port
        return sockets[0].getsockname()[1]

    async def start(self) -> None:
        if self._server is not None:
            return
        self.dispatcher.seal()
        self._server = await websockets.serve(
            self._handle_connection,
            self.host,
            self._requested_port,
            max_size=None,
        )
        logger.info(
            "Bridge listening on ws://{}:{} ({} methods)",
            self.host,
            self.port,
            len(self.dispatcher.methods),
        )

    async def stop(self) -> None:
        server = self._server
        if server is None:
            return
        self._server = None
        server.close()
        await server.wait_closed()
        await self.dispatcher.close()
        logger.info("Bridge listener stopped")

    async def _handle_connection(self, ws: Any) -> None:
        remote = _format_remote(getattr(ws, "remote_address", None))
        peer = self.dispatcher.accept(ws, remote=remote)
        try:
            async for raw in ws:
                if isinstance(raw, (bytes, bytearray)):
                    logger.debug("Ignoring binary frame from {}", peer.peer_id)
                    continue
                if not peer.push_frame(raw):
                    break
        except ConnectionClosed as exc:
            logger.debug("Peer {} connection closed: {}", peer.peer_id, exc)
        finally:
            self.dispatcher.disconnect(peer)


def _format_remote(address: Any) -> str | None:
    if isinstance(address, (tuple, list)) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address) if address else None
