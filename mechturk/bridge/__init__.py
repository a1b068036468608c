"""Bridge transport: controller-side client and target-side dispatcher."""

from mechturk.bridge.client import BridgeClient, ConnectionState
from mechturk.bridge.dispatcher import Deferred, Dispatcher, Peer, PeerState
from mechturk.bridge.errors import (
    BridgeConnectionClosedError,
    BridgeConnectionError,
    BridgeError,
    BridgeProtocolError,
    BridgeRemoteError,
    BridgeTimeoutError,
)
from mechturk.bridge.protocol import BRIDGE_METHODS, BridgeRequest, BridgeResponse
from mechturk.bridge.server import BridgeServer

__all__ = [
    "BRIDGE_METHODS",
    "BridgeClient",
    "BridgeConnectionClosedError",
    "BridgeConnectionError",
    "BridgeError",
    "BridgeProtocolError",
    "BridgeRemoteError",
    "BridgeRequest",
    "BridgeResponse",
    "BridgeServer",
    "BridgeTimeoutError",
    "ConnectionState",
    "Deferred",
    "Dispatcher",
    "Peer",
    "PeerState",
]
