"""Errors raised to callers of the bridge client."""

from __future__ import annotations

from typing import Any

from mechturk.utils.exceptions import ErrorCategory, MechTurkError


class BridgeError(MechTurkError):
    """Base class for bridge failures."""


class BridgeConnectionError(BridgeError):
    """The target's bridge listener could not be reached."""

    def __init__(self, url: str, reason: str | None = None):
        message = (
            f"Cannot connect to bridge at {url}. "
            "Ensure the target is running with its bridge listener enabled."
        )
        if reason:
            message += f" ({reason})"
        super().__init__(
            message,
            code="BRIDGE_CONNECT_FAILED",
            category=ErrorCategory.TRANSPORT,
            details={"url": url},
        )
        self.url = url


class BridgeConnectionClosedError(BridgeError):
    """The connection closed while a call was pending."""

    def __init__(self, method: str | None = None):
        super().__init__(
            "Bridge connection closed",
            code="BRIDGE_CLOSED",
            category=ErrorCategory.TRANSPORT,
            details={"method": method} if method else {},
        )


class BridgeTimeoutError(BridgeError):
    """No response arrived before the call's deadline."""

    def __init__(self, method: str, elapsed_ms: int):
        super().__init__(
            f"Bridge request '{method}' timed out after {elapsed_ms}ms",
            code="BRIDGE_TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"method": method, "elapsed_ms": elapsed_ms},
        )
        self.method = method
        self.elapsed_ms = elapsed_ms


class BridgeProtocolError(BridgeError):
    """A frame could not be encoded or decoded."""

    def __init__(self, message: str):
        super().__init__(message, code="BRIDGE_PROTOCOL_ERROR", category=ErrorCategory.PROTOCOL)


class BridgeRemoteError(BridgeError):
    """The target answered with an error response."""

    def __init__(self, rpc_code: int, message: str, data: Any = None):
        super().__init__(
            f"Bridge error: {message}",
            code="BRIDGE_REMOTE_ERROR",
            category=ErrorCategory.RECOVERABLE,
            details={"rpc_code": rpc_code, "data": data},
        )
        self.rpc_code = rpc_code
        self.remote_message = message
        self.data = data
