"""Bridge wire protocol: JSON text frames exchanged between controller and target.

Request:  {"id": "<str>", "method": "<str>", "params": <any>}
Success:  {"id": "<str>", "result": <any>}
Failure:  {"id": "<str>", "error": {"code": <int>, "message": "<str>"[, "data": <any>]}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
# Handler failures; outside the reserved codes above.
HANDLER_ERROR = -32000

# Response id used when the request id could not be recovered.
UNKNOWN_ID = "0"

BRIDGE_METHODS: tuple[str, ...] = (
    "ping",
    "capture_screenshot",
    "send_input_event",
    "send_action",
    "get_scene_tree",
    "get_node_properties",
    "set_node_property",
    "delete_node",
    "set_tiles",
    "reparent_node",
)


@dataclass(slots=True)
class BridgeRequest:
    id: str
    method: str
    params: Any = None

    def to_json(self) -> str:
        params = {} if self.params is None else self.params
        return json.dumps({"id": self.id, "method": self.method, "params": params})


@dataclass(slots=True)
class BridgeResponse:
    id: Any
    result: Any = None
    error: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> str:
        frame: dict[str, Any] = {"id": self.id}
        if self.error is not None:
            frame["error"] = self.error
        else:
            frame["result"] = self.result
        return json.dumps(frame)


def rpc_error(code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build the error object of a failure response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return error


def error_response(req_id: Any, code: int, message: str, data: Any = None) -> BridgeResponse:
    return BridgeResponse(id=UNKNOWN_ID if req_id is None else req_id, error=rpc_error(code, message, data))


def parse_response(raw: str | bytes) -> BridgeResponse:
    """Decode a response frame; raises ValueError when it is not one."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    frame = json.loads(raw)
    if not isinstance(frame, dict) or "id" not in frame:
        raise ValueError("response frame must be an object with an id")
    error = frame.get("error")
    if error is not None and not isinstance(error, dict):
        error = {"code": HANDLER_ERROR, "message": str(error)}
    return BridgeResponse(id=str(frame["id"]), result=frame.get("result"), error=error)
