import json

import pytest

from mechturk.bridge.protocol import (
    HANDLER_ERROR,
    METHOD_NOT_FOUND,
    BridgeRequest,
    BridgeResponse,
    error_response,
    parse_response,
    rpc_error,
)


def test_request_omits_missing_params():
    assert json.loads(BridgeRequest(id="1", method="ping").to_json()) == {"id": "1", "method": "ping", "params": {}}
    frame = json.loads(BridgeRequest(id="2", method="delete_node", params={"node_path": "/root/A"}).to_json())
    assert frame["params"] == {"node_path": "/root/A"}


def test_response_frames():
    assert json.loads(BridgeResponse(id="3", result={"ok": True}).to_json()) == {"id": "3", "result": {"ok": True}}
    assert json.loads(BridgeResponse(id="4").to_json()) == {"id": "4", "result": None}
    failure = error_response("5", METHOD_NOT_FOUND, "Method not found: x")
    assert failure.ok is False
    assert json.loads(failure.to_json()) == {"id": "5", "error": {"code": -32601, "message": "Method not found: x"}}


def test_error_response_without_id_uses_zero():
    assert error_response(None, HANDLER_ERROR, "boom").id == "0"


def test_rpc_error_includes_data_only_when_given():
    assert rpc_error(-32000, "x") == {"code": -32000, "message": "x"}
    assert rpc_error(-32000, "x", {"a": 1})["data"] == {"a": 1}


def test_parse_response_normalizes_id_and_error():
    parsed = parse_response(b'{"id": 7, "error": "plain text"}')
    assert parsed.id == "7"
    assert parsed.error == {"code": HANDLER_ERROR, "message": "plain text"}
    ok = parse_response('{"id": "8", "result": [1, 2]}')
    assert ok.ok and ok.result == [1, 2]


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"result": 1}'])
def test_parse_response_rejects_non_responses(raw):
    with pytest.raises(ValueError):
        parse_response(raw)
