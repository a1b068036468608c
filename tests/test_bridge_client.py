"""Tests for the controller-side BridgeClient over an in-memory connection."""

import asyncio

import pytest
from loguru import logger

from mechturk.bridge.client import BridgeClient, ConnectionState
from mechturk.bridge.errors import (
    BridgeConnectionClosedError,
    BridgeConnectionError,
    BridgeProtocolError,
    BridgeRemoteError,
    BridgeTimeoutError,
)
from mechturk.config.schema import BridgeConfig


def _client_for(*connections, **kwargs) -> BridgeClient:
    queue = list(connections)

    async def _connector(url):
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return BridgeClient("localhost", 9080, connector=_connector, **kwargs)


def test_defaults_and_from_config():
    client = BridgeClient()
    assert client.url == "ws://localhost:9080"
    assert client.state is ConnectionState.DISCONNECTED
    configured = BridgeClient.from_config(BridgeConfig(host="10.0.0.2", port=9999, request_timeout_ms=50))
    assert configured.url == "ws://10.0.0.2:9999"
    assert configured.request_timeout_ms == 50


@pytest.mark.asyncio
async def test_responses_resolve_by_id_out_of_order(fake_connection, wait_until):
    client = _client_for(fake_connection)
    first = asyncio.ensure_future(client.request("get_scene_tree", {"depth": 1}))
    second = asyncio.ensure_future(client.request("ping"))
    await wait_until(lambda: len(fake_connection.sent) == 2)

    assert [f["id"] for f in fake_connection.sent] == ["1", "2"]
    assert fake_connection.sent[0] == {"id": "1", "method": "get_scene_tree", "params": {"depth": 1}}
    assert fake_connection.sent[1] == {"id": "2", "method": "ping", "params": {}}

    fake_connection.feed({"id": "2", "result": {"status": "ok"}})
    assert await second == {"status": "ok"}
    assert not first.done()
    fake_connection.feed({"id": "1", "result": {"name": "root"}})
    assert await first == {"name": "root"}
    assert client.pending_count == 0
    await client.disconnect()


@pytest.mark.asyncio
async def test_error_response_raises_remote_error(fake_connection, wait_until):
    client = _client_for(fake_connection)
    call = asyncio.ensure_future(client.request("does_not_exist"))
    await wait_until(lambda: fake_connection.sent)
    fake_connection.feed({"id": "1", "error": {"code": -32601, "message": "Method not found: does_not_exist"}})
    with pytest.raises(BridgeRemoteError) as exc_info:
        await call
    assert exc_info.value.rpc_code == -32601
    assert exc_info.value.message == "Bridge error: Method not found: does_not_exist"
    await client.disconnect()


@pytest.mark.asyncio
async def test_timeout_is_isolated_and_late_response_dropped(fake_connection, wait_until):
    client = _client_for(fake_connection)
    slow = asyncio.ensure_future(client.request("capture_screenshot", timeout_ms=20))
    other = asyncio.ensure_future(client.request("ping"))
    await wait_until(lambda: len(fake_connection.sent) == 2)

    with pytest.raises(BridgeTimeoutError) as exc_info:
        await slow
    assert exc_info.value.message == "Bridge request 'capture_screenshot' timed out after 20ms"
    assert client.pending_count == 1

    fake_connection.feed({"id": "1", "result": "late"})
    fake_connection.feed({"id": "2", "result": "pong"})
    assert await other == "pong"
    assert client.pending_count == 0
    assert client.is_connected
    await client.disconnect()


@pytest.mark.asyncio
async def test_connection_loss_rejects_every_pending_call(fake_connection, wait_until):
    client = _client_for(fake_connection)
    calls = [asyncio.ensure_future(client.request("ping")) for _ in range(3)]
    await wait_until(lambda: len(fake_connection.sent) == 3)

    fake_connection.drop()
    results = await asyncio.gather(*calls, return_exceptions=True)
    assert all(isinstance(r, BridgeConnectionClosedError) for r in results)
    assert all(r.message == "Bridge connection closed" for r in results)
    assert client.pending_count == 0
    await wait_until(lambda: client.state is ConnectionState.DISCONNECTED)


@pytest.mark.asyncio
async def test_reconnects_after_close(fake_connection, make_connection, wait_until):
    replacement = make_connection()
    client = _client_for(fake_connection, replacement)
    await client.connect()
    fake_connection.drop()
    await wait_until(lambda: not client.is_connected)

    call = asyncio.ensure_future(client.request("ping"))
    await wait_until(lambda: replacement.sent)
    replacement.feed({"id": replacement.sent[0]["id"], "result": "pong"})
    assert await call == "pong"
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_failure_is_reported_and_retryable(fake_connection):
    client = _client_for(ConnectionRefusedError("refused"), fake_connection)
    with pytest.raises(BridgeConnectionError) as exc_info:
        await client.connect()
    assert "ws://localhost:9080" in exc_info.value.message
    assert client.state is ConnectionState.DISCONNECTED

    await client.connect()
    assert client.is_connected
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_timeout():
    async def _hang(url):
        await asyncio.sleep(10)

    client = BridgeClient(connector=_hang, connect_timeout_ms=20)
    with pytest.raises(BridgeConnectionError) as exc_info:
        await client.connect()
    assert "timed out after 20ms" in exc_info.value.message


@pytest.mark.asyncio
async def test_concurrent_connects_share_one_attempt(fake_connection):
    attempts = []
    gate = asyncio.Event()

    async def _connector(url):
        attempts.append(url)
        await gate.wait()
        return fake_connection

    client = BridgeClient(connector=_connector)
    waiters = [asyncio.ensure_future(client.connect()) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(*waiters)
    assert len(attempts) == 1
    assert client.is_connected
    await client.disconnect()


@pytest.mark.asyncio
async def test_unserializable_params_fail_before_send(fake_connection):
    client = _client_for(fake_connection)
    with pytest.raises(BridgeProtocolError):
        await client.request("set_node_property", {"value": object()})
    assert fake_connection.sent == []
    assert client.pending_count == 0
    await client.disconnect()


@pytest.mark.asyncio
async def test_undecodable_frames_are_dropped_with_a_warning(fake_connection, wait_until):
    warnings = []
    sink_id = logger.add(warnings.append, level="WARNING", format="{message}")
    client = _client_for(fake_connection)
    call = asyncio.ensure_future(client.request("ping"))
    await wait_until(lambda: fake_connection.sent)
    fake_connection.feed("{not json")
    fake_connection.feed({"id": "99", "result": "stranger"})
    fake_connection.feed({"id": "1", "result": "pong"})
    assert await call == "pong"
    logger.remove(sink_id)
    assert any("Failed to parse bridge message" in w for w in warnings)
    await client.disconnect()


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(fake_connection):
    async with _client_for(fake_connection) as client:
        assert client.is_connected
    assert client.state is ConnectionState.DISCONNECTED
    await client.disconnect()


@pytest.mark.asyncio
async def test_request_on_connection_closed_during_connect(make_connection, wait_until):
    gone = make_connection()
    gone.drop()
    client = _client_for(gone)
    with pytest.raises(BridgeConnectionClosedError):
        await client.request("ping", timeout_ms=200)
    assert client.pending_count == 0
    await wait_until(lambda: client.state is ConnectionState.DISCONNECTED)


class _ResettingConnection:
    """Connection that accepts the handshake but fails on first send."""

    def __init__(self):
        self._closed = asyncio.Event()

    async def send(self, text):
        raise ConnectionResetError("connection reset by peer")

    async def close(self):
        self._closed.set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        await self._closed.wait()
        raise StopAsyncIteration


@pytest.mark.asyncio
async def test_send_failure_settles_the_call():
    client = _client_for(_ResettingConnection())
    with pytest.raises(BridgeConnectionClosedError, match="Bridge connection closed"):
        await client.request("ping", timeout_ms=5000)
    assert client.pending_count == 0
    await client.disconnect()
