"""Pytest hooks and fixtures."""

import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosed

from mechturk.target.host import TargetHost
from mechturk.config.schema import TargetConfig

_CLOSE = object()


class FakeConnection:
    """In-memory stand-in for a client WebSocket connection."""

    def __init__(self):
        self.sent: list[dict] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, text):
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(text))

    def feed(self, frame) -> None:
        self._incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def drop(self) -> None:
        """Simulate the remote end going away."""
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    async def close(self):
        if not self.closed:
            self.drop()

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        return item


class FakeTransport:
    """Server-side peer transport recording decoded response frames."""

    def __init__(self, fail_with: Exception | None = None):
        self.sent: list[dict] = []
        self.fail_with = fail_with

    async def send(self, text):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(json.loads(text))


async def _wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def wait_until():
    """Spin the event loop until predicate() holds."""
    return _wait_until


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def broken_transport():
    return FakeTransport(fail_with=ConnectionResetError("peer reset"))


@pytest.fixture
def target_host():
    """Target host with the demo scene; its listener is not started."""
    return TargetHost(TargetConfig(host="127.0.0.1", port=0, frame_interval_ms=1))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    for name in (
        "MECHTURK_BRIDGE__HOST",
        "MECHTURK_BRIDGE__PORT",
        "GODOT_BRIDGE_HOST",
        "GODOT_BRIDGE_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
