"""Reference target: a scene graph driven by a cooperative per-frame loop."""

from __future__ import annotations

import asyncio
import io
from typing import Any

from loguru import logger

from mechturk.bridge.dispatcher import Deferred, Dispatcher
from mechturk.bridge.server import BridgeServer
from mechturk.codec import Color, Vector2
from mechturk.config.schema import TargetConfig
from mechturk.target.handlers import register_default_handlers
from mechturk.target.input import InputState
from mechturk.target.scene import SceneTree, TileMapLayer, build_demo_scene

CLEAR_COLOR = (77, 77, 77)
TILE_SIZE = 16


def _rgb(color: Any) -> tuple[int, int, int]:
    if not isinstance(color, Color):
        return (255, 255, 255)

    def channel(value: float) -> int:
        return int(max(0.0, min(1.0, value)) * 255)

    return channel(color.r), channel(color.g), channel(color.b)


class TargetHost:
    """Owns the dispatcher, its listener and the frame counter.

    Each `step()` is one frame: the dispatcher ticks, the frame counter
    advances and anything waiting on the next drawn frame is released.
    """

    def __init__(self, config: TargetConfig | None = None, scene: SceneTree | None = None):
        self.config = config or TargetConfig()
        self.scene = scene or build_demo_scene()
        self.input = InputState()
        self.frame = 0
        self.dispatcher = Dispatcher()
        self.handlers = register_default_handlers(self.dispatcher, self)
        self.server = BridgeServer(self.dispatcher, self.config.host, self.config.port)
        self._frame_waiters: list[Deferred] = []

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def viewport_size(self) -> tuple[int, int]:
        return self.config.viewport_width, self.config.viewport_height

    async def start(self) -> None:
        await self.server.start()

    async def stop(self) -> None:
        for waiter in self._frame_waiters:
            waiter.reject(RuntimeError("target host stopped"))
        self._frame_waiters.clear()
        await self.server.stop()

    async def step(self) -> int:
        await self.dispatcher.tick()
        self.frame += 1
        waiters, self._frame_waiters = self._frame_waiters, []
        for waiter in waiters:
            waiter.resolve(self.frame)
        return self.frame

    def next_frame_drawn(self) -> Deferred:
        """Resolves with the frame number once the next frame has been drawn."""
        waiter = Deferred()
        self._frame_waiters.append(waiter)
        return waiter

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        stop_event = stop_event or asyncio.Event()
        interval = max(0, self.config.frame_interval_ms) / 1000.0
        await self.start()
        logger.info("Target running on ws://{}:{} ({} nodes)", self.config.host, self.port, self.scene.node_count())
        try:
            while not stop_event.is_set():
                await self.step()
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.stop()
            logger.info("Target stopped after {} frames", self.frame)

    def capture_viewport(self, width: int | None = None, height: int | None = None) -> tuple[bytes, tuple[int, int]]:
        """Render the scene to PNG bytes, optionally resized."""
        from PIL import Image, ImageDraw

        image = Image.new("RGB", self.viewport_size, CLEAR_COLOR)
        draw = ImageDraw.Draw(image)
        for node in self.scene.root.walk():
            if not node.properties.get("visible", True):
                continue
            if isinstance(node, TileMapLayer):
                for (x, y) in node.get_used_cells():
                    left, top = x * TILE_SIZE, y * TILE_SIZE
                    draw.rectangle((left, top, left + TILE_SIZE - 1, top + TILE_SIZE - 1), fill=(96, 64, 32))
                continue
            position = node.properties.get("position")
            if isinstance(position, Vector2) and node.parent is not None and node.node_type != "Node2D":
                x, y = int(position.x), int(position.y)
                draw.rectangle((x - 2, y - 2, x + 2, y + 2), fill=_rgb(node.properties.get("modulate")))
        if width or height:
            image = image.resize((width or image.width, height or image.height))
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue(), image.size
