"""Tests for the reference target's frame loop."""

import asyncio
import io

import pytest
from PIL import Image

from mechturk.codec import Vector2


@pytest.mark.asyncio
async def test_step_advances_frames_and_releases_waiters(target_host):
    first = target_host.next_frame_drawn()
    second = target_host.next_frame_drawn()
    assert await target_host.step() == 1
    assert await first == 1
    assert await second == 1
    later = target_host.next_frame_drawn()
    assert not later.done
    await target_host.step()
    assert await later == 2


@pytest.mark.asyncio
async def test_stop_rejects_outstanding_frame_waiters(target_host):
    waiter = target_host.next_frame_drawn()
    await target_host.stop()
    with pytest.raises(RuntimeError, match="stopped"):
        await waiter


@pytest.mark.asyncio
async def test_run_stops_when_event_is_set(target_host):
    stop = asyncio.Event()
    task = asyncio.ensure_future(target_host.run(stop))
    for _ in range(500):
        if target_host.frame >= 3:
            break
        await asyncio.sleep(0.005)
    stop.set()
    await asyncio.wait_for(task, timeout=5)
    assert target_host.frame >= 3
    assert not target_host.server.running


def test_capture_viewport_draws_scene(target_host):
    png, size = target_host.capture_viewport()
    assert size == (320, 180)
    image = Image.open(io.BytesIO(png))
    assert image.getpixel((300, 60)) == (77, 77, 77)
    # Ground tiles sit on row 8 (16px cells).
    assert image.getpixel((8, 8 * 16 + 8)) == (96, 64, 32)

    target_host.scene.get_node("/root/Main/Player").properties["position"] = Vector2(x=200.0, y=20.0)
    png, _ = target_host.capture_viewport()
    image = Image.open(io.BytesIO(png))
    assert image.getpixel((200, 20)) != (77, 77, 77)

    _, resized = target_host.capture_viewport(64, 36)
    assert resized == (64, 36)
