"""Reference target: in-memory scene graph served over the bridge."""

from mechturk.target.handlers import SceneHandlers, register_default_handlers
from mechturk.target.host import TargetHost
from mechturk.target.input import InputState
from mechturk.target.scene import SceneNode, SceneTree, TileMapLayer, build_demo_scene

__all__ = [
    "InputState",
    "SceneHandlers",
    "SceneNode",
    "SceneTree",
    "TargetHost",
    "TileMapLayer",
    "build_demo_scene",
    "register_default_handlers",
]
