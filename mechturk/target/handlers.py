"""Operation handlers served by the reference target.

Every handler takes the JSON-decoded params mapping and returns either a
plain value or an awaitable. Failures are raised as HandlerError so the
dispatcher can turn them into error responses.
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any, Awaitable

from loguru import logger

from mechturk import __version__
from mechturk.bridge.dispatcher import Dispatcher
from mechturk.codec import TypedValue, Vector2, decode_value, looks_like_vector2
from mechturk.target.input import EVENT_TYPES, MOUSE_BUTTONS, InputEvent
from mechturk.target.scene import PROPERTY_CATEGORIES, SceneNode, TileMapLayer
from mechturk.utils.exceptions import HandlerError, NotFoundError, TypedValueError

if TYPE_CHECKING:
    from mechturk.target.host import TargetHost

SCREENSHOT_SOURCES = ("game", "editor")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _decode_params(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise HandlerError("params must be an object")
    try:
        return decode_value(raw)
    except TypedValueError as exc:
        raise HandlerError(exc.message) from exc


def _require_str(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise HandlerError(f"{key} is required")
    return value


def _optional_int(params: dict[str, Any], key: str, default: int | None = None) -> int | None:
    value = params.get(key)
    if value is None:
        return default
    if not _is_int(value):
        raise HandlerError(f"{key} must be an integer")
    return value


def _optional_bool(params: dict[str, Any], key: str, default: bool) -> bool:
    value = params.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise HandlerError(f"{key} must be a boolean")
    return value


def _optional_vector(params: dict[str, Any], key: str) -> Vector2 | None:
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, Vector2):
        return value
    if looks_like_vector2(value):
        return Vector2(x=float(value["x"]), y=float(value["y"]))
    raise HandlerError(f"{key} must be a Vector2 or an {{x, y}} mapping")


class SceneHandlers:
    """Bridge methods bound to one running target host."""

    def __init__(self, host: "TargetHost"):
        self.host = host

    @property
    def scene(self):
        return self.host.scene

    def _node(self, path: str) -> SceneNode:
        node = self.scene.get_node(path)
        if node is None:
            raise NotFoundError("Node", path)
        return node

    # -- diagnostics ----------------------------------------------------------

    def ping(self, params: Any) -> dict[str, Any]:
        return {"status": "ok", "frame": self.host.frame, "version": __version__}

    # -- viewport -------------------------------------------------------------

    def capture_screenshot(self, params: Any) -> Awaitable[dict[str, Any]]:
        args = _decode_params(params)
        source = args.get("source") or "game"
        if source not in SCREENSHOT_SOURCES:
            raise HandlerError(f"Unknown screenshot source: {source}")
        width = _optional_int(args, "width")
        height = _optional_int(args, "height")
        for name, value in (("width", width), ("height", height)):
            if value is not None and value <= 0:
                raise HandlerError(f"{name} must be positive")
        return self._capture_after_next_frame(source, width, height)

    async def _capture_after_next_frame(self, source: str, width: int | None, height: int | None) -> dict[str, Any]:
        frame = await self.host.next_frame_drawn()
        png, size = self.host.capture_viewport(width, height)
        logger.debug("Captured {} viewport at frame {} ({} bytes)", source, frame, len(png))
        return {
            "image_base64": base64.b64encode(png).decode("ascii"),
            "width": size[0],
            "height": size[1],
            "source": source,
            "frame": frame,
        }

    # -- input ----------------------------------------------------------------

    def send_input_event(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        event_type = args.get("event_type")
        if event_type not in EVENT_TYPES:
            raise HandlerError(f"Unknown event_type: {event_type}. Expected one of {', '.join(EVENT_TYPES)}")
        event = InputEvent(
            event_type=event_type,
            frame=self.host.frame,
            pressed=_optional_bool(args, "pressed", True),
            position=_optional_vector(args, "position"),
            relative=_optional_vector(args, "relative"),
        )
        if event_type == "key":
            key = args.get("key")
            keycode = _optional_int(args, "keycode")
            if not key and keycode is None:
                raise HandlerError("key or keycode is required for key events")
            event.key = key if isinstance(key, str) and key else None
            event.keycode = keycode
        elif event_type == "mouse_button":
            button = args.get("button") or "left"
            if button not in MOUSE_BUTTONS:
                raise HandlerError(f"Unknown mouse button: {button}")
            event.button = button
        elif event.position is None and event.relative is None:
            raise HandlerError("position or relative is required for mouse_motion events")
        self.host.input.record(event)
        return {"status": "ok", "event_type": event_type, "frame": event.frame}

    def send_action(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        action = _require_str(args, "action")
        strength = args.get("strength", 1.0)
        if not _is_number(strength):
            raise HandlerError("strength must be a number")
        pressed = _optional_bool(args, "pressed", True)
        try:
            applied = self.host.input.apply_action(action, pressed, strength)
        except KeyError:
            raise HandlerError(f"Unknown action: {action}", details={"action": action}) from None
        return {"status": "ok", "action": action, "pressed": pressed, "strength": applied}

    # -- inspection -----------------------------------------------------------

    def get_scene_tree(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        depth = _optional_int(args, "depth", 5)
        root_path = args.get("root_path") or "/root"
        include_properties = _optional_bool(args, "include_properties", False)
        tree = self.scene.describe(root_path, depth, include_properties)
        if tree is None:
            raise NotFoundError("Node", root_path)
        return tree

    def get_node_properties(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        node_path = _require_str(args, "node_path")
        categories = args.get("categories")
        if categories is not None and (
            not isinstance(categories, list) or not all(isinstance(c, str) for c in categories)
        ):
            raise HandlerError("categories must be a list of strings")
        node = self._node(node_path)
        try:
            properties = node.get_properties(categories)
        except KeyError as exc:
            raise HandlerError(
                f"Unknown property category: {exc.args[0]}. Expected one of {', '.join(PROPERTY_CATEGORIES)}"
            ) from None
        return {"node_path": node.get_path(), "type": node.node_type, "properties": properties}

    # -- live editing -----------------------------------------------------------

    def set_node_property(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        node = self._node(_require_str(args, "node_path"))
        prop = _require_str(args, "property")
        if "value" not in args:
            raise HandlerError("value is required")
        if prop not in node.properties:
            raise HandlerError(f"Property '{prop}' not found on {node.get_path()}")
        value = args["value"]
        current = node.properties[prop]
        if isinstance(current, TypedValue) and isinstance(value, dict):
            # Untagged mapping assigned to a typed property takes the property's type.
            try:
                value = type(current).model_validate(value)
            except ValueError as exc:
                raise HandlerError(f"Invalid value for {prop}: {exc}") from exc
        node.properties[prop] = value
        logger.debug("Set {}.{} = {!r}", node.get_path(), prop, value)
        return {"status": "ok", "node_path": node.get_path(), "property": prop, "value": value}

    def delete_node(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        node = self._node(_require_str(args, "node_path"))
        if node.parent is None:
            raise HandlerError("Cannot delete the scene root")
        path = node.get_path()
        node.parent.remove_child(node)
        return {"status": "ok", "deleted": path}

    def set_tiles(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        node = self._node(_require_str(args, "node_path"))
        if not isinstance(node, TileMapLayer):
            raise HandlerError(f"Node {node.get_path()} is not a TileMapLayer (got {node.node_type})")
        tiles = args.get("tiles")
        if not isinstance(tiles, list):
            raise HandlerError("tiles must be a list")
        cells = []
        for index, tile in enumerate(tiles):
            if not isinstance(tile, dict) or not _is_int(tile.get("x")) or not _is_int(tile.get("y")):
                raise HandlerError(f"tiles[{index}] needs integer x and y")
            try:
                cells.append(
                    (
                        tile["x"],
                        tile["y"],
                        _optional_int(tile, "source_id", 0),
                        _optional_int(tile, "atlas_x", 0),
                        _optional_int(tile, "atlas_y", 0),
                    )
                )
            except HandlerError as exc:
                raise HandlerError(f"tiles[{index}]: {exc.message}") from None
        # Validate everything before touching the layer.
        for x, y, source_id, atlas_x, atlas_y in cells:
            node.set_cell(x, y, source_id, atlas_x, atlas_y)
        return {"status": "ok", "node_path": node.get_path(), "tiles_set": len(cells)}

    def reparent_node(self, params: Any) -> dict[str, Any]:
        args = _decode_params(params)
        node = self._node(_require_str(args, "node_path"))
        new_parent = self._node(_require_str(args, "new_parent_path"))
        if node.parent is None:
            raise HandlerError("Cannot reparent the scene root")
        if new_parent is node or node.is_ancestor_of(new_parent):
            raise HandlerError(f"Cannot reparent {node.get_path()} under itself or a descendant")
        if new_parent.get_child(node.name) is not None and new_parent is not node.parent:
            raise HandlerError(f"{new_parent.get_path()} already has a child named {node.name}")
        old_path = node.get_path()
        if new_parent is not node.parent:
            node.parent.remove_child(node)
            new_parent.add_child(node)
        return {"status": "ok", "old_path": old_path, "new_path": node.get_path()}


def register_default_handlers(dispatcher: Dispatcher, host: "TargetHost") -> SceneHandlers:
    """Register the reference target's full method set on `dispatcher`."""
    handlers = SceneHandlers(host)
    dispatcher.register_handler("ping", handlers.ping)
    dispatcher.register_handler("capture_screenshot", handlers.capture_screenshot)
    dispatcher.register_handler("send_input_event", handlers.send_input_event)
    dispatcher.register_handler("send_action", handlers.send_action)
    dispatcher.register_handler("get_scene_tree", handlers.get_scene_tree)
    dispatcher.register_handler("get_node_properties", handlers.get_node_properties)
    dispatcher.register_handler("set_node_property", handlers.set_node_property)
    dispatcher.register_handler("delete_node", handlers.delete_node)
    dispatcher.register_handler("set_tiles", handlers.set_tiles)
    dispatcher.register_handler("reparent_node", handlers.reparent_node)
    return handlers
