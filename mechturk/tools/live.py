"""Controller-side live tools: normalize arguments, call the bridge, format a ToolResponse."""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Awaitable, Callable

from loguru import logger

from mechturk.bridge.client import BridgeClient
from mechturk.codec import auto_detect_vector2, encode_value
from mechturk.tools.responses import (
    ToolResponse,
    create_error_response,
    create_image_response,
    create_text_response,
)
from mechturk.utils.exceptions import MechTurkError
from mechturk.utils.parameters import convert_camel_to_snake_case, normalize_parameters

BRIDGE_HINTS = [
    "Ensure the target is running with its bridge listener enabled (mechturk serve)",
    "Ensure a project/scene is running in the target",
]

# Properties whose plain {x, y} values are sent as tagged Vector2.
VECTOR_PROPERTIES = frozenset({"position", "global_position", "scale", "offset", "velocity", "size"})


def _error_text(exc: BaseException) -> str:
    if isinstance(exc, MechTurkError):
        return exc.message
    return str(exc) or "Unknown error"


def _json(result: Any) -> str:
    return json.dumps(result, indent=2)


class LiveTools:
    """Tool surface over a BridgeClient.

    Each tool accepts the caller's raw arguments (camelCase or snake_case),
    never raises for bridge failures, and reports them as error responses
    with hints instead.
    """

    def __init__(self, client: BridgeClient):
        self.client = client
        self._tools: dict[str, Callable[[dict[str, Any] | None], Awaitable[ToolResponse]]] = {
            "capture_screenshot": self.capture_screenshot,
            "send_input_event": self.send_input_event,
            "send_action": self.send_action,
            "get_scene_tree": self.get_scene_tree,
            "get_node_properties": self.get_node_properties,
            "set_node_property": self.set_node_property,
            "delete_node_live": self.delete_node_live,
            "set_tiles_live": self.set_tiles_live,
            "reparent_node_live": self.reparent_node_live,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def call_tool(self, name: str, args: dict[str, Any] | None = None) -> ToolResponse:
        tool = self._tools.get(name)
        if tool is None:
            return create_error_response(f"Unknown tool: {name}", [f"Available tools: {', '.join(self._tools)}"])
        return await tool(args)

    # -- viewport -------------------------------------------------------------

    async def capture_screenshot(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        try:
            result = await self.client.request(
                "capture_screenshot",
                {"source": args.get("source") or "game", "width": args.get("width"), "height": args.get("height")},
            )
            if not isinstance(result, dict) or not result.get("image_base64"):
                return create_error_response("No screenshot data received from the target")
            output_path = args.get("outputPath")
            if output_path:
                data = base64.b64decode(result["image_base64"], validate=True)
                path = Path(output_path).expanduser()
                path.write_bytes(data)
                logger.info("Screenshot saved to {} ({} bytes)", path, len(data))
                return create_text_response(f"Screenshot saved to: {output_path} ({len(data)} bytes)")
            return create_image_response(
                result["image_base64"],
                "image/png",
                f"Screenshot captured ({result.get('width')}x{result.get('height')})",
            )
        except (MechTurkError, OSError, binascii.Error) as exc:
            return create_error_response(
                f"Failed to capture screenshot: {_error_text(exc)}",
                [*BRIDGE_HINTS, 'For "game" source, ensure a project is running in the target'],
            )

    # -- input ----------------------------------------------------------------

    async def send_input_event(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        event_type = args.get("eventType")
        if not event_type:
            return create_error_response("eventType is required", ['Provide "key", "mouse_button", or "mouse_motion"'])
        keycode = args.get("keycode", args.get("keyCode"))
        try:
            result = await self.client.request(
                "send_input_event",
                {
                    "event_type": event_type,
                    "key": args.get("key"),
                    "keycode": keycode,
                    "pressed": args.get("pressed", True),
                    "button": args.get("button"),
                    "position": auto_detect_vector2(encode_value(args.get("position"))),
                    "relative": auto_detect_vector2(encode_value(args.get("relative"))),
                },
            )
        except MechTurkError as exc:
            return create_error_response(f"Failed to send input event: {_error_text(exc)}", BRIDGE_HINTS)
        key = f" ({args['key']})" if args.get("key") else ""
        status = result.get("status", "ok") if isinstance(result, dict) else "ok"
        return create_text_response(f"Input event sent: {event_type}{key} - {status}")

    async def send_action(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        action = args.get("action")
        if not action:
            return create_error_response("action is required", ["Provide an Input Map action name"])
        pressed = args.get("pressed", True)
        try:
            result = await self.client.request(
                "send_action",
                {"action": action, "pressed": pressed, "strength": args.get("strength", 1.0)},
            )
        except MechTurkError as exc:
            return create_error_response(
                f"Failed to send action: {_error_text(exc)}",
                [BRIDGE_HINTS[0], f'Verify that action "{action}" exists in the Input Map'],
            )
        status = result.get("status", "ok") if isinstance(result, dict) else "ok"
        return create_text_response(f"Action '{action}' {'released' if pressed is False else 'pressed'} - {status}")

    # -- inspection -----------------------------------------------------------

    async def get_scene_tree(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        try:
            result = await self.client.request(
                "get_scene_tree",
                {
                    "depth": args.get("depth", 5),
                    "root_path": args.get("rootPath") or "/root",
                    "include_properties": bool(args.get("includeProperties", False)),
                },
            )
        except MechTurkError as exc:
            return create_error_response(f"Failed to get scene tree: {_error_text(exc)}", BRIDGE_HINTS)
        return create_text_response(_json(result))

    async def get_node_properties(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        node_path = args.get("nodePath")
        if not node_path:
            return create_error_response("nodePath is required", ["Provide the path to a node in the scene tree"])
        try:
            result = await self.client.request(
                "get_node_properties",
                {"node_path": node_path, "categories": args.get("categories")},
            )
        except MechTurkError as exc:
            return create_error_response(
                f"Failed to get node properties: {_error_text(exc)}",
                [BRIDGE_HINTS[0], f'Verify the node path "{node_path}" exists in the current scene'],
            )
        return create_text_response(_json(result))

    # -- live editing -----------------------------------------------------------

    async def set_node_property(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        node_path, prop = args.get("nodePath"), args.get("property")
        if not node_path or not prop:
            return create_error_response("nodePath and property are required")
        if "value" not in args:
            return create_error_response("value is required")
        value = encode_value(args["value"])
        if prop in VECTOR_PROPERTIES:
            value = auto_detect_vector2(value)
        try:
            result = await self.client.request(
                "set_node_property",
                {"node_path": node_path, "property": prop, "value": value},
            )
        except MechTurkError as exc:
            return create_error_response(f"Failed to set property: {_error_text(exc)}", BRIDGE_HINTS)
        return create_text_response(_json(result))

    async def delete_node_live(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        node_path = args.get("nodePath")
        if not node_path:
            return create_error_response("nodePath is required")
        try:
            result = await self.client.request("delete_node", {"node_path": node_path})
        except MechTurkError as exc:
            return create_error_response(f"Failed to delete node: {_error_text(exc)}", BRIDGE_HINTS)
        return create_text_response(_json(result))

    async def set_tiles_live(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        node_path, tiles = args.get("nodePath"), args.get("tiles")
        if not node_path or not tiles:
            return create_error_response("nodePath and tiles are required")
        if not isinstance(tiles, list):
            return create_error_response("tiles must be a list of {x, y, source_id, atlas_x, atlas_y} cells")
        try:
            result = await self.client.request(
                "set_tiles",
                {"node_path": node_path, "tiles": convert_camel_to_snake_case(tiles)},
            )
        except MechTurkError as exc:
            return create_error_response(f"Failed to set tiles: {_error_text(exc)}", BRIDGE_HINTS)
        return create_text_response(_json(result))

    async def reparent_node_live(self, raw_args: dict[str, Any] | None = None) -> ToolResponse:
        args = normalize_parameters(raw_args or {})
        node_path, new_parent_path = args.get("nodePath"), args.get("newParentPath")
        if not node_path or not new_parent_path:
            return create_error_response("nodePath and newParentPath are required")
        try:
            result = await self.client.request(
                "reparent_node",
                {"node_path": node_path, "new_parent_path": new_parent_path},
            )
        except MechTurkError as exc:
            return create_error_response(f"Failed to reparent node: {_error_text(exc)}", BRIDGE_HINTS)
        return create_text_response(_json(result))
