"""Parameter normalization between snake_case (wire) and camelCase (internal) keys."""

from __future__ import annotations

from typing import Any

# snake_case -> camelCase for every argument name the live tools understand.
PARAMETER_MAPPINGS: dict[str, str] = {
    "project_path": "projectPath",
    "scene_path": "scenePath",
    "root_node_type": "rootNodeType",
    "parent_node_path": "parentNodePath",
    "new_parent_path": "newParentPath",
    "node_type": "nodeType",
    "node_name": "nodeName",
    "node_path": "nodePath",
    "texture_path": "texturePath",
    "output_path": "outputPath",
    "new_path": "newPath",
    "file_path": "filePath",
    "event_type": "eventType",
    "key_code": "keyCode",
    "root_path": "rootPath",
    "include_properties": "includeProperties",
    "image_base64": "imageBase64",
    "source_id": "sourceId",
    "atlas_x": "atlasX",
    "atlas_y": "atlasY",
}

REVERSE_PARAMETER_MAPPINGS: dict[str, str] = {camel: snake for snake, camel in PARAMETER_MAPPINGS.items()}


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case by splitting at capital letters."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0 and name[i - 1] != "_":
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def _to_internal_key(key: Any) -> Any:
    if isinstance(key, str) and "_" in key:
        return PARAMETER_MAPPINGS.get(key, key)
    return key


def _to_wire_key(key: Any) -> Any:
    if not isinstance(key, str):
        return key
    mapped = REVERSE_PARAMETER_MAPPINGS.get(key)
    if mapped is not None:
        return mapped
    return camel_to_snake(key)


def normalize_parameters(params: Any) -> Any:
    """Rewrite snake_case keys listed in PARAMETER_MAPPINGS to camelCase.

    Keys outside the table pass through. Nested mappings are rewritten, and so
    are mappings held directly in lists; other list items are left alone.
    """
    if isinstance(params, dict):
        return {_to_internal_key(k): normalize_parameters(v) for k, v in params.items()}
    if isinstance(params, list):
        return [normalize_parameters(item) if isinstance(item, (dict, list)) else item for item in params]
    return params


def convert_camel_to_snake_case(params: Any) -> Any:
    """Inverse of normalize_parameters; unknown camelCase keys are derived programmatically."""
    if isinstance(params, dict):
        return {_to_wire_key(k): convert_camel_to_snake_case(v) for k, v in params.items()}
    if isinstance(params, list):
        return [convert_camel_to_snake_case(item) if isinstance(item, (dict, list)) else item for item in params]
    return params
