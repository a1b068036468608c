"""Encode/decode between JSON-safe wire values and typed engine values."""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from mechturk.codec.typed_values import TYPE_KEY, TypedValue, lookup_type
from mechturk.utils.exceptions import TypedValueError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def encode_value(value: Any) -> Any:
    """Convert a value that may hold typed models into its wire form."""
    if isinstance(value, TypedValue):
        return _encode_typed(value)
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def _encode_typed(value: TypedValue) -> dict[str, Any]:
    wire: dict[str, Any] = {TYPE_KEY: value.type_name}
    for name in type(value).model_fields:
        wire[name] = encode_value(getattr(value, name))
    for name, extra in (value.model_extra or {}).items():
        wire.setdefault(name, encode_value(extra))
    return wire


def decode_value(value: Any) -> Any:
    """Reconstruct typed models from a wire value.

    Only mappings carrying a registered `_type` become models. Mappings without
    the discriminator are walked as plain structures, and an unrecognized
    `_type` is returned untouched.
    """
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    if not isinstance(value, dict):
        return value
    if TYPE_KEY not in value:
        return {k: decode_value(v) for k, v in value.items()}
    type_name = value.get(TYPE_KEY)
    cls = lookup_type(type_name) if isinstance(type_name, str) else None
    if cls is None:
        logger.warning("Unknown typed value {!r}; passing through unchanged", type_name)
        return value
    fields = {k: decode_value(v) for k, v in value.items() if k != TYPE_KEY}
    try:
        return cls.model_validate(fields)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        raise TypedValueError(cls.type_name, problems) from exc


def is_typed_value(value: Any) -> bool:
    """True for a wire mapping whose `_type` names a registered type."""
    return (
        isinstance(value, dict)
        and isinstance(value.get(TYPE_KEY), str)
        and lookup_type(value[TYPE_KEY]) is not None
    )


def looks_like_vector2(value: Any) -> bool:
    """A plain mapping with numeric x and y, no z and no discriminator."""
    return (
        isinstance(value, dict)
        and _is_number(value.get("x"))
        and _is_number(value.get("y"))
        and "z" not in value
        and TYPE_KEY not in value
    )


def auto_detect_vector2(value: Any) -> Any:
    """Wrap a plain {x, y} mapping as a tagged Vector2; anything else is returned as is."""
    if looks_like_vector2(value):
        return {TYPE_KEY: "Vector2", "x": value["x"], "y": value["y"]}
    return value
