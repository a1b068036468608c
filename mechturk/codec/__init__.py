"""Typed value codec: `_type`-tagged wire mappings <-> engine value models."""

from mechturk.codec.codec import (
    auto_detect_vector2,
    decode_value,
    encode_value,
    is_typed_value,
    looks_like_vector2,
)
from mechturk.codec.typed_values import (
    SHAPE_2D_TYPES,
    TYPE_KEY,
    CapsuleShape2D,
    CircleShape2D,
    Color,
    ConvexPolygonShape2D,
    NodePath,
    Rect2,
    RectangleShape2D,
    ResourceRef,
    SegmentShape2D,
    TypedValue,
    Vector2,
    Vector2i,
    Vector3,
    Vector3i,
    WorldBoundaryShape2D,
    is_shape_2d_type,
    known_type_names,
    lookup_type,
)

__all__ = [
    "TYPE_KEY",
    "SHAPE_2D_TYPES",
    "TypedValue",
    "Vector2",
    "Vector2i",
    "Vector3",
    "Vector3i",
    "Color",
    "Rect2",
    "NodePath",
    "ResourceRef",
    "RectangleShape2D",
    "CircleShape2D",
    "CapsuleShape2D",
    "WorldBoundaryShape2D",
    "SegmentShape2D",
    "ConvexPolygonShape2D",
    "encode_value",
    "decode_value",
    "is_typed_value",
    "looks_like_vector2",
    "auto_detect_vector2",
    "is_shape_2d_type",
    "known_type_names",
    "lookup_type",
]
