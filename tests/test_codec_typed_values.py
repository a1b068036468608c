"""Tests for mechturk.codec typed value encoding/decoding."""

from __future__ import annotations

import pytest

from mechturk.codec import (
    SHAPE_2D_TYPES,
    CapsuleShape2D,
    CircleShape2D,
    Color,
    ConvexPolygonShape2D,
    NodePath,
    Rect2,
    RectangleShape2D,
    ResourceRef,
    SegmentShape2D,
    Vector2,
    Vector2i,
    Vector3,
    Vector3i,
    WorldBoundaryShape2D,
    auto_detect_vector2,
    decode_value,
    encode_value,
    is_shape_2d_type,
    is_typed_value,
    known_type_names,
    looks_like_vector2,
)
from mechturk.utils.exceptions import TypedValueError

SAMPLES = [
    Vector2(x=1.5, y=-2.0),
    Vector2i(x=3, y=4),
    Vector3(x=1.0, y=2.0, z=3.0),
    Vector3i(x=-1, y=0, z=7),
    Color(r=0.2, g=0.4, b=0.6, a=0.8),
    Rect2(x=0.0, y=1.0, width=32.0, height=16.0),
    NodePath(path="/root/Main/Player"),
    ResourceRef(path="res://icon.png"),
    RectangleShape2D(size=Vector2(x=8.0, y=4.0)),
    CircleShape2D(radius=3.0),
    CapsuleShape2D(radius=2.0, height=9.0),
    WorldBoundaryShape2D(normal=Vector2(x=0.0, y=1.0), distance=5.0),
    SegmentShape2D(a=Vector2(x=1.0, y=1.0), b=Vector2(x=2.0, y=2.0)),
    ConvexPolygonShape2D(points=[Vector2(x=0.0, y=0.0), Vector2(x=4.0, y=0.0), Vector2(x=2.0, y=3.0)]),
]


def test_registry_covers_every_kind() -> None:
    assert set(known_type_names()) == {
        "Vector2", "Vector2i", "Vector3", "Vector3i", "Color", "Rect2", "NodePath", "Resource",
        *SHAPE_2D_TYPES,
    }


@pytest.mark.parametrize("value", SAMPLES, ids=lambda v: v.type_name)
def test_round_trip(value) -> None:
    wire = encode_value(value)
    assert wire["_type"] == value.type_name
    assert decode_value(wire) == value


def test_color_without_alpha_defaults_to_opaque() -> None:
    color = decode_value({"_type": "Color", "r": 1, "g": 0.5, "b": 0})
    assert isinstance(color, Color)
    assert color.a == 1.0


def test_missing_fields_take_registry_defaults() -> None:
    assert decode_value({"_type": "Vector3"}) == Vector3(x=0.0, y=0.0, z=0.0)
    assert decode_value({"_type": "RectangleShape2D"}).size == Vector2(x=20.0, y=20.0)
    assert decode_value({"_type": "CapsuleShape2D"}) == CapsuleShape2D(radius=10.0, height=30.0)
    assert decode_value({"_type": "WorldBoundaryShape2D"}).normal == Vector2(x=0.0, y=-1.0)
    segment = decode_value({"_type": "SegmentShape2D"})
    assert (segment.a, segment.b) == (Vector2(x=0.0, y=0.0), Vector2(x=0.0, y=10.0))
    assert decode_value({"_type": "ConvexPolygonShape2D"}).points == []


def test_nested_shape_fields_are_reconstructed() -> None:
    shape = decode_value(
        {
            "_type": "ConvexPolygonShape2D",
            "points": [{"_type": "Vector2", "x": 0, "y": 0}, {"_type": "Vector2", "x": 1, "y": 2}],
        }
    )
    assert all(isinstance(p, Vector2) for p in shape.points)
    assert shape.points[1] == Vector2(x=1.0, y=2.0)


def test_untagged_mapping_is_not_reconstructed() -> None:
    wire = {"x": 1, "y": 2}
    assert decode_value(wire) == {"x": 1, "y": 2}
    assert not isinstance(decode_value(wire), Vector2)


def test_tagged_inside_untagged_is_reconstructed() -> None:
    decoded = decode_value({"name": "player", "spawn": {"_type": "Vector2", "x": 3, "y": 4}, "tags": ["a"]})
    assert decoded["name"] == "player"
    assert decoded["spawn"] == Vector2(x=3.0, y=4.0)
    assert decoded["tags"] == ["a"]


def test_unknown_type_passes_through_unchanged() -> None:
    wire = {"_type": "Basis", "x": [1, 0, 0]}
    assert decode_value(wire) is wire


def test_extra_wire_fields_survive_round_trip() -> None:
    wire = {"_type": "Vector2", "x": 1.0, "y": 2.0, "note": "spawn"}
    decoded = decode_value(wire)
    assert decoded.model_extra == {"note": "spawn"}
    assert encode_value(decoded) == wire


def test_malformed_known_type_raises() -> None:
    with pytest.raises(TypedValueError) as exc_info:
        decode_value({"_type": "Vector2", "x": "left", "y": 0})
    assert exc_info.value.code == "TYPED_VALUE_ERROR"
    assert "Vector2" in exc_info.value.message


def test_scalars_and_lists() -> None:
    assert decode_value(5) == 5
    assert decode_value("hi") == "hi"
    assert decode_value(None) is None
    assert encode_value((Vector2i(x=1, y=2), 3)) == [{"_type": "Vector2i", "x": 1, "y": 2}, 3]


def test_is_typed_value() -> None:
    assert is_typed_value({"_type": "Color"})
    assert not is_typed_value({"_type": "Nope"})
    assert not is_typed_value({"x": 1, "y": 2})
    assert not is_typed_value(Vector2())


def test_vector2_detection() -> None:
    assert looks_like_vector2({"x": 1, "y": 2.5})
    assert not looks_like_vector2({"x": 1, "y": 2, "z": 3})
    assert not looks_like_vector2({"x": True, "y": 2})
    assert not looks_like_vector2({"_type": "Vector2i", "x": 1, "y": 2})
    assert not looks_like_vector2({"x": "1", "y": 2})
    assert auto_detect_vector2({"x": 1, "y": 2}) == {"_type": "Vector2", "x": 1, "y": 2}
    assert auto_detect_vector2({"x": 1}) == {"x": 1}
    assert auto_detect_vector2(None) is None


def test_shape_type_helper() -> None:
    assert is_shape_2d_type("CircleShape2D")
    assert not is_shape_2d_type("Vector2")
