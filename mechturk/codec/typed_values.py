"""Structured engine value models carried on the wire as `_type`-tagged mappings.

Every model here is registered under its engine type name. Unknown wire fields
are kept as pydantic extras so they survive a decode/encode cycle.
"""

from __future__ import annotations

from typing import Callable, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

TYPE_KEY = "_type"

_TYPE_REGISTRY: dict[str, type["TypedValue"]] = {}

T = TypeVar("T", bound="TypedValue")


class TypedValue(BaseModel):
    """Base for all registered structured values."""

    model_config = ConfigDict(extra="allow")

    type_name: ClassVar[str] = ""


def register_type(cls: type[T]) -> type[T]:
    """Class decorator adding a model to the discriminator registry."""
    if not cls.type_name:
        raise ValueError(f"{cls.__name__} has no type_name")
    if cls.type_name in _TYPE_REGISTRY:
        raise ValueError(f"duplicate typed value registration: {cls.type_name}")
    _TYPE_REGISTRY[cls.type_name] = cls
    return cls


def lookup_type(type_name: str) -> type[TypedValue] | None:
    return _TYPE_REGISTRY.get(type_name)


def known_type_names() -> list[str]:
    return sorted(_TYPE_REGISTRY)


# ---------------------------------------------------------------------------
# Generic values
# ---------------------------------------------------------------------------


@register_type
class Vector2(TypedValue):
    type_name: ClassVar[str] = "Vector2"
    x: StrictFloat = 0.0
    y: StrictFloat = 0.0


@register_type
class Vector2i(TypedValue):
    type_name: ClassVar[str] = "Vector2i"
    x: StrictInt = 0
    y: StrictInt = 0


@register_type
class Vector3(TypedValue):
    type_name: ClassVar[str] = "Vector3"
    x: StrictFloat = 0.0
    y: StrictFloat = 0.0
    z: StrictFloat = 0.0


@register_type
class Vector3i(TypedValue):
    type_name: ClassVar[str] = "Vector3i"
    x: StrictInt = 0
    y: StrictInt = 0
    z: StrictInt = 0


@register_type
class Color(TypedValue):
    type_name: ClassVar[str] = "Color"
    r: StrictFloat = 0.0
    g: StrictFloat = 0.0
    b: StrictFloat = 0.0
    a: StrictFloat = 1.0


@register_type
class Rect2(TypedValue):
    type_name: ClassVar[str] = "Rect2"
    x: StrictFloat = 0.0
    y: StrictFloat = 0.0
    width: StrictFloat = 0.0
    height: StrictFloat = 0.0


@register_type
class NodePath(TypedValue):
    type_name: ClassVar[str] = "NodePath"
    path: StrictStr = ""


@register_type
class ResourceRef(TypedValue):
    """Reference to a project resource by path; the target loads it."""

    type_name: ClassVar[str] = "Resource"
    path: StrictStr = ""


# ---------------------------------------------------------------------------
# 2D collision shapes
# ---------------------------------------------------------------------------


def _vec(x: float, y: float) -> Callable[[], Vector2]:
    return lambda: Vector2(x=x, y=y)


@register_type
class RectangleShape2D(TypedValue):
    type_name: ClassVar[str] = "RectangleShape2D"
    size: Vector2 = Field(default_factory=_vec(20.0, 20.0))


@register_type
class CircleShape2D(TypedValue):
    type_name: ClassVar[str] = "CircleShape2D"
    radius: StrictFloat = 10.0


@register_type
class CapsuleShape2D(TypedValue):
    type_name: ClassVar[str] = "CapsuleShape2D"
    radius: StrictFloat = 10.0
    height: StrictFloat = 30.0


@register_type
class WorldBoundaryShape2D(TypedValue):
    type_name: ClassVar[str] = "WorldBoundaryShape2D"
    normal: Vector2 = Field(default_factory=_vec(0.0, -1.0))
    distance: StrictFloat = 0.0


@register_type
class SegmentShape2D(TypedValue):
    type_name: ClassVar[str] = "SegmentShape2D"
    a: Vector2 = Field(default_factory=_vec(0.0, 0.0))
    b: Vector2 = Field(default_factory=_vec(0.0, 10.0))


@register_type
class ConvexPolygonShape2D(TypedValue):
    type_name: ClassVar[str] = "ConvexPolygonShape2D"
    points: list[Vector2] = Field(default_factory=list)


SHAPE_2D_TYPES: tuple[str, ...] = (
    "RectangleShape2D",
    "CircleShape2D",
    "CapsuleShape2D",
    "WorldBoundaryShape2D",
    "SegmentShape2D",
    "ConvexPolygonShape2D",
)


def is_shape_2d_type(type_name: str) -> bool:
    return type_name in SHAPE_2D_TYPES
