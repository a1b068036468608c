"""In-memory live scene graph used by the reference target."""

from __future__ import annotations

from typing import Any, Iterator

from mechturk.codec import Color, RectangleShape2D, Vector2

# Property names reported per category by get_node_properties.
PROPERTY_CATEGORIES: dict[str, tuple[str, ...]] = {
    "transform": ("position", "rotation", "scale", "skew"),
    "visibility": ("visible", "modulate", "z_index"),
    "script": ("script",),
}

# Subset included by get_scene_tree when include_properties is set.
BASIC_PROPERTIES = ("position", "rotation", "scale", "visible")


def canvas_item_defaults() -> dict[str, Any]:
    return {
        "position": Vector2(),
        "rotation": 0.0,
        "scale": Vector2(x=1.0, y=1.0),
        "skew": 0.0,
        "visible": True,
        "modulate": Color(r=1.0, g=1.0, b=1.0, a=1.0),
        "z_index": 0,
        "script": None,
    }


class SceneNode:
    """A named node with properties and ordered children."""

    def __init__(self, name: str, node_type: str = "Node2D", properties: dict[str, Any] | None = None):
        if not name or "/" in name:
            raise ValueError(f"invalid node name: {name!r}")
        self.name = name
        self.node_type = node_type
        self.properties: dict[str, Any] = canvas_item_defaults()
        if properties:
            self.properties.update(properties)
        self.children: list[SceneNode] = []
        self.parent: SceneNode | None = None

    def __repr__(self) -> str:
        return f"<{self.node_type} {self.get_path()}>"

    def get_path(self) -> str:
        parts = []
        node: SceneNode | None = self
        while node is not None:
            parts.append(node.name)
            node = node.parent
        return "/" + "/".join(reversed(parts))

    def get_child(self, name: str) -> SceneNode | None:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def add_child(self, child: SceneNode) -> SceneNode:
        if child.parent is not None:
            raise ValueError(f"{child.name} already has a parent")
        if self.get_child(child.name) is not None:
            raise ValueError(f"{self.get_path()} already has a child named {child.name}")
        child.parent = self
        self.children.append(child)
        return child

    def remove_child(self, child: SceneNode) -> None:
        self.children.remove(child)
        child.parent = None

    def is_ancestor_of(self, other: SceneNode) -> bool:
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def walk(self) -> Iterator[SceneNode]:
        yield self
        for child in self.children:
            yield from child.walk()

    def get_properties(self, categories: list[str] | None = None) -> dict[str, Any]:
        """Properties grouped by category, or all of them when no category is given."""
        if not categories:
            return dict(self.properties)
        selected: dict[str, Any] = {}
        for category in categories:
            names = PROPERTY_CATEGORIES.get(category)
            if names is None:
                raise KeyError(category)
            for name in names:
                if name in self.properties:
                    selected[name] = self.properties[name]
        return selected

    def describe(self, depth: int, include_properties: bool = False) -> dict[str, Any]:
        """Tree snapshot; depth 0 stops at this node, a negative depth is unlimited."""
        info: dict[str, Any] = {
            "name": self.name,
            "type": self.node_type,
            "path": self.get_path(),
            "child_count": len(self.children),
        }
        if include_properties:
            info["properties"] = {k: self.properties[k] for k in BASIC_PROPERTIES if k in self.properties}
        if depth != 0:
            info["children"] = [child.describe(depth - 1, include_properties) for child in self.children]
        return info


class TileMapLayer(SceneNode):
    """Grid of tile cells keyed by integer cell coordinates."""

    def __init__(self, name: str, properties: dict[str, Any] | None = None):
        super().__init__(name, "TileMapLayer", properties)
        self.cells: dict[tuple[int, int], dict[str, int]] = {}

    def set_cell(self, x: int, y: int, source_id: int = 0, atlas_x: int = 0, atlas_y: int = 0) -> None:
        # A negative source id erases the cell.
        if source_id < 0:
            self.cells.pop((x, y), None)
            return
        self.cells[(x, y)] = {"source_id": source_id, "atlas_x": atlas_x, "atlas_y": atlas_y}

    def get_used_cells(self) -> list[tuple[int, int]]:
        return sorted(self.cells)

    def describe(self, depth: int, include_properties: bool = False) -> dict[str, Any]:
        info = super().describe(depth, include_properties)
        info["used_cells"] = len(self.cells)
        return info


class SceneTree:
    """Scene graph rooted at `/root`."""

    def __init__(self, root: SceneNode | None = None):
        self.root = root or SceneNode("root", "Window")

    def get_node(self, path: str) -> SceneNode | None:
        """Resolve an absolute (`/root/A`), root-relative (`root/A`) or relative (`A`) path."""
        if not isinstance(path, str):
            return None
        path = path.strip()
        if path in ("", ".", "/root", "root", "/root/", "root/"):
            return self.root
        parts = [p for p in path.split("/") if p]
        if not parts:
            return None
        if path.startswith("/"):
            if parts[0] != self.root.name:
                return None
            parts = parts[1:]
        elif parts[0] == self.root.name:
            parts = parts[1:]
        node: SceneNode | None = self.root
        for part in parts:
            if part == ".":
                continue
            if part == "..":
                node = node.parent if node is not None else None
            else:
                node = node.get_child(part) if node is not None else None
            if node is None:
                return None
        return node

    def node_count(self) -> int:
        return sum(1 for _ in self.root.walk())

    def describe(self, root_path: str = "/root", depth: int = 5, include_properties: bool = False) -> dict[str, Any] | None:
        node = self.get_node(root_path)
        if node is None:
            return None
        return node.describe(depth, include_properties)


def build_demo_scene() -> SceneTree:
    """Small 2D level: a player with a collision shape, a camera and a tile layer."""
    tree = SceneTree()
    main = tree.root.add_child(SceneNode("Main", "Node2D"))
    player = main.add_child(SceneNode("Player", "CharacterBody2D", {"position": Vector2(x=64.0, y=96.0)}))
    player.add_child(SceneNode("Sprite", "Sprite2D"))
    player.add_child(SceneNode("Collision", "CollisionShape2D", {"shape": RectangleShape2D()}))
    main.add_child(SceneNode("Camera", "Camera2D"))
    ground = main.add_child(TileMapLayer("Ground"))
    for x in range(10):
        ground.set_cell(x, 8, source_id=0, atlas_x=1, atlas_y=0)
    return tree
