"""Occupancy grid that corridors are carved into."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple

from dungeon_geometry import BoundingBox, Vec3

if TYPE_CHECKING:
    from dungeon_models import Room

GridPos = Tuple[int, int, int]

NEIGHBOUR_OFFSETS: Tuple[GridPos, ...] = (
    (-1, 0, 0),
    (1, 0, 0),
    (0, -1, 0),
    (0, 1, 0),
    (0, 0, -1),
    (0, 0, 1),
)


class NodeType(Enum):
    """Semantic tag of a grid cell."""

    EMPTY = 0
    ROOM = 1
    CORRIDOR = 2


class GridNode:
    """One grid cell plus the transient fields used by a path search."""

    __slots__ = (
        "index",
        "grid_pos",
        "world_position",
        "walkable",
        "node_type",
        "g_cost",
        "h_cost",
        "previous",
        "heap_index",
    )

    def __init__(self, index: int, grid_pos: GridPos, world_position: Vec3) -> None:
        self.index = index
        self.grid_pos = grid_pos
        self.world_position = world_position
        self.walkable = True
        self.node_type = NodeType.EMPTY
        self.g_cost = 0.0
        self.h_cost = 0.0
        # Arena index of the predecessor on the current search, if any.
        self.previous: Optional[int] = None
        self.heap_index = -1

    @property
    def f_cost(self) -> float:
        return self.g_cost + self.h_cost

    def __lt__(self, other: GridNode) -> bool:
        if self.f_cost != other.f_cost:
            return self.f_cost < other.f_cost
        return self.h_cost < other.h_cost

    def carve(self) -> None:
        self.walkable = False
        self.node_type = NodeType.CORRIDOR

    def reset_search(self) -> None:
        self.g_cost = 0.0
        self.h_cost = 0.0
        self.previous = None
        self.heap_index = -1

    def __repr__(self) -> str:
        return f"GridNode({self.grid_pos}, walkable={self.walkable}, type={self.node_type.name})"


class MeshGrid:
    """Unit-cell grid stored as a flat arena of nodes indexed by (i, j, k)."""

    def __init__(self, bounds: BoundingBox) -> None:
        self.bounds = bounds
        self.origin = bounds.min
        self.size: GridPos = tuple(max(v, 0) for v in bounds.size_int)  # type: ignore[assignment]
        sx, sy, sz = self.size
        self.nodes: List[GridNode] = []
        for i in range(sx):
            for j in range(sy):
                for k in range(sz):
                    world = self.origin + Vec3(float(i), float(j), float(k))
                    self.nodes.append(GridNode(len(self.nodes), (i, j, k), world))

    @classmethod
    def from_rooms(cls, rooms: Sequence["Room"], margin: int, flat: bool = False) -> MeshGrid:
        """Grid covering every room plus ``margin`` cells; flat grids are one cell high at y = 0."""
        bbox = rooms[0].bbox
        for room in rooms[1:]:
            bbox = bbox.extend(room.bbox)
        if flat:
            bbox = BoundingBox(
                Vec3(bbox.min.x - margin, 0.0, bbox.min.z - margin),
                Vec3(bbox.max.x + margin, 1.0, bbox.max.z + margin),
            )
            return cls(bbox)
        return cls(bbox.expand(margin))

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[GridNode]:
        return iter(self.nodes)

    def in_bounds(self, i: int, j: int, k: int) -> bool:
        sx, sy, sz = self.size
        return 0 <= i < sx and 0 <= j < sy and 0 <= k < sz

    def node(self, i: int, j: int, k: int) -> Optional[GridNode]:
        """Bounds-checked lookup; None outside the grid."""
        if not self.in_bounds(i, j, k):
            return None
        _, sy, sz = self.size
        return self.nodes[(i * sy + j) * sz + k]

    def at(self, index: int) -> GridNode:
        return self.nodes[index]

    def world_to_node(self, position: Vec3) -> GridPos:
        local = position - self.origin
        return int(local.x), int(local.y), int(local.z)

    def node_at_world(self, position: Vec3) -> Optional[GridNode]:
        return self.node(*self.world_to_node(position))

    def neighbours(self, node: GridNode) -> List[GridNode]:
        i, j, k = node.grid_pos
        found = []
        for di, dj, dk in NEIGHBOUR_OFFSETS:
            other = self.node(i + di, j + dj, k + dk)
            if other is not None:
                found.append(other)
        return found

    def above(self, node: GridNode) -> Optional[GridNode]:
        i, j, k = node.grid_pos
        return self.node(i, j + 1, k)

    def below(self, node: GridNode) -> Optional[GridNode]:
        i, j, k = node.grid_pos
        return self.node(i, j - 1, k)

    def reset_search_state(self) -> None:
        for node in self.nodes:
            node.reset_search()

    def walkable_count(self) -> int:
        return sum(1 for node in self.nodes if node.walkable)
