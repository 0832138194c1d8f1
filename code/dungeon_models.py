"""Core dataclasses used by the dungeon generator."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from dungeon_geometry import BoundingBox, Edge, Vec3

if TYPE_CHECKING:
    from mesh_grid import GridNode, MeshGrid
    from metrics import GenerationMetrics


@dataclass(frozen=True)
class Room:
    """Axis-aligned room with an integer origin and a (width, height, depth) size.

    ``height`` may be fractional; the occupied cells round it up.
    """

    position: Tuple[int, int, int]
    size: Tuple[float, float, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", tuple(int(v) for v in self.position))
        object.__setattr__(self, "size", tuple(float(v) for v in self.size))

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    @property
    def depth(self) -> float:
        return self.size[2]

    @property
    def size_int(self) -> Tuple[int, int, int]:
        return tuple(int(math.ceil(v)) for v in self.size)  # type: ignore[return-value]

    @property
    def min(self) -> Vec3:
        return Vec3(*(float(v) for v in self.position))

    @property
    def max(self) -> Vec3:
        sx, sy, sz = self.size_int
        x, y, z = self.position
        return Vec3(float(x + sx), float(y + sy), float(z + sz))

    @property
    def center(self) -> Vec3:
        x, y, z = self.position
        return Vec3(x + self.width / 2.0, y + self.height / 2.0, z + self.depth / 2.0)

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(self.min, self.max)

    @property
    def area(self) -> float:
        """Footprint area on the XZ plane; inverted rooms have none."""
        return max(self.width, 0.0) * max(self.depth, 0.0)

    @property
    def ratio(self) -> float:
        """Aspect ratio of the footprint in (0, 1]; 1 is square."""
        if self.width <= 0 or self.depth <= 0:
            return 0.0
        return min(self.width / self.depth, self.depth / self.width)

    def intersects(self, other: Room) -> bool:
        """Return True when the room volumes share interior cells."""
        a_min, a_max = self.min, self.max
        b_min, b_max = other.min, other.max
        return (
            a_max.x > b_min.x
            and a_max.y > b_min.y
            and a_max.z > b_min.z
            and a_min.x < b_max.x
            and a_min.y < b_max.y
            and a_min.z < b_max.z
        )

    def translated(self, dx: int, dy: int, dz: int) -> Room:
        x, y, z = self.position
        return Room((x + dx, y + dy, z + dz), self.size)


@dataclass
class GenerationResult:
    """Everything one generation pass produced."""

    seed: int
    rooms: List[Room]
    # Spanning tree edges followed by loop edges, in routing order.
    edges: List[Edge] = field(default_factory=list)
    tree_edges: List[Edge] = field(default_factory=list)
    # Non-empty corridors, one per routed edge, each running from room A to room B.
    corridors: List[List["GridNode"]] = field(default_factory=list)
    # Every edge with its route; unroutable edges map to an empty list.
    routes: Dict[Edge, List["GridNode"]] = field(default_factory=dict)
    grid: Optional["MeshGrid"] = None
    metrics: Optional["GenerationMetrics"] = None

    @property
    def loop_edges(self) -> List[Edge]:
        tree = set(self.tree_edges)
        return [edge for edge in self.edges if edge not in tree]

    @property
    def unrouted_edges(self) -> List[Edge]:
        return [edge for edge, path in self.routes.items() if not path]

    def corridor_positions(self) -> List[List[Tuple[int, int, int]]]:
        """Corridor cells as grid indices, convenient for comparisons."""
        return [[node.grid_pos for node in corridor] for corridor in self.corridors]

    @classmethod
    def empty(cls, seed: int) -> GenerationResult:
        return cls(seed=seed, rooms=[])
