"""Geometry helpers: points, axis-aligned boxes, edges, and simplices."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional, Protocol, Tuple

from dungeon_constants import NEAR_EQUAL_TOLERANCE, DEGENERATE_DETERMINANT


@dataclass(frozen=True, order=True)
class Vec3:
    """Immutable 3D point or vector."""

    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __getitem__(self, index: int) -> float:
        if index == 0:
            return self.x
        if index == 1:
            return self.y
        if index == 2:
            return self.z
        raise IndexError("Vec3 only supports three coordinates")

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, factor: float) -> Vec3:
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vec3) -> Vec3:
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def normalized(self) -> Vec3:
        length = self.magnitude
        if length == 0:
            return self
        return self.scale(1.0 / length)

    @property
    def sqr_magnitude(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.sqr_magnitude)

    def distance_to(self, other: Vec3) -> float:
        return (self - other).magnitude

    def near_equal(self, other: Vec3, tolerance: float = NEAR_EQUAL_TOLERANCE) -> bool:
        return (self - other).magnitude < tolerance

    def minimum(self, other: Vec3) -> Vec3:
        return Vec3(min(self.x, other.x), min(self.y, other.y), min(self.z, other.z))

    def maximum(self, other: Vec3) -> Vec3:
        return Vec3(max(self.x, other.x), max(self.y, other.y), max(self.z, other.z))

    @classmethod
    def splat(cls, value: float) -> Vec3:
        return cls(value, value, value)


ZERO = Vec3(0.0, 0.0, 0.0)


def near_equal(a: float, b: float, tolerance: float = NEAR_EQUAL_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box spanning ``min`` to ``max`` (inclusive on both ends)."""

    min: Vec3
    max: Vec3

    @property
    def bbox(self) -> BoundingBox:
        return self

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y

    @property
    def depth(self) -> float:
        return self.max.z - self.min.z

    @property
    def size(self) -> Vec3:
        return Vec3(self.width, self.height, self.depth)

    @property
    def size_int(self) -> Tuple[int, int, int]:
        """Extents rounded up to whole cells."""
        return (
            int(math.ceil(self.width)),
            int(math.ceil(self.height)),
            int(math.ceil(self.depth)),
        )

    @property
    def center(self) -> Vec3:
        return (self.min + self.max).scale(0.5)

    @property
    def area(self) -> float:
        """Enclosed volume; inverted extents count as zero."""
        return max(self.width, 0.0) * max(self.height, 0.0) * max(self.depth, 0.0)

    @property
    def margin(self) -> float:
        return max(self.width, 0.0) + max(self.height, 0.0) + max(self.depth, 0.0)

    @property
    def is_empty(self) -> bool:
        return self.width < 0 or self.height < 0 or self.depth < 0

    @property
    def is_point(self) -> bool:
        return near_equal(self.width, 0) and near_equal(self.height, 0) and near_equal(self.depth, 0)

    @property
    def is_edge(self) -> bool:
        flat = [near_equal(self.width, 0), near_equal(self.height, 0), near_equal(self.depth, 0)]
        return sum(flat) >= 2

    @property
    def is_plane(self) -> bool:
        return near_equal(self.width, 0) or near_equal(self.height, 0) or near_equal(self.depth, 0)

    @property
    def plane_axis(self) -> Optional[int]:
        """Index of the collapsed axis for planar boxes, else None."""
        if near_equal(self.width, 0):
            return 0
        if near_equal(self.height, 0):
            return 1
        if near_equal(self.depth, 0):
            return 2
        return None

    def extend(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(self.min.minimum(other.min), self.max.maximum(other.max))

    def intersection(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(self.min.maximum(other.min), self.max.minimum(other.max))

    def intersects(self, other: BoundingBox) -> bool:
        """Return True when the closed boxes share at least one point; inverted boxes share none."""
        if self.is_empty or other.is_empty:
            return False
        return (
            self.min.x <= other.max.x
            and self.min.y <= other.max.y
            and self.min.z <= other.max.z
            and self.max.x >= other.min.x
            and self.max.y >= other.min.y
            and self.max.z >= other.min.z
        )

    def overlaps(self, other: BoundingBox) -> bool:
        """Return True when the interiors of the boxes intersect."""
        return self.intersection(other).area > 0

    def contains_box(self, other: BoundingBox) -> bool:
        return (
            self.min.x <= other.min.x
            and self.min.y <= other.min.y
            and self.min.z <= other.min.z
            and self.max.x >= other.max.x
            and self.max.y >= other.max.y
            and self.max.z >= other.max.z
        )

    def distance_to(self, point: Vec3) -> float:
        dx = _axis_distance(point.x, self.min.x, self.max.x)
        dy = _axis_distance(point.y, self.min.y, self.max.y)
        dz = _axis_distance(point.z, self.min.z, self.max.z)
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def expand(self, offset: float, vertical: bool = True) -> BoundingBox:
        """Return a box grown by ``offset`` on every side (or only horizontally)."""
        grow = Vec3(offset, offset if vertical else 0.0, offset)
        return BoundingBox(self.min - grow, self.max + grow)

    @classmethod
    def from_point(cls, point: Vec3) -> BoundingBox:
        return cls(point, point)

    @classmethod
    def enclosing(cls, points: List[Vec3], offset: float = 0.0) -> BoundingBox:
        """Bounding box of ``points`` grown by ``offset``; a zero box when empty."""
        if not points:
            return cls(ZERO, ZERO)
        low = points[0]
        high = points[0]
        for point in points[1:]:
            low = low.minimum(point)
            high = high.maximum(point)
        return cls(low, high).expand(offset)


EMPTY_BOUNDS = BoundingBox(Vec3.splat(math.inf), Vec3.splat(-math.inf))


def _axis_distance(p: float, low: float, high: float) -> float:
    if p < low:
        return low - p
    if p > high:
        return p - high
    return 0.0


class HasBoundingBox(Protocol):
    """Anything the spatial index can store."""

    @property
    def bbox(self) -> BoundingBox: ...


class Edge:
    """Unordered pair of points with a cached length."""

    __slots__ = ("a", "b", "length", "_key")

    def __init__(self, a: Vec3, b: Vec3) -> None:
        self.a = a
        self.b = b
        self.length = (a - b).magnitude
        self._key: FrozenSet[Vec3] = frozenset((a, b))

    @property
    def vertices(self) -> Tuple[Vec3, Vec3]:
        return self.a, self.b

    @property
    def key(self) -> FrozenSet[Vec3]:
        return self._key

    def has_vertex(self, vertex: Vec3) -> bool:
        return self.a == vertex or self.b == vertex

    def other(self, vertex: Vec3) -> Vec3:
        if vertex == self.a:
            return self.b
        if vertex == self.b:
            return self.a
        raise ValueError(f"{vertex} is not an endpoint of {self}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"Edge({self.a}, {self.b})"


def _det3(m: List[List[float]]) -> float:
    return (
        m[0][0] * (m[1][1] * m[2][2] - m[1][2] * m[2][1])
        - m[0][1] * (m[1][0] * m[2][2] - m[1][2] * m[2][0])
        + m[0][2] * (m[1][0] * m[2][1] - m[1][1] * m[2][0])
    )


def _det4(m: List[List[float]]) -> float:
    total = 0.0
    for col in range(4):
        minor = [[row[c] for c in range(4) if c != col] for row in m[1:]]
        sign = -1.0 if col % 2 else 1.0
        total += sign * m[0][col] * _det3(minor)
    return total


@dataclass(eq=False)
class Triangle:
    """Triangle with its circumcircle measured on the XZ plane.

    The circumcircle uses the determinant form (https://mathworld.wolfram.com/Circumcircle.html).
    Collinear vertices give an infinite circle that contains every point.
    """

    a: Vec3
    b: Vec3
    c: Vec3
    circumcenter: Optional[Vec3] = field(init=False, default=None)
    radius_sq: float = field(init=False, default=math.inf)

    def __post_init__(self) -> None:
        a, b, c = self.a, self.b, self.c
        a2 = a.x * a.x + a.z * a.z
        b2 = b.x * b.x + b.z * b.z
        c2 = c.x * c.x + c.z * c.z

        det_a = _det3([[a.x, a.z, 1.0], [b.x, b.z, 1.0], [c.x, c.z, 1.0]])
        if abs(det_a) < DEGENERATE_DETERMINANT:
            return
        bx = -_det3([[a2, a.z, 1.0], [b2, b.z, 1.0], [c2, c.z, 1.0]])
        bz = _det3([[a2, a.x, 1.0], [b2, b.x, 1.0], [c2, c.x, 1.0]])
        cp = -_det3([[a2, a.x, a.z], [b2, b.x, b.z], [c2, c.x, c.z]])

        self.circumcenter = Vec3(-bx / (2 * det_a), 0.0, -bz / (2 * det_a))
        self.radius_sq = (bx * bx + bz * bz - 4 * det_a * cp) / (4 * det_a * det_a)

    @property
    def vertices(self) -> Tuple[Vec3, Vec3, Vec3]:
        return self.a, self.b, self.c

    @property
    def edges(self) -> List[Edge]:
        return [Edge(self.a, self.b), Edge(self.b, self.c), Edge(self.c, self.a)]

    @property
    def is_degenerate(self) -> bool:
        return self.circumcenter is None

    def contains(self, point: Vec3) -> bool:
        """Return True when ``point`` is inside or on the circumcircle."""
        if self.circumcenter is None:
            return True
        dx = self.circumcenter.x - point.x
        dz = self.circumcenter.z - point.z
        return dx * dx + dz * dz <= self.radius_sq

    def has_vertex(self, vertex: Vec3) -> bool:
        return vertex in (self.a, self.b, self.c)

    def key(self) -> FrozenSet[Vec3]:
        return frozenset(self.vertices)


@dataclass(eq=False)
class Tetrahedron:
    """Tetrahedron with its circumsphere.

    Uses the determinant form (https://mathworld.wolfram.com/Circumsphere.html).
    Flat tetrahedra get an infinite sphere that contains every point.
    """

    a: Vec3
    b: Vec3
    c: Vec3
    d: Vec3
    circumcenter: Optional[Vec3] = field(init=False, default=None)
    radius_sq: float = field(init=False, default=math.inf)

    def __post_init__(self) -> None:
        pts = self.vertices
        sq = [p.sqr_magnitude for p in pts]

        det_a = _det4([[p.x, p.y, p.z, 1.0] for p in pts])
        if abs(det_a) < DEGENERATE_DETERMINANT:
            return
        dx = _det4([[s, p.y, p.z, 1.0] for s, p in zip(sq, pts)])
        dy = -_det4([[s, p.x, p.z, 1.0] for s, p in zip(sq, pts)])
        dz = _det4([[s, p.x, p.y, 1.0] for s, p in zip(sq, pts)])
        cp = _det4([[s, p.x, p.y, p.z] for s, p in zip(sq, pts)])

        self.circumcenter = Vec3(dx / (2 * det_a), dy / (2 * det_a), dz / (2 * det_a))
        self.radius_sq = (dx * dx + dy * dy + dz * dz - 4 * det_a * cp) / (4 * det_a * det_a)

    @property
    def vertices(self) -> Tuple[Vec3, Vec3, Vec3, Vec3]:
        return self.a, self.b, self.c, self.d

    @property
    def faces(self) -> List[Tuple[Vec3, Vec3, Vec3]]:
        a, b, c, d = self.vertices
        return [(a, b, c), (a, b, d), (a, c, d), (b, c, d)]

    @property
    def edges(self) -> List[Edge]:
        a, b, c, d = self.vertices
        return [Edge(a, b), Edge(a, c), Edge(a, d), Edge(d, b), Edge(b, c), Edge(c, d)]

    @property
    def is_degenerate(self) -> bool:
        return self.circumcenter is None

    def contains(self, point: Vec3) -> bool:
        """Return True when ``point`` is inside or on the circumsphere."""
        if self.circumcenter is None:
            return True
        return (self.circumcenter - point).sqr_magnitude <= self.radius_sq

    def has_vertex(self, vertex: Vec3) -> bool:
        return vertex in self.vertices

    def key(self) -> FrozenSet[Vec3]:
        return frozenset(self.vertices)
