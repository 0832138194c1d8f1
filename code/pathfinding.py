"""Grid A* that carves corridors between the perimeter sockets of two rooms."""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence, Set, Tuple

import structlog

from binary_heap import BinaryHeap
from dungeon_config import CostModel, GridDimensionality, SocketStrategy
from dungeon_geometry import Vec3
from dungeon_models import Room
from mesh_grid import GridNode, MeshGrid, NodeType

logger = structlog.get_logger()


class SearchState(Enum):
    """Lifecycle of a single path search."""

    OPEN = "open"
    CLOSED = "closed"
    PATH_FOUND = "path_found"
    EXHAUSTED = "exhausted"


def define_occupancy(
    grid: MeshGrid,
    rooms: Sequence[Room],
    dimensionality: GridDimensionality = GridDimensionality.VOLUMETRIC,
) -> None:
    """Mark every cell under each room as a non-walkable room cell.

    Volumetric grids also block the cell layer directly below each floor.
    """
    flat = dimensionality is GridDimensionality.FLAT
    for room in rooms:
        sx, sy, sz = room.size_int
        i0, j0, k0 = grid.world_to_node(room.min)
        layers = range(0, 1) if flat else range(-1, sy)
        for i in range(sx):
            for j in layers:
                for k in range(sz):
                    node = grid.node(i0 + i, j0 + j, k0 + k)
                    if node is None:
                        continue
                    node.walkable = False
                    node.node_type = NodeType.ROOM


def room_sockets(grid: MeshGrid, room: Room) -> List[GridNode]:
    """Walkable cells in the ring just outside the room's footprint, at floor level."""
    sx, _, sz = room.size_int
    i0, j0, k0 = grid.world_to_node(room.min)
    candidates: List[Tuple[int, int, int]] = []
    for x in range(sx):
        candidates.append((i0 + x, j0, k0 - 1))
        candidates.append((i0 + x, j0, k0 + sz))
    for z in range(sz):
        candidates.append((i0 - 1, j0, k0 + z))
        candidates.append((i0 + sx, j0, k0 + z))

    sockets = []
    for pos in candidates:
        node = grid.node(*pos)
        if node is not None and node.walkable:
            sockets.append(node)
    return sockets


def nearest_sockets(grid: MeshGrid, a: Room, b: Room) -> Tuple[Optional[GridNode], Optional[GridNode]]:
    """Pick one socket per room so the two are as close as possible."""
    sockets_b = room_sockets(grid, b)
    best: Tuple[Optional[GridNode], Optional[GridNode]] = (None, None)
    best_distance = float("inf")
    for node_a in room_sockets(grid, a):
        for node_b in sockets_b:
            distance = node_a.world_position.distance_to(node_b.world_position)
            if distance >= best_distance:
                continue
            best_distance = distance
            best = (node_a, node_b)
    return best


def facing_socket(grid: MeshGrid, room: Room, target: Vec3) -> Optional[GridNode]:
    """Free socket whose horizontal direction from the room's center best matches the direction to ``target``."""
    center = room.center
    heading = Vec3(target.x - center.x, 0.0, target.z - center.z).normalized()
    best: Optional[GridNode] = None
    best_dot = -math.inf
    for node in room_sockets(grid, room):
        cell = node.world_position
        outward = Vec3(cell.x + 0.5 - center.x, 0.0, cell.z + 0.5 - center.z).normalized()
        dot = heading.dot(outward)
        if dot <= best_dot:
            continue
        best_dot = dot
        best = node
    return best


def facing_sockets(grid: MeshGrid, a: Room, b: Room) -> Tuple[Optional[GridNode], Optional[GridNode]]:
    return facing_socket(grid, a, b.center), facing_socket(grid, b, a.center)


def select_sockets(
    grid: MeshGrid,
    a: Room,
    b: Room,
    strategy: SocketStrategy = SocketStrategy.NEAREST,
) -> Tuple[Optional[GridNode], Optional[GridNode]]:
    if strategy is SocketStrategy.FACING:
        return facing_sockets(grid, a, b)
    return nearest_sockets(grid, a, b)


def octile_distance(a: GridNode, b: GridNode, diagonal_weight: float) -> float:
    """Diagonal-aware distance, pairing y with each horizontal axis and keeping the cheaper."""
    ai, aj, ak = a.grid_pos
    bi, bj, bk = b.grid_pos
    dx, dy, dz = abs(ai - bi), abs(aj - bj), abs(ak - bk)
    xy = diagonal_weight * min(dx, dy) + abs(dx - dy)
    zy = diagonal_weight * min(dz, dy) + abs(dz - dy)
    return min(xy + dz, zy + dx)


def type_penalty(node: GridNode, cost_model: CostModel) -> float:
    if node.node_type is NodeType.ROOM:
        return cost_model.room_penalty
    if node.node_type is NodeType.CORRIDOR:
        return cost_model.corridor_penalty
    return cost_model.empty_penalty


def movement_cost(a: GridNode, b: GridNode, cost_model: CostModel) -> float:
    """Cost of moving from ``a`` into ``b``."""
    return octile_distance(a, b, cost_model.diagonal_weight) + type_penalty(b, cost_model)


class PathSearch:
    """One A* query over a grid; the grid is carved when a path is found."""

    def __init__(
        self,
        grid: MeshGrid,
        start: GridNode,
        goal: GridNode,
        cost_model: CostModel,
        dimensionality: GridDimensionality = GridDimensionality.VOLUMETRIC,
    ) -> None:
        self.grid = grid
        self.start = start
        self.goal = goal
        self.cost_model = cost_model
        self.dimensionality = dimensionality
        self.state = SearchState.OPEN
        self.expanded = 0

    def run(self) -> List[GridNode]:
        grid, goal = self.grid, self.goal
        grid.reset_search_state()

        open_set: BinaryHeap[GridNode] = BinaryHeap()
        closed: Set[int] = set()
        open_set.add(self.start)

        while not open_set.empty:
            current = open_set.remove_first()
            closed.add(current.index)
            self.expanded += 1

            if current is goal:
                self.state = SearchState.PATH_FOUND
                return self._retrace()

            for neighbour in grid.neighbours(current):
                if not neighbour.walkable or neighbour.index in closed:
                    continue

                new_cost = current.g_cost + movement_cost(current, neighbour, self.cost_model)
                queued = open_set.contains(neighbour)
                if queued and new_cost >= neighbour.g_cost:
                    continue

                neighbour.g_cost = new_cost
                neighbour.h_cost = movement_cost(goal, neighbour, self.cost_model)
                neighbour.previous = current.index
                if queued:
                    open_set.update(neighbour)
                else:
                    open_set.add(neighbour)

            self.state = SearchState.CLOSED

        self.state = SearchState.EXHAUSTED
        return []

    def _retrace(self) -> List[GridNode]:
        volumetric = self.dimensionality is GridDimensionality.VOLUMETRIC
        path: List[GridNode] = []
        node = self.goal
        while True:
            node.carve()
            if volumetric:
                for support in (self.grid.above(node), self.grid.below(node)):
                    if support is not None and support.node_type is not NodeType.ROOM:
                        support.carve()
            path.append(node)
            if node is self.start or node.previous is None:
                break
            node = self.grid.at(node.previous)
        path.reverse()
        return path


def find_path(
    grid: MeshGrid,
    room_a: Room,
    room_b: Room,
    cost_model: Optional[CostModel] = None,
    dimensionality: GridDimensionality = GridDimensionality.VOLUMETRIC,
    socket_strategy: SocketStrategy = SocketStrategy.NEAREST,
) -> List[GridNode]:
    """Carve and return a corridor from a socket of ``room_a`` to a socket of ``room_b``.

    Returns an empty list when either room has no free socket or no route exists.
    """
    start, goal = select_sockets(grid, room_a, room_b, socket_strategy)
    if start is None or goal is None:
        logger.debug("no_free_socket", room_a=room_a.position, room_b=room_b.position)
        return []

    search = PathSearch(grid, start, goal, cost_model or CostModel.weighted(), dimensionality)
    path = search.run()
    if not path:
        logger.debug("path_exhausted", room_a=room_a.position, room_b=room_b.position, expanded=search.expanded)
    return path
