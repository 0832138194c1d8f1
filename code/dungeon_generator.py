"""DungeonGenerator runs one generation pass: rooms, connectivity graph, corridors."""

from __future__ import annotations

import random
from time import perf_counter
from typing import Callable, Dict, List, Optional, TypeVar

import structlog

from component_manager import ComponentManager
from dungeon_config import LevelConfig, SpanningTreeAlgorithm
from dungeon_geometry import Edge, Vec3
from dungeon_models import GenerationResult, Room
from mesh_grid import GridNode, MeshGrid
from metrics import GenerationMetrics
from pathfinding import define_occupancy, find_path
from room_layout import RoomLayout, find_furthest_rooms, generate_layout
from triangulation import add_loop_edges, spanning_tree, triangulate

logger = structlog.get_logger()

R = TypeVar("R")


class DungeonGenerator:
    """Manages one generation pass; all mutable state belongs to this instance."""

    def __init__(self, config: LevelConfig, seed: Optional[int] = None) -> None:
        self.config = config
        if seed is None:
            seed = config.random_seed if config.random_seed is not None else 0
        self.seed = seed
        self.rng = random.Random(seed)
        self.metrics = GenerationMetrics() if config.collect_metrics else None
        self.layout: Optional[RoomLayout] = None
        self.grid: Optional[MeshGrid] = None

    def _run_stage(self, name: str, func: Callable[..., R], *args, count: Callable[[R], int] = len, **kwargs) -> R:
        if self.metrics is None:
            return func(*args, **kwargs)

        start = perf_counter()
        result = func(*args, **kwargs)
        self.metrics.record_stage(name, perf_counter() - start, count(result))
        return result

    def generate(self) -> GenerationResult:
        """Generate rooms, connect them, and carve corridors."""
        config = self.config
        log = logger.bind(seed=self.seed)

        # Step 1: Rooms.
        self.layout = self._run_stage("layout", generate_layout, config, self.rng)
        rooms = self.layout.rooms
        if not rooms:
            log.info("generation_empty", reason="no rooms")
            result = GenerationResult.empty(self.seed)
            result.metrics = self.metrics
            return result

        # Step 2: Grid with room interiors blocked.
        self.grid = MeshGrid.from_rooms(rooms, config.grid_margin, flat=config.is_flat)
        define_occupancy(self.grid, rooms, config.dimensionality)

        # Step 3: Connectivity graph.
        edges = self._run_stage("triangulation", self._connectivity_edges, rooms)
        start = None
        if config.spanning_tree is SpanningTreeAlgorithm.PRIM:
            furthest, _ = find_furthest_rooms(rooms)
            start = furthest.center if furthest is not None else None
        tree = self._run_stage("spanning_tree", spanning_tree, edges, config.spanning_tree, start)
        graph = add_loop_edges(tree, edges, config.loop_chance, self.rng)

        # Step 4: Corridors, one per edge, in graph order.
        routes = self._run_stage("corridors", self._route_edges, graph)
        corridors = [path for path in routes.values() if path]

        result = GenerationResult(
            seed=self.seed,
            rooms=list(rooms),
            edges=graph,
            tree_edges=tree,
            corridors=corridors,
            routes=routes,
            grid=self.grid,
            metrics=self.metrics,
        )
        log.info(
            "generation_finished",
            rooms=len(rooms),
            edges=len(graph),
            loops=len(graph) - len(tree),
            corridors=len(corridors),
            unrouted=len(graph) - len(corridors),
            components=self._count_components(rooms, routes),
        )
        return result

    def _connectivity_edges(self, rooms: List[Room]) -> List[Edge]:
        """Triangulate room centres; flat levels use their floor-plan footprint."""
        centres = [room.center for room in rooms]
        if not self.config.is_flat:
            return triangulate(centres)

        by_footprint: Dict[Vec3, Vec3] = {}
        for centre in centres:
            by_footprint.setdefault(Vec3(centre.x, 0.0, centre.z), centre)
        return [Edge(by_footprint[edge.a], by_footprint[edge.b]) for edge in triangulate(list(by_footprint))]

    def _route_edges(self, graph: List[Edge]) -> Dict[Edge, List[GridNode]]:
        assert self.layout is not None and self.grid is not None
        routes: Dict[Edge, List[GridNode]] = {}
        for edge in graph:
            room_a = self.layout.get_room(edge.a)
            room_b = self.layout.get_room(edge.b)
            if room_a is None or room_b is None:
                logger.warning("edge_without_room", edge=repr(edge))
                routes[edge] = []
                continue
            routes[edge] = find_path(
                self.grid,
                room_a,
                room_b,
                self.config.cost_model,
                self.config.dimensionality,
                self.config.socket_strategy,
            )
            if self.metrics is not None and not routes[edge]:
                self.metrics.increment("unrouted_edges")
        return routes

    def _count_components(self, rooms: List[Room], routes: Dict[Edge, List[GridNode]]) -> int:
        """Number of room groups joined by carved corridors."""
        assert self.layout is not None
        positions = {room: index for index, room in enumerate(rooms)}
        components = ComponentManager(len(rooms))
        for edge, path in routes.items():
            if not path:
                continue
            room_a = self.layout.get_room(edge.a)
            room_b = self.layout.get_room(edge.b)
            if room_a is not None and room_b is not None:
                components.connect(positions[room_a], positions[room_b])
        return components.total_components()


def generate(seed: int, config: LevelConfig) -> GenerationResult:
    """Pure function of (seed, config): the same inputs reproduce the same level."""
    return DungeonGenerator(config, seed).generate()
