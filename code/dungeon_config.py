"""Configuration container for dungeon level generation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from dungeon_constants import DEFAULT_GRID_MARGIN


class SpanningTreeAlgorithm(Enum):
    """Which minimum spanning tree algorithm reduces the triangulation."""

    KRUSKAL = "kruskal"
    PRIM = "prim"


class LayoutStrategy(Enum):
    """How candidate rooms are produced."""

    PARTITION = "partition"  # Recursive binary space partitioning of one mother room.
    SCATTER = "scatter"  # Random placement inside the boundaries, rejecting collisions.


class SocketStrategy(Enum):
    """How the start and goal cells of a corridor are picked on the room perimeters."""

    NEAREST = "nearest"  # The pair of sockets closest to each other.
    FACING = "facing"  # Per room, the socket pointing most directly at the other room.


class GridDimensionality(Enum):
    """Shape of the occupancy grid corridors are carved into."""

    FLAT = "flat"  # One cell high; every room stands on y = 0.
    VOLUMETRIC = "volumetric"  # Full 3D grid; corridors may climb between levels.


@dataclass(frozen=True)
class CostModel:
    """Tunable constants for A* movement cost.

    ``diagonal_weight`` scales the shared part of two axis deltas in the octile
    combination; the penalties are added when entering a cell of that type.
    """

    diagonal_weight: float = 1.0
    room_penalty: float = 10.0
    corridor_penalty: float = 1.0
    empty_penalty: float = -5.0

    def __post_init__(self) -> None:
        if not (0.0 < self.diagonal_weight <= 2.0):
            raise ValueError("CostModel diagonal_weight must lie within (0, 2]")

    @classmethod
    def weighted(cls) -> CostModel:
        """Penalise rooms, lightly penalise corridor reuse, reward open space."""
        return cls()

    @classmethod
    def simple(cls) -> CostModel:
        """Plain octile distance with no cell-type penalties."""
        return cls(diagonal_weight=math.sqrt(2.0), room_penalty=0.0, corridor_penalty=0.0, empty_penalty=0.0)


@dataclass(frozen=True)
class LevelConfig:
    """Aggregates all tunable parameters for one level."""

    # Extent of the level in cells (x, y, z). Partition uses x/z for the mother room.
    boundaries: Tuple[int, int, int] = (10, 5, 10)

    # Horizontal room size for scatter layout: size + int(r * variation).
    room_size: int = 3
    room_size_variation: int = 3

    # Target room count: count + int(r * variation).
    room_count: int = 7
    room_count_variation: int = 3

    # Partition: split offsets are quantised to 1/segments of the longer side.
    segments: float = 6.0
    # Gap in cells left between the two halves of every split.
    offset: int = 1
    # Upper bound of the random area threshold deciding whether a half is split again.
    split_area_range: int = 100

    # Room height (vertical extent) and its random variation.
    level_height: float = 4.0
    level_height_variation: float = 1.0

    # Percent chance (0-100) that a non-tree triangulation edge is kept as a loop.
    loop_chance: float = 2.0

    spanning_tree: SpanningTreeAlgorithm = SpanningTreeAlgorithm.KRUSKAL
    layout: LayoutStrategy = LayoutStrategy.SCATTER
    dimensionality: GridDimensionality = GridDimensionality.VOLUMETRIC
    cost_model: CostModel = field(default_factory=CostModel.weighted)
    socket_strategy: SocketStrategy = SocketStrategy.NEAREST

    grid_margin: int = DEFAULT_GRID_MARGIN
    # Scatter layout: samples tried per room slot before giving up on it.
    max_placement_attempts: int = 5

    random_seed: Optional[int] = None
    collect_metrics: bool = False

    def __post_init__(self) -> None:
        boundaries = tuple(int(v) for v in self.boundaries)
        if len(boundaries) != 3:
            raise ValueError("LevelConfig boundaries must have three components")
        if any(v <= 0 for v in boundaries):
            raise ValueError("LevelConfig boundaries must be positive")
        object.__setattr__(self, "boundaries", boundaries)

        if self.room_size <= 0:
            raise ValueError("LevelConfig room_size must be positive")
        if self.room_count <= 0:
            raise ValueError("LevelConfig room_count must be positive")
        if self.room_size_variation < 0 or self.room_count_variation < 0:
            raise ValueError("LevelConfig variations cannot be negative")
        if self.level_height <= 0:
            raise ValueError("LevelConfig level_height must be positive")
        if self.level_height_variation < 0:
            raise ValueError("LevelConfig level_height_variation cannot be negative")
        if self.segments < 2:
            raise ValueError("LevelConfig segments must be at least 2")
        if self.offset <= 0:
            raise ValueError("LevelConfig offset must be positive")
        if self.split_area_range <= 0:
            raise ValueError("LevelConfig split_area_range must be positive")
        if not (0.0 <= self.loop_chance <= 100.0):
            raise ValueError("LevelConfig loop_chance must lie within [0, 100]")
        if self.grid_margin < 1:
            raise ValueError("LevelConfig grid_margin must be at least 1")
        if self.max_placement_attempts <= 0:
            raise ValueError("LevelConfig max_placement_attempts must be positive")

        if not isinstance(self.spanning_tree, SpanningTreeAlgorithm):
            object.__setattr__(self, "spanning_tree", SpanningTreeAlgorithm(self.spanning_tree))
        if not isinstance(self.layout, LayoutStrategy):
            object.__setattr__(self, "layout", LayoutStrategy(self.layout))
        if not isinstance(self.dimensionality, GridDimensionality):
            object.__setattr__(self, "dimensionality", GridDimensionality(self.dimensionality))
        if not isinstance(self.socket_strategy, SocketStrategy):
            object.__setattr__(self, "socket_strategy", SocketStrategy(self.socket_strategy))

    @property
    def loop_probability(self) -> float:
        return self.loop_chance / 100.0

    @property
    def is_flat(self) -> bool:
        return self.dimensionality is GridDimensionality.FLAT
