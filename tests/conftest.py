import random
import sys
from pathlib import Path
from typing import Callable, List

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
CODE_DIR = ROOT_DIR / "code"
if str(CODE_DIR) not in sys.path:
    sys.path.insert(0, str(CODE_DIR))

from dungeon_config import CostModel, GridDimensionality, LayoutStrategy, LevelConfig
from dungeon_geometry import Vec3
from dungeon_models import Room
from mesh_grid import MeshGrid
from pathfinding import define_occupancy


@pytest.fixture
def scatter_config() -> LevelConfig:
    return LevelConfig(
        boundaries=(10, 5, 10),
        room_size=3,
        room_size_variation=3,
        room_count=7,
        room_count_variation=3,
        level_height=4,
        level_height_variation=1,
        loop_chance=2,
        layout=LayoutStrategy.SCATTER,
        dimensionality=GridDimensionality.VOLUMETRIC,
    )


@pytest.fixture
def partition_config() -> LevelConfig:
    return LevelConfig(
        boundaries=(40, 2, 40),
        room_count=8,
        room_count_variation=0,
        segments=6,
        offset=2,
        split_area_range=100,
        level_height=1,
        level_height_variation=0,
        loop_chance=10,
        layout=LayoutStrategy.PARTITION,
        dimensionality=GridDimensionality.FLAT,
        cost_model=CostModel.simple(),
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def random_points() -> Callable[..., List[Vec3]]:
    def _random_points(count: int, seed: int = 0, flat: bool = False, scale: float = 50.0) -> List[Vec3]:
        generator = random.Random(seed)
        return [
            Vec3(
                generator.uniform(0, scale),
                0.0 if flat else generator.uniform(0, scale),
                generator.uniform(0, scale),
            )
            for _ in range(count)
        ]

    return _random_points


@pytest.fixture
def flat_grid_with_rooms() -> Callable[..., MeshGrid]:
    def _make(rooms: List[Room], margin: int = 2) -> MeshGrid:
        grid = MeshGrid.from_rooms(rooms, margin, flat=True)
        define_occupancy(grid, rooms, GridDimensionality.FLAT)
        return grid

    return _make
