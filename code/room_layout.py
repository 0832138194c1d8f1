"""Room layout generation: stochastic space partitioning and collision-checked scattering."""

from __future__ import annotations

import math
import random
from typing import List, Optional, Tuple

import structlog

from dungeon_config import LayoutStrategy, LevelConfig
from dungeon_constants import MAX_SPLIT_AREA_THRESHOLD, MIN_ROOMS_FOR_RANKING
from dungeon_geometry import BoundingBox, Vec3
from dungeon_models import Room
from spatial_index import RTree

logger = structlog.get_logger()


class RoomLayout:
    """Generated rooms together with the spatial index used to place and look them up."""

    def __init__(self, mother: Optional[Room] = None) -> None:
        self.rooms: List[Room] = []
        self.index: RTree[Room] = RTree()
        self.mother = mother

    def __len__(self) -> int:
        return len(self.rooms)

    @property
    def bbox(self) -> BoundingBox:
        return self.index.bbox

    def try_add(self, room: Room) -> bool:
        """Index and keep ``room`` unless it touches or overlaps an existing room."""
        if self.index.collides(room.bbox):
            return False
        self.add(room)
        return True

    def add(self, room: Room) -> None:
        self.index.insert(room)
        self.rooms.append(room)

    def get_room(self, center: Vec3) -> Optional[Room]:
        """Return the room whose center is exactly ``center``."""
        for room in self.index.search_point(center):
            if room.center == center:
                return room
        return None

    def room_index(self, room: Room) -> int:
        return self.rooms.index(room)


def generate_layout(config: LevelConfig, rng: random.Random) -> RoomLayout:
    """Produce the rooms for one level using the configured strategy."""
    if config.layout is LayoutStrategy.PARTITION:
        layout = partition_rooms(config, rng)
    else:
        layout = scatter_rooms(config, rng)
    logger.debug("room_layout_generated", strategy=config.layout.value, rooms=len(layout))
    return layout


# Partition layout --------------------------------------------------------------


def mother_room(config: LevelConfig) -> Room:
    """The region that partitioning starts from, centred on the origin."""
    width, _, depth = config.boundaries
    return Room((-(width // 2), 0, -(depth // 2)), (width, config.level_height, depth))


def split_room(room: Room, config: LevelConfig, rng: random.Random) -> Tuple[Room, Room]:
    """Split ``room`` across its longer side, leaving ``config.offset`` cells between halves.

    Halves may come out empty or inverted when the room is too small; callers
    discard those by area.
    """
    x, y, z = room.position
    width, height, depth = room.size
    along_x = width >= depth

    portion = max(width, depth) / config.segments
    cut = int(math.floor(portion + (config.segments - 2) * portion * rng.random()))
    gap = config.offset

    if along_x:
        first = Room((x, y, z), (cut, height, depth))
        second = Room((x + cut + gap, y, z), (width - cut - gap, height, depth))
    else:
        first = Room((x, y, z), (width, height, cut))
        second = Room((x, y, z + cut + gap), (width, height, depth - cut - gap))
    return first, second


def _ranking_key(room: Room, mother_center: Vec3) -> Tuple[float, float]:
    dx = room.center.x - mother_center.x
    dz = room.center.z - mother_center.z
    # Rooms near the middle first; among equally distant ones, squarer rooms first.
    return math.hypot(dx, dz), -room.ratio


def partition_rooms(config: LevelConfig, rng: random.Random) -> RoomLayout:
    """Recursively split a mother room until every piece falls under a random area threshold."""
    mother = mother_room(config)
    candidates: List[Room] = []
    stack = [mother]

    while stack:
        room = stack.pop()
        for half in split_room(room, config, rng):
            threshold = min(max(rng.random() * config.split_area_range, 1.0), MAX_SPLIT_AREA_THRESHOLD)
            area = half.area
            if area > threshold:
                stack.append(half)
            elif area > 0:
                candidates.append(half)

    if len(candidates) > MIN_ROOMS_FOR_RANKING:
        mother_center = mother.center
        candidates.sort(key=lambda room: _ranking_key(room, mother_center))

    target = config.room_count + int(rng.random() * config.room_count_variation)
    del candidates[target:]

    layout = RoomLayout(mother)
    for room in recenter(candidates):
        layout.add(room)
    return layout


def recenter(rooms: List[Room]) -> List[Room]:
    """Shift rooms so their combined footprint is centred on the origin (whole cells only)."""
    if not rooms:
        return []
    min_x = min(room.position[0] for room in rooms)
    min_z = min(room.position[2] for room in rooms)
    max_x = max(room.position[0] + room.width for room in rooms)
    max_z = max(room.position[2] + room.depth for room in rooms)
    dx = int(math.floor((min_x + max_x) / 2.0))
    dz = int(math.floor((min_z + max_z) / 2.0))
    return [room.translated(-dx, 0, -dz) for room in rooms]


# Scatter layout ----------------------------------------------------------------


def sample_room(config: LevelConfig, rng: random.Random) -> Room:
    """Draw one random room inside the configured boundaries."""
    bx, by, bz = config.boundaries
    size = (
        config.room_size + int(rng.random() * config.room_size_variation),
        config.level_height + rng.random() * config.level_height_variation,
        config.room_size + int(rng.random() * config.room_size_variation),
    )
    position = [
        max(0, int(rng.random() * (bound - extent - 1)))
        for bound, extent in zip((bx, by, bz), size)
    ]
    if config.is_flat:
        position[1] = 0
    return Room(tuple(position), size)  # type: ignore[arg-type]


def scatter_rooms(config: LevelConfig, rng: random.Random) -> RoomLayout:
    """Place rooms at random, rejecting any that collide with those already placed."""
    layout = RoomLayout()
    slots = config.room_count + int(rng.random() * config.room_count_variation)
    rejected = 0
    for _ in range(slots):
        for _attempt in range(config.max_placement_attempts):
            if layout.try_add(sample_room(config, rng)):
                break
            rejected += 1
    logger.debug("scatter_finished", slots=slots, placed=len(layout), rejected=rejected)
    return layout


def find_furthest_rooms(rooms: List[Room]) -> Tuple[Optional[Room], Optional[Room]]:
    """Return the pair of rooms whose centers are furthest apart."""
    best: Tuple[Optional[Room], Optional[Room]] = (None, None)
    max_distance = -1.0
    for i, first in enumerate(rooms):
        for second in rooms[i + 1 :]:
            distance = first.center.distance_to(second.center)
            if distance <= max_distance:
                continue
            max_distance = distance
            best = (first, second)
    return best
