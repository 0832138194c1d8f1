"""Shared constants for the dungeon generator."""

from __future__ import annotations

NEAR_EQUAL_TOLERANCE = 0.001
# Simplices whose orientation determinant falls below this are treated as flat.
DEGENERATE_DETERMINANT = 1e-9

# R-tree fanout limits.
DEFAULT_MAX_ENTRIES = 9
MINIMUM_MAX_ENTRIES = 4
MINIMUM_MIN_ENTRIES = 2
DEFAULT_FILL_FACTOR = 0.4

# Partition layout: upper clamp for the random area threshold of a split.
MAX_SPLIT_AREA_THRESHOLD = 400.0
# Rooms are only ranked when there are more candidates than this.
MIN_ROOMS_FOR_RANKING = 3

# Supra simplex margin around the point cloud, and its scale relative to the cloud's extent.
SUPRA_MARGIN = 3.0
SUPRA_SCALE = 100.0

# Empty cells between the outermost rooms and the border of the path grid.
DEFAULT_GRID_MARGIN = 2

RANDOM_SEED = None  # Set to a number for reproducible CLI runs; None picks a fresh seed each run.
