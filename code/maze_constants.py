"""Shared constants for maze generation."""

from __future__ import annotations

# World units per grid cell; door holes sit half a cell from a cell centre.
CELL_SIZE = 20.0
HALF_CELL = CELL_SIZE / 2.0
# Door holes further than this from every side fall back to the dominant axis.
SNAP_MARGIN = 2.0

# Grid side length, scaled by complexity from this base and clamped.
BASE_GRID_SIZE = 12
MIN_GRID_SIZE = 8
MAX_GRID_SIZE = 20
GRID_SCALE_MIN = 0.7
GRID_SCALE_MAX = 1.5

# Inclusive ranges for randomized counts.
MAIN_PATH_LENGTH_RANGE = (4, 7)
BRANCH_COUNT_RANGE = (2, 4)
BRANCH_LENGTH_RANGE = (2, 4)
MAX_BRANCH_COUNT = 6
MAX_BRANCH_LENGTH = 6
TARGET_ROOM_COUNT_RANGE = (8, 14)
FILLER_REGULAR_PROBABILITY = 0.7
PATH_JITTER_RANGE = (0.7, 1.3)
BOSS_RING_MAX_DISTANCE = 4

# Complexity multiplier derived from circle level.
COMPLEXITY_BASE = 1.00
COMPLEXITY_MAX = 1.65
COMPLEXITY_TAU = 5.0
BRANCH_SCALE_MAX = 1.35
LENGTH_SCALE_MAX = 1.25

# Growing tree: chance of extending from the newest active room.
NEWEST_ROOM_PROBABILITY = 0.7

# Loop injection density band.
BASE_LOOP_DENSITY = 0.12
MIN_LOOP_DENSITY = 0.08
MAX_LOOP_DENSITY = 0.20
LOOP_DENSITY_PER_COMPLEXITY = 0.05
LOOP_ACCEPT_PROBABILITY = 0.5

# Scene tags and child names used by room geometry.
DOOR_HOLE_TAG = "DoorHole"
DOOR_CHILD_NAME = "Door"
BLOCK_CHILD_NAME = "Block"

# Fallback layout: rooms between entry and boss.
FALLBACK_PATH_LENGTH = 3
