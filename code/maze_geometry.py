"""Geometry helpers for grid footprints, directions, and world-space offsets."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple


class Direction(Enum):
    """Cardinal directions with unit vectors on the placement grid.

    North points towards increasing ``y`` so that grid ``y`` maps directly onto
    world ``z``.
    """

    NORTH = (0, 1)
    EAST = (1, 0)
    SOUTH = (0, -1)
    WEST = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @property
    def is_vertical(self) -> bool:
        """True for the north/south sides, whose border runs along the x axis."""
        return self.dx == 0

    def opposite(self) -> Direction:
        return Direction.from_tuple((-self.dx, -self.dy))

    @property
    def order(self) -> int:
        return _DIRECTION_ORDER[self]

    @classmethod
    def from_tuple(cls, value: Tuple[int, int]) -> Direction:
        try:
            return cls(value)
        except ValueError as exc:
            raise ValueError(f"Unsupported direction {value}") from exc


_DIRECTION_ORDER = {direction: idx for idx, direction in enumerate(Direction)}

CARDINAL_DIRECTIONS: Tuple[Direction, ...] = (
    Direction.NORTH,
    Direction.EAST,
    Direction.SOUTH,
    Direction.WEST,
)


@dataclass(frozen=True, order=True)
class TilePos:
    """Integer grid coordinate.

    Ordering compares ``(x, y)`` lexicographically, which is the total order
    used to decide door ownership.
    """

    x: int
    y: int

    def step(self, direction: Direction) -> TilePos:
        return TilePos(self.x + direction.dx, self.y + direction.dy)

    def distance_to(self, other: TilePos) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_tuple(self) -> Tuple[int, int]:
        return self.x, self.y


@dataclass(frozen=True)
class Rect:
    """Immutable axis-aligned rectangle using integer grid coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def max_x(self) -> int:
        """Right edge (exclusive)."""
        return self.x + self.width

    @property
    def max_y(self) -> int:
        """Top edge (exclusive)."""
        return self.y + self.height

    @property
    def last_x(self) -> int:
        """Rightmost occupied column (inclusive)."""
        return self.x + self.width - 1

    @property
    def last_y(self) -> int:
        """Topmost occupied row (inclusive)."""
        return self.y + self.height - 1

    @property
    def origin(self) -> TilePos:
        return TilePos(self.x, self.y)

    def overlaps(self, other: Rect) -> bool:
        """Return True when the interior of this rect intersects another rect."""
        if self.max_x <= other.x or other.max_x <= self.x:
            return False
        if self.max_y <= other.y or other.max_y <= self.y:
            return False
        return True

    def contains(self, point: TilePos) -> bool:
        """Return True if the provided cell lies inside this rect."""
        return self.x <= point.x < self.max_x and self.y <= point.y < self.max_y

    def cells(self) -> Iterator[TilePos]:
        for ty in range(self.y, self.max_y):
            for tx in range(self.x, self.max_x):
                yield TilePos(tx, ty)

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Return the rect as an ``(x, y, width, height)`` tuple."""
        return self.x, self.y, self.width, self.height

    @classmethod
    def from_origin(cls, origin: TilePos, size: Tuple[int, int]) -> Rect:
        return cls(origin.x, origin.y, size[0], size[1])


def span_overlap(a_min: int, a_max: int, b_min: int, b_max: int) -> Optional[Tuple[int, int]]:
    """Return the inclusive overlap of two inclusive spans, or None."""
    start = max(a_min, b_min)
    end = min(a_max, b_max)
    if end < start:
        return None
    return start, end


@dataclass(frozen=True)
class WorldPos:
    """World-space position; the ground plane is ``x``/``z``."""

    x: float
    y: float
    z: float

    def __add__(self, other: WorldPos) -> WorldPos:
        return WorldPos(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: WorldPos) -> WorldPos:
        return WorldPos(self.x - other.x, self.y - other.y, self.z - other.z)

    def to_tuple(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.z

    @classmethod
    def zero(cls) -> WorldPos:
        return cls(0.0, 0.0, 0.0)


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation with ``t`` clamped to ``[0, 1]``."""
    t = max(0.0, min(1.0, t))
    return start + (end - start) * t


def inverse_lerp(start: float, end: float, value: float) -> float:
    if math.isclose(start, end):
        return 0.0
    return max(0.0, min(1.0, (value - start) / (end - start)))
