"""Room categories and the footprint table that drives sizing and door slots."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from maze_geometry import Direction


@dataclass(frozen=True)
class CategorySpec:
    """Fixed footprint for a room category, in grid cells."""

    footprint: Tuple[int, int]
    label: str

    def __post_init__(self) -> None:
        width, height = self.footprint
        # Door slots are resolved with a two-way sign rule, so sides span one or two cells.
        if width not in (1, 2) or height not in (1, 2):
            raise ValueError(f"Unsupported footprint {self.footprint} for category {self.label}")

    def slot_count(self, direction: Direction) -> int:
        """Number of door slots on one side of the room."""
        width, height = self.footprint
        return width if direction.is_vertical else height


class RoomCategory(Enum):
    """Room size classes available to the placement service."""

    REGULAR = "regular"
    WIDE = "wide"
    TALL = "tall"
    LARGE = "large"

    @property
    def spec(self) -> CategorySpec:
        return CATEGORY_SPECS[self]

    @property
    def footprint(self) -> Tuple[int, int]:
        return self.spec.footprint

    @property
    def label(self) -> str:
        return self.spec.label

    def slot_count(self, direction: Direction) -> int:
        return self.spec.slot_count(direction)

    def has_split_side(self, direction: Direction) -> bool:
        return self.slot_count(direction) > 1

    @classmethod
    def from_footprint(cls, size: Tuple[int, int]) -> RoomCategory:
        for category, spec in CATEGORY_SPECS.items():
            if spec.footprint == tuple(size):
                return category
        raise ValueError(f"No room category has footprint {size}")


CATEGORY_SPECS: Dict[RoomCategory, CategorySpec] = {
    RoomCategory.REGULAR: CategorySpec(footprint=(1, 1), label="1x1"),
    RoomCategory.WIDE: CategorySpec(footprint=(2, 1), label="2x1"),
    RoomCategory.TALL: CategorySpec(footprint=(1, 2), label="1x2"),
    RoomCategory.LARGE: CategorySpec(footprint=(2, 2), label="2x2"),
}

_missing = [category for category in RoomCategory if category not in CATEGORY_SPECS]
if _missing:
    raise RuntimeError(f"Room categories without a footprint spec: {_missing}")
