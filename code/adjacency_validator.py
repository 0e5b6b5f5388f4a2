"""Grid adjacency predicates shared by every generation stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from maze_geometry import Direction, Rect, span_overlap

if TYPE_CHECKING:
    from maze_models import RoomNode


@dataclass(frozen=True)
class SharedBorder:
    """Where two adjacent footprints touch, seen from the first footprint."""

    direction: Direction
    # Inclusive span of shared cells along the border axis.
    overlap: Tuple[int, int]


def rects_adjacent(rect_a: Rect, rect_b: Rect) -> bool:
    """Return True if the footprints touch along one axis with overlapping border.

    Footprints one cell apart on an axis (no gap, no overlap) qualify only when
    their projections on the other axis share at least one cell.
    """
    return shared_border(rect_a, rect_b) is not None


def shared_border(rect_a: Rect, rect_b: Rect) -> Optional[SharedBorder]:
    """Describe the border ``rect_a`` shares with ``rect_b``, if any."""
    vertical_overlap = span_overlap(rect_a.y, rect_a.last_y, rect_b.y, rect_b.last_y)
    if vertical_overlap is not None:
        if rect_a.last_x + 1 == rect_b.x:
            return SharedBorder(Direction.EAST, vertical_overlap)
        if rect_b.last_x + 1 == rect_a.x:
            return SharedBorder(Direction.WEST, vertical_overlap)

    horizontal_overlap = span_overlap(rect_a.x, rect_a.last_x, rect_b.x, rect_b.last_x)
    if horizontal_overlap is not None:
        if rect_a.last_y + 1 == rect_b.y:
            return SharedBorder(Direction.NORTH, horizontal_overlap)
        if rect_b.last_y + 1 == rect_a.y:
            return SharedBorder(Direction.SOUTH, horizontal_overlap)
    return None


def are_rooms_adjacent(room_a: Optional[RoomNode], room_b: Optional[RoomNode]) -> bool:
    if room_a is None or room_b is None:
        return False
    if room_a is room_b:
        return False
    return rects_adjacent(room_a.footprint, room_b.footprint)


def validate_connection(room_from: Optional[RoomNode], room_to: Optional[RoomNode]) -> bool:
    """Check a proposed edge before any door state is written for it."""
    if not are_rooms_adjacent(room_from, room_to):
        return False
    border = shared_border(room_from.footprint, room_to.footprint)  # type: ignore[union-attr]
    if border is None:
        return False
    start, end = border.overlap
    return end >= start
