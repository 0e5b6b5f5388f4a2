"""Maps connection geometry onto door slot indices.

Two entry points must agree with each other:

* generation time works on grid coordinates of two placed rooms;
* binding time works on the world-space offset of a door hole from the room's
  visual centre.

On a side spanning two cells, slot 0 is the west column (north/south sides) or
the north row (east/west sides). A side spanning a single cell only has slot 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from adjacency_validator import shared_border
from maze_constants import HALF_CELL, SNAP_MARGIN
from maze_geometry import Direction, TilePos, WorldPos
from room_category import RoomCategory

if TYPE_CHECKING:
    from maze_models import RoomNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DoorIndexResult:
    """Outcome of a slot computation; invalid results carry slot -1."""

    slot: int
    is_valid: bool
    debug_info: str = ""

    @classmethod
    def valid(cls, slot: int, debug_info: str = "") -> DoorIndexResult:
        return cls(slot=slot, is_valid=True, debug_info=debug_info)

    @classmethod
    def invalid(cls, debug_info: str) -> DoorIndexResult:
        return cls(slot=-1, is_valid=False, debug_info=debug_info)


# ----------------------------------------------------------------------
# Generation time
# ----------------------------------------------------------------------
def connection_point(room: RoomNode, connected_room: RoomNode, direction: Direction) -> TilePos:
    """Return the cell of ``room`` on its ``direction`` border facing ``connected_room``.

    The first cell of the shared span is used; without a shared span the
    neighbour's near coordinate is clamped into the room's own span.
    """
    own = room.footprint
    other = connected_room.footprint
    if direction in (Direction.EAST, Direction.WEST):
        start = max(own.y, other.y)
        end = min(own.last_y, other.last_y)
        connect_y = start if start <= end else _clamp(other.y, own.y, own.last_y)
        border_x = own.last_x if direction is Direction.EAST else own.x
        return TilePos(border_x, connect_y)

    start = max(own.x, other.x)
    end = min(own.last_x, other.last_x)
    connect_x = start if start <= end else _clamp(other.x, own.x, own.last_x)
    border_y = own.last_y if direction is Direction.NORTH else own.y
    return TilePos(connect_x, border_y)


def calculate_from_grid_position(room: RoomNode, point: TilePos, direction: Direction) -> DoorIndexResult:
    footprint = room.footprint
    if not footprint.contains(point):
        return DoorIndexResult.invalid(
            f"{room.identifier} {direction.name}: point {point.to_tuple()} outside footprint"
        )
    category = room.category
    if not category.has_split_side(direction):
        return DoorIndexResult.valid(0, f"{category.name} {direction.name}: single door side")

    if direction.is_vertical:
        center_x = footprint.x + 0.5
        slot = 0 if point.x < center_x else 1
        return DoorIndexResult.valid(
            slot, f"{category.name} {direction.name}: connection_x={point.x}, center_x={center_x:.1f}"
        )
    slot = 0 if point.y == footprint.last_y else 1
    return DoorIndexResult.valid(
        slot, f"{category.name} {direction.name}: connection_y={point.y}, top_row={footprint.last_y}"
    )


def calculate_for_generation(room: RoomNode, connected_room: RoomNode, direction: Direction) -> DoorIndexResult:
    """Slot on ``room``'s ``direction`` side used by an edge to ``connected_room``."""
    if room.category is RoomCategory.REGULAR:
        return DoorIndexResult.valid(0, "Regular room always uses slot 0")
    point = connection_point(room, connected_room, direction)
    return calculate_from_grid_position(room, point, direction)


# ----------------------------------------------------------------------
# Binding time
# ----------------------------------------------------------------------
def room_visual_center(room: RoomNode) -> WorldPos:
    """World position of the centre of the room's footprint."""
    width, height = room.grid_size
    origin = room.scene_node.world_position if room.scene_node is not None else room.world_origin
    return origin + WorldPos((width - 1) * HALF_CELL, 0.0, (height - 1) * HALF_CELL)


def direction_from_offset(room: RoomNode, offset: WorldPos) -> Direction:
    """Pick the room side nearest to a door hole at ``offset`` from the centre.

    Holes further than ``SNAP_MARGIN`` from every side are slightly misplaced;
    they are assigned by the dominant axis of the offset instead.
    """
    width, height = room.grid_size
    half_x = width * HALF_CELL
    half_z = height * HALF_CELL
    distances = (
        (abs(offset.x - half_x), Direction.EAST),
        (abs(offset.x + half_x), Direction.WEST),
        (abs(offset.z - half_z), Direction.NORTH),
        (abs(offset.z + half_z), Direction.SOUTH),
    )
    best_distance, best_direction = distances[0]
    for distance, direction in distances[1:]:
        if distance < best_distance:
            best_distance, best_direction = distance, direction

    if best_distance > SNAP_MARGIN:
        if abs(offset.x) >= abs(offset.z):
            return Direction.EAST if offset.x >= 0 else Direction.WEST
        return Direction.NORTH if offset.z >= 0 else Direction.SOUTH
    return best_direction


def calculate_from_offset(category: RoomCategory, offset: WorldPos, direction: Direction) -> DoorIndexResult:
    if not category.has_split_side(direction):
        return DoorIndexResult.valid(0, f"{category.name} {direction.name}: single door side")
    if direction.is_vertical:
        slot = 0 if offset.x < 0.0 else 1
        return DoorIndexResult.valid(slot, f"{category.name} {direction.name}: local_x={offset.x:.2f}")
    slot = 0 if offset.z >= 0.0 else 1
    return DoorIndexResult.valid(slot, f"{category.name} {direction.name}: local_z={offset.z:.2f}")


def calculate_for_door_hole(room: RoomNode, world_position: WorldPos, direction: Direction) -> DoorIndexResult:
    if room.category is RoomCategory.REGULAR:
        return DoorIndexResult.valid(0, "Regular room always uses slot 0")
    offset = world_position - room_visual_center(room)
    return calculate_from_offset(room.category, offset, direction)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------
def validate_door_connection(
    room_a: RoomNode,
    slot_a: int,
    direction_a: Direction,
    room_b: RoomNode,
    slot_b: int,
    direction_b: Direction,
) -> bool:
    """Recompute both sides of a proposed edge and compare with the proposal."""
    if direction_b is not direction_a.opposite():
        logger.warning(
            "Direction mismatch: %s should pair with %s, got %s",
            direction_a.name,
            direction_a.opposite().name,
            direction_b.name,
        )
        return False

    border = shared_border(room_a.footprint, room_b.footprint)
    if border is None or border.direction is not direction_a:
        logger.warning(
            "Direction %s does not match geometry between %s and %s",
            direction_a.name,
            room_a.identifier,
            room_b.identifier,
        )
        return False

    if room_a.category is RoomCategory.REGULAR and room_b.category is RoomCategory.REGULAR:
        return slot_a == 0 and slot_b == 0

    point_a = connection_point(room_a, room_b, direction_a)
    point_b = connection_point(room_b, room_a, direction_b)
    expected_a = calculate_from_grid_position(room_a, point_a, direction_a)
    expected_b = calculate_from_grid_position(room_b, point_b, direction_b)
    if not expected_a.is_valid or not expected_b.is_valid:
        logger.warning(
            "Invalid slots during validation: A=%s, B=%s",
            expected_a.debug_info,
            expected_b.debug_info,
        )
        return False

    if expected_a.slot != slot_a or expected_b.slot != slot_b:
        logger.warning(
            "Door slot mismatch: %s expected %d, calculated %d; %s expected %d, calculated %d "
            "(connection points A=%s, B=%s)",
            room_a.identifier,
            slot_a,
            expected_a.slot,
            room_b.identifier,
            slot_b,
            expected_b.slot,
            point_a.to_tuple(),
            point_b.to_tuple(),
        )
        return False
    return True


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
