"""Binds generated door states onto the door holes of instantiated room geometry.

Every shared opening has a hole on each side of the wall. Exactly one of the two
becomes the interactable door (the owner); the other is turned into a
pass-through with both its door and block geometry disabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from door_index_calculator import calculate_for_door_hole, direction_from_offset, room_visual_center
from maze_constants import BLOCK_CHILD_NAME, DOOR_CHILD_NAME, DOOR_HOLE_TAG
from maze_geometry import Direction, WorldPos
from maze_models import RoomConnection, RoomGraph, RoomNode
from metrics import GenerationDiagnostics
from scene_graph import SceneNode

logger = logging.getLogger(__name__)


def room_owns_door(room_a: RoomNode, room_b: RoomNode) -> bool:
    """True if ``room_a`` owns the door shared with ``room_b``.

    The room whose grid origin is larger in ``(x, y)`` order owns the door.
    """
    return room_a.grid_position > room_b.grid_position


@dataclass(eq=False)
class DoorHole:
    """A tagged opening in room geometry with its resolved side and slot."""

    room: RoomNode
    node: SceneNode
    door_node: SceneNode
    block_node: SceneNode
    world_position: WorldPos
    direction: Direction
    slot: int

    @property
    def is_open(self) -> bool:
        return self.door_node.active and not self.block_node.active

    @property
    def is_blocked(self) -> bool:
        return self.block_node.active and not self.door_node.active

    @property
    def is_pass_through(self) -> bool:
        return not self.door_node.active and not self.block_node.active

    def set_open(self) -> None:
        self.door_node.set_active(True)
        self.block_node.set_active(False)

    def set_blocked(self) -> None:
        self.door_node.set_active(False)
        self.block_node.set_active(True)

    def set_pass_through(self) -> None:
        self.door_node.set_active(False)
        self.block_node.set_active(False)


@dataclass(frozen=True)
class DoorBinding:
    """Resolved pair of holes for one graph edge."""

    connection: RoomConnection
    owner_room: RoomNode
    owner_hole: DoorHole
    pass_through_hole: DoorHole


class DoorManager:
    """Applies the algorithm's door states to room geometry and resolves door ownership."""

    def __init__(self, diagnostics: Optional[GenerationDiagnostics] = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else GenerationDiagnostics()
        self.room_door_holes: Dict[RoomNode, List[DoorHole]] = {}
        # Extra holes that resolved to an already taken side and slot; always blocked.
        self.duplicate_door_holes: Dict[RoomNode, List[DoorHole]] = {}
        self.bindings: List[DoorBinding] = []
        self._connected_doors: Dict[RoomNode, List[DoorHole]] = {}

    def apply_door_states(self, graph: RoomGraph) -> List[DoorBinding]:
        """Run both binding passes over ``graph`` and return the resolved bindings."""
        self.room_door_holes = {}
        self.duplicate_door_holes = {}
        self.bindings = []
        self._connected_doors = {}
        for room in graph.nodes:
            self._setup_room(room)
        for connection in graph.edges:
            self._pair_and_resolve(connection)
        logger.debug(
            "Bound %d doors across %d rooms (%d rejected)",
            len(self.bindings),
            len(graph.nodes),
            self.diagnostics.door_bindings_rejected,
        )
        return self.bindings

    def connected_doors(self, room: RoomNode) -> List[DoorHole]:
        """Owner doors on the room's edges, whichever side of the wall they belong to."""
        return list(self._connected_doors.get(room, []))

    def find_hole(self, room: RoomNode, direction: Direction, slot: int) -> Optional[DoorHole]:
        for hole in self.room_door_holes.get(room, []):
            if hole.direction is direction and hole.slot == slot:
                return hole
        return None

    def holes_at(self, room: RoomNode, direction: Direction, slot: int) -> List[DoorHole]:
        """Every hole of ``room`` at the given side and slot, duplicates included."""
        candidates = self.room_door_holes.get(room, []) + self.duplicate_door_holes.get(room, [])
        return [hole for hole in candidates if hole.direction is direction and hole.slot == slot]

    # ------------------------------------------------------------------
    # Pass 1: per-room hole state
    # ------------------------------------------------------------------
    def find_door_holes(self, room: RoomNode) -> List[DoorHole]:
        if room.scene_node is None:
            logger.error("Room has no scene node: %s", room.identifier)
            return []

        holes: List[DoorHole] = []
        center = room_visual_center(room)
        for node in room.scene_node.find_with_tag(DOOR_HOLE_TAG):
            door_node = node.find(DOOR_CHILD_NAME)
            block_node = node.find(BLOCK_CHILD_NAME)
            if door_node is None or block_node is None:
                logger.warning(
                    "Door hole %s on %s is missing children (door: %s, block: %s)",
                    node.name,
                    room.identifier,
                    door_node is not None,
                    block_node is not None,
                )
                continue
            world_position = node.world_position
            direction = direction_from_offset(room, world_position - center)
            result = calculate_for_door_hole(room, world_position, direction)
            if not result.is_valid:
                logger.error("Invalid door index for hole %s: %s", node.name, result.debug_info)
                continue
            holes.append(
                DoorHole(
                    room=room,
                    node=node,
                    door_node=door_node,
                    block_node=block_node,
                    world_position=world_position,
                    direction=direction,
                    slot=result.slot,
                )
            )

        holes.sort(key=lambda hole: (hole.direction.order, hole.slot))
        return holes

    def _setup_room(self, room: RoomNode) -> None:
        kept: List[DoorHole] = []
        duplicates: List[DoorHole] = []
        taken = set()
        for hole in self.find_door_holes(room):
            key = (hole.direction, hole.slot)
            if key in taken:
                hole.set_blocked()
                duplicates.append(hole)
                self.diagnostics.door_bindings_rejected += 1
                logger.warning(
                    "Door hole %s on %s duplicates %s slot %d; blocking it",
                    hole.node.name,
                    room.identifier,
                    hole.direction.name,
                    hole.slot,
                )
                continue
            taken.add(key)
            kept.append(hole)

        self.room_door_holes[room] = kept
        if duplicates:
            self.duplicate_door_holes[room] = duplicates
        for hole in kept:
            state = room.door_state_at(hole.direction, hole.slot)
            if state is not None and state.is_connected:
                hole.set_open()
            else:
                hole.set_blocked()

    # ------------------------------------------------------------------
    # Pass 2: per-edge ownership
    # ------------------------------------------------------------------
    def _pair_and_resolve(self, connection: RoomConnection) -> None:
        room_a, room_b = connection.from_room, connection.to_room
        state_a = room_a.door_state_for(room_b)
        state_b = room_b.door_state_for(room_a)
        hole_a = self.find_hole(room_a, state_a.direction, state_a.slot) if state_a is not None else None
        hole_b = self.find_hole(room_b, state_b.direction, state_b.slot) if state_b is not None else None

        if hole_a is None or hole_b is None:
            for hole in (hole_a, hole_b):
                if hole is not None:
                    hole.set_blocked()
            self.diagnostics.door_bindings_rejected += 1
            logger.warning(
                "Door binding rejected between %s and %s (hole A: %s, hole B: %s)",
                room_a.identifier,
                room_b.identifier,
                hole_a is not None,
                hole_b is not None,
            )
            return

        if room_owns_door(room_a, room_b):
            owner_room, owner, passage = room_a, hole_a, hole_b
        else:
            owner_room, owner, passage = room_b, hole_b, hole_a
        owner.set_open()
        passage.set_pass_through()

        for room in (room_a, room_b):
            doors = self._connected_doors.setdefault(room, [])
            if owner not in doors:
                doors.append(owner)

        self.bindings.append(
            DoorBinding(
                connection=connection,
                owner_room=owner_room,
                owner_hole=owner,
                pass_through_hole=passage,
            )
        )
