"""Core dataclasses used by the maze generator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

import networkx as nx

from adjacency_validator import shared_border
from door_index_calculator import calculate_for_generation, validate_door_connection
from maze_constants import BLOCK_CHILD_NAME, CELL_SIZE, DOOR_CHILD_NAME, DOOR_HOLE_TAG, HALF_CELL
from maze_geometry import CARDINAL_DIRECTIONS, Direction, Rect, TilePos, WorldPos
from room_category import RoomCategory
from scene_graph import SceneNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DoorHoleTemplate:
    """Door opening in template-local world units, relative to the origin-cell centre."""

    local_position: WorldPos


@dataclass
class RoomTemplate:
    """Blueprint for a room's geometry: its category and the door openings it carries."""

    name: str
    category: RoomCategory
    door_holes: List[DoorHoleTemplate] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.name:
            raise ValueError("Room template must have a name")
        if not isinstance(self.category, RoomCategory):
            raise ValueError(f"Room template {self.name} has unsupported category {self.category!r}")
        width, height = self.category.footprint
        eps = 1e-6
        min_x = -HALF_CELL - eps
        max_x = (width - 1) * CELL_SIZE + HALF_CELL + eps
        min_z = -HALF_CELL - eps
        max_z = (height - 1) * CELL_SIZE + HALF_CELL + eps
        for idx, hole in enumerate(self.door_holes):
            pos = hole.local_position
            if not (min_x <= pos.x <= max_x and min_z <= pos.z <= max_z):
                raise ValueError(
                    f"Room template {self.name} door hole {idx} at {pos.to_tuple()} lies outside its footprint"
                )

    def instantiate(self, parent: SceneNode, position: WorldPos, name: str) -> SceneNode:
        """Build the room's scene node under ``parent`` so that it sits at world ``position``."""
        root = SceneNode(name=name, local_position=position - parent.world_position)
        for idx, hole in enumerate(self.door_holes):
            hole_node = SceneNode(
                name=f"{DOOR_HOLE_TAG}_{idx}",
                local_position=hole.local_position,
                tag=DOOR_HOLE_TAG,
            )
            hole_node.add_child(SceneNode(name=DOOR_CHILD_NAME, active=True))
            hole_node.add_child(SceneNode(name=BLOCK_CHILD_NAME, active=False))
            root.add_child(hole_node)
        parent.add_child(root)
        return root


def build_default_template(name: str, category: RoomCategory) -> RoomTemplate:
    """Create a template with one door hole at the middle of every perimeter cell edge."""
    width, height = category.footprint
    top_z = (height - 1) * CELL_SIZE + HALF_CELL
    right_x = (width - 1) * CELL_SIZE + HALF_CELL
    holes: List[DoorHoleTemplate] = []
    for cx in range(width):
        holes.append(DoorHoleTemplate(WorldPos(cx * CELL_SIZE, 0.0, top_z)))
        holes.append(DoorHoleTemplate(WorldPos(cx * CELL_SIZE, 0.0, -HALF_CELL)))
    for cy in range(height):
        holes.append(DoorHoleTemplate(WorldPos(right_x, 0.0, cy * CELL_SIZE)))
        holes.append(DoorHoleTemplate(WorldPos(-HALF_CELL, 0.0, cy * CELL_SIZE)))
    return RoomTemplate(name=name, category=category, door_holes=holes)


@dataclass
class RoomInstance:
    """Footprint produced by the placement service before it becomes a graph node."""

    category: RoomCategory
    origin: TilePos
    is_entry: bool = False
    is_boss: bool = False

    @property
    def size(self) -> Tuple[int, int]:
        return self.category.footprint

    @property
    def footprint(self) -> Rect:
        return Rect.from_origin(self.origin, self.size)


@dataclass
class GridCell:
    position: TilePos
    occupied: bool = False
    room: Optional[RoomInstance] = None


@dataclass
class DoorState:
    """Desired state of one door slot on one side of a room."""

    direction: Direction
    slot: int
    is_open: bool = False
    is_main_path: bool = False
    is_loop: bool = False
    connected_room: Optional[RoomNode] = field(default=None, repr=False)

    @property
    def is_connected(self) -> bool:
        return self.is_open and self.connected_room is not None

    def same_as(self, other: DoorState) -> bool:
        return (
            self.direction is other.direction
            and self.slot == other.slot
            and self.is_open == other.is_open
            and self.is_main_path == other.is_main_path
            and self.is_loop == other.is_loop
            and self.connected_room is other.connected_room
        )


@dataclass(frozen=True)
class ConnectionPlan:
    """Directions and slots resolved for both ends of a new edge."""

    from_direction: Direction
    from_slot: int
    to_direction: Direction
    to_slot: int


@dataclass(eq=False)
class RoomConnection:
    """Undirected edge between two rooms whose door states are already written."""

    from_room: RoomNode
    to_room: RoomNode
    plan: ConnectionPlan
    is_main_path: bool = False
    is_loop: bool = False

    @property
    def from_direction(self) -> Direction:
        return self.plan.from_direction

    @property
    def from_slot(self) -> int:
        return self.plan.from_slot

    @property
    def to_direction(self) -> Direction:
        return self.plan.to_direction

    @property
    def to_slot(self) -> int:
        return self.plan.to_slot

    def other(self, room: RoomNode) -> RoomNode:
        if room is self.from_room:
            return self.to_room
        if room is self.to_room:
            return self.from_room
        raise ValueError(f"{room.identifier} is not an endpoint of this connection")

    def endpoint(self, room: RoomNode) -> Tuple[Direction, int]:
        """Return the (direction, slot) this edge uses on ``room``."""
        if room is self.from_room:
            return self.from_direction, self.from_slot
        if room is self.to_room:
            return self.to_direction, self.to_slot
        raise ValueError(f"{room.identifier} is not an endpoint of this connection")


@dataclass(eq=False)
class RoomNode:
    """A placed room as a vertex of the room graph."""

    category: RoomCategory
    grid_position: TilePos
    is_entry: bool = False
    is_boss: bool = False
    template: Optional[RoomTemplate] = None
    scene_node: Optional[SceneNode] = field(default=None, repr=False)
    world_origin: WorldPos = field(default_factory=WorldPos.zero)
    index: int = -1
    door_states: Dict[Direction, List[DoorState]] = field(init=False, repr=False)
    connections: List[RoomConnection] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.reset_door_states()

    @property
    def grid_size(self) -> Tuple[int, int]:
        return self.category.footprint

    @property
    def footprint(self) -> Rect:
        return Rect.from_origin(self.grid_position, self.grid_size)

    @property
    def identifier(self) -> str:
        if self.is_entry:
            role = "ENTRY"
        elif self.is_boss:
            role = "BOSS"
        else:
            role = "REG"
        return f"{role}-{self.category.name}@({self.grid_position.x},{self.grid_position.y})"

    def reset_door_states(self) -> None:
        """Close every slot and forget all connections."""
        self.door_states = {
            direction: [DoorState(direction, slot) for slot in range(self.category.slot_count(direction))]
            for direction in CARDINAL_DIRECTIONS
        }
        self.connections = []

    def compute_direction(self, other: RoomNode) -> Optional[Direction]:
        """Direction from this room towards an adjacent ``other``, or None if not adjacent."""
        border = shared_border(self.footprint, other.footprint)
        return border.direction if border is not None else None

    def door_state_at(self, direction: Direction, slot: int) -> Optional[DoorState]:
        for state in self.door_states[direction]:
            if state.slot == slot:
                return state
        return None

    def set_door_state(
        self,
        direction: Direction,
        slot: int,
        should_be_open: bool,
        is_main_path: bool = False,
        is_loop: bool = False,
        connected_room: Optional[RoomNode] = None,
    ) -> bool:
        if not 0 <= slot < self.category.slot_count(direction):
            logger.warning("%s has no slot %d on its %s side", self.identifier, slot, direction.name)
            return False

        new_state = DoorState(direction, slot, should_be_open, is_main_path, is_loop, connected_room)
        states = self.door_states[direction]
        for idx, existing in enumerate(states):
            if existing.slot != slot:
                continue
            if existing.same_as(new_state):
                return True
            if should_be_open and existing.is_connected and existing.connected_room is not connected_room:
                logger.warning(
                    "%s %s slot %d already open towards %s; refusing %s",
                    self.identifier,
                    direction.name,
                    slot,
                    existing.connected_room.identifier,  # type: ignore[union-attr]
                    connected_room.identifier if connected_room is not None else "None",
                )
                return False
            states[idx] = new_state
            return True

        states.append(new_state)
        return True

    def all_door_states(self) -> List[DoorState]:
        return [state for direction in CARDINAL_DIRECTIONS for state in self.door_states[direction]]

    def open_door_states(self) -> List[DoorState]:
        return [state for state in self.all_door_states() if state.is_connected]

    def door_state_for(self, room: RoomNode) -> Optional[DoorState]:
        """Return the open state leading to ``room``, if any."""
        for state in self.open_door_states():
            if state.connected_room is room:
                return state
        return None


def create_bidirectional_connection(
    room_a: RoomNode,
    room_b: RoomNode,
    is_main_path: bool = False,
    is_loop: bool = False,
) -> Optional[ConnectionPlan]:
    """Write matching door states on both rooms, or reject the edge without side effects."""
    direction = room_a.compute_direction(room_b)
    if direction is None:
        logger.warning("Cannot connect %s and %s: rooms are not adjacent", room_a.identifier, room_b.identifier)
        return None
    opposite = direction.opposite()

    result_a = calculate_for_generation(room_a, room_b, direction)
    result_b = calculate_for_generation(room_b, room_a, opposite)
    if not result_a.is_valid or not result_b.is_valid:
        logger.warning(
            "Invalid door slot between %s and %s: %s / %s",
            room_a.identifier,
            room_b.identifier,
            result_a.debug_info,
            result_b.debug_info,
        )
        return None
    slot_a, slot_b = result_a.slot, result_b.slot

    state_a = room_a.door_state_at(direction, slot_a)
    state_b = room_b.door_state_at(opposite, slot_b)
    if (
        state_a is not None
        and state_b is not None
        and state_a.is_connected
        and state_b.is_connected
        and state_a.connected_room is room_b
        and state_b.connected_room is room_a
    ):
        logger.debug("%s and %s are already connected", room_a.identifier, room_b.identifier)
        return None
    for room, state, target in ((room_a, state_a, room_b), (room_b, state_b, room_a)):
        if state is not None and state.is_connected and state.connected_room is not target:
            logger.warning(
                "Door slot conflict on %s %s slot %d (open towards %s)",
                room.identifier,
                state.direction.name,
                state.slot,
                state.connected_room.identifier,  # type: ignore[union-attr]
            )
            return None

    if not validate_door_connection(room_a, slot_a, direction, room_b, slot_b, opposite):
        return None

    previous_a = DoorState(direction, slot_a) if state_a is None else state_a
    if not room_a.set_door_state(direction, slot_a, True, is_main_path, is_loop, room_b):
        return None
    if not room_b.set_door_state(opposite, slot_b, True, is_main_path, is_loop, room_a):
        room_a.set_door_state(
            previous_a.direction,
            previous_a.slot,
            previous_a.is_open,
            previous_a.is_main_path,
            previous_a.is_loop,
            previous_a.connected_room,
        )
        return None

    return ConnectionPlan(from_direction=direction, from_slot=slot_a, to_direction=opposite, to_slot=slot_b)


@dataclass
class RoomLayout:
    """Output of the placement service."""

    rooms: List[RoomNode]
    entry_room: Optional[RoomNode]
    boss_room: Optional[RoomNode]
    grid_size: int
    grid_center: TilePos
    main_path: List[RoomNode] = field(default_factory=list)
    branch_paths: List[List[RoomNode]] = field(default_factory=list)


class RoomGraph:
    """Rooms as vertices and validated door connections as edges."""

    def __init__(self) -> None:
        self.nodes: List[RoomNode] = []
        self.edges: List[RoomConnection] = []
        self.entry: Optional[RoomNode] = None
        self.boss: Optional[RoomNode] = None
        self._edge_keys: Set[FrozenSet[int]] = set()

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[RoomNode]:
        return iter(self.nodes)

    def add_node(self, node: RoomNode) -> None:
        node.index = len(self.nodes)
        self.nodes.append(node)

    @staticmethod
    def edge_key(room_a: RoomNode, room_b: RoomNode) -> FrozenSet[int]:
        # Identity based so rooms not yet added to the graph never collide.
        return frozenset((id(room_a), id(room_b)))

    def has_edge(self, room_a: RoomNode, room_b: RoomNode) -> bool:
        return self.edge_key(room_a, room_b) in self._edge_keys

    def add_validated_connection(self, connection: RoomConnection) -> bool:
        """Record an edge whose door states were already written on both rooms."""
        if self.has_edge(connection.from_room, connection.to_room):
            return False
        self.edges.append(connection)
        self._edge_keys.add(self.edge_key(connection.from_room, connection.to_room))
        connection.from_room.connections.append(connection)
        connection.to_room.connections.append(connection)
        return True

    def connect(
        self,
        room_a: RoomNode,
        room_b: RoomNode,
        is_main_path: bool = False,
        is_loop: bool = False,
    ) -> Optional[RoomConnection]:
        """Validate, write door states, and record the edge; None when rejected."""
        if room_a is room_b or self.has_edge(room_a, room_b):
            return None
        plan = create_bidirectional_connection(room_a, room_b, is_main_path, is_loop)
        if plan is None:
            return None
        connection = RoomConnection(room_a, room_b, plan, is_main_path=is_main_path, is_loop=is_loop)
        self.add_validated_connection(connection)
        return connection

    def neighbors(self, room: RoomNode) -> List[RoomNode]:
        return [connection.other(room) for connection in room.connections]

    def clear_edges(self) -> None:
        self.edges = []
        self._edge_keys = set()
        for node in self.nodes:
            node.reset_door_states()

    def remove_node(self, node: RoomNode) -> None:
        """Drop ``node`` and any edges touching it, closing the matching doors on its neighbours."""
        for connection in list(node.connections):
            other = connection.other(node)
            direction, slot = connection.endpoint(other)
            other.set_door_state(direction, slot, False)
            other.connections.remove(connection)
            self.edges.remove(connection)
            self._edge_keys.discard(self.edge_key(node, other))
        node.connections = []
        self.nodes.remove(node)
        if self.entry is node:
            self.entry = None
        if self.boss is node:
            self.boss = None
        for idx, remaining in enumerate(self.nodes):
            remaining.index = idx
        node.index = -1

    @property
    def loop_edges(self) -> List[RoomConnection]:
        return [edge for edge in self.edges if edge.is_loop]

    def to_networkx(self) -> nx.Graph:
        graph = nx.Graph()
        for node in self.nodes:
            graph.add_node(
                node.index,
                category=node.category.name,
                position=node.grid_position.to_tuple(),
                is_entry=node.is_entry,
                is_boss=node.is_boss,
            )
        for edge in self.edges:
            graph.add_edge(
                edge.from_room.index,
                edge.to_room.index,
                is_main_path=edge.is_main_path,
                is_loop=edge.is_loop,
            )
        return graph
