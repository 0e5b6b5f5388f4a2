"""Mechanical checks for generated mazes; each returns a list of violation strings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Tuple

import networkx as nx

from adjacency_validator import are_rooms_adjacent
from door_index_calculator import validate_door_connection
from door_manager import DoorManager, room_owns_door
from maze_geometry import Direction, TilePos
from maze_models import RoomGraph, RoomNode

if TYPE_CHECKING:
    from maze_generator import MazeResult


def check_connectivity(graph: RoomGraph) -> List[str]:
    """Every room, boss included, must be reachable from the entry."""
    if graph.entry is None:
        return ["graph has no entry room"]
    if graph.boss is None:
        return ["graph has no boss room"]
    nx_graph = graph.to_networkx()
    reachable = nx.node_connected_component(nx_graph, graph.entry.index)
    violations = [
        f"{room.identifier} is unreachable from the entry" for room in graph.nodes if room.index not in reachable
    ]
    return violations


def check_no_overlap(rooms: List[RoomNode]) -> List[str]:
    owners: Dict[TilePos, RoomNode] = {}
    violations = []
    for room in rooms:
        for cell in room.footprint.cells():
            other = owners.get(cell)
            if other is not None:
                violations.append(f"{room.identifier} overlaps {other.identifier} at {cell.to_tuple()}")
            else:
                owners[cell] = room
    return violations


def check_door_slot_uniqueness(rooms: List[RoomNode]) -> List[str]:
    violations = []
    for room in rooms:
        seen: Dict[Tuple[Direction, int], int] = {}
        for state in room.all_door_states():
            if not 0 <= state.slot < room.category.slot_count(state.direction):
                violations.append(f"{room.identifier} has invalid slot {state.slot} on {state.direction.name}")
            if state.is_connected:
                key = (state.direction, state.slot)
                seen[key] = seen.get(key, 0) + 1
        for (direction, slot), count in seen.items():
            if count > 1:
                violations.append(f"{room.identifier} {direction.name} slot {slot} is open {count} times")
    return violations


def check_bidirectional_consistency(graph: RoomGraph) -> List[str]:
    violations = []
    for edge in graph.edges:
        room_a, room_b = edge.from_room, edge.to_room
        label = f"{room_a.identifier} <-> {room_b.identifier}"
        if not are_rooms_adjacent(room_a, room_b):
            violations.append(f"{label}: rooms are not adjacent")
            continue
        state_a = room_a.door_state_for(room_b)
        state_b = room_b.door_state_for(room_a)
        if state_a is None or state_b is None:
            violations.append(f"{label}: missing open door state")
            continue
        if state_b.direction is not state_a.direction.opposite():
            violations.append(f"{label}: directions {state_a.direction.name}/{state_b.direction.name} not opposite")
            continue
        if not validate_door_connection(
            room_a, state_a.slot, state_a.direction, room_b, state_b.slot, state_b.direction
        ):
            violations.append(f"{label}: door slots disagree with geometry")

    open_states = sum(len(room.open_door_states()) for room in graph.nodes)
    if open_states != 2 * len(graph.edges):
        violations.append(f"{open_states} open door states for {len(graph.edges)} edges")
    return violations


def check_loop_density(graph: RoomGraph, target_loop_count: int) -> List[str]:
    loops = len(graph.loop_edges)
    if loops > target_loop_count:
        return [f"{loops} loop edges exceed target of {target_loop_count}"]
    return []


def check_door_ownership(graph: RoomGraph, door_manager: DoorManager) -> List[str]:
    """Each edge must end in exactly one interactable door, owned by the larger grid origin."""
    violations = []
    for edge in graph.edges:
        room_a, room_b = edge.from_room, edge.to_room
        label = f"{room_a.identifier} <-> {room_b.identifier}"
        holes_a = door_manager.holes_at(room_a, edge.from_direction, edge.from_slot)
        holes_b = door_manager.holes_at(room_b, edge.to_direction, edge.to_slot)
        if not holes_a or not holes_b:
            violations.append(f"{label}: door hole missing")
            continue
        hole_a, hole_b = holes_a[0], holes_b[0]
        active = [hole for hole in holes_a + holes_b if hole.is_open]
        if len(active) != 1:
            violations.append(f"{label}: {len(active)} active doors")
            continue
        expected_owner = hole_a if room_owns_door(room_a, room_b) else hole_b
        if active[0] is not expected_owner:
            violations.append(f"{label}: door owned by the wrong room")
        passage = hole_b if expected_owner is hole_a else hole_a
        if not passage.is_pass_through:
            violations.append(f"{label}: non-owner hole is not a pass-through")
    return violations


def validate_maze(result: MazeResult) -> List[str]:
    """Run every check against a generation result."""
    graph = result.graph
    violations: List[str] = []
    violations.extend(check_connectivity(graph))
    violations.extend(check_no_overlap(graph.nodes))
    violations.extend(check_door_slot_uniqueness(graph.nodes))
    violations.extend(check_bidirectional_consistency(graph))
    violations.extend(check_loop_density(graph, result.diagnostics.target_loop_count))
    violations.extend(check_door_ownership(graph, result.door_manager))
    return violations
