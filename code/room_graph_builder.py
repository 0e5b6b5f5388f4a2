"""Wraps a placed room layout into an empty room graph."""

from __future__ import annotations

from maze_models import RoomGraph, RoomLayout


def build_graph(layout: RoomLayout) -> RoomGraph:
    """Copy nodes and the entry/boss pointers; edges are added later by the growers."""
    graph = RoomGraph()
    for room in layout.rooms:
        room.reset_door_states()
        graph.add_node(room)
    graph.entry = layout.entry_room
    graph.boss = layout.boss_room
    return graph
