import pytest

from maze_constants import BLOCK_CHILD_NAME, DOOR_CHILD_NAME, DOOR_HOLE_TAG
from maze_geometry import Direction, TilePos, WorldPos
from maze_models import (
    DoorHoleTemplate,
    RoomGraph,
    RoomNode,
    RoomTemplate,
    build_default_template,
    create_bidirectional_connection,
)
from room_category import RoomCategory
from scene_graph import SceneNode


def _room(category: RoomCategory, x: int, y: int, **kwargs) -> RoomNode:
    return RoomNode(category=category, grid_position=TilePos(x, y), **kwargs)


def test_new_room_has_closed_state_per_slot():
    room = _room(RoomCategory.LARGE, 0, 0)

    states = room.all_door_states()

    assert len(states) == 8
    assert all(not state.is_open for state in states)
    assert room.open_door_states() == []


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({"is_entry": True}, "ENTRY-REGULAR@(2,3)"),
        ({"is_boss": True}, "BOSS-REGULAR@(2,3)"),
        ({}, "REG-REGULAR@(2,3)"),
    ],
)
def test_identifier_names_role_category_and_origin(kwargs, expected):
    assert _room(RoomCategory.REGULAR, 2, 3, **kwargs).identifier == expected


def test_set_door_state_rejects_second_room_on_same_slot():
    room = _room(RoomCategory.REGULAR, 1, 1)
    first = _room(RoomCategory.REGULAR, 2, 1)
    second = _room(RoomCategory.REGULAR, 0, 1)

    assert room.set_door_state(Direction.EAST, 0, True, connected_room=first)
    assert not room.set_door_state(Direction.EAST, 0, True, connected_room=second)
    assert room.door_state_at(Direction.EAST, 0).connected_room is first


def test_set_door_state_is_idempotent_and_rejects_missing_slot():
    room = _room(RoomCategory.REGULAR, 1, 1)
    other = _room(RoomCategory.REGULAR, 2, 1)

    assert room.set_door_state(Direction.EAST, 0, True, connected_room=other)
    assert room.set_door_state(Direction.EAST, 0, True, connected_room=other)
    assert len(room.door_states[Direction.EAST]) == 1
    assert not room.set_door_state(Direction.EAST, 1, True, connected_room=other)


def test_create_bidirectional_connection_writes_both_sides():
    wide = _room(RoomCategory.WIDE, 3, 5)
    north = _room(RoomCategory.REGULAR, 4, 6)

    plan = create_bidirectional_connection(wide, north, is_main_path=True)

    assert plan is not None
    assert (plan.from_direction, plan.from_slot) == (Direction.NORTH, 1)
    assert (plan.to_direction, plan.to_slot) == (Direction.SOUTH, 0)
    state_a = wide.door_state_for(north)
    state_b = north.door_state_for(wide)
    assert state_a.is_main_path and state_b.is_main_path
    assert state_a.direction is Direction.NORTH
    assert state_b.direction is Direction.SOUTH


def test_create_bidirectional_connection_rejects_non_adjacent_rooms():
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.REGULAR, 2, 0)

    assert create_bidirectional_connection(a, b) is None
    assert a.open_door_states() == []
    assert b.open_door_states() == []


def test_create_bidirectional_connection_leaves_no_partial_state_on_conflict():
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.REGULAR, 1, 0)
    stranger = _room(RoomCategory.REGULAR, 5, 5)
    b.set_door_state(Direction.WEST, 0, True, connected_room=stranger)

    assert create_bidirectional_connection(a, b) is None
    assert a.open_door_states() == []
    assert b.door_state_at(Direction.WEST, 0).connected_room is stranger


def test_graph_connect_records_single_edge():
    graph = RoomGraph()
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.TALL, 1, 0)
    graph.add_node(a)
    graph.add_node(b)

    connection = graph.connect(a, b)

    assert connection is not None
    assert graph.has_edge(b, a)
    assert graph.connect(a, b) is None
    assert graph.connect(b, a) is None
    assert len(graph.edges) == 1
    assert graph.neighbors(a) == [b]
    assert connection.endpoint(b) == (Direction.WEST, 1)


def test_edges_between_unregistered_rooms_do_not_collide():
    graph = RoomGraph()
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.REGULAR, 1, 0)
    c = _room(RoomCategory.REGULAR, 0, 5)
    d = _room(RoomCategory.REGULAR, 1, 5)

    assert graph.connect(a, b) is not None
    assert not graph.has_edge(c, d)
    assert graph.connect(c, d) is not None
    assert graph.has_edge(c, d)
    assert len(graph.edges) == 2


def test_remove_node_frees_edge_between_remaining_rooms():
    graph = RoomGraph()
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.REGULAR, 1, 0)
    c = _room(RoomCategory.REGULAR, 2, 0)
    for room in (a, b, c):
        graph.add_node(room)
    graph.connect(a, b)

    graph.remove_node(a)

    assert not graph.has_edge(a, b)
    assert not graph.has_edge(b, c)
    assert graph.connect(b, c) is not None
    assert graph.has_edge(c, b)


def test_remove_node_closes_neighbour_doors_and_reindexes():
    graph = RoomGraph()
    a = _room(RoomCategory.REGULAR, 0, 0, is_entry=True)
    b = _room(RoomCategory.REGULAR, 1, 0)
    c = _room(RoomCategory.REGULAR, 2, 0)
    for room in (a, b, c):
        graph.add_node(room)
    graph.entry = a
    graph.connect(a, b)
    graph.connect(b, c)

    graph.remove_node(b)

    assert graph.nodes == [a, c]
    assert (a.index, c.index) == (0, 1)
    assert graph.edges == []
    assert a.open_door_states() == []
    assert c.open_door_states() == []
    assert graph.entry is a


def test_to_networkx_mirrors_nodes_and_edges():
    graph = RoomGraph()
    a = _room(RoomCategory.REGULAR, 0, 0)
    b = _room(RoomCategory.REGULAR, 0, 1)
    graph.add_node(a)
    graph.add_node(b)
    graph.connect(a, b, is_loop=True)

    nx_graph = graph.to_networkx()

    assert nx_graph.number_of_nodes() == 2
    assert nx_graph.edges[0, 1]["is_loop"] is True
    assert nx_graph.nodes[1]["position"] == (0, 1)


def test_template_rejects_hole_outside_footprint():
    with pytest.raises(ValueError):
        RoomTemplate(
            name="Broken",
            category=RoomCategory.REGULAR,
            door_holes=[DoorHoleTemplate(WorldPos(30.0, 0.0, 0.0))],
        )


@pytest.mark.parametrize("category", list(RoomCategory))
def test_default_template_has_hole_per_perimeter_edge(category):
    width, height = category.footprint

    template = build_default_template("Default", category)

    assert len(template.door_holes) == 2 * (width + height)


def test_instantiate_builds_tagged_door_holes():
    parent = SceneNode(name="Root", local_position=WorldPos(5.0, 0.0, 5.0))
    template = build_default_template("Room_1x1", RoomCategory.REGULAR)

    node = template.instantiate(parent, WorldPos(20.0, 0.0, 0.0), "Room")

    assert node.parent is parent
    assert node.world_position == WorldPos(20.0, 0.0, 0.0)
    holes = node.find_with_tag(DOOR_HOLE_TAG)
    assert len(holes) == 4
    for hole in holes:
        assert hole.find(DOOR_CHILD_NAME).active
        assert not hole.find(BLOCK_CHILD_NAME).active
