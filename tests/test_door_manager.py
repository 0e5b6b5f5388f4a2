import pytest

from door_index_calculator import calculate_for_generation
from door_manager import DoorManager, room_owns_door
from maze_constants import HALF_CELL
from maze_geometry import CARDINAL_DIRECTIONS, Direction, TilePos, WorldPos
from maze_models import DoorHoleTemplate, RoomGraph, RoomNode, RoomTemplate
from maze_validation import check_door_ownership
from room_category import RoomCategory


def _graph(*rooms: RoomNode) -> RoomGraph:
    graph = RoomGraph()
    for room in rooms:
        graph.add_node(room)
    return graph


def test_larger_grid_origin_owns_the_door(make_room):
    a = make_room(RoomCategory.REGULAR, 0, 0)
    b = make_room(RoomCategory.REGULAR, 1, 0)
    c = make_room(RoomCategory.REGULAR, 1, 1)

    assert room_owns_door(b, a)
    assert not room_owns_door(a, b)
    assert room_owns_door(c, b)


def test_owner_hole_is_open_and_partner_is_pass_through(make_room):
    a = make_room(RoomCategory.REGULAR, 0, 0)
    b = make_room(RoomCategory.REGULAR, 1, 0)
    graph = _graph(a, b)
    connection = graph.connect(a, b)
    manager = DoorManager()

    bindings = manager.apply_door_states(graph)

    assert len(bindings) == 1
    binding = bindings[0]
    assert binding.connection is connection
    assert binding.owner_room is b
    assert binding.owner_hole.direction is Direction.WEST
    assert binding.owner_hole.is_open
    assert binding.pass_through_hole is manager.find_hole(a, Direction.EAST, 0)
    assert binding.pass_through_hole.is_pass_through
    assert manager.connected_doors(a) == [binding.owner_hole]
    assert manager.connected_doors(b) == [binding.owner_hole]
    assert check_door_ownership(graph, manager) == []


def test_unconnected_holes_are_blocked(make_room):
    a = make_room(RoomCategory.REGULAR, 0, 0)
    b = make_room(RoomCategory.REGULAR, 1, 0)
    graph = _graph(a, b)
    graph.connect(a, b)
    manager = DoorManager()

    manager.apply_door_states(graph)

    blocked = [hole for hole in manager.room_door_holes[a] if hole.direction is not Direction.EAST]
    assert len(blocked) == 3
    assert all(hole.is_blocked for hole in blocked)


@pytest.mark.parametrize("category", list(RoomCategory))
def test_default_holes_cover_every_slot_once(make_room, category):
    room = make_room(category, 0, 0)

    holes = DoorManager().find_door_holes(room)

    found = [(hole.direction, hole.slot) for hole in holes]
    expected = [
        (direction, slot) for direction in CARDINAL_DIRECTIONS for slot in range(category.slot_count(direction))
    ]
    assert found == expected


@pytest.mark.parametrize("category", list(RoomCategory))
@pytest.mark.parametrize("grid_center", [TilePos(0, 0), TilePos(6, 6)])
def test_generation_slot_matches_hole_on_shared_edge(make_room, category, grid_center):
    room = make_room(category, 3, 4, grid_center=grid_center)
    manager = DoorManager()
    manager.room_door_holes[room] = manager.find_door_holes(room)

    for direction in CARDINAL_DIRECTIONS:
        for cell in room.footprint.cells():
            neighbour_cell = cell.step(direction)
            if room.footprint.contains(neighbour_cell):
                continue
            neighbour = RoomNode(category=RoomCategory.REGULAR, grid_position=neighbour_cell)
            result = calculate_for_generation(room, neighbour, direction)
            hole = manager.find_hole(room, direction, result.slot)

            assert hole is not None
            expected = WorldPos(
                (cell.x + neighbour_cell.x - 2 * grid_center.x) * HALF_CELL,
                0.0,
                (cell.y + neighbour_cell.y - 2 * grid_center.y) * HALF_CELL,
            )
            assert hole.world_position.to_tuple() == pytest.approx(expected.to_tuple())


def test_missing_hole_rejects_binding_and_blocks_partner(make_room, parent_node):
    a = make_room(RoomCategory.REGULAR, 0, 0)
    bare_template = RoomTemplate(name="Bare", category=RoomCategory.REGULAR)
    b = RoomNode(
        category=RoomCategory.REGULAR,
        grid_position=TilePos(1, 0),
        template=bare_template,
        scene_node=bare_template.instantiate(parent_node, WorldPos(20.0, 0.0, 0.0), "Bare"),
        world_origin=WorldPos(20.0, 0.0, 0.0),
    )
    graph = _graph(a, b)
    graph.connect(a, b)
    manager = DoorManager()

    bindings = manager.apply_door_states(graph)

    assert bindings == []
    assert manager.diagnostics.door_bindings_rejected == 1
    assert manager.find_hole(a, Direction.EAST, 0).is_blocked
    assert check_door_ownership(graph, manager) != []


def _split_east_room(parent_node) -> RoomNode:
    # Two openings on the east wall that both resolve to slot 0.
    template = RoomTemplate(
        name="SplitEast",
        category=RoomCategory.REGULAR,
        door_holes=[
            DoorHoleTemplate(WorldPos(HALF_CELL, 0.0, 3.0)),
            DoorHoleTemplate(WorldPos(HALF_CELL, 0.0, -3.0)),
            DoorHoleTemplate(WorldPos(-HALF_CELL, 0.0, 0.0)),
            DoorHoleTemplate(WorldPos(0.0, 0.0, HALF_CELL)),
            DoorHoleTemplate(WorldPos(0.0, 0.0, -HALF_CELL)),
        ],
    )
    return RoomNode(
        category=RoomCategory.REGULAR,
        grid_position=TilePos(0, 0),
        template=template,
        scene_node=template.instantiate(parent_node, WorldPos(0.0, 0.0, 0.0), "SplitEast"),
        world_origin=WorldPos(0.0, 0.0, 0.0),
    )


def test_duplicate_hole_on_same_slot_is_blocked(make_room, parent_node):
    a = _split_east_room(parent_node)
    b = make_room(RoomCategory.REGULAR, 1, 0)
    graph = _graph(a, b)
    graph.connect(a, b)
    manager = DoorManager()

    bindings = manager.apply_door_states(graph)

    assert len(bindings) == 1
    assert len(manager.room_door_holes[a]) == 4
    assert len(manager.duplicate_door_holes[a]) == 1
    extra = manager.duplicate_door_holes[a][0]
    assert extra.is_blocked
    assert manager.diagnostics.door_bindings_rejected == 1
    shared = manager.holes_at(a, Direction.EAST, 0) + manager.holes_at(b, Direction.WEST, 0)
    assert len(shared) == 3
    assert [hole for hole in shared if hole.is_open] == [bindings[0].owner_hole]
    assert check_door_ownership(graph, manager) == []


def test_ownership_check_counts_duplicate_holes(make_room, parent_node):
    a = _split_east_room(parent_node)
    b = make_room(RoomCategory.REGULAR, 1, 0)
    graph = _graph(a, b)
    graph.connect(a, b)
    manager = DoorManager()
    manager.apply_door_states(graph)

    manager.duplicate_door_holes[a][0].set_open()

    assert check_door_ownership(graph, manager) == [f"{a.identifier} <-> {b.identifier}: 2 active doors"]


def test_room_without_geometry_has_no_holes():
    room = RoomNode(category=RoomCategory.WIDE, grid_position=TilePos(0, 0))

    assert DoorManager().find_door_holes(room) == []
