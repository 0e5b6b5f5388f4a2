from grid_renderer import MazeGridRenderer
from maze_geometry import Direction, TilePos
from maze_models import DoorState, RoomGraph, RoomNode
from maze_validation import (
    check_bidirectional_consistency,
    check_connectivity,
    check_door_slot_uniqueness,
    check_loop_density,
    check_no_overlap,
)
from metrics import GenerationDiagnostics, GenerationMetrics
from room_category import RoomCategory


def _room(category: RoomCategory, x: int, y: int, **kwargs) -> RoomNode:
    return RoomNode(category=category, grid_position=TilePos(x, y), **kwargs)


def _corridor_graph():
    graph = RoomGraph()
    entry = _room(RoomCategory.REGULAR, 0, 0, is_entry=True)
    middle = _room(RoomCategory.WIDE, 1, 0)
    boss = _room(RoomCategory.REGULAR, 3, 0, is_boss=True)
    for room in (entry, middle, boss):
        graph.add_node(room)
    graph.entry = entry
    graph.boss = boss
    return graph, entry, middle, boss


def test_connectivity_reports_unreachable_boss():
    graph, entry, middle, boss = _corridor_graph()
    graph.connect(entry, middle, is_main_path=True)

    violations = check_connectivity(graph)

    assert violations == ["BOSS-REGULAR@(3,0) is unreachable from the entry"]
    graph.connect(middle, boss, is_main_path=True)
    assert check_connectivity(graph) == []


def test_overlap_is_reported():
    rooms = [_room(RoomCategory.LARGE, 0, 0), _room(RoomCategory.REGULAR, 1, 1)]

    assert len(check_no_overlap(rooms)) == 1


def test_slot_reused_by_hand_is_reported():
    graph, entry, middle, boss = _corridor_graph()
    middle.set_door_state(Direction.NORTH, 0, True, connected_room=boss)
    middle.door_states[Direction.NORTH].append(DoorState(Direction.NORTH, 0, True, connected_room=entry))

    assert check_door_slot_uniqueness(graph.nodes) != []


def test_one_sided_door_state_breaks_consistency():
    graph, entry, middle, boss = _corridor_graph()
    graph.connect(entry, middle)
    entry.set_door_state(Direction.NORTH, 0, True, connected_room=boss)

    assert check_bidirectional_consistency(graph) == ["3 open door states for 1 edges"]


def test_loop_density_bound():
    graph, entry, middle, boss = _corridor_graph()
    graph.connect(entry, middle, is_loop=True)

    assert check_loop_density(graph, 1) == []
    assert check_loop_density(graph, 0) != []


def test_renderer_draws_rooms_and_connectors():
    graph, entry, middle, boss = _corridor_graph()
    graph.connect(entry, middle, is_main_path=True)
    graph.connect(middle, boss, is_loop=True)
    renderer = MazeGridRenderer(4)

    renderer.draw(graph, show_doors=True)
    lines = renderer.render()

    assert lines[-2] == " EDwww*B"
    renderer.draw(graph)
    assert renderer.render()[-2] == " E.www.B"


def test_metrics_accumulate_stage_runs():
    metrics = GenerationMetrics()
    metrics.record_stage_run("placement", 0.5, 4, 0)
    metrics.record_stage_run("placement", 0.25, 2, 0)

    snapshot = metrics.snapshot()

    assert snapshot["placement"]["invocations"] == 2
    assert snapshot["placement"]["average_time"] == 0.375
    assert snapshot["placement"]["total_rooms_added"] == 6
    assert metrics.total_time == 0.75
    assert GenerationDiagnostics(rooms_skipped=2).to_dict()["rooms_skipped"] == 2
