import networkx as nx
import pytest

from growers import run_growing_tree_grower, run_loop_injection_grower
from growers.loop_injection import loop_density_for_complexity, target_loop_count
from maze_config import MazeGenerationError
from maze_validation import check_bidirectional_consistency, check_connectivity
from room_category import RoomCategory


def _block_of_rooms(make_room, size: int):
    rooms = []
    for y in range(size):
        for x in range(size):
            rooms.append(
                make_room(
                    RoomCategory.REGULAR,
                    x,
                    y,
                    is_entry=(x, y) == (0, 0),
                    is_boss=(x, y) == (size - 1, size - 1),
                )
            )
    return rooms


@pytest.mark.parametrize("seed", range(5))
def test_growing_tree_spans_every_room(make_room, make_grower_context, seed):
    context = make_grower_context(_block_of_rooms(make_room, 4), seed=seed)

    created = run_growing_tree_grower(context)

    graph = context.graph
    assert created == 15
    assert len(graph.edges) == 15
    assert nx.is_tree(graph.to_networkx())
    assert check_connectivity(graph) == []
    assert check_bidirectional_consistency(graph) == []
    assert all(edge.is_main_path and not edge.is_loop for edge in graph.edges)


def test_growing_tree_handles_mixed_categories(make_room, make_grower_context):
    rooms = [
        make_room(RoomCategory.REGULAR, 0, 1, is_entry=True),
        make_room(RoomCategory.WIDE, 1, 1),
        make_room(RoomCategory.LARGE, 1, 2),
        make_room(RoomCategory.TALL, 3, 1),
        make_room(RoomCategory.REGULAR, 2, 0),
        make_room(RoomCategory.WIDE, 3, 3, is_boss=True),
    ]
    context = make_grower_context(rooms, seed=7)

    run_growing_tree_grower(context)

    assert check_connectivity(context.graph) == []
    assert check_bidirectional_consistency(context.graph) == []
    assert len(context.graph.edges) == len(rooms) - 1


def test_growing_tree_prunes_unreachable_rooms(make_room, make_grower_context):
    entry = make_room(RoomCategory.REGULAR, 0, 0, is_entry=True)
    boss = make_room(RoomCategory.REGULAR, 1, 0, is_boss=True)
    island = make_room(RoomCategory.REGULAR, 5, 5)
    context = make_grower_context([entry, boss, island])

    run_growing_tree_grower(context)

    assert context.graph.nodes == [entry, boss]
    assert island not in context.layout.rooms
    assert island.scene_node.parent is None
    assert context.diagnostics.rooms_pruned == 1


def test_growing_tree_raises_when_boss_is_unreachable(make_room, make_grower_context):
    entry = make_room(RoomCategory.REGULAR, 0, 0, is_entry=True)
    room = make_room(RoomCategory.REGULAR, 1, 0)
    boss = make_room(RoomCategory.LARGE, 6, 6, is_boss=True)
    context = make_grower_context([entry, room, boss])

    with pytest.raises(MazeGenerationError):
        run_growing_tree_grower(context)


def test_growing_tree_requires_entry(make_room, make_grower_context):
    context = make_grower_context([make_room(RoomCategory.REGULAR, 0, 0)])

    with pytest.raises(MazeGenerationError):
        run_growing_tree_grower(context)


def test_rejected_connection_is_counted_and_remembered(make_room, make_grower_context):
    a = make_room(RoomCategory.REGULAR, 0, 0, is_entry=True)
    b = make_room(RoomCategory.REGULAR, 3, 0, is_boss=True)
    context = make_grower_context([a, b])

    assert context.connect(a, b) is None
    assert context.is_rejected(b, a)
    assert context.diagnostics.connections_rejected == 1


@pytest.mark.parametrize(
    "complexity,expected",
    [(1.0, 0.12), (2.0, 0.17), (3.0, 0.20), (0.0, 0.08)],
)
def test_loop_density_is_clamped(complexity, expected):
    assert loop_density_for_complexity(complexity) == pytest.approx(expected)


@pytest.mark.parametrize(
    "edges,complexity,expected",
    [(15, 1.0, 2), (10, 1.0, 1), (3, 1.0, 0), (0, 1.6, 0), (20, 3.0, 4)],
)
def test_target_loop_count_rounds_half_up(edges, complexity, expected):
    assert target_loop_count(edges, complexity) == expected


@pytest.mark.parametrize("seed", range(8))
def test_loop_injection_respects_target(make_room, make_grower_context, seed):
    context = make_grower_context(_block_of_rooms(make_room, 4), seed=seed)
    run_growing_tree_grower(context)

    added = run_loop_injection_grower(context)

    graph = context.graph
    target = context.diagnostics.target_loop_count
    assert target == 2
    assert added == len(graph.loop_edges) == context.diagnostics.loops_added
    assert added <= target
    assert len(graph.edges) == 15 + added
    assert all(edge.is_loop and not edge.is_main_path for edge in graph.loop_edges)
    assert check_bidirectional_consistency(graph) == []


def test_loop_injection_adds_nothing_when_target_is_zero(make_room, make_grower_context):
    rooms = _block_of_rooms(make_room, 2)
    context = make_grower_context(rooms)
    run_growing_tree_grower(context)

    assert run_loop_injection_grower(context) == 0
    assert context.diagnostics.target_loop_count == 0
    assert len(context.graph.edges) == 3
