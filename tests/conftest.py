import random
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
CODE_DIR = ROOT_DIR / "code"
if str(CODE_DIR) not in sys.path:
    sys.path.insert(0, str(CODE_DIR))

from grower_context import GrowerContext
from maze_config import MazeConfig, MazeGenerationContext, build_default_config
from maze_geometry import TilePos
from maze_models import RoomGraph, RoomLayout, RoomNode, build_default_template
from room_category import RoomCategory
from room_placement import world_origin_for
from scene_graph import SceneNode


@pytest.fixture
def default_config() -> MazeConfig:
    return build_default_config(circle_level=0, random_seed=1234)


@pytest.fixture
def parent_node() -> SceneNode:
    return SceneNode(name="LevelRoot")


@pytest.fixture
def make_room(parent_node: SceneNode) -> Callable[..., RoomNode]:
    """Build a room node with instantiated default geometry under ``parent_node``."""

    def _make_room(
        category: RoomCategory,
        x: int,
        y: int,
        *,
        is_entry: bool = False,
        is_boss: bool = False,
        grid_center: TilePos = TilePos(0, 0),
    ) -> RoomNode:
        template = build_default_template(f"Test_{category.label}", category)
        origin = TilePos(x, y)
        world_origin = world_origin_for(origin, grid_center)
        scene_node = template.instantiate(parent_node, world_origin, f"Room_{x}_{y}")
        return RoomNode(
            category=category,
            grid_position=origin,
            is_entry=is_entry,
            is_boss=is_boss,
            template=template,
            scene_node=scene_node,
            world_origin=world_origin,
        )

    return _make_room


@pytest.fixture
def make_grower_context(
    default_config: MazeConfig, parent_node: SceneNode
) -> Callable[..., GrowerContext]:
    """Wrap hand-placed rooms in a graph and grower context; first entry/boss flags win."""

    def _make_grower_context(rooms: list[RoomNode], seed: int = 0, grid_size: int = 12) -> GrowerContext:
        generation = MazeGenerationContext(
            config=default_config,
            parent=parent_node,
            rng=random.Random(seed),
            seed=seed,
            complexity_multiplier=default_config.effective_complexity,
            circle_level=default_config.circle_level,
        )
        entry: Optional[RoomNode] = next((room for room in rooms if room.is_entry), None)
        boss: Optional[RoomNode] = next((room for room in rooms if room.is_boss), None)
        layout = RoomLayout(
            rooms=list(rooms),
            entry_room=entry,
            boss_room=boss,
            grid_size=grid_size,
            grid_center=TilePos(grid_size // 2, grid_size // 2),
            main_path=[room for room in rooms if room.is_entry or room.is_boss],
        )
        graph = RoomGraph()
        for room in rooms:
            graph.add_node(room)
        graph.entry = entry
        graph.boss = boss
        return GrowerContext(generation=generation, layout=layout, graph=graph)

    return _make_grower_context
