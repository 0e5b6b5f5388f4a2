"""Grid placement of the main path, branches, and filler rooms."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from maze_config import MazeGenerationContext, MazeGenerationError
from maze_constants import (
    BASE_GRID_SIZE,
    BOSS_RING_MAX_DISTANCE,
    BRANCH_COUNT_RANGE,
    BRANCH_LENGTH_RANGE,
    BRANCH_SCALE_MAX,
    CELL_SIZE,
    COMPLEXITY_BASE,
    COMPLEXITY_MAX,
    FALLBACK_PATH_LENGTH,
    FILLER_REGULAR_PROBABILITY,
    GRID_SCALE_MAX,
    GRID_SCALE_MIN,
    LENGTH_SCALE_MAX,
    MAIN_PATH_LENGTH_RANGE,
    MAX_BRANCH_COUNT,
    MAX_BRANCH_LENGTH,
    MAX_GRID_SIZE,
    MIN_GRID_SIZE,
    PATH_JITTER_RANGE,
    TARGET_ROOM_COUNT_RANGE,
)
from maze_geometry import CARDINAL_DIRECTIONS, Rect, TilePos, WorldPos, inverse_lerp, lerp
from maze_models import RoomInstance, RoomLayout, RoomNode, RoomTemplate
from placement_grid import PlacementGrid
from room_category import RoomCategory

logger = logging.getLogger(__name__)


def grid_size_for_complexity(complexity: float) -> int:
    scale = lerp(GRID_SCALE_MIN, GRID_SCALE_MAX, (complexity - 0.5) / 1.5)
    return max(MIN_GRID_SIZE, min(MAX_GRID_SIZE, round(BASE_GRID_SIZE * scale)))


def branch_scale_for_complexity(complexity: float) -> float:
    return lerp(1.0, BRANCH_SCALE_MAX, inverse_lerp(COMPLEXITY_BASE, COMPLEXITY_MAX, complexity))


def length_scale_for_complexity(complexity: float) -> float:
    return lerp(1.0, LENGTH_SCALE_MAX, inverse_lerp(COMPLEXITY_BASE, COMPLEXITY_MAX, complexity))


def world_origin_for(origin: TilePos, grid_center: TilePos) -> WorldPos:
    """World position of a room's origin cell; grid ``y`` maps to world ``z``."""
    return WorldPos((origin.x - grid_center.x) * CELL_SIZE, 0.0, (origin.y - grid_center.y) * CELL_SIZE)


class GridPlacementService:
    """Places room footprints on a square grid and turns them into graph nodes."""

    def __init__(self, context: MazeGenerationContext) -> None:
        self.context = context
        self.rng = context.rng
        self.grid_size = grid_size_for_complexity(context.complexity_multiplier)
        center = self.grid_size // 2
        self.grid_center = TilePos(center, center)
        self.grid = PlacementGrid(self.grid_size)
        self.boss_template: Optional[RoomTemplate] = None
        self.main_path: List[RoomInstance] = []
        self.branch_paths: List[List[RoomInstance]] = []

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------
    def place_rooms(self) -> RoomLayout:
        """Place the full level: main path with boss, branches, then filler rooms."""
        self._reset()
        self.boss_template = self.rng.choice(self.context.config.boss_templates)
        self._generate_main_path()
        self._generate_branches()
        self._fill_with_additional_rooms()
        logger.debug(
            "Placed %d rooms on a %dx%d grid (main path %d, branches %d)",
            len(self.grid.rooms),
            self.grid_size,
            self.grid_size,
            len(self.main_path),
            len(self.branch_paths),
        )
        return self._build_layout()

    def place_fallback_rooms(self) -> RoomLayout:
        """Place an entry, a short straight Regular path towards the centre, and the boss."""
        self._reset()
        self.boss_template = self.rng.choice(self.context.config.boss_templates)
        entry = self._place_entry_room()
        current = entry
        for _ in range(FALLBACK_PATH_LENGTH):
            next_pos = self._closest_to_center_neighbour(current.origin)
            if next_pos is None:
                break
            room = self._create_room(next_pos, RoomCategory.REGULAR)
            if room is None:
                break
            self.main_path.append(room)
            current = room
        self._place_boss_room(current.origin)
        return self._build_layout()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _reset(self) -> None:
        self.grid.clear()
        self.main_path = []
        self.branch_paths = []

    def _place_entry_room(self) -> RoomInstance:
        entry = self._create_room(self._random_edge_position(), RoomCategory.REGULAR, is_entry=True)
        if entry is None:
            raise MazeGenerationError("Entry room could not be placed")
        self.main_path.append(entry)
        return entry

    def _generate_main_path(self) -> None:
        path_length = self.rng.randint(*MAIN_PATH_LENGTH_RANGE)
        current = self._place_entry_room()

        for _ in range(1, path_length - 1):
            next_pos = self._find_next_path_position(current.origin)
            if next_pos is None:
                self._note_skipped("main path ended early at %s", current.origin.to_tuple())
                break
            room = self._create_room(next_pos, self._random_pool_category())
            if room is None:
                self._note_skipped("main path step at %s does not fit", next_pos.to_tuple())
                continue
            self.main_path.append(room)
            current = room

        self._place_boss_room(current.origin)

    def _place_boss_room(self, last_path_pos: TilePos) -> None:
        assert self.boss_template is not None
        category = self.boss_template.category
        boss_pos = self._find_boss_position(last_path_pos, category)
        if boss_pos is None:
            raise MazeGenerationError(
                f"No position for {category.name} boss room near {last_path_pos.to_tuple()}"
            )
        boss = self._create_room(boss_pos, category, is_boss=True)
        if boss is None:
            raise MazeGenerationError(f"Boss room does not fit at {boss_pos.to_tuple()}")
        self.main_path.append(boss)

    def _generate_branches(self) -> None:
        complexity = self.context.complexity_multiplier
        base_count = self.rng.randint(*BRANCH_COUNT_RANGE)
        branch_count = max(1, min(MAX_BRANCH_COUNT, round(base_count * branch_scale_for_complexity(complexity))))

        for _ in range(branch_count):
            branch_points = [room for room in self.main_path if not room.is_entry and not room.is_boss]
            if not branch_points:
                continue
            start = self.rng.choice(branch_points)
            self._generate_branch_from(start)

    def _generate_branch_from(self, start: RoomInstance) -> None:
        complexity = self.context.complexity_multiplier
        base_length = self.rng.randint(*BRANCH_LENGTH_RANGE)
        branch_length = max(1, min(MAX_BRANCH_LENGTH, round(base_length * length_scale_for_complexity(complexity))))

        branch = [start]
        current = start
        for _ in range(branch_length):
            next_pos = self._find_next_branch_position(current.origin, start.origin)
            if next_pos is None:
                self._note_skipped("branch from %s ended early", start.origin.to_tuple())
                break
            room = self._create_room(next_pos, self._random_pool_category())
            if room is None:
                self._note_skipped("branch step at %s does not fit", next_pos.to_tuple())
                continue
            branch.append(room)
            current = room

        if len(branch) > 1:
            self.branch_paths.append(branch)

    def _fill_with_additional_rooms(self) -> None:
        target = self.rng.randint(*TARGET_ROOM_COUNT_RANGE)
        additional = target - len(self.grid.rooms)

        for _ in range(additional):
            if self.rng.random() < FILLER_REGULAR_PROBABILITY:
                category = RoomCategory.REGULAR
            else:
                category = self._random_pool_category()
            position = self._find_connectable_position(category)
            if position is None and category is not RoomCategory.REGULAR:
                category = RoomCategory.REGULAR
                position = self._find_connectable_position(category)
            if position is None:
                self._note_skipped("no connectable filler position left")
                continue
            self._create_room(position, category)

    # ------------------------------------------------------------------
    # Position search
    # ------------------------------------------------------------------
    def _free_single_cell_neighbours(self, pos: TilePos) -> List[TilePos]:
        candidates = []
        for direction in CARDINAL_DIRECTIONS:
            neighbour = pos.step(direction)
            if self.grid.is_area_clear(Rect(neighbour.x, neighbour.y, 1, 1)):
                candidates.append(neighbour)
        return candidates

    def _path_score(self, pos: TilePos) -> float:
        max_distance = TilePos(0, 0).distance_to(self.grid_center)
        normalized = 1.0 - pos.distance_to(self.grid_center) / max_distance
        return normalized * self.rng.uniform(*PATH_JITTER_RANGE)

    def _find_next_path_position(self, current: TilePos) -> Optional[TilePos]:
        candidates = self._free_single_cell_neighbours(current)
        if not candidates:
            return None
        best_pos = candidates[0]
        best_score = self._path_score(best_pos)
        for pos in candidates[1:]:
            score = self._path_score(pos)
            if score > best_score:
                best_pos, best_score = pos, score
        return best_pos

    def _find_next_branch_position(self, current: TilePos, branch_start: TilePos) -> Optional[TilePos]:
        candidates = self._free_single_cell_neighbours(current)
        if not candidates:
            return None
        best_pos = candidates[0]
        best_distance = best_pos.distance_to(branch_start)
        for pos in candidates[1:]:
            distance = pos.distance_to(branch_start)
            if distance > best_distance:
                best_pos, best_distance = pos, distance
        return best_pos

    def _closest_to_center_neighbour(self, current: TilePos) -> Optional[TilePos]:
        candidates = self._free_single_cell_neighbours(current)
        if not candidates:
            return None
        return min(candidates, key=lambda pos: pos.distance_to(self.grid_center))

    def _boss_fits(self, pos: TilePos, size: Tuple[int, int]) -> bool:
        bounds = Rect.from_origin(pos, size)
        return self.grid.is_area_clear(bounds) and self.grid.touches_occupied(bounds)

    def _find_boss_position(self, last_path_pos: TilePos, category: RoomCategory) -> Optional[TilePos]:
        """Search the four neighbours first, then diamond rings of growing radius."""
        size = category.footprint
        for direction in CARDINAL_DIRECTIONS:
            pos = last_path_pos.step(direction)
            if self._boss_fits(pos, size):
                return pos

        for distance in range(2, BOSS_RING_MAX_DISTANCE + 1):
            for dx in range(-distance, distance + 1):
                for dy in range(-distance, distance + 1):
                    if abs(dx) + abs(dy) != distance:
                        continue
                    pos = TilePos(last_path_pos.x + dx, last_path_pos.y + dy)
                    if self._boss_fits(pos, size):
                        return pos
        return None

    def _find_connectable_position(self, category: RoomCategory) -> Optional[TilePos]:
        width, height = category.footprint
        positions = []
        for x in range(1, self.grid_size - width):
            for y in range(1, self.grid_size - height):
                bounds = Rect(x, y, width, height)
                if self.grid.is_area_clear(bounds) and self.grid.touches_occupied(bounds):
                    positions.append(TilePos(x, y))
        if not positions:
            return None
        return self.rng.choice(positions)

    def _random_edge_position(self) -> TilePos:
        side = self.grid_size
        edge = self.rng.randrange(4)
        margin = max(2, side // 8)
        offset = self.rng.randrange(margin, side - margin)
        if edge == 0:
            return TilePos(offset, 1)
        if edge == 1:
            return TilePos(side - 2, offset)
        if edge == 2:
            return TilePos(offset, side - 2)
        return TilePos(1, offset)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _random_pool_category(self) -> RoomCategory:
        return self.rng.choice(self.context.config.pool_categories)

    def _create_room(
        self,
        pos: TilePos,
        category: RoomCategory,
        is_entry: bool = False,
        is_boss: bool = False,
    ) -> Optional[RoomInstance]:
        room = RoomInstance(category=category, origin=pos, is_entry=is_entry, is_boss=is_boss)
        if not self.grid.place(room):
            return None
        return room

    def _note_skipped(self, message: str, *args: object) -> None:
        self.context.diagnostics.rooms_skipped += 1
        logger.debug("Placement skipped: " + message, *args)

    def _select_template(self, room: RoomInstance) -> RoomTemplate:
        config = self.context.config
        if room.is_entry:
            return config.entry_template
        if room.is_boss:
            assert self.boss_template is not None
            return self.boss_template

        used = self.context.used_miniboss_templates
        regular = [template for template in config.room_templates if template.category is room.category]
        minibosses = [
            template
            for template in config.miniboss_templates
            if template.category is room.category and template.name not in used
        ]
        pool: Sequence[RoomTemplate] = regular + minibosses
        if not pool:
            raise MazeGenerationError(f"No room template for category {room.category.name}")
        chosen = self.rng.choice(pool)
        if chosen in minibosses:
            used.add(chosen.name)
        return chosen

    def _instance_name(self, room: RoomInstance) -> str:
        if room.is_entry:
            prefix = "EntryRoom"
        elif room.is_boss:
            prefix = "BossRoom"
        else:
            prefix = "RegularRoom"
        return f"{prefix}_{room.origin.x}_{room.origin.y}_{room.category.name}"

    def _build_layout(self) -> RoomLayout:
        """Convert placed instances into room nodes with instantiated geometry."""
        nodes: Dict[int, RoomNode] = {}
        for room in self.grid.rooms:
            template = self._select_template(room)
            world_origin = world_origin_for(room.origin, self.grid_center)
            scene_node = template.instantiate(self.context.parent, world_origin, self._instance_name(room))
            nodes[id(room)] = RoomNode(
                category=room.category,
                grid_position=room.origin,
                is_entry=room.is_entry,
                is_boss=room.is_boss,
                template=template,
                scene_node=scene_node,
                world_origin=world_origin,
            )

        rooms = [nodes[id(room)] for room in self.grid.rooms]
        entry = next((node for node in rooms if node.is_entry), None)
        boss = next((node for node in rooms if node.is_boss), None)
        return RoomLayout(
            rooms=rooms,
            entry_room=entry,
            boss_room=boss,
            grid_size=self.grid_size,
            grid_center=self.grid_center,
            main_path=[nodes[id(room)] for room in self.main_path],
            branch_paths=[[nodes[id(room)] for room in branch] for branch in self.branch_paths],
        )
