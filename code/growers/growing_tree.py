"""Growing-tree grower that connects every placed room into a spanning tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set

from grower_context import GrowerContext
from growers.base import (
    CandidateFinder,
    ConnectionPlanner,
    GrowerApplier,
    GrowerStepResult,
    MazeGrower,
)
from maze_config import MazeGenerationError
from maze_constants import NEWEST_ROOM_PROBABILITY
from maze_models import RoomNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrowingTreeCandidate:
    """An active room and the unvisited neighbour chosen to extend it."""

    room: RoomNode
    neighbour: RoomNode


@dataclass(frozen=True)
class GrowingTreePlan:
    is_main_path: bool


class GrowingTreeHelper:
    """Visited set, active list and main-path membership for one tree growth."""

    def __init__(self, context: GrowerContext) -> None:
        self.context = context
        self.graph = context.graph
        self.rng = context.rng
        if self.graph.entry is None:
            raise MazeGenerationError("Room graph has no entry room")
        self.entry: RoomNode = self.graph.entry
        self.visited: Set[RoomNode] = set()
        self.active: List[RoomNode] = []
        self.main_path_rooms: Set[RoomNode] = set()
        self.edges_created = 0

    def initialize(self) -> None:
        self.graph.clear_edges()
        self.context.rejected_pairs.clear()
        self.visited = {self.entry}
        self.active = [self.entry]
        self.main_path_rooms = {self.entry}
        self.edges_created = 0

    # ------------------------------------------------------------------
    # Tree growth
    # ------------------------------------------------------------------
    def iter_candidates(self) -> Iterator[GrowingTreeCandidate]:
        while self.active:
            current = self._pick_active_room()
            neighbours = self._unvisited_neighbours(current)
            if not neighbours:
                self.active.remove(current)
                continue
            yield GrowingTreeCandidate(room=current, neighbour=self.rng.choice(neighbours))

    def _pick_active_room(self) -> RoomNode:
        if self.rng.random() < NEWEST_ROOM_PROBABILITY:
            return self.active[-1]
        return self.rng.choice(self.active)

    def _unvisited_neighbours(self, room: RoomNode) -> List[RoomNode]:
        return [
            other
            for other in self.context.adjacent_rooms(room)
            if other not in self.visited and not self.context.is_rejected(room, other)
        ]

    def plan(self, candidate: GrowingTreeCandidate) -> Optional[GrowingTreePlan]:
        if self.context.is_rejected(candidate.room, candidate.neighbour):
            return None
        return GrowingTreePlan(is_main_path=candidate.room in self.main_path_rooms)

    def apply(self, candidate: GrowingTreeCandidate, plan: GrowingTreePlan) -> GrowerStepResult:
        connection = self.context.connect(candidate.room, candidate.neighbour, is_main_path=plan.is_main_path)
        return GrowerStepResult(applied=connection is not None)

    def mark_connected(self, candidate: GrowingTreeCandidate, plan: GrowingTreePlan) -> None:
        self.edges_created += 1
        self.visited.add(candidate.neighbour)
        self.active.append(candidate.neighbour)
        if plan.is_main_path:
            self.main_path_rooms.add(candidate.neighbour)

    # ------------------------------------------------------------------
    # Post passes
    # ------------------------------------------------------------------
    def finalize(self) -> int:
        self.ensure_boss_connectivity()
        self.ensure_full_connectivity()
        self.prune_unreachable_rooms()
        logger.debug(
            "Growing tree: %d edges, %d rooms reachable",
            self.edges_created,
            len(self.visited),
        )
        return self.edges_created

    def ensure_boss_connectivity(self) -> None:
        boss = self.graph.boss
        if boss is None:
            raise MazeGenerationError("Room graph has no boss room")
        if boss in self.visited:
            return

        adjacent_visited = [room for room in self.context.adjacent_rooms(boss) if room in self.visited]
        # Main-path rooms first; sorted() is stable so graph order is kept within each group.
        adjacent_visited = sorted(adjacent_visited, key=lambda room: 0 if room in self.main_path_rooms else 1)
        for room in adjacent_visited:
            if self.context.is_rejected(room, boss):
                continue
            if self.context.connect(room, boss, is_main_path=True) is not None:
                self.edges_created += 1
                self.visited.add(boss)
                self.main_path_rooms.add(boss)
                return
        logger.warning("Boss room %s has no connectable visited neighbour yet", boss.identifier)

    def ensure_full_connectivity(self) -> None:
        """Attach unvisited rooms to visited neighbours until nothing more can be attached."""
        progress = True
        while progress:
            progress = False
            for room in list(self.graph.nodes):
                if room in self.visited:
                    continue
                for neighbour in self.context.adjacent_rooms(room):
                    if neighbour not in self.visited or self.context.is_rejected(neighbour, room):
                        continue
                    is_main_path = room is self.graph.boss
                    if self.context.connect(neighbour, room, is_main_path=is_main_path) is not None:
                        self.edges_created += 1
                        self.visited.add(room)
                        progress = True
                        break

    def prune_unreachable_rooms(self) -> None:
        unreachable = [room for room in self.graph.nodes if room not in self.visited]
        if self.graph.boss in unreachable:
            raise MazeGenerationError(f"Boss room {self.graph.boss.identifier} is unreachable")  # type: ignore[union-attr]
        for room in unreachable:
            self.context.prune_room(room)


class GrowingTreeCandidateFinder(CandidateFinder[GrowingTreeCandidate, GrowingTreePlan]):
    def __init__(self, helper: GrowingTreeHelper) -> None:
        self.helper = helper

    def find_candidates(self, context: GrowerContext) -> Iterable[GrowingTreeCandidate]:
        return self.helper.iter_candidates()

    def on_success(self, context: GrowerContext, candidate: GrowingTreeCandidate, plan: GrowingTreePlan) -> None:
        self.helper.mark_connected(candidate, plan)


class GrowingTreePlanner(ConnectionPlanner[GrowingTreeCandidate, GrowingTreePlan]):
    def __init__(self, helper: GrowingTreeHelper) -> None:
        self.helper = helper

    def plan(self, context: GrowerContext, candidate: GrowingTreeCandidate) -> Optional[GrowingTreePlan]:
        return self.helper.plan(candidate)


class GrowingTreeApplier(GrowerApplier[GrowingTreeCandidate, GrowingTreePlan]):
    def __init__(self, helper: GrowingTreeHelper) -> None:
        self.helper = helper

    def apply(
        self,
        context: GrowerContext,
        candidate: GrowingTreeCandidate,
        plan: GrowingTreePlan,
    ) -> GrowerStepResult:
        return self.helper.apply(candidate, plan)

    def finalize(self, context: GrowerContext) -> int:
        return self.helper.finalize()


def run_growing_tree_grower(context: GrowerContext) -> int:
    """Clear existing edges and grow a spanning tree rooted at the entry room."""

    helper = GrowingTreeHelper(context)
    helper.initialize()

    grower = MazeGrower(
        name="growing_tree",
        candidate_finder=GrowingTreeCandidateFinder(helper),
        connection_planner=GrowingTreePlanner(helper),
        applier=GrowingTreeApplier(helper),
    )
    return grower.run(context)
