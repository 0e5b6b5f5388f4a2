"""Loop injection grower that adds extra edges between adjacent rooms."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from grower_context import GrowerContext
from growers.base import (
    CandidateFinder,
    ConnectionPlanner,
    GrowerApplier,
    GrowerStepResult,
    MazeGrower,
)
from maze_constants import (
    BASE_LOOP_DENSITY,
    LOOP_ACCEPT_PROBABILITY,
    LOOP_DENSITY_PER_COMPLEXITY,
    MAX_LOOP_DENSITY,
    MIN_LOOP_DENSITY,
)
from maze_models import RoomNode

logger = logging.getLogger(__name__)


def loop_density_for_complexity(complexity: float) -> float:
    density = BASE_LOOP_DENSITY + (complexity - 1.0) * LOOP_DENSITY_PER_COMPLEXITY
    return max(MIN_LOOP_DENSITY, min(MAX_LOOP_DENSITY, density))


def target_loop_count(edge_count: int, complexity: float) -> int:
    # Half-up rounding of the fractional loop count.
    return int(math.floor(edge_count * loop_density_for_complexity(complexity) + 0.5))


@dataclass(frozen=True)
class LoopCandidate:
    room_a: RoomNode
    room_b: RoomNode
    weight: float


@dataclass(frozen=True)
class LoopPlan:
    weight: float


class LoopInjectionHelper:
    def __init__(self, context: GrowerContext) -> None:
        self.context = context
        self.graph = context.graph
        self.rng = context.rng
        self.target = target_loop_count(len(self.graph.edges), context.complexity_multiplier)
        self.loops_added = 0
        context.diagnostics.target_loop_count = self.target

    def potential_edges(self) -> List[LoopCandidate]:
        """Adjacent pairs without an edge, shortest first."""
        candidates = [
            LoopCandidate(room_a, room_b, room_a.grid_position.distance_to(room_b.grid_position))
            for room_a, room_b in self.context.adjacent_pairs()
            if not self.graph.has_edge(room_a, room_b)
        ]
        candidates.sort(key=lambda candidate: candidate.weight)
        return candidates

    def iter_candidates(self) -> Iterator[LoopCandidate]:
        if self.target <= 0:
            return
        for candidate in self.potential_edges():
            if self.loops_added >= self.target:
                return
            if self.rng.random() >= LOOP_ACCEPT_PROBABILITY:
                continue
            yield candidate

    def plan(self, candidate: LoopCandidate) -> Optional[LoopPlan]:
        if self.graph.has_edge(candidate.room_a, candidate.room_b):
            return None
        return LoopPlan(weight=candidate.weight)

    def apply(self, candidate: LoopCandidate) -> GrowerStepResult:
        connection = self.context.connect(candidate.room_a, candidate.room_b, is_loop=True)
        if connection is None:
            return GrowerStepResult(applied=False)
        self.loops_added += 1
        return GrowerStepResult(applied=True, stop=self.loops_added >= self.target)

    def finalize(self) -> int:
        self.context.diagnostics.loops_added = self.loops_added
        logger.debug("Loop injection: added %d of %d target loops", self.loops_added, self.target)
        return self.loops_added


class LoopCandidateFinder(CandidateFinder[LoopCandidate, LoopPlan]):
    def __init__(self, helper: LoopInjectionHelper) -> None:
        self.helper = helper

    def find_candidates(self, context: GrowerContext) -> Iterable[LoopCandidate]:
        return self.helper.iter_candidates()


class LoopPlanner(ConnectionPlanner[LoopCandidate, LoopPlan]):
    def __init__(self, helper: LoopInjectionHelper) -> None:
        self.helper = helper

    def plan(self, context: GrowerContext, candidate: LoopCandidate) -> Optional[LoopPlan]:
        return self.helper.plan(candidate)


class LoopApplier(GrowerApplier[LoopCandidate, LoopPlan]):
    def __init__(self, helper: LoopInjectionHelper) -> None:
        self.helper = helper

    def apply(self, context: GrowerContext, candidate: LoopCandidate, plan: LoopPlan) -> GrowerStepResult:
        return self.helper.apply(candidate)

    def finalize(self, context: GrowerContext) -> int:
        return self.helper.finalize()


def run_loop_injection_grower(context: GrowerContext) -> int:
    """Add up to the density-derived number of loop edges; returns the count added."""

    helper = LoopInjectionHelper(context)
    grower = MazeGrower(
        name="loop_injection",
        candidate_finder=LoopCandidateFinder(helper),
        connection_planner=LoopPlanner(helper),
        applier=LoopApplier(helper),
    )
    return grower.run(context)
