from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Iterable, Optional, TypeVar

if TYPE_CHECKING:
    from grower_context import GrowerContext

logger = logging.getLogger(__name__)

C = TypeVar("C")
P = TypeVar("P")


@dataclass
class GrowerStepResult:
    """Outcome of trying to add one edge."""

    applied: bool
    stop: bool = False


@dataclass
class GrowerRunStats:
    """Per-run counts of what a grower looked at and what it kept."""

    candidates: int = 0
    unplanned: int = 0
    applied: int = 0
    rejected: int = 0


class CandidateFinder(Generic[C, P]):
    """Yields pairs of rooms worth connecting, given the current graph."""

    def find_candidates(self, context: GrowerContext) -> Iterable[C]:
        raise NotImplementedError

    def on_success(self, context: GrowerContext, candidate: C, plan: P) -> None:
        return None

    def on_failure(self, context: GrowerContext, candidate: C) -> None:
        """Called when a candidate gets no plan or its edge is rejected."""
        return None


class ConnectionPlanner(Generic[C, P]):
    """Decides whether a candidate still makes sense and how the edge is flagged."""

    def plan(self, context: GrowerContext, candidate: C) -> Optional[P]:
        raise NotImplementedError


class GrowerApplier(Generic[C, P]):
    """Writes a planned edge into the room graph."""

    def apply(self, context: GrowerContext, candidate: C, plan: P) -> GrowerStepResult:
        raise NotImplementedError

    def finalize(self, context: GrowerContext) -> int:
        """Run post passes; the return value is what the grower reports."""
        return 0


class MazeGrower(Generic[C, P]):
    """Drives finder, planner and applier until candidates run out or a step asks to stop."""

    def __init__(
        self,
        name: str,
        candidate_finder: CandidateFinder[C, P],
        connection_planner: ConnectionPlanner[C, P],
        applier: GrowerApplier[C, P],
    ) -> None:
        self.name = name
        self.candidate_finder = candidate_finder
        self.connection_planner = connection_planner
        self.applier = applier
        self.stats = GrowerRunStats()

    def run(self, context: GrowerContext) -> int:
        self.stats = GrowerRunStats()
        for candidate in self.candidate_finder.find_candidates(context):
            self.stats.candidates += 1
            plan = self.connection_planner.plan(context, candidate)
            if plan is None:
                self.stats.unplanned += 1
                self.candidate_finder.on_failure(context, candidate)
                continue

            step = self.applier.apply(context, candidate, plan)
            if step.applied:
                self.stats.applied += 1
                self.candidate_finder.on_success(context, candidate, plan)
            else:
                self.stats.rejected += 1
                self.candidate_finder.on_failure(context, candidate)
            if step.stop:
                break

        result = self.applier.finalize(context)
        logger.debug(
            "%s: %d candidates, %d applied, %d rejected, %d without plan",
            self.name,
            self.stats.candidates,
            self.stats.applied,
            self.stats.rejected,
            self.stats.unplanned,
        )
        return result
