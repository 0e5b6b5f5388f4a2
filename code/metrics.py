"""Stage timings and degradation counters collected while a maze is generated."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from time import perf_counter
from typing import Callable, Dict, Iterator, Optional, Tuple


@dataclass
class StageMetrics:
    name: str
    invocations: int = 0
    total_time: float = 0.0
    slowest: float = 0.0
    total_rooms_added: int = 0
    total_edges_added: int = 0

    @property
    def average_time(self) -> float:
        return self.total_time / self.invocations if self.invocations else 0.0

    def record(self, duration: float, rooms_delta: int, edges_delta: int) -> None:
        self.invocations += 1
        self.total_time += duration
        self.slowest = max(self.slowest, duration)
        self.total_rooms_added += rooms_delta
        self.total_edges_added += edges_delta

    def to_dict(self) -> Dict[str, float | int]:
        return {
            "invocations": self.invocations,
            "total_time": self.total_time,
            "average_time": self.average_time,
            "slowest": self.slowest,
            "total_rooms_added": self.total_rooms_added,
            "total_edges_added": self.total_edges_added,
        }


@dataclass
class GenerationMetrics:
    """Per-stage timings for one ``generate_maze`` call, fallback stages included."""

    stages: Dict[str, StageMetrics] = field(default_factory=dict)

    def record_stage_run(self, name: str, duration: float, rooms_delta: int, edges_delta: int) -> None:
        self.stages.setdefault(name, StageMetrics(name=name)).record(duration, rooms_delta, edges_delta)

    @contextmanager
    def timed(self, name: str, sizes: Callable[[], Tuple[int, int]]) -> Iterator[None]:
        """Time the body and record how many rooms and edges ``sizes`` grew by, even on failure."""
        rooms_before, edges_before = sizes()
        start = perf_counter()
        try:
            yield
        finally:
            duration = perf_counter() - start
            rooms_after, edges_after = sizes()
            self.record_stage_run(name, duration, rooms_after - rooms_before, edges_after - edges_before)

    @property
    def total_time(self) -> float:
        return sum(stage.total_time for stage in self.stages.values())

    def snapshot(self) -> Dict[str, Dict[str, float | int]]:
        return {name: stage.to_dict() for name, stage in self.stages.items()}


@dataclass
class GenerationDiagnostics:
    """Counters for everything the pipeline degraded on instead of failing."""

    rooms_skipped: int = 0
    connections_rejected: int = 0
    door_bindings_rejected: int = 0
    rooms_pruned: int = 0
    target_loop_count: int = 0
    loops_added: int = 0
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)
