#!/usr/bin/env python3

# Runs the maze generator many times and reports timing, graph shape and validity.
# Results are printed and written as JSON under ../benchmarks/.

from __future__ import annotations

import argparse
from collections import Counter
import datetime
from dataclasses import dataclass, field
import json
import logging
import math
import os
import random
import statistics
import subprocess
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import networkx as nx

from maze_config import build_default_config
from maze_generator import MazeGenerator, MazeResult
from maze_validation import validate_maze

QUANTILES = (0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99)


@dataclass
class RunRecord:
    """Measurements taken from one generated maze."""

    seed: int
    seconds: float
    rooms: int
    edges: int
    loops: int
    target_loops: int
    cycle_lengths: List[int]
    diameter: int
    violations: List[str]
    used_fallback: bool
    diagnostics: Dict[str, Any]
    templates: Counter[str]
    stages: Dict[str, Dict[str, float | int]]

    @property
    def template_diversity(self) -> float:
        return 1.0 - gini(list(self.templates.values()))

    def to_json(self, run_id: int) -> Dict[str, Any]:
        return {
            "run_id": run_id,
            "seed": self.seed,
            "seconds": self.seconds,
            "rooms": self.rooms,
            "edges": self.edges,
            "loops": self.loops,
            "target_loops": self.target_loops,
            "cycles": len(self.cycle_lengths),
            "diameter": self.diameter,
            "template_diversity": self.template_diversity,
            "used_fallback": self.used_fallback,
            "violations": self.violations,
            "diagnostics": self.diagnostics,
            "stage_seconds": {name: stage["total_time"] for name, stage in sorted(self.stages.items())},
        }


def gini(counts: List[int]) -> float:
    """Mean absolute difference form; 0 when every template is used equally often."""
    values = [count for count in counts if count > 0]
    if len(values) < 2:
        return 0.0
    mean = statistics.fmean(values)
    spread = sum(abs(a - b) for a in values for b in values)
    return spread / (2 * len(values) ** 2 * mean)


def quantile(values: List[float], q: float) -> float:
    ordered = sorted(values)
    if not ordered:
        return math.nan
    position = (len(ordered) - 1) * q
    low = math.floor(position)
    high = min(low + 1, len(ordered) - 1)
    return ordered[low] + (ordered[high] - ordered[low]) * (position - low)


@dataclass
class MetricSeries:
    key: str
    label: str
    values: List[float] = field(default_factory=list)
    fmt: Callable[[float], str] = lambda value: f"{value:.2f}"

    def summary(self) -> Dict[str, Any]:
        if not self.values:
            return {"count": 0}
        return {
            "count": len(self.values),
            "mean": statistics.fmean(self.values),
            "stdev": statistics.stdev(self.values) if len(self.values) > 1 else None,
            "min": min(self.values),
            "max": max(self.values),
            "quantiles": {f"q{round(q * 100):02d}": quantile(self.values, q) for q in QUANTILES},
        }

    def describe(self) -> List[str]:
        if not self.values:
            return [f"{self.label}: no data"]
        stats = self.summary()
        head = f"{self.label}: mean {self.fmt(stats['mean'])}, min {self.fmt(stats['min'])}, max {self.fmt(stats['max'])}"
        if stats["stdev"] is not None:
            head += f", stdev {self.fmt(stats['stdev'])}"
        tail = "  " + " ".join(f"{name}={self.fmt(value)}" for name, value in stats["quantiles"].items())
        return [head, tail]


def git_commit() -> Optional[str]:
    try:
        return subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL, text=True).strip()
    except (subprocess.CalledProcessError, OSError):
        return None


def graph_shape(result: MazeResult) -> Tuple[List[int], int]:
    """Cycle basis lengths and diameter of the room graph (largest component)."""
    graph = result.graph.to_networkx()
    cycles = [len(cycle) for cycle in nx.cycle_basis(graph)]
    if graph.number_of_nodes() < 2:
        return cycles, 0
    component = graph.subgraph(max(nx.connected_components(graph), key=len))
    return cycles, int(nx.diameter(component))


def measure(seed: int, level: int) -> RunRecord:
    config = build_default_config(circle_level=level, random_seed=seed, collect_metrics=True)
    start = time.perf_counter()
    result = MazeGenerator().generate_maze(config)
    seconds = time.perf_counter() - start

    cycles, diameter = graph_shape(result)
    return RunRecord(
        seed=seed,
        seconds=seconds,
        rooms=len(result.graph.nodes),
        edges=len(result.graph.edges),
        loops=len(result.graph.loop_edges),
        target_loops=result.diagnostics.target_loop_count,
        cycle_lengths=cycles,
        diameter=diameter,
        violations=validate_maze(result),
        used_fallback=result.used_fallback,
        diagnostics=result.diagnostics.to_dict(),
        templates=Counter(room.template.name for room in result.graph.nodes if room.template is not None),
        stages=result.metrics.snapshot() if result.metrics is not None else {},
    )


def run_benchmark(runs: int, seed: Optional[int], level: int) -> List[RunRecord]:
    """Per-run seeds come from one harness RNG so ``--seed`` reproduces the whole batch."""
    harness = random.Random(seed)
    return [measure(harness.randint(0, 1_000_000), level) for _ in range(runs)]


def stage_totals(records: List[RunRecord]) -> Dict[str, Dict[str, float]]:
    totals: Dict[str, Dict[str, float]] = {}
    for record in records:
        for name, stage in record.stages.items():
            total = totals.setdefault(name, {"invocations": 0, "total_time": 0.0})
            total["invocations"] += stage["invocations"]
            total["total_time"] += stage["total_time"]
    for total in totals.values():
        total["average_time"] = total["total_time"] / total["invocations"] if total["invocations"] else 0.0
    return totals


def ms(value: float) -> str:
    return f"{value * 1000:.2f}ms"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark maze generation speed and layout quality.")
    parser.add_argument("-n", "--runs", type=int, default=20, help="Number of mazes to generate (default: 20)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the harness RNG that picks run seeds")
    parser.add_argument("--level", type=int, default=0, help="Circle level for every run (default: 0)")
    args = parser.parse_args()
    if args.runs <= 0:
        parser.error("--runs must be positive")
    if args.level < 0:
        parser.error("--level cannot be negative")
    return args


def main() -> None:
    args = parse_args()
    # Fallbacks log at error level; everything quieter is noise here.
    logging.basicConfig(level=logging.ERROR, format="%(levelname)s %(name)s: %(message)s")

    records = run_benchmark(args.runs, args.seed, args.level)

    for run_id, record in enumerate(records, start=1):
        flags = []
        if record.used_fallback:
            flags.append("fallback")
        if record.violations:
            flags.append(f"{len(record.violations)} violations")
        print(
            f"#{run_id:03d} seed={record.seed:<7d} {ms(record.seconds):>9} rooms={record.rooms:<3d} "
            f"edges={record.edges:<3d} loops={record.loops}/{record.target_loops} "
            f"cycles={len(record.cycle_lengths)} diameter={record.diameter} {' '.join(flags)}".rstrip()
        )
        for violation in record.violations:
            print(f"      {violation}")

    series = [
        MetricSeries("seconds", "Generation time", [r.seconds for r in records], ms),
        MetricSeries("rooms", "Rooms", [float(r.rooms) for r in records], lambda v: f"{v:.1f}"),
        MetricSeries("edges", "Edges", [float(r.edges) for r in records], lambda v: f"{v:.1f}"),
        MetricSeries("loops", "Loop edges", [float(r.loops) for r in records], lambda v: f"{v:.1f}"),
        MetricSeries("cycles", "Independent cycles", [float(len(r.cycle_lengths)) for r in records]),
        MetricSeries("cycle_length", "Cycle length", [float(n) for r in records for n in r.cycle_lengths]),
        MetricSeries("diameter", "Graph diameter", [float(r.diameter) for r in records], lambda v: f"{v:.1f}"),
        MetricSeries("template_diversity", "Template diversity (1 - Gini)", [r.template_diversity for r in records]),
    ]

    print()
    slowest = max(records, key=lambda r: r.seconds)
    fallbacks = sum(r.used_fallback for r in records)
    invalid = sum(bool(r.violations) for r in records)
    print(f"{len(records)} runs at level {args.level}; slowest {ms(slowest.seconds)} (seed {slowest.seed})")
    print(f"Fallback layouts: {fallbacks}, runs with violations: {invalid}")
    for metric in series:
        for line in metric.describe():
            print(line)

    templates: Counter[str] = Counter()
    for record in records:
        templates.update(record.templates)
    placed = sum(templates.values())
    if placed:
        print("Templates:")
        for name, count in templates.most_common():
            print(f"  {name:<16} {count:>5}  {count / placed:.1%}")

    stages = stage_totals(records)
    if stages:
        print("Stages (by total time):")
        for name, total in sorted(stages.items(), key=lambda item: -item[1]["total_time"]):
            print(f"  {name:<18} total {ms(total['total_time']):>10}  avg {ms(total['average_time']):>9}")

    now = datetime.datetime.now(datetime.timezone.utc)
    report = {
        "run_info": {
            "timestamp": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "git_commit": git_commit(),
            "runs": args.runs,
            "seed": args.seed,
            "level": args.level,
        },
        "summary": {metric.key: metric.summary() for metric in series},
        "fallback_runs": fallbacks,
        "runs_with_violations": invalid,
        "stages": stages,
        "templates": dict(templates),
        "runs": [record.to_json(run_id) for run_id, record in enumerate(records, start=1)],
    }

    out_dir = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "benchmarks"))
    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, f"benchmark-{now.strftime('%Y%m%dT%H%M%SZ')}.json")
    with open(out_path, "w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, sort_keys=True)
        handle.write("\n")
    print(f"\nSaved benchmark results to {os.path.relpath(out_path)}")


if __name__ == "__main__":
    main()
