"""MazeGenerator orchestrates placement, connectivity, loops and door binding."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from door_manager import DoorBinding, DoorHole, DoorManager
from grower_context import GrowerContext
from growers import run_growing_tree_grower, run_loop_injection_grower
from maze_config import (
    MazeConfig,
    MazeGenerationContext,
    MazeGenerationError,
    complexity_multiplier_for_level,
)
from maze_models import RoomGraph, RoomLayout, RoomNode
from metrics import GenerationDiagnostics, GenerationMetrics
from room_graph_builder import build_graph
from room_placement import GridPlacementService
from scene_graph import SceneNode

logger = logging.getLogger(__name__)

__all__ = ["MazeGenerator", "MazeResult", "complexity_multiplier_for_level"]


@dataclass
class MazeResult:
    """Everything a finished generation run hands to the rest of the game."""

    layout: RoomLayout
    graph: RoomGraph
    door_bindings: List[DoorBinding]
    door_manager: DoorManager
    diagnostics: GenerationDiagnostics
    metrics: Optional[GenerationMetrics]
    seed: int
    used_fallback: bool = False

    @property
    def entry_room(self) -> Optional[RoomNode]:
        return self.graph.entry

    @property
    def boss_room(self) -> Optional[RoomNode]:
        return self.graph.boss

    def connected_doors(self, room: RoomNode) -> List[DoorHole]:
        return self.door_manager.connected_doors(room)


class MazeGenerator:
    """Manages the overall process of generating a maze level."""

    def __init__(self) -> None:
        self._listeners: List[Callable[[MazeResult], None]] = []
        self._layout: Optional[RoomLayout] = None
        self._graph: Optional[RoomGraph] = None

    def on_generation_complete(self, callback: Callable[[MazeResult], None]) -> Callable[[MazeResult], None]:
        """Register ``callback`` to receive every finished result; usable as a decorator."""
        self._listeners.append(callback)
        return callback

    def generate_maze(self, config: MazeConfig, parent: Optional[SceneNode] = None) -> MazeResult:
        """Generate a full level under ``parent``, falling back to a minimal layout on failure."""
        seed = config.random_seed
        if seed is None:
            # Log a fresh seed so the run can be reproduced by setting it in MazeConfig.
            seed = random.randint(0, 1000000)
            logger.info("Using random seed %d", seed)
        if parent is None:
            parent = SceneNode(name="MazeRoot")

        context = MazeGenerationContext.create(config, parent, seed)
        existing_children = list(parent.children)
        try:
            result = self._run_pipeline(context)
        except Exception as exc:
            logger.exception("Maze generation failed for seed %d; building fallback layout", seed)
            self._discard_geometry(parent, existing_children)
            result = self._run_fallback(context, str(exc) or type(exc).__name__)

        for listener in self._listeners:
            listener(result)
        return result

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _run_stage(self, context: MazeGenerationContext, name: str, func: Callable[..., Any], *args) -> Any:
        if context.metrics is None:
            return func(*args)
        with context.metrics.timed(name, self._sizes):
            return func(*args)

    def _sizes(self) -> Tuple[int, int]:
        rooms = len(self._layout.rooms) if self._layout is not None else 0
        edges = len(self._graph.edges) if self._graph is not None else 0
        return rooms, edges

    def _run_pipeline(self, context: MazeGenerationContext) -> MazeResult:
        self._layout = None
        self._graph = None
        placement = GridPlacementService(context)
        self._layout = self._run_stage(context, "placement", placement.place_rooms)
        return self._connect_and_bind(context, self._layout, with_loops=True)

    def _run_fallback(self, context: MazeGenerationContext, reason: str) -> MazeResult:
        context.diagnostics = GenerationDiagnostics(fallback_reason=reason)
        context.used_miniboss_templates.clear()
        self._layout = None
        self._graph = None
        try:
            placement = GridPlacementService(context)
            self._layout = self._run_stage(context, "fallback_placement", placement.place_fallback_rooms)
            result = self._connect_and_bind(context, self._layout, with_loops=False)
        except MazeGenerationError:
            raise
        except Exception as exc:
            raise MazeGenerationError(f"Fallback layout failed: {exc}") from exc
        result.used_fallback = True
        logger.warning("Generated fallback layout with %d rooms (%s)", len(result.graph.nodes), reason)
        return result

    def _connect_and_bind(self, context: MazeGenerationContext, layout: RoomLayout, with_loops: bool) -> MazeResult:
        self._graph = self._run_stage(context, "graph", build_graph, layout)
        grower_context = GrowerContext(generation=context, layout=layout, graph=self._graph)
        self._run_stage(context, "growing_tree", run_growing_tree_grower, grower_context)
        if with_loops:
            self._run_stage(context, "loop_injection", run_loop_injection_grower, grower_context)

        door_manager = DoorManager(context.diagnostics)
        bindings = self._run_stage(context, "door_binding", door_manager.apply_door_states, self._graph)
        logger.info(
            "Generated maze: %d rooms, %d edges (%d loops), seed %d",
            len(self._graph.nodes),
            len(self._graph.edges),
            len(self._graph.loop_edges),
            context.seed,
        )
        return MazeResult(
            layout=layout,
            graph=self._graph,
            door_bindings=bindings,
            door_manager=door_manager,
            diagnostics=context.diagnostics,
            metrics=context.metrics,
            seed=context.seed,
        )

    @staticmethod
    def _discard_geometry(parent: SceneNode, keep: List[SceneNode]) -> None:
        for child in list(parent.children):
            if not any(child is kept for kept in keep):
                child.detach()
