"""Context object providing shared state and helper utilities for maze grower implementations."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from adjacency_validator import are_rooms_adjacent, validate_connection
from maze_config import MazeConfig, MazeGenerationContext
from maze_models import RoomConnection, RoomGraph, RoomLayout, RoomNode
from metrics import GenerationDiagnostics

logger = logging.getLogger(__name__)


@dataclass
class GrowerContext:
    """Encapsulates shared state and helpers for grower implementations."""

    generation: MazeGenerationContext
    layout: RoomLayout
    graph: RoomGraph
    rejected_pairs: Set[FrozenSet[int]] = field(default_factory=set)
    _adjacency: Optional[Dict[int, List[RoomNode]]] = field(default=None, init=False, repr=False)

    @property
    def config(self) -> MazeConfig:
        return self.generation.config

    @property
    def rng(self) -> random.Random:
        return self.generation.rng

    @property
    def diagnostics(self) -> GenerationDiagnostics:
        return self.generation.diagnostics

    @property
    def complexity_multiplier(self) -> float:
        return self.generation.complexity_multiplier

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------
    def adjacent_rooms(self, room: RoomNode) -> List[RoomNode]:
        """Rooms sharing a border with ``room``, in graph order."""
        if self._adjacency is None:
            self._adjacency = {
                id(node): [other for other in self.graph.nodes if are_rooms_adjacent(node, other)]
                for node in self.graph.nodes
            }
        return self._adjacency.get(id(room), [])

    def adjacent_pairs(self) -> List[Tuple[RoomNode, RoomNode]]:
        """Every unordered pair of adjacent rooms, each listed once."""
        pairs = []
        for room in self.graph.nodes:
            for other in self.adjacent_rooms(room):
                if room.index < other.index:
                    pairs.append((room, other))
        return pairs

    def invalidate_adjacency(self) -> None:
        self._adjacency = None

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    def is_rejected(self, room_a: RoomNode, room_b: RoomNode) -> bool:
        return _pair_key(room_a, room_b) in self.rejected_pairs

    def connect(
        self,
        room_a: RoomNode,
        room_b: RoomNode,
        is_main_path: bool = False,
        is_loop: bool = False,
    ) -> Optional[RoomConnection]:
        """Create a validated edge; rejected pairs are remembered and counted."""
        connection = None
        if validate_connection(room_a, room_b):
            connection = self.graph.connect(room_a, room_b, is_main_path=is_main_path, is_loop=is_loop)
        if connection is None:
            self.rejected_pairs.add(_pair_key(room_a, room_b))
            self.diagnostics.connections_rejected += 1
            logger.warning("Connection rejected between %s and %s", room_a.identifier, room_b.identifier)
        return connection

    def prune_room(self, room: RoomNode) -> None:
        """Remove ``room`` from the graph and layout and detach its geometry."""
        self.graph.remove_node(room)
        if room in self.layout.rooms:
            self.layout.rooms.remove(room)
        if room in self.layout.main_path:
            self.layout.main_path.remove(room)
        for branch in self.layout.branch_paths:
            if room in branch:
                branch.remove(room)
        self.layout.branch_paths = [branch for branch in self.layout.branch_paths if len(branch) > 1]
        if room.scene_node is not None:
            room.scene_node.detach()
        self.diagnostics.rooms_pruned += 1
        self.invalidate_adjacency()
        logger.info("Pruned unreachable room %s", room.identifier)


def _pair_key(room_a: RoomNode, room_b: RoomNode) -> FrozenSet[int]:
    # Identity based so keys survive re-indexing when rooms are pruned.
    return frozenset((id(room_a), id(room_b)))
