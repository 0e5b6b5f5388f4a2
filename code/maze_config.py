"""Configuration container and per-run context for maze generation."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from maze_constants import COMPLEXITY_BASE, COMPLEXITY_MAX, COMPLEXITY_TAU
from maze_geometry import lerp
from maze_models import RoomTemplate, build_default_template
from metrics import GenerationDiagnostics, GenerationMetrics
from room_category import RoomCategory
from scene_graph import SceneNode


class MazeConfigError(ValueError):
    """Raised when a maze configuration cannot be used for generation."""


class MazeGenerationError(RuntimeError):
    """Raised when the pipeline cannot produce a structurally valid level."""


def complexity_multiplier_for_level(level: int) -> float:
    """Complexity grows quickly over the first circles and saturates towards ``COMPLEXITY_MAX``."""
    level = max(0, level)
    return lerp(COMPLEXITY_BASE, COMPLEXITY_MAX, 1.0 - math.exp(-level / COMPLEXITY_TAU))


@dataclass
class MazeConfig:
    """Aggregates the template pools and tunables for one generation run."""

    room_templates: Sequence[RoomTemplate]
    miniboss_templates: Sequence[RoomTemplate]
    boss_templates: Sequence[RoomTemplate]
    entry_template: RoomTemplate
    circle_level: int = 0
    # Overrides the value derived from circle_level when set.
    complexity_multiplier: Optional[float] = None
    random_seed: int | None = None
    collect_metrics: bool = False

    def __post_init__(self) -> None:
        self.room_templates = tuple(self.room_templates)
        self.miniboss_templates = tuple(self.miniboss_templates)
        self.boss_templates = tuple(self.boss_templates)

        for pool in (self.room_templates, self.miniboss_templates, self.boss_templates):
            for template in pool:
                if not isinstance(template, RoomTemplate):
                    raise MazeConfigError(f"Unsupported template {template!r}")

        if not self.room_templates:
            raise MazeConfigError("MazeConfig requires at least one room template")
        if not any(template.category is RoomCategory.REGULAR for template in self.room_templates):
            raise MazeConfigError("MazeConfig requires at least one REGULAR room template")
        if not self.boss_templates:
            raise MazeConfigError("MazeConfig requires at least one boss template")
        if self.entry_template is None:
            raise MazeConfigError("MazeConfig requires an entry template")
        if self.entry_template.category is not RoomCategory.REGULAR:
            raise MazeConfigError("MazeConfig entry template must be a REGULAR room")
        if self.circle_level < 0:
            raise MazeConfigError("MazeConfig circle_level cannot be negative")
        if self.complexity_multiplier is not None:
            self.complexity_multiplier = float(self.complexity_multiplier)
            if self.complexity_multiplier <= 0:
                raise MazeConfigError("MazeConfig complexity_multiplier must be positive")

    @property
    def effective_complexity(self) -> float:
        if self.complexity_multiplier is not None:
            return self.complexity_multiplier
        return complexity_multiplier_for_level(self.circle_level)

    @property
    def pool_categories(self) -> Tuple[RoomCategory, ...]:
        """Categories available for path rooms, in declaration order of ``RoomCategory``."""
        present = {template.category for template in self.room_templates}
        return tuple(category for category in RoomCategory if category in present)


@dataclass
class MazeGenerationContext:
    """Snapshot of everything a single generation run shares between stages."""

    config: MazeConfig
    parent: SceneNode
    rng: random.Random
    seed: int
    complexity_multiplier: float
    circle_level: int
    used_miniboss_templates: Set[str] = field(default_factory=set)
    diagnostics: GenerationDiagnostics = field(default_factory=GenerationDiagnostics)
    metrics: Optional[GenerationMetrics] = None

    @classmethod
    def create(cls, config: MazeConfig, parent: SceneNode, seed: int) -> MazeGenerationContext:
        return cls(
            config=config,
            parent=parent,
            rng=random.Random(seed),
            seed=seed,
            complexity_multiplier=config.effective_complexity,
            circle_level=config.circle_level,
            metrics=GenerationMetrics() if config.collect_metrics else None,
        )


def build_default_config(
    circle_level: int = 0,
    random_seed: int | None = None,
    collect_metrics: bool = False,
) -> MazeConfig:
    """Template pools with one default-door template per category, used by tooling and tests."""
    room_templates: List[RoomTemplate] = [
        build_default_template(f"Room_{category.label}", category) for category in RoomCategory
    ]
    room_templates.append(build_default_template("Room_1x1_Alt", RoomCategory.REGULAR))
    miniboss_templates = [
        build_default_template("Miniboss_1x1", RoomCategory.REGULAR),
        build_default_template("Miniboss_2x2", RoomCategory.LARGE),
    ]
    boss_templates = [
        build_default_template("Boss_2x2", RoomCategory.LARGE),
        build_default_template("Boss_2x1", RoomCategory.WIDE),
    ]
    return MazeConfig(
        room_templates=room_templates,
        miniboss_templates=miniboss_templates,
        boss_templates=boss_templates,
        entry_template=build_default_template("Entry_1x1", RoomCategory.REGULAR),
        circle_level=circle_level,
        random_seed=random_seed,
        collect_metrics=collect_metrics,
    )
