"""Minimal scene-node tree standing in for instantiated room geometry.

Room geometry is only consumed through positions, tags, names and active flags,
so a node tree with local offsets is enough for door binding and for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from maze_geometry import WorldPos


@dataclass(eq=False)
class SceneNode:
    """A named node with a position relative to its parent."""

    name: str
    local_position: WorldPos = field(default_factory=WorldPos.zero)
    tag: Optional[str] = None
    active: bool = True
    children: List[SceneNode] = field(default_factory=list)
    parent: Optional[SceneNode] = field(default=None, repr=False)

    @property
    def world_position(self) -> WorldPos:
        if self.parent is None:
            return self.local_position
        return self.parent.world_position + self.local_position

    def add_child(self, child: SceneNode) -> SceneNode:
        if child.parent is not None:
            child.detach()
        child.parent = self
        self.children.append(child)
        return child

    def detach(self) -> None:
        """Remove this node from its parent."""
        if self.parent is None:
            return
        self.parent.children.remove(self)
        self.parent = None

    def find(self, name: str) -> Optional[SceneNode]:
        """Return the first direct child called ``name``."""
        for child in self.children:
            if child.name == name:
                return child
        return None

    def iter_descendants(self) -> Iterator[SceneNode]:
        """Depth-first walk over every node below this one."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def find_with_tag(self, tag: str) -> List[SceneNode]:
        return [node for node in self.iter_descendants() if node.tag == tag]

    def set_active(self, active: bool) -> None:
        self.active = active
