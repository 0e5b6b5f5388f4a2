"""Occupancy grid for tracking which cells are claimed by placed rooms."""

from __future__ import annotations

from typing import Dict, List, Optional

from maze_geometry import CARDINAL_DIRECTIONS, Rect, TilePos
from maze_models import GridCell, RoomInstance


class PlacementGrid:
    """Square grid of cells; each cell knows the room instance that occupies it."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("PlacementGrid size must be positive")
        self.size = size
        self._cells: Dict[TilePos, GridCell] = {
            TilePos(x, y): GridCell(TilePos(x, y)) for y in range(size) for x in range(size)
        }
        self.rooms: List[RoomInstance] = []

    def in_bounds(self, bounds: Rect) -> bool:
        return 0 <= bounds.x and 0 <= bounds.y and bounds.max_x <= self.size and bounds.max_y <= self.size

    def is_occupied(self, pos: TilePos) -> bool:
        cell = self._cells.get(pos)
        return cell is not None and cell.occupied

    def get_room_at(self, pos: TilePos) -> Optional[RoomInstance]:
        """Return the room instance occupying ``pos`` if any."""
        cell = self._cells.get(pos)
        return cell.room if cell is not None else None

    def is_area_clear(self, bounds: Rect) -> bool:
        """Return True if ``bounds`` is inside the grid and no cell in it is occupied."""
        if not self.in_bounds(bounds):
            return False
        return not any(self.is_occupied(tile) for tile in bounds.cells())

    def touches_occupied(self, bounds: Rect) -> bool:
        """Return True if any cell orthogonally next to ``bounds`` is occupied."""
        for tile in bounds.cells():
            for direction in CARDINAL_DIRECTIONS:
                neighbour = tile.step(direction)
                if not bounds.contains(neighbour) and self.is_occupied(neighbour):
                    return True
        return False

    def place(self, room: RoomInstance) -> bool:
        """Claim every cell of ``room``'s footprint; False if any is taken or out of bounds."""
        bounds = room.footprint
        if not self.is_area_clear(bounds):
            return False
        for tile in bounds.cells():
            cell = self._cells[tile]
            cell.occupied = True
            cell.room = room
        self.rooms.append(room)
        return True

    def clear(self) -> None:
        """Remove all placed rooms."""
        for cell in self._cells.values():
            cell.occupied = False
            cell.room = None
        self.rooms.clear()
