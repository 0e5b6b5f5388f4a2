"""Render a generated maze to an ASCII grid."""

from __future__ import annotations

from typing import Dict, List

from door_index_calculator import connection_point
from maze_models import RoomGraph, RoomNode
from room_category import RoomCategory

CATEGORY_CHARS: Dict[RoomCategory, str] = {
    RoomCategory.REGULAR: "o",
    RoomCategory.WIDE: "w",
    RoomCategory.TALL: "t",
    RoomCategory.LARGE: "L",
}


class MazeGridRenderer:
    """Draws rooms and their connections; each grid cell is one character, with
    one character of spacing between cells for the connectors.

    North (increasing ``y``) is at the top of the output.
    """

    def __init__(self, grid_size: int) -> None:
        self.grid_size = grid_size
        self.canvas_size = grid_size * 2 + 1
        self.grid: List[List[str]] = [[" "] * self.canvas_size for _ in range(self.canvas_size)]

    def _clear_grid(self) -> None:
        for row in self.grid:
            for x in range(self.canvas_size):
                row[x] = " "

    def _set(self, canvas_x: int, canvas_y: int, char: str) -> None:
        # Canvas rows are stored top-down.
        self.grid[self.canvas_size - 1 - canvas_y][canvas_x] = char

    @staticmethod
    def room_char(room: RoomNode) -> str:
        if room.is_entry:
            return "E"
        if room.is_boss:
            return "B"
        return CATEGORY_CHARS[room.category]

    def draw(self, graph: RoomGraph, show_doors: bool = False) -> None:
        """Render rooms and edges; with ``show_doors`` edges are marked by kind."""
        self._clear_grid()
        for room in graph.nodes:
            char = self.room_char(room)
            bounds = room.footprint
            # Fill the cells and the gaps between cells of the same room.
            for canvas_y in range(bounds.y * 2 + 1, bounds.last_y * 2 + 2):
                for canvas_x in range(bounds.x * 2 + 1, bounds.last_x * 2 + 2):
                    self._set(canvas_x, canvas_y, char)

        for edge in graph.edges:
            cell = connection_point(edge.from_room, edge.to_room, edge.from_direction)
            direction = edge.from_direction
            canvas_x = cell.x * 2 + 1 + direction.dx
            canvas_y = cell.y * 2 + 1 + direction.dy
            if not show_doors:
                marker = "."
            elif edge.is_loop:
                marker = "*"
            elif edge.is_main_path:
                marker = "D"
            else:
                marker = "d"
            self._set(canvas_x, canvas_y, marker)

    def render(self, horizontal_sep: str = "") -> List[str]:
        return [horizontal_sep.join(row).rstrip() for row in self.grid]

    def print_grid(self, horizontal_sep: str = "") -> None:
        """Prints the ASCII grid to the console."""
        for line in self.render(horizontal_sep):
            print(line)
