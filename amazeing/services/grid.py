"""
Amazeing - Grid Model

Authoritative occupancy map of one puzzle: obstacles, numbered points and
which path currently owns each cell.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Pos = Tuple[int, int]

# up, down, left, right
NEIGHBOR_OFFSETS: Tuple[Pos, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


def are_adjacent(a: Pos, b: Pos) -> bool:
    """Horizontal/vertical neighbours only."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


# ============================================
# CELL / STROKE
# ============================================

@dataclass
class Cell:
    row: int
    col: int
    is_obstacle: bool = False
    point_number: Optional[int] = None
    path_number: Optional[int] = None

    @property
    def is_point(self) -> bool:
        return self.point_number is not None

    @property
    def occupied(self) -> bool:
        return self.path_number is not None


@dataclass
class Stroke:
    """
    A path between point `number` and point `number + 1`.

    cells[0] is always the cell of point `number`; a committed stroke ends on
    the cell of point `number + 1`.
    """
    number: int
    cells: List[Pos] = field(default_factory=list)

    @property
    def start(self) -> Optional[Pos]:
        return self.cells[0] if self.cells else None

    @property
    def end(self) -> Optional[Pos]:
        return self.cells[-1] if self.cells else None

    def index_of(self, pos: Pos) -> int:
        try:
            return self.cells.index(pos)
        except ValueError:
            return -1

    def copy(self) -> "Stroke":
        return Stroke(self.number, list(self.cells))


def occupancy_from_paths(paths: Iterable[Stroke]) -> Dict[Pos, int]:
    """Occupancy that replaying `paths` in order would produce."""
    occupancy: Dict[Pos, int] = {}
    for path in paths:
        for pos in path.cells:
            occupancy[pos] = path.number
    return occupancy


# ============================================
# GRID MODEL
# ============================================

class GridModel:
    """size x size matrix of cells."""

    def __init__(self, size: int):
        self.size = size
        self.cells: List[List[Cell]] = self._create_cells(size)
        self.points: Dict[Pos, int] = {}

    @staticmethod
    def _create_cells(size: int) -> List[List[Cell]]:
        return [[Cell(row, col) for col in range(size)] for row in range(size)]

    def initialize(
        self,
        size: int,
        points: Iterable[Tuple[int, Pos]],
        obstacles: Iterable[Pos] = (),
    ) -> None:
        """
        Rebuild the matrix for a new level.

        Args:
            points: (number, (row, col)) pairs
            obstacles: (row, col) positions
        """
        self.size = size
        self.cells = self._create_cells(size)
        self.points = {}

        for row, col in obstacles:
            if not self.is_valid_position(row, col):
                raise ValueError(f"Obstacle ({row}, {col}) is outside the {size}x{size} grid")
            self.cells[row][col].is_obstacle = True

        for number, (row, col) in points:
            if not self.is_valid_position(row, col):
                raise ValueError(f"Point {number} at ({row}, {col}) is outside the {size}x{size} grid")
            cell = self.cells[row][col]
            if cell.is_obstacle:
                raise ValueError(f"Point {number} at ({row}, {col}) sits on an obstacle")
            if cell.is_point:
                raise ValueError(f"Points {cell.point_number} and {number} share cell ({row}, {col})")
            cell.point_number = number
            self.points[(row, col)] = number

    # ----- queries -----

    def is_valid_position(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def get_cell(self, row: int, col: int) -> Optional[Cell]:
        if not self.is_valid_position(row, col):
            return None
        return self.cells[row][col]

    def is_cell_available(self, row: int, col: int) -> bool:
        cell = self.get_cell(row, col)
        return cell is not None and not cell.is_obstacle and not cell.occupied

    def is_obstacle(self, row: int, col: int) -> bool:
        cell = self.get_cell(row, col)
        return cell.is_obstacle if cell else False

    def is_point(self, row: int, col: int) -> bool:
        return (row, col) in self.points

    def point_at(self, row: int, col: int) -> Optional[int]:
        return self.points.get((row, col))

    def neighbors(self, row: int, col: int) -> List[Pos]:
        """In-bounds cells at Manhattan distance 1."""
        result = []
        for dr, dc in NEIGHBOR_OFFSETS:
            nr, nc = row + dr, col + dc
            if self.is_valid_position(nr, nc):
                result.append((nr, nc))
        return result

    def occupancy(self) -> Dict[Pos, int]:
        """Copy of position -> owning path number."""
        return {
            (cell.row, cell.col): cell.path_number
            for line in self.cells
            for cell in line
            if cell.occupied
        }

    # ----- mutation -----

    def occupy(self, row: int, col: int, path_number: int) -> bool:
        cell = self.get_cell(row, col)
        if cell is None or cell.is_obstacle:
            logger.debug("Refused to occupy (%s, %s) for path %s", row, col, path_number)
            return False
        cell.path_number = path_number
        return True

    def release(self, row: int, col: int) -> None:
        # Points are permanent anchors
        cell = self.get_cell(row, col)
        if cell and not cell.is_point:
            cell.path_number = None

    def reset(self) -> None:
        """Clear every path, points included; obstacles and points stay."""
        for line in self.cells:
            for cell in line:
                cell.path_number = None

    def rebuild_from_paths(self, paths: Iterable[Stroke]) -> None:
        self.reset()
        for path in paths:
            for row, col in path.cells:
                self.occupy(row, col, path.number)
