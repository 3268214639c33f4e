"""
Amazeing - Path Engine

Validates strokes drawn by the player, one cell at a time.

Rules:
1. A path starts on the point whose number is the next one to connect
2. Each new cell is a horizontal/vertical neighbour of the path end
3. Re-entering an earlier cell of the active path truncates it (backtrack)
4. Reaching point `current + 1` commits the path and saves an undo snapshot
5. All points connected -> level complete

Invalid moves are reported as reason codes, not exceptions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..config import settings
from .events import EventBus, EventType
from .grid import Pos, Stroke, are_adjacent, occupancy_from_paths
from .history import Snapshot
from .session import PuzzleSession

logger = logging.getLogger(__name__)


class StrokeFailure(str, Enum):
    NOT_A_POINT = "not_a_point"
    WRONG_POINT = "wrong_point"
    ALREADY_DRAWING = "already_drawing"
    NO_ACTIVE_PATH = "no_active_path"
    SAME_CELL = "same_cell"
    NOT_ADJACENT = "not_adjacent"
    CELL_OCCUPIED = "cell_occupied"
    INVALID_CELL = "invalid_cell"


@dataclass(frozen=True)
class StrokeResult:
    success: bool
    reason: Optional[StrokeFailure] = None
    completed: bool = False
    backtracked: bool = False
    level_complete: bool = False

    @classmethod
    def fail(cls, reason: StrokeFailure) -> "StrokeResult":
        return cls(success=False, reason=reason)


OK = StrokeResult(success=True)


class PathEngine:
    """State machine over one PuzzleSession."""

    def __init__(self, session: PuzzleSession, bus: Optional[EventBus] = None):
        self.session = session
        self.grid = session.grid
        self.bus = bus or EventBus()

    # ============================================
    # STROKES
    # ============================================

    def try_start(self, row: int, col: int) -> StrokeResult:
        s = self.session

        point = self.grid.point_at(row, col)
        if point is None:
            return StrokeResult.fail(StrokeFailure.NOT_A_POINT)

        if point != s.current_number:
            return StrokeResult.fail(StrokeFailure.WRONG_POINT)

        if s.current_path is not None:
            return StrokeResult.fail(StrokeFailure.ALREADY_DRAWING)

        s.current_path = Stroke(point, [(row, col)])
        self.grid.occupy(row, col, point)

        self.bus.emit(EventType.PATH_STARTED, number=point, row=row, col=col)
        return OK

    def try_extend(self, row: int, col: int) -> StrokeResult:
        s = self.session
        path = s.current_path
        if path is None:
            return StrokeResult.fail(StrokeFailure.NO_ACTIVE_PATH)

        pos = (row, col)
        end = path.end
        if pos == end:
            return StrokeResult.fail(StrokeFailure.SAME_CELL)

        if not are_adjacent(end, pos):
            return StrokeResult.fail(StrokeFailure.NOT_ADJACENT)

        existing = path.index_of(pos)
        if existing != -1:
            return self._truncate(path, existing)

        cell = self.grid.get_cell(row, col)
        if cell is None or cell.is_obstacle:
            return StrokeResult.fail(StrokeFailure.INVALID_CELL)

        target = s.current_number + 1
        if cell.point_number == target:
            path.cells.append(pos)
            self.grid.occupy(row, col, path.number)
            level_complete = self._commit(path)
            return StrokeResult(success=True, completed=True, level_complete=level_complete)

        if cell.occupied or cell.is_point:
            return StrokeResult.fail(StrokeFailure.CELL_OCCUPIED)

        path.cells.append(pos)
        self.grid.occupy(row, col, path.number)

        self.bus.emit(EventType.PATH_EXTENDED, number=path.number, row=row, col=col)
        return OK

    def _truncate(self, path: Stroke, index: int) -> StrokeResult:
        removed = path.cells[index + 1:]
        for r, c in removed:
            self.grid.release(r, c)
        del path.cells[index + 1:]

        self.bus.emit(EventType.PATH_TRUNCATED, number=path.number, from_index=index, removed=removed)
        return StrokeResult(success=True, backtracked=True)

    def cancel(self) -> bool:
        """Drop the active path, keeping only its start point. Returns False if nothing was active."""
        s = self.session
        path = s.current_path
        if path is None:
            return False

        # cells[0] is the start point, which release() never frees anyway
        for r, c in path.cells[1:]:
            self.grid.release(r, c)
        s.current_path = None

        self.bus.emit(EventType.PATH_CANCELLED, number=path.number, cells=list(path.cells))
        return True

    # ============================================
    # COMMIT / UNDO
    # ============================================

    def _commit(self, path: Stroke) -> bool:
        """Returns True when this commit completed the level."""
        s = self.session

        s.history.push(Snapshot.capture(
            s.paths,
            occupancy_from_paths(s.paths),
            s.current_number,
            s.connected_points,
        ))

        s.paths.append(path)
        s.connected_points.add(path.number)
        s.connected_points.add(path.number + 1)
        s.current_number = path.number + 1
        s.current_path = None

        logger.debug("Path %s -> %s committed with %s cells", path.number, path.number + 1, len(path.cells))
        self.bus.emit(EventType.PATH_COMPLETED, number=path.number, cells=list(path.cells))

        if s.is_complete or len(s.connected_points) != s.total_points:
            return False

        s.is_complete = True
        if s.completion_emitted:
            return False
        s.completion_emitted = True
        logger.info("Level %s complete", s.level.id)
        self.bus.emit(
            EventType.LEVEL_COMPLETE,
            level_id=s.level.id,
            connected=sorted(s.connected_points),
            total=s.total_points,
        )
        return True

    def undo(self) -> bool:
        s = self.session
        snapshot = s.history.pop()
        if snapshot is None:
            return False

        s.paths = snapshot.restore_paths()
        s.connected_points = set(snapshot.connected_points)
        s.current_number = snapshot.current_number
        s.current_path = None
        s.is_complete = len(s.connected_points) == s.total_points

        # replay instead of trusting stored occupancy
        self.grid.rebuild_from_paths(s.paths)
        if self.grid.occupancy() != dict(snapshot.occupancy):
            logger.warning("Occupancy differed from snapshot after undo on level %s", s.level.id)

        self.bus.emit(
            EventType.UNDO_APPLIED,
            current_number=s.current_number,
            connected=sorted(s.connected_points),
            paths=[p.copy() for p in s.paths],
        )
        return True

    def can_undo(self) -> bool:
        return self.session.history.can_undo()

    def reset(self) -> None:
        self.session.reset()
        self.bus.emit(EventType.SESSION_RESET, level_id=self.session.level.id)

    # ============================================
    # HINTS / CHECKS
    # ============================================

    def get_hint(self, length: Optional[int] = None) -> Optional[List[Pos]]:
        """Next cells of the reference solution for the current connection."""
        length = settings.HINT_LENGTH if length is None else length
        s = self.session

        segment = s.level.segment_from(s.current_number)
        if segment is None:
            return None
        solution = segment.cell_tuples()

        if s.current_path is None:
            return solution[:length] or None

        drawn = s.current_path.cells
        match_index = 0
        for i in range(min(len(drawn), len(solution))):
            if drawn[i] != solution[i]:
                break
            match_index = i

        hint = solution[match_index + 1:match_index + 1 + length]
        return hint or None

    def validate_path(self, path: Stroke, target_number: int) -> bool:
        """Whether `path` is a well-formed connection from its number to `target_number`."""
        if path is None or len(path.cells) < 2:
            return False
        if self.grid.point_at(*path.cells[0]) != path.number:
            return False
        if self.grid.point_at(*path.cells[-1]) != target_number:
            return False
        if len(set(path.cells)) != len(path.cells):
            return False
        for prev, cur in zip(path.cells, path.cells[1:]):
            if not are_adjacent(prev, cur):
                return False
        return True

    def find_inconsistencies(self) -> List[str]:
        """
        Cross-checks the grid against the strokes.

        Every non-point cell of a committed or active stroke must be occupied
        by that stroke, and every occupied non-point cell must belong to one.
        """
        s = self.session
        problems = []
        strokes = list(s.paths)
        if s.current_path is not None:
            strokes.append(s.current_path)

        expected = {}
        for stroke in strokes:
            for pos in stroke.cells:
                if self.grid.is_obstacle(*pos):
                    problems.append(f"path {stroke.number} crosses obstacle {pos}")
                if self.grid.is_point(*pos):
                    continue
                if pos in expected:
                    problems.append(f"cell {pos} used by paths {expected[pos]} and {stroke.number}")
                expected[pos] = stroke.number

        actual = {pos: n for pos, n in self.grid.occupancy().items() if not self.grid.is_point(*pos)}
        for pos, number in expected.items():
            if actual.get(pos) != number:
                problems.append(f"cell {pos} of path {number} is marked {actual.get(pos)}")
        for pos, number in actual.items():
            if pos not in expected:
                problems.append(f"cell {pos} marked by path {number} belongs to no path")
        return problems
