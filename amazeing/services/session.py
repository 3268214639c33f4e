"""
Amazeing - Puzzle Session

Mutable state of one puzzle being played. Each session owns its grid and
history; nothing is shared between sessions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..config import settings
from ..schemas import Level
from .grid import GridModel, Pos, Stroke
from .history import HistorySnapshotStore


class SessionStatus(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    COMPLETED = "completed"


@dataclass
class PuzzleSession:
    level: Level
    grid: GridModel
    history: HistorySnapshotStore
    current_number: int = 1
    connected_points: Set[int] = field(default_factory=set)
    paths: List[Stroke] = field(default_factory=list)
    current_path: Optional[Stroke] = None
    is_complete: bool = False
    # level_complete already announced; survives reset and undo
    completion_emitted: bool = False
    hints_used: int = 0

    @classmethod
    def from_level(cls, level: Level, history_capacity: Optional[int] = None) -> "PuzzleSession":
        grid = GridModel(level.size)
        grid.initialize(
            level.size,
            [(p.number, p.as_tuple()) for p in level.points],
            [o.as_tuple() for o in level.obstacles],
        )
        history = HistorySnapshotStore(settings.HISTORY_CAPACITY if history_capacity is None else history_capacity)
        return cls(level=level, grid=grid, history=history)

    @property
    def total_points(self) -> int:
        return self.level.total_points

    @property
    def status(self) -> SessionStatus:
        if self.is_complete:
            return SessionStatus.COMPLETED
        if self.current_path is not None:
            return SessionStatus.DRAWING
        return SessionStatus.IDLE

    @property
    def solution_cells(self) -> Dict[int, List[Pos]]:
        """Segment cells keyed by their lower point number."""
        return {s.from_: s.cell_tuples() for s in self.level.solution}

    def point_positions(self) -> List[Tuple[int, Pos]]:
        return [(p.number, p.as_tuple()) for p in self.level.points]

    def reset(self) -> None:
        self.current_number = 1
        self.connected_points = set()
        self.paths = []
        self.current_path = None
        self.is_complete = False
        self.hints_used = 0
        self.history.clear()
        self.grid.reset()
