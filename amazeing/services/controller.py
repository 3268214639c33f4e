"""
Amazeing - Puzzle Controller

Glue between input, the path engine and progression. Input layers call
drag_start / drag_move / drag_end with grid coordinates; renderers listen
on `bus`.
"""

import logging
import time
from typing import Callable, List, Optional

from ..schemas import Level
from .events import Event, EventBus, EventType
from .grid import Pos
from .path_engine import PathEngine, StrokeFailure, StrokeResult
from .progression import ProgressionCatalog
from .session import PuzzleSession, SessionStatus

logger = logging.getLogger(__name__)


def format_time(seconds: int) -> str:
    """MM:SS"""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


class Stopwatch:
    """Whole-second level timer."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._started_at: Optional[float] = None
        self._accumulated = 0.0

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self.clock()

    def stop(self) -> None:
        if self._started_at is not None:
            self._accumulated += self.clock() - self._started_at
            self._started_at = None

    def reset(self) -> None:
        self._started_at = None
        self._accumulated = 0.0

    def elapsed(self) -> int:
        total = self._accumulated
        if self._started_at is not None:
            total += self.clock() - self._started_at
        return int(total)

    def formatted(self) -> str:
        return format_time(self.elapsed())


class PuzzleController:

    def __init__(
        self,
        catalog: ProgressionCatalog,
        bus: Optional[EventBus] = None,
        stopwatch: Optional[Stopwatch] = None,
    ):
        self.catalog = catalog
        self.bus = bus or EventBus()
        self.stopwatch = stopwatch or Stopwatch()
        self.session: Optional[PuzzleSession] = None
        self.engine: Optional[PathEngine] = None
        self.is_daily = False
        self.input_enabled = False

        self.bus.subscribe(EventType.LEVEL_COMPLETE, self._on_level_complete)

    def start(self) -> Optional[Level]:
        """Load packs and open the saved (or first) level."""
        if not self.catalog.packs:
            self.catalog.load_packs()
        self.catalog.load_saved_position()
        level = self.catalog.get_current_level()
        if level is None:
            self.catalog.set_current_level(0, 0)
            level = self.catalog.get_current_level()
        if level is not None:
            self.load_level(level)
        return level

    def load_level(self, level: Level) -> None:
        self.session = PuzzleSession.from_level(level)
        self.engine = PathEngine(self.session, self.bus)
        self.is_daily = level.id.startswith("daily-")

        self.stopwatch.reset()
        self.stopwatch.start()
        self.input_enabled = True

        logger.info("Loaded level %s (%sx%s, %s points)", level.id, level.size, level.size, level.total_points)
        self.bus.emit(EventType.LEVEL_LOADED, level_id=level.id, size=level.size, points=level.total_points)

    @property
    def status(self) -> Optional[SessionStatus]:
        return self.session.status if self.session else None

    # ============================================
    # INPUT
    # ============================================

    def drag_start(self, row: int, col: int) -> Optional[StrokeResult]:
        if not self._accepts_input():
            return None
        return self.engine.try_start(row, col)

    def drag_move(self, row: int, col: int) -> Optional[StrokeResult]:
        if not self._accepts_input() or self.session.status != SessionStatus.DRAWING:
            return None
        result = self.engine.try_extend(row, col)
        if not result.success and result.reason != StrokeFailure.SAME_CELL:
            logger.debug("Rejected move to (%s, %s): %s", row, col, result.reason.value)
        return result

    def drag_end(self) -> bool:
        """Releasing the pointer drops an unfinished path."""
        if self.session is None or self.session.status != SessionStatus.DRAWING:
            return False
        return self.engine.cancel()

    def _accepts_input(self) -> bool:
        return self.input_enabled and self.session is not None and self.session.status != SessionStatus.COMPLETED

    # ============================================
    # ACTIONS
    # ============================================

    def undo(self) -> bool:
        if self.engine is None:
            return False
        # input stays locked once the level was solved
        return self.engine.undo()

    def reset(self) -> None:
        if self.engine is None:
            return
        self.engine.reset()
        self.stopwatch.reset()
        if not self.session.completion_emitted:
            self.stopwatch.start()
            self.input_enabled = True

    def show_hint(self) -> Optional[List[Pos]]:
        if self.engine is None:
            return None
        cells = self.engine.get_hint()
        if cells:
            self.session.hints_used += 1
            self.bus.emit(EventType.HINT_SHOWN, cells=cells, hints_used=self.session.hints_used)
        return cells

    def load_next_level(self) -> Optional[Level]:
        level = self.catalog.get_next_level()
        if level is not None:
            self.load_level(level)
        else:
            logger.info("All levels completed")
        return level

    def load_daily_puzzle(self) -> Optional[Level]:
        level = self.catalog.get_daily_puzzle()
        if level is not None:
            self.load_level(level)
        return level

    # ============================================
    # COMPLETION
    # ============================================

    def _on_level_complete(self, event: Event) -> None:
        self.stopwatch.stop()
        self.input_enabled = False

        elapsed = self.stopwatch.elapsed()
        hints = self.session.hints_used if self.session else 0
        if self.is_daily:
            self.catalog.mark_daily_complete(elapsed, hints)
        else:
            self.catalog.mark_level_complete(
                self.catalog.current_pack_index,
                self.catalog.current_level_index,
                elapsed,
                hints,
            )
        logger.info("Level %s solved in %s with %s hints", event.data.get("level_id"), format_time(elapsed), hints)
