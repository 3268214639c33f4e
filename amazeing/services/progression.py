"""
Amazeing - Progression

Packs, the player's position in them, completion records and the daily
puzzle.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..config import settings
from ..schemas import CompletionRecord, Level, LevelPack, SavedPosition
from ..storage import KeyValueStore, get_store
from .level_loader import load_packs

logger = logging.getLogger(__name__)


def get_today_string() -> str:
    """Today's UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


def date_hash(date_string: str) -> int:
    """
    Rolling hash h = h * 31 + code, wrapped to a signed 32-bit integer.

    The same date always selects the same daily puzzle.
    """
    h = 0
    for ch in date_string:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class ProgressionCatalog:

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        today: Callable[[], str] = get_today_string,
        packs: Optional[List[LevelPack]] = None,
    ):
        self.store = store or get_store()
        self.today = today
        prefix = self.store.prefix or settings.STORAGE_KEY_PREFIX
        self.progress_key = f"{prefix}progress"
        self.daily_key = f"{prefix}daily"
        self.position_key = f"{prefix}current_level"

        self.packs: List[LevelPack] = packs or []
        self.current_pack_index = 0
        self.current_level_index = 0
        self.progress: Dict[str, Dict[str, Any]] = self.store.get(self.progress_key, {}) or {}
        self.daily_status: Dict[str, Dict[str, Any]] = self.store.get(self.daily_key, {}) or {}

    # ============================================
    # PACKS
    # ============================================

    def load_packs(self, **kwargs) -> List[LevelPack]:
        """Loads pack files (see level_loader.load_packs)."""
        self.packs = load_packs(**kwargs)
        return self.packs

    def get_level(self, pack_index: int, level_index: int) -> Optional[Level]:
        if pack_index < 0 or pack_index >= len(self.packs):
            return None

        pack = self.packs[pack_index]
        if level_index < 0 or level_index >= len(pack.levels):
            return None

        return pack.levels[level_index]

    def get_current_level(self) -> Optional[Level]:
        return self.get_level(self.current_pack_index, self.current_level_index)

    def get_next_level(self) -> Optional[Level]:
        """Advance to the next level; None once every pack is done."""
        if not self.packs:
            return None
        pack = self.packs[self.current_pack_index]

        if self.current_level_index + 1 < len(pack.levels):
            self.current_level_index += 1
        elif self.current_pack_index + 1 < len(self.packs):
            self.current_pack_index += 1
            self.current_level_index = 0
        else:
            return None

        self._save_current_position()
        return self.get_current_level()

    def set_current_level(self, pack_index: int, level_index: int) -> None:
        self.current_pack_index = pack_index
        self.current_level_index = level_index
        self._save_current_position()

    def _save_current_position(self) -> None:
        position = SavedPosition(pack=self.current_pack_index, level=self.current_level_index)
        self.store.set(self.position_key, position.model_dump())

    def load_saved_position(self) -> None:
        saved = self.store.get(self.position_key)
        if not saved:
            return
        try:
            position = SavedPosition.model_validate(saved)
        except ValueError as e:
            logger.warning("Ignoring saved position %r: %s", saved, e)
            return
        if self.get_level(position.pack, position.level) is None:
            logger.warning("Ignoring saved position %s-%s: no such level", position.pack, position.level)
            return
        self.current_pack_index = position.pack
        self.current_level_index = position.level

    # ============================================
    # PROGRESS
    # ============================================

    @staticmethod
    def _progress_key(pack_index: int, level_index: int) -> str:
        return f"{pack_index}-{level_index}"

    def mark_level_complete(self, pack_index: int, level_index: int, time: int, hints_used: int = 0) -> CompletionRecord:
        record = CompletionRecord(completed=True, time=time, hints_used=hints_used)
        self.progress[self._progress_key(pack_index, level_index)] = record.model_dump(by_alias=True)
        self.store.set(self.progress_key, self.progress)
        return record

    def is_level_completed(self, pack_index: int, level_index: int) -> bool:
        entry = self.progress.get(self._progress_key(pack_index, level_index)) or {}
        return bool(entry.get("completed"))

    def get_level_stats(self, pack_index: int, level_index: int) -> Optional[CompletionRecord]:
        entry = self.progress.get(self._progress_key(pack_index, level_index))
        if not entry:
            return None
        return CompletionRecord.model_validate(entry)

    def get_total_levels(self) -> int:
        return sum(len(pack.levels) for pack in self.packs)

    def get_completed_levels_count(self) -> int:
        return sum(1 for entry in self.progress.values() if entry.get("completed"))

    # ============================================
    # DAILY PUZZLE
    # ============================================

    def get_daily_puzzle(self) -> Optional[Level]:
        """Same date -> same level, picked from every pack."""
        all_levels = [level for pack in self.packs for level in pack.levels]
        if not all_levels:
            return None

        today = self.today()
        level = all_levels[date_hash(today) % len(all_levels)]
        return level.model_copy(update={"id": f"daily-{today}", "name": "Daily Puzzle"})

    def is_daily_completed(self) -> bool:
        entry = self.daily_status.get(self.today()) or {}
        return bool(entry.get("completed"))

    def mark_daily_complete(self, time: int, hints_used: int = 0) -> CompletionRecord:
        record = CompletionRecord(completed=True, time=time, hints_used=hints_used)
        self.daily_status[self.today()] = record.model_dump(by_alias=True)
        self.store.set(self.daily_key, self.daily_status)
        return record
