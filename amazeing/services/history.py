"""
Amazeing - Undo History

Bounded stack of snapshots taken before every committed path.
"""

from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Deque, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .grid import Pos, Stroke

DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class Snapshot:
    paths: Tuple[Tuple[int, Tuple[Pos, ...]], ...]
    occupancy: Mapping[Pos, int]
    current_number: int
    connected_points: FrozenSet[int]

    @classmethod
    def capture(
        cls,
        paths: Iterable[Stroke],
        occupancy: Mapping[Pos, int],
        current_number: int,
        connected_points: Set[int],
    ) -> "Snapshot":
        return cls(
            paths=tuple((p.number, tuple(p.cells)) for p in paths),
            occupancy=MappingProxyType(dict(occupancy)),
            current_number=current_number,
            connected_points=frozenset(connected_points),
        )

    def restore_paths(self) -> List[Stroke]:
        """Fresh, mutable copies of the stored paths."""
        return [Stroke(number, list(cells)) for number, cells in self.paths]


class HistorySnapshotStore:
    """
    LIFO of snapshots. When full, pushing drops the oldest entry, never the
    most recent one.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._stack: Deque[Snapshot] = deque(maxlen=capacity)

    def push(self, snapshot: Snapshot) -> None:
        self._stack.append(snapshot)

    def pop(self) -> Optional[Snapshot]:
        if not self._stack:
            return None
        return self._stack.pop()

    def peek(self) -> Optional[Snapshot]:
        return self._stack[-1] if self._stack else None

    def clear(self) -> None:
        self._stack.clear()

    def can_undo(self) -> bool:
        return bool(self._stack)

    def __len__(self) -> int:
        return len(self._stack)
