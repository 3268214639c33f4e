"""
Amazeing - Pydantic Schemas

Level data and persisted records, in the JSON shape used by level packs.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


# ============================================
# GRID
# ============================================

class Position(BaseModel):
    """Cell on the grid."""
    model_config = ConfigDict(frozen=True)

    row: int
    col: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.row, self.col)


class Point(BaseModel):
    """Numbered point that paths connect."""
    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1)
    row: int
    col: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.row, self.col)


class SolutionSegment(BaseModel):
    """Part of the reference path between point `from` and point `to`."""
    model_config = ConfigDict(populate_by_name=True)

    from_: int = Field(alias="from")
    to: int
    # Packs exported by the web version store the cells under "path"
    cells: List[Position] = Field(validation_alias=AliasChoices("cells", "path"))

    def cell_tuples(self) -> List[Tuple[int, int]]:
        return [c.as_tuple() for c in self.cells]


# ============================================
# LEVEL
# ============================================

class Level(BaseModel):
    """Level data."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    size: int = Field(ge=2)
    difficulty: int = 1
    points: List[Point]
    obstacles: List[Position] = []
    solution: List[SolutionSegment] = []

    @model_validator(mode="after")
    def check_layout(self) -> "Level":
        if len(self.points) < 2:
            raise ValueError(f"Level {self.id} needs at least 2 points, got {len(self.points)}")

        numbers = sorted(p.number for p in self.points)
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Level {self.id}: point numbers must be 1..{len(numbers)}, got {numbers}")

        cells = [p.as_tuple() for p in self.points]
        if len(set(cells)) != len(cells):
            raise ValueError(f"Level {self.id}: two points share a cell")

        obstacles = {o.as_tuple() for o in self.obstacles}
        for row, col in list(cells) + list(obstacles):
            if not (0 <= row < self.size and 0 <= col < self.size):
                raise ValueError(f"Level {self.id}: cell ({row}, {col}) is outside a {self.size}x{self.size} grid")

        overlap = obstacles.intersection(cells)
        if overlap:
            raise ValueError(f"Level {self.id}: points placed on obstacles {sorted(overlap)}")

        return self

    @property
    def total_points(self) -> int:
        return len(self.points)

    def obstacle_set(self) -> set:
        return {o.as_tuple() for o in self.obstacles}

    def point_at(self, row: int, col: int) -> Optional[Point]:
        for point in self.points:
            if point.row == row and point.col == col:
                return point
        return None

    def segment_from(self, number: int) -> Optional[SolutionSegment]:
        for segment in self.solution:
            if segment.from_ == number:
                return segment
        return None


class LevelPack(BaseModel):
    """A named group of levels sharing a grid size."""
    model_config = ConfigDict(populate_by_name=True)

    pack_id: str = Field(alias="packId")
    pack_name: str = Field(alias="packName")
    grid_size: int = Field(alias="gridSize")
    levels: List[Level] = []


# ============================================
# GENERATION
# ============================================

class GenerationPreset(BaseModel):
    """Generator parameters for a difficulty."""
    size: int
    num_points: int
    obstacle_percent: int
    label: str = ""


# ============================================
# PROGRESS
# ============================================

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CompletionRecord(BaseModel):
    """Stored result of a finished level (or daily puzzle)."""
    model_config = ConfigDict(populate_by_name=True)

    completed: bool = True
    time: int = 0
    hints_used: int = Field(default=0, alias="hintsUsed")
    completed_at: str = Field(default_factory=utc_now_iso, alias="completedAt")


class SavedPosition(BaseModel):
    """Last viewed pack/level."""
    pack: int = 0
    level: int = 0
