"""
Amazeing - Level Generator

A level is a Hamiltonian path over every free cell of the grid, cut into
segments by the numbered points. If the player can retrace it, the level
is solvable by construction.

Steps:
1. Scatter obstacles over interior cells (corners stay free)
2. Search a Hamiltonian path from a corner: DFS + Warnsdorff ordering,
   bounded by a step budget
3. Place points evenly along the path, split it into solution segments
4. After too many failed attempts, retry without obstacles; the serpentine
   path is the last resort and always exists on an empty grid
"""

import logging
import math
import secrets
from collections import deque
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..config import settings
from ..schemas import GenerationPreset, Level, Point, Position, SolutionSegment
from .grid import NEIGHBOR_OFFSETS, Pos, are_adjacent

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """No level could be produced for the requested parameters."""


# ============================================
# SEEDED RANDOM
# ============================================

class SeededRandom:
    """Deterministic PRNG so levels can be reproduced from a seed."""

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = secrets.randbits(31)
        self.seed = seed
        self._state = seed & 0x7FFFFFFF

    def next(self) -> float:
        """Returns a number in [0, 1)."""
        self._state = (self._state * 1103515245 + 12345) & 0x7FFFFFFF
        return self._state / 0x80000000

    def next_int(self, min_val: int, max_val: int) -> int:
        """Returns an integer in [min, max]."""
        if min_val > max_val:
            return min_val
        return min_val + int(self.next() * (max_val - min_val + 1))

    def shuffle(self, arr: list) -> list:
        """Fisher-Yates shuffle (returns a copy)."""
        result = arr.copy()
        for i in range(len(result) - 1, 0, -1):
            j = self.next_int(0, i)
            result[i], result[j] = result[j], result[i]
        return result

    def choice(self, arr: list):
        if not arr:
            return None
        return arr[self.next_int(0, len(arr) - 1)]


# ============================================
# PRESETS
# ============================================

GRID_SIZES = (6, 8, 10, 12)

PRESETS: Dict[str, GenerationPreset] = {
    "easy": GenerationPreset(size=6, num_points=2, obstacle_percent=0, label="Easy (6x6, 2 pts)"),
    "medium": GenerationPreset(size=8, num_points=4, obstacle_percent=5, label="Medium (8x8, 4 pts)"),
    "hard": GenerationPreset(size=10, num_points=4, obstacle_percent=8, label="Hard (10x10, 4 pts)"),
    "expert": GenerationPreset(size=12, num_points=8, obstacle_percent=10, label="Expert (12x12, 8 pts)"),
}


def get_presets() -> Dict[str, GenerationPreset]:
    return dict(PRESETS)


def preset_for_size(size: int) -> GenerationPreset:
    """Point count and obstacle density scaled by grid size."""
    if size <= 6:
        num_points, obstacle_percent = 2, 0
    elif size <= 8:
        num_points, obstacle_percent = 4, 5
    elif size <= 10:
        num_points, obstacle_percent = 4, 8
    else:
        num_points, obstacle_percent = 8, 10
    return GenerationPreset(size=size, num_points=num_points, obstacle_percent=obstacle_percent)


# ============================================
# OBSTACLES
# ============================================

def corner_cells(size: int) -> List[Pos]:
    return [(0, 0), (0, size - 1), (size - 1, 0), (size - 1, size - 1)]


def generate_obstacles(size: int, max_obstacles: int, rng: SeededRandom) -> List[Pos]:
    """Random interior obstacles; corners are kept free as path endpoints."""
    obstacles: List[Pos] = []
    if max_obstacles <= 0 or size < 3:
        return obstacles

    taken: Set[Pos] = set(corner_cells(size))
    attempts = 0
    while len(obstacles) < max_obstacles and attempts < max_obstacles * 10:
        attempts += 1
        pos = (rng.next_int(1, size - 2), rng.next_int(1, size - 2))
        if pos not in taken:
            taken.add(pos)
            obstacles.append(pos)

    return obstacles


# ============================================
# HAMILTONIAN PATH SEARCH
# ============================================

class _SearchState:
    """Per-start search state: visited markers and the step budget."""

    def __init__(self, size: int, blocked: Sequence[bool], max_iterations: int):
        self.size = size
        self.blocked = blocked
        self.visited = [False] * (size * size)
        self.path: List[Pos] = []
        self.iterations = 0
        self.max_iterations = max_iterations

    def onward_moves(self, row: int, col: int) -> List[Pos]:
        size = self.size
        moves = []
        for dr, dc in NEIGHBOR_OFFSETS:
            nr, nc = row + dr, col + dc
            if 0 <= nr < size and 0 <= nc < size:
                idx = nr * size + nc
                if not self.blocked[idx] and not self.visited[idx]:
                    moves.append((nr, nc))
        return moves


def _free_cells_connected(size: int, blocked: Sequence[bool], free_count: int) -> bool:
    start = next((i for i in range(size * size) if not blocked[i]), None)
    if start is None:
        return False
    seen = {start}
    queue = deque([start])
    while queue:
        idx = queue.popleft()
        row, col = divmod(idx, size)
        for dr, dc in NEIGHBOR_OFFSETS:
            nr, nc = row + dr, col + dc
            if 0 <= nr < size and 0 <= nc < size:
                nidx = nr * size + nc
                if not blocked[nidx] and nidx not in seen:
                    seen.add(nidx)
                    queue.append(nidx)
    return len(seen) == free_count


def _colour_balance(size: int, blocked: Sequence[bool]) -> int:
    """(even cells) - (odd cells) on the checkerboard, free cells only."""
    balance = 0
    for idx in range(size * size):
        if not blocked[idx]:
            row, col = divmod(idx, size)
            balance += 1 if (row + col) % 2 == 0 else -1
    return balance


def _hamiltonian_dfs(
    state: _SearchState,
    row: int,
    col: int,
    target: int,
    rng: SeededRandom,
    shuffle_chance: float,
) -> bool:
    state.iterations += 1
    if state.iterations > state.max_iterations:
        return False

    idx = row * state.size + col
    state.visited[idx] = True
    state.path.append((row, col))

    if len(state.path) == target:
        return True

    # Warnsdorff: most constrained neighbour first
    neighbors = state.onward_moves(row, col)
    neighbors.sort(key=lambda pos: len(state.onward_moves(pos[0], pos[1])))

    # some randomness so ties do not always resolve the same way
    if len(neighbors) > 1 and rng.next() < shuffle_chance:
        neighbors = rng.shuffle(neighbors)

    for nr, nc in neighbors:
        if _hamiltonian_dfs(state, nr, nc, target, rng, shuffle_chance):
            return True

    # Backtrack
    state.visited[idx] = False
    state.path.pop()
    return False


def find_hamiltonian_path(
    size: int,
    obstacles: Sequence[Pos],
    rng: SeededRandom,
    max_iterations: int = 50_000,
    shuffle_chance: float = 0.3,
) -> Optional[List[Pos]]:
    """
    Path through every non-obstacle cell, starting from a corner.

    Each corner gets its own step budget. Returns None when no corner
    yields a path within budget.
    """
    blocked = [False] * (size * size)
    for row, col in obstacles:
        blocked[row * size + col] = True
    total = size * size - sum(blocked)
    if total <= 0:
        return None

    # quick rejections: disconnected free cells, or checkerboard imbalance
    if not _free_cells_connected(size, blocked, total):
        return None
    balance = _colour_balance(size, blocked)
    if abs(balance) > 1:
        return None

    starts = rng.shuffle(corner_cells(size))
    tried: Set[Pos] = set()
    for start in starts:
        if start in tried or blocked[start[0] * size + start[1]]:
            continue
        tried.add(start)

        # with an odd cell count the path must start on the majority colour
        start_colour = 1 if (start[0] + start[1]) % 2 == 0 else -1
        if balance != 0 and start_colour != balance:
            continue

        state = _SearchState(size, blocked, max_iterations)
        if _hamiltonian_dfs(state, start[0], start[1], total, rng, shuffle_chance):
            logger.debug("Hamiltonian path from %s found in %s steps", start, state.iterations)
            return state.path
        logger.debug("No path from %s within %s steps", start, max_iterations)

    return None


def build_serpentine_path(size: int) -> List[Pos]:
    """Boustrophedon path: row 0 left to right, row 1 right to left, ..."""
    path = []
    for row in range(size):
        cols = range(size) if row % 2 == 0 else range(size - 1, -1, -1)
        path.extend((row, col) for col in cols)
    return path


# ============================================
# POINTS / SOLUTION
# ============================================

def place_points(path: List[Pos], num_points: int) -> List[Point]:
    """First point at the start, last at the end, the rest evenly spaced."""
    length = len(path)
    spacing = length // num_points

    points = []
    for i in range(num_points):
        if i == 0:
            index = 0
        elif i == num_points - 1:
            index = length - 1
        else:
            index = i * spacing
        row, col = path[index]
        points.append(Point(number=i + 1, row=row, col=col))
    return points


def build_solution(path: List[Pos], points: List[Point]) -> List[SolutionSegment]:
    """Slices of the path between consecutive points, endpoints included."""
    index_of = {pos: i for i, pos in enumerate(path)}
    indices = [index_of[p.as_tuple()] for p in points]

    solution = []
    for i in range(len(points) - 1):
        cells = path[indices[i]:indices[i + 1] + 1]
        solution.append(SolutionSegment(
            from_=points[i].number,
            to=points[i + 1].number,
            cells=[Position(row=r, col=c) for r, c in cells],
        ))
    return solution


# ============================================
# GENERATOR
# ============================================

class LevelGenerator:
    """
    Produces solvable levels.

    Pass a seeded `SeededRandom` to get reproducible output.
    """

    def __init__(
        self,
        rng: Optional[SeededRandom] = None,
        max_attempts: Optional[int] = None,
        max_iterations: Optional[int] = None,
        shuffle_chance: Optional[float] = None,
    ):
        self.rng = rng or SeededRandom()
        self.max_attempts = settings.GENERATOR_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.max_iterations = settings.GENERATOR_MAX_ITERATIONS if max_iterations is None else max_iterations
        self.shuffle_chance = settings.GENERATOR_SHUFFLE_CHANCE if shuffle_chance is None else shuffle_chance

    def generate(self, size: int = 6, num_points: int = 2, obstacle_percent: float = 0) -> Level:
        """
        Raises:
            GenerationError: parameters cannot produce a level
        """
        if size < 2:
            raise GenerationError(f"Grid size must be at least 2, got {size}")
        if num_points < 2:
            raise GenerationError(f"A level needs at least 2 points, got {num_points}")
        if num_points > size * size:
            raise GenerationError(f"{num_points} points do not fit on a {size}x{size} grid")
        if not 0 <= obstacle_percent <= 100:
            raise GenerationError(f"Obstacle percent must be within 0..100, got {obstacle_percent}")

        max_obstacles = math.floor(size * size * obstacle_percent / 100)

        for attempt in range(self.max_attempts):
            level = self._try_generate(size, num_points, max_obstacles)
            if level is not None:
                logger.debug("Generated %sx%s level on attempt %s", size, size, attempt + 1)
                return level

        logger.info(
            "No %sx%s level with %s obstacles after %s attempts, retrying without obstacles",
            size, size, max_obstacles, self.max_attempts,
        )
        level = self._try_generate(size, num_points, 0)
        if level is not None:
            return level

        logger.warning("Search failed on an empty %sx%s grid, using the serpentine path", size, size)
        return self._build_level(size, num_points, [], build_serpentine_path(size))

    def _try_generate(self, size: int, num_points: int, max_obstacles: int) -> Optional[Level]:
        obstacles = generate_obstacles(size, max_obstacles, self.rng)
        if size * size - len(obstacles) < num_points:
            return None

        path = find_hamiltonian_path(
            size,
            obstacles,
            self.rng,
            max_iterations=self.max_iterations,
            shuffle_chance=self.shuffle_chance,
        )
        if path is None:
            return None
        return self._build_level(size, num_points, obstacles, path)

    def _build_level(self, size: int, num_points: int, obstacles: List[Pos], path: List[Pos]) -> Level:
        points = place_points(path, num_points)
        solution = build_solution(path, points)
        return Level(
            id=f"random-{size}-{self.rng.next_int(0, 0xFFFFFF):06x}",
            name=f"Random {size}x{size}",
            size=size,
            difficulty=math.ceil(size / 4),
            points=points,
            obstacles=[Position(row=r, col=c) for r, c in obstacles],
            solution=solution,
        )

    def generate_preset(self, name: str) -> Level:
        preset = PRESETS[name]
        return self.generate(preset.size, preset.num_points, preset.obstacle_percent)


def generate_level(
    size: int = 6,
    num_points: int = 2,
    obstacle_percent: float = 0,
    seed: Optional[int] = None,
) -> Level:
    """Shortcut for a one-off LevelGenerator."""
    return LevelGenerator(SeededRandom(seed)).generate(size, num_points, obstacle_percent)


# ============================================
# VALIDATION
# ============================================

def solution_path(level: Level) -> List[Pos]:
    """Concatenation of the solution segments, junction cells counted once."""
    path: List[Pos] = []
    for segment in level.solution:
        cells = segment.cell_tuples()
        if path and cells and path[-1] == cells[0]:
            cells = cells[1:]
        path.extend(cells)
    return path


def validate_level(level: Level) -> Dict:
    """Checks that a level is a well-formed, fully covering puzzle."""
    errors = []
    size = level.size
    obstacles = level.obstacle_set()
    free_cells = size * size - len(obstacles)

    path = solution_path(level)
    visited = set(path)

    coverage = len(visited) / free_cells * 100 if free_cells else 0.0
    if len(path) != free_cells or len(visited) != free_cells:
        errors.append(f"Grid not fully covered: {coverage:.1f}% ({len(visited)}/{free_cells}), path length {len(path)}")

    for pos in path:
        if pos in obstacles:
            errors.append(f"Solution crosses obstacle {pos}")
        if not (0 <= pos[0] < size and 0 <= pos[1] < size):
            errors.append(f"Solution leaves the grid at {pos}")

    for i in range(len(path) - 1):
        if not are_adjacent(path[i], path[i + 1]):
            errors.append(f"Solution not orthogonal at step {i}")
            break

    expected = len(level.points) - 1
    if len(level.solution) != expected:
        errors.append(f"Expected {expected} solution segments, got {len(level.solution)}")

    by_number = {p.number: p.as_tuple() for p in level.points}
    for i, segment in enumerate(level.solution):
        if segment.from_ != i + 1 or segment.to != i + 2:
            errors.append(f"Segment {i} connects {segment.from_}->{segment.to}, expected {i + 1}->{i + 2}")
            continue
        cells = segment.cell_tuples()
        if not cells or cells[0] != by_number.get(segment.from_) or cells[-1] != by_number.get(segment.to):
            errors.append(f"Segment {segment.from_}->{segment.to} does not end on its points")

    index_of = {pos: i for i, pos in enumerate(path)}
    indices = [index_of.get(by_number[n], -1) for n in sorted(by_number)]
    if any(i < 0 for i in indices) or indices != sorted(indices):
        errors.append("Points are not in increasing order along the solution")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "coverage": coverage
    }


# ============================================
# CLI TESTING
# ============================================

if __name__ == "__main__":
    import time

    print("Amazeing Level Generator")
    print("=" * 60)

    generator = LevelGenerator(SeededRandom(2024))
    for preset_name, preset in PRESETS.items():
        start = time.time()
        result = generator.generate(preset.size, preset.num_points, preset.obstacle_percent)
        elapsed = (time.time() - start) * 1000

        validation = validate_level(result)
        status = "OK " if validation["valid"] else "BAD"
        print(f"\n{preset_name:7s} {status} | {elapsed:7.1f}ms")
        print(f"  Grid: {result.size}x{result.size}")
        print(f"  Points: {len(result.points)}  Obstacles: {len(result.obstacles)}")
        print(f"  Coverage: {validation['coverage']:.1f}%")

        if not validation["valid"]:
            for err in validation["errors"][:5]:
                print(f"     - {err}")

    print("\n" + "=" * 60)
