"""
Tests for amazeing.services.generator

Kept to small grids and low obstacle densities so the search stays fast;
the larger presets are exercised by scripts/generate_levels.py --check.
"""

import pytest

from amazeing.schemas import Level, Point, Position, SolutionSegment
from amazeing.services.generator import (
    PRESETS,
    GenerationError,
    LevelGenerator,
    SeededRandom,
    build_serpentine_path,
    build_solution,
    corner_cells,
    find_hamiltonian_path,
    generate_level,
    generate_obstacles,
    get_presets,
    place_points,
    preset_for_size,
    solution_path,
    validate_level,
)
from amazeing.services.grid import are_adjacent


def assert_hamiltonian(path, size, obstacles=()):
    free = {(r, c) for r in range(size) for c in range(size)} - set(obstacles)
    assert len(path) == len(free)
    assert set(path) == free
    assert all(are_adjacent(a, b) for a, b in zip(path, path[1:]))


# ─────────────────────────────────────────────
# SeededRandom
# ─────────────────────────────────────────────

class TestSeededRandom:

    def test_same_seed_when_drawn_then_same_sequence(self):
        a, b = SeededRandom(1234), SeededRandom(1234)

        assert [a.next() for _ in range(20)] == [b.next() for _ in range(20)]

    def test_next_stays_in_unit_interval(self):
        rng = SeededRandom(99)

        assert all(0 <= rng.next() < 1 for _ in range(1000))

    def test_next_int_is_inclusive(self):
        rng = SeededRandom(5)
        values = {rng.next_int(2, 4) for _ in range(500)}

        assert values == {2, 3, 4}
        assert rng.next_int(7, 3) == 7

    def test_shuffle_returns_permutation_copy(self):
        rng = SeededRandom(3)
        items = list(range(10))

        shuffled = rng.shuffle(items)

        assert sorted(shuffled) == items
        assert items == list(range(10))

    def test_choice_when_empty_then_none(self):
        assert SeededRandom(1).choice([]) is None
        assert SeededRandom(1).choice(["only"]) == "only"

    def test_unseeded_instances_pick_a_seed(self):
        rng = SeededRandom()

        assert isinstance(rng.seed, int)
        assert 0 <= rng.seed < 2 ** 31


# ─────────────────────────────────────────────
# Obstacles and path search
# ─────────────────────────────────────────────

class TestObstacles:

    def test_generate_obstacles_when_requested_then_interior_only(self):
        obstacles = generate_obstacles(8, 6, SeededRandom(11))

        assert len(obstacles) == len(set(obstacles)) == 6
        assert not set(obstacles) & set(corner_cells(8))
        assert all(1 <= r <= 6 and 1 <= c <= 6 for r, c in obstacles)

    def test_generate_obstacles_when_no_interior_then_empty(self):
        assert generate_obstacles(2, 3, SeededRandom(1)) == []
        assert generate_obstacles(6, 0, SeededRandom(1)) == []

    def test_generate_obstacles_when_more_than_interior_then_capped(self):
        obstacles = generate_obstacles(3, 5, SeededRandom(1))

        assert obstacles in ([], [(1, 1)])


class TestHamiltonianSearch:

    def test_find_path_when_empty_grid_then_covers_every_cell(self):
        path = find_hamiltonian_path(6, [], SeededRandom(8))

        assert_hamiltonian(path, 6)
        assert path[0] in corner_cells(6)

    def test_find_path_when_budget_tiny_then_none(self):
        assert find_hamiltonian_path(6, [], SeededRandom(8), max_iterations=10) is None

    def test_find_path_when_free_cells_disconnected_then_none(self):
        """(0,0) is cut off by the two obstacles next to it."""
        assert find_hamiltonian_path(3, [(0, 1), (1, 0)], SeededRandom(1)) is None

    def test_find_path_when_colours_unbalanced_then_none(self):
        assert find_hamiltonian_path(4, [(1, 1), (2, 2)], SeededRandom(1)) is None

    def test_find_path_when_odd_cell_count_then_starts_on_majority_colour(self):
        obstacles = [(1, 1)]

        path = find_hamiltonian_path(4, obstacles, SeededRandom(2))

        assert_hamiltonian(path, 4, obstacles)
        assert path[0] in ((0, 3), (3, 0))

    def test_serpentine_path_alternates_direction(self):
        path = build_serpentine_path(3)

        assert path == [(0, 0), (0, 1), (0, 2), (1, 2), (1, 1), (1, 0), (2, 0), (2, 1), (2, 2)]
        assert_hamiltonian(build_serpentine_path(7), 7)


# ─────────────────────────────────────────────
# Points and solution
# ─────────────────────────────────────────────

class TestPointsAndSolution:

    def test_place_points_spreads_along_path(self):
        path = [(0, c) for c in range(10)]

        points = place_points(path, 4)

        assert [p.number for p in points] == [1, 2, 3, 4]
        assert [p.col for p in points] == [0, 2, 4, 9]

    def test_build_solution_shares_junction_cells(self):
        path = [(0, c) for c in range(5)]
        points = [Point(number=1, row=0, col=0), Point(number=2, row=0, col=2), Point(number=3, row=0, col=4)]

        solution = build_solution(path, points)

        assert [s.cell_tuples() for s in solution] == [
            [(0, 0), (0, 1), (0, 2)],
            [(0, 2), (0, 3), (0, 4)],
        ]
        assert [(s.from_, s.to) for s in solution] == [(1, 2), (2, 3)]


# ─────────────────────────────────────────────
# LevelGenerator
# ─────────────────────────────────────────────

class TestLevelGenerator:

    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_generate_when_6x6_without_obstacles_then_valid(self, seed):
        level = LevelGenerator(SeededRandom(seed)).generate(6, 2, 0)

        assert level.size == 6
        assert level.obstacles == []
        assert len(level.points) == 2
        assert validate_level(level) == {"valid": True, "errors": [], "coverage": 100.0}
        assert len(solution_path(level)) == 36

    @pytest.mark.parametrize("size, num_points, percent, seed", [
        (6, 3, 5, 21),
        (8, 4, 5, 22),
        (8, 4, 5, 23),
    ])
    def test_generate_when_obstacles_then_solution_covers_free_cells(self, size, num_points, percent, seed):
        level = LevelGenerator(SeededRandom(seed)).generate(size, num_points, percent)

        obstacles = level.obstacle_set()
        path = solution_path(level)
        assert_hamiltonian(path, size, obstacles)
        assert not obstacles & set(corner_cells(size))
        assert validate_level(level)["valid"]

        index_of = {pos: i for i, pos in enumerate(path)}
        indices = [index_of[p.as_tuple()] for p in sorted(level.points, key=lambda p: p.number)]
        assert indices == sorted(indices)
        assert indices[0] == 0 and indices[-1] == len(path) - 1

    def test_generate_when_same_seed_then_same_level(self):
        first = LevelGenerator(SeededRandom(77)).generate(6, 3, 5)
        second = LevelGenerator(SeededRandom(77)).generate(6, 3, 5)

        assert first.model_dump() == second.model_dump()

    def test_generate_sets_metadata(self):
        level = generate_level(8, 4, 0, seed=9)

        assert level.id.startswith("random-8-")
        assert level.name == "Random 8x8"
        assert level.difficulty == 2

    def test_generate_when_search_always_fails_then_serpentine(self):
        generator = LevelGenerator(SeededRandom(1), max_attempts=1, max_iterations=1)

        level = generator.generate(5, 3, 10)

        assert level.obstacles == []
        assert solution_path(level) == build_serpentine_path(5)
        assert validate_level(level)["valid"]

    def test_generate_when_zero_attempts_then_straight_to_empty_grid(self):
        generator = LevelGenerator(SeededRandom(1), max_attempts=0)

        level = generator.generate(5, 2, 10)

        assert generator.max_attempts == 0
        assert level.obstacles == []
        assert validate_level(level)["valid"]

    @pytest.mark.parametrize("size, num_points, percent", [
        (1, 2, 0),
        (6, 1, 0),
        (3, 10, 0),
        (6, 2, 150),
        (6, 2, -1),
    ])
    def test_generate_when_parameters_impossible_then_generation_error(self, size, num_points, percent):
        with pytest.raises(GenerationError):
            LevelGenerator(SeededRandom(1)).generate(size, num_points, percent)

    def test_generate_preset_easy(self):
        level = LevelGenerator(SeededRandom(4)).generate_preset("easy")

        assert level.size == 6 and len(level.points) == 2

    def test_generate_preset_when_unknown_then_key_error(self):
        with pytest.raises(KeyError):
            LevelGenerator(SeededRandom(4)).generate_preset("nightmare")


class TestPresets:

    @pytest.mark.parametrize("size, points, percent", [
        (6, 2, 0),
        (8, 4, 5),
        (10, 4, 8),
        (12, 8, 10),
    ])
    def test_preset_for_size(self, size, points, percent):
        preset = preset_for_size(size)

        assert (preset.num_points, preset.obstacle_percent) == (points, percent)

    def test_get_presets_returns_copy(self):
        presets = get_presets()
        presets.pop("easy")

        assert set(PRESETS) == {"easy", "medium", "hard", "expert"}


# ─────────────────────────────────────────────
# validate_level
# ─────────────────────────────────────────────

class TestValidateLevel:

    def test_validate_when_path_misses_cells_then_invalid(self):
        level = Level(
            id="partial",
            name="Partial",
            size=3,
            points=[Point(number=1, row=0, col=0), Point(number=2, row=0, col=2)],
            solution=[SolutionSegment(from_=1, to=2, cells=[Position(row=0, col=c) for c in range(3)])],
        )

        result = validate_level(level)

        assert not result["valid"]
        assert result["coverage"] == pytest.approx(100 * 3 / 9)
        assert "not fully covered" in result["errors"][0]

    def test_validate_when_segment_jumps_then_invalid(self):
        cells = build_serpentine_path(2)
        cells[1], cells[2] = cells[2], cells[1]
        level = Level(
            id="jump",
            name="Jump",
            size=2,
            points=[Point(number=1, row=0, col=0), Point(number=2, row=cells[-1][0], col=cells[-1][1])],
            solution=[SolutionSegment(from_=1, to=2, cells=[Position(row=r, col=c) for r, c in cells])],
        )

        result = validate_level(level)

        assert not result["valid"]
        assert any("not orthogonal" in e for e in result["errors"])
