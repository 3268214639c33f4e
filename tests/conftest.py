import pytest

from amazeing.schemas import Level, LevelPack, Point, Position, SolutionSegment
from amazeing.services.events import EventBus
from amazeing.services.path_engine import PathEngine
from amazeing.services.session import PuzzleSession
from amazeing.storage import MemoryStore


# Common helpers

def make_level(size=6, points=None, obstacles=(), segments=(), level_id="test-level", name="Test"):
    """Level from plain tuples: points as (number, row, col), segments as (from, to, cells)."""
    points = points or [(1, 0, 0), (2, size - 1, size - 1)]
    return Level(
        id=level_id,
        name=name,
        size=size,
        points=[Point(number=n, row=r, col=c) for n, r, c in points],
        obstacles=[Position(row=r, col=c) for r, c in obstacles],
        solution=[
            SolutionSegment(from_=a, to=b, cells=[Position(row=r, col=c) for r, c in cells])
            for a, b, cells in segments
        ],
    )


def make_pack(pack_id="pack1", count=3, size=6):
    levels = [make_level(size=size, level_id=f"{pack_id}-level-{i + 1}", name=f"Level {i + 1}") for i in range(count)]
    return LevelPack(pack_id=pack_id, pack_name=pack_id.title(), grid_size=size, levels=levels)


# Row 0 left to right, then down the last column
TWO_POINT_ROUTE = [(0, c) for c in range(6)] + [(r, 5) for r in range(1, 6)]

# 4x4: 1 at (0,0), 2 at (0,3), 3 at (3,3); obstacle at (2,1)
THREE_POINT_SEGMENT_1 = [(0, 0), (0, 1), (0, 2), (0, 3)]
THREE_POINT_SEGMENT_2 = [(0, 3), (1, 3), (2, 3), (3, 3)]


@pytest.fixture
def two_point_level():
    return make_level(
        size=6,
        points=[(1, 0, 0), (2, 5, 5)],
        segments=[(1, 2, TWO_POINT_ROUTE)],
    )


@pytest.fixture
def three_point_level():
    return make_level(
        size=4,
        points=[(1, 0, 0), (2, 0, 3), (3, 3, 3)],
        obstacles=[(2, 1)],
        segments=[(1, 2, THREE_POINT_SEGMENT_1), (2, 3, THREE_POINT_SEGMENT_2)],
        level_id="three-points",
    )


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorded_events(bus):
    """Every event emitted on `bus`, in order."""
    events = []
    bus.subscribe("*", events.append)
    return events


@pytest.fixture
def engine(two_point_level, bus):
    return PathEngine(PuzzleSession.from_level(two_point_level), bus)


@pytest.fixture
def engine3(three_point_level, bus):
    return PathEngine(PuzzleSession.from_level(three_point_level), bus)


@pytest.fixture
def memory_store():
    return MemoryStore()


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


def draw(engine, cells):
    """Extend the active path through `cells`, returning every result."""
    return [engine.try_extend(r, c) for r, c in cells]
