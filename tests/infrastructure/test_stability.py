"""Tests for StabilityTracker: debounce, coalescing and write stability."""

from __future__ import annotations

import pytest

from artiflow.domain.types import FileEventKind
from artiflow.infrastructure.stability import Snapshot, StabilityTracker, _coalesce

QUIET = 2.0


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStat:
    """Path -> (size, mtime_ns); absent paths do not exist."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[int, int]] = {}

    def __call__(self, path: str) -> Snapshot:
        return self.files.get(path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stat() -> FakeStat:
    return FakeStat()


@pytest.fixture
def tracker(clock: FakeClock, stat: FakeStat) -> StabilityTracker:
    return StabilityTracker(QUIET, clock=clock, stat=stat)


class TestCoalesce:
    @pytest.mark.parametrize(
        ("previous", "incoming", "expected"),
        [
            (FileEventKind.ADD, FileEventKind.CHANGE, FileEventKind.ADD),
            (FileEventKind.ADD, FileEventKind.REMOVE, FileEventKind.REMOVE),
            (FileEventKind.CHANGE, FileEventKind.CHANGE, FileEventKind.CHANGE),
            (FileEventKind.CHANGE, FileEventKind.REMOVE, FileEventKind.REMOVE),
            (FileEventKind.REMOVE, FileEventKind.ADD, FileEventKind.CHANGE),
            (FileEventKind.REMOVE, FileEventKind.CHANGE, FileEventKind.CHANGE),
        ],
    )
    def test_table(
        self, previous: FileEventKind, incoming: FileEventKind, expected: FileEventKind
    ) -> None:
        assert _coalesce(previous, incoming) is expected


class TestStabilityTracker:
    def test_not_due_before_quiet_window(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/a.md"] = (5, 1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        clock.advance(QUIET - 0.1)
        assert tracker.pop_due() == []
        assert len(tracker) == 1

    def test_released_after_quiet_window(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/a.md"] = (5, 1_000_000_000)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        clock.advance(QUIET)
        events = tracker.pop_due()
        assert len(events) == 1
        event = events[0]
        assert event.kind is FileEventKind.ADD
        assert event.path == "/w/a.md"
        assert event.size == 5
        assert event.mtime is not None
        assert event.mtime.timestamp() == 1.0
        assert len(tracker) == 0

    def test_new_notification_resets_timer(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/a.md"] = (5, 1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        clock.advance(QUIET - 0.5)
        tracker.notify(FileEventKind.CHANGE, "/w/a.md")
        clock.advance(QUIET - 0.5)
        assert tracker.pop_due() == []
        clock.advance(0.5)
        events = tracker.pop_due()
        assert [e.kind for e in events] == [FileEventKind.ADD]

    def test_still_growing_file_waits(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/big.png"] = (10, 1)
        tracker.notify(FileEventKind.ADD, "/w/big.png")
        stat.files["/w/big.png"] = (20, 2)
        clock.advance(QUIET)
        assert tracker.pop_due() == []
        clock.advance(QUIET)
        events = tracker.pop_due()
        assert len(events) == 1
        assert events[0].size == 20

    def test_remove_needs_no_stat(self, tracker: StabilityTracker, clock: FakeClock) -> None:
        tracker.notify(FileEventKind.REMOVE, "/w/gone.md")
        clock.advance(QUIET)
        events = tracker.pop_due()
        assert [(e.kind, e.size) for e in events] == [(FileEventKind.REMOVE, None)]

    def test_added_then_vanished_is_dropped(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/tmp.md"] = (1, 1)
        tracker.notify(FileEventKind.ADD, "/w/tmp.md")
        del stat.files["/w/tmp.md"]
        clock.advance(QUIET)
        assert tracker.pop_due() == []
        assert len(tracker) == 0

    def test_changed_then_vanished_is_removed(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/a.md"] = (1, 1)
        tracker.notify(FileEventKind.CHANGE, "/w/a.md")
        del stat.files["/w/a.md"]
        clock.advance(QUIET)
        assert [e.kind for e in tracker.pop_due()] == [FileEventKind.REMOVE]

    def test_oldest_first(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/b.md"] = (1, 1)
        stat.files["/w/a.md"] = (1, 1)
        tracker.notify(FileEventKind.ADD, "/w/b.md")
        clock.advance(0.1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        clock.advance(QUIET)
        assert [e.path for e in tracker.pop_due()] == ["/w/b.md", "/w/a.md"]

    def test_paths_tracked_independently(
        self, tracker: StabilityTracker, clock: FakeClock, stat: FakeStat
    ) -> None:
        stat.files["/w/a.md"] = (1, 1)
        stat.files["/w/b.md"] = (1, 1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        clock.advance(QUIET)
        tracker.notify(FileEventKind.ADD, "/w/b.md")
        assert [e.path for e in tracker.pop_due()] == ["/w/a.md"]
        assert len(tracker) == 1

    def test_clear(self, tracker: StabilityTracker, stat: FakeStat) -> None:
        stat.files["/w/a.md"] = (1, 1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        tracker.clear()
        assert len(tracker) == 0

    def test_zero_quiet_window(self, clock: FakeClock, stat: FakeStat) -> None:
        tracker = StabilityTracker(0, clock=clock, stat=stat)
        stat.files["/w/a.md"] = (1, 1)
        tracker.notify(FileEventKind.ADD, "/w/a.md")
        assert len(tracker.pop_due()) == 1
