"""Per-path debounce and write-stability tracking.

Raw filesystem notifications arrive in bursts (an editor save can produce
created + several modified events).  The tracker coalesces them per path
and releases one :class:`FileEvent` once the path has been quiet for
``quiet_seconds`` AND its size/mtime snapshot stopped changing between two
checks.  Any new notification for a path resets its timer.

The clock and stat functions are injectable so timing is testable without
sleeping.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from artiflow.domain.models import FileEvent
from artiflow.domain.types import FileEventKind

# (size, mtime_ns) or None when the path does not exist.
Snapshot = tuple[int, int] | None


def stat_snapshot(path: str) -> Snapshot:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_size, st.st_mtime_ns


@dataclass
class _Pending:
    kind: FileEventKind
    last_seen: float
    snapshot: Snapshot


def _coalesce(previous: FileEventKind, incoming: FileEventKind) -> FileEventKind:
    """Collapse two notifications for one path into the kind to report."""
    if incoming is FileEventKind.REMOVE:
        return FileEventKind.REMOVE
    if previous is FileEventKind.REMOVE:
        # Deleted then recreated inside one quiet window.
        return FileEventKind.CHANGE
    if previous is FileEventKind.ADD:
        return FileEventKind.ADD
    return incoming


class StabilityTracker:
    """Thread-safe map of paths waiting to settle.

    Args:
        quiet_seconds: Minimum silence before a path is considered.
        clock: Monotonic time source, seconds.
        stat: Snapshot function for stability checks.
    """

    def __init__(
        self,
        quiet_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        stat: Callable[[str], Snapshot] = stat_snapshot,
    ) -> None:
        self._quiet = max(quiet_seconds, 0.0)
        self._clock = clock
        self._stat = stat
        self._pending: dict[str, _Pending] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def notify(self, kind: FileEventKind, path: str) -> None:
        """Record a raw notification; resets the path's quiet timer."""
        now = self._clock()
        snapshot = None if kind is FileEventKind.REMOVE else self._stat(path)
        with self._lock:
            entry = self._pending.get(path)
            if entry is None:
                self._pending[path] = _Pending(kind=kind, last_seen=now, snapshot=snapshot)
            else:
                entry.kind = _coalesce(entry.kind, kind)
                entry.last_seen = now
                entry.snapshot = snapshot

    def pop_due(self) -> list[FileEvent]:
        """Release every settled path as a FileEvent, oldest first.

        A path whose snapshot moved since it was last checked gets a fresh
        quiet window instead.  An added file that vanished before settling
        is dropped; a changed one is reported as removed.
        """
        now = self._clock()
        with self._lock:
            due = [
                (path, entry)
                for path, entry in self._pending.items()
                if now - entry.last_seen >= self._quiet
            ]
            due.sort(key=lambda item: item[1].last_seen)

            events: list[FileEvent] = []
            for path, entry in due:
                if entry.kind is FileEventKind.REMOVE:
                    del self._pending[path]
                    events.append(_make_event(FileEventKind.REMOVE, path, None))
                    continue

                current = self._stat(path)
                if current is None:
                    del self._pending[path]
                    if entry.kind is FileEventKind.CHANGE:
                        events.append(_make_event(FileEventKind.REMOVE, path, None))
                    continue
                if current != entry.snapshot:
                    entry.snapshot = current
                    entry.last_seen = now
                    continue

                del self._pending[path]
                events.append(_make_event(entry.kind, path, current))
            return events

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()


def _make_event(kind: FileEventKind, path: str, snapshot: Snapshot) -> FileEvent:
    size: int | None = None
    mtime: datetime | None = None
    if snapshot is not None:
        size = snapshot[0]
        mtime = datetime.fromtimestamp(snapshot[1] / 1_000_000_000, UTC)
    return FileEvent(kind=kind, path=path, timestamp=datetime.now(UTC), size=size, mtime=mtime)
