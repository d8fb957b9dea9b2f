"""ArtifactWatcher - watchdog observer feeding the classify → store pipeline.

Thread layout while active::

    watchdog observer ──notify──▶ StabilityTracker
    poller thread ──pop_due──▶ queue.Queue ──▶ worker thread ──▶ subscribers

Only the worker classifies and stores, so pipeline work for one storage
root is serialized.  Subscriber and pipeline failures are reported as
notices; the worker loop itself never dies.

States: idle → active → stopping → idle.
"""

from __future__ import annotations

import fnmatch
import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from artiflow.config.models import FLOW_CONFIG_FILENAME
from artiflow.domain.classifier import Classifier, context_from_file_content
from artiflow.domain.models import Artifact, ClassificationResult, FileEvent
from artiflow.domain.types import FileEventKind
from artiflow.errors import WatcherError
from artiflow.infrastructure.filesystem import MANAGED_DIRS, read_source_file
from artiflow.infrastructure.stability import StabilityTracker

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from artiflow.config.models import FlowConfig
    from artiflow.infrastructure.storage import StorageManager

logger = logging.getLogger(__name__)
log = structlog.get_logger("artiflow.pipeline")

SUPPORTED_EXTENSIONS = frozenset(
    {
        ".md", ".mdx", ".txt",
        ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg",
        ".json", ".yaml", ".yml",
        ".ts", ".tsx", ".js", ".jsx", ".py",
        ".arc",
    }
)  # fmt: skip

# Files classified below this are reported, not stored.
STORE_CONFIDENCE_FLOOR = 0.5
WATCHER_WORKSPACE = "watcher"
POLL_INTERVAL_SECONDS = 0.1


class WatcherState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPING = "stopping"


class NoticeKind(StrEnum):
    """What a subscriber is being told about."""

    FILE = "file"
    ARTIFACT = "artifact"
    LOW_CONFIDENCE = "low_confidence"
    ERROR = "error"


@dataclass(frozen=True)
class PipelineEvent:
    """One notice delivered to subscribers.

    ``created`` is only set for ``artifact`` notices (False on a dedup hit);
    ``error`` only for ``error`` notices.
    """

    kind: NoticeKind
    event: FileEvent | None = None
    artifact: Artifact | None = None
    classification: ClassificationResult | None = None
    created: bool | None = None
    error: str | None = None


Subscriber = Callable[[PipelineEvent], None]

_STOP = object()


# ---------------------------------------------------------------------------
# Path filtering
# ---------------------------------------------------------------------------


def normalize_path(path: str | Path) -> str:
    return str(path).replace("\\", "/")


def normalize_watch_path(path: str | Path) -> str:
    """Absolute, forward-slash form of a watch root."""
    return normalize_path(Path(path).expanduser().resolve())


def is_supported(path: str) -> bool:
    return PurePosixPath(path).suffix.lower() in SUPPORTED_EXTENSIONS


def is_ignored(path: str, patterns: list[str], roots: list[str]) -> bool:
    """Glob-match *path* against *patterns*.

    Matching runs against the path relative to its watch root, prefixed
    with ``/`` so ``**/x/**`` style patterns also match at the top level.
    A watch root that itself sits under e.g. ``build/`` is not ignored.
    """
    candidates = [path]
    for root in roots:
        prefix = root.rstrip("/") + "/"
        if path.startswith(prefix):
            candidates = ["/" + path[len(prefix) :]]
            break
    return any(fnmatch.fnmatch(c, pattern) for c in candidates for pattern in patterns)


def is_managed(path: str, storage_root: str) -> bool:
    """True for files artiflow writes itself under *storage_root*.

    Covers the category subtrees, inbox, archive, index and the persisted
    flow config.  Anything else under the root (a drop folder) is fair game.
    """
    prefix = storage_root.rstrip("/") + "/"
    if not path.startswith(prefix):
        return False
    head = path[len(prefix) :].split("/", 1)[0]
    return head in MANAGED_DIRS or head == FLOW_CONFIG_FILENAME


# ---------------------------------------------------------------------------
# watchdog bridge
# ---------------------------------------------------------------------------


class _WatchdogHandler(FileSystemEventHandler):
    """Translate watchdog callbacks into tracker notifications."""

    def __init__(self, watcher: ArtifactWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(FileEventKind.ADD, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(FileEventKind.CHANGE, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(FileEventKind.REMOVE, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._watcher.notify(FileEventKind.REMOVE, event.src_path)
        self._watcher.notify(FileEventKind.ADD, event.dest_path)


def _decode(path: str | bytes) -> str:
    return path.decode() if isinstance(path, bytes) else path


# ---------------------------------------------------------------------------
# ArtifactWatcher
# ---------------------------------------------------------------------------


class ArtifactWatcher:
    """Watch directories and push stable file changes through the pipeline.

    Parameters:
        config: Watch paths, ignore globs and timing.
        classifier: Rule engine used for every event.
        storage: Where confident results are stored.  Without it the
            watcher only emits ``file`` notices.
        clock: Monotonic time source handed to the tracker.
        poll_interval: Seconds between tracker polls.
    """

    def __init__(
        self,
        config: FlowConfig,
        classifier: Classifier,
        storage: StorageManager | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._config = config
        self._classifier = classifier
        self._storage = storage
        self._watch_paths: list[str] = [normalize_watch_path(p) for p in config.watch_paths]
        self._storage_root = normalize_watch_path(
            storage.root if storage is not None else config.storage_root
        )
        self._subscribers: list[Subscriber] = []
        self._state = WatcherState.IDLE
        self._state_lock = threading.RLock()
        self._poll_interval = poll_interval

        quiet = max(config.debounce_seconds, config.stability_seconds)
        self._tracker = StabilityTracker(quiet, clock=clock)
        self._queue: queue.Queue[object] = queue.Queue()
        self._observer: BaseObserver | None = None
        self._poller: threading.Thread | None = None
        self._worker: threading.Thread | None = None
        self._stop_polling = threading.Event()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> WatcherState:
        return self._state

    def running(self) -> bool:
        return self._state is WatcherState.ACTIVE

    @property
    def watch_paths(self) -> list[str]:
        return list(self._watch_paths)

    @property
    def tracker(self) -> StabilityTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def connect_storage(self, storage: StorageManager) -> None:
        self._storage = storage
        self._storage_root = normalize_watch_path(storage.root)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for every notice.  Returns an unsubscribe function.

        Callbacks run on the worker thread and may call :meth:`stop` or
        :meth:`add_watch_path`.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def add_watch_path(self, path: str | Path) -> None:
        """Watch another directory; scheduled immediately when active."""
        normalized = normalize_watch_path(path)
        with self._state_lock:
            if normalized in self._watch_paths:
                return
            self._watch_paths.append(normalized)
            if self._observer is not None and self._state is WatcherState.ACTIVE:
                self._schedule(self._observer, normalized)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin watching.  No-op when already active.

        Raises:
            WatcherError: No watch paths, or one of them is not a directory.
                The watcher stays idle.
        """
        with self._state_lock:
            if self._state is WatcherState.ACTIVE:
                return
            if self._state is WatcherState.STOPPING:
                msg = "Watcher is still stopping"
                raise WatcherError(msg)
            if not self._watch_paths:
                msg = "No watch paths configured"
                raise WatcherError(msg)
            missing = [p for p in self._watch_paths if not Path(p).is_dir()]
            if missing:
                msg = f"Watch path is not a directory: {', '.join(missing)}"
                raise WatcherError(msg)

            observer = Observer()
            for path in self._watch_paths:
                self._schedule(observer, path)
            try:
                observer.start()
            except OSError as exc:
                msg = f"Cannot start file observer: {exc}"
                raise WatcherError(msg) from exc

            self._observer = observer
            self._queue = queue.Queue()
            self._stop_polling = threading.Event()
            self._worker = threading.Thread(
                target=self._work_loop, args=(self._queue,), name="artiflow-worker", daemon=True
            )
            self._poller = threading.Thread(
                target=self._poll_loop,
                args=(self._queue, self._stop_polling),
                name="artiflow-poller",
                daemon=True,
            )
            self._worker.start()
            self._poller.start()
            self._state = WatcherState.ACTIVE
        log.info("watcher_started", paths=self.watch_paths)

    def stop(self) -> None:
        """Stop watching, finish already-queued events, return to idle.

        Notifications still settling in the tracker are discarded.  Safe to
        call repeatedly, and from a subscriber: the worker is then left to
        exit on its own once the current notice is delivered.
        """
        with self._state_lock:
            if self._state is not WatcherState.ACTIVE:
                return
            self._state = WatcherState.STOPPING
            observer, self._observer = self._observer, None
            poller, self._poller = self._poller, None
            worker, self._worker = self._worker, None
            work, done = self._queue, self._stop_polling

        # Threads are joined outside the lock; subscribers may call back in.
        if observer is not None:
            observer.stop()
            observer.join()
        done.set()
        if poller is not None:
            poller.join()
        self._tracker.clear()

        work.put(_STOP)
        if worker is not None and worker is not threading.current_thread():
            worker.join()

        with self._state_lock:
            self._state = WatcherState.IDLE
        log.info("watcher_stopped")

    def _schedule(self, observer: BaseObserver, path: str) -> None:
        observer.schedule(_WatchdogHandler(self), path, recursive=True)

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def notify(self, kind: FileEventKind, path: str | bytes) -> None:
        """Feed one raw notification; filtered paths are dropped here."""
        normalized = normalize_path(_decode(path))
        if not is_supported(normalized):
            return
        if is_managed(normalized, self._storage_root):
            return
        if is_ignored(normalized, self._config.ignored_patterns, self._watch_paths):
            return
        self._tracker.notify(kind, normalized)

    def _poll_loop(self, work: queue.Queue[object], done: threading.Event) -> None:
        while not done.wait(self._poll_interval):
            for event in self._tracker.pop_due():
                work.put(event)

    def _work_loop(self, work: queue.Queue[object]) -> None:
        while True:
            item = work.get()
            if item is _STOP:
                return
            assert isinstance(item, FileEvent)
            self.handle_event(item)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def handle_event(self, event: FileEvent) -> None:
        """Emit the ``file`` notice and run the pipeline for add/change.

        Never raises; failures become ``error`` notices.
        """
        self._emit(PipelineEvent(kind=NoticeKind.FILE, event=event))
        if self._storage is None or event.kind is FileEventKind.REMOVE:
            return
        try:
            notice = self.process_event(event)
        except Exception as exc:
            log.warning("pipeline_failed", path=event.path, error=str(exc))
            notice = PipelineEvent(kind=NoticeKind.ERROR, event=event, error=str(exc))
        self._emit(notice)

    def process_event(self, event: FileEvent) -> PipelineEvent:
        """Read, classify and (when confident enough) store one file.

        Raises:
            WatcherError: No storage is connected.
            OSError / StorageError: Reading or storing failed.
        """
        if self._storage is None:
            msg = "No storage connected"
            raise WatcherError(msg)

        path = Path(event.path)
        content = read_source_file(path)

        ctx = context_from_file_content(event.path, content)
        result = self._classifier.classify(ctx)

        if result.confidence < STORE_CONFIDENCE_FLOOR:
            log.info(
                "low_confidence",
                path=event.path,
                category=result.category.value,
                confidence=result.confidence,
            )
            return PipelineEvent(
                kind=NoticeKind.LOW_CONFIDENCE, event=event, classification=result
            )

        outcome = self._storage.store(
            content,
            path.name,
            result,
            source_path=event.path,
            source_workspace=WATCHER_WORKSPACE,
        )
        log.info(
            "artifact_stored" if outcome.created else "artifact_duplicate",
            path=event.path,
            artifact_id=outcome.artifact.id,
            category=result.category.value,
            confidence=result.confidence,
        )
        return PipelineEvent(
            kind=NoticeKind.ARTIFACT,
            event=event,
            artifact=outcome.artifact,
            classification=result,
            created=outcome.created,
        )

    def _emit(self, notice: PipelineEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception:
                logger.warning("Watcher subscriber failed on %s notice", notice.kind, exc_info=True)
