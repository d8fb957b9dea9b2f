"""StorageManager - content-addressed artifact store with an on-disk index.

The manager owns the in-memory catalog and the storage root.  Every
mutation runs inside :meth:`StorageManager.transaction`, which coordinates
file writes and the index rewrite so that if either fails, both roll back:

- **Files**: compensation-based. Created files are deleted, replaced files
  are restored from backup, moved files are moved back.
- **Index**: the in-memory catalog is snapshotted on entry and restored on
  failure; the on-disk catalog is only rewritten after the caller's block
  succeeds, atomically.

All of it runs under one re-entrant lock, so the watcher worker and a
foreground caller never interleave "read index, mutate, persist".
"""

from __future__ import annotations

import logging
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from artiflow.config.models import FlowConfig, write_flow_config
from artiflow.domain.ids import compute_checksum, generate_artifact_id
from artiflow.domain.models import (
    Artifact,
    ClassificationResult,
    SearchHit,
    SearchOptions,
    StorageStats,
    StoreOutcome,
    unique_tags,
)
from artiflow.domain.types import ArtifactCategory
from artiflow.errors import StorageError
from artiflow.infrastructure.filesystem import (
    archive_path,
    atomic_write,
    create_skeleton,
    derive_storage_path,
    disambiguate,
    index_path,
    resolve_storage_path,
    sanitize_file_name,
    to_bytes,
)
from artiflow.infrastructure.index import load_index, save_index

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10

# Scores for the free-text part of a search.
SCORE_FILE_NAME = 1.0
SCORE_FIELD = 0.8
SCORE_WORD = 0.5


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# File operation tracking for compensation-based rollback
# ---------------------------------------------------------------------------


@dataclass
class _FileOp:
    """A tracked file change within a storage transaction.

    Exactly one shape applies: a write (``backup`` holds the previous bytes,
    or None for a fresh file) or a move (``moved_from`` is the source).
    """

    path: Path
    backup: bytes | None = None
    moved_from: Path | None = None

    def rollback(self) -> None:
        """Undo this file operation (best-effort)."""
        try:
            if self.moved_from is not None:
                self.moved_from.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(self.path, self.moved_from)
            elif self.backup is not None:
                atomic_write(self.path, self.backup)
            else:
                self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to rollback file operation: %s", self.path)


@dataclass
class StorageTransaction:
    """Tracked file I/O for one mutation.

    All file changes must go through :meth:`write_file` or
    :meth:`move_file` so the manager can compensate on rollback.
    """

    root: Path
    file_ops: list[_FileOp] = field(default_factory=list, repr=False)

    def write_file(self, path: Path, data: bytes) -> None:
        """Write *data* to *path*, backing up any existing file first."""
        backup = path.read_bytes() if path.is_file() else None
        atomic_write(path, data)
        self.file_ops.append(_FileOp(path=path, backup=backup))

    def move_file(self, source: Path, target: Path) -> None:
        """Move *source* to *target*, creating parents as needed."""
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(source, target)
        self.file_ops.append(_FileOp(path=target, moved_from=source))

    def rollback(self) -> None:
        for op in reversed(self.file_ops):
            op.rollback()


# ---------------------------------------------------------------------------
# StorageManager
# ---------------------------------------------------------------------------


class StorageManager:
    """Stores, indexes and retrieves artifacts under ``config.storage_root``.

    Call :meth:`initialize` before anything else; until then the catalog is
    empty and the directory skeleton may not exist.
    """

    def __init__(self, config: FlowConfig) -> None:
        self._config = config
        self._artifacts: dict[str, Artifact] = {}
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._config.storage_root

    @property
    def config(self) -> FlowConfig:
        return self._config

    @property
    def index_path(self) -> Path:
        return index_path(self.root)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create the skeleton, reload the catalog, persist the config.

        Idempotent.  The catalog is fully replaced by what is on disk.
        """
        with self._lock:
            try:
                create_skeleton(self.root)
                self._artifacts = load_index(self.index_path)
                write_flow_config(self._config)
            except OSError as exc:
                msg = f"Cannot initialize storage root {self.root}: {exc}"
                raise StorageError("STORAGE_IO", msg, path=str(self.root)) from exc
        logger.debug("Storage ready at %s (%d artifacts)", self.root, len(self._artifacts))

    def update_config(self, **changes: Any) -> FlowConfig:
        """Apply *changes* to the flow config and persist it if anything changed."""
        with self._lock:
            updated = FlowConfig.model_validate({**self._config.model_dump(), **changes})
            if updated == self._config:
                return self._config
            try:
                write_flow_config(updated)
            except OSError as exc:
                msg = f"Cannot write flow config: {exc}"
                raise StorageError("STORAGE_IO", msg, path=str(self.root)) from exc
            self._config = updated
            return updated

    @contextmanager
    def transaction(self) -> Iterator[StorageTransaction]:
        """Coordinated file + index mutation.

        On success the index is persisted.  On any failure, tracked file
        operations are compensated in reverse order, the in-memory catalog
        is restored, and the error propagates (``OSError`` wrapped in
        :class:`StorageError` with code ``STORAGE_IO``).

        Usage::

            with storage.transaction() as txn:
                txn.write_file(path, data)
                storage._artifacts[artifact.id] = artifact
        """
        with self._lock:
            snapshot = dict(self._artifacts)
            txn = StorageTransaction(root=self.root)
            try:
                yield txn
                save_index(self.index_path, self._artifacts)
            except BaseException as exc:
                txn.rollback()
                self._artifacts = snapshot
                if isinstance(exc, OSError):
                    msg = f"Storage I/O failed: {exc}"
                    raise StorageError("STORAGE_IO", msg, path=exc.filename) from exc
                raise

    # ------------------------------------------------------------------
    # Path derivation
    # ------------------------------------------------------------------

    def derive_storage_path(self, file_name: str, result: ClassificationResult) -> str:
        """Canonical root-relative path for *file_name* under *result*.

        Raises:
            StorageError: ``INVALID_PATH`` when the path would leave the root.
        """
        storage_path = derive_storage_path(file_name, result)
        resolve_storage_path(self.root, storage_path)
        return storage_path

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def find_by_checksum(self, checksum: str) -> Artifact | None:
        with self._lock:
            return next((a for a in self._artifacts.values() if a.checksum == checksum), None)

    def store(
        self,
        content: str | bytes,
        file_name: str,
        result: ClassificationResult,
        *,
        source_path: str | None = None,
        source_workspace: str | None = None,
        overwrite: bool = False,
    ) -> StoreOutcome:
        """Store *content* as a new artifact classified by *result*.

        Identical content already in the catalog is returned as-is
        (``created=False``) unless *overwrite* is set, in which case the
        earlier records with the same checksum or target path are superseded.
        """
        data = to_bytes(content)
        checksum = compute_checksum(data)
        name = sanitize_file_name(file_name)

        with self._lock:
            if not overwrite:
                existing = self.find_by_checksum(checksum)
                if existing is not None:
                    logger.debug("Duplicate content %s matches %s", name, existing.id)
                    return StoreOutcome(artifact=existing, created=False)

            storage_path = self.derive_storage_path(name, result)
            with self.transaction() as txn:
                if overwrite:
                    self._supersede(txn, checksum, storage_path)
                elif self._path_taken(storage_path):
                    storage_path = disambiguate(storage_path, checksum)

                txn.write_file(resolve_storage_path(self.root, storage_path), data)
                now = _utcnow()
                artifact = Artifact(
                    id=generate_artifact_id(),
                    file_name=name,
                    original_path=source_path,
                    storage_path=storage_path,
                    category=result.category,
                    subcategory=result.subcategory,
                    element=result.element,
                    gate=result.gate,
                    owner=result.owner,
                    tags=list(result.tags),
                    metadata=dict(result.metadata),
                    created_at=now,
                    updated_at=now,
                    source_workspace=source_workspace,
                    checksum=checksum,
                )
                self._artifacts[artifact.id] = artifact

        logger.debug("Stored %s at %s", artifact.id, storage_path)
        return StoreOutcome(artifact=artifact, created=True)

    def _path_taken(self, storage_path: str) -> bool:
        if any(a.storage_path == storage_path for a in self._artifacts.values()):
            return True
        return resolve_storage_path(self.root, storage_path).exists()

    def _supersede(self, txn: StorageTransaction, checksum: str, storage_path: str) -> None:
        """Drop records sharing *checksum* or *storage_path*; archive their files."""
        stale = [
            a
            for a in self._artifacts.values()
            if a.checksum == checksum or a.storage_path == storage_path
        ]
        for artifact in stale:
            del self._artifacts[artifact.id]
            if artifact.storage_path == storage_path:
                continue  # replaced in place by the new write
            source = resolve_storage_path(self.root, artifact.storage_path)
            if source.is_file():
                txn.move_file(source, archive_path(self.root, artifact.id, artifact.file_name))
            logger.debug("Superseded %s", artifact.id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, artifact_id: str) -> Artifact | None:
        with self._lock:
            return self._artifacts.get(artifact_id)

    def get_content(self, artifact_id: str) -> str | bytes | None:
        """Stored file content; bytes for images or non-UTF-8 data.

        Returns None when the id is unknown or the file is gone.
        """
        artifact = self.get(artifact_id)
        if artifact is None:
            return None
        path = resolve_storage_path(self.root, artifact.storage_path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read {artifact.storage_path}: {exc}"
            raise StorageError("STORAGE_IO", msg, path=str(path)) from exc

        if artifact.category is ArtifactCategory.IMAGE:
            return data
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data

    def list(self, category: ArtifactCategory | None = None) -> list[Artifact]:
        """Active artifacts in insertion order, optionally one category."""
        with self._lock:
            artifacts = list(self._artifacts.values())
        if category is None:
            return artifacts
        return [a for a in artifacts if a.category == category]

    def search(self, options: SearchOptions) -> list[SearchHit]:
        """Filter, score, sort (stable, descending) and paginate.

        Filters are conjunctive; every requested tag must be present.  An
        empty query scores every remaining candidate 1.0.
        """
        query = options.query.strip().lower()
        words = query.split()
        hits: list[SearchHit] = []
        for artifact in self.list():
            if options.category is not None and artifact.category != options.category:
                continue
            if options.element is not None and artifact.element != options.element:
                continue
            if options.gate is not None and artifact.gate != options.gate:
                continue
            if options.tags and not set(options.tags).issubset(artifact.tags):
                continue

            score = _score(artifact, query, words)
            if score > 0:
                hits.append(SearchHit(artifact=artifact, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[options.offset : options.offset + options.limit]

    def get_stats(self, recent: int = RECENT_LIMIT) -> StorageStats:
        artifacts = self.list()
        by_category: dict[str, int] = {}
        by_element: dict[str, int] = {}
        for artifact in artifacts:
            by_category[artifact.category.value] = by_category.get(artifact.category.value, 0) + 1
            if artifact.element is not None:
                by_element[artifact.element.value] = by_element.get(artifact.element.value, 0) + 1

        # Newest first; equal timestamps favour the later insertion.
        newest = sorted(reversed(artifacts), key=lambda a: a.created_at, reverse=True)
        return StorageStats(
            total=len(artifacts),
            by_category=by_category,
            by_element=by_element,
            recently_added=newest[:recent],
        )

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update(
        self,
        artifact_id: str,
        *,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        category: ArtifactCategory | None = None,
        subcategory: str | None = None,
    ) -> Artifact | None:
        """Merge the given fields onto a record and persist.

        Metadata is shallow-merged into the existing map; tags replace.
        The stored file does not move when the category changes.
        """
        with self._lock:
            artifact = self._artifacts.get(artifact_id)
            if artifact is None:
                return None

            changes: dict[str, Any] = {"updated_at": _utcnow()}
            if tags is not None:
                changes["tags"] = unique_tags(tags)
            if metadata is not None:
                changes["metadata"] = {**artifact.metadata, **metadata}
            if category is not None:
                changes["category"] = ArtifactCategory(category)
            if subcategory is not None:
                changes["subcategory"] = subcategory

            updated = artifact.model_copy(update=changes)
            with self.transaction():
                self._artifacts[artifact_id] = updated
        return updated

    def delete(self, artifact_id: str) -> bool:
        """Archive the file and drop the record.  False when unknown."""
        with self._lock:
            artifact = self._artifacts.get(artifact_id)
            if artifact is None:
                return False
            with self.transaction() as txn:
                del self._artifacts[artifact_id]
                source = resolve_storage_path(self.root, artifact.storage_path)
                if source.is_file():
                    txn.move_file(source, archive_path(self.root, artifact.id, artifact.file_name))
        logger.debug("Archived %s", artifact_id)
        return True


def _score(artifact: Artifact, query: str, words: list[str]) -> float:
    if not query:
        return SCORE_FILE_NAME
    if query in artifact.file_name.lower():
        return SCORE_FILE_NAME
    text = artifact.searchable_text()
    if query in text:
        return SCORE_FIELD
    if any(word in text for word in words):
        return SCORE_WORD
    return 0.0

