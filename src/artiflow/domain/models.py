"""Data model for the classify → store → search pipeline.

Transient values (ClassificationContext, PartialClassification, FileEvent)
are frozen dataclasses.  Values that cross the storage or service boundary
(ClassificationResult, Artifact, search/stats payloads) are frozen Pydantic
models so they validate on load and serialize to JSON unchanged.

INVARIANT: ClassificationResult and Artifact are never mutated in place.
Updates go through ``model_copy(update=...)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from artiflow.domain.types import (
    MAX_GATE,
    MIN_GATE,
    ArtifactCategory,
    ArtifactElement,
    FileEventKind,
)

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassificationContext:
    """Everything a rule may look at for one file. Lives for one classify call."""

    file_path: str
    file_name: str
    extension: str
    content: str | bytes
    parent_dir: str
    path_segments: tuple[str, ...]
    frontmatter: dict[str, Any] | None = None

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, bytes)

    def lowered_text(self) -> str | None:
        """Lowercased text content, or None for binary content."""
        if isinstance(self.content, bytes):
            return None
        return self.content.lower()


@dataclass(frozen=True)
class PartialClassification:
    """What a single rule contributes; every field is optional."""

    category: ArtifactCategory | None = None
    confidence: float = 0.0
    reasoning: str = ""
    subcategory: str | None = None
    element: ArtifactElement | None = None
    gate: int | None = None
    owner: str | None = None
    tags: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)


def unique_tags(tags: list[str]) -> list[str]:
    """Drop duplicate and empty tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class ClassificationResult(BaseModel):
    """Final, merged classification of one file."""

    model_config = {"frozen": True}

    category: ArtifactCategory
    subcategory: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    element: ArtifactElement | None = None
    gate: int | None = Field(default=None, ge=MIN_GATE, le=MAX_GATE)
    owner: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    reasoning: str

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return unique_tags(value)


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------


class Artifact(BaseModel):
    """A stored artifact, as recorded in ``index/artifacts.json``.

    Attributes:
        storage_path: POSIX path relative to the storage root.
        checksum: First 16 hex chars of SHA-256 over the raw bytes.
    """

    model_config = {"frozen": True}

    id: str
    file_name: str
    original_path: str | None = None
    storage_path: str
    category: ArtifactCategory
    subcategory: str | None = None
    element: ArtifactElement | None = None
    gate: int | None = Field(default=None, ge=MIN_GATE, le=MAX_GATE)
    owner: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    source_workspace: str | None = None
    checksum: str

    def searchable_text(self) -> str:
        """File name, category, subcategory, owner and tags, lowercased."""
        parts = [self.file_name, self.category.value, self.subcategory, self.owner, *self.tags]
        return " ".join(p for p in parts if p).lower()


@dataclass(frozen=True)
class StoreOutcome:
    """Result of ``StorageManager.store``.

    ``created`` is False when an existing artifact with the same checksum
    was returned instead of writing a new one.
    """

    artifact: Artifact
    created: bool


# ---------------------------------------------------------------------------
# Search and stats
# ---------------------------------------------------------------------------


class SearchOptions(BaseModel):
    """Hard filters plus a free-text query, paginated."""

    model_config = {"frozen": True}

    query: str = ""
    category: ArtifactCategory | None = None
    element: ArtifactElement | None = None
    gate: int | None = Field(default=None, ge=MIN_GATE, le=MAX_GATE)
    tags: list[str] = Field(default_factory=list)
    limit: int = Field(default=50, ge=0)
    offset: int = Field(default=0, ge=0)


class SearchHit(BaseModel):
    """One scored search match."""

    model_config = {"frozen": True}

    artifact: Artifact
    score: float


class StorageStats(BaseModel):
    """Aggregate counts over the active index."""

    model_config = {"frozen": True}

    total: int
    by_category: dict[str, int] = Field(default_factory=dict)
    by_element: dict[str, int] = Field(default_factory=dict)
    recently_added: list[Artifact] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Watcher events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileEvent:
    """A debounced, stable filesystem change."""

    kind: FileEventKind
    path: str
    timestamp: datetime
    size: int | None = None
    mtime: datetime | None = None
