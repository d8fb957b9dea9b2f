"""Typed payload contracts for service results.

Each operation validates its ``data`` dict against one of these models
before returning, so payload-shape regressions (``items`` vs ``results``,
a missing ``created`` flag) fail fast in tests.  Payloads are dumped in
JSON mode: timestamps are ISO 8601 strings, enums are their values.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

from artiflow.domain.models import Artifact, ClassificationResult

T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a JSON-safe payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="json")


class StoreResultData(BaseModel):
    """Payload contract for ``ArtifactService.store_artifact``."""

    created: bool
    artifact: Artifact
    classification: ClassificationResult


class ClassifyResultData(BaseModel):
    """Payload contract for ``ArtifactService.classify_only``."""

    file_name: str
    classification: ClassificationResult
    suggested_path: str


class SearchItem(BaseModel):
    """One search row: the artifact's fields plus its score."""

    model_config = ConfigDict(extra="allow")

    id: str
    file_name: str
    storage_path: str
    category: str
    tags: list[str]
    score: float


class SearchResultData(BaseModel):
    """Payload contract for ``ArtifactService.search_artifacts``."""

    query: str
    count: int
    items: list[SearchItem]


class ListResultData(BaseModel):
    """Payload contract for ``ArtifactService.list_artifacts``."""

    total: int
    count: int
    items: list[Artifact]


class GetResultData(BaseModel):
    """Payload contract for ``ArtifactService.get_artifact``.

    ``content`` is text, or base64 when ``content_encoding`` says so.
    """

    artifact: Artifact
    content: str | None = None
    content_encoding: Literal["utf-8", "base64"] | None = None


class UpdateResultData(BaseModel):
    """Payload contract for ``ArtifactService.update_artifact``."""

    artifact: Artifact
    fields_changed: list[str]


class DeleteResultData(BaseModel):
    """Payload contract for ``ArtifactService.delete_artifact``."""

    id: str
    archived_to: str


class StatsResultData(BaseModel):
    """Payload contract for ``ArtifactService.get_stats``."""

    total: int
    by_category: dict[str, int]
    by_element: dict[str, int]
    recently_added: list[Artifact]


class InitResultData(BaseModel):
    """Payload contract for ``StudioService.initialize``."""

    root: str
    directories: list[str]
    config: dict[str, Any]
