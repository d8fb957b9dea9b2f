"""ArtifactService - the caller-facing classify/store/search operations.

Pipeline for store: CLASSIFY → OVERRIDE → STORE → RESPOND.

Overrides supplied by the caller win over the classifier: a category
override pins confidence at 1.0, element and gate replace what was
detected, and tags are added to the detected ones.
"""

from __future__ import annotations

import base64
from typing import Any

from pydantic import ValidationError

from artiflow.domain.classifier import context_from_file_content
from artiflow.domain.ids import validate_artifact_id
from artiflow.domain.models import ClassificationResult, SearchOptions
from artiflow.domain.types import MAX_GATE, MIN_GATE, ArtifactCategory, ArtifactElement
from artiflow.errors import StorageError
from artiflow.infrastructure.filesystem import archive_path
from artiflow.services.base import BaseService
from artiflow.services.contracts import (
    ClassifyResultData,
    DeleteResultData,
    GetResultData,
    ListResultData,
    SearchResultData,
    StatsResultData,
    StoreResultData,
    UpdateResultData,
    dump_validated,
)
from artiflow.services.result import (
    INVALID_INPUT,
    NOT_FOUND,
    ServiceResult,
)
from artiflow.services.telemetry import traced

OVERRIDE_CONFIDENCE = 1.0
UPDATABLE_FIELDS = ("tags", "metadata", "category", "subcategory")


class ArtifactService(BaseService):
    """Store, classify, search, read, update and archive artifacts."""

    # ------------------------------------------------------------------
    # Classify / store
    # ------------------------------------------------------------------

    @traced
    def classify_only(
        self,
        content: str | bytes,
        file_name: str,
        *,
        file_path: str | None = None,
    ) -> ServiceResult:
        """Classify without storing; also reports where it would be stored."""
        op = "classify_only"
        if not file_name.strip():
            return ServiceResult.failure(op, INVALID_INPUT, "File name must not be empty")

        result = self._classify(content, file_name, file_path)
        try:
            suggested = self._studio.storage.derive_storage_path(file_name, result)
        except StorageError as exc:
            return self._storage_failure(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                ClassifyResultData,
                {"file_name": file_name, "classification": result, "suggested_path": suggested},
            ),
        )

    @traced
    def store_artifact(
        self,
        content: str | bytes,
        file_name: str,
        *,
        file_path: str | None = None,
        category: str | None = None,
        element: str | None = None,
        gate: int | None = None,
        tags: list[str] | None = None,
        source_path: str | None = None,
        source_workspace: str | None = None,
        overwrite: bool = False,
    ) -> ServiceResult:
        """Classify *content*, apply overrides, and store it.

        ``data["created"]`` is False when identical content was already
        stored; the existing record is returned instead.
        """
        op = "store_artifact"
        warnings: list[str] = []
        if not file_name.strip():
            return ServiceResult.failure(op, INVALID_INPUT, "File name must not be empty")

        # ── CLASSIFY ─────────────────────────────────────────
        result = self._classify(content, file_name, file_path or source_path)

        # ── OVERRIDE ─────────────────────────────────────────
        try:
            result = apply_overrides(
                result, category=category, element=element, gate=gate, tags=tags
            )
        except ValueError as exc:
            return ServiceResult.failure(op, INVALID_INPUT, str(exc))

        # ── STORE ────────────────────────────────────────────
        try:
            outcome = self._studio.storage.store(
                content,
                file_name,
                result,
                source_path=source_path or file_path,
                source_workspace=source_workspace,
                overwrite=overwrite,
            )
        except StorageError as exc:
            return self._storage_failure(op, exc)

        if not outcome.created:
            warnings.append(f"Identical content already stored as {outcome.artifact.id}")

        # ── RESPOND ──────────────────────────────────────────
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                StoreResultData,
                {
                    "created": outcome.created,
                    "artifact": outcome.artifact,
                    "classification": result,
                },
            ),
            warnings=warnings,
        )

    def _classify(
        self, content: str | bytes, file_name: str, file_path: str | None
    ) -> ClassificationResult:
        ctx = context_from_file_content(file_path or file_name, content)
        return self._studio.classifier.classify(ctx)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @traced
    def search_artifacts(
        self,
        query: str = "",
        *,
        category: str | None = None,
        element: str | None = None,
        gate: int | None = None,
        tags: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ServiceResult:
        """Free-text search with hard filters, best match first."""
        op = "search_artifacts"
        try:
            options = SearchOptions(
                query=query,
                category=category,
                element=element,
                gate=gate,
                tags=tags or [],
                limit=limit,
                offset=offset,
            )
        except ValidationError as exc:
            return ServiceResult.failure(op, INVALID_INPUT, _first_error(exc))

        hits = self._studio.storage.search(options)
        items = [{**hit.artifact.model_dump(mode="json"), "score": hit.score} for hit in hits]
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                SearchResultData, {"query": query, "count": len(items), "items": items}
            ),
        )

    @traced
    def get_artifact(self, artifact_id: str, *, include_content: bool = True) -> ServiceResult:
        """One artifact by id, with its stored content unless told otherwise.

        Binary content is returned base64-encoded.  A record whose file has
        gone missing is still returned, with no content and a warning.
        """
        op = "get_artifact"
        storage = self._studio.storage
        artifact = storage.get(artifact_id)
        if artifact is None:
            return _not_found(op, artifact_id)

        data: dict[str, Any] = {"artifact": artifact}
        warnings: list[str] = []
        if include_content:
            try:
                content = storage.get_content(artifact_id)
            except StorageError as exc:
                return self._storage_failure(op, exc)
            if content is None:
                warnings.append(f"Stored file is missing: {artifact.storage_path}")
            elif isinstance(content, bytes):
                data["content"] = base64.b64encode(content).decode("ascii")
                data["content_encoding"] = "base64"
            else:
                data["content"] = content
                data["content_encoding"] = "utf-8"

        return ServiceResult(
            ok=True, op=op, data=dump_validated(GetResultData, data), warnings=warnings
        )

    @traced
    def list_artifacts(
        self,
        category: str | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> ServiceResult:
        """Artifacts in insertion order, optionally one category, paginated."""
        op = "list_artifacts"
        if limit < 0 or offset < 0:
            return ServiceResult.failure(op, INVALID_INPUT, "limit and offset must be >= 0")
        try:
            wanted = ArtifactCategory(category) if category else None
        except ValueError:
            return ServiceResult.failure(op, INVALID_INPUT, f"Unknown category: {category!r}")

        artifacts = self._studio.storage.list(wanted)
        page = artifacts[offset : offset + limit]
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                ListResultData, {"total": len(artifacts), "count": len(page), "items": page}
            ),
        )

    @traced
    def get_stats(self) -> ServiceResult:
        stats = self._studio.storage.get_stats()
        return ServiceResult(
            ok=True, op="get_stats", data=dump_validated(StatsResultData, stats.model_dump())
        )

    # ------------------------------------------------------------------
    # Mutate
    # ------------------------------------------------------------------

    @traced
    def update_artifact(self, artifact_id: str, changes: dict[str, Any]) -> ServiceResult:
        """Apply a partial update (tags, metadata, category, subcategory).

        Unknown keys are skipped with a warning.  Tags replace the current
        set; metadata is merged into it.
        """
        op = "update_artifact"
        warnings: list[str] = []
        kwargs: dict[str, Any] = {}

        for key, value in changes.items():
            if key not in UPDATABLE_FIELDS:
                warnings.append(f"Cannot change field: {key}")
                continue
            kwargs[key] = value

        try:
            _validate_update(kwargs)
        except ValueError as exc:
            return ServiceResult.failure(op, INVALID_INPUT, str(exc))

        if not kwargs:
            allowed = ", ".join(UPDATABLE_FIELDS)
            msg = f"Nothing to update; allowed: {allowed}"
            return ServiceResult.failure(op, INVALID_INPUT, msg)

        try:
            updated = self._studio.storage.update(artifact_id, **kwargs)
        except StorageError as exc:
            return self._storage_failure(op, exc)
        if updated is None:
            return _not_found(op, artifact_id)

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                UpdateResultData, {"artifact": updated, "fields_changed": sorted(kwargs)}
            ),
            warnings=warnings,
        )

    @traced
    def delete_artifact(self, artifact_id: str) -> ServiceResult:
        """Archive the artifact's file and drop it from the index."""
        op = "delete_artifact"
        storage = self._studio.storage
        artifact = storage.get(artifact_id)
        if artifact is None:
            return _not_found(op, artifact_id)

        try:
            deleted = storage.delete(artifact_id)
        except StorageError as exc:
            return self._storage_failure(op, exc)
        if not deleted:
            return _not_found(op, artifact_id)

        archived = archive_path(storage.root, artifact.id, artifact.file_name)
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                DeleteResultData,
                {"id": artifact_id, "archived_to": archived.relative_to(storage.root).as_posix()},
            ),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def apply_overrides(
    result: ClassificationResult,
    *,
    category: str | None = None,
    element: str | None = None,
    gate: int | None = None,
    tags: list[str] | None = None,
) -> ClassificationResult:
    """Layer caller overrides onto a classification.

    Raises:
        ValueError: An override value is outside its closed set or range.
    """
    updates: dict[str, Any] = {}
    if category is not None:
        try:
            updates["category"] = ArtifactCategory(category)
        except ValueError:
            msg = f"Unknown category: {category!r}"
            raise ValueError(msg) from None
        updates["confidence"] = OVERRIDE_CONFIDENCE
        updates["reasoning"] = f"Category set by caller ({category})"
    if element is not None:
        try:
            updates["element"] = ArtifactElement(element)
        except ValueError:
            msg = f"Unknown element: {element!r}"
            raise ValueError(msg) from None
    if gate is not None:
        if not MIN_GATE <= gate <= MAX_GATE:
            msg = f"Gate must be between {MIN_GATE} and {MAX_GATE}, got {gate}"
            raise ValueError(msg)
        updates["gate"] = gate
    if tags:
        updates["tags"] = [*result.tags, *tags]

    if not updates:
        return result
    return ClassificationResult.model_validate({**result.model_dump(), **updates})


def _validate_update(kwargs: dict[str, Any]) -> None:
    if "category" in kwargs:
        try:
            kwargs["category"] = ArtifactCategory(kwargs["category"])
        except ValueError:
            msg = f"Unknown category: {kwargs['category']!r}"
            raise ValueError(msg) from None
    tags = kwargs.get("tags")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
    ):
        msg = "tags must be a list of strings"
        raise ValueError(msg)
    metadata = kwargs.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        msg = "metadata must be a mapping"
        raise ValueError(msg)
    subcategory = kwargs.get("subcategory")
    if subcategory is not None and not isinstance(subcategory, str):
        msg = "subcategory must be a string"
        raise ValueError(msg)


def _not_found(op: str, artifact_id: str) -> ServiceResult:
    if not validate_artifact_id(artifact_id):
        msg = f"Malformed artifact ID: {artifact_id!r} (expected art_<base36>_<8 hex>)"
        return ServiceResult.failure(op, INVALID_INPUT, msg, artifact_id=artifact_id)
    return ServiceResult.failure(op, NOT_FOUND, f"No artifact found with ID: {artifact_id}")


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]
