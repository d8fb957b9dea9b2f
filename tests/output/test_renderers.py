"""Tests for the per-operation Rich renderers."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime
from typing import Any

from artiflow.domain.models import Artifact, FileEvent
from artiflow.domain.types import ArtifactCategory, FileEventKind
from artiflow.infrastructure.watcher import NoticeKind, PipelineEvent
from artiflow.output.renderers import notice_to_json, render_notice, render_quiet, render_result
from artiflow.services.result import ServiceResult
from tests.conftest import make_result

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def _artifact(**overrides: Any) -> Artifact:
    fields: dict[str, Any] = {
        "id": "art_1_aaaaaaaa",
        "file_name": "draconia.md",
        "storage_path": "artifacts/lore/fire/draconia.md",
        "category": ArtifactCategory.LORE,
        "element": "fire",
        "gate": 3,
        "owner": "draconia",
        "tags": ["guardian", "draconia"],
        "created_at": NOW,
        "updated_at": NOW,
        "checksum": "0123456789abcdef",
    }
    fields.update(overrides)
    return Artifact(**fields)


def _artifact_json(**overrides: Any) -> dict[str, Any]:
    return _artifact(**overrides).model_dump(mode="json")


def _event(kind: FileEventKind = FileEventKind.ADD) -> FileEvent:
    return FileEvent(kind=kind, path="/drop/draconia.md", timestamp=NOW, size=12)


class TestRenderResult:
    def test_store(self) -> None:
        result = ServiceResult(
            ok=True,
            op="store_artifact",
            data={
                "created": True,
                "artifact": _artifact_json(),
                "classification": make_result(confidence=0.85).model_dump(mode="json"),
            },
        )
        output = render_result(result)
        assert output.startswith("OK  store_artifact")
        assert "created: True" in output
        assert "id: art_1_aaaaaaaa" in output
        assert "storage_path: artifacts/lore/fire/draconia.md" in output
        assert "tags: guardian, draconia" in output
        assert "confidence: 0.85" in output
        assert "checksum" not in output

    def test_store_verbose(self) -> None:
        result = ServiceResult(
            ok=True,
            op="store_artifact",
            data={
                "created": True,
                "artifact": _artifact_json(),
                "classification": make_result(reasoning="Located in lore").model_dump(mode="json"),
            },
            meta={"telemetry": {"name": "ArtifactService.store_artifact", "duration_ms": 1.5}},
        )
        output = render_result(result, verbose=True)
        assert "checksum: 0123456789abcdef" in output
        assert "reasoning: Located in lore" in output
        assert "ArtifactService.store_artifact" in output

    def test_classify(self) -> None:
        result = ServiceResult(
            ok=True,
            op="classify_only",
            data={
                "file_name": "x.md",
                "classification": make_result(tags=["notes"]).model_dump(mode="json"),
                "suggested_path": "artifacts/documents/x.md",
            },
        )
        output = render_result(result)
        assert "category: document" in output
        assert "tags: notes" in output
        assert "suggested_path: artifacts/documents/x.md" in output

    def test_list_table(self) -> None:
        result = ServiceResult(
            ok=True,
            op="list_artifacts",
            data={"total": 5, "count": 1, "items": [_artifact_json()]},
        )
        output = render_result(result)
        assert "art_1_aaaaaaaa" in output
        assert "draconia.md" in output
        assert "Score" not in output
        assert output.endswith("1 items of 5")

    def test_search_table_has_scores(self) -> None:
        item = {**_artifact_json(), "score": 0.8}
        result = ServiceResult(
            ok=True, op="search_artifacts", data={"query": "d", "count": 1, "items": [item]}
        )
        output = render_result(result)
        assert "Score" in output
        assert "0.80" in output
        assert output.endswith("1 items")

    def test_get_text_panel(self) -> None:
        result = ServiceResult(
            ok=True,
            op="get_artifact",
            data={
                "artifact": _artifact_json(),
                "content": "The fire gate opens.",
                "content_encoding": "utf-8",
            },
        )
        output = render_result(result)
        assert "art_1_aaaaaaaa - draconia.md" in output
        assert "owner: draconia" in output
        assert "The fire gate opens." in output

    def test_get_binary_panel(self) -> None:
        encoded = base64.b64encode(b"\x89PNG").decode("ascii")
        result = ServiceResult(
            ok=True,
            op="get_artifact",
            data={
                "artifact": _artifact_json(category="image", file_name="a.png"),
                "content": encoded,
                "content_encoding": "base64",
            },
        )
        assert f"<binary content, {len(encoded)} base64 chars>" in render_result(result)

    def test_stats(self) -> None:
        result = ServiceResult(
            ok=True,
            op="get_stats",
            data={
                "total": 2,
                "by_category": {"lore": 2},
                "by_element": {"fire": 1},
                "recently_added": [_artifact_json()],
            },
        )
        output = render_result(result)
        assert "total: 2" in output
        assert "By category" in output
        assert "By element" in output
        assert "recently added" in output

    def test_init(self) -> None:
        result = ServiceResult(
            ok=True,
            op="init_studio",
            data={
                "root": "/studio",
                "directories": ["index", "inbox"],
                "config": {"watch_paths": [], "auto_store": False},
            },
        )
        output = render_result(result)
        assert "root: /studio" in output
        assert "watch_paths: (none)" in output
        assert "auto_store: False" in output
        assert "directories: 2" in output

    def test_update(self) -> None:
        result = ServiceResult(
            ok=True,
            op="update_artifact",
            data={"artifact": _artifact_json(), "fields_changed": ["metadata", "tags"]},
        )
        assert "fields_changed: metadata, tags" in render_result(result)

    def test_generic_fallback(self) -> None:
        result = ServiceResult(ok=True, op="something_new", data={"answer": 42})
        output = render_result(result)
        assert output.startswith("OK  something_new")
        assert "answer: 42" in output

    def test_error(self) -> None:
        result = ServiceResult.failure("get_artifact", "NOT_FOUND", "No artifact", artifact_id="x")
        output = render_result(result)
        assert output == "ERROR  get_artifact [NOT_FOUND] - No artifact"

    def test_error_verbose_detail(self) -> None:
        result = ServiceResult.failure("store_artifact", "INVALID_PATH", "bad", path="../x")
        output = render_result(result, verbose=True)
        assert "detail:" in output
        assert "path: ../x" in output


class TestRenderQuiet:
    def test_items(self) -> None:
        items = [{"id": "a"}, {"id": "b"}]
        result = ServiceResult(ok=True, op="list_artifacts", data={"items": items})
        assert render_quiet(result) == "a\nb"

    def test_recently_added(self) -> None:
        result = ServiceResult(ok=True, op="get_stats", data={"recently_added": [{"id": "a"}]})
        assert render_quiet(result) == "a"

    def test_artifact_id(self) -> None:
        result = ServiceResult(ok=True, op="store_artifact", data={"artifact": {"id": "a"}})
        assert render_quiet(result) == "a"

    def test_suggested_path(self) -> None:
        result = ServiceResult(ok=True, op="classify_only", data={"suggested_path": "inbox/x"})
        assert render_quiet(result) == "inbox/x"

    def test_fallback(self) -> None:
        assert render_quiet(ServiceResult(ok=True, op="init_studio")) == "OK: init_studio"

    def test_error(self) -> None:
        result = ServiceResult.failure("get_artifact", "NOT_FOUND", "gone")
        assert render_quiet(result) == "ERROR: get_artifact - gone"


class TestNotices:
    def test_file_notice(self) -> None:
        notice = PipelineEvent(kind=NoticeKind.FILE, event=_event())
        assert render_notice(notice) == "   add  /drop/draconia.md"

    def test_artifact_notice(self) -> None:
        notice = PipelineEvent(
            kind=NoticeKind.ARTIFACT, event=_event(), artifact=_artifact(), created=True
        )
        output = render_notice(notice)
        assert output.startswith("stored  art_1_aaaaaaaa  lore")
        assert output.endswith("artifacts/lore/fire/draconia.md")

    def test_duplicate_notice(self) -> None:
        notice = PipelineEvent(
            kind=NoticeKind.ARTIFACT, event=_event(), artifact=_artifact(), created=False
        )
        assert render_notice(notice).startswith("   dup")

    def test_low_confidence_notice(self) -> None:
        notice = PipelineEvent(
            kind=NoticeKind.LOW_CONFIDENCE,
            event=_event(),
            classification=make_result(ArtifactCategory.UNKNOWN, confidence=0.3),
        )
        assert render_notice(notice) == "  skip  /drop/draconia.md  unknown 0.30"

    def test_error_notice(self) -> None:
        notice = PipelineEvent(kind=NoticeKind.ERROR, event=_event(), error="disk full")
        assert render_notice(notice) == " error  /drop/draconia.md: disk full"

    def test_json_notice(self) -> None:
        notice = PipelineEvent(
            kind=NoticeKind.ARTIFACT,
            event=_event(FileEventKind.CHANGE),
            artifact=_artifact(),
            created=True,
        )
        payload = json.loads(notice_to_json(notice))
        assert payload["kind"] == "artifact"
        assert payload["event"] == {
            "kind": "change",
            "path": "/drop/draconia.md",
            "size": 12,
            "timestamp": NOW.isoformat(),
        }
        assert payload["artifact"]["id"] == "art_1_aaaaaaaa"
        assert payload["created"] is True
        assert "error" not in payload

    def test_json_error_notice(self) -> None:
        notice = PipelineEvent(kind=NoticeKind.ERROR, error="boom")
        payload = json.loads(notice_to_json(notice))
        assert payload == {"kind": "error", "error": "boom"}
