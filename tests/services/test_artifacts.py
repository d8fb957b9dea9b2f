"""Tests for ArtifactService operations."""

from __future__ import annotations

import base64

import pytest

from artiflow.domain.types import ArtifactCategory, ArtifactElement
from artiflow.infrastructure.studio import Studio
from artiflow.services.artifacts import OVERRIDE_CONFIDENCE, ArtifactService, apply_overrides
from tests.conftest import make_result, store_file

DRACONIA = "Draconia guards the fire gate."


class TestClassifyOnly:
    def test_reports_suggested_path(self, studio: Studio) -> None:
        result = ArtifactService(studio).classify_only(
            DRACONIA, "draconia.md", file_path="lore/draconia.md"
        )
        assert result.ok
        assert result.op == "classify_only"
        assert result.data["classification"]["category"] == "lore"
        assert result.data["suggested_path"] == "artifacts/lore/fire/draconia.md"

    def test_does_not_store(self, studio: Studio) -> None:
        ArtifactService(studio).classify_only("x", "a.md")
        assert studio.storage.list() == []

    def test_empty_name(self, studio: Studio) -> None:
        result = ArtifactService(studio).classify_only("x", "  ")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"

    def test_dot_name_rejected(self, studio: Studio) -> None:
        result = ArtifactService(studio).classify_only("x", "..")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_PATH"


class TestStoreArtifact:
    def test_stores(self, studio: Studio) -> None:
        data = store_file(studio, "draconia.md", DRACONIA, file_path="lore/draconia.md")
        assert data["created"] is True
        artifact = data["artifact"]
        assert artifact["id"].startswith("art_")
        assert artifact["category"] == "lore"
        assert artifact["owner"] == "draconia"
        assert artifact["storage_path"] == "artifacts/lore/fire/draconia.md"
        assert artifact["original_path"] == "lore/draconia.md"
        assert data["classification"]["confidence"] == 0.85

    def test_duplicate_warns(self, studio: Studio) -> None:
        service = ArtifactService(studio)
        first = service.store_artifact("same", "a.md")
        second = service.store_artifact("same", "b.md")
        assert second.ok
        assert second.data["created"] is False
        assert second.data["artifact"]["id"] == first.data["artifact"]["id"]
        assert second.warnings == [
            f"Identical content already stored as {first.data['artifact']['id']}"
        ]

    def test_category_override(self, studio: Studio) -> None:
        data = store_file(studio, "notes.txt", "plain words", category="image")
        assert data["artifact"]["category"] == "image"
        assert data["artifact"]["storage_path"] == "artifacts/images/notes.txt"
        assert data["classification"]["confidence"] == OVERRIDE_CONFIDENCE
        assert data["classification"]["reasoning"] == "Category set by caller (image)"

    def test_element_gate_and_tags(self, studio: Studio) -> None:
        data = store_file(
            studio, "tale.txt", "a story", category="lore", element="water", gate=2, tags=["x"]
        )
        artifact = data["artifact"]
        assert artifact["element"] == "water"
        assert artifact["gate"] == 2
        assert "x" in artifact["tags"]
        assert artifact["storage_path"] == "artifacts/lore/water/tale.txt"

    @pytest.mark.parametrize(
        "overrides",
        [{"category": "spaceship"}, {"element": "plasma"}, {"gate": 11}],
    )
    def test_invalid_override(self, studio: Studio, overrides: dict[str, object]) -> None:
        result = ArtifactService(studio).store_artifact("x", "a.md", **overrides)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"
        assert studio.storage.list() == []

    def test_empty_name(self, studio: Studio) -> None:
        result = ArtifactService(studio).store_artifact("x", "")
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"

    def test_binary(self, studio: Studio) -> None:
        data = store_file(studio, "cover.png", b"\x89PNG\r\n\x1a\n")
        assert data["artifact"]["category"] == "image"
        assert data["artifact"]["tags"] == ["png"]

    def test_workspace_and_source(self, studio: Studio) -> None:
        data = store_file(
            studio, "a.ts", "let a = 1;", source_path="/abs/a.ts", source_workspace="studio"
        )
        assert data["artifact"]["original_path"] == "/abs/a.ts"
        assert data["artifact"]["source_workspace"] == "studio"

    def test_overwrite(self, studio: Studio) -> None:
        old = store_file(studio, "a.md", "v1")
        new = store_file(studio, "a.md", "v2", overwrite=True)
        assert new["created"] is True
        assert studio.storage.get(old["artifact"]["id"]) is None


class TestApplyOverrides:
    def test_no_overrides_is_identity(self) -> None:
        result = make_result()
        assert apply_overrides(result) is result

    def test_tags_union(self) -> None:
        result = apply_overrides(make_result(tags=["a", "b"]), tags=["b", "c"])
        assert result.tags == ["a", "b", "c"]

    def test_element_without_category_keeps_confidence(self) -> None:
        result = apply_overrides(make_result(confidence=0.6), element="fire")
        assert result.element is ArtifactElement.FIRE
        assert result.confidence == 0.6

    def test_category(self) -> None:
        result = apply_overrides(make_result(confidence=0.3), category="code")
        assert result.category is ArtifactCategory.CODE
        assert result.confidence == 1.0

    def test_bad_gate(self) -> None:
        with pytest.raises(ValueError, match="Gate must be between 1 and 10"):
            apply_overrides(make_result(), gate=0)


@pytest.fixture
def seeded(studio: Studio) -> dict[str, str]:
    ids = {
        "draconia": store_file(studio, "draconia.md", DRACONIA, file_path="lore/draconia.md"),
        "prompt": store_file(studio, "greeting.arc", "@prompt hi", tags=["canon"]),
        "code": store_file(studio, "flame.ts", "let flame = 1;"),
    }
    return {key: data["artifact"]["id"] for key, data in ids.items()}


class TestSearchArtifacts:
    def test_items_have_scores(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).search_artifacts("draconia")
        assert result.ok
        assert result.data["query"] == "draconia"
        assert result.data["count"] == 1
        item = result.data["items"][0]
        assert item["id"] == seeded["draconia"]
        assert item["score"] == 1.0
        assert item["category"] == "lore"

    def test_filters(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).search_artifacts(category="prompt", tags=["canon"])
        assert [i["id"] for i in result.data["items"]] == [seeded["prompt"]]

    def test_pagination(self, studio: Studio, seeded: dict[str, str]) -> None:
        service = ArtifactService(studio)
        page = service.search_artifacts(limit=2, offset=1)
        assert [i["id"] for i in page.data["items"]] == [seeded["prompt"], seeded["code"]]

    @pytest.mark.parametrize(
        "kwargs",
        [{"limit": -1}, {"offset": -1}, {"category": "nope"}, {"gate": 42}],
    )
    def test_invalid_options(self, studio: Studio, kwargs: dict[str, object]) -> None:
        result = ArtifactService(studio).search_artifacts("x", **kwargs)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"


class TestGetArtifact:
    def test_text_content(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).get_artifact(seeded["draconia"])
        assert result.ok
        assert result.data["artifact"]["id"] == seeded["draconia"]
        assert result.data["content"] == DRACONIA
        assert result.data["content_encoding"] == "utf-8"

    def test_binary_content_is_base64(self, studio: Studio) -> None:
        raw = b"\x89PNG\r\n\x1a\n"
        artifact_id = store_file(studio, "cover.png", raw)["artifact"]["id"]
        result = ArtifactService(studio).get_artifact(artifact_id)
        assert result.data["content_encoding"] == "base64"
        assert base64.b64decode(result.data["content"]) == raw

    def test_without_content(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).get_artifact(seeded["code"], include_content=False)
        assert result.data["content"] is None
        assert result.data["content_encoding"] is None

    def test_missing_file_warns(self, studio: Studio, seeded: dict[str, str]) -> None:
        artifact = studio.storage.get(seeded["code"])
        assert artifact is not None
        (studio.root / artifact.storage_path).unlink()
        result = ArtifactService(studio).get_artifact(seeded["code"])
        assert result.ok
        assert result.data["content"] is None
        assert result.warnings == [f"Stored file is missing: {artifact.storage_path}"]

    def test_not_found(self, studio: Studio) -> None:
        result = ArtifactService(studio).get_artifact("art_0_00000000")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "No artifact found with ID: art_0_00000000"

    def test_malformed_id(self, studio: Studio) -> None:
        result = ArtifactService(studio).get_artifact("../index")
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"
        assert result.error.message.startswith("Malformed artifact ID")


class TestListArtifacts:
    def test_all(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).list_artifacts()
        assert result.data["total"] == 3
        assert [i["id"] for i in result.data["items"]] == list(seeded.values())

    def test_page(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).list_artifacts(limit=1, offset=2)
        assert result.data["total"] == 3
        assert result.data["count"] == 1
        assert result.data["items"][0]["id"] == seeded["code"]

    def test_category(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).list_artifacts("code")
        assert [i["id"] for i in result.data["items"]] == [seeded["code"]]

    def test_unknown_category(self, studio: Studio) -> None:
        result = ArtifactService(studio).list_artifacts("nope")
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"

    def test_negative_limit(self, studio: Studio) -> None:
        result = ArtifactService(studio).list_artifacts(limit=-1)
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"


class TestGetStats:
    def test_stats(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).get_stats()
        assert result.ok
        assert result.op == "get_stats"
        assert result.data["total"] == 3
        assert result.data["by_category"] == {"lore": 1, "prompt": 1, "code": 1}
        assert result.data["by_element"] == {"fire": 1}
        assert result.data["recently_added"][0]["id"] == seeded["code"]


class TestUpdateArtifact:
    def test_update(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).update_artifact(
            seeded["code"], {"tags": ["b", "a"], "metadata": {"owner": "me"}}
        )
        assert result.ok
        assert result.data["fields_changed"] == ["metadata", "tags"]
        assert result.data["artifact"]["tags"] == ["b", "a"]
        assert result.data["artifact"]["metadata"]["owner"] == "me"

    def test_category(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).update_artifact(seeded["code"], {"category": "document"})
        assert result.data["artifact"]["category"] == "document"

    def test_unknown_field_warns(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).update_artifact(
            seeded["code"], {"checksum": "x", "tags": ["t"]}
        )
        assert result.ok
        assert result.warnings == ["Cannot change field: checksum"]
        assert studio.storage.get(seeded["code"]).checksum != "x"  # type: ignore[union-attr]

    def test_nothing_to_update(self, studio: Studio, seeded: dict[str, str]) -> None:
        result = ArtifactService(studio).update_artifact(seeded["code"], {"id": "x"})
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"

    @pytest.mark.parametrize(
        "changes",
        [
            {"category": "nope"},
            {"tags": "not-a-list"},
            {"tags": [1, 2]},
            {"metadata": ["x"]},
            {"subcategory": 3},
        ],
    )
    def test_invalid_values(
        self, studio: Studio, seeded: dict[str, str], changes: dict[str, object]
    ) -> None:
        result = ArtifactService(studio).update_artifact(seeded["code"], changes)
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"

    def test_not_found(self, studio: Studio) -> None:
        result = ArtifactService(studio).update_artifact("art_0_00000000", {"tags": ["x"]})
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_malformed_id(self, studio: Studio) -> None:
        result = ArtifactService(studio).update_artifact("ART-1", {"tags": ["x"]})
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"


class TestDeleteArtifact:
    def test_delete(self, studio: Studio, seeded: dict[str, str]) -> None:
        artifact_id = seeded["code"]
        result = ArtifactService(studio).delete_artifact(artifact_id)
        assert result.ok
        assert result.data == {"id": artifact_id, "archived_to": f"archive/{artifact_id}_flame.ts"}
        assert (studio.root / result.data["archived_to"]).is_file()
        assert studio.storage.get(artifact_id) is None

    def test_not_found(self, studio: Studio) -> None:
        result = ArtifactService(studio).delete_artifact("art_0_00000000")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_malformed_id(self, studio: Studio) -> None:
        result = ArtifactService(studio).delete_artifact("")
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"
