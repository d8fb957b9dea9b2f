"""Shared pytest fixtures and test helpers for artiflow tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from artiflow.config.settings import FlowSettings
from artiflow.domain.classifier import Classifier
from artiflow.domain.models import ClassificationResult
from artiflow.domain.types import ArtifactCategory
from artiflow.infrastructure.storage import StorageManager
from artiflow.infrastructure.studio import Studio
from artiflow.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _clean_process_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Isolate tests from ARTIFLOW_* env vars, telemetry and log handlers.

    ``--verbose`` enables telemetry and every CLI invocation reconfigures
    the root logger, so both are reset after each test.
    """
    monkeypatch.delenv("ARTIFLOW_CONFIG", raising=False)
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    disable_telemetry()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Temporary storage root.

    The single source of truth for where a test's artifacts live.  All
    studio-related fixtures (settings, studio, _isolated_root) build on it.
    """
    return tmp_path


@pytest.fixture
def settings(storage_root: Path) -> FlowSettings:
    return FlowSettings.from_cli(storage_root=storage_root)


@pytest.fixture
def studio(settings: FlowSettings) -> Studio:
    """Initialized studio: skeleton, empty index and .flow-config.json exist."""
    return Studio(settings)


@pytest.fixture
def storage(studio: Studio) -> StorageManager:
    return studio.storage


@pytest.fixture
def classifier() -> Classifier:
    return Classifier()


@pytest.fixture
def _isolated_root(storage_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp storage root so the CLI discovers it.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes.
    """
    monkeypatch.chdir(storage_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_result(
    category: ArtifactCategory = ArtifactCategory.DOCUMENT,
    **kwargs: Any,
) -> ClassificationResult:
    """A ClassificationResult with test-friendly defaults."""
    kwargs.setdefault("confidence", 0.9)
    kwargs.setdefault("reasoning", "test")
    return ClassificationResult(category=category, **kwargs)


def store_file(
    studio: Studio, file_name: str, content: str | bytes, **kwargs: Any
) -> dict[str, Any]:
    """Store content via ArtifactService, asserting success."""
    from artiflow.services.artifacts import ArtifactService

    result = ArtifactService(studio).store_artifact(content, file_name, **kwargs)
    assert result.ok, result.error
    return result.data


def write_source(directory: Path, relative: str, content: str | bytes) -> Path:
    """Write a source file under *directory*, creating parents."""
    path = directory / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path
