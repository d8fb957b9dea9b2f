"""Pydantic configuration models with code-baked defaults.

FlowConfig is the per-storage-root pipeline configuration.  It is loaded
when the pipeline starts and rewritten to ``<root>/.flow-config.json``
whenever it changes.

The file is advisory: it does not lock the root against a second process.
Run at most one pipeline per storage root.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

FLOW_CONFIG_FILENAME = ".flow-config.json"
FLOW_CONFIG_VERSION = "1.0.0"

DEFAULT_IGNORED_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/.git/**",
    "**/dist/**",
    "**/build/**",
    "**/.turbo/**",
    "**/.next/**",
    "**/coverage/**",
    "**/*.log",
    "**/.DS_Store",
    "**/Thumbs.db",
)


class FlowConfig(BaseModel):
    """[flow] section and the persisted ``.flow-config.json`` payload."""

    model_config = {"frozen": True}

    version: str = FLOW_CONFIG_VERSION
    storage_root: Path = Field(default_factory=Path.cwd)
    watch_paths: list[str] = Field(default_factory=list)
    ignored_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_PATTERNS))
    auto_classify: bool = True
    auto_store: bool = False
    debounce_ms: int = Field(default=500, ge=0)
    stability_threshold_ms: int = Field(default=2000, ge=0)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @property
    def stability_seconds(self) -> float:
        return self.stability_threshold_ms / 1000


def flow_config_path(storage_root: Path) -> Path:
    return storage_root / FLOW_CONFIG_FILENAME


def read_persisted_flow_config(storage_root: Path) -> dict[str, Any]:
    """Raw persisted FlowConfig fields, or ``{}`` when absent or unreadable.

    ``storage_root`` is dropped: the directory the file lives in wins over
    whatever path was recorded when it was written.
    """
    path = flow_config_path(storage_root)
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Ignoring unreadable flow config: %s", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed flow config: %s", path)
        return {}
    data.pop("storage_root", None)
    try:
        FlowConfig.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring invalid flow config: %s", path)
        return {}
    return data


def write_flow_config(config: FlowConfig) -> Path:
    """Persist *config* under its own storage root. Returns the file path."""
    path = flow_config_path(config.storage_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    return path
