"""StudioService - storage root setup and pipeline configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from artiflow.errors import StorageError
from artiflow.infrastructure.filesystem import skeleton_directories
from artiflow.services.base import BaseService
from artiflow.services.contracts import InitResultData, dump_validated
from artiflow.services.result import INVALID_INPUT, ServiceResult
from artiflow.services.telemetry import traced


class StudioService(BaseService):
    """Initialize a storage root and persist its flow configuration."""

    @traced
    def initialize(
        self,
        *,
        watch_paths: list[str] | None = None,
        auto_classify: bool | None = None,
        auto_store: bool | None = None,
        debounce_ms: int | None = None,
        stability_threshold_ms: int | None = None,
    ) -> ServiceResult:
        """Create the skeleton and record any config changes.

        Watch paths are resolved to absolute paths and appended to the
        configured ones; None leaves a setting as it is.
        """
        op = "init_studio"
        storage = self._studio.storage
        changes: dict[str, Any] = {}

        if watch_paths:
            current = list(storage.config.watch_paths)
            for raw in watch_paths:
                resolved = Path(raw).expanduser().resolve().as_posix()
                if resolved not in current:
                    current.append(resolved)
            changes["watch_paths"] = current
        for key, value in (
            ("auto_classify", auto_classify),
            ("auto_store", auto_store),
            ("debounce_ms", debounce_ms),
            ("stability_threshold_ms", stability_threshold_ms),
        ):
            if value is not None:
                changes[key] = value

        try:
            storage.initialize()
            config = storage.update_config(**changes)
        except ValidationError as exc:
            return ServiceResult.failure(op, INVALID_INPUT, str(exc.errors()[0]["msg"]))
        except StorageError as exc:
            return self._storage_failure(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                InitResultData,
                {
                    "root": storage.root.as_posix(),
                    "directories": skeleton_directories(),
                    "config": config.model_dump(mode="json"),
                },
            ),
        )
