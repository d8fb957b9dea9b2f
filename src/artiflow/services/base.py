"""BaseService - what every service is constructed from.

A service receives a :class:`Studio` and reaches storage and the
classifier through it.  Storage-level exceptions are translated into
failed ServiceResults here, once, rather than in every operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artiflow.services.result import ServiceResult

if TYPE_CHECKING:
    from artiflow.errors import StorageError
    from artiflow.infrastructure.studio import Studio

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class ArtifactService(BaseService):
            def get_artifact(self, artifact_id: str) -> ServiceResult:
                artifact = self._studio.storage.get(artifact_id)
                ...
    """

    def __init__(self, studio: Studio) -> None:
        self._studio = studio

    @staticmethod
    def _storage_failure(op: str, exc: StorageError) -> ServiceResult:
        """Convert a StorageError into ``ok=False`` with the error's code."""
        logger.debug("%s failed: %s", op, exc.message)
        detail = {"path": exc.path} if exc.path else {}
        return ServiceResult.failure(op, exc.code, exc.message, **detail)
