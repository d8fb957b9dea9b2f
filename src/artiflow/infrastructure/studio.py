"""Studio - the single dependency injected into every service.

A Studio is one storage root with its classifier and storage manager.  It
is constructed once at CLI startup from :class:`FlowSettings` and stored
on the Click context; services receive it through :class:`BaseService`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artiflow.domain.classifier import Classifier
from artiflow.infrastructure.storage import StorageManager
from artiflow.infrastructure.watcher import ArtifactWatcher

if TYPE_CHECKING:
    from pathlib import Path

    from artiflow.config.models import FlowConfig
    from artiflow.config.settings import FlowSettings

logger = logging.getLogger(__name__)


class Studio:
    """Storage root + classifier + storage manager.

    The storage manager is initialized on construction, so the directory
    skeleton and ``.flow-config.json`` exist once a Studio does.
    """

    def __init__(self, settings: FlowSettings, classifier: Classifier | None = None) -> None:
        self._settings = settings
        self._classifier = classifier or Classifier()
        self._storage = StorageManager(settings.flow_config())
        self._storage.initialize()

    @property
    def root(self) -> Path:
        return self._storage.root

    @property
    def settings(self) -> FlowSettings:
        return self._settings

    @property
    def config(self) -> FlowConfig:
        """The live flow config (reflects :meth:`StorageManager.update_config`)."""
        return self._storage.config

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    @property
    def storage(self) -> StorageManager:
        return self._storage

    def create_watcher(self, *, store: bool = True) -> ArtifactWatcher:
        """A watcher over the current config.

        With *store* False the watcher only reports file notices.
        """
        return ArtifactWatcher(self.config, self._classifier, self._storage if store else None)
