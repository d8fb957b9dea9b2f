"""On-disk catalog at ``<root>/index/artifacts.json``.

The file is a JSON array of artifact records in insertion order.  It is
rewritten whole on every mutation, via a temp file and ``os.replace``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from artiflow.domain.models import Artifact
from artiflow.infrastructure.filesystem import atomic_write

logger = logging.getLogger(__name__)

_ARTIFACT_LIST = TypeAdapter(list[Artifact])


def load_index(path: Path) -> dict[str, Artifact]:
    """Read the catalog into an insertion-ordered ``id -> Artifact`` map.

    A missing file is an empty catalog.  A corrupt one is logged and also
    treated as empty; it is overwritten on the next successful mutation.
    """
    if not path.is_file():
        return {}
    try:
        records = _ARTIFACT_LIST.validate_json(path.read_bytes())
    except (OSError, ValidationError) as exc:
        logger.warning("Ignoring unreadable artifact index %s: %s", path, exc)
        return {}
    return {record.id: record for record in records}


def dump_index(artifacts: dict[str, Artifact]) -> bytes:
    return _ARTIFACT_LIST.dump_json(list(artifacts.values()), indent=2)


def save_index(path: Path, artifacts: dict[str, Artifact]) -> None:
    """Persist *artifacts* atomically. OSError propagates to the caller."""
    atomic_write(path, dump_index(artifacts))
