"""Storage-root and config-file discovery.

Walking up from the working directory, the first directory holding either
``artiflow.toml`` or a persisted ``.flow-config.json`` is the storage root,
the way git finds the enclosing ``.git/``.  ``ARTIFLOW_CONFIG`` pins the TOML
file explicitly and makes its directory the root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from artiflow.config.models import FLOW_CONFIG_FILENAME

CONFIG_FILENAME = "artiflow.toml"
CONFIG_ENV_VAR = "ARTIFLOW_CONFIG"


@dataclass(frozen=True)
class Discovery:
    """Where settings come from: an optional TOML file and a root directory."""

    storage_root: Path
    toml_path: Path | None = None


def discover(start: Path | None = None) -> Discovery:
    """Locate the storage root for *start* (default: cwd).

    Falls back to *start* itself when nothing is found on the way up.
    """
    origin = (start or Path.cwd()).resolve()

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return Discovery(storage_root=p.parent, toml_path=p)
        return Discovery(storage_root=origin)

    current = origin
    while True:
        toml_candidate = current / CONFIG_FILENAME
        if toml_candidate.is_file():
            return Discovery(storage_root=current, toml_path=toml_candidate)
        if (current / FLOW_CONFIG_FILENAME).is_file():
            return Discovery(storage_root=current)
        parent = current.parent
        if parent == current:
            break
        current = parent
    return Discovery(storage_root=origin)
