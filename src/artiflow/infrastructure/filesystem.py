"""Filesystem layout and raw I/O for a storage root.

The storage root holds one subtree per category under ``artifacts/``, plus
``inbox/`` (unknown content), ``archive/`` (soft-deleted files) and
``index/`` (the catalog).  All storage paths recorded in the index are
POSIX paths relative to the root.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

from artiflow.domain.models import ClassificationResult
from artiflow.domain.taxonomy import IMAGE_EXTENSIONS
from artiflow.domain.types import ArtifactCategory
from artiflow.errors import StorageError

INDEX_DIR = "index"
INDEX_FILENAME = "artifacts.json"
INBOX_DIR = "inbox"
ARCHIVE_DIR = "archive"

# Top-level entries artiflow writes itself; never fed back into the pipeline.
MANAGED_DIRS = frozenset({"artifacts", INDEX_DIR, INBOX_DIR, ARCHIVE_DIR})

# Map category to root-relative directory.
CATEGORY_PATHS: dict[ArtifactCategory, str] = {
    ArtifactCategory.LORE: "artifacts/lore",
    ArtifactCategory.CHARACTER: "artifacts/characters",
    ArtifactCategory.LOCATION: "artifacts/locations",
    ArtifactCategory.CREATURE: "artifacts/creatures",
    ArtifactCategory.ARTIFACT: "artifacts/magical-items",
    ArtifactCategory.PROMPT: "artifacts/prompts",
    ArtifactCategory.AGENT: "artifacts/agents",
    ArtifactCategory.CODE: "artifacts/code",
    ArtifactCategory.IMAGE: "artifacts/images",
    ArtifactCategory.DOCUMENT: "artifacts/documents",
    ArtifactCategory.CONFIG: "artifacts/config",
    ArtifactCategory.UNKNOWN: INBOX_DIR,
}

# Agents owned by a persona always land here.
OWNED_AGENT_PATH = "artifacts/agents/guardians"

# Fixed subcategory split per category subtree.
CATEGORY_SUBDIRECTORIES: dict[ArtifactCategory, tuple[str, ...]] = {
    ArtifactCategory.LORE: ("canon", "extended", "drafts"),
    ArtifactCategory.CHARACTER: ("guardians", "awakened", "luminors", "player-created"),
    ArtifactCategory.LOCATION: ("realms", "academies", "sanctuaries"),
    ArtifactCategory.CREATURE: ("godbeasts", "bestiary"),
    ArtifactCategory.ARTIFACT: ("legendary", "common"),
    ArtifactCategory.PROMPT: ("system", "creative", "arc"),
    ArtifactCategory.AGENT: ("guardians", "awakened", "custom"),
    ArtifactCategory.CODE: ("components", "tools", "mcp"),
    ArtifactCategory.IMAGE: ("characters", "locations", "ui", "generated"),
    ArtifactCategory.DOCUMENT: ("designs", "guides", "notes"),
    ArtifactCategory.CONFIG: (),
}


def skeleton_directories() -> list[str]:
    """Every directory ``initialize()`` creates, root-relative."""
    dirs: list[str] = []
    for category, subdirs in CATEGORY_SUBDIRECTORIES.items():
        base = CATEGORY_PATHS[category]
        if subdirs:
            dirs.extend(f"{base}/{sub}" for sub in subdirs)
        else:
            dirs.append(base)
    dirs.extend([INDEX_DIR, INBOX_DIR, ARCHIVE_DIR])
    return dirs


def create_skeleton(root: Path) -> None:
    """Create the directory skeleton under *root* (idempotent)."""
    for rel in skeleton_directories():
        (root / rel).mkdir(parents=True, exist_ok=True)


def index_path(root: Path) -> Path:
    return root / INDEX_DIR / INDEX_FILENAME


# ---------------------------------------------------------------------------
# Path derivation
# ---------------------------------------------------------------------------


def sanitize_file_name(file_name: str) -> str:
    """Reduce *file_name* to a bare name; separators and dot-names rejected."""
    name = PurePosixPath(file_name.replace("\\", "/")).name
    if name in ("", ".", ".."):
        msg = f"Invalid file name: {file_name!r}"
        raise StorageError("INVALID_PATH", msg)
    return name


def derive_storage_dir(result: ClassificationResult) -> str:
    """Root-relative directory for a classification.

    - base: the category subtree
    - subcategory present: one level deeper
    - agent with an owner: always ``artifacts/agents/guardians``
    - lore with an element: one more level by element name
    """
    base = CATEGORY_PATHS.get(result.category, INBOX_DIR)
    if result.subcategory:
        base = f"{base}/{result.subcategory}"
    if result.category is ArtifactCategory.AGENT and result.owner:
        base = OWNED_AGENT_PATH
    if result.category is ArtifactCategory.LORE and result.element:
        base = f"{base}/{result.element.value}"
    return base


def derive_storage_path(file_name: str, result: ClassificationResult) -> str:
    """Root-relative POSIX path for *file_name* under *result*'s directory."""
    return f"{derive_storage_dir(result)}/{sanitize_file_name(file_name)}"


def resolve_storage_path(root: Path, storage_path: str) -> Path:
    """Absolute path for a root-relative storage path.

    Raises:
        StorageError: The path escapes *root* (e.g. via a crafted subcategory).
    """
    result = root / PurePosixPath(storage_path)
    if not result.resolve().is_relative_to(root.resolve()):
        msg = f"Path escapes storage root: {storage_path}"
        raise StorageError("INVALID_PATH", msg, path=storage_path)
    return result


def disambiguate(storage_path: str, checksum: str) -> str:
    """``dir/name.ext`` -> ``dir/name-<checksum[:8]>.ext``."""
    p = PurePosixPath(storage_path)
    return str(p.with_name(f"{p.stem}-{checksum[:8]}{p.suffix}"))


def archive_path(root: Path, artifact_id: str, file_name: str) -> Path:
    return root / ARCHIVE_DIR / f"{artifact_id}_{file_name}"


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* via a sibling temp file and ``os.replace``.

    Creates parent directories as needed.  Readers never observe a
    partially written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def to_bytes(content: str | bytes) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def read_source_file(path: Path) -> str | bytes:
    """Read a file for classification: bytes for images or non-UTF-8 data."""
    raw = path.read_bytes()
    if path.suffix.lower() in IMAGE_EXTENSIONS:
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
