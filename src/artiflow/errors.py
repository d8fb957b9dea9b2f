"""Exception hierarchy shared by every layer.

Not-found conditions are never exceptions: storage returns ``None`` and the
service layer reports ``NOT_FOUND`` inside a ServiceResult.
"""

from __future__ import annotations


class ArtiflowError(Exception):
    """Base class for all artiflow errors."""


class FrontmatterError(ArtiflowError):
    """Front-matter block present but not a valid YAML mapping."""


class StorageError(ArtiflowError):
    """A storage operation failed; the in-memory index was left unchanged.

    Attributes:
        code: Machine-readable reason (``STORAGE_IO``, ``INVALID_PATH``).
        path: Filesystem path involved, when there is one.
    """

    def __init__(self, code: str, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.path = path


class WatcherError(ArtiflowError):
    """The watcher could not be started."""
