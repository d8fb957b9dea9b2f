"""Artifact identifiers and content checksums.

Two independent keys per artifact:
- ID: ``art_{base36 epoch millis}_{8 hex random}``, generated once at store
  time and never reused.
- Checksum: SHA-256 over the raw bytes, first 16 hex chars.  Deduplication
  key among active artifacts.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import time

ARTIFACT_ID_PATTERN = re.compile(r"^art_[0-9a-z]+_[0-9a-f]{8}$")
CHECKSUM_LENGTH = 16

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base 36.

    Examples:
        >>> to_base36(0)
        '0'
        >>> to_base36(35)
        'z'
        >>> to_base36(36)
        '10'
    """
    if value < 0:
        msg = f"Cannot encode negative value: {value}"
        raise ValueError(msg)
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_artifact_id(now_ms: int | None = None) -> str:
    """Generate a fresh artifact ID."""
    millis = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    return f"art_{to_base36(millis)}_{secrets.token_hex(4)}"


def compute_checksum(content: str | bytes) -> str:
    """Stable checksum of raw content; text is hashed as UTF-8."""
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(raw).hexdigest()[:CHECKSUM_LENGTH]


def validate_artifact_id(artifact_id: str) -> bool:
    return ARTIFACT_ID_PATTERN.match(artifact_id) is not None
