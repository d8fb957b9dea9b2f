"""Artifact categories, elements, and event kinds.

The category set is closed: every classification ends in exactly one of
these values, with ``unknown`` reserved for the universal fallback.
"""

from __future__ import annotations

from enum import StrEnum


class ArtifactCategory(StrEnum):
    """Top-level classification tag; decides the canonical storage subtree."""

    LORE = "lore"
    CHARACTER = "character"
    LOCATION = "location"
    CREATURE = "creature"
    ARTIFACT = "artifact"
    PROMPT = "prompt"
    AGENT = "agent"
    CODE = "code"
    IMAGE = "image"
    DOCUMENT = "document"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ArtifactElement(StrEnum):
    """Elemental affinity of a world-building artifact."""

    FIRE = "fire"
    WATER = "water"
    EARTH = "earth"
    WIND = "wind"
    VOID = "void"
    SPIRIT = "spirit"
    LIGHT = "light"
    PRISMATIC = "prismatic"
    ARCANE = "arcane"
    ALL = "all"


class FileEventKind(StrEnum):
    """Filesystem change kinds emitted by the watcher."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


# Gate affinities are plain integers in this closed range.
MIN_GATE = 1
MAX_GATE = 10
