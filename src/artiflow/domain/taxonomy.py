"""Fixed vocabulary used by the classification rules.

Personas ("guardians") each own one gate, and each gate carries an
elemental affinity.  Extension families and keyword vocabularies are
lowercase; extensions include the leading dot.
"""

from __future__ import annotations

from artiflow.domain.types import ArtifactCategory, ArtifactElement

# Persona name -> gate number.
GUARDIAN_GATES: dict[str, int] = {
    "lyssandria": 1,
    "leyla": 2,
    "draconia": 3,
    "maylinn": 4,
    "alera": 5,
    "lyria": 6,
    "aiyami": 7,
    "elara": 8,
    "ino": 9,
    "shinkami": 10,
}

GUARDIANS: tuple[str, ...] = tuple(GUARDIAN_GATES)

GATE_ELEMENTS: dict[int, ArtifactElement] = {
    1: ArtifactElement.EARTH,
    2: ArtifactElement.WATER,
    3: ArtifactElement.FIRE,
    4: ArtifactElement.LIGHT,
    5: ArtifactElement.PRISMATIC,
    6: ArtifactElement.WIND,
    7: ArtifactElement.VOID,
    8: ArtifactElement.ARCANE,
    9: ArtifactElement.ARCANE,
    10: ArtifactElement.ARCANE,
}

# Checked in order; the first phrase found wins.
GATE_PHRASES: tuple[tuple[str, int], ...] = (
    ("foundation gate", 1),
    ("flow gate", 2),
    ("fire gate", 3),
    ("heart gate", 4),
    ("voice gate", 5),
    ("sight gate", 6),
    ("crown gate", 7),
    ("shift gate", 8),
    ("unity gate", 9),
    ("source gate", 10),
)

DETECTABLE_ELEMENTS: tuple[ArtifactElement, ...] = (
    ArtifactElement.FIRE,
    ArtifactElement.WATER,
    ArtifactElement.EARTH,
    ArtifactElement.WIND,
    ArtifactElement.VOID,
    ArtifactElement.SPIRIT,
    ArtifactElement.LIGHT,
    ArtifactElement.ARCANE,
)

# ---------------------------------------------------------------------------
# Extension families
# ---------------------------------------------------------------------------

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".ico"})
CODE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs", ".java"})
CONFIG_EXTENSIONS = frozenset({".json", ".yaml", ".yml", ".toml", ".xml"})
DOCUMENT_EXTENSIONS = frozenset({".md", ".mdx", ".txt", ".rst", ".doc", ".docx"})
FRONTMATTER_EXTENSIONS = frozenset({".md", ".mdx"})
PROMPT_LANGUAGE_EXTENSION = ".arc"

# ---------------------------------------------------------------------------
# Path and content vocabularies
# ---------------------------------------------------------------------------

LORE_DIRECTORIES = frozenset({"lore", "arcanea-lore", "story"})

KEYWORD_MIN_MATCHES = 2

CATEGORY_KEYWORDS: dict[ArtifactCategory, tuple[str, ...]] = {
    ArtifactCategory.CHARACTER: (
        "character",
        "backstory",
        "personality",
        "abilities",
        "motivation",
    ),
    ArtifactCategory.LOCATION: (
        "location",
        "geography",
        "climate",
        "inhabitants",
        "landmark",
        "realm",
    ),
    ArtifactCategory.CREATURE: (
        "creature",
        "beast",
        "habitat",
        "species",
        "godbeast",
        "diet",
    ),
    ArtifactCategory.ARTIFACT: (
        "relic",
        "forged",
        "wielder",
        "enchantment",
        "magical item",
        "artifact",
    ),
}

# Front-matter ``type`` values that map onto a category.  Anything else
# is treated as a generic document.
FRONTMATTER_TYPES: dict[str, ArtifactCategory] = {
    category.value: category
    for category in ArtifactCategory
    if category is not ArtifactCategory.UNKNOWN
}


def category_for_type_hint(value: str) -> ArtifactCategory:
    """Map a caller-supplied type hint onto a category (default: document)."""
    return FRONTMATTER_TYPES.get(value.strip().lower(), ArtifactCategory.DOCUMENT)


def element_for_gate(gate: int | None) -> ArtifactElement | None:
    if gate is None:
        return None
    return GATE_ELEMENTS.get(gate)
