"""Classification rule ABC and the built-in rule set.

Each rule is a (predicate, scorer) pair with a priority.  Rules never see
each other: the classifier evaluates all of them and merges what the
matching ones return.  Higher priority means "folded earlier", which
decides ties on confidence; it does not stop lower rules from running.

Priority bands, most authoritative first:

- 100  explicit type hint in front-matter
- 90   location in the source tree (agents/, prompts/, lore/, skills/)
- 80   extension family (images, code) and the prompt-language extension
- 70   content keywords (>= 2 hits) and persona/gate/element vocabulary
- 60   configuration extensions
- 10   generic document extensions
- 0    universal fallback
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from artiflow.domain.models import ClassificationContext, PartialClassification
from artiflow.domain.taxonomy import (
    CATEGORY_KEYWORDS,
    CODE_EXTENSIONS,
    CONFIG_EXTENSIONS,
    DETECTABLE_ELEMENTS,
    DOCUMENT_EXTENSIONS,
    GATE_PHRASES,
    GUARDIAN_GATES,
    GUARDIANS,
    IMAGE_EXTENSIONS,
    KEYWORD_MIN_MATCHES,
    LORE_DIRECTORIES,
    PROMPT_LANGUAGE_EXTENSION,
    category_for_type_hint,
    element_for_gate,
)
from artiflow.domain.types import ArtifactCategory, ArtifactElement

FALLBACK_CONFIDENCE = 0.3
FALLBACK_REASONING = "Default fallback classification"


class ClassificationRule(ABC):
    """Abstract base class for classification rules.

    ``matches`` and ``classify`` may raise; the classifier treats any
    exception as "did not match".
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Rule identifier (e.g. 'extension-image')."""
        ...

    @property
    @abstractmethod
    def priority(self) -> int:
        """Fold order; higher priorities are merged first."""
        ...

    @abstractmethod
    def matches(self, ctx: ClassificationContext) -> bool:
        """Whether this rule applies to *ctx*."""
        ...

    @abstractmethod
    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        """Partial result for a context this rule matched."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


# ---------------------------------------------------------------------------
# Vocabulary detection helpers
# ---------------------------------------------------------------------------


def detect_guardian(text: str) -> str | None:
    """First persona name found in lowercased *text*."""
    for guardian in GUARDIANS:
        if guardian in text:
            return guardian
    return None


def detect_guardian_in_segments(segments: Iterable[str]) -> str | None:
    """Persona named by a whole path segment (``draconia.md`` counts)."""
    for segment in segments:
        normalized = segment.lower().removesuffix(".md")
        if normalized in GUARDIAN_GATES:
            return normalized
    return None


def detect_gate(text: str) -> int | None:
    for phrase, gate in GATE_PHRASES:
        if phrase in text:
            return gate
    return None


def detect_element(text: str) -> ArtifactElement | None:
    for element in DETECTABLE_ELEMENTS:
        if f"{element.value} element" in text or f"{element.value} magic" in text:
            return element
    return None


# ---------------------------------------------------------------------------
# Concrete rules
# ---------------------------------------------------------------------------


class FrontmatterTypeRule(ClassificationRule):
    """Caller-supplied ``type:`` in front-matter dominates everything else."""

    @property
    def name(self) -> str:
        return "frontmatter-type"

    @property
    def priority(self) -> int:
        return 100

    def matches(self, ctx: ClassificationContext) -> bool:
        return bool(ctx.frontmatter and ctx.frontmatter.get("type"))

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        assert ctx.frontmatter is not None
        hint = str(ctx.frontmatter["type"])
        raw_tags = ctx.frontmatter.get("tags")
        tags = tuple(str(t) for t in raw_tags) if isinstance(raw_tags, list) else ()
        return PartialClassification(
            category=category_for_type_hint(hint),
            confidence=0.95,
            tags=tags,
            metadata=dict(ctx.frontmatter),
            reasoning=f"Frontmatter type field: {hint}",
        )


class AgentPathRule(ClassificationRule):
    """Files under an ``agents`` directory; a persona segment sets the owner."""

    @property
    def name(self) -> str:
        return "path-agents"

    @property
    def priority(self) -> int:
        return 90

    def matches(self, ctx: ClassificationContext) -> bool:
        return "agents" in ctx.path_segments

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        guardian = detect_guardian_in_segments(ctx.path_segments)
        gate = GUARDIAN_GATES[guardian] if guardian else None
        return PartialClassification(
            category=ArtifactCategory.AGENT,
            confidence=0.9,
            owner=guardian,
            gate=gate,
            reasoning="Located in agents directory",
        )


class DirectoryRule(ClassificationRule):
    """Category implied by a known content root appearing in the path.

    Parameterized by directory names to avoid one class per content root.
    """

    def __init__(
        self,
        rule_name: str,
        directories: Iterable[str],
        category: ArtifactCategory,
        confidence: float,
        reasoning: str,
    ) -> None:
        self._name = rule_name
        self._directories = frozenset(directories)
        self._category = category
        self._confidence = confidence
        self._reasoning = reasoning

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return 90

    def matches(self, ctx: ClassificationContext) -> bool:
        return any(segment in self._directories for segment in ctx.path_segments)

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=self._category,
            confidence=self._confidence,
            reasoning=self._reasoning,
        )


class SkillPathRule(ClassificationRule):
    """Gate skills: ``skills/<name>-gate/...`` become prompt/skill.

    The ``<name>`` part of a ``*-gate`` segment becomes an extra tag.
    """

    @property
    def name(self) -> str:
        return "path-skills"

    @property
    def priority(self) -> int:
        return 90

    def matches(self, ctx: ClassificationContext) -> bool:
        return "skills" in ctx.path_segments

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        gate_segment = next((s for s in ctx.path_segments if "-gate" in s), None)
        gate_name = gate_segment.replace("-gate", "") if gate_segment else ""
        tags = (gate_name, "gate-skill") if gate_name else ("gate-skill",)
        return PartialClassification(
            category=ArtifactCategory.PROMPT,
            subcategory="skill",
            confidence=0.9,
            tags=tags,
            reasoning="Located in skills directory",
        )


class ExtensionRule(ClassificationRule):
    """Category implied by an extension family; tags the bare extension."""

    def __init__(
        self,
        rule_name: str,
        extensions: Iterable[str],
        category: ArtifactCategory,
        confidence: float,
        priority: int,
        label: str,
    ) -> None:
        self._name = rule_name
        self._extensions = frozenset(extensions)
        self._category = category
        self._confidence = confidence
        self._priority = priority
        self._label = label

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._priority

    def matches(self, ctx: ClassificationContext) -> bool:
        return ctx.extension in self._extensions

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=self._category,
            confidence=self._confidence,
            tags=(ctx.extension.removeprefix("."),),
            reasoning=f"{self._label} file extension: {ctx.extension}",
        )


class PromptLanguageRule(ClassificationRule):
    """The reserved ``.arc`` extension for structured prompt content."""

    @property
    def name(self) -> str:
        return "extension-arc"

    @property
    def priority(self) -> int:
        return 85

    def matches(self, ctx: ClassificationContext) -> bool:
        return ctx.extension == PROMPT_LANGUAGE_EXTENSION

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=ArtifactCategory.PROMPT,
            subcategory="arcanean-prompt-language",
            confidence=0.95,
            reasoning="Arcanean Prompt Language file",
        )


class KeywordRule(ClassificationRule):
    """Content heuristic: at least two vocabulary words for one category."""

    def __init__(self, category: ArtifactCategory, keywords: Iterable[str]) -> None:
        self._category = category
        self._keywords = tuple(keywords)

    @property
    def name(self) -> str:
        return f"content-{self._category.value}"

    @property
    def priority(self) -> int:
        return 70

    def matches(self, ctx: ClassificationContext) -> bool:
        text = ctx.lowered_text()
        if text is None:
            return False
        hits = sum(1 for keyword in self._keywords if keyword in text)
        return hits >= KEYWORD_MIN_MATCHES

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=self._category,
            confidence=0.75,
            reasoning=f"Content contains multiple {self._category.value}-related keywords",
        )


class GuardianMentionRule(ClassificationRule):
    """A persona named in the text marks lore and carries its gate/element."""

    @property
    def name(self) -> str:
        return "domain-guardian"

    @property
    def priority(self) -> int:
        return 75

    def matches(self, ctx: ClassificationContext) -> bool:
        text = ctx.lowered_text()
        return text is not None and detect_guardian(text) is not None

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        guardian = detect_guardian(ctx.lowered_text() or "")
        gate = GUARDIAN_GATES[guardian] if guardian else None
        tags = ("guardian", guardian) if guardian else ("guardian",)
        return PartialClassification(
            category=ArtifactCategory.LORE,
            confidence=0.8,
            owner=guardian,
            gate=gate,
            element=element_for_gate(gate),
            tags=tags,
            reasoning=f"Contains Guardian reference: {guardian}",
        )


class GateMentionRule(ClassificationRule):
    """Gate phrases set gate and element without choosing a category."""

    @property
    def name(self) -> str:
        return "domain-gate"

    @property
    def priority(self) -> int:
        return 70

    def matches(self, ctx: ClassificationContext) -> bool:
        text = ctx.lowered_text()
        return text is not None and detect_gate(text) is not None

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        gate = detect_gate(ctx.lowered_text() or "")
        return PartialClassification(
            gate=gate,
            element=element_for_gate(gate),
            tags=(f"gate-{gate}",) if gate else (),
            confidence=0.7,
            reasoning="Contains Gate reference",
        )


class ElementMentionRule(ClassificationRule):
    """``<element> element`` / ``<element> magic`` phrases set the element."""

    @property
    def name(self) -> str:
        return "domain-element"

    @property
    def priority(self) -> int:
        return 65

    def matches(self, ctx: ClassificationContext) -> bool:
        text = ctx.lowered_text()
        return text is not None and detect_element(text) is not None

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        element = detect_element(ctx.lowered_text() or "")
        return PartialClassification(
            element=element,
            tags=(element.value,) if element else (),
            confidence=0.6,
            reasoning=f"Contains elemental reference: {element}",
        )


class DocumentFallbackRule(ClassificationRule):
    """Known document extensions with nothing more specific to say."""

    @property
    def name(self) -> str:
        return "default-document"

    @property
    def priority(self) -> int:
        return 10

    def matches(self, ctx: ClassificationContext) -> bool:
        return ctx.extension in DOCUMENT_EXTENSIONS

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=ArtifactCategory.DOCUMENT,
            confidence=0.5,
            reasoning="Default classification as document",
        )


class FallbackRule(ClassificationRule):
    """Always matches; guarantees a non-empty result."""

    @property
    def name(self) -> str:
        return "default"

    @property
    def priority(self) -> int:
        return 0

    def matches(self, ctx: ClassificationContext) -> bool:
        return True

    def classify(self, ctx: ClassificationContext) -> PartialClassification:
        return PartialClassification(
            category=ArtifactCategory.UNKNOWN,
            confidence=FALLBACK_CONFIDENCE,
            reasoning=FALLBACK_REASONING,
        )


def default_rules() -> list[ClassificationRule]:
    """Built-in rules in registration order."""
    rules: list[ClassificationRule] = [
        FrontmatterTypeRule(),
        AgentPathRule(),
        DirectoryRule(
            "path-prompts",
            {"prompts"},
            ArtifactCategory.PROMPT,
            0.9,
            "Located in prompts directory",
        ),
        DirectoryRule(
            "path-lore",
            LORE_DIRECTORIES,
            ArtifactCategory.LORE,
            0.85,
            "Located in lore/story directory",
        ),
        SkillPathRule(),
        ExtensionRule(
            "extension-image", IMAGE_EXTENSIONS, ArtifactCategory.IMAGE, 0.95, 80, "Image"
        ),
        ExtensionRule("extension-code", CODE_EXTENSIONS, ArtifactCategory.CODE, 0.9, 80, "Code"),
        PromptLanguageRule(),
    ]
    rules.extend(KeywordRule(category, words) for category, words in CATEGORY_KEYWORDS.items())
    rules.extend(
        [
            GuardianMentionRule(),
            GateMentionRule(),
            ElementMentionRule(),
            ExtensionRule(
                "extension-config", CONFIG_EXTENSIONS, ArtifactCategory.CONFIG, 0.85, 60, "Config"
            ),
            DocumentFallbackRule(),
            FallbackRule(),
        ]
    )
    return rules
