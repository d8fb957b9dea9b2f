"""Classifier - runs every rule against a context and merges the partials.

INVARIANT: ``classify()`` is total.  A rule that raises, or returns a
partial with an out-of-range confidence or gate, is a non-match,
and the merged result always has ``confidence > 0`` and a reasoning string.

Merge policy (fold over matched rules in priority order):

- category, confidence, reasoning: taken together from the first partial
  whose confidence beats everything folded so far.
- subcategory, element, gate, owner: the last partial that sets them wins.
- tags: union, first-seen order.
- metadata: shallow merge, later keys overwrite.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any

from pydantic import ValidationError

from artiflow.domain.frontmatter import parse_frontmatter
from artiflow.domain.models import (
    ClassificationContext,
    ClassificationResult,
    PartialClassification,
    unique_tags,
)
from artiflow.domain.rules import (
    FALLBACK_CONFIDENCE,
    FALLBACK_REASONING,
    ClassificationRule,
    default_rules,
)
from artiflow.domain.taxonomy import FRONTMATTER_EXTENSIONS
from artiflow.domain.types import MAX_GATE, MIN_GATE, ArtifactCategory, ArtifactElement
from artiflow.errors import FrontmatterError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Context construction
# ---------------------------------------------------------------------------


def build_context(
    file_path: str,
    content: str | bytes,
    frontmatter: dict[str, Any] | None = None,
) -> ClassificationContext:
    """Normalize *file_path* and wrap it with its content."""
    normalized = file_path.replace("\\", "/")
    file_name = posixpath.basename(normalized)
    _, extension = posixpath.splitext(file_name)
    return ClassificationContext(
        file_path=normalized,
        file_name=file_name,
        extension=extension.lower(),
        content=content,
        frontmatter=frontmatter,
        parent_dir=posixpath.dirname(normalized),
        path_segments=tuple(s for s in normalized.split("/") if s),
    )


def context_from_file_content(file_path: str, content: str | bytes) -> ClassificationContext:
    """Build a context, extracting front-matter from markdown-like text.

    On a front-matter parse failure the raw content is classified with no
    metadata; this never raises.
    """
    context = build_context(file_path, content)
    if isinstance(content, bytes) or context.extension not in FRONTMATTER_EXTENSIONS:
        return context

    try:
        frontmatter, body = parse_frontmatter(content)
    except FrontmatterError:
        logger.debug("Ignoring unparseable front-matter in %s", file_path, exc_info=True)
        return context

    if not frontmatter:
        return context
    return build_context(file_path, body, frontmatter)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class Classifier:
    """Priority-ordered rule engine.

    Constructed once at pipeline start-up and passed to whoever needs it
    (service layer, watcher).  There is no module-level instance.
    """

    def __init__(self, rules: list[ClassificationRule] | None = None) -> None:
        self._rules: list[ClassificationRule] = []
        for rule in default_rules() if rules is None else rules:
            self.add_rule(rule)

    @property
    def rules(self) -> list[ClassificationRule]:
        """Registered rules in fold order (a copy)."""
        return list(self._rules)

    def add_rule(self, rule: ClassificationRule) -> None:
        """Register *rule*; equal priorities keep registration order."""
        self._rules.append(rule)
        self._rules.sort(key=lambda r: r.priority, reverse=True)

    def classify(self, ctx: ClassificationContext) -> ClassificationResult:
        partials: list[PartialClassification] = []
        for rule in self._rules:
            try:
                if rule.matches(ctx):
                    partials.append(check_partial(rule.classify(ctx)))
            except Exception:
                logger.debug("Rule %s failed on %s", rule.name, ctx.file_path, exc_info=True)
        return merge_partials(partials)


def check_partial(partial: PartialClassification) -> PartialClassification:
    """Return *partial* unchanged, or raise ValueError if it is out of range."""
    if not isinstance(partial, PartialClassification):
        msg = f"Rule returned {type(partial).__name__}, not PartialClassification"
        raise ValueError(msg)
    if not 0.0 <= partial.confidence <= 1.0:
        msg = f"Confidence out of range: {partial.confidence!r}"
        raise ValueError(msg)
    if partial.gate is not None and (
        not isinstance(partial.gate, int) or not MIN_GATE <= partial.gate <= MAX_GATE
    ):
        msg = f"Gate must be between {MIN_GATE} and {MAX_GATE}: {partial.gate!r}"
        raise ValueError(msg)
    if partial.category is not None:
        ArtifactCategory(partial.category)
    if partial.element is not None:
        ArtifactElement(partial.element)
    return partial


def merge_partials(partials: list[PartialClassification]) -> ClassificationResult:
    """Fold *partials* (already in priority order) into one result.

    A merged value that still fails validation yields the unknown fallback.
    """
    category: ArtifactCategory | None = None
    confidence = 0.0
    reasoning = ""
    fields: dict[str, Any] = {}
    tags: list[str] = []
    metadata: dict[str, Any] = {}

    for partial in partials:
        if partial.category is not None and partial.confidence > confidence:
            category = partial.category
            confidence = partial.confidence
            reasoning = partial.reasoning

        for key in ("subcategory", "element", "gate", "owner"):
            value = getattr(partial, key)
            if value is not None:
                fields[key] = value
        tags.extend(partial.tags)
        metadata.update(partial.metadata)

    if category is None or confidence <= 0:
        category = ArtifactCategory.UNKNOWN
        confidence = FALLBACK_CONFIDENCE
        reasoning = FALLBACK_REASONING

    try:
        return ClassificationResult(
            category=category,
            confidence=confidence,
            reasoning=reasoning or FALLBACK_REASONING,
            tags=unique_tags(tags),
            metadata=metadata,
            **fields,
        )
    except (ValidationError, TypeError):
        logger.debug("Merged classification is invalid; using fallback", exc_info=True)
        return ClassificationResult(
            category=ArtifactCategory.UNKNOWN,
            confidence=FALLBACK_CONFIDENCE,
            reasoning=FALLBACK_REASONING,
        )
