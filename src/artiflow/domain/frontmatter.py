"""Front-matter extraction for markdown-like artifacts.

A file carries front-matter when its first line is ``---`` and a later line
closes the block with ``---``.  The block is YAML and must be a mapping.
Everything after the closing delimiter is the body.
"""

from __future__ import annotations

from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from artiflow.errors import FrontmatterError

_FRONTMATTER_DELIMITER = "---"


def _new_yaml() -> YAML:
    """Fresh safe loader per call; returns plain dicts and lists."""
    return YAML(typ="safe", pure=True)


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split *content* into ``(yaml_block, body)``.

    ``yaml_block`` is None when no delimited block opens the file.
    Handles both ``\\n`` and ``\\r\\n`` line endings.
    """
    normalized = content.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return None, content

    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            body = "\n".join(lines[i + 1 :])
            if body.startswith("\n"):
                body = body[1:]
            return "\n".join(lines[1:i]), body

    return None, content


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML front-matter and body from markdown content.

    Returns:
        ``(frontmatter, body)``.  Content without a front-matter block
        yields ``({}, content)``.

    Raises:
        FrontmatterError: The block exists but is not valid YAML, or is
            not a mapping.
    """
    block, body = split_frontmatter(content)
    if block is None:
        return {}, content

    try:
        data = _new_yaml().load(block)
    except YAMLError as exc:
        msg = f"Invalid front-matter YAML: {exc}"
        raise FrontmatterError(msg) from exc

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        msg = f"Front-matter must be a mapping, got {type(data).__name__}"
        raise FrontmatterError(msg)

    return {str(k): v for k, v in data.items()}, body
