"""Tests for front-matter splitting and parsing."""

from __future__ import annotations

import pytest

from artiflow.domain.frontmatter import parse_frontmatter, split_frontmatter
from artiflow.errors import FrontmatterError


class TestSplitFrontmatter:
    def test_basic(self) -> None:
        block, body = split_frontmatter("---\ntitle: X\n---\nBody\n")
        assert block == "title: X"
        assert body == "Body\n"

    def test_blank_line_after_block_is_dropped(self) -> None:
        _, body = split_frontmatter("---\na: 1\n---\n\nBody")
        assert body == "Body"

    def test_crlf(self) -> None:
        block, body = split_frontmatter("---\r\na: 1\r\n---\r\nBody")
        assert block == "a: 1"
        assert body == "Body"

    def test_no_opening_delimiter(self) -> None:
        assert split_frontmatter("Body\n---\n") == (None, "Body\n---\n")

    def test_unclosed_block(self) -> None:
        content = "---\na: 1\nBody"
        assert split_frontmatter(content) == (None, content)


class TestParseFrontmatter:
    def test_mapping(self) -> None:
        fm, body = parse_frontmatter("---\ntype: lore\ntags:\n  - a\n  - b\n---\nText")
        assert fm == {"type": "lore", "tags": ["a", "b"]}
        assert body == "Text"

    def test_empty_block(self) -> None:
        assert parse_frontmatter("---\n---\nText") == ({}, "Text")

    def test_no_block(self) -> None:
        assert parse_frontmatter("Just text") == ({}, "Just text")

    def test_keys_are_strings(self) -> None:
        fm, _ = parse_frontmatter("---\n1: one\n---\n")
        assert fm == {"1": "one"}

    def test_not_a_mapping(self) -> None:
        with pytest.raises(FrontmatterError, match="must be a mapping"):
            parse_frontmatter("---\n- a\n- b\n---\n")

    def test_invalid_yaml(self) -> None:
        with pytest.raises(FrontmatterError, match="Invalid front-matter YAML"):
            parse_frontmatter("---\nkey: [unclosed\n---\n")
