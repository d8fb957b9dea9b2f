"""Rich Console factory and theme for artiflow output.

Consoles render into a StringIO buffer so renderers keep a
``ServiceResult -> str`` contract.  Outside a terminal (tests, pipes) Rich
drops color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FLOW_THEME = Theme(
    {
        "flow.ok": "bold green",
        "flow.error": "bold red",
        "flow.warning": "bold yellow",
        "flow.op": "bold cyan",
        "flow.key": "dim",
        "flow.id": "bold blue",
        "flow.path": "dim",
        "flow.name": "bold",
        "flow.score": "magenta",
        "flow.confidence.high": "green",
        "flow.confidence.mid": "yellow",
        "flow.confidence.low": "red",
        "flow.category.lore": "magenta",
        "flow.category.character": "bright_magenta",
        "flow.category.location": "green",
        "flow.category.creature": "bright_green",
        "flow.category.artifact": "yellow",
        "flow.category.prompt": "cyan",
        "flow.category.agent": "bright_cyan",
        "flow.category.code": "blue",
        "flow.category.image": "bright_blue",
        "flow.category.document": "white",
        "flow.category.config": "bright_black",
        "flow.category.unknown": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (for stable test output).
    """
    return Console(
        file=StringIO(),
        theme=FLOW_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_category(category: str) -> str:
    """Rich style name for a category value ('' when unknown to the theme)."""
    name = f"flow.category.{category}"
    return name if name in FLOW_THEME.styles else ""


def style_for_confidence(confidence: float) -> str:
    if confidence >= 0.8:
        return "flow.confidence.high"
    if confidence >= 0.5:
        return "flow.confidence.mid"
    return "flow.confidence.low"
