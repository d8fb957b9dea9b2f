"""Command: storage root initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowCommand

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext

_INIT_EXAMPLES = """\
  artiflow init
  artiflow init ~/studio --watch ~/Downloads --watch ~/notes
  artiflow init . --auto-store --debounce-ms 250
  artiflow --root ~/studio init --stability-ms 1000"""


@click.command("init", cls=FlowCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=None)
@click.option(
    "-w",
    "--watch",
    "watch_paths",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Directory to watch (repeatable).",
)
@click.option(
    "--auto-classify/--no-auto-classify",
    default=None,
    help="Classify files the watcher sees when not storing them.",
)
@click.option(
    "--auto-store/--no-auto-store",
    default=None,
    help="Store files the watcher classifies confidently.",
)
@click.option("--debounce-ms", type=click.IntRange(min=0), default=None, help="Debounce window.")
@click.option(
    "--stability-ms",
    type=click.IntRange(min=0),
    default=None,
    help="How long a file's size must stay unchanged.",
)
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str | None,
    watch_paths: tuple[str, ...],
    auto_classify: bool | None,
    auto_store: bool | None,
    debounce_ms: int | None,
    stability_ms: int | None,
) -> None:
    """Create the storage layout and save the flow configuration."""
    from artiflow.services.studio import StudioService

    if path is not None:
        app.use_root(Path(path).expanduser().resolve())

    result = StudioService(app.studio).initialize(
        watch_paths=list(watch_paths) or None,
        auto_classify=auto_classify,
        auto_store=auto_store,
        debounce_ms=debounce_ms,
        stability_threshold_ms=stability_ms,
    )
    app.emit(result)
