"""Command: classify a file without storing it."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowCommand

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext


@click.command(
    cls=FlowCommand,
    examples="""\
  artiflow classify lore/draconia.md
  artiflow --json classify agents/lyssandria/agent.md
  artiflow -q classify sketch.png""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def classify(app: AppContext, file: Path) -> None:
    """Show how FILE would be classified and where it would be stored."""
    from artiflow.infrastructure.filesystem import read_source_file
    from artiflow.services.artifacts import ArtifactService

    try:
        content = read_source_file(file)
    except OSError as exc:
        raise click.FileError(str(file), hint=str(exc)) from exc

    # Path segments feed the path rules, so classify the path as given.
    result = ArtifactService(app.studio).classify_only(
        content, file.name, file_path=file.as_posix()
    )
    app.emit(result)
