"""Command: classify a file and store it."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowCommand
from artiflow.domain.types import ArtifactCategory, ArtifactElement

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext


@click.command(
    cls=FlowCommand,
    examples="""\
  artiflow store drafts/draconia.md
  artiflow store sketch.png --category image --tag concept-art
  artiflow store notes.txt --category lore --element fire --gate 3
  artiflow store prompt.arc --name greeting.arc --workspace studio
  artiflow --json store config.yaml --overwrite""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Store under this file name.")
@click.option(
    "--category",
    type=click.Choice([c.value for c in ArtifactCategory]),
    default=None,
    help="Force the category (confidence 1.0).",
)
@click.option(
    "--element",
    type=click.Choice([e.value for e in ArtifactElement]),
    default=None,
    help="Force the element.",
)
@click.option("--gate", type=click.IntRange(1, 10), default=None, help="Force the gate (1-10).")
@click.option("--tag", "tags", multiple=True, help="Extra tag (repeatable).")
@click.option("--workspace", default=None, help="Source workspace label.")
@click.option("--overwrite", is_flag=True, help="Replace records with the same content or path.")
@click.pass_obj
def store(
    app: AppContext,
    file: Path,
    name: str | None,
    category: str | None,
    element: str | None,
    gate: int | None,
    tags: tuple[str, ...],
    workspace: str | None,
    overwrite: bool,
) -> None:
    """Classify FILE and copy it into the storage root."""
    from artiflow.infrastructure.filesystem import read_source_file
    from artiflow.services.artifacts import ArtifactService

    try:
        content = read_source_file(file)
    except OSError as exc:
        raise click.FileError(str(file), hint=str(exc)) from exc

    source = file.resolve().as_posix()
    result = ArtifactService(app.studio).store_artifact(
        content,
        name or file.name,
        file_path=file.as_posix(),
        category=category,
        element=element,
        gate=gate,
        tags=list(tags) or None,
        source_path=source,
        source_workspace=workspace,
        overwrite=overwrite,
    )
    app.emit(result)
