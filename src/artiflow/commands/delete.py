"""Command: archive an artifact."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowCommand

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext


@click.command(
    cls=FlowCommand,
    examples="""\
  artiflow delete art_lx2k9q_1a2b3c4d
  artiflow --json delete art_lx2k9q_1a2b3c4d""",
)
@click.argument("artifact_id")
@click.pass_obj
def delete(app: AppContext, artifact_id: str) -> None:
    """Move an artifact's file to archive/ and drop it from the index."""
    from artiflow.services.artifacts import ArtifactService

    app.emit(ArtifactService(app.studio).delete_artifact(artifact_id))
