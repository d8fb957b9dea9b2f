"""Command: update artifact tags, metadata and category."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from artiflow.commands._base import FlowCommand
from artiflow.domain.types import ArtifactCategory

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext


def _parse_meta(values: tuple[str, ...]) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            msg = f"Expected KEY=VALUE, got {item!r}"
            raise click.BadParameter(msg, param_hint="--meta")
        meta[key.strip()] = value
    return meta


@click.command(
    cls=FlowCommand,
    examples="""\
  artiflow update art_lx2k9q_1a2b3c4d --tag canon --tag fire
  artiflow update art_lx2k9q_1a2b3c4d --category character --subcategory guardians
  artiflow update art_lx2k9q_1a2b3c4d --meta author=ana --meta status=draft""",
)
@click.argument("artifact_id")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable).")
@click.option("--meta", multiple=True, help="Merge metadata KEY=VALUE (repeatable).")
@click.option(
    "--category",
    type=click.Choice([c.value for c in ArtifactCategory]),
    default=None,
    help="New category.",
)
@click.option("--subcategory", default=None, help="New subcategory.")
@click.pass_obj
def update(
    app: AppContext,
    artifact_id: str,
    tags: tuple[str, ...],
    meta: tuple[str, ...],
    category: str | None,
    subcategory: str | None,
) -> None:
    """Change an artifact's tags, metadata, category or subcategory."""
    from artiflow.services.artifacts import ArtifactService

    changes: dict[str, Any] = {}
    if tags:
        changes["tags"] = list(tags)
    if meta:
        changes["metadata"] = _parse_meta(meta)
    if category is not None:
        changes["category"] = category
    if subcategory is not None:
        changes["subcategory"] = subcategory

    app.emit(ArtifactService(app.studio).update_artifact(artifact_id, changes))
