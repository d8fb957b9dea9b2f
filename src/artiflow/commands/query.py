"""Command group: search, retrieval, listing and stats."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowGroup
from artiflow.domain.types import ArtifactCategory, ArtifactElement
from artiflow.services.artifacts import ArtifactService

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext

_CATEGORIES = [c.value for c in ArtifactCategory]

_QUERY_EXAMPLES = """\
  artiflow query search "draconia"
  artiflow query search "fire gate" --category lore --tag guardian
  artiflow query get art_lx2k9q_1a2b3c4d
  artiflow query list --category image --limit 10
  artiflow query stats"""


@click.group(cls=FlowGroup, examples=_QUERY_EXAMPLES)
@click.pass_obj
def query(app: AppContext) -> None:
    """Search, list, and inspect stored artifacts."""


@query.command(
    examples="""\
  artiflow query search "draconia"
  artiflow query search "" --element fire --gate 3
  artiflow query search "guardian" --tag canon --tag fire
  artiflow --json query search "prompt" --limit 5 --offset 5"""
)
@click.argument("query_text", default="")
@click.option(
    "--category", type=click.Choice(_CATEGORIES), default=None, help="Filter by category."
)
@click.option(
    "--element",
    type=click.Choice([e.value for e in ArtifactElement]),
    default=None,
    help="Filter by element.",
)
@click.option("--gate", type=click.IntRange(1, 10), default=None, help="Filter by gate.")
@click.option("--tag", "tags", multiple=True, help="Require tag (repeatable, all must match).")
@click.option("--limit", default=50, type=click.IntRange(min=0), help="Max results.")
@click.option("--offset", default=0, type=click.IntRange(min=0), help="Skip this many results.")
@click.pass_obj
def search(
    app: AppContext,
    query_text: str,
    category: str | None,
    element: str | None,
    gate: int | None,
    tags: tuple[str, ...],
    limit: int,
    offset: int,
) -> None:
    """Free-text search over names, categories, owners and tags."""
    result = ArtifactService(app.studio).search_artifacts(
        query_text,
        category=category,
        element=element,
        gate=gate,
        tags=list(tags),
        limit=limit,
        offset=offset,
    )
    app.emit(result)


@query.command(
    examples="""\
  artiflow query get art_lx2k9q_1a2b3c4d
  artiflow query get art_lx2k9q_1a2b3c4d --no-content
  artiflow --json query get art_lx2k9q_1a2b3c4d"""
)
@click.argument("artifact_id")
@click.option("--content/--no-content", default=True, help="Include the stored file content.")
@click.pass_obj
def get(app: AppContext, artifact_id: str, content: bool) -> None:
    """Show one artifact by ID."""
    app.emit(ArtifactService(app.studio).get_artifact(artifact_id, include_content=content))


@query.command(
    name="list",
    examples="""\
  artiflow query list
  artiflow query list --category lore
  artiflow query list --limit 20 --offset 40""",
)
@click.option(
    "--category", type=click.Choice(_CATEGORIES), default=None, help="Filter by category."
)
@click.option("--limit", default=50, type=click.IntRange(min=0), help="Max results.")
@click.option("--offset", default=0, type=click.IntRange(min=0), help="Skip this many results.")
@click.pass_obj
def list_cmd(app: AppContext, category: str | None, limit: int, offset: int) -> None:
    """List artifacts in the order they were stored."""
    result = ArtifactService(app.studio).list_artifacts(category, limit=limit, offset=offset)
    app.emit(result)


@query.command(
    examples="""\
  artiflow query stats
  artiflow --json query stats"""
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Counts by category and element, plus the most recent artifacts."""
    app.emit(ArtifactService(app.studio).get_stats())
