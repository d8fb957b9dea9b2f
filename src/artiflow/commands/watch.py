"""Command: watch directories and feed new files through the pipeline."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import click

from artiflow.commands._base import FlowCommand

if TYPE_CHECKING:
    from artiflow.commands._context import AppContext
    from artiflow.infrastructure.watcher import PipelineEvent

# How often the foreground loop checks for Ctrl-C / the deadline.
_TICK_SECONDS = 0.2


@click.command(
    cls=FlowCommand,
    examples="""\
  artiflow watch ~/Downloads
  artiflow watch ~/Downloads ~/notes --store
  artiflow watch --no-store
  artiflow --json watch ~/Downloads --duration 60""",
)
@click.argument(
    "paths", nargs=-1, type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--store/--no-store",
    default=None,
    help="Store confident results (default: the auto_store setting).",
)
@click.option(
    "--duration",
    type=click.FloatRange(min=0),
    default=None,
    help="Stop after this many seconds (default: until Ctrl-C).",
)
@click.pass_obj
def watch(
    app: AppContext,
    paths: tuple[Path, ...],
    store: bool | None,
    duration: float | None,
) -> None:
    """Watch PATHS (plus the configured watch paths) until interrupted.

    When not storing, files are still classified and reported if the
    auto_classify setting is on.
    """
    from artiflow.errors import WatcherError
    from artiflow.infrastructure.filesystem import read_source_file
    from artiflow.output.formatters import format_result
    from artiflow.output.renderers import notice_to_json, render_notice
    from artiflow.services.artifacts import ArtifactService

    studio = app.studio
    storing = studio.config.auto_store if store is None else store
    classify_only = not storing and studio.config.auto_classify
    settings = app.output_settings

    watcher = studio.create_watcher(store=storing)
    for path in paths:
        watcher.add_watch_path(path)

    service = ArtifactService(studio)

    def on_notice(notice: PipelineEvent) -> None:
        if settings.json_output:
            click.echo(notice_to_json(notice))
        elif not settings.quiet or str(notice.kind) != "file":
            click.echo(render_notice(notice))

        event = notice.event
        if not classify_only or str(notice.kind) != "file" or event is None:
            return
        if str(event.kind) == "remove":
            return
        source = Path(event.path)
        try:
            content = read_source_file(source)
        except OSError as exc:
            click.echo(f"WARNING: cannot read {source}: {exc}", err=True)
            return
        result = service.classify_only(content, source.name, file_path=event.path)
        click.echo(format_result(result, settings=settings))

    watcher.subscribe(on_notice)
    try:
        watcher.start()
    except WatcherError as exc:
        raise click.ClickException(str(exc)) from exc

    if not settings.json_output and not settings.quiet:
        mode = "storing" if storing else "report only"
        click.echo(f"Watching {', '.join(watcher.watch_paths)} ({mode}); Ctrl-C to stop", err=True)

    deadline = None if duration is None else time.monotonic() + duration
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(_TICK_SECONDS)
    except KeyboardInterrupt:
        click.echo("Stopping watcher...", err=True)
    finally:
        watcher.stop()
