"""Root CLI group for artiflow with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from artiflow import __version__
from artiflow.commands import register_commands
from artiflow.commands._context import AppContext
from artiflow.config.settings import FlowSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="artiflow")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--root",
    "storage_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Storage root (default: discovered from the working directory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    storage_root: Path | None,
) -> None:
    """artiflow - classify, store and search creative artifacts."""
    ctx.ensure_object(dict)
    settings = FlowSettings.from_cli(
        config_path=config_path,
        storage_root=storage_root.expanduser().resolve() if storage_root else None,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
