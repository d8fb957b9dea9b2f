"""Subcommand modules for artiflow.

Provides register_commands() which uses deferred imports to keep
``artiflow --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``query`` group and the standalone commands on the root group."""
    # --- Groups ---
    from artiflow.commands.query import query

    cli.add_command(query)

    # --- Standalone commands ---
    from artiflow.commands.classify import classify
    from artiflow.commands.delete import delete
    from artiflow.commands.init_cmd import init_cmd
    from artiflow.commands.store import store
    from artiflow.commands.update import update
    from artiflow.commands.watch import watch

    cli.add_command(init_cmd)
    cli.add_command(store)
    cli.add_command(classify)
    cli.add_command(update)
    cli.add_command(delete)
    cli.add_command(watch)
