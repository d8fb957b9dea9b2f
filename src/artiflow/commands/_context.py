"""AppContext - shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``.  Builds the Studio lazily and routes results to
stdout/stderr with the right exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from artiflow.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from pathlib import Path

    from artiflow.config.settings import FlowSettings
    from artiflow.infrastructure.studio import Studio
    from artiflow.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The studio is created on first use so ``--help``, ``--version`` and
    ``--examples`` never touch the storage root.
    """

    def __init__(self, settings: FlowSettings) -> None:
        self.settings = settings
        self._studio: Studio | None = None

        from artiflow.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from artiflow.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    @property
    def studio(self) -> Studio:
        """The studio for the resolved storage root (created lazily).

        Raises:
            click.ClickException: The storage root cannot be initialized.
        """
        if self._studio is None:
            from artiflow.errors import StorageError
            from artiflow.infrastructure.studio import Studio

            try:
                self._studio = Studio(self.settings)
            except StorageError as exc:
                raise click.ClickException(exc.message) from exc
        return self._studio

    def use_root(self, root: Path) -> None:
        """Re-resolve settings for another storage root (before first studio use)."""
        from artiflow.config.settings import FlowSettings

        config_path = self.settings.config_path
        self.settings = FlowSettings.from_cli(
            config_path=str(config_path) if config_path else None,
            storage_root=root,
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
            log_json=self.settings.log_json,
        )
        self._studio = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr so piped output stays clean.
        * Failure: stderr, exit code 1.
        """
        settings = self.output_settings
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
