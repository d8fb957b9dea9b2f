"""Tests for the root CLI group."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from artiflow import __version__
from artiflow.cli import cli


class TestRootGroup:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"artiflow, version {__version__}" in result.output

    def test_no_subcommand_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    def test_help_does_not_touch_root(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        root = tmp_path / "studio"
        result = cli_runner.invoke(cli, ["--root", str(root), "query", "--help"])
        assert result.exit_code == 0
        assert not root.exists()

    def test_root_option(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        root = tmp_path / "studio"
        result = cli_runner.invoke(cli, ["--root", str(root), "query", "stats"])
        assert result.exit_code == 0, result.output
        assert (root / "index").is_dir()

    def test_config_option(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "artiflow.toml").write_text("[flow]\ndebounce_ms = 42\n", encoding="utf-8")
        result = cli_runner.invoke(
            cli, ["--json", "-c", str(tmp_path / "artiflow.toml"), "init"]
        )
        assert result.exit_code == 0, result.output
        assert '"debounce_ms": 42' in result.output
