"""Tests for the top-level CLI group: help, version, configuration."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from forgecompat import __version__
from forgecompat.cli.main import cli


class TestGroup:
    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("resolve", "check", "catalog", "extract", "validate", "tree", "sync"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["frobnicate"])
        assert result.exit_code == 2

    def test_verbose_flag(self, runner: CliRunner, snapshot_file: Path) -> None:
        result = runner.invoke(cli, ["-v", "catalog", str(snapshot_file)])
        assert result.exit_code == 0


class TestConfigOption:
    def test_brand_aliases_from_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "forgecompat.yaml"
        config.write_text("brand_aliases: [EFT]\n")
        result = runner.invoke(
            cli, ["--config", str(config), "extract", "EFT3.8.1", "--catalog", "3.8.0,3.8.1"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "3.8.1"

    def test_invalid_config_is_a_usage_error(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "forgecompat.yaml"
        config.write_text("colour: green\n")
        result = runner.invoke(cli, ["--config", str(config), "validate", "^1.0.0"])
        assert result.exit_code == 2
        assert "Unknown configuration keys: colour" in result.output

    def test_missing_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yaml"), "validate", "^1.0.0"])
        assert result.exit_code == 2
