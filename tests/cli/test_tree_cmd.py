"""Tests for ``forgecompat tree``."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from forgecompat.cli.main import cli


class TestTreeCommand:
    def test_json_tree(self, runner: CliRunner, resolved_snapshot: Path) -> None:
        result = runner.invoke(cli, ["tree", str(resolved_snapshot), "110", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["artifact_id"] == 110
        (core,) = data["dependencies"]
        assert core["mod_name"] == "Core Lib"
        assert core["version"] == "1.1.0"
        assert core["constraints"] == ["^1.0.0"]
        assert "cycles" not in data

    def test_cycles_flag(self, runner: CliRunner, resolved_snapshot: Path) -> None:
        result = runner.invoke(
            cli, ["tree", str(resolved_snapshot), "110", "--cycles", "--format", "json"]
        )
        assert json.loads(result.output)["cycles"] == []

    def test_unresolved_snapshot_has_empty_tree(self, runner: CliRunner, snapshot_file: Path) -> None:
        result = runner.invoke(cli, ["tree", str(snapshot_file), "110"])
        assert result.exit_code == 0
        assert "no resolved dependencies" in result.output

    def test_text_tree(self, runner: CliRunner, resolved_snapshot: Path) -> None:
        result = runner.invoke(cli, ["tree", str(resolved_snapshot), "110"])
        assert result.exit_code == 0
        assert "artifact 110 (2.0.0)" in result.output
        assert "Core Lib" in result.output

    def test_missing_artifact(self, runner: CliRunner, resolved_snapshot: Path) -> None:
        result = runner.invoke(cli, ["tree", str(resolved_snapshot), "999"])
        assert result.exit_code == 2
        assert "Artifact 999 does not exist" in result.output
