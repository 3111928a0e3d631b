"""Tests for ``forgecompat extract`` and ``forgecompat validate``.

Verifies:
    - Constraint extraction from free text (exit code 0, or 1 when none).
    - Catalog source selection via --catalog / --snapshot (exit code 2 on misuse).
    - Syntax-only and catalog-backed validation.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from forgecompat.cli.main import cli

CATALOG = "3.7.0,3.7.1,3.8.0,3.8.1,3.9.0"


class TestExtract:
    """Tests for the extract command."""

    def test_extracts_minor_mention(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["extract", "Updated for SPT 3.8", "--catalog", CATALOG])
        assert result.exit_code == 0
        assert result.output.strip() == "~3.8.0"

    def test_catalog_from_snapshot(self, runner: CliRunner, snapshot_file: Path) -> None:
        result = runner.invoke(
            cli, ["extract", "SPT 3.8.1", "--snapshot", str(snapshot_file), "--format", "json"]
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == {"constraint": "3.8.1"}

    def test_nothing_found(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["extract", "no version mentioned", "--catalog", CATALOG])
        assert result.exit_code == 1
        assert "No engine version found." in result.output

    def test_nothing_found_json(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["extract", "SPT 4.0.0", "--catalog", CATALOG, "--format", "json"]
        )
        assert result.exit_code == 1
        assert json.loads(result.output) == {"constraint": None}

    @pytest.mark.parametrize(
        "extra",
        [
            [],
            ["--catalog", CATALOG, "--snapshot", "SNAPSHOT"],
        ],
    )
    def test_needs_exactly_one_catalog_source(
        self, runner: CliRunner, snapshot_file: Path, extra: list[str]
    ) -> None:
        args = [str(snapshot_file) if a == "SNAPSHOT" else a for a in extra]
        result = runner.invoke(cli, ["extract", "SPT 3.8", *args])
        assert result.exit_code == 2
        assert "exactly one of --snapshot or --catalog" in result.output

    def test_invalid_catalog_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["extract", "SPT 3.8", "--catalog", "3.8.0,3.8"])
        assert result.exit_code == 2
        assert "invalid catalog version(s): 3.8" in result.output

    def test_sentinel_is_dropped_from_catalog(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["extract", "SPT 0.0.0", "--catalog", "0.0.0,3.8.0"])
        assert result.exit_code == 1


class TestValidate:
    """Tests for the validate command."""

    def test_syntax_only(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate", " ^1.2.0 "])
        assert result.exit_code == 0
        assert result.output.strip() == "^1.2.0: valid"

    def test_syntax_only_json(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate", ">=1.0.0 <2.0.0", "--format", "json"])
        assert json.loads(result.output) == {"constraint": ">=1.0.0 <2.0.0", "valid": True}

    def test_empty_constraint_is_valid(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate", ""])
        assert result.exit_code == 0
        assert "(empty): valid" in result.output

    @pytest.mark.parametrize("constraint", ["~", "banana", ">=1.0.0 ||", "^*"])
    def test_malformed(self, runner: CliRunner, constraint: str) -> None:
        result = runner.invoke(cli, ["validate", constraint, "--catalog", CATALOG])
        assert result.exit_code == 2
        assert "Error:" in result.output

    def test_matches_against_catalog(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate", "~3.8.0", "--catalog", CATALOG])
        assert result.exit_code == 0
        assert result.output.strip() == "~3.8.0: 3.8.0, 3.8.1"

    def test_degrades_out_of_catalog_patch(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["validate", "3.7.99", "--catalog", CATALOG, "--format", "json"]
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "constraint": "3.7.99",
            "validated": "~3.7.0",
            "matches": ["3.7.0", "3.7.1"],
        }

    def test_does_not_resolve(self, runner: CliRunner, snapshot_file: Path) -> None:
        result = runner.invoke(cli, ["validate", "~4.0.0", "--snapshot", str(snapshot_file)])
        assert result.exit_code == 1
        assert "does not resolve against the catalog" in result.output
