"""Shared fixtures for CLI tests.

Provides repository snapshots on disk: an unresolved one exactly as the host
application would export it, and a resolved copy.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from forgecompat.core.catalog import VersionCatalog
from forgecompat.core.resolution import Reconciler
from forgecompat.core.store import dump_snapshot, repository_from_dict
from tests.helpers import ENGINE_IDS, PAST, SENTINEL_ID


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    """Catalog 3.7.0-3.9.0, two mods, one addon, no resolved links.

    Artifacts:
        100 -- Core Lib 1.0.0, engine ``~3.8.0``
        101 -- Core Lib 1.1.0, engine ``^3.9.0``
        110 -- Loot Tweaks 2.0.0, engine ``3.9.0``, depends on Core Lib ``^1.0.0``
        200 -- Extra Loot 0.1.0 (addon of Core Lib), parent ``^1.0.0``
    """
    published = PAST.isoformat()
    return {
        "engine_versions": [
            {"id": engine_id, "version": version, "publish_date": published}
            for version, engine_id in ENGINE_IDS.items()
        ] + [{"id": SENTINEL_ID, "version": "0.0.0", "publish_date": None}],
        "mods": [
            {"id": 10, "name": "Core Lib", "guid": "com.core"},
            {"id": 11, "name": "Loot Tweaks", "guid": "com.loot"},
        ],
        "addons": [{"id": 20, "name": "Extra Loot", "mod_id": 10}],
        "artifacts": [
            {"id": 100, "kind": "mod_version", "parent_id": 10, "version": "1.0.0",
             "version_constraint": "~3.8.0", "published_at": published},
            {"id": 101, "kind": "mod_version", "parent_id": 10, "version": "1.1.0",
             "version_constraint": "^3.9.0", "published_at": published},
            {"id": 110, "kind": "mod_version", "parent_id": 11, "version": "2.0.0",
             "version_constraint": "3.9.0", "published_at": published},
            {"id": 200, "kind": "addon_version", "parent_id": 20, "version": "0.1.0",
             "parent_constraint": "^1.0.0", "published_at": published},
        ],
        "dependencies": [
            {"id": 500, "artifact_id": 110, "target_parent_id": 10,
             "constraint_expression": "^1.0.0"},
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict[str, Any]) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_data))
    return path


@pytest.fixture
def resolved_snapshot(tmp_path: Path, snapshot_data: dict[str, Any]) -> Path:
    store = repository_from_dict(snapshot_data)
    Reconciler(store, VersionCatalog(store)).reconcile()
    path = tmp_path / "resolved.json"
    dump_snapshot(store, path)
    return path
