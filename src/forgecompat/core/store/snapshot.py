"""Repository snapshots: whole-store JSON/YAML export and import.

A snapshot lets the CLI operate on data exported from the host application.
The format is a single mapping::

    {
      "engine_versions": [{"id": 1, "version": "3.8.0", "publish_date": "..."}],
      "mods": [{"id": 10, "name": "Loot Tweaks", "guid": "com.loot"}],
      "addons": [{"id": 20, "name": "Extra Loot", "mod_id": 10}],
      "artifacts": [{"id": 100, "kind": "mod_version", "parent_id": 10,
                     "version": "1.0.0", "version_constraint": "~3.8.0"}],
      "dependencies": [{"id": 500, "artifact_id": 100, "target_parent_id": 11,
                        "constraint_expression": "^2.0.0"}],
      "links": {"engine": {"100": [1]}, "dependency": {}, "compat": {}}
    }

Files ending in ``.yaml``/``.yml`` are read and written as YAML, everything
else as JSON. Output is deterministic: entities sorted by id, keys sorted.
Naive timestamps are taken to be UTC.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from forgecompat.core.store.events import EventBus
from forgecompat.core.store.memory import InMemoryRepository
from forgecompat.core.store.models import (
    Addon,
    ArtifactKind,
    DependencyConstraint,
    EngineVersion,
    Mod,
    VersionedArtifact,
)
from forgecompat.exceptions import SnapshotError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def _parse_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise SnapshotError(f"Invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def repository_from_dict(data: dict[str, Any], bus: EventBus | None = None) -> InMemoryRepository:
    """Build an ``InMemoryRepository`` from a snapshot mapping.

    Args:
        data: Parsed snapshot.
        bus: Event bus for the new repository. Loading publishes ordinary
            ``created`` events, so attach listeners after loading unless a
            full re-resolution on load is wanted.

    Raises:
        SnapshotError: On missing keys, bad values or dangling references.
    """
    store = InMemoryRepository(bus)
    try:
        with store.transaction():
            for row in data.get("engine_versions", []):
                store.save_engine_version(EngineVersion(
                    id=int(row["id"]),
                    version=str(row["version"]),
                    publish_date=_parse_datetime(row.get("publish_date")),
                    link=row.get("link", ""),
                    color_class=row.get("color_class", "gray"),
                ))
            for row in data.get("mods", []):
                store.save_mod(Mod(id=int(row["id"]), name=row.get("name", ""), guid=row.get("guid", "")))
            for row in data.get("addons", []):
                mod_id = row.get("mod_id")
                store.save_addon(Addon(
                    id=int(row["id"]),
                    name=row.get("name", ""),
                    mod_id=int(mod_id) if mod_id is not None else None,
                ))
            for row in data.get("artifacts", []):
                store.save_artifact(VersionedArtifact(
                    id=int(row["id"]),
                    kind=ArtifactKind(row.get("kind", ArtifactKind.MOD_VERSION.value)),
                    parent_id=int(row["parent_id"]),
                    version=str(row["version"]),
                    version_constraint=row.get("version_constraint") or "",
                    parent_constraint=row.get("parent_constraint") or "",
                    published_at=_parse_datetime(row.get("published_at")),
                    disabled=bool(row.get("disabled", False)),
                ))
            for row in data.get("dependencies", []):
                store.save_dependency(DependencyConstraint(
                    id=int(row["id"]),
                    artifact_id=int(row["artifact_id"]),
                    target_parent_id=int(row["target_parent_id"]),
                    constraint_expression=row.get("constraint_expression") or "",
                ))

            links = data.get("links", {})
            for key, ids in links.get("engine", {}).items():
                store.replace_engine_links(int(key), (int(i) for i in ids))
            for key, ids in links.get("dependency", {}).items():
                store.replace_dependency_links(int(key), (int(i) for i in ids))
            for key, ids in links.get("compat", {}).items():
                store.replace_compat_links(int(key), (int(i) for i in ids))
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotError(f"Malformed snapshot: {exc}") from exc
    return store


def repository_to_dict(store: InMemoryRepository) -> dict[str, Any]:
    """Serialize a repository to a snapshot mapping."""
    artifacts = store.list_artifacts()
    dependencies = store.list_all_dependencies()
    return {
        "engine_versions": [
            {
                "id": ev.id,
                "version": ev.version,
                "publish_date": _format_datetime(ev.publish_date),
                "link": ev.link,
                "color_class": ev.color_class,
            }
            for ev in store.list_engine_versions()
        ],
        "mods": [{"id": m.id, "name": m.name, "guid": m.guid} for m in store.list_mods()],
        "addons": [{"id": a.id, "name": a.name, "mod_id": a.mod_id} for a in store.list_addons()],
        "artifacts": [
            {
                "id": a.id,
                "kind": a.kind.value,
                "parent_id": a.parent_id,
                "version": a.version,
                "version_constraint": a.version_constraint,
                "parent_constraint": a.parent_constraint,
                "published_at": _format_datetime(a.published_at),
                "disabled": a.disabled,
            }
            for a in artifacts
        ],
        "dependencies": [
            {
                "id": d.id,
                "artifact_id": d.artifact_id,
                "target_parent_id": d.target_parent_id,
                "constraint_expression": d.constraint_expression,
            }
            for d in dependencies
        ],
        "links": {
            "engine": {
                str(a.id): sorted(store.engine_links(a.id))
                for a in artifacts
                if store.engine_links(a.id)
            },
            "dependency": {
                str(d.id): sorted(store.dependency_links(d.id))
                for d in dependencies
                if store.dependency_links(d.id)
            },
            "compat": {
                str(a.id): sorted(store.compat_links(a.id))
                for a in artifacts
                if store.compat_links(a.id)
            },
        },
    }


def load_snapshot(path: Path, bus: EventBus | None = None) -> InMemoryRepository:
    """Read a snapshot file into a new repository.

    Raises:
        SnapshotError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot {path} must contain a mapping")
    store = repository_from_dict(data, bus)
    logger.debug("Loaded snapshot %s (%d artifacts)", path, len(store.list_artifacts()))
    return store


def dump_snapshot(store: InMemoryRepository, path: Path) -> None:
    """Write *store* to *path* deterministically."""
    path = Path(path)
    data = repository_to_dict(store)
    if path.suffix.lower() in _YAML_SUFFIXES:
        text = yaml.safe_dump(data, sort_keys=True)
    else:
        text = json.dumps(data, indent=2, sort_keys=True) + "\n"
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot write snapshot {path}: {exc}") from exc
