"""Builders shared by the test-suite.

The standard catalog is ``3.7.0, 3.7.1, 3.8.0, 3.8.1, 3.9.0`` plus the
``0.0.0`` sentinel, all published in the past.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from forgecompat.core.store import (
    ArtifactKind,
    DependencyConstraint,
    EngineVersion,
    InMemoryRepository,
    VersionedArtifact,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=30)
FUTURE = NOW + timedelta(days=30)

CATALOG_VERSIONS = ["3.7.0", "3.7.1", "3.8.0", "3.8.1", "3.9.0"]

# engine version id by version string in the standard catalog
ENGINE_IDS = {version: index for index, version in enumerate(CATALOG_VERSIONS, start=1)}
SENTINEL_ID = 99


def add_catalog(store: InMemoryRepository) -> None:
    with store.transaction():
        for version, engine_id in ENGINE_IDS.items():
            store.save_engine_version(EngineVersion(engine_id, version, publish_date=PAST))
        store.save_engine_version(EngineVersion(SENTINEL_ID, "0.0.0", publish_date=PAST))


def engine_ids(*versions: str) -> set[int]:
    return {ENGINE_IDS[v] for v in versions}


def mod_version(
    artifact_id: int,
    mod_id: int,
    version: str,
    constraint: str = "",
    published: bool = True,
) -> VersionedArtifact:
    return VersionedArtifact(
        id=artifact_id,
        kind=ArtifactKind.MOD_VERSION,
        parent_id=mod_id,
        version=version,
        version_constraint=constraint,
        published_at=PAST if published else None,
    )


def addon_version(
    artifact_id: int,
    addon_id: int,
    version: str,
    parent_constraint: str = "",
    constraint: str = "",
) -> VersionedArtifact:
    return VersionedArtifact(
        id=artifact_id,
        kind=ArtifactKind.ADDON_VERSION,
        parent_id=addon_id,
        version=version,
        version_constraint=constraint,
        parent_constraint=parent_constraint,
        published_at=PAST,
    )


def dependency(
    dependency_id: int, artifact_id: int, mod_id: int, expression: str
) -> DependencyConstraint:
    return DependencyConstraint(dependency_id, artifact_id, mod_id, expression)
