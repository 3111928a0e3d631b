"""Dependency trees and the update-check helper.

Both read the persisted associations and, unless told otherwise, only
consider publicly visible mod versions: published (``published_at`` set and
not in the future) and not disabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from forgecompat.core.catalog.catalog import utcnow
from forgecompat.core.store.models import VersionedArtifact
from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher
from forgecompat.exceptions import EntityNotFound


@dataclass
class DependencyNode:
    """One resolved dependency in a tree.

    Attributes:
        mod_id: The mod depended on.
        mod_name: Its display name.
        version_id: The highest satisfied, visible version chosen.
        version: That version's string.
        constraints: Every constraint expression on this mod seen in the tree.
        dependencies: The chosen version's own resolved dependencies. Empty
            when the version was already expanded elsewhere in the tree.
    """

    mod_id: int
    mod_name: str
    version_id: int
    version: str
    constraints: list[str] = field(default_factory=list)
    dependencies: list[DependencyNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mod_id": self.mod_id,
            "mod_name": self.mod_name,
            "version_id": self.version_id,
            "version": self.version,
            "constraints": list(self.constraints),
            "dependencies": [child.to_dict() for child in self.dependencies],
        }


def is_publicly_visible(artifact: VersionedArtifact, now: datetime) -> bool:
    return (
        not artifact.disabled
        and artifact.published_at is not None
        and artifact.published_at <= now
    )


def _highest(artifacts: list[VersionedArtifact]) -> VersionedArtifact | None:
    ranked = [(a.semver, a.id, a) for a in artifacts if a.semver is not None]
    if not ranked:
        return None
    return max(ranked, key=lambda row: (row[0], row[1]))[2]


def build_dependency_tree(
    store: Repository,
    artifact_id: int,
    now: datetime | None = None,
    include_unpublished: bool = False,
) -> list[DependencyNode]:
    """Build the nested dependency tree of *artifact_id*.

    For each mod depended on, the highest satisfied version is chosen and
    expanded recursively. Each version is expanded at most once, which also
    stops circular dependencies.

    Args:
        store: Repository with resolved dependency links.
        artifact_id: Root artifact.
        now: Reference time for visibility. Defaults to UTC now.
        include_unpublished: Consider unpublished and disabled versions too.

    Raises:
        EntityNotFound: If *artifact_id* does not exist.
    """
    store.get_artifact(artifact_id)
    moment = now or utcnow()
    constraints_by_mod: dict[int, list[str]] = {}
    processed: set[int] = set()

    def visible(artifact: VersionedArtifact) -> bool:
        return include_unpublished or is_publicly_visible(artifact, moment)

    def expand(version_id: int) -> list[DependencyNode]:
        if version_id in processed:
            return []
        processed.add(version_id)

        chosen_by_mod: dict[int, VersionedArtifact] = {}
        for dependency in store.list_dependencies(version_id):
            constraints_by_mod.setdefault(dependency.target_parent_id, []).append(
                dependency.constraint_expression
            )
            candidates = []
            for linked_id in store.dependency_links(dependency.id):
                try:
                    linked = store.get_artifact(linked_id)
                except EntityNotFound:
                    continue
                if visible(linked):
                    candidates.append(linked)
            existing = chosen_by_mod.get(dependency.target_parent_id)
            best = _highest(candidates + ([existing] if existing else []))
            if best is not None:
                chosen_by_mod[dependency.target_parent_id] = best

        nodes = []
        for mod_id, chosen in sorted(chosen_by_mod.items()):
            try:
                name = store.get_mod(mod_id).name
            except EntityNotFound:
                continue
            nodes.append(DependencyNode(
                mod_id=mod_id,
                mod_name=name,
                version_id=chosen.id,
                version=chosen.version,
                constraints=constraints_by_mod[mod_id],
                dependencies=expand(chosen.id),
            ))
        return nodes

    return expand(artifact_id)


def find_satisfying_version(
    store: Repository,
    mod_id: int,
    constraint: str,
    engine_version: str,
    now: datetime | None = None,
    matcher: ConstraintMatcher | None = None,
) -> VersionedArtifact | None:
    """The highest visible version of *mod_id* satisfying *constraint* that
    is resolved to the engine version *engine_version*.

    Returns:
        The matching version, or None when nothing qualifies.
    """
    moment = now or utcnow()
    matcher = matcher or ConstraintMatcher()
    engine_ids = {
        ev.id
        for ev in store.list_engine_versions()
        if ev.version == engine_version and ev.is_published(moment)
    }
    if not engine_ids:
        return None
    candidates = [
        artifact
        for artifact in store.list_versions_of(mod_id)
        if is_publicly_visible(artifact, moment)
        and matcher.satisfies(artifact.version, constraint)
        and store.engine_links(artifact.id) & engine_ids
    ]
    return _highest(candidates)

