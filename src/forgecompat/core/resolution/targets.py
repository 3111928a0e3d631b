"""Resolution targets: the closed set of association sets an artifact owns.

Every derived association is described by one of three tagged variants:

- ``EngineTarget``      -- artifact -> engine versions matching its
  ``version_constraint``
- ``DependencyTarget``  -- dependency -> versions of the target mod matching
  its ``constraint_expression``
- ``ParentTarget``      -- addon version -> versions of the addon's mod
  matching its ``parent_constraint``

``resolve_target`` switches explicitly on the variant, computes the desired
id set and persists it through the repository's diff-and-apply replace.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.store.models import ArtifactKind, VersionedArtifact
from forgecompat.core.store.repository import AssociationDiff, Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher
from forgecompat.exceptions import EntityNotFound


@dataclass(frozen=True)
class EngineTarget:
    artifact_id: int
    expression: str


@dataclass(frozen=True)
class DependencyTarget:
    dependency_id: int
    artifact_id: int
    target_parent_id: int
    expression: str


@dataclass(frozen=True)
class ParentTarget:
    """Addon version compatibility with its mod.

    ``mod_id`` is None when the addon is detached from any mod.
    """

    artifact_id: int
    mod_id: int | None
    expression: str


Target = Union[EngineTarget, DependencyTarget, ParentTarget]


def addon_mod_id(store: Repository, artifact: VersionedArtifact) -> int | None:
    """The mod an addon version's addon is attached to, if any."""
    if artifact.kind is not ArtifactKind.ADDON_VERSION:
        return None
    try:
        return store.get_addon(artifact.parent_id).mod_id
    except EntityNotFound:
        return None


def targets_for(artifact: VersionedArtifact, store: Repository) -> list[Target]:
    """Enumerate every association set *artifact* owns."""
    targets: list[Target] = [EngineTarget(artifact.id, artifact.version_constraint)]
    for dependency in store.list_dependencies(artifact.id):
        targets.append(DependencyTarget(
            dependency_id=dependency.id,
            artifact_id=artifact.id,
            target_parent_id=dependency.target_parent_id,
            expression=dependency.constraint_expression,
        ))
    if artifact.kind is ArtifactKind.ADDON_VERSION:
        targets.append(ParentTarget(
            artifact.id, addon_mod_id(store, artifact), artifact.parent_constraint
        ))
    return targets


def _matching_versions_of(
    store: Repository,
    matcher: ConstraintMatcher,
    mod_id: int,
    expression: str,
    exclude: int,
) -> set[int]:
    return {
        candidate.id
        for candidate in store.list_versions_of(mod_id)
        if candidate.id != exclude and matcher.satisfies(candidate.version, expression)
    }


def desired_ids(
    target: Target,
    store: Repository,
    catalog: VersionCatalog,
    matcher: ConstraintMatcher,
) -> set[int]:
    """Compute the id set *target* should hold right now.

    Never raises for malformed expressions or versions; those match nothing.
    """
    if not target.expression.strip():
        return set()
    if isinstance(target, EngineTarget):
        return {
            ev.id
            for ev in catalog.entries()
            if not ev.is_sentinel
            and ev.publish_date is not None
            and matcher.satisfies(ev.version, target.expression)
        }
    if isinstance(target, DependencyTarget):
        return _matching_versions_of(
            store, matcher, target.target_parent_id, target.expression, target.artifact_id
        )
    if isinstance(target, ParentTarget):
        if target.mod_id is None:
            return set()
        return _matching_versions_of(
            store, matcher, target.mod_id, target.expression, target.artifact_id
        )
    raise TypeError(f"Unknown resolution target: {target!r}")


def current_ids(target: Target, store: Repository) -> set[int]:
    """The id set currently persisted for *target*."""
    if isinstance(target, EngineTarget):
        return store.engine_links(target.artifact_id)
    if isinstance(target, DependencyTarget):
        return store.dependency_links(target.dependency_id)
    if isinstance(target, ParentTarget):
        return store.compat_links(target.artifact_id)
    raise TypeError(f"Unknown resolution target: {target!r}")


def resolve_target(
    target: Target,
    store: Repository,
    catalog: VersionCatalog,
    matcher: ConstraintMatcher,
) -> AssociationDiff:
    """Recompute *target* and replace its persisted association set.

    Returns:
        The ids added and removed by the replace.
    """
    desired = desired_ids(target, store, catalog, matcher)
    if isinstance(target, EngineTarget):
        return store.replace_engine_links(target.artifact_id, desired)
    if isinstance(target, DependencyTarget):
        return store.replace_dependency_links(target.dependency_id, desired)
    if isinstance(target, ParentTarget):
        return store.replace_compat_links(target.artifact_id, desired)
    raise TypeError(f"Unknown resolution target: {target!r}")
