"""The persistence interface consumed by the resolution engine.

``Repository`` is the seam to the host application's storage. The engine
only needs CRUD on the entities, a handful of list queries, and three
association sets it replaces wholesale:

- artifact -> engine versions (``engine_links``)
- dependency -> satisfying mod versions (``dependency_links``)
- addon version -> compatible mod versions (``compat_links``)

Every replace goes through ``apply_association_diff`` so that an unchanged
set costs no writes and the replace is a single atomic step inside the host
transaction.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Iterable, Protocol, runtime_checkable

from forgecompat.core.store.events import EventBus
from forgecompat.core.store.models import (
    Addon,
    DependencyConstraint,
    EngineVersion,
    Mod,
    VersionedArtifact,
)


@dataclass(frozen=True)
class AssociationDiff:
    """Outcome of replacing one association set.

    Attributes:
        added: Ids linked by the replace.
        removed: Stale ids unlinked by the replace.
    """

    added: frozenset[int] = frozenset()
    removed: frozenset[int] = frozenset()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def apply_association_diff(current: set[int], desired: Iterable[int]) -> AssociationDiff:
    """Mutate *current* in place so it equals *desired*.

    Args:
        current: The persisted id set. Modified in place.
        desired: The freshly computed id set.

    Returns:
        The ids added and removed. Both empty when nothing changed.
    """
    target = set(desired)
    added = target - current
    removed = current - target
    if removed:
        current.difference_update(removed)
    if added:
        current.update(added)
    return AssociationDiff(added=frozenset(added), removed=frozenset(removed))


@runtime_checkable
class Repository(Protocol):
    """Storage operations the resolution engine relies on."""

    bus: EventBus

    def transaction(self) -> AbstractContextManager[None]: ...

    # Engine versions
    def save_engine_version(self, engine_version: EngineVersion) -> EngineVersion: ...
    def delete_engine_version(self, engine_version_id: int) -> None: ...
    def get_engine_version(self, engine_version_id: int) -> EngineVersion: ...
    def list_engine_versions(self) -> list[EngineVersion]: ...

    # Parents
    def save_mod(self, mod: Mod) -> Mod: ...
    def get_mod(self, mod_id: int) -> Mod: ...
    def list_mods(self) -> list[Mod]: ...
    def save_addon(self, addon: Addon) -> Addon: ...
    def get_addon(self, addon_id: int) -> Addon: ...
    def list_addons(self) -> list[Addon]: ...

    # Artifacts
    def save_artifact(self, artifact: VersionedArtifact) -> VersionedArtifact: ...
    def delete_artifact(self, artifact_id: int) -> None: ...
    def get_artifact(self, artifact_id: int) -> VersionedArtifact: ...
    def list_artifacts(self) -> list[VersionedArtifact]: ...
    def list_versions_of(self, mod_id: int) -> list[VersionedArtifact]: ...
    def list_children(self, addon_id: int) -> list[VersionedArtifact]: ...
    def list_addon_versions_for_mod(self, mod_id: int) -> list[VersionedArtifact]: ...

    # Dependencies
    def save_dependency(self, dependency: DependencyConstraint) -> DependencyConstraint: ...
    def delete_dependency(self, dependency_id: int) -> None: ...
    def get_dependency(self, dependency_id: int) -> DependencyConstraint: ...
    def list_dependencies(self, artifact_id: int) -> list[DependencyConstraint]: ...
    def list_all_dependencies(self) -> list[DependencyConstraint]: ...
    def list_dependents_on(self, mod_id: int) -> list[DependencyConstraint]: ...

    # Associations
    def engine_links(self, artifact_id: int) -> set[int]: ...
    def replace_engine_links(self, artifact_id: int, engine_version_ids: Iterable[int]) -> AssociationDiff: ...
    def artifacts_linked_to_engine(self, engine_version_id: int) -> set[int]: ...
    def dependency_links(self, dependency_id: int) -> set[int]: ...
    def replace_dependency_links(self, dependency_id: int, artifact_ids: Iterable[int]) -> AssociationDiff: ...
    def compat_links(self, artifact_id: int) -> set[int]: ...
    def replace_compat_links(self, artifact_id: int, artifact_ids: Iterable[int]) -> AssociationDiff: ...
