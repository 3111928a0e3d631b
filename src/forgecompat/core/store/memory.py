"""In-memory reference implementation of ``Repository``.

Used by the CLI (loaded from snapshots) and by the test-suite. It behaves
like the host application's storage as far as the engine can observe:

- writes happen inside ``transaction()``; lifecycle events are queued and
  published once the outermost transaction exits without error;
- deleting an entity removes every association row that references it;
- association replaces never publish entity events.

Thread safety: every public method runs under one re-entrant lock. A failed
outermost transaction rolls every table back and discards its queued events.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator, TypeVar

from forgecompat.core.store.events import Action, EntityEvent, EntityKind, EventBus
from forgecompat.core.store.models import (
    Addon,
    ArtifactKind,
    DependencyConstraint,
    EngineVersion,
    Mod,
    VersionedArtifact,
    changed_fields,
)
from forgecompat.core.store.repository import AssociationDiff, apply_association_diff
from forgecompat.core.versioning.semver import strip_version_prefix
from forgecompat.exceptions import EntityNotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _get(table: dict[int, T], key: int, label: str) -> T:
    try:
        return replace(table[key])  # type: ignore[type-var]
    except KeyError:
        raise EntityNotFound(f"{label} {key} does not exist") from None


class InMemoryRepository:
    """Dictionary-backed repository with lifecycle events.

    Args:
        bus: Event bus to publish on. A private bus is created when omitted.
    """

    _TABLES = ("_engine_versions", "_mods", "_addons", "_artifacts", "_dependencies")
    _LINK_TABLES = ("_engine_links", "_dependency_links", "_compat_links")

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or EventBus()
        self._lock = threading.RLock()
        self._depth = 0
        self._pending: list[EntityEvent] = []

        self._engine_versions: dict[int, EngineVersion] = {}
        self._mods: dict[int, Mod] = {}
        self._addons: dict[int, Addon] = {}
        self._artifacts: dict[int, VersionedArtifact] = {}
        self._dependencies: dict[int, DependencyConstraint] = {}

        self._engine_links: dict[int, set[int]] = {}
        self._dependency_links: dict[int, set[int]] = {}
        self._compat_links: dict[int, set[int]] = {}

    # ------------------------------------------------------------------
    # Transactions and events
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes; publish their events after the outermost exit.

        If the outermost transaction fails, every table is restored to its
        state at entry and the queued events are dropped.
        """
        self._lock.acquire()
        saved = self._capture() if self._depth == 0 else None
        self._depth += 1
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            self._depth -= 1
            pending: list[EntityEvent] = []
            if self._depth == 0:
                pending, self._pending = self._pending, []
                if failed and saved is not None:
                    self._restore(saved)
            self._lock.release()
            if failed and pending:
                logger.debug("Rolled back transaction; dropped %d events", len(pending))
            elif pending:
                for event in pending:
                    self.bus.publish(event)

    def _capture(self) -> dict[str, dict]:
        state: dict[str, dict] = {name: dict(getattr(self, name)) for name in self._TABLES}
        for name in self._LINK_TABLES:
            state[name] = {key: set(ids) for key, ids in getattr(self, name).items()}
        return state

    def _restore(self, state: dict[str, dict]) -> None:
        for name, table in state.items():
            setattr(self, name, table)

    def _queue_saved(self, entity: EntityKind, old: object | None, new: object) -> None:
        if old is None:
            self._pending.append(EntityEvent(entity, Action.CREATED, replace(new)))
        else:
            diff = changed_fields(old, new)
            if diff:
                self._pending.append(
                    EntityEvent(entity, Action.UPDATED, replace(new), replace(old), diff)
                )
        self._pending.append(EntityEvent(entity, Action.SAVED, replace(new), old))

    def _queue_deleted(self, entity: EntityKind, old: object) -> None:
        self._pending.append(EntityEvent(entity, Action.DELETED, old))

    # ------------------------------------------------------------------
    # Engine versions
    # ------------------------------------------------------------------

    def save_engine_version(self, engine_version: EngineVersion) -> EngineVersion:
        stored = replace(engine_version, version=strip_version_prefix(engine_version.version))
        with self.transaction():
            old = self._engine_versions.get(stored.id)
            self._engine_versions[stored.id] = stored
            self._queue_saved(EntityKind.ENGINE_VERSION, old, stored)
        return replace(stored)

    def delete_engine_version(self, engine_version_id: int) -> None:
        with self.transaction():
            old = self._engine_versions.pop(engine_version_id, None)
            if old is None:
                raise EntityNotFound(f"Engine version {engine_version_id} does not exist")
            for links in self._engine_links.values():
                links.discard(engine_version_id)
            self._queue_deleted(EntityKind.ENGINE_VERSION, old)

    def get_engine_version(self, engine_version_id: int) -> EngineVersion:
        with self._lock:
            return _get(self._engine_versions, engine_version_id, "Engine version")

    def list_engine_versions(self) -> list[EngineVersion]:
        with self._lock:
            return [replace(ev) for _, ev in sorted(self._engine_versions.items())]

    # ------------------------------------------------------------------
    # Mods and addons
    # ------------------------------------------------------------------

    def save_mod(self, mod: Mod) -> Mod:
        stored = replace(mod)
        with self.transaction():
            old = self._mods.get(stored.id)
            self._mods[stored.id] = stored
            self._queue_saved(EntityKind.MOD, old, stored)
        return replace(stored)

    def get_mod(self, mod_id: int) -> Mod:
        with self._lock:
            return _get(self._mods, mod_id, "Mod")

    def list_mods(self) -> list[Mod]:
        with self._lock:
            return [replace(m) for _, m in sorted(self._mods.items())]

    def save_addon(self, addon: Addon) -> Addon:
        stored = replace(addon)
        with self.transaction():
            if stored.mod_id is not None and stored.mod_id not in self._mods:
                raise EntityNotFound(f"Mod {stored.mod_id} does not exist")
            old = self._addons.get(stored.id)
            self._addons[stored.id] = stored
            self._queue_saved(EntityKind.ADDON, old, stored)
        return replace(stored)

    def get_addon(self, addon_id: int) -> Addon:
        with self._lock:
            return _get(self._addons, addon_id, "Addon")

    def list_addons(self) -> list[Addon]:
        with self._lock:
            return [replace(a) for _, a in sorted(self._addons.items())]

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def _check_parent(self, artifact: VersionedArtifact) -> None:
        if artifact.kind is ArtifactKind.MOD_VERSION:
            if artifact.parent_id not in self._mods:
                raise EntityNotFound(f"Mod {artifact.parent_id} does not exist")
        elif artifact.parent_id not in self._addons:
            raise EntityNotFound(f"Addon {artifact.parent_id} does not exist")

    def save_artifact(self, artifact: VersionedArtifact) -> VersionedArtifact:
        stored = replace(artifact, version=strip_version_prefix(artifact.version))
        with self.transaction():
            self._check_parent(stored)
            old = self._artifacts.get(stored.id)
            self._artifacts[stored.id] = stored
            self._queue_saved(EntityKind.ARTIFACT, old, stored)
        return replace(stored)

    def delete_artifact(self, artifact_id: int) -> None:
        with self.transaction():
            old = self._artifacts.pop(artifact_id, None)
            if old is None:
                raise EntityNotFound(f"Artifact {artifact_id} does not exist")
            self._engine_links.pop(artifact_id, None)
            self._compat_links.pop(artifact_id, None)
            owned = [d.id for d in self._dependencies.values() if d.artifact_id == artifact_id]
            for dependency_id in owned:
                del self._dependencies[dependency_id]
                self._dependency_links.pop(dependency_id, None)
            for links in self._dependency_links.values():
                links.discard(artifact_id)
            for links in self._compat_links.values():
                links.discard(artifact_id)
            self._queue_deleted(EntityKind.ARTIFACT, old)

    def get_artifact(self, artifact_id: int) -> VersionedArtifact:
        with self._lock:
            return _get(self._artifacts, artifact_id, "Artifact")

    def list_artifacts(self) -> list[VersionedArtifact]:
        with self._lock:
            return [replace(a) for _, a in sorted(self._artifacts.items())]

    def list_versions_of(self, mod_id: int) -> list[VersionedArtifact]:
        with self._lock:
            return [
                replace(a)
                for _, a in sorted(self._artifacts.items())
                if a.kind is ArtifactKind.MOD_VERSION and a.parent_id == mod_id
            ]

    def list_children(self, addon_id: int) -> list[VersionedArtifact]:
        with self._lock:
            return [
                replace(a)
                for _, a in sorted(self._artifacts.items())
                if a.kind is ArtifactKind.ADDON_VERSION and a.parent_id == addon_id
            ]

    def list_addon_versions_for_mod(self, mod_id: int) -> list[VersionedArtifact]:
        with self._lock:
            addon_ids = {a.id for a in self._addons.values() if a.mod_id == mod_id}
            return [
                replace(a)
                for _, a in sorted(self._artifacts.items())
                if a.kind is ArtifactKind.ADDON_VERSION and a.parent_id in addon_ids
            ]

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def save_dependency(self, dependency: DependencyConstraint) -> DependencyConstraint:
        stored = replace(dependency)
        with self.transaction():
            if stored.artifact_id not in self._artifacts:
                raise EntityNotFound(f"Artifact {stored.artifact_id} does not exist")
            old = self._dependencies.get(stored.id)
            self._dependencies[stored.id] = stored
            self._queue_saved(EntityKind.DEPENDENCY, old, stored)
        return replace(stored)

    def delete_dependency(self, dependency_id: int) -> None:
        with self.transaction():
            old = self._dependencies.pop(dependency_id, None)
            if old is None:
                raise EntityNotFound(f"Dependency {dependency_id} does not exist")
            self._dependency_links.pop(dependency_id, None)
            self._queue_deleted(EntityKind.DEPENDENCY, old)

    def get_dependency(self, dependency_id: int) -> DependencyConstraint:
        with self._lock:
            return _get(self._dependencies, dependency_id, "Dependency")

    def list_dependencies(self, artifact_id: int) -> list[DependencyConstraint]:
        with self._lock:
            return [
                replace(d)
                for _, d in sorted(self._dependencies.items())
                if d.artifact_id == artifact_id
            ]

    def list_all_dependencies(self) -> list[DependencyConstraint]:
        with self._lock:
            return [replace(d) for _, d in sorted(self._dependencies.items())]

    def list_dependents_on(self, mod_id: int) -> list[DependencyConstraint]:
        with self._lock:
            return [
                replace(d)
                for _, d in sorted(self._dependencies.items())
                if d.target_parent_id == mod_id
            ]

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    def engine_links(self, artifact_id: int) -> set[int]:
        with self._lock:
            return set(self._engine_links.get(artifact_id, ()))

    def replace_engine_links(
        self, artifact_id: int, engine_version_ids: Iterable[int]
    ) -> AssociationDiff:
        with self.transaction():
            if artifact_id not in self._artifacts:
                raise EntityNotFound(f"Artifact {artifact_id} does not exist")
            current = self._engine_links.setdefault(artifact_id, set())
            return apply_association_diff(current, engine_version_ids)

    def artifacts_linked_to_engine(self, engine_version_id: int) -> set[int]:
        with self._lock:
            return {
                artifact_id
                for artifact_id, links in self._engine_links.items()
                if engine_version_id in links
            }

    def dependency_links(self, dependency_id: int) -> set[int]:
        with self._lock:
            return set(self._dependency_links.get(dependency_id, ()))

    def replace_dependency_links(
        self, dependency_id: int, artifact_ids: Iterable[int]
    ) -> AssociationDiff:
        with self.transaction():
            if dependency_id not in self._dependencies:
                raise EntityNotFound(f"Dependency {dependency_id} does not exist")
            current = self._dependency_links.setdefault(dependency_id, set())
            return apply_association_diff(current, artifact_ids)

    def compat_links(self, artifact_id: int) -> set[int]:
        with self._lock:
            return set(self._compat_links.get(artifact_id, ()))

    def replace_compat_links(
        self, artifact_id: int, artifact_ids: Iterable[int]
    ) -> AssociationDiff:
        with self.transaction():
            if artifact_id not in self._artifacts:
                raise EntityNotFound(f"Artifact {artifact_id} does not exist")
            current = self._compat_links.setdefault(artifact_id, set())
            return apply_association_diff(current, artifact_ids)
