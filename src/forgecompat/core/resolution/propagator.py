"""Event-driven recomputation of every derived association.

``ChangePropagator`` subscribes to the repository's event bus and maps each
committed write to the resolves that keep the associations consistent:

=====================================  ==========================================
Event                                  Action
=====================================  ==========================================
artifact created                       engine + dependency + parent compatibility
                                       resolve; fan out on its mod's dependents
                                       and addons
artifact updated, engine constraint    engine resolve
artifact updated, parent constraint    parent compatibility resolve
artifact updated, version / parent     fan out on the old and the new parent mod
artifact deleted                       fan out on its mod's dependents and addons
dependency saved / deleted             dependency resolve of the owning artifact
engine version created / deleted       invalidate catalog, full rescan
engine version re-versioned or dated   invalidate catalog, full rescan
engine version updated, other fields   invalidate catalog only
addon re-attached to another mod       re-resolve every version of the addon
=====================================  ==========================================

Each action is isolated: a failure is logged and never fails the write that
triggered it, nor the other actions for the same event. A later resolve (or
the ``Reconciler``) repairs whatever was left stale.

Full rescans run inline by default. With ``defer_full_rescan=True`` they are
coalesced in a ``RescanQueue`` and executed by ``run_pending()``, the hook a
background job calls.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.compatibility import ParentCompatibilityResolver
from forgecompat.core.resolution.dependency import DependencyResolver
from forgecompat.core.resolution.engine import EngineVersionResolver
from forgecompat.core.store.events import Action, EntityEvent, EntityKind, EventBus
from forgecompat.core.store.models import Addon, ArtifactKind, DependencyConstraint, VersionedArtifact
from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher
from forgecompat.exceptions import EntityNotFound

logger = logging.getLogger(__name__)


class RescanQueue:
    """Coalescing queue of pending full-catalog rescans.

    Any number of requests between two drains collapse into one rescan.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reasons: list[str] = []

    def request(self, reason: str) -> None:
        with self._lock:
            self._reasons.append(reason)

    @property
    def pending(self) -> bool:
        with self._lock:
            return bool(self._reasons)

    def drain(self) -> list[str]:
        """Return and clear the reasons queued since the last drain."""
        with self._lock:
            reasons, self._reasons = self._reasons, []
        return reasons


class ChangePropagator:
    """Subscribes to lifecycle events and keeps associations consistent.

    Args:
        store: The repository whose writes are observed.
        catalog: Engine version catalog. Invalidated on engine version events.
        matcher: Constraint matcher shared by all resolvers.
        defer_full_rescan: Queue catalog-wide rescans for ``run_pending()``
            instead of running them inside the triggering write.
        bus: Bus to subscribe to immediately. Use ``attach`` to subscribe later.
    """

    def __init__(
        self,
        store: Repository,
        catalog: VersionCatalog,
        matcher: ConstraintMatcher | None = None,
        defer_full_rescan: bool = False,
        bus: EventBus | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.matcher = matcher or ConstraintMatcher()
        self.engine = EngineVersionResolver(store, catalog, self.matcher)
        self.dependencies = DependencyResolver(store, catalog, self.matcher)
        self.compatibility = ParentCompatibilityResolver(store, catalog, self.matcher)
        self.defer_full_rescan = defer_full_rescan
        self.rescans = RescanQueue()
        self._unsubscribers: list[Callable[[], None]] = []
        if bus is not None:
            self.attach(bus)

    @classmethod
    def for_store(cls, store: Repository, defer_full_rescan: bool = False) -> ChangePropagator:
        """Build a catalog, matcher and propagator subscribed to ``store.bus``."""
        return cls(
            store,
            VersionCatalog(store),
            defer_full_rescan=defer_full_rescan,
            bus=store.bus,
        )

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def attach(self, bus: EventBus) -> None:
        """Subscribe to *bus*, replacing any previous subscription."""
        self.detach()
        self._unsubscribers = [
            bus.subscribe(
                EntityKind.ARTIFACT,
                self._on_artifact,
                {Action.CREATED, Action.UPDATED, Action.DELETED},
            ),
            bus.subscribe(EntityKind.DEPENDENCY, self._on_dependency, {Action.SAVED, Action.DELETED}),
            bus.subscribe(
                EntityKind.ENGINE_VERSION,
                self._on_engine_version,
                {Action.CREATED, Action.UPDATED, Action.DELETED},
            ),
            bus.subscribe(EntityKind.ADDON, self._on_addon, {Action.UPDATED}),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @property
    def attached(self) -> bool:
        return bool(self._unsubscribers)

    def _guard(self, label: str, action: Callable[..., Any], *args: Any) -> None:
        try:
            action(*args)
        except Exception:
            logger.warning("Resolution step %s failed; association left stale", label, exc_info=True)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _fan_out(self, mod_id: int) -> None:
        self._guard(f"dependents of mod {mod_id}", self.dependencies.resolve_dependents_of, mod_id)
        self._guard(f"addons of mod {mod_id}", self.compatibility.resolve_addons_of, mod_id)

    def _resolve_everything(self, artifact: VersionedArtifact) -> None:
        self._guard(f"engine links of artifact {artifact.id}", self.engine.resolve, artifact)
        self._guard(f"dependencies of artifact {artifact.id}", self.dependencies.resolve, artifact)
        self._guard(f"parent compatibility of artifact {artifact.id}", self.compatibility.resolve, artifact)

    def _on_artifact(self, event: EntityEvent) -> None:
        artifact: VersionedArtifact = event.subject
        if event.action is Action.CREATED:
            self._resolve_everything(artifact)
            if artifact.kind is ArtifactKind.MOD_VERSION:
                self._fan_out(artifact.parent_id)
        elif event.action is Action.UPDATED:
            previous: VersionedArtifact = event.previous
            if event.changed("version_constraint"):
                self._guard(f"engine links of artifact {artifact.id}", self.engine.resolve, artifact)
            if event.changed("parent_constraint", "parent_id", "kind"):
                self._guard(
                    f"parent compatibility of artifact {artifact.id}",
                    self.compatibility.resolve,
                    artifact,
                )
            if event.changed("version", "parent_id", "kind"):
                affected = set()
                if previous.kind is ArtifactKind.MOD_VERSION:
                    affected.add(previous.parent_id)
                if artifact.kind is ArtifactKind.MOD_VERSION:
                    affected.add(artifact.parent_id)
                for mod_id in sorted(affected):
                    self._fan_out(mod_id)
        elif event.action is Action.DELETED:
            if artifact.kind is ArtifactKind.MOD_VERSION:
                self._fan_out(artifact.parent_id)

    def _on_dependency(self, event: EntityEvent) -> None:
        dependency: DependencyConstraint = event.subject
        try:
            owner = self.store.get_artifact(dependency.artifact_id)
        except EntityNotFound:
            logger.debug("Owner of dependency %d is gone; nothing to resolve", dependency.id)
            return
        self._guard(f"dependencies of artifact {owner.id}", self.dependencies.resolve, owner)

    def _on_engine_version(self, event: EntityEvent) -> None:
        self.catalog.invalidate()
        if event.action is Action.UPDATED and not event.changed("version", "publish_date"):
            return
        reason = f"engine version {event.subject.version} {event.action.value}"
        if self.defer_full_rescan:
            self.rescans.request(reason)
            logger.debug("Queued full rescan: %s", reason)
        else:
            self._guard("full catalog rescan", self.engine.resolve_all)

    def _on_addon(self, event: EntityEvent) -> None:
        if not event.changed("mod_id"):
            return
        addon: Addon = event.subject
        for artifact in self.store.list_children(addon.id):
            self._resolve_everything(artifact)

    # ------------------------------------------------------------------
    # Deferred work
    # ------------------------------------------------------------------

    def run_pending(self) -> int:
        """Run at most one coalesced full rescan.

        Returns:
            The number of artifacts rescanned. Zero when nothing was queued.

        Raises:
            Exception: Whatever the rescan raised. The drained requests are
                queued again first, so the next call retries them.
        """
        reasons = self.rescans.drain()
        if not reasons:
            return 0
        logger.info("Running full rescan for %d queued change(s)", len(reasons))
        self.catalog.invalidate()
        try:
            return self.engine.resolve_all()
        except Exception:
            for reason in reasons:
                self.rescans.request(reason)
            logger.warning("Full rescan failed; %d request(s) re-queued", len(reasons))
            raise
