"""Addon version -> compatible versions of the mod the addon is attached to."""

from __future__ import annotations

import logging

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.targets import ParentTarget, addon_mod_id, resolve_target
from forgecompat.core.store.models import ArtifactKind, VersionedArtifact
from forgecompat.core.store.repository import AssociationDiff, Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher

logger = logging.getLogger(__name__)


class ParentCompatibilityResolver:
    """Resolves an addon version's ``parent_constraint``.

    Mod versions own no compatibility set; resolving one is a no-op that
    returns an empty diff. Detached addons resolve to the empty set.
    """

    def __init__(
        self,
        store: Repository,
        catalog: VersionCatalog,
        matcher: ConstraintMatcher | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._matcher = matcher or ConstraintMatcher()

    def resolve(self, artifact: VersionedArtifact) -> AssociationDiff:
        if artifact.kind is not ArtifactKind.ADDON_VERSION:
            return AssociationDiff()
        target = ParentTarget(
            artifact.id, addon_mod_id(self._store, artifact), artifact.parent_constraint
        )
        diff = resolve_target(target, self._store, self._catalog, self._matcher)
        if diff.changed:
            logger.debug(
                "Addon version %d compatible mod versions: +%s -%s",
                artifact.id, sorted(diff.added), sorted(diff.removed),
            )
        return diff

    def resolve_addons_of(self, mod_id: int) -> int:
        """Re-resolve every addon version whose addon is attached to *mod_id*.

        Returns:
            The number of addon versions resolved.
        """
        addon_versions = self._store.list_addon_versions_for_mod(mod_id)
        with self._store.transaction():
            for artifact in addon_versions:
                self.resolve(artifact)
        return len(addon_versions)

    def resolve_all(self) -> int:
        count = 0
        with self._store.transaction():
            for artifact in self._store.list_artifacts():
                if artifact.kind is ArtifactKind.ADDON_VERSION:
                    self.resolve(artifact)
                    count += 1
        return count
