"""Engine version resolution: artifact constraint -> matching catalog entries."""

from __future__ import annotations

import logging

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.targets import EngineTarget, resolve_target
from forgecompat.core.store.models import VersionedArtifact
from forgecompat.core.store.repository import AssociationDiff, Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher

logger = logging.getLogger(__name__)


class EngineVersionResolver:
    """Resolves an artifact's ``version_constraint`` against the catalog.

    The persisted set is always fully replaced, so calling ``resolve`` again
    with an unchanged catalog is a no-op. An empty or malformed constraint
    resolves to the empty set. The sentinel version is never linked.

    Args:
        store: Repository holding artifacts and engine links.
        catalog: The engine version catalog.
        matcher: Shared constraint matcher. A private one is created when omitted.
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
        target = EngineTarget(artifact.id, artifact.version_constraint)
        diff = resolve_target(target, self._store, self._catalog, self._matcher)
        if diff.changed:
            logger.debug(
                "Artifact %d engine links: +%s -%s",
                artifact.id, sorted(diff.added), sorted(diff.removed),
            )
        return diff

    def resolve_all(self) -> int:
        """Full catalog rescan: re-resolve every artifact in the repository.

        Returns:
            The number of artifacts resolved.
        """
        artifacts = self._store.list_artifacts()
        with self._store.transaction():
            for artifact in artifacts:
                self.resolve(artifact)
        logger.info("Rescanned engine compatibility for %d artifacts", len(artifacts))
        return len(artifacts)
