"""Mod-to-mod dependency resolution with reverse fan-out.

Forward: each ``DependencyConstraint`` an artifact owns is resolved against
every version of the target mod. Reverse: when a version of mod X appears,
changes or disappears, every constraint pointing at X is resolved again,
since its satisfied set may have gained or lost that version.
"""

from __future__ import annotations

import logging

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.targets import DependencyTarget, resolve_target
from forgecompat.core.store.models import DependencyConstraint, VersionedArtifact
from forgecompat.core.store.repository import AssociationDiff, Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Keeps every dependency's satisfied version set current.

    Args:
        store: Repository holding artifacts, dependencies and their links.
        catalog: The engine version catalog (unused for matching, shared with
            the other resolvers so targets resolve uniformly).
        matcher: Shared constraint matcher.
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

    def resolve_dependency(self, dependency: DependencyConstraint) -> AssociationDiff:
        target = DependencyTarget(
            dependency_id=dependency.id,
            artifact_id=dependency.artifact_id,
            target_parent_id=dependency.target_parent_id,
            expression=dependency.constraint_expression,
        )
        diff = resolve_target(target, self._store, self._catalog, self._matcher)
        if diff.changed:
            logger.debug(
                "Dependency %d satisfied versions: +%s -%s",
                dependency.id, sorted(diff.added), sorted(diff.removed),
            )
        return diff

    def resolve(self, artifact: VersionedArtifact) -> dict[int, AssociationDiff]:
        """Resolve every dependency *artifact* owns.

        Returns:
            Mapping of dependency id to the diff applied.
        """
        with self._store.transaction():
            return {
                dependency.id: self.resolve_dependency(dependency)
                for dependency in self._store.list_dependencies(artifact.id)
            }

    def resolve_dependents_of(self, mod_id: int) -> int:
        """Reverse fan-out: re-resolve every dependency targeting *mod_id*.

        Returns:
            The number of dependencies resolved.
        """
        dependents = self._store.list_dependents_on(mod_id)
        with self._store.transaction():
            for dependency in dependents:
                self.resolve_dependency(dependency)
        if dependents:
            logger.debug("Fanned out %d dependencies on mod %d", len(dependents), mod_id)
        return len(dependents)

    def resolve_all(self) -> int:
        dependencies = self._store.list_all_dependencies()
        with self._store.transaction():
            for dependency in dependencies:
                self.resolve_dependency(dependency)
        return len(dependencies)
