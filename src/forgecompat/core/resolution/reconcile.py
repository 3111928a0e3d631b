"""Periodic reconciliation: detect and repair stale associations.

The propagator guarantees eventual consistency only if every resolve
succeeds. ``Reconciler`` compares each persisted association set with a
fresh evaluation and re-runs resolution for whatever drifted. The repair is
always "resolve again", never a manual patch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.targets import (
    Target,
    current_ids,
    desired_ids,
    resolve_target,
    targets_for,
)
from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.constraints import ConstraintMatcher
from forgecompat.exceptions import InconsistentAssociation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssociationDrift:
    """One association set that differs from its fresh evaluation.

    Attributes:
        target: The association set that drifted.
        missing: Ids that should be linked but are not.
        stale: Ids that are linked but should not be.
    """

    target: Target
    missing: frozenset[int]
    stale: frozenset[int]

    def describe(self) -> str:
        kind = type(self.target).__name__.replace("Target", "").lower()
        return (
            f"artifact {self.target.artifact_id} {kind} links: "
            f"missing {sorted(self.missing)}, stale {sorted(self.stale)}"
        )


class Reconciler:
    def __init__(
        self,
        store: Repository,
        catalog: VersionCatalog,
        matcher: ConstraintMatcher | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._matcher = matcher or ConstraintMatcher()

    def _targets(self) -> list[Target]:
        targets: list[Target] = []
        for artifact in self._store.list_artifacts():
            targets.extend(targets_for(artifact, self._store))
        return targets

    def check(self) -> list[AssociationDrift]:
        """Compare every association set with a fresh evaluation."""
        drifts: list[AssociationDrift] = []
        for target in self._targets():
            desired = desired_ids(target, self._store, self._catalog, self._matcher)
            current = current_ids(target, self._store)
            if desired != current:
                drifts.append(AssociationDrift(
                    target=target,
                    missing=frozenset(desired - current),
                    stale=frozenset(current - desired),
                ))
        return drifts

    def reconcile(self) -> list[AssociationDrift]:
        """Re-resolve every drifted association set.

        Returns:
            The drifts that were repaired.
        """
        drifts = self.check()
        if not drifts:
            return []
        with self._store.transaction():
            for drift in drifts:
                logger.warning("Repairing drift: %s", drift.describe())
                resolve_target(drift.target, self._store, self._catalog, self._matcher)
        return drifts

    def assert_consistent(self) -> None:
        """Raise if any association set has drifted.

        Raises:
            InconsistentAssociation: With the drifts attached as ``.drifts``.
        """
        drifts = self.check()
        if drifts:
            raise InconsistentAssociation(
                f"{len(drifts)} association set(s) out of date; re-run resolve",
                drifts=drifts,
            )
