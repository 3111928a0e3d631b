"""Persistence seams: entity models, the repository interface, lifecycle events.

Submodules:
    models      -- EngineVersion, Mod, Addon, VersionedArtifact, DependencyConstraint
    events      -- EntityEvent and the explicit-subscription EventBus
    repository  -- Repository protocol and the diff-and-apply association replace
    memory      -- InMemoryRepository reference implementation
    snapshot    -- JSON/YAML whole-store export and import
"""

from forgecompat.core.store.events import Action, EntityEvent, EntityKind, EventBus
from forgecompat.core.store.memory import InMemoryRepository
from forgecompat.core.store.models import (
    SENTINEL_VERSION,
    Addon,
    ArtifactKind,
    DependencyConstraint,
    EngineVersion,
    Mod,
    VersionedArtifact,
)
from forgecompat.core.store.repository import (
    AssociationDiff,
    Repository,
    apply_association_diff,
)
from forgecompat.core.store.snapshot import (
    dump_snapshot,
    load_snapshot,
    repository_from_dict,
    repository_to_dict,
)

__all__ = [
    "Action",
    "Addon",
    "ArtifactKind",
    "AssociationDiff",
    "DependencyConstraint",
    "EngineVersion",
    "EntityEvent",
    "EntityKind",
    "EventBus",
    "InMemoryRepository",
    "Mod",
    "Repository",
    "SENTINEL_VERSION",
    "VersionedArtifact",
    "apply_association_diff",
    "dump_snapshot",
    "load_snapshot",
    "repository_from_dict",
    "repository_to_dict",
]
