"""Association resolution and change propagation.

Submodules:
    targets        -- EngineTarget, DependencyTarget, ParentTarget and resolve_target
    engine         -- EngineVersionResolver
    dependency     -- DependencyResolver with reverse fan-out
    compatibility  -- ParentCompatibilityResolver for addon versions
    propagator     -- ChangePropagator event wiring and the RescanQueue
    reconcile      -- Reconciler drift detection and repair
    graph          -- ModDependencyGraph over resolved links
    tree           -- dependency trees and the update-check helper
"""

from forgecompat.core.resolution.compatibility import ParentCompatibilityResolver
from forgecompat.core.resolution.dependency import DependencyResolver
from forgecompat.core.resolution.engine import EngineVersionResolver
from forgecompat.core.resolution.graph import ArtifactNode, ModDependencyGraph
from forgecompat.core.resolution.propagator import ChangePropagator, RescanQueue
from forgecompat.core.resolution.reconcile import AssociationDrift, Reconciler
from forgecompat.core.resolution.targets import (
    DependencyTarget,
    EngineTarget,
    ParentTarget,
    Target,
    resolve_target,
    targets_for,
)
from forgecompat.core.resolution.tree import (
    DependencyNode,
    build_dependency_tree,
    find_satisfying_version,
)

__all__ = [
    "ArtifactNode",
    "AssociationDrift",
    "ChangePropagator",
    "DependencyNode",
    "DependencyResolver",
    "DependencyTarget",
    "EngineTarget",
    "EngineVersionResolver",
    "ModDependencyGraph",
    "ParentCompatibilityResolver",
    "ParentTarget",
    "Reconciler",
    "RescanQueue",
    "Target",
    "build_dependency_tree",
    "find_satisfying_version",
    "resolve_target",
    "targets_for",
]
