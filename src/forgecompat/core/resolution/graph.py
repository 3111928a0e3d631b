"""Version-level dependency graph built from resolved associations.

Nodes are artifacts. An edge runs from a depending artifact to each mod
version its dependencies are currently resolved to, so the graph always
reflects the persisted ``dependency_links`` rather than re-evaluating
constraints. Supports mod-level cycle detection, transitive dependency
computation (BFS, highest satisfying version per dependency) and the reverse
closure: everything that transitively depends on a version.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass, field

from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.semver import SemanticVersion


# ---------------------------------------------------------------------------
# ArtifactNode: a vertex in the graph
# ---------------------------------------------------------------------------


@dataclass
class ArtifactNode:
    """One artifact and the satisfied version ids of each of its dependencies.

    ``mod_id`` is None for addon versions.
    """

    artifact_id: int
    mod_id: int | None
    version: str
    dependencies: dict[int, set[int]] = field(default_factory=dict)


def _sort_key(version: str) -> tuple[int, SemanticVersion | None]:
    try:
        return (1, SemanticVersion.parse(version))
    except ValueError:
        return (0, None)


# ---------------------------------------------------------------------------
# ModDependencyGraph
# ---------------------------------------------------------------------------


class ModDependencyGraph:
    """Dependency graph over every artifact in a repository.

    Thread safety: not thread-safe. Build a fresh graph per query.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, ArtifactNode] = {}
        # dependency id -> target mod id, for mod-level views
        self._targets: dict[int, int] = {}

    @classmethod
    def from_store(cls, store: Repository) -> ModDependencyGraph:
        graph = cls()
        for artifact in store.list_artifacts():
            graph.add_node(ArtifactNode(
                artifact_id=artifact.id,
                mod_id=artifact.parent_id if artifact.is_mod_version else None,
                version=artifact.version,
            ))
        for dependency in store.list_all_dependencies():
            node = graph._nodes.get(dependency.artifact_id)
            if node is None:
                continue
            node.dependencies[dependency.id] = store.dependency_links(dependency.id)
            graph._targets[dependency.id] = dependency.target_parent_id
        return graph

    def add_node(self, node: ArtifactNode) -> None:
        self._nodes[node.artifact_id] = node

    def get_node(self, artifact_id: int) -> ArtifactNode | None:
        return self._nodes.get(artifact_id)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def _highest(self, ids: set[int]) -> int | None:
        present = [i for i in ids if i in self._nodes]
        if not present:
            return None
        return max(present, key=lambda i: (_sort_key(self._nodes[i].version), i))

    def detect_cycles(self) -> list[list[int]]:
        """Detect circular dependencies between mods using DFS coloring.

        Versions are collapsed to their mod, so a cycle means some version of
        mod A depends on mod B and some version of B depends back on A.

        Returns:
            Each cycle as a list of mod ids that starts and ends with the same
            mod, e.g. ``[1, 2, 1]``. Empty if the graph is acyclic.
        """
        adj: dict[int, set[int]] = defaultdict(set)
        all_mods: set[int] = set()
        for node in self._nodes.values():
            if node.mod_id is None:
                continue
            all_mods.add(node.mod_id)
            for dependency_id in node.dependencies:
                target = self._targets[dependency_id]
                adj[node.mod_id].add(target)
                all_mods.add(target)

        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[int, int] = {m: WHITE for m in all_mods}
        parent: dict[int, int | None] = {m: None for m in all_mods}
        cycles: list[list[int]] = []

        def _dfs(u: int) -> None:
            color[u] = GRAY
            for v in sorted(adj.get(u, ())):
                if v == u:
                    cycles.append([u, u])
                elif color[v] == GRAY:
                    # back edge: walk parents from u up to v
                    cycle = [v, u]
                    cur = parent[u]
                    while cur is not None and cur != v:
                        cycle.append(cur)
                        cur = parent[cur]
                    cycle.append(v)
                    cycle.reverse()
                    cycles.append(cycle)
                elif color[v] == WHITE:
                    parent[v] = u
                    _dfs(v)
            color[u] = BLACK

        for mod_id in sorted(all_mods):
            if color[mod_id] == WHITE:
                _dfs(mod_id)
        return cycles

    def transitive_dependencies(self, artifact_id: int) -> set[int]:
        """Every version reachable from *artifact_id*.

        For each dependency only the highest satisfied version is followed.
        The root itself is never included.
        """
        visited: set[int] = set()
        queue: deque[int] = deque([artifact_id])
        while queue:
            node = self._nodes.get(queue.popleft())
            if node is None:
                continue
            for satisfied in node.dependencies.values():
                chosen = self._highest(satisfied)
                if chosen is not None and chosen not in visited:
                    visited.add(chosen)
                    queue.append(chosen)
        visited.discard(artifact_id)
        return visited

    def dependents_of(self, artifact_id: int) -> set[int]:
        """Every artifact that directly or transitively depends on *artifact_id*.

        Any satisfied version counts, not only the highest.
        """
        reverse: dict[int, set[int]] = defaultdict(set)
        for node in self._nodes.values():
            for satisfied in node.dependencies.values():
                for target in satisfied:
                    reverse[target].add(node.artifact_id)

        affected: set[int] = set()
        queue: deque[int] = deque([artifact_id])
        while queue:
            for dependent in reverse.get(queue.popleft(), ()):
                if dependent not in affected:
                    affected.add(dependent)
                    queue.append(dependent)
        affected.discard(artifact_id)
        return affected
