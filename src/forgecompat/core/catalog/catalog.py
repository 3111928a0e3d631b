"""The engine version catalog: the ground truth every constraint resolves against.

``VersionCatalog`` reads engine versions from the repository and exposes:

- ``all_valid_versions()`` -- every stored, non-sentinel, semantically valid
  version string, ascending. Cached until the next engine version write.
- ``visible_versions(privileged)`` -- the publish-date visibility rule:
  privileged viewers see everything, others only versions whose publish date
  has passed.
- Convenience queries used by listings and filters: the latest version, the
  patches of the latest minor, the last three minors, per-version mod counts.

The sentinel ``0.0.0`` row is never returned by any of these.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from forgecompat.core.store.events import EntityEvent, EntityKind, EventBus
from forgecompat.core.store.models import ArtifactKind, EngineVersion
from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.semver import SemanticVersion

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Authorizer(Protocol):
    """Answers whether the current viewer may see unpublished versions."""

    def is_privileged(self) -> bool: ...


class VersionCatalog:
    """Cached, sorted view over the repository's engine versions.

    Args:
        store: Repository holding the engine versions.
        clock: Returns "now" for visibility checks. Defaults to UTC now.
    """

    def __init__(self, store: Repository, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock
        self._entries: list[tuple[SemanticVersion, EngineVersion]] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def attach(self, bus: EventBus) -> None:
        """Invalidate the cache on every engine version write published on *bus*."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = bus.subscribe(EntityKind.ENGINE_VERSION, self._on_engine_event)

    def _on_engine_event(self, event: EntityEvent) -> None:
        self.invalidate()

    def invalidate(self) -> None:
        """Drop the cached catalog; the next read reloads from the repository."""
        self._entries = None

    def _load(self) -> list[tuple[SemanticVersion, EngineVersion]]:
        if self._entries is None:
            entries: list[tuple[SemanticVersion, EngineVersion]] = []
            for ev in self._store.list_engine_versions():
                if ev.is_sentinel:
                    continue
                parsed = ev.semver
                if parsed is None:
                    logger.warning("Ignoring invalid engine version %r (id %d)", ev.version, ev.id)
                    continue
                entries.append((parsed, ev))
            entries.sort(key=lambda pair: (pair[0], pair[1].id))
            self._entries = entries
        return self._entries

    # ------------------------------------------------------------------
    # Core queries
    # ------------------------------------------------------------------

    def all_valid_versions(self) -> list[str]:
        """Every valid, non-sentinel version string, ascending."""
        return [str(ev.version) for _, ev in self._load()]

    def entries(self) -> list[EngineVersion]:
        """Every valid, non-sentinel engine version, ascending."""
        return [ev for _, ev in self._load()]

    def visible_versions(self, privileged: bool) -> list[EngineVersion]:
        """Engine versions a viewer may see, ascending.

        Args:
            privileged: Moderators and administrators see unpublished versions.
        """
        if privileged:
            return self.entries()
        now = self._clock()
        return [ev for _, ev in self._load() if ev.is_published(now)]

    def visible_for(self, authorizer: Authorizer) -> list[EngineVersion]:
        return self.visible_versions(authorizer.is_privileged())

    def find(self, version: str) -> EngineVersion | None:
        """Look up a catalog entry by its version string."""
        for _, ev in self._load():
            if ev.version == version:
                return ev
        return None

    # ------------------------------------------------------------------
    # Listing helpers
    # ------------------------------------------------------------------

    def _visible_pairs(self, privileged: bool) -> list[tuple[SemanticVersion, EngineVersion]]:
        if privileged:
            return list(self._load())
        now = self._clock()
        return [pair for pair in self._load() if pair[1].is_published(now)]

    def latest(self, privileged: bool = True) -> EngineVersion | None:
        """The highest visible version, or None for an empty catalog."""
        pairs = self._visible_pairs(privileged)
        return pairs[-1][1] if pairs else None

    def latest_minor_versions(self, privileged: bool = True) -> list[EngineVersion]:
        """Every visible patch of the latest major.minor, newest first."""
        pairs = self._visible_pairs(privileged)
        if not pairs:
            return []
        top = pairs[-1][0]
        return [
            ev
            for parsed, ev in reversed(pairs)
            if (parsed.major, parsed.minor) == (top.major, top.minor)
        ]

    def last_three_minor_versions(self, privileged: bool = True) -> list[tuple[int, int]]:
        """The three highest distinct ``(major, minor)`` pairs, newest first."""
        minors: list[tuple[int, int]] = []
        for parsed, _ in reversed(self._visible_pairs(privileged)):
            key = (parsed.major, parsed.minor)
            if key not in minors:
                minors.append(key)
            if len(minors) == 3:
                break
        return minors

    def versions_for_last_three_minors(self, privileged: bool = True) -> list[EngineVersion]:
        """Every visible version within the last three minors, newest first."""
        minors = set(self.last_three_minor_versions(privileged))
        return [
            ev
            for parsed, ev in reversed(self._visible_pairs(privileged))
            if (parsed.major, parsed.minor) in minors
        ]

    def is_latest_minor(self, engine_version: EngineVersion) -> bool:
        """True if *engine_version* shares major.minor with the latest version."""
        latest = self.latest()
        parsed = engine_version.semver
        if latest is None or parsed is None:
            return False
        top = latest.semver
        return top is not None and (parsed.major, parsed.minor) == (top.major, top.minor)

    def mod_count(self, engine_version: EngineVersion) -> int:
        """Distinct mods with at least one version resolved to *engine_version*."""
        mods: set[int] = set()
        for artifact_id in self._store.artifacts_linked_to_engine(engine_version.id):
            artifact = self._store.get_artifact(artifact_id)
            if artifact.kind is ArtifactKind.MOD_VERSION:
                mods.add(artifact.parent_id)
        return len(mods)


def detect_color_class(version: str, latest: str | None) -> str:
    """Display color of *version* relative to the *latest* release.

    ``green`` when it belongs to the latest major.minor, ``red`` for older
    minors or a different major, ``gray`` for the sentinel, an unknown latest,
    or unparseable input.
    """
    if version == "0.0.0" or not latest:
        return "gray"
    try:
        current = SemanticVersion.parse(version)
        newest = SemanticVersion.parse(latest)
    except ValueError:
        return "gray"
    if current.major != newest.major:
        return "red"
    return "green" if newest.minor == current.minor else "red"
