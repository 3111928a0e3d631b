"""Entity data models held by the persistence layer.

These are plain data holders with no business logic beyond small derived
properties, so every other module can import them without circular-import
concerns. Derived association sets (engine versions per artifact, satisfied
versions per dependency, compatible mod versions per addon version) are not
fields on the entities; the repository stores them separately and only the
resolvers write them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum

from forgecompat.core.versioning.semver import SemanticVersion
from forgecompat.exceptions import InvalidVersion

SENTINEL_VERSION = "0.0.0"


class ArtifactKind(Enum):
    """What a versioned artifact is a version of."""

    MOD_VERSION = "mod_version"
    ADDON_VERSION = "addon_version"


# ---------------------------------------------------------------------------
# EngineVersion: a catalog entry
# ---------------------------------------------------------------------------


@dataclass
class EngineVersion:
    """A published (or scheduled) version of the host engine.

    Attributes:
        id: Primary key.
        version: Version string, e.g. ``"3.8.0"``.
        publish_date: When the version becomes visible to non-privileged
            viewers. ``None`` means it is not a real published version.
        link: Release page URL.
        color_class: Display color relative to the latest release.
    """

    id: int
    version: str
    publish_date: datetime | None = None
    link: str = ""
    color_class: str = "gray"

    @property
    def is_sentinel(self) -> bool:
        """True for the ``0.0.0`` placeholder row."""
        return self.version == SENTINEL_VERSION

    @property
    def semver(self) -> SemanticVersion | None:
        """The parsed version, or None if the stored string is not valid."""
        try:
            return SemanticVersion.parse(self.version)
        except InvalidVersion:
            return None

    def is_published(self, now: datetime) -> bool:
        """True if the publish date is set and not in the future."""
        return self.publish_date is not None and self.publish_date <= now


# ---------------------------------------------------------------------------
# Parents: mods and addons
# ---------------------------------------------------------------------------


@dataclass
class Mod:
    """A mod listing. Its versions are ``MOD_VERSION`` artifacts."""

    id: int
    name: str
    guid: str = ""


@dataclass
class Addon:
    """An addon attached to a mod. ``mod_id`` may change (re-parenting) or be None."""

    id: int
    name: str
    mod_id: int | None = None


# ---------------------------------------------------------------------------
# VersionedArtifact and DependencyConstraint
# ---------------------------------------------------------------------------


@dataclass
class VersionedArtifact:
    """One version of a mod or addon.

    Attributes:
        id: Primary key.
        kind: Whether this is a mod version or an addon version.
        parent_id: The owning ``Mod`` id (mod versions) or ``Addon`` id
            (addon versions).
        version: The artifact's own version string.
        version_constraint: Engine compatibility expression. Empty means the
            artifact resolves to no engine versions.
        parent_constraint: For addon versions, the expression selecting the
            compatible versions of the mod the addon is attached to.
        published_at: Publication timestamp, if any.
        disabled: Moderation flag.
    """

    id: int
    kind: ArtifactKind
    parent_id: int
    version: str
    version_constraint: str = ""
    parent_constraint: str = ""
    published_at: datetime | None = None
    disabled: bool = False

    @property
    def is_mod_version(self) -> bool:
        return self.kind is ArtifactKind.MOD_VERSION

    @property
    def semver(self) -> SemanticVersion | None:
        try:
            return SemanticVersion.parse(self.version)
        except InvalidVersion:
            return None


@dataclass
class DependencyConstraint:
    """A dependency declared by an artifact on another mod.

    Attributes:
        id: Primary key.
        artifact_id: The artifact declaring the dependency.
        target_parent_id: The mod being depended on.
        constraint_expression: Which versions of that mod are acceptable.
    """

    id: int
    artifact_id: int
    target_parent_id: int
    constraint_expression: str


def changed_fields(old: object, new: object) -> frozenset[str]:
    """Names of dataclass fields whose values differ between *old* and *new*."""
    return frozenset(
        f.name for f in fields(new) if getattr(old, f.name) != getattr(new, f.name)
    )
