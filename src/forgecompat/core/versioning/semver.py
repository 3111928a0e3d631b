"""Semantic version parsing, comparison, and import-time cleaning.

A version is ``MAJOR.MINOR.PATCH`` optionally followed by ``-`` and one or
more dot-separated pre-release labels (``3.8.0-beta.2``). Parsing is strict:
numeric components are non-negative integers without leading zeros, and
anything else raises ``InvalidVersion``.

Ordering compares the numeric core first. For the same core a labeled
version sorts *before* the unlabeled release, and labeled versions compare
their label sequences lexicographically.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering

from forgecompat.exceptions import InvalidVersion

# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<labels>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

# "SPT 3.8.0 - 29197" / "SPT 3.8.0-BE" -> "3.8.0"
_ENGINE_TAG_RE = re.compile(r"^\s*SPT\s+(\d+\.\d+\.\d+).*$", re.IGNORECASE)

_MOD_VERSION_RE = re.compile(r"^(?P<pre>.*?)(?P<semver>\d+\.*\d*\.*\d*)(?P<post>.*)$")

_SLUG_STRIP_RE = re.compile(r"[^0-9a-z]+")


# ---------------------------------------------------------------------------
# SemanticVersion
# ---------------------------------------------------------------------------


@total_ordering
@dataclass(frozen=True)
class SemanticVersion:
    """An immutable, totally ordered semantic version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        labels: Pre-release labels in order (``("beta", "2")``).
    """

    major: int
    minor: int
    patch: int
    labels: tuple[str, ...] = field(default=())

    @classmethod
    def parse(cls, value: str) -> SemanticVersion:
        """Parse a version string strictly.

        Args:
            value: A string like ``"1.2.3"`` or ``"1.2.3-rc1"``.

        Returns:
            The parsed ``SemanticVersion``.

        Raises:
            InvalidVersion: If the string is not a well-formed version.
        """
        if not isinstance(value, str):
            raise InvalidVersion(f"Invalid semantic version: {value!r}")
        m = _SEMVER_RE.match(value)
        if not m:
            raise InvalidVersion(f"Invalid semantic version: {value!r}")
        labels = tuple(m.group("labels").split(".")) if m.group("labels") else ()
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
            labels=labels,
        )

    @property
    def core(self) -> tuple[int, int, int]:
        """The numeric ``(major, minor, patch)`` triple."""
        return (self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.labels)

    def _sort_key(self) -> tuple:
        # Unlabeled releases sort after every labeled variant of the same core.
        return (self.core, 0 if self.labels else 1, self.labels)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.labels:
            return f"{base}-{'.'.join(self.labels)}"
        return base


def parse_version(value: str) -> SemanticVersion:
    """Module-level alias for ``SemanticVersion.parse``."""
    return SemanticVersion.parse(value)


def is_valid_version(value: str) -> bool:
    """Return True if *value* parses as a strict semantic version."""
    try:
        SemanticVersion.parse(value)
    except InvalidVersion:
        return False
    return True


def compare_versions(a: SemanticVersion | str, b: SemanticVersion | str) -> int:
    """Three-way comparison of two versions.

    Args:
        a: First version (parsed or string).
        b: Second version (parsed or string).

    Returns:
        -1 if ``a < b``, 0 if equal, 1 if ``a > b``.

    Raises:
        InvalidVersion: If a string argument does not parse.
    """
    va = a if isinstance(a, SemanticVersion) else SemanticVersion.parse(a)
    vb = b if isinstance(b, SemanticVersion) else SemanticVersion.parse(b)
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def version_sort_key(value: str) -> SemanticVersion:
    """Sort key for version strings (ascending)."""
    return SemanticVersion.parse(value)


# ---------------------------------------------------------------------------
# Import-time cleaning
# ---------------------------------------------------------------------------


def strip_version_prefix(value: str) -> str:
    """Trim whitespace and a leading ``v``/``V`` from a stored version string."""
    return value.strip().lstrip("vV")


def clean_engine_tag(tag: str) -> SemanticVersion:
    """Clean an engine release tag such as ``"SPT 3.8.0 - 29197"``.

    The brand prefix and anything after the numeric triple are dropped. A tag
    without the prefix is parsed as-is.

    Raises:
        InvalidVersion: If no valid version remains.
    """
    cleaned = _ENGINE_TAG_RE.sub(r"\1", tag).strip()
    return SemanticVersion.parse(strip_version_prefix(cleaned))


def _slug(text: str) -> str:
    return _SLUG_STRIP_RE.sub("-", text.lower()).strip("-")


def clean_mod_version(raw: str | int) -> SemanticVersion:
    """Best-effort cleaning of a user-entered mod version on import.

    ``"v1.2"`` becomes ``1.2.0``; ``"1.02.3"`` becomes ``1.2.3``; text around
    the number is slugged into a pre-release label, so ``"1.4 (beta)"``
    becomes ``1.4.0-beta``. Input with no number at all becomes ``0.0.0``.

    Raises:
        InvalidVersion: If the cleaned result still does not parse.
    """
    text = str(raw).strip().lstrip("vV.").strip()
    m = _MOD_VERSION_RE.match(text)
    if not m:
        return SemanticVersion(0, 0, 0)

    segments = [s for s in m.group("semver").split(".") if s != ""][:3]
    while len(segments) < 3:
        segments.append("0")
    semver = ".".join(str(int(s)) for s in segments)

    metadata = _slug((m.group("pre") + m.group("post")).strip("()[]{}-"))
    cleaned = f"{semver}-{metadata}" if metadata else semver
    return SemanticVersion.parse(cleaned)
