"""Engine constraint extraction and validation for imported releases.

Imported mods describe their engine compatibility in free text ("Updated for
SPT 3.8", "works on v3.9.0", "3.11.x") or in loosely formatted tags. These
helpers turn such input into constraint strings that resolve against the
current catalog, or ``None`` when nothing trustworthy can be derived.

Rules:

- A full ``MAJOR.MINOR.PATCH`` mention present in the catalog becomes an
  exact constraint (``3.8.1``).
- A ``MAJOR.MINOR`` mention (or ``.x`` suffix) whose major.minor exists in
  the catalog becomes ``~MAJOR.MINOR.0``.
- Mentions outside the catalog, with a major outside the catalog's major
  range, or with leading zeros are ignored.
- The first mention, scanning left to right, that validates wins.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from forgecompat.config import DEFAULT_BRAND_ALIASES
from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.versioning.constraints import ConstraintMatcher
from forgecompat.core.versioning.semver import SemanticVersion
from forgecompat.exceptions import UnresolvableConstraint

logger = logging.getLogger(__name__)

_NORMALIZED_RE = re.compile(r"^[0-9]+\.[0-9]+(?:\.[0-9]+)?$")
_WILDCARD_SUFFIX_RE = re.compile(r"\.[xX]$")
_DEGRADABLE_RE = re.compile(r"^~?([0-9]+)\.([0-9]+)(?:\.([0-9]+))?$")
_GUESS_RE = re.compile(r"\b\d+\.\d+(?:\.\d+)?\b")


def _mention_pattern(aliases: Iterable[str]) -> re.Pattern[str]:
    brands = "|".join(re.escape(a) for a in sorted(aliases, key=len, reverse=True))
    brand_prefix = rf"\b(?:{brands})[\s_-]*" if brands else r"(?!)"
    return re.compile(
        rf"(?:{brand_prefix}|(?<![\w.]))v?([0-9]+\.[0-9]+(?:\.[0-9]+)?(?:\.[xX])?)(?!\w|\.\d)",
        re.IGNORECASE,
    )


_DEFAULT_MENTION_RE = _mention_pattern(DEFAULT_BRAND_ALIASES)


def normalize_version_string(value: str) -> str | None:
    """Normalize a bare version mention.

    A trailing ``.x``/``.X`` segment is dropped (``"3.11.x"`` -> ``"3.11"``).
    Anything that is not two or three numeric segments afterwards, including
    a ``v`` prefix, returns None.
    """
    stripped = _WILDCARD_SUFFIX_RE.sub("", value)
    if not _NORMALIZED_RE.match(stripped):
        return None
    return stripped


def _catalog_minors(catalog: Sequence[str]) -> set[tuple[int, int]]:
    minors = set()
    for version in catalog:
        try:
            parsed = SemanticVersion.parse(version)
        except ValueError:
            continue
        minors.add((parsed.major, parsed.minor))
    return minors


def _plausible(parts: list[str], minors: set[tuple[int, int]]) -> bool:
    if any(len(p) > 1 and p.startswith("0") for p in parts):
        return False
    majors = [major for major, _ in minors]
    return bool(majors) and min(majors) <= int(parts[0]) <= max(majors)


def _constraint_for_mention(
    normalized: str, catalog: Sequence[str], minors: set[tuple[int, int]]
) -> str | None:
    parts = normalized.split(".")
    if not _plausible(parts, minors):
        return None
    if len(parts) == 3:
        return normalized if normalized in catalog else None
    if (int(parts[0]), int(parts[1])) in minors:
        return f"~{parts[0]}.{parts[1]}.0"
    return None


def _first_resolving_mention(
    pattern: re.Pattern[str], text: str, catalog: Sequence[str]
) -> str | None:
    minors = _catalog_minors(catalog)
    for match in pattern.finditer(text):
        normalized = normalize_version_string(match.group(1))
        if normalized is None:
            continue
        constraint = _constraint_for_mention(normalized, catalog, minors)
        if constraint is not None:
            return constraint
    return None


def extract_constraint_from_text(
    text: str,
    catalog: Sequence[str],
    brand_aliases: Iterable[str] | None = None,
) -> str | None:
    """Find the first engine version mention in *text* that resolves.

    Args:
        text: Free-text release notes or description.
        catalog: Valid engine version strings, e.g. ``all_valid_versions()``.
        brand_aliases: Brand tokens accepted directly before a mention.

    Returns:
        An exact version or ``~MAJOR.MINOR.0`` constraint, or None.
    """
    if not text or not catalog:
        return None
    pattern = (
        _DEFAULT_MENTION_RE if brand_aliases is None else _mention_pattern(brand_aliases)
    )
    return _first_resolving_mention(pattern, text, catalog)


def validate_constraint(
    constraint: str,
    catalog: Sequence[str],
    matcher: ConstraintMatcher | None = None,
) -> str | None:
    """Re-validate an externally supplied constraint against *catalog*.

    A well-formed constraint that matches at least one catalog version is
    returned unchanged. Otherwise a plain or tilde version whose major.minor
    exists in the catalog degrades to ``~MAJOR.MINOR.0``. Anything else is
    rejected with None.
    """
    stripped = (constraint or "").strip()
    if not stripped:
        return None
    matcher = matcher or ConstraintMatcher()
    try:
        matcher.parse(stripped)
    except UnresolvableConstraint:
        pass
    else:
        if matcher.filter_matching(stripped, catalog):
            return stripped

    shape = _DEGRADABLE_RE.match(stripped)
    if shape is None:
        return None
    major, minor = int(shape.group(1)), int(shape.group(2))
    if (major, minor) in _catalog_minors(catalog):
        return f"~{major}.{minor}.0"
    logger.debug("Rejected constraint %r: %d.%d not in catalog", stripped, major, minor)
    return None


def guess_semantic_constraint(value: str | int, append_any_patch: bool = True) -> str:
    """Best-effort constraint from a loosely formatted version tag.

    Takes the last version-like token. Two-part tokens become
    ``~MAJOR.MINOR.0`` unless *append_any_patch* is False. Without any token
    the sentinel ``0.0.0`` is returned.
    """
    found = _GUESS_RE.findall(str(value))
    version = found[-1] if found else "0.0.0"
    if append_any_patch and re.fullmatch(r"\d+\.\d+", version):
        version = f"~{version}.0"
    return version


def constraint_from_tag(tag: str, catalog: Sequence[str]) -> str | None:
    guessed = guess_semantic_constraint(tag)
    if guessed == "0.0.0":
        return None
    return validate_constraint(guessed, catalog)


class ImportNormalizer:
    """The import helpers bound to a live catalog.

    Args:
        catalog: Catalog whose ``all_valid_versions()`` is the ground truth.
        brand_aliases: Brand tokens accepted before a mention.
        matcher: Shared constraint matcher.
    """

    def __init__(
        self,
        catalog: VersionCatalog,
        brand_aliases: Iterable[str] = DEFAULT_BRAND_ALIASES,
        matcher: ConstraintMatcher | None = None,
    ) -> None:
        self._catalog = catalog
        self._aliases = tuple(brand_aliases)
        self._pattern = _mention_pattern(self._aliases)
        self._matcher = matcher or ConstraintMatcher()

    def extract(self, text: str) -> str | None:
        catalog = self._catalog.all_valid_versions()
        if not text or not catalog:
            return None
        return _first_resolving_mention(self._pattern, text, catalog)

    def validate(self, constraint: str) -> str | None:
        return validate_constraint(constraint, self._catalog.all_valid_versions(), self._matcher)

    def from_tag(self, tag: str) -> str | None:
        guessed = guess_semantic_constraint(tag)
        if guessed == "0.0.0":
            return None
        return self.validate(guessed)

    @staticmethod
    def normalize(value: str) -> str | None:
        return normalize_version_string(value)
