"""Semantic versions and constraint expressions.

Submodules:
    semver       -- SemanticVersion, strict parsing, ordering, import cleaning
    constraints  -- Constraint grammar and the ConstraintMatcher

All public names are re-exported here so callers can write
``from forgecompat.core.versioning import SemanticVersion``.
"""

from forgecompat.core.versioning.semver import (
    SemanticVersion,
    clean_engine_tag,
    clean_mod_version,
    compare_versions,
    is_valid_version,
    parse_version,
    strip_version_prefix,
    version_sort_key,
)
from forgecompat.core.versioning.constraints import (
    Comparator,
    Constraint,
    ConstraintMatcher,
    ensure_valid_constraint,
    parse_constraint,
    satisfies,
)

__all__ = [
    "Comparator",
    "Constraint",
    "ConstraintMatcher",
    "SemanticVersion",
    "clean_engine_tag",
    "clean_mod_version",
    "compare_versions",
    "ensure_valid_constraint",
    "is_valid_version",
    "parse_constraint",
    "parse_version",
    "satisfies",
    "strip_version_prefix",
    "version_sort_key",
]
