"""Import-side helpers: constraint extraction and engine release sync.

Submodules:
    normalizer  -- free-text and tag constraint extraction/validation
    releases    -- fetch, parse and sync engine releases (needs ``httpx``)
"""

from forgecompat.importer.normalizer import (
    ImportNormalizer,
    constraint_from_tag,
    extract_constraint_from_text,
    guess_semantic_constraint,
    normalize_version_string,
    validate_constraint,
)
from forgecompat.importer.releases import (
    EngineRelease,
    SyncResult,
    fetch_engine_releases,
    parse_releases,
    sync_catalog,
)

__all__ = [
    "EngineRelease",
    "ImportNormalizer",
    "SyncResult",
    "constraint_from_tag",
    "extract_constraint_from_text",
    "fetch_engine_releases",
    "guess_semantic_constraint",
    "normalize_version_string",
    "parse_releases",
    "sync_catalog",
    "validate_constraint",
]
