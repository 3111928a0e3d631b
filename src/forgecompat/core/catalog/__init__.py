"""Engine version catalog.

Submodules:
    catalog -- VersionCatalog, the Authorizer protocol, detect_color_class

``EngineVersion`` itself lives with the other persisted entities in
``forgecompat.core.store.models`` and is re-exported here.
"""

from forgecompat.core.catalog.catalog import (
    Authorizer,
    VersionCatalog,
    detect_color_class,
    utcnow,
)
from forgecompat.core.store.models import SENTINEL_VERSION, EngineVersion

__all__ = [
    "Authorizer",
    "EngineVersion",
    "SENTINEL_VERSION",
    "VersionCatalog",
    "detect_color_class",
    "utcnow",
]
