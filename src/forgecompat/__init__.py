"""forgecompat: Version compatibility resolution for a mod marketplace."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
