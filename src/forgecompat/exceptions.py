"""forgecompat exception hierarchy.

All public exceptions inherit from ForgeCompatError, giving callers a single
base class to catch when they want to handle any forgecompat-specific failure
without swallowing unrelated errors.
"""


class ForgeCompatError(Exception):
    """Base exception for all forgecompat errors."""


class InvalidVersion(ForgeCompatError, ValueError):
    """Raised when a string is not a well-formed semantic version.

    Raised by ``SemanticVersion.parse`` and caught at validation
    boundaries. Resolvers never let it escape a ``resolve()`` call.
    """


class UnresolvableConstraint(ForgeCompatError, ValueError):
    """Raised when a constraint expression cannot be parsed.

    Only the validating entry points raise it. During resolution an
    unparseable constraint simply matches nothing.
    """


class InconsistentAssociation(ForgeCompatError):
    """Raised when a persisted association set differs from a fresh evaluation.

    Detected by the reconciler. The fix is always to re-run resolve.

    Attributes:
        drifts: The drift records that were found.
    """

    def __init__(self, message: str, drifts: list | None = None) -> None:
        super().__init__(message)
        self.drifts = list(drifts or [])


class EntityNotFound(ForgeCompatError, KeyError):
    """Raised when a repository lookup references a missing entity."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "entity not found"


class SnapshotError(ForgeCompatError):
    """Raised when a repository snapshot cannot be read or written."""


class ConfigError(ForgeCompatError):
    """Raised when a configuration file is malformed."""
