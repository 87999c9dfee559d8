"""Error taxonomy for catalog and playlist operations.

Each error carries a machine-readable ``code`` and the HTTP ``status`` the API
middleware answers with. None of them are fatal to the process.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class for rejected catalog/playlist operations."""

    code = "CATALOG_ERROR"
    status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class NotFound(CatalogError):
    """Referenced capture id or playlist name does not exist."""

    code = "NOT_FOUND"
    status = 404


class NameConflict(CatalogError):
    """A playlist with the requested name already exists."""

    code = "NAME_CONFLICT"
    status = 409


class Forbidden(CatalogError):
    """Attempt to delete, rename or directly replace the All playlist."""

    code = "FORBIDDEN"
    status = 403


class StorageFailure(CatalogError):
    """A backing file could not be written or removed."""

    code = "STORAGE_FAILURE"
    status = 500


class ReplayUnavailable(CatalogError):
    """The external replay tool is missing or could not be executed."""

    code = "REPLAY_UNAVAILABLE"
    status = 503


class StartupError(Exception):
    """A startup precondition failed; the server cannot run."""


__all__ = [
    "CatalogError",
    "NotFound",
    "NameConflict",
    "Forbidden",
    "StorageFailure",
    "ReplayUnavailable",
    "StartupError",
]
