"""Custom exception hierarchy for r2gate."""

from __future__ import annotations


class R2GateError(Exception):
    """Base exception for all r2gate-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(R2GateError):
    """Raised when store credentials, endpoint or gateway options are invalid or missing."""
    pass


class StorageError(R2GateError):
    """Base class for object store failures."""
    pass


class ObjectNotFoundError(StorageError):
    """Raised when a key has no backing object."""
    pass


class StoreReadError(StorageError):
    """Raised when the backend fails a read."""
    pass


class StoreWriteError(StorageError):
    """Raised when the backend fails a write."""
    pass


class StoreDeleteError(StorageError):
    """Raised when the backend fails a delete."""
    pass


class FetchError(R2GateError):
    """Raised when the source of an ingestion cannot be fetched."""
    pass


class CallbackError(R2GateError):
    """Raised when the post-upload callback fails.

    The object is already stored when this is raised.
    """
    pass
