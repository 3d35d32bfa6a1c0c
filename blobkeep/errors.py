"""Typed errors raised by the storage layer.

The web layer maps each class to a status code; library callers can catch
``StorageError`` to handle every storage failure at once.
"""

from __future__ import annotations


class StorageError(Exception):
    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self) -> str:
        if self.key:
            return f"{self.message} key={self.key}"
        return self.message


class ConfigurationError(StorageError):
    """Missing or invalid configuration. Fatal at startup."""


class ValidationError(StorageError):
    """A request or argument is malformed (e.g. missing parameters)."""


class PathTraversalError(ValidationError):
    """An object path resolves outside the storage sandbox."""

    def __init__(self, message: str = "Invalid path: resolves outside storage root", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class AuthorizationError(StorageError):
    """Signature mismatch or expired token.

    Both causes share one message so callers cannot tell them apart.
    """

    def __init__(self, message: str = "Invalid or expired signature", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class ObjectNotFoundError(StorageError):
    def __init__(self, message: str = "Object not found", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class StorageIOError(StorageError):
    """The backend failed to read or write (disk, network, provider error)."""

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.cause = cause


class StorageTimeoutError(StorageIOError):
    """A transfer did not finish within its timeout."""
