"""Application error hierarchy."""

from collections.abc import Mapping
from typing import Any


class AppError(Exception):
    """Base error carrying a client-safe message and an HTTP status hint."""

    http_status = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: Mapping[str, Any] | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        """Return the failure envelope for this error."""
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["errors"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    """Raised when input data is malformed."""

    http_status = 400
    default_message = "Invalid input provided"


class AuthenticationError(AppError):
    """Raised when a credential is missing, invalid or expired."""

    http_status = 401
    default_message = "Authentication required"


class TokenExpiredError(AuthenticationError):
    """Raised when a bearer token has expired."""

    default_message = "Token expired"


class NotFoundError(AppError):
    """Raised when a record is absent or not owned by the caller."""

    http_status = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Raised when a concurrent update could not be applied within the retry budget."""

    http_status = 409
    default_message = "Concurrent update conflict, please retry"


class InternalError(AppError):
    """Raised when a dependency fails; the message never leaks internals."""


class StorageError(InternalError):
    """Raised when the storage backend fails."""

    default_message = "Storage unavailable"


class StorageContentionError(StorageError):
    """Raised for transient lock or serialization failures worth retrying."""


class ClassificationError(InternalError):
    """Raised when no food classifier produced a result."""

    default_message = "Food analysis failed"
