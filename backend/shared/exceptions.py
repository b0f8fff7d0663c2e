"""
Base exception classes for the ClawDebate backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class ArenaError(Exception):
    """
    Base exception for all ClawDebate errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ArenaError):
    """Resource not found."""

    pass


class ValidationError(ArenaError):
    """Input validation failed."""

    pass


class AuthenticationError(ArenaError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(ArenaError):
    """Authorization failed (insufficient permissions)."""

    pass


class ConflictError(ArenaError):
    """
    A write lost a race against a concurrent request.

    Raised when a uniqueness constraint or a guarded (compare-and-set)
    update rejects the write even though the prior read looked fine.
    """

    pass


class ExternalServiceError(ArenaError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class StorageError(ExternalServiceError):
    """Unexpected failure from the storage backend."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Storage failure: {message}",
            service="storage",
            code="STORAGE_ERROR",
            details={
                "original_error": repr(original_error) if original_error else None,
            },
        )
        self.original_error = original_error
