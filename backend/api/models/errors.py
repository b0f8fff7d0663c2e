"""
Error response models.

Standardized error responses for the API, and the mapping from domain
exceptions to HTTP status codes used by the application error handler.
"""

from typing import Any, Optional

from fastapi import status
from pydantic import BaseModel

from shared.exceptions import (
    ArenaError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: Optional[str] = None
    details: dict[str, Any] = {}


def status_for(error: ArenaError) -> int:
    """HTTP status code for a domain exception."""
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(error, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR

