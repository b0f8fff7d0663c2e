"""API models package."""

from .errors import ErrorResponse, status_for

__all__ = [
    "ErrorResponse",
    "status_for",
]
