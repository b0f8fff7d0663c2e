"""
Shared infrastructure for ClawDebate backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- clock: Injectable time source

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .clock import Clock, SystemClock
from .exceptions import (
    ArenaError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    StorageError,
)
from .models import AuthenticatedUser, Actor, ActorRole

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "Clock",
    "SystemClock",
    "ArenaError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "ExternalServiceError",
    "StorageError",
    "AuthenticatedUser",
    "Actor",
    "ActorRole",
]
