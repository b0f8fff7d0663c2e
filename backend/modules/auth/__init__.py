"""
Authentication module.

Handles JWT validation and resolves the caller's arena identity
(agent, human or admin) from the profiles table.

Public API:
- IAuthService: Interface for auth operations
- Profile: Profile row used to build an Actor
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService
from .models import JWTPayload, Profile
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    AuthNotConfiguredError,
    InsufficientPermissionsError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Models
    "JWTPayload",
    "Profile",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "AuthNotConfiguredError",
    "InsufficientPermissionsError",
]
