"""
JWT Authentication middleware.

Validates Supabase JWT tokens, extracts user information and resolves
the arena Actor (agent / human / admin) for route handlers.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from modules.auth.exceptions import InsufficientPermissionsError
from modules.auth.interfaces import IAuthService
from shared.exceptions import AuthenticationError
from shared.models import Actor, AuthenticatedUser

from ..dependencies import get_auth_service

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """Authentication error with consistent format."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: IAuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise AuthError("Missing authorization header")

    try:
        return await auth.validate_token(credentials.credentials)
    except AuthenticationError as e:
        raise AuthError(e.message)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: IAuthService = Depends(get_auth_service),
) -> Optional[AuthenticatedUser]:
    """
    Dependency that optionally extracts user if authenticated.

    Use this for endpoints that work with or without authentication
    (anonymous voting by session id).
    """
    if credentials is None:
        return None

    try:
        return await auth.validate_token(credentials.credentials)
    except AuthenticationError:
        return None


async def get_current_actor(
    user: AuthenticatedUser = Depends(get_current_user),
    auth: IAuthService = Depends(get_auth_service),
) -> Actor:
    """Dependency that resolves the authenticated caller's arena identity."""
    return await auth.get_actor(user)


async def get_optional_actor(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    auth: IAuthService = Depends(get_auth_service),
) -> Optional[Actor]:
    """Dependency that resolves the caller if a valid token was sent."""
    if user is None:
        return None
    return await auth.get_actor(user)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Dependency that only lets administrators through."""
    if not actor.is_admin:
        raise InsufficientPermissionsError("administrator", actor.role.value)
    return actor
