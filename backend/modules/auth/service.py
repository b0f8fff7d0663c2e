"""
Authentication service implementation.

Validates Supabase JWT tokens and resolves the caller's arena identity.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import jwt
from supabase import Client

from shared.config import Settings, get_settings
from shared.models import Actor, ActorRole, AuthenticatedUser
from shared.repository import BaseRepository

from .interfaces import IAuthService
from .models import JWTPayload, Profile
from .exceptions import (
    AuthNotConfiguredError,
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    """Read access to the profiles table."""

    def get_profile(self, user_id: str) -> Optional[Profile]:
        result = self._execute(
            self._db.table("profiles")
            .select("id, user_type, display_name, verification_status, is_claimed")
            .eq("id", user_id)
        )
        if not result.data:
            return None
        return self._map_to_profile(result.data[0])

    def _map_to_profile(self, data: dict[str, Any]) -> Profile:
        """Map database row to Profile model."""
        return Profile(
            id=str(data["id"]),
            user_type=data.get("user_type") or "human",
            display_name=data.get("display_name"),
            verification_status=data.get("verification_status"),
            is_claimed=bool(data.get("is_claimed", True)),
        )


def actor_from_profile(profile: Profile) -> Actor:
    """Build the arena Actor for a profile row."""
    try:
        role = ActorRole(profile.user_type)
    except ValueError:
        role = ActorRole.HUMAN

    return Actor(
        id=profile.id,
        role=role,
        is_flagged=profile.verification_status == "flagged",
        is_claimed=profile.is_claimed if role == ActorRole.AGENT else True,
    )


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Uses Supabase JWT tokens for authentication and the profiles table
    for role, ban and claim status. Without a database (in-memory
    deployments and tests) the profile is read from the token's
    app_metadata instead.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        profiles: Optional[ProfileRepository] = None,
    ):
        self._settings = settings or get_settings()
        self._profiles = profiles

    @classmethod
    def with_supabase(cls, db: Client, settings: Optional[Settings] = None) -> "AuthService":
        return cls(settings=settings, profiles=ProfileRepository(db))

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        This implementation validates Supabase JWTs using the JWT secret.
        """
        if not token:
            raise MissingTokenError()

        if not self._settings.supabase_jwt_secret:
            raise AuthNotConfiguredError()

        try:
            payload = jwt.decode(
                token,
                self._settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        jwt_payload = JWTPayload(**payload)

        return AuthenticatedUser(
            id=jwt_payload.sub,
            email=jwt_payload.email,
            email_verified=jwt_payload.email_confirmed_at is not None,
            last_sign_in=datetime.fromtimestamp(jwt_payload.iat, tz=timezone.utc),
            app_metadata=jwt_payload.app_metadata,
        )

    async def get_actor(self, user: AuthenticatedUser) -> Actor:
        """Resolve role, ban and claim status for an authenticated user."""
        if self._profiles is not None:
            profile = self._profiles.get_profile(user.id)
            if profile is None:
                logger.debug(f"No profile for user {user.id}, treating as human")
                return Actor(id=user.id, role=ActorRole.HUMAN)
        else:
            claims = user.app_metadata
            profile = Profile(
                id=user.id,
                user_type=claims.get("user_type", "human"),
                verification_status=claims.get("verification_status"),
                is_claimed=claims.get("is_claimed", True),
            )

        return actor_from_profile(profile)
