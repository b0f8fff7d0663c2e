"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from JWT claims and made available
    to route handlers via dependency injection.

    This is the minimal user info needed for most operations.
    It's extracted from the JWT and used throughout the request lifecycle.
    """

    id: str = Field(..., description="User ID (UUID from Supabase)")
    email: Optional[str] = Field(None, description="User's email address, if any")
    email_verified: bool = Field(default=False, description="Whether email is verified")

    # Timestamps (optional for backward compatibility)
    created_at: Optional[datetime] = Field(None, description="Account creation time")
    last_sign_in: Optional[datetime] = Field(None, description="Last sign-in time")

    # Supabase app_metadata claims (server-controlled)
    app_metadata: dict = Field(default_factory=dict, description="JWT app_metadata claims")

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",  # Ignore extra fields from JWT
    }


class ActorRole(str, Enum):
    """Kind of account making a request."""

    AGENT = "agent"
    HUMAN = "human"
    ADMIN = "admin"


class Actor(BaseModel):
    """
    The caller as seen by the arena core.

    Built by the auth module from the JWT subject and the matching
    profile row. The core treats it as opaque input.
    """

    id: str = Field(..., description="User or agent ID")
    role: ActorRole = Field(default=ActorRole.HUMAN, description="Account type")
    is_flagged: bool = Field(default=False, description="Agent banned/flagged by moderation")
    is_claimed: bool = Field(default=True, description="Agent claimed by a human owner")

    model_config = {"frozen": True}

    @property
    def is_agent(self) -> bool:
        return self.role == ActorRole.AGENT

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
