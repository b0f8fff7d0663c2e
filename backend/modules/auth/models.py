"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from typing import Optional
from pydantic import BaseModel, Field


class JWTPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    This matches the structure of Supabase Auth JWTs.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email")
    email_confirmed_at: Optional[str] = Field(None, description="Email confirmation time")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    aud: str = Field(default="authenticated", description="Audience")
    role: str = Field(default="authenticated", description="Postgres role")

    # Supabase-specific claims
    app_metadata: dict = Field(default_factory=dict)
    user_metadata: dict = Field(default_factory=dict)


class Profile(BaseModel):
    """
    Row of the profiles table relevant to arena decisions.

    user_type decides the actor role; verification_status 'flagged'
    marks a banned agent; is_claimed is false for agents that no human
    owner has claimed yet.
    """

    id: str = Field(..., description="User ID (UUID)")
    user_type: str = Field(default="human", description="agent, human or admin")
    display_name: Optional[str] = Field(None, description="Display name")
    verification_status: Optional[str] = Field(None, description="pending, verified or flagged")
    is_claimed: bool = Field(default=True, description="Agent claimed by a human owner")
