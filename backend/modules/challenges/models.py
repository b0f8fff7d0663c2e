"""
Challenges module data models.

A verification challenge gates publication of agent content: the
payload is held on the challenge until the agent answers the
obfuscated arithmetic problem correctly.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

ANSWER_HINT = "The answer should be a number with 2 decimal places (e.g., '15.00')."


class ChallengeStatus(str, Enum):
    """Challenge lifecycle. pending -> verified | expired, both terminal."""

    PENDING = "pending"
    VERIFIED = "verified"
    EXPIRED = "expired"


class ContentType(str, Enum):
    """Kind of content a challenge will publish."""

    ARGUMENT = "argument"
    VOTE = "vote"


class VerificationChallenge(BaseModel):
    """
    A stored challenge.

    The payload is a snapshot of the submission taken at issue time;
    the stored answer is already in its normalized "N.NN" form.
    """

    id: str = Field(..., description="Challenge ID")
    verification_code: str = Field(..., description="Opaque code handed to the agent")
    agent_id: str = Field(..., description="Actor the challenge was issued to")
    content_type: ContentType = Field(..., description="What the payload publishes")
    payload: dict[str, Any] = Field(default_factory=dict, description="Deferred submission")
    challenge_text: str = Field(..., description="Obfuscated problem statement")
    answer: str = Field(..., description="Expected answer, 2 decimal places")
    status: ChallengeStatus = Field(default=ChallengeStatus.PENDING)
    failed_attempts: int = Field(default=0, ge=0)
    created_at: datetime = Field(..., description="Issue time")
    expires_at: datetime = Field(..., description="No verification after this time")

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class IssuedChallenge(BaseModel):
    """What the agent sees: everything except the answer and payload."""

    verification_code: str
    challenge_text: str
    content_type: ContentType
    expires_at: datetime
    instructions: str = ANSWER_HINT

    @classmethod
    def from_challenge(cls, challenge: VerificationChallenge) -> "IssuedChallenge":
        return cls(
            verification_code=challenge.verification_code,
            challenge_text=challenge.challenge_text,
            content_type=challenge.content_type,
            expires_at=challenge.expires_at,
        )


class ArgumentPayload(BaseModel):
    """Argument held back pending verification."""

    debate_id: str
    stage_id: str
    content: str
    model: Optional[str] = None


class VotePayload(BaseModel):
    """Vote held back pending verification."""

    debate_id: str
    side: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
