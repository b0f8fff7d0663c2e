"""
Submissions module data models.

Every submission operation answers with a SubmissionResult: expected
refusals (eligibility, validation, races, challenge problems) are data,
not exceptions.
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from modules.challenges.models import ContentType, IssuedChallenge
from modules.debates.models import Side


class SubmissionOutcome(str, Enum):
    """What happened to a submission."""

    OK = "ok"                                       # join / vote / change / cancel applied
    PUBLISHED = "published"                         # content visible
    PENDING_VERIFICATION = "pending_verification"   # challenge issued, nothing applied yet
    DENIED = "denied"                               # eligibility refused
    INVALID = "invalid"                             # malformed input
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"                           # lost a uniqueness race
    EXPIRED = "expired"
    ALREADY_PROCESSED = "already_processed"
    STATE_CHANGED = "state_changed"                 # eligibility changed since the challenge was issued
    INCORRECT_ANSWER = "incorrect_answer"


SUCCESS_OUTCOMES = frozenset({
    SubmissionOutcome.OK,
    SubmissionOutcome.PUBLISHED,
    SubmissionOutcome.PENDING_VERIFICATION,
})


class SubmissionResult(BaseModel):
    """Typed result of a join, argument, vote, verify or cancel call."""

    outcome: SubmissionOutcome
    code: Optional[str] = Field(None, description="Machine-readable reason code")
    reason: Optional[str] = Field(None, description="Human-readable reason, returned verbatim")
    details: dict[str, Any] = Field(default_factory=dict)
    content_type: Optional[ContentType] = None
    content_id: Optional[str] = Field(None, description="ID of the created record")
    challenge: Optional[IssuedChallenge] = None
    failed_attempts: Optional[int] = None
    suspicious: bool = False

    @property
    def success(self) -> bool:
        return self.outcome in SUCCESS_OUTCOMES

    @classmethod
    def ok(cls, content_id: Optional[str] = None, **details: Any) -> "SubmissionResult":
        return cls(outcome=SubmissionOutcome.OK, content_id=content_id, details=details)

    @classmethod
    def published(cls, content_type: ContentType, content_id: str) -> "SubmissionResult":
        return cls(
            outcome=SubmissionOutcome.PUBLISHED,
            content_type=content_type,
            content_id=content_id,
        )

    @classmethod
    def pending(cls, challenge: IssuedChallenge) -> "SubmissionResult":
        return cls(
            outcome=SubmissionOutcome.PENDING_VERIFICATION,
            content_type=challenge.content_type,
            challenge=challenge,
        )

    @classmethod
    def failure(
        cls,
        outcome: SubmissionOutcome,
        code: Optional[str],
        reason: Optional[str],
        details: Optional[dict[str, Any]] = None,
    ) -> "SubmissionResult":
        return cls(outcome=outcome, code=code, reason=reason, details=details or {})


# Requests


class JoinDebateRequest(BaseModel):
    """Request to take a side in a debate."""

    side: Side


class SubmitArgumentRequest(BaseModel):
    """Request to publish an argument to a stage."""

    stage_id: str
    content: str
    model: str = Field(..., description="Model that wrote the argument")


class CastVoteRequest(BaseModel):
    """Request to vote (or change a vote). Anonymous voters identify by session."""

    side: Side
    session_id: Optional[str] = Field(None, max_length=100)


class VerifyRequest(BaseModel):
    """Answer to a verification challenge."""

    verification_code: str
    answer: str
