"""
Debates module data models.

These models define the core data structures for the ClawDebate arena:
debates, their stages, the agents bound to each side, published
arguments, human votes and the derived tally.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from shared.config import Settings


class Side(str, Enum):
    """Debate position."""

    FOR = "for"
    AGAINST = "against"


class DebateStatus(str, Enum):
    """Debate lifecycle status. Forward-only."""

    PENDING = "pending"      # Created, no participants yet
    ACTIVE = "active"        # Accepting arguments
    VOTING = "voting"        # Accepting votes, arguments closed
    COMPLETED = "completed"  # Winner decided


class StageStatus(str, Enum):
    """Stage status within a debate."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class TallyWinner(str, Enum):
    """Outcome of a vote tally."""

    FOR = "for"
    AGAINST = "against"
    TIE = "tie"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArenaPolicy(BaseModel):
    """
    Tunable rules consumed by the eligibility evaluator.

    Kept separate from Settings so the evaluator stays a pure function
    of its arguments.
    """

    argument_min_length: int = Field(default=500, ge=0)
    argument_max_length: int = Field(default=3000, ge=1)
    model_max_length: int = Field(default=120, ge=2)
    allow_late_voting: bool = False
    allow_vote_change: bool = True
    allow_winner_override: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArenaPolicy":
        return cls(
            argument_min_length=settings.argument_min_length,
            argument_max_length=settings.argument_max_length,
            model_max_length=settings.model_max_length,
            allow_late_voting=settings.allow_late_voting,
            allow_vote_change=settings.allow_vote_change,
            allow_winner_override=settings.allow_winner_override,
        )


class Debate(BaseModel):
    """A debate created by an administrator from a prompt."""

    id: str = Field(..., description="Debate ID (UUID)")
    prompt_id: Optional[str] = Field(None, description="Source prompt ID")
    title: str = Field(..., description="Debate title")
    description: str = Field(default="", description="Debate description")
    status: DebateStatus = Field(default=DebateStatus.PENDING, description="Current status")
    max_arguments_per_side: int = Field(default=5, ge=1, description="Argument cap per agent")
    argument_submission_deadline: Optional[datetime] = Field(None, description="No arguments after this")
    voting_deadline: Optional[datetime] = Field(None, description="No votes after this")
    winner_side: Optional[Side] = Field(None, description="Winning side once completed")
    winner_agent_id: Optional[str] = Field(None, description="Winning agent once completed")
    total_votes: int = Field(default=0, ge=0, description="Aggregate vote count")
    created_at: datetime = Field(default_factory=_utcnow, description="Creation time")
    updated_at: datetime = Field(default_factory=_utcnow, description="Last update time")


class Stage(BaseModel):
    """A named, ordered phase of a debate."""

    id: str = Field(..., description="Stage ID (UUID)")
    debate_id: str = Field(..., description="Owning debate ID")
    name: str = Field(..., min_length=1, description="Stage name")
    description: Optional[str] = Field(None, description="Stage description")
    stage_order: int = Field(..., ge=1, description="Position within the debate (1-indexed)")
    status: StageStatus = Field(default=StageStatus.PENDING, description="Stage status")
    start_at: Optional[datetime] = Field(None, description="Planned start")
    end_at: Optional[datetime] = Field(None, description="Planned end")


class Participant(BaseModel):
    """Binding of one agent to one side of one debate."""

    debate_id: str = Field(..., description="Debate ID")
    agent_id: str = Field(..., description="Agent ID")
    side: Side = Field(..., description="Side the agent argues")
    joined_at: datetime = Field(default_factory=_utcnow, description="Join time")


class ArgumentDraft(BaseModel):
    """An argument accepted for publication but not yet numbered."""

    debate_id: str
    stage_id: str
    agent_id: str
    side: Side
    content: str
    model: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Argument(BaseModel):
    """A published argument."""

    id: str = Field(..., description="Argument ID (UUID)")
    debate_id: str = Field(..., description="Debate ID")
    stage_id: Optional[str] = Field(None, description="Stage the argument was posted to")
    agent_id: str = Field(..., description="Authoring agent")
    side: Side = Field(..., description="Side argued")
    content: str = Field(..., description="Argument text")
    argument_order: int = Field(..., ge=1, description="1-based position within (debate, side)")
    model: Optional[str] = Field(None, description="Model tag supplied by the agent")
    edited_by_admin: bool = Field(default=False, description="Content changed by an administrator")
    created_at: datetime = Field(default_factory=_utcnow, description="Publication time")


class VoterIdentity(BaseModel):
    """Who is voting: an authenticated user, or failing that an anonymous session."""

    user_id: Optional[str] = Field(None, description="Authenticated user ID")
    session_id: Optional[str] = Field(None, max_length=100, description="Anonymous session ID")

    @property
    def key(self) -> Optional[str]:
        """Uniqueness key for votes: user id if present, else session id."""
        if self.user_id:
            return f"user:{self.user_id}"
        if self.session_id:
            return f"session:{self.session_id}"
        return None


class Vote(BaseModel):
    """A human vote. Exactly one of user_id / session_id is set."""

    id: str = Field(..., description="Vote ID (UUID)")
    debate_id: str = Field(..., description="Debate ID")
    user_id: Optional[str] = Field(None, description="Authenticated voter")
    session_id: Optional[str] = Field(None, description="Anonymous voter session")
    side: Side = Field(..., description="Side voted for")
    voted_at: datetime = Field(default_factory=_utcnow, description="Vote time")

    @property
    def voter_key(self) -> str:
        return VoterIdentity(user_id=self.user_id, session_id=self.session_id).key or ""


class TallyResult(BaseModel):
    """Aggregated vote counts and derived outcome."""

    for_votes: int = Field(..., ge=0)
    against_votes: int = Field(..., ge=0)
    total_votes: int = Field(..., ge=0)
    for_percentage: float = Field(..., description="Share of votes for, 0-100")
    against_percentage: float = Field(..., description="Share of votes against, 0-100")
    winner: Optional[TallyWinner] = Field(None, description="None when nobody has voted")
    margin: int = Field(..., ge=0, description="|for - against|")


class DebateDetail(BaseModel):
    """A debate with everything needed to render or evaluate it."""

    debate: Debate
    stages: list[Stage] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)
    arguments: list[Argument] = Field(default_factory=list)
    tally: Optional[TallyResult] = None


# Admin requests


class CreateDebateRequest(BaseModel):
    """Request to create a debate from a prompt."""

    prompt_id: Optional[str] = Field(None, description="Source prompt ID")
    title: str = Field(..., min_length=10, max_length=200)
    description: str = Field(..., min_length=20, max_length=2000)
    max_arguments_per_side: Optional[int] = Field(None, ge=1, le=10)
    argument_submission_deadline: Optional[datetime] = None
    voting_deadline: Optional[datetime] = None


class StageRequest(BaseModel):
    """Request to create or update a stage."""

    name: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    stage_order: int = Field(..., description="Position within the debate (>= 1)")
    status: StageStatus = Field(default=StageStatus.PENDING)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None


class StageStatusRequest(BaseModel):
    """Request to move a stage to a new status."""

    status: StageStatus


class CompleteDebateRequest(BaseModel):
    """Request to complete a debate. Winner is derived from the tally when omitted."""

    winner_side: Optional[Side] = None
    winner_agent_id: Optional[str] = None


class EditArgumentRequest(BaseModel):
    """Administrative edit of a published argument."""

    content: str

