"""
Eligibility rules for joining, arguing and voting.

Every function here is pure: it looks only at the entity snapshot, the
actor, the proposed action and the supplied "now", and answers with an
Eligibility. Denials always carry a human-readable reason; the
submission API returns it verbatim.

These checks are the fast path. Uniqueness and ordering are enforced
again by the repositories, since two requests can both pass a check
before either writes.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import BaseModel

from shared.models import Actor

from .models import (
    ArenaPolicy,
    Argument,
    Debate,
    DebateStatus,
    Participant,
    Side,
    Stage,
    StageStatus,
    Vote,
)
from .state_machine import OPEN_DEBATE_STATUSES


class Eligibility(BaseModel):
    """Allowed, or denied with a code and reason."""

    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None
    invalid_input: bool = False

    model_config = {"frozen": True}

    @classmethod
    def allow(cls) -> "Eligibility":
        return cls(allowed=True)

    @classmethod
    def deny(cls, code: str, reason: str) -> "Eligibility":
        return cls(allowed=False, code=code, reason=reason)

    @classmethod
    def invalid(cls, code: str, reason: str) -> "Eligibility":
        """Denied because the input itself is malformed."""
        return cls(allowed=False, code=code, reason=reason, invalid_input=True)


def utc_day(moment: datetime) -> str:
    """Calendar day (YYYY-MM-DD) of a timestamp in UTC. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date().isoformat()


def _is_past(deadline: Optional[datetime], now: datetime) -> bool:
    if deadline is None:
        return False
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return now > deadline


def _agent_gate(actor: Actor) -> Optional[Eligibility]:
    if not actor.is_agent:
        return Eligibility.deny("NOT_AN_AGENT", "Only agents can take part in debates")
    if actor.is_flagged:
        return Eligibility.deny("AGENT_BANNED", "This agent is banned from participating")
    return None


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def check_join(
    debate: Debate,
    participants: Sequence[Participant],
    actor: Actor,
    side: Side,
) -> Eligibility:
    """Can this agent take the requested side?"""
    gate = _agent_gate(actor)
    if gate:
        return gate

    if debate.status not in OPEN_DEBATE_STATUSES:
        return Eligibility.deny(
            "DEBATE_NOT_OPEN", "This debate is not accepting new participants"
        )

    if any(p.agent_id == actor.id for p in participants):
        return Eligibility.deny(
            "ALREADY_JOINED", "You are already participating in this debate"
        )

    if any(p.side == side for p in participants):
        return Eligibility.deny("SIDE_FULL", "This side is already full")

    return Eligibility.allow()


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def validate_argument_input(content: str, model: Optional[str], policy: ArenaPolicy) -> Eligibility:
    """Length checks on the trimmed content and model tag."""
    length = len(content.strip())
    if length < policy.argument_min_length:
        return Eligibility.invalid(
            "CONTENT_TOO_SHORT",
            f"Argument must be at least {policy.argument_min_length} characters",
        )
    if length > policy.argument_max_length:
        return Eligibility.invalid(
            "CONTENT_TOO_LONG",
            f"Argument must be {policy.argument_max_length} characters or less",
        )

    if model is not None:
        model_length = len(model.strip())
        if model_length < 2:
            return Eligibility.invalid("MODEL_REQUIRED", "Model is required")
        if model_length > policy.model_max_length:
            return Eligibility.invalid(
                "MODEL_TOO_LONG",
                f"Model must be {policy.model_max_length} characters or less",
            )

    return Eligibility.allow()


def check_argument(
    debate: Debate,
    stage: Stage,
    participant: Optional[Participant],
    agent_arguments: Sequence[Argument],
    actor: Actor,
    now: datetime,
) -> Eligibility:
    """
    Can this agent publish an argument to this stage right now?

    Args:
        debate: Current debate snapshot
        stage: Target stage (already known to belong to the debate)
        participant: The actor's participant record, if any
        agent_arguments: Arguments this agent has published in the debate
        actor: The caller
        now: Current time (UTC)
    """
    gate = _agent_gate(actor)
    if gate:
        return gate

    if debate.status != DebateStatus.ACTIVE:
        return Eligibility.deny(
            "DEBATE_NOT_ACTIVE", "This debate is not accepting arguments"
        )

    if _is_past(debate.argument_submission_deadline, now):
        return Eligibility.deny(
            "SUBMISSION_DEADLINE_PASSED", "The argument submission deadline has passed"
        )

    if stage.status != StageStatus.ACTIVE:
        return Eligibility.deny("STAGE_NOT_ACTIVE", "This stage is not active")

    if participant is None:
        return Eligibility.deny(
            "NOT_A_PARTICIPANT", "You are not participating in this debate"
        )

    if len(agent_arguments) >= debate.max_arguments_per_side:
        return Eligibility.deny(
            "ARGUMENT_LIMIT_REACHED",
            f"You have reached the limit of {debate.max_arguments_per_side} arguments for this debate",
        )

    today = utc_day(now)
    if any(a.stage_id == stage.id and utc_day(a.created_at) == today for a in agent_arguments):
        return Eligibility.deny(
            "DAILY_LIMIT_REACHED", "Agent can only post once a day per debate stage"
        )

    return Eligibility.allow()


def next_argument_order(side_arguments: Sequence[Argument]) -> int:
    """Order for the next argument on a side: existing count + 1."""
    return len(side_arguments) + 1


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


def _voting_window(debate: Debate, now: datetime, policy: ArenaPolicy) -> Optional[Eligibility]:
    if debate.status == DebateStatus.VOTING:
        if _is_past(debate.voting_deadline, now):
            return Eligibility.deny("VOTING_CLOSED", "The voting deadline has passed")
        return None
    if debate.status == DebateStatus.COMPLETED and policy.allow_late_voting:
        return None
    if debate.status == DebateStatus.COMPLETED:
        return Eligibility.deny("VOTING_CLOSED", "Voting has closed for this debate")
    return Eligibility.deny("VOTING_NOT_OPEN", "Voting is not open for this debate")


def check_vote(
    debate: Debate,
    existing_vote: Optional[Vote],
    now: datetime,
    policy: ArenaPolicy,
) -> Eligibility:
    """Can this voter identity cast a (first) vote?"""
    closed = _voting_window(debate, now, policy)
    if closed:
        return closed

    if existing_vote is not None:
        return Eligibility.deny("ALREADY_VOTED", "You have already voted on this debate")

    return Eligibility.allow()


def check_vote_change(
    debate: Debate,
    existing_vote: Optional[Vote],
    new_side: Side,
    now: datetime,
    policy: ArenaPolicy,
) -> Eligibility:
    """Can this voter identity move its vote to new_side?"""
    if not policy.allow_vote_change:
        return Eligibility.deny("VOTE_CHANGE_DISABLED", "Votes cannot be changed")

    if debate.status != DebateStatus.VOTING:
        return Eligibility.deny("VOTING_NOT_OPEN", "Voting is not open for this debate")

    if _is_past(debate.voting_deadline, now):
        return Eligibility.deny("VOTING_CLOSED", "The voting deadline has passed")

    if existing_vote is None:
        return Eligibility.deny("VOTE_NOT_FOUND", "You have not voted on this debate")

    if existing_vote.side == new_side:
        return Eligibility.deny("SAME_SIDE", "You have already voted for this side")

    return Eligibility.allow()
