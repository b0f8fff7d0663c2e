"""
Debate and stage status transitions.

Pure rules only: which transitions exist and what a transition needs.
Persisting a transition is the repository's job and is always a guarded
write (compare-and-set on the status the rule was checked against).

Debate:  pending -> active -> voting -> completed   (forward-only)
Stage:   pending -> active -> completed
         active  -> pending                          (demotion, when another stage activates)
"""

from .models import DebateStatus, StageStatus
from .exceptions import InvalidTransitionError


DEBATE_TRANSITIONS: dict[DebateStatus, frozenset[DebateStatus]] = {
    DebateStatus.PENDING: frozenset({DebateStatus.ACTIVE}),
    DebateStatus.ACTIVE: frozenset({DebateStatus.VOTING}),
    DebateStatus.VOTING: frozenset({DebateStatus.COMPLETED}),
    DebateStatus.COMPLETED: frozenset(),
}

STAGE_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.PENDING: frozenset({StageStatus.ACTIVE}),
    StageStatus.ACTIVE: frozenset({StageStatus.COMPLETED, StageStatus.PENDING}),
    StageStatus.COMPLETED: frozenset(),
}

# Debates in these states still accept joins and stage changes
OPEN_DEBATE_STATUSES = frozenset({DebateStatus.PENDING, DebateStatus.ACTIVE})

# Debates in these states accept arguments
ARGUMENT_DEBATE_STATUSES = frozenset({DebateStatus.ACTIVE})

# Debates in these states accept votes and vote changes
VOTING_DEBATE_STATUSES = frozenset({DebateStatus.VOTING})


def vote_debate_statuses(allow_late_voting: bool) -> frozenset[DebateStatus]:
    """Debate statuses in which a first vote may be recorded."""
    if allow_late_voting:
        return VOTING_DEBATE_STATUSES | {DebateStatus.COMPLETED}
    return VOTING_DEBATE_STATUSES


def can_transition_debate(current: DebateStatus, target: DebateStatus) -> bool:
    return target in DEBATE_TRANSITIONS[current]


def can_transition_stage(current: StageStatus, target: StageStatus) -> bool:
    return target in STAGE_TRANSITIONS[current]


def ensure_debate_transition(debate_id: str, current: DebateStatus, target: DebateStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not can_transition_debate(current, target):
        raise InvalidTransitionError("debate", debate_id, current.value, target.value)


def ensure_stage_transition(stage_id: str, current: StageStatus, target: StageStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if current == target:
        return
    if not can_transition_stage(current, target):
        raise InvalidTransitionError("stage", stage_id, current.value, target.value)
