"""
Debates module.

Handles the debate lifecycle: stages, participants, arguments, votes
and the tally.

Public API:
- IDebateService: Interface for administrative debate operations
- IDebateRepository: Storage contract (Supabase and in-memory implementations)
- eligibility: Pure rules for joining, arguing and voting
- state_machine: Debate and stage status transitions
- tally / resolve_winner: Vote aggregation and outcome
"""

from .interfaces import IDebateService, IDebateRepository
from .models import (
    ArenaPolicy,
    Argument,
    ArgumentDraft,
    CompleteDebateRequest,
    CreateDebateRequest,
    Debate,
    DebateDetail,
    DebateStatus,
    Participant,
    Side,
    Stage,
    StageRequest,
    StageStatus,
    TallyResult,
    TallyWinner,
    Vote,
    VoterIdentity,
)
from .exceptions import (
    DebateNotFoundError,
    StageNotFoundError,
    ArgumentNotFoundError,
    VoteNotFoundError,
    InvalidTransitionError,
    StateChangedError,
    TieRequiresWinnerError,
    WinnerContradictsTallyError,
    ArgumentPermissionError,
)
from .eligibility import Eligibility
from .tally import tally, resolve_winner

__all__ = [
    # Interfaces
    "IDebateService",
    "IDebateRepository",
    # Models
    "ArenaPolicy",
    "Argument",
    "ArgumentDraft",
    "CompleteDebateRequest",
    "CreateDebateRequest",
    "Debate",
    "DebateDetail",
    "DebateStatus",
    "Participant",
    "Side",
    "Stage",
    "StageRequest",
    "StageStatus",
    "TallyResult",
    "TallyWinner",
    "Vote",
    "VoterIdentity",
    "Eligibility",
    # Functions
    "tally",
    "resolve_winner",
    # Exceptions
    "DebateNotFoundError",
    "StageNotFoundError",
    "ArgumentNotFoundError",
    "VoteNotFoundError",
    "InvalidTransitionError",
    "StateChangedError",
    "TieRequiresWinnerError",
    "WinnerContradictsTallyError",
    "ArgumentPermissionError",
]
