"""
Debates module interfaces.

IDebateRepository is the storage collaborator: everything the core needs
from persistence, including the atomicity contracts the invariants rely
on. IDebateService is the administrative lifecycle API exposed to the
HTTP layer.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import Actor

from .models import (
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
    Vote,
    VoterIdentity,
)
from .state_machine import (
    ARGUMENT_DEBATE_STATUSES,
    OPEN_DEBATE_STATUSES,
    VOTING_DEBATE_STATUSES,
)


@runtime_checkable
class IDebateRepository(Protocol):
    """
    Storage contract for debates and everything hanging off them.

    Atomicity requirements:
    - add_participant / add_vote are insert-if-absent on their uniqueness
      keys and raise ConflictError when they lose a race.
    - add_participant, publish_argument, add_vote and change_vote take the
      debate statuses the caller's eligibility check accepted and re-check
      them in the same unit of work as the write, raising
      StateChangedError when the debate has moved on. publish_argument
      also requires the stage to still be active.
    - transition_debate, set_stage_status and change_vote are
      compare-and-set on the expected status/side and raise
      StateChangedError when the row moved underneath them.
    - complete_debate recounts the votes in the same unit of work as the
      status change and raises StateChangedError (entity "tally") when
      they differ from the counts the winner was resolved from.
    - Activating a stage demotes any other active stage of the debate in
      the same unit of work; no reader ever sees two active stages.
    - publish_argument numbers the argument (count + 1 within its side)
      and enforces one argument per agent per stage per UTC day in the
      same unit of work as the insert.
    """

    # Debates
    def create_debate(self, request: CreateDebateRequest, max_arguments_per_side: int) -> Debate: ...

    def get_debate(self, debate_id: str) -> Optional[Debate]: ...

    def transition_debate(
        self,
        debate_id: str,
        expected: DebateStatus,
        target: DebateStatus,
    ) -> Debate: ...

    def complete_debate(
        self,
        debate_id: str,
        for_votes: int,
        against_votes: int,
        winner_side: Side,
        winner_agent_id: Optional[str] = None,
    ) -> Debate: ...

    def set_total_votes(self, debate_id: str, total_votes: int) -> None: ...

    # Stages
    def list_stages(self, debate_id: str) -> list[Stage]: ...

    def get_stage(self, stage_id: str) -> Optional[Stage]: ...

    def create_stage(self, debate_id: str, request: StageRequest) -> Stage: ...

    def update_stage(self, stage_id: str, request: StageRequest) -> Stage: ...

    def delete_stage(self, stage_id: str) -> None: ...

    def set_stage_status(self, stage_id: str, expected: StageStatus, target: StageStatus) -> Stage: ...

    # Participants
    def list_participants(self, debate_id: str) -> list[Participant]: ...

    def add_participant(
        self,
        debate_id: str,
        agent_id: str,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = OPEN_DEBATE_STATUSES,
    ) -> Participant: ...

    # Arguments
    def list_arguments(
        self,
        debate_id: str,
        side: Optional[Side] = None,
        agent_id: Optional[str] = None,
    ) -> list[Argument]: ...

    def get_argument(self, argument_id: str) -> Optional[Argument]: ...

    def publish_argument(
        self,
        draft: ArgumentDraft,
        debate_statuses: frozenset[DebateStatus] = ARGUMENT_DEBATE_STATUSES,
    ) -> Argument: ...

    def edit_argument(self, argument_id: str, content: str) -> Argument: ...

    def delete_argument(self, argument_id: str) -> None: ...

    # Votes
    def get_vote(self, debate_id: str, voter: VoterIdentity) -> Optional[Vote]: ...

    def add_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote: ...

    def change_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        expected: Side,
        target: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote: ...

    def count_votes(self, debate_id: str) -> tuple[int, int]: ...


@runtime_checkable
class IDebateService(Protocol):
    """
    Administrative debate lifecycle.

    Agent/human submissions go through the submissions module instead.
    """

    async def create_debate(self, request: CreateDebateRequest) -> Debate:
        """
        Create a debate in PENDING status.

        Raises:
            ValidationError: If request is invalid
        """
        ...

    async def get_debate(self, debate_id: str) -> DebateDetail:
        """
        Get a debate with stages, participants, arguments and live tally.

        Raises:
            DebateNotFoundError: If the debate doesn't exist
        """
        ...

    async def get_tally(self, debate_id: str) -> TallyResult:
        """
        Current vote tally for a debate.

        Raises:
            DebateNotFoundError: If the debate doesn't exist
        """
        ...

    async def open_voting(self, debate_id: str) -> Debate:
        """
        Move an ACTIVE debate to VOTING.

        Raises:
            DebateNotFoundError: If the debate doesn't exist
            InvalidTransitionError: If the debate is not ACTIVE
            StateChangedError: If the status changed concurrently
        """
        ...

    async def complete_debate(self, debate_id: str, request: CompleteDebateRequest) -> Debate:
        """
        Move a VOTING debate to COMPLETED with a winner.

        The winner comes from the request or, when omitted, the tally.

        Raises:
            DebateNotFoundError: If the debate doesn't exist
            InvalidTransitionError: If the debate is not VOTING
            TieRequiresWinnerError: Tied tally and no explicit winner
            WinnerContradictsTallyError: Explicit winner disagrees with the tally
            StateChangedError: If the status or the votes changed while completing
        """
        ...

    async def create_stage(self, debate_id: str, request: StageRequest) -> Stage:
        """Add a stage. Creating it ACTIVE demotes the current active stage."""
        ...

    async def update_stage(self, debate_id: str, stage_id: str, request: StageRequest) -> Stage:
        """Edit a stage. Setting it ACTIVE demotes the current active stage."""
        ...

    async def delete_stage(self, debate_id: str, stage_id: str) -> None:
        """Remove a stage."""
        ...

    async def set_stage_status(self, debate_id: str, stage_id: str, status: StageStatus) -> Stage:
        """
        Move a stage along pending -> active -> completed.

        Raises:
            StageNotFoundError: If the stage doesn't exist in this debate
            InvalidTransitionError: If the move is not allowed
        """
        ...

    async def edit_argument(self, actor: Actor, argument_id: str, content: str) -> Argument:
        """Administrative edit of published content (marks edited_by_admin)."""
        ...

    async def delete_argument(self, actor: Actor, argument_id: str) -> None:
        """Delete an argument (admin or its author) and renumber its side."""
        ...
