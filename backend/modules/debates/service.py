"""
Debates service implementation.

Administrative lifecycle for debates: creation, stage management,
opening voting and completing with a winner, plus moderation of
published arguments. Agent and human submissions go through
modules.submissions instead.
"""

import logging
from typing import Optional

from shared.exceptions import ValidationError
from shared.models import Actor

from .eligibility import validate_argument_input
from .exceptions import (
    ArgumentNotFoundError,
    ArgumentPermissionError,
    DebateNotFoundError,
    StageNotFoundError,
)
from .interfaces import IDebateRepository, IDebateService
from .models import (
    ArenaPolicy,
    Argument,
    CompleteDebateRequest,
    CreateDebateRequest,
    Debate,
    DebateDetail,
    DebateStatus,
    Stage,
    StageRequest,
    StageStatus,
    TallyResult,
)
from .state_machine import (
    OPEN_DEBATE_STATUSES,
    ensure_debate_transition,
    ensure_stage_transition,
)
from .tally import resolve_winner, tally

logger = logging.getLogger(__name__)


class DebateService(IDebateService):
    """
    Debate lifecycle service.

    Implements IDebateService on top of an IDebateRepository. Transition
    rules come from state_machine; every status write is a guarded
    compare-and-set in the repository.
    """

    def __init__(
        self,
        repository: IDebateRepository,
        policy: Optional[ArenaPolicy] = None,
        default_max_arguments_per_side: int = 5,
    ):
        self._repo = repository
        self._policy = policy or ArenaPolicy()
        self._default_max_arguments = default_max_arguments_per_side

    # -------------------------------------------------------------------------
    # Debates
    # -------------------------------------------------------------------------

    async def create_debate(self, request: CreateDebateRequest) -> Debate:
        """Create a new debate in PENDING status."""
        if (
            request.argument_submission_deadline
            and request.voting_deadline
            and request.voting_deadline <= request.argument_submission_deadline
        ):
            raise ValidationError(
                "Voting deadline must be after the argument submission deadline",
                code="INVALID_DEADLINES",
            )

        debate = self._repo.create_debate(request, self._default_max_arguments)
        logger.info(f"Created debate {debate.id}: {debate.title!r}")
        return debate

    async def get_debate(self, debate_id: str) -> DebateDetail:
        """Get a debate with stages, participants, arguments and live tally."""
        debate = self._load(debate_id)
        for_votes, against_votes = self._repo.count_votes(debate_id)

        return DebateDetail(
            debate=debate,
            stages=self._repo.list_stages(debate_id),
            participants=self._repo.list_participants(debate_id),
            arguments=self._repo.list_arguments(debate_id),
            tally=tally(for_votes, against_votes),
        )

    async def get_tally(self, debate_id: str) -> TallyResult:
        self._load(debate_id)
        return tally(*self._repo.count_votes(debate_id))

    async def open_voting(self, debate_id: str) -> Debate:
        """Move an ACTIVE debate to VOTING."""
        debate = self._load(debate_id)
        ensure_debate_transition(debate_id, debate.status, DebateStatus.VOTING)

        updated = self._repo.transition_debate(debate_id, debate.status, DebateStatus.VOTING)
        logger.info(f"Debate {debate_id}: {debate.status.value} -> voting")
        return updated

    async def complete_debate(self, debate_id: str, request: CompleteDebateRequest) -> Debate:
        """Move a VOTING debate to COMPLETED with a winner side and agent."""
        debate = self._load(debate_id)
        ensure_debate_transition(debate_id, debate.status, DebateStatus.COMPLETED)

        result = tally(*self._repo.count_votes(debate_id))
        winner_side = resolve_winner(
            debate_id,
            result,
            supplied=request.winner_side,
            allow_override=self._policy.allow_winner_override,
        )

        participants = self._repo.list_participants(debate_id)
        winner_agent_id = request.winner_agent_id
        if winner_agent_id is None:
            winner_agent_id = next(
                (p.agent_id for p in participants if p.side == winner_side), None
            )
        elif not any(p.agent_id == winner_agent_id and p.side == winner_side for p in participants):
            raise ValidationError(
                "Winner agent must be the participant on the winning side",
                code="INVALID_WINNER_AGENT",
                details={"winner_agent_id": winner_agent_id, "winner_side": winner_side.value},
            )

        # Fails with StateChangedError if a vote landed after the count above
        updated = self._repo.complete_debate(
            debate_id,
            result.for_votes,
            result.against_votes,
            winner_side,
            winner_agent_id,
        )
        logger.info(
            f"Debate {debate_id} completed: winner={winner_side.value} "
            f"({result.for_votes} for / {result.against_votes} against)"
        )
        return updated

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def create_stage(self, debate_id: str, request: StageRequest) -> Stage:
        debate = self._load(debate_id)
        self._validate_stage_request(request)
        if request.status == StageStatus.ACTIVE:
            self._ensure_can_activate(debate)
        elif request.status == StageStatus.COMPLETED:
            raise ValidationError("A new stage cannot start completed", code="INVALID_STAGE_STATUS")

        stage = self._repo.create_stage(debate_id, request)
        logger.info(f"Created stage {stage.id} ({stage.name!r}, {stage.status.value}) in debate {debate_id}")
        return stage

    async def update_stage(self, debate_id: str, stage_id: str, request: StageRequest) -> Stage:
        debate = self._load(debate_id)
        stage = self._load_stage(debate_id, stage_id)
        self._validate_stage_request(request)
        ensure_stage_transition(stage_id, stage.status, request.status)
        if request.status == StageStatus.ACTIVE and stage.status != StageStatus.ACTIVE:
            self._ensure_can_activate(debate)

        updated = self._repo.update_stage(stage_id, request)
        if updated.status != stage.status:
            logger.info(f"Stage {stage_id}: {stage.status.value} -> {updated.status.value}")
        return updated

    async def delete_stage(self, debate_id: str, stage_id: str) -> None:
        self._load(debate_id)
        self._load_stage(debate_id, stage_id)
        self._repo.delete_stage(stage_id)
        logger.info(f"Deleted stage {stage_id} from debate {debate_id}")

    async def set_stage_status(self, debate_id: str, stage_id: str, status: StageStatus) -> Stage:
        debate = self._load(debate_id)
        stage = self._load_stage(debate_id, stage_id)
        ensure_stage_transition(stage_id, stage.status, status)
        if stage.status == status:
            return stage
        if status == StageStatus.ACTIVE:
            self._ensure_can_activate(debate)

        updated = self._repo.set_stage_status(stage_id, stage.status, status)
        logger.info(f"Stage {stage_id}: {stage.status.value} -> {status.value}")
        return updated

    def _validate_stage_request(self, request: StageRequest) -> None:
        if not request.name.strip():
            raise ValidationError("Stage name is required", code="STAGE_NAME_REQUIRED")
        if request.stage_order < 1:
            raise ValidationError("Stage order must be at least 1", code="INVALID_STAGE_ORDER")
        if request.start_at and request.end_at and request.end_at <= request.start_at:
            raise ValidationError("Stage end must be after its start", code="INVALID_STAGE_WINDOW")

    def _ensure_can_activate(self, debate: Debate) -> None:
        if debate.status not in OPEN_DEBATE_STATUSES:
            raise ValidationError(
                "Stages can only be activated while the debate is open",
                code="DEBATE_NOT_OPEN",
                details={"debate_id": debate.id, "status": debate.status.value},
            )

    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------

    async def edit_argument(self, actor: Actor, argument_id: str, content: str) -> Argument:
        """Administrative edit of published content."""
        argument = self._repo.get_argument(argument_id)
        if argument is None:
            raise ArgumentNotFoundError(argument_id)
        if not actor.is_admin:
            raise ArgumentPermissionError(argument_id, actor.id)

        check = validate_argument_input(content, None, self._policy)
        if not check.allowed:
            raise ValidationError(check.reason or "Invalid content", code=check.code)

        updated = self._repo.edit_argument(argument_id, content.strip())
        logger.info(f"Admin {actor.id} edited argument {argument_id}")
        return updated

    async def delete_argument(self, actor: Actor, argument_id: str) -> None:
        """Delete an argument (admin or its author); its side is renumbered."""
        argument = self._repo.get_argument(argument_id)
        if argument is None:
            raise ArgumentNotFoundError(argument_id)
        if not actor.is_admin and argument.agent_id != actor.id:
            raise ArgumentPermissionError(argument_id, actor.id)

        self._repo.delete_argument(argument_id)
        logger.info(f"{actor.role.value} {actor.id} deleted argument {argument_id}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, debate_id: str) -> Debate:
        debate = self._repo.get_debate(debate_id)
        if debate is None:
            raise DebateNotFoundError(debate_id)
        return debate

    def _load_stage(self, debate_id: str, stage_id: str) -> Stage:
        stage = self._repo.get_stage(stage_id)
        if stage is None or stage.debate_id != debate_id:
            raise StageNotFoundError(stage_id)
        return stage

