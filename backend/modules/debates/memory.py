"""
In-memory debate repository.

Implements IDebateRepository with plain dicts behind a single lock, so
every method is one atomic unit of work, the same guarantees the
Supabase implementation gets from constraints and SQL functions.
Used by the test suite and for running the API without a database
(STORAGE_BACKEND=memory).
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from shared.exceptions import ConflictError

from .eligibility import next_argument_order, utc_day
from .exceptions import (
    ArgumentNotFoundError,
    DebateNotFoundError,
    StageNotFoundError,
    StateChangedError,
    VoteNotFoundError,
)
from .models import (
    Argument,
    ArgumentDraft,
    CreateDebateRequest,
    Debate,
    DebateStatus,
    Participant,
    Side,
    Stage,
    StageRequest,
    StageStatus,
    Vote,
    VoterIdentity,
)
from .state_machine import (
    ARGUMENT_DEBATE_STATUSES,
    OPEN_DEBATE_STATUSES,
    VOTING_DEBATE_STATUSES,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDebateRepository:
    """Thread-safe, process-local implementation of IDebateRepository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._debates: dict[str, Debate] = {}
        self._stages: dict[str, Stage] = {}
        self._participants: list[Participant] = []
        self._arguments: dict[str, Argument] = {}
        self._votes: dict[tuple[str, str], Vote] = {}

    # -------------------------------------------------------------------------
    # Debates
    # -------------------------------------------------------------------------

    def create_debate(self, request: CreateDebateRequest, max_arguments_per_side: int) -> Debate:
        debate = Debate(
            id=str(uuid.uuid4()),
            prompt_id=request.prompt_id,
            title=request.title.strip(),
            description=request.description.strip(),
            status=DebateStatus.PENDING,
            max_arguments_per_side=request.max_arguments_per_side or max_arguments_per_side,
            argument_submission_deadline=request.argument_submission_deadline,
            voting_deadline=request.voting_deadline,
        )
        with self._lock:
            self._debates[debate.id] = debate
        return debate.model_copy()

    def add_debate(self, debate: Debate) -> Debate:
        """Seed a fully-formed debate (fixtures, imports)."""
        with self._lock:
            self._debates[debate.id] = debate.model_copy()
        return debate

    def get_debate(self, debate_id: str) -> Optional[Debate]:
        with self._lock:
            debate = self._debates.get(debate_id)
            return debate.model_copy() if debate else None

    def transition_debate(
        self,
        debate_id: str,
        expected: DebateStatus,
        target: DebateStatus,
    ) -> Debate:
        with self._lock:
            debate = self._debates.get(debate_id)
            if debate is None:
                raise DebateNotFoundError(debate_id)
            if debate.status != expected:
                raise StateChangedError("debate", debate_id, [expected.value])

            updated = debate.model_copy(update={"status": target, "updated_at": _now()})
            self._debates[debate_id] = updated
            return updated.model_copy()

    def complete_debate(
        self,
        debate_id: str,
        for_votes: int,
        against_votes: int,
        winner_side: Side,
        winner_agent_id: Optional[str] = None,
    ) -> Debate:
        with self._lock:
            self._require_status(debate_id, VOTING_DEBATE_STATUSES)
            sides = [v.side for (d, _), v in self._votes.items() if d == debate_id]
            if (sides.count(Side.FOR), sides.count(Side.AGAINST)) != (for_votes, against_votes):
                raise StateChangedError("tally", debate_id)

            updated = self._debates[debate_id].model_copy(
                update={
                    "status": DebateStatus.COMPLETED,
                    "winner_side": winner_side,
                    "winner_agent_id": winner_agent_id,
                    "total_votes": len(sides),
                    "updated_at": _now(),
                }
            )
            self._debates[debate_id] = updated
            return updated.model_copy()

    def set_total_votes(self, debate_id: str, total_votes: int) -> None:
        with self._lock:
            debate = self._debates.get(debate_id)
            if debate is None:
                raise DebateNotFoundError(debate_id)
            self._debates[debate_id] = debate.model_copy(
                update={"total_votes": total_votes, "updated_at": _now()}
            )

    def _require_status(self, debate_id: str, statuses: frozenset[DebateStatus]) -> Debate:
        """Caller holds the lock."""
        debate = self._debates.get(debate_id)
        if debate is None:
            raise DebateNotFoundError(debate_id)
        if debate.status not in statuses:
            raise StateChangedError("debate", debate_id, sorted(s.value for s in statuses))
        return debate

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def list_stages(self, debate_id: str) -> list[Stage]:
        with self._lock:
            stages = [s for s in self._stages.values() if s.debate_id == debate_id]
        return sorted(stages, key=lambda s: s.stage_order)

    def get_stage(self, stage_id: str) -> Optional[Stage]:
        with self._lock:
            stage = self._stages.get(stage_id)
            return stage.model_copy() if stage else None

    def create_stage(self, debate_id: str, request: StageRequest) -> Stage:
        with self._lock:
            if debate_id not in self._debates:
                raise DebateNotFoundError(debate_id)
            self._ensure_order_free(debate_id, request.stage_order)
            if request.status == StageStatus.ACTIVE:
                self._demote_active(debate_id)

            stage = Stage(id=str(uuid.uuid4()), debate_id=debate_id, **self._stage_fields(request))
            self._stages[stage.id] = stage
            return stage.model_copy()

    def update_stage(self, stage_id: str, request: StageRequest) -> Stage:
        with self._lock:
            stage = self._stages.get(stage_id)
            if stage is None:
                raise StageNotFoundError(stage_id)
            self._ensure_order_free(stage.debate_id, request.stage_order, exclude=stage_id)
            if request.status == StageStatus.ACTIVE:
                self._demote_active(stage.debate_id, exclude=stage_id)

            updated = stage.model_copy(update=self._stage_fields(request))
            self._stages[stage_id] = updated
            return updated.model_copy()

    def delete_stage(self, stage_id: str) -> None:
        with self._lock:
            if self._stages.pop(stage_id, None) is None:
                raise StageNotFoundError(stage_id)

    def set_stage_status(self, stage_id: str, expected: StageStatus, target: StageStatus) -> Stage:
        with self._lock:
            stage = self._stages.get(stage_id)
            if stage is None:
                raise StageNotFoundError(stage_id)
            if stage.status != expected:
                raise StateChangedError("stage", stage_id, [expected.value])
            if target == StageStatus.ACTIVE:
                self._demote_active(stage.debate_id, exclude=stage_id)

            updated = stage.model_copy(update={"status": target})
            self._stages[stage_id] = updated
            return updated.model_copy()

    def _stage_fields(self, request: StageRequest) -> dict:
        return {
            "name": request.name.strip(),
            "description": (request.description or "").strip() or None,
            "stage_order": request.stage_order,
            "status": request.status,
            "start_at": request.start_at,
            "end_at": request.end_at,
        }

    def _ensure_order_free(self, debate_id: str, stage_order: int, exclude: Optional[str] = None) -> None:
        for stage in self._stages.values():
            if stage.debate_id == debate_id and stage.stage_order == stage_order and stage.id != exclude:
                raise ConflictError(
                    f"Stage order {stage_order} is already used in this debate",
                    code="STAGE_ORDER_TAKEN",
                    details={"debate_id": debate_id, "stage_order": stage_order},
                )

    def _demote_active(self, debate_id: str, exclude: Optional[str] = None) -> None:
        for stage_id, stage in list(self._stages.items()):
            if stage.debate_id == debate_id and stage.status == StageStatus.ACTIVE and stage_id != exclude:
                self._stages[stage_id] = stage.model_copy(update={"status": StageStatus.PENDING})

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def list_participants(self, debate_id: str) -> list[Participant]:
        with self._lock:
            return [p.model_copy() for p in self._participants if p.debate_id == debate_id]

    def add_participant(
        self,
        debate_id: str,
        agent_id: str,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = OPEN_DEBATE_STATUSES,
    ) -> Participant:
        with self._lock:
            self._require_status(debate_id, debate_statuses)
            for p in self._participants:
                if p.debate_id != debate_id:
                    continue
                if p.agent_id == agent_id or p.side == side:
                    raise ConflictError(
                        "Participant slot was taken concurrently",
                        code="PARTICIPANT_CONFLICT",
                        details={"debate_id": debate_id, "side": side.value},
                    )
            participant = Participant(debate_id=debate_id, agent_id=agent_id, side=side)
            self._participants.append(participant)
            return participant.model_copy()

    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------

    def list_arguments(
        self,
        debate_id: str,
        side: Optional[Side] = None,
        agent_id: Optional[str] = None,
    ) -> list[Argument]:
        with self._lock:
            found = [
                a.model_copy()
                for a in self._arguments.values()
                if a.debate_id == debate_id
                and (side is None or a.side == side)
                and (agent_id is None or a.agent_id == agent_id)
            ]
        return sorted(found, key=lambda a: (a.side.value, a.argument_order))

    def get_argument(self, argument_id: str) -> Optional[Argument]:
        with self._lock:
            argument = self._arguments.get(argument_id)
            return argument.model_copy() if argument else None

    def publish_argument(
        self,
        draft: ArgumentDraft,
        debate_statuses: frozenset[DebateStatus] = ARGUMENT_DEBATE_STATUSES,
    ) -> Argument:
        with self._lock:
            self._require_status(draft.debate_id, debate_statuses)
            stage = self._stages.get(draft.stage_id or "")
            if stage is None or stage.debate_id != draft.debate_id:
                raise StageNotFoundError(draft.stage_id or "")
            if stage.status != StageStatus.ACTIVE:
                raise StateChangedError("stage", stage.id, [StageStatus.ACTIVE.value])

            day = utc_day(draft.created_at)
            side_arguments = []
            for existing in self._arguments.values():
                if existing.debate_id != draft.debate_id:
                    continue
                if (
                    existing.agent_id == draft.agent_id
                    and existing.stage_id == draft.stage_id
                    and utc_day(existing.created_at) == day
                ):
                    raise ConflictError(
                        "Agent can only post once a day per debate stage",
                        code="DAILY_LIMIT_REACHED",
                        details={"debate_id": draft.debate_id, "stage_id": draft.stage_id},
                    )
                if existing.side == draft.side:
                    side_arguments.append(existing)

            argument = Argument(
                id=str(uuid.uuid4()),
                argument_order=next_argument_order(side_arguments),
                **draft.model_dump(),
            )
            self._arguments[argument.id] = argument
            return argument.model_copy()

    def edit_argument(self, argument_id: str, content: str) -> Argument:
        with self._lock:
            argument = self._arguments.get(argument_id)
            if argument is None:
                raise ArgumentNotFoundError(argument_id)
            updated = argument.model_copy(update={"content": content, "edited_by_admin": True})
            self._arguments[argument_id] = updated
            return updated.model_copy()

    def delete_argument(self, argument_id: str) -> None:
        with self._lock:
            removed = self._arguments.pop(argument_id, None)
            if removed is None:
                raise ArgumentNotFoundError(argument_id)
            remaining = sorted(
                (
                    a for a in self._arguments.values()
                    if a.debate_id == removed.debate_id and a.side == removed.side
                ),
                key=lambda a: a.argument_order,
            )
            for order, argument in enumerate(remaining, start=1):
                if argument.argument_order != order:
                    self._arguments[argument.id] = argument.model_copy(update={"argument_order": order})

    # -------------------------------------------------------------------------
    # Votes
    # -------------------------------------------------------------------------

    def get_vote(self, debate_id: str, voter: VoterIdentity) -> Optional[Vote]:
        with self._lock:
            vote = self._votes.get((debate_id, voter.key or ""))
            return vote.model_copy() if vote else None

    def add_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote:
        key = (debate_id, voter.key or "")
        with self._lock:
            self._require_status(debate_id, debate_statuses)
            if key in self._votes:
                raise ConflictError(
                    "You have already voted on this debate",
                    code="ALREADY_VOTED",
                    details={"debate_id": debate_id},
                )
            vote = Vote(
                id=str(uuid.uuid4()),
                debate_id=debate_id,
                user_id=voter.user_id,
                session_id=None if voter.user_id else voter.session_id,
                side=side,
            )
            self._votes[key] = vote
            return vote.model_copy()

    def change_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        expected: Side,
        target: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote:
        key = (debate_id, voter.key or "")
        with self._lock:
            self._require_status(debate_id, debate_statuses)
            vote = self._votes.get(key)
            if vote is None:
                raise VoteNotFoundError(debate_id)
            if vote.side != expected:
                raise StateChangedError("vote", vote.id, [expected.value])
            updated = vote.model_copy(update={"side": target, "voted_at": _now()})
            self._votes[key] = updated
            return updated.model_copy()

    def count_votes(self, debate_id: str) -> tuple[int, int]:
        with self._lock:
            sides = [v.side for (d, _), v in self._votes.items() if d == debate_id]
        return sides.count(Side.FOR), sides.count(Side.AGAINST)
