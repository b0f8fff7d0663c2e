"""
Debate repository for database access.

Encapsulates all Supabase queries and data mapping for debate-related tables:
- debates
- debate_stages
- debate_participants
- arguments
- votes

Writes that must be atomic against concurrent requests rely on the schema
in migrations/001_arena_schema.sql: unique indexes for participants, votes
and argument numbering, and SQL functions for stage activation, argument
publication and deletion, and the status-guarded joins, votes and
completion. A guard failure comes back as ConflictError STATE_CHANGED
from BaseRepository._execute and is raised here as StateChangedError.
"""

from datetime import datetime, timezone
from typing import Optional, Any

from shared.exceptions import ConflictError
from shared.repository import BaseRepository
from .eligibility import utc_day
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


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _values(statuses: frozenset[DebateStatus]) -> list[str]:
    return sorted(s.value for s in statuses)


class DebateRepository(BaseRepository[Debate]):
    """
    Repository for debate data access.

    Handles all database operations for debates and related entities.
    All methods return Pydantic models with proper mapping from database rows.

    Note: This repository does NOT perform authorization or eligibility
    checks. The service layer is responsible for those.
    """

    # -------------------------------------------------------------------------
    # Debate operations
    # -------------------------------------------------------------------------

    def create_debate(self, request: CreateDebateRequest, max_arguments_per_side: int) -> Debate:
        """
        Create a new debate record in PENDING status.

        Args:
            request: Validated creation request.
            max_arguments_per_side: Default cap when the request has none.

        Returns:
            Created Debate with generated ID and timestamps.
        """
        data = {
            "prompt_id": request.prompt_id,
            "title": request.title.strip(),
            "description": request.description.strip(),
            "status": DebateStatus.PENDING.value,
            "max_arguments_per_side": request.max_arguments_per_side or max_arguments_per_side,
            "argument_submission_deadline": _iso(request.argument_submission_deadline),
            "voting_deadline": _iso(request.voting_deadline),
        }
        result = self._execute(self._db.table("debates").insert(data))
        return self._map_to_debate(result.data[0])

    def get_debate(self, debate_id: str) -> Optional[Debate]:
        result = self._execute(self._db.table("debates").select("*").eq("id", debate_id))
        if not result.data:
            return None
        return self._map_to_debate(result.data[0])

    def transition_debate(
        self,
        debate_id: str,
        expected: DebateStatus,
        target: DebateStatus,
    ) -> Debate:
        """
        Compare-and-set the debate status.

        Raises:
            DebateNotFoundError: If the debate doesn't exist.
            StateChangedError: If the debate is no longer in `expected`.
        """
        data = {
            "status": target.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        result = self._execute(
            self._db.table("debates")
            .update(data)
            .eq("id", debate_id)
            .eq("status", expected.value)
        )
        if result.data:
            return self._map_to_debate(result.data[0])

        if self.get_debate(debate_id) is None:
            raise DebateNotFoundError(debate_id)
        raise StateChangedError("debate", debate_id, [expected.value])

    def complete_debate(
        self,
        debate_id: str,
        for_votes: int,
        against_votes: int,
        winner_side: Side,
        winner_agent_id: Optional[str] = None,
    ) -> Debate:
        """
        Close a VOTING debate through complete_debate(), which recounts the
        votes under a row lock and stores the winner with that count.

        Raises:
            DebateNotFoundError: If the debate doesn't exist.
            StateChangedError: If the debate left VOTING (entity "debate") or
                the votes no longer match for_votes/against_votes (entity "tally").
        """
        params = {
            "p_debate_id": debate_id,
            "p_for_votes": for_votes,
            "p_against_votes": against_votes,
            "p_winner_side": winner_side.value,
            "p_winner_agent_id": winner_agent_id,
        }
        result = self._guarded(
            self._db.rpc("complete_debate", params),
            debate_id,
            expected=[DebateStatus.VOTING.value],
        )
        return self._map_to_debate(self._first_row(result))

    def set_total_votes(self, debate_id: str, total_votes: int) -> None:
        data = {
            "total_votes": total_votes,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._execute(self._db.table("debates").update(data).eq("id", debate_id))

    # -------------------------------------------------------------------------
    # Stage operations
    # -------------------------------------------------------------------------

    def list_stages(self, debate_id: str) -> list[Stage]:
        result = self._execute(
            self._db.table("debate_stages")
            .select("*")
            .eq("debate_id", debate_id)
            .order("stage_order")
        )
        return [self._map_to_stage(row) for row in result.data]

    def get_stage(self, stage_id: str) -> Optional[Stage]:
        result = self._execute(self._db.table("debate_stages").select("*").eq("id", stage_id))
        if not result.data:
            return None
        return self._map_to_stage(result.data[0])

    def create_stage(self, debate_id: str, request: StageRequest) -> Stage:
        """
        Insert a stage. An ACTIVE stage is inserted as pending and then
        promoted through activate_debate_stage so the demotion of the
        previous active stage happens in the same transaction.
        """
        data = self._stage_row(request)
        data["debate_id"] = debate_id
        activate = request.status == StageStatus.ACTIVE
        if activate:
            data["status"] = StageStatus.PENDING.value

        result = self._execute(
            self._db.table("debate_stages").insert(data),
            conflict_message=f"Stage order {request.stage_order} is already used in this debate",
        )
        stage = self._map_to_stage(result.data[0])
        if activate:
            return self._activate(stage.id, StageStatus.PENDING)
        return stage

    def update_stage(self, stage_id: str, request: StageRequest) -> Stage:
        current = self.get_stage(stage_id)
        if current is None:
            raise StageNotFoundError(stage_id)

        data = self._stage_row(request)
        activate = request.status == StageStatus.ACTIVE and current.status != StageStatus.ACTIVE
        if activate:
            data["status"] = current.status.value

        result = self._execute(
            self._db.table("debate_stages").update(data).eq("id", stage_id),
            conflict_message=f"Stage order {request.stage_order} is already used in this debate",
        )
        if not result.data:
            raise StageNotFoundError(stage_id)
        if activate:
            return self._activate(stage_id, current.status)
        return self._map_to_stage(result.data[0])

    def delete_stage(self, stage_id: str) -> None:
        result = self._execute(self._db.table("debate_stages").delete().eq("id", stage_id))
        if not result.data:
            raise StageNotFoundError(stage_id)

    def set_stage_status(self, stage_id: str, expected: StageStatus, target: StageStatus) -> Stage:
        if target == StageStatus.ACTIVE:
            return self._activate(stage_id, expected)

        result = self._execute(
            self._db.table("debate_stages")
            .update({"status": target.value})
            .eq("id", stage_id)
            .eq("status", expected.value)
        )
        if result.data:
            return self._map_to_stage(result.data[0])

        if self.get_stage(stage_id) is None:
            raise StageNotFoundError(stage_id)
        raise StateChangedError("stage", stage_id, [expected.value])

    def _activate(self, stage_id: str, expected: StageStatus) -> Stage:
        """Promote a stage, demoting any other active stage of its debate."""
        result = self._execute(
            self._db.rpc(
                "activate_debate_stage",
                {"p_stage_id": stage_id, "p_expected_status": expected.value},
            )
        )
        if not result.data:
            if self.get_stage(stage_id) is None:
                raise StageNotFoundError(stage_id)
            raise StateChangedError("stage", stage_id, [expected.value])
        return self._map_to_stage(self._first_row(result))

    def _guarded(
        self,
        query: Any,
        debate_id: str,
        expected: list[str],
        stage_id: Optional[str] = None,
        conflict_message: str = "Uniqueness constraint violated",
    ) -> Any:
        """Run a status-guarded SQL function; a failed guard becomes StateChangedError."""
        try:
            return self._execute(query, conflict_message=conflict_message)
        except ConflictError as e:
            if e.code != "STATE_CHANGED":
                raise
            entity = e.details.get("entity") or "debate"
            if entity == "stage":
                raise StateChangedError("stage", stage_id or "", [StageStatus.ACTIVE.value]) from e
            if entity == "tally":
                raise StateChangedError("tally", debate_id) from e
            if self.get_debate(debate_id) is None:
                raise DebateNotFoundError(debate_id) from e
            raise StateChangedError("debate", debate_id, expected) from e

    def _first_row(self, result: Any) -> dict[str, Any]:
        return result.data[0] if isinstance(result.data, list) else result.data

    def _stage_row(self, request: StageRequest) -> dict[str, Any]:
        return {
            "name": request.name.strip(),
            "description": (request.description or "").strip() or None,
            "stage_order": request.stage_order,
            "status": request.status.value,
            "start_at": _iso(request.start_at),
            "end_at": _iso(request.end_at),
        }

    # -------------------------------------------------------------------------
    # Participant operations
    # -------------------------------------------------------------------------

    def list_participants(self, debate_id: str) -> list[Participant]:
        result = self._execute(
            self._db.table("debate_participants").select("*").eq("debate_id", debate_id)
        )
        return [self._map_to_participant(row) for row in result.data]

    def add_participant(
        self,
        debate_id: str,
        agent_id: str,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = OPEN_DEBATE_STATUSES,
    ) -> Participant:
        """
        Bind an agent to a side through join_debate(), which holds a share
        lock on the debate and checks its status before inserting.

        Raises:
            ConflictError: If the agent already joined or the side is taken
                (unique indexes on (debate_id, agent_id) and (debate_id, side)).
            StateChangedError: If the debate is not in debate_statuses.
        """
        params = {
            "p_debate_id": debate_id,
            "p_agent_id": agent_id,
            "p_side": side.value,
            "p_debate_statuses": _values(debate_statuses),
        }
        result = self._guarded(
            self._db.rpc("join_debate", params),
            debate_id,
            expected=_values(debate_statuses),
            conflict_message="Participant slot was taken concurrently",
        )
        return self._map_to_participant(self._first_row(result))

    # -------------------------------------------------------------------------
    # Argument operations
    # -------------------------------------------------------------------------

    def list_arguments(
        self,
        debate_id: str,
        side: Optional[Side] = None,
        agent_id: Optional[str] = None,
    ) -> list[Argument]:
        query = self._db.table("arguments").select("*").eq("debate_id", debate_id)
        if side is not None:
            query = query.eq("side", side.value)
        if agent_id is not None:
            query = query.eq("agent_id", agent_id)

        result = self._execute(query.order("side").order("argument_order"))
        return [self._map_to_argument(row) for row in result.data]

    def get_argument(self, argument_id: str) -> Optional[Argument]:
        result = self._execute(self._db.table("arguments").select("*").eq("id", argument_id))
        if not result.data:
            return None
        return self._map_to_argument(result.data[0])

    def publish_argument(
        self,
        draft: ArgumentDraft,
        debate_statuses: frozenset[DebateStatus] = ARGUMENT_DEBATE_STATUSES,
    ) -> Argument:
        """
        Insert an argument through publish_argument(), which locks the
        debate row, checks the debate and stage status, and assigns
        argument_order = count(side) + 1.

        Raises:
            ConflictError: If the agent already posted to this stage today.
            StateChangedError: If the debate is not in debate_statuses or
                the stage is no longer active.
        """
        params = {
            "p_debate_id": draft.debate_id,
            "p_stage_id": draft.stage_id,
            "p_agent_id": draft.agent_id,
            "p_side": draft.side.value,
            "p_content": draft.content,
            "p_model": draft.model,
            "p_created_at": draft.created_at.isoformat(),
            "p_posted_day": utc_day(draft.created_at),
            "p_debate_statuses": _values(debate_statuses),
        }
        result = self._guarded(
            self._db.rpc("publish_argument", params),
            draft.debate_id,
            expected=_values(debate_statuses),
            stage_id=draft.stage_id,
            conflict_message="Agent can only post once a day per debate stage",
        )
        return self._map_to_argument(self._first_row(result))

    def edit_argument(self, argument_id: str, content: str) -> Argument:
        result = self._execute(
            self._db.table("arguments")
            .update({"content": content, "edited_by_admin": True})
            .eq("id", argument_id)
        )
        if not result.data:
            raise ArgumentNotFoundError(argument_id)
        return self._map_to_argument(result.data[0])

    def delete_argument(self, argument_id: str) -> None:
        """Delete an argument and renumber the rest of its side (SQL function)."""
        result = self._execute(self._db.rpc("delete_argument", {"p_argument_id": argument_id}))
        if not result.data:
            raise ArgumentNotFoundError(argument_id)

    # -------------------------------------------------------------------------
    # Vote operations
    # -------------------------------------------------------------------------

    def _votes_for(self, query: Any, debate_id: str, voter: VoterIdentity) -> Any:
        query = query.eq("debate_id", debate_id)
        if voter.user_id:
            return query.eq("user_id", voter.user_id)
        return query.eq("session_id", voter.session_id)

    def get_vote(self, debate_id: str, voter: VoterIdentity) -> Optional[Vote]:
        result = self._execute(
            self._votes_for(self._db.table("votes").select("*"), debate_id, voter)
        )
        if not result.data:
            return None
        return self._map_to_vote(result.data[0])

    def add_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        side: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote:
        """
        Record a vote through cast_vote(), which holds a share lock on the
        debate and checks its status before inserting.

        Raises:
            ConflictError: If this voter identity already voted (unique indexes
                on (debate_id, user_id) and (debate_id, session_id)).
            StateChangedError: If the debate is not in debate_statuses.
        """
        params = {
            "p_debate_id": debate_id,
            "p_user_id": voter.user_id,
            "p_session_id": None if voter.user_id else voter.session_id,
            "p_side": side.value,
            "p_debate_statuses": _values(debate_statuses),
        }
        result = self._guarded(
            self._db.rpc("cast_vote", params),
            debate_id,
            expected=_values(debate_statuses),
            conflict_message="You have already voted on this debate",
        )
        return self._map_to_vote(self._first_row(result))

    def change_vote(
        self,
        debate_id: str,
        voter: VoterIdentity,
        expected: Side,
        target: Side,
        debate_statuses: frozenset[DebateStatus] = VOTING_DEBATE_STATUSES,
    ) -> Vote:
        """
        Compare-and-set a vote's side through change_vote().

        Raises:
            VoteNotFoundError: If this voter has no vote on the debate.
            StateChangedError: If the debate is not in debate_statuses or the
                vote is no longer on `expected`.
        """
        params = {
            "p_debate_id": debate_id,
            "p_user_id": voter.user_id,
            "p_session_id": None if voter.user_id else voter.session_id,
            "p_expected_side": expected.value,
            "p_target_side": target.value,
            "p_debate_statuses": _values(debate_statuses),
        }
        result = self._guarded(
            self._db.rpc("change_vote", params),
            debate_id,
            expected=_values(debate_statuses),
        )
        if result.data:
            return self._map_to_vote(self._first_row(result))

        existing = self.get_vote(debate_id, voter)
        if existing is None:
            raise VoteNotFoundError(debate_id)
        raise StateChangedError("vote", existing.id, [expected.value])

    def count_votes(self, debate_id: str) -> tuple[int, int]:
        counts = []
        for side in (Side.FOR, Side.AGAINST):
            result = self._execute(
                self._db.table("votes")
                .select("id", count="exact")
                .eq("debate_id", debate_id)
                .eq("side", side.value)
            )
            counts.append(result.count or 0)
        return counts[0], counts[1]

    # -------------------------------------------------------------------------
    # Private mapping methods
    # -------------------------------------------------------------------------

    def _map_to_debate(self, data: dict[str, Any]) -> Debate:
        """Map database row to Debate model."""
        return Debate(
            id=str(data["id"]),
            prompt_id=str(data["prompt_id"]) if data.get("prompt_id") else None,
            title=data["title"],
            description=data.get("description") or "",
            status=DebateStatus(data["status"]),
            max_arguments_per_side=data.get("max_arguments_per_side", 5),
            argument_submission_deadline=data.get("argument_submission_deadline"),
            voting_deadline=data.get("voting_deadline"),
            winner_side=Side(data["winner_side"]) if data.get("winner_side") else None,
            winner_agent_id=str(data["winner_agent_id"]) if data.get("winner_agent_id") else None,
            total_votes=data.get("total_votes", 0),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )

    def _map_to_stage(self, data: dict[str, Any]) -> Stage:
        """Map database row to Stage model."""
        return Stage(
            id=str(data["id"]),
            debate_id=str(data["debate_id"]),
            name=data["name"],
            description=data.get("description"),
            stage_order=data["stage_order"],
            status=StageStatus(data["status"]),
            start_at=data.get("start_at"),
            end_at=data.get("end_at"),
        )

    def _map_to_participant(self, data: dict[str, Any]) -> Participant:
        """Map database row to Participant model."""
        return Participant(
            debate_id=str(data["debate_id"]),
            agent_id=str(data["agent_id"]),
            side=Side(data["side"]),
            joined_at=data["joined_at"],
        )

    def _map_to_argument(self, data: dict[str, Any]) -> Argument:
        """Map database row to Argument model."""
        return Argument(
            id=str(data["id"]),
            debate_id=str(data["debate_id"]),
            stage_id=str(data["stage_id"]) if data.get("stage_id") else None,
            agent_id=str(data["agent_id"]),
            side=Side(data["side"]),
            content=data["content"],
            argument_order=data["argument_order"],
            model=data.get("model"),
            edited_by_admin=data.get("edited_by_admin", False),
            created_at=data["created_at"],
        )

    def _map_to_vote(self, data: dict[str, Any]) -> Vote:
        """Map database row to Vote model."""
        return Vote(
            id=str(data["id"]),
            debate_id=str(data["debate_id"]),
            user_id=str(data["user_id"]) if data.get("user_id") else None,
            session_id=data.get("session_id"),
            side=Side(data["side"]),
            voted_at=data["voted_at"],
        )
