"""Tests for the debates service."""

from datetime import timedelta

import pytest

from modules.debates.exceptions import (
    ArgumentNotFoundError,
    ArgumentPermissionError,
    DebateNotFoundError,
    InvalidTransitionError,
    StageNotFoundError,
    StateChangedError,
    TieRequiresWinnerError,
    WinnerContradictsTallyError,
)
from modules.debates.memory import InMemoryDebateRepository
from modules.debates.models import (
    ArgumentDraft,
    CompleteDebateRequest,
    CreateDebateRequest,
    DebateStatus,
    Side,
    StageRequest,
    StageStatus,
    TallyWinner,
    VoterIdentity,
)
from modules.debates.service import DebateService
from shared.exceptions import ConflictError, ValidationError

from tests.conftest import ANY_STATUS, NOW, VALID_CONTENT, make_debate, make_stage


class LateVoteRepository(InMemoryDebateRepository):
    """Lets one vote land right after the tally is read."""

    def __init__(self) -> None:
        super().__init__()
        self.late_votes = 1

    def count_votes(self, debate_id):
        counts = super().count_votes(debate_id)
        if self.late_votes:
            self.late_votes -= 1
            self.add_vote(debate_id, VoterIdentity(session_id="late"), Side.AGAINST)
        return counts


@pytest.fixture
def service(debate_repo, policy):
    return DebateService(repository=debate_repo, policy=policy, default_max_arguments_per_side=5)


def add_votes(repo, debate, for_votes: int, against_votes: int) -> None:
    for i in range(for_votes):
        repo.add_vote(debate.id, VoterIdentity(session_id=f"for-{i}"), Side.FOR)
    for i in range(against_votes):
        repo.add_vote(debate.id, VoterIdentity(session_id=f"against-{i}"), Side.AGAINST)


class TestCreateAndRead:
    @pytest.mark.asyncio
    async def test_create_debate(self, service):
        """Should create a pending debate with the default cap."""
        debate = await service.create_debate(
            CreateDebateRequest(
                title="Should lobsters have rights?",
                description="A debate about crustacean welfare and legal standing.",
            )
        )
        assert debate.status == DebateStatus.PENDING
        assert debate.max_arguments_per_side == 5

    @pytest.mark.asyncio
    async def test_create_debate_rejects_inverted_deadlines(self, service):
        """Voting must close after argument submission."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_debate(
                CreateDebateRequest(
                    title="Should lobsters have rights?",
                    description="A debate about crustacean welfare and legal standing.",
                    argument_submission_deadline=NOW,
                    voting_deadline=NOW - timedelta(hours=1),
                )
            )
        assert exc_info.value.code == "INVALID_DEADLINES"

    @pytest.mark.asyncio
    async def test_get_debate_detail(self, service, debate_repo):
        """Detail should include stages, participants and the live tally."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        make_stage(debate_repo, debate, StageStatus.COMPLETED)
        debate_repo.add_participant(debate.id, "agent-for", Side.FOR, ANY_STATUS)
        add_votes(debate_repo, debate, 6, 4)

        detail = await service.get_debate(debate.id)

        assert detail.debate.id == debate.id
        assert len(detail.stages) == 1
        assert len(detail.participants) == 1
        assert detail.tally.for_percentage == 60.0

    @pytest.mark.asyncio
    async def test_get_debate_not_found(self, service):
        """Unknown debates raise not found."""
        with pytest.raises(DebateNotFoundError):
            await service.get_debate("missing")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_open_voting(self, service, debate_repo):
        """An active debate moves to voting."""
        debate = make_debate(debate_repo, DebateStatus.ACTIVE)
        updated = await service.open_voting(debate.id)
        assert updated.status == DebateStatus.VOTING

    @pytest.mark.asyncio
    async def test_open_voting_from_pending(self, service, debate_repo):
        """Voting cannot open before the debate is active."""
        debate = make_debate(debate_repo, DebateStatus.PENDING)
        with pytest.raises(InvalidTransitionError):
            await service.open_voting(debate.id)

    @pytest.mark.asyncio
    async def test_complete_with_tally_winner(self, service, debate_repo):
        """The tally leader wins and the winning agent is recorded."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        debate_repo.add_participant(debate.id, "agent-for", Side.FOR, ANY_STATUS)
        debate_repo.add_participant(debate.id, "agent-against", Side.AGAINST, ANY_STATUS)
        add_votes(debate_repo, debate, 6, 4)

        completed = await service.complete_debate(debate.id, CompleteDebateRequest())

        assert completed.status == DebateStatus.COMPLETED
        assert completed.winner_side == Side.FOR
        assert completed.winner_agent_id == "agent-for"
        assert completed.total_votes == 10
        assert debate_repo.get_debate(debate.id).total_votes == 10

    @pytest.mark.asyncio
    async def test_complete_refuses_stale_tally(self, policy):
        """A vote cast between the tally and the write fails completion instead of storing a stale result."""
        repo = LateVoteRepository()
        service = DebateService(repository=repo, policy=policy, default_max_arguments_per_side=5)
        debate = make_debate(repo, DebateStatus.VOTING)
        add_votes(repo, debate, 3, 1)

        with pytest.raises(StateChangedError) as exc_info:
            await service.complete_debate(debate.id, CompleteDebateRequest())

        assert exc_info.value.details["entity"] == "tally"
        stored = repo.get_debate(debate.id)
        assert stored.status == DebateStatus.VOTING
        assert stored.winner_side is None
        assert stored.total_votes == 0

        completed = await service.complete_debate(debate.id, CompleteDebateRequest())
        assert completed.total_votes == 5
        assert repo.get_debate(debate.id).total_votes == 5

    @pytest.mark.asyncio
    async def test_complete_tie_requires_winner(self, service, debate_repo):
        """A tied debate needs an explicit winner."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        add_votes(debate_repo, debate, 2, 2)

        with pytest.raises(TieRequiresWinnerError):
            await service.complete_debate(debate.id, CompleteDebateRequest())

        completed = await service.complete_debate(
            debate.id, CompleteDebateRequest(winner_side=Side.AGAINST)
        )
        assert completed.winner_side == Side.AGAINST

    @pytest.mark.asyncio
    async def test_complete_contradicting_winner(self, service, debate_repo):
        """A winner against a decisive tally is refused by default."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        add_votes(debate_repo, debate, 3, 1)

        with pytest.raises(WinnerContradictsTallyError):
            await service.complete_debate(debate.id, CompleteDebateRequest(winner_side=Side.AGAINST))

    @pytest.mark.asyncio
    async def test_complete_rejects_wrong_winner_agent(self, service, debate_repo):
        """The winner agent must be the participant on the winning side."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        debate_repo.add_participant(debate.id, "agent-for", Side.FOR, ANY_STATUS)
        debate_repo.add_participant(debate.id, "agent-against", Side.AGAINST, ANY_STATUS)
        add_votes(debate_repo, debate, 3, 1)

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_debate(
                debate.id, CompleteDebateRequest(winner_agent_id="agent-against")
            )
        assert exc_info.value.code == "INVALID_WINNER_AGENT"

    @pytest.mark.asyncio
    async def test_complete_only_from_voting(self, service, debate_repo):
        """Completion skips no status."""
        debate = make_debate(debate_repo, DebateStatus.ACTIVE)
        with pytest.raises(InvalidTransitionError):
            await service.complete_debate(debate.id, CompleteDebateRequest(winner_side=Side.FOR))

    @pytest.mark.asyncio
    async def test_tally(self, service, debate_repo):
        """get_tally reports the live tally."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        add_votes(debate_repo, debate, 1, 3)

        result = await service.get_tally(debate.id)

        assert result.winner == TallyWinner.AGAINST
        assert result.total_votes == 4


class TestStages:
    @pytest.mark.asyncio
    async def test_create_active_stage_demotes_previous(self, service, debate_repo):
        """At most one stage is active."""
        debate = make_debate(debate_repo, DebateStatus.ACTIVE)
        first = await service.create_stage(
            debate.id, StageRequest(name="Opening", stage_order=1, status=StageStatus.ACTIVE)
        )
        second = await service.create_stage(
            debate.id, StageRequest(name="Rebuttal", stage_order=2, status=StageStatus.ACTIVE)
        )

        assert debate_repo.get_stage(first.id).status == StageStatus.PENDING
        assert debate_repo.get_stage(second.id).status == StageStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_stage_order_must_be_positive(self, service, debate_repo):
        """Stage order starts at 1."""
        debate = make_debate(debate_repo)
        with pytest.raises(ValidationError) as exc_info:
            await service.create_stage(debate.id, StageRequest(name="Opening", stage_order=0))
        assert exc_info.value.code == "INVALID_STAGE_ORDER"

    @pytest.mark.asyncio
    async def test_stage_name_required(self, service, debate_repo):
        """Blank stage names are rejected."""
        debate = make_debate(debate_repo)
        with pytest.raises(ValidationError) as exc_info:
            await service.create_stage(debate.id, StageRequest(name="   ", stage_order=1))
        assert exc_info.value.code == "STAGE_NAME_REQUIRED"

    @pytest.mark.asyncio
    async def test_duplicate_stage_order(self, service, debate_repo):
        """Duplicate orders are conflicts."""
        debate = make_debate(debate_repo)
        await service.create_stage(debate.id, StageRequest(name="Opening", stage_order=1))
        with pytest.raises(ConflictError):
            await service.create_stage(debate.id, StageRequest(name="Again", stage_order=1))

    @pytest.mark.asyncio
    async def test_cannot_activate_in_voting_debate(self, service, debate_repo):
        """Stages only activate while the debate is open."""
        debate = make_debate(debate_repo, DebateStatus.VOTING)
        stage = make_stage(debate_repo, debate, StageStatus.PENDING)

        with pytest.raises(ValidationError) as exc_info:
            await service.set_stage_status(debate.id, stage.id, StageStatus.ACTIVE)
        assert exc_info.value.code == "DEBATE_NOT_OPEN"

    @pytest.mark.asyncio
    async def test_completed_stage_cannot_reopen(self, service, debate_repo):
        """Completed stages are terminal."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate, StageStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            await service.set_stage_status(debate.id, stage.id, StageStatus.ACTIVE)

    @pytest.mark.asyncio
    async def test_stage_from_other_debate(self, service, debate_repo):
        """A stage is addressed through its own debate only."""
        debate = make_debate(debate_repo)
        other = make_debate(debate_repo)
        stage = make_stage(debate_repo, other)

        with pytest.raises(StageNotFoundError):
            await service.delete_stage(debate.id, stage.id)

    @pytest.mark.asyncio
    async def test_update_and_delete_stage(self, service, debate_repo):
        """Stages can be renamed and removed."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate, StageStatus.PENDING)

        updated = await service.update_stage(
            debate.id, stage.id, StageRequest(name="Openers", stage_order=1)
        )
        assert updated.name == "Openers"

        await service.delete_stage(debate.id, stage.id)
        assert debate_repo.get_stage(stage.id) is None


class TestArgumentModeration:
    def publish(self, repo, debate, stage, agent_id="agent-for", side=Side.FOR, days=0):
        return repo.publish_argument(
            ArgumentDraft(
                debate_id=debate.id,
                stage_id=stage.id,
                agent_id=agent_id,
                side=side,
                content=VALID_CONTENT,
                created_at=NOW + timedelta(days=days),
            )
        )

    @pytest.mark.asyncio
    async def test_admin_edit(self, service, debate_repo, admin):
        """Admins can edit content; the edit is flagged."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate)
        argument = self.publish(debate_repo, debate, stage)

        edited = await service.edit_argument(admin, argument.id, "  " + VALID_CONTENT + "  ")

        assert edited.content == VALID_CONTENT.strip()
        assert edited.edited_by_admin

    @pytest.mark.asyncio
    async def test_author_cannot_edit(self, service, debate_repo, agent_for):
        """Agents cannot rewrite published arguments."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate)
        argument = self.publish(debate_repo, debate, stage, agent_id=agent_for.id)

        with pytest.raises(ArgumentPermissionError):
            await service.edit_argument(agent_for, argument.id, VALID_CONTENT)

    @pytest.mark.asyncio
    async def test_edit_validates_length(self, service, debate_repo, admin):
        """Edited content obeys the length policy."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate)
        argument = self.publish(debate_repo, debate, stage)

        with pytest.raises(ValidationError) as exc_info:
            await service.edit_argument(admin, argument.id, "too short")
        assert exc_info.value.code == "CONTENT_TOO_SHORT"

    @pytest.mark.asyncio
    async def test_author_can_delete(self, service, debate_repo, agent_for):
        """Authors can delete their own argument; the side is renumbered."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate)
        first = self.publish(debate_repo, debate, stage, agent_id=agent_for.id)
        second = self.publish(debate_repo, debate, stage, agent_id=agent_for.id, days=1)

        await service.delete_argument(agent_for, first.id)

        assert debate_repo.get_argument(second.id).argument_order == 1

    @pytest.mark.asyncio
    async def test_other_agent_cannot_delete(self, service, debate_repo, agent_against):
        """Only the author or an admin may delete."""
        debate = make_debate(debate_repo)
        stage = make_stage(debate_repo, debate)
        argument = self.publish(debate_repo, debate, stage)

        with pytest.raises(ArgumentPermissionError):
            await service.delete_argument(agent_against, argument.id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, service, admin):
        """Deleting an unknown argument raises not found."""
        with pytest.raises(ArgumentNotFoundError):
            await service.delete_argument(admin, "missing")
