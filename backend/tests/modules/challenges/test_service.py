"""Tests for the challenge service."""

import asyncio
import random
import re

import pytest

from modules.challenges.exceptions import (
    ChallengeAlreadyProcessedError,
    ChallengeExpiredError,
    ChallengeNotFoundError,
    IncorrectAnswerError,
)
from modules.challenges.models import ChallengeStatus, ContentType, IssuedChallenge
from modules.challenges.service import ChallengeService, new_verification_code
from shared.models import Actor, ActorRole


async def issue(service, agent_id: str = "agent-1"):
    return await service.issue(agent_id, ContentType.ARGUMENT, {"debate_id": "d1"})


class TestIssue:
    @pytest.mark.asyncio
    async def test_issue_stores_pending_challenge(self, challenge_service, challenge_repo, clock):
        """Issued challenges are pending with a TTL from the clock."""
        challenge = await issue(challenge_service)

        stored = challenge_repo.get_by_code(challenge.verification_code)
        assert stored.status == ChallengeStatus.PENDING
        assert stored.payload == {"debate_id": "d1"}
        assert stored.created_at == clock.now()
        assert (stored.expires_at - stored.created_at).total_seconds() == 300
        assert re.fullmatch(r"-?\d+\.\d{2}", stored.answer)

    @pytest.mark.asyncio
    async def test_codes_are_unique(self, challenge_service):
        """Each challenge gets its own code."""
        codes = {(await issue(challenge_service)).verification_code for _ in range(20)}
        assert len(codes) == 20

    def test_code_format(self):
        """Codes are prefixed and unguessable."""
        code = new_verification_code()
        assert code.startswith("vc_")
        assert len(code) == 3 + 24

    @pytest.mark.asyncio
    async def test_issued_view_hides_answer(self, challenge_service):
        """The agent-facing view carries no answer or payload."""
        view = IssuedChallenge.from_challenge(await issue(challenge_service))
        dumped = view.model_dump()
        assert "answer" not in dumped
        assert "payload" not in dumped
        assert "2 decimal places" in view.instructions


class TestRequiresVerification:
    def test_unclaimed_agent_always_challenged(self, challenge_service, unclaimed_agent):
        """Unclaimed agents are always challenged on arguments."""
        assert challenge_service.requires_verification(unclaimed_agent, ContentType.ARGUMENT)

    def test_claimed_agent_sampled(self, challenge_repo, clock, agent_for):
        """Claimed agents are challenged at the configured rate."""
        always = ChallengeService(challenge_repo, clock, rng=random.Random(1), challenge_rate=1.0)
        never = ChallengeService(challenge_repo, clock, rng=random.Random(1), challenge_rate=0.0)

        assert always.requires_verification(agent_for, ContentType.ARGUMENT)
        assert not never.requires_verification(agent_for, ContentType.ARGUMENT)

    def test_votes_follow_flag(self, challenge_repo, clock):
        """Votes are only challenged when vote verification is on."""
        human = Actor(id="h1", role=ActorRole.HUMAN)
        off = ChallengeService(challenge_repo, clock, challenge_rate=1.0)
        on = ChallengeService(challenge_repo, clock, require_vote_verification=True)

        assert not off.requires_verification(human, ContentType.VOTE)
        assert on.requires_verification(human, ContentType.VOTE)
        assert on.requires_verification(None, ContentType.VOTE)


class TestVerify:
    @pytest.mark.asyncio
    async def test_correct_answer_verifies(self, challenge_service, challenge_repo):
        """A correct answer consumes the challenge."""
        challenge = await issue(challenge_service)

        verified = await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

        assert verified.status == ChallengeStatus.VERIFIED
        assert challenge_repo.get_by_code(challenge.verification_code).status == ChallengeStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_equivalent_formatting_accepted(self, challenge_service):
        """'15', '15.0' and '15.00' are the same answer."""
        challenge = await issue(challenge_service)
        short = challenge.answer[:-3]

        verified = await challenge_service.verify(challenge.verification_code, short, "agent-1")
        assert verified.status == ChallengeStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_wrong_answer_keeps_pending(self, challenge_service, challenge_repo):
        """A wrong answer counts an attempt and leaves the challenge usable."""
        challenge = await issue(challenge_service)

        with pytest.raises(IncorrectAnswerError) as exc_info:
            await challenge_service.verify(challenge.verification_code, "-9999", "agent-1")

        assert exc_info.value.failed_attempts == 1
        assert not exc_info.value.suspicious
        assert challenge_repo.get_by_code(challenge.verification_code).status == ChallengeStatus.PENDING

        verified = await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")
        assert verified.status == ChallengeStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_repeated_failures_suspicious(self, challenge_service):
        """Reaching the failure threshold marks the attempt suspicious."""
        challenge = await issue(challenge_service)

        for attempt in range(1, 4):
            with pytest.raises(IncorrectAnswerError) as exc_info:
                await challenge_service.verify(challenge.verification_code, "not a number", "agent-1")
            assert exc_info.value.failed_attempts == attempt

        assert exc_info.value.suspicious

    @pytest.mark.asyncio
    async def test_expired(self, challenge_service, challenge_repo, clock):
        """Verification after expires_at fails and expires the challenge."""
        challenge = await issue(challenge_service)
        clock.advance(seconds=301)

        with pytest.raises(ChallengeExpiredError):
            await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

        assert challenge_repo.get_by_code(challenge.verification_code).status == ChallengeStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_at_expiry_instant(self, challenge_service, clock):
        """Verification at the expiry instant still succeeds."""
        challenge = await issue(challenge_service)
        clock.advance(seconds=300)

        verified = await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")
        assert verified.status == ChallengeStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_second_verify_already_processed(self, challenge_service):
        """A verified challenge cannot be verified again."""
        challenge = await issue(challenge_service)
        await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

        with pytest.raises(ChallengeAlreadyProcessedError):
            await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

    @pytest.mark.asyncio
    async def test_unknown_code(self, challenge_service):
        """Unknown codes are not found."""
        with pytest.raises(ChallengeNotFoundError):
            await challenge_service.verify("vc_nope", "1", "agent-1")

    @pytest.mark.asyncio
    async def test_other_agents_code(self, challenge_service):
        """A code issued to another agent looks like it doesn't exist."""
        challenge = await issue(challenge_service, agent_id="agent-1")

        with pytest.raises(ChallengeNotFoundError):
            await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-2")

    @pytest.mark.asyncio
    async def test_concurrent_verify_exactly_once(self, challenge_service):
        """Of many callers that all passed check(), exactly one consumes the challenge."""
        challenge = await issue(challenge_service)
        checked = [
            await challenge_service.check(challenge.verification_code, challenge.answer, "agent-1")
            for _ in range(10)
        ]

        results = await asyncio.gather(
            *(challenge_service.consume(c) for c in checked),
            return_exceptions=True,
        )

        verified = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, ChallengeAlreadyProcessedError)]
        assert len(verified) == 1
        assert len(rejected) == 9

    @pytest.mark.asyncio
    async def test_consume_loses_race(self, challenge_service):
        """consume() on an already-consumed challenge raises already processed."""
        challenge = await issue(challenge_service)
        checked = await challenge_service.check(challenge.verification_code, challenge.answer, "agent-1")
        await challenge_service.consume(checked)

        with pytest.raises(ChallengeAlreadyProcessedError):
            await challenge_service.consume(checked)


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_expires(self, challenge_service, challenge_repo):
        """Cancelling moves the challenge to expired."""
        challenge = await issue(challenge_service)

        await challenge_service.cancel(challenge.verification_code, "agent-1")

        assert challenge_repo.get_by_code(challenge.verification_code).status == ChallengeStatus.EXPIRED
        with pytest.raises(ChallengeExpiredError):
            await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

    @pytest.mark.asyncio
    async def test_cancel_verified(self, challenge_service):
        """A verified challenge cannot be cancelled."""
        challenge = await issue(challenge_service)
        await challenge_service.verify(challenge.verification_code, challenge.answer, "agent-1")

        with pytest.raises(ChallengeAlreadyProcessedError):
            await challenge_service.cancel(challenge.verification_code, "agent-1")

    @pytest.mark.asyncio
    async def test_cancel_other_agent(self, challenge_service):
        """Agents cannot cancel each other's challenges."""
        challenge = await issue(challenge_service, agent_id="agent-1")

        with pytest.raises(ChallengeNotFoundError):
            await challenge_service.cancel(challenge.verification_code, "agent-2")
