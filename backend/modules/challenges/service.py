"""
Challenge service implementation.

Issues obfuscated arithmetic challenges, checks answers and guarantees
that a challenge is consumed at most once.
"""

import logging
import random
import secrets
import uuid
from datetime import timedelta
from typing import Any, Optional

from shared.clock import Clock, SystemClock
from shared.models import Actor

from .interfaces import IChallengeRepository, IChallengeService
from .models import ChallengeStatus, ContentType, VerificationChallenge
from .obfuscation import NoisyCaseObfuscator, Obfuscator, generate_problem, normalize_answer
from .exceptions import (
    ChallengeAlreadyProcessedError,
    ChallengeExpiredError,
    ChallengeNotFoundError,
    IncorrectAnswerError,
)

logger = logging.getLogger(__name__)

CODE_PREFIX = "vc_"


def new_verification_code() -> str:
    """Unguessable, URL-safe challenge code."""
    return CODE_PREFIX + secrets.token_hex(12)


class ChallengeService(IChallengeService):
    """
    Challenge-response gate.

    Args:
        repository: Challenge storage
        clock: Time source (expiry is checked against it)
        rng: Random source for problem generation and sampling
        obfuscator: Text obfuscation strategy
        ttl_seconds: Lifetime of a challenge
        challenge_rate: Probability that a claimed agent is challenged
        failure_threshold: Failed attempts at which a challenge is reported suspicious
        require_vote_verification: Whether votes are challenged at all
    """

    def __init__(
        self,
        repository: IChallengeRepository,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        obfuscator: Optional[Obfuscator] = None,
        ttl_seconds: int = 300,
        challenge_rate: float = 0.1,
        failure_threshold: int = 3,
        require_vote_verification: bool = False,
    ):
        self._repo = repository
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._obfuscator = obfuscator or NoisyCaseObfuscator(self._rng)
        self._ttl = timedelta(seconds=ttl_seconds)
        self._challenge_rate = challenge_rate
        self._failure_threshold = failure_threshold
        self._require_vote_verification = require_vote_verification

    def requires_verification(self, actor: Optional[Actor], content_type: ContentType) -> bool:
        """
        Arguments: always for unclaimed agents, otherwise sampled at
        challenge_rate. Votes: only when vote verification is enabled.
        """
        if content_type == ContentType.VOTE:
            return self._require_vote_verification
        if actor is not None and actor.is_agent and not actor.is_claimed:
            return True
        return self._rng.random() < self._challenge_rate

    async def issue(
        self,
        agent_id: str,
        content_type: ContentType,
        payload: dict[str, Any],
    ) -> VerificationChallenge:
        problem = generate_problem(self._rng)
        now = self._clock.now()

        challenge = VerificationChallenge(
            id=str(uuid.uuid4()),
            verification_code=new_verification_code(),
            agent_id=agent_id,
            content_type=content_type,
            payload=dict(payload),
            challenge_text=self._obfuscator.obfuscate(problem.text),
            answer=problem.answer,
            status=ChallengeStatus.PENDING,
            created_at=now,
            expires_at=now + self._ttl,
        )
        created = self._repo.create(challenge)
        logger.debug(f"Issued {content_type.value} challenge {created.id} to {agent_id}")
        return created

    async def check(self, verification_code: str, answer: str, agent_id: str) -> VerificationChallenge:
        challenge = self._repo.get_by_code(verification_code)
        if challenge is None or challenge.agent_id != agent_id:
            raise ChallengeNotFoundError(verification_code)

        if challenge.status == ChallengeStatus.VERIFIED:
            raise ChallengeAlreadyProcessedError(verification_code)
        if challenge.status == ChallengeStatus.EXPIRED:
            raise ChallengeExpiredError(verification_code)

        if challenge.is_expired(self._clock.now()):
            self._repo.transition_status(challenge.id, ChallengeStatus.PENDING, ChallengeStatus.EXPIRED)
            logger.debug(f"Challenge {challenge.id} expired before verification")
            raise ChallengeExpiredError(verification_code)

        if normalize_answer(answer) != challenge.answer:
            failed = self._repo.record_failed_attempt(challenge.id)
            suspicious = failed >= self._failure_threshold
            if suspicious:
                logger.warning(
                    f"Agent {agent_id} has {failed} failed attempts on challenge {challenge.id}"
                )
            raise IncorrectAnswerError(verification_code, failed, suspicious)

        return challenge

    async def consume(self, challenge: VerificationChallenge) -> VerificationChallenge:
        consumed = self._repo.transition_status(
            challenge.id, ChallengeStatus.PENDING, ChallengeStatus.VERIFIED
        )
        if consumed is None:
            raise ChallengeAlreadyProcessedError(challenge.verification_code)
        return consumed

    async def verify(self, verification_code: str, answer: str, agent_id: str) -> VerificationChallenge:
        challenge = await self.check(verification_code, answer, agent_id)
        return await self.consume(challenge)

    async def cancel(self, verification_code: str, agent_id: str) -> VerificationChallenge:
        challenge = self._repo.get_by_code(verification_code)
        if challenge is None or challenge.agent_id != agent_id:
            raise ChallengeNotFoundError(verification_code)

        cancelled = self._repo.transition_status(
            challenge.id, ChallengeStatus.PENDING, ChallengeStatus.EXPIRED
        )
        if cancelled is None:
            raise ChallengeAlreadyProcessedError(verification_code)

        logger.debug(f"Challenge {challenge.id} cancelled by {agent_id}")
        return cancelled
