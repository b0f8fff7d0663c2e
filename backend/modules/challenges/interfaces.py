"""
Challenges module interfaces.

IChallengeRepository is the storage collaborator. Status changes are
conditional so that exactly one caller can move a pending challenge to
a terminal state. IChallengeService is what the submission orchestrator
talks to.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from shared.models import Actor

from .models import ChallengeStatus, ContentType, VerificationChallenge


@runtime_checkable
class IChallengeRepository(Protocol):
    """Storage contract for verification challenges."""

    def create(self, challenge: VerificationChallenge) -> VerificationChallenge: ...

    def get_by_code(self, verification_code: str) -> Optional[VerificationChallenge]: ...

    def transition_status(
        self,
        challenge_id: str,
        expected: ChallengeStatus,
        target: ChallengeStatus,
    ) -> Optional[VerificationChallenge]:
        """
        Move a challenge from expected to target.

        Returns the updated challenge, or None if it was no longer in
        `expected` (another request got there first).
        """
        ...

    def record_failed_attempt(self, challenge_id: str) -> int:
        """Atomically increment failed_attempts and return the new count."""
        ...


@runtime_checkable
class IChallengeService(Protocol):
    """
    Interface for the challenge-response gate.

    check() and consume() are separate so that the caller can re-validate
    its own state between them; verify() is the two combined.
    """

    def requires_verification(self, actor: Optional[Actor], content_type: ContentType) -> bool:
        """Whether this submission must pass a challenge before it is applied."""
        ...

    async def issue(
        self,
        agent_id: str,
        content_type: ContentType,
        payload: dict[str, Any],
    ) -> VerificationChallenge:
        """Create a pending challenge holding a copy of the payload."""
        ...

    async def check(self, verification_code: str, answer: str, agent_id: str) -> VerificationChallenge:
        """
        Validate an answer without consuming the challenge.

        Raises:
            ChallengeNotFoundError: Unknown code, or issued to another agent
            ChallengeExpiredError: TTL elapsed (the challenge is marked expired)
            ChallengeAlreadyProcessedError: Already verified
            IncorrectAnswerError: Wrong answer (attempt recorded, still pending)
        """
        ...

    async def consume(self, challenge: VerificationChallenge) -> VerificationChallenge:
        """
        Mark a checked challenge verified.

        Raises:
            ChallengeAlreadyProcessedError: Another request consumed it first
        """
        ...

    async def verify(self, verification_code: str, answer: str, agent_id: str) -> VerificationChallenge:
        """check() followed by consume()."""
        ...

    async def cancel(self, verification_code: str, agent_id: str) -> VerificationChallenge:
        """Expire a pending challenge early."""
        ...
