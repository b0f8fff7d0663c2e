"""
In-memory challenge repository.

Same contract as ChallengeRepository, guarded by a lock. Used by the
test suite and STORAGE_BACKEND=memory.
"""

import threading
from typing import Optional

from shared.exceptions import ConflictError

from .models import ChallengeStatus, VerificationChallenge


class InMemoryChallengeRepository:
    """Thread-safe, process-local implementation of IChallengeRepository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, VerificationChallenge] = {}
        self._code_index: dict[str, str] = {}

    def create(self, challenge: VerificationChallenge) -> VerificationChallenge:
        with self._lock:
            if challenge.verification_code in self._code_index:
                raise ConflictError("Verification code collision", code="CONFLICT")
            self._by_id[challenge.id] = challenge
            self._code_index[challenge.verification_code] = challenge.id
        return challenge

    def get_by_code(self, verification_code: str) -> Optional[VerificationChallenge]:
        with self._lock:
            challenge_id = self._code_index.get(verification_code)
            return self._by_id.get(challenge_id) if challenge_id else None

    def transition_status(
        self,
        challenge_id: str,
        expected: ChallengeStatus,
        target: ChallengeStatus,
    ) -> Optional[VerificationChallenge]:
        with self._lock:
            challenge = self._by_id.get(challenge_id)
            if challenge is None or challenge.status != expected:
                return None
            updated = challenge.model_copy(update={"status": target})
            self._by_id[challenge_id] = updated
            return updated

    def record_failed_attempt(self, challenge_id: str) -> int:
        with self._lock:
            challenge = self._by_id[challenge_id]
            updated = challenge.model_copy(update={"failed_attempts": challenge.failed_attempts + 1})
            self._by_id[challenge_id] = updated
            return updated.failed_attempts
