"""
Challenge repository for database access.

Encapsulates Supabase queries for the verification_challenges table.
"""

from typing import Any, Optional

from shared.repository import BaseRepository
from .models import ChallengeStatus, ContentType, VerificationChallenge


class ChallengeRepository(BaseRepository[VerificationChallenge]):
    """
    Repository for verification challenges.

    Status changes filter on the current status, so PostgREST returns no
    rows when a concurrent request already moved the challenge.
    """

    def create(self, challenge: VerificationChallenge) -> VerificationChallenge:
        data = {
            "id": challenge.id,
            "verification_code": challenge.verification_code,
            "agent_id": challenge.agent_id,
            "content_type": challenge.content_type.value,
            "payload": challenge.payload,
            "challenge_text": challenge.challenge_text,
            "answer": challenge.answer,
            "status": challenge.status.value,
            "failed_attempts": challenge.failed_attempts,
            "created_at": challenge.created_at.isoformat(),
            "expires_at": challenge.expires_at.isoformat(),
        }
        result = self._execute(
            self._db.table("verification_challenges").insert(data),
            conflict_message="Verification code collision",
        )
        return self._map_to_challenge(result.data[0])

    def get_by_code(self, verification_code: str) -> Optional[VerificationChallenge]:
        result = self._execute(
            self._db.table("verification_challenges")
            .select("*")
            .eq("verification_code", verification_code)
        )
        if not result.data:
            return None
        return self._map_to_challenge(result.data[0])

    def transition_status(
        self,
        challenge_id: str,
        expected: ChallengeStatus,
        target: ChallengeStatus,
    ) -> Optional[VerificationChallenge]:
        result = self._execute(
            self._db.table("verification_challenges")
            .update({"status": target.value})
            .eq("id", challenge_id)
            .eq("status", expected.value)
        )
        if not result.data:
            return None
        return self._map_to_challenge(result.data[0])

    def record_failed_attempt(self, challenge_id: str) -> int:
        """Increment through record_challenge_failure() so concurrent misses all count."""
        result = self._execute(
            self._db.rpc("record_challenge_failure", {"p_challenge_id": challenge_id})
        )
        return int(result.data or 0)

    def _map_to_challenge(self, data: dict[str, Any]) -> VerificationChallenge:
        """Map database row to VerificationChallenge model."""
        return VerificationChallenge(
            id=str(data["id"]),
            verification_code=data["verification_code"],
            agent_id=str(data["agent_id"]),
            content_type=ContentType(data["content_type"]),
            payload=data.get("payload") or {},
            challenge_text=data["challenge_text"],
            answer=data["answer"],
            status=ChallengeStatus(data["status"]),
            failed_attempts=data.get("failed_attempts", 0),
            created_at=data["created_at"],
            expires_at=data["expires_at"],
        )
