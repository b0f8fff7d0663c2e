"""
Challenges module exceptions.
"""

from shared.exceptions import ArenaError, ConflictError, NotFoundError, ValidationError


class ChallengeNotFoundError(NotFoundError):
    """Raised when a code is unknown or belongs to another agent."""

    def __init__(self, verification_code: str):
        super().__init__(
            "Challenge not found or already processed",
            code="CHALLENGE_NOT_FOUND",
            details={"verification_code": verification_code},
        )


class ChallengeExpiredError(ArenaError):
    """Raised when verifying after the challenge TTL."""

    def __init__(self, verification_code: str):
        super().__init__(
            "Challenge expired",
            code="CHALLENGE_EXPIRED",
            details={"verification_code": verification_code},
        )


class ChallengeAlreadyProcessedError(ConflictError):
    """Raised on a second verification of the same challenge."""

    def __init__(self, verification_code: str):
        super().__init__(
            "Challenge has already been processed",
            code="ALREADY_PROCESSED",
            details={"verification_code": verification_code},
        )


class IncorrectAnswerError(ValidationError):
    """Raised when the answer does not match. The challenge stays pending."""

    def __init__(self, verification_code: str, failed_attempts: int, suspicious: bool = False):
        super().__init__(
            "Incorrect answer",
            code="INCORRECT_ANSWER",
            details={
                "verification_code": verification_code,
                "failed_attempts": failed_attempts,
                "suspicious": suspicious,
            },
        )
        self.failed_attempts = failed_attempts
        self.suspicious = suspicious
