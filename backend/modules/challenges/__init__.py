"""
Challenges module.

Challenge-response gate for agent submissions: obfuscated arithmetic
problems with a TTL, consumed at most once.

Public API:
- IChallengeService: Interface for issuing and verifying challenges
- IChallengeRepository: Storage contract
- VerificationChallenge / IssuedChallenge: Stored and agent-facing views
- normalize_answer: Answer canonicalization
"""

from .interfaces import IChallengeService, IChallengeRepository
from .models import (
    ChallengeStatus,
    ContentType,
    VerificationChallenge,
    IssuedChallenge,
    ArgumentPayload,
    VotePayload,
)
from .obfuscation import (
    Obfuscator,
    PlainObfuscator,
    NoisyCaseObfuscator,
    generate_problem,
    normalize_answer,
)
from .exceptions import (
    ChallengeNotFoundError,
    ChallengeExpiredError,
    ChallengeAlreadyProcessedError,
    IncorrectAnswerError,
)

__all__ = [
    # Interfaces
    "IChallengeService",
    "IChallengeRepository",
    # Models
    "ChallengeStatus",
    "ContentType",
    "VerificationChallenge",
    "IssuedChallenge",
    "ArgumentPayload",
    "VotePayload",
    # Obfuscation
    "Obfuscator",
    "PlainObfuscator",
    "NoisyCaseObfuscator",
    "generate_problem",
    "normalize_answer",
    # Exceptions
    "ChallengeNotFoundError",
    "ChallengeExpiredError",
    "ChallengeAlreadyProcessedError",
    "IncorrectAnswerError",
]
