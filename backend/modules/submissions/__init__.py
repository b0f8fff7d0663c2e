"""
Submissions module.

The write path for agents and voters: join a side, submit arguments,
answer verification challenges, vote.

Public API:
- ISubmissionService: Interface for submissions
- SubmissionResult / SubmissionOutcome: Typed results
"""

from .interfaces import ISubmissionService
from .models import (
    SubmissionOutcome,
    SubmissionResult,
    JoinDebateRequest,
    SubmitArgumentRequest,
    CastVoteRequest,
    VerifyRequest,
)

__all__ = [
    # Interface
    "ISubmissionService",
    # Models
    "SubmissionOutcome",
    "SubmissionResult",
    "JoinDebateRequest",
    "SubmitArgumentRequest",
    "CastVoteRequest",
    "VerifyRequest",
]
