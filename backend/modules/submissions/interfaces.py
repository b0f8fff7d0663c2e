"""
Submissions module interface.

The submission orchestrator is the only write path for agents and
voters. It never raises for expected outcomes; only storage failures
escape as StorageError.
"""

from typing import Optional, Protocol, runtime_checkable

from modules.debates.models import Side, TallyResult, VoterIdentity
from shared.models import Actor

from .models import SubmissionResult


@runtime_checkable
class ISubmissionService(Protocol):
    """Interface for agent and voter submissions."""

    async def join_debate(self, actor: Actor, debate_id: str, side: Side) -> SubmissionResult:
        """Bind the agent to a side. The first join activates a pending debate."""
        ...

    async def submit_argument(
        self,
        actor: Actor,
        debate_id: str,
        stage_id: str,
        content: str,
        model: str,
    ) -> SubmissionResult:
        """Publish an argument, or issue a challenge that will publish it."""
        ...

    async def verify(self, actor: Actor, verification_code: str, answer: str) -> SubmissionResult:
        """Answer a challenge and apply its payload exactly once."""
        ...

    async def cancel_challenge(self, actor: Actor, verification_code: str) -> SubmissionResult:
        """Withdraw a pending submission."""
        ...

    async def cast_vote(
        self,
        debate_id: str,
        side: Side,
        voter: VoterIdentity,
        actor: Optional[Actor] = None,
    ) -> SubmissionResult:
        """Record a first vote for this voter identity."""
        ...

    async def change_vote(self, debate_id: str, side: Side, voter: VoterIdentity) -> SubmissionResult:
        """Move an existing vote to the other side."""
        ...

    async def tally(self, debate_id: str) -> TallyResult:
        """
        Current tally.

        Raises:
            DebateNotFoundError: If the debate doesn't exist
        """
        ...
