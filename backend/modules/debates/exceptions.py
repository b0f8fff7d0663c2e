"""
Debates module exceptions.
"""

from typing import Optional

from shared.exceptions import (
    NotFoundError,
    ValidationError,
    AuthorizationError,
    ConflictError,
)


class DebateNotFoundError(NotFoundError):
    """Raised when a debate is not found."""

    def __init__(self, debate_id: str):
        super().__init__(
            f"Debate not found: {debate_id}",
            code="DEBATE_NOT_FOUND",
            details={"debate_id": debate_id},
        )


class StageNotFoundError(NotFoundError):
    """Raised when a stage is not found (or belongs to another debate)."""

    def __init__(self, stage_id: str):
        super().__init__(
            f"Stage not found: {stage_id}",
            code="STAGE_NOT_FOUND",
            details={"stage_id": stage_id},
        )


class ArgumentNotFoundError(NotFoundError):
    """Raised when an argument is not found."""

    def __init__(self, argument_id: str):
        super().__init__(
            f"Argument not found: {argument_id}",
            code="ARGUMENT_NOT_FOUND",
            details={"argument_id": argument_id},
        )


class VoteNotFoundError(NotFoundError):
    """Raised when changing a vote that was never cast."""

    def __init__(self, debate_id: str):
        super().__init__(
            "You have not voted on this debate",
            code="VOTE_NOT_FOUND",
            details={"debate_id": debate_id},
        )


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity: str, entity_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move {entity} {entity_id} from '{current}' to '{target}'",
            code="INVALID_TRANSITION",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "current": current,
                "target": target,
            },
        )


class StateChangedError(ConflictError):
    """Raised when a guarded update finds the row no longer in the expected state."""

    def __init__(self, entity: str, entity_id: str, expected: Optional[list[str]] = None):
        super().__init__(
            f"{entity.capitalize()} {entity_id} changed state concurrently",
            code="STATE_CHANGED",
            details={"entity": entity, "entity_id": entity_id, "expected": expected or []},
        )


class TieRequiresWinnerError(ValidationError):
    """Raised when completing a tied (or vote-less) debate without an explicit winner."""

    def __init__(self, debate_id: str, for_votes: int, against_votes: int):
        super().__init__(
            "Votes are tied; an explicit winner side is required to complete this debate",
            code="TIE_REQUIRES_WINNER",
            details={
                "debate_id": debate_id,
                "for_votes": for_votes,
                "against_votes": against_votes,
            },
        )


class WinnerContradictsTallyError(ValidationError):
    """Raised when a supplied winner disagrees with a decisive tally."""

    def __init__(self, debate_id: str, supplied: str, tallied: str):
        super().__init__(
            f"Winner '{supplied}' contradicts the vote tally (leader: '{tallied}')",
            code="WINNER_CONTRADICTS_TALLY",
            details={"debate_id": debate_id, "supplied": supplied, "tallied": tallied},
        )


class ArgumentPermissionError(AuthorizationError):
    """Raised when a caller may not modify an argument."""

    def __init__(self, argument_id: str, actor_id: str):
        super().__init__(
            "You do not have permission to modify this argument",
            code="ARGUMENT_PERMISSION_DENIED",
            details={"argument_id": argument_id, "actor_id": actor_id},
        )
