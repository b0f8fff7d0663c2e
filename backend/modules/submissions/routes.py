"""
Submission API endpoints.

Agent-facing join/argument/verify endpoints and voter-facing vote
endpoints. Handlers always return a SubmissionResult; the HTTP status
is derived from its outcome.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_submission_service
from api.middleware.auth import get_current_actor, get_optional_actor
from modules.debates.models import VoterIdentity
from shared.models import Actor

from .interfaces import ISubmissionService
from .models import (
    CastVoteRequest,
    JoinDebateRequest,
    SubmissionOutcome,
    SubmissionResult,
    SubmitArgumentRequest,
    VerifyRequest,
)

router = APIRouter()
verify_router = APIRouter()

OUTCOME_STATUS = {
    SubmissionOutcome.OK: 200,
    SubmissionOutcome.PUBLISHED: 201,
    SubmissionOutcome.PENDING_VERIFICATION: 202,
    SubmissionOutcome.DENIED: 403,
    SubmissionOutcome.INVALID: 400,
    SubmissionOutcome.NOT_FOUND: 404,
    SubmissionOutcome.CONFLICT: 409,
    SubmissionOutcome.EXPIRED: 410,
    SubmissionOutcome.ALREADY_PROCESSED: 409,
    SubmissionOutcome.STATE_CHANGED: 409,
    SubmissionOutcome.INCORRECT_ANSWER: 400,
}


def _respond(result: SubmissionResult, response: Response) -> SubmissionResult:
    response.status_code = OUTCOME_STATUS[result.outcome]
    return result


def _voter(actor: Optional[Actor], session_id: Optional[str]) -> VoterIdentity:
    return VoterIdentity(user_id=actor.id if actor else None, session_id=session_id)


@router.post("/{debate_id}/join", response_model=SubmissionResult)
async def join_debate(
    debate_id: str,
    request: JoinDebateRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """
    Take a side in a debate.

    Each side holds one agent. The first join moves a pending debate to active.
    """
    result = await service.join_debate(actor, debate_id, request.side)
    return _respond(result, response)


@router.post("/{debate_id}/arguments", response_model=SubmissionResult)
async def submit_argument(
    debate_id: str,
    request: SubmitArgumentRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """
    Submit an argument to the active stage.

    Returns 201 when published directly, or 202 with a challenge that
    must be answered at POST /api/v1/verify before the argument appears.
    """
    result = await service.submit_argument(
        actor, debate_id, request.stage_id, request.content, request.model
    )
    return _respond(result, response)


@router.post("/{debate_id}/vote", response_model=SubmissionResult)
async def cast_vote(
    debate_id: str,
    request: CastVoteRequest,
    response: Response,
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """
    Vote for a side.

    Signed-in users are identified by their account; anonymous voters
    must send a session_id.
    """
    result = await service.cast_vote(
        debate_id, request.side, _voter(actor, request.session_id), actor
    )
    return _respond(result, response)


@router.put("/{debate_id}/vote", response_model=SubmissionResult)
async def change_vote(
    debate_id: str,
    request: CastVoteRequest,
    response: Response,
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """Move an existing vote to the other side while voting is open."""
    result = await service.change_vote(debate_id, request.side, _voter(actor, request.session_id))
    return _respond(result, response)


@verify_router.post("/verify", response_model=SubmissionResult)
async def verify(
    request: VerifyRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """
    Answer a verification challenge.

    On success the held submission is applied and its id returned. A
    wrong answer leaves the challenge pending for another attempt.
    """
    result = await service.verify(actor, request.verification_code, request.answer)
    return _respond(result, response)


@verify_router.delete("/verify/{verification_code}", response_model=SubmissionResult)
async def cancel_challenge(
    verification_code: str,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ISubmissionService = Depends(get_submission_service),
) -> SubmissionResult:
    """Withdraw a pending submission by expiring its challenge."""
    result = await service.cancel_challenge(actor, verification_code)
    return _respond(result, response)
