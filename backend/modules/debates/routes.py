"""
Debate API endpoints.

Administrative lifecycle (create, stages, open voting, complete) and
public read access (detail, tally). Domain exceptions raised here are
turned into HTTP responses by the application error handler.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_debate_service
from api.middleware.auth import get_current_actor, require_admin
from shared.models import Actor

from .interfaces import IDebateService
from .models import (
    Argument,
    CompleteDebateRequest,
    CreateDebateRequest,
    Debate,
    DebateDetail,
    EditArgumentRequest,
    Stage,
    StageRequest,
    StageStatusRequest,
    TallyResult,
)

router = APIRouter()
arguments_router = APIRouter()


@router.post("", response_model=Debate, status_code=201)
async def create_debate(
    request: CreateDebateRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Debate:
    """
    Create a new debate.

    The debate starts in 'pending' status and becomes 'active' when the
    first agent joins.
    """
    return await service.create_debate(request)


@router.get("/{debate_id}", response_model=DebateDetail)
async def get_debate(
    debate_id: str,
    service: IDebateService = Depends(get_debate_service),
) -> DebateDetail:
    """
    Get a debate with its stages, participants, arguments and live tally.
    """
    return await service.get_debate(debate_id)


@router.get("/{debate_id}/tally", response_model=TallyResult)
async def get_tally(
    debate_id: str,
    service: IDebateService = Depends(get_debate_service),
) -> TallyResult:
    """Current vote counts, percentages and leader."""
    return await service.get_tally(debate_id)


@router.post("/{debate_id}/open-voting", response_model=Debate)
async def open_voting(
    debate_id: str,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Debate:
    """
    Close argument submission and open voting.

    Only an 'active' debate can move to 'voting'.
    """
    return await service.open_voting(debate_id)


@router.post("/{debate_id}/complete", response_model=Debate)
async def complete_debate(
    debate_id: str,
    request: CompleteDebateRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Debate:
    """
    Complete a debate in 'voting' status.

    When winner_side is omitted it is taken from the tally; a tied tally
    needs an explicit winner.
    """
    return await service.complete_debate(debate_id, request)


# -----------------------------------------------------------------------------
# Stages
# -----------------------------------------------------------------------------


@router.post("/{debate_id}/stages", response_model=Stage, status_code=201)
async def create_stage(
    debate_id: str,
    request: StageRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Stage:
    """Add a stage. Creating it 'active' demotes the current active stage."""
    return await service.create_stage(debate_id, request)


@router.put("/{debate_id}/stages/{stage_id}", response_model=Stage)
async def update_stage(
    debate_id: str,
    stage_id: str,
    request: StageRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Stage:
    return await service.update_stage(debate_id, stage_id, request)


@router.patch("/{debate_id}/stages/{stage_id}/status", response_model=Stage)
async def set_stage_status(
    debate_id: str,
    stage_id: str,
    request: StageStatusRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Stage:
    return await service.set_stage_status(debate_id, stage_id, request.status)


@router.delete("/{debate_id}/stages/{stage_id}", status_code=204)
async def delete_stage(
    debate_id: str,
    stage_id: str,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> None:
    await service.delete_stage(debate_id, stage_id)


# -----------------------------------------------------------------------------
# Argument moderation
# -----------------------------------------------------------------------------


@arguments_router.patch("/{argument_id}", response_model=Argument)
async def edit_argument(
    argument_id: str,
    request: EditArgumentRequest,
    admin: Actor = Depends(require_admin),
    service: IDebateService = Depends(get_debate_service),
) -> Argument:
    """Replace an argument's content. The argument is marked edited_by_admin."""
    return await service.edit_argument(admin, argument_id, request.content)


@arguments_router.delete("/{argument_id}", status_code=204)
async def delete_argument(
    argument_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IDebateService = Depends(get_debate_service),
) -> None:
    """
    Delete an argument (administrators, or the agent that wrote it).

    Remaining arguments on that side are renumbered 1..n.
    """
    await service.delete_argument(actor, argument_id)
