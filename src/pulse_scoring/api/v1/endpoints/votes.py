# src/pulse_scoring/api/v1/endpoints/votes.py
"""Vote submission endpoints for the Pulse API."""

from fastapi import APIRouter, HTTPException, status

from pulse_scoring.core.errors import PulseError
from pulse_scoring.schemas.vote import AbsentRequest, VoteCreate, VoteOut, VoteSubmitResponse
from pulse_scoring.services.audit import to_vote_out
from pulse_scoring.services.normalizer import STRATEGIES

from ..dependencies import AdminDep, CurrentActorDep, VoteServiceDep, http_error

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/", response_model=VoteSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_vote(
    vote_data: VoteCreate,
    current_actor: CurrentActorDep,
    service: VoteServiceDep,
) -> VoteSubmitResponse:
    """Cast or revise the caller's vote on a presentation."""
    if not any(strategy.applies_to(current_actor.role) for strategy in STRATEGIES):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {current_actor.role!r} cannot vote",
        )

    try:
        result = service.submit_vote(
            user_id=current_actor.user_id,
            presentation_id=vote_data.presentation_id,
            role=current_actor.role,
            ratings=[rating.as_document() for rating in vote_data.ratings],
            is_absent=vote_data.is_absent,
            absent_reason=vote_data.absent_reason,
        )
    except PulseError as exc:
        raise http_error(exc) from exc

    return VoteSubmitResponse(
        vote_id=result.vote.id,
        action=result.action,
        total_score=result.total_score,
    )


@router.get("/{presentation_id}/my-vote", response_model=VoteOut)
async def get_my_vote(
    presentation_id: str,
    current_actor: CurrentActorDep,
    service: VoteServiceDep,
) -> VoteOut:
    """Get the caller's vote on a presentation, for pre-filling the voting form."""
    vote = service.get_vote(current_actor.user_id, presentation_id)
    if vote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vote not found")
    return to_vote_out(vote)


@router.post("/{vote_id}/absent", response_model=VoteOut)
async def mark_presenter_absent(
    vote_id: int,
    request: AbsentRequest,
    _admin: AdminDep,
    service: VoteServiceDep,
) -> VoteOut:
    """Flag the presenter as absent on a vote (admin only)."""
    try:
        vote = service.mark_absent(vote_id, request.reason)
    except PulseError as exc:
        raise http_error(exc) from exc
    return to_vote_out(vote)
