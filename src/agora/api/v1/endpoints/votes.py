"""Answer vote endpoints for the Agora API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter

from agora.api.v1.dependencies import CurrentUserDep, QuestionServiceDep
from agora.schemas.question import VoteRequest, VoteResponse, VoteState
from agora.services.membership import Actor

router = APIRouter(prefix="/answers", tags=["votes"])


@router.post("/{answer_id}/vote", response_model=VoteResponse)
async def cast_vote(
    answer_id: uuid.UUID,
    vote_data: VoteRequest,
    current_user: CurrentUserDep,
    service: QuestionServiceDep,
) -> VoteResponse:
    """Vote on an answer. Repeating a vote withdraws it; the opposite vote switches it."""
    return await service.vote(answer_id, vote_data.type, Actor.from_user(current_user))


@router.get("/{answer_id}/my-vote", response_model=VoteState)
async def get_my_vote(
    answer_id: uuid.UUID,
    current_user: CurrentUserDep,
    service: QuestionServiceDep,
) -> VoteState:
    """Get the caller's current vote on an answer."""
    return await service.my_vote(answer_id, Actor.from_user(current_user))
