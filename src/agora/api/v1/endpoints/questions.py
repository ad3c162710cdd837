"""Question and answer endpoints for the Agora API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Query, status

from agora.api.v1.dependencies import CurrentUserDep, OptionalActorDep, QuestionServiceDep
from agora.schemas.question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionResponse,
    QuestionSort,
)
from agora.services.membership import Actor

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/", response_model=list[QuestionResponse])
async def list_questions(
    community_id: uuid.UUID,
    service: QuestionServiceDep,
    sort: QuestionSort = QuestionSort.NEWEST,
    search: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[QuestionResponse]:
    """List a community's questions, optionally filtered by a search term."""
    return await service.list_questions(community_id, sort, search, limit)


@router.post("/", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def ask_question(
    question_data: QuestionCreate,
    current_user: CurrentUserDep,
    service: QuestionServiceDep,
) -> QuestionResponse:
    """Ask a question in a community the caller is an active member of."""
    return await service.ask(question_data, Actor.from_user(current_user))


@router.get("/{question_id}", response_model=QuestionDetailResponse)
async def get_question(
    question_id: uuid.UUID,
    actor: OptionalActorDep,
    service: QuestionServiceDep,
) -> QuestionDetailResponse:
    """Question with ranked answers and whether the caller may answer."""
    return await service.detail(question_id, actor)


@router.post(
    "/{question_id}/answers",
    response_model=AnswerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def answer_question(
    question_id: uuid.UUID,
    answer_data: AnswerCreate,
    current_user: CurrentUserDep,
    service: QuestionServiceDep,
) -> AnswerResponse:
    """Post an answer; private communities only accept answers from members."""
    return await service.answer(question_id, answer_data, Actor.from_user(current_user))


@router.post("/{question_id}/answers/{answer_id}/accept", response_model=AnswerResponse)
async def accept_answer(
    question_id: uuid.UUID,
    answer_id: uuid.UUID,
    current_user: CurrentUserDep,
    service: QuestionServiceDep,
) -> AnswerResponse:
    """Accept an answer; only the question's author may do this."""
    return await service.accept(question_id, answer_id, Actor.from_user(current_user))
