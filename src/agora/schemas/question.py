"""Question, answer and vote Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agora.models.question import VoteType

MAX_TAGS = 5


def normalize_tags(raw: list[str]) -> list[str]:
    """Lower-case, trim and de-duplicate tags, keeping first-seen order."""
    tags: list[str] = []
    for tag in raw:
        name = tag.strip().lower()
        if name and name not in tags:
            tags.append(name)
    return tags


class QuestionSort(StrEnum):
    """Orderings offered by the community question list."""

    NEWEST = "newest"
    OLDEST = "oldest"
    UNANSWERED = "unanswered"


class QuestionCreate(BaseModel):
    """Schema for asking a question in a community."""

    community_id: uuid.UUID
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        tags = normalize_tags(value)
        if len(tags) > MAX_TAGS:
            raise ValueError(f"A question can have at most {MAX_TAGS} tags")
        return tags


class QuestionResponse(BaseModel):
    """Question summary shown in lists and on the detail page."""

    id: uuid.UUID
    community_id: uuid.UUID
    author_id: uuid.UUID
    author_name: str | None = None
    title: str
    description: str
    tags: list[str] = Field(default_factory=list)
    accepted_answer_id: uuid.UUID | None = None
    answer_count: int = 0
    created_at: datetime | None = None

    @property
    def link(self) -> str:
        return f"/question/{self.id}"


class AnswerCreate(BaseModel):
    content: str = Field(min_length=1)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class AnswerResponse(BaseModel):
    """An answer with its net vote score (upvotes minus downvotes)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    question_id: uuid.UUID
    author_id: uuid.UUID
    author_name: str | None = None
    content: str
    is_accepted: bool = False
    score: int = 0
    created_at: datetime | None = None


class QuestionDetailResponse(BaseModel):
    """A question, its ranked answers and whether the caller may answer."""

    question: QuestionResponse
    answers: list[AnswerResponse] = Field(default_factory=list)
    can_answer: bool = False


class VoteRequest(BaseModel):
    type: VoteType


class VoteState(BaseModel):
    """The caller's current vote on an answer, if any."""

    answer_id: uuid.UUID
    vote: VoteType | None = None


class VoteResponse(VoteState):
    """Result of casting a vote: new state, score change and new score."""

    change: int
    score: int
