"""Question store backed by the hosted PostgREST-style backend."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from agora.models.question import VoteType
from agora.schemas.question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionSort,
    VoteResponse,
)
from agora.services.backend import BackendClient, _eq
from agora.services.errors import BackendError, BackendNotFoundError
from agora.services.votes import rank_answers, score_of, vote_transition

# answers has two foreign keys towards questions, so the embed names the one to follow.
QUESTION_SELECT = (
    "*,author:users!questions_author_id_fkey(name,email),"
    "question_tags(tags(name)),answers!answers_question_id_fkey(count)"
)
ANSWER_SELECT = "*,author:users!answers_author_id_fkey(name,email),votes(type)"


def _author_name(row: Mapping[str, Any]) -> str | None:
    author = row.get("author") or {}
    return author.get("name") or author.get("email")


def _question_from_row(row: Mapping[str, Any]) -> QuestionResponse:
    tags = sorted(
        entry["tags"]["name"] for entry in row.get("question_tags") or [] if entry.get("tags")
    )
    answers = row.get("answers") or []
    return QuestionResponse(
        id=row["id"],
        community_id=row["community_id"],
        author_id=row["author_id"],
        author_name=_author_name(row),
        title=row["title"],
        description=row["description"],
        tags=tags,
        accepted_answer_id=row.get("accepted_answer_id"),
        answer_count=int(answers[0].get("count", 0)) if answers else 0,
        created_at=row.get("created_at"),
    )


def _answer_from_row(row: Mapping[str, Any]) -> AnswerResponse:
    votes = [VoteType(vote["type"]) for vote in row.get("votes") or []]
    return AnswerResponse(
        id=row["id"],
        question_id=row["question_id"],
        author_id=row["author_id"],
        author_name=_author_name(row),
        content=row["content"],
        is_accepted=bool(row.get("is_accepted")),
        score=score_of(votes),
        created_at=row.get("created_at"),
    )


def _matches(question: QuestionResponse, needle: str) -> bool:
    return (
        needle in question.title.lower()
        or needle in question.description.lower()
        or any(needle in tag for tag in question.tags)
    )


class RestQuestionStore:
    """Question store that delegates to the hosted backend.

    The backend offers no procedure for accepting answers or voting, so
    those writes are a sequence of table requests.
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def get_question(self, question_id: uuid.UUID) -> QuestionResponse | None:
        rows = await self.client.select(
            "questions", select=QUESTION_SELECT, id=_eq(question_id), limit=1
        )
        return _question_from_row(rows[0]) if rows else None

    async def list_questions(
        self,
        community_id: uuid.UUID,
        sort: QuestionSort = QuestionSort.NEWEST,
        search: str | None = None,
        limit: int = 20,
    ) -> list[QuestionResponse]:
        query: dict[str, Any] = {
            "select": QUESTION_SELECT,
            "community_id": _eq(community_id),
            "order": "created_at.asc" if sort == QuestionSort.OLDEST else "created_at.desc",
        }
        if sort == QuestionSort.UNANSWERED:
            query["accepted_answer_id"] = "is.null"
        needle = (search or "").strip().lower()
        # Tags cannot be filtered server-side, so searches are matched here.
        if not needle:
            query["limit"] = limit
        rows = await self.client.select("questions", **query)
        questions = [_question_from_row(row) for row in rows]
        if needle:
            questions = [q for q in questions if _matches(q, needle)][:limit]
        return questions

    async def create_question(
        self, author_id: uuid.UUID, data: QuestionCreate
    ) -> QuestionResponse:
        rows = await self.client.insert(
            "questions",
            {
                "title": data.title,
                "description": data.description,
                "author_id": str(author_id),
                "community_id": str(data.community_id),
            },
        )
        if not rows:
            raise BackendError("Backend did not return the created question")
        question = _question_from_row(rows[0])

        if data.tags:
            tag_rows = await self.client.upsert(
                "tags", [{"name": name} for name in data.tags], on_conflict="name"
            )
            await self.client.insert(
                "question_tags",
                [{"question_id": str(question.id), "tag_id": row["id"]} for row in tag_rows],
            )
            question.tags = sorted(data.tags)
        return question

    async def get_answer(self, answer_id: uuid.UUID) -> AnswerResponse | None:
        rows = await self.client.select(
            "answers", select=ANSWER_SELECT, id=_eq(answer_id), limit=1
        )
        return _answer_from_row(rows[0]) if rows else None

    async def list_answers(self, question_id: uuid.UUID) -> list[AnswerResponse]:
        rows = await self.client.select(
            "answers",
            select=ANSWER_SELECT,
            question_id=_eq(question_id),
            order="created_at.asc",
        )
        return rank_answers([_answer_from_row(row) for row in rows])

    async def create_answer(
        self, question_id: uuid.UUID, author_id: uuid.UUID, data: AnswerCreate
    ) -> AnswerResponse:
        rows = await self.client.insert(
            "answers",
            {
                "question_id": str(question_id),
                "author_id": str(author_id),
                "content": data.content,
            },
        )
        if not rows:
            raise BackendError("Backend did not return the created answer")
        return _answer_from_row(rows[0])

    async def accept_answer(
        self, question_id: uuid.UUID, answer_id: uuid.UUID
    ) -> AnswerResponse:
        answer = await self.get_answer(answer_id)
        if answer is None or answer.question_id != question_id:
            raise BackendNotFoundError("Answer not found")

        await self.client.update(
            "answers",
            {"is_accepted": False},
            question_id=_eq(question_id),
            is_accepted=_eq("true"),
        )
        await self.client.update("answers", {"is_accepted": True}, id=_eq(answer_id))
        await self.client.update(
            "questions", {"accepted_answer_id": str(answer_id)}, id=_eq(question_id)
        )
        answer.is_accepted = True
        return answer

    async def get_vote(self, answer_id: uuid.UUID, user_id: uuid.UUID) -> VoteType | None:
        rows = await self.client.select(
            "votes", select="type", answer_id=_eq(answer_id), user_id=_eq(user_id), limit=1
        )
        return VoteType(rows[0]["type"]) if rows else None

    async def cast_vote(
        self, answer_id: uuid.UUID, user_id: uuid.UUID, vote: VoteType
    ) -> VoteResponse:
        current = await self.get_vote(answer_id, user_id)
        new_vote, change = vote_transition(current, vote)
        pair = {"answer_id": _eq(answer_id), "user_id": _eq(user_id)}
        if new_vote is None:
            await self.client.delete("votes", **pair)
        elif current is None:
            await self.client.insert(
                "votes",
                {"answer_id": str(answer_id), "user_id": str(user_id), "type": new_vote.value},
            )
        else:
            await self.client.update("votes", {"type": new_vote.value}, **pair)

        rows = await self.client.select("votes", select="type", answer_id=_eq(answer_id))
        return VoteResponse(
            answer_id=answer_id,
            vote=new_vote,
            change=change,
            score=score_of([VoteType(row["type"]) for row in rows]),
        )
