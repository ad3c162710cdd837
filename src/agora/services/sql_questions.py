"""SQLAlchemy implementation of the question store."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agora.models import Answer, Question, Tag, Vote, VoteType
from agora.schemas.question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionSort,
    VoteResponse,
)
from agora.services.errors import BackendConflictError, BackendNotFoundError
from agora.services.votes import rank_answers, vote_transition

logger = logging.getLogger(__name__)


class SqlQuestionStore:
    """Questions, answers and votes backed by a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # Reads

    def _answer_counts(self, question_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        if not question_ids:
            return {}
        rows = (
            self.db.query(Answer.question_id, func.count(Answer.id))
            .filter(Answer.question_id.in_(question_ids))
            .group_by(Answer.question_id)
            .all()
        )
        return {question_id: int(count) for question_id, count in rows}

    def _scores(self, answer_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        if not answer_ids:
            return {}
        value = case((Vote.type == VoteType.UPVOTE, 1), else_=-1)
        rows = (
            self.db.query(Vote.answer_id, func.sum(value))
            .filter(Vote.answer_id.in_(answer_ids))
            .group_by(Vote.answer_id)
            .all()
        )
        return {answer_id: int(total or 0) for answer_id, total in rows}

    @staticmethod
    def _question_to_schema(question: Question, answer_count: int) -> QuestionResponse:
        return QuestionResponse(
            id=question.id,
            community_id=question.community_id,
            author_id=question.author_id,
            author_name=question.author.display_name if question.author else None,
            title=question.title,
            description=question.description,
            tags=[tag.name for tag in question.tags],
            accepted_answer_id=question.accepted_answer_id,
            answer_count=answer_count,
            created_at=question.created_at,
        )

    @staticmethod
    def _answer_to_schema(answer: Answer, score: int) -> AnswerResponse:
        response = AnswerResponse.model_validate(answer)
        response.author_name = answer.author.display_name if answer.author else None
        response.score = score
        return response

    async def get_question(self, question_id: uuid.UUID) -> QuestionResponse | None:
        question = self.db.get(Question, question_id)
        if question is None:
            return None
        count = self._answer_counts([question.id]).get(question.id, 0)
        return self._question_to_schema(question, count)

    async def list_questions(
        self,
        community_id: uuid.UUID,
        sort: QuestionSort = QuestionSort.NEWEST,
        search: str | None = None,
        limit: int = 20,
    ) -> list[QuestionResponse]:
        query = self.db.query(Question).filter(Question.community_id == community_id)
        if sort == QuestionSort.UNANSWERED:
            query = query.filter(Question.accepted_answer_id.is_(None))
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Question.title.ilike(pattern),
                    Question.description.ilike(pattern),
                    Question.tags.any(Tag.name.ilike(pattern)),
                )
            )
        if sort == QuestionSort.OLDEST:
            query = query.order_by(Question.created_at.asc())
        else:
            query = query.order_by(Question.created_at.desc())

        questions = query.limit(limit).all()
        counts = self._answer_counts([q.id for q in questions])
        return [self._question_to_schema(q, counts.get(q.id, 0)) for q in questions]

    async def get_answer(self, answer_id: uuid.UUID) -> AnswerResponse | None:
        answer = self.db.get(Answer, answer_id)
        if answer is None:
            return None
        return self._answer_to_schema(answer, self._scores([answer.id]).get(answer.id, 0))

    async def list_answers(self, question_id: uuid.UUID) -> list[AnswerResponse]:
        answers = (
            self.db.query(Answer)
            .filter(Answer.question_id == question_id)
            .order_by(Answer.created_at.asc())
            .all()
        )
        scores = self._scores([a.id for a in answers])
        return rank_answers([self._answer_to_schema(a, scores.get(a.id, 0)) for a in answers])

    async def get_vote(self, answer_id: uuid.UUID, user_id: uuid.UUID) -> VoteType | None:
        vote = self._find_vote(answer_id, user_id)
        return vote.type if vote else None

    def _find_vote(self, answer_id: uuid.UUID, user_id: uuid.UUID) -> Vote | None:
        return (
            self.db.query(Vote)
            .filter(Vote.answer_id == answer_id, Vote.user_id == user_id)
            .first()
        )

    # Writes

    def _resolve_tags(self, names: list[str]) -> list[Tag]:
        if not names:
            return []
        existing = {tag.name: tag for tag in self.db.query(Tag).filter(Tag.name.in_(names))}
        tags = []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(name=name)
                self.db.add(tag)
            tags.append(tag)
        return tags

    async def create_question(
        self, author_id: uuid.UUID, data: QuestionCreate
    ) -> QuestionResponse:
        question = Question(
            title=data.title,
            description=data.description,
            author_id=author_id,
            community_id=data.community_id,
        )
        question.tags = self._resolve_tags(data.tags)
        self.db.add(question)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Another question created one of the tags first.
            self.db.rollback()
            raise BackendConflictError("Question could not be saved, please retry") from exc

        self.db.refresh(question)
        logger.info("Question %s asked in %s", question.id, question.community_id)
        return self._question_to_schema(question, 0)

    async def create_answer(
        self, question_id: uuid.UUID, author_id: uuid.UUID, data: AnswerCreate
    ) -> AnswerResponse:
        if self.db.get(Question, question_id) is None:
            raise BackendNotFoundError("Question not found")
        answer = Answer(question_id=question_id, author_id=author_id, content=data.content)
        self.db.add(answer)
        self.db.commit()
        self.db.refresh(answer)
        return self._answer_to_schema(answer, 0)

    async def accept_answer(
        self, question_id: uuid.UUID, answer_id: uuid.UUID
    ) -> AnswerResponse:
        """Mark ``answer_id`` as the accepted answer, replacing any earlier one."""
        question = self.db.get(Question, question_id)
        answer = self.db.get(Answer, answer_id)
        if question is None or answer is None or answer.question_id != question_id:
            raise BackendNotFoundError("Answer not found")

        previous = (
            self.db.query(Answer)
            .filter(
                Answer.question_id == question_id,
                Answer.is_accepted.is_(True),
                Answer.id != answer_id,
            )
            .all()
        )
        for other in previous:
            other.is_accepted = False
        answer.is_accepted = True
        question.accepted_answer_id = answer.id
        self.db.commit()
        self.db.refresh(answer)
        return self._answer_to_schema(answer, self._scores([answer.id]).get(answer.id, 0))

    async def cast_vote(
        self, answer_id: uuid.UUID, user_id: uuid.UUID, vote: VoteType
    ) -> VoteResponse:
        """Apply ``vote`` for ``user_id`` and return the new state and score."""
        if self.db.get(Answer, answer_id) is None:
            raise BackendNotFoundError("Answer not found")

        existing = self._find_vote(answer_id, user_id)
        new_vote, change = vote_transition(existing.type if existing else None, vote)
        if existing is None:
            self.db.add(Vote(answer_id=answer_id, user_id=user_id, type=new_vote))
        elif new_vote is None:
            self.db.delete(existing)
        else:
            existing.type = new_vote

        try:
            self.db.commit()
        except IntegrityError as exc:
            # A concurrent request from the same user recorded a vote first.
            self.db.rollback()
            raise BackendConflictError("Vote was changed by another request") from exc

        return VoteResponse(
            answer_id=answer_id,
            vote=new_vote,
            change=change,
            score=self._scores([answer_id]).get(answer_id, 0),
        )
