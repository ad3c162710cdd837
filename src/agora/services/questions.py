"""Question and answer rules on top of the question and membership stores.

Asking requires an ACTIVE membership in the community. Anyone signed in may
answer in a public community; a private community only lets its ACTIVE
members answer. Only a question's author can accept an answer. Violations
raise :class:`BackendAuthorizationError` or :class:`BackendNotFoundError`,
which the API turns into 403 and 404 responses.

The author of a question is notified of each new answer written by someone
else. Like the membership workflow, that notification is best-effort.
"""

from __future__ import annotations

import logging
import uuid

from agora.models.community import CommunityVisibility, MemberStatus
from agora.models.notification import NotificationType
from agora.models.question import VoteType
from agora.schemas.community import CommunityResponse
from agora.schemas.notification import NotificationDraft
from agora.schemas.question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionResponse,
    QuestionSort,
    VoteResponse,
    VoteState,
)
from agora.services.errors import BackendAuthorizationError, BackendNotFoundError
from agora.services.membership import Actor
from agora.services.store import MembershipStore, QuestionStore

logger = logging.getLogger(__name__)

ASK_DENIED = "You need to be a member of this community to ask questions."
ANSWER_DENIED = "You need to be a member of this community to answer questions."
ACCEPT_DENIED = "Only the question author can accept answers."


def answer_notification(
    question: QuestionResponse, answer: AnswerResponse, actor: Actor
) -> NotificationDraft:
    """Notification telling a question's author about a new answer."""
    return NotificationDraft(
        user_id=question.author_id,
        type=NotificationType.ANSWER_RECEIVED,
        message=f'{actor.name or actor.email} answered your question "{question.title}"',
        link=question.link,
        question_id=question.id,
        answer_id=answer.id,
        community_id=question.community_id,
        target_user_id=actor.id,
    )


class QuestionService:
    """Applies community rules to question, answer and vote calls."""

    def __init__(self, questions: QuestionStore, memberships: MembershipStore) -> None:
        self.questions = questions
        self.memberships = memberships

    async def _community(self, community_id: uuid.UUID) -> CommunityResponse:
        community = await self.memberships.get_community(community_id)
        if community is None:
            raise BackendNotFoundError("Community not found")
        return community

    async def _question(self, question_id: uuid.UUID) -> QuestionResponse:
        question = await self.questions.get_question(question_id)
        if question is None:
            raise BackendNotFoundError("Question not found")
        return question

    async def _answer(self, answer_id: uuid.UUID) -> AnswerResponse:
        answer = await self.questions.get_answer(answer_id)
        if answer is None:
            raise BackendNotFoundError("Answer not found")
        return answer

    async def _is_active_member(self, community_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        membership = await self.memberships.get_membership(community_id, user_id)
        return membership is not None and membership.status == MemberStatus.ACTIVE

    async def can_answer(self, community: CommunityResponse, actor: Actor | None) -> bool:
        if actor is None:
            return False
        if community.visibility == CommunityVisibility.PUBLIC:
            return True
        return await self._is_active_member(community.id, actor.id)

    async def ask(self, data: QuestionCreate, actor: Actor) -> QuestionResponse:
        await self._community(data.community_id)
        if not await self._is_active_member(data.community_id, actor.id):
            raise BackendAuthorizationError(ASK_DENIED)
        return await self.questions.create_question(actor.id, data)

    async def list_questions(
        self,
        community_id: uuid.UUID,
        sort: QuestionSort = QuestionSort.NEWEST,
        search: str | None = None,
        limit: int = 20,
    ) -> list[QuestionResponse]:
        await self._community(community_id)
        return await self.questions.list_questions(community_id, sort, search, limit)

    async def detail(
        self, question_id: uuid.UUID, actor: Actor | None
    ) -> QuestionDetailResponse:
        question = await self._question(question_id)
        community = await self._community(question.community_id)
        return QuestionDetailResponse(
            question=question,
            answers=await self.questions.list_answers(question_id),
            can_answer=await self.can_answer(community, actor),
        )

    async def answer(
        self, question_id: uuid.UUID, data: AnswerCreate, actor: Actor
    ) -> AnswerResponse:
        question = await self._question(question_id)
        community = await self._community(question.community_id)
        if not await self.can_answer(community, actor):
            raise BackendAuthorizationError(ANSWER_DENIED)

        answer = await self.questions.create_answer(question_id, actor.id, data)
        if question.author_id != actor.id:
            try:
                await self.memberships.create_notification(
                    answer_notification(question, answer, actor)
                )
            except Exception:
                logger.warning(
                    "Answer %s saved but notifying %s failed",
                    answer.id,
                    question.author_id,
                    exc_info=True,
                )
        return answer

    async def accept(
        self, question_id: uuid.UUID, answer_id: uuid.UUID, actor: Actor
    ) -> AnswerResponse:
        question = await self._question(question_id)
        if question.author_id != actor.id:
            raise BackendAuthorizationError(ACCEPT_DENIED)
        return await self.questions.accept_answer(question_id, answer_id)

    async def vote(self, answer_id: uuid.UUID, vote: VoteType, actor: Actor) -> VoteResponse:
        await self._answer(answer_id)
        return await self.questions.cast_vote(answer_id, actor.id, vote)

    async def my_vote(self, answer_id: uuid.UUID, actor: Actor) -> VoteState:
        await self._answer(answer_id)
        return VoteState(
            answer_id=answer_id, vote=await self.questions.get_vote(answer_id, actor.id)
        )
