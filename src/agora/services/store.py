"""Backend contracts used by the membership workflow and the Q&A service.

Implementations own persistence and authorization. ``handle_join_request``
and ``manage_join_request`` must be atomic: the at-most-one-membership
invariant and the moderator role check are enforced there, never by the
caller.
"""

from __future__ import annotations

import uuid
from typing import Protocol

from agora.models.community import MemberStatus
from agora.models.question import VoteType
from agora.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    JoinAction,
    MembershipResponse,
)
from agora.schemas.notification import NotificationDraft, NotificationResponse
from agora.schemas.question import (
    AnswerCreate,
    AnswerResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionSort,
    VoteResponse,
)
from agora.services.results import ProcedureResult


class MembershipStore(Protocol):
    """Procedures and read queries exposed by a membership backend."""

    async def get_community(self, community_id: uuid.UUID) -> CommunityResponse | None: ...

    async def get_community_by_slug(self, slug: str) -> CommunityResponse | None: ...

    async def list_communities(self) -> list[CommunityResponse]: ...

    async def create_community(
        self, owner_id: uuid.UUID, data: CommunityCreate
    ) -> CommunityResponse: ...

    async def get_membership(
        self, community_id: uuid.UUID, user_id: uuid.UUID
    ) -> MembershipResponse | None: ...

    async def list_members(
        self, community_id: uuid.UUID, status: MemberStatus | None = None
    ) -> list[MembershipResponse]: ...

    async def handle_join_request(
        self, community_id: uuid.UUID, user_id: uuid.UUID | None
    ) -> ProcedureResult: ...

    async def manage_join_request(
        self,
        community_id: uuid.UUID,
        user_id: uuid.UUID,
        action: JoinAction | str,
        moderator_id: uuid.UUID | None,
    ) -> ProcedureResult: ...

    async def create_notification(self, draft: NotificationDraft) -> uuid.UUID: ...

    async def list_notifications(
        self, user_id: uuid.UUID, limit: int = 10
    ) -> list[NotificationResponse]: ...

    async def count_unread_notifications(self, user_id: uuid.UUID) -> int: ...

    async def mark_notification_read(
        self, notification_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool: ...

    async def mark_all_notifications_read(self, user_id: uuid.UUID) -> int: ...

    async def extract_mentions(self, content: str) -> list[str]: ...


class QuestionStore(Protocol):
    """Persistence for questions, answers and answer votes.

    Policy (who may ask, answer or accept) is enforced by
    :class:`~agora.services.questions.QuestionService`; the store only keeps
    each write consistent.
    """

    async def create_question(
        self, author_id: uuid.UUID, data: QuestionCreate
    ) -> QuestionResponse: ...

    async def get_question(self, question_id: uuid.UUID) -> QuestionResponse | None: ...

    async def list_questions(
        self,
        community_id: uuid.UUID,
        sort: QuestionSort = QuestionSort.NEWEST,
        search: str | None = None,
        limit: int = 20,
    ) -> list[QuestionResponse]: ...

    async def create_answer(
        self, question_id: uuid.UUID, author_id: uuid.UUID, data: AnswerCreate
    ) -> AnswerResponse: ...

    async def get_answer(self, answer_id: uuid.UUID) -> AnswerResponse | None: ...

    async def list_answers(self, question_id: uuid.UUID) -> list[AnswerResponse]: ...

    async def accept_answer(
        self, question_id: uuid.UUID, answer_id: uuid.UUID
    ) -> AnswerResponse: ...

    async def get_vote(self, answer_id: uuid.UUID, user_id: uuid.UUID) -> VoteType | None: ...

    async def cast_vote(
        self, answer_id: uuid.UUID, user_id: uuid.UUID, vote: VoteType
    ) -> VoteResponse: ...
