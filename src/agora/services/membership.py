"""Join-request workflow for communities.

The coordinator sits between a caller (HTTP handler, script, test) and a
:class:`~agora.services.store.MembershipStore`. It never decides membership
itself: the store's procedures are the authority for uniqueness and role
checks. The coordinator's job is to

1. call the procedure and interpret its structured result,
2. dispatch the follow-up notification on a best-effort basis, and
3. re-read authoritative state so the caller renders what the backend holds.

Failures are returned, not raised, and nothing is retried. A notification
that cannot be delivered after a successful membership change is logged
and recorded on the outcome; the membership change stands.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from agora.models.community import CommunityVisibility
from agora.models.notification import NotificationType
from agora.models.user import User
from agora.schemas.community import (
    CommunityResponse,
    JoinAction,
    MemberListResponse,
    MembershipResponse,
)
from agora.schemas.notification import NotificationDraft
from agora.services.errors import BackendAuthorizationError, BackendConflictError
from agora.services.results import Failed, FailureReason, ProcedureResult
from agora.services.store import MembershipStore

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED = "You need to sign in to join communities."
JOIN_FAILED = "Something went wrong. Please try again."
RESOLVE_FAILED = "Failed to process request. Please try again."
APPROVED_MESSAGE = "Your request to join the community has been approved!"
DENIED_MESSAGE = "Your request to join the community has been denied."


@dataclass(frozen=True)
class Actor:
    """The authenticated user on whose behalf a workflow call runs."""

    id: uuid.UUID
    email: str
    name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> Actor:
        return cls(id=user.id, email=user.email, name=user.name)


@dataclass(frozen=True)
class WorkflowOutcome:
    """What a workflow call did, as seen by the caller."""

    result: ProcedureResult
    membership: MembershipResponse | None = None
    members: MemberListResponse | None = None
    notification_id: uuid.UUID | None = None
    notification_error: str | None = None

    @property
    def success(self) -> bool:
        return self.result.success

    @property
    def message(self) -> str:
        return self.result.message


def join_request_notification(community: CommunityResponse, actor: Actor) -> NotificationDraft:
    """Notification telling a private community's owner about a new request."""
    return NotificationDraft(
        user_id=community.owner_id,
        type=NotificationType.COMMUNITY_JOIN_REQUEST,
        message=f'{actor.email} has requested to join your community "{community.title}"',
        link=community.link,
        community_id=community.id,
        target_user_id=actor.id,
    )


def decision_notification(
    community: CommunityResponse, user_id: uuid.UUID, action: JoinAction
) -> NotificationDraft:
    """Notification telling a requester how their request was decided."""
    approved = action == JoinAction.APPROVE
    return NotificationDraft(
        user_id=user_id,
        type=(
            NotificationType.COMMUNITY_INVITATION
            if approved
            else NotificationType.COMMUNITY_ANNOUNCEMENT
        ),
        message=APPROVED_MESSAGE if approved else DENIED_MESSAGE,
        link=community.link,
        community_id=community.id,
    )


def _failure_from_exception(exc: Exception, fallback: str) -> Failed:
    if isinstance(exc, BackendAuthorizationError):
        return Failed(str(exc) or fallback, FailureReason.UNAUTHORIZED)
    if isinstance(exc, BackendConflictError):
        return Failed(str(exc) or fallback, FailureReason.CONFLICT)
    return Failed(fallback, FailureReason.TRANSPORT)


class MembershipCoordinator:
    """Drives a join request from submission to resolution."""

    def __init__(self, store: MembershipStore) -> None:
        self.store = store

    async def request_join(
        self, community_id: uuid.UUID, actor: Actor | None
    ) -> WorkflowOutcome:
        """Ask to join ``community_id`` as ``actor``.

        Public communities admit the actor immediately; private ones record a
        PENDING request and notify the owner. The returned membership is the
        one read back from the store after the procedure succeeded.
        """
        if actor is None:
            return WorkflowOutcome(Failed(SIGN_IN_REQUIRED, FailureReason.UNAUTHORIZED))

        try:
            community = await self.store.get_community(community_id)
            if community is None:
                return WorkflowOutcome(Failed("Community not found", FailureReason.NOT_FOUND))
            result = await self.store.handle_join_request(community_id, actor.id)
        except Exception as exc:
            logger.exception("Error joining community %s", community_id)
            return WorkflowOutcome(_failure_from_exception(exc, JOIN_FAILED))

        if isinstance(result, Failed):
            logger.info(
                "Join request by %s for %s refused: %s", actor.id, community_id, result.message
            )
            return WorkflowOutcome(result)

        notification_id: uuid.UUID | None = None
        notification_error: str | None = None
        if community.visibility == CommunityVisibility.PRIVATE:
            notification_id, notification_error = await self._notify(
                join_request_notification(community, actor)
            )

        membership = await self._reload_membership(community_id, actor.id)
        logger.info(
            "Join request by %s for %s accepted (%s)",
            actor.id,
            community_id,
            membership.status if membership else "unknown",
        )
        return WorkflowOutcome(
            result,
            membership=membership,
            notification_id=notification_id,
            notification_error=notification_error,
        )

    async def resolve_join_request(
        self,
        community_id: uuid.UUID,
        user_id: uuid.UUID,
        action: JoinAction | str,
        actor: Actor | None,
    ) -> WorkflowOutcome:
        """Approve or deny ``user_id``'s pending request as ``actor``.

        Role checks happen in the store. On success the requester is
        notified and the full membership list is re-read.
        """
        if actor is None:
            return WorkflowOutcome(Failed(SIGN_IN_REQUIRED, FailureReason.UNAUTHORIZED))
        try:
            decision = JoinAction(action)
        except ValueError:
            return WorkflowOutcome(Failed("Invalid action", FailureReason.INVALID))

        try:
            community = await self.store.get_community(community_id)
            if community is None:
                return WorkflowOutcome(Failed("Community not found", FailureReason.NOT_FOUND))
            result = await self.store.manage_join_request(
                community_id, user_id, decision, actor.id
            )
        except Exception as exc:
            logger.exception("Error managing join request for %s", community_id)
            return WorkflowOutcome(_failure_from_exception(exc, RESOLVE_FAILED))

        if isinstance(result, Failed):
            logger.info(
                "%s of %s in %s by %s refused: %s",
                decision.value,
                user_id,
                community_id,
                actor.id,
                result.message,
            )
            return WorkflowOutcome(result)

        notification_id, notification_error = await self._notify(
            decision_notification(community, user_id, decision)
        )
        members = await self._reload_members(community_id)
        logger.info("%s of %s in %s by %s", decision.value, user_id, community_id, actor.id)
        return WorkflowOutcome(
            result,
            members=members,
            notification_id=notification_id,
            notification_error=notification_error,
        )

    async def load_members(self, community_id: uuid.UUID) -> MemberListResponse:
        """Read the community's active members and pending requests."""
        rows = await self.store.list_members(community_id)
        return MemberListResponse.from_rows(rows)

    async def _notify(self, draft: NotificationDraft) -> tuple[uuid.UUID | None, str | None]:
        try:
            return await self.store.create_notification(draft), None
        except Exception as exc:
            logger.warning(
                "Could not deliver %s notification to %s: %s", draft.type, draft.user_id, exc
            )
            return None, str(exc) or exc.__class__.__name__

    async def _reload_membership(
        self, community_id: uuid.UUID, user_id: uuid.UUID
    ) -> MembershipResponse | None:
        try:
            return await self.store.get_membership(community_id, user_id)
        except Exception:
            logger.exception("Could not reload membership of %s in %s", user_id, community_id)
            return None

    async def _reload_members(self, community_id: uuid.UUID) -> MemberListResponse | None:
        try:
            return await self.load_members(community_id)
        except Exception:
            logger.exception("Could not reload members of %s", community_id)
            return None

