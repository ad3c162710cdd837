"""SQLAlchemy implementation of the membership backend.

Every procedure runs inside a single transaction on the given session and
either commits its whole change or rolls back, mirroring the behaviour of
the hosted database functions.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agora.db.time import utcnow
from agora.models import (
    MANAGER_ROLES,
    Community,
    CommunityMember,
    CommunityVisibility,
    MemberRole,
    MemberStatus,
    Notification,
    User,
)
from agora.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    JoinAction,
    MembershipResponse,
)
from agora.schemas.notification import NotificationDraft, NotificationResponse
from agora.services.errors import BackendConflictError, BackendError
from agora.services.mentions import extract_mentions
from agora.services.notification_feed import (
    NotificationEvent,
    NotificationEventKind,
    NotificationFeed,
)
from agora.services.results import Failed, FailureReason, ProcedureResult, Succeeded

logger = logging.getLogger(__name__)

_EXISTING_MEMBERSHIP_MESSAGES = {
    MemberStatus.ACTIVE: "You are already a member of this community",
    MemberStatus.PENDING: "Your request to join this community is pending",
    MemberStatus.BLOCKED: "You are blocked from this community",
    MemberStatus.INVITED: "You have already been invited to this community",
}


def _membership_to_schema(row: CommunityMember) -> MembershipResponse:
    return MembershipResponse(
        id=row.id,
        community_id=row.community_id,
        user_id=row.user_id,
        role=row.role,
        status=row.status,
        joined_at=row.joined_at,
        user_name=row.user.name if row.user else None,
        user_email=row.user.email if row.user else None,
    )


class SqlMembershipStore:
    """Membership procedures and queries backed by a SQLAlchemy session."""

    def __init__(self, db: Session, feed: NotificationFeed | None = None) -> None:
        self.db = db
        self.feed = feed

    # Reads

    def _member_counts(self, community_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        if not community_ids:
            return {}
        rows = (
            self.db.query(CommunityMember.community_id, func.count(CommunityMember.id))
            .filter(
                CommunityMember.community_id.in_(community_ids),
                CommunityMember.status == MemberStatus.ACTIVE,
            )
            .group_by(CommunityMember.community_id)
            .all()
        )
        return {community_id: int(count) for community_id, count in rows}

    def _community_to_schema(self, community: Community) -> CommunityResponse:
        response = CommunityResponse.model_validate(community)
        response.member_count = self._member_counts([community.id]).get(community.id, 0)
        return response

    async def get_community(self, community_id: uuid.UUID) -> CommunityResponse | None:
        community = self.db.get(Community, community_id)
        if community is None:
            return None
        return self._community_to_schema(community)

    async def get_community_by_slug(self, slug: str) -> CommunityResponse | None:
        community = self.db.query(Community).filter(Community.slug == slug).first()
        if community is None:
            return None
        return self._community_to_schema(community)

    async def list_communities(self) -> list[CommunityResponse]:
        communities = self.db.query(Community).order_by(Community.created_at.desc()).all()
        counts = self._member_counts([c.id for c in communities])
        results = []
        for community in communities:
            response = CommunityResponse.model_validate(community)
            response.member_count = counts.get(community.id, 0)
            results.append(response)
        return results

    async def get_membership(
        self, community_id: uuid.UUID, user_id: uuid.UUID
    ) -> MembershipResponse | None:
        row = self._find_membership(community_id, user_id)
        return _membership_to_schema(row) if row else None

    async def list_members(
        self, community_id: uuid.UUID, status: MemberStatus | None = None
    ) -> list[MembershipResponse]:
        query = self.db.query(CommunityMember).filter(
            CommunityMember.community_id == community_id
        )
        if status is not None:
            query = query.filter(CommunityMember.status == status)
        rows = query.order_by(CommunityMember.joined_at.desc()).all()
        return [_membership_to_schema(row) for row in rows]

    def _find_membership(
        self, community_id: uuid.UUID, user_id: uuid.UUID
    ) -> CommunityMember | None:
        return (
            self.db.query(CommunityMember)
            .filter(
                CommunityMember.community_id == community_id,
                CommunityMember.user_id == user_id,
            )
            .first()
        )

    # Writes

    async def create_community(
        self, owner_id: uuid.UUID, data: CommunityCreate
    ) -> CommunityResponse:
        """Insert a community and its owner's ACTIVE membership."""
        existing = self.db.query(Community).filter(Community.slug == data.slug).first()
        if existing:
            raise BackendConflictError("Community already exists")

        community = Community(
            title=data.title,
            slug=data.slug,
            description=data.description,
            visibility=data.visibility,
            owner_id=owner_id,
        )
        self.db.add(community)
        try:
            self.db.flush()
            self.db.add(
                CommunityMember(
                    community_id=community.id,
                    user_id=owner_id,
                    role=MemberRole.OWNER,
                    status=MemberStatus.ACTIVE,
                )
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise BackendConflictError("Community already exists") from exc

        self.db.refresh(community)
        logger.info("Community %s created by %s", community.slug, owner_id)
        return self._community_to_schema(community)

    async def handle_join_request(
        self, community_id: uuid.UUID, user_id: uuid.UUID | None
    ) -> ProcedureResult:
        """Join a public community or file a request for a private one."""
        if user_id is None:
            return Failed("Authentication required", FailureReason.UNAUTHORIZED)

        community = self.db.get(Community, community_id)
        if community is None:
            return Failed("Community not found", FailureReason.NOT_FOUND)

        existing = self._find_membership(community_id, user_id)
        if existing is not None:
            return Failed(_EXISTING_MEMBERSHIP_MESSAGES[existing.status], FailureReason.CONFLICT)

        is_public = community.visibility == CommunityVisibility.PUBLIC
        self.db.add(
            CommunityMember(
                community_id=community_id,
                user_id=user_id,
                role=MemberRole.MEMBER,
                status=MemberStatus.ACTIVE if is_public else MemberStatus.PENDING,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the row first.
            self.db.rollback()
            return Failed(
                "You already have a membership for this community", FailureReason.CONFLICT
            )

        if is_public:
            return Succeeded("Successfully joined the community")
        return Succeeded("Join request sent. Waiting for approval.")

    async def manage_join_request(
        self,
        community_id: uuid.UUID,
        user_id: uuid.UUID,
        action: JoinAction | str,
        moderator_id: uuid.UUID | None,
    ) -> ProcedureResult:
        """Approve or deny a PENDING membership on behalf of a manager."""
        try:
            decision = JoinAction(action)
        except ValueError:
            return Failed("Invalid action", FailureReason.INVALID)

        if moderator_id is None:
            return Failed("Authentication required", FailureReason.UNAUTHORIZED)

        if self.db.get(Community, community_id) is None:
            return Failed("Community not found", FailureReason.NOT_FOUND)

        moderator = self._find_membership(community_id, moderator_id)
        if (
            moderator is None
            or moderator.status != MemberStatus.ACTIVE
            or moderator.role not in MANAGER_ROLES
        ):
            return Failed(
                "You do not have permission to manage join requests",
                FailureReason.UNAUTHORIZED,
            )

        pending = self._find_membership(community_id, user_id)
        if pending is None or pending.status != MemberStatus.PENDING:
            return Failed("No pending join request found", FailureReason.NOT_FOUND)

        if decision == JoinAction.APPROVE:
            pending.status = MemberStatus.ACTIVE
            pending.joined_at = utcnow()
            message = "Join request approved"
        else:
            self.db.delete(pending)
            message = "Join request denied"

        self.db.commit()
        return Succeeded(message)

    async def create_notification(self, draft: NotificationDraft) -> uuid.UUID:
        if self.db.get(User, draft.user_id) is None:
            raise BackendError(f"Notification recipient {draft.user_id} not found")

        notification = Notification(**draft.model_dump())
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        self._publish(NotificationEventKind.INSERT, notification)
        return notification.id

    async def list_notifications(
        self, user_id: uuid.UUID, limit: int = 10
    ) -> list[NotificationResponse]:
        rows = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .all()
        )
        return [NotificationResponse.model_validate(row) for row in rows]

    async def count_unread_notifications(self, user_id: uuid.UUID) -> int:
        return (
            self.db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
            or 0
        )

    async def mark_notification_read(
        self, notification_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification is None:
            return False
        if not notification.is_read:
            notification.is_read = True
            self.db.commit()
            self._publish(NotificationEventKind.UPDATE, notification)
        return True

    async def mark_all_notifications_read(self, user_id: uuid.UUID) -> int:
        unread = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .all()
        )
        for notification in unread:
            notification.is_read = True
        self.db.commit()
        for notification in unread:
            self._publish(NotificationEventKind.UPDATE, notification)
        return len(unread)

    async def extract_mentions(self, content: str) -> list[str]:
        return extract_mentions(content)

    def _publish(self, kind: NotificationEventKind, notification: Notification) -> None:
        if self.feed is None:
            return
        self.feed.publish(
            NotificationEvent(
                kind=kind, notification=NotificationResponse.model_validate(notification)
            )
        )
