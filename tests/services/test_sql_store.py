# tests/services/test_sql_store.py
"""Tests for the SQLAlchemy membership store procedures."""

import asyncio
import uuid

import pytest

from agora.models import MemberRole, MemberStatus, NotificationType
from agora.schemas.community import CommunityCreate, JoinAction
from agora.schemas.notification import NotificationDraft
from agora.services.errors import BackendConflictError, BackendError
from agora.services.notification_feed import NotificationEventKind
from agora.services.results import Failed, FailureReason, Succeeded
from tests.factories import add_membership, membership_rows


def _draft(user, message="hello", **extra) -> NotificationDraft:
    return NotificationDraft(
        user_id=user.id,
        type=NotificationType.PLATFORM_MESSAGE,
        message=message,
        **extra,
    )


class TestHandleJoinRequest:
    """Test the join procedure."""

    @pytest.mark.asyncio
    async def test_requires_user(self, store, public_community):
        result = await store.handle_join_request(public_community.id, None)

        assert result == Failed("Authentication required", FailureReason.UNAUTHORIZED)

    @pytest.mark.asyncio
    async def test_unknown_community(self, store, requester):
        result = await store.handle_join_request(uuid.uuid4(), requester.id)

        assert isinstance(result, Failed)
        assert result.reason == FailureReason.NOT_FOUND

    @pytest.mark.asyncio
    async def test_public_and_private_messages(
        self, store, public_community, private_community, requester
    ):
        joined = await store.handle_join_request(public_community.id, requester.id)
        requested = await store.handle_join_request(private_community.id, requester.id)

        assert joined == Succeeded("Successfully joined the community")
        assert requested == Succeeded("Join request sent. Waiting for approval.")

    @pytest.mark.asyncio
    async def test_invited_user_cannot_request_again(
        self, store, db_session, private_community, requester
    ):
        add_membership(db_session, private_community, requester, status=MemberStatus.INVITED)

        result = await store.handle_join_request(private_community.id, requester.id)

        assert result == Failed(
            "You have already been invited to this community", FailureReason.CONFLICT
        )

    @pytest.mark.asyncio
    async def test_concurrent_insert_is_reported_as_conflict(
        self, store, db_session, private_community, requester, mocker
    ):
        """A row inserted between the existence check and the commit is a conflict."""
        add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)
        mocker.patch.object(store, "_find_membership", return_value=None)

        result = await store.handle_join_request(private_community.id, requester.id)

        assert isinstance(result, Failed)
        assert result.reason == FailureReason.CONFLICT
        assert len(membership_rows(db_session, private_community, requester)) == 1


class TestManageJoinRequest:
    """Test the approve/deny procedure."""

    @pytest.mark.asyncio
    async def test_invalid_action(self, store, private_community, owner, requester):
        result = await store.manage_join_request(
            private_community.id, requester.id, "ban", owner.id
        )

        assert result == Failed("Invalid action", FailureReason.INVALID)

    @pytest.mark.asyncio
    async def test_requires_moderator(self, store, private_community, requester):
        result = await store.manage_join_request(
            private_community.id, requester.id, JoinAction.APPROVE, None
        )

        assert result.success is False
        assert result.reason == FailureReason.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_active_member_is_not_pending(
        self, store, db_session, private_community, owner, requester
    ):
        add_membership(db_session, private_community, requester)

        result = await store.manage_join_request(
            private_community.id, requester.id, JoinAction.DENY, owner.id
        )

        assert result == Failed("No pending join request found", FailureReason.NOT_FOUND)
        rows = membership_rows(db_session, private_community, requester)
        assert [r.status for r in rows] == [MemberStatus.ACTIVE]

    @pytest.mark.asyncio
    async def test_approve_keeps_role(
        self, store, db_session, private_community, owner, requester
    ):
        add_membership(
            db_session,
            private_community,
            requester,
            role=MemberRole.MODERATOR,
            status=MemberStatus.PENDING,
        )

        result = await store.manage_join_request(
            private_community.id, requester.id, JoinAction.APPROVE, owner.id
        )

        assert result == Succeeded("Join request approved")
        rows = membership_rows(db_session, private_community, requester)
        assert [(r.role, r.status) for r in rows] == [(MemberRole.MODERATOR, MemberStatus.ACTIVE)]


class TestCommunities:
    """Test community creation and reads."""

    @pytest.mark.asyncio
    async def test_create_adds_owner_membership(self, store, owner):
        created = await store.create_community(
            owner.id, CommunityCreate(title="Rust Beginners", visibility="PRIVATE")
        )

        assert created.slug == "rust-beginners"
        assert created.member_count == 1
        membership = await store.get_membership(created.id, owner.id)
        assert membership is not None
        assert (membership.role, membership.status) == (MemberRole.OWNER, MemberStatus.ACTIVE)
        assert membership.user_email == owner.email

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, store, owner, public_community):
        with pytest.raises(BackendConflictError):
            await store.create_community(
                owner.id, CommunityCreate(title="Anything", slug=public_community.slug)
            )

    @pytest.mark.asyncio
    async def test_member_count_ignores_pending(
        self, store, db_session, private_community, requester, outsider
    ):
        add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)
        add_membership(db_session, private_community, outsider)

        community = await store.get_community_by_slug("core-devs")

        assert community is not None
        assert community.member_count == 2

    @pytest.mark.asyncio
    async def test_list_members_filters_by_status(
        self, store, db_session, private_community, owner, requester
    ):
        add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)

        pending = await store.list_members(private_community.id, MemberStatus.PENDING)
        everyone = await store.list_members(private_community.id)

        assert [m.user_id for m in pending] == [requester.id]
        assert {m.user_id for m in everyone} == {owner.id, requester.id}


class TestNotifications:
    """Test notification persistence and feed publishing."""

    @pytest.mark.asyncio
    async def test_create_publishes_insert(self, store, feed, requester):
        async with feed.subscribe(requester.id) as subscription:
            notification_id = await store.create_notification(_draft(requester))
            event = await asyncio.wait_for(subscription.__anext__(), timeout=1)

        assert event.kind == NotificationEventKind.INSERT
        assert event.notification.id == notification_id
        assert event.notification.is_read is False

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, store):
        draft = NotificationDraft(
            user_id=uuid.uuid4(), type=NotificationType.PLATFORM_MESSAGE, message="lost"
        )

        with pytest.raises(BackendError):
            await store.create_notification(draft)

    @pytest.mark.asyncio
    async def test_mark_read_only_for_recipient(self, store, requester, outsider):
        notification_id = await store.create_notification(_draft(requester))

        assert await store.mark_notification_read(notification_id, outsider.id) is False
        assert await store.count_unread_notifications(requester.id) == 1
        assert await store.mark_notification_read(notification_id, requester.id) is True
        assert await store.count_unread_notifications(requester.id) == 0

    @pytest.mark.asyncio
    async def test_mark_all_read_publishes_updates(self, store, feed, requester, outsider):
        await store.create_notification(_draft(requester, "one"))
        await store.create_notification(_draft(requester, "two"))
        await store.create_notification(_draft(outsider, "other"))

        async with feed.subscribe(requester.id) as subscription:
            updated = await store.mark_all_notifications_read(requester.id)
            first = await asyncio.wait_for(subscription.__anext__(), timeout=1)
            second = await asyncio.wait_for(subscription.__anext__(), timeout=1)

        assert updated == 2
        assert {first.kind, second.kind} == {NotificationEventKind.UPDATE}
        assert {first.notification.message, second.notification.message} == {"one", "two"}
        assert await store.count_unread_notifications(outsider.id) == 1
        assert await store.mark_all_notifications_read(requester.id) == 0

    @pytest.mark.asyncio
    async def test_list_respects_limit(self, store, requester):
        for index in range(3):
            await store.create_notification(_draft(requester, f"n{index}"))

        listed = await store.list_notifications(requester.id, limit=2)

        assert len(listed) == 2
        assert all(n.user_id == requester.id for n in listed)
