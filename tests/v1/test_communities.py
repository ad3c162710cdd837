# tests/v1/test_communities.py
"""Tests for community and membership endpoints."""

import uuid

from fastapi import status

from agora.models import MemberRole, MemberStatus, NotificationType
from tests.factories import add_membership, auth_headers, membership_rows, notifications_for


def test_list_communities(client, public_community, private_community) -> None:
    """Test listing all communities with member counts."""
    response = client.get("/api/v1/communities/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert {c["slug"] for c in data} == {"python-help", "core-devs"}
    assert all(c["member_count"] == 1 for c in data)


def test_get_community_by_id_and_slug(client, private_community) -> None:
    """Test fetching a community by id and by slug."""
    by_id = client.get(f"/api/v1/communities/{private_community.id}")
    by_slug = client.get("/api/v1/communities/slug/core-devs")

    assert by_id.status_code == status.HTTP_200_OK
    assert by_slug.status_code == status.HTTP_200_OK
    assert by_id.json() == by_slug.json()
    assert by_id.json()["visibility"] == "PRIVATE"


def test_get_nonexistent_community(client) -> None:
    """Test getting a non-existent community."""
    response = client.get(f"/api/v1/communities/{uuid.uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = client.get("/api/v1/communities/slug/missing")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_community(client, owner) -> None:
    """Test creating a new community derives its slug."""
    response = client.post(
        "/api/v1/communities/",
        json={"title": "Rust Beginners", "description": "Ask anything"},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["slug"] == "rust-beginners"
    assert data["owner_id"] == str(owner.id)
    assert data["visibility"] == "PUBLIC"
    assert data["member_count"] == 1


def test_create_duplicate_community(client, owner, public_community) -> None:
    """Test creating a community with a duplicate slug."""
    response = client.post(
        "/api/v1/communities/",
        json={"title": "Another", "slug": public_community.slug},
        headers=auth_headers(owner),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == "Community already exists"


def test_create_community_requires_auth(client) -> None:
    """Test creating a community without a token."""
    response = client.post("/api/v1/communities/", json={"title": "Nope"})
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_join_public_community(client, db_session, public_community, requester) -> None:
    response = client.post(
        f"/api/v1/communities/{public_community.id}/join",
        headers=auth_headers(requester),
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Successfully joined the community"
    assert data["membership"]["status"] == "ACTIVE"
    assert data["membership"]["role"] == "MEMBER"


def test_join_private_community_notifies_owner(
    client, db_session, private_community, owner, requester
) -> None:
    response = client.post(
        f"/api/v1/communities/{private_community.id}/join",
        headers=auth_headers(requester),
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["membership"]["status"] == "PENDING"
    sent = notifications_for(db_session, owner, NotificationType.COMMUNITY_JOIN_REQUEST)
    assert [str(n.id) for n in sent] == [data["notification_id"]]


def test_join_anonymous(client, public_community) -> None:
    """Anonymous callers are told to sign in."""
    response = client.post(f"/api/v1/communities/{public_community.id}/join")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {
        "success": False,
        "message": "You need to sign in to join communities.",
    }


def test_join_twice_conflicts(client, public_community, requester) -> None:
    url = f"/api/v1/communities/{public_community.id}/join"
    client.post(url, headers=auth_headers(requester))

    response = client.post(url, headers=auth_headers(requester))

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "You are already a member of this community"


def test_join_unknown_community(client, requester) -> None:
    response = client.post(
        f"/api/v1/communities/{uuid.uuid4()}/join",
        headers=auth_headers(requester),
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False


def test_my_membership(client, public_community, owner, requester) -> None:
    """Test reading the caller's own membership row."""
    url = f"/api/v1/communities/{public_community.id}/membership"

    mine = client.get(url, headers=auth_headers(owner))
    assert mine.status_code == status.HTTP_200_OK
    assert mine.json()["role"] == "OWNER"

    missing = client.get(url, headers=auth_headers(requester))
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json()["detail"] == "Not a member of this community"


def test_members_hide_pending_from_regular_members(
    client, db_session, private_community, owner, requester, outsider
) -> None:
    add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)
    add_membership(db_session, private_community, outsider)
    url = f"/api/v1/communities/{private_community.id}/members"

    as_owner = client.get(url, headers=auth_headers(owner)).json()
    as_member = client.get(url, headers=auth_headers(outsider)).json()

    assert [m["user_id"] for m in as_owner["pending_requests"]] == [str(requester.id)]
    assert as_member["pending_requests"] == []
    assert {m["user_id"] for m in as_member["members"]} == {str(owner.id), str(outsider.id)}


def test_approve_join_request(client, db_session, private_community, owner, requester) -> None:
    add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)

    response = client.post(
        f"/api/v1/communities/{private_community.id}/requests/{requester.id}",
        json={"action": "approve"},
        headers=auth_headers(owner),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["message"] == "Join request approved"
    assert data["members"]["pending_requests"] == []
    assert str(requester.id) in {m["user_id"] for m in data["members"]["members"]}
    rows = membership_rows(db_session, private_community, requester)
    assert [(r.status, r.role) for r in rows] == [(MemberStatus.ACTIVE, MemberRole.MEMBER)]


def test_deny_join_request(client, db_session, private_community, owner, requester) -> None:
    add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)

    response = client.post(
        f"/api/v1/communities/{private_community.id}/requests/{requester.id}",
        json={"action": "deny"},
        headers=auth_headers(owner),
    )

    assert response.status_code == status.HTTP_200_OK
    assert membership_rows(db_session, private_community, requester) == []
    sent = notifications_for(db_session, requester)
    assert [n.type for n in sent] == [NotificationType.COMMUNITY_ANNOUNCEMENT]


def test_resolve_by_non_manager_is_forbidden(
    client, db_session, private_community, requester, outsider
) -> None:
    add_membership(db_session, private_community, requester, status=MemberStatus.PENDING)
    add_membership(db_session, private_community, outsider)

    response = client.post(
        f"/api/v1/communities/{private_community.id}/requests/{requester.id}",
        json={"action": "approve"},
        headers=auth_headers(outsider),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["success"] is False
    rows = membership_rows(db_session, private_community, requester)
    assert [r.status for r in rows] == [MemberStatus.PENDING]


def test_resolve_without_pending_request(client, private_community, owner, requester) -> None:
    response = client.post(
        f"/api/v1/communities/{private_community.id}/requests/{requester.id}",
        json={"action": "deny"},
        headers=auth_headers(owner),
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "No pending join request found"


def test_resolve_rejects_unknown_action(client, private_community, owner, requester) -> None:
    response = client.post(
        f"/api/v1/communities/{private_community.id}/requests/{requester.id}",
        json={"action": "promote"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Invalid action"
