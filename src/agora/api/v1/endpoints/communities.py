"""Community and membership endpoints for the Agora API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from agora.api.v1.dependencies import (
    CoordinatorDep,
    CurrentUserDep,
    OptionalActorDep,
    StoreDep,
)
from agora.models.community import MANAGER_ROLES, MemberStatus
from agora.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    JoinRequestDecision,
    MemberListResponse,
    MembershipResponse,
    WorkflowResponse,
)
from agora.services.errors import BackendConflictError
from agora.services.membership import Actor, WorkflowOutcome
from agora.services.results import FailureReason
from agora.services.store import MembershipStore

router = APIRouter(prefix="/communities", tags=["communities"])

FAILURE_STATUS = {
    FailureReason.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    FailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureReason.CONFLICT: status.HTTP_409_CONFLICT,
    FailureReason.INVALID: status.HTTP_400_BAD_REQUEST,
    FailureReason.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
}


def _workflow_response(outcome: WorkflowOutcome, success_status: int) -> JSONResponse:
    body = WorkflowResponse(
        success=outcome.success,
        message=outcome.message,
        membership=outcome.membership,
        members=outcome.members,
        notification_id=outcome.notification_id,
    )
    if outcome.success:
        code = success_status
    else:
        code = FAILURE_STATUS[outcome.result.reason]  # type: ignore[union-attr]
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


async def _require_community(
    store: MembershipStore, community_id: uuid.UUID
) -> CommunityResponse:
    community = await store.get_community(community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return community


@router.get("/", response_model=list[CommunityResponse])
async def list_communities(store: StoreDep) -> list[CommunityResponse]:
    """List all communities, newest first, with active member counts."""
    return await store.list_communities()


@router.post("/",
          response_model=CommunityResponse,
          status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> CommunityResponse:
    """Create a new community owned by the caller."""
    try:
        return await store.create_community(current_user.id, community_data)
    except BackendConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Community already exists",
        ) from exc


@router.get("/slug/{slug}", response_model=CommunityResponse)
async def get_community_by_slug(slug: str, store: StoreDep) -> CommunityResponse:
    """Get a community by its URL slug."""
    community = await store.get_community_by_slug(slug)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return community


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(community_id: uuid.UUID, store: StoreDep) -> CommunityResponse:
    """Get a specific community by ID."""
    return await _require_community(store, community_id)


@router.get("/{community_id}/membership", response_model=MembershipResponse)
async def get_my_membership(
    community_id: uuid.UUID,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> MembershipResponse:
    """Return the caller's membership row for a community."""
    membership = await store.get_membership(community_id, current_user.id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not a member of this community",
        )
    return membership


@router.post(
    "/{community_id}/join",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_community(
    community_id: uuid.UUID,
    actor: OptionalActorDep,
    coordinator: CoordinatorDep,
) -> JSONResponse:
    """Join a public community or request to join a private one."""
    outcome = await coordinator.request_join(community_id, actor)
    if actor is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": outcome.message},
        )
    return _workflow_response(outcome, status.HTTP_201_CREATED)


@router.get("/{community_id}/members", response_model=MemberListResponse)
async def list_members(
    community_id: uuid.UUID,
    current_user: CurrentUserDep,
    store: StoreDep,
    coordinator: CoordinatorDep,
) -> MemberListResponse:
    """List active members; owners and moderators also see pending requests."""
    await _require_community(store, community_id)
    members = await coordinator.load_members(community_id)

    caller = next((m for m in members.members if m.user_id == current_user.id), None)
    can_manage = (
        caller is not None
        and caller.status == MemberStatus.ACTIVE
        and caller.role in MANAGER_ROLES
    )
    if not can_manage:
        members.pending_requests = []
    return members


@router.post(
    "/{community_id}/requests/{user_id}",
    response_model=WorkflowResponse,
)
async def resolve_join_request(
    community_id: uuid.UUID,
    user_id: uuid.UUID,
    decision: JoinRequestDecision,
    current_user: CurrentUserDep,
    coordinator: CoordinatorDep,
) -> JSONResponse:
    """Approve or deny a pending join request."""
    outcome = await coordinator.resolve_join_request(
        community_id,
        user_id,
        decision.action,
        Actor.from_user(current_user),
    )
    return _workflow_response(outcome, status.HTTP_200_OK)
