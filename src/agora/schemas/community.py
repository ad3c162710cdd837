"""Community and membership Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agora.models.community import CommunityVisibility, MemberRole, MemberStatus
from agora.utils.slugs import SLUG_PATTERN, generate_slug


class JoinAction(StrEnum):
    """Decision a moderator can take on a pending join request."""

    APPROVE = "approve"
    DENY = "deny"


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    title: str = Field(min_length=1, max_length=200)
    slug: str | None = Field(default=None, pattern=SLUG_PATTERN)
    description: str | None = None
    visibility: CommunityVisibility = CommunityVisibility.PUBLIC

    @model_validator(mode="after")
    def _fill_slug(self) -> CommunityCreate:
        self.title = self.title.strip()
        if not self.title:
            raise ValueError("Community title must not be blank")
        if self.slug is None:
            derived = generate_slug(self.title)
            if not derived:
                raise ValueError("Community title must contain letters or digits")
            self.slug = derived
        if self.description is not None:
            self.description = self.description.strip() or None
        return self


class CommunityResponse(BaseModel):
    """Community information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    slug: str
    description: str | None = None
    visibility: CommunityVisibility
    owner_id: uuid.UUID
    created_at: datetime | None = None
    member_count: int = 0

    @property
    def link(self) -> str:
        """Return the in-app path of the community page."""
        return f"/community/{self.slug}"


class MembershipResponse(BaseModel):
    """A single (community, user) membership row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID
    user_id: uuid.UUID
    role: MemberRole
    status: MemberStatus
    joined_at: datetime | None = None
    user_name: str | None = None
    user_email: str | None = None


class MemberListResponse(BaseModel):
    """Membership list split the way the management view shows it."""

    members: list[MembershipResponse] = Field(default_factory=list)
    pending_requests: list[MembershipResponse] = Field(default_factory=list)

    @classmethod
    def from_rows(cls, rows: list[MembershipResponse]) -> MemberListResponse:
        return cls(
            members=[row for row in rows if row.status == MemberStatus.ACTIVE],
            pending_requests=[row for row in rows if row.status == MemberStatus.PENDING],
        )


class JoinRequestDecision(BaseModel):
    """Body of a moderator's approve/deny call.

    Unknown actions are answered by the workflow with "Invalid action".
    """

    action: str


class WorkflowResponse(BaseModel):
    """Structured result of a membership workflow call."""

    success: bool
    message: str
    membership: MembershipResponse | None = None
    members: MemberListResponse | None = None
    notification_id: uuid.UUID | None = None
