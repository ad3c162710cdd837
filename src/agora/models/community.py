"""SQLAlchemy models for communities and their membership rows."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agora.db.session import Base
from agora.db.time import utcnow
from agora.models.user import User


class CommunityVisibility(StrEnum):
    """Whether joining requires a moderator's approval."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class MemberRole(StrEnum):
    """Role held inside a single community."""

    OWNER = "OWNER"
    MODERATOR = "MODERATOR"
    MEMBER = "MEMBER"


class MemberStatus(StrEnum):
    """Lifecycle state of a membership row."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    BLOCKED = "BLOCKED"
    INVITED = "INVITED"


MANAGER_ROLES = frozenset({MemberRole.OWNER, MemberRole.MODERATOR})


class Community(Base):
    """A named group owning questions and membership."""

    __tablename__ = "communities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    # URL handle, e.g. /community/<slug>.
    slug: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[CommunityVisibility] = mapped_column(
        Enum(CommunityVisibility, name="community_visibility"),
        nullable=False,
        default=CommunityVisibility.PUBLIC,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class CommunityMember(Base):
    """Membership of one user in one community."""

    __tablename__ = "community_members"
    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_members_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, name="community_member_role"),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    status: Mapped[MemberStatus] = mapped_column(
        Enum(MemberStatus, name="community_member_status"),
        nullable=False,
        default=MemberStatus.ACTIVE,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Only set by moderation actions outside the join-request flow.
    block_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    blocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    blocked_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )

    user: Mapped[User] = relationship("User", foreign_keys=[user_id], lazy="joined")
