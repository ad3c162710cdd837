"""SQLAlchemy model for user-targeted notifications."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agora.db.session import Base
from agora.db.time import utcnow


class NotificationType(StrEnum):
    """Kinds of events a notification can describe."""

    ANSWER_RECEIVED = "ANSWER_RECEIVED"
    COMMENT_ON_ANSWER = "COMMENT_ON_ANSWER"
    MENTION = "MENTION"
    PLATFORM_MESSAGE = "PLATFORM_MESSAGE"
    COMMUNITY_INVITATION = "COMMUNITY_INVITATION"
    COMMUNITY_JOIN_REQUEST = "COMMUNITY_JOIN_REQUEST"
    COMMUNITY_ANNOUNCEMENT = "COMMUNITY_ANNOUNCEMENT"
    MEMBER_BLOCKED = "MEMBER_BLOCKED"


class Notification(Base):
    """Message addressed to ``user_id``; only ``is_read`` ever changes."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Plain ids: a notification outlives the question or answer it points at.
    question_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    answer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    community_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("communities.id", ondelete="CASCADE"), nullable=True
    )
    target_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
