"""Notification Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from agora.models.notification import NotificationType


class NotificationDraft(BaseModel):
    """Arguments of the ``create_notification`` procedure."""

    user_id: uuid.UUID
    type: NotificationType
    message: str
    link: str | None = None
    question_id: uuid.UUID | None = None
    answer_id: uuid.UUID | None = None
    community_id: uuid.UUID | None = None
    target_user_id: uuid.UUID | None = None


class NotificationResponse(BaseModel):
    """Notification as shown in the user's panel."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    message: str
    link: str | None = None
    question_id: uuid.UUID | None = None
    answer_id: uuid.UUID | None = None
    community_id: uuid.UUID | None = None
    target_user_id: uuid.UUID | None = None
    is_read: bool = False
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    """Latest notifications plus the caller's unread total."""

    notifications: list[NotificationResponse] = Field(default_factory=list)
    unread_count: int = 0


class MentionExtractRequest(BaseModel):
    content: str


class MentionExtractResponse(BaseModel):
    mentions: list[str]
