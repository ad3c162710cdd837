"""Notification endpoints for the Agora API."""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from agora.api.v1.dependencies import CurrentUserDep, FeedDep, StoreDep
from agora.core.settings import settings
from agora.schemas.notification import NotificationListResponse
from agora.services.notification_feed import NotificationEvent, Subscription

router = APIRouter(prefix="/notifications", tags=["notifications"])


def to_server_sent_event(event: NotificationEvent) -> ServerSentEvent:
    """Wrap a feed event; the SSE event name is INSERT or UPDATE."""
    notification = event.notification
    return ServerSentEvent(
        data=json.dumps(notification.model_dump(mode="json")),
        event=event.kind.value,
        id=str(notification.id),
    )


async def notification_events(subscription: Subscription) -> AsyncIterator[ServerSentEvent]:
    """Relay ``subscription`` until it ends or the client disconnects."""
    async with subscription:
        async for event in subscription:
            yield to_server_sent_event(event)


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    current_user: CurrentUserDep,
    store: StoreDep,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> NotificationListResponse:
    """Latest notifications for the caller plus the unread total."""
    page_size = limit or settings.notification_page_size
    notifications = await store.list_notifications(current_user.id, limit=page_size)
    unread = await store.count_unread_notifications(current_user.id)
    return NotificationListResponse(notifications=notifications, unread_count=unread)


@router.post(
    "/read-all",
    response_model=dict[str, int],
)
async def mark_all_read(current_user: CurrentUserDep, store: StoreDep) -> dict[str, int]:
    """Mark every unread notification of the caller as read."""
    updated = await store.mark_all_notifications_read(current_user.id)
    return {"updated": updated}


@router.post(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> Response:
    """Mark one of the caller's notifications as read."""
    if not await store.mark_notification_read(notification_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stream")
async def stream_notifications(
    current_user: CurrentUserDep,
    feed: FeedDep,
) -> EventSourceResponse:
    """Server-Sent Events stream of the caller's notification changes.

    Only changes written through the local store reach this feed. With the
    hosted backend, clients subscribe to the backend's realtime channel.
    """
    if settings.backend_mode == "rest":
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Live notifications are delivered by the hosted backend",
        )
    subscription = feed.subscribe(current_user.id)
    return EventSourceResponse(
        notification_events(subscription),
        ping=settings.notification_stream_ping_seconds,
    )
