"""Notification API endpoints (pull-based)."""

from uuid import UUID

from fastapi import APIRouter

from comment_engine.auth.dependencies import CurrentActor
from comment_engine.comments.dependencies import NotificationServiceDep

from .schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)


router = APIRouter(prefix="/comments/notifications", tags=["notifications"])


@router.get(
    "/",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    notification_service: NotificationServiceDep,
    actor: CurrentActor,
    unread_only: bool = False,
) -> NotificationListResponse:
    listing = await notification_service.list_notifications(actor, unread_only)
    return NotificationListResponse.from_list(listing)


@router.post(
    "/read-all/",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    notification_service: NotificationServiceDep,
    actor: CurrentActor,
) -> MarkAllReadResponse:
    marked = await notification_service.mark_all_read(actor)
    return MarkAllReadResponse(marked_count=marked)


@router.post(
    "/{notification_id}/read/",
    response_model=NotificationResponse,
    summary="Mark notification as read",
)
async def mark_read(
    notification_id: UUID,
    notification_service: NotificationServiceDep,
    actor: CurrentActor,
) -> NotificationResponse:
    """Mark one notification as read. Repeating the call changes nothing."""
    notification = await notification_service.mark_read(notification_id, actor)
    return NotificationResponse.from_notification(notification)
