"""Pydantic schemas for notification endpoints."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel

from comment_engine.targets.models import ContentType

from .models import NotificationType


if TYPE_CHECKING:
    from .models import Notification
    from .service import NotificationList


class NotificationResponse(BaseModel):
    id: UUID
    type: NotificationType
    actor_id: str
    actor_name: str
    comment_id: UUID
    content_type: ContentType
    object_id: str
    message: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, n: "Notification") -> "NotificationResponse":
        return cls(
            id=n.id,
            type=n.type,
            actor_id=n.actor_id,
            actor_name=n.actor_name,
            comment_id=n.comment_id,
            content_type=n.target.content_type,
            object_id=n.target.object_id,
            message=n.message,
            is_read=n.is_read,
            read_at=n.read_at,
            created_at=n.created_at,
        )


class NotificationListResponse(BaseModel):
    unread_count: int
    notifications: list[NotificationResponse]

    @classmethod
    def from_list(cls, listing: "NotificationList") -> "NotificationListResponse":
        return cls(
            unread_count=listing.unread_count,
            notifications=[
                NotificationResponse.from_notification(n)
                for n in listing.notifications
            ],
        )


class MarkAllReadResponse(BaseModel):
    marked_count: int
