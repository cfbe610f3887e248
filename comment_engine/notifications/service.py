"""Notification dispatcher.

Reply and like notifications are enqueued here and pulled by clients; there
is no push delivery. Nobody is ever notified about their own activity.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from comment_engine.core.exceptions import NotificationNotFoundError

from .models import (
    Notification,
    create_like_notification,
    create_reply_notification,
)


if TYPE_CHECKING:
    from comment_engine.auth.models import Actor
    from comment_engine.comments.models import Author, Comment

    from .repository import NotificationRepository


logger = structlog.get_logger(__name__)


@dataclass
class NotificationList:
    unread_count: int
    notifications: list[Notification]


class NotificationService:
    """Service for reply/like notifications."""

    def __init__(self, repository: "NotificationRepository"):
        self.repository = repository

    async def notify_reply(
        self, root_author: "Author", comment: "Comment"
    ) -> Notification | None:
        """Notify the author of a root comment about a reply.

        Returns None when the author replied to their own comment.
        """
        if root_author.id == comment.author.id:
            return None

        notification = create_reply_notification(
            recipient_id=root_author.id,
            replier_id=comment.author.id,
            replier_name=comment.author.display_name,
            reply_id=comment.id,
            target=comment.target,
            reply_text=comment.text,
        )
        await self.repository.add(notification)
        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            type=notification.type.value,
            recipient_id=notification.recipient_id,
        )
        return notification

    async def notify_like(
        self, comment: "Comment", actor: "Actor"
    ) -> Notification | None:
        """Notify a comment's author that ``actor`` liked it.

        Returns None when the actor liked their own comment.
        """
        if comment.author.id == actor.id:
            return None

        notification = create_like_notification(
            recipient_id=comment.author.id,
            liker_id=actor.id,
            liker_name=actor.display_name,
            comment_id=comment.id,
            target=comment.target,
        )
        await self.repository.add(notification)
        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            type=notification.type.value,
            recipient_id=notification.recipient_id,
        )
        return notification

    async def list_notifications(
        self, actor: "Actor", unread_only: bool = False
    ) -> NotificationList:
        notifications = await self.repository.list_for_recipient(actor.id)
        unread_count = sum(1 for n in notifications if not n.is_read)
        if unread_only:
            notifications = [n for n in notifications if not n.is_read]
        return NotificationList(unread_count=unread_count, notifications=notifications)

    async def mark_read(self, notification_id: UUID, actor: "Actor") -> Notification:
        """Mark one notification as read.

        Idempotent: an already-read notification keeps its original ``read_at``.

        Raises:
            NotificationNotFoundError: Unknown id or owned by another actor.
        """
        notification = await self.repository.get(notification_id)
        if notification is None or notification.recipient_id != actor.id:
            raise NotificationNotFoundError

        if notification.is_read:
            return notification

        notification.is_read = True
        notification.read_at = datetime.now(UTC)
        await self.repository.save(notification)
        return notification

    async def mark_all_read(self, actor: "Actor") -> int:
        """Mark every unread notification of ``actor`` as read.

        Returns count of notifications marked as read.
        """
        now = datetime.now(UTC)
        marked = 0
        for notification in await self.repository.list_for_recipient(actor.id):
            if notification.is_read:
                continue
            notification.is_read = True
            notification.read_at = now
            await self.repository.save(notification)
            marked += 1

        if marked:
            logger.info("notifications_marked_read", actor_id=actor.id, count=marked)
        return marked
