"""Notification models.

Cassandra table definitions for:
- Notifications: partitioned by recipient, newest first
- Notifications by id: lookup table used when marking one as read

Notification types:
- REPLY: someone replied to the recipient's comment
- LIKE: someone liked the recipient's comment
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from comment_engine.targets.models import TargetHandle


NOTIFICATION_PREVIEW_MAX_LENGTH = 100


class NotificationType(str, Enum):
    REPLY = "reply"
    LIKE = "like"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    recipient_id TEXT,
    created_at TIMESTAMP,
    notification_id UUID,
    type TEXT,
    actor_id TEXT,
    actor_name TEXT,
    comment_id UUID,
    target_key TEXT,
    message TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    PRIMARY KEY ((recipient_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

NOTIFICATIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications_by_id (
    notification_id UUID PRIMARY KEY,
    recipient_id TEXT,
    created_at TIMESTAMP
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATIONS_TABLE_CQL,
    NOTIFICATIONS_BY_ID_TABLE_CQL,
]


@dataclass
class Notification:
    """A reply or like notification for one recipient."""

    id: UUID
    type: NotificationType
    recipient_id: str
    actor_id: str
    actor_name: str
    comment_id: UUID
    target: TargetHandle
    message: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            id=row.notification_id,
            type=NotificationType(row.type),
            recipient_id=row.recipient_id,
            actor_id=row.actor_id,
            actor_name=row.actor_name or "",
            comment_id=row.comment_id,
            target=TargetHandle.from_key(row.target_key),
            message=row.message,
            is_read=row.is_read or False,
            read_at=row.read_at,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "type": self.type.value,
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "comment_id": str(self.comment_id),
            "target": self.target.key,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def _preview(text: str) -> str:
    if len(text) <= NOTIFICATION_PREVIEW_MAX_LENGTH:
        return text
    return text[: NOTIFICATION_PREVIEW_MAX_LENGTH - 3] + "..."


def create_notification(
    recipient_id: str,
    notification_type: NotificationType,
    actor_id: str,
    actor_name: str,
    comment_id: UUID,
    target: TargetHandle,
    message: str,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        id=uuid4(),
        type=notification_type,
        recipient_id=recipient_id,
        actor_id=actor_id,
        actor_name=actor_name,
        comment_id=comment_id,
        target=target,
        message=message,
        is_read=False,
        read_at=None,
        created_at=datetime.now(UTC),
    )


def create_reply_notification(
    recipient_id: str,
    replier_id: str,
    replier_name: str,
    reply_id: UUID,
    target: TargetHandle,
    reply_text: str,
) -> Notification:
    name = replier_name or "Someone"
    return create_notification(
        recipient_id=recipient_id,
        notification_type=NotificationType.REPLY,
        actor_id=replier_id,
        actor_name=replier_name,
        comment_id=reply_id,
        target=target,
        message=f'{name} replied to your comment: "{_preview(reply_text)}"',
    )


def create_like_notification(
    recipient_id: str,
    liker_id: str,
    liker_name: str,
    comment_id: UUID,
    target: TargetHandle,
) -> Notification:
    name = liker_name or "Someone"
    return create_notification(
        recipient_id=recipient_id,
        notification_type=NotificationType.LIKE,
        actor_id=liker_id,
        actor_name=liker_name,
        comment_id=comment_id,
        target=target,
        message=f"{name} liked your comment",
    )
