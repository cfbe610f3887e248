"""Cassandra-backed notification repository."""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import Notification
from .repository import NotificationRepository


if TYPE_CHECKING:
    from cassandra.cluster import Session


# Recent notifications returned per recipient
NOTIFICATIONS_FETCH_LIMIT = 200


class CassandraNotificationRepository(NotificationRepository):
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (recipient_id, created_at, notification_id, type, actor_id, actor_name,
             comment_id, target_key, message, is_read, read_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications_by_id
            (notification_id, recipient_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications_by_id
            WHERE notification_id = ?
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE recipient_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = ?, read_at = ?
            WHERE recipient_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._by_recipient = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE recipient_id = ?
            LIMIT ?
        """)

    async def add(self, notification: Notification) -> None:
        await self.session.aexecute(
            self._insert,
            [
                notification.recipient_id,
                notification.created_at,
                notification.id,
                notification.type.value,
                notification.actor_id,
                notification.actor_name,
                notification.comment_id,
                notification.target.key,
                notification.message,
                notification.is_read,
                notification.read_at,
            ],
        )
        await self.session.aexecute(
            self._insert_by_id,
            [notification.id, notification.recipient_id, notification.created_at],
        )

    async def get(self, notification_id: UUID) -> Notification | None:
        lookup = (await self.session.aexecute(self._lookup, [notification_id])).one()
        if not lookup:
            return None

        rows = await self.session.aexecute(
            self._get, [lookup.recipient_id, lookup.created_at, notification_id]
        )
        row = rows.one()
        return Notification.from_row(row) if row else None

    async def save(self, notification: Notification) -> None:
        # Only read state is mutable
        await self.session.aexecute(
            self._mark_read,
            [
                notification.is_read,
                notification.read_at,
                notification.recipient_id,
                notification.created_at,
                notification.id,
            ],
        )

    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        rows = await self.session.aexecute(
            self._by_recipient, [recipient_id, NOTIFICATIONS_FETCH_LIMIT]
        )
        return [Notification.from_row(row) for row in rows]
