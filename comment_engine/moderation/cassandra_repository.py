"""Cassandra-backed moderation record repository."""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from .models import ModerationRecord
from .repository import ModerationRecordRepository


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CassandraModerationRecordRepository(ModerationRecordRepository):
    """Dual-writes each record by comment and by day."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.moderation_records
            (comment_id, created_at, record_id, action, moderator_id, reason,
             old_status, new_status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_day = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.moderation_records_by_day
            (day, created_at, record_id, comment_id, action, moderator_id, reason,
             old_status, new_status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._by_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.moderation_records
            WHERE comment_id = ?
        """)

        self._by_day = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.moderation_records_by_day
            WHERE day = ? AND created_at >= ?
        """)

    async def append(self, record: ModerationRecord) -> None:
        await self.session.aexecute(
            self._insert,
            [
                record.comment_id,
                record.created_at,
                record.id,
                record.action.value,
                record.moderator_id,
                record.reason,
                record.old_status.value,
                record.new_status.value,
            ],
        )
        await self.session.aexecute(
            self._insert_by_day,
            [
                record.created_at.date(),
                record.created_at,
                record.id,
                record.comment_id,
                record.action.value,
                record.moderator_id,
                record.reason,
                record.old_status.value,
                record.new_status.value,
            ],
        )

    async def list_for_comment(self, comment_id: UUID) -> list[ModerationRecord]:
        rows = await self.session.aexecute(self._by_comment, [comment_id])
        return [ModerationRecord.from_row(row) for row in rows]

    async def list_since(self, since: datetime) -> list[ModerationRecord]:
        records: list[ModerationRecord] = []
        day = since.date()
        today = datetime.now(since.tzinfo).date()
        while day <= today:
            rows = await self.session.aexecute(self._by_day, [day, since])
            records.extend(ModerationRecord.from_row(row) for row in rows)
            day += timedelta(days=1)
        return records
