"""Storage interface for the moderation audit trail."""

import abc
from datetime import datetime
from uuid import UUID

from .models import ModerationRecord


class ModerationRecordRepository(abc.ABC):
    """Append-only store: there is deliberately no update or delete."""

    @abc.abstractmethod
    async def append(self, record: ModerationRecord) -> None:
        """Persist a new record."""

    @abc.abstractmethod
    async def list_for_comment(self, comment_id: UUID) -> list[ModerationRecord]:
        """Records for a comment, oldest first."""

    @abc.abstractmethod
    async def list_since(self, since: datetime) -> list[ModerationRecord]:
        """All records created at or after ``since``, oldest first."""


class InMemoryModerationRecordRepository(ModerationRecordRepository):
    def __init__(self) -> None:
        self._records: list[ModerationRecord] = []

    async def append(self, record: ModerationRecord) -> None:
        self._records.append(record)

    async def list_for_comment(self, comment_id: UUID) -> list[ModerationRecord]:
        return [r for r in self._records if r.comment_id == comment_id]

    async def list_since(self, since: datetime) -> list[ModerationRecord]:
        return [r for r in self._records if r.created_at >= since]
