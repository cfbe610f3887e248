"""Storage interfaces for interactions and reports."""

import abc
import dataclasses
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from .models import Interaction, Report


class InteractionRepository(abc.ABC):
    @abc.abstractmethod
    async def get(self, actor_id: str, comment_id: UUID) -> Interaction | None:
        """Get an actor's interaction with a comment."""

    @abc.abstractmethod
    async def replace(
        self, expected: Interaction | None, new: Interaction
    ) -> bool:
        """Store ``new`` only if the stored flags still match ``expected``.

        ``expected`` is None when the caller saw no row. An empty ``new``
        removes the row. Returns False when another writer got there first.
        """

    @abc.abstractmethod
    async def list_for_actor(
        self, actor_id: str, comment_ids: Iterable[UUID]
    ) -> dict[UUID, Interaction]:
        """Interactions of one actor on the given comments, keyed by comment."""

    @abc.abstractmethod
    async def purge_comment(self, comment_id: UUID) -> None:
        """Remove every interaction on a comment."""


class ReportRepository(abc.ABC):
    @abc.abstractmethod
    async def add_if_absent(self, report: Report) -> bool:
        """Store a report; return False if the actor already reported."""

    @abc.abstractmethod
    async def list_since(self, since: datetime) -> list[Report]:
        """Reports created at or after ``since``."""

    @abc.abstractmethod
    async def purge_comment(self, comment_id: UUID) -> None:
        """Remove the per-comment report rows."""


def _flags(interaction: Interaction | None) -> tuple[bool, bool] | None:
    if interaction is None:
        return None
    return interaction.liked, interaction.disliked


class InMemoryInteractionRepository(InteractionRepository):
    def __init__(self) -> None:
        self._rows: dict[tuple[str, UUID], Interaction] = {}

    async def get(self, actor_id: str, comment_id: UUID) -> Interaction | None:
        row = self._rows.get((actor_id, comment_id))
        return dataclasses.replace(row) if row else None

    async def replace(
        self, expected: Interaction | None, new: Interaction
    ) -> bool:
        key = (new.actor_id, new.comment_id)
        if _flags(self._rows.get(key)) != _flags(expected):
            return False
        if new.is_empty:
            self._rows.pop(key, None)
        else:
            self._rows[key] = dataclasses.replace(new)
        return True

    async def list_for_actor(
        self, actor_id: str, comment_ids: Iterable[UUID]
    ) -> dict[UUID, Interaction]:
        found: dict[UUID, Interaction] = {}
        for comment_id in comment_ids:
            row = self._rows.get((actor_id, comment_id))
            if row:
                found[comment_id] = dataclasses.replace(row)
        return found

    async def purge_comment(self, comment_id: UUID) -> None:
        for key in [k for k in self._rows if k[1] == comment_id]:
            del self._rows[key]

    def count_flags(self, comment_id: UUID) -> tuple[int, int]:
        """Likes and dislikes recorded for a comment."""
        rows = [r for (_, cid), r in self._rows.items() if cid == comment_id]
        return sum(r.liked for r in rows), sum(r.disliked for r in rows)


class InMemoryReportRepository(ReportRepository):
    """Keeps reports in a dict plus a dated list that survives comment purges.

    The dated list mirrors the ``comment_reports_by_day`` table: stats keep
    counting reports against comments that were later hard-deleted.
    """

    def __init__(self) -> None:
        self._reports: dict[tuple[UUID, str], Report] = {}
        self._by_day: list[Report] = []

    async def add_if_absent(self, report: Report) -> bool:
        key = (report.comment_id, report.actor_id)
        if key in self._reports:
            return False
        self._reports[key] = report
        self._by_day.append(report)
        return True

    async def list_since(self, since: datetime) -> list[Report]:
        return [r for r in self._by_day if r.created_at >= since]

    async def purge_comment(self, comment_id: UUID) -> None:
        for key in [k for k in self._reports if k[0] == comment_id]:
            del self._reports[key]
