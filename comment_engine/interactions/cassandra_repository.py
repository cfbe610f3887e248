"""Cassandra-backed interaction and report repositories."""

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from .models import Interaction, Report
from .repository import InteractionRepository, ReportRepository


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CassandraInteractionRepository(InteractionRepository):
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Every write is conditioned on the flags the caller read
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_interactions
            (comment_id, actor_id, liked, disliked, updated_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update = self.session.prepare(f"""
            UPDATE {self.keyspace}.comment_interactions
            SET liked = ?, disliked = ?, updated_at = ?
            WHERE comment_id = ? AND actor_id = ?
            IF liked = ? AND disliked = ?
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_interactions
            WHERE comment_id = ? AND actor_id = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_interactions
            WHERE comment_id = ? AND actor_id = ?
            IF liked = ? AND disliked = ?
        """)

        self._purge = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_interactions
            WHERE comment_id = ?
        """)

    async def get(self, actor_id: str, comment_id: UUID) -> Interaction | None:
        rows = await self.session.aexecute(self._get, [comment_id, actor_id])
        row = rows.one()
        return Interaction.from_row(row) if row else None

    async def replace(
        self, expected: Interaction | None, new: Interaction
    ) -> bool:
        key = [new.comment_id, new.actor_id]
        if expected is None:
            if new.is_empty:
                return True
            result = await self.session.aexecute(
                self._insert, [*key, new.liked, new.disliked, new.updated_at]
            )
        elif new.is_empty:
            result = await self.session.aexecute(
                self._delete, [*key, expected.liked, expected.disliked]
            )
        else:
            result = await self.session.aexecute(
                self._update,
                [
                    new.liked,
                    new.disliked,
                    new.updated_at,
                    *key,
                    expected.liked,
                    expected.disliked,
                ],
            )
        return result.was_applied

    async def list_for_actor(
        self, actor_id: str, comment_ids: Iterable[UUID]
    ) -> dict[UUID, Interaction]:
        found: dict[UUID, Interaction] = {}
        for comment_id in comment_ids:
            interaction = await self.get(actor_id, comment_id)
            if interaction:
                found[comment_id] = interaction
        return found

    async def purge_comment(self, comment_id: UUID) -> None:
        await self.session.aexecute(self._purge, [comment_id])


class CassandraReportRepository(ReportRepository):
    """Reports per comment, plus a by-day copy that outlives comment purges."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Lightweight transaction keeps one report per actor
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_reports
            (comment_id, actor_id, reason, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_by_day = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_reports_by_day
            (day, created_at, comment_id, actor_id)
            VALUES (?, ?, ?, ?)
        """)

        self._by_day = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_reports_by_day
            WHERE day = ? AND created_at >= ?
        """)

        self._purge = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_reports
            WHERE comment_id = ?
        """)

    async def add_if_absent(self, report: Report) -> bool:
        result = await self.session.aexecute(
            self._insert,
            [report.comment_id, report.actor_id, report.reason, report.created_at],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_by_day,
            [
                report.created_at.date(),
                report.created_at,
                report.comment_id,
                report.actor_id,
            ],
        )
        return True

    async def list_since(self, since: datetime) -> list[Report]:
        reports: list[Report] = []
        day = since.date()
        today = datetime.now(since.tzinfo).date()
        while day <= today:
            rows = await self.session.aexecute(self._by_day, [day, since])
            reports.extend(Report.from_row(row) for row in rows)
            day += timedelta(days=1)
        return reports

    async def purge_comment(self, comment_id: UUID) -> None:
        await self.session.aexecute(self._purge, [comment_id])
