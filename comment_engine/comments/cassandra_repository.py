"""Cassandra-backed comment repository."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from .models import Comment, CommentState, CommentStatus
from .repository import CommentRepository


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from comment_engine.targets.models import TargetHandle


# Partition keys per IN query when merging counts into listings
COUNTS_BATCH_SIZE = 100

LIVE_STATUSES = [
    CommentStatus.PENDING.value,
    CommentStatus.PUBLISHED.value,
    CommentStatus.HIDDEN.value,
]


class CassandraCommentRepository(CommentRepository):
    """Comment rows in ``{keyspace}.comments``, counts in ``comment_counts``.

    Listings go through secondary indexes; ordering happens in the service.
    Status and flag changes are lightweight transactions conditioned on the
    values the caller read.
    """

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (comment_id, target_key, parent_id, author_id, author_name,
             author_avatar, author_is_admin, text, status, is_flagged,
             is_edited, edited_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_text = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET text = ?, is_edited = true, edited_at = ?, updated_at = ?
            WHERE comment_id = ?
            IF status IN (?, ?, ?)
        """)

        self._update_state = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET status = ?, is_flagged = ?, updated_at = ?
            WHERE comment_id = ?
            IF status = ? AND is_flagged = ?
        """)

        self._adjust_counts = self.session.prepare(f"""
            UPDATE {self.keyspace}.comment_counts
            SET like_count = like_count + ?,
                dislike_count = dislike_count + ?,
                reply_count = reply_count + ?,
                report_count = report_count + ?
            WHERE comment_id = ?
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._get_counts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_counts WHERE comment_id IN ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._delete_counts = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_counts WHERE comment_id = ?
        """)

        self._by_target = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE target_key = ?
        """)

        self._by_parent = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE parent_id = ?
        """)

        self._by_author = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE author_id = ?
        """)

        self._all = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
        """)

    @staticmethod
    def _row_values(comment: Comment) -> list:
        return [
            comment.id,
            comment.target.key,
            comment.parent_id,
            comment.author.id,
            comment.author.display_name,
            comment.author.avatar,
            comment.author.is_admin,
            comment.text,
            comment.status.value,
            comment.is_flagged,
            comment.is_edited,
            comment.edited_at,
            comment.created_at,
            comment.updated_at,
        ]

    async def _counts_for(self, comment_ids: list[UUID]) -> dict[UUID, Any]:
        counts: dict[UUID, Any] = {}
        for start in range(0, len(comment_ids), COUNTS_BATCH_SIZE):
            batch = comment_ids[start : start + COUNTS_BATCH_SIZE]
            rows = await self.session.aexecute(self._get_counts, [batch])
            counts.update((row.comment_id, row) for row in rows)
        return counts

    async def _with_counts(self, rows) -> list[Comment]:
        rows = list(rows)
        if not rows:
            return []
        counts = await self._counts_for([row.comment_id for row in rows])
        return [Comment.from_row(row, counts.get(row.comment_id)) for row in rows]

    async def get(self, comment_id: UUID) -> Comment | None:
        rows = await self.session.aexecute(self._get, [comment_id])
        row = rows.one()
        if row is None:
            return None
        (comment,) = await self._with_counts([row])
        return comment

    async def add(self, comment: Comment) -> None:
        await self.session.aexecute(self._insert, self._row_values(comment))

    async def update_text(
        self, comment_id: UUID, text: str, edited_at: datetime
    ) -> bool:
        result = await self.session.aexecute(
            self._update_text,
            [text, edited_at, edited_at, comment_id, *LIVE_STATUSES],
        )
        return result.was_applied

    async def update_state(
        self,
        comment_id: UUID,
        expected: CommentState,
        new: CommentState,
        updated_at: datetime,
    ) -> bool:
        result = await self.session.aexecute(
            self._update_state,
            [
                new.status.value,
                new.is_flagged,
                updated_at,
                comment_id,
                expected.status.value,
                expected.is_flagged,
            ],
        )
        return result.was_applied

    async def adjust_counts(
        self,
        comment_id: UUID,
        *,
        like: int = 0,
        dislike: int = 0,
        reply: int = 0,
        report: int = 0,
    ) -> None:
        if not (like or dislike or reply or report):
            return
        await self.session.aexecute(
            self._adjust_counts, [like, dislike, reply, report, comment_id]
        )

    async def remove(self, comment_id: UUID) -> None:
        await self.session.aexecute(self._delete, [comment_id])
        await self.session.aexecute(self._delete_counts, [comment_id])

    async def list_for_target(self, target: "TargetHandle") -> list[Comment]:
        rows = await self.session.aexecute(self._by_target, [target.key])
        return await self._with_counts(rows)

    async def list_replies(self, root_id: UUID) -> list[Comment]:
        rows = await self.session.aexecute(self._by_parent, [root_id])
        return await self._with_counts(rows)

    async def list_by_author(self, author_id: str) -> list[Comment]:
        rows = await self.session.aexecute(self._by_author, [author_id])
        return await self._with_counts(rows)

    async def list_all(self) -> list[Comment]:
        # Full scan: moderation views and stats only
        rows = await self.session.aexecute(self._all)
        return await self._with_counts(rows)
