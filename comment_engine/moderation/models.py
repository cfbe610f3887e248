"""Moderation state machine and audit records.

Cassandra table definitions for:
- Moderation records: append-only audit trail, partitioned by comment
- Moderation records by day: the same records bucketed by date for stats

Records are never updated or deleted, including when the moderated comment
itself is purged.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from comment_engine.comments.models import CommentStatus


class ModerationAction(str, Enum):
    """Actions a moderator (or the auto-moderator) can take."""

    APPROVE = "approve"
    HIDE = "hide"
    DELETE = "delete"
    FLAG = "flag"
    UNFLAG = "unflag"


ACTION_TARGET_STATUS: dict[ModerationAction, CommentStatus] = {
    ModerationAction.APPROVE: CommentStatus.PUBLISHED,
    ModerationAction.HIDE: CommentStatus.HIDDEN,
    ModerationAction.DELETE: CommentStatus.DELETED,
}

ALLOWED_TRANSITIONS: dict[CommentStatus, frozenset[CommentStatus]] = {
    CommentStatus.PENDING: frozenset(
        {CommentStatus.PUBLISHED, CommentStatus.HIDDEN, CommentStatus.DELETED}
    ),
    CommentStatus.PUBLISHED: frozenset({CommentStatus.HIDDEN, CommentStatus.DELETED}),
    CommentStatus.HIDDEN: frozenset({CommentStatus.PUBLISHED, CommentStatus.DELETED}),
    CommentStatus.DELETED: frozenset(),
}


def can_transition(current: CommentStatus, new: CommentStatus) -> bool:
    """Check whether ``current`` may move to ``new``."""
    return new in ALLOWED_TRANSITIONS[current]


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MODERATION_RECORDS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.moderation_records (
    comment_id UUID,
    created_at TIMESTAMP,
    record_id UUID,
    action TEXT,
    moderator_id TEXT,
    reason TEXT,
    old_status TEXT,
    new_status TEXT,
    PRIMARY KEY ((comment_id), created_at, record_id)
) WITH CLUSTERING ORDER BY (created_at ASC, record_id ASC)
"""

# Date-bucketed copy used by stats queries over a window of days
MODERATION_RECORDS_BY_DAY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.moderation_records_by_day (
    day DATE,
    created_at TIMESTAMP,
    record_id UUID,
    comment_id UUID,
    action TEXT,
    moderator_id TEXT,
    reason TEXT,
    old_status TEXT,
    new_status TEXT,
    PRIMARY KEY ((day), created_at, record_id)
) WITH CLUSTERING ORDER BY (created_at ASC, record_id ASC)
"""

MODERATION_TABLES_CQL = [
    MODERATION_RECORDS_TABLE_CQL,
    MODERATION_RECORDS_BY_DAY_TABLE_CQL,
]


@dataclass(frozen=True)
class ModerationRecord:
    """Immutable audit entry for one moderation action.

    ``moderator_id`` is None for records written by auto-moderation.
    """

    id: UUID
    comment_id: UUID
    action: ModerationAction
    old_status: CommentStatus
    new_status: CommentStatus
    moderator_id: str | None = None
    reason: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_automatic(self) -> bool:
        return self.moderator_id is None

    @classmethod
    def from_row(cls, row: Any) -> "ModerationRecord":
        created_at = row.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            id=row.record_id,
            comment_id=row.comment_id,
            action=ModerationAction(row.action),
            old_status=CommentStatus(row.old_status),
            new_status=CommentStatus(row.new_status),
            moderator_id=row.moderator_id,
            reason=row.reason,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "comment_id": str(self.comment_id),
            "action": self.action.value,
            "moderator_id": self.moderator_id,
            "reason": self.reason,
            "old_status": self.old_status.value,
            "new_status": self.new_status.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ModerationStats:
    """Read-only moderation summary over a window of days."""

    window_days: int
    by_status: dict[str, int]
    total_comments: int
    flagged_comments: int
    pending_comments: int
    reports_in_window: int
    actions_per_day: dict[str, int]
    top_moderators: list[tuple[str, int]]


@dataclass
class BulkModerationResult:
    moderated_count: int = 0
    failed_ids: list[UUID] = field(default_factory=list)


def create_moderation_record(
    comment_id: UUID,
    action: ModerationAction,
    old_status: CommentStatus,
    new_status: CommentStatus,
    moderator_id: str | None = None,
    reason: str | None = None,
) -> ModerationRecord:
    """Create a new moderation record entity."""
    return ModerationRecord(
        id=uuid4(),
        comment_id=comment_id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        moderator_id=moderator_id,
        reason=reason,
        created_at=datetime.now(UTC),
    )
