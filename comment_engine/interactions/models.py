"""Like/dislike interactions and reports.

Cassandra table definitions for:
- Comment interactions: one row per (actor, comment) with like/dislike flags
- Comment reports: one row per (actor, comment)

The ledger moves the counters in ``comment_counts``; these tables record
who did what.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class InteractionType(str, Enum):
    """Interaction kinds accepted by the interact endpoint."""

    LIKE = "like"
    DISLIKE = "dislike"
    REPORT = "report"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

INTERACTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_interactions (
    comment_id UUID,
    actor_id TEXT,
    liked BOOLEAN,
    disliked BOOLEAN,
    updated_at TIMESTAMP,
    PRIMARY KEY ((comment_id), actor_id)
)
"""

REPORTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports (
    comment_id UUID,
    actor_id TEXT,
    reason TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), actor_id)
)
"""

# Date-bucketed copy for moderation stats
REPORTS_BY_DAY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports_by_day (
    day DATE,
    created_at TIMESTAMP,
    comment_id UUID,
    actor_id TEXT,
    PRIMARY KEY ((day), created_at, comment_id, actor_id)
)
"""

INTERACTIONS_TABLES_CQL = [
    INTERACTIONS_TABLE_CQL,
    REPORTS_TABLE_CQL,
    REPORTS_BY_DAY_TABLE_CQL,
]


@dataclass
class Interaction:
    """An actor's like/dislike state on one comment.

    ``liked`` and ``disliked`` are never both true.
    """

    actor_id: str
    comment_id: UUID
    liked: bool = False
    disliked: bool = False
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_empty(self) -> bool:
        return not (self.liked or self.disliked)

    @classmethod
    def from_row(cls, row: Any) -> "Interaction":
        return cls(
            actor_id=row.actor_id,
            comment_id=row.comment_id,
            liked=bool(row.liked),
            disliked=bool(row.disliked),
            updated_at=row.updated_at,
        )


@dataclass(frozen=True)
class Report:
    actor_id: str
    comment_id: UUID
    reason: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Report":
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            actor_id=row.actor_id,
            comment_id=row.comment_id,
            reason=getattr(row, "reason", None),
            created_at=created_at,
        )


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a like/dislike toggle.

    The deltas are what the toggle changed on the comment's counters; the
    counts are the comment's authoritative values afterwards.
    """

    liked: bool
    disliked: bool
    like_delta: int
    dislike_delta: int
    like_count: int
    dislike_count: int


def toggle_flags(
    liked: bool, disliked: bool, kind: InteractionType
) -> tuple[bool, bool]:
    """Apply a like/dislike toggle to a pair of flags.

    If ``kind`` is already set it is cleared; otherwise it is set and the
    opposite flag is cleared.
    """
    if kind == InteractionType.LIKE:
        return (False, disliked) if liked else (True, False)
    if kind == InteractionType.DISLIKE:
        return (liked, False) if disliked else (False, True)
    msg = f"Cannot toggle interaction of type {kind.value!r}"
    raise ValueError(msg)
