"""Domain models for threaded comments.

Cassandra table definitions for:
- Comments: one row per comment, looked up by id
- Comment counts: like/dislike/reply/report counters per comment
- Secondary indexes on target, parent and author for listings

Threads are one level deep: ``parent_id`` always references a root comment.
Author information is denormalized onto the row.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from comment_engine.targets.models import TargetHandle


T = TypeVar("T")


class CommentStatus(str, Enum):
    """Moderation status of a comment."""

    PENDING = "pending"
    PUBLISHED = "published"
    HIDDEN = "hidden"
    DELETED = "deleted"


# Public list orderings
DEFAULT_ORDERING = "-created_at"
ORDERING_FIELDS = ("created_at", "like_count", "reply_count")
ALLOWED_ORDERINGS = frozenset(
    [*ORDERING_FIELDS, *(f"-{name}" for name in ORDERING_FIELDS)]
)

MAX_PAGE_SIZE = 100


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    comment_id UUID PRIMARY KEY,
    target_key TEXT,
    parent_id UUID,
    author_id TEXT,
    author_name TEXT,
    author_avatar TEXT,
    author_is_admin BOOLEAN,
    text TEXT,
    status TEXT,
    is_flagged BOOLEAN,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Counters live in their own table; Cassandra forbids mixing them with
# regular columns
COMMENT_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_counts (
    comment_id UUID PRIMARY KEY,
    like_count COUNTER,
    dislike_count COUNTER,
    reply_count COUNTER,
    report_count COUNTER
)
"""

COMMENTS_TARGET_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_target_idx
ON {keyspace}.comments (target_key)
"""

COMMENTS_PARENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_parent_idx
ON {keyspace}.comments (parent_id)
"""

COMMENTS_AUTHOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_author_idx
ON {keyspace}.comments (author_id)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_TABLE_CQL,
    COMMENT_COUNTS_TABLE_CQL,
    COMMENTS_TARGET_INDEX_CQL,
    COMMENTS_PARENT_INDEX_CQL,
    COMMENTS_AUTHOR_INDEX_CQL,
]


# ==============================================================================
# Domain Models
# ==============================================================================


@dataclass(frozen=True)
class Author:
    """Denormalized author reference."""

    id: str
    display_name: str = ""
    avatar: str | None = None
    is_admin: bool = False


@dataclass(frozen=True)
class CommentState:
    """The moderation-owned columns, compared and swapped as one unit."""

    status: CommentStatus
    is_flagged: bool = False


@dataclass
class Comment:
    """A comment or a first-level reply on a content target."""

    id: UUID
    target: TargetHandle
    author: Author
    text: str
    parent_id: UUID | None = None
    status: CommentStatus = CommentStatus.PUBLISHED
    is_flagged: bool = False
    like_count: int = 0
    dislike_count: int = 0
    reply_count: int = 0
    report_count: int = 0
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None

    @property
    def is_deleted(self) -> bool:
        return self.status == CommentStatus.DELETED

    @property
    def state(self) -> CommentState:
        return CommentState(self.status, self.is_flagged)

    @classmethod
    def from_row(cls, row: Any, counts: Any = None) -> "Comment":
        """Create from a Cassandra row and its optional ``comment_counts`` row."""
        return cls(
            id=row.comment_id,
            target=TargetHandle.from_key(row.target_key),
            author=Author(
                id=row.author_id,
                display_name=row.author_name or "",
                avatar=row.author_avatar,
                is_admin=bool(row.author_is_admin),
            ),
            text=row.text,
            parent_id=row.parent_id,
            status=CommentStatus(row.status),
            is_flagged=bool(row.is_flagged),
            like_count=_count(counts, "like_count"),
            dislike_count=_count(counts, "dislike_count"),
            reply_count=_count(counts, "reply_count"),
            report_count=_count(counts, "report_count"),
            is_edited=bool(row.is_edited),
            edited_at=_as_utc(row.edited_at),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "content_type": self.target.content_type.value,
            "object_id": self.target.object_id,
            "author_id": self.author.id,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "status": self.status.value,
            "is_flagged": self.is_flagged,
            "like_count": self.like_count,
            "dislike_count": self.dislike_count,
            "reply_count": self.reply_count,
            "report_count": self.report_count,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class CommentStats:
    """Public activity summary, computed over published comments only."""

    total_comments: int
    comments_today: int
    top_targets: list[tuple[TargetHandle, int]]
    recent_comments: list[Comment]


@dataclass
class Page(Generic[T]):
    """One page of results with 1-based page numbering."""

    count: int
    page: int
    page_size: int
    results: list[T]

    @property
    def next(self) -> int | None:
        return self.page + 1 if self.page * self.page_size < self.count else None

    @property
    def previous(self) -> int | None:
        return self.page - 1 if self.page > 1 else None


def paginate(items: list[T], page: int, page_size: int) -> Page[T]:
    """Slice an already ordered list into a page."""
    start = (page - 1) * page_size
    return Page(
        count=len(items),
        page=page,
        page_size=page_size,
        results=items[start : start + page_size],
    )


def _count(counts: Any, name: str) -> int:
    if counts is None:
        return 0
    return max(0, getattr(counts, name) or 0)


def _as_utc(value: datetime | None) -> datetime | None:
    # The driver returns naive UTC datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    target: TargetHandle,
    author: Author,
    text: str,
    parent_id: UUID | None = None,
    status: CommentStatus = CommentStatus.PUBLISHED,
) -> Comment:
    """Create a new comment entity."""
    now = datetime.now(UTC)
    return Comment(
        id=uuid4(),
        target=target,
        author=author,
        text=text,
        parent_id=parent_id,
        status=status,
        created_at=now,
        updated_at=now,
    )
