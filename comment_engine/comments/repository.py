"""Storage interface for comments.

Ordering, filtering and pagination happen in the service so every backend
behaves the same; repositories only fetch and persist rows.

Rows are never rewritten whole after creation. Counts move by deltas and
the moderation columns change through compare-and-set, so concurrent
writers cannot undo each other.
"""

import abc
import dataclasses
from datetime import datetime
from uuid import UUID

from comment_engine.targets.models import TargetHandle

from .models import Comment, CommentState, CommentStatus


class CommentRepository(abc.ABC):
    @abc.abstractmethod
    async def get(self, comment_id: UUID) -> Comment | None:
        """Get a comment by id, including deleted ones."""

    @abc.abstractmethod
    async def add(self, comment: Comment) -> None:
        """Persist a new comment."""

    @abc.abstractmethod
    async def update_text(
        self, comment_id: UUID, text: str, edited_at: datetime
    ) -> bool:
        """Replace the text of a comment that is not deleted.

        Returns False when the comment is missing or deleted.
        """

    @abc.abstractmethod
    async def update_state(
        self,
        comment_id: UUID,
        expected: CommentState,
        new: CommentState,
        updated_at: datetime,
    ) -> bool:
        """Swap status and flag only if they still equal ``expected``."""

    @abc.abstractmethod
    async def adjust_counts(
        self,
        comment_id: UUID,
        *,
        like: int = 0,
        dislike: int = 0,
        reply: int = 0,
        report: int = 0,
    ) -> None:
        """Add deltas to the stored counts."""

    @abc.abstractmethod
    async def remove(self, comment_id: UUID) -> None:
        """Purge a comment row and its counts."""

    @abc.abstractmethod
    async def list_for_target(self, target: TargetHandle) -> list[Comment]:
        """All comments (any status) on a target."""

    @abc.abstractmethod
    async def list_replies(self, root_id: UUID) -> list[Comment]:
        """All replies (any status) to a root comment."""

    @abc.abstractmethod
    async def list_by_author(self, author_id: str) -> list[Comment]:
        """All comments (any status) written by an author."""

    @abc.abstractmethod
    async def list_all(self) -> list[Comment]:
        """Every stored comment, for moderation scans and activity stats."""


class InMemoryCommentRepository(CommentRepository):
    """Dictionary-backed repository for tests and local development.

    Stored entities are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._comments: dict[UUID, Comment] = {}

    async def get(self, comment_id: UUID) -> Comment | None:
        comment = self._comments.get(comment_id)
        return dataclasses.replace(comment) if comment else None

    async def add(self, comment: Comment) -> None:
        self._comments[comment.id] = dataclasses.replace(comment)

    async def update_text(
        self, comment_id: UUID, text: str, edited_at: datetime
    ) -> bool:
        comment = self._comments.get(comment_id)
        if comment is None or comment.status == CommentStatus.DELETED:
            return False
        comment.text = text
        comment.is_edited = True
        comment.edited_at = edited_at
        comment.updated_at = edited_at
        return True

    async def update_state(
        self,
        comment_id: UUID,
        expected: CommentState,
        new: CommentState,
        updated_at: datetime,
    ) -> bool:
        comment = self._comments.get(comment_id)
        if comment is None or comment.state != expected:
            return False
        comment.status = new.status
        comment.is_flagged = new.is_flagged
        comment.updated_at = updated_at
        return True

    async def adjust_counts(
        self,
        comment_id: UUID,
        *,
        like: int = 0,
        dislike: int = 0,
        reply: int = 0,
        report: int = 0,
    ) -> None:
        comment = self._comments.get(comment_id)
        if comment is None:
            return
        comment.like_count = max(0, comment.like_count + like)
        comment.dislike_count = max(0, comment.dislike_count + dislike)
        comment.reply_count = max(0, comment.reply_count + reply)
        comment.report_count = max(0, comment.report_count + report)

    async def remove(self, comment_id: UUID) -> None:
        self._comments.pop(comment_id, None)

    async def list_for_target(self, target: TargetHandle) -> list[Comment]:
        return self._select(lambda c: c.target == target)

    async def list_replies(self, root_id: UUID) -> list[Comment]:
        return self._select(lambda c: c.parent_id == root_id)

    async def list_by_author(self, author_id: str) -> list[Comment]:
        return self._select(lambda c: c.author.id == author_id)

    async def list_all(self) -> list[Comment]:
        return self._select(lambda _c: True)

    def _select(self, predicate) -> list[Comment]:
        return [dataclasses.replace(c) for c in self._comments.values() if predicate(c)]
