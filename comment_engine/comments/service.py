"""Comment store service layer.

Business logic for:
- Comment CRUD with one-level threading (replies are flattened onto roots)
- Public listing with ordering and page-number pagination
- Rate limiting and duplicate detection (Redis, optional)
- Reply counters and the audit trail for privileged deletes
"""

import hashlib
import html
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, time
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from comment_engine.core.context import set_target
from comment_engine.core.exceptions import (
    CommentNotFoundError,
    CommentTooLongError,
    ConcurrentUpdateError,
    EmptyTextError,
    InvalidOrderingError,
    InvalidPageError,
    InvalidParentError,
    PermissionDeniedError,
    RateLimitExceededError,
    ReasonRequiredError,
    SpamDetectedError,
)
from comment_engine.core.redis import rate_limit_keys, recent_hashes_key
from comment_engine.moderation.models import ModerationAction, create_moderation_record

from .models import (
    ALLOWED_ORDERINGS,
    DEFAULT_ORDERING,
    MAX_PAGE_SIZE,
    Author,
    Comment,
    CommentState,
    CommentStats,
    CommentStatus,
    Page,
    create_comment,
    paginate,
)


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from comment_engine.auth.models import Actor
    from comment_engine.config.settings import Settings
    from comment_engine.interactions.repository import (
        InteractionRepository,
        ReportRepository,
    )
    from comment_engine.moderation.repository import ModerationRecordRepository
    from comment_engine.notifications.service import NotificationService
    from comment_engine.targets.models import TargetHandle

    from .repository import CommentRepository


logger = structlog.get_logger(__name__)


# ==============================================================================
# Content Sanitization
# ==============================================================================

# Formatting tags that survive escaping
ALLOWED_TAGS = ("b", "i", "em", "strong", "code", "pre")

RECENT_HASHES_KEPT = 10

# Compare-and-set retries before a status change gives up
STATE_UPDATE_ATTEMPTS = 3


def sanitize_text(text: str) -> str:
    """Escape HTML except bare allow-listed formatting tags."""
    escaped = html.escape(text, quote=False)
    for tag in ALLOWED_TAGS:
        escaped = escaped.replace(f"&lt;{tag}&gt;", f"<{tag}>")
        escaped = escaped.replace(f"&lt;/{tag}&gt;", f"</{tag}>")
    return escaped


def content_hash(text: str) -> str:
    """Fingerprint of normalized text for duplicate detection."""
    normalized = " ".join(text.lower().split())
    return hashlib.sha256(normalized.encode()).hexdigest()[:32]


def order_comments(comments: Iterable[Comment], ordering: str) -> list[Comment]:
    """Sort by an allow-listed ordering; ties fall back to ``created_at``."""
    if ordering not in ALLOWED_ORDERINGS:
        raise InvalidOrderingError(f"Unsupported ordering: {ordering!r}")

    name = ordering.lstrip("-")
    return sorted(
        comments,
        key=lambda c: (getattr(c, name), c.created_at, str(c.id)),
        reverse=ordering.startswith("-"),
    )


def validate_page(page: int, page_size: int) -> None:
    if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise InvalidPageError


def deleted_state(comment: Comment) -> CommentState | None:
    if comment.is_deleted:
        return None
    return CommentState(CommentStatus.DELETED, comment.is_flagged)


def author_from_actor(actor: "Actor") -> Author:
    return Author(
        id=actor.id,
        display_name=actor.display_name,
        avatar=actor.avatar,
        is_admin=actor.is_admin,
    )


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    def __init__(
        self,
        repository: "CommentRepository",
        interactions: "InteractionRepository",
        reports: "ReportRepository",
        records: "ModerationRecordRepository",
        settings: "Settings",
        redis: "Redis | None" = None,
        notifications: "NotificationService | None" = None,
    ):
        self.repository = repository
        self.interactions = interactions
        self.reports = reports
        self.records = records
        self.settings = settings
        self.redis = redis
        self.notifications = notifications

    # ==========================================================================
    # Rate Limiting (Redis-based)
    # ==========================================================================

    async def check_rate_limit(self, author_id: str) -> None:
        """Raise RateLimitExceededError if the author is over either limit."""
        if not self.redis:
            return

        key_minute, key_hour = rate_limit_keys(author_id)

        minute_count = await self.redis.get(key_minute)
        if minute_count and int(minute_count) >= self.settings.comments_per_minute:
            raise RateLimitExceededError("Too many comments per minute")

        hour_count = await self.redis.get(key_hour)
        if hour_count and int(hour_count) >= self.settings.comments_per_hour:
            raise RateLimitExceededError("Hourly comment limit exceeded")

    async def increment_rate_limit(self, author_id: str) -> None:
        if not self.redis:
            return

        key_minute, key_hour = rate_limit_keys(author_id)

        pipe = self.redis.pipeline()
        pipe.incr(key_minute)
        pipe.expire(key_minute, 60)
        pipe.incr(key_hour)
        pipe.expire(key_hour, 3600)
        await pipe.execute()

    async def check_duplicate(self, author_id: str, text: str) -> None:
        """Reject text the author already posted within the last hour."""
        if not self.redis:
            return

        key = recent_hashes_key(author_id)
        hash_value = content_hash(text)

        recent = await self.redis.lrange(key, 0, -1)
        if hash_value in recent:
            raise SpamDetectedError("Duplicate comment detected")

        pipe = self.redis.pipeline()
        pipe.lpush(key, hash_value)
        pipe.ltrim(key, 0, RECENT_HASHES_KEPT - 1)
        pipe.expire(key, 3600)
        await pipe.execute()

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_comment(
        self, comment_id: UUID, include_deleted: bool = False
    ) -> Comment:
        """Get a comment by id.

        Raises:
            CommentNotFoundError: Unknown id, or deleted and not requested.
        """
        comment = await self.repository.get(comment_id)
        if comment is None or (comment.is_deleted and not include_deleted):
            raise CommentNotFoundError
        return comment

    async def list_comments(
        self,
        target: "TargetHandle",
        page: int = 1,
        page_size: int = 20,
        ordering: str | None = None,
    ) -> Page[Comment]:
        """List published comments and replies on a target."""
        validate_page(page, page_size)
        set_target(target)

        rows = await self.repository.list_for_target(target)
        published = [c for c in rows if c.status == CommentStatus.PUBLISHED]
        return paginate(
            order_comments(published, ordering or DEFAULT_ORDERING), page, page_size
        )

    async def list_by_author(
        self, actor: "Actor", page: int = 1, page_size: int = 20
    ) -> Page[Comment]:
        """List an actor's own comments of any non-deleted status, newest first."""
        validate_page(page, page_size)

        rows = await self.repository.list_by_author(actor.id)
        live = [c for c in rows if not c.is_deleted]
        return paginate(order_comments(live, DEFAULT_ORDERING), page, page_size)

    async def stats(self, top_limit: int = 5, recent_limit: int = 5) -> CommentStats:
        """Summarize public activity.

        Only published comments count; "today" starts at UTC midnight.
        """
        published = [
            c
            for c in await self.repository.list_all()
            if c.status == CommentStatus.PUBLISHED
        ]
        midnight = datetime.combine(datetime.now(UTC).date(), time(), tzinfo=UTC)
        by_target = Counter(c.target for c in published)

        return CommentStats(
            total_comments=len(published),
            comments_today=sum(1 for c in published if c.created_at >= midnight),
            top_targets=by_target.most_common(top_limit),
            recent_comments=order_comments(published, DEFAULT_ORDERING)[:recent_limit],
        )

    # ==========================================================================
    # Writes
    # ==========================================================================

    def _clean_text(self, text: str) -> str:
        stripped = (text or "").strip()
        if not stripped:
            raise EmptyTextError
        if len(stripped) > self.settings.comment_max_length:
            raise CommentTooLongError(
                f"Comment text exceeds {self.settings.comment_max_length} characters"
            )
        return stripped

    async def _resolve_root(
        self, target: "TargetHandle", parent_id: UUID
    ) -> Comment:
        """Find the root a new reply attaches to.

        Replying to a reply attaches to that reply's root, so threads never
        grow deeper than one level.
        """
        parent = await self.repository.get(parent_id)
        if parent is None or parent.is_deleted:
            raise InvalidParentError("Parent comment does not exist")
        if parent.target != target:
            raise InvalidParentError("Parent comment belongs to another target")

        if not parent.is_reply:
            return parent

        root = await self.repository.get(parent.parent_id)
        if root is None or root.is_deleted:
            raise InvalidParentError("Parent thread no longer exists")
        return root

    async def create_comment(
        self,
        target: "TargetHandle",
        author: "Actor",
        text: str,
        parent_id: UUID | None = None,
    ) -> Comment:
        """Create a new comment or reply.

        Performs:
        - Text validation and sanitization
        - Parent validation and flattening
        - Rate limiting and duplicate checks
        - Root reply counter increment and reply notification
        """
        set_target(target)
        stripped = self._clean_text(text)

        root = await self._resolve_root(target, parent_id) if parent_id else None

        await self.check_rate_limit(author.id)
        await self.check_duplicate(author.id, stripped)

        comment = create_comment(
            target=target,
            author=author_from_actor(author),
            text=sanitize_text(stripped),
            parent_id=root.id if root else None,
            status=CommentStatus(self.settings.comment_default_status),
        )
        await self.repository.add(comment)

        if root is not None:
            await self.repository.adjust_counts(root.id, reply=1)

        await self.increment_rate_limit(author.id)

        logger.info(
            "comment_created",
            comment_id=str(comment.id),
            parent_id=str(comment.parent_id) if comment.parent_id else None,
            status=comment.status.value,
        )

        if root is not None and self.notifications:
            try:
                await self.notifications.notify_reply(root.author, comment)
            except Exception as e:
                # Log but don't fail the comment creation
                logger.warning(
                    "reply_notification_failed",
                    error=str(e),
                    comment_id=str(comment.id),
                )

        return comment

    async def update_comment(
        self, comment_id: UUID, actor: "Actor", text: str
    ) -> Comment:
        """Edit a comment's text. Only the author may edit."""
        comment = await self.get_comment(comment_id)
        if comment.author.id != actor.id:
            raise PermissionDeniedError("Only the author can edit this comment")

        stripped = self._clean_text(text)

        now = datetime.now(UTC)
        sanitized = sanitize_text(stripped)
        if not await self.repository.update_text(comment.id, sanitized, now):
            # Deleted between the read and the write
            raise CommentNotFoundError

        comment.text = sanitized
        comment.is_edited = True
        comment.edited_at = now
        comment.updated_at = now

        logger.info("comment_updated", comment_id=str(comment.id))
        return comment

    async def change_state(
        self,
        comment_id: UUID,
        decide: Callable[[Comment], CommentState | None],
    ) -> tuple[Comment, CommentState | None]:
        """Move a comment to the state ``decide`` picks from a fresh read.

        ``decide`` may raise to reject the change or return None to leave
        the comment as it is. The write only lands if status and flag are
        unchanged since the read; otherwise the comment is read again and
        ``decide`` is asked again. A reply leaving for ``deleted`` releases
        its slot on the root's reply counter exactly once.

        Returns:
            The comment as written and its previous state, or None in place
            of the previous state when nothing changed.

        Raises:
            CommentNotFoundError: No such comment.
            ConcurrentUpdateError: Every attempt lost to another writer.
        """
        for _ in range(STATE_UPDATE_ATTEMPTS):
            comment = await self.repository.get(comment_id)
            if comment is None:
                raise CommentNotFoundError

            old = comment.state
            new = decide(comment)
            if new is None or new == old:
                return comment, None

            now = datetime.now(UTC)
            if not await self.repository.update_state(comment.id, old, new, now):
                logger.debug("comment_state_conflict", comment_id=str(comment_id))
                continue

            comment.status = new.status
            comment.is_flagged = new.is_flagged
            comment.updated_at = now
            if comment.is_reply and comment.is_deleted:
                await self.repository.adjust_counts(comment.parent_id, reply=-1)
            return comment, old

        raise ConcurrentUpdateError

    async def soft_delete(self, comment_id: UUID, actor: "Actor") -> Comment:
        """Mark a comment deleted, keeping the row.

        Allowed for the author and for moderators. Deleting an already
        deleted comment is a no-op.
        """
        is_author = False

        def decide(comment: Comment) -> CommentState | None:
            nonlocal is_author
            is_author = comment.author.id == actor.id
            if not is_author and not actor.can_moderate:
                raise PermissionDeniedError(
                    "Only the author or a moderator can delete"
                )
            return deleted_state(comment)

        comment, old = await self.change_state(comment_id, decide)
        if old is None:
            return comment

        if not is_author:
            await self.records.append(
                create_moderation_record(
                    comment_id=comment.id,
                    action=ModerationAction.DELETE,
                    old_status=old.status,
                    new_status=CommentStatus.DELETED,
                    moderator_id=actor.id,
                )
            )

        logger.info(
            "comment_deleted",
            comment_id=str(comment.id),
            by_author=is_author,
        )
        return comment

    async def hard_delete(
        self, comment_id: UUID, moderator: "Actor", reason: str
    ) -> int:
        """Purge a comment, its interactions and reports.

        Hard-deleting a root also purges its replies, each with its own
        audit record. Audit records themselves are kept.

        Returns:
            Number of comment rows purged.
        """
        if not moderator.can_moderate:
            raise PermissionDeniedError("Moderator permission required")
        if not reason or not reason.strip():
            raise ReasonRequiredError

        comment = await self.repository.get(comment_id)
        if comment is None:
            raise CommentNotFoundError

        victims = [comment]
        if comment.is_reply:
            # Soft-delete first so the root counter drops at most once
            await self.change_state(comment.id, deleted_state)
        else:
            victims.extend(await self.repository.list_replies(comment.id))

        for victim in reversed(victims):
            await self.records.append(
                create_moderation_record(
                    comment_id=victim.id,
                    action=ModerationAction.DELETE,
                    old_status=victim.status,
                    new_status=CommentStatus.DELETED,
                    moderator_id=moderator.id,
                    reason=reason.strip(),
                )
            )
            await self.interactions.purge_comment(victim.id)
            await self.reports.purge_comment(victim.id)
            await self.repository.remove(victim.id)

        logger.info(
            "comment_hard_deleted",
            comment_id=str(comment.id),
            purged_count=len(victims),
        )
        return len(victims)

