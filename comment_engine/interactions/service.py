"""Interaction ledger: likes, dislikes and reports.

The ledger is the only writer of ``like_count``, ``dislike_count`` and
``report_count`` on comments. It only ever adds deltas to those counters,
and interaction rows change by compare-and-set, so concurrent toggles and
moderation never overwrite each other.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from comment_engine.core.exceptions import (
    CommentNotFoundError,
    ConcurrentUpdateError,
)

from .models import Interaction, InteractionType, Report, ToggleResult, toggle_flags


if TYPE_CHECKING:
    from comment_engine.auth.models import Actor
    from comment_engine.comments.models import Comment
    from comment_engine.comments.repository import CommentRepository
    from comment_engine.notifications.service import NotificationService

    from .repository import InteractionRepository, ReportRepository


logger = structlog.get_logger(__name__)

# Compare-and-set retries before a toggle gives up
TOGGLE_ATTEMPTS = 3


class InteractionLedger:
    """Per-(actor, comment) like/dislike state and report events."""

    def __init__(
        self,
        comments: "CommentRepository",
        interactions: "InteractionRepository",
        reports: "ReportRepository",
        notifications: "NotificationService | None" = None,
    ):
        self.comments = comments
        self.interactions = interactions
        self.reports = reports
        self.notifications = notifications

    async def _live_comment(self, comment_id: UUID) -> "Comment":
        comment = await self.comments.get(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError
        return comment

    async def toggle(
        self, actor: "Actor", comment_id: UUID, kind: InteractionType
    ) -> ToggleResult:
        """Toggle a like or dislike.

        If ``kind`` is already set it is cleared; otherwise it is set and the
        opposite kind is cleared. Applying the same toggle twice restores the
        original state and counts.
        """
        if kind not in (InteractionType.LIKE, InteractionType.DISLIKE):
            msg = f"Cannot toggle interaction of type {kind.value!r}"
            raise ValueError(msg)

        comment = await self._live_comment(comment_id)

        for _ in range(TOGGLE_ATTEMPTS):
            current = await self.interactions.get(actor.id, comment_id)
            was_liked = current.liked if current else False
            was_disliked = current.disliked if current else False
            liked, disliked = toggle_flags(was_liked, was_disliked, kind)

            updated = Interaction(
                actor_id=actor.id,
                comment_id=comment_id,
                liked=liked,
                disliked=disliked,
                updated_at=datetime.now(UTC),
            )
            if await self.interactions.replace(current, updated):
                break
            logger.debug("interaction_conflict", comment_id=str(comment_id))
        else:
            raise ConcurrentUpdateError

        like_delta = int(liked) - int(was_liked)
        dislike_delta = int(disliked) - int(was_disliked)
        await self.comments.adjust_counts(
            comment_id, like=like_delta, dislike=dislike_delta
        )
        counts = await self.comments.get(comment_id) or comment

        logger.info(
            "comment_interaction_toggled",
            comment_id=str(comment_id),
            kind=kind.value,
            liked=liked,
            disliked=disliked,
        )

        if like_delta > 0 and self.notifications:
            try:
                await self.notifications.notify_like(comment, actor)
            except Exception as e:
                # Log but don't fail the interaction
                logger.warning(
                    "like_notification_failed",
                    error=str(e),
                    comment_id=str(comment_id),
                )

        return ToggleResult(
            liked=liked,
            disliked=disliked,
            like_delta=like_delta,
            dislike_delta=dislike_delta,
            like_count=counts.like_count,
            dislike_count=counts.dislike_count,
        )

    async def state(
        self, actor: "Actor | None", comment_ids: Iterable[UUID]
    ) -> dict[UUID, Interaction]:
        """The actor's interactions on the given comments, for rendering."""
        if actor is None:
            return {}
        return await self.interactions.list_for_actor(actor.id, list(comment_ids))

    async def report(
        self, actor: "Actor", comment_id: UUID, reason: str | None = None
    ) -> int:
        """Report a comment. One report per actor; repeats are no-ops.

        Returns:
            The comment's report count.
        """
        comment = await self._live_comment(comment_id)

        added = await self.reports.add_if_absent(
            Report(
                actor_id=actor.id,
                comment_id=comment_id,
                reason=reason,
                created_at=datetime.now(UTC),
            )
        )
        if not added:
            return comment.report_count

        await self.comments.adjust_counts(comment_id, report=1)
        counts = await self.comments.get(comment_id)
        report_count = counts.report_count if counts else comment.report_count + 1

        logger.info(
            "comment_reported",
            comment_id=str(comment_id),
            report_count=report_count,
        )
        return report_count
