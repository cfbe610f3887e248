"""Moderation engine.

Business logic for:
- Single and bulk moderation actions through the status state machine
- Heuristic auto-moderation from reports and flags
- Audit history and stats
- The moderation queue and its CSV or JSON export
"""

import csv
import io
from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from comment_engine.comments.models import (
    DEFAULT_ORDERING,
    Comment,
    CommentState,
    CommentStatus,
    Page,
    paginate,
)
from comment_engine.comments.service import order_comments, validate_page
from comment_engine.core.exceptions import (
    CommentError,
    InvalidTransitionError,
    PermissionDeniedError,
)

from .models import (
    ACTION_TARGET_STATUS,
    BulkModerationResult,
    ModerationAction,
    ModerationRecord,
    ModerationStats,
    can_transition,
    create_moderation_record,
)


if TYPE_CHECKING:
    from comment_engine.auth.models import Actor
    from comment_engine.comments.repository import CommentRepository
    from comment_engine.comments.service import CommentService
    from comment_engine.config.settings import Settings
    from comment_engine.interactions.repository import ReportRepository
    from comment_engine.targets.models import ContentType

    from .repository import ModerationRecordRepository


logger = structlog.get_logger(__name__)

TOP_MODERATORS_LIMIT = 5
MAX_RISK_SCORE = 100


def next_state(comment: Comment, action: ModerationAction) -> CommentState:
    """The status and flag ``action`` leads to from ``comment``'s state.

    Raises:
        InvalidTransitionError: The action is not allowed from here.
    """
    if comment.is_deleted:
        raise InvalidTransitionError("Deleted comments cannot be moderated")

    if action == ModerationAction.FLAG:
        if comment.is_flagged:
            raise InvalidTransitionError("Comment is already flagged")
        return CommentState(comment.status, is_flagged=True)
    if action == ModerationAction.UNFLAG:
        if not comment.is_flagged:
            raise InvalidTransitionError("Comment is not flagged")
        return CommentState(comment.status, is_flagged=False)

    new_status = ACTION_TARGET_STATUS[action]
    if not can_transition(comment.status, new_status):
        raise InvalidTransitionError(
            f"Cannot {action.value} a {comment.status.value} comment"
        )
    return CommentState(new_status, comment.is_flagged)


# Column order of moderation exports
EXPORT_FIELDS = (
    "id",
    "author_id",
    "author_name",
    "text",
    "status",
    "risk_score",
    "report_count",
    "content_type",
    "object_id",
    "created_at",
    "is_flagged",
)


def export_row(comment: Comment, risk_score: int) -> dict[str, Any]:
    return {
        "id": str(comment.id),
        "author_id": comment.author.id,
        "author_name": comment.author.display_name,
        "text": comment.text,
        "status": comment.status.value,
        "risk_score": risk_score,
        "report_count": comment.report_count,
        "content_type": comment.target.content_type.value,
        "object_id": comment.target.object_id,
        "created_at": comment.created_at.isoformat(),
        "is_flagged": comment.is_flagged,
    }


def export_csv(rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


@dataclass
class QueueEntry:
    comment: Comment
    risk_score: int


class ModerationEngine:
    """Service for moderation actions, auto-moderation and reporting."""

    def __init__(
        self,
        comments: "CommentService",
        repository: "CommentRepository",
        records: "ModerationRecordRepository",
        reports: "ReportRepository",
        settings: "Settings",
    ):
        self.comments = comments
        self.repository = repository
        self.records = records
        self.reports = reports
        self.settings = settings

    def risk_score(self, comment: Comment) -> int:
        """Score 0-100 from report count and the current flag."""
        score = comment.report_count * self.settings.moderation_report_weight
        if comment.is_flagged:
            score += self.settings.moderation_flag_weight
        return min(MAX_RISK_SCORE, score)

    # ==========================================================================
    # Actions
    # ==========================================================================

    async def _apply(
        self,
        comment_id: UUID,
        action: ModerationAction,
        moderator_id: str | None,
        reason: str | None,
    ) -> Comment:
        """Validate and apply one action, then append its audit record."""
        comment, old = await self.comments.change_state(
            comment_id, lambda c: next_state(c, action)
        )
        await self._record(comment, old, action, moderator_id, reason)
        return comment

    async def _record(
        self,
        comment: Comment,
        old: CommentState,
        action: ModerationAction,
        moderator_id: str | None,
        reason: str | None,
    ) -> None:
        await self.records.append(
            create_moderation_record(
                comment_id=comment.id,
                action=action,
                old_status=old.status,
                new_status=comment.status,
                moderator_id=moderator_id,
                reason=reason,
            )
        )

    async def moderate(
        self,
        comment_id: UUID,
        moderator: "Actor",
        action: ModerationAction,
        reason: str | None = None,
    ) -> Comment:
        """Apply a moderation action to one comment.

        Raises:
            PermissionDeniedError: Actor is not a moderator.
            CommentNotFoundError: Unknown comment.
            InvalidTransitionError: Action not allowed from the current state.
        """
        if not moderator.can_moderate:
            raise PermissionDeniedError("Moderator permission required")

        comment = await self._apply(comment_id, action, moderator.id, reason)
        logger.info(
            "comment_moderated",
            comment_id=str(comment_id),
            action=action.value,
            new_status=comment.status.value,
            is_flagged=comment.is_flagged,
        )
        return comment

    async def bulk_moderate(
        self,
        comment_ids: list[UUID],
        moderator: "Actor",
        action: ModerationAction,
        reason: str | None = None,
    ) -> BulkModerationResult:
        """Apply one action to many comments.

        Failures are collected in ``failed_ids`` and the rest still proceed;
        nothing is rolled back.
        """
        if not moderator.can_moderate:
            raise PermissionDeniedError("Moderator permission required")

        result = BulkModerationResult()
        for comment_id in dict.fromkeys(comment_ids):
            try:
                await self.moderate(comment_id, moderator, action, reason)
            except CommentError as e:
                logger.info(
                    "bulk_moderation_item_failed",
                    comment_id=str(comment_id),
                    error=e.code,
                )
                result.failed_ids.append(comment_id)
            else:
                result.moderated_count += 1

        logger.info(
            "bulk_moderation_completed",
            action=action.value,
            moderated_count=result.moderated_count,
            failed_count=len(result.failed_ids),
        )
        return result

    async def auto_moderate(self) -> int:
        """Flag every live, unflagged comment whose risk score is too high.

        Records carry no moderator. Running twice flags nothing new.

        Returns:
            Number of comments flagged.
        """
        threshold = self.settings.moderation_auto_threshold
        reason = "Automatic: risk score above threshold"

        def decide(comment: Comment) -> CommentState | None:
            if comment.is_deleted or comment.is_flagged:
                return None
            if self.risk_score(comment) <= threshold:
                return None
            return next_state(comment, ModerationAction.FLAG)

        flagged = 0
        for candidate in await self.repository.list_all():
            if decide(candidate) is None:
                continue
            comment, old = await self.comments.change_state(candidate.id, decide)
            if old is None:
                continue
            await self._record(
                comment, old, ModerationAction.FLAG, moderator_id=None, reason=reason
            )
            flagged += 1

        logger.info("auto_moderation_completed", flagged_count=flagged)
        return flagged

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def history(self, comment_id: UUID) -> list[ModerationRecord]:
        """Audit records of a comment, oldest first.

        Works for purged comments too, since records outlive their comment.
        """
        records = await self.records.list_for_comment(comment_id)
        return sorted(records, key=lambda r: r.created_at)

    async def stats(self, window_days: int = 7) -> ModerationStats:
        """Summarize comment states and moderation activity. Read-only."""
        since = datetime.now(UTC) - timedelta(days=window_days)

        comments = await self.repository.list_all()
        by_status = Counter(c.status.value for c in comments)
        records = await self.records.list_since(since)
        reports = await self.reports.list_since(since)

        actions_per_day = Counter(r.created_at.date().isoformat() for r in records)
        moderators = Counter(r.moderator_id for r in records if r.moderator_id)

        return ModerationStats(
            window_days=window_days,
            by_status={s.value: by_status.get(s.value, 0) for s in CommentStatus},
            total_comments=len(comments),
            flagged_comments=sum(1 for c in comments if c.is_flagged),
            pending_comments=by_status.get(CommentStatus.PENDING.value, 0),
            reports_in_window=len(reports),
            actions_per_day=dict(sorted(actions_per_day.items())),
            top_moderators=moderators.most_common(TOP_MODERATORS_LIMIT),
        )

    async def _filtered(
        self,
        status: CommentStatus | None,
        flagged: bool | None,
        content_type: "ContentType | None",
        search: str | None,
    ) -> list[Comment]:
        needle = search.strip().lower() if search else ""
        rows = []
        for comment in await self.repository.list_all():
            if status is not None and comment.status != status:
                continue
            if flagged is not None and comment.is_flagged != flagged:
                continue
            if content_type is not None and comment.target.content_type != content_type:
                continue
            if needle and not (
                needle in comment.text.lower()
                or needle in comment.author.display_name.lower()
            ):
                continue
            rows.append(comment)
        return order_comments(rows, DEFAULT_ORDERING)

    async def queue(
        self,
        status: CommentStatus | None = None,
        flagged: bool | None = None,
        content_type: "ContentType | None" = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[QueueEntry]:
        """List comments of any status for moderators, newest first."""
        validate_page(page, page_size)

        ordered = await self._filtered(status, flagged, content_type, search)
        page_rows = paginate(ordered, page, page_size)
        return Page(
            count=page_rows.count,
            page=page,
            page_size=page_size,
            results=[QueueEntry(c, self.risk_score(c)) for c in page_rows.results],
        )

    async def export(
        self,
        status: CommentStatus | None = None,
        flagged: bool | None = None,
        content_type: "ContentType | None" = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """Every comment matching the queue filters, as flat export rows."""
        rows = [
            export_row(c, self.risk_score(c))
            for c in await self._filtered(status, flagged, content_type, search)
        ]
        logger.info("moderation_export", rows=len(rows))
        return rows
