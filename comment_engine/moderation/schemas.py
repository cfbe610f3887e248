"""Pydantic schemas for moderation endpoints."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from comment_engine.comments.models import CommentStatus
from comment_engine.comments.schemas import CommentResponse

from .models import ModerationAction


if TYPE_CHECKING:
    from comment_engine.comments.models import Page

    from .models import ModerationRecord, ModerationStats
    from .service import QueueEntry


MAX_BULK_IDS = 500


class ModerateRequest(BaseModel):
    action: ModerationAction
    reason: str | None = Field(None, max_length=1000)


class BulkModerateRequest(BaseModel):
    comment_ids: list[UUID] = Field(..., min_length=1, max_length=MAX_BULK_IDS)
    action: ModerationAction
    reason: str | None = Field(None, max_length=1000)


class HardDeleteRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Strip whitespace and validate reason."""
        v = v.strip()
        if not v:
            msg = "Reason cannot be empty"
            raise ValueError(msg)
        return v


class BulkModerateResponse(BaseModel):
    moderated_count: int
    failed_ids: list[UUID]


class AutoModerateResponse(BaseModel):
    flagged_count: int


class HardDeleteResponse(BaseModel):
    purged_count: int


class ModerationQueueItem(CommentResponse):
    """Comment row in the moderation list, with its risk score (0-100)."""

    risk_score: int


class ModerationQueueResponse(BaseModel):
    count: int
    next: int | None = None
    previous: int | None = None
    results: list[ModerationQueueItem]

    @classmethod
    def from_page(cls, page: "Page[QueueEntry]") -> "ModerationQueueResponse":
        return cls(
            count=page.count,
            next=page.next,
            previous=page.previous,
            results=[
                ModerationQueueItem.from_comment(e.comment, risk_score=e.risk_score)
                for e in page.results
            ],
        )


class ModerationRecordResponse(BaseModel):
    id: UUID
    comment_id: UUID
    action: ModerationAction
    moderator_id: str | None
    reason: str | None
    old_status: CommentStatus
    new_status: CommentStatus
    created_at: datetime

    @classmethod
    def from_record(cls, record: "ModerationRecord") -> "ModerationRecordResponse":
        return cls(
            id=record.id,
            comment_id=record.comment_id,
            action=record.action,
            moderator_id=record.moderator_id,
            reason=record.reason,
            old_status=record.old_status,
            new_status=record.new_status,
            created_at=record.created_at,
        )


class ModeratorActivity(BaseModel):
    moderator_id: str
    action_count: int


class ModerationStatsResponse(BaseModel):
    window_days: int
    by_status: dict[str, int]
    total_comments: int
    flagged_comments: int
    pending_comments: int
    reports_in_window: int
    actions_per_day: dict[str, int]
    top_moderators: list[ModeratorActivity]

    @classmethod
    def from_stats(cls, stats: "ModerationStats") -> "ModerationStatsResponse":
        return cls(
            window_days=stats.window_days,
            by_status=stats.by_status,
            total_comments=stats.total_comments,
            flagged_comments=stats.flagged_comments,
            pending_comments=stats.pending_comments,
            reports_in_window=stats.reports_in_window,
            actions_per_day=stats.actions_per_day,
            top_moderators=[
                ModeratorActivity(moderator_id=moderator_id, action_count=count)
                for moderator_id, count in stats.top_moderators
            ],
        )
