"""Pydantic schemas for the comment API.

The same response models are parsed by the async client, so field names and
aliases here define the wire format on both sides. ``parent`` on the wire maps
to ``parent_id`` in Python.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from comment_engine.interactions.models import InteractionType
from comment_engine.targets.models import ContentType

from .models import CommentStatus


if TYPE_CHECKING:
    from comment_engine.interactions.models import Interaction

    from .models import Comment, CommentStats, Page


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to create a comment or a reply.

    ``content_type_name`` accepts ``story`` as well as ``stories.story``.
    """

    content_type_name: str = Field(..., min_length=1, max_length=100)
    object_id: str | int
    text: str
    parent: UUID | None = None


class UpdateCommentRequest(BaseModel):
    text: str


class InteractRequest(BaseModel):
    interaction_type: InteractionType
    reason: str | None = Field(None, max_length=1000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthorResponse(BaseModel):
    id: str
    display_name: str = ""
    avatar: str | None = None
    is_admin: bool = False


class UserInteraction(BaseModel):
    """The requesting actor's like/dislike state on a comment."""

    liked: bool = False
    disliked: bool = False


class CommentResponse(BaseModel):
    """Comment as rendered to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    author: AuthorResponse
    content_type: ContentType
    object_id: str
    parent_id: str | None = Field(default=None, alias="parent")
    text: str
    status: CommentStatus
    is_flagged: bool = False
    like_count: int = 0
    dislike_count: int = 0
    reply_count: int = 0
    report_count: int = 0
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    user_interaction: UserInteraction | None = None

    @classmethod
    def from_comment(
        cls,
        comment: "Comment",
        interaction: "Interaction | None" = None,
        **extra: Any,
    ) -> "CommentResponse":
        """Create from a Comment entity and the viewer's interaction."""
        return cls(
            id=str(comment.id),
            author=AuthorResponse(
                id=comment.author.id,
                display_name=comment.author.display_name,
                avatar=comment.author.avatar,
                is_admin=comment.author.is_admin,
            ),
            content_type=comment.target.content_type,
            object_id=comment.target.object_id,
            parent_id=str(comment.parent_id) if comment.parent_id else None,
            text=comment.text,
            status=comment.status,
            is_flagged=comment.is_flagged,
            like_count=comment.like_count,
            dislike_count=comment.dislike_count,
            reply_count=comment.reply_count,
            report_count=comment.report_count,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            user_interaction=(
                UserInteraction(liked=interaction.liked, disliked=interaction.disliked)
                if interaction
                else None
            ),
            **extra,
        )


class CommentListResponse(BaseModel):
    """Page-numbered list response."""

    count: int
    next: int | None = None
    previous: int | None = None
    results: list[CommentResponse]

    @classmethod
    def from_page(
        cls,
        page: "Page[Comment]",
        interactions: "dict[UUID, Interaction] | None" = None,
    ) -> "CommentListResponse":
        interactions = interactions or {}
        return cls(
            count=page.count,
            next=page.next,
            previous=page.previous,
            results=[
                CommentResponse.from_comment(c, interactions.get(c.id))
                for c in page.results
            ],
        )


class InteractionResponse(BaseModel):
    """Result of a like/dislike toggle or a report."""

    interaction_type: InteractionType
    liked: bool
    disliked: bool
    like_count: int
    dislike_count: int
    report_count: int


class TargetCountResponse(BaseModel):
    content_type: ContentType
    object_id: str
    comment_count: int


class CommentStatsResponse(BaseModel):
    """Public comment activity."""

    total_comments: int
    comments_today: int
    top_commented_targets: list[TargetCountResponse]
    recent_comments: list[CommentResponse]

    @classmethod
    def from_stats(cls, stats: "CommentStats") -> "CommentStatsResponse":
        return cls(
            total_comments=stats.total_comments,
            comments_today=stats.comments_today,
            top_commented_targets=[
                TargetCountResponse(
                    content_type=target.content_type,
                    object_id=target.object_id,
                    comment_count=count,
                )
                for target, count in stats.top_targets
            ],
            recent_comments=[
                CommentResponse.from_comment(c) for c in stats.recent_comments
            ],
        )


class MessageResponse(BaseModel):
    message: str
