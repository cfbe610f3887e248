"""Comment API endpoints.

Provides routes for:
- Listing comments on a content target
- The actor's own comments
- Public comment activity stats
- Comment create, edit and soft delete
- Like/dislike/report interactions

Errors raised by services are rendered by the application-level
``CommentError`` handler.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from comment_engine.auth.dependencies import CurrentActor, OptionalActor
from comment_engine.comments.models import DEFAULT_ORDERING, MAX_PAGE_SIZE
from comment_engine.interactions.models import InteractionType
from comment_engine.targets.resolver import resolve_target

from .dependencies import (
    CommentServiceDep,
    InteractionLedgerDep,
    TargetDep,
)
from .schemas import (
    CommentListResponse,
    CommentResponse,
    CommentStatsResponse,
    CreateCommentRequest,
    InteractionResponse,
    InteractRequest,
    UpdateCommentRequest,
)


router = APIRouter(prefix="/comments", tags=["comments"])

PageQuery = Annotated[int, Query(ge=1)]
PageSizeQuery = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)]


@router.get(
    "/",
    response_model=CommentListResponse,
    summary="List comments on a target",
)
async def list_comments(
    target: TargetDep,
    comment_service: CommentServiceDep,
    ledger: InteractionLedgerDep,
    actor: OptionalActor,
    page: PageQuery = 1,
    page_size: PageSizeQuery = 20,
    ordering: str = DEFAULT_ORDERING,
) -> CommentListResponse:
    """List published comments and replies on a content target.

    Ordering is one of ``created_at``, ``like_count`` or ``reply_count``,
    optionally prefixed with ``-`` for descending.
    """
    result = await comment_service.list_comments(target, page, page_size, ordering)
    interactions = await ledger.state(actor, [c.id for c in result.results])
    return CommentListResponse.from_page(result, interactions)


@router.get(
    "/stats/",
    response_model=CommentStatsResponse,
    summary="Public comment activity",
)
async def comment_stats(
    comment_service: CommentServiceDep,
    top: Annotated[int, Query(ge=1, le=20)] = 5,
    recent: Annotated[int, Query(ge=1, le=20)] = 5,
) -> CommentStatsResponse:
    """Published totals, today's count, most-commented targets and latest comments."""
    stats = await comment_service.stats(top_limit=top, recent_limit=recent)
    return CommentStatsResponse.from_stats(stats)


@router.get(
    "/my-comments/",
    response_model=CommentListResponse,
    summary="List my comments",
)
async def list_my_comments(
    comment_service: CommentServiceDep,
    ledger: InteractionLedgerDep,
    actor: CurrentActor,
    page: PageQuery = 1,
    page_size: PageSizeQuery = 20,
) -> CommentListResponse:
    result = await comment_service.list_by_author(actor, page, page_size)
    interactions = await ledger.state(actor, [c.id for c in result.results])
    return CommentListResponse.from_page(result, interactions)


@router.post(
    "/",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    actor: CurrentActor,
) -> CommentResponse:
    """Create a comment, or a reply when ``parent`` is set.

    Replies to replies are attached to the thread's root comment.
    Rate limited per author when Redis is configured.
    """
    target = resolve_target(data.content_type_name, data.object_id)
    comment = await comment_service.create_comment(
        target=target,
        author=actor,
        text=data.text,
        parent_id=data.parent,
    )
    return CommentResponse.from_comment(comment)


@router.get(
    "/{comment_id}/",
    response_model=CommentResponse,
    summary="Get comment",
)
async def get_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    ledger: InteractionLedgerDep,
    actor: OptionalActor,
) -> CommentResponse:
    comment = await comment_service.get_comment(comment_id)
    interactions = await ledger.state(actor, [comment.id])
    return CommentResponse.from_comment(comment, interactions.get(comment.id))


@router.patch(
    "/{comment_id}/",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def update_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    actor: CurrentActor,
) -> CommentResponse:
    """Edit a comment's text. Only the author can edit."""
    comment = await comment_service.update_comment(comment_id, actor, data.text)
    return CommentResponse.from_comment(comment)


@router.delete(
    "/{comment_id}/",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    actor: CurrentActor,
) -> Response:
    """Soft delete: the comment is hidden from listings but kept for audit."""
    await comment_service.soft_delete(comment_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{comment_id}/interact/",
    response_model=InteractionResponse,
    summary="Like, dislike or report a comment",
)
async def interact(
    comment_id: UUID,
    data: InteractRequest,
    comment_service: CommentServiceDep,
    ledger: InteractionLedgerDep,
    actor: CurrentActor,
) -> InteractionResponse:
    """Toggle a like or dislike, or file a report.

    Liking an already liked comment removes the like. Reporting twice is a
    no-op.
    """
    if data.interaction_type == InteractionType.REPORT:
        await ledger.report(actor, comment_id, data.reason)
    else:
        await ledger.toggle(actor, comment_id, data.interaction_type)

    comment = await comment_service.get_comment(comment_id)
    state = (await ledger.state(actor, [comment_id])).get(comment_id)

    return InteractionResponse(
        interaction_type=data.interaction_type,
        liked=state.liked if state else False,
        disliked=state.disliked if state else False,
        like_count=comment.like_count,
        dislike_count=comment.dislike_count,
        report_count=comment.report_count,
    )
