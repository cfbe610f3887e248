"""Moderation API endpoints.

Mounted before the comment router so ``/comments/moderation/...`` is not
captured by ``/comments/{comment_id}/``.
"""

from typing import Annotated, Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Query, Response
from fastapi.responses import ORJSONResponse

from comment_engine.auth.dependencies import CurrentActor, ModeratorActor
from comment_engine.comments.dependencies import (
    CommentServiceDep,
    ModerationEngineDep,
)
from comment_engine.comments.models import MAX_PAGE_SIZE, CommentStatus
from comment_engine.comments.schemas import CommentResponse
from comment_engine.targets.resolver import parse_content_type

from .schemas import (
    AutoModerateResponse,
    BulkModerateRequest,
    BulkModerateResponse,
    HardDeleteRequest,
    HardDeleteResponse,
    ModerateRequest,
    ModerationQueueResponse,
    ModerationRecordResponse,
    ModerationStatsResponse,
)
from .service import export_csv


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/comments", tags=["moderation"])


@router.get(
    "/moderation/",
    response_model=ModerationQueueResponse,
    summary="Moderation list",
)
async def moderation_queue(
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
    status: CommentStatus | None = None,
    flagged: bool | None = None,
    content_type: str | None = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> ModerationQueueResponse:
    """Comments of every status with their risk score, newest first."""
    result = await engine.queue(
        status=status,
        flagged=flagged,
        content_type=parse_content_type(content_type) if content_type else None,
        search=search,
        page=page,
        page_size=page_size,
    )
    return ModerationQueueResponse.from_page(result)


@router.get(
    "/moderation/export/",
    summary="Export moderation list",
    response_model=None,
)
async def export_moderation_queue(
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
    export_format: Annotated[Literal["csv", "json"], Query(alias="format")] = "csv",
    status: CommentStatus | None = None,
    flagged: bool | None = None,
    content_type: str | None = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
) -> Response:
    """Download every comment matching the list filters, with its risk score."""
    rows = await engine.export(
        status=status,
        flagged=flagged,
        content_type=parse_content_type(content_type) if content_type else None,
        search=search,
    )
    headers = {
        "Content-Disposition": f'attachment; filename="comments.{export_format}"'
    }
    if export_format == "json":
        return ORJSONResponse(rows, headers=headers)
    return Response(
        export_csv(rows), media_type="text/csv; charset=utf-8", headers=headers
    )


@router.post(
    "/moderation/bulk/",
    response_model=BulkModerateResponse,
    summary="Bulk moderate",
)
async def bulk_moderate(
    data: BulkModerateRequest,
    engine: ModerationEngineDep,
    moderator: ModeratorActor,
) -> BulkModerateResponse:
    """Apply one action to many comments.

    Comments that cannot take the action are reported in ``failed_ids``;
    the others are still moderated.
    """
    result = await engine.bulk_moderate(
        data.comment_ids, moderator, data.action, data.reason
    )
    return BulkModerateResponse(
        moderated_count=result.moderated_count,
        failed_ids=result.failed_ids,
    )


@router.post(
    "/moderation/auto/",
    response_model=AutoModerateResponse,
    summary="Run auto-moderation",
)
async def auto_moderate(
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
) -> AutoModerateResponse:
    flagged = await engine.auto_moderate()
    return AutoModerateResponse(flagged_count=flagged)


@router.get(
    "/moderation/stats/",
    response_model=ModerationStatsResponse,
    summary="Moderation statistics",
)
async def moderation_stats(
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
    days: Annotated[int, Query(ge=1, le=365)] = 7,
) -> ModerationStatsResponse:
    stats = await engine.stats(days)
    return ModerationStatsResponse.from_stats(stats)


@router.post(
    "/{comment_id}/moderate/",
    response_model=CommentResponse,
    summary="Moderate comment",
)
async def moderate_comment(
    comment_id: UUID,
    data: ModerateRequest,
    engine: ModerationEngineDep,
    actor: CurrentActor,
) -> CommentResponse:
    """Approve, hide, delete, flag or unflag a comment."""
    comment = await engine.moderate(comment_id, actor, data.action, data.reason)
    return CommentResponse.from_comment(comment)


@router.get(
    "/{comment_id}/moderation-history/",
    response_model=list[ModerationRecordResponse],
    summary="Moderation history",
)
async def moderation_history(
    comment_id: UUID,
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
) -> list[ModerationRecordResponse]:
    """Audit records of a comment, oldest first. Kept after hard deletes."""
    records = await engine.history(comment_id)
    return [ModerationRecordResponse.from_record(r) for r in records]


@router.delete(
    "/{comment_id}/hard-delete/",
    response_model=HardDeleteResponse,
    summary="Hard delete comment",
)
async def hard_delete_comment(
    comment_id: UUID,
    data: HardDeleteRequest,
    comment_service: CommentServiceDep,
    actor: CurrentActor,
) -> HardDeleteResponse:
    """Purge a comment and, for a root, its replies. Audit records are kept."""
    purged = await comment_service.hard_delete(comment_id, actor, data.reason)
    logger.info("hard_delete_requested", comment_id=str(comment_id), purged=purged)
    return HardDeleteResponse(purged_count=purged)
