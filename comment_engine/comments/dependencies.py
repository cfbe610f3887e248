"""FastAPI dependencies for the comment engine.

Provides dependency injection for:
- Comment, interaction, moderation and notification services
- Target resolution from query parameters
- Error code to HTTP status mapping
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status

from comment_engine.core.exceptions import CommentError
from comment_engine.interactions.service import InteractionLedger
from comment_engine.moderation.service import ModerationEngine
from comment_engine.notifications.service import NotificationService
from comment_engine.targets.models import TargetHandle
from comment_engine.targets.resolver import resolve_target

from .service import CommentService


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


async def get_comment_service(request: Request) -> CommentService:
    return _service(request, "comment_service")


async def get_interaction_ledger(request: Request) -> InteractionLedger:
    return _service(request, "interaction_ledger")


async def get_moderation_engine(request: Request) -> ModerationEngine:
    return _service(request, "moderation_engine")


async def get_notification_service(request: Request) -> NotificationService:
    return _service(request, "notification_service")


async def get_target(
    content_type: Annotated[str, Query(min_length=1)],
    object_id: Annotated[str, Query(min_length=1)],
) -> TargetHandle:
    """Resolve the ``content_type`` / ``object_id`` query parameters."""
    return resolve_target(content_type, object_id)


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
InteractionLedgerDep = Annotated[InteractionLedger, Depends(get_interaction_ledger)]
ModerationEngineDep = Annotated[ModerationEngine, Depends(get_moderation_engine)]
NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]
TargetDep = Annotated[TargetHandle, Depends(get_target)]


STATUS_BY_CODE: dict[str, int] = {
    "invalid_target": status.HTTP_400_BAD_REQUEST,
    "empty_text": status.HTTP_400_BAD_REQUEST,
    "comment_too_long": status.HTTP_400_BAD_REQUEST,
    "invalid_parent": status.HTTP_400_BAD_REQUEST,
    "invalid_ordering": status.HTTP_400_BAD_REQUEST,
    "invalid_page": status.HTTP_400_BAD_REQUEST,
    "reason_required": status.HTTP_400_BAD_REQUEST,
    "spam_detected": status.HTTP_400_BAD_REQUEST,
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "notification_not_found": status.HTTP_404_NOT_FOUND,
    "permission_denied": status.HTTP_403_FORBIDDEN,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "concurrent_update": status.HTTP_409_CONFLICT,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    "session_expired": status.HTTP_401_UNAUTHORIZED,
    "service_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def handle_comment_error(error: CommentError) -> int:
    """HTTP status code for a comment engine error."""
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
