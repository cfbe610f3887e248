"""Comment engine API - main application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from comment_engine.comments.dependencies import handle_comment_error
from comment_engine.comments.repository import (
    CommentRepository,
    InMemoryCommentRepository,
)
from comment_engine.comments.router import router as comments_router
from comment_engine.comments.service import CommentService
from comment_engine.config import Settings, get_settings
from comment_engine.core.context import get_request_id
from comment_engine.core.exceptions import CommentError
from comment_engine.core.logging import configure_structlog, get_logger
from comment_engine.core.middleware import RequestContextMiddleware
from comment_engine.core.redis import init_redis, shutdown_redis
from comment_engine.health import router as health_router
from comment_engine.interactions.repository import (
    InMemoryInteractionRepository,
    InMemoryReportRepository,
    InteractionRepository,
    ReportRepository,
)
from comment_engine.interactions.service import InteractionLedger
from comment_engine.moderation.repository import (
    InMemoryModerationRecordRepository,
    ModerationRecordRepository,
)
from comment_engine.moderation.router import router as moderation_router
from comment_engine.moderation.service import ModerationEngine
from comment_engine.notifications.repository import (
    InMemoryNotificationRepository,
    NotificationRepository,
)
from comment_engine.notifications.router import router as notifications_router
from comment_engine.notifications.service import NotificationService


logger = get_logger(__name__)


@dataclass
class Repositories:
    comments: CommentRepository
    interactions: InteractionRepository
    reports: ReportRepository
    records: ModerationRecordRepository
    notifications: NotificationRepository


def memory_repositories() -> Repositories:
    """In-process repositories for tests and local development."""
    return Repositories(
        comments=InMemoryCommentRepository(),
        interactions=InMemoryInteractionRepository(),
        reports=InMemoryReportRepository(),
        records=InMemoryModerationRecordRepository(),
        notifications=InMemoryNotificationRepository(),
    )


def cassandra_repositories(session: Any, keyspace: str) -> Repositories:
    from comment_engine.comments.cassandra_repository import (  # noqa: PLC0415
        CassandraCommentRepository,
    )
    from comment_engine.interactions.cassandra_repository import (  # noqa: PLC0415
        CassandraInteractionRepository,
        CassandraReportRepository,
    )
    from comment_engine.moderation.cassandra_repository import (  # noqa: PLC0415
        CassandraModerationRecordRepository,
    )
    from comment_engine.notifications.cassandra_repository import (  # noqa: PLC0415
        CassandraNotificationRepository,
    )

    return Repositories(
        comments=CassandraCommentRepository(session, keyspace),
        interactions=CassandraInteractionRepository(session, keyspace),
        reports=CassandraReportRepository(session, keyspace),
        records=CassandraModerationRecordRepository(session, keyspace),
        notifications=CassandraNotificationRepository(session, keyspace),
    )


def wire_services(
    app: FastAPI,
    repos: Repositories,
    settings: Settings,
    redis_client: Any = None,
) -> None:
    """Build the services and expose them on ``app.state``."""
    notification_service = NotificationService(repos.notifications)
    comment_service = CommentService(
        repository=repos.comments,
        interactions=repos.interactions,
        reports=repos.reports,
        records=repos.records,
        settings=settings,
        redis=redis_client,
        notifications=notification_service,
    )

    app.state.notification_service = notification_service
    app.state.comment_service = comment_service
    app.state.interaction_ledger = InteractionLedger(
        comments=repos.comments,
        interactions=repos.interactions,
        reports=repos.reports,
        notifications=notification_service,
    )
    app.state.moderation_engine = ModerationEngine(
        comments=comment_service,
        repository=repos.comments,
        records=repos.records,
        reports=repos.reports,
        settings=settings,
    )
    app.state.redis = redis_client


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Connect backends and wire services."""
        logger.info(
            "starting_application",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
            storage_backend=settings.storage_backend,
        )
        app.state.storage_backend = settings.storage_backend

        # Redis is optional: without it rate limiting and duplicate checks are off
        redis_client = None
        if settings.redis_configured:
            try:
                redis_client = await init_redis()
            except Exception as e:
                logger.warning(
                    "redis_init_skipped",
                    error=str(e),
                    message="Running without rate limiting",
                )

        cassandra = None
        if settings.storage_backend == "memory":
            wire_services(app, memory_repositories(), settings, redis_client)
        else:
            from comment_engine.core.database import (  # noqa: PLC0415
                async_cassandra as cassandra,
            )

            try:
                session = await cassandra.init_async_cassandra()
                wire_services(
                    app,
                    cassandra_repositories(session, settings.cassandra_keyspace),
                    settings,
                    redis_client,
                )
            except Exception as e:
                logger.warning(
                    "database_init_skipped",
                    error=str(e),
                    message="Running without database connection",
                )

        yield

        logger.info("shutting_down_application")
        await shutdown_redis()
        if cassandra is not None:
            await cassandra.shutdown_async_cassandra()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Threaded comments and moderation for the streaming platform",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings

    # Request context middleware (outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _request_id(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id() or None

    def _error_body(
        request: Request, status_code: int, message: str, code: str
    ) -> dict[str, Any]:
        return {
            "error": True,
            "code": code,
            "message": message,
            "status_code": status_code,
            "request_id": _request_id(request),
        }

    @app.exception_handler(CommentError)
    async def comment_error_handler(
        request: Request, exc: CommentError
    ) -> ORJSONResponse:
        """Render domain errors with their code and mapped status."""
        status_code = handle_comment_error(exc)
        logger.info(
            "comment_error",
            code=exc.code,
            status_code=status_code,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status_code,
            content=_error_body(request, status_code, exc.message, exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        code = {
            status.HTTP_401_UNAUTHORIZED: "not_authenticated",
            status.HTTP_403_FORBIDDEN: "permission_denied",
            status.HTTP_404_NOT_FOUND: "not_found",
            status.HTTP_503_SERVICE_UNAVAILABLE: "service_unavailable",
        }.get(exc.status_code, "http_error")
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message, code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Schema errors are safe to expose field by field."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        content = _error_body(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            "validation_error",
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all: log the traceback, return a generic message."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
                "internal_error",
            ),
        )

    # Moderation and notification routes must precede /comments/{comment_id}/
    app.include_router(health_router)
    app.include_router(moderation_router, prefix=settings.api_prefix)
    app.include_router(notifications_router, prefix=settings.api_prefix)
    app.include_router(comments_router, prefix=settings.api_prefix)

    return app


app = create_app()
