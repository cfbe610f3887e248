"""Shared fixtures: in-memory services, actors and an API test client."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from comment_engine.auth.models import Actor
from comment_engine.auth.security import create_access_token
from comment_engine.comments.repository import InMemoryCommentRepository
from comment_engine.comments.service import CommentService
from comment_engine.config import Settings
from comment_engine.interactions.repository import (
    InMemoryInteractionRepository,
    InMemoryReportRepository,
)
from comment_engine.interactions.service import InteractionLedger
from comment_engine.main import create_app
from comment_engine.moderation.repository import InMemoryModerationRecordRepository
from comment_engine.moderation.service import ModerationEngine
from comment_engine.notifications.repository import InMemoryNotificationRepository
from comment_engine.notifications.service import NotificationService
from comment_engine.targets.models import ContentType, TargetHandle


def bearer(actor: Actor) -> dict[str, str]:
    """Authorization header for an actor."""
    token = create_access_token(actor.to_claims())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-process app without external backends."""
    return Settings(
        environment="testing",
        storage_backend="memory",
        redis_url=None,
        log_level="WARNING",
        log_requests=False,
    )


# ==============================================================================
# Actors and targets
# ==============================================================================


@pytest.fixture
def alice() -> Actor:
    return Actor(id="user-alice", display_name="Alice")


@pytest.fixture
def bob() -> Actor:
    return Actor(id="user-bob", display_name="Bob")


@pytest.fixture
def moderator() -> Actor:
    return Actor(id="user-mod", display_name="Mod", is_moderator=True)


@pytest.fixture
def target() -> TargetHandle:
    return TargetHandle(ContentType.STORY, "42")


@pytest.fixture
def other_target() -> TargetHandle:
    return TargetHandle(ContentType.FILM, "7")


# ==============================================================================
# Services over in-memory repositories
# ==============================================================================


@pytest.fixture
def comment_repo() -> InMemoryCommentRepository:
    return InMemoryCommentRepository()


@pytest.fixture
def interaction_repo() -> InMemoryInteractionRepository:
    return InMemoryInteractionRepository()


@pytest.fixture
def report_repo() -> InMemoryReportRepository:
    return InMemoryReportRepository()


@pytest.fixture
def record_repo() -> InMemoryModerationRecordRepository:
    return InMemoryModerationRecordRepository()


@pytest.fixture
def notification_service() -> NotificationService:
    return NotificationService(InMemoryNotificationRepository())


@pytest.fixture
def comment_service(
    comment_repo,
    interaction_repo,
    report_repo,
    record_repo,
    notification_service,
    settings,
) -> CommentService:
    return CommentService(
        repository=comment_repo,
        interactions=interaction_repo,
        reports=report_repo,
        records=record_repo,
        settings=settings,
        notifications=notification_service,
    )


@pytest.fixture
def ledger(
    comment_repo, interaction_repo, report_repo, notification_service
) -> InteractionLedger:
    return InteractionLedger(
        comments=comment_repo,
        interactions=interaction_repo,
        reports=report_repo,
        notifications=notification_service,
    )


@pytest.fixture
def moderation_engine(
    comment_service, comment_repo, record_repo, report_repo, settings
) -> ModerationEngine:
    return ModerationEngine(
        comments=comment_service,
        repository=comment_repo,
        records=record_repo,
        reports=report_repo,
        settings=settings,
    )


# ==============================================================================
# API
# ==============================================================================


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Test client with the lifespan run (services wired in memory)."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Build Authorization headers: ``auth_headers(actor)``."""
    return bearer
