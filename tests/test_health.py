"""Tests for health endpoints."""

from fastapi.testclient import TestClient

from comment_engine.main import create_app


def test_liveness(client: TestClient) -> None:
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(client: TestClient) -> None:
    """Ready once the lifespan has wired the in-memory services."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["storage_backend"] == "memory"
    assert data["redis"] is False


def test_not_ready_without_services(settings) -> None:
    # No context manager: the lifespan never runs
    client = TestClient(create_app(settings))
    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "comment-engine"
    assert "version" in data
    assert "environment" in data


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_error_body_carries_request_id(client: TestClient) -> None:
    response = client.get(
        "/api/comments/",
        params={"content_type": "podcast", "object_id": "abc"},
        headers={"X-Request-ID": "req-456"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid_target"
    assert body["request_id"] == "req-456"
    assert body["error"] is True
