"""Tests for access token verification and the Actor identity."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from jose import JWTError, jwt

from comment_engine.auth.models import Actor
from comment_engine.auth.security import create_access_token, decode_access_token
from comment_engine.config import get_settings


def _sign(claims: dict) -> str:
    settings = get_settings()
    return jwt.encode(
        claims, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


class TestAccessToken:
    """Tests for create_access_token and decode_access_token."""

    def test_round_trip(self) -> None:
        actor = Actor(id="user-1", display_name="One", is_moderator=True)

        payload = decode_access_token(create_access_token(actor.to_claims()))

        assert payload["type"] == "access"
        assert Actor.from_claims(payload) == actor

    def test_expired_token(self) -> None:
        token = create_access_token({"sub": "user-1"}, timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_type(self) -> None:
        with pytest.raises(JWTError, match="token type"):
            decode_access_token(_sign({"sub": "user-1", "type": "refresh"}))

    def test_missing_subject(self) -> None:
        with pytest.raises(JWTError, match="subject"):
            decode_access_token(_sign({"type": "access"}))

    def test_tampered_signature(self) -> None:
        token = create_access_token({"sub": "user-1"})
        with pytest.raises(JWTError):
            decode_access_token(token[:-2] + "xx")


class TestActor:
    @pytest.mark.parametrize(
        "is_admin,is_moderator,expected",
        [(False, False, False), (False, True, True), (True, False, True)],
    )
    def test_can_moderate(self, is_admin, is_moderator, expected) -> None:
        actor = Actor(id="a", is_admin=is_admin, is_moderator=is_moderator)
        assert actor.can_moderate is expected

    def test_from_minimal_claims(self) -> None:
        actor = Actor.from_claims({"sub": 12})
        assert actor == Actor(id="12")


class TestBearerDependency:
    def test_malformed_header(self, client: TestClient) -> None:
        response = client.post(
            "/api/comments/",
            json={"content_type_name": "story", "object_id": "1", "text": "x"},
            headers={"Authorization": "Token abc"},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"

    def test_invalid_token_on_public_listing_is_anonymous(
        self, client: TestClient
    ) -> None:
        response = client.get(
            "/api/comments/",
            params={"content_type": "story", "object_id": "1"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 200
