"""Tests for the comment HTTP endpoints."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from comment_engine.auth.models import Actor


TARGET = {"content_type": "story", "object_id": "42"}


@pytest.fixture
def post_comment(client: TestClient, auth_headers):
    """Create a comment through the API and return the response body."""

    def _post(actor: Actor, text: str, parent: str | None = None, **target) -> dict:
        payload = {
            "content_type_name": target.get("content_type", "stories.story"),
            "object_id": target.get("object_id", "42"),
            "text": text,
        }
        if parent:
            payload["parent"] = parent
        response = client.post(
            "/api/comments/", json=payload, headers=auth_headers(actor)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _post


class TestCreateComment:
    """Tests for POST /api/comments/."""

    def test_creates_comment(self, post_comment, alice: Actor) -> None:
        body = post_comment(alice, "Loved it")

        assert body["text"] == "Loved it"
        assert body["content_type"] == "story"
        assert body["object_id"] == "42"
        assert body["parent"] is None
        assert body["author"]["id"] == alice.id
        assert body["status"] == "published"

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.post(
            "/api/comments/",
            json={"content_type_name": "story", "object_id": 1, "text": "Hi"},
        )

        assert response.status_code == 401
        body = response.json()
        assert body["error"] is True
        assert body["code"] == "not_authenticated"

    def test_invalid_target(
        self, client: TestClient, auth_headers, alice: Actor
    ) -> None:
        response = client.post(
            "/api/comments/",
            json={"content_type_name": "blog.post", "object_id": 1, "text": "Hi"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_target"

    def test_empty_text(self, client: TestClient, auth_headers, alice: Actor) -> None:
        response = client.post(
            "/api/comments/",
            json={"content_type_name": "story", "object_id": 1, "text": "   "},
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "empty_text"

    def test_reply_to_reply_attaches_to_root(
        self, client: TestClient, post_comment, alice: Actor, bob: Actor
    ) -> None:
        root = post_comment(alice, "Root")
        reply = post_comment(bob, "Reply", parent=root["id"])
        nested = post_comment(alice, "Nested", parent=reply["id"])

        assert nested["parent"] == root["id"]
        body = client.get(f"/api/comments/{root['id']}/").json()
        assert body["reply_count"] == 2


class TestListComments:
    """Tests for GET /api/comments/."""

    def test_lists_target_comments(
        self, client: TestClient, post_comment, alice: Actor
    ) -> None:
        post_comment(alice, "On target")
        post_comment(alice, "Elsewhere", content_type="film", object_id="9")

        response = client.get("/api/comments/", params=TARGET)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["next"] is None
        assert body["previous"] is None
        assert [c["text"] for c in body["results"]] == ["On target"]

    def test_equivalent_target_spellings(
        self, client: TestClient, post_comment, alice: Actor
    ) -> None:
        post_comment(alice, "Padded id", object_id="0042")

        response = client.get(
            "/api/comments/",
            params={"content_type": "stories.story", "object_id": "42"},
        )
        assert response.json()["count"] == 1

    def test_user_interaction_for_authenticated_viewer(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        comment = post_comment(alice, "Like me")
        client.post(
            f"/api/comments/{comment['id']}/interact/",
            json={"interaction_type": "like"},
            headers=auth_headers(bob),
        )

        as_bob = client.get("/api/comments/", params=TARGET, headers=auth_headers(bob))
        anonymous = client.get("/api/comments/", params=TARGET)

        assert as_bob.json()["results"][0]["user_interaction"] == {
            "liked": True,
            "disliked": False,
        }
        assert anonymous.json()["results"][0]["user_interaction"] is None

    def test_invalid_ordering(self, client: TestClient) -> None:
        response = client.get(
            "/api/comments/", params={**TARGET, "ordering": "-author"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_ordering"

    def test_missing_target(self, client: TestClient) -> None:
        response = client.get("/api/comments/")

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_page_size_limit(self, client: TestClient) -> None:
        response = client.get("/api/comments/", params={**TARGET, "page_size": 101})
        assert response.status_code == 422

    def test_my_comments(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        post_comment(alice, "Alice here")
        post_comment(bob, "Bob here")

        response = client.get("/api/comments/my-comments/", headers=auth_headers(bob))

        assert response.status_code == 200
        assert [c["text"] for c in response.json()["results"]] == ["Bob here"]


class TestCommentDetail:
    """Tests for GET/PATCH/DELETE /api/comments/{id}/."""

    def test_unknown_comment(self, client: TestClient) -> None:
        response = client.get(f"/api/comments/{uuid4()}/")

        assert response.status_code == 404
        assert response.json()["code"] == "comment_not_found"

    def test_edit_by_author(
        self, client: TestClient, post_comment, auth_headers, alice: Actor
    ) -> None:
        comment = post_comment(alice, "Typo")

        response = client.patch(
            f"/api/comments/{comment['id']}/",
            json={"text": "Fixed"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["text"] == "Fixed"
        assert response.json()["is_edited"] is True

    def test_edit_by_other_user(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        comment = post_comment(alice, "Mine")

        response = client.patch(
            f"/api/comments/{comment['id']}/",
            json={"text": "Hijacked"},
            headers=auth_headers(bob),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    def test_soft_delete(
        self, client: TestClient, post_comment, auth_headers, alice: Actor
    ) -> None:
        comment = post_comment(alice, "Regret")

        response = client.delete(
            f"/api/comments/{comment['id']}/", headers=auth_headers(alice)
        )

        assert response.status_code == 204
        assert client.get(f"/api/comments/{comment['id']}/").status_code == 404
        assert client.get("/api/comments/", params=TARGET).json()["count"] == 0


class TestInteract:
    """Tests for POST /api/comments/{id}/interact/."""

    def test_like_toggles(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        comment = post_comment(alice, "Good take")
        url = f"/api/comments/{comment['id']}/interact/"

        like = {"interaction_type": "like"}

        first = client.post(url, json=like, headers=auth_headers(bob))
        second = client.post(url, json=like, headers=auth_headers(bob))

        assert first.json()["liked"] is True
        assert first.json()["like_count"] == 1
        assert second.json()["liked"] is False
        assert second.json()["like_count"] == 0

    def test_dislike_replaces_like(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        comment = post_comment(alice, "Hot take")
        url = f"/api/comments/{comment['id']}/interact/"

        client.post(url, json={"interaction_type": "like"}, headers=auth_headers(bob))
        response = client.post(
            url, json={"interaction_type": "dislike"}, headers=auth_headers(bob)
        )

        body = response.json()
        assert (body["liked"], body["disliked"]) == (False, True)
        assert (body["like_count"], body["dislike_count"]) == (0, 1)

    def test_report_once_per_actor(
        self, client: TestClient, post_comment, auth_headers, alice: Actor, bob: Actor
    ) -> None:
        comment = post_comment(alice, "Spammy")
        url = f"/api/comments/{comment['id']}/interact/"
        payload = {"interaction_type": "report", "reason": "spam"}

        client.post(url, json=payload, headers=auth_headers(bob))
        response = client.post(url, json=payload, headers=auth_headers(bob))

        assert response.status_code == 200
        assert response.json()["report_count"] == 1

    def test_unknown_interaction_type(
        self, client: TestClient, post_comment, auth_headers, alice: Actor
    ) -> None:
        comment = post_comment(alice, "Anything")

        response = client.post(
            f"/api/comments/{comment['id']}/interact/",
            json={"interaction_type": "love"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 422


class TestErrorBody:
    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get(
            f"/api/comments/{uuid4()}/", headers={"X-Request-ID": "req-123"}
        )

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"


class TestStats:
    """Tests for GET /api/comments/stats/."""

    def test_public_summary(self, client: TestClient, post_comment, alice, bob) -> None:
        post_comment(alice, "One")
        post_comment(bob, "Two")
        latest = post_comment(alice, "Three", content_type="film", object_id="7")

        response = client.get("/api/comments/stats/", params={"recent": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["total_comments"] == 3
        assert body["comments_today"] == 3
        assert body["top_commented_targets"][0] == {
            "content_type": "story",
            "object_id": "42",
            "comment_count": 2,
        }
        assert [c["id"] for c in body["recent_comments"]] == [latest["id"]]

    def test_limit_bounds(self, client: TestClient) -> None:
        response = client.get("/api/comments/stats/", params={"top": 0})
        assert response.status_code == 422
