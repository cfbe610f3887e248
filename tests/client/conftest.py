"""Fixtures for the comment client: a scripted service behind httpx.MockTransport."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import httpx
import pytest

from comment_engine.client import CommentApi, CommentClient, SessionContext
from comment_engine.targets.models import ContentType, TargetHandle


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

STORY = TargetHandle(ContentType.STORY, "42")
FILM = TargetHandle(ContentType.FILM, "7")


def comment_json(
    comment_id: str,
    text: str = "Hello",
    parent: str | None = None,
    target: TargetHandle = STORY,
    minutes: int = 0,
    **fields: Any,
) -> dict[str, Any]:
    created = (BASE_TIME + timedelta(minutes=minutes)).isoformat()
    body = {
        "id": comment_id,
        "author": {"id": "user-alice", "display_name": "Alice"},
        "content_type": target.content_type.value,
        "object_id": target.object_id,
        "parent": parent,
        "text": text,
        "status": "published",
        "like_count": 0,
        "dislike_count": 0,
        "reply_count": 0,
        "report_count": 0,
        "created_at": created,
        "updated_at": created,
    }
    body.update(fields)
    return body


class Gate:
    """Holds a request until the test releases it."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.released = asyncio.Event()

    def release(self) -> None:
        self.released.set()

    async def hold(self) -> None:
        self.entered.set()
        await self.released.wait()


class FakeCommentServer:
    """Minimal stand-in for the comment endpoints.

    ``listings`` maps a target to the rows its list endpoint returns.
    ``gates`` holds requests keyed by ``"METHOD path"`` or by target for
    list requests. ``failures`` replaces the response for a key.
    """

    def __init__(self) -> None:
        self.listings: dict[TargetHandle, list[dict[str, Any]]] = {}
        self.gates: dict[Any, Gate] = {}
        self.failures: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []
        self.interaction: dict[str, Any] | None = None
        self._ids = count(100)

    def gate(self, key: Any) -> Gate:
        self.gates[key] = Gate()
        return self.gates[key]

    def list_requests(self, target: TargetHandle | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == "GET"
            and (target is None or r.url.params.get("object_id") == target.object_id)
        ]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        path = request.url.path.removeprefix("/api")

        if request.method == "GET" and path == "/comments/":
            target = TargetHandle(
                ContentType(request.url.params["content_type"]),
                request.url.params["object_id"],
            )
            gate = self.gates.get(target)
            if gate:
                await gate.hold()
            if key in self.failures:
                return self.failures[key]
            rows = self.listings.get(target, [])
            return httpx.Response(
                200, json={"count": len(rows), "next": None, "results": rows}
            )

        gate = self.gates.get(key)
        if gate:
            await gate.hold()
        if key in self.failures:
            return self.failures[key]

        if request.method == "POST" and path == "/comments/":
            payload = json.loads(request.content)
            target = TargetHandle(
                ContentType(payload["content_type_name"]), str(payload["object_id"])
            )
            return httpx.Response(
                201,
                json=comment_json(
                    f"c{next(self._ids)}",
                    payload["text"],
                    parent=payload.get("parent"),
                    target=target,
                    minutes=60,
                ),
            )
        if request.method == "PATCH":
            comment_id = path.split("/")[2]
            payload = json.loads(request.content)
            return httpx.Response(
                200,
                json=comment_json(
                    comment_id,
                    payload["text"],
                    is_edited=True,
                    edited_at=BASE_TIME.isoformat(),
                ),
            )
        if request.method == "DELETE":
            return httpx.Response(204)
        if path.endswith("/interact/"):
            payload = json.loads(request.content)
            body = {
                "interaction_type": payload["interaction_type"],
                "liked": payload["interaction_type"] == "like",
                "disliked": payload["interaction_type"] == "dislike",
                "like_count": 1,
                "dislike_count": 0,
                "report_count": 0,
            }
            return httpx.Response(200, json=self.interaction or body)
        return httpx.Response(404, json={"code": "not_found", "message": "Not found"})


@pytest.fixture
def server() -> FakeCommentServer:
    return FakeCommentServer()


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(
        access_token="token-1", actor_id="user-alice", display_name="Alice"
    )


@pytest.fixture
async def api(server, session):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(server), base_url="http://test/api"
    ) as http:
        yield CommentApi(http, session)


@pytest.fixture
def comment_client(api) -> CommentClient:
    return CommentClient(api)


@pytest.fixture
def story() -> TargetHandle:
    return STORY


@pytest.fixture
def film() -> TargetHandle:
    return FILM


@pytest.fixture
def make_comment():
    return comment_json
