"""Tests for CommentApi error mapping and session refresh."""

from unittest.mock import AsyncMock

import httpx
import pytest

from comment_engine.client import CommentApi, SessionContext
from comment_engine.core.exceptions import (
    CommentError,
    CommentNotFoundError,
    EmptyTextError,
    ServiceUnavailableError,
    SessionExpiredError,
)


def make_api(handler, session: SessionContext) -> tuple[CommentApi, httpx.AsyncClient]:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://test/api"
    )
    return CommentApi(http, session), http


def empty_listing() -> httpx.Response:
    return httpx.Response(200, json={"count": 0, "results": []})


class TestSessionRefresh:
    """A 401 refreshes the token once and retries once."""

    @pytest.mark.asyncio
    async def test_retry_with_new_token(self, story) -> None:
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization"))
            if request.headers.get("Authorization") == "Bearer stale":
                return httpx.Response(401, json={"code": "not_authenticated"})
            return empty_listing()

        refresh = AsyncMock(return_value="fresh")
        session = SessionContext(access_token="stale", refresh=refresh)
        api, http = make_api(handler, session)
        async with http:
            listing = await api.list_comments(story)

        assert listing.count == 0
        assert seen == ["Bearer stale", "Bearer fresh"]
        refresh.assert_awaited_once()
        assert session.access_token == "fresh"

    @pytest.mark.asyncio
    async def test_second_401_expires_session(self, story) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(401, json={"code": "not_authenticated"})

        refresh = AsyncMock(return_value="fresh")
        api, http = make_api(handler, SessionContext("stale", refresh=refresh))
        async with http:
            with pytest.raises(SessionExpiredError):
                await api.list_comments(story)

        assert calls == 2
        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_refresher(self, story) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401)

        api, http = make_api(handler, SessionContext("stale"))
        async with http:
            with pytest.raises(SessionExpiredError):
                await api.create_comment(story, "Hi")

    @pytest.mark.asyncio
    async def test_failing_refresher_expires_session(self, story) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"code": "not_authenticated"})

        refresh = AsyncMock(side_effect=RuntimeError("identity provider down"))
        api, http = make_api(handler, SessionContext("stale", refresh=refresh))
        async with http:
            with pytest.raises(SessionExpiredError) as exc_info:
                await api.list_comments(story)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_anonymous_request_has_no_auth_header(self, story) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return empty_listing()

        api, http = make_api(handler, SessionContext())
        async with http:
            await api.list_comments(story, page=2, ordering="-like_count")

        (request,) = seen
        assert "Authorization" not in request.headers
        assert request.url.params["page"] == "2"
        assert request.url.params["ordering"] == "-like_count"
        assert request.url.params["content_type"] == "story"


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [500, 502, 503])
    async def test_server_errors(self, story, session, status_code) -> None:
        api, http = make_api(lambda r: httpx.Response(status_code), session)
        async with http:
            with pytest.raises(ServiceUnavailableError):
                await api.list_comments(story)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json={"count": "many", "results": None}),
            httpx.Response(200, json=[]),
        ],
    )
    async def test_malformed_success_body(self, story, session, response) -> None:
        api, http = make_api(lambda r: response, session)
        async with http:
            with pytest.raises(ServiceUnavailableError):
                await api.list_comments(story)

    @pytest.mark.asyncio
    async def test_transport_error(self, story, session) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        api, http = make_api(handler, session)
        async with http:
            with pytest.raises(ServiceUnavailableError, match="connection refused"):
                await api.list_comments(story)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,code,error_cls",
        [
            (400, "empty_text", EmptyTextError),
            (404, "comment_not_found", CommentNotFoundError),
        ],
    )
    async def test_known_codes(
        self, story, session, status_code, code, error_cls
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                status_code, json={"code": code, "message": "from server"}
            )

        api, http = make_api(handler, session)
        async with http:
            with pytest.raises(error_cls) as exc_info:
                await api.create_comment(story, "x")

        assert exc_info.value.message == "from server"

    @pytest.mark.asyncio
    async def test_unknown_code_keeps_code(self, session) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(418, json={"code": "teapot", "message": "short"})

        api, http = make_api(handler, session)
        async with http:
            with pytest.raises(CommentError) as exc_info:
                await api.delete_comment("c1")

        assert exc_info.value.code == "teapot"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, session) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="bad request")

        api, http = make_api(handler, session)
        async with http:
            with pytest.raises(CommentError):
                await api.update_comment("c1", "x")


class TestPayloads:
    @pytest.mark.asyncio
    async def test_reply_payload(self, api, server, story) -> None:
        created = await api.create_comment(story, "Reply", parent_id="c1")

        assert created.parent_id == "c1"
        assert created.object_id == "42"
        assert server.requests[-1].headers["Authorization"] == "Bearer token-1"
