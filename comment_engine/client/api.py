"""HTTP access to the comment service.

Error responses are turned back into the engine's exception classes using the
``code`` field of the error body. A 401 triggers one token refresh and one
retry; a failing refresh callback ends the session. Transport failures, 5xx
responses and bodies that do not parse become ``ServiceUnavailableError``.
"""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from comment_engine.comments.schemas import (
    CommentListResponse,
    CommentResponse,
    InteractionResponse,
)
from comment_engine.core.context import get_request_id
from comment_engine.core.exceptions import (
    CommentError,
    ServiceUnavailableError,
    SessionExpiredError,
    error_from_code,
)
from comment_engine.interactions.models import InteractionType
from comment_engine.targets.models import TargetHandle

from .session import SessionContext


logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class CommentApi:
    """Thin async wrapper over the comment REST endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: SessionContext,
    ):
        self.http = http
        self.session = session

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._send(method, path, **kwargs)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            logger.info("comment_api_unauthorized", path=path)
            if not await self._refresh_session():
                raise SessionExpiredError
            response = await self._send(method, path, **kwargs)
            if response.status_code == httpx.codes.UNAUTHORIZED:
                raise SessionExpiredError

        if response.status_code >= httpx.codes.INTERNAL_SERVER_ERROR:
            logger.warning(
                "comment_api_server_error",
                path=path,
                status_code=response.status_code,
            )
            raise ServiceUnavailableError(
                f"Comment service returned {response.status_code}"
            )

        if response.is_error:
            raise self._error_from_response(response)

        return response

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(self.session.auth_headers())
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            return await self.http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("comment_api_transport_error", path=path, error=str(e))
            raise ServiceUnavailableError(str(e) or type(e).__name__) from e

    async def _refresh_session(self) -> bool:
        try:
            return await self.session.refresh_token()
        except Exception as e:
            logger.warning("session_refresh_failed", error=str(e))
            raise SessionExpiredError from e

    @staticmethod
    def _parse(model: type[M], response: httpx.Response) -> M:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            # Covers both undecodable JSON and pydantic validation errors
            logger.warning(
                "comment_api_malformed_response",
                path=response.request.url.path,
                error=str(e),
            )
            msg = "Malformed response from comment service"
            raise ServiceUnavailableError(msg) from e

    @staticmethod
    def _error_from_response(response: httpx.Response) -> CommentError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return error_from_code(body.get("code"), body.get("message"))

    # ==========================================================================
    # Endpoints
    # ==========================================================================

    async def list_comments(
        self,
        target: TargetHandle,
        page: int = 1,
        page_size: int = 20,
        ordering: str | None = None,
    ) -> CommentListResponse:
        params: dict[str, Any] = {
            "content_type": target.content_type.value,
            "object_id": target.object_id,
            "page": page,
            "page_size": page_size,
        }
        if ordering:
            params["ordering"] = ordering
        response = await self._request("GET", "/comments/", params=params)
        return self._parse(CommentListResponse, response)

    async def create_comment(
        self,
        target: TargetHandle,
        text: str,
        parent_id: str | None = None,
    ) -> CommentResponse:
        payload: dict[str, Any] = {
            "content_type_name": target.content_type.value,
            "object_id": target.object_id,
            "text": text,
        }
        if parent_id:
            payload["parent"] = parent_id
        response = await self._request("POST", "/comments/", json=payload)
        return self._parse(CommentResponse, response)

    async def update_comment(self, comment_id: str, text: str) -> CommentResponse:
        response = await self._request(
            "PATCH", f"/comments/{comment_id}/", json={"text": text}
        )
        return self._parse(CommentResponse, response)

    async def delete_comment(self, comment_id: str) -> None:
        await self._request("DELETE", f"/comments/{comment_id}/")

    async def interact(
        self,
        comment_id: str,
        interaction_type: InteractionType,
        reason: str | None = None,
    ) -> InteractionResponse:
        payload: dict[str, Any] = {"interaction_type": interaction_type.value}
        if reason:
            payload["reason"] = reason
        response = await self._request(
            "POST", f"/comments/{comment_id}/interact/", json=payload
        )
        return self._parse(InteractionResponse, response)
