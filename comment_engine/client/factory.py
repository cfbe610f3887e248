"""Assemble the client stack from ``Settings``."""

from dataclasses import dataclass

import httpx
import structlog

from comment_engine.config.settings import Settings, get_settings

from .api import CommentApi
from .reconciliation import CommentClient
from .refresher import CountRefresher
from .session import SessionContext


logger = structlog.get_logger(__name__)


@dataclass
class ClientStack:
    """HTTP client, API wrapper, reconciliation layer and count refresher.

    Used as an async context manager the refresher runs for the duration of
    the block and the HTTP client is closed on exit.
    """

    http: httpx.AsyncClient
    api: CommentApi
    client: CommentClient
    refresher: CountRefresher

    async def __aenter__(self) -> "ClientStack":
        await self.refresher.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.refresher.stop()
        await self.http.aclose()


def build_client(
    session: SessionContext,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ClientStack:
    """Build a client stack for one UI session.

    Args:
        session: Token, refresh callback and identity of the viewer.
        settings: Defaults to ``get_settings()``.
        transport: Optional httpx transport, for tests or custom routing.
    """
    settings = settings or get_settings()
    http = httpx.AsyncClient(
        base_url=settings.client_base_url,
        timeout=settings.client_timeout_seconds,
        transport=transport,
    )
    api = CommentApi(http, session)
    client = CommentClient(api, page_size=settings.client_page_size)
    refresher = CountRefresher(
        client, interval_seconds=settings.client_refresh_interval_seconds
    )
    logger.debug("comment_client_built", base_url=settings.client_base_url)
    return ClientStack(http=http, api=api, client=client, refresher=refresher)
