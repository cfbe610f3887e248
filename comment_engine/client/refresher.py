"""Periodic count refresh for the comments currently on screen."""

import asyncio
import contextlib

import structlog

from comment_engine.core.exceptions import CommentError

from .reconciliation import CommentClient


logger = structlog.get_logger(__name__)


class CountRefresher:
    """Background worker calling ``CommentClient.refresh_counts``."""

    def __init__(self, client: CommentClient, interval_seconds: float = 30):
        self.client = client
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("count_refresher_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(
            self._worker_loop(),
            name="comment_count_refresher",
        )
        logger.info("count_refresher_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the background worker."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        logger.info("count_refresher_stopped")

    async def _worker_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.client.refresh_counts()
            except asyncio.CancelledError:
                raise
            except CommentError as e:
                # Transient; the next tick tries again
                logger.warning("count_refresh_failed", code=e.code, error=e.message)
            except Exception:
                logger.exception("count_refresher_error")
