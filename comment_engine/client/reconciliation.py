"""Client-side comment state with optimistic updates.

Holds the assembled threads of the targets a UI has opened and keeps them
consistent with the service:

- Loads are de-duplicated per target. A target is marked loaded before the
  network call and the mark is only cleared when the load fails, is
  cancelled, or finishes after the user moved to another target.
- Results for a target that is no longer current are discarded.
- Every write goes through ``apply_optimistic`` / ``reconcile``. The rollback
  captured at apply time undoes exactly what apply changed.
- Count refreshes never touch a comment with a mutation in flight.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import uuid4

import structlog

from comment_engine.comments.models import CommentStatus
from comment_engine.comments.schemas import (
    CommentResponse,
    InteractionResponse,
    UserInteraction,
)
from comment_engine.interactions.models import InteractionType, toggle_flags
from comment_engine.targets.models import TargetHandle
from comment_engine.threads.assembler import CommentThread, assemble

from .api import CommentApi


logger = structlog.get_logger(__name__)

R = TypeVar("R")

TEMP_ID_PREFIX = "temp-"

Rollback = Callable[[], None]


@dataclass
class Mutation:
    """An optimistic change.

    ``apply`` performs the local change and returns the function that undoes
    it. ``confirm`` receives the service's result on success.
    """

    apply: Callable[[], Rollback]
    comment_ids: tuple[str, ...] = ()
    confirm: Callable[[Any], None] | None = None
    description: str = ""


@dataclass
class PendingMutation:
    mutation: Mutation
    rollback: Rollback
    settled: bool = False


@dataclass
class TargetState:
    threads: list[CommentThread[CommentResponse]] = field(default_factory=list)
    count: int = 0


class CommentClient:
    """Reconciliation layer between a UI and the comment service."""

    def __init__(self, api: CommentApi, page_size: int = 20):
        self.api = api
        self.page_size = page_size
        self.current_target: TargetHandle | None = None
        self._state: dict[TargetHandle, TargetState] = {}
        self._loaded: set[TargetHandle] = set()
        self._inflight: dict[TargetHandle, asyncio.Task] = {}
        self._pending: Counter[str] = Counter()
        # Bumped on every local change to a comment, so a refresh can tell
        # whether its response is older than what is on screen
        self._generation: Counter[str] = Counter()

    # ==========================================================================
    # Loading
    # ==========================================================================

    def threads_for(self, target: TargetHandle) -> list[CommentThread[CommentResponse]]:
        state = self._state.get(target)
        return state.threads if state else []

    def is_loaded(self, target: TargetHandle) -> bool:
        return target in self._loaded

    def has_pending(self, comment_id: str) -> bool:
        return self._pending[comment_id] > 0

    async def load_thread_for(
        self, target: TargetHandle
    ) -> list[CommentThread[CommentResponse]]:
        """Load and assemble the threads of ``target``, making it current.

        A second call while a load is in flight shares that load; a call
        after a successful load returns the cached threads without a request.
        Cancelled or stale loads return an empty list and leave state as is.
        A caller that is itself cancelled does not stop the shared load,
        which still stores its result.
        """
        self.current_target = target

        task = self._inflight.get(target)
        if task is None:
            if target in self._loaded:
                return self.threads_for(target)
            self._loaded.add(target)
            task = asyncio.create_task(
                self._fetch(target), name=f"load_comments:{target.key}"
            )
            self._inflight[target] = task
            task.add_done_callback(lambda t: self._forget(target, t))

        try:
            stored = await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.info("comment_load_cancelled", target=target.key)
            return []

        return self.threads_for(target) if stored else []

    async def _fetch(self, target: TargetHandle) -> bool:
        """Fetch and store the threads of ``target``.

        Runs as its own task so the result lands whichever caller is still
        waiting. The loaded mark is cleared unless the result was stored.

        Returns:
            False when the target stopped being current before the response.
        """
        stored = False
        try:
            result = await self.api.list_comments(
                target, page=1, page_size=self.page_size
            )
            if self.current_target != target:
                # The user moved on while this load was in flight
                logger.info("comment_load_discarded", target=target.key)
                return False
            self._state[target] = TargetState(
                threads=assemble(result.results), count=result.count
            )
            stored = True
            return True
        finally:
            if not stored:
                self._loaded.discard(target)

    def _forget(self, target: TargetHandle, task: asyncio.Task) -> None:
        if self._inflight.get(target) is task:
            del self._inflight[target]

    def cancel(self, target: TargetHandle) -> bool:
        """Abort an in-flight load of ``target``.

        Returns:
            True if a load was cancelled.
        """
        task = self._inflight.get(target)
        if task is None or task.done():
            return False
        task.cancel()
        del self._inflight[target]
        self._loaded.discard(target)
        return True

    def invalidate(self, target: TargetHandle) -> None:
        """Make the next load of ``target`` go to the network."""
        self._loaded.discard(target)

    # ==========================================================================
    # Optimistic mutations
    # ==========================================================================

    def apply_optimistic(self, mutation: Mutation) -> PendingMutation:
        """Apply a change locally and remember how to undo it."""
        rollback = mutation.apply()
        self._pending.update(mutation.comment_ids)
        self._generation.update(mutation.comment_ids)
        return PendingMutation(mutation=mutation, rollback=rollback)

    def reconcile(
        self,
        pending: PendingMutation,
        result: Any = None,
        error: BaseException | None = None,
    ) -> Any:
        """Settle a pending mutation.

        On error the captured rollback runs and the error is re-raised.
        Otherwise ``confirm`` receives the result, which is returned.
        """
        if pending.settled:
            msg = "Mutation already reconciled"
            raise RuntimeError(msg)
        pending.settled = True
        self._pending.subtract(pending.mutation.comment_ids)
        self._pending += Counter()  # drop zero and negative entries
        self._generation.update(pending.mutation.comment_ids)

        if error is not None:
            pending.rollback()
            logger.info(
                "optimistic_mutation_rolled_back",
                mutation=pending.mutation.description,
                error=type(error).__name__,
            )
            raise error

        if pending.mutation.confirm is not None:
            pending.mutation.confirm(result)
        return result

    async def _run(self, mutation: Mutation, call: Callable[[], Awaitable[R]]) -> R:
        pending = self.apply_optimistic(mutation)
        try:
            result = await call()
        except (Exception, asyncio.CancelledError) as e:
            self.reconcile(pending, error=e)
        return self.reconcile(pending, result=result)

    # ==========================================================================
    # Lookup helpers
    # ==========================================================================

    def _locate(
        self, comment_id: str
    ) -> tuple[TargetState, CommentThread[CommentResponse], CommentResponse] | None:
        for state in self._state.values():
            for thread in state.threads:
                if thread.root.id == comment_id:
                    return state, thread, thread.root
                for reply in thread.replies:
                    if reply.id == comment_id:
                        return state, thread, reply
        return None

    def find(self, comment_id: str) -> CommentResponse | None:
        located = self._locate(comment_id)
        return located[2] if located else None

    # ==========================================================================
    # Operations
    # ==========================================================================

    async def post_comment(
        self,
        target: TargetHandle,
        text: str,
        parent_id: str | None = None,
    ) -> CommentResponse:
        """Post a comment or reply, showing it immediately.

        Replies to a reply are shown under the thread root, as the service
        stores them.
        """
        state = self._state.setdefault(target, TargetState())
        temp_id = f"{TEMP_ID_PREFIX}{uuid4()}"

        thread = None
        if parent_id:
            located = self._locate(parent_id)
            thread = located[1] if located else None
        now = datetime.now(UTC)
        temp = CommentResponse(
            id=temp_id,
            author=self.api.session.as_author(),
            content_type=target.content_type,
            object_id=target.object_id,
            parent_id=thread.root.id if thread else parent_id,
            text=text,
            status=CommentStatus.PUBLISHED,
            created_at=now,
            updated_at=now,
        )

        def apply() -> Rollback:
            if parent_id and thread is None:
                # Parent not on screen; the reply shows up on the next load
                return lambda: None
            if thread is None:
                new_thread = CommentThread(root=temp)
                state.threads.insert(0, new_thread)
                state.count += 1

                def rollback() -> None:
                    if new_thread in state.threads:
                        state.threads.remove(new_thread)
                    state.count -= 1

                return rollback

            thread.replies.append(temp)
            thread.root.reply_count += 1

            def rollback() -> None:
                if temp in thread.replies:
                    thread.replies.remove(temp)
                thread.root.reply_count -= 1

            return rollback

        def confirm(created: CommentResponse) -> None:
            if parent_id is None:
                for candidate in state.threads:
                    if candidate.root is temp:
                        candidate.root = created
                        return
                return
            if thread is None:
                return
            for index, reply in enumerate(thread.replies):
                if reply is temp:
                    thread.replies[index] = created
                    return

        mutation = Mutation(
            apply=apply,
            comment_ids=(temp_id, *((thread.root.id,) if thread else ())),
            confirm=confirm,
            description="post_comment",
        )
        return await self._run(
            mutation,
            lambda: self.api.create_comment(target, text, parent_id=parent_id),
        )

    async def edit_comment(self, comment_id: str, text: str) -> CommentResponse:
        comment = self.find(comment_id)

        def apply() -> Rollback:
            if comment is None:
                return lambda: None
            old_text, old_edited = comment.text, comment.is_edited
            comment.text = text
            comment.is_edited = True

            def rollback() -> None:
                comment.text = old_text
                comment.is_edited = old_edited

            return rollback

        def confirm(updated: CommentResponse) -> None:
            if comment is not None:
                comment.text = updated.text
                comment.is_edited = updated.is_edited
                comment.edited_at = updated.edited_at
                comment.updated_at = updated.updated_at

        mutation = Mutation(
            apply=apply,
            comment_ids=(comment_id,),
            confirm=confirm,
            description="edit_comment",
        )
        return await self._run(
            mutation, lambda: self.api.update_comment(comment_id, text)
        )

    async def delete_comment(self, comment_id: str) -> None:
        located = self._locate(comment_id)

        def apply() -> Rollback:
            if located is None:
                return lambda: None
            state, thread, comment = located

            if comment is thread.root:
                index = state.threads.index(thread)
                state.threads.remove(thread)
                state.count -= 1

                def rollback() -> None:
                    state.threads.insert(index, thread)
                    state.count += 1

                return rollback

            index = thread.replies.index(comment)
            thread.replies.remove(comment)
            delta = 1 if thread.root.reply_count > 0 else 0
            thread.root.reply_count -= delta

            def rollback() -> None:
                thread.replies.insert(index, comment)
                thread.root.reply_count += delta

            return rollback

        mutation = Mutation(
            apply=apply,
            comment_ids=(comment_id,),
            description="delete_comment",
        )
        await self._run(mutation, lambda: self.api.delete_comment(comment_id))

    async def toggle_interaction(
        self, comment_id: str, kind: InteractionType
    ) -> InteractionResponse:
        """Toggle a like or dislike with immediate count feedback."""
        comment = self.find(comment_id)

        def apply() -> Rollback:
            if comment is None:
                return lambda: None
            before = comment.user_interaction or UserInteraction()
            liked, disliked = toggle_flags(before.liked, before.disliked, kind)
            like_delta = int(liked) - int(before.liked)
            dislike_delta = int(disliked) - int(before.disliked)

            comment.like_count += like_delta
            comment.dislike_count += dislike_delta
            previous = comment.user_interaction
            comment.user_interaction = UserInteraction(liked=liked, disliked=disliked)

            def rollback() -> None:
                comment.like_count -= like_delta
                comment.dislike_count -= dislike_delta
                comment.user_interaction = previous

            return rollback

        def confirm(result: InteractionResponse) -> None:
            if comment is not None:
                comment.like_count = result.like_count
                comment.dislike_count = result.dislike_count
                comment.report_count = result.report_count
                comment.user_interaction = UserInteraction(
                    liked=result.liked, disliked=result.disliked
                )

        mutation = Mutation(
            apply=apply,
            comment_ids=(comment_id,),
            confirm=confirm,
            description=f"toggle_{kind.value}",
        )
        return await self._run(mutation, lambda: self.api.interact(comment_id, kind))

    # ==========================================================================
    # Refresh
    # ==========================================================================

    async def refresh_counts(self) -> int:
        """Refresh like/dislike/reply counts of the current target.

        Comments with a mutation in flight keep their optimistic values, and
        comments changed locally while the request was out keep the newer
        local values.

        Returns:
            Number of comments updated.
        """
        target = self.current_target
        if target is None or target not in self._loaded or target not in self._state:
            return 0

        generations = self._generation.copy()
        fresh = await self.api.list_comments(target, page=1, page_size=self.page_size)
        if self.current_target != target:
            return 0

        updated = 0
        for row in fresh.results:
            if self.has_pending(row.id):
                continue
            if self._generation[row.id] != generations[row.id]:
                continue
            comment = self.find(row.id)
            if comment is None:
                continue
            if (
                comment.like_count,
                comment.dislike_count,
                comment.reply_count,
            ) != (row.like_count, row.dislike_count, row.reply_count):
                comment.like_count = row.like_count
                comment.dislike_count = row.dislike_count
                comment.reply_count = row.reply_count
                updated += 1

        if updated:
            logger.debug("comment_counts_refreshed", target=target.key, updated=updated)
        return updated
