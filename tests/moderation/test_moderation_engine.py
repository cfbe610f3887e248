"""Tests for the moderation engine."""

from uuid import uuid4

import pytest

from comment_engine.auth.models import Actor
from comment_engine.comments.models import Author, CommentStatus, create_comment
from comment_engine.core.exceptions import (
    CommentNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
)
from comment_engine.moderation.models import (
    ALLOWED_TRANSITIONS,
    ModerationAction,
    can_transition,
)
from comment_engine.moderation.service import (
    EXPORT_FIELDS,
    ModerationEngine,
    export_csv,
)
from comment_engine.targets.models import ContentType


@pytest.fixture
async def comment(comment_service, target, alice):
    return await comment_service.create_comment(target, alice, "Borderline")


class TestTransitions:
    """Tests for the status state machine."""

    @pytest.mark.parametrize(
        "current,new",
        [
            (CommentStatus.PENDING, CommentStatus.PUBLISHED),
            (CommentStatus.PUBLISHED, CommentStatus.HIDDEN),
            (CommentStatus.HIDDEN, CommentStatus.PUBLISHED),
            (CommentStatus.HIDDEN, CommentStatus.DELETED),
        ],
    )
    def test_allowed(self, current, new) -> None:
        assert can_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (CommentStatus.DELETED, CommentStatus.PUBLISHED),
            (CommentStatus.PUBLISHED, CommentStatus.PENDING),
            (CommentStatus.PUBLISHED, CommentStatus.PUBLISHED),
        ],
    )
    def test_forbidden(self, current, new) -> None:
        assert not can_transition(current, new)

    def test_deleted_is_terminal(self) -> None:
        assert ALLOWED_TRANSITIONS[CommentStatus.DELETED] == frozenset()


class TestModerate:
    """Tests for ModerationEngine.moderate."""

    @pytest.mark.asyncio
    async def test_hide_records_audit(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        hidden = await moderation_engine.moderate(
            comment.id, moderator, ModerationAction.HIDE, "Off topic"
        )

        assert hidden.status == CommentStatus.HIDDEN
        (record,) = await moderation_engine.history(comment.id)
        assert record.action == ModerationAction.HIDE
        assert record.old_status == CommentStatus.PUBLISHED
        assert record.new_status == CommentStatus.HIDDEN
        assert record.moderator_id == moderator.id
        assert record.reason == "Off topic"

    @pytest.mark.asyncio
    async def test_approve_published_is_invalid(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            await moderation_engine.moderate(
                comment.id, moderator, ModerationAction.APPROVE
            )
        assert await moderation_engine.history(comment.id) == []

    @pytest.mark.asyncio
    async def test_deleted_cannot_be_restored(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        await moderation_engine.moderate(comment.id, moderator, ModerationAction.DELETE)
        with pytest.raises(InvalidTransitionError):
            await moderation_engine.moderate(
                comment.id, moderator, ModerationAction.APPROVE
            )

    @pytest.mark.asyncio
    async def test_flag_keeps_status(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        flagged = await moderation_engine.moderate(
            comment.id, moderator, ModerationAction.FLAG
        )

        assert flagged.is_flagged is True
        assert flagged.status == CommentStatus.PUBLISHED
        with pytest.raises(InvalidTransitionError):
            await moderation_engine.moderate(
                comment.id, moderator, ModerationAction.FLAG
            )

        unflagged = await moderation_engine.moderate(
            comment.id, moderator, ModerationAction.UNFLAG
        )
        assert unflagged.is_flagged is False

    @pytest.mark.asyncio
    async def test_unflag_requires_flag(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            await moderation_engine.moderate(
                comment.id, moderator, ModerationAction.UNFLAG
            )

    @pytest.mark.asyncio
    async def test_requires_moderator(
        self, moderation_engine: ModerationEngine, comment, bob
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            await moderation_engine.moderate(comment.id, bob, ModerationAction.HIDE)

    @pytest.mark.asyncio
    async def test_admin_can_moderate(
        self, moderation_engine: ModerationEngine, comment
    ) -> None:
        admin = Actor(id="user-admin", is_admin=True)
        hidden = await moderation_engine.moderate(
            comment.id, admin, ModerationAction.HIDE
        )
        assert hidden.status == CommentStatus.HIDDEN

    @pytest.mark.asyncio
    async def test_unknown_comment(
        self, moderation_engine: ModerationEngine, moderator
    ) -> None:
        with pytest.raises(CommentNotFoundError):
            await moderation_engine.moderate(uuid4(), moderator, ModerationAction.HIDE)

    @pytest.mark.asyncio
    async def test_deleting_reply_releases_root_count(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        comment,
        bob,
        moderator,
    ) -> None:
        reply = await comment_service.create_comment(
            comment.target, bob, "Reply", parent_id=comment.id
        )

        await moderation_engine.moderate(reply.id, moderator, ModerationAction.DELETE)
        assert (await comment_service.get_comment(comment.id)).reply_count == 0

    @pytest.mark.asyncio
    async def test_history_is_append_only(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        """Earlier records are unchanged by later actions."""
        await moderation_engine.moderate(comment.id, moderator, ModerationAction.HIDE)
        (first,) = await moderation_engine.history(comment.id)

        await moderation_engine.moderate(
            comment.id, moderator, ModerationAction.APPROVE
        )
        history = await moderation_engine.history(comment.id)

        assert history[0] == first
        assert [r.action for r in history] == [
            ModerationAction.HIDE,
            ModerationAction.APPROVE,
        ]


class TestBulkModerate:
    """Tests for ModerationEngine.bulk_moderate."""

    @pytest.mark.asyncio
    async def test_skips_failures(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        target,
        alice,
        moderator,
    ) -> None:
        ok = await comment_service.create_comment(target, alice, "One")
        gone = await comment_service.create_comment(target, alice, "Two")
        await comment_service.soft_delete(gone.id, alice)
        missing = uuid4()

        result = await moderation_engine.bulk_moderate(
            [ok.id, gone.id, missing], moderator, ModerationAction.HIDE
        )

        assert result.moderated_count == 1
        assert result.failed_ids == [gone.id, missing]
        assert (await comment_service.get_comment(ok.id)).status == CommentStatus.HIDDEN

    @pytest.mark.asyncio
    async def test_duplicate_ids_processed_once(
        self, moderation_engine: ModerationEngine, comment, moderator
    ) -> None:
        result = await moderation_engine.bulk_moderate(
            [comment.id, comment.id], moderator, ModerationAction.FLAG
        )

        assert result.moderated_count == 1
        assert result.failed_ids == []
        assert len(await moderation_engine.history(comment.id)) == 1

    @pytest.mark.asyncio
    async def test_requires_moderator(
        self, moderation_engine: ModerationEngine, comment, bob
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            await moderation_engine.bulk_moderate(
                [comment.id], bob, ModerationAction.HIDE
            )


class TestAutoModerate:
    """Tests for ModerationEngine.auto_moderate."""

    @pytest.mark.asyncio
    async def test_flags_heavily_reported(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        ledger,
        target,
        alice,
        bob,
        moderator,
    ) -> None:
        reported = await comment_service.create_comment(target, alice, "Reported")
        quiet = await comment_service.create_comment(target, alice, "Quiet")
        for reporter in ("r1", "r2", "r3"):
            await ledger.report(Actor(id=reporter), reported.id, "spam")

        assert await moderation_engine.auto_moderate() == 1

        assert (await comment_service.get_comment(reported.id)).is_flagged is True
        assert (await comment_service.get_comment(quiet.id)).is_flagged is False
        (record,) = await moderation_engine.history(reported.id)
        assert record.action == ModerationAction.FLAG
        assert record.moderator_id is None
        assert record.is_automatic

    @pytest.mark.asyncio
    async def test_second_run_flags_nothing(
        self, moderation_engine: ModerationEngine, ledger, comment
    ) -> None:
        for reporter in ("r1", "r2", "r3"):
            await ledger.report(Actor(id=reporter), comment.id)

        assert await moderation_engine.auto_moderate() == 1
        assert await moderation_engine.auto_moderate() == 0

    @pytest.mark.asyncio
    async def test_score_at_threshold_not_flagged(
        self, moderation_engine: ModerationEngine, ledger, comment
    ) -> None:
        """Weights 20 per report: two reports score 40, below 50."""
        for reporter in ("r1", "r2"):
            await ledger.report(Actor(id=reporter), comment.id)

        assert await moderation_engine.auto_moderate() == 0


class TestRiskScore:
    def test_capped_at_100(self, moderation_engine: ModerationEngine, target) -> None:
        comment = create_comment(target, Author(id="user-alice"), "Loud")
        comment.report_count = 50
        comment.is_flagged = True
        assert moderation_engine.risk_score(comment) == 100

    def test_flag_weight(self, moderation_engine: ModerationEngine, target) -> None:
        comment = create_comment(target, Author(id="user-alice"), "Flagged")
        comment.report_count = 1
        comment.is_flagged = True
        assert moderation_engine.risk_score(comment) == 50


class TestStatsAndQueue:
    """Tests for stats and queue."""

    @pytest.mark.asyncio
    async def test_stats(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        ledger,
        target,
        alice,
        bob,
        moderator,
    ) -> None:
        first = await comment_service.create_comment(target, alice, "First")
        second = await comment_service.create_comment(target, alice, "Second")
        await ledger.report(bob, first.id, "rude")
        await moderation_engine.moderate(first.id, moderator, ModerationAction.HIDE)
        await moderation_engine.moderate(second.id, moderator, ModerationAction.FLAG)

        stats = await moderation_engine.stats(window_days=7)

        assert stats.total_comments == 2
        assert stats.by_status["hidden"] == 1
        assert stats.by_status["published"] == 1
        assert stats.by_status["pending"] == 0
        assert stats.flagged_comments == 1
        assert stats.reports_in_window == 1
        assert sum(stats.actions_per_day.values()) == 2
        assert stats.top_moderators == [(moderator.id, 2)]

    @pytest.mark.asyncio
    async def test_stats_survive_hard_delete(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        ledger,
        comment,
        bob,
        moderator,
    ) -> None:
        await ledger.report(bob, comment.id, "spam")
        await comment_service.hard_delete(comment.id, moderator, "Spam")

        stats = await moderation_engine.stats()
        assert stats.total_comments == 0
        assert stats.reports_in_window == 1
        assert stats.top_moderators == [(moderator.id, 1)]

    @pytest.mark.asyncio
    async def test_stats_are_read_only(
        self, moderation_engine: ModerationEngine, comment
    ) -> None:
        await moderation_engine.stats()
        assert await moderation_engine.history(comment.id) == []

    @pytest.mark.asyncio
    async def test_queue_filters(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        target,
        other_target,
        alice,
        bob,
        moderator,
    ) -> None:
        story = await comment_service.create_comment(target, alice, "Needle story")
        film = await comment_service.create_comment(other_target, bob, "Film talk")
        await moderation_engine.moderate(film.id, moderator, ModerationAction.HIDE)

        hidden = await moderation_engine.queue(status=CommentStatus.HIDDEN)
        by_type = await moderation_engine.queue(content_type=ContentType.STORY)
        by_text = await moderation_engine.queue(search="NEEDLE")
        by_author = await moderation_engine.queue(search="bob")

        assert [e.comment.id for e in hidden.results] == [film.id]
        assert [e.comment.id for e in by_type.results] == [story.id]
        assert [e.comment.id for e in by_text.results] == [story.id]
        assert [e.comment.id for e in by_author.results] == [film.id]

    @pytest.mark.asyncio
    async def test_queue_includes_risk_score(
        self, moderation_engine: ModerationEngine, ledger, comment, bob
    ) -> None:
        await ledger.report(bob, comment.id)

        page = await moderation_engine.queue(flagged=False)
        (entry,) = page.results
        assert entry.risk_score == 20


class TestExport:
    """Tests for the moderation list export."""

    @pytest.mark.asyncio
    async def test_rows_carry_risk_score(
        self, moderation_engine: ModerationEngine, ledger, comment, bob
    ) -> None:
        await ledger.report(bob, comment.id, "rude")

        (row,) = await moderation_engine.export()

        assert list(row) == list(EXPORT_FIELDS)
        assert row["id"] == str(comment.id)
        assert row["author_id"] == "user-alice"
        assert row["status"] == "published"
        assert row["risk_score"] == 20
        assert row["report_count"] == 1
        assert row["content_type"] == "story"
        assert row["object_id"] == "42"
        assert row["is_flagged"] is False

    @pytest.mark.asyncio
    async def test_applies_queue_filters_without_paging(
        self,
        moderation_engine: ModerationEngine,
        comment_service,
        target,
        alice,
        moderator,
    ) -> None:
        created = [
            await comment_service.create_comment(target, alice, f"Spam {i}")
            for i in range(25)
        ]
        await moderation_engine.moderate(created[0].id, moderator, ModerationAction.HIDE)

        published = await moderation_engine.export(status=CommentStatus.PUBLISHED)
        hidden = await moderation_engine.export(status=CommentStatus.HIDDEN)

        assert len(published) == 24
        assert [r["id"] for r in hidden] == [str(created[0].id)]

    @pytest.mark.asyncio
    async def test_csv_quotes_text(
        self, moderation_engine: ModerationEngine, comment_service, target, alice
    ) -> None:
        await comment_service.create_comment(target, alice, 'Says "hi", twice')

        lines = export_csv(await moderation_engine.export()).splitlines()

        assert lines[0] == ",".join(EXPORT_FIELDS)
        assert '"Says ""hi"", twice"' in lines[1]
