"""
Tests for the background active-user sweep.

Covers per-user failure isolation, early stopping, and the sweep against a
real engine over the test database.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from collabsense.exceptions import DataUnavailable
from collabsense.tasks import analyze_active_users, run_async, run_background_analysis


def mock_engine(user_ids, failing=()):
    engine = MagicMock()
    engine.get_active_user_ids.return_value = list(user_ids)

    def analyze(user_id, now):
        if user_id in failing:
            raise DataUnavailable("activity feed", "timeout")

    engine.analyze.side_effect = analyze
    engine.run_proactive_notifications = AsyncMock(return_value=[MagicMock()])
    return engine


class TestRunBackgroundAnalysis:
    """Test the sweep loop."""

    @pytest.mark.asyncio
    async def test_failure_for_one_user_does_not_stop_the_sweep(self, now):
        engine = mock_engine(["u1", "u2", "u3"], failing={"u2"})

        summary = await run_background_analysis(engine, now=now)

        assert summary["active_users"] == 3
        assert summary["analyzed"] == 2
        assert summary["failed"] == 1
        assert summary["failed_user_ids"] == ["u2"]
        assert summary["notified"] == 2
        assert summary["stopped"] is False
        called = [call.args[0] for call in engine.run_proactive_notifications.call_args_list]
        assert called == ["u1", "u3"]

    @pytest.mark.asyncio
    async def test_stop_signal_ends_the_sweep(self, now):
        engine = mock_engine(["u1", "u2", "u3"])
        checks = iter([False, True])

        summary = await run_background_analysis(engine, should_stop=lambda: next(checks), now=now)

        assert summary["analyzed"] == 1
        assert summary["stopped"] is True

    @pytest.mark.asyncio
    async def test_unreadable_user_list_propagates(self, now):
        engine = MagicMock()
        engine.get_active_user_ids.side_effect = DataUnavailable("activity feed")

        with pytest.raises(DataUnavailable):
            await run_background_analysis(engine, now=now)

    @pytest.mark.asyncio
    async def test_sweep_over_database(self, engine, seed, push_channel, now):
        skills = ["Python", "ML"]
        seed.user("alice", skills=skills)
        seed.user("bob", skills=skills)
        seed.user("idle", skills=skills)
        seed.activity("alice", "doc", now - timedelta(days=1))
        seed.activity("bob", "doc", now - timedelta(days=2))
        seed.activity("idle", "doc", now - timedelta(days=20))

        summary = await run_background_analysis(engine, now=now)

        # idle is outside the active-user window but still a candidate
        assert summary["active_users"] == 2
        assert summary["analyzed"] == 2
        assert summary["notified"] == 4
        assert len(push_channel.pushed) == 4
        assert engine.count_unread("alice") == 2


class TestCeleryTask:
    """Test the Celery wrapper."""

    def test_task_runs_sweep_with_database_engine(self):
        summary = {"active_users": 0, "analyzed": 0, "failed": 0,
                   "failed_user_ids": [], "notified": 0, "stopped": False}

        with patch("collabsense.tasks.get_db_context") as db_context, \
                patch("collabsense.tasks.build_engine") as build_engine, \
                patch("collabsense.tasks.run_background_analysis", new=AsyncMock(return_value=summary)), \
                patch.object(analyze_active_users, "update_state"):
            result = analyze_active_users.run()

        assert result == summary
        build_engine.assert_called_once_with(db_context.return_value.__enter__.return_value)

    def test_task_reraises_failures(self):
        with patch("collabsense.tasks.get_db_context", side_effect=RuntimeError("db down")), \
                patch.object(analyze_active_users, "update_state") as update_state:
            with pytest.raises(RuntimeError):
                analyze_active_users.run()

        assert update_state.call_args.kwargs["state"] == "FAILURE"


def test_run_async_without_loop():
    async def answer():
        return 42

    assert run_async(answer()) == 42
