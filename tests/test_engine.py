"""
Tests for the engine facade and the database repository.

Covers caching of suggestions and insights, degradation to empty lists,
activity ingestion and the error mapping of database failures.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from collabsense.cache import insights_key, suggestions_key
from collabsense.db_repository import DatabaseRepository
from collabsense.exceptions import DataUnavailable, InvalidInput
from collabsense.models import ActivityKind, InsightKind


@pytest.fixture
def peers(seed):
    seed.user("alice", skills=["Python", "ML"])
    seed.user("bob", skills=["Python", "ML"])
    return seed


class TestRecordActivity:
    """Test validated ingestion."""

    def test_appends_valid_activity(self, engine, seed, now):
        seed.user("alice")

        record = engine.record_activity({
            "user_id": "alice",
            "subject_id": "p1",
            "activity_kind": "comment",
            "timestamp": now - timedelta(hours=1),
        })

        assert record.id is not None
        assert record.activity_kind == ActivityKind.COMMENT
        assert engine.analyze("alice", now).activity_count == 1

    def test_invalid_payload(self, engine, now):
        with pytest.raises(InvalidInput) as exc_info:
            engine.record_activity({"user_id": "alice", "activity_kind": "edit", "timestamp": now})
        assert exc_info.value.field == "activity"

    def test_active_users_use_window(self, engine, seed, now):
        seed.activity("bob", "p1", now - timedelta(days=8))
        seed.activity("carol", "p1", now - timedelta(days=6))
        seed.activity("alice", "p1", now - timedelta(hours=1))
        seed.activity("alice", "p2", now - timedelta(hours=2))

        assert engine.get_active_user_ids(now) == ["alice", "carol"]


class TestSuggestConnections:
    """Test caching and degradation of suggestions."""

    def test_result_is_cached(self, engine, peers, fake_redis, now):
        first = engine.suggest_connections("alice", now)

        assert fake_redis.exists(suggestions_key("alice")) == 1
        with patch.object(engine.recommender, "suggest") as suggest:
            second = engine.suggest_connections("alice", now + timedelta(minutes=10))
        suggest.assert_not_called()
        assert second == first

    def test_cache_expiry_regenerates(self, engine, peers, now):
        engine.suggest_connections("alice", now)

        with patch.object(engine.recommender, "suggest", return_value=[]) as suggest:
            assert engine.suggest_connections("alice", now + timedelta(hours=1)) == []
        suggest.assert_called_once()

    def test_unavailable_degrades_to_empty(self, engine, fake_redis, now):
        with patch.object(engine.recommender, "suggest", side_effect=DataUnavailable("activity feed")):
            assert engine.suggest_connections("alice", now) == []
        assert fake_redis.exists(suggestions_key("alice")) == 0

    def test_stored_suggestions_degrade(self, engine):
        with patch.object(engine.suggestion_store, "list_open_suggestions",
                          side_effect=DataUnavailable("suggestion store")):
            assert engine.get_stored_suggestions("alice") == []

    @pytest.mark.asyncio
    async def test_proactive_notifications(self, engine, peers, push_channel, now):
        created = await engine.run_proactive_notifications("alice", now)

        assert len(created) == 1
        assert created[0].dedup_key == "connection_suggestion:bob"
        assert await engine.run_proactive_notifications("alice", now) == []


class TestInsights:
    """Test insight caching and expiry filtering."""

    @pytest.fixture
    def shared_dependency(self, seed):
        seed.user("alice")
        seed.user("bob")
        seed.work_item("target", "alice", "Checkout Service")
        seed.work_item("other", "bob", "Storefront")
        seed.dependency("target", "react")
        seed.dependency("other", "react")
        return seed

    def test_cached_until_expiry(self, engine, shared_dependency, fake_redis, now):
        insights = engine.get_insights("alice", "target", now)

        assert [i.kind for i in insights] == [InsightKind.COMMON_DEPENDENCIES]
        assert fake_redis.exists(insights_key("alice", "target")) == 1
        with patch.object(engine.insight_generator, "generate_insights") as generate:
            assert engine.get_insights("alice", "target", now + timedelta(minutes=30)) == insights
        generate.assert_not_called()

    def test_expired_set_is_regenerated(self, engine, shared_dependency, now):
        engine.get_insights("alice", "target", now)

        with patch.object(engine.insight_generator, "generate_insights", return_value=[]) as generate:
            assert engine.get_insights("alice", "target", now + timedelta(hours=1)) == []
        generate.assert_called_once()

    def test_unavailable_degrades_to_empty(self, engine, now):
        with patch.object(engine.insight_generator, "generate_insights",
                          side_effect=DataUnavailable("work item store")):
            assert engine.get_insights("alice", None, now) == []


class TestNotifyHelpers:
    """Test the facade's notification helpers."""

    @pytest.mark.asyncio
    async def test_expertise_requires_topic(self, engine, now):
        with pytest.raises(InvalidInput):
            await engine.notify_expertise_match("alice", "carol", "  ", now)

    @pytest.mark.asyncio
    async def test_expertise_unknown_requester(self, engine, now):
        notification = await engine.notify_expertise_match("alice", "ghost", "Go", now)

        assert notification.message.startswith("A colleague")

    @pytest.mark.asyncio
    async def test_collaboration_unknown_project_uses_id(self, engine, now):
        notification = await engine.notify_collaboration_opportunity("alice", "p-404", "Needs a reviewer", now)

        assert '"p-404"' in notification.message

    @pytest.mark.asyncio
    async def test_monitor_similar_work(self, engine, seed, now):
        seed.user("alice")
        seed.user("bob")
        seed.work_item("p1", "bob", "Payments Ledger Service")

        created = await engine.monitor_similar_work("alice", "project", "payments ledger service", now=now)

        assert len(created) == 1
        assert created[0].dedup_key == "similar_work:project:p1"


class TestRepositoryErrors:
    """Test that database failures surface as DataUnavailable."""

    def test_query_failure_rolls_back(self, now):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT 1", {}, Exception("connection lost"))
        repo = DatabaseRepository(session)

        with pytest.raises(DataUnavailable) as exc_info:
            repo.get_user_activities("alice", now - timedelta(days=1), now)

        assert exc_info.value.source == "activity feed"
        session.rollback.assert_called_once()

    def test_commit_failure(self, now):
        session = MagicMock()
        session.query.return_value.filter_by.return_value.first.return_value = None
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        repo = DatabaseRepository(session)

        with pytest.raises(DataUnavailable):
            repo.save_preferences("alice", MagicMock(model_dump=lambda: {}))

    def test_relationships_both_directions(self, repo, seed):
        seed.relationship("alice", "bob", "connected")
        seed.relationship("carol", "alice", "pending")
        seed.relationship("dave", "erin", "connected")

        assert repo.get_related_user_ids("alice", ["connected"]) == {"bob"}
        assert repo.get_related_user_ids("alice", ["connected", "pending"]) == {"bob", "carol"}
