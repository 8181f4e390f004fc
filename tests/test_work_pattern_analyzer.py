"""
Tests for work-pattern analysis.

Covers histogram construction, topic/skill derivation, collaborator lookup,
the knowledge-sharing score, freshness reuse, and failure behavior.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from collabsense.exceptions import DataUnavailable
from collabsense.models import UserProfile
from collabsense.work_pattern_analyzer import WorkPatternAnalyzer, active_days, peak_hours


def make_analyzer(repo):
    return WorkPatternAnalyzer(repo, repo, repo, repo, repo)


@pytest.fixture
def populated(seed, now):
    """Alice with a mix of activity on a project and a knowledge item."""
    seed.user("alice", department="Platform", skills=["Python", "Kubernetes"])
    seed.user("bob")
    seed.user("carol")
    seed.user("dave")
    seed.work_item("p1", "bob", "Data Pipeline", kind="project", tags=["ETL", "Python"], category="Data")
    seed.work_item("k1", "carol", "Helm Tips", kind="knowledge_item", tags=["Kubernetes"])

    seed.activity("alice", "p1", now - timedelta(hours=1), kind="contribute")
    seed.activity("alice", "p1", now - timedelta(days=1, hours=1), kind="contribute")
    seed.activity("alice", "p1", now - timedelta(days=2), kind="collaborate")
    seed.activity("alice", "k1", now - timedelta(days=3), kind="view", metadata={"tags": ["Helm"]})
    # Outside the lookback window
    seed.activity("alice", "p1", now - timedelta(days=45), kind="contribute")

    seed.relationship("alice", "bob", "connected")
    seed.relationship("carol", "alice", "connected")
    seed.relationship("alice", "dave", "pending")
    return seed


class TestBuildPattern:
    """Test deriving a pattern from activity."""

    def test_histograms_sum_to_examined_activity(self, repo, populated, now):
        pattern = make_analyzer(repo).analyze("alice", now)

        assert pattern.activity_count == 4
        assert sum(pattern.active_day_histogram) == 4
        assert sum(pattern.active_hour_histogram) == 4
        assert len(pattern.active_hour_histogram) == 24
        assert len(pattern.active_day_histogram) == 7

    def test_hour_and_day_buckets(self, repo, populated, now):
        pattern = make_analyzer(repo).analyze("alice", now)

        # now is Wednesday 12:00
        assert pattern.active_hour_histogram[11] == 2
        assert pattern.active_hour_histogram[12] == 2
        assert pattern.active_day_histogram[2] == 1  # Wednesday
        assert pattern.active_day_histogram[1] == 1  # Tuesday
        assert pattern.active_day_histogram[0] == 1  # Monday
        assert pattern.active_day_histogram[6] == 1  # Sunday
        assert pattern.peak_hours == [11, 12]

    def test_topics_skills_and_projects(self, repo, populated, now):
        pattern = make_analyzer(repo).analyze("alice", now)

        assert pattern.topic_set == sorted(["Data", "ETL", "Helm", "Kubernetes", "Python"])
        assert pattern.skill_set == ["Kubernetes", "Python"]
        assert pattern.active_project_ids == ["p1"]

    def test_collaborators_are_connected_both_directions(self, repo, populated, now):
        pattern = make_analyzer(repo).analyze("alice", now)

        assert pattern.collaborator_ids == ["bob", "carol"]

    def test_knowledge_sharing_score(self, repo, populated, now):
        pattern = make_analyzer(repo).analyze("alice", now)

        assert pattern.activity_counts["contribute"] == 2
        assert pattern.activity_counts["collaborate"] == 1
        assert pattern.knowledge_sharing_score == 5 * 2 + 3 * 1

    def test_user_without_activity(self, repo, seed, now):
        seed.user("quiet", skills=["Go"])
        pattern = make_analyzer(repo).analyze("quiet", now)

        assert pattern.activity_count == 0
        assert pattern.peak_hours == []
        assert pattern.active_days == []
        assert pattern.topic_set == ["Go"]


class TestFreshness:
    """Test reuse of stored patterns within the TTL."""

    def test_rerun_within_ttl_is_identical(self, repo, populated, now):
        analyzer = make_analyzer(repo)
        first = analyzer.analyze("alice", now)

        populated.activity("alice", "p1", now + timedelta(minutes=5), kind="contribute")
        second = analyzer.analyze("alice", now + timedelta(minutes=30))

        assert second == first
        assert second.model_dump_json() == first.model_dump_json()

    def test_stale_pattern_is_recomputed(self, repo, populated, now):
        analyzer = make_analyzer(repo)
        analyzer.analyze("alice", now)

        later = now + timedelta(hours=1)
        populated.activity("alice", "p1", now + timedelta(minutes=5), kind="contribute")
        refreshed = analyzer.analyze("alice", later)

        assert refreshed.activity_count == 5
        assert refreshed.last_analyzed_at == later
        assert repo.get_work_pattern("alice").activity_count == 5

    def test_force_skips_stored_pattern(self, repo, populated, now):
        analyzer = make_analyzer(repo)
        analyzer.analyze("alice", now)
        populated.activity("alice", "p1", now + timedelta(minutes=1))

        assert analyzer.analyze("alice", now + timedelta(minutes=2), force=True).activity_count == 5


class TestFailures:
    """Test that failed reads never write a pattern."""

    def test_activity_failure_propagates_without_write(self, now):
        feed = MagicMock()
        feed.get_user_activities.side_effect = DataUnavailable("activity feed", "timeout")
        profiles = MagicMock()
        profiles.get_profile.return_value = UserProfile(user_id="alice")
        relationships = MagicMock()
        work_items = MagicMock()
        store = MagicMock()
        store.get_work_pattern.return_value = None

        analyzer = WorkPatternAnalyzer(feed, profiles, relationships, work_items, store)

        with pytest.raises(DataUnavailable):
            analyzer.analyze("alice", now)
        store.save_work_pattern.assert_not_called()


class TestSummaries:
    def test_peak_hours_tie_break_on_lower_hour(self):
        histogram = [0] * 24
        for hour in (3, 9, 14, 20, 22, 23):
            histogram[hour] = 2
        histogram[10] = 5

        assert peak_hours(histogram) == [10, 3, 9, 14, 20]

    def test_active_days_by_count(self):
        assert active_days([1, 0, 4, 0, 4, 0, 2]) == [2, 4, 6, 0]
