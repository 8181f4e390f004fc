"""
Tests for model validation at the ingestion boundary.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from collabsense.models import (
    ActivityKind,
    ActivityRecord,
    NotificationKind,
    NotificationPreferences,
    WorkPattern,
)


class TestActivityRecord:
    """Test activity validation."""

    def test_valid_record(self):
        record = ActivityRecord(
            user_id="alice",
            subject_id="p1",
            activity_kind="contribute",
            timestamp=datetime(2025, 6, 18, 9, 30)
        )

        assert record.activity_kind == ActivityKind.CONTRIBUTE
        assert record.metadata == {}

    def test_aware_timestamp_becomes_naive_utc(self):
        aware = datetime(2025, 6, 18, 11, 30, tzinfo=timezone(timedelta(hours=2)))

        record = ActivityRecord(user_id="alice", subject_id="p1", activity_kind="view", timestamp=aware)

        assert record.timestamp == datetime(2025, 6, 18, 9, 30)
        assert record.timestamp.tzinfo is None

    @pytest.mark.parametrize("payload", [
        {"user_id": "alice", "subject_id": "p1", "activity_kind": "like", "timestamp": "2025-06-18T09:30:00"},
        {"user_id": "", "subject_id": "p1", "activity_kind": "view", "timestamp": "2025-06-18T09:30:00"},
        {"user_id": "alice", "activity_kind": "view", "timestamp": "2025-06-18T09:30:00"},
        {"user_id": "alice", "subject_id": "p1", "activity_kind": "view",
         "timestamp": "2025-06-18T09:30:00", "extra": 1},
        {"user_id": "alice", "subject_id": "p1", "activity_kind": "view",
         "timestamp": "2025-06-18T09:30:00", "duration_seconds": -5},
    ])
    def test_rejected_payloads(self, payload):
        with pytest.raises(ValidationError):
            ActivityRecord.model_validate(payload)


class TestWorkPattern:
    """Test the histogram invariant."""

    def test_histograms_must_match_count(self, now):
        hours = [0] * 24
        hours[9] = 2
        days = [0] * 7
        days[2] = 1

        with pytest.raises(ValidationError):
            WorkPattern(
                user_id="alice",
                active_hour_histogram=hours,
                active_day_histogram=days,
                activity_count=2,
                last_analyzed_at=now
            )

    def test_wrong_bucket_count(self, now):
        with pytest.raises(ValidationError):
            WorkPattern(user_id="alice", active_hour_histogram=[0] * 12, last_analyzed_at=now)


class TestNotificationPreferences:
    def test_allows_by_kind(self):
        preferences = NotificationPreferences(similar_work=False)

        assert preferences.allows(NotificationKind.SIMILAR_WORK) is False
        assert preferences.allows(NotificationKind.EXPERTISE_MATCH) is True
