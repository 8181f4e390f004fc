"""
Tests for the Redis freshness cache.

Uses fakeredis from conftest; the real client is mocked only to simulate
connection errors.
"""

import json
import time
from datetime import timedelta
from unittest.mock import MagicMock

import redis

from collabsense.cache import FreshnessCache, insights_key, is_fresh, suggestions_key


class TestIsFresh:
    """Test the shared freshness rule."""

    def test_within_ttl(self, now):
        assert is_fresh(now - timedelta(minutes=59), now, 3600) is True

    def test_exactly_at_ttl_is_stale(self, now):
        assert is_fresh(now - timedelta(hours=1), now, 3600) is False

    def test_missing_timestamp_is_stale(self, now):
        assert is_fresh(None, now, 3600) is False


class TestCacheKeys:
    def test_suggestions_key(self):
        assert suggestions_key("alice") == "collabsense:suggestions:alice"

    def test_insights_key_scopes_by_project(self):
        assert insights_key("alice", "p1") == "collabsense:insights:alice:p1"
        assert insights_key("alice") == "collabsense:insights:alice:all"


class TestFreshnessCache:
    """Test envelope storage and read-time expiry."""

    def test_set_then_get(self, freshness_cache, fake_redis, now):
        assert freshness_cache.set("k", [{"a": 1}], 600, now) is True

        assert freshness_cache.get("k", now + timedelta(minutes=5)) == [{"a": 1}]
        assert 0 < fake_redis.ttl("k") <= 600

    def test_envelope_records_expiry(self, freshness_cache, fake_redis, now):
        freshness_cache.set("k", "value", 600, now)

        envelope = json.loads(fake_redis.get("k"))
        assert envelope["value"] == "value"
        assert envelope["cached_at"] == now.isoformat()
        assert envelope["expires_at"] == (now + timedelta(seconds=600)).isoformat()

    def test_expired_entry_is_a_miss_and_removed(self, freshness_cache, fake_redis, now):
        freshness_cache.set("k", "value", 600, now)

        assert freshness_cache.get("k", now + timedelta(seconds=600)) is None
        assert fake_redis.exists("k") == 0

    def test_clock_is_used_without_explicit_now(self, fake_redis, now):
        cache = FreshnessCache(client_factory=lambda: fake_redis, clock=lambda: now)
        cache.set("k", 1, 60)

        assert cache.get("k") == 1

    def test_miss(self, freshness_cache):
        assert freshness_cache.get("absent") is None

    def test_delete(self, freshness_cache, now):
        freshness_cache.set("k", 1, 60, now)

        assert freshness_cache.delete("k") is True
        assert freshness_cache.delete("k") is False

    def test_disabled_without_client(self, now):
        cache = FreshnessCache(client_factory=lambda: None, clock=lambda: now)

        assert cache.set("k", 1, 60) is False
        assert cache.get("k") is None
        assert cache.delete("k") is False

    def test_redis_errors_degrade_to_miss(self, now):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.setex.side_effect = redis.ConnectionError("down")
        cache = FreshnessCache(client_factory=lambda: client, clock=lambda: now)

        assert cache.set("k", 1, 60) is False
        assert cache.get("k") is None

    def test_corrupt_entry_is_a_miss(self, freshness_cache, fake_redis):
        fake_redis.set("k", "not json")

        assert freshness_cache.get("k") is None

    def test_redis_evicts_after_ttl(self, freshness_cache, fake_redis, now):
        freshness_cache.set("k", 1, 1, now)
        assert fake_redis.exists("k") == 1

        time.sleep(1.1)

        assert fake_redis.exists("k") == 0
        assert freshness_cache.get("k", now) is None
