"""
Redis-based freshness cache for the CollabSense engine.

Caches generated suggestions and insights with an explicit expiry:
- Entries are written with SETEX and carry their own expires_at
- Reads re-check expires_at against the caller's clock, so an entry past
  expiry is never returned even if Redis has not evicted it yet
- Freshness is time-based only; writes never invalidate other entries

When Redis is unreachable, caching is disabled and every read is a miss.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import redis
from redis.connection import ConnectionPool

from .config import settings
from .constants import CACHE_PREFIX, UNSCOPED_PROJECT_KEY

logger = logging.getLogger(__name__)

# Redis connection (lazy-loaded)
_redis_client = None


def get_redis_client():
    """
    Get or create Redis client with connection pooling.

    Returns:
        Redis client instance or None if Redis is unavailable
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=20,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            decode_responses=True
        )
        client = redis.Redis(connection_pool=pool)
        client.ping()
        logger.info(f"Redis connection established: {settings.redis_url}")
        _redis_client = client
        return _redis_client
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {e} - caching disabled")
        return None


def check_redis_health() -> dict:
    """Check Redis connectivity. Used by the health endpoint."""
    client = get_redis_client()
    if client is None:
        return {"redis_connected": False}
    try:
        client.ping()
        return {"redis_connected": True}
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return {"redis_connected": False, "redis_error": str(e)}


# =============================================================================
# Freshness Rule
# =============================================================================

def is_fresh(timestamp: Optional[datetime], now: datetime, ttl_seconds: int) -> bool:
    """
    Whether a result produced at `timestamp` is still fresh at `now`.

    Args:
        timestamp: When the result was produced (None counts as stale)
        now: Current time
        ttl_seconds: Freshness window

    Returns:
        True if now - timestamp < ttl
    """
    if timestamp is None:
        return False
    return now - timestamp < timedelta(seconds=ttl_seconds)


# =============================================================================
# Cache Keys
# =============================================================================

def suggestions_key(user_id: str) -> str:
    return f"{CACHE_PREFIX}:suggestions:{user_id}"


def insights_key(user_id: str, project_id: Optional[str] = None) -> str:
    return f"{CACHE_PREFIX}:insights:{user_id}:{project_id or UNSCOPED_PROJECT_KEY}"


# =============================================================================
# Freshness Cache
# =============================================================================

class FreshnessCache:
    """
    JSON envelope cache with read-time expiry checks.

    Each entry is stored as {"value", "cached_at", "expires_at"}. Values must
    be JSON serializable; callers re-validate them into models on read.
    """

    def __init__(
        self,
        client_factory: Callable[[], Any] = get_redis_client,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        """
        Initialize the cache.

        Args:
            client_factory: Returns a Redis client, or None when caching is disabled
            clock: Source of the current naive-UTC time
        """
        self.client_factory = client_factory
        self.clock = clock

    def get(self, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        """
        Read a cached value.

        Returns:
            The cached value, or None on miss, expiry or cache failure
        """
        client = self.client_factory()
        if client is None:
            return None

        now = now or self.clock()
        try:
            raw = client.get(key)
            if raw is None:
                logger.debug(f"Cache MISS: {key}")
                return None

            envelope = json.loads(raw)
            expires_at = datetime.fromisoformat(envelope["expires_at"])
            if now >= expires_at:
                logger.debug(f"Cache EXPIRED: {key}")
                client.delete(key)
                return None

            logger.debug(f"Cache HIT: {key}")
            return envelope["value"]
        except (redis.RedisError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """
        Store a value with an explicit expiry.

        Returns:
            True if stored, False if caching is disabled or the write failed
        """
        client = self.client_factory()
        if client is None:
            return False

        now = now or self.clock()
        envelope = {
            "value": value,
            "cached_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=ttl_seconds)).isoformat(),
        }
        try:
            client.setex(key, ttl_seconds, json.dumps(envelope))
            logger.debug(f"Cache SET: {key} (TTL: {ttl_seconds}s)")
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning(f"Cache write error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Drop a cached entry. Returns True if a key was removed."""
        client = self.client_factory()
        if client is None:
            return False
        try:
            return bool(client.delete(key))
        except redis.RedisError as e:
            logger.warning(f"Cache delete error for {key}: {e}")
            return False


__all__ = [
    "get_redis_client",
    "check_redis_health",
    "is_fresh",
    "suggestions_key",
    "insights_key",
    "FreshnessCache",
]
