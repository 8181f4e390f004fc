"""
Shared Dependencies for the CollabSense API.

Provides the per-request engine, built on a database session, and the
process-wide freshness cache.
"""

import logging

from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from .cache import FreshnessCache
from .config import settings
from .database import get_db
from .engine import CollabSenseEngine, build_engine
from .websocket_manager import WebSocketPushChannel, manager

logger = logging.getLogger(__name__)

# =============================================================================
# Service Instances
# =============================================================================

freshness_cache = FreshnessCache()
push_channel = WebSocketPushChannel(manager)

# Rate limiting (disabled in test mode)
limiter = Limiter(key_func=get_remote_address, enabled=not settings.is_testing)


def get_cache() -> FreshnessCache:
    return freshness_cache


def get_engine(
    db: Session = Depends(get_db),
    cache: FreshnessCache = Depends(get_cache)
) -> CollabSenseEngine:
    """
    Dependency for FastAPI endpoints.

    Usage:
        @router.get("/endpoint")
        def endpoint(engine: CollabSenseEngine = Depends(get_engine)):
            pass
    """
    return build_engine(db, push_channel=push_channel, cache=cache)


__all__ = ["get_cache", "get_engine", "freshness_cache", "push_channel", "limiter"]
