"""
Shared test fixtures for all test modules.

Provides:
- Test environment setup (TESTING=true, in-memory database URL)
- db_session: SQLite in-memory database session
- fake_redis / freshness_cache: fakeredis-backed cache
- seed: helpers for users, work items, activity and relationships
- repo / engine: engine wired to the test database
"""

import os
from datetime import datetime
from typing import List, Optional

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# =============================================================================
# Test Environment Configuration
# =============================================================================

os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from collabsense.cache import FreshnessCache  # noqa: E402
from collabsense.db_models import (  # noqa: E402
    Base,
    DBActivityRecord,
    DBUser,
    DBUserRelationship,
    DBWorkItem,
    DBWorkItemDependency,
)
from collabsense.db_repository import DatabaseRepository  # noqa: E402
from collabsense.engine import CollabSenseEngine  # noqa: E402
from collabsense.models import Notification  # noqa: E402
from collabsense.repository_interface import PushChannel  # noqa: E402

# Wednesday noon; every time-dependent test pins "now" to this
NOW = datetime(2025, 6, 18, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_session() -> Session:
    """
    Create test database session with in-memory SQLite.

    Creates fresh database with all tables for each test. StaticPool keeps
    one connection so the TestClient thread sees the same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    # Cleanup
    session.close()
    engine.dispose()


# =============================================================================
# Redis Fixtures
# =============================================================================

@pytest.fixture
def fake_redis() -> fakeredis.FakeStrictRedis:
    """In-process Redis with real SETEX and TTL semantics."""
    return fakeredis.FakeStrictRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def freshness_cache(fake_redis) -> FreshnessCache:
    return FreshnessCache(client_factory=lambda: fake_redis, clock=lambda: NOW)


# =============================================================================
# Push Channel Fixture
# =============================================================================

class RecordingPushChannel(PushChannel):
    """Remembers every pushed notification."""

    def __init__(self):
        self.pushed: List[Notification] = []

    async def push(self, user_id: str, notification: Notification) -> bool:
        self.pushed.append(notification)
        return True


@pytest.fixture
def push_channel() -> RecordingPushChannel:
    return RecordingPushChannel()


# =============================================================================
# Seed Helpers
# =============================================================================

class Seeder:
    """Writes collaborator rows the engine only reads."""

    def __init__(self, db: Session):
        self.db = db

    def user(
        self,
        user_id: str,
        full_name: Optional[str] = None,
        department: Optional[str] = None,
        skills: Optional[List[str]] = None
    ) -> DBUser:
        user = DBUser(
            id=user_id,
            full_name=full_name or user_id.title(),
            email=f"{user_id}@example.com",
            department=department,
            skills=skills or []
        )
        self.db.add(user)
        self.db.commit()
        return user

    def work_item(
        self,
        work_id: str,
        owner_id: str,
        title: str,
        kind: str = "project",
        tags: Optional[List[str]] = None,
        category: Optional[str] = None
    ) -> DBWorkItem:
        item = DBWorkItem(
            id=work_id,
            kind=kind,
            title=title,
            tags=tags or [],
            category=category,
            owner_id=owner_id
        )
        self.db.add(item)
        self.db.commit()
        return item

    def activity(
        self,
        user_id: str,
        subject_id: str,
        timestamp: datetime,
        kind: str = "edit",
        metadata: Optional[dict] = None
    ) -> DBActivityRecord:
        record = DBActivityRecord(
            user_id=user_id,
            subject_id=subject_id,
            activity_kind=kind,
            timestamp=timestamp,
            metadata_json=metadata or {}
        )
        self.db.add(record)
        self.db.commit()
        return record

    def relationship(self, user_id: str, target_user_id: str, status: str = "connected") -> DBUserRelationship:
        rel = DBUserRelationship(user_id=user_id, target_user_id=target_user_id, status=status)
        self.db.add(rel)
        self.db.commit()
        return rel

    def dependency(self, work_item_id: str, dependency: str) -> DBWorkItemDependency:
        dep = DBWorkItemDependency(work_item_id=work_item_id, dependency=dependency)
        self.db.add(dep)
        self.db.commit()
        return dep


@pytest.fixture
def seed(db_session) -> Seeder:
    return Seeder(db_session)


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def repo(db_session) -> DatabaseRepository:
    return DatabaseRepository(db_session)


@pytest.fixture
def engine(repo, push_channel, freshness_cache) -> CollabSenseEngine:
    return CollabSenseEngine(
        activity_feed=repo,
        profiles=repo,
        relationships=repo,
        work_items=repo,
        pattern_store=repo,
        suggestion_store=repo,
        insight_store=repo,
        notification_store=repo,
        preference_store=repo,
        push_channel=push_channel,
        cache=freshness_cache
    )
