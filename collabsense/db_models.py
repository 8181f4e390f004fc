"""
SQLAlchemy database models.

Maps engine domain models to tables. Separate from Pydantic models
(models.py) which handle validation and API shapes.

The first group of tables belongs to the surrounding application and is
only read by the engine. The second group is owned by the engine.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Boolean, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


# =============================================================================
# Collaborator Tables (read by the engine)
# =============================================================================

class DBUser(Base):
    """User profile table."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    full_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    department = Column(String(255), nullable=True)
    skills = Column(JSON, nullable=False, default=list)  # Declared expertise
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<DBUser(id='{self.id}', department='{self.department}')>"


class DBActivityRecord(Base):
    """Append-only activity events."""
    __tablename__ = "activity_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(String(64), nullable=False, index=True)
    activity_kind = Column(String(32), nullable=False)  # view, edit, collaborate, contribute, comment
    timestamp = Column(DateTime, nullable=False, index=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    duration_seconds = Column(Integer, nullable=True)

    __table_args__ = (
        Index('idx_activity_user_time', 'user_id', 'timestamp'),
        Index('idx_activity_subject_time', 'subject_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<DBActivityRecord(user='{self.user_id}', subject='{self.subject_id}', kind='{self.activity_kind}')>"


class DBUserRelationship(Base):
    """Connection status between two users."""
    __tablename__ = "user_relationships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)  # connected, pending
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'target_user_id', name='uq_relationship_pair'),
    )

    def __repr__(self):
        return f"<DBUserRelationship({self.user_id} -> {self.target_user_id}, status='{self.status}')>"


class DBWorkItem(Base):
    """Projects and knowledge items."""
    __tablename__ = "work_items"

    id = Column(String(64), primary_key=True)
    kind = Column(String(32), nullable=False, index=True)  # project, knowledge_item
    title = Column(String(512), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    category = Column(String(100), nullable=True)
    owner_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_work_item_kind_owner', 'kind', 'owner_id'),
    )

    def __repr__(self):
        return f"<DBWorkItem(id='{self.id}', kind='{self.kind}', title='{self.title}')>"


class DBWorkItemDependency(Base):
    """Technical or knowledge dependency declared by a work item."""
    __tablename__ = "work_item_dependencies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_item_id = Column(String(64), ForeignKey("work_items.id", ondelete="CASCADE"), nullable=False, index=True)
    dependency = Column(String(255), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('work_item_id', 'dependency', name='uq_work_item_dependency'),
    )

    def __repr__(self):
        return f"<DBWorkItemDependency({self.work_item_id} -> '{self.dependency}')>"


# =============================================================================
# Engine-Owned Tables
# =============================================================================

class DBWorkPattern(Base):
    """Cached work pattern, one row per user."""
    __tablename__ = "work_patterns"

    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    pattern = Column(JSON, nullable=False)  # Serialized WorkPattern
    last_analyzed_at = Column(DateTime, nullable=False, index=True)
    schema_version = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<DBWorkPattern(user='{self.user_id}', analyzed={self.last_analyzed_at})>"


class DBConnectionSuggestion(Base):
    """Persisted connection suggestion."""
    __tablename__ = "connection_suggestions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    confidence = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    signal_kind = Column(String(32), nullable=False)
    shared_interests = Column(JSON, nullable=False, default=list)
    is_dismissed = Column(Boolean, default=False, nullable=False)
    is_accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Dedup key is (source_user_id, target_user_id) among un-dismissed rows;
    # dismissed rows are kept for history so this cannot be a unique index.
    __table_args__ = (
        Index('idx_suggestion_pair', 'source_user_id', 'target_user_id'),
        Index('idx_suggestion_source_score', 'source_user_id', 'score'),
    )

    def __repr__(self):
        return f"<DBConnectionSuggestion({self.source_user_id} -> {self.target_user_id}, score={self.score})>"


class DBInsight(Base):
    """Generated insight with an explicit expiry."""
    __tablename__ = "insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(64), nullable=False, default="")  # "" when not project-scoped
    kind = Column(String(40), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    action_label = Column(String(100), nullable=False)
    action_payload = Column(JSON, nullable=False, default=dict)
    priority_score = Column(Integer, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'project_id', 'kind', 'title', name='uq_insight_dedup'),
    )

    def __repr__(self):
        return f"<DBInsight(user='{self.user_id}', kind='{self.kind}', priority={self.priority_score})>"


class DBNotification(Base):
    """User-facing notification."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(40), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    priority = Column(String(10), nullable=False, default="medium")
    is_read = Column(Boolean, default=False, nullable=False)
    action_url = Column(String(1024), nullable=True)
    action_label = Column(String(100), nullable=True)
    dedup_key = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_notification_user_read', 'user_id', 'is_read'),
        Index('idx_notification_dedup', 'user_id', 'kind', 'dedup_key'),
    )

    def __repr__(self):
        return f"<DBNotification(id={self.id}, user='{self.user_id}', kind='{self.kind}', read={self.is_read})>"


class DBNotificationPreference(Base):
    """Notification switches, one row per user."""
    __tablename__ = "notification_preferences"

    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    similar_work = Column(Boolean, nullable=False, default=True)
    connection_suggestions = Column(Boolean, nullable=False, default=True)
    collaboration_opportunities = Column(Boolean, nullable=False, default=True)
    expertise_matches = Column(Boolean, nullable=False, default=True)
    email_notifications = Column(Boolean, nullable=False, default=False)
    push_notifications = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<DBNotificationPreference(user='{self.user_id}')>"
