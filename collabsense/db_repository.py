"""
Database Repository for the CollabSense engine.

SQLAlchemy-based implementation of every collaborator and store interface
in repository_interface.py. Query failures surface as DataUnavailable;
upserts are explicit read-check-write on the documented dedup keys.
"""

import functools
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import (
    DBActivityRecord,
    DBConnectionSuggestion,
    DBInsight,
    DBNotification,
    DBNotificationPreference,
    DBUser,
    DBUserRelationship,
    DBWorkItem,
    DBWorkItemDependency,
    DBWorkPattern,
)
from .exceptions import DataUnavailable, NotFound
from .models import (
    ActivityRecord,
    ConnectionSuggestion,
    Insight,
    Notification,
    NotificationCandidate,
    NotificationPreferences,
    RelationshipStatus,
    UserProfile,
    WorkItem,
    WorkKind,
    WorkPattern,
)
from .repository_interface import (
    ActivityFeed,
    InsightStore,
    NotificationStore,
    PreferenceStore,
    ProfileStore,
    RelationshipStore,
    SuggestionStore,
    WorkItemStore,
    WorkPatternStore,
)

logger = logging.getLogger(__name__)


def _db_errors_as_unavailable(source: str):
    """Roll back and re-raise SQLAlchemy failures as DataUnavailable."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"{source} query failed in {func.__name__}: {e}")
                raise DataUnavailable(source, str(e)) from e
        return wrapper
    return decorator


class DatabaseRepository(
    ActivityFeed,
    ProfileStore,
    RelationshipStore,
    WorkItemStore,
    WorkPatternStore,
    SuggestionStore,
    InsightStore,
    NotificationStore,
    PreferenceStore,
):
    """
    Database-backed repository for activity, profiles, work items and
    every record the engine owns.
    """

    def __init__(self, db_session: Session):
        """
        Initialize database repository.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session

    # =============================================================================
    # ACTIVITY FEED
    # =============================================================================

    @_db_errors_as_unavailable("activity feed")
    def get_user_activities(self, user_id: str, since: datetime, until: datetime) -> List[ActivityRecord]:
        rows = self.db.query(DBActivityRecord).filter(
            DBActivityRecord.user_id == user_id,
            DBActivityRecord.timestamp >= since,
            DBActivityRecord.timestamp <= until
        ).order_by(DBActivityRecord.timestamp, DBActivityRecord.id).all()
        return [self._to_activity(row) for row in rows]

    @_db_errors_as_unavailable("activity feed")
    def get_subject_activities(
        self,
        subject_ids: Iterable[str],
        since: datetime,
        until: datetime
    ) -> List[ActivityRecord]:
        subject_ids = list(subject_ids)
        if not subject_ids:
            return []
        rows = self.db.query(DBActivityRecord).filter(
            DBActivityRecord.subject_id.in_(subject_ids),
            DBActivityRecord.timestamp >= since,
            DBActivityRecord.timestamp <= until
        ).order_by(DBActivityRecord.timestamp, DBActivityRecord.id).all()
        return [self._to_activity(row) for row in rows]

    @_db_errors_as_unavailable("activity feed")
    def append_activity(self, record: ActivityRecord) -> ActivityRecord:
        row = DBActivityRecord(
            user_id=record.user_id,
            subject_id=record.subject_id,
            activity_kind=record.activity_kind.value,
            timestamp=record.timestamp,
            metadata_json=dict(record.metadata),
            duration_seconds=record.duration_seconds
        )
        self.db.add(row)
        self.db.commit()
        logger.debug(f"Appended {record.activity_kind.value} activity for {record.user_id}")
        return self._to_activity(row)

    @_db_errors_as_unavailable("activity feed")
    def get_active_user_ids(self, since: datetime) -> List[str]:
        rows = self.db.query(DBActivityRecord.user_id).filter(
            DBActivityRecord.timestamp >= since
        ).distinct().order_by(DBActivityRecord.user_id).all()
        return [row.user_id for row in rows]

    @staticmethod
    def _to_activity(row: DBActivityRecord) -> ActivityRecord:
        return ActivityRecord(
            id=row.id,
            user_id=row.user_id,
            subject_id=row.subject_id,
            activity_kind=row.activity_kind,
            timestamp=row.timestamp,
            metadata=row.metadata_json or {},
            duration_seconds=row.duration_seconds
        )

    # =============================================================================
    # PROFILES & RELATIONSHIPS
    # =============================================================================

    @_db_errors_as_unavailable("profile store")
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        user = self.db.query(DBUser).filter_by(id=user_id).first()
        return self._to_profile(user) if user else None

    @_db_errors_as_unavailable("profile store")
    def list_profiles(self, exclude_user_ids: Iterable[str] = ()) -> List[UserProfile]:
        query = self.db.query(DBUser)
        exclude_user_ids = list(exclude_user_ids)
        if exclude_user_ids:
            query = query.filter(DBUser.id.notin_(exclude_user_ids))
        return [self._to_profile(user) for user in query.order_by(DBUser.id).all()]

    @staticmethod
    def _to_profile(user: DBUser) -> UserProfile:
        return UserProfile(
            user_id=user.id,
            full_name=user.full_name or "",
            email=user.email or "",
            department=user.department or None,
            skills=list(user.skills or [])
        )

    @_db_errors_as_unavailable("relationship store")
    def get_related_user_ids(self, user_id: str, statuses: Iterable[RelationshipStatus]) -> Set[str]:
        status_values = [RelationshipStatus(s).value for s in statuses]
        rows = self.db.query(DBUserRelationship).filter(
            DBUserRelationship.status.in_(status_values),
            or_(
                DBUserRelationship.user_id == user_id,
                DBUserRelationship.target_user_id == user_id
            )
        ).all()

        related = set()
        for row in rows:
            related.add(row.target_user_id if row.user_id == user_id else row.user_id)
        return related

    # =============================================================================
    # WORK ITEMS
    # =============================================================================

    @_db_errors_as_unavailable("work item store")
    def get_work_items(self, work_ids: Iterable[str]) -> Dict[str, WorkItem]:
        work_ids = list(set(work_ids))
        if not work_ids:
            return {}
        rows = self.db.query(DBWorkItem).filter(DBWorkItem.id.in_(work_ids)).all()
        return {row.id: self._to_work_item(row) for row in rows}

    @_db_errors_as_unavailable("work item store")
    def find_work_items(self, kind: WorkKind, exclude_owner_id: Optional[str] = None) -> List[WorkItem]:
        query = self.db.query(DBWorkItem).filter(DBWorkItem.kind == WorkKind(kind).value)
        if exclude_owner_id:
            query = query.filter(DBWorkItem.owner_id != exclude_owner_id)
        return [self._to_work_item(row) for row in query.order_by(DBWorkItem.id).all()]

    @_db_errors_as_unavailable("work item store")
    def find_projects_sharing_dependencies(self, project_id: str) -> Dict[str, List[str]]:
        own_deps = [
            row.dependency for row in self.db.query(DBWorkItemDependency).filter_by(
                work_item_id=project_id
            ).all()
        ]
        if not own_deps:
            return {}

        rows = self.db.query(DBWorkItemDependency).join(
            DBWorkItem,
            DBWorkItem.id == DBWorkItemDependency.work_item_id
        ).filter(
            DBWorkItemDependency.dependency.in_(own_deps),
            DBWorkItemDependency.work_item_id != project_id,
            DBWorkItem.kind == WorkKind.PROJECT.value
        ).order_by(DBWorkItemDependency.work_item_id, DBWorkItemDependency.dependency).all()

        shared: Dict[str, List[str]] = {}
        for row in rows:
            shared.setdefault(row.work_item_id, []).append(row.dependency)
        return shared

    @staticmethod
    def _to_work_item(row: DBWorkItem) -> WorkItem:
        return WorkItem(
            work_id=row.id,
            kind=row.kind,
            title=row.title,
            tags=list(row.tags or []),
            category=row.category,
            owner_id=row.owner_id
        )

    # =============================================================================
    # WORK PATTERNS
    # =============================================================================

    @_db_errors_as_unavailable("work pattern store")
    def get_work_pattern(self, user_id: str) -> Optional[WorkPattern]:
        row = self.db.query(DBWorkPattern).filter_by(user_id=user_id).first()
        if not row:
            return None
        return WorkPattern.model_validate(row.pattern)

    @_db_errors_as_unavailable("work pattern store")
    def save_work_pattern(self, pattern: WorkPattern) -> None:
        row = self.db.query(DBWorkPattern).filter_by(user_id=pattern.user_id).first()
        if row is None:
            row = DBWorkPattern(user_id=pattern.user_id)
            self.db.add(row)
        row.pattern = pattern.model_dump(mode="json")
        row.last_analyzed_at = pattern.last_analyzed_at
        row.schema_version = pattern.schema_version
        self.db.commit()

    # =============================================================================
    # CONNECTION SUGGESTIONS
    # =============================================================================

    @_db_errors_as_unavailable("suggestion store")
    def upsert_suggestion(self, suggestion: ConnectionSuggestion) -> ConnectionSuggestion:
        row = self.db.query(DBConnectionSuggestion).filter_by(
            source_user_id=suggestion.source_user_id,
            target_user_id=suggestion.target_user_id,
            is_dismissed=False
        ).order_by(DBConnectionSuggestion.id).first()
        if row is None:
            row = DBConnectionSuggestion(
                source_user_id=suggestion.source_user_id,
                target_user_id=suggestion.target_user_id,
                is_dismissed=suggestion.is_dismissed,
                is_accepted=suggestion.is_accepted,
                created_at=suggestion.created_at or datetime.utcnow()
            )
            self.db.add(row)
        # Flags and created_at of an existing row are left alone
        row.score = suggestion.score
        row.confidence = suggestion.confidence
        row.reason = suggestion.reason
        row.signal_kind = suggestion.signal_kind.value
        row.shared_interests = list(suggestion.shared_interests)
        self.db.commit()
        return self._to_suggestion(row)

    @_db_errors_as_unavailable("suggestion store")
    def list_open_suggestions(self, user_id: str, limit: int) -> List[ConnectionSuggestion]:
        rows = self.db.query(DBConnectionSuggestion, DBUser).outerjoin(
            DBUser,
            DBUser.id == DBConnectionSuggestion.target_user_id
        ).filter(
            DBConnectionSuggestion.source_user_id == user_id,
            DBConnectionSuggestion.is_dismissed.is_(False)
        ).order_by(
            DBConnectionSuggestion.score.desc(),
            DBConnectionSuggestion.id
        ).limit(limit).all()
        return [self._to_suggestion(row, target) for row, target in rows]

    @_db_errors_as_unavailable("suggestion store")
    def update_suggestion(
        self,
        suggestion_id: int,
        is_dismissed: Optional[bool] = None,
        is_accepted: Optional[bool] = None
    ) -> ConnectionSuggestion:
        row = self.db.query(DBConnectionSuggestion).filter_by(id=suggestion_id).first()
        if not row:
            raise NotFound("suggestion", suggestion_id)
        if is_dismissed is not None:
            row.is_dismissed = is_dismissed
        if is_accepted is not None:
            row.is_accepted = is_accepted
        self.db.commit()
        return self._to_suggestion(row)

    @staticmethod
    def _to_suggestion(row: DBConnectionSuggestion, target: Optional[DBUser] = None) -> ConnectionSuggestion:
        return ConnectionSuggestion(
            id=row.id,
            source_user_id=row.source_user_id,
            target_user_id=row.target_user_id,
            target_name=target.full_name if target else None,
            target_department=target.department if target else None,
            score=row.score,
            confidence=row.confidence,
            reason=row.reason,
            signal_kind=row.signal_kind,
            shared_interests=list(row.shared_interests or []),
            is_dismissed=row.is_dismissed,
            is_accepted=row.is_accepted,
            created_at=row.created_at
        )

    # =============================================================================
    # INSIGHTS
    # =============================================================================

    @_db_errors_as_unavailable("insight store")
    def upsert_insight(self, insight: Insight) -> Insight:
        project_key = insight.project_id or ""
        row = self.db.query(DBInsight).filter_by(
            user_id=insight.user_id,
            project_id=project_key,
            kind=insight.kind.value,
            title=insight.title
        ).first()
        if row is None:
            row = DBInsight(
                user_id=insight.user_id,
                project_id=project_key,
                kind=insight.kind.value,
                title=insight.title
            )
            self.db.add(row)
        row.description = insight.description
        row.action_label = insight.action_label
        row.action_payload = dict(insight.action_payload)
        row.priority_score = insight.priority_score
        row.expires_at = insight.expires_at
        self.db.commit()
        return insight

    # =============================================================================
    # NOTIFICATIONS
    # =============================================================================

    @_db_errors_as_unavailable("notification store")
    def find_unread_duplicate(self, user_id: str, kind: str, dedup_key: str) -> Optional[Notification]:
        row = self.db.query(DBNotification).filter_by(
            user_id=user_id,
            kind=kind,
            dedup_key=dedup_key,
            is_read=False
        ).first()
        return self._to_notification(row) if row else None

    @_db_errors_as_unavailable("notification store")
    def add_notification(self, candidate: NotificationCandidate, created_at: datetime) -> Notification:
        row = DBNotification(
            user_id=candidate.user_id,
            kind=candidate.kind.value,
            title=candidate.title,
            message=candidate.message,
            metadata_json=dict(candidate.metadata),
            priority=candidate.priority.value,
            is_read=False,
            action_url=candidate.action_url,
            action_label=candidate.action_label,
            dedup_key=candidate.dedup_key,
            created_at=created_at
        )
        self.db.add(row)
        self.db.commit()
        return self._to_notification(row)

    @_db_errors_as_unavailable("notification store")
    def list_notifications(self, user_id: str, unread_only: bool, limit: int) -> List[Notification]:
        query = self.db.query(DBNotification).filter(DBNotification.user_id == user_id)
        if unread_only:
            query = query.filter(DBNotification.is_read.is_(False))
        rows = query.order_by(DBNotification.created_at.desc(), DBNotification.id.desc()).limit(limit).all()
        return [self._to_notification(row) for row in rows]

    @_db_errors_as_unavailable("notification store")
    def mark_read(self, notification_id: int) -> Notification:
        row = self.db.query(DBNotification).filter_by(id=notification_id).first()
        if not row:
            raise NotFound("notification", notification_id)
        row.is_read = True
        self.db.commit()
        return self._to_notification(row)

    @_db_errors_as_unavailable("notification store")
    def mark_all_read(self, user_id: str) -> int:
        updated = self.db.query(DBNotification).filter(
            DBNotification.user_id == user_id,
            DBNotification.is_read.is_(False)
        ).update({DBNotification.is_read: True}, synchronize_session=False)
        self.db.commit()
        return updated

    @_db_errors_as_unavailable("notification store")
    def delete_notification(self, notification_id: int) -> None:
        row = self.db.query(DBNotification).filter_by(id=notification_id).first()
        if not row:
            raise NotFound("notification", notification_id)
        self.db.delete(row)
        self.db.commit()

    @_db_errors_as_unavailable("notification store")
    def count_unread(self, user_id: str) -> int:
        return self.db.query(DBNotification).filter(
            DBNotification.user_id == user_id,
            DBNotification.is_read.is_(False)
        ).count()

    @staticmethod
    def _to_notification(row: DBNotification) -> Notification:
        return Notification(
            id=row.id,
            user_id=row.user_id,
            kind=row.kind,
            title=row.title,
            message=row.message,
            metadata=row.metadata_json or {},
            priority=row.priority,
            is_read=row.is_read,
            action_url=row.action_url,
            action_label=row.action_label,
            dedup_key=row.dedup_key,
            created_at=row.created_at
        )

    # =============================================================================
    # PREFERENCES
    # =============================================================================

    @_db_errors_as_unavailable("preference store")
    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        row = self.db.query(DBNotificationPreference).filter_by(user_id=user_id).first()
        if not row:
            return None
        return NotificationPreferences(
            similar_work=row.similar_work,
            connection_suggestions=row.connection_suggestions,
            collaboration_opportunities=row.collaboration_opportunities,
            expertise_matches=row.expertise_matches,
            email_notifications=row.email_notifications,
            push_notifications=row.push_notifications
        )

    @_db_errors_as_unavailable("preference store")
    def save_preferences(self, user_id: str, preferences: NotificationPreferences) -> NotificationPreferences:
        row = self.db.query(DBNotificationPreference).filter_by(user_id=user_id).first()
        if row is None:
            row = DBNotificationPreference(user_id=user_id)
            self.db.add(row)
        for field, value in preferences.model_dump().items():
            setattr(row, field, value)
        self.db.commit()
        return preferences


__all__ = ["DatabaseRepository"]
