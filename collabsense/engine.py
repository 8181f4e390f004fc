"""
CollabSense engine facade.

Wires the analyzer, recommender, detector, insight generator and dispatcher
to explicitly supplied collaborators, and exposes the operations the
surrounding application calls. Recommendation and insight lists degrade to
empty when upstream data is unavailable.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .cache import FreshnessCache, insights_key, suggestions_key
from .config import Settings, settings as default_settings
from .connection_recommender import ConnectionRecommender
from .constants import NOTIFICATION_LIST_LIMIT, STORED_SUGGESTION_LIMIT
from .db_repository import DatabaseRepository
from .exceptions import DataUnavailable, InvalidInput
from .insight_generator import InsightGenerator
from .models import (
    ActivityRecord,
    ConnectionSuggestion,
    Insight,
    Notification,
    NotificationCandidate,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    SimilarWorkAlert,
    WorkKind,
    WorkPattern,
)
from .notification_dispatcher import (
    NotificationDispatcher,
    build_collaboration_candidate,
    build_connection_candidate,
    build_expertise_candidate,
    build_similar_work_candidate,
)
from .repository_interface import (
    ActivityFeed,
    InsightStore,
    NotificationStore,
    PreferenceStore,
    ProfileStore,
    PushChannel,
    RelationshipStore,
    SuggestionStore,
    WorkItemStore,
    WorkPatternStore,
)
from .similar_work_detector import SimilarWorkDetector
from .websocket_manager import WebSocketPushChannel
from .work_pattern_analyzer import WorkPatternAnalyzer

logger = logging.getLogger(__name__)


class CollabSenseEngine:
    """Entry point for work-pattern analytics and recommendations."""

    def __init__(
        self,
        activity_feed: ActivityFeed,
        profiles: ProfileStore,
        relationships: RelationshipStore,
        work_items: WorkItemStore,
        pattern_store: WorkPatternStore,
        suggestion_store: SuggestionStore,
        insight_store: InsightStore,
        notification_store: NotificationStore,
        preference_store: PreferenceStore,
        push_channel: Optional[PushChannel] = None,
        cache: Optional[FreshnessCache] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or default_settings
        self.activity_feed = activity_feed
        self.profiles = profiles
        self.work_items = work_items
        self.suggestion_store = suggestion_store
        self.cache = cache

        self.analyzer = WorkPatternAnalyzer(
            activity_feed, profiles, relationships, work_items, pattern_store, self.settings
        )
        self.recommender = ConnectionRecommender(
            self.analyzer, profiles, relationships, suggestion_store, self.settings
        )
        self.detector = SimilarWorkDetector(work_items, self.settings)
        self.insight_generator = InsightGenerator(
            self.analyzer, activity_feed, work_items, insight_store, self.settings
        )
        self.dispatcher = NotificationDispatcher(notification_store, preference_store, push_channel)

    # =============================================================================
    # Activity & Work Patterns
    # =============================================================================

    def record_activity(self, payload: Union[ActivityRecord, Dict[str, Any]]) -> ActivityRecord:
        """
        Validate and append an activity record.

        Raises:
            InvalidInput: If the payload has unknown fields, an unknown kind
                or missing ids
        """
        if not isinstance(payload, ActivityRecord):
            try:
                payload = ActivityRecord.model_validate(payload)
            except ValidationError as e:
                raise InvalidInput("activity", str(e)) from e
        return self.activity_feed.append_activity(payload)

    def analyze(self, user_id: str, now: Optional[datetime] = None) -> WorkPattern:
        return self.analyzer.analyze(user_id, now)

    def get_active_user_ids(self, now: Optional[datetime] = None) -> List[str]:
        """Users with any activity inside the active-user window."""
        now = now or datetime.utcnow()
        return self.activity_feed.get_active_user_ids(
            now - timedelta(days=self.settings.active_user_window_days)
        )

    # =============================================================================
    # Connection Suggestions
    # =============================================================================

    def suggest_connections(self, user_id: str, now: Optional[datetime] = None) -> List[ConnectionSuggestion]:
        """
        Ranked connection suggestions, served from cache while fresh.

        Returns an empty list when upstream data is unavailable.
        """
        key = suggestions_key(user_id)
        if self.cache is not None:
            cached = self.cache.get(key, now)
            if cached is not None:
                logger.debug(f"Suggestions cache HIT for user {user_id}")
                return [ConnectionSuggestion.model_validate(item) for item in cached]

        try:
            suggestions = self.recommender.suggest(user_id, now)
        except DataUnavailable as e:
            logger.warning(f"Suggestions unavailable for user {user_id} this cycle: {e}")
            return []

        if self.cache is not None:
            self.cache.set(
                key,
                [suggestion.model_dump(mode="json") for suggestion in suggestions],
                self.settings.suggestion_cache_ttl_seconds,
                now
            )
        return suggestions

    def get_stored_suggestions(self, user_id: str) -> List[ConnectionSuggestion]:
        """Persisted, non-dismissed suggestions, highest score first."""
        try:
            return self.suggestion_store.list_open_suggestions(user_id, STORED_SUGGESTION_LIMIT)
        except DataUnavailable as e:
            logger.warning(f"Stored suggestions unavailable for user {user_id}: {e}")
            return []

    def dismiss_suggestion(self, suggestion_id: int) -> ConnectionSuggestion:
        return self.suggestion_store.update_suggestion(suggestion_id, is_dismissed=True)

    def accept_suggestion(self, suggestion_id: int) -> ConnectionSuggestion:
        return self.suggestion_store.update_suggestion(suggestion_id, is_accepted=True)

    # =============================================================================
    # Similar Work
    # =============================================================================

    def detect_similar_work(
        self,
        user_id: str,
        work_kind: Union[WorkKind, str],
        title: str,
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> List[SimilarWorkAlert]:
        return self.detector.detect_similar_work(user_id, work_kind, title, tags, now)

    async def monitor_similar_work(
        self,
        user_id: str,
        work_kind: Union[WorkKind, str],
        title: str,
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> List[Notification]:
        """Detect similar work and notify the creator once per alert."""
        alerts = self.detect_similar_work(user_id, work_kind, title, tags, now)
        return await self.notify_similar_work(alerts, now)

    async def notify_similar_work(
        self,
        alerts: List[SimilarWorkAlert],
        now: Optional[datetime] = None
    ) -> List[Notification]:
        created = []
        for alert in alerts:
            related = self.profiles.get_profile(alert.related_user_id)
            candidate = build_similar_work_candidate(alert, related.full_name if related else None)
            notification = await self.dispatcher.dispatch(candidate, now)
            if notification is not None:
                created.append(notification)
        return created

    # =============================================================================
    # Insights
    # =============================================================================

    def get_insights(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[Insight]:
        """
        Insights for a (user, project) key, regenerated once the cached set expires.

        Returns an empty list when upstream data is unavailable.
        """
        now = now or datetime.utcnow()
        key = insights_key(user_id, project_id)
        if self.cache is not None:
            cached = self.cache.get(key, now)
            if cached is not None:
                insights = [Insight.model_validate(item) for item in cached]
                return [insight for insight in insights if insight.expires_at > now]

        try:
            insights = self.insight_generator.generate_insights(user_id, project_id, now)
        except DataUnavailable as e:
            logger.warning(f"Insights unavailable for user {user_id} (project={project_id}): {e}")
            return []

        if self.cache is not None:
            self.cache.set(
                key,
                [insight.model_dump(mode="json") for insight in insights],
                self.settings.insight_ttl_seconds,
                now
            )
        return insights

    # =============================================================================
    # Notifications
    # =============================================================================

    async def dispatch_notification(
        self,
        candidate: NotificationCandidate,
        now: Optional[datetime] = None
    ) -> Optional[Notification]:
        return await self.dispatcher.dispatch(candidate, now)

    async def run_proactive_notifications(self, user_id: str, now: Optional[datetime] = None) -> List[Notification]:
        """Notify a user about their top connection suggestions."""
        suggestions = self.suggest_connections(user_id, now)

        created = []
        for suggestion in suggestions[:self.settings.proactive_notification_count]:
            notification = await self.dispatcher.dispatch(build_connection_candidate(suggestion), now)
            if notification is not None:
                created.append(notification)
        return created

    async def notify_collaboration_opportunity(
        self,
        user_id: str,
        project_id: str,
        reason: str,
        now: Optional[datetime] = None
    ) -> Optional[Notification]:
        project = self.work_items.get_work_items([project_id]).get(project_id)
        project_name = project.title if project else project_id
        return await self.dispatcher.dispatch(
            build_collaboration_candidate(user_id, project_id, project_name, reason), now
        )

    async def notify_expertise_match(
        self,
        user_id: str,
        requester_id: str,
        topic: str,
        now: Optional[datetime] = None
    ) -> Optional[Notification]:
        if not topic or not topic.strip():
            raise InvalidInput("topic", "must not be empty")
        requester = self.profiles.get_profile(requester_id)
        requester_name = requester.full_name if requester and requester.full_name else "A colleague"
        return await self.dispatcher.dispatch(
            build_expertise_candidate(user_id, requester_id, requester_name, topic), now
        )

    def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT
    ) -> List[Notification]:
        return self.dispatcher.list_notifications(user_id, unread_only, limit)

    def count_unread(self, user_id: str) -> int:
        return self.dispatcher.count_unread(user_id)

    def mark_read(self, notification_id: int) -> Notification:
        return self.dispatcher.mark_read(notification_id)

    def mark_all_read(self, user_id: str) -> int:
        return self.dispatcher.mark_all_read(user_id)

    def delete_notification(self, notification_id: int) -> None:
        self.dispatcher.delete_notification(notification_id)

    def get_preferences(self, user_id: str) -> NotificationPreferences:
        return self.dispatcher.get_preferences(user_id)

    def set_preferences(
        self,
        user_id: str,
        partial: Union[NotificationPreferencesUpdate, Dict[str, Any]]
    ) -> NotificationPreferences:
        return self.dispatcher.set_preferences(user_id, partial)


def build_engine(
    db: Session,
    push_channel: Optional[PushChannel] = None,
    cache: Optional[FreshnessCache] = None,
    settings: Optional[Settings] = None
) -> CollabSenseEngine:
    """
    Build an engine backed by a database session.

    Args:
        db: SQLAlchemy session
        push_channel: Realtime channel (defaults to the WebSocket manager)
        cache: Freshness cache (defaults to the shared Redis client)
        settings: Settings override

    Returns:
        CollabSenseEngine using one DatabaseRepository for every store
    """
    repo = DatabaseRepository(db)
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
        push_channel=push_channel if push_channel is not None else WebSocketPushChannel(),
        cache=cache if cache is not None else FreshnessCache(),
        settings=settings
    )


__all__ = ["CollabSenseEngine", "build_engine"]
