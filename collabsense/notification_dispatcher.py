"""
Notification dispatch.

Turns recommender, detector and insight outputs into stored notifications:
- Per-user preference flags gate each notification kind
- An unread notification with the same dedup key suppresses a new one
- Freshly created notifications are pushed to live subscribers

Read state changes only through the explicit inbox operations here.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .constants import HIGH_PRIORITY_SIMILARITY, NOTIFICATION_LIST_LIMIT
from .exceptions import InvalidInput, PreferenceSuppressed
from .models import (
    ConnectionSuggestion,
    Notification,
    NotificationCandidate,
    NotificationKind,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationPriority,
    SimilarWorkAlert,
)
from .repository_interface import NotificationStore, PreferenceStore, PushChannel

logger = logging.getLogger(__name__)


# =============================================================================
# Candidate Builders
# =============================================================================

def build_similar_work_candidate(
    alert: SimilarWorkAlert,
    related_user_name: Optional[str] = None
) -> NotificationCandidate:
    """Similar-work alert -> notification for the creator of the new work."""
    name = related_user_name or "A colleague"
    priority = (
        NotificationPriority.HIGH if alert.similarity >= HIGH_PRIORITY_SIMILARITY
        else NotificationPriority.MEDIUM
    )
    return NotificationCandidate(
        user_id=alert.subject_user_id,
        kind=NotificationKind.SIMILAR_WORK,
        title="Similar Work Detected",
        message=(
            f'{name} is working on something similar: "{alert.related_work_title}" '
            f"({round(alert.similarity)}% match)"
        ),
        metadata=alert.model_dump(mode="json"),
        priority=priority,
        action_url=f"/messages?user={alert.related_user_id}",
        action_label="Connect",
        dedup_key=f"similar_work:{alert.work_kind.value}:{alert.related_work_id}"
    )


def build_connection_candidate(suggestion: ConnectionSuggestion) -> NotificationCandidate:
    name = suggestion.target_name or "a colleague"
    return NotificationCandidate(
        user_id=suggestion.source_user_id,
        kind=NotificationKind.CONNECTION_SUGGESTION,
        title="Smart Connection Suggestion",
        message=f"Suggested connection with {name}: {suggestion.reason}",
        metadata={
            "target_user_id": suggestion.target_user_id,
            "reason": suggestion.reason,
            "score": suggestion.score,
        },
        priority=NotificationPriority.MEDIUM,
        action_url=f"/experts?user={suggestion.target_user_id}",
        action_label="View Profile",
        dedup_key=f"connection_suggestion:{suggestion.target_user_id}"
    )


def build_collaboration_candidate(
    user_id: str,
    project_id: str,
    project_name: str,
    reason: str
) -> NotificationCandidate:
    return NotificationCandidate(
        user_id=user_id,
        kind=NotificationKind.COLLABORATION_OPPORTUNITY,
        title="Collaboration Opportunity",
        message=f'Project "{project_name}" could benefit from your expertise: {reason}',
        metadata={"project_id": project_id, "project_name": project_name, "reason": reason},
        priority=NotificationPriority.HIGH,
        action_url=f"/projects?id={project_id}",
        action_label="View Project",
        dedup_key=f"collaboration_opportunity:{project_id}"
    )


def build_expertise_candidate(
    user_id: str,
    requester_id: str,
    requester_name: str,
    topic: str
) -> NotificationCandidate:
    return NotificationCandidate(
        user_id=user_id,
        kind=NotificationKind.EXPERTISE_MATCH,
        title="Your Expertise Needed",
        message=f'{requester_name} is looking for help with "{topic}" - you have been identified as an expert',
        metadata={"requester_id": requester_id, "requester_name": requester_name, "topic": topic},
        priority=NotificationPriority.HIGH,
        action_url=f"/messages?user={requester_id}",
        action_label="Respond",
        dedup_key=f"expertise_match:{requester_id}:{topic.lower()}"
    )


# =============================================================================
# Dispatcher
# =============================================================================

class NotificationDispatcher:
    """Creates, pushes and manages user notifications."""

    def __init__(
        self,
        notification_store: NotificationStore,
        preference_store: PreferenceStore,
        push_channel: Optional[PushChannel] = None
    ):
        self.notification_store = notification_store
        self.preference_store = preference_store
        self.push_channel = push_channel

    async def dispatch(
        self,
        candidate: NotificationCandidate,
        now: Optional[datetime] = None
    ) -> Optional[Notification]:
        """
        Create a notification unless policy or a duplicate suppresses it.

        Args:
            candidate: Notification to create
            now: Creation time (defaults to utcnow)

        Returns:
            The stored notification, or None if it was suppressed

        Raises:
            DataUnavailable: If the notification or preference store failed
        """
        try:
            preferences = self._require_enabled(candidate)
        except PreferenceSuppressed as e:
            logger.debug(f"Suppressed notification: {e}")
            return None

        if candidate.dedup_key:
            duplicate = self.notification_store.find_unread_duplicate(
                candidate.user_id, candidate.kind.value, candidate.dedup_key
            )
            if duplicate is not None:
                logger.debug(
                    f"Suppressed duplicate {candidate.kind.value} notification for "
                    f"{candidate.user_id} (matches #{duplicate.id})"
                )
                return None

        notification = self.notification_store.add_notification(candidate, now or datetime.utcnow())
        logger.info(f"Created {notification.kind.value} notification #{notification.id} for {notification.user_id}")

        if preferences.push_notifications and self.push_channel is not None:
            pushed = await self.push_channel.push(notification.user_id, notification)
            logger.debug(f"Push for notification #{notification.id}: {'delivered' if pushed else 'no live subscriber'}")

        return notification

    def _require_enabled(self, candidate: NotificationCandidate) -> NotificationPreferences:
        preferences = self.get_preferences(candidate.user_id)
        if not preferences.allows(candidate.kind):
            raise PreferenceSuppressed(candidate.user_id, candidate.kind.value)
        return preferences

    # =============================================================================
    # Preferences
    # =============================================================================

    def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Stored preferences, or the defaults if the user never saved any."""
        return self.preference_store.get_preferences(user_id) or NotificationPreferences()

    def set_preferences(
        self,
        user_id: str,
        partial: Union[NotificationPreferencesUpdate, Dict[str, Any]]
    ) -> NotificationPreferences:
        """
        Merge a partial update over the current preferences.

        Raises:
            InvalidInput: If the update holds unknown keys or non-boolean values
        """
        if not isinstance(partial, NotificationPreferencesUpdate):
            try:
                partial = NotificationPreferencesUpdate.model_validate(partial)
            except ValidationError as e:
                raise InvalidInput("preferences", str(e)) from e

        changes = {key: value for key, value in partial.model_dump().items() if value is not None}
        merged = self.get_preferences(user_id).model_copy(update=changes)
        saved = self.preference_store.save_preferences(user_id, merged)
        logger.info(f"Updated notification preferences for {user_id}: {sorted(changes)}")
        return saved

    # =============================================================================
    # Inbox
    # =============================================================================

    def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT
    ) -> List[Notification]:
        return self.notification_store.list_notifications(user_id, unread_only, limit)

    def count_unread(self, user_id: str) -> int:
        return self.notification_store.count_unread(user_id)

    def mark_read(self, notification_id: int) -> Notification:
        return self.notification_store.mark_read(notification_id)

    def mark_all_read(self, user_id: str) -> int:
        updated = self.notification_store.mark_all_read(user_id)
        logger.info(f"Marked {updated} notifications read for {user_id}")
        return updated

    def delete_notification(self, notification_id: int) -> None:
        self.notification_store.delete_notification(notification_id)


__all__ = [
    "NotificationDispatcher",
    "build_similar_work_candidate",
    "build_connection_candidate",
    "build_collaboration_candidate",
    "build_expertise_candidate",
]
