"""
Abstract Repository Interfaces for the CollabSense engine.

Defines the contract every data-access implementation must follow. The
analytics services receive these collaborators explicitly, which keeps
business logic apart from storage and lets tests substitute fakes.

Every method may raise DataUnavailable when the backing store fails.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

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


# =============================================================================
# EXTERNAL COLLABORATORS
# =============================================================================

class ActivityFeed(ABC):
    """Append-only activity records filtered by user, subject and time range."""

    @abstractmethod
    def get_user_activities(
        self,
        user_id: str,
        since: datetime,
        until: datetime
    ) -> List[ActivityRecord]:
        """
        Get a user's activity within [since, until].

        Args:
            user_id: User whose activity to read
            since: Inclusive lower bound
            until: Inclusive upper bound

        Returns:
            Activity records ordered by timestamp
        """
        pass

    @abstractmethod
    def get_subject_activities(
        self,
        subject_ids: Iterable[str],
        since: datetime,
        until: datetime
    ) -> List[ActivityRecord]:
        """Get every user's activity on the given subjects within [since, until]."""
        pass

    @abstractmethod
    def append_activity(self, record: ActivityRecord) -> ActivityRecord:
        """
        Append a validated activity record.

        Returns:
            The stored record, with its id assigned
        """
        pass

    @abstractmethod
    def get_active_user_ids(self, since: datetime) -> List[str]:
        """Get ids of users with any activity since the given time."""
        pass


class ProfileStore(ABC):
    """User identity, declared skills and department."""

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def list_profiles(self, exclude_user_ids: Iterable[str] = ()) -> List[UserProfile]:
        """List all profiles except the excluded ids."""
        pass


class RelationshipStore(ABC):
    """Current connection status between user pairs."""

    @abstractmethod
    def get_related_user_ids(
        self,
        user_id: str,
        statuses: Iterable[RelationshipStatus]
    ) -> Set[str]:
        """
        Get users related to user_id with one of the given statuses.

        Relationships are read in both directions: a pending request sent
        to user_id counts the same as one sent by user_id.
        """
        pass


class WorkItemStore(ABC):
    """Titles, tags and ownership of projects and knowledge items."""

    @abstractmethod
    def get_work_items(self, work_ids: Iterable[str]) -> Dict[str, WorkItem]:
        """Get work items by id. Unknown ids are left out of the result."""
        pass

    @abstractmethod
    def find_work_items(
        self,
        kind: WorkKind,
        exclude_owner_id: Optional[str] = None
    ) -> List[WorkItem]:
        """Get all work items of a kind, optionally skipping one owner's items."""
        pass

    @abstractmethod
    def find_projects_sharing_dependencies(self, project_id: str) -> Dict[str, List[str]]:
        """
        Cross-reference a project's dependencies against other projects.

        Args:
            project_id: Target project

        Returns:
            Mapping of other project id to the dependency names it shares
            with the target
        """
        pass


class PushChannel(ABC):
    """Realtime delivery of freshly created notifications."""

    @abstractmethod
    async def push(self, user_id: str, notification: Notification) -> bool:
        """
        Deliver a notification to a user's live connections.

        Returns:
            True if at least one connection received it
        """
        pass


# =============================================================================
# ENGINE-OWNED STORES
# =============================================================================

class WorkPatternStore(ABC):
    """Upserted work patterns, keyed by user id."""

    @abstractmethod
    def get_work_pattern(self, user_id: str) -> Optional[WorkPattern]:
        pass

    @abstractmethod
    def save_work_pattern(self, pattern: WorkPattern) -> None:
        """Insert or overwrite the pattern for pattern.user_id."""
        pass


class SuggestionStore(ABC):
    """Persisted connection suggestions. Dedup key: (source, target)."""

    @abstractmethod
    def upsert_suggestion(self, suggestion: ConnectionSuggestion) -> ConnectionSuggestion:
        """
        Insert the suggestion, or refresh the open row for the same pair.

        The returned suggestion always carries the stored row's id.
        """
        pass

    @abstractmethod
    def list_open_suggestions(self, user_id: str, limit: int) -> List[ConnectionSuggestion]:
        """Un-dismissed suggestions for a source user, highest score first."""
        pass

    @abstractmethod
    def update_suggestion(
        self,
        suggestion_id: int,
        is_dismissed: Optional[bool] = None,
        is_accepted: Optional[bool] = None
    ) -> ConnectionSuggestion:
        """
        Flip a suggestion's flags.

        Raises:
            NotFound: If no suggestion has this id
        """
        pass


class InsightStore(ABC):
    """Persisted insights. Dedup key: (user, project, kind, title)."""

    @abstractmethod
    def upsert_insight(self, insight: Insight) -> Insight:
        """Insert the insight or refresh the row sharing its dedup key."""
        pass


class NotificationStore(ABC):
    """Stored notifications. Read state only changes through explicit calls."""

    @abstractmethod
    def find_unread_duplicate(
        self,
        user_id: str,
        kind: str,
        dedup_key: str
    ) -> Optional[Notification]:
        pass

    @abstractmethod
    def add_notification(self, candidate: NotificationCandidate, created_at: datetime) -> Notification:
        pass

    @abstractmethod
    def list_notifications(self, user_id: str, unread_only: bool, limit: int) -> List[Notification]:
        """A user's notifications, newest first."""
        pass

    @abstractmethod
    def mark_read(self, notification_id: int) -> Notification:
        pass

    @abstractmethod
    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification read. Returns how many changed."""
        pass

    @abstractmethod
    def delete_notification(self, notification_id: int) -> None:
        pass

    @abstractmethod
    def count_unread(self, user_id: str) -> int:
        pass


class PreferenceStore(ABC):
    """Per-user notification preferences."""

    @abstractmethod
    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        """Stored preferences, or None if the user never saved any."""
        pass

    @abstractmethod
    def save_preferences(self, user_id: str, preferences: NotificationPreferences) -> NotificationPreferences:
        pass


__all__ = [
    "ActivityFeed",
    "ProfileStore",
    "RelationshipStore",
    "WorkItemStore",
    "PushChannel",
    "WorkPatternStore",
    "SuggestionStore",
    "InsightStore",
    "NotificationStore",
    "PreferenceStore",
]
