"""Data models and schemas for the CollabSense engine."""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import (
    DAYS_PER_WEEK,
    DEFAULT_NOTIFICATION_PREFERENCES,
    HOURS_PER_DAY,
    WORK_PATTERN_SCHEMA_VERSION,
)


def _to_naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC so comparisons never mix offsets."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# =============================================================================
# Enums for validated parameters
# =============================================================================

class ActivityKind(str, Enum):
    """Kinds of activity an external producer can report."""
    VIEW = "view"
    EDIT = "edit"
    COLLABORATE = "collaborate"
    CONTRIBUTE = "contribute"
    COMMENT = "comment"


class WorkKind(str, Enum):
    """Kinds of work item the similar-work detector understands."""
    PROJECT = "project"
    KNOWLEDGE_ITEM = "knowledge_item"


class RelationshipStatus(str, Enum):
    """Connection status between two users."""
    CONNECTED = "connected"
    PENDING = "pending"


class SignalKind(str, Enum):
    """Strongest signal behind a connection suggestion."""
    TOPIC = "topic"
    SKILL = "skill"
    COMPLEMENTARY = "complementary"
    DEPARTMENT = "department"


class InsightKind(str, Enum):
    """Kinds of project insight."""
    SHARED_TEAM = "shared_team"
    COMMON_DEPENDENCIES = "common_dependencies"
    KNOWLEDGE_TRANSFER = "knowledge_transfer"
    TIMELINE_RISK = "timeline_risk"


class NotificationKind(str, Enum):
    """Notification categories, each gated by its own preference flag."""
    SIMILAR_WORK = "similar_work"
    CONNECTION_SUGGESTION = "connection_suggestion"
    COLLABORATION_OPPORTUNITY = "collaboration_opportunity"
    EXPERTISE_MATCH = "expertise_match"


class NotificationPriority(str, Enum):
    """Display priority of a notification."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Which preference flag gates which notification kind
PREFERENCE_FLAG_BY_KIND = {
    NotificationKind.SIMILAR_WORK: "similar_work",
    NotificationKind.CONNECTION_SUGGESTION: "connection_suggestions",
    NotificationKind.COLLABORATION_OPPORTUNITY: "collaboration_opportunities",
    NotificationKind.EXPERTISE_MATCH: "expertise_matches",
}


# =============================================================================
# Collaborator Records (read-only inputs)
# =============================================================================

class ActivityRecord(BaseModel):
    """
    A single immutable activity event.

    Validated at the ingestion boundary: unknown fields, unknown kinds and
    missing ids are rejected rather than carried along.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[int] = None
    user_id: str = Field(..., min_length=1)
    subject_id: str = Field(..., min_length=1)
    activity_kind: ActivityKind
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v):
        """Normalize aware timestamps to naive UTC."""
        return _to_naive_utc(v)


class UserProfile(BaseModel):
    """Identity, declared skills and department of a user."""
    user_id: str
    full_name: str = ""
    email: str = ""
    department: Optional[str] = None
    skills: List[str] = Field(default_factory=list)


class WorkItem(BaseModel):
    """A project or knowledge item owned by a user."""
    work_id: str
    kind: WorkKind
    title: str
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    owner_id: str


# =============================================================================
# Engine Outputs
# =============================================================================

class WorkPattern(BaseModel):
    """Derived, cached summary of a user's recent activity."""
    user_id: str
    topic_set: List[str] = Field(default_factory=list)
    skill_set: List[str] = Field(default_factory=list)
    active_project_ids: List[str] = Field(default_factory=list)
    collaborator_ids: List[str] = Field(default_factory=list)
    active_hour_histogram: List[int] = Field(default_factory=lambda: [0] * HOURS_PER_DAY)
    active_day_histogram: List[int] = Field(default_factory=lambda: [0] * DAYS_PER_WEEK)
    peak_hours: List[int] = Field(default_factory=list)
    active_days: List[int] = Field(default_factory=list)
    activity_counts: Dict[str, int] = Field(default_factory=dict)
    activity_count: int = 0
    knowledge_sharing_score: int = 0
    last_analyzed_at: datetime
    schema_version: int = WORK_PATTERN_SCHEMA_VERSION

    @field_validator("last_analyzed_at")
    @classmethod
    def normalize_timestamp(cls, v):
        return _to_naive_utc(v)

    @model_validator(mode="after")
    def histograms_match_activity_count(self):
        """A pattern is only valid when both histograms account for every activity."""
        if len(self.active_hour_histogram) != HOURS_PER_DAY:
            raise ValueError(f"active_hour_histogram must have {HOURS_PER_DAY} buckets")
        if len(self.active_day_histogram) != DAYS_PER_WEEK:
            raise ValueError(f"active_day_histogram must have {DAYS_PER_WEEK} buckets")
        if sum(self.active_hour_histogram) != self.activity_count:
            raise ValueError("active_hour_histogram does not sum to activity_count")
        if sum(self.active_day_histogram) != self.activity_count:
            raise ValueError("active_day_histogram does not sum to activity_count")
        return self


class ConnectionSuggestion(BaseModel):
    """A recommended connection from source user to target user."""
    id: Optional[int] = None
    source_user_id: str
    target_user_id: str
    target_name: Optional[str] = None
    target_department: Optional[str] = None
    score: int
    confidence: int = Field(..., ge=0, le=100)
    reason: str
    signal_kind: SignalKind
    shared_interests: List[str] = Field(default_factory=list)
    is_dismissed: bool = False
    is_accepted: bool = False
    created_at: Optional[datetime] = None


class SimilarWorkAlert(BaseModel):
    """Someone else already has work that looks like the one being created."""
    subject_user_id: str
    related_user_id: str
    work_kind: WorkKind
    related_work_id: str
    related_work_title: str
    similarity: float = Field(..., ge=0.0, le=100.0)
    reason: str
    created_at: datetime
    is_read: bool = False


class Insight(BaseModel):
    """An explainable finding about a user's projects."""
    user_id: str
    project_id: Optional[str] = None
    kind: InsightKind
    title: str
    description: str
    action_label: str
    action_payload: Dict[str, Any] = Field(default_factory=dict)
    priority_score: int
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def normalize_timestamp(cls, v):
        return _to_naive_utc(v)


# =============================================================================
# Notifications
# =============================================================================

class NotificationCandidate(BaseModel):
    """A notification the dispatcher may or may not create."""
    user_id: str = Field(..., min_length=1)
    kind: NotificationKind
    title: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    dedup_key: Optional[str] = None


class Notification(BaseModel):
    """A stored, user-facing notification."""
    id: int
    user_id: str
    kind: NotificationKind
    title: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority
    is_read: bool = False
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    dedup_key: Optional[str] = None
    created_at: datetime


class NotificationPreferences(BaseModel):
    """Per-user notification switches."""
    similar_work: bool = DEFAULT_NOTIFICATION_PREFERENCES["similar_work"]
    connection_suggestions: bool = DEFAULT_NOTIFICATION_PREFERENCES["connection_suggestions"]
    collaboration_opportunities: bool = DEFAULT_NOTIFICATION_PREFERENCES["collaboration_opportunities"]
    expertise_matches: bool = DEFAULT_NOTIFICATION_PREFERENCES["expertise_matches"]
    email_notifications: bool = DEFAULT_NOTIFICATION_PREFERENCES["email_notifications"]
    push_notifications: bool = DEFAULT_NOTIFICATION_PREFERENCES["push_notifications"]

    def allows(self, kind: NotificationKind) -> bool:
        """Whether notifications of this kind are enabled."""
        return getattr(self, PREFERENCE_FLAG_BY_KIND[kind])


class NotificationPreferencesUpdate(BaseModel):
    """Partial preference update. Unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    similar_work: Optional[bool] = None
    connection_suggestions: Optional[bool] = None
    collaboration_opportunities: Optional[bool] = None
    expertise_matches: Optional[bool] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None


# =============================================================================
# Request Models
# =============================================================================

class SimilarWorkRequest(BaseModel):
    """Schema for checking a new work item against existing ones."""
    user_id: str
    work_kind: str
    title: str
    tags: Optional[List[str]] = None
    notify: bool = False


class ExpertiseMatchRequest(BaseModel):
    """Ask a user for help on a topic."""
    user_id: str = Field(..., min_length=1)
    requester_id: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)


class CollaborationOpportunityRequest(BaseModel):
    """Point a user at a project that could use their expertise."""
    user_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
