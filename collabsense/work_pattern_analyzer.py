"""
Work-pattern analysis.

Turns a user's raw activity history into a WorkPattern:
- Topics from the tags and categories of touched work items plus declared skills
- Active projects and connected collaborators
- Hour-of-day and day-of-week histograms with peak-hour and active-day summaries
- Per-kind activity counts and a knowledge-sharing score

Patterns are persisted per user and reused while fresh.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .cache import is_fresh
from .config import Settings, settings as default_settings
from .constants import DAYS_PER_WEEK, HOURS_PER_DAY, PEAK_HOUR_COUNT, WORK_PATTERN_SCHEMA_VERSION
from .models import (
    ActivityKind,
    ActivityRecord,
    RelationshipStatus,
    WorkItem,
    WorkKind,
    WorkPattern,
)
from .repository_interface import (
    ActivityFeed,
    ProfileStore,
    RelationshipStore,
    WorkItemStore,
    WorkPatternStore,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Histogram Helpers
# =============================================================================

def peak_hours(hour_histogram: List[int], limit: int = PEAK_HOUR_COUNT) -> List[int]:
    """Busiest hours, by count descending, ties broken by the lower hour."""
    ranked = sorted(
        (hour for hour, count in enumerate(hour_histogram) if count > 0),
        key=lambda hour: (-hour_histogram[hour], hour)
    )
    return ranked[:limit]


def active_days(day_histogram: List[int]) -> List[int]:
    """Weekdays (Monday = 0) with any activity, by count descending."""
    return sorted(
        (day for day, count in enumerate(day_histogram) if count > 0),
        key=lambda day: (-day_histogram[day], day)
    )


def _metadata_tags(record: ActivityRecord) -> List[str]:
    tags = record.metadata.get("tags")
    if isinstance(tags, list):
        return [tag for tag in tags if isinstance(tag, str) and tag]
    return []


class WorkPatternAnalyzer:
    """Builds and caches per-user work patterns."""

    def __init__(
        self,
        activity_feed: ActivityFeed,
        profiles: ProfileStore,
        relationships: RelationshipStore,
        work_items: WorkItemStore,
        pattern_store: WorkPatternStore,
        settings: Optional[Settings] = None
    ):
        self.activity_feed = activity_feed
        self.profiles = profiles
        self.relationships = relationships
        self.work_items = work_items
        self.pattern_store = pattern_store
        self.settings = settings or default_settings

    def analyze(self, user_id: str, now: Optional[datetime] = None, force: bool = False) -> WorkPattern:
        """
        Get a user's work pattern, recomputing it if the stored one is stale.

        Args:
            user_id: User to analyze
            now: Current time (defaults to utcnow)
            force: Recompute even if the stored pattern is fresh

        Returns:
            The fresh WorkPattern

        Raises:
            DataUnavailable: If activity or profile data could not be read.
                Nothing is written in that case.
        """
        now = now or datetime.utcnow()

        if not force:
            cached = self.pattern_store.get_work_pattern(user_id)
            if (
                cached is not None
                and cached.schema_version == WORK_PATTERN_SCHEMA_VERSION
                and is_fresh(cached.last_analyzed_at, now, self.settings.work_pattern_ttl_seconds)
            ):
                logger.debug(f"Work pattern cache HIT for user {user_id}")
                return cached

        logger.debug(f"Work pattern cache MISS for user {user_id} - analyzing")

        since = now - timedelta(days=self.settings.lookback_days)
        activities = self.activity_feed.get_user_activities(user_id, since, now)
        profile = self.profiles.get_profile(user_id)
        collaborators = self.relationships.get_related_user_ids(user_id, [RelationshipStatus.CONNECTED])
        items = self.work_items.get_work_items({record.subject_id for record in activities})

        pattern = self.build_pattern(
            user_id,
            activities,
            items,
            declared_skills=profile.skills if profile else [],
            collaborator_ids=collaborators,
            now=now
        )

        self.pattern_store.save_work_pattern(pattern)
        logger.info(
            f"Analyzed work pattern for user {user_id}: {pattern.activity_count} activities, "
            f"{len(pattern.topic_set)} topics, {len(pattern.active_project_ids)} projects"
        )
        return pattern

    def build_pattern(
        self,
        user_id: str,
        activities: List[ActivityRecord],
        items: Dict[str, WorkItem],
        declared_skills: Iterable[str],
        collaborator_ids: Iterable[str],
        now: datetime
    ) -> WorkPattern:
        """
        Derive a WorkPattern from already-fetched inputs.

        Pure: the same inputs always give the same pattern.
        """
        hour_histogram = [0] * HOURS_PER_DAY
        day_histogram = [0] * DAYS_PER_WEEK
        kind_counts = Counter()
        topics = set()
        project_ids = set()

        for record in activities:
            hour_histogram[record.timestamp.hour] += 1
            day_histogram[record.timestamp.weekday()] += 1
            kind_counts[record.activity_kind.value] += 1
            topics.update(_metadata_tags(record))

            item = items.get(record.subject_id)
            if item is None:
                continue
            topics.update(tag for tag in item.tags if tag)
            if item.category:
                topics.add(item.category)
            if item.kind == WorkKind.PROJECT:
                project_ids.add(item.work_id)

        skills = sorted({skill for skill in declared_skills if skill})
        topics.update(skills)

        knowledge_sharing_score = (
            self.settings.contribute_weight * kind_counts[ActivityKind.CONTRIBUTE.value]
            + self.settings.collaborate_weight * kind_counts[ActivityKind.COLLABORATE.value]
        )

        return WorkPattern(
            user_id=user_id,
            topic_set=sorted(topics),
            skill_set=skills,
            active_project_ids=sorted(project_ids),
            collaborator_ids=sorted(collaborator_ids),
            active_hour_histogram=hour_histogram,
            active_day_histogram=day_histogram,
            peak_hours=peak_hours(hour_histogram),
            active_days=active_days(day_histogram),
            activity_counts={kind.value: kind_counts[kind.value] for kind in ActivityKind},
            activity_count=len(activities),
            knowledge_sharing_score=knowledge_sharing_score,
            last_analyzed_at=now,
            schema_version=WORK_PATTERN_SCHEMA_VERSION
        )


__all__ = ["WorkPatternAnalyzer", "peak_hours", "active_days"]
