"""
Project insight generation.

Four independent detectors, each of which may find nothing:
- Shared team: people active on two or more of the user's projects
- Common dependencies: other projects sharing the target project's dependencies
- Knowledge transfer: a related project whose team has not engaged with the target
- Timeline risk: recent activity rate well below the earlier rate

The timeline-risk check is a plain ratio of event rates, not a statistical
trend test.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from .config import Settings, settings as default_settings
from .constants import (
    COMMON_DEPENDENCIES_BASE_PRIORITY,
    COMMON_DEPENDENCIES_PRIORITY_STEP,
    KNOWLEDGE_TRANSFER_BASE_PRIORITY,
    SHARED_TEAM_BASE_PRIORITY,
    SHARED_TEAM_PRIORITY_STEP,
    TIMELINE_RISK_PRIORITY,
)
from .models import ActivityRecord, Insight, InsightKind, WorkKind, WorkPattern
from .repository_interface import ActivityFeed, InsightStore, WorkItemStore
from .similarity import tag_similarity
from .work_pattern_analyzer import WorkPatternAnalyzer

logger = logging.getLogger(__name__)


def _team_by_subject(activities: List[ActivityRecord]) -> Dict[str, Set[str]]:
    """Map each subject id to the users active on it."""
    teams = defaultdict(set)
    for record in activities:
        teams[record.subject_id].add(record.user_id)
    return teams


class InsightGenerator:
    """Generates and persists explainable insights about a user's projects."""

    def __init__(
        self,
        analyzer: WorkPatternAnalyzer,
        activity_feed: ActivityFeed,
        work_items: WorkItemStore,
        insight_store: InsightStore,
        settings: Optional[Settings] = None
    ):
        self.analyzer = analyzer
        self.activity_feed = activity_feed
        self.work_items = work_items
        self.insight_store = insight_store
        self.settings = settings or default_settings

    def generate_insights(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[Insight]:
        """
        Run every detector and persist what they find.

        Args:
            user_id: User the insights are for
            project_id: Optional target project
            now: Current time (defaults to utcnow)

        Returns:
            Insights ordered by priority_score, highest first

        Raises:
            DataUnavailable: If activity or work-item data could not be read
        """
        now = now or datetime.utcnow()
        pattern = self.analyzer.analyze(user_id, now)
        since = now - timedelta(days=self.settings.lookback_days)
        expires_at = now + timedelta(seconds=self.settings.insight_ttl_seconds)

        insights = []
        for detector in (
            self._shared_team,
            self._common_dependencies,
            self._knowledge_transfer,
            self._timeline_risk,
        ):
            insight = detector(pattern, project_id, since, now, expires_at)
            if insight is not None:
                insights.append(insight)

        insights.sort(key=lambda insight: (-insight.priority_score, insight.kind.value))

        for insight in insights:
            self.insight_store.upsert_insight(insight)

        logger.info(f"Generated {len(insights)} insights for user {user_id} (project={project_id})")
        return insights

    # =============================================================================
    # Detectors
    # =============================================================================

    def _shared_team(
        self,
        pattern: WorkPattern,
        project_id: Optional[str],
        since: datetime,
        now: datetime,
        expires_at: datetime
    ) -> Optional[Insight]:
        project_ids = set(pattern.active_project_ids)
        if project_id:
            project_ids.add(project_id)
        if len(project_ids) < 2:
            return None

        projects_by_user = defaultdict(set)
        for record in self.activity_feed.get_subject_activities(project_ids, since, now):
            if record.user_id != pattern.user_id:
                projects_by_user[record.user_id].add(record.subject_id)

        shared_members = sorted(user for user, projects in projects_by_user.items() if len(projects) >= 2)
        if not shared_members:
            return None

        count = len(shared_members)
        shared_projects = sorted(set().union(*(projects_by_user[user] for user in shared_members)))
        people = "person is" if count == 1 else "people are"
        return Insight(
            user_id=pattern.user_id,
            project_id=project_id,
            kind=InsightKind.SHARED_TEAM,
            title="Shared Team Members",
            description=f"{count} {people} working on more than one of your projects",
            action_label="Coordinate sprints",
            action_payload={"user_ids": shared_members, "project_ids": shared_projects},
            priority_score=SHARED_TEAM_BASE_PRIORITY + SHARED_TEAM_PRIORITY_STEP * count,
            expires_at=expires_at
        )

    def _common_dependencies(
        self,
        pattern: WorkPattern,
        project_id: Optional[str],
        since: datetime,
        now: datetime,
        expires_at: datetime
    ) -> Optional[Insight]:
        if not project_id:
            return None

        shared = self.work_items.find_projects_sharing_dependencies(project_id)
        if not shared:
            return None

        impacted = sorted(shared)
        dependencies = sorted({dep for deps in shared.values() for dep in deps})
        count = len(impacted)
        projects = "project shares" if count == 1 else "projects share"
        return Insight(
            user_id=pattern.user_id,
            project_id=project_id,
            kind=InsightKind.COMMON_DEPENDENCIES,
            title="Common Dependencies",
            description=f"{count} other {projects} dependencies with this project: {', '.join(dependencies)}",
            action_label="Review timeline",
            action_payload={"project_ids": impacted, "dependencies": dependencies},
            priority_score=COMMON_DEPENDENCIES_BASE_PRIORITY + COMMON_DEPENDENCIES_PRIORITY_STEP * count,
            expires_at=expires_at
        )

    def _knowledge_transfer(
        self,
        pattern: WorkPattern,
        project_id: Optional[str],
        since: datetime,
        now: datetime,
        expires_at: datetime
    ) -> Optional[Insight]:
        if not project_id or not pattern.topic_set:
            return None

        candidates = [
            project for project in self.work_items.find_work_items(WorkKind.PROJECT)
            if project.work_id != project_id and tag_similarity(project.tags, pattern.topic_set) > 0
        ]
        if not candidates:
            return None

        teams = _team_by_subject(self.activity_feed.get_subject_activities(
            [project_id] + [project.work_id for project in candidates], since, now
        ))
        target_team = teams.get(project_id, set())

        best = None
        best_score = -1
        for project in candidates:
            team = teams.get(project.work_id, set())
            if not team or team & target_team:
                continue
            opportunity_score = round(tag_similarity(project.tags, pattern.topic_set) / 10)
            if opportunity_score > best_score:
                best, best_score = project, opportunity_score

        if best is None:
            return None

        return Insight(
            user_id=pattern.user_id,
            project_id=project_id,
            kind=InsightKind.KNOWLEDGE_TRANSFER,
            title="Knowledge Transfer",
            description=f"The {best.title} team has insights useful for this project",
            action_label="Schedule sync",
            action_payload={
                "project_id": best.work_id,
                "user_ids": sorted(teams[best.work_id]),
                "opportunity_score": best_score,
            },
            priority_score=KNOWLEDGE_TRANSFER_BASE_PRIORITY + best_score,
            expires_at=expires_at
        )

    def _timeline_risk(
        self,
        pattern: WorkPattern,
        project_id: Optional[str],
        since: datetime,
        now: datetime,
        expires_at: datetime
    ) -> Optional[Insight]:
        s = self.settings
        if project_id:
            activities = self.activity_feed.get_subject_activities([project_id], since, now)
        else:
            activities = self.activity_feed.get_user_activities(pattern.user_id, since, now)

        recent_start = now - timedelta(days=s.timeline_recent_days)
        recent = sum(1 for record in activities if record.timestamp >= recent_start)
        older = len(activities) - recent
        if older <= s.timeline_min_older_events:
            return None

        older_days = max(s.lookback_days - s.timeline_recent_days, 1)
        recent_rate = recent / s.timeline_recent_days
        older_rate = older / older_days
        if recent_rate >= s.timeline_slowdown_ratio * older_rate:
            return None

        subject = "this project" if project_id else "your work"
        return Insight(
            user_id=pattern.user_id,
            project_id=project_id,
            kind=InsightKind.TIMELINE_RISK,
            title="Timeline Risk",
            description=(
                f"Activity on {subject} slowed down: {recent} events in the last "
                f"{s.timeline_recent_days} days against {older} in the {older_days} days before"
            ),
            action_label="Check in with the team",
            action_payload={
                "recent_events": recent,
                "older_events": older,
                "recent_rate": round(recent_rate, 3),
                "older_rate": round(older_rate, 3),
            },
            priority_score=TIMELINE_RISK_PRIORITY,
            expires_at=expires_at
        )


__all__ = ["InsightGenerator"]
