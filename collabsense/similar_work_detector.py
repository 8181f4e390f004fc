"""
Similar-work detection.

Checks a newly created project or knowledge item against other users'
existing work of the same kind. Stateless between calls.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .config import Settings, settings as default_settings
from .exceptions import InvalidInput
from .models import SimilarWorkAlert, WorkKind
from .repository_interface import WorkItemStore
from .similarity import tag_similarity, text_similarity

logger = logging.getLogger(__name__)

REASON_TEMPLATES = {
    WorkKind.PROJECT: 'Similar project: "{title}"',
    WorkKind.KNOWLEDGE_ITEM: 'Similar knowledge shared: "{title}"',
}


def parse_work_kind(work_kind) -> WorkKind:
    """Validate a work kind coming from a caller."""
    try:
        return WorkKind(work_kind)
    except ValueError:
        valid = ", ".join(kind.value for kind in WorkKind)
        raise InvalidInput("work_kind", f"'{work_kind}' is not one of: {valid}")


class SimilarWorkDetector:
    """Finds existing work that overlaps a new work item."""

    def __init__(self, work_items: WorkItemStore, settings: Optional[Settings] = None):
        self.work_items = work_items
        self.settings = settings or default_settings

    def threshold_for(self, kind: WorkKind) -> float:
        if kind == WorkKind.KNOWLEDGE_ITEM:
            return self.settings.knowledge_item_similarity_threshold
        return self.settings.project_similarity_threshold

    def detect_similar_work(
        self,
        user_id: str,
        work_kind,
        title: str,
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> List[SimilarWorkAlert]:
        """
        Compare a new work item against other users' work of the same kind.

        Similarity is the larger of the title and tag scores. Titles are
        compared case-insensitively.

        Args:
            user_id: Creator of the new work item
            work_kind: "project" or "knowledge_item"
            title: Title of the new work item
            tags: Optional tags of the new work item
            now: Alert timestamp (defaults to utcnow)

        Returns:
            Up to max_similar_work_alerts alerts, most similar first

        Raises:
            InvalidInput: If work_kind is unknown or title is empty
            DataUnavailable: If existing work could not be read
        """
        kind = parse_work_kind(work_kind)
        if not title or not title.strip():
            raise InvalidInput("title", "must not be empty")

        now = now or datetime.utcnow()
        threshold = self.threshold_for(kind)
        normalized_title = title.lower()

        alerts = []
        for item in self.work_items.find_work_items(kind, exclude_owner_id=user_id):
            if item.owner_id == user_id:
                continue

            similarity = max(
                text_similarity(normalized_title, item.title.lower()),
                tag_similarity(tags, item.tags) if tags else 0.0
            )
            if similarity < threshold:
                continue

            alerts.append(SimilarWorkAlert(
                subject_user_id=user_id,
                related_user_id=item.owner_id,
                work_kind=kind,
                related_work_id=item.work_id,
                related_work_title=item.title,
                similarity=round(similarity, 2),
                reason=REASON_TEMPLATES[kind].format(title=item.title),
                created_at=now
            ))

        alerts.sort(key=lambda alert: (-alert.similarity, alert.related_work_id))
        alerts = alerts[:self.settings.max_similar_work_alerts]

        if alerts:
            logger.info(f"Found {len(alerts)} similar {kind.value} items for user {user_id}")
        return alerts


__all__ = ["SimilarWorkDetector", "parse_work_kind"]
