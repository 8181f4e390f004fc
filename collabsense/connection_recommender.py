"""
Connection recommendations.

Scores every candidate user against the source user's work pattern, keeps
the ones with enough signal, and persists them without duplicating an
open suggestion for the same (source, target) pair.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .config import Settings, settings as default_settings
from .constants import (
    DEFAULT_SUGGESTION_REASON,
    REASON_ITEM_LIMIT_SKILLS,
    REASON_ITEM_LIMIT_TOPICS,
    REASON_SEPARATOR,
)
from .exceptions import DataUnavailable
from .models import (
    ConnectionSuggestion,
    RelationshipStatus,
    SignalKind,
    UserProfile,
    WorkPattern,
)
from .repository_interface import ProfileStore, RelationshipStore, SuggestionStore
from .work_pattern_analyzer import WorkPatternAnalyzer

logger = logging.getLogger(__name__)

# Strongest first; the highest-ranked signal that fired names the suggestion
SIGNAL_PRIORITY = [
    SignalKind.SKILL,
    SignalKind.TOPIC,
    SignalKind.COMPLEMENTARY,
    SignalKind.DEPARTMENT,
]


@dataclass
class CandidateScore:
    """Raw scoring outcome for one candidate."""
    score: int = 0
    reasons: List[str] = field(default_factory=list)
    signals: List[SignalKind] = field(default_factory=list)
    shared_topics: List[str] = field(default_factory=list)
    shared_skills: List[str] = field(default_factory=list)
    complementary_skills: List[str] = field(default_factory=list)

    @property
    def signal_kind(self) -> SignalKind:
        for kind in SIGNAL_PRIORITY:
            if kind in self.signals:
                return kind
        return SignalKind.TOPIC

    @property
    def reason(self) -> str:
        return REASON_SEPARATOR.join(self.reasons) or DEFAULT_SUGGESTION_REASON

    @property
    def shared_interests(self) -> List[str]:
        seen = []
        for interest in self.shared_topics + self.shared_skills:
            if interest not in seen:
                seen.append(interest)
        return seen


class ConnectionRecommender:
    """Ranks users the source user should connect with."""

    def __init__(
        self,
        analyzer: WorkPatternAnalyzer,
        profiles: ProfileStore,
        relationships: RelationshipStore,
        suggestion_store: SuggestionStore,
        settings: Optional[Settings] = None
    ):
        self.analyzer = analyzer
        self.profiles = profiles
        self.relationships = relationships
        self.suggestion_store = suggestion_store
        self.settings = settings or default_settings

    def score_candidate(
        self,
        source: WorkPattern,
        candidate: WorkPattern,
        candidate_department: Optional[str] = None
    ) -> CandidateScore:
        """
        Score one candidate against the source pattern.

        Args:
            source: Source user's pattern
            candidate: Candidate user's pattern
            candidate_department: Candidate's declared department, if any

        Returns:
            CandidateScore with the additive score and matched signals
        """
        s = self.settings
        candidate_topics = set(candidate.topic_set)
        candidate_skills = set(candidate.skill_set)

        result = CandidateScore(
            shared_topics=[t for t in source.topic_set if t in candidate_topics],
            shared_skills=[k for k in source.skill_set if k in candidate_skills],
            complementary_skills=[
                k for k in source.skill_set
                if k not in candidate_skills and k in candidate_topics
            ],
        )

        if len(result.shared_topics) >= s.min_shared_topics:
            result.score += s.shared_topic_weight * len(result.shared_topics)
            result.signals.append(SignalKind.TOPIC)
            result.reasons.append(
                f"Working on similar topics: {', '.join(result.shared_topics[:REASON_ITEM_LIMIT_TOPICS])}"
            )

        if len(result.shared_skills) >= s.min_shared_skills:
            result.score += s.shared_skill_weight * len(result.shared_skills)
            result.signals.append(SignalKind.SKILL)
            result.reasons.append(
                f"Shared expertise: {', '.join(result.shared_skills[:REASON_ITEM_LIMIT_SKILLS])}"
            )

        if len(result.complementary_skills) >= s.min_complementary_skills:
            result.score += s.complementary_skill_weight * len(result.complementary_skills)
            result.signals.append(SignalKind.COMPLEMENTARY)
            result.reasons.append(
                f"Could help with: {', '.join(result.complementary_skills[:REASON_ITEM_LIMIT_SKILLS])}"
            )

        if candidate_department and result.shared_topics:
            result.score += s.department_bonus
            result.signals.append(SignalKind.DEPARTMENT)
            result.reasons.append(f"Cross-team: {candidate_department}")

        return result

    def suggest(self, user_id: str, now: Optional[datetime] = None) -> List[ConnectionSuggestion]:
        """
        Generate, rank and persist connection suggestions for a user.

        Args:
            user_id: Source user
            now: Current time (defaults to utcnow)

        Returns:
            At most max_suggestions suggestions, highest score first

        Raises:
            DataUnavailable: If the source user's data could not be read
        """
        now = now or datetime.utcnow()
        source = self.analyzer.analyze(user_id, now)

        excluded = self.relationships.get_related_user_ids(
            user_id,
            [RelationshipStatus.CONNECTED, RelationshipStatus.PENDING]
        )
        candidates = [
            profile for profile in self.profiles.list_profiles(exclude_user_ids={user_id} | excluded)
            if profile.user_id != user_id and profile.user_id not in excluded
        ]

        if not candidates:
            logger.debug(f"No candidates for user {user_id}")
            return []

        suggestions = []
        for profile in candidates:
            suggestion = self._evaluate(source, profile, now)
            if suggestion is not None:
                suggestions.append(suggestion)

        suggestions.sort(key=lambda sug: (-sug.score, sug.target_user_id))
        suggestions = suggestions[:self.settings.max_suggestions]

        persisted = [self._persist(suggestion) for suggestion in suggestions]
        logger.info(f"Generated {len(persisted)} connection suggestions for user {user_id}")
        return persisted

    def _evaluate(
        self,
        source: WorkPattern,
        profile: UserProfile,
        now: datetime
    ) -> Optional[ConnectionSuggestion]:
        try:
            candidate = self.analyzer.analyze(profile.user_id, now)
        except DataUnavailable as e:
            logger.warning(f"Skipping candidate {profile.user_id}: {e}")
            return None

        result = self.score_candidate(source, candidate, profile.department)
        if result.score < self.settings.min_suggestion_score:
            return None

        return ConnectionSuggestion(
            source_user_id=source.user_id,
            target_user_id=profile.user_id,
            target_name=profile.full_name,
            target_department=profile.department,
            score=result.score,
            confidence=min(result.score, 100),
            reason=result.reason,
            signal_kind=result.signal_kind,
            shared_interests=result.shared_interests,
            created_at=now
        )

    def _persist(self, suggestion: ConnectionSuggestion) -> ConnectionSuggestion:
        """Upsert on (source, target); an open row for the pair is refreshed in place."""
        stored = self.suggestion_store.upsert_suggestion(suggestion)
        return stored.model_copy(update={
            "target_name": suggestion.target_name,
            "target_department": suggestion.target_department,
        })


__all__ = ["ConnectionRecommender", "CandidateScore", "SIGNAL_PRIORITY"]
