"""
Application Constants for the CollabSense engine.

Dynamic, tunable policy (weights, thresholds, TTLs) lives in config.py.
This file only contains true constants that don't change between environments.
"""

# =============================================================================
# Work Pattern Shape
# =============================================================================

WORK_PATTERN_SCHEMA_VERSION = 1
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
PEAK_HOUR_COUNT = 5  # Hours kept in the peak-hour summary

# =============================================================================
# Similarity
# =============================================================================

MIN_TOKEN_LENGTH = 4  # Tokens of length <= 3 are dropped
MAX_SCORE = 100.0

# =============================================================================
# Suggestion Reasons
# =============================================================================

REASON_SEPARATOR = " | "
DEFAULT_SUGGESTION_REASON = "Similar work patterns detected"
REASON_ITEM_LIMIT_TOPICS = 3
REASON_ITEM_LIMIT_SKILLS = 2

# =============================================================================
# Insight Priorities
# =============================================================================

SHARED_TEAM_BASE_PRIORITY = 80
SHARED_TEAM_PRIORITY_STEP = 2
COMMON_DEPENDENCIES_BASE_PRIORITY = 75
COMMON_DEPENDENCIES_PRIORITY_STEP = 3
KNOWLEDGE_TRANSFER_BASE_PRIORITY = 70
TIMELINE_RISK_PRIORITY = 90

# =============================================================================
# Notifications
# =============================================================================

HIGH_PRIORITY_SIMILARITY = 80.0  # Similar-work alerts at or above this are high priority
NOTIFICATION_LIST_LIMIT = 50
STORED_SUGGESTION_LIMIT = 10

DEFAULT_NOTIFICATION_PREFERENCES = {
    "similar_work": True,
    "connection_suggestions": True,
    "collaboration_opportunities": True,
    "expertise_matches": True,
    "email_notifications": False,
    "push_notifications": True,
}

# =============================================================================
# Cache Keys
# =============================================================================

CACHE_PREFIX = "collabsense"
UNSCOPED_PROJECT_KEY = "all"
