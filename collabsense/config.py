"""
Centralized Configuration for the CollabSense engine.

All environment variables are managed here using Pydantic Settings.
Scoring weights and thresholds live here too, so that operators can tune
the recommendation policy without a code change.

Usage:
    from collabsense.config import settings

    ttl = settings.work_pattern_ttl_seconds
"""

from typing import Optional, Literal
from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with COLLABSENSE_ where applicable.
    """

    # =============================================================================
    # Application Environment
    # =============================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
        validation_alias="COLLABSENSE_ENVIRONMENT"
    )

    testing: bool = Field(
        default=False,
        description="Enable testing mode",
        validation_alias="TESTING"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validation_alias="COLLABSENSE_LOG_LEVEL"
    )

    allowed_origins: str = Field(
        default="*",
        description="CORS allowed origins (comma-separated or '*')",
        validation_alias="COLLABSENSE_ALLOWED_ORIGINS"
    )

    # =============================================================================
    # Database
    # =============================================================================

    database_url: str = Field(
        default="sqlite:///./collabsense.db",
        description="Database connection URL (PostgreSQL or SQLite)",
        validation_alias="DATABASE_URL"
    )

    # =============================================================================
    # Redis, Caching & Celery
    # =============================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        validation_alias="REDIS_URL"
    )

    celery_broker_url: Optional[str] = Field(
        default=None,
        description="Celery broker URL (defaults to redis_url)",
        validation_alias="CELERY_BROKER_URL"
    )

    celery_result_backend: Optional[str] = Field(
        default=None,
        description="Celery result backend URL (defaults to redis_url)",
        validation_alias="CELERY_RESULT_BACKEND"
    )

    work_pattern_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="How long an analyzed work pattern stays fresh",
        validation_alias="WORK_PATTERN_TTL_SECONDS"
    )

    insight_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Insight expiry window",
        validation_alias="INSIGHT_TTL_SECONDS"
    )

    suggestion_cache_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Cache lifetime of generated connection suggestions",
        validation_alias="SUGGESTION_CACHE_TTL_SECONDS"
    )

    # =============================================================================
    # Work-Pattern Analysis
    # =============================================================================

    lookback_days: int = Field(
        default=30,
        ge=1,
        description="Activity lookback window for pattern analysis",
        validation_alias="LOOKBACK_DAYS"
    )

    active_user_window_days: int = Field(
        default=7,
        ge=1,
        description="A user counts as active if they had activity within this window",
        validation_alias="ACTIVE_USER_WINDOW_DAYS"
    )

    contribute_weight: int = Field(
        default=5,
        description="Knowledge-sharing points per contribute event",
        validation_alias="CONTRIBUTE_WEIGHT"
    )

    collaborate_weight: int = Field(
        default=3,
        description="Knowledge-sharing points per collaborate event",
        validation_alias="COLLABORATE_WEIGHT"
    )

    # =============================================================================
    # Connection Recommender Policy
    # =============================================================================

    shared_topic_weight: int = Field(
        default=10,
        description="Score per shared topic once the topic minimum is met",
        validation_alias="SHARED_TOPIC_WEIGHT"
    )

    shared_skill_weight: int = Field(
        default=15,
        description="Score per shared skill once the skill minimum is met",
        validation_alias="SHARED_SKILL_WEIGHT"
    )

    complementary_skill_weight: int = Field(
        default=12,
        description="Score per complementary skill once the minimum is met",
        validation_alias="COMPLEMENTARY_SKILL_WEIGHT"
    )

    department_bonus: int = Field(
        default=10,
        description="Score added when both users are in the same department",
        validation_alias="DEPARTMENT_BONUS"
    )

    min_shared_topics: int = Field(
        default=3,
        ge=1,
        description="Shared topics needed before topics contribute to the score",
        validation_alias="MIN_SHARED_TOPICS"
    )

    min_shared_skills: int = Field(
        default=2,
        ge=1,
        description="Shared skills needed before skills contribute to the score",
        validation_alias="MIN_SHARED_SKILLS"
    )

    min_complementary_skills: int = Field(
        default=2,
        ge=1,
        description="Complementary skills needed before they contribute to the score",
        validation_alias="MIN_COMPLEMENTARY_SKILLS"
    )

    min_suggestion_score: int = Field(
        default=30,
        description="Candidates scoring below this are discarded",
        validation_alias="MIN_SUGGESTION_SCORE"
    )

    max_suggestions: int = Field(
        default=10,
        ge=1,
        description="Maximum connection suggestions returned per user",
        validation_alias="MAX_SUGGESTIONS"
    )

    # =============================================================================
    # Similar-Work Detection
    # =============================================================================

    knowledge_item_similarity_threshold: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        description="Minimum similarity for a knowledge item to count as similar work",
        validation_alias="KNOWLEDGE_ITEM_SIMILARITY_THRESHOLD"
    )

    project_similarity_threshold: float = Field(
        default=60.0,
        ge=0.0,
        le=100.0,
        description="Minimum similarity for a project to count as similar work",
        validation_alias="PROJECT_SIMILARITY_THRESHOLD"
    )

    max_similar_work_alerts: int = Field(
        default=5,
        ge=1,
        description="Maximum similar-work alerts returned per check",
        validation_alias="MAX_SIMILAR_WORK_ALERTS"
    )

    # =============================================================================
    # Insights
    # =============================================================================

    timeline_recent_days: int = Field(
        default=7,
        ge=1,
        description="Length of the recent window compared for timeline risk",
        validation_alias="TIMELINE_RECENT_DAYS"
    )

    timeline_min_older_events: int = Field(
        default=10,
        description="Older-window events required before timeline risk is considered",
        validation_alias="TIMELINE_MIN_OLDER_EVENTS"
    )

    timeline_slowdown_ratio: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="Recent daily rate below this fraction of the older rate signals a slowdown",
        validation_alias="TIMELINE_SLOWDOWN_RATIO"
    )

    # =============================================================================
    # Notifications & Background Sweep
    # =============================================================================

    proactive_notification_count: int = Field(
        default=3,
        ge=0,
        description="How many top suggestions become notifications per sweep",
        validation_alias="PROACTIVE_NOTIFICATION_COUNT"
    )

    sweep_interval_minutes: int = Field(
        default=60,
        ge=1,
        description="Celery beat interval for the active-user analysis sweep",
        validation_alias="SWEEP_INTERVAL_MINUTES"
    )

    # =============================================================================
    # Computed Properties
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing

    @property
    def effective_celery_broker_url(self) -> str:
        """Get Celery broker URL (falls back to redis_url)."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str:
        """Get Celery result backend URL (falls back to redis_url)."""
        return self.celery_result_backend or self.redis_url

    # =============================================================================
    # Pydantic Model Configuration
    # =============================================================================

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Field Validators
    # =============================================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is uppercase and valid."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is lowercase."""
        return v.lower() if isinstance(v, str) else v


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = Settings()


def get_settings() -> Settings:
    """
    Get settings instance (for dependency injection).

    Usage:
        @router.get("/endpoint")
        def endpoint(settings: Settings = Depends(get_settings)):
            ...
    """
    return settings

__all__ = ["settings", "get_settings", "Settings"]
