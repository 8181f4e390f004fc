"""
Celery Application Configuration for the CollabSense engine.

Runs the scheduled "analyze all active users" sweep:
    Celery Beat -> Redis (Message Broker) -> Celery Worker (analysis queue)

Usage:
    # Start Celery worker:
    celery -A collabsense.celery_app worker -Q analysis --loglevel=info

    # Start the beat scheduler:
    celery -A collabsense.celery_app beat --loglevel=info
"""

from datetime import timedelta

from celery import Celery

from .config import settings

# =============================================================================
# Configuration
# =============================================================================

CELERY_BROKER_URL = settings.effective_celery_broker_url
CELERY_RESULT_BACKEND = settings.effective_celery_result_backend

# =============================================================================
# Celery App Instance
# =============================================================================

celery_app = Celery(
    "collabsense",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["collabsense.tasks"]
)

# =============================================================================
# Celery Configuration
# =============================================================================

celery_app.conf.update(
    # Use JSON serializer (not pickle)
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    result_expires=3600,

    # Task execution settings
    task_track_started=True,
    task_time_limit=1800,
    task_soft_time_limit=1680,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Acknowledge after completion so a crashed sweep is retried
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Beat scheduler
    beat_schedule={
        "analyze-active-users": {
            "task": "collabsense.tasks.analyze_active_users",
            "schedule": timedelta(minutes=settings.sweep_interval_minutes),
            "options": {"queue": "analysis"}
        },
    },

    worker_send_task_events=True,
    task_send_sent_event=True,
)

# =============================================================================
# Task Routes
# =============================================================================

celery_app.conf.task_routes = {
    "collabsense.tasks.analyze_active_users": {"queue": "analysis"},
}

__all__ = ["celery_app"]
