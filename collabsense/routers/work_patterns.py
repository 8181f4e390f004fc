"""
Work Patterns Router for the CollabSense API.

Endpoints:
- POST /activities - Ingest a validated activity record
- GET /users/{user_id}/work-pattern - Analyzed work pattern
- GET /users/{user_id}/suggestions - Generate connection suggestions
- GET /users/{user_id}/suggestions/stored - Persisted open suggestions
- POST /suggestions/{suggestion_id}/dismiss - Dismiss a suggestion
- POST /suggestions/{suggestion_id}/accept - Accept a suggestion
- POST /similar-work - Check a new work item for similar existing work
- GET /users/{user_id}/insights - Project insights
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from ..dependencies import get_engine, limiter
from ..engine import CollabSenseEngine
from ..models import (
    ActivityRecord,
    ConnectionSuggestion,
    Insight,
    SimilarWorkRequest,
    WorkPattern,
)

# Initialize logger
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="",
    tags=["work-patterns"],
    responses={
        422: {"description": "Invalid input"},
        503: {"description": "Upstream data unavailable"},
    },
)

# =============================================================================
# Activity & Work Patterns
# =============================================================================

@router.post("/activities", response_model=ActivityRecord, status_code=201)
@limiter.limit("120/minute")
async def record_activity(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    engine: CollabSenseEngine = Depends(get_engine)
):
    """
    Record an activity event.

    Unknown fields, unknown activity kinds and missing ids are rejected
    with 422.
    """
    return engine.record_activity(payload)


@router.get("/users/{user_id}/work-pattern", response_model=WorkPattern)
async def get_work_pattern(user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    """
    Get a user's work pattern, reanalyzing if the stored one is stale.

    Raises:
        503: If activity data is unavailable
    """
    return engine.analyze(user_id)


# =============================================================================
# Connection Suggestions
# =============================================================================

@router.get("/users/{user_id}/suggestions", response_model=List[ConnectionSuggestion])
@limiter.limit("20/minute")
async def get_suggestions(request: Request, user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    """Ranked connection suggestions. Empty when data is temporarily unavailable."""
    suggestions = engine.suggest_connections(user_id)
    logger.info(f"Returning {len(suggestions)} suggestions for {user_id}")
    return suggestions


@router.get("/users/{user_id}/suggestions/stored", response_model=List[ConnectionSuggestion])
async def get_stored_suggestions(user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    return engine.get_stored_suggestions(user_id)


@router.post("/suggestions/{suggestion_id}/dismiss", response_model=ConnectionSuggestion)
async def dismiss_suggestion(suggestion_id: int, engine: CollabSenseEngine = Depends(get_engine)):
    return engine.dismiss_suggestion(suggestion_id)


@router.post("/suggestions/{suggestion_id}/accept", response_model=ConnectionSuggestion)
async def accept_suggestion(suggestion_id: int, engine: CollabSenseEngine = Depends(get_engine)):
    return engine.accept_suggestion(suggestion_id)


# =============================================================================
# Similar Work
# =============================================================================

@router.post("/similar-work")
@limiter.limit("30/minute")
async def check_similar_work(
    request: Request,
    payload: SimilarWorkRequest,
    engine: CollabSenseEngine = Depends(get_engine)
):
    """
    Check a new work item against other users' existing work.

    With notify=true, the creator also gets one similar-work notification
    per alert (subject to their preferences).

    Returns:
        alerts and the notifications created
    """
    alerts = engine.detect_similar_work(
        payload.user_id,
        payload.work_kind,
        payload.title,
        payload.tags
    )

    notifications = []
    if payload.notify and alerts:
        notifications = await engine.notify_similar_work(alerts)

    return {
        "alerts": [alert.model_dump(mode="json") for alert in alerts],
        "notifications": [n.model_dump(mode="json") for n in notifications],
    }


# =============================================================================
# Insights
# =============================================================================

@router.get("/users/{user_id}/insights", response_model=List[Insight])
@limiter.limit("20/minute")
async def get_insights(
    request: Request,
    user_id: str,
    project_id: Optional[str] = Query(None),
    engine: CollabSenseEngine = Depends(get_engine)
):
    """Insights for a user, optionally scoped to a project. Empty when data is unavailable."""
    return engine.get_insights(user_id, project_id)
