"""
Notifications Router for the CollabSense API.

Endpoints:
- GET /users/{user_id}/notifications - List notifications (newest first)
- GET /users/{user_id}/notifications/unread-count - Unread count
- POST /users/{user_id}/notifications/read-all - Mark all read
- POST /notifications/{notification_id}/read - Mark one read
- DELETE /notifications/{notification_id} - Delete one
- POST /notifications/dispatch - Dispatch a notification candidate
- POST /notifications/expertise-match - Ask an expert for help
- POST /notifications/collaboration-opportunity - Point a user at a project
- GET /users/{user_id}/notification-preferences - Current preferences
- PUT /users/{user_id}/notification-preferences - Partial preference update
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query, Request

from ..constants import NOTIFICATION_LIST_LIMIT
from ..dependencies import get_engine, limiter
from ..engine import CollabSenseEngine
from ..models import (
    CollaborationOpportunityRequest,
    ExpertiseMatchRequest,
    Notification,
    NotificationCandidate,
    NotificationPreferences,
)
from ..websocket_manager import broadcast_notification_read

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="",
    tags=["notifications"],
    responses={404: {"description": "Notification not found"}},
)


def _dispatch_result(notification) -> dict:
    return {
        "created": notification is not None,
        "notification": notification.model_dump(mode="json") if notification else None,
    }


# =============================================================================
# Inbox
# =============================================================================

@router.get("/users/{user_id}/notifications", response_model=List[Notification])
async def list_notifications(
    user_id: str,
    unread_only: bool = Query(False),
    limit: int = Query(NOTIFICATION_LIST_LIMIT, ge=1, le=NOTIFICATION_LIST_LIMIT),
    engine: CollabSenseEngine = Depends(get_engine)
):
    return engine.list_notifications(user_id, unread_only=unread_only, limit=limit)


@router.get("/users/{user_id}/notifications/unread-count")
async def unread_count(user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    return {"user_id": user_id, "unread_count": engine.count_unread(user_id)}


@router.post("/users/{user_id}/notifications/read-all")
async def mark_all_read(user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    updated = engine.mark_all_read(user_id)
    return {"user_id": user_id, "updated": updated}


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_read(notification_id: int, engine: CollabSenseEngine = Depends(get_engine)):
    """Mark a notification read and tell the user's other sessions."""
    notification = engine.mark_read(notification_id)
    await broadcast_notification_read(notification.user_id, [notification.id])
    return notification


@router.delete("/notifications/{notification_id}", status_code=204)
async def delete_notification(notification_id: int, engine: CollabSenseEngine = Depends(get_engine)):
    engine.delete_notification(notification_id)


# =============================================================================
# Dispatch
# =============================================================================

@router.post("/notifications/dispatch")
@limiter.limit("60/minute")
async def dispatch_notification(
    request: Request,
    candidate: NotificationCandidate,
    engine: CollabSenseEngine = Depends(get_engine)
):
    """
    Dispatch a notification candidate.

    Returns:
        created=false when the user's preferences or an unread duplicate
        suppressed it
    """
    notification = await engine.dispatch_notification(candidate)
    return _dispatch_result(notification)


@router.post("/notifications/expertise-match")
@limiter.limit("30/minute")
async def expertise_match(
    request: Request,
    payload: ExpertiseMatchRequest,
    engine: CollabSenseEngine = Depends(get_engine)
):
    notification = await engine.notify_expertise_match(payload.user_id, payload.requester_id, payload.topic)
    return _dispatch_result(notification)


@router.post("/notifications/collaboration-opportunity")
@limiter.limit("30/minute")
async def collaboration_opportunity(
    request: Request,
    payload: CollaborationOpportunityRequest,
    engine: CollabSenseEngine = Depends(get_engine)
):
    notification = await engine.notify_collaboration_opportunity(
        payload.user_id, payload.project_id, payload.reason
    )
    return _dispatch_result(notification)


# =============================================================================
# Preferences
# =============================================================================

@router.get("/users/{user_id}/notification-preferences", response_model=NotificationPreferences)
async def get_preferences(user_id: str, engine: CollabSenseEngine = Depends(get_engine)):
    return engine.get_preferences(user_id)


@router.put("/users/{user_id}/notification-preferences", response_model=NotificationPreferences)
async def update_preferences(
    user_id: str,
    partial: Dict[str, Any] = Body(...),
    engine: CollabSenseEngine = Depends(get_engine)
):
    """
    Merge a partial update over the current preferences.

    Unknown keys and non-boolean values are rejected with 422.
    """
    return engine.set_preferences(user_id, partial)
