"""
Celery Background Tasks for the CollabSense engine.

- analyze_active_users: scheduled sweep over every user active in the last
  week. Each user is analyzed, suggestions are refreshed and the top ones
  become notifications. A failure for one user is logged and the sweep
  moves on.
"""

import asyncio
import concurrent.futures
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from celery import Task

from .celery_app import celery_app
from .database import get_db_context
from .engine import CollabSenseEngine, build_engine

# Initialize logger
logger = logging.getLogger(__name__)


def run_async(coro):
    """
    Run an async coroutine from sync Celery context.

    Handles the case where an event loop may or may not exist.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, safe to use asyncio.run()
        return asyncio.run(coro)

    # Loop exists, run in a fresh loop on another thread
    with concurrent.futures.ThreadPoolExecutor() as pool:
        return pool.submit(asyncio.run, coro).result()


async def run_background_analysis(
    engine: CollabSenseEngine,
    should_stop: Optional[Callable[[], bool]] = None,
    now: Optional[datetime] = None
) -> Dict:
    """
    Analyze every active user and send proactive notifications.

    Args:
        engine: Engine to run the sweep with
        should_stop: Checked between users; returning True ends the sweep early
        now: Sweep time (defaults to utcnow)

    Returns:
        dict: {active_users, analyzed, failed, failed_user_ids, notified, stopped}

    Raises:
        DataUnavailable: If the list of active users could not be read
    """
    now = now or datetime.utcnow()
    user_ids = engine.get_active_user_ids(now)
    logger.info(f"Starting background analysis for {len(user_ids)} active users")

    summary = {
        "active_users": len(user_ids),
        "analyzed": 0,
        "failed": 0,
        "failed_user_ids": [],
        "notified": 0,
        "stopped": False,
    }

    for user_id in user_ids:
        if should_stop is not None and should_stop():
            logger.info(f"Background analysis stopped after {summary['analyzed'] + summary['failed']} users")
            summary["stopped"] = True
            break

        try:
            engine.analyze(user_id, now)
            created = await engine.run_proactive_notifications(user_id, now)
        except Exception as e:
            logger.error(f"Background analysis failed for user {user_id}: {e}", exc_info=True)
            summary["failed"] += 1
            summary["failed_user_ids"].append(user_id)
            continue

        summary["analyzed"] += 1
        summary["notified"] += len(created)
        logger.debug(f"Analyzed user {user_id}: {len(created)} notifications sent")

    logger.info(
        f"Background analysis complete: {summary['analyzed']} analyzed, "
        f"{summary['failed']} failed, {summary['notified']} notifications"
    )
    return summary


# =============================================================================
# Active-User Sweep Task
# =============================================================================

@celery_app.task(bind=True, name="collabsense.tasks.analyze_active_users")
def analyze_active_users(self: Task) -> Dict:
    """
    Scheduled sweep over users active in the last week.

    Args:
        self: Celery task instance

    Returns:
        dict: Sweep summary from run_background_analysis
    """
    try:
        self.update_state(
            state="PROCESSING",
            meta={"stage": "analyzing", "message": "Analyzing active users..."}
        )

        with get_db_context() as db:
            engine = build_engine(db)
            return run_async(run_background_analysis(engine))

    except Exception as e:
        logger.error(f"Active-user sweep failed: {e}", exc_info=True)
        self.update_state(
            state="FAILURE",
            meta={"error": str(e), "message": f"Active-user sweep failed: {str(e)}"}
        )
        raise


__all__ = ["run_async", "run_background_analysis", "analyze_active_users"]
