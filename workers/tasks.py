# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Tasks:
# - run_free_account_reset: daily free-account reset (beat, 00:00 UTC)
# - expire_lapsed_subscriptions: daily subscription expiry (beat, 00:15 UTC)
# - record_analytics_event: fire-and-forget listing interaction
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import settings
from app.exceptions import InternalError
from core.services.analytics_service import AnalyticsService
from core.services.reset_service import ResetService
from core.services.subscription_service import SubscriptionService
from workers.celery_app import get_db

logger = logging.getLogger(__name__)

# A failed profile listing is retried; per-profile failures are only counted
SCHEDULED_JOB_RETRIES = 3
SCHEDULED_JOB_RETRY_DELAY = 300  # seconds


# =============================================================================
# Scheduled Jobs
# =============================================================================

@shared_task(
    name="workers.tasks.run_free_account_reset",
    autoretry_for=(InternalError,),
    max_retries=SCHEDULED_JOB_RETRIES,
    default_retry_delay=SCHEDULED_JOB_RETRY_DELAY,
)
def run_free_account_reset() -> dict[str, int]:
    """
    Clear listings and media of free accounts whose 7-day cycle has ended.

    Returns:
        {"success": <profiles reset>, "failed": <profiles that errored>}
    """
    result = ResetService(get_db(), cycle_days=settings.FREE_RESET_CYCLE_DAYS).run_daily_reset()
    if result["failed"]:
        logger.warning(f"Free-account reset finished with {result['failed']} failure(s)")
    return result


@shared_task(
    name="workers.tasks.expire_lapsed_subscriptions",
    autoretry_for=(InternalError,),
    max_retries=SCHEDULED_JOB_RETRIES,
    default_retry_delay=SCHEDULED_JOB_RETRY_DELAY,
)
def expire_lapsed_subscriptions() -> dict[str, int]:
    """Return lapsed paid and trial subscriptions to the free tier."""
    return SubscriptionService(get_db()).expire_lapsed_subscriptions()


# =============================================================================
# Analytics
# =============================================================================

@shared_task(name="workers.tasks.record_analytics_event", ignore_result=True, acks_late=False, max_retries=0)
def record_analytics_event(payload: dict[str, Any]) -> None:
    """
    Store one interaction event and bump the post's counter.

    At-most-once: failures are logged by AnalyticsService and never retried.
    """
    AnalyticsService(get_db()).record(payload)
