# =============================================================================
# app/routers/cron.py - Scheduled Job Triggers
# =============================================================================
# External schedulers may trigger the daily jobs over HTTP. Both endpoints
# require `Authorization: Bearer <CRON_SECRET>`; the Celery beat schedule
# in workers/config.py runs the same jobs.
# =============================================================================

import logging
from typing import Any

from fastapi import APIRouter, Depends

from app.dependencies import (
    ResetServiceDep,
    SubscriptionServiceDep,
    require_cron_secret,
)
from lib.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/free-account-reset")
def free_account_reset(resets: ResetServiceDep) -> dict[str, Any]:
    """Clear listings and media of free accounts whose 7-day cycle has ended."""
    logger.info("Free-account reset triggered over HTTP")
    result = resets.run_daily_reset()
    return {
        "success": True,
        "message": f"Reset {result['success']} free account(s)",
        "results": result,
        "timestamp": utcnow().isoformat(),
    }


@router.post("/expire-subscriptions")
def expire_subscriptions(subscriptions: SubscriptionServiceDep) -> dict[str, Any]:
    """Return lapsed paid and trial subscriptions to the free tier."""
    logger.info("Subscription expiry triggered over HTTP")
    result = subscriptions.expire_lapsed_subscriptions()
    return {
        "success": True,
        "message": f"Expired {result['expired']} subscription(s)",
        "results": result,
        "timestamp": utcnow().isoformat(),
    }
