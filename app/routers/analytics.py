# =============================================================================
# app/routers/analytics.py - Analytics Endpoints
# =============================================================================
# POST /analytics/track  - record a listing interaction (public, fire-and-forget)
# GET  /analytics/stats  - owner dashboard (auth)
# =============================================================================

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.auth import AuthUser, get_current_user
from app.dependencies import AnalyticsServiceDep, ClientIPDep
from core.models.analytics import AnalyticsStatsResponse, TrackEventRequest

router = APIRouter()


@router.post("/track")
def track_event(
    event: TrackEventRequest,
    ip: ClientIPDep,
    analytics: AnalyticsServiceDep,
) -> dict[str, Any]:
    """
    Queue an interaction event.

    Always answers success once the body is valid; recording happens in
    the background and its failures are only logged.
    """
    analytics.track(event, ip_address=ip)
    return {"success": True}


@router.get("/stats", response_model=AnalyticsStatsResponse)
def stats(
    user: Annotated[AuthUser, Depends(get_current_user)],
    analytics: AnalyticsServiceDep,
) -> AnalyticsStatsResponse:
    return analytics.stats(user.id)
