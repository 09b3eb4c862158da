# =============================================================================
# core/models/analytics.py - Analytics Schemas
# =============================================================================
# - TrackEventRequest: a listing interaction reported by the browser
# - PostStats / AnalyticsSummary / AnalyticsStatsResponse: owner dashboard
#
# Events are recorded at-most-once through the Celery queue; see
# workers/tasks.py:record_analytics_event.
# =============================================================================

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AnalyticsEventType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    WHATSAPP_CLICK = "whatsapp_click"
    PHONE_CLICK = "phone_click"
    SHARE = "share"


# Event types that bump posts.clicks
CLICK_EVENTS = (
    AnalyticsEventType.CLICK,
    AnalyticsEventType.WHATSAPP_CLICK,
    AnalyticsEventType.PHONE_CLICK,
)


class TrackEventRequest(BaseModel):
    """
    Interaction event for one listing.

    Example:
        {"event_type": "whatsapp_click", "post_id": "550e8400-...", "utm_source": "whatsapp"}
    """
    model_config = ConfigDict(frozen=True)

    event_type: AnalyticsEventType
    post_id: UUID
    user_id: UUID | None = None
    session_id: str | None = Field(default=None, max_length=100)
    visitor_id: str | None = Field(default=None, max_length=100)
    referrer: str | None = Field(default=None, max_length=2048)
    utm_source: str | None = Field(default=None, max_length=100)
    utm_medium: str | None = Field(default=None, max_length=100)
    utm_campaign: str | None = Field(default=None, max_length=100)
    device_type: str | None = Field(default=None, max_length=50)
    browser: str | None = Field(default=None, max_length=50)
    os: str | None = Field(default=None, max_length=50)
    user_agent: str | None = Field(default=None, max_length=512)
    metadata: dict[str, Any] = Field(default_factory=dict)


class PostStats(BaseModel):
    id: UUID
    title: str
    slug: str | None = None
    views: int = 0
    clicks: int = 0
    created_at: str | None = None


class AnalyticsSummary(BaseModel):
    total_views: int
    total_clicks: int
    total_posts: int
    avg_views_per_post: float
    avg_clicks_per_post: float
    conversion_rate: float = Field(..., description="Clicks per 100 views")


class AnalyticsStatsResponse(BaseModel):
    success: bool = True
    posts: list[PostStats]
    summary: AnalyticsSummary
