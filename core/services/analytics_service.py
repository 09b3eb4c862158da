# =============================================================================
# core/services/analytics_service.py - Listing Analytics
# =============================================================================
# Interaction events are fire-and-forget: the API hands them to the task
# queue and answers immediately, and a worker writes the event row and bumps
# the post's view/click counter. Analytics failures never surface to the
# visitor.
#
# Usage (API side):
#   service = AnalyticsService(db, publish=record_analytics_event.delay)
#   service.track(TrackEventRequest(...), ip_address="41.0.0.1")
#
# Usage (worker side):
#   AnalyticsService(db).record(payload)
# =============================================================================

import logging
from typing import Any, Callable
from uuid import UUID

from app.exceptions import InternalError, NotFoundError
from core.models.analytics import (
    CLICK_EVENTS,
    AnalyticsEventType,
    AnalyticsStatsResponse,
    AnalyticsSummary,
    PostStats,
    TrackEventRequest,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

Publisher = Callable[[dict[str, Any]], Any]


def counter_for(event_type: str) -> str | None:
    """Which posts counter an event bumps ("view", "click" or none)."""
    event = AnalyticsEventType(event_type)
    if event == AnalyticsEventType.VIEW:
        return "view"
    if event in CLICK_EVENTS:
        return "click"
    return None


class AnalyticsService:
    """Service for listing analytics."""

    def __init__(self, db: SupabaseClient, publish: Publisher | None = None):
        self.db = db
        self.publish = publish

    # -------------------------------------------------------------------------
    # API side
    # -------------------------------------------------------------------------

    def _enqueue(self, payload: dict[str, Any]) -> bool:
        if self.publish is None:
            logger.warning(f"No analytics publisher configured, dropping {payload.get('event_type')} event")
            return False
        try:
            self.publish(payload)
        except Exception as e:
            logger.warning(f"Failed to queue {payload.get('event_type')} event for post {payload.get('post_id')}: {e}")
            return False
        return True

    def track(self, event: TrackEventRequest, ip_address: str | None = None) -> bool:
        """
        Queue an interaction event.

        Returns:
            Whether the event was handed to the queue (never raises)
        """
        payload = event.model_dump(mode="json", exclude_none=True)
        if ip_address:
            payload["ip_address"] = ip_address
        return self._enqueue(payload)

    def record_action(self, post_id: str | UUID, action: str) -> bool:
        """
        Queue a view or click for an existing post.

        Raises:
            NotFoundError: If the post does not exist
        """
        try:
            post = self.db.fetch_post(post_id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load post: {e.message}") from e
        if not post:
            raise NotFoundError(f"Post not found: {normalize_uuid(post_id)}")
        return self._enqueue({"post_id": post["id"], "event_type": action})

    # -------------------------------------------------------------------------
    # Worker side
    # -------------------------------------------------------------------------

    def record(self, payload: dict[str, Any]) -> None:
        """Write one event and bump its post counter; failures are logged only."""
        post_id = payload.get("post_id")
        event_type = payload.get("event_type")

        try:
            self.db.insert_analytics_event(payload)
        except SupabaseClientError as e:
            logger.warning(f"Analytics event not stored for post {post_id}: {e}")

        counter = counter_for(event_type)
        if counter is None:
            return
        try:
            self.db.increment_post_counter(post_id, counter)
        except SupabaseClientError as e:
            logger.warning(f"Post {post_id} {counter} counter not incremented: {e}")

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    def stats(self, user_id: str | UUID) -> AnalyticsStatsResponse:
        """
        Views and clicks of the owner's active posts.

        Raises:
            InternalError: If the posts cannot be read
        """
        try:
            posts = self.db.list_posts(owner=user_id, active_only=True)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load analytics: {e.message}") from e

        rows = [
            PostStats(
                id=post["id"],
                title=post.get("title", ""),
                slug=post.get("slug"),
                views=post.get("views") or 0,
                clicks=post.get("clicks") or 0,
                created_at=post.get("created_at"),
            )
            for post in posts
        ]
        total_views = sum(row.views for row in rows)
        total_clicks = sum(row.clicks for row in rows)
        count = len(rows)

        return AnalyticsStatsResponse(
            posts=rows,
            summary=AnalyticsSummary(
                total_views=total_views,
                total_clicks=total_clicks,
                total_posts=count,
                avg_views_per_post=round(total_views / count, 2) if count else 0.0,
                avg_clicks_per_post=round(total_clicks / count, 2) if count else 0.0,
                conversion_rate=round(total_clicks / total_views * 100, 2) if total_views else 0.0,
            ),
        )
