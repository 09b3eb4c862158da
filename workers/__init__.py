# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# the daily batch jobs and fire-and-forget analytics.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (free-account reset, subscription expiry, analytics)
# - config.py: Worker-specific settings and the beat schedule
#
# Usage:
#   # Start worker with the scheduler
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import record_analytics_event
#   record_analytics_event.delay({"post_id": "...", "event_type": "view"})
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
