# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers, including the daily beat schedule.
# =============================================================================

from celery.schedules import crontab

from app.config import settings


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge after completion; batch jobs only touch rows still due
    task_acks_late = True

    # Only prefetch one task at a time
    worker_prefetch_multiplier = 1

    # Task results expire after 1 hour
    result_expires = 3600

    # Batch jobs over many profiles get 30 minutes
    task_time_limit = 1800
    task_soft_time_limit = 1740

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "analytics": {
            "exchange": "analytics",
            "routing_key": "analytics",
        },
    }

    # Analytics gets its own queue
    task_routes = {
        "workers.tasks.record_analytics_event": {"queue": "analytics"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Retry Settings
    # -------------------------------------------------------------------------

    # Analytics is at-most-once: acknowledged on receipt, never retried
    task_annotations = {
        "workers.tasks.record_analytics_event": {
            "acks_late": False,
            "max_retries": 0,
            "ignore_result": True,
        },
    }

    # -------------------------------------------------------------------------
    # Schedule
    # -------------------------------------------------------------------------

    beat_schedule = {
        "free-account-reset": {
            "task": "workers.tasks.run_free_account_reset",
            "schedule": crontab(hour=0, minute=0),
        },
        "expire-subscriptions": {
            "task": "workers.tasks.expire_lapsed_subscriptions",
            "schedule": crontab(hour=0, minute=15),
        },
    }

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    worker_send_task_events = True
    task_send_sent_event = True

    # -------------------------------------------------------------------------
    # Timezone
    # -------------------------------------------------------------------------

    timezone = "UTC"
    enable_utc = True
