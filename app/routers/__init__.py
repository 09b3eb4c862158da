# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - payments.py: Payment intents
# - webhooks.py: PayFast / Ozow callbacks
# - cron.py: Scheduled job triggers
# - posts.py / share.py: Listings and share links
# - profile.py / subscription.py: Seller accounts and plans
# - analytics.py: Interaction tracking and stats
# - uploads.py / watermark.py: Listing media
# - admin.py: Administrator actions
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import admin
from . import analytics
from . import cron
from . import health
from . import payments
from . import posts
from . import profile
from . import share
from . import subscription
from . import uploads
from . import watermark
from . import webhooks

__all__ = [
    "admin",
    "analytics",
    "cron",
    "health",
    "payments",
    "posts",
    "profile",
    "share",
    "subscription",
    "uploads",
    "watermark",
    "webhooks",
]
