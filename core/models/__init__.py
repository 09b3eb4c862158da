# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - subscription.py: tiers, tier policy and subscription output
# - profile.py: seller profiles and the free-account cycle
# - payment.py: payment intents and webhook outcomes
# - post.py: listing create/update and share data
# - analytics.py: interaction events and dashboard stats
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Subscription Models
# -----------------------------------------------------------------------------
from .subscription import (
    PAID_TIERS,
    BillingCycle,
    PricingEntry,
    SubscriptionLimits,
    SubscriptionResponse,
    SubscriptionStatus,
    Tier,
    TierPolicy,
)

# -----------------------------------------------------------------------------
# Profile Models
# -----------------------------------------------------------------------------
from .profile import (
    AdminProfileUpdate,
    Profile,
    ProfileCreate,
    ResetInfo,
)

# -----------------------------------------------------------------------------
# Payment Models
# -----------------------------------------------------------------------------
from .payment import (
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentProvider,
    PaymentStatus,
    ReconcileOutcome,
)

# -----------------------------------------------------------------------------
# Post Models
# -----------------------------------------------------------------------------
from .post import (
    AnalyticsAction,
    DisplayType,
    MediaItem,
    PostCreate,
    PostUpdate,
    ShareInfo,
)

# -----------------------------------------------------------------------------
# Analytics Models
# -----------------------------------------------------------------------------
from .analytics import (
    CLICK_EVENTS,
    AnalyticsEventType,
    AnalyticsStatsResponse,
    AnalyticsSummary,
    PostStats,
    TrackEventRequest,
)

__all__ = [
    # Subscription
    "PAID_TIERS",
    "BillingCycle",
    "PricingEntry",
    "SubscriptionLimits",
    "SubscriptionResponse",
    "SubscriptionStatus",
    "Tier",
    "TierPolicy",
    # Profile
    "AdminProfileUpdate",
    "Profile",
    "ProfileCreate",
    "ResetInfo",
    # Payment
    "PaymentIntentRequest",
    "PaymentIntentResponse",
    "PaymentProvider",
    "PaymentStatus",
    "ReconcileOutcome",
    # Post
    "AnalyticsAction",
    "DisplayType",
    "MediaItem",
    "PostCreate",
    "PostUpdate",
    "ShareInfo",
    # Analytics
    "CLICK_EVENTS",
    "AnalyticsEventType",
    "AnalyticsStatsResponse",
    "AnalyticsSummary",
    "PostStats",
    "TrackEventRequest",
]
