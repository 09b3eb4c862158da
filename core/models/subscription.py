# =============================================================================
# core/models/subscription.py - Tier and Subscription Schemas
# =============================================================================
# These models describe subscription plans:
# - Tier / SubscriptionStatus / BillingCycle: enums stored on profiles
# - TierPolicy: the limits and prices of one tier (immutable)
# - SubscriptionResponse / PricingEntry: API output
#
# Tier ordering is free < premium < business; a profile only moves up
# through a reconciled payment.
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """Subscription level controlling limits, retention and price."""
    FREE = "free"
    PREMIUM = "premium"
    BUSINESS = "business"


PAID_TIERS = (Tier.PREMIUM, Tier.BUSINESS)


class SubscriptionStatus(str, Enum):
    """
    Subscription state of a profile.

    - active: paid (or free) plan in good standing
    - trial: 30-day trial granted at signup for a paid plan
    - expired: paid period ended without renewal
    """
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class TierPolicy(BaseModel):
    """
    Limits and prices of a single tier.

    `None` limits mean unlimited. Prices are ZAR cents.
    """
    model_config = ConfigDict(frozen=True)

    tier: Tier
    max_listings: int | None = Field(..., description="Active listings allowed (None = unlimited)")
    max_images_per_listing: int
    max_videos_per_listing: int | None
    listing_retention_days: int = Field(..., gt=0)
    monthly_price_cents: int = Field(..., ge=0)
    quarterly_price_cents: int = Field(..., ge=0)
    annual_price_cents: int = Field(..., ge=0)
    early_adopter_price_cents: int | None = Field(default=None, ge=0)
    verified_badge: bool = False
    watermark_removed: bool = False
    gallery_types: tuple[str, ...] = ()


class PricingEntry(BaseModel):
    """One row of the public pricing table."""
    tier: Tier
    monthly_price_cents: int
    quarterly_price_cents: int
    annual_price_cents: int
    early_adopter_price_cents: int | None = None
    monthly_price_display: str = Field(..., examples=["R 49.00"])
    max_listings: int | None
    max_images_per_listing: int
    listing_retention_days: int


class SubscriptionLimits(BaseModel):
    max_listings: int | None
    max_images_per_listing: int
    max_videos_per_listing: int | None
    listing_retention_days: int
    gallery_types: list[str]
    verified_badge: bool
    watermark_removed: bool


class SubscriptionResponse(BaseModel):
    """Current subscription of the authenticated user."""
    tier: Tier
    status: SubscriptionStatus
    start_date: datetime | None = None
    end_date: datetime | None = None
    early_adopter: bool = False
    verified_seller: bool = False
    limits: SubscriptionLimits
    current_listings: int = 0
    can_create_listing: bool = True

    model_config = {
        "json_schema_extra": {
            "example": {
                "tier": "premium",
                "status": "active",
                "start_date": "2025-01-15T10:30:00Z",
                "end_date": "2025-02-14T10:30:00Z",
                "early_adopter": False,
                "verified_seller": True,
                "limits": {
                    "max_listings": None,
                    "max_images_per_listing": 8,
                    "max_videos_per_listing": 1,
                    "listing_retention_days": 35,
                    "gallery_types": ["hover", "slider", "vertical", "gallery", "before_after", "comparison", "video"],
                    "verified_badge": True,
                    "watermark_removed": True,
                },
                "current_listings": 4,
                "can_create_listing": True,
            }
        }
    }
