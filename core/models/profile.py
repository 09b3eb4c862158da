# =============================================================================
# core/models/profile.py - Seller Profile Schemas
# =============================================================================
# These models define the API contract for seller profiles:
# - Profile: a seller account row with its subscription fields
# - ProfileCreate: signup input (chosen plan)
# - AdminProfileUpdate: fields an administrator may set directly
# - ResetInfo: where a free account sits in its 7-day content cycle
# =============================================================================

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .subscription import SubscriptionStatus, Tier


class Profile(BaseModel):
    """
    A seller account.

    Mirrors the `profiles` table; unknown columns are ignored so the
    table can grow without breaking the API.
    """
    model_config = ConfigDict(extra="ignore")

    id: UUID
    username: str | None = None
    display_name: str | None = None
    subscription_tier: Tier = Tier.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None
    early_adopter: bool = False
    verified_seller: bool = False
    current_listings: int = 0
    cycle_started_at: datetime | None = None
    last_free_reset: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileCreate(BaseModel):
    """
    Signup input.

    Example:
        {"selected_plan": "premium", "username": "thandi", "display_name": "Thandi's Thrift"}
    """
    model_config = ConfigDict(frozen=True)

    selected_plan: Tier = Field(default=Tier.FREE, description="Plan chosen at signup")
    username: str | None = Field(
        default=None,
        min_length=3,
        max_length=30,
        pattern=r"^[a-z0-9_]+$",
        description="Public handle used in listing URLs",
    )
    display_name: str | None = Field(default=None, max_length=80)


class AdminProfileUpdate(BaseModel):
    """Fields an administrator may set on any profile."""
    model_config = ConfigDict(frozen=True)

    subscription_tier: Tier | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_end_date: datetime | None = None
    early_adopter: bool | None = None
    verified_seller: bool | None = None


class ResetInfo(BaseModel):
    """Position of a free account in its content cycle."""
    user_id: UUID
    cycle_started_at: datetime
    next_reset_date: datetime
    days_until_reset: int = Field(..., ge=0)
    is_reset_day: bool
    is_warning_day: bool
