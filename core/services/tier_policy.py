# =============================================================================
# core/services/tier_policy.py - Tier Limits and Pricing
# =============================================================================
# Pure mapping from a subscription tier to its limits and prices.
# No I/O; safe to call anywhere.
#
# Usage:
#   from core.services.tier_policy import get_tier_policy, price_for
#   policy = get_tier_policy("premium")
#   policy.max_images_per_listing         # 8
#   price_for("premium", early_adopter=True)  # 2900
# =============================================================================

from app.exceptions import ValidationError
from core.models.subscription import BillingCycle, PricingEntry, Tier, TierPolicy
from lib.text import format_price

_BASE_GALLERIES = ("hover", "slider", "vertical", "gallery")
_PREMIUM_GALLERIES = _BASE_GALLERIES + ("before_after", "comparison", "video")
_BUSINESS_GALLERIES = _PREMIUM_GALLERIES + ("expanding",)

# Prices in ZAR cents
TIER_POLICIES: dict[Tier, TierPolicy] = {
    Tier.FREE: TierPolicy(
        tier=Tier.FREE,
        max_listings=3,
        max_images_per_listing=5,
        max_videos_per_listing=0,
        listing_retention_days=7,
        monthly_price_cents=0,
        quarterly_price_cents=0,
        annual_price_cents=0,
        early_adopter_price_cents=None,
        gallery_types=_BASE_GALLERIES,
    ),
    Tier.PREMIUM: TierPolicy(
        tier=Tier.PREMIUM,
        max_listings=None,
        max_images_per_listing=8,
        max_videos_per_listing=1,
        listing_retention_days=35,
        monthly_price_cents=4900,
        quarterly_price_cents=13300,
        annual_price_cents=47000,
        early_adopter_price_cents=2900,
        verified_badge=True,
        watermark_removed=True,
        gallery_types=_PREMIUM_GALLERIES,
    ),
    Tier.BUSINESS: TierPolicy(
        tier=Tier.BUSINESS,
        max_listings=None,
        max_images_per_listing=20,
        max_videos_per_listing=5,
        listing_retention_days=60,
        monthly_price_cents=17900,
        quarterly_price_cents=48400,
        annual_price_cents=172200,
        early_adopter_price_cents=9900,
        verified_badge=True,
        watermark_removed=True,
        gallery_types=_BUSINESS_GALLERIES,
    ),
}

TIER_ORDER = (Tier.FREE, Tier.PREMIUM, Tier.BUSINESS)


def _coerce_tier(tier: Tier | str) -> Tier:
    try:
        return Tier(tier)
    except ValueError:
        raise ValidationError(
            message=f"Unknown tier: {tier}",
            suggestion=f"Use one of: {', '.join(t.value for t in Tier)}",
            details={"tier": str(tier)},
        ) from None


def get_tier_policy(tier: Tier | str) -> TierPolicy:
    """
    Return the limits and prices of a tier.

    Args:
        tier: Tier enum or its string value

    Returns:
        TierPolicy for the tier

    Raises:
        ValidationError: If the tier is unknown
    """
    return TIER_POLICIES[_coerce_tier(tier)]


def tier_rank(tier: Tier | str) -> int:
    """Position of a tier in free < premium < business."""
    return TIER_ORDER.index(_coerce_tier(tier))


def price_for(
    tier: Tier | str,
    early_adopter: bool = False,
    billing_cycle: BillingCycle | str = BillingCycle.MONTHLY,
) -> int:
    """
    Price in cents for one billing period.

    The early-adopter rate only applies to monthly billing on tiers that
    have one.

    Raises:
        ValidationError: If the tier or billing cycle is unknown
    """
    policy = get_tier_policy(tier)
    try:
        cycle = BillingCycle(billing_cycle)
    except ValueError:
        raise ValidationError(
            message=f"Unknown billing cycle: {billing_cycle}",
            details={"billing_cycle": str(billing_cycle)},
        ) from None

    if cycle == BillingCycle.MONTHLY:
        if early_adopter and policy.early_adopter_price_cents is not None:
            return policy.early_adopter_price_cents
        return policy.monthly_price_cents
    if cycle == BillingCycle.QUARTERLY:
        return policy.quarterly_price_cents
    return policy.annual_price_cents


def pricing_table() -> list[PricingEntry]:
    """Public price list, cheapest tier first."""
    return [
        PricingEntry(
            tier=policy.tier,
            monthly_price_cents=policy.monthly_price_cents,
            quarterly_price_cents=policy.quarterly_price_cents,
            annual_price_cents=policy.annual_price_cents,
            early_adopter_price_cents=policy.early_adopter_price_cents,
            monthly_price_display=format_price(policy.monthly_price_cents),
            max_listings=policy.max_listings,
            max_images_per_listing=policy.max_images_per_listing,
            listing_retention_days=policy.listing_retention_days,
        )
        for policy in (TIER_POLICIES[t] for t in TIER_ORDER)
    ]
