# =============================================================================
# core/services/subscription_service.py - Subscriptions
# =============================================================================
# Current plan + limits for a user, upgrades (through a payment intent) and
# the daily expiry of lapsed paid or trial subscriptions.
# =============================================================================

import logging
from datetime import datetime
from uuid import UUID

from app.exceptions import InternalError
from core.models.payment import PaymentIntentRequest, PaymentIntentResponse
from core.models.profile import Profile
from core.models.subscription import (
    SubscriptionLimits,
    SubscriptionResponse,
    SubscriptionStatus,
    Tier,
)
from core.services.payment_service import PaymentService
from core.services.profile_service import ProfileService
from core.services.tier_policy import get_tier_policy
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import utcnow

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Service for subscription state.

    Example:
        service = SubscriptionService(db, payments)
        current = service.get_subscription(user.id)
        intent = service.upgrade(user.id, PaymentIntentRequest(tier="business", provider="ozow"))
    """

    def __init__(self, db: SupabaseClient, payments: PaymentService | None = None):
        self.db = db
        self.payments = payments
        self.profiles = ProfileService(db)

    def get_subscription(self, user_id: str | UUID) -> SubscriptionResponse:
        """
        Current plan, its limits and whether another listing fits.

        Raises:
            NotFoundError: If the user has no profile
            InternalError: If the database cannot be read
        """
        profile = Profile.model_validate(self.profiles.fetch(user_id))
        policy = get_tier_policy(profile.subscription_tier)

        try:
            active = self.db.count_active_posts(profile.id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not count listings: {e.message}") from e

        return SubscriptionResponse(
            tier=profile.subscription_tier,
            status=profile.subscription_status,
            start_date=profile.subscription_start_date,
            end_date=profile.subscription_end_date,
            early_adopter=profile.early_adopter,
            verified_seller=profile.verified_seller,
            limits=SubscriptionLimits(
                max_listings=policy.max_listings,
                max_images_per_listing=policy.max_images_per_listing,
                max_videos_per_listing=policy.max_videos_per_listing,
                listing_retention_days=policy.listing_retention_days,
                gallery_types=list(policy.gallery_types),
                verified_badge=policy.verified_badge,
                watermark_removed=policy.watermark_removed,
            ),
            current_listings=active,
            can_create_listing=policy.max_listings is None or active < policy.max_listings,
        )

    def upgrade(
        self,
        user_id: str | UUID,
        request: PaymentIntentRequest,
        email: str | None = None,
    ) -> PaymentIntentResponse:
        """
        Start an upgrade. The profile changes only once the payment is reconciled.

        Raises:
            AuthorizationError: On a downgrade
            AlreadySubscribedError: If already subscribed to the tier
        """
        if self.payments is None:
            raise InternalError("Payment service not configured")
        return self.payments.create_payment_intent(user_id, request, email=email)

    def expire_lapsed_subscriptions(self, now: datetime | None = None) -> dict[str, int]:
        """
        Return lapsed paid/trial profiles to the free tier.

        Each profile starts a fresh free content cycle so the reset batch
        does not clear it the next night.

        Returns:
            {"expired": <profiles expired>, "failed": <profiles that errored>}
        """
        now = now or utcnow()
        try:
            lapsed = self.db.list_lapsed_subscriptions(now.isoformat())
        except SupabaseClientError as e:
            logger.error(f"Subscription expiry could not list profiles: {e}")
            raise InternalError("Failed to list lapsed subscriptions") from e

        expired = 0
        failed = 0
        for profile in lapsed:
            try:
                self.db.update_profile(
                    profile["id"],
                    {
                        "subscription_tier": Tier.FREE.value,
                        "subscription_status": SubscriptionStatus.EXPIRED.value,
                        "verified_seller": False,
                        "cycle_started_at": now.isoformat(),
                    },
                )
            except SupabaseClientError as e:
                failed += 1
                logger.error(f"Failed to expire subscription for {profile['id']}: {e}")
                continue
            expired += 1
            logger.info(
                f"Expired {profile.get('subscription_status')} {profile.get('subscription_tier')} "
                f"subscription for {profile['id']}"
            )

        logger.info(f"Subscription expiry finished: {expired} expired, {failed} failed")
        return {"expired": expired, "failed": failed}
