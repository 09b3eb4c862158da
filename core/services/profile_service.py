# =============================================================================
# core/services/profile_service.py - Seller Profiles
# =============================================================================
# Profile lookup, signup (with the chosen plan) and administrator edits.
#
# Signup on a paid plan grants a trial of one subscription period; the
# paid tier itself only becomes permanent through a reconciled payment.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, InternalError, NotFoundError
from core.models.profile import AdminProfileUpdate, Profile, ProfileCreate
from core.models.subscription import SubscriptionStatus, Tier
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid, utcnow

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for seller profiles."""

    def __init__(self, db: SupabaseClient, period_days: int = 30):
        self.db = db
        self.period_days = period_days

    def fetch(self, user_id: str | UUID) -> dict[str, Any]:
        """
        Load a profile row.

        Raises:
            NotFoundError: If the user has no profile
            InternalError: If the query fails
        """
        try:
            profile = self.db.fetch_profile(user_id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e
        if not profile:
            raise NotFoundError(
                message=f"Profile not found for user: {normalize_uuid(user_id)}",
                suggestion="Complete signup with POST /api/profile",
            )
        return profile

    def get_profile(self, user_id: str | UUID) -> Profile:
        return Profile.model_validate(self.fetch(user_id))

    def create_profile(self, user_id: str | UUID, request: ProfileCreate) -> Profile:
        """
        Create (or complete) the profile at signup.

        A row may already exist when an auth trigger created it; a bare free
        row that never had a subscription is completed in place.

        Raises:
            ConflictError: If the profile already has or had a subscription
            InternalError: If the write fails
        """
        user_id_str = normalize_uuid(user_id)
        try:
            existing = self.db.fetch_profile(user_id_str)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e

        if existing and (
            existing.get("subscription_tier", Tier.FREE.value) != Tier.FREE.value
            or existing.get("subscription_end_date")
        ):
            raise ConflictError(
                message="Profile already exists",
                suggestion="Use /api/subscription/upgrade to change plans",
                details={"subscription_tier": existing.get("subscription_tier")},
            )

        data = self._signup_fields(request)
        if request.username:
            data["username"] = request.username
        if request.display_name:
            data["display_name"] = request.display_name

        try:
            if existing:
                row = self.db.update_profile(user_id_str, data) or {**existing, **data}
            else:
                row = self.db.insert_profile({"id": user_id_str, **data})
        except SupabaseClientError as e:
            logger.error(f"Failed to save profile {user_id_str}: {e}")
            raise InternalError("Failed to create profile") from e

        logger.info(f"Created profile {user_id_str} on {request.selected_plan.value} plan")
        return Profile.model_validate(row)

    def _signup_fields(self, request: ProfileCreate) -> dict[str, Any]:
        now = utcnow()
        if request.selected_plan == Tier.FREE:
            return {
                "subscription_tier": Tier.FREE.value,
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "cycle_started_at": now.isoformat(),
            }
        return {
            "subscription_tier": request.selected_plan.value,
            "subscription_status": SubscriptionStatus.TRIAL.value,
            "subscription_start_date": now.isoformat(),
            "subscription_end_date": (now + timedelta(days=self.period_days)).isoformat(),
            "early_adopter": True,
            "verified_seller": True,
            "cycle_started_at": now.isoformat(),
        }

    def admin_update(self, profile_id: str | UUID, update: AdminProfileUpdate) -> Profile:
        """
        Apply an administrator edit.

        Raises:
            NotFoundError: If no profile has the id
            InternalError: If the write fails
        """
        data = update.model_dump(mode="json", exclude_none=True)
        profile_id_str = normalize_uuid(profile_id)
        if not data:
            return self.get_profile(profile_id_str)

        try:
            row = self.db.update_profile(profile_id_str, data)
        except SupabaseClientError as e:
            raise InternalError(f"Failed to update profile: {e.message}") from e
        if row is None:
            raise NotFoundError(f"Profile not found: {profile_id_str}")

        logger.info(f"Admin updated profile {profile_id_str}: {sorted(data)}")
        return Profile.model_validate(row)
