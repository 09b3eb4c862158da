# =============================================================================
# core/services/reset_service.py - Free-Account Reset Batch
# =============================================================================
# Free accounts keep their listings for one 7-day content cycle. Once a
# cycle has run its course the daily batch clears the account's listings
# and media and starts a new cycle. Identity (username, display name) is
# never touched.
#
# Each profile is reset in its own database transaction
# (reset_free_account stored procedure); a failure on one profile is
# logged and counted and does not stop the run.
#
# Usage:
#   result = ResetService(db).run_daily_reset()
#   # {"success": 12, "failed": 0}
# =============================================================================

import logging
import math
from datetime import datetime, timedelta
from typing import Any

from app.exceptions import InternalError
from core.models.profile import ResetInfo
from core.models.subscription import Tier
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


def _next_midnight(moment: datetime) -> datetime:
    """The first 00:00 on or after `moment` (batch runs at midnight UTC)."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight if midnight == moment else midnight + DAY


class ResetService:
    """Runs the free-account reset and reports where an account sits in its cycle."""

    def __init__(self, db: SupabaseClient, cycle_days: int = 7):
        self.db = db
        self.cycle_days = cycle_days

    def run_daily_reset(self, now: datetime | None = None) -> dict[str, int]:
        """
        Reset every free profile whose content cycle has ended.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            {"success": <profiles reset>, "failed": <profiles that errored>}

        Raises:
            InternalError: If the eligible profiles cannot be listed
        """
        now = now or utcnow()
        cutoff = now - timedelta(days=self.cycle_days)

        try:
            profiles = self.db.list_free_profiles_due(cutoff.isoformat())
        except SupabaseClientError as e:
            logger.error(f"Free-account reset could not list profiles: {e}")
            raise InternalError("Failed to list profiles due for reset") from e

        logger.info(f"Free-account reset: {len(profiles)} profile(s) due (cutoff {cutoff.isoformat()})")

        success = 0
        failed = 0
        for profile in profiles:
            user_id = profile["id"]
            try:
                paths = self.db.reset_free_account(user_id)
            except SupabaseClientError as e:
                failed += 1
                logger.error(f"Failed to reset free account {user_id}: {e}")
                continue

            success += 1
            logger.info(f"Reset free account {user_id} ({profile.get('username')}), {len(paths)} file(s) released")
            self._remove_objects(user_id, paths)

        logger.info(f"Free-account reset finished: {success} succeeded, {failed} failed")
        return {"success": success, "failed": failed}

    def _remove_objects(self, user_id: str, paths: list[str]) -> None:
        # Rows are already marked deleted; a storage failure leaves orphaned objects only
        if not paths:
            return
        try:
            self.db.remove_files(paths)
        except SupabaseClientError as e:
            logger.warning(f"Could not remove {len(paths)} storage object(s) for {user_id}: {e}")

    def reset_info(self, profile: dict[str, Any], now: datetime | None = None) -> ResetInfo | None:
        """
        Where a free account sits in its content cycle.

        Args:
            profile: Profile row
            now: Reference time (defaults to current UTC time)

        Returns:
            ResetInfo, or None for paid tiers (they are never reset)
        """
        if (profile.get("subscription_tier") or Tier.FREE.value) != Tier.FREE.value:
            return None

        now = now or utcnow()
        started = parse_timestamp(profile.get("cycle_started_at")) or parse_timestamp(profile.get("created_at")) or now
        next_reset = _next_midnight(started + timedelta(days=self.cycle_days))
        days_until = max(0, math.ceil((next_reset - now) / DAY))

        return ResetInfo(
            user_id=profile["id"],
            cycle_started_at=started,
            next_reset_date=next_reset,
            days_until_reset=days_until,
            is_reset_day=days_until == 0,
            is_warning_day=days_until == 1,
        )
