# =============================================================================
# core/services/payment_service.py - Payment Intent Issuer
# =============================================================================
# Creates a pending payment row for a subscription upgrade and produces the
# provider-specific redirect data. The profile is not touched here; it only
# changes when the provider's callback is reconciled (webhook_service.py).
#
# Usage:
#   service = PaymentService(db, references, payfast, ozow)
#   intent = service.create_payment_intent(user, PaymentIntentRequest(tier="premium", provider="payfast"))
# =============================================================================

import itertools
import logging
import threading
import time
from typing import Any
from uuid import UUID

from app.exceptions import (
    AlreadySubscribedError,
    AuthorizationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from core.models.payment import (
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentProvider,
    PaymentStatus,
)
from core.models.subscription import BillingCycle, Tier
from core.services.tier_policy import price_for, tier_rank
from lib.ozow import OzowGateway
from lib.payfast import PayFastGateway
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "A2Z"


class TransactionReferenceGenerator:
    """
    Issues transaction references unique for the life of the process.

    Format: A2Z-<epoch-ms>-<first 8 chars of user id>-<sequence>

    The sequence number makes two references minted in the same
    millisecond for the same user distinct; the payments table also
    enforces uniqueness.
    """

    def __init__(self, prefix: str = REFERENCE_PREFIX, clock=time.time):
        self.prefix = prefix
        self._clock = clock
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    def next(self, user_id: str | UUID) -> str:
        with self._lock:
            seq = next(self._sequence)
        millis = int(self._clock() * 1000)
        return f"{self.prefix}-{millis}-{normalize_uuid(user_id)[:8]}-{seq}"


class PaymentService:
    """
    Service for creating payment intents.

    Provides a clean interface between the payments routes and the
    database / gateway codecs.
    """

    def __init__(
        self,
        db: SupabaseClient,
        references: TransactionReferenceGenerator,
        payfast: PayFastGateway,
        ozow: OzowGateway,
    ):
        self.db = db
        self.references = references
        self.payfast = payfast
        self.ozow = ozow

    def create_payment_intent(
        self,
        user_id: str | UUID,
        request: PaymentIntentRequest,
        email: str | None = None,
    ) -> PaymentIntentResponse:
        """
        Create a pending payment and the redirect data to complete it.

        Args:
            user_id: Authenticated user id
            request: Validated tier + provider
            email: Buyer email from the auth token (used by the providers)

        Returns:
            PaymentIntentResponse with payment_url (and signed form for PayFast)

        Raises:
            NotFoundError: If the user has no profile
            AlreadySubscribedError: If the user already has an active
                subscription on the requested tier
            AuthorizationError: If the requested tier is lower than the current one
            InternalError: If the payment row cannot be written
        """
        user_id_str = normalize_uuid(user_id)
        tier = Tier(request.tier)
        provider = PaymentProvider(request.provider)

        try:
            profile = self.db.fetch_profile(user_id_str)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e
        if not profile:
            raise NotFoundError(
                message=f"Profile not found for user: {user_id_str}",
                suggestion="Complete signup (POST /api/profile) before upgrading",
            )

        current_tier = profile.get("subscription_tier") or Tier.FREE.value

        if current_tier == tier.value:
            raise AlreadySubscribedError(tier.value)
        if tier_rank(tier) < tier_rank(current_tier):
            raise AuthorizationError(
                message=f"Cannot downgrade from {current_tier} to {tier.value}",
                suggestion="Plans can only be upgraded; downgrades happen when a subscription lapses",
                details={"current_tier": current_tier, "requested_tier": tier.value},
            )

        early_adopter = bool(profile.get("early_adopter"))
        amount = price_for(tier, early_adopter=early_adopter, billing_cycle=BillingCycle.MONTHLY)
        reference = self.references.next(user_id_str)

        payment = {
            "user_id": user_id_str,
            "amount_cents": amount,
            "currency": "ZAR",
            "subscription_tier": tier.value,
            "provider": provider.value,
            "transaction_reference": reference,
            "status": PaymentStatus.PENDING.value,
            "metadata": {
                "early_adopter": early_adopter,
                "original_tier": current_tier,
            },
        }

        try:
            self.db.insert_payment(payment)
        except SupabaseClientError as e:
            logger.error(f"Failed to create payment {reference}: {e}")
            raise InternalError(
                message="Failed to create payment record",
                details={"transaction_reference": reference},
            ) from e

        logger.info(
            f"Created {provider.value} payment intent {reference} for user {user_id_str}: "
            f"{tier.value} at {amount} cents (early_adopter={early_adopter})"
        )

        return self._redirect(
            provider=provider,
            tier=tier,
            amount=amount,
            reference=reference,
            email=email or profile.get("email") or "",
            name=profile.get("display_name"),
        )

    def _redirect(
        self,
        provider: PaymentProvider,
        tier: Tier,
        amount: int,
        reference: str,
        email: str,
        name: str | None,
    ) -> PaymentIntentResponse:
        common: dict[str, Any] = {
            "transaction_reference": reference,
            "amount": amount,
            "tier": tier,
            "provider": provider,
        }

        if provider == PaymentProvider.PAYFAST:
            form = self.payfast.checkout_form(
                amount_cents=amount,
                reference=reference,
                tier=tier.value,
                customer_email=email,
                customer_name=name,
            )
            return PaymentIntentResponse(
                payment_url=f"/payment/payfast?ref={reference}",
                payment_data=form,
                process_url=self.payfast.process_url,
                **common,
            )

        if provider == PaymentProvider.OZOW:
            params = self.ozow.payment_request(
                amount_cents=amount,
                reference=reference,
                tier=tier.value,
                customer_email=email,
            )
            return PaymentIntentResponse(payment_url=self.ozow.payment_url_for(params), **common)

        if provider == PaymentProvider.EFT:
            return PaymentIntentResponse(payment_url=f"/payment/eft?ref={reference}", **common)

        raise ValidationError(f"Unsupported payment provider: {provider}")
