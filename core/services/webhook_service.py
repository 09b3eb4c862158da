# =============================================================================
# core/services/webhook_service.py - Payment Webhook Reconciler
# =============================================================================
# Applies a provider callback to the matching payment and, on completion,
# promotes the buyer's profile. Safe under provider retries: a payment that
# is already completed is reported as such and never written again.
#
# Steps:
#   1. Verify authenticity (provider codec: signature, PayFast source IP)
#   2. Translate the provider status
#   3. Look up the payment by transaction_reference
#   4. Update payment + promote profile in one DB transaction (stored procedure)
# =============================================================================

import logging
from typing import Any

from app.exceptions import (
    AuthenticationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from core.models.payment import PaymentProvider, PaymentStatus, ReconcileOutcome
from lib.ozow import OzowGateway
from lib.payfast import PayFastGateway
from lib.payments import GatewaySignatureError, ProviderNotification
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)


class WebhookService:
    """
    Reconciles provider notifications against stored payments.

    Example:
        service = WebhookService(db, payfast, ozow)
        outcome = service.reconcile("payfast", form_fields, source_ip="197.97.145.145")
        if outcome.profile_promoted:
            ...
    """

    def __init__(
        self,
        db: SupabaseClient,
        payfast: PayFastGateway,
        ozow: OzowGateway,
        period_days: int = 30,
    ):
        self.db = db
        self.payfast = payfast
        self.ozow = ozow
        self.period_days = period_days

    def reconcile(
        self,
        provider: PaymentProvider | str,
        payload: dict[str, Any],
        source_ip: str | None = None,
    ) -> ReconcileOutcome:
        """
        Verify and apply one provider callback.

        Args:
            provider: "payfast" or "ozow"
            payload: Fields exactly as posted by the provider
            source_ip: Caller IP (checked for PayFast)

        Returns:
            ReconcileOutcome describing what happened

        Raises:
            AuthenticationError: If the signature or source IP is not valid
            NotFoundError: If no payment has the notified reference
            InternalError: If the database update fails (nothing is written)
        """
        try:
            provider = PaymentProvider(provider)
        except ValueError:
            raise ValidationError(f"Unsupported payment provider: {provider}") from None

        try:
            if provider == PaymentProvider.PAYFAST:
                notification = self.payfast.parse_notification(payload, source_ip)
            elif provider == PaymentProvider.OZOW:
                notification = self.ozow.parse_notification(payload)
            else:
                raise ValidationError(
                    message="EFT payments have no webhook",
                    suggestion="Confirm EFT payments through the admin endpoint",
                )
        except GatewaySignatureError as e:
            logger.warning(f"Rejected {provider.value} webhook from {source_ip}: {e.reason}")
            raise AuthenticationError(
                message=f"Invalid {provider.value} notification",
                details={"reason": e.reason},
            ) from e

        return self.apply(notification)

    def confirm_eft(self, reference: str) -> ReconcileOutcome:
        """Mark a manual EFT payment completed (admin action, no signature)."""
        notification = ProviderNotification(
            provider=PaymentProvider.EFT.value,
            transaction_reference=reference,
            status=PaymentStatus.COMPLETED.value,
            status_message="Confirmed by administrator",
        )
        return self.apply(notification)

    def apply(self, notification: ProviderNotification) -> ReconcileOutcome:
        """
        Apply an authenticated notification to its payment.

        Raises:
            NotFoundError: If no payment has the reference
            ValidationError: If the notification does not match the payment
            InternalError: If the database update fails
        """
        reference = notification.transaction_reference

        try:
            payment = self.db.fetch_payment_by_reference(reference)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load payment: {e.message}") from e

        if not payment:
            logger.warning(f"{notification.provider} notification for unknown payment {reference}")
            raise NotFoundError(
                message=f"Payment not found: {reference}",
                details={"transaction_reference": reference},
            )

        if payment.get("status") == PaymentStatus.COMPLETED.value:
            logger.info(f"Payment {reference} already completed, ignoring {notification.status}")
            return ReconcileOutcome(
                transaction_reference=reference,
                status=PaymentStatus.COMPLETED,
                already_processed=True,
            )

        self._check_matches(payment, notification)

        try:
            result = self.db.apply_payment_result(
                reference,
                notification.status,
                provider_transaction_id=notification.provider_transaction_id,
                status_message=notification.status_message,
                period_days=self.period_days,
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to apply {notification.status} to payment {reference}: {e}")
            raise InternalError(
                message="Failed to update payment",
                details={"transaction_reference": reference},
            ) from e

        if not result.get("found", True):
            raise NotFoundError(
                message=f"Payment not found: {reference}",
                details={"transaction_reference": reference},
            )

        stored = result.get("payment") or {}
        status = PaymentStatus(stored.get("status", notification.status))
        promoted = bool(result.get("promoted"))
        already = not result.get("applied", True)

        if promoted:
            logger.info(
                f"Payment {reference} completed; user {payment.get('user_id')} "
                f"promoted to {payment.get('subscription_tier')}"
            )
        else:
            logger.info(f"Payment {reference} is now {status.value}")

        return ReconcileOutcome(
            transaction_reference=reference,
            status=status,
            already_processed=already,
            profile_promoted=promoted,
        )

    @staticmethod
    def _check_matches(payment: dict[str, Any], notification: ProviderNotification) -> None:
        if payment.get("provider") and payment["provider"] != notification.provider:
            raise ValidationError(
                message="Notification provider does not match the payment",
                details={"expected": payment["provider"], "received": notification.provider},
            )
        if (
            notification.status == PaymentStatus.COMPLETED.value
            and notification.amount_cents is not None
            and notification.amount_cents != payment.get("amount_cents")
        ):
            logger.warning(
                f"Amount mismatch on {notification.transaction_reference}: "
                f"expected {payment.get('amount_cents')}, got {notification.amount_cents}"
            )
            raise ValidationError(
                message="Paid amount does not match the payment",
                details={
                    "expected": payment.get("amount_cents"),
                    "received": notification.amount_cents,
                },
            )
