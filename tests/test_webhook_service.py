# =============================================================================
# tests/test_webhook_service.py - Webhook Reconciliation Tests
# =============================================================================
# Covers the payment state machine: pending -> completed/failed/cancelled,
# duplicate deliveries, tampered callbacks and unknown references.
#
# Run with: poetry run pytest tests/test_webhook_service.py -v
# =============================================================================

import pytest

from app.exceptions import AuthenticationError, InternalError, NotFoundError, ValidationError
from core.models.payment import PaymentStatus
from core.services.webhook_service import WebhookService
from lib.utils import parse_timestamp

PAYFAST_IP = "197.97.145.145"


@pytest.fixture
def service(db, payfast, ozow):
    return WebhookService(db, payfast, ozow)


@pytest.fixture
def pending_payment(db, user_id):
    """A free user with a pending R49 premium payment."""
    db.add_profile(user_id)

    def _payment(provider="payfast", reference="A2Z-1718000000000-abcdef12-1", amount=4900, tier="premium"):
        db.insert_payment(
            {
                "user_id": user_id,
                "amount_cents": amount,
                "currency": "ZAR",
                "subscription_tier": tier,
                "provider": provider,
                "transaction_reference": reference,
                "status": "pending",
                "metadata": {"early_adopter": False, "original_tier": "free"},
            }
        )
        return reference

    return _payment


class TestPayFastReconcile:
    """Tests for WebhookService.reconcile() with PayFast ITNs."""

    def test_complete_itn_promotes_profile(self, service, db, user_id, pending_payment, payfast_itn):
        # Arrange
        reference = pending_payment()

        # Act
        outcome = service.reconcile("payfast", payfast_itn(reference), source_ip=PAYFAST_IP)

        # Assert
        assert outcome.status == PaymentStatus.COMPLETED
        assert outcome.profile_promoted is True
        assert outcome.already_processed is False

        payment = db.payments[reference]
        assert payment["status"] == "completed"
        assert payment["provider_transaction_id"] == "1089250"
        assert payment["completed_at"] is not None

        profile = db.profiles[user_id]
        assert profile["subscription_tier"] == "premium"
        assert profile["subscription_status"] == "active"
        assert profile["verified_seller"] is True
        start = parse_timestamp(profile["subscription_start_date"])
        end = parse_timestamp(profile["subscription_end_date"])
        assert (end - start).days == 30

    def test_redelivery_is_acknowledged_without_changes(self, service, db, user_id, pending_payment, payfast_itn):
        # Arrange
        reference = pending_payment()
        itn = payfast_itn(reference)
        service.reconcile("payfast", itn, source_ip=PAYFAST_IP)
        end_date = db.profiles[user_id]["subscription_end_date"]
        db.calls.clear()

        # Act
        outcome = service.reconcile("payfast", itn, source_ip=PAYFAST_IP)

        # Assert
        assert outcome.already_processed is True
        assert outcome.status == PaymentStatus.COMPLETED
        assert db.profiles[user_id]["subscription_end_date"] == end_date
        assert "apply_payment_result" not in db.calls

    def test_late_failure_does_not_undo_completion(self, service, db, pending_payment, payfast_itn):
        reference = pending_payment()
        service.reconcile("payfast", payfast_itn(reference), source_ip=PAYFAST_IP)

        outcome = service.reconcile("payfast", payfast_itn(reference, status="FAILED"), source_ip=PAYFAST_IP)

        assert outcome.already_processed is True
        assert db.payments[reference]["status"] == "completed"

    def test_cancelled_itn_leaves_profile_alone(self, service, db, user_id, pending_payment, payfast_itn):
        reference = pending_payment()

        outcome = service.reconcile("payfast", payfast_itn(reference, status="CANCELLED"), source_ip=PAYFAST_IP)

        assert outcome.status == PaymentStatus.CANCELLED
        assert outcome.profile_promoted is False
        assert db.payments[reference]["status"] == "cancelled"
        assert db.profiles[user_id]["subscription_tier"] == "free"

    def test_tampered_signature_mutates_nothing(self, service, db, user_id, pending_payment, payfast_itn):
        # Arrange
        reference = pending_payment()
        itn = payfast_itn(reference)
        itn["signature"] = "0" * 32

        # Act
        with pytest.raises(AuthenticationError) as exc_info:
            service.reconcile("payfast", itn, source_ip=PAYFAST_IP)

        # Assert
        assert exc_info.value.status_code == 401
        assert exc_info.value.details == {"reason": "invalid signature"}
        assert db.payments[reference]["status"] == "pending"
        assert db.profiles[user_id]["subscription_tier"] == "free"

    def test_untrusted_ip_is_rejected(self, service, pending_payment, payfast_itn):
        reference = pending_payment()

        with pytest.raises(AuthenticationError):
            service.reconcile("payfast", payfast_itn(reference), source_ip="10.0.0.1")

    def test_unknown_reference(self, service, payfast_itn):
        with pytest.raises(NotFoundError):
            service.reconcile("payfast", payfast_itn("A2Z-0-unknown-1"), source_ip=PAYFAST_IP)

    def test_amount_mismatch_is_rejected(self, service, db, pending_payment, payfast_itn):
        reference = pending_payment()

        with pytest.raises(ValidationError):
            service.reconcile("payfast", payfast_itn(reference, amount="1.00"), source_ip=PAYFAST_IP)

        assert db.payments[reference]["status"] == "pending"

    def test_database_failure_is_internal_error(self, service, db, pending_payment, payfast_itn):
        reference = pending_payment()
        db.fail("apply_payment_result")

        with pytest.raises(InternalError):
            service.reconcile("payfast", payfast_itn(reference), source_ip=PAYFAST_IP)


class TestOzowReconcile:

    def test_complete_notification_promotes(self, service, db, user_id, pending_payment, ozow_notification):
        reference = pending_payment(provider="ozow", amount=17900, tier="business")

        outcome = service.reconcile("ozow", ozow_notification(reference, amount="179.00"))

        assert outcome.profile_promoted is True
        assert db.profiles[user_id]["subscription_tier"] == "business"

    def test_error_status_marks_payment_failed(self, service, db, user_id, pending_payment, ozow_notification):
        reference = pending_payment(provider="ozow")

        outcome = service.reconcile("ozow", ozow_notification(reference, status="Error"))

        assert outcome.status == PaymentStatus.FAILED
        assert db.payments[reference]["status"] == "failed"
        assert db.profiles[user_id]["subscription_tier"] == "free"

    def test_pending_investigation_keeps_payment_pending(self, service, db, pending_payment, ozow_notification):
        reference = pending_payment(provider="ozow")

        outcome = service.reconcile("ozow", ozow_notification(reference, status="PendingInvestigation"))

        assert outcome.status == PaymentStatus.PENDING
        assert db.payments[reference]["status"] == "pending"

    def test_provider_mismatch_is_rejected(self, service, db, pending_payment, ozow_notification):
        reference = pending_payment(provider="payfast")

        with pytest.raises(ValidationError):
            service.reconcile("ozow", ozow_notification(reference))

        assert db.payments[reference]["status"] == "pending"

    def test_bad_hash_is_rejected(self, service, pending_payment, ozow_notification):
        reference = pending_payment(provider="ozow")
        payload = ozow_notification(reference)
        payload["HashCheck"] = "deadbeef"

        with pytest.raises(AuthenticationError):
            service.reconcile("ozow", payload)


class TestEftConfirmation:

    def test_confirm_promotes(self, service, db, user_id, pending_payment):
        reference = pending_payment(provider="eft")

        outcome = service.confirm_eft(reference)

        assert outcome.profile_promoted is True
        assert db.payments[reference]["status"] == "completed"
        assert db.profiles[user_id]["subscription_tier"] == "premium"

    def test_eft_has_no_webhook(self, service):
        with pytest.raises(ValidationError):
            service.reconcile("eft", {"reference": "x"})

    def test_unknown_provider(self, service):
        with pytest.raises(ValidationError):
            service.reconcile("paypal", {})
