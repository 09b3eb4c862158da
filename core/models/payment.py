# =============================================================================
# core/models/payment.py - Payment Schemas
# =============================================================================
# These models define the API contract for subscription payments:
# - PaymentIntentRequest: validated input to POST /payments/create
# - PaymentIntentResponse: redirect data for the chosen provider
# - ReconcileOutcome: what a webhook delivery did
#
# A payment row is created `pending` by the intent issuer and moved to a
# terminal state exactly once by the webhook reconciler.
# =============================================================================

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .subscription import PAID_TIERS, Tier


class PaymentProvider(str, Enum):
    PAYFAST = "payfast"
    OZOW = "ozow"
    EFT = "eft"


class PaymentStatus(str, Enum):
    """
    Payment lifecycle.

    Flow: pending -> completed | failed | cancelled
    (pending may be re-reported any number of times)
    """
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentIntentRequest(BaseModel):
    """
    Input for creating a payment intent.

    Only paid tiers can be bought; free is never a valid target.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={"example": {"tier": "premium", "provider": "payfast"}},
    )

    tier: Tier = Field(..., description="Tier to buy (premium or business)")
    provider: PaymentProvider = Field(..., description="Payment provider")

    @field_validator("tier")
    @classmethod
    def tier_must_be_paid(cls, value: Tier) -> Tier:
        if value not in PAID_TIERS:
            raise ValueError("tier must be premium or business")
        return value


class PaymentIntentResponse(BaseModel):
    """Redirect data for completing a payment off-platform."""
    success: bool = True
    payment_url: str = Field(..., description="Where to send the browser next")
    payment_data: dict[str, Any] | None = Field(
        default=None,
        description="Signed form fields to post (PayFast only)",
    )
    process_url: str | None = Field(default=None, description="Form action for payment_data")
    transaction_reference: str
    amount: int = Field(..., description="Amount in ZAR cents")
    currency: str = "ZAR"
    tier: Tier
    provider: PaymentProvider

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": True,
                "payment_url": "/payment/eft?ref=A2Z-1718000000000-550e8400-1",
                "payment_data": None,
                "process_url": None,
                "transaction_reference": "A2Z-1718000000000-550e8400-1",
                "amount": 4900,
                "currency": "ZAR",
                "tier": "premium",
                "provider": "eft",
            }
        }
    }


class ReconcileOutcome(BaseModel):
    """Result of applying one provider callback."""
    transaction_reference: str
    status: PaymentStatus
    already_processed: bool = False
    profile_promoted: bool = False
