# =============================================================================
# lib/payments.py - Shared Payment Gateway Types
# =============================================================================
# Types shared by the provider codecs in lib/payfast.py and lib/ozow.py.
#
# A provider callback is verified and decoded into a ProviderNotification,
# which is the only shape the webhook reconciler ever sees.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Internal payment status vocabulary
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


class GatewaySignatureError(Exception):
    """Raised when a callback fails signature or source-address verification."""

    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider} callback rejected: {reason}")
        self.provider = provider
        self.reason = reason


@dataclass(frozen=True)
class ProviderNotification:
    """
    A verified provider callback.

    Attributes:
        provider: "payfast", "ozow" or "eft"
        transaction_reference: Our reference, as sent with the payment intent
        status: One of pending/completed/failed/cancelled
        provider_transaction_id: The provider's own payment id, if sent
        status_message: Free-text status from the provider
        amount_cents: Amount the provider reports, if sent
        raw: The decoded payload, kept for logging
    """
    provider: str
    transaction_reference: str
    status: str
    provider_transaction_id: str | None = None
    status_message: str | None = None
    amount_cents: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def rands(amount_cents: int) -> str:
    """Format cents as a rand amount with two decimals ("4900" -> "49.00")."""
    return f"{amount_cents / 100:.2f}"


def to_cents(amount: str | float | None) -> int | None:
    if amount in (None, ""):
        return None
    try:
        return int(round(float(amount) * 100))
    except (TypeError, ValueError):
        return None
