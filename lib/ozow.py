# =============================================================================
# lib/ozow.py - Ozow Gateway Codec
# =============================================================================
# Builds Ozow instant-EFT payment URLs and verifies Ozow notify callbacks.
#
# Both directions use a SHA-512 "HashCheck": the relevant fields are
# concatenated in a fixed order, followed by the merchant private key, and
# the whole string is lowercased before hashing.
# =============================================================================

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Mapping
from urllib.parse import urlencode

from lib.payments import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    GatewaySignatureError,
    ProviderNotification,
    rands,
    to_cents,
)

logger = logging.getLogger(__name__)

PROVIDER = "ozow"

PAYMENT_URL = "https://pay.ozow.com"

STATUS_MAP = {
    "Complete": STATUS_COMPLETED,
    "Cancelled": STATUS_CANCELLED,
    "Error": STATUS_FAILED,
    "Pending": STATUS_PENDING,
    "PendingInvestigation": STATUS_PENDING,
}

# Field order of the notify hash
NOTIFY_HASH_FIELDS = (
    "SiteCode",
    "TransactionId",
    "TransactionReference",
    "Amount",
    "Status",
    "Optional1",
    "Optional2",
    "Optional3",
    "Optional4",
    "Optional5",
    "CurrencyCode",
    "IsTest",
    "StatusMessage",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def hash_check(values: list[Any], private_key: str) -> str:
    """SHA-512 of the lowercased concatenation of `values` and the private key."""
    joined = "".join(_text(v) for v in values) + private_key
    return hashlib.sha512(joined.lower().encode("utf-8")).hexdigest()


def parse_status(status: str | None) -> str:
    """Map an Ozow Status to the internal vocabulary (unknown -> pending)."""
    return STATUS_MAP.get(status or "", STATUS_PENDING)


class OzowGateway:
    """Ozow site configuration plus the operations that need it."""

    def __init__(
        self,
        site_code: str,
        private_key: str,
        base_url: str,
        is_test: bool = True,
        payment_url: str = PAYMENT_URL,
    ):
        self.site_code = site_code
        self.private_key = private_key
        self.base_url = base_url.rstrip("/")
        self.is_test = is_test
        self.payment_url = payment_url

    @classmethod
    def from_settings(cls, settings) -> "OzowGateway":
        return cls(
            site_code=settings.OZOW_SITE_CODE,
            private_key=settings.OZOW_PRIVATE_KEY,
            base_url=settings.base_url,
            is_test=settings.OZOW_IS_TEST,
        )

    def payment_request(
        self,
        amount_cents: int,
        reference: str,
        tier: str,
        customer_email: str,
    ) -> dict[str, str]:
        """
        Build the signed Ozow request parameters.

        Returns:
            Dict of request fields including `HashCheck`
        """
        data = {
            "SiteCode": self.site_code,
            "CountryCode": "ZA",
            "CurrencyCode": "ZAR",
            "Amount": rands(amount_cents),
            "TransactionReference": reference,
            "BankReference": f"A2Z-{tier}-{reference}",
            "Customer": customer_email,
            "CancelUrl": f"{self.base_url}/payment/cancel",
            "ErrorUrl": f"{self.base_url}/payment/error",
            "SuccessUrl": f"{self.base_url}/payment/success",
            "NotifyUrl": f"{self.base_url}/api/webhooks/ozow",
            "IsTest": "true" if self.is_test else "false",
        }
        data["HashCheck"] = hash_check(
            [
                data["SiteCode"],
                data["CountryCode"],
                data["CurrencyCode"],
                data["Amount"],
                data["TransactionReference"],
                data["BankReference"],
            ],
            self.private_key,
        )
        return data

    def payment_url_for(self, params: Mapping[str, str]) -> str:
        return f"{self.payment_url}?{urlencode(params)}"

    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        received = _text(payload.get("HashCheck")).lower()
        if not received:
            return False
        expected = hash_check([payload.get(f) for f in NOTIFY_HASH_FIELDS], self.private_key)
        return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))

    def parse_notification(self, payload: Mapping[str, Any]) -> ProviderNotification:
        """
        Verify a notify callback and decode it.

        Raises:
            GatewaySignatureError: If the HashCheck does not match or the
                callback carries no transaction reference
        """
        if not self.verify_notification(payload):
            raise GatewaySignatureError(PROVIDER, "invalid HashCheck")

        reference = payload.get("TransactionReference")
        if not reference:
            raise GatewaySignatureError(PROVIDER, "missing TransactionReference")

        return ProviderNotification(
            provider=PROVIDER,
            transaction_reference=str(reference),
            status=parse_status(payload.get("Status")),
            provider_transaction_id=_text(payload.get("TransactionId")) or None,
            status_message=payload.get("StatusMessage"),
            amount_cents=to_cents(payload.get("Amount")),
            raw=dict(payload),
        )
