# =============================================================================
# lib/payfast.py - PayFast Gateway Codec
# =============================================================================
# Builds signed PayFast checkout forms and verifies PayFast ITN callbacks.
#
# Signature scheme: fields sorted by key, empty values skipped, each value
# trimmed and URL-encoded (spaces as '+'), joined as key=value with '&',
# optionally followed by &passphrase=..., then MD5 hex digest.
#
# Usage:
#   gateway = PayFastGateway.from_settings(settings)
#   form = gateway.checkout_form(amount_cents=4900, reference="A2Z-...", ...)
#   notification = gateway.parse_notification(form_fields, source_ip="197.97.145.145")
# =============================================================================

from __future__ import annotations

import hashlib
import hmac
import ipaddress
import logging
from typing import Any, Mapping
from urllib.parse import quote

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

PROVIDER = "payfast"

SANDBOX_PROCESS_URL = "https://sandbox.payfast.co.za/eng/process"
LIVE_PROCESS_URL = "https://www.payfast.co.za/eng/process"

STATUS_MAP = {
    "COMPLETE": STATUS_COMPLETED,
    "CANCELLED": STATUS_CANCELLED,
    "FAILED": STATUS_FAILED,
    "PENDING": STATUS_PENDING,
}

LOOPBACK_ADDRESSES = {"127.0.0.1", "::1"}


def _encode(value: Any) -> str:
    # Same escaping as JavaScript's encodeURIComponent, with spaces as '+'
    return quote(str(value).strip(), safe="-_.!~*'()").replace("%20", "+")


def signature_string(data: Mapping[str, Any], passphrase: str | None = None) -> str:
    """
    Build the parameter string PayFast signs.

    Args:
        data: Form fields, excluding `signature`
        passphrase: Optional merchant passphrase

    Returns:
        "key=value&key=value[&passphrase=...]"
    """
    pairs = [
        f"{key}={_encode(data[key])}"
        for key in sorted(data)
        if data[key] is not None and str(data[key]) != ""
    ]
    param_string = "&".join(pairs)
    if passphrase:
        param_string += f"&passphrase={_encode(passphrase)}"
    return param_string


def generate_signature(data: Mapping[str, Any], passphrase: str | None = None) -> str:
    """MD5 signature of the PayFast parameter string."""
    return hashlib.md5(signature_string(data, passphrase).encode("utf-8")).hexdigest()


def parse_status(status: str | None) -> str:
    """Map a PayFast payment_status to the internal vocabulary (unknown -> pending)."""
    return STATUS_MAP.get((status or "").upper(), STATUS_PENDING)


class PayFastGateway:
    """
    PayFast merchant configuration plus the operations that need it.

    Construct one per process (see app/main.py) or per test.
    """

    def __init__(
        self,
        merchant_id: str,
        merchant_key: str,
        base_url: str,
        passphrase: str = "",
        is_test: bool = True,
        valid_ip_ranges: list[str] | None = None,
    ):
        self.merchant_id = merchant_id
        self.merchant_key = merchant_key
        self.base_url = base_url.rstrip("/")
        self.passphrase = passphrase
        self.is_test = is_test
        self.valid_networks = [
            ipaddress.ip_network(cidr, strict=False) for cidr in (valid_ip_ranges or [])
        ]

    @classmethod
    def from_settings(cls, settings) -> "PayFastGateway":
        return cls(
            merchant_id=settings.PAYFAST_MERCHANT_ID,
            merchant_key=settings.PAYFAST_MERCHANT_KEY,
            base_url=settings.base_url,
            passphrase=settings.PAYFAST_PASSPHRASE,
            is_test=settings.PAYFAST_IS_TEST,
            valid_ip_ranges=settings.payfast_ip_ranges,
        )

    @property
    def process_url(self) -> str:
        return SANDBOX_PROCESS_URL if self.is_test else LIVE_PROCESS_URL

    # -------------------------------------------------------------------------
    # Outgoing: checkout form
    # -------------------------------------------------------------------------

    def checkout_form(
        self,
        amount_cents: int,
        reference: str,
        tier: str,
        customer_email: str,
        customer_name: str | None = None,
    ) -> dict[str, str]:
        """
        Build the signed form the browser posts to PayFast.

        Args:
            amount_cents: Price in ZAR cents
            reference: Our transaction reference (sent as m_payment_id)
            tier: Subscription tier being bought
            customer_email: Buyer email
            customer_name: Buyer first name (defaults to "Customer")

        Returns:
            Dict of form fields including `signature`
        """
        data = {
            "merchant_id": self.merchant_id,
            "merchant_key": self.merchant_key,
            "return_url": f"{self.base_url}/payment/success",
            "cancel_url": f"{self.base_url}/payment/cancel",
            "notify_url": f"{self.base_url}/api/webhooks/payfast",
            "name_first": customer_name or "Customer",
            "email_address": customer_email,
            "m_payment_id": reference,
            "amount": rands(amount_cents),
            "item_name": f"A2Z {tier.capitalize()} Subscription",
            "item_description": f"Monthly subscription to A2Z {tier} plan",
            "custom_str1": tier,
            "custom_str2": reference,
        }
        data["signature"] = generate_signature(data, self.passphrase)
        return data

    # -------------------------------------------------------------------------
    # Incoming: ITN callbacks
    # -------------------------------------------------------------------------

    def verify_signature(self, fields: Mapping[str, Any]) -> bool:
        received = str(fields.get("signature") or "")
        if not received:
            return False
        unsigned = {k: v for k, v in fields.items() if k != "signature"}
        expected = generate_signature(unsigned, self.passphrase)
        return hmac.compare_digest(expected.encode("utf-8"), received.lower().encode("utf-8"))

    def verify_source_ip(self, ip: str | None) -> bool:
        """Check the caller against PayFast's published ranges (loopback allowed in sandbox)."""
        if not ip:
            return False
        if self.is_test and ip in LOOPBACK_ADDRESSES:
            return True
        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            return False
        return any(address in network for network in self.valid_networks)

    def parse_notification(
        self,
        fields: Mapping[str, Any],
        source_ip: str | None,
    ) -> ProviderNotification:
        """
        Verify an ITN callback and decode it.

        Raises:
            GatewaySignatureError: If the signature or source address is invalid,
                or the callback carries no payment reference
        """
        if not self.verify_source_ip(source_ip):
            raise GatewaySignatureError(PROVIDER, f"untrusted source address {source_ip}")
        if not self.verify_signature(fields):
            raise GatewaySignatureError(PROVIDER, "invalid signature")

        reference = fields.get("m_payment_id")
        if not reference:
            raise GatewaySignatureError(PROVIDER, "missing m_payment_id")

        return ProviderNotification(
            provider=PROVIDER,
            transaction_reference=str(reference),
            status=parse_status(fields.get("payment_status")),
            provider_transaction_id=fields.get("pf_payment_id") or None,
            status_message=fields.get("payment_status"),
            amount_cents=to_cents(fields.get("amount_gross")),
            raw=dict(fields),
        )
