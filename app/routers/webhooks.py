# =============================================================================
# app/routers/webhooks.py - Payment Provider Callbacks
# =============================================================================
# POST /webhooks/payfast - PayFast ITN (form-encoded)
# POST /webhooks/ozow    - Ozow notification (form-encoded or JSON)
#
# Providers retry until they get a 2xx, so a repeated delivery for a
# completed payment still answers 200.
# =============================================================================

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from app.dependencies import ClientIPDep, WebhookServiceDep
from app.exceptions import ValidationError
from core.models.payment import PaymentProvider, ReconcileOutcome

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_payload(request: Request) -> dict[str, Any]:
    """Decode a callback body as JSON or form fields, keeping field order."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError("Malformed JSON body") from None
        if not isinstance(payload, dict):
            raise ValidationError("Expected a JSON object")
        return payload
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _ack(outcome: ReconcileOutcome) -> dict[str, Any]:
    return {
        "success": True,
        "status": outcome.status.value,
        "already_processed": outcome.already_processed,
    }


@router.post("/payfast")
async def payfast_webhook(request: Request, ip: ClientIPDep, webhooks: WebhookServiceDep) -> dict[str, Any]:
    """
    PayFast Instant Transaction Notification.

    Verified by signature and source IP before anything is written.
    """
    payload = await _read_payload(request)
    logger.info(f"PayFast ITN for {payload.get('m_payment_id')} from {ip}")
    outcome = await run_in_threadpool(webhooks.reconcile, PaymentProvider.PAYFAST, payload, ip)
    return _ack(outcome)


@router.post("/ozow")
async def ozow_webhook(request: Request, ip: ClientIPDep, webhooks: WebhookServiceDep) -> dict[str, Any]:
    """Ozow notification, verified by its SHA-512 HashCheck."""
    payload = await _read_payload(request)
    logger.info(f"Ozow notification for {payload.get('TransactionReference')} from {ip}")
    outcome = await run_in_threadpool(webhooks.reconcile, PaymentProvider.OZOW, payload, ip)
    return _ack(outcome)
