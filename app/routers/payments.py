# =============================================================================
# app/routers/payments.py - Payment Intent Endpoint
# =============================================================================
# POST /payments/create - start a subscription payment with a provider
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.auth import AuthUser, get_current_user
from app.dependencies import PaymentServiceDep
from core.models.payment import PaymentIntentRequest, PaymentIntentResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create", response_model=PaymentIntentResponse)
def create_payment(
    request: PaymentIntentRequest,
    user: Annotated[AuthUser, Depends(get_current_user)],
    payments: PaymentServiceDep,
) -> PaymentIntentResponse:
    """
    Create a pending payment for a tier upgrade.

    The response tells the browser where to go next:
    - payfast: post `payment_data` to `process_url`
    - ozow: redirect to `payment_url`
    - eft: show bank details at `payment_url`

    The plan only changes once the provider confirms the payment.
    """
    return payments.create_payment_intent(user.id, request, email=user.email)
