# =============================================================================
# app/routers/subscription.py - Subscription Endpoints
# =============================================================================
# GET  /subscription          - current plan, limits and listing headroom
# POST /subscription/upgrade  - start a payment for a higher tier
# GET  /subscription/pricing  - public price table
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends

from app.auth import AuthUser, get_current_user
from app.dependencies import SubscriptionServiceDep
from core.models.payment import PaymentIntentRequest, PaymentIntentResponse
from core.models.subscription import PricingEntry, SubscriptionResponse
from core.services.tier_policy import pricing_table

router = APIRouter()


@router.get("", response_model=SubscriptionResponse)
def get_subscription(
    user: Annotated[AuthUser, Depends(get_current_user)],
    subscriptions: SubscriptionServiceDep,
) -> SubscriptionResponse:
    return subscriptions.get_subscription(user.id)


@router.post("/upgrade", response_model=PaymentIntentResponse)
def upgrade(
    request: PaymentIntentRequest,
    user: Annotated[AuthUser, Depends(get_current_user)],
    subscriptions: SubscriptionServiceDep,
) -> PaymentIntentResponse:
    """Downgrades are refused; the new tier applies once the payment is confirmed."""
    return subscriptions.upgrade(user.id, request, email=user.email)


@router.get("/pricing", response_model=list[PricingEntry])
def pricing() -> list[PricingEntry]:
    return pricing_table()
