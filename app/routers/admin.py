# =============================================================================
# app/routers/admin.py - Administrator Endpoints
# =============================================================================
# Guarded by `X-API-Key: <ADMIN_API_KEY>`.
#
# PATCH /admin/profiles/{id}               - set tier/status/flags directly
# POST  /admin/payments/{reference}/confirm - confirm a manual EFT payment
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path

from app.dependencies import ProfileServiceDep, WebhookServiceDep, require_admin_key
from core.models.payment import ReconcileOutcome
from core.models.profile import AdminProfileUpdate, Profile

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.patch("/profiles/{profile_id}", response_model=Profile)
def update_profile(
    profile_id: Annotated[UUID, Path(description="Profile UUID")],
    update: AdminProfileUpdate,
    profiles: ProfileServiceDep,
) -> Profile:
    return profiles.admin_update(profile_id, update)


@router.post("/payments/{reference}/confirm", response_model=ReconcileOutcome)
def confirm_payment(
    reference: Annotated[str, Path(description="Transaction reference")],
    webhooks: WebhookServiceDep,
) -> ReconcileOutcome:
    """Mark an EFT payment as received; promotes the buyer like a provider callback."""
    logger.info(f"Admin confirming payment {reference}")
    return webhooks.confirm_eft(reference)
