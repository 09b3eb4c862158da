# =============================================================================
# app/routers/profile.py - Seller Profile Endpoints
# =============================================================================
# GET  /profile             - current profile
# POST /profile             - signup with a chosen plan
# GET  /profile/reset-info  - free-account cycle position
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from app.auth import AuthUser, get_current_user
from app.dependencies import ProfileServiceDep, ResetServiceDep
from core.models.profile import Profile, ProfileCreate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=Profile)
def get_profile(
    user: Annotated[AuthUser, Depends(get_current_user)],
    profiles: ProfileServiceDep,
) -> Profile:
    return profiles.get_profile(user.id)


@router.post("", response_model=Profile, status_code=status.HTTP_201_CREATED)
def create_profile(
    request: ProfileCreate,
    user: Annotated[AuthUser, Depends(get_current_user)],
    profiles: ProfileServiceDep,
) -> Profile:
    """
    Create the profile at signup.

    Paid plans start as a trial; free plans start a 7-day content cycle.
    """
    return profiles.create_profile(user.id, request)


@router.get("/reset-info")
def reset_info(
    user: Annotated[AuthUser, Depends(get_current_user)],
    profiles: ProfileServiceDep,
    resets: ResetServiceDep,
) -> dict[str, Any]:
    """When the caller's free listings will next be cleared (null for paid plans)."""
    info = resets.reset_info(profiles.fetch(user.id))
    return {
        "success": True,
        "is_free_tier": info is not None,
        "reset_info": info.model_dump(mode="json") if info else None,
    }
