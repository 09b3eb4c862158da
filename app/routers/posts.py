# =============================================================================
# app/routers/posts.py - Listing Endpoints
# =============================================================================
# Endpoints:
#   POST   /posts              - create a listing (auth)
#   GET    /posts?owner=       - list listings
#   GET    /posts/{id}         - one listing
#   PATCH  /posts/{id}         - {"action": "view"|"click"} (public) or update (owner)
#   DELETE /posts/{id}         - delete (owner)
#   GET    /posts/{id}/share   - canonical URL and WhatsApp share link
# =============================================================================

import logging
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from app.auth import AuthUser, get_current_user, get_current_user_optional
from app.dependencies import AnalyticsServiceDep, PostServiceDep
from app.exceptions import AuthenticationError
from core.models.post import AnalyticsAction, PostCreate, PostUpdate, ShareInfo

logger = logging.getLogger(__name__)

router = APIRouter()

PostId = Annotated[UUID, Path(description="Post UUID")]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    request: PostCreate,
    user: Annotated[AuthUser, Depends(get_current_user)],
    posts: PostServiceDep,
) -> dict[str, Any]:
    """Create a listing within the caller's tier limits."""
    return {"success": True, "post": posts.create_post(user.id, request)}


@router.get("")
def list_posts(
    posts: PostServiceDep,
    viewer: Annotated[Optional[AuthUser], Depends(get_current_user_optional)],
    owner: Annotated[Optional[UUID], Query(description="Only this owner's posts")] = None,
) -> dict[str, Any]:
    """
    List listings newest first.

    Only active listings are returned, except to an owner listing their own.
    """
    items = posts.list_posts(owner=owner, viewer_id=viewer.id if viewer else None)
    return {"success": True, "posts": items, "count": len(items)}


@router.get("/{post_id}")
def get_post(
    post_id: PostId,
    posts: PostServiceDep,
    viewer: Annotated[Optional[AuthUser], Depends(get_current_user_optional)],
) -> dict[str, Any]:
    return {"success": True, "post": posts.get_post(post_id, viewer_id=viewer.id if viewer else None)}


def _validate(model, body: dict[str, Any]):
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from None


@router.patch("/{post_id}")
def patch_post(
    post_id: PostId,
    posts: PostServiceDep,
    analytics: AnalyticsServiceDep,
    user: Annotated[Optional[AuthUser], Depends(get_current_user_optional)],
    body: Annotated[dict[str, Any], Body()],
) -> dict[str, Any]:
    """
    Record an interaction or update a listing.

    `{"action": "view"}` / `{"action": "click"}` needs no token and is
    counted in the background. Any other body is an owner update.
    """
    if "action" in body:
        action = _validate(AnalyticsAction, body)
        analytics.record_action(post_id, action.action)
        return {"success": True}

    if user is None:
        raise AuthenticationError(
            "Authentication required",
            suggestion="Send 'Authorization: Bearer <access token>'",
        )
    update = _validate(PostUpdate, body)
    return {"success": True, "post": posts.update_post(user.id, post_id, update)}


@router.delete("/{post_id}")
def delete_post(
    post_id: PostId,
    user: Annotated[AuthUser, Depends(get_current_user)],
    posts: PostServiceDep,
) -> dict[str, Any]:
    posts.delete_post(user.id, post_id)
    return {"success": True, "message": "Post deleted"}


@router.get("/{post_id}/share", response_model=ShareInfo)
def share_post(post_id: PostId, posts: PostServiceDep) -> ShareInfo:
    """Canonical public URL, share message and wa.me link for a listing."""
    return posts.share_info(post_id)
