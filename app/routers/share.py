# =============================================================================
# app/routers/share.py - Short Share Links
# =============================================================================
# GET /share/{slug} - redirect to the canonical listing page
# =============================================================================

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from app.dependencies import PostServiceDep

router = APIRouter()


@router.get("/{slug}", response_class=RedirectResponse, status_code=307)
def share_redirect(slug: str, posts: PostServiceDep) -> RedirectResponse:
    """Redirect to the listing, or to the site root for unknown slugs."""
    return RedirectResponse(posts.resolve_share_slug(slug), status_code=307)
