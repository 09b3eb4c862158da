# =============================================================================
# app/routers/watermark.py - Watermark Endpoints
# =============================================================================
# POST /watermark/apply  - return the image with the site watermark (free plan)
# GET  /watermark/status - whether the caller's uploads get watermarked
# =============================================================================

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from app.auth import AuthUser, get_current_user
from app.dependencies import MediaServiceDep
from lib.images import Position, content_type_for

router = APIRouter()


@router.post("/apply", response_class=Response)
async def apply_watermark(
    user: Annotated[AuthUser, Depends(get_current_user)],
    media: MediaServiceDep,
    file: UploadFile = File(...),
    position: Annotated[Position, Form()] = "bottom-right",
    opacity: Annotated[float, Form(ge=0.0, le=1.0)] = 0.5,
) -> Response:
    """Watermark an image. Paid plans get 400 (no watermark needed)."""
    data = await file.read()
    stamped = await run_in_threadpool(
        media.apply_watermark,
        user.id,
        data,
        file.content_type or "",
        position,
        opacity,
    )
    return Response(
        content=stamped,
        media_type=content_type_for(stamped),
        headers={"X-Watermarked": "true"},
    )


@router.get("/status")
def watermark_status(
    user: Annotated[AuthUser, Depends(get_current_user)],
    media: MediaServiceDep,
) -> dict[str, Any]:
    required = media.watermark_required(user.id)
    return {
        "success": True,
        "watermark_required": required,
        "watermark_text": media.watermark_text if required else None,
    }
