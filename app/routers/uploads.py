# =============================================================================
# app/routers/uploads.py - Media Upload Endpoints
# =============================================================================
# POST /uploads/signed-url - signed URL for a direct browser upload
# POST /uploads            - server-side upload (multipart)
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.auth import AuthUser, get_current_user
from app.dependencies import MediaServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class SignedUploadRequest(BaseModel):
    """Metadata of the file the browser is about to upload."""
    file_name: str | None = Field(default=None, max_length=255)
    file_type: str = Field(..., description="MIME type, e.g. image/jpeg")
    file_size: int = Field(..., gt=0, description="Size in bytes")


@router.post("/signed-url")
def signed_upload_url(
    request: SignedUploadRequest,
    user: Annotated[AuthUser, Depends(get_current_user)],
    media: MediaServiceDep,
) -> dict[str, Any]:
    """
    Issue a signed upload URL.

    The browser uploads the file straight to storage and then uses
    `public_url` in the listing's media_urls.
    """
    upload = media.signed_upload(user.id, request.file_type, request.file_size)
    return {"success": True, **upload}


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    user: Annotated[AuthUser, Depends(get_current_user)],
    media: MediaServiceDep,
    file: UploadFile = File(..., description="Image or video to store"),
) -> dict[str, Any]:
    """
    Upload a file through the API.

    Images are resized to fit 2000x2000 and watermarked on the free plan.
    """
    data = await file.read()
    logger.info(f"Upload from {user.id}: {file.filename} ({len(data)} bytes, {file.content_type})")
    result = await run_in_threadpool(media.upload, user.id, data, file.content_type or "")
    return {"success": True, **result}
