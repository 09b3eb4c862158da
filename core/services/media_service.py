# =============================================================================
# core/services/media_service.py - Listing Media Uploads
# =============================================================================
# Handles listing media in Supabase Storage:
# - signed upload URLs for direct browser uploads
# - server-side uploads (images optimised, watermarked for free accounts)
# - on-demand watermarking
#
# Every stored object gets a media_files row carrying its owner, tier and
# expiry (upload time + the tier's listing retention window), which the
# free-account reset uses to release storage.
# =============================================================================

import logging
import uuid
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, NotFoundError, ValidationError
from core.models.subscription import Tier
from core.services.tier_policy import get_tier_policy
from lib.images import ImageProcessingError, Position, add_watermark, optimize_image
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid, utcnow

logger = logging.getLogger(__name__)

# Storage folder inside the media bucket
UPLOAD_FOLDER = "posts"

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
}


class MediaService:
    """
    Service for listing media.

    Example:
        service = MediaService(db, allowed_types=["image/jpeg"], max_bytes=10 * 1024 * 1024)
        upload = service.signed_upload(user.id, "image/jpeg", 524288)
        # browser PUTs the file to upload["signed_url"]
    """

    def __init__(
        self,
        db: SupabaseClient,
        allowed_types: list[str],
        max_bytes: int,
        watermark_text: str = "A2Z.co.za",
    ):
        self.db = db
        self.allowed_types = allowed_types
        self.max_bytes = max_bytes
        self.watermark_text = watermark_text

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def validate(self, content_type: str, size: int) -> str:
        """
        Check an upload's type and size and return its file extension.

        Raises:
            ValidationError: If the type is not allowed or the file is too large
        """
        content_type = (content_type or "").lower()
        if content_type not in self.allowed_types or content_type not in EXTENSIONS:
            raise ValidationError(
                message=f"Invalid file type: {content_type or 'unknown'}",
                suggestion=f"Allowed types: {', '.join(self.allowed_types)}",
                details={"content_type": content_type},
            )
        if size <= 0:
            raise ValidationError("File is empty")
        if size > self.max_bytes:
            raise ValidationError(
                message=f"File too large. Maximum size: {self.max_bytes // (1024 * 1024)}MB",
                details={"size": size, "max_size": self.max_bytes},
            )
        return EXTENSIONS[content_type]

    def _tier(self, user_id: str) -> Tier:
        try:
            profile = self.db.fetch_profile(user_id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e
        if not profile:
            raise NotFoundError(
                message=f"Profile not found for user: {user_id}",
                suggestion="Complete signup with POST /api/profile before uploading",
            )
        return Tier(profile.get("subscription_tier") or Tier.FREE.value)

    def _record(
        self,
        user_id: str,
        tier: Tier,
        path: str,
        public_url: str,
        content_type: str,
        size: int,
        watermarked: bool = False,
    ) -> None:
        now = utcnow()
        retention = get_tier_policy(tier).listing_retention_days
        try:
            self.db.insert_media_file(
                {
                    "user_id": user_id,
                    "storage_path": path,
                    "public_url": public_url,
                    "content_type": content_type,
                    "size_bytes": size,
                    "user_tier": tier.value,
                    "is_watermarked": watermarked,
                    "expires_at": (now + timedelta(days=retention)).isoformat(),
                }
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to record media file {path}: {e}")
            raise InternalError("Failed to record uploaded file") from e

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    def signed_upload(self, user_id: str | UUID, content_type: str, size: int) -> dict[str, Any]:
        """
        Issue a signed URL the browser can upload one file to.

        Args:
            user_id: Uploading user
            content_type: MIME type the browser will send
            size: File size in bytes

        Returns:
            Dict with signed_url, token, path and public_url

        Raises:
            ValidationError: If the type or size is not allowed
            InternalError: If storage refuses the request
        """
        user_id_str = normalize_uuid(user_id)
        extension = self.validate(content_type, size)
        tier = self._tier(user_id_str)
        path = f"{UPLOAD_FOLDER}/{uuid.uuid4()}.{extension}"

        try:
            signed = self.db.create_signed_upload_url(path)
            public_url = self.db.public_url(path)
        except SupabaseClientError as e:
            logger.error(f"Signed upload URL failed for {user_id_str}: {e}")
            raise InternalError("Failed to create upload URL") from e

        self._record(user_id_str, tier, path, public_url, content_type.lower(), size)
        logger.info(f"Issued signed upload URL {path} for {user_id_str}")
        return {**signed, "path": path, "public_url": public_url}

    def upload(self, user_id: str | UUID, data: bytes, content_type: str) -> dict[str, Any]:
        """
        Store a file on the user's behalf.

        Images are resized and re-encoded; free-tier images are watermarked.

        Returns:
            Dict with path, public_url, content_type, size and watermarked

        Raises:
            ValidationError: If the file is not allowed or not a readable image
            InternalError: If storage refuses the upload
        """
        user_id_str = normalize_uuid(user_id)
        extension = self.validate(content_type, len(data))
        content_type = content_type.lower()
        tier = self._tier(user_id_str)
        watermarked = False

        if content_type.startswith("image/"):
            try:
                data, content_type = optimize_image(data)
                if not get_tier_policy(tier).watermark_removed:
                    data = add_watermark(data, text=self.watermark_text)
                    watermarked = True
            except ImageProcessingError as e:
                raise ValidationError(str(e), suggestion="Upload a JPEG, PNG or WebP image") from e
            extension = EXTENSIONS[content_type]

        path = f"{UPLOAD_FOLDER}/{uuid.uuid4()}.{extension}"
        try:
            self.db.upload_file(path, data, content_type)
            public_url = self.db.public_url(path)
        except SupabaseClientError as e:
            logger.error(f"Upload failed for {user_id_str}: {e}")
            raise InternalError("Failed to upload file") from e

        self._record(user_id_str, tier, path, public_url, content_type, len(data), watermarked)
        return {
            "path": path,
            "public_url": public_url,
            "content_type": content_type,
            "size": len(data),
            "watermarked": watermarked,
        }

    # -------------------------------------------------------------------------
    # Watermarking
    # -------------------------------------------------------------------------

    def watermark_required(self, user_id: str | UUID) -> bool:
        return not get_tier_policy(self._tier(normalize_uuid(user_id))).watermark_removed

    def apply_watermark(
        self,
        user_id: str | UUID,
        data: bytes,
        content_type: str,
        position: Position = "bottom-right",
        opacity: float = 0.5,
    ) -> bytes:
        """
        Watermark an image for a free-tier user.

        Raises:
            ValidationError: If the user's tier has no watermark, the file is
                not an allowed image, or it cannot be decoded
        """
        self.validate(content_type, len(data))
        if not (content_type or "").lower().startswith("image/"):
            raise ValidationError("Only images can be watermarked")
        if not self.watermark_required(user_id):
            raise ValidationError(
                message="Watermark not needed for your plan",
                code="WATERMARK_NOT_REQUIRED",
            )
        try:
            return add_watermark(data, text=self.watermark_text, position=position, opacity=opacity)
        except ImageProcessingError as e:
            raise ValidationError(str(e)) from e
