# =============================================================================
# core/services/post_service.py - Listings
# =============================================================================
# Create, read, update and delete listings ("posts"), enforcing the owner's
# tier limits and building the public share link.
#
# Ownership: only the owner may update or delete a post. Inactive posts are
# visible to their owner only.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import (
    AuthorizationError,
    InternalError,
    NotFoundError,
    TierLimitError,
)
from core.models.post import DisplayType, PostCreate, PostUpdate, ShareInfo, VIDEO_EXTENSIONS
from core.models.subscription import Tier, TierPolicy
from core.services.tier_policy import get_tier_policy
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.text import format_price, share_message, slugify, unique_slug, whatsapp_url
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


def _count_media(urls: list[str]) -> tuple[int, int]:
    """(images, videos) in a list of media URLs."""
    videos = sum(1 for url in urls if url.lower().split("?")[0].endswith(VIDEO_EXTENSIONS))
    return len(urls) - videos, videos


class PostService:
    """
    Service for listing CRUD.

    Example:
        service = PostService(db, base_url="https://a2z.co.za")
        post = service.create_post(user.id, PostCreate(...))
        share = service.share_info(post["id"])
    """

    def __init__(self, db: SupabaseClient, base_url: str = "http://localhost:3000"):
        self.db = db
        self.base_url = base_url.rstrip("/")

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _owner_policy(self, owner_id: str) -> TierPolicy:
        try:
            profile = self.db.fetch_profile(owner_id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e
        if not profile:
            raise NotFoundError(
                message=f"Profile not found for user: {owner_id}",
                suggestion="Complete signup with POST /api/profile before listing",
            )
        return get_tier_policy(profile.get("subscription_tier") or Tier.FREE.value)

    def _load(self, post_id: str | UUID) -> dict[str, Any]:
        try:
            post = self.db.fetch_post(post_id)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load post: {e.message}") from e
        if not post:
            raise NotFoundError(f"Post not found: {normalize_uuid(post_id)}")
        return post

    def _load_owned(self, user_id: str, post_id: str | UUID) -> dict[str, Any]:
        post = self._load(post_id)
        if post.get("owner") != user_id:
            raise AuthorizationError(
                message="You can only modify your own posts",
                details={"post_id": normalize_uuid(post_id)},
            )
        return post

    @staticmethod
    def _check_media(
        policy: TierPolicy,
        media_urls: list[str],
        display_type: DisplayType | str,
    ) -> None:
        """
        Enforce per-listing tier limits.

        Raises:
            TierLimitError: If images, videos or gallery type exceed the tier
        """
        tier = policy.tier.value
        images, videos = _count_media(media_urls)

        if images > policy.max_images_per_listing:
            raise TierLimitError(
                f"Your {tier} plan allows {policy.max_images_per_listing} images per listing",
                tier=tier,
                limit=policy.max_images_per_listing,
            )
        if policy.max_videos_per_listing is not None and videos > policy.max_videos_per_listing:
            raise TierLimitError(
                f"Your {tier} plan allows {policy.max_videos_per_listing} videos per listing",
                tier=tier,
                limit=policy.max_videos_per_listing,
            )
        display = DisplayType(display_type).value
        if display not in policy.gallery_types:
            raise TierLimitError(
                f"The {display} gallery is not available on the {tier} plan",
                tier=tier,
            )

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_post(self, user_id: str | UUID, request: PostCreate) -> dict[str, Any]:
        """
        Create a listing for the authenticated user.

        Args:
            user_id: Owner
            request: Validated listing fields

        Returns:
            The stored post row

        Raises:
            NotFoundError: If the owner has no profile
            TierLimitError: If a tier limit would be exceeded
            InternalError: If the database write fails
        """
        owner = normalize_uuid(user_id)
        policy = self._owner_policy(owner)

        try:
            active = self.db.count_active_posts(owner)
        except SupabaseClientError as e:
            raise InternalError(f"Could not count listings: {e.message}") from e

        if policy.max_listings is not None and active >= policy.max_listings:
            raise TierLimitError(
                f"Your {policy.tier.value} plan allows {policy.max_listings} active listings",
                tier=policy.tier.value,
                limit=policy.max_listings,
            )

        self._check_media(
            policy,
            request.media_urls,
            request.display_type,
        )

        base = slugify(request.title) or "listing"
        try:
            slug = unique_slug(request.title, self.db.list_owner_slugs(owner, base))
        except SupabaseClientError as e:
            raise InternalError(f"Could not check slugs: {e.message}") from e

        data = request.model_dump(mode="json", exclude={"media_items"})
        data.update(
            {
                "owner": owner,
                "slug": slug,
                "is_active": True,
                "views": 0,
                "clicks": 0,
                "media_descriptions": [item.description for item in request.media_items or []],
            }
        )

        try:
            post = self.db.insert_post(data)
        except SupabaseClientError as e:
            logger.error(f"Failed to create post for {owner}: {e}")
            raise InternalError("Failed to create post") from e

        logger.info(f"Created post {post.get('id')} ({slug}) for {owner}")
        return post

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def list_posts(
        self,
        owner: str | UUID | None = None,
        viewer_id: str | UUID | None = None,
    ) -> list[dict[str, Any]]:
        """
        List posts newest first.

        Owners listing their own posts also see inactive ones.
        """
        active_only = owner is None or viewer_id is None or normalize_uuid(owner) != normalize_uuid(viewer_id)
        try:
            return self.db.list_posts(owner=owner, active_only=active_only)
        except SupabaseClientError as e:
            raise InternalError(f"Could not list posts: {e.message}") from e

    def get_post(self, post_id: str | UUID, viewer_id: str | UUID | None = None) -> dict[str, Any]:
        post = self._load(post_id)
        if not post.get("is_active", True) and post.get("owner") != (
            normalize_uuid(viewer_id) if viewer_id else None
        ):
            raise NotFoundError(f"Post not found: {normalize_uuid(post_id)}")
        return post

    # -------------------------------------------------------------------------
    # Update / Delete
    # -------------------------------------------------------------------------

    def update_post(self, user_id: str | UUID, post_id: str | UUID, request: PostUpdate) -> dict[str, Any]:
        """
        Apply an owner's partial update.

        Raises:
            NotFoundError: If the post does not exist
            AuthorizationError: If the caller does not own the post
            TierLimitError: If new media or gallery type exceed the tier
        """
        owner = normalize_uuid(user_id)
        post = self._load_owned(owner, post_id)
        changes = request.model_dump(mode="json", exclude_unset=True, exclude={"media_items"})
        if request.media_items is not None:
            changes["media_descriptions"] = [item.description for item in request.media_items]

        if {"media_urls", "display_type"} & changes.keys():
            self._check_media(
                self._owner_policy(owner),
                changes.get("media_urls", post.get("media_urls") or []),
                changes.get("display_type", post.get("display_type") or DisplayType.HOVER.value),
            )

        if not changes:
            return post

        try:
            updated = self.db.update_post(post["id"], changes)
        except SupabaseClientError as e:
            raise InternalError(f"Failed to update post: {e.message}") from e

        logger.info(f"Updated post {post['id']}: {sorted(changes)}")
        return updated or {**post, **changes}

    def delete_post(self, user_id: str | UUID, post_id: str | UUID) -> None:
        post = self._load_owned(normalize_uuid(user_id), post_id)
        try:
            self.db.delete_post(post["id"])
        except SupabaseClientError as e:
            raise InternalError(f"Failed to delete post: {e.message}") from e
        logger.info(f"Deleted post {post['id']}")

    # -------------------------------------------------------------------------
    # Sharing
    # -------------------------------------------------------------------------

    def public_url(self, post: dict[str, Any]) -> str:
        """Canonical listing URL: {base}/{username}/{slug}, or {base}/p/{slug} without a username."""
        try:
            profile = self.db.fetch_profile(post["owner"]) if post.get("owner") else None
        except SupabaseClientError as e:
            raise InternalError(f"Could not load profile: {e.message}") from e
        username = (profile or {}).get("username")
        if username:
            return f"{self.base_url}/{username}/{post['slug']}"
        return f"{self.base_url}/p/{post['slug']}"

    def share_info(self, post_id: str | UUID) -> ShareInfo:
        post = self.get_post(post_id)
        url = self.public_url(post)
        message = share_message(
            post["title"],
            format_price(post.get("price_cents", 0), post.get("currency") or "ZAR"),
            url,
        )
        return ShareInfo(public_url=url, message=message, whatsapp_url=whatsapp_url(None, message))

    def resolve_share_slug(self, slug: str) -> str:
        """Where /share/{slug} should redirect: the listing, or the site root."""
        try:
            post = self.db.fetch_post_by_slug(slug)
        except SupabaseClientError as e:
            raise InternalError(f"Could not load post: {e.message}") from e
        if not post:
            logger.info(f"Share link for unknown slug {slug}")
            return self.base_url
        return self.public_url(post)
