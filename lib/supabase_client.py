# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database and storage
# operations used by the marketplace:
# - Profiles (subscription fields, free-tier cycle)
# - Payments (intent rows and webhook reconciliation)
# - Posts (listings, slugs, view/click counters)
# - Analytics events and media file records
# - Storage objects in the listing media bucket
#
# Multi-row state changes (payment + profile promotion, free-account reset)
# go through stored procedures defined in supabase/migrations so they run in
# one database transaction.
#
# One SupabaseClient is constructed per process (FastAPI lifespan, Celery
# worker init) and passed to services; the underlying connection is created
# lazily on first use.
#
# Usage:
#   db = SupabaseClient.from_settings(settings)
#   profile = db.fetch_profile(user_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from lib.utils import normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST code for .single() matching no rows
NO_ROWS_CODE = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database and storage operations.

    Uses the service_role key, which bypasses Row Level Security (RLS);
    ownership checks are done by the services before calling in.

    Example:
        db = SupabaseClient(url, service_key, bucket="posts")
        payment = db.fetch_payment_by_reference("A2Z-1718000000000-550e8400-1")
        if payment and payment["status"] != "completed":
            db.apply_payment_result(payment["transaction_reference"], "completed")
    """

    def __init__(self, url: str, service_key: str, bucket: str = "posts"):
        self.url = url
        self.service_key = service_key
        self.bucket = bucket
        self._client: Client | None = None

    @classmethod
    def from_settings(cls, settings) -> "SupabaseClient":
        return cls(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY, settings.STORAGE_BUCKET)

    @property
    def client(self) -> Client:
        """
        Get or create the underlying supabase-py client.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if self._client is None:
            try:
                self._client = create_client(self.url, self.service_key)
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                ) from e
        return self._client

    def _single(self, table: str, column: str, value: Any, columns: str = "*") -> dict[str, Any] | None:
        """Fetch one row by column value, returning None when absent."""
        try:
            response = (
                self.client.table(table)
                .select(columns)
                .eq(column, value)
                .single()
                .execute()
            )
            return response.data
        except Exception as e:
            if NO_ROWS_CODE in str(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                suggestion=f"Check that the {table} table is accessible",
                details={"table": table, column: str(value)}
            ) from e

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def ping_database(self) -> None:
        self.client.table("profiles").select("id").limit(1).execute()

    def ping_storage(self) -> None:
        self.client.storage.list_buckets()

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def fetch_profile(self, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a seller profile.

        Args:
            user_id: Profile UUID (same as the auth user id)

        Returns:
            Profile dict, or None if the user has no profile row yet

        Raises:
            SupabaseClientError: If query fails
        """
        return self._single("profiles", "id", normalize_uuid(user_id))

    def insert_profile(self, data: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.client.table("profiles").insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create profile: {e}",
                code="INSERT_PROFILE_FAILED",
                suggestion="Check that the profile id is not already taken",
                details={"id": data.get("id")}
            ) from e
        if not response.data:
            raise SupabaseClientError("Profile insert returned no data", code="INSERT_PROFILE_FAILED")
        return response.data[0]

    def update_profile(self, user_id: str | UUID, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Update a profile and return the new row (None if no row matched).

        Raises:
            SupabaseClientError: If the update fails
        """
        user_id_str = normalize_uuid(user_id)
        try:
            response = self.client.table("profiles").update(data).eq("id", user_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update profile: {e}",
                code="UPDATE_PROFILE_FAILED",
                details={"id": user_id_str, "fields": sorted(data)}
            ) from e
        return response.data[0] if response.data else None

    def list_free_profiles_due(self, cutoff_iso: str) -> list[dict[str, Any]]:
        """
        List free-tier profiles whose content cycle started on or before cutoff.

        Args:
            cutoff_iso: ISO timestamp; profiles with cycle_started_at <= cutoff qualify

        Returns:
            List of {id, username, cycle_started_at} dicts
        """
        try:
            response = (
                self.client.table("profiles")
                .select("id, username, cycle_started_at, created_at")
                .eq("subscription_tier", "free")
                .lte("cycle_started_at", cutoff_iso)
                .execute()
            )
            return response.data or []
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list free profiles due for reset: {e}",
                code="LIST_PROFILES_FAILED",
                suggestion="Check that the cycle_started_at migration has been applied",
                details={"cutoff": cutoff_iso}
            ) from e

    def list_lapsed_subscriptions(self, now_iso: str) -> list[dict[str, Any]]:
        """List paid or trial profiles whose subscription_end_date has passed."""
        try:
            response = (
                self.client.table("profiles")
                .select("id, subscription_tier, subscription_status, subscription_end_date")
                .in_("subscription_status", ["active", "trial"])
                .neq("subscription_tier", "free")
                .lt("subscription_end_date", now_iso)
                .execute()
            )
            return response.data or []
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list lapsed subscriptions: {e}",
                code="LIST_PROFILES_FAILED",
                details={"now": now_iso}
            ) from e

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def insert_payment(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a payment row.

        Raises:
            SupabaseClientError: If the insert fails (including a duplicate
                transaction_reference)
        """
        try:
            response = self.client.table("payments").insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create payment: {e}",
                code="INSERT_PAYMENT_FAILED",
                suggestion="Check the payments table and its unique transaction_reference",
                details={"transaction_reference": data.get("transaction_reference")}
            ) from e
        if not response.data:
            raise SupabaseClientError("Payment insert returned no data", code="INSERT_PAYMENT_FAILED")
        return response.data[0]

    def fetch_payment_by_reference(self, reference: str) -> dict[str, Any] | None:
        return self._single("payments", "transaction_reference", reference)

    def apply_payment_result(
        self,
        reference: str,
        status: str,
        provider_transaction_id: str | None = None,
        status_message: str | None = None,
        period_days: int = 30,
    ) -> dict[str, Any]:
        """
        Apply a provider result to a payment in one transaction.

        Calls the `apply_payment_result` stored procedure, which updates the
        payment row and, only when it moves to `completed`, promotes the
        owner's profile. Rows already `completed` are left untouched.

        Returns:
            Dict with keys:
            - found: Whether the reference exists
            - applied: Whether the payment row changed
            - promoted: Whether the profile was promoted
            - payment: The payment row after the call

        Raises:
            SupabaseClientError: If the procedure fails (nothing is written)
        """
        try:
            response = self.client.rpc(
                "apply_payment_result",
                {
                    "p_reference": reference,
                    "p_status": status,
                    "p_provider_transaction_id": provider_transaction_id,
                    "p_status_message": status_message,
                    "p_period_days": period_days,
                },
            ).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to apply payment result: {e}",
                code="APPLY_PAYMENT_FAILED",
                suggestion="Check that the apply_payment_result function is deployed",
                details={"transaction_reference": reference, "status": status}
            ) from e
        return response.data or {}

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    def fetch_post(self, post_id: str | UUID) -> dict[str, Any] | None:
        return self._single("posts", "id", normalize_uuid(post_id))

    def fetch_post_by_slug(self, slug: str) -> dict[str, Any] | None:
        """Fetch the newest active post with this slug (slugs are unique per owner only)."""
        try:
            response = (
                self.client.table("posts")
                .select("*")
                .eq("slug", slug)
                .eq("is_active", True)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch post by slug: {e}",
                code="FETCH_POST_FAILED",
                details={"slug": slug}
            ) from e
        return response.data[0] if response.data else None

    def list_posts(
        self,
        owner: str | UUID | None = None,
        active_only: bool = True,
    ) -> list[dict[str, Any]]:
        """
        List posts newest first.

        Args:
            owner: Restrict to one owner's posts
            active_only: Only return is_active posts

        Raises:
            SupabaseClientError: If query fails
        """
        try:
            query = self.client.table("posts").select("*").order("created_at", desc=True)
            if owner is not None:
                query = query.eq("owner", normalize_uuid(owner))
            if active_only:
                query = query.eq("is_active", True)
            return query.execute().data or []
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list posts: {e}",
                code="LIST_POSTS_FAILED",
                details={"owner": str(owner) if owner else None}
            ) from e

    def count_active_posts(self, owner: str | UUID) -> int:
        try:
            response = (
                self.client.table("posts")
                .select("id", count="exact")
                .eq("owner", normalize_uuid(owner))
                .eq("is_active", True)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count posts: {e}",
                code="COUNT_POSTS_FAILED",
                details={"owner": str(owner)}
            ) from e
        return response.count or 0

    def list_owner_slugs(self, owner: str | UUID, prefix: str) -> list[str]:
        """Slugs of an owner's posts starting with `prefix`."""
        try:
            response = (
                self.client.table("posts")
                .select("slug")
                .eq("owner", normalize_uuid(owner))
                .like("slug", f"{prefix}%")
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list slugs: {e}",
                code="LIST_SLUGS_FAILED",
                details={"owner": str(owner), "prefix": prefix}
            ) from e
        return [row["slug"] for row in response.data or []]

    def insert_post(self, data: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.client.table("posts").insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create post: {e}",
                code="INSERT_POST_FAILED",
                details={"owner": data.get("owner"), "slug": data.get("slug")}
            ) from e
        if not response.data:
            raise SupabaseClientError("Post insert returned no data", code="INSERT_POST_FAILED")
        return response.data[0]

    def update_post(self, post_id: str | UUID, data: dict[str, Any]) -> dict[str, Any] | None:
        post_id_str = normalize_uuid(post_id)
        try:
            response = self.client.table("posts").update(data).eq("id", post_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update post: {e}",
                code="UPDATE_POST_FAILED",
                details={"id": post_id_str}
            ) from e
        return response.data[0] if response.data else None

    def delete_post(self, post_id: str | UUID) -> None:
        post_id_str = normalize_uuid(post_id)
        try:
            self.client.table("posts").delete().eq("id", post_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete post: {e}",
                code="DELETE_POST_FAILED",
                details={"id": post_id_str}
            ) from e

    def increment_post_counter(self, post_id: str | UUID, action: str) -> None:
        """
        Atomically add one to a post's views or clicks.

        Args:
            post_id: Post UUID
            action: "view" or "click"
        """
        function = "increment_post_views" if action == "view" else "increment_post_clicks"
        try:
            self.client.rpc(function, {"post_id_param": normalize_uuid(post_id)}).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to increment post {action}s: {e}",
                code="INCREMENT_FAILED",
                details={"post_id": str(post_id), "action": action}
            ) from e

    # -------------------------------------------------------------------------
    # Analytics & Media Records
    # -------------------------------------------------------------------------

    def insert_analytics_event(self, data: dict[str, Any]) -> None:
        try:
            self.client.table("analytics_events").insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to record analytics event: {e}",
                code="INSERT_EVENT_FAILED",
                details={"post_id": data.get("post_id"), "event_type": data.get("event_type")}
            ) from e

    def insert_media_file(self, data: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.client.table("media_files").insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to record media file: {e}",
                code="INSERT_MEDIA_FAILED",
                details={"storage_path": data.get("storage_path")}
            ) from e
        return response.data[0] if response.data else data

    # -------------------------------------------------------------------------
    # Free-Account Reset
    # -------------------------------------------------------------------------

    def reset_free_account(self, user_id: str | UUID) -> list[str]:
        """
        Clear a free profile's listings and media in one transaction.

        Calls the `reset_free_account` stored procedure, which deletes the
        profile's posts, marks its media_files rows deleted and starts a new
        content cycle. Identity fields are not touched.

        Returns:
            Storage paths of the media that was released

        Raises:
            SupabaseClientError: If the procedure fails (nothing is written)
        """
        user_id_str = normalize_uuid(user_id)
        try:
            response = self.client.rpc("reset_free_account", {"p_user_id": user_id_str}).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to reset free account: {e}",
                code="RESET_FAILED",
                suggestion="Check that the reset_free_account function is deployed",
                details={"user_id": user_id_str}
            ) from e
        return [path for path in (response.data or []) if path]

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def create_signed_upload_url(self, path: str) -> dict[str, Any]:
        """
        Issue a signed upload URL for a path in the media bucket.

        Returns:
            Dict with signed_url, token and path
        """
        try:
            result = self.client.storage.from_(self.bucket).create_signed_upload_url(path)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create signed upload URL: {e}",
                code="SIGNED_URL_FAILED",
                details={"path": path}
            ) from e
        return {
            "signed_url": result.get("signed_url") or result.get("signedUrl"),
            "token": result.get("token"),
            "path": result.get("path", path),
        }

    def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self.client.storage.from_(self.bucket).upload(
                path=path,
                file=data,
                file_options={"content-type": content_type, "cache-control": "3600", "upsert": "false"},
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to upload file to storage: {e}",
                code="STORAGE_UPLOAD_FAILED",
                suggestion="Try again later or contact support if the issue persists",
                details={"path": path}
            ) from e
        logger.info(f"Uploaded file to storage: {path}")
        return path

    def public_url(self, path: str) -> str:
        return self.client.storage.from_(self.bucket).get_public_url(path)

    def remove_files(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self.client.storage.from_(self.bucket).remove(paths)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to remove files from storage: {e}",
                code="STORAGE_REMOVE_FAILED",
                details={"paths": paths}
            ) from e
