# =============================================================================
# tests/fakes.py - In-Memory Supabase Double
# =============================================================================
# FakeSupabaseClient implements the methods of lib.supabase_client.SupabaseClient
# against plain dicts, including the semantics of the stored procedures in
# supabase/migrations (apply_payment_result, reset_free_account, counters).
#
# Failure injection:
#   db.fail("insert_payment")            # every call raises SupabaseClientError
#   db.fail_reset_for.add(user_id)       # reset_free_account fails for one profile
# =============================================================================

import copy
import uuid
from datetime import timedelta
from typing import Any

from lib.supabase_client import SupabaseClientError
from lib.utils import normalize_uuid, parse_timestamp, utcnow


class FakeSupabaseClient:
    """Dict-backed stand-in for SupabaseClient."""

    def __init__(self, bucket: str = "posts"):
        self.bucket = bucket
        self.profiles: dict[str, dict[str, Any]] = {}
        self.payments: dict[str, dict[str, Any]] = {}
        self.posts: dict[str, dict[str, Any]] = {}
        self.analytics_events: list[dict[str, Any]] = []
        self.media_files: list[dict[str, Any]] = []
        self.storage: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.failing: set[str] = set()
        self.fail_reset_for: set[str] = set()
        self.calls: list[str] = []

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def fail(self, *methods: str) -> None:
        self.failing.update(methods)

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failing:
            raise SupabaseClientError(f"{method} failed", code="TEST_FAILURE")

    def add_profile(self, user_id: str | None = None, **fields) -> dict[str, Any]:
        user_id = user_id or str(uuid.uuid4())
        now = utcnow().isoformat()
        row = {
            "id": user_id,
            "username": None,
            "display_name": None,
            "subscription_tier": "free",
            "subscription_status": "active",
            "subscription_start_date": None,
            "subscription_end_date": None,
            "early_adopter": False,
            "verified_seller": False,
            "current_listings": 0,
            "cycle_started_at": now,
            "last_free_reset": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(fields)
        self.profiles[user_id] = row
        return row

    def add_post(self, owner: str, **fields) -> dict[str, Any]:
        post_id = fields.pop("id", None) or str(uuid.uuid4())
        row = {
            "id": post_id,
            "owner": owner,
            "title": "Vintage Oak Chair",
            "slug": "vintage-oak-chair",
            "price_cents": 45000,
            "currency": "ZAR",
            "description": "Solid oak, lightly used.",
            "emoji_tags": ["🪑"],
            "whatsapp_number": "+27712345678",
            "location": "Cape Town",
            "display_type": "hover",
            "media_urls": ["https://cdn.example.com/posts/a.jpg"],
            "is_active": True,
            "views": 0,
            "clicks": 0,
            "created_at": utcnow().isoformat(),
        }
        row.update(fields)
        self.posts[post_id] = row
        return row

    def add_media(self, user_id: str, path: str) -> None:
        self.storage[path] = b"data"
        self.media_files.append({"user_id": user_id, "storage_path": path, "is_deleted": False})

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def ping_database(self) -> None:
        self._enter("ping_database")

    def ping_storage(self) -> None:
        self._enter("ping_storage")

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def fetch_profile(self, user_id):
        self._enter("fetch_profile")
        row = self.profiles.get(normalize_uuid(user_id))
        return copy.deepcopy(row) if row else None

    def insert_profile(self, data):
        self._enter("insert_profile")
        if data["id"] in self.profiles:
            raise SupabaseClientError("duplicate key", code="INSERT_PROFILE_FAILED")
        self.add_profile(data["id"], **{k: v for k, v in data.items() if k != "id"})
        return copy.deepcopy(self.profiles[data["id"]])

    def update_profile(self, user_id, data):
        self._enter("update_profile")
        row = self.profiles.get(normalize_uuid(user_id))
        if row is None:
            return None
        row.update(data)
        return copy.deepcopy(row)

    def list_free_profiles_due(self, cutoff_iso):
        self._enter("list_free_profiles_due")
        cutoff = parse_timestamp(cutoff_iso)
        return [
            {"id": row["id"], "username": row.get("username"), "cycle_started_at": row.get("cycle_started_at")}
            for row in self.profiles.values()
            if row.get("subscription_tier") == "free"
            and parse_timestamp(row.get("cycle_started_at") or row.get("created_at")) <= cutoff
        ]

    def list_lapsed_subscriptions(self, now_iso):
        self._enter("list_lapsed_subscriptions")
        now = parse_timestamp(now_iso)
        return [
            copy.deepcopy(row)
            for row in self.profiles.values()
            if row.get("subscription_status") in ("active", "trial")
            and row.get("subscription_tier") != "free"
            and row.get("subscription_end_date")
            and parse_timestamp(row["subscription_end_date"]) < now
        ]

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def insert_payment(self, data):
        self._enter("insert_payment")
        reference = data["transaction_reference"]
        if reference in self.payments:
            raise SupabaseClientError("duplicate transaction_reference", code="INSERT_PAYMENT_FAILED")
        row = {
            "id": str(uuid.uuid4()),
            "provider_transaction_id": None,
            "status_message": None,
            "completed_at": None,
            "created_at": utcnow().isoformat(),
            **data,
        }
        self.payments[reference] = row
        return copy.deepcopy(row)

    def fetch_payment_by_reference(self, reference):
        self._enter("fetch_payment_by_reference")
        row = self.payments.get(reference)
        return copy.deepcopy(row) if row else None

    def apply_payment_result(
        self,
        reference,
        status,
        provider_transaction_id=None,
        status_message=None,
        period_days=30,
    ):
        self._enter("apply_payment_result")
        payment = self.payments.get(reference)
        if payment is None:
            return {"found": False, "applied": False, "promoted": False}
        if payment["status"] == "completed":
            return {"found": True, "applied": False, "promoted": False, "payment": copy.deepcopy(payment)}

        now = utcnow()
        payment.update(
            {
                "status": status,
                "provider_transaction_id": provider_transaction_id or payment.get("provider_transaction_id"),
                "status_message": status_message,
                "updated_at": now.isoformat(),
                "completed_at": now.isoformat() if status == "completed" else None,
            }
        )

        promoted = status == "completed"
        if promoted and payment["user_id"] in self.profiles:
            self.profiles[payment["user_id"]].update(
                {
                    "subscription_tier": payment["subscription_tier"],
                    "subscription_status": "active",
                    "subscription_start_date": now.isoformat(),
                    "subscription_end_date": (now + timedelta(days=period_days)).isoformat(),
                    "verified_seller": True,
                    "updated_at": now.isoformat(),
                }
            )
        return {"found": True, "applied": True, "promoted": promoted, "payment": copy.deepcopy(payment)}

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    def fetch_post(self, post_id):
        self._enter("fetch_post")
        row = self.posts.get(normalize_uuid(post_id))
        return copy.deepcopy(row) if row else None

    def fetch_post_by_slug(self, slug):
        self._enter("fetch_post_by_slug")
        matches = [row for row in self.posts.values() if row["slug"] == slug and row.get("is_active")]
        matches.sort(key=lambda row: row.get("created_at") or "", reverse=True)
        return copy.deepcopy(matches[0]) if matches else None

    def list_posts(self, owner=None, active_only=True):
        self._enter("list_posts")
        rows = [
            copy.deepcopy(row)
            for row in self.posts.values()
            if (owner is None or row["owner"] == normalize_uuid(owner))
            and (not active_only or row.get("is_active"))
        ]
        rows.sort(key=lambda row: row.get("created_at") or "", reverse=True)
        return rows

    def count_active_posts(self, owner):
        self._enter("count_active_posts")
        owner = normalize_uuid(owner)
        return sum(1 for row in self.posts.values() if row["owner"] == owner and row.get("is_active"))

    def list_owner_slugs(self, owner, prefix):
        self._enter("list_owner_slugs")
        owner = normalize_uuid(owner)
        return [row["slug"] for row in self.posts.values() if row["owner"] == owner and row["slug"].startswith(prefix)]

    def insert_post(self, data):
        self._enter("insert_post")
        row = {"id": str(uuid.uuid4()), "created_at": utcnow().isoformat(), **data}
        self.posts[row["id"]] = row
        return copy.deepcopy(row)

    def update_post(self, post_id, data):
        self._enter("update_post")
        row = self.posts.get(normalize_uuid(post_id))
        if row is None:
            return None
        row.update(data)
        return copy.deepcopy(row)

    def delete_post(self, post_id):
        self._enter("delete_post")
        self.posts.pop(normalize_uuid(post_id), None)

    def increment_post_counter(self, post_id, action):
        self._enter("increment_post_counter")
        row = self.posts.get(normalize_uuid(post_id))
        if row is not None:
            column = "views" if action == "view" else "clicks"
            row[column] = (row.get(column) or 0) + 1

    # -------------------------------------------------------------------------
    # Analytics & Media Records
    # -------------------------------------------------------------------------

    def insert_analytics_event(self, data):
        self._enter("insert_analytics_event")
        self.analytics_events.append(dict(data))

    def insert_media_file(self, data):
        self._enter("insert_media_file")
        row = {"id": str(uuid.uuid4()), "is_deleted": False, **data}
        self.media_files.append(row)
        return copy.deepcopy(row)

    # -------------------------------------------------------------------------
    # Free-Account Reset
    # -------------------------------------------------------------------------

    def reset_free_account(self, user_id):
        self._enter("reset_free_account")
        user_id = normalize_uuid(user_id)
        profile = self.profiles.get(user_id)
        if user_id in self.fail_reset_for or profile is None or profile.get("subscription_tier") != "free":
            raise SupabaseClientError(f"profile {user_id} could not be reset", code="RESET_FAILED")

        now = utcnow().isoformat()
        released = []
        for media in self.media_files:
            if media["user_id"] == user_id and not media.get("is_deleted"):
                media["is_deleted"] = True
                media["deleted_at"] = now
                released.append(media["storage_path"])
        for post_id in [pid for pid, row in self.posts.items() if row["owner"] == user_id]:
            del self.posts[post_id]
        profile.update({"cycle_started_at": now, "last_free_reset": now, "current_listings": 0, "updated_at": now})
        return released

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def create_signed_upload_url(self, path):
        self._enter("create_signed_upload_url")
        return {"signed_url": f"https://storage.test/upload/sign/{self.bucket}/{path}?token=t", "token": "t", "path": path}

    def upload_file(self, path, data, content_type):
        self._enter("upload_file")
        self.storage[path] = data
        return path

    def public_url(self, path):
        return f"https://storage.test/object/public/{self.bucket}/{path}"

    def remove_files(self, paths):
        self._enter("remove_files")
        for path in paths:
            self.storage.pop(path, None)
            self.removed.append(path)
