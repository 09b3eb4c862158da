# =============================================================================
# tests/test_routes.py - HTTP API Tests
# =============================================================================
# End-to-end request tests through FastAPI's TestClient against the
# in-memory database (see conftest.client).
#
# Run with: poetry run pytest tests/test_routes.py -v
# =============================================================================

import io
import uuid

import pytest
from PIL import Image

PAYFAST_PEER = "197.97.145.145"
CRON = {"Authorization": "Bearer test-cron-secret"}
ADMIN = {"X-API-Key": "test-admin-key"}

POST_BODY = {
    "title": "Vintage Oak Chair",
    "price_cents": 45000,
    "description": "Solid oak, lightly used.",
    "emoji_tags": ["🪑"],
    "whatsapp_number": "0712345678",
    "location": "Cape Town",
    "media_urls": ["https://cdn.example.com/posts/a.jpg"],
}


def jpeg(size=(300, 200)) -> bytes:
    output = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(output, "JPEG")
    return output.getvalue()


@pytest.fixture
def from_payfast(client):
    """Requests arrive from a PayFast server address."""
    from app.dependencies import client_ip
    from app.main import app

    app.dependency_overrides[client_ip] = lambda: PAYFAST_PEER


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_degraded_when_storage_down(self, client, db):
        db.fail("ping_storage")

        data = client.get("/api/health/ready").json()

        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "healthy"


# =============================================================================
# Client Address
# =============================================================================

class TestClientAddress:

    @staticmethod
    def _request(peer, headers):
        from starlette.requests import Request

        return Request({
            "type": "http",
            "method": "POST",
            "path": "/api/webhooks/payfast",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": peer,
        })

    def test_forwarding_headers_are_ignored(self):
        from app.dependencies import client_ip

        request = self._request(
            ("8.8.8.8", 40000),
            {"X-Forwarded-For": "197.97.145.145, 10.0.0.1", "X-Real-IP": "197.97.145.145"},
        )

        assert client_ip(request) == "8.8.8.8"

    def test_no_peer(self):
        from app.dependencies import client_ip

        assert client_ip(self._request(None, {})) is None

    def test_proxy_headers_only_from_configured_proxies(self):
        from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

        from app.main import app

        proxy = [m for m in app.user_middleware if m.cls is ProxyHeadersMiddleware]

        assert len(proxy) == 1
        assert proxy[0].kwargs["trusted_hosts"] == "127.0.0.1"


# =============================================================================
# Auth
# =============================================================================

class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get("/api/profile")

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_FAILED"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_expired_token(self, client, make_token, user_id):
        token = make_token(user_id, expires_in=-60)

        response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_wrong_secret(self, client, user_id):
        from jose import jwt

        token = jwt.encode({"sub": user_id, "aud": "authenticated"}, "not-the-secret", algorithm="HS256")

        response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_non_uuid_subject(self, client, make_token):
        response = client.get("/api/profile", headers={"Authorization": f"Bearer {make_token('abc')}"})

        assert response.status_code == 401


# =============================================================================
# Profile & Subscription
# =============================================================================

class TestProfileRoutes:

    def test_signup_then_read(self, client, db, user_id, auth_headers):
        # Act
        created = client.post("/api/profile", json={"selected_plan": "premium"}, headers=auth_headers(user_id))
        fetched = client.get("/api/profile", headers=auth_headers(user_id))

        # Assert
        assert created.status_code == 201
        assert created.json()["subscription_status"] == "trial"
        assert fetched.json()["subscription_tier"] == "premium"

    def test_second_paid_signup_conflicts(self, client, db, user_id, auth_headers):
        client.post("/api/profile", json={"selected_plan": "premium"}, headers=auth_headers(user_id))

        response = client.post("/api/profile", json={"selected_plan": "business"}, headers=auth_headers(user_id))

        assert response.status_code == 409

    def test_unknown_plan_is_400(self, client, user_id, auth_headers):
        response = client.post("/api/profile", json={"selected_plan": "gold"}, headers=auth_headers(user_id))

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert response.json()["details"][0]["field"] == "selected_plan"

    def test_reset_info_free(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        data = client.get("/api/profile/reset-info", headers=auth_headers(user_id)).json()

        assert data["is_free_tier"] is True
        assert data["reset_info"]["days_until_reset"] in (7, 8)

    def test_reset_info_paid(self, client, db, user_id, auth_headers):
        db.add_profile(user_id, subscription_tier="business")

        data = client.get("/api/profile/reset-info", headers=auth_headers(user_id)).json()

        assert data == {"success": True, "is_free_tier": False, "reset_info": None}


class TestSubscriptionRoutes:

    def test_current_subscription(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)
        db.add_post(user_id)

        data = client.get("/api/subscription", headers=auth_headers(user_id)).json()

        assert data["tier"] == "free"
        assert data["current_listings"] == 1
        assert data["can_create_listing"] is True

    def test_pricing_is_public(self, client):
        data = client.get("/api/subscription/pricing").json()

        assert [row["tier"] for row in data] == ["free", "premium", "business"]

    def test_downgrade_is_403(self, client, db, user_id, auth_headers):
        db.add_profile(user_id, subscription_tier="business")

        response = client.post(
            "/api/subscription/upgrade",
            json={"tier": "premium", "provider": "payfast"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 403


# =============================================================================
# Payments & Webhooks
# =============================================================================

class TestPaymentFlow:
    """Intent -> provider callback -> promoted profile, over HTTP."""

    def test_payfast_round_trip(self, client, db, user_id, auth_headers, payfast_itn, from_payfast):
        # Arrange
        db.add_profile(user_id)
        intent = client.post(
            "/api/payments/create",
            json={"tier": "premium", "provider": "payfast"},
            headers=auth_headers(user_id),
        ).json()
        reference = intent["transaction_reference"]

        # Act
        first = client.post("/api/webhooks/payfast", data=payfast_itn(reference))
        second = client.post("/api/webhooks/payfast", data=payfast_itn(reference))

        # Assert
        assert intent["amount"] == 4900
        assert intent["payment_data"]["notify_url"] == "https://a2z.test/api/webhooks/payfast"
        assert first.status_code == 200
        assert first.json() == {"success": True, "status": "completed", "already_processed": False}
        assert second.json()["already_processed"] is True
        assert db.profiles[user_id]["subscription_tier"] == "premium"

    def test_payfast_bad_signature_is_401(self, client, db, user_id, auth_headers, payfast_itn, from_payfast):
        db.add_profile(user_id)
        intent = client.post(
            "/api/payments/create",
            json={"tier": "premium", "provider": "payfast"},
            headers=auth_headers(user_id),
        ).json()
        itn = payfast_itn(intent["transaction_reference"])
        itn["amount_gross"] = "0.01"

        response = client.post("/api/webhooks/payfast", data=itn)

        assert response.status_code == 401
        assert db.profiles[user_id]["subscription_tier"] == "free"

    def test_payfast_from_unknown_ip_is_401(self, client, payfast_itn):
        response = client.post("/api/webhooks/payfast", data=payfast_itn("A2Z-REF"))

        assert response.status_code == 401

    def test_forwarded_for_header_cannot_claim_payfast_address(
        self, client, db, user_id, auth_headers, payfast_itn, payfast
    ):
        # Arrange
        from app.main import app

        payfast.is_test = False
        db.add_profile(user_id)
        intent = client.post(
            "/api/payments/create",
            json={"tier": "premium", "provider": "payfast"},
            headers=auth_headers(user_id),
        ).json()

        # Act
        response = client.post(
            "/api/webhooks/payfast",
            data=payfast_itn(intent["transaction_reference"]),
            headers={"X-Forwarded-For": PAYFAST_PEER, "X-Real-IP": PAYFAST_PEER},
        )

        # Assert
        assert app.state.payfast is payfast
        assert response.status_code == 401
        assert db.profiles[user_id]["subscription_tier"] == "free"
        assert db.payments[intent["transaction_reference"]]["status"] == "pending"

    def test_ozow_json_callback(self, client, db, user_id, auth_headers, ozow_notification):
        db.add_profile(user_id)
        intent = client.post(
            "/api/payments/create",
            json={"tier": "premium", "provider": "ozow"},
            headers=auth_headers(user_id),
        ).json()

        response = client.post(
            "/api/webhooks/ozow",
            json=ozow_notification(intent["transaction_reference"], status="Cancelled"),
        )

        assert response.json()["status"] == "cancelled"
        assert db.profiles[user_id]["subscription_tier"] == "free"

    def test_ozow_unknown_reference_is_404(self, client, ozow_notification):
        response = client.post("/api/webhooks/ozow", json=ozow_notification("A2Z-NOPE"))

        assert response.status_code == 404

    def test_free_tier_intent_is_400(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/payments/create",
            json={"tier": "free", "provider": "eft"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400


# =============================================================================
# Posts & Sharing
# =============================================================================

class TestPostRoutes:

    def test_create_list_and_share(self, client, db, user_id, auth_headers):
        # Arrange
        db.add_profile(user_id, username="thabo")

        # Act
        created = client.post("/api/posts", json=POST_BODY, headers=auth_headers(user_id))
        post_id = created.json()["post"]["id"]
        listed = client.get("/api/posts", params={"owner": user_id}).json()
        share = client.get(f"/api/posts/{post_id}/share").json()

        # Assert
        assert created.status_code == 201
        assert listed["count"] == 1
        assert share["public_url"] == "https://a2z.test/thabo/vintage-oak-chair"

    def test_fourth_free_listing_is_403(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)
        for i in range(3):
            db.add_post(user_id, slug=f"item-{i}")

        response = client.post("/api/posts", json=POST_BODY, headers=auth_headers(user_id))

        assert response.status_code == 403
        assert response.json()["code"] == "TIER_LIMIT_EXCEEDED"

    def test_invalid_body_is_400(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/posts",
            json={**POST_BODY, "whatsapp_number": "123"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400

    def test_view_action_needs_no_token(self, client, db, user_id, published):
        post = db.add_post(user_id)

        response = client.patch(f"/api/posts/{post['id']}", json={"action": "view"})

        assert response.status_code == 200
        assert published == [{"post_id": post["id"], "event_type": "view"}]

    def test_unknown_action_is_400(self, client, db, user_id):
        post = db.add_post(user_id)

        response = client.patch(f"/api/posts/{post['id']}", json={"action": "like"})

        assert response.status_code == 400

    def test_update_without_token_is_401(self, client, db, user_id):
        post = db.add_post(user_id)

        response = client.patch(f"/api/posts/{post['id']}", json={"price_cents": 1})

        assert response.status_code == 401

    def test_update_by_other_user_is_403(self, client, db, user_id, auth_headers):
        post = db.add_post(user_id)

        response = client.patch(
            f"/api/posts/{post['id']}",
            json={"price_cents": 1},
            headers=auth_headers(str(uuid.uuid4())),
        )

        assert response.status_code == 403

    def test_owner_update_and_delete(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)
        post = db.add_post(user_id)

        updated = client.patch(f"/api/posts/{post['id']}", json={"price_cents": 40000}, headers=auth_headers(user_id))
        deleted = client.delete(f"/api/posts/{post['id']}", headers=auth_headers(user_id))

        assert updated.json()["post"]["price_cents"] == 40000
        assert deleted.status_code == 200
        assert post["id"] not in db.posts

    def test_bad_post_id_is_400(self, client):
        response = client.get("/api/posts/not-a-uuid")

        assert response.status_code == 400

    def test_share_redirect(self, client, db, user_id):
        db.add_profile(user_id, username="thabo")
        db.add_post(user_id)

        known = client.get("/api/share/vintage-oak-chair", follow_redirects=False)
        unknown = client.get("/api/share/missing", follow_redirects=False)

        assert known.status_code == 307
        assert known.headers["location"] == "https://a2z.test/thabo/vintage-oak-chair"
        assert unknown.headers["location"] == "https://a2z.test"


# =============================================================================
# Analytics
# =============================================================================

class TestAnalyticsRoutes:

    def test_track_queues_with_client_ip(self, client, published):
        post_id = str(uuid.uuid4())

        response = client.post(
            "/api/analytics/track",
            json={"event_type": "share", "post_id": post_id},
            headers={"X-Real-IP": "41.1.2.3"},
        )

        assert response.json() == {"success": True}
        assert published[0]["ip_address"] == "testclient"

    def test_track_rejects_unknown_event(self, client):
        response = client.post("/api/analytics/track", json={"event_type": "hover", "post_id": str(uuid.uuid4())})

        assert response.status_code == 400

    def test_stats(self, client, db, user_id, auth_headers):
        db.add_post(user_id, views=20, clicks=5)

        data = client.get("/api/analytics/stats", headers=auth_headers(user_id)).json()

        assert data["summary"]["conversion_rate"] == 25.0


# =============================================================================
# Uploads & Watermark
# =============================================================================

class TestUploadRoutes:

    def test_signed_url(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/uploads/signed-url",
            json={"file_name": "chair.jpg", "file_type": "image/jpeg", "file_size": 1024},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        assert response.json()["path"].endswith(".jpg")

    def test_signed_url_rejects_pdf(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/uploads/signed-url",
            json={"file_type": "application/pdf", "file_size": 1024},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400

    def test_multipart_upload(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/uploads",
            files={"file": ("chair.jpg", jpeg(), "image/jpeg")},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 201
        assert response.json()["watermarked"] is True

    def test_watermark_apply_free(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        response = client.post(
            "/api/watermark/apply",
            files={"file": ("chair.jpg", jpeg(), "image/jpeg")},
            data={"position": "center", "opacity": "0.7"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["x-watermarked"] == "true"

    def test_watermark_apply_paid_is_400(self, client, db, user_id, auth_headers):
        db.add_profile(user_id, subscription_tier="premium")

        response = client.post(
            "/api/watermark/apply",
            files={"file": ("chair.jpg", jpeg(), "image/jpeg")},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "WATERMARK_NOT_REQUIRED"

    def test_watermark_status(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)

        data = client.get("/api/watermark/status", headers=auth_headers(user_id)).json()

        assert data["watermark_required"] is True
        assert data["watermark_text"]


# =============================================================================
# Cron & Admin
# =============================================================================

class TestCronRoutes:

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-cron-secret"}])
    def test_secret_required(self, client, headers):
        response = client.post("/api/cron/free-account-reset", headers=headers)

        assert response.status_code == 401

    def test_free_account_reset(self, client, db):
        user = db.add_profile(cycle_started_at="2020-01-01T00:00:00+00:00")["id"]
        db.add_post(user)

        data = client.post("/api/cron/free-account-reset", headers=CRON).json()

        assert data["results"] == {"success": 1, "failed": 0}
        assert db.posts == {}

    def test_expire_subscriptions(self, client, db):
        user = db.add_profile(subscription_tier="premium", subscription_end_date="2020-01-01T00:00:00+00:00")["id"]

        data = client.post("/api/cron/expire-subscriptions", headers=CRON).json()

        assert data["results"] == {"expired": 1, "failed": 0}
        assert db.profiles[user]["subscription_tier"] == "free"


class TestAdminRoutes:

    def test_key_required(self, client, user_id):
        response = client.patch(f"/api/admin/profiles/{user_id}", json={"verified_seller": True})

        assert response.status_code == 401

    def test_update_profile(self, client, db, user_id):
        db.add_profile(user_id)

        response = client.patch(
            f"/api/admin/profiles/{user_id}",
            json={"subscription_tier": "business", "subscription_status": "active"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["subscription_tier"] == "business"

    def test_confirm_eft(self, client, db, user_id, auth_headers):
        db.add_profile(user_id)
        intent = client.post(
            "/api/payments/create",
            json={"tier": "business", "provider": "eft"},
            headers=auth_headers(user_id),
        ).json()

        response = client.post(f"/api/admin/payments/{intent['transaction_reference']}/confirm", headers=ADMIN)

        assert response.json()["profile_promoted"] is True
        assert db.profiles[user_id]["subscription_tier"] == "business"
