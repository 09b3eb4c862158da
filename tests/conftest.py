# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up test environment variables before any imports
# - In-memory Supabase double (tests/fakes.py) and payment gateways
# - A TestClient wired to the fakes, plus a helper to mint auth tokens
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("PUBLIC_BASE_URL", "https://a2z.test")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import time
import uuid

import pytest
from jose import jwt

from tests.fakes import FakeSupabaseClient

BASE_URL = "https://a2z.test"
PAYFAST_PASSPHRASE = "jt7NOE43FZPn"
OZOW_PRIVATE_KEY = "ozow-private-key"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def db():
    """Empty in-memory Supabase double."""
    return FakeSupabaseClient()


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def payfast():
    from lib.payfast import PayFastGateway

    return PayFastGateway(
        merchant_id="10000100",
        merchant_key="46f0cd694581a",
        base_url=BASE_URL,
        passphrase=PAYFAST_PASSPHRASE,
        is_test=True,
        valid_ip_ranges=["197.97.145.144/28", "41.74.179.192/27"],
    )


@pytest.fixture
def ozow():
    from lib.ozow import OzowGateway

    return OzowGateway(
        site_code="TSTSTE0001",
        private_key=OZOW_PRIVATE_KEY,
        base_url=BASE_URL,
        is_test=True,
    )


@pytest.fixture
def references():
    from core.services.payment_service import TransactionReferenceGenerator

    return TransactionReferenceGenerator(clock=lambda: 1718000000.0)


@pytest.fixture
def make_token():
    """Mint a Supabase-style HS256 access token."""
    from app.config import get_settings

    def _make(sub: str, email: str | None = "seller@example.com", expires_in: int = 3600, **claims) -> str:
        payload = {
            "sub": sub,
            "email": email,
            "aud": "authenticated",
            "role": "authenticated",
            "iat": int(time.time()),
            "exp": int(time.time()) + expires_in,
            **claims,
        }
        return jwt.encode(payload, get_settings().SUPABASE_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def published():
    """Events handed to the analytics queue during a test."""
    return []


@pytest.fixture
def client(db, payfast, ozow, references, published):
    """
    TestClient wired to the in-memory database.

    The lifespan is not run; app.state is populated with test doubles and
    the analytics publisher records into `published`.
    """
    from fastapi.testclient import TestClient

    from app.dependencies import get_analytics_service, get_supabase_client
    from app.main import app
    from core.services.analytics_service import AnalyticsService

    app.state.db = db
    app.state.payfast = payfast
    app.state.ozow = ozow
    app.state.references = references
    app.dependency_overrides[get_supabase_client] = lambda: db
    app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(db, publish=published.append)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_token):
    def _headers(sub: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(sub)}"}

    return _headers


@pytest.fixture
def payfast_itn():
    """Build a correctly signed PayFast ITN body."""
    from lib.payfast import generate_signature

    def _itn(reference: str, status: str = "COMPLETE", amount: str = "49.00", **fields) -> dict[str, str]:
        data = {
            "m_payment_id": reference,
            "pf_payment_id": "1089250",
            "payment_status": status,
            "item_name": "A2Z Premium Subscription",
            "amount_gross": amount,
            "amount_fee": "-2.30",
            "amount_net": str(round(float(amount) - 2.30, 2)),
            "custom_str1": "premium",
            "custom_str2": reference,
            "email_address": "seller@example.com",
            "merchant_id": "10000100",
            **fields,
        }
        data["signature"] = generate_signature(data, PAYFAST_PASSPHRASE)
        return data

    return _itn


@pytest.fixture
def ozow_notification():
    """Build a correctly hashed Ozow notify body."""
    from lib.ozow import NOTIFY_HASH_FIELDS, hash_check

    def _notify(reference: str, status: str = "Complete", amount: str = "49.00", **fields) -> dict[str, str]:
        data = {
            "SiteCode": "TSTSTE0001",
            "TransactionId": "b7f6b3d2-0001",
            "TransactionReference": reference,
            "Amount": amount,
            "Status": status,
            "Optional1": "",
            "Optional2": "",
            "Optional3": "",
            "Optional4": "",
            "Optional5": "",
            "CurrencyCode": "ZAR",
            "IsTest": "true",
            "StatusMessage": "Test transaction",
            **fields,
        }
        data["HashCheck"] = hash_check([data.get(f) for f in NOTIFY_HASH_FIELDS], OZOW_PRIVATE_KEY)
        return data

    return _notify
