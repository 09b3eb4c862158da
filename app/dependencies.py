# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# The SupabaseClient, payment gateways and reference generator are built once
# in the application lifespan (app/main.py) and kept on `app.state`; the
# service factories below wrap them per request.
# =============================================================================

import hmac
import logging
from typing import Annotated, Any

from fastapi import Depends, Header, Request

from app.config import Settings, get_settings
from app.exceptions import AuthenticationError, InternalError
from core.services import (
    AnalyticsService,
    MediaService,
    PaymentService,
    PostService,
    ProfileService,
    ResetService,
    SubscriptionService,
    WebhookService,
)
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


# =============================================================================
# Shared Resources
# =============================================================================

def get_supabase_client(request: Request) -> SupabaseClient:
    """Return the process-wide Supabase client created at startup."""
    return request.app.state.db


SettingsDep = Annotated[Settings, Depends(get_settings)]
SupabaseDep = Annotated[SupabaseClient, Depends(get_supabase_client)]


def client_ip(request: Request) -> str | None:
    """
    Caller IP as seen by the server.

    Forwarding headers are never read here; ProxyHeadersMiddleware rewrites
    the peer address from X-Forwarded-For only when the request comes
    through a proxy listed in FORWARDED_ALLOW_IPS.
    """
    return request.client.host if request.client else None


ClientIPDep = Annotated[str | None, Depends(client_ip)]


def publish_analytics_event(payload: dict[str, Any]) -> None:
    """Hand an analytics event to the worker queue."""
    from workers.tasks import record_analytics_event

    record_analytics_event.delay(payload)


# =============================================================================
# Services
# =============================================================================

def get_payment_service(request: Request, db: SupabaseDep) -> PaymentService:
    state = request.app.state
    return PaymentService(db, state.references, state.payfast, state.ozow)


def get_webhook_service(request: Request, db: SupabaseDep, settings: SettingsDep) -> WebhookService:
    state = request.app.state
    return WebhookService(db, state.payfast, state.ozow, period_days=settings.SUBSCRIPTION_PERIOD_DAYS)


def get_reset_service(db: SupabaseDep, settings: SettingsDep) -> ResetService:
    return ResetService(db, cycle_days=settings.FREE_RESET_CYCLE_DAYS)


def get_profile_service(db: SupabaseDep, settings: SettingsDep) -> ProfileService:
    return ProfileService(db, period_days=settings.SUBSCRIPTION_PERIOD_DAYS)


def get_subscription_service(
    db: SupabaseDep,
    payments: Annotated[PaymentService, Depends(get_payment_service)],
) -> SubscriptionService:
    return SubscriptionService(db, payments)


def get_post_service(db: SupabaseDep, settings: SettingsDep) -> PostService:
    return PostService(db, base_url=settings.base_url)


def get_analytics_service(db: SupabaseDep) -> AnalyticsService:
    return AnalyticsService(db, publish=publish_analytics_event)


def get_media_service(db: SupabaseDep, settings: SettingsDep) -> MediaService:
    return MediaService(
        db,
        allowed_types=settings.allowed_content_types_list,
        max_bytes=settings.max_upload_size_bytes,
        watermark_text=settings.WATERMARK_TEXT,
    )


# =============================================================================
# Shared-Secret Guards
# =============================================================================

def _secret_matches(received: str | None, expected: str) -> bool:
    return received is not None and hmac.compare_digest(received.encode(), expected.encode())


def require_cron_secret(
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """
    Guard for scheduler-triggered endpoints: `Authorization: Bearer <CRON_SECRET>`.

    Raises:
        InternalError: If CRON_SECRET is not configured
        AuthenticationError: If the header is missing or wrong
    """
    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; refusing cron request")
        raise InternalError("Cron secret not configured", suggestion="Set CRON_SECRET in the environment")

    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not _secret_matches(token, settings.CRON_SECRET):
        logger.warning("Rejected cron request with missing or invalid secret")
        raise AuthenticationError("Unauthorized")


def require_admin_key(
    settings: SettingsDep,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """
    Guard for admin endpoints: `X-API-Key: <ADMIN_API_KEY>`.

    Raises:
        InternalError: If ADMIN_API_KEY is not configured
        AuthenticationError: If the header is missing or wrong
    """
    if not settings.ADMIN_API_KEY:
        logger.error("ADMIN_API_KEY is not configured; refusing admin request")
        raise InternalError("Admin key not configured", suggestion="Set ADMIN_API_KEY in the environment")
    if not _secret_matches(x_api_key, settings.ADMIN_API_KEY):
        logger.warning("Rejected admin request with missing or invalid API key")
        raise AuthenticationError("Invalid API key")


# Type aliases for dependency injection
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
WebhookServiceDep = Annotated[WebhookService, Depends(get_webhook_service)]
ResetServiceDep = Annotated[ResetService, Depends(get_reset_service)]
ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
PostServiceDep = Annotated[PostService, Depends(get_post_service)]
AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
MediaServiceDep = Annotated[MediaService, Depends(get_media_service)]
