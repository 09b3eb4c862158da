# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Sellr (A2Z) marketplace API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   poetry run uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.config import settings
from app.exceptions import (
    SellrException,
    sellr_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    admin,
    analytics,
    cron,
    health,
    payments,
    posts,
    profile,
    share,
    subscription,
    uploads,
    watermark,
    webhooks,
)
from core.services.payment_service import TransactionReferenceGenerator
from lib.ozow import OzowGateway
from lib.payfast import PayFastGateway
from lib.supabase_client import SupabaseClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def init_state(app: FastAPI) -> None:
    """Build the process-wide clients the request dependencies hand out."""
    app.state.db = SupabaseClient.from_settings(settings)
    app.state.payfast = PayFastGateway.from_settings(settings)
    app.state.ozow = OzowGateway.from_settings(settings)
    app.state.references = TransactionReferenceGenerator()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: build the Supabase client, payment gateways and reference generator
    - Shutdown: log
    """
    logger.info(f"Starting Sellr API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    logger.info(f"PayFast sandbox: {settings.PAYFAST_IS_TEST}, Ozow test: {settings.OZOW_IS_TEST}")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; cron endpoints will refuse requests")

    init_state(app)

    yield

    logger.info("Shutting down Sellr API")


# Create FastAPI application
app = FastAPI(
    title="Sellr API",
    description="""
## A2Z Marketplace API

Sellers post listings that buyers reach over WhatsApp.

### Plans

| Tier | Listings | Images | Retention | Monthly |
|------|----------|--------|-----------|---------|
| **Free** | 3 | 5 | 7 days (account reset weekly) | R0 |
| **Premium** | unlimited | 8 | 35 days | R49 (early adopter R29) |
| **Business** | unlimited | 20 | 60 days | R179 (early adopter R99) |

### Payments

1. `POST /api/payments/create` returns provider redirect data (PayFast, Ozow or EFT)
2. The provider calls `/api/webhooks/{provider}`
3. The plan is upgraded once the payment is confirmed
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Payments", "description": "Subscription payment intents"},
        {"name": "Webhooks", "description": "Payment provider callbacks"},
        {"name": "Posts", "description": "Listings and share links"},
        {"name": "Profile", "description": "Seller profiles and the free-account cycle"},
        {"name": "Subscription", "description": "Plans, limits and upgrades"},
        {"name": "Analytics", "description": "Listing interaction tracking"},
        {"name": "Media", "description": "Uploads and watermarking"},
        {"name": "Cron", "description": "Scheduled jobs (CRON_SECRET)"},
        {"name": "Admin", "description": "Administrator actions (ADMIN_API_KEY)"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rewrite the client address from X-Forwarded-For only for trusted proxies
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.FORWARDED_ALLOW_IPS)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(SellrException, sellr_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api"

app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])
app.include_router(payments.router, prefix=f"{API_PREFIX}/payments", tags=["Payments"])
app.include_router(webhooks.router, prefix=f"{API_PREFIX}/webhooks", tags=["Webhooks"])
app.include_router(cron.router, prefix=f"{API_PREFIX}/cron", tags=["Cron"])
app.include_router(posts.router, prefix=f"{API_PREFIX}/posts", tags=["Posts"])
app.include_router(share.router, prefix=f"{API_PREFIX}/share", tags=["Posts"])
app.include_router(profile.router, prefix=f"{API_PREFIX}/profile", tags=["Profile"])
app.include_router(subscription.router, prefix=f"{API_PREFIX}/subscription", tags=["Subscription"])
app.include_router(analytics.router, prefix=f"{API_PREFIX}/analytics", tags=["Analytics"])
app.include_router(uploads.router, prefix=f"{API_PREFIX}/uploads", tags=["Media"])
app.include_router(watermark.router, prefix=f"{API_PREFIX}/watermark", tags=["Media"])
app.include_router(admin.router, prefix=f"{API_PREFIX}/admin", tags=["Admin"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Sellr API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }
