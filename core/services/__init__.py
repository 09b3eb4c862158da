# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .analytics_service import AnalyticsService
from .media_service import MediaService
from .payment_service import PaymentService, TransactionReferenceGenerator
from .post_service import PostService
from .profile_service import ProfileService
from .reset_service import ResetService
from .subscription_service import SubscriptionService
from .webhook_service import WebhookService

__all__ = [
    "AnalyticsService",
    "MediaService",
    "PaymentService",
    "TransactionReferenceGenerator",
    "PostService",
    "ProfileService",
    "ResetService",
    "SubscriptionService",
    "WebhookService",
]
