# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database and storage
# - payfast.py / ozow.py: Payment gateway codecs (signing and verification)
# - payments.py: Types shared by the gateway codecs
# - images.py: Pillow optimisation and watermarking
# - text.py: Slugs, contact numbers and share messages
# - utils.py: UUID and time helpers
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.payments import GatewaySignatureError, ProviderNotification
from lib.utils import normalize_uuid, parse_timestamp, utcnow

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Payments
    "GatewaySignatureError",
    "ProviderNotification",
    # Utils
    "normalize_uuid",
    "parse_timestamp",
    "utcnow",
]
