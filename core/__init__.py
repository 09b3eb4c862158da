# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the marketplace's business logic:
# - models/: Pydantic schemas for data validation
# - services/: listings, tiers, payments, reconciliation, resets, media
#
# Services take a SupabaseClient (lib/supabase_client.py) in their
# constructor and do not import FastAPI or Celery, so the API routes and
# the workers share them and tests can hand them an in-memory double.
# =============================================================================
