# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Sellr API:
# - fakes.py: in-memory Supabase double used by every test
# - test_models.py / test_tier_policy.py: schemas, limits and prices
# - test_gateways.py / test_text.py: PayFast and Ozow codecs, text helpers
# - test_*_service.py: one module per core service
# - test_routes.py: HTTP endpoints through FastAPI's TestClient
# - test_workers.py: Celery tasks and schedule
#
# Run tests with: poetry run pytest
# =============================================================================
