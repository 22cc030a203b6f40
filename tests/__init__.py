# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Persona API:
# - conftest.py: FakeSupabase, auth overrides, Stripe / Segmind mocks
# - test_<feature>.py: Service and route tests per feature
#
# Run tests with: pytest
# =============================================================================
