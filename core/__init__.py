# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the platform's business logic:
# - constants.py: Prices, limits, fees and prompt fragments
# - models/: Pydantic request schemas and enums
# - services/: One static-method service class per feature
#
# Services raise app.exceptions errors and never touch FastAPI request
# objects, so they run the same from routers and Celery tasks.
# =============================================================================
