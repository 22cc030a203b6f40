# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Provides health check endpoints for monitoring and load balancers.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from lib.utils import utc_now_iso

router = APIRouter()

API_VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    """Individual dependency checks."""
    database: str
    storage: str
    stripe: str
    segmind: str
    broker: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    checks: ChecksResponse
    timestamp: str


class LivenessResponse(BaseModel):
    status: str
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health status for load balancers and monitoring."""
    return HealthResponse(
        status="healthy",
        timestamp=utc_now_iso(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check():
    """
    Whether the service can serve requests.

    Database and storage must be reachable. Stripe and Segmind are reported
    as configured or not, and the Celery broker as reachable or not; the API
    serves requests without any of them.
    """
    from lib.supabase_client import SupabaseClient

    checks = ChecksResponse(
        database="unknown",
        storage="unknown",
        stripe="configured" if settings.stripe_enabled else "not configured",
        segmind="configured" if settings.segmind_enabled else "not configured",
        broker="unknown",
    )

    try:
        client = SupabaseClient.get_client()
        client.table("characters").select("id").limit(1).execute()
        checks.database = "healthy"
    except Exception as e:
        checks.database = f"unhealthy: {str(e)[:50]}"

    try:
        client = SupabaseClient.get_client()
        client.storage.list_buckets()
        checks.storage = "healthy"
    except Exception as e:
        checks.storage = f"unhealthy: {str(e)[:50]}"

    try:
        import redis

        redis.from_url(settings.REDIS_URL, socket_connect_timeout=2).ping()
        checks.broker = "healthy"
    except Exception as e:
        checks.broker = f"unreachable: {str(e)[:50]}"

    all_healthy = checks.database == "healthy" and checks.storage == "healthy"

    return ReadinessResponse(
        status="ready" if all_healthy else "degraded",
        checks=checks,
        timestamp=utc_now_iso(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """Whether the process is alive; used for restart decisions."""
    return LivenessResponse(status="alive", timestamp=utc_now_iso())
