# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Monitoring and load-balancer checks. These are plain FastAPI routes and
# bypass the storefront Router, sessions and templates.
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()

VERSION = "1.0.0"


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
    translations: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    checks: ChecksResponse
    timestamp: str


class LivenessResponse(BaseModel):
    """Liveness check response."""
    status: str
    timestamp: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Basic health status for load balancers and monitoring."""
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        environment=request.app.state.settings.ENVIRONMENT,
        version=VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_check(request: Request):
    """
    Whether the store can serve pages.

    Pings the database and checks that translation tables were loaded.
    """
    database = request.app.state.db
    translator = request.app.state.translator

    checks = ChecksResponse(
        database="healthy" if database.ping() else "unhealthy",
        translations="healthy" if translator.languages() else "missing",
    )
    ready = checks.database == "healthy" and checks.translations == "healthy"

    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        timestamp=_now(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """Whether the process is alive (used for restart decisions)."""
    return LivenessResponse(status="alive", timestamp=_now())
