"""Meta API endpoints (health checks), mounted at the root path."""

from fastapi import APIRouter, Request

from app.api.openapi_responses import rate_limited_response
from app.api.schemas.meta_response_models import HealthResponse
from app.core.rate_limit import HEALTH_RATE_LIMIT, limit, rate_limit_ip_key
from app.db.base import utcnow

router = APIRouter()


def _healthy() -> HealthResponse:
    return HealthResponse(status="healthy", timestamp=utcnow(), server="running")


@router.get(
    "/health",
    summary="Health check",
    response_model=HealthResponse,
    responses=rate_limited_response(),
)
@limit(HEALTH_RATE_LIMIT, key_func=rate_limit_ip_key)
def health(request: Request) -> HealthResponse:
    """Check the health of the application; answers even when the database is down."""
    return _healthy()


@router.get(
    "/healthz",
    summary="Liveness probe",
    response_model=HealthResponse,
    responses=rate_limited_response(),
)
@limit(HEALTH_RATE_LIMIT, key_func=rate_limit_ip_key)
def healthz(request: Request) -> HealthResponse:
    return _healthy()


@router.get(
    "/ready",
    summary="Readiness probe",
    response_model=HealthResponse,
    responses=rate_limited_response(),
)
@limit(HEALTH_RATE_LIMIT, key_func=rate_limit_ip_key)
def ready(request: Request) -> HealthResponse:
    return _healthy()
