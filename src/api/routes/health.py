"""Health check endpoints for monitoring and deployment verification."""

import logging
import time
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentIdentity
from src.core.config import get_settings
from src.core.stripe import check_stripe_configuration
from src.core.supabase import check_database_connection
from src.schemas.auth import MeResponse
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _probe(name: str, check: Callable[[], Awaitable[dict[str, Any]]]) -> CheckResult:
    start_time = time.perf_counter()
    result = await check()
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        error=result.get("error"),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return 200 while the process is up. External dependencies are not checked."""
    return HealthResponse(status=HealthStatus.HEALTHY, environment=get_settings().app_env)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Checks Supabase connectivity and Stripe key configuration. Used for readiness probes.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of all dependencies.

    Without the database nothing works, and without both Stripe keys the
    service can neither start checkouts nor accept webhooks, so either
    failing makes the instance unready.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    readiness = ReadinessResponse(
        status=HealthStatus.HEALTHY,
        checks=[
            await _probe("database", check_database_connection),
            await _probe("stripe", check_stripe_configuration),
        ],
    )

    if readiness.failed:
        logger.warning("Readiness check failed: %s", ", ".join(readiness.failed))
        readiness.status = HealthStatus.UNHEALTHY
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return readiness


@router.get(
    "/health/auth",
    response_model=MeResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify authentication is working correctly.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Authentication required or invalid token"},
    },
)
async def authenticated_check(identity: CurrentIdentity) -> MeResponse:
    return MeResponse(user_id=identity.user_id, email=identity.email, authorities=identity.authorities)
