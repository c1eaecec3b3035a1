"""Response schemas shared by every router: health probes and error bodies."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

API_VERSION = "0.1.0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness probe body. Never touches Supabase or Stripe."""

    status: HealthStatus = Field(description="Current health status")
    environment: str | None = Field(default=None, description="APP_ENV the process was started with")
    version: str = Field(default=API_VERSION, description="API version")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")


class CheckResult(BaseModel):
    """Outcome of probing one dependency (database, stripe)."""

    name: str = Field(description="Dependency name")
    healthy: bool = Field(description="Whether the dependency is usable")
    latency_ms: float | None = Field(default=None, description="Time spent on the probe")
    error: str | None = Field(default=None, description="Why the dependency is unusable")


class ReadinessResponse(BaseModel):
    """Readiness probe body; served with 503 when any check fails."""

    status: HealthStatus = Field(description="Healthy only if every check passed")
    checks: list[CheckResult] = Field(default_factory=list, description="Per-dependency results")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")

    @property
    def failed(self) -> list[str]:
        return [check.name for check in self.checks if not check.healthy]


class ErrorDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    loc: list[str | int] | None = Field(default=None, description="Path to the offending field")
    msg: str = Field(description="Human-readable error message")
    type: str = Field(description="Error type identifier")


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the error middleware.

    ``error`` is the machine-readable category (``invalid_transition``,
    ``precondition_failed``, ``invalid_signature`` ...); clients branch on it
    rather than on ``message``.
    """

    error: str = Field(description="Error category")
    message: str = Field(description="Human-readable error description")
    details: list[ErrorDetail] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="X-Request-ID of the failing request")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build the body from the parts of an APIError.

        Args:
            error_type: Error category.
            message: Human-readable description.
            details: Optional raw detail dicts with loc/msg/type keys.
            request_id: Optional request id for tracing.
        """
        return cls(
            error=error_type,
            message=message,
            details=[
                ErrorDetail(loc=d.get("loc"), msg=d.get("msg", str(d)), type=d.get("type", "error"))
                for d in details
            ]
            if details
            else None,
            request_id=request_id,
        )
