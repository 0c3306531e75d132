"""Schemas for the liveness and readiness probes."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness answer: the process is up and serving."""

    status: HealthStatus = Field(..., description="Overall status")
    version: str = Field(..., description="Deployed API version")
    timestamp: datetime = Field(..., description="When the probe ran (UTC)")


class ComponentHealth(BaseModel):
    """Outcome of probing one backing service."""

    status: HealthStatus
    backend: str | None = Field(None, description="Which implementation answered")
    message: str | None = None
    latency_ms: float | None = None


class HealthDetailResponse(HealthResponse):
    """Readiness answer covering the database and the rate limit store.

    The overall status is unhealthy when the database fails and degraded
    when only the rate limit store does.
    """

    database: ComponentHealth
    rate_limiter: ComponentHealth

    model_config = {"json_schema_extra": {"example": {
        "status": "healthy",
        "version": "0.1.0",
        "timestamp": "2026-03-02T08:30:00Z",
        "database": {"status": "healthy", "backend": "postgresql", "latency_ms": 2.1},
        "rate_limiter": {"status": "healthy", "backend": "redis", "latency_ms": 0.4},
    }}}
