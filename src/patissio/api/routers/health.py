"""Liveness and readiness probes used by the load balancer."""

import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from patissio import __version__
from patissio.api.dependencies import get_db
from patissio.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from patissio.security.rate_limiter import RateLimiter

router = APIRouter(tags=["health"])
logger = structlog.get_logger()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Answers 200 while the process serves requests. No authentication.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=__version__,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Readiness probe",
    description=(
        "Runs a query against the database and pings the rate limit store. "
        "No authentication."
    ),
)
async def health_db(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthDetailResponse:
    """Probe each backing service and fold the results into one status."""
    database = await _probe(
        lambda: db.execute(text("SELECT 1")),
        backend=db.get_bind().dialect.name,
        errors=(SQLAlchemyError, OSError),
        component="database",
    )
    rate_limiter = await _check_rate_limiter(request)

    if database.status is HealthStatus.UNHEALTHY:
        overall = HealthStatus.UNHEALTHY
    elif rate_limiter.status is HealthStatus.UNHEALTHY:
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.HEALTHY

    return HealthDetailResponse(
        status=overall,
        version=__version__,
        timestamp=datetime.now(UTC),
        database=database,
        rate_limiter=rate_limiter,
    )


async def _check_rate_limiter(request: Request) -> ComponentHealth:
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or not limiter.enabled:
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Rate limiting disabled")
    return await _probe(
        limiter.store.ping,
        backend=limiter.store.backend,
        errors=(RedisError, OSError),
        component="rate_limiter",
    )


async def _probe(
    call: Callable[[], Awaitable[object]],
    *,
    backend: str,
    errors: tuple[type[Exception], ...],
    component: str,
) -> ComponentHealth:
    """Time one round trip to a backing service.

    Only the listed error types count as an outage; anything else propagates
    to the error middleware.
    """
    start = time.perf_counter()
    try:
        await call()
    except errors as exc:
        logger.error(
            "health_probe_failed",
            component=component,
            backend=backend,
            error_type=type(exc).__name__,
        )
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            backend=backend,
            message=str(exc)[:100],
            latency_ms=_elapsed_ms(start),
        )
    return ComponentHealth(
        status=HealthStatus.HEALTHY, backend=backend, latency_ms=_elapsed_ms(start)
    )


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
