"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from patissio import __version__
from patissio.api.dependencies import restrict_support_mode
from patissio.api.middleware import (
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
)
from patissio.api.routers import (
    auth_router,
    billing_router,
    client_router,
    health_router,
    notifications_router,
    patissier_router,
    public_router,
    superadmin_router,
    webhooks_router,
)
from patissio.api.schemas.errors import APIError, ErrorCode
from patissio.config.settings import Settings, get_settings
from patissio.core.logging import setup_logging
from patissio.db.config import close_db, init_db
from patissio.security.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
    RedisRateLimitStore,
)

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (useful for testing)

    Returns:
        Configured FastAPI application

    Example:
        # Testing
        app = create_app(settings=Settings(ENVIRONMENT="test", RATE_LIMIT_ENABLED=False))

        # Run with uvicorn
        uvicorn patissio.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Patissio API",
        description="Storefronts, orders and workshop bookings for pastry shops",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
        dependencies=[Depends(restrict_support_mode)],
    )

    # Dependencies read settings from here
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        InMemoryRateLimitStore(), enabled=settings.RATE_LIMIT_ENABLED
    )

    _configure_middleware(app, settings)
    _configure_exception_handlers(app)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool and the shared rate limit store for the app's lifetime."""
    settings: Settings = app.state.settings
    setup_logging(
        log_level=settings.log_level,
        json_format=settings.ENVIRONMENT == "production",
    )
    logger.info("app_starting", environment=settings.ENVIRONMENT, version=__version__)

    await init_db(settings)

    redis: Redis | None = None
    if settings.REDIS_URL:
        redis = Redis.from_url(settings.REDIS_URL, max_connections=settings.REDIS_MAX_CONNECTIONS)
        store: RateLimitStore = RedisRateLimitStore(redis)
        app.state.rate_limiter = RateLimiter(store, enabled=settings.RATE_LIMIT_ENABLED)
        logger.info("rate_limit_store_configured", backend="redis")

    yield

    logger.info("app_stopping")
    if redis is not None:
        await redis.aclose()
    await close_db()


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure the middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestContextMiddleware - Request id and the ContextVar context
    2. RequestLoggingMiddleware - One log line per request
    3. CORSMiddleware - Handles CORS (if configured)
    4. ErrorHandlingMiddleware - Converts exceptions to APIError responses

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    app.add_middleware(ErrorHandlingMiddleware)

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "Retry-After"],
        )

    app.add_middleware(RequestLoggingMiddleware)

    # Outermost so every log line and error body carries the request id
    app.add_middleware(RequestContextMiddleware)


def _configure_exception_handlers(app: FastAPI) -> None:
    """Answer request validation errors with the APIError body and a 400."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = str(getattr(request.state, "request_id", "unknown"))
        errors = [
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": error.get("msg"),
                "type": error.get("type"),
            }
            for error in exc.errors()
        ]
        body = APIError(
            error_code=ErrorCode.VALIDATION_ERROR.value,
            message="Request validation failed",
            details={"errors": errors},
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(
            status_code=400,
            content=body.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )


def _configure_routers(app: FastAPI) -> None:
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)

    app.include_router(auth_router)
    app.include_router(patissier_router)
    app.include_router(billing_router)
    app.include_router(client_router)
    app.include_router(public_router)
    app.include_router(notifications_router)
    app.include_router(superadmin_router)
    app.include_router(webhooks_router)


# Usage: uvicorn patissio.api.app:app
app = create_app()
