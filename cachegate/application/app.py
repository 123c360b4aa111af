"""
FastAPI Application Factory

Wires the cache gate into an ASGI application: the lifespan builds the gate
(connected or disabled) and stores it on ``app.state.cache_gate``; handlers
render rate-limit and gate errors; the admin router exposes the abuse
leaderboard and store health.

Usage:
    from cachegate.application.app import create_app

    app = create_app()

    @app.get("/posts/{slug}")
    async def read_post(slug: str, request: Request, guard: RequestGuardDep):
        return await guard.serve(request, "posts", {"slug": slug}, 60, lambda: load_post(slug))
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cachegate.application.api.guard import rate_limit_exception_handler
from cachegate.application.api.routes.admin import router as admin_router
from cachegate.core.config.constants import HEADER_REQUEST_ID
from cachegate.core.config.settings import get_settings
from cachegate.core.exceptions import CacheGateError, RateLimitExceededError
from cachegate.core.logging.logger import clear_request_id, get_logger, set_request_id, setup_logging
from cachegate.gate import create_cache_gate

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting cache gate service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    gate = await create_cache_gate(settings)
    app.state.cache_gate = gate
    logger.info("Application startup complete", cache_enabled=gate.enabled)

    try:
        yield
    finally:
        logger.info("Shutting down application")
        await gate.aclose()
        logger.info("Application shutdown complete")


# ============================================================================
# Exception Handlers
# ============================================================================


async def gate_exception_handler(request: Request, exc: CacheGateError) -> JSONResponse:
    """Handle cache gate exceptions that escaped a route."""
    logger.error(
        f"Cache gate exception: {exc.message}",
        error_type=type(exc).__name__,
        request_id=exc.request_id,
    )
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: exc.request_id or ""},
    )


# ============================================================================
# Middleware
# ============================================================================


async def request_id_middleware(request: Request, call_next):
    """
    Inject a request ID into every request for log correlation.
    """
    request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
    set_request_id(request_id)

    try:
        response = await call_next(request)
        response.headers[HEADER_REQUEST_ID] = request_id
        return response
    finally:
        clear_request_id()


# ============================================================================
# Application Factory
# ============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Versioned cache, rate limiter and abuse tracker",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    # RateLimitExceededError is a CacheGateError; the more specific handler wins
    app.add_exception_handler(RateLimitExceededError, rate_limit_exception_handler)
    app.add_exception_handler(CacheGateError, gate_exception_handler)

    app.include_router(admin_router)

    return app
