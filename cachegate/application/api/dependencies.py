"""
FastAPI Dependency Injection Module

Route handlers receive the cache gate and settings through ``Depends`` rather
than importing module globals. The gate is built once in the application
lifespan and stored on ``app.state.cache_gate``.

Example:
    @router.get("/posts/{slug}")
    async def read_post(slug: str, guard: RequestGuardDep, request: Request):
        return await guard.serve(request, "posts", {"slug": slug}, 60, lambda: load_post(slug))
"""

from typing import Annotated

from fastapi import Depends, Request

from cachegate.application.api.guard import RequestGuard
from cachegate.core.config.settings import Settings, get_settings
from cachegate.core.logging.logger import get_logger
from cachegate.gate import CacheGate

logger = get_logger(__name__)


def get_cache_gate(request: Request) -> CacheGate:
    """
    Retrieve the CacheGate from application state.

    When the lifespan did not run (e.g. a TestClient used without a context
    manager) a disabled gate is installed so routes keep working in No-Op
    mode.
    """
    gate = getattr(request.app.state, "cache_gate", None)
    if gate is None:
        logger.warning("Cache gate not initialized, installing disabled gate")
        gate = CacheGate.disabled()
        request.app.state.cache_gate = gate
    return gate


def get_request_guard(gate: Annotated[CacheGate, Depends(get_cache_gate)]) -> RequestGuard:
    """Request guard bound to the application's gate."""
    return RequestGuard(gate)


# ============================================================================
# TYPE ALIASES
# ============================================================================

CacheGateDep = Annotated[CacheGate, Depends(get_cache_gate)]

RequestGuardDep = Annotated[RequestGuard, Depends(get_request_guard)]

SettingsDep = Annotated[Settings, Depends(get_settings)]
