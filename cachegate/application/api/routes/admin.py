"""
Admin Routes

Operational endpoints for the cache gate:

- GET /admin/security/suspicious-ips   abuse leaderboard
- GET /admin/cache/health              store health and cache statistics

These endpoints carry no authentication of their own; mount them behind the
deployment's admin auth.
"""

from fastapi import APIRouter, Query

from cachegate.application.api.dependencies import CacheGateDep, SettingsDep
from cachegate.application.api.models.admin import CacheHealthResponse, SuspiciousIpsResponse
from cachegate.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/security/suspicious-ips",
    response_model=SuspiciousIpsResponse,
    summary="List suspicious clients",
)
async def list_suspicious_ips(
    gate: CacheGateDep,
    limit: int | None = Query(default=None, description="Maximum entries (clamped to 1..1000)"),
) -> SuspiciousIpsResponse:
    """Top offenders by score, highest first. Empty when the gate is disabled."""
    clients = await gate.list_suspicious_ips(limit)
    return SuspiciousIpsResponse(
        enabled=gate.enabled,
        items=[client.to_dict() for client in clients],
    )


@router.get(
    "/cache/health",
    response_model=CacheHealthResponse,
    summary="Cache store health",
)
async def cache_health(gate: CacheGateDep, settings: SettingsDep) -> CacheHealthResponse:
    health = await gate.health_check()
    return CacheHealthResponse(
        **health,
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )
