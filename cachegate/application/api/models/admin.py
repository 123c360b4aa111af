"""
Admin API Response Models

Pydantic models for the operational endpoints under ``/admin``.
"""

from typing import Any

from pydantic import BaseModel, Field


class SuspiciousClientModel(BaseModel):
    """One leaderboard entry."""

    id: str = Field(..., description="Client identifier (usually an IP address)")
    score: float = Field(..., ge=0, description="Recorded offenses")
    lastSeen: str = Field(..., description="ISO-8601 UTC time of the last offense, or empty")
    counts: dict[str, int | float] = Field(
        default_factory=dict,
        description="Per-bucket (b:<bucket>) and per-kind (k:<kind>) offense counters",
    )


class SuspiciousIpsResponse(BaseModel):
    """Response for GET /admin/security/suspicious-ips."""

    enabled: bool = Field(..., description="False when the gate runs without a store")
    items: list[SuspiciousClientModel] = Field(default_factory=list)


class CacheHealthResponse(BaseModel):
    """Response for GET /admin/cache/health."""

    status: str = Field(..., description="healthy, unhealthy or disabled")
    enabled: bool
    connected: bool = False
    ping_latency_ms: float | None = None
    pool_size: int = 0
    pool_in_use: int = 0
    error: str | None = None
    environment: str = Field(..., description="Deployment environment from settings")
    version: str = Field(..., description="Application version")
    cache: dict[str, Any] = Field(default_factory=dict, description="Cache hit/miss statistics")
