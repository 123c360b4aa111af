"""
Request Guard

Orchestrates one cacheable read behind the rate limiter:

    request ── check per-client + global buckets
        ├── allowed ──> wrap_json (fetch or compute) ──> 200
        └── limited ──> record abuse ──> peek
                ├── stale hit ──> 200 + x-rate-limited / x-cache / retry-after
                └── nothing   ──> RateLimitExceededError ──> 429

Limited clients keep getting the last cached value where one exists, so a
burst of legitimate traffic degrades to stale reads instead of errors.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cachegate.core.config.constants import (
    ABUSE_KIND_RATE_LIMIT,
    ABUSE_UNKNOWN_CLIENT,
    CACHE_HIT,
    ERROR_CODE_RATE_LIMITED,
    HEADER_CACHE,
    HEADER_FORWARDED_FOR,
    HEADER_RATE_LIMITED,
    HEADER_RETRY_AFTER,
    Stage,
)
from cachegate.core.exceptions import RateLimitExceededError
from cachegate.core.logging.logger import get_logger, get_request_id, log_stage
from cachegate.gate import CacheGate
from cachegate.infrastructure.cache.versioned_cache import CacheHit

logger = get_logger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Client identity for rate limiting and abuse tracking.

    Priority: first X-Forwarded-For hop > socket peer > "unknown"
    """
    forwarded = request.headers.get(HEADER_FORWARDED_FOR, "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    if request.client and request.client.host:
        return request.client.host

    return ABUSE_UNKNOWN_CLIENT


class RequestGuard:
    """Rate-limited, cache-backed response builder for one gate."""

    def __init__(self, gate: CacheGate):
        self._gate = gate

    async def serve(
        self,
        request: Request,
        namespace: str,
        fingerprint: Any,
        ttl_seconds: int | None,
        compute_fn: Callable[[], Any | Awaitable[Any]],
        bucket: str | None = None,
        per_client_limit: int | None = None,
        global_limit: int | None = None,
        window_seconds: int | None = None,
    ) -> JSONResponse:
        """
        Serve ``compute_fn``'s value through the cache, subject to rate limits.

        ``bucket`` defaults to ``namespace``. Limits and window default to
        the configured RATE_LIMIT_* values.

        Raises:
            RateLimitExceededError: Limited and nothing stale to serve
        """
        bucket = bucket or namespace
        client_id = get_client_identifier(request)

        rules = self._gate.default_rules(
            bucket,
            client_id,
            per_client_limit=per_client_limit,
            global_limit=global_limit,
            window_seconds=window_seconds,
        )
        decision = await self._gate.check_rules(rules)

        if decision.allowed:
            value = await self._gate.wrap_json(namespace, fingerprint, ttl_seconds, compute_fn)
            return JSONResponse(content=jsonable_encoder(value))

        retry_after = decision.retry_after
        await self._gate.record_suspicious(client_id, bucket, ABUSE_KIND_RATE_LIMIT)

        stale = await self._gate.peek(namespace, fingerprint)
        if isinstance(stale, CacheHit):
            log_stage(
                logger,
                Stage.RATE_LIMIT_CHECK,
                "Serving stale value to rate-limited client",
                client_id=client_id,
                bucket=bucket,
                retry_after=retry_after,
            )
            return JSONResponse(
                content=stale.value,
                headers={
                    HEADER_RATE_LIMITED: "1",
                    HEADER_CACHE: CACHE_HIT,
                    HEADER_RETRY_AFTER: str(retry_after),
                },
            )

        raise RateLimitExceededError(
            "Rate limit exceeded",
            retry_after=retry_after,
            request_id=get_request_id(),
        ).with_context(
            bucket=bucket,
            client_id=client_id,
            exceeded_limits=[result.limit for result in decision.exceeded],
        )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render a rate-limited request with nothing stale to serve as HTTP 429."""
    return JSONResponse(
        status_code=429,
        content={
            "error": ERROR_CODE_RATE_LIMITED,
            "message": exc.message,
            "retry_after": exc.retry_after,
        },
        headers={HEADER_RETRY_AFTER: str(exc.retry_after)},
    )
