"""
Redis Store Adapter with Connection Pooling

Architecture:
    RedisStore (StoreAdapter implementation)
        ├── ConnectionManager (connection lifecycle, bounded timeouts)
        └── HealthMonitor (ping latency and pool metrics)

Every command runs with the pool's socket timeout, so no call blocks
indefinitely. Redis, socket and timeout failures are logged and re-raised as
``CacheKeyError``; the components above the adapter decide how to degrade.
"""

import asyncio
import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from cachegate.core.config.constants import Stage
from cachegate.core.config.settings import RedisSettings
from cachegate.core.exceptions import CacheConnectionError, CacheKeyError
from cachegate.core.interfaces.store import StoreCommand
from cachegate.core.logging.logger import get_logger

logger = get_logger(__name__)

# Failures treated as "store unavailable" for a single operation.
# The pool decodes replies as UTF-8, so foreign binary values fail decoding.
STORE_FAILURES = (RedisError, OSError, asyncio.TimeoutError, UnicodeDecodeError)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages the Redis connection pool.

    Pool Configuration:
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT (bounds every command)
    - Connect timeout: REDIS_SOCKET_CONNECT_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    """

    def __init__(self, settings: RedisSettings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Create the pool and verify it with a PING.

        Raises:
            CacheConnectionError: If no URL is configured or the store does not answer
        """
        if self._is_connected and self._client:
            return self._client

        if not self._settings.REDIS_URL:
            raise CacheConnectionError(message="REDIS_URL is not configured")

        try:
            self._pool = ConnectionPool.from_url(
                self._settings.REDIS_URL,
                max_connections=self._settings.REDIS_MAX_CONNECTIONS,
                socket_timeout=self._settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=self._settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                health_check_interval=self._settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage=Stage.STORE_CONNECT.value,
                url=self._settings.REDIS_URL,
                max_connections=self._settings.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (*STORE_FAILURES, ValueError) as e:
            logger.error(
                "Failed to connect to Redis",
                stage=Stage.STORE_CONNECT.value,
                url=self._settings.REDIS_URL,
                error=str(e),
            )
            await self.disconnect()
            raise CacheConnectionError.from_exception(
                e,
                message=f"Failed to connect to Redis: {e}",
            ) from e

    async def disconnect(self) -> None:
        """Close the client and every pooled connection."""
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

        logger.info("Redis disconnected", stage=Stage.STORE_DISCONNECT.value)

    async def ping(self) -> bool:
        """Return True if the store answers a PING."""
        if not (self._client and self._is_connected):
            return False
        try:
            await self._client.ping()
        except STORE_FAILURES as e:
            logger.warning("Redis ping failed", stage=Stage.STORE_OPERATION.value, error=str(e))
            return False
        return True

    def get_client(self) -> redis.Redis | None:
        """Get the Redis client instance."""
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        """Get the connection pool instance."""
        return self._pool

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected


# =============================================================================
# LAYER 2: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """Reports ping latency and pool utilization."""

    def __init__(self, connection_manager: ConnectionManager):
        self._conn_mgr = connection_manager

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on the Redis connection.

        Returns:
            Dict with health status and pool metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "pool_size": 0,
            "pool_in_use": 0,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)

            pool = self._conn_mgr.get_pool()
            if pool:
                health["pool_size"] = pool.max_connections
                if hasattr(pool, "_in_use_connections"):
                    health["pool_in_use"] = len(pool._in_use_connections)

        except STORE_FAILURES as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 3: PUBLIC API
# =============================================================================


class RedisStore:
    """
    Redis implementation of the StoreAdapter protocol.

    Usage:
        store = RedisStore(settings.redis)
        await store.connect()

        count = await store.increment("cachegate:cache:rl:search:1.2.3.4")
        await store.expire("cachegate:cache:rl:search:1.2.3.4", 60)
    """

    def __init__(self, settings: RedisSettings):
        self._conn_mgr = ConnectionManager(settings)
        self._health_monitor = HealthMonitor(self._conn_mgr)

    @property
    def _client(self) -> redis.Redis:
        client = self._conn_mgr.get_client()
        if client is None:
            raise CacheKeyError(message="Redis client is not connected")
        return client

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            CacheConnectionError: If connection fails
        """
        await self._conn_mgr.connect()

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        await self._conn_mgr.disconnect()

    async def ping(self) -> bool:
        """Check Redis connection health."""
        return await self._conn_mgr.ping()

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on the Redis connection."""
        return await self._health_monitor.health_check()

    # -------------------------------------------------------------------------
    # String and Counter Operations
    # -------------------------------------------------------------------------

    async def get_string(self, key: str) -> str | None:
        """Get value from Redis."""
        try:
            return await self._client.get(key)
        except STORE_FAILURES as e:
            logger.error("Redis GET failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis GET failed: {e}", details={"key": key}) from e

    async def set_string(
        self, key: str, value: str, ttl_seconds: int | None = None, nx: bool = False
    ) -> bool:
        """Set value in Redis, optionally with a TTL and SET NX semantics."""
        try:
            result = await self._client.set(key, value, ex=ttl_seconds, nx=nx)
            return bool(result)
        except STORE_FAILURES as e:
            logger.error("Redis SET failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis SET failed: {e}", details={"key": key}) from e

    async def increment(self, key: str) -> int:
        """Increment a counter."""
        try:
            return int(await self._client.incr(key))
        except STORE_FAILURES as e:
            logger.error("Redis INCR failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis INCR failed: {e}", details={"key": key}) from e

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set TTL on a key."""
        try:
            return bool(await self._client.expire(key, ttl_seconds))
        except STORE_FAILURES as e:
            logger.error("Redis EXPIRE failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis EXPIRE failed: {e}", details={"key": key}) from e

    async def ttl(self, key: str) -> int:
        """TTL in seconds, -1 if no TTL, -2 if key doesn't exist."""
        try:
            return int(await self._client.ttl(key))
        except STORE_FAILURES as e:
            logger.error("Redis TTL failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis TTL failed: {e}", details={"key": key}) from e

    # -------------------------------------------------------------------------
    # Sorted Set Operations (abuse leaderboard)
    # -------------------------------------------------------------------------

    async def sorted_set_increment(self, name: str, member: str, delta: float) -> float:
        """Add ``delta`` to a member's score."""
        try:
            return float(await self._client.zincrby(name, delta, member))
        except STORE_FAILURES as e:
            logger.error("Redis ZINCRBY failed", stage=Stage.STORE_OPERATION.value, name=name, error=str(e))
            raise CacheKeyError(message=f"Redis ZINCRBY failed: {e}", details={"name": name}) from e

    async def sorted_set_range_desc(
        self, name: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        """Members by descending score, with scores."""
        try:
            pairs = await self._client.zrevrange(name, start, stop, withscores=True)
            return [(member, float(score)) for member, score in pairs]
        except STORE_FAILURES as e:
            logger.error("Redis ZREVRANGE failed", stage=Stage.STORE_OPERATION.value, name=name, error=str(e))
            raise CacheKeyError(message=f"Redis ZREVRANGE failed: {e}", details={"name": name}) from e

    async def sorted_set_cardinality(self, name: str) -> int:
        """Number of members."""
        try:
            return int(await self._client.zcard(name))
        except STORE_FAILURES as e:
            logger.error("Redis ZCARD failed", stage=Stage.STORE_OPERATION.value, name=name, error=str(e))
            raise CacheKeyError(message=f"Redis ZCARD failed: {e}", details={"name": name}) from e

    async def sorted_set_trim_lowest(self, name: str, count_to_remove: int) -> int:
        """Remove the lowest-ranked members."""
        if count_to_remove <= 0:
            return 0
        try:
            return int(await self._client.zremrangebyrank(name, 0, count_to_remove - 1))
        except STORE_FAILURES as e:
            logger.error(
                "Redis ZREMRANGEBYRANK failed", stage=Stage.STORE_OPERATION.value, name=name, error=str(e)
            )
            raise CacheKeyError(
                message=f"Redis ZREMRANGEBYRANK failed: {e}", details={"name": name}
            ) from e

    async def sorted_set_keep_highest(self, name: str, keep: int) -> int:
        """Remove everything below the top ``keep`` members in one command."""
        try:
            return int(await self._client.zremrangebyrank(name, 0, -(keep + 1)))
        except STORE_FAILURES as e:
            logger.error(
                "Redis ZREMRANGEBYRANK failed", stage=Stage.STORE_OPERATION.value, name=name, error=str(e)
            )
            raise CacheKeyError(
                message=f"Redis ZREMRANGEBYRANK failed: {e}", details={"name": name}
            ) from e

    # -------------------------------------------------------------------------
    # Hash Operations (abuse detail)
    # -------------------------------------------------------------------------

    async def hash_set(self, key: str, fields: dict[str, str]) -> int:
        """Set hash fields."""
        try:
            return int(await self._client.hset(key, mapping=fields))
        except STORE_FAILURES as e:
            logger.error("Redis HSET failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis HSET failed: {e}", details={"key": key}) from e

    async def hash_increment(self, key: str, field: str, delta: int) -> int:
        """Increment a hash field."""
        try:
            return int(await self._client.hincrby(key, field, delta))
        except STORE_FAILURES as e:
            logger.error(
                "Redis HINCRBY failed", stage=Stage.STORE_OPERATION.value, key=key, field=field, error=str(e)
            )
            raise CacheKeyError(
                message=f"Redis HINCRBY failed: {e}", details={"key": key, "field": field}
            ) from e

    async def hash_get_all(self, key: str) -> dict[str, str]:
        """Get all hash fields."""
        try:
            return await self._client.hgetall(key)
        except STORE_FAILURES as e:
            logger.error("Redis HGETALL failed", stage=Stage.STORE_OPERATION.value, key=key, error=str(e))
            raise CacheKeyError(message=f"Redis HGETALL failed: {e}", details={"key": key}) from e

    # -------------------------------------------------------------------------
    # Pipeline Operations
    # -------------------------------------------------------------------------

    async def pipeline(
        self, commands: list[StoreCommand], raise_on_error: bool = True
    ) -> list[Any]:
        """
        Execute commands in a single MULTI/EXEC round trip.

        Results are returned raw, in command order. With
        ``raise_on_error=False`` a command error is returned in its slot.
        The batch holds one pooled connection however many commands it has.
        """
        if not commands:
            return []

        try:
            pipe = self._client.pipeline(transaction=True)
            for command in commands:
                _queue_command(pipe, command)
            return await pipe.execute(raise_on_error=raise_on_error)
        except STORE_FAILURES as e:
            operations = [command.operation for command in commands]
            logger.error(
                "Redis pipeline failed",
                stage=Stage.STORE_OPERATION.value,
                operations=operations,
                error=str(e),
            )
            raise CacheKeyError(
                message=f"Redis pipeline failed: {e}", details={"operations": operations}
            ) from e


def _queue_command(pipe, command: StoreCommand) -> None:
    """Translate a StoreCommand into the matching redis-py pipeline call."""
    args, kwargs = command.args, command.kwargs
    queue = {
        "get_string": lambda key: pipe.get(key),
        "set_string": lambda key, value, ttl_seconds=None, nx=False: pipe.set(
            key, value, ex=ttl_seconds, nx=nx
        ),
        "increment": lambda key: pipe.incr(key),
        "expire": lambda key, ttl_seconds: pipe.expire(key, ttl_seconds),
        "ttl": lambda key: pipe.ttl(key),
        "sorted_set_increment": lambda name, member, delta: pipe.zincrby(name, delta, member),
        "sorted_set_range_desc": lambda name, start, stop: pipe.zrevrange(
            name, start, stop, withscores=True
        ),
        "sorted_set_cardinality": lambda name: pipe.zcard(name),
        "sorted_set_trim_lowest": lambda name, count_to_remove: pipe.zremrangebyrank(
            name, 0, count_to_remove - 1
        ),
        "sorted_set_keep_highest": lambda name, keep: pipe.zremrangebyrank(name, 0, -(keep + 1)),
        "hash_set": lambda key, fields: pipe.hset(key, mapping=fields),
        "hash_increment": lambda key, field, delta: pipe.hincrby(key, field, delta),
        "hash_get_all": lambda key: pipe.hgetall(key),
    }.get(command.operation)

    if queue is None:
        raise CacheKeyError(
            message=f"Unsupported pipeline operation: {command.operation}",
            details={"operation": command.operation},
        )
    queue(*args, **kwargs)
