"""
Store Adapter Protocol

The capability interface the cache, rate limiter and abuse tracker depend on.
Any atomic key-value store offering get/set-with-TTL, atomic increment,
expiry, sorted sets and hash counters can back the gate.

Implementations:
- RedisStore: production Redis adapter (cachegate.infrastructure.store)
- InMemoryStore: test double (tests/test_fixtures/store_factory.py)

Every operation raises ``CacheError`` (or a subclass) on failure; callers
decide how to degrade.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class StoreCommand:
    """
    One queued store operation for ``StoreAdapter.pipeline``.

    ``operation`` is the name of a StoreAdapter method, e.g.
    ``StoreCommand("hash_increment", ("abuse:h:1.2.3.4", "k:ip_block", 1))``.
    """

    operation: str
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class StoreAdapter(Protocol):
    """Protocol defining the store operations used by the gate."""

    async def connect(self) -> None:
        """
        Establish connection to the store.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    async def ping(self) -> bool:
        """Return True if the store answers."""
        ...

    async def get_string(self, key: str) -> str | None:
        """Get a string value, or None when absent."""
        ...

    async def set_string(
        self, key: str, value: str, ttl_seconds: int | None = None, nx: bool = False
    ) -> bool:
        """
        Set a string value.

        Args:
            key: Store key
            value: Value to store
            ttl_seconds: Expiry in seconds (optional)
            nx: Only set if the key does not exist

        Returns:
            bool: True if the value was written
        """
        ...

    async def increment(self, key: str) -> int:
        """Atomically increment an integer counter and return the new value."""
        ...

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set a key's TTL."""
        ...

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when the key has no expiry, -2 when absent."""
        ...

    async def sorted_set_increment(self, name: str, member: str, delta: float) -> float:
        """Atomically add ``delta`` to a member's score and return the new score."""
        ...

    async def sorted_set_range_desc(
        self, name: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        """Members ranked ``start``..``stop`` (inclusive) by score, highest first."""
        ...

    async def sorted_set_cardinality(self, name: str) -> int:
        """Number of members in a sorted set."""
        ...

    async def sorted_set_trim_lowest(self, name: str, count_to_remove: int) -> int:
        """Remove the ``count_to_remove`` lowest-scoring members."""
        ...

    async def sorted_set_keep_highest(self, name: str, keep: int) -> int:
        """Atomically remove every member ranked below the top ``keep``."""
        ...

    async def hash_set(self, key: str, fields: dict[str, str]) -> int:
        """Set several hash fields."""
        ...

    async def hash_increment(self, key: str, field: str, delta: int) -> int:
        """Atomically increment a hash field and return the new value."""
        ...

    async def hash_get_all(self, key: str) -> dict[str, str]:
        """All fields of a hash (empty dict when absent)."""
        ...

    async def pipeline(
        self, commands: list[StoreCommand], raise_on_error: bool = True
    ) -> list[Any]:
        """
        Execute several commands together.

        Stores with pipelining send the batch in one round trip; others run
        the commands in order. Results are returned in command order.

        With ``raise_on_error=False`` a failed command yields its exception
        in place of a result instead of failing the whole batch.
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Health status and connection metrics."""
        ...
