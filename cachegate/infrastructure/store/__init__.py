"""
Store Module

Redis-backed implementation of the StoreAdapter protocol.
"""

from .redis_store import ConnectionManager, HealthMonitor, RedisStore

__all__ = [
    "ConnectionManager",
    "HealthMonitor",
    "RedisStore",
]
