"""
Core Module

Foundational components: configuration, logging, exceptions and the store
adapter protocol.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheGateError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    RateLimitExceededError,
)
from .interfaces import StoreAdapter, StoreCommand
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_stage",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "CacheGateError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "RateLimitExceededError",
    "StoreAdapter",
    "StoreCommand",
]
