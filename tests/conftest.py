"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures.store_factory import FailingStore, FakeClock, InMemoryStore  # noqa: E402


# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (see pyproject.toml)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Settings for tests, isolated from any local .env file.
    """
    from cachegate.core.config.settings import Settings

    return Settings(
        _env_file=None,
        REDIS_URL=None,
        ENVIRONMENT="test",
        CACHE_KEY_PREFIX="cachegate:cache:",
        CACHE_DEFAULT_TTL=60,
        RATE_LIMIT_WINDOW_SECONDS=60,
        RATE_LIMIT_PER_CLIENT=3,
        RATE_LIMIT_GLOBAL=100,
    )


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def clock():
    """Manually advanced clock shared by the in-memory store and tracker."""
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    """In-memory store with Redis-like TTL, sorted set and hash semantics."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def failing_store():
    """Store whose every operation raises CacheKeyError."""
    return FailingStore()


# ============================================================================
# Gate Fixtures
# ============================================================================


@pytest.fixture
def gate(memory_store, test_settings):
    """CacheGate backed by the in-memory store."""
    from cachegate.gate import CacheGate

    return CacheGate(memory_store, settings=test_settings)


@pytest.fixture
def disabled_gate(test_settings):
    """CacheGate in No-Op mode."""
    from cachegate.gate import CacheGate

    return CacheGate.disabled(test_settings)
