"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .store_factory import FailingStore, FakeClock, InMemoryStore

__all__ = ["FakeClock", "InMemoryStore", "FailingStore"]
