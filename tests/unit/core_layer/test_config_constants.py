"""
Unit Tests for Configuration Constants

Store key segments, envelope format and header names are part of the wire
contract with other deployments sharing the store.
"""

import pytest

from cachegate.core.config import constants
from cachegate.core.config.constants import Stage


@pytest.mark.unit
class TestWireConstants:
    """Values other processes depend on."""

    def test_key_segments(self):
        assert constants.DEFAULT_KEY_PREFIX == "cachegate:cache:"
        assert constants.REDIS_KEY_VERSION == "v"
        assert constants.REDIS_KEY_RATE_LIMIT == "rl"
        assert constants.REDIS_KEY_ABUSE_SCORES == "abuse:z"
        assert constants.REDIS_KEY_ABUSE_DETAIL == "abuse:h"

    def test_envelope(self):
        assert constants.ENVELOPE_TAG_FIELD == "tag"
        assert constants.ENVELOPE_VALUE_FIELD == "value"
        assert constants.ENVELOPE_TAG == 1

    def test_degraded_response_headers(self):
        assert constants.HEADER_RATE_LIMITED == "x-rate-limited"
        assert constants.HEADER_CACHE == "x-cache"
        assert constants.HEADER_RETRY_AFTER == "retry-after"


@pytest.mark.unit
class TestStage:
    """Stage identifiers used in log events."""

    def test_stage_values_are_unique(self):
        values = [stage.value for stage in Stage]
        assert len(values) == len(set(values))

    def test_stage_is_str_enum(self):
        assert Stage.CACHE_LOOKUP == "CACHE.2_LOOKUP"
