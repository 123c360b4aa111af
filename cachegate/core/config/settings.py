"""
Centralized Configuration Module using Pydantic Settings

Type-safe, environment-based configuration for the cache gate. Settings are
read from environment variables or a ``.env`` file and validated at startup.

Leaving ``REDIS_URL`` unset is a supported configuration: the gate then runs
in No-Op mode (always compute, always allow, no abuse tracking).
"""

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cachegate.core.config.constants import (
    ABUSE_DETAIL_TTL,
    ABUSE_LIST_DEFAULT,
    ABUSE_LIST_MAX,
    ABUSE_MAX_TRACKED,
    DEFAULT_KEY_PREFIX,
)
from cachegate.core.exceptions.base import ConfigurationError


class RedisSettings(BaseSettings):
    """
    Redis connection configuration.

    Every store call is bounded by the socket timeouts below; a timeout is
    handled exactly like an unreachable store.
    """

    REDIS_URL: str | None = Field(default=None, description="Redis URL; unset disables the store")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=0.5, description="Per-command timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=2.0, description="Connect timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """Versioned cache configuration."""

    CACHE_KEY_PREFIX: str = Field(default=DEFAULT_KEY_PREFIX, description="Prefix for every store key")
    CACHE_DEFAULT_TTL: int = Field(default=60, description="Default cache entry TTL in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class RateLimitSettings(BaseSettings):
    """
    Fixed-window rate limiting defaults.

    Callers check a per-client bucket and a global bucket for each operation.
    """

    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60, description="Window length in seconds")
    RATE_LIMIT_PER_CLIENT: int = Field(default=120, description="Requests per client per window")
    RATE_LIMIT_GLOBAL: int = Field(default=3000, description="Requests across all clients per window")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class AbuseSettings(BaseSettings):
    """Abuse tracker retention and listing bounds."""

    ABUSE_MAX_TRACKED: int = Field(default=ABUSE_MAX_TRACKED, description="Leaderboard size cap")
    ABUSE_DETAIL_TTL: int = Field(default=ABUSE_DETAIL_TTL, description="Detail hash TTL in seconds")
    ABUSE_LIST_DEFAULT: int = Field(default=ABUSE_LIST_DEFAULT, description="Default listing size")
    ABUSE_LIST_MAX: int = Field(default=ABUSE_LIST_MAX, description="Hard maximum listing size")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """Logging configuration for structured logging."""

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="cachegate", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    Usage:
        from cachegate.core.config.settings import get_settings

        settings = get_settings()
        prefix = settings.cache.CACHE_KEY_PREFIX
        cap = settings.abuse.ABUSE_MAX_TRACKED
    """

    # Redis settings
    REDIS_URL: str | None = Field(default=None, description="Redis URL; unset disables the store")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=0.5, description="Per-command timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=2.0, description="Connect timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Cache settings
    CACHE_KEY_PREFIX: str = Field(default=DEFAULT_KEY_PREFIX, description="Prefix for every store key")
    CACHE_DEFAULT_TTL: int = Field(default=60, description="Default cache entry TTL in seconds")

    # Rate limiting settings
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60, description="Window length in seconds")
    RATE_LIMIT_PER_CLIENT: int = Field(default=120, description="Requests per client per window")
    RATE_LIMIT_GLOBAL: int = Field(default=3000, description="Requests across all clients per window")

    # Abuse tracking settings
    ABUSE_MAX_TRACKED: int = Field(default=ABUSE_MAX_TRACKED, description="Leaderboard size cap")
    ABUSE_DETAIL_TTL: int = Field(default=ABUSE_DETAIL_TTL, description="Detail hash TTL in seconds")
    ABUSE_LIST_DEFAULT: int = Field(default=ABUSE_LIST_DEFAULT, description="Default listing size")
    ABUSE_LIST_MAX: int = Field(default=ABUSE_LIST_MAX, description="Hard maximum listing size")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="cachegate", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator(
        "CACHE_DEFAULT_TTL",
        "RATE_LIMIT_WINDOW_SECONDS",
        "RATE_LIMIT_PER_CLIENT",
        "RATE_LIMIT_GLOBAL",
        "ABUSE_MAX_TRACKED",
        "ABUSE_DETAIL_TTL",
        "ABUSE_LIST_DEFAULT",
        "ABUSE_LIST_MAX",
    )
    @classmethod
    def validate_positive(cls, v, info):
        """Reject zero or negative TTLs, limits and caps."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @field_validator("REDIS_URL")
    @classmethod
    def blank_url_is_unset(cls, v):
        """Treat an empty REDIS_URL the same as a missing one."""
        if v is not None and not v.strip():
            return None
        return v

    # Nested configuration views
    @property
    def redis(self) -> 'RedisSettings':
        """Get Redis settings."""
        return RedisSettings(
            REDIS_URL=self.REDIS_URL,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            CACHE_KEY_PREFIX=self.CACHE_KEY_PREFIX,
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL
        )

    @property
    def rate_limit(self) -> 'RateLimitSettings':
        """Get rate limit settings."""
        return RateLimitSettings(
            RATE_LIMIT_WINDOW_SECONDS=self.RATE_LIMIT_WINDOW_SECONDS,
            RATE_LIMIT_PER_CLIENT=self.RATE_LIMIT_PER_CLIENT,
            RATE_LIMIT_GLOBAL=self.RATE_LIMIT_GLOBAL
        )

    @property
    def abuse(self) -> 'AbuseSettings':
        """Get abuse tracker settings."""
        return AbuseSettings(
            ABUSE_MAX_TRACKED=self.ABUSE_MAX_TRACKED,
            ABUSE_DETAIL_TTL=self.ABUSE_DETAIL_TTL,
            ABUSE_LIST_DEFAULT=self.ABUSE_LIST_DEFAULT,
            ABUSE_LIST_MAX=self.ABUSE_LIST_MAX
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT
        )

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Settings are plain configuration; the store connection itself is never a
    module global and is injected wherever it is needed.
    """
    global _settings

    if _settings is None:
        _settings = _load_settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance

    Raises:
        ConfigurationError: If an environment value fails validation
    """
    global _settings
    _settings = _load_settings()
    return _settings


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ConfigurationError.from_exception(
            e, message=f"Invalid configuration: {', '.join(fields)}", fields=fields
        ) from e
