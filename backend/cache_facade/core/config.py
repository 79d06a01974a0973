"""
Configuration Management
========================
Loads and validates environment variables using Pydantic Settings.
Provides type-safe access to the Redis connection settings used to
build the cache façade.

The façade itself never parses configuration; this module only turns
the environment into connection options that are passed through to
redis-py untouched.
"""

from functools import lru_cache
from typing import Optional, Dict, Any
from urllib.parse import quote

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings

    All settings are loaded from environment variables or .env file.
    Pydantic validates types and required fields automatically.
    """

    # ========================================================================
    # APPLICATION
    # ========================================================================
    APP_NAME: str = "Cache Facade"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # ========================================================================
    # REDIS
    # ========================================================================
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    REDIS_PASSWORD: Optional[str] = Field(default=None)
    REDIS_MAX_CONNECTIONS: int = Field(default=50, ge=1)
    REDIS_DECODE_RESPONSES: bool = Field(default=True)
    REDIS_SOCKET_TIMEOUT: Optional[float] = Field(default=5.0)
    REDIS_SOCKET_CONNECT_TIMEOUT: Optional[float] = Field(default=5.0)

    # ========================================================================
    # BULK INVALIDATION
    # ========================================================================
    CACHE_BULK_DELETE_CONCURRENCY: int = Field(default=32, ge=1, le=1024)

    # ========================================================================
    # PYDANTIC CONFIGURATION
    # ========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra fields in .env
    )

    # ========================================================================
    # COMPUTED PROPERTIES
    # ========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENVIRONMENT.lower() == "production"

    @computed_field
    @property
    def redis_connection_url(self) -> str:
        """
        Get Redis connection URL with password if configured

        Returns:
            str: Complete Redis connection URL
        """
        if self.REDIS_PASSWORD:
            # Format: redis://[user@]localhost:6379/0 or rediss://...
            scheme, _, rest = self.REDIS_URL.partition("://")
            user = ""
            if "@" in rest:
                userinfo, rest = rest.rsplit("@", 1)
                user = userinfo.split(":")[0]
            password = quote(self.REDIS_PASSWORD, safe="")
            return f"{scheme}://{user}:{password}@{rest}"
        return self.REDIS_URL

    # ========================================================================
    # HELPERS
    # ========================================================================

    def get_redis_options(self) -> Dict[str, Any]:
        """
        Connection pool options handed to redis-py as-is

        Returns:
            Dict[str, Any]: Keyword arguments for ConnectionPool.from_url
        """
        return {
            "max_connections": self.REDIS_MAX_CONNECTIONS,
            "decode_responses": self.REDIS_DECODE_RESPONSES,
            "socket_timeout": self.REDIS_SOCKET_TIMEOUT,
            "socket_connect_timeout": self.REDIS_SOCKET_CONNECT_TIMEOUT,
        }

    def mask_secret(self, secret: Optional[str], show_chars: int = 4) -> str:
        """
        Mask a secret for safe logging

        Args:
            secret: The secret to mask
            show_chars: Number of characters to show at the start

        Returns:
            str: Masked secret
        """
        if not secret:
            return "NOT_SET"

        if len(secret) <= show_chars:
            return "*" * len(secret)

        return secret[:show_chars] + "*" * (len(secret) - show_chars)

    def to_safe_dict(self) -> Dict[str, Any]:
        """
        Export configuration as dictionary with secrets masked

        Returns:
            Dict[str, Any]: Safe configuration dictionary
        """
        config = self.model_dump()
        config["REDIS_PASSWORD"] = self.mask_secret(config.get("REDIS_PASSWORD"))
        config["redis_connection_url"] = self.safe_redis_url
        return config

    @property
    def safe_redis_url(self) -> str:
        """Redis URL without credentials, for logs"""
        if "@" not in self.REDIS_URL:
            return self.REDIS_URL
        scheme, _, rest = self.REDIS_URL.partition("://")
        return f"{scheme}://{rest.split('@')[-1]}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance

    Uses lru_cache to ensure settings are loaded only once.

    Returns:
        Settings: Validated settings instance
    """
    return Settings()
