"""
Redis Connection Manager
========================
Handles Redis connection lifecycle using redis-py (async).

A RedisManager is an explicitly owned handle: it is created by the
caller, injected into the cache client, and torn down with
disconnect() or by leaving its ``async with`` block.
"""

import inspect
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from cache_facade.core.config import Settings
from cache_facade.core.exceptions import (
    StoreError,
    StoreProtocolError,
    StoreUnavailableError,
)
from cache_facade.core.logging_config import get_logger


logger = get_logger(__name__)


class LifecycleEvent(str, Enum):
    """Informational connection signals"""
    CONNECTED = "connected"
    CONNECTION_ERROR = "connection_error"


LifecycleListener = Callable[[LifecycleEvent, Optional[BaseException]], Any]


def translate_redis_error(exc: RedisError, key: Optional[str] = None) -> StoreError:
    """
    Map a redis-py exception onto the cache error taxonomy

    Args:
        exc: Exception raised by redis-py
        key: Key involved in the failed command, if any

    Returns:
        StoreError: StoreUnavailableError or StoreProtocolError
    """
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return StoreUnavailableError(f"Redis unavailable: {exc}", key=key)
    return StoreProtocolError(f"Redis error: {exc}", key=key)


class RedisManager:
    """
    Redis Connection Manager

    Manages the Redis connection lifecycle:
    - Connection pool creation from pass-through options
    - Health checks
    - Lifecycle signals (connected / connection error)
    - Graceful shutdown
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[Redis] = None,
        **options: Any,
    ):
        """
        Args:
            url: Redis URL; when omitted, options are used as-is
            client: Already built client; its lifetime stays with the caller
            options: Connection pool options passed to redis-py untouched
        """
        self._url = url
        self._options = options
        self._pool: Optional[redis.ConnectionPool] = None
        self._owns_client = client is None
        self.client: Optional[Redis] = client
        # Set only once a PING has succeeded
        self._connected = False
        self._listeners: Dict[LifecycleEvent, List[LifecycleListener]] = {
            event: [] for event in LifecycleEvent
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisManager":
        """Build a manager from application settings"""
        return cls(settings.redis_connection_url, **settings.get_redis_options())

    # ========================================================================
    # LIFECYCLE SIGNALS
    # ========================================================================

    def subscribe(self, event: LifecycleEvent, listener: LifecycleListener) -> None:
        """
        Register a listener for a lifecycle signal

        Listeners receive the event and the triggering exception (None
        for CONNECTED). They may be plain functions or coroutines.
        """
        self._listeners[LifecycleEvent(event)].append(listener)

    async def emit(self, event: LifecycleEvent, error: Optional[BaseException] = None) -> None:
        if event is LifecycleEvent.CONNECTED:
            logger.debug("Redis is connected")
        else:
            logger.error(f"Redis connection error: {error}")

        for listener in list(self._listeners[event]):
            try:
                result = listener(event, error)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # Listeners are diagnostics only
                logger.exception(f"Lifecycle listener failed for {event.value}")

    # ========================================================================
    # CONNECTION
    # ========================================================================

    async def connect(self) -> None:
        """
        Connect to Redis and verify with PING

        Raises:
            StoreUnavailableError: If Redis cannot be reached
            StoreProtocolError: If Redis rejects the handshake
        """
        if self.client is None:
            if self._url:
                self._pool = redis.ConnectionPool.from_url(self._url, **self._options)
            else:
                self._pool = redis.ConnectionPool(**self._options)
            self.client = redis.Redis(connection_pool=self._pool)

        try:
            await self.client.ping()
        except RedisError as e:
            self._connected = False
            error = translate_redis_error(e)
            await self.emit(LifecycleEvent.CONNECTION_ERROR, error)
            await self.disconnect()
            raise error from e

        self._connected = True
        await self.emit(LifecycleEvent.CONNECTED)

    async def disconnect(self) -> None:
        """
        Disconnect from Redis

        Clients injected by the caller are left open.
        """
        self._connected = False
        if not self._owns_client:
            return

        if self.client is not None:
            logger.info("Closing Redis connection...")
            await self.client.aclose()
            self.client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._connected and self.client is not None

    def get_client(self) -> Redis:
        """
        Get the Redis client instance

        Returns:
            Redis: Redis client

        Raises:
            StoreUnavailableError: If not connected
        """
        if not self.is_connected:
            raise StoreUnavailableError("Redis not connected. Call connect() first.")
        return self.client

    async def __aenter__(self) -> "RedisManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ========================================================================
    # DIAGNOSTICS
    # ========================================================================

    async def health_check(self) -> bool:
        """
        Check if Redis connection is healthy

        Returns:
            bool: True if healthy, False otherwise
        """
        if self.client is None:
            return False

        try:
            result = await self.client.ping()
            return bool(result)
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def get_info(self) -> Dict[str, Any]:
        """
        Get Redis server information

        Returns:
            dict: Redis server info

        Raises:
            StoreError: If the INFO command fails
        """
        client = self.get_client()
        try:
            info = await client.info()
        except RedisError as e:
            raise translate_redis_error(e) from e

        return {
            "version": info.get("redis_version"),
            "connected_clients": info.get("connected_clients"),
            "used_memory_human": info.get("used_memory_human"),
            "total_connections_received": info.get("total_connections_received"),
            "total_commands_processed": info.get("total_commands_processed"),
        }
