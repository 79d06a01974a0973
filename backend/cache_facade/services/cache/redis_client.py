"""
Redis Cache Client
==================
Thin asynchronous façade over a Redis connection.

Provides:
- get / set / delete / list_keys on raw keys
- *_from_params variants that derive the key from structured parameters
- Best-effort bulk invalidation by glob pattern

Values are stored and returned as-is. Store failures are translated
into the cache error taxonomy and always propagated; nothing is
retried or swallowed here.
"""

from typing import Iterable, List, NoReturn, Optional, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cache_facade.core.config import Settings, get_settings
from cache_facade.core.exceptions import StoreUnavailableError
from cache_facade.core.logging_config import get_logger
from cache_facade.services.cache.invalidation import BulkDeletionReport, BulkInvalidator
from cache_facade.services.cache.keys import CacheKeys, CanonicalValue
from cache_facade.services.database.redis_manager import (
    LifecycleEvent,
    RedisManager,
    translate_redis_error,
)


logger = get_logger(__name__)

OptionValue = Union[str, int]


class CacheClient:
    """
    Redis Cache Client

    Constructed with an explicitly owned RedisManager. Use it as an
    async context manager to tie the connection lifetime to a block:

        async with CacheClient.from_settings() as cache:
            await cache.set_from_params("user", {"id": 1}, "payload")
    """

    def __init__(
        self,
        manager: RedisManager,
        bulk_delete_concurrency: Optional[int] = None,
    ):
        self._manager = manager
        if bulk_delete_concurrency is None:
            bulk_delete_concurrency = get_settings().CACHE_BULK_DELETE_CONCURRENCY
        self._invalidator = BulkInvalidator(self, concurrency=bulk_delete_concurrency)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheClient":
        """Build a client and its connection handle from settings"""
        settings = settings or get_settings()
        return cls(
            RedisManager.from_settings(settings),
            bulk_delete_concurrency=settings.CACHE_BULK_DELETE_CONCURRENCY,
        )

    @property
    def manager(self) -> RedisManager:
        return self._manager

    async def __aenter__(self) -> "CacheClient":
        await self._manager.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._manager.disconnect()

    def _get_client(self) -> Redis:
        return self._manager.get_client()

    async def _raise_store_error(self, operation: str, key: Optional[str], exc: RedisError) -> NoReturn:
        error = translate_redis_error(exc, key=key)
        logger.error(f"Redis {operation} error for key '{key}': {exc}")
        if isinstance(error, StoreUnavailableError):
            await self._manager.emit(LifecycleEvent.CONNECTION_ERROR, error)
        raise error from exc

    # ========================================================================
    # STRING OPERATIONS
    # ========================================================================

    async def set(
        self,
        key: str,
        value: str,
        option: Optional[str] = None,
        option_value: Optional[OptionValue] = None,
    ) -> bool:
        """
        Set value by key, overwriting any previous value

        Args:
            key: Cache key
            value: Value to store, not interpreted
            option: Store write qualifier (e.g. "EX", "PX"), passed through
            option_value: Argument of the qualifier (e.g. 60)

        Returns:
            bool: True if the store acknowledged the write, False if a
                store-side condition prevented it
        """
        client = self._get_client()

        qualified = option is not None and option_value is not None
        if not qualified and (option is not None or option_value is not None):
            logger.warning(
                f"Ignoring unpaired set option for key '{key}': "
                f"option={option!r}, option_value={option_value!r}"
            )

        try:
            if qualified:
                result = await client.execute_command("SET", key, value, option, option_value)
            else:
                result = await client.set(key, value)
        except RedisError as e:
            await self._raise_store_error("set", key, e)

        logger.debug(f"Cache set: {key} ({option} {option_value})" if qualified else f"Cache set: {key}")
        return bool(result)

    async def set_from_params(
        self,
        key: str,
        params: CanonicalValue,
        value: str,
        option: Optional[str] = None,
        option_value: Optional[OptionValue] = None,
    ) -> bool:
        """Set value under the key derived from key + params"""
        return await self.set(CacheKeys.derive_key(key, params), value, option, option_value)

    async def get(self, key: str) -> Optional[str]:
        """
        Get value by key

        Args:
            key: Cache key

        Returns:
            Optional[str]: Stored value, None if the key does not exist
        """
        client = self._get_client()

        try:
            value = await client.get(key)
        except RedisError as e:
            await self._raise_store_error("get", key, e)

        if value is None:
            logger.debug(f"Cache miss: {key}")
        else:
            logger.debug(f"Cache hit: {key}")
        return value

    async def get_from_params(self, key: str, params: CanonicalValue) -> Optional[str]:
        """Get the value stored under the key derived from key + params"""
        return await self.get(CacheKeys.derive_key(key, params))

    async def delete(self, key: str) -> int:
        """
        Delete key

        Args:
            key: Cache key to delete

        Returns:
            int: 1 if the key was removed, 0 if it did not exist
        """
        client = self._get_client()

        try:
            removed = await client.delete(key)
        except RedisError as e:
            await self._raise_store_error("delete", key, e)

        if removed:
            logger.debug(f"Cache delete: {key}")
        return int(removed)

    async def delete_from_params(self, key: str, params: CanonicalValue) -> int:
        """Delete the key derived from key + params"""
        return await self.delete(CacheKeys.derive_key(key, params))

    async def exists(self, key: str) -> bool:
        """Check if key exists"""
        client = self._get_client()

        try:
            result = await client.exists(key)
        except RedisError as e:
            await self._raise_store_error("exists", key, e)

        return result > 0

    async def ttl(self, key: str) -> int:
        """
        Get remaining TTL for key

        Returns:
            int: TTL in seconds, -1 if no expiry, -2 if key doesn't exist
        """
        client = self._get_client()

        try:
            return await client.ttl(key)
        except RedisError as e:
            await self._raise_store_error("ttl", key, e)

    # ========================================================================
    # PATTERN OPERATIONS
    # ========================================================================

    async def list_keys(self, pattern: str = "*", count: Optional[int] = None) -> List[str]:
        """
        Get all keys matching a glob pattern

        Uses SCAN so the server is never blocked. SCAN may report a key
        more than once; duplicates are removed. Keys come back as str
        even when the connection does not decode responses; a key that
        is not valid UTF-8 is kept as bytes so it can still be deleted.

        Args:
            pattern: Key pattern (e.g. "user:*")
            count: SCAN batch size hint

        Returns:
            List[str]: Matching keys, in no particular order
        """
        client = self._get_client()

        try:
            keys = [_decode_key(key) async for key in client.scan_iter(match=pattern, count=count)]
        except RedisError as e:
            await self._raise_store_error("scan", pattern, e)

        return list(dict.fromkeys(keys))

    async def delete_from_pattern(
        self,
        pattern: str,
        report: Optional[BulkDeletionReport] = None,
    ) -> BulkDeletionReport:
        """
        Delete every key matching pattern

        Keys are listed once, then deleted one by one. Keys written
        after the listing may survive. Pass a report to keep track of
        pending keys if the call may be cancelled.

        Returns:
            BulkDeletionReport: Outcome of every delete attempt

        Raises:
            PartialBulkFailure: If at least one delete failed
            StoreError: If listing the keys failed
        """
        return await self._invalidator.delete_by_pattern(pattern, report=report)

    async def delete_from_patterns(self, patterns: Iterable[str]) -> List[BulkDeletionReport]:
        """Invalidate several patterns, reporting all failures together"""
        return await self._invalidator.delete_by_patterns(patterns)


def _decode_key(key: Union[str, bytes]) -> Union[str, bytes]:
    if isinstance(key, bytes):
        try:
            return key.decode("utf-8")
        except UnicodeDecodeError:
            return key
    return key
