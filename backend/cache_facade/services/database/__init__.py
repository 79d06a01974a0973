"""
Database Services
=================
Redis connection handle and lifecycle signals.
"""

from cache_facade.services.database.redis_manager import (
    LifecycleEvent,
    RedisManager,
    translate_redis_error,
)


__all__ = [
    "LifecycleEvent",
    "RedisManager",
    "translate_redis_error",
]
