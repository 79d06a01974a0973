"""
Cache Services
==============
Redis cache façade, key derivation and bulk invalidation.
"""

from cache_facade.services.cache.keys import CacheKeys, CanonicalValue, cache_keys
from cache_facade.services.cache.invalidation import BulkDeletionReport, BulkInvalidator
from cache_facade.services.cache.redis_client import CacheClient


__all__ = [
    "CacheClient",
    "CacheKeys",
    "CanonicalValue",
    "cache_keys",
    "BulkDeletionReport",
    "BulkInvalidator",
]
