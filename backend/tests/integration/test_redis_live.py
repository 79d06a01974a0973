"""
Integration tests against a real Redis server

Skipped unless REDIS_TEST_URL points at a disposable database,
e.g. REDIS_TEST_URL=redis://localhost:6379/15
"""
import os
import uuid

import pytest
import pytest_asyncio

from cache_facade.services.cache import CacheClient
from cache_facade.services.database import RedisManager


REDIS_TEST_URL = os.getenv("REDIS_TEST_URL")

pytestmark = pytest.mark.skipif(not REDIS_TEST_URL, reason="REDIS_TEST_URL is not set")


@pytest_asyncio.fixture
async def live_cache():
    """Connected client with a per-test key namespace"""
    manager = RedisManager(REDIS_TEST_URL, decode_responses=True)
    namespace = f"test:{uuid.uuid4().hex}"

    async with CacheClient(manager, bulk_delete_concurrency=8) as client:
        yield client, namespace
        await client.delete_from_pattern(f"{namespace}:*")


@pytest.mark.asyncio
async def test_round_trip(live_cache):
    cache, ns = live_cache

    assert await cache.set(f"{ns}:string", "hello world") is True
    assert await cache.get(f"{ns}:string") == "hello world"
    assert await cache.get(f"{ns}:missing") is None
    assert await cache.delete(f"{ns}:missing") == 0


@pytest.mark.asyncio
async def test_set_with_expiry(live_cache):
    cache, ns = live_cache

    await cache.set(f"{ns}:ttl", "expires soon", "EX", 30)
    ttl = await cache.ttl(f"{ns}:ttl")
    assert 0 < ttl <= 30


@pytest.mark.asyncio
async def test_params_round_trip(live_cache):
    cache, ns = live_cache

    await cache.set_from_params(f"{ns}:user", {"id": 1, "name": "a"}, "X")
    assert await cache.get_from_params(f"{ns}:user", {"name": "a", "id": 1}) == "X"


@pytest.mark.asyncio
async def test_delete_from_pattern(live_cache):
    cache, ns = live_cache

    await cache.set(f"{ns}:prefix:a", "1")
    await cache.set(f"{ns}:prefix:b", "2")
    await cache.set(f"{ns}:other:c", "3")

    report = await cache.delete_from_pattern(f"{ns}:prefix:*")

    assert sorted(report.deleted) == [f"{ns}:prefix:a", f"{ns}:prefix:b"]
    assert await cache.exists(f"{ns}:other:c") is True
