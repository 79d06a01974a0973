"""
Shared fixtures for cache tests

FakeRedis implements the subset of redis.asyncio.Redis the cache
façade talks to, backed by a dict.
"""
import fnmatch
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from cache_facade.services.cache import CacheClient
from cache_facade.services.database import RedisManager


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        self.commands = []
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def info(self) -> Dict[str, Any]:
        return {
            "redis_version": "7.2.4",
            "connected_clients": 1,
            "used_memory_human": "1.00M",
            "total_connections_received": 3,
            "total_commands_processed": len(self.commands),
        }

    async def get(self, key: str) -> Optional[str]:
        self.commands.append(("GET", key))
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.commands.append(("SET", key, value))
        self.data[key] = value
        self.expiry.pop(key, None)
        return True

    async def execute_command(self, *args: Any) -> Optional[bool]:
        self.commands.append(args)
        name, key, value, option, option_value = args
        assert name == "SET"
        option = option.upper()
        if option in ("EX", "PX"):
            self.data[key] = value
            self.expiry[key] = int(option_value) if option == "EX" else int(option_value) // 1000
            return True
        raise AssertionError(f"unsupported option {option}")

    async def delete(self, *keys: str) -> int:
        self.commands.append(("DEL",) + keys)
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)

    async def ttl(self, key: str) -> int:
        if key not in self.data:
            return -2
        return self.expiry.get(key, -1)

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def cache(fake_redis):
    """Connected cache client backed by FakeRedis"""
    manager = RedisManager(client=fake_redis)
    async with CacheClient(manager, bulk_delete_concurrency=4) as client:
        yield client
