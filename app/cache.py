"""Redis-backed cache

Thin pass-through memoization layer: string keys, JSON values, explicit
TTLs in seconds. Also holds the token blacklist and refresh tokens.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from app.config import settings

logger = structlog.get_logger()


def product_key(product_id) -> str:
    return f"product:{product_id}"


def products_key(organization_id, query: dict) -> str:
    return f"products:{organization_id}:{json.dumps(query, sort_keys=True, default=str)}"


def products_pattern(organization_id) -> str:
    return f"products:{organization_id}:*"


def refresh_token_key(user_id) -> str:
    return f"refresh_token:{user_id}"


def blacklist_key(token: str) -> str:
    return f"blacklist:{token}"


def user_activity_key(user_id) -> str:
    return f"user_activity:{user_id}"


def daily_summary_key(organization_id, day) -> str:
    return f"daily_summary:{organization_id}:{day}"


class Cache:
    """JSON cache over a ``redis.asyncio`` client"""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "Cache":
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            await self.client.set(key, value, ex=ttl)
        else:
            await self.client.set(key, value)

    async def exists(self, key: str) -> bool:
        return bool(await self.client.exists(key))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern (SCAN, never KEYS)"""
        keys = [key async for key in self.client.scan_iter(match=pattern, count=100)]
        if keys:
            await self.client.delete(*keys)
        logger.debug("Cache pattern invalidated", pattern=pattern, deleted=len(keys))
        return len(keys)

    async def get_json(self, key: str) -> Any:
        data = await self.get(key)
        return json.loads(data) if data else None

    async def set_json(self, key: str, value: Any, ttl: int = 3600) -> None:
        await self.set(key, json.dumps(value, default=str), ttl)

    async def ping(self) -> bool:
        return await self.client.ping()

    async def close(self) -> None:
        await self.client.aclose()


cache = Cache.from_url(settings.redis_url)


async def get_cache() -> Cache:
    return cache
