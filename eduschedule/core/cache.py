# eduschedule/core/cache.py
"""Redis caching implementation."""
import json
import logging
from typing import Any, Optional, Union
from datetime import timedelta
import redis.asyncio as redis
from redis.exceptions import RedisError

from .config import settings

logger = logging.getLogger(__name__)

class CacheManager:
    def __init__(self, url: str = None, enabled: bool = True, prefix: str = "eduschedule"):
        self.url = url or settings.redis_url
        self.enabled = enabled
        self.prefix = prefix
        self.redis: Optional[redis.Redis] = None

    def make_key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *(str(part) for part in parts)])

    async def connect(self):
        """Initialize Redis connection."""
        if self.enabled and not self.redis:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """Get a JSON value from cache; any failure is a miss."""
        if not self.enabled:
            return None
        await self.connect()

        try:
            value = await self.redis.get(key)
            if value is not None:
                return json.loads(value)
        except (RedisError, ValueError) as e:
            logger.warning(f"Cache get failed for {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set a JSON value in cache."""
        if not self.enabled:
            return False
        await self.connect()

        if expire is None:
            expire = settings.cache_ttl_seconds
        if isinstance(expire, timedelta):
            expire = int(expire.total_seconds())
        try:
            return bool(await self.redis.setex(key, expire, json.dumps(value)))
        except (RedisError, TypeError) as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching ``pattern``."""
        if not self.enabled:
            return 0
        await self.connect()

        deleted = 0
        try:
            async for key in self.redis.scan_iter(match=pattern):
                deleted += await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return deleted

# Global cache instance
cache_manager = CacheManager(enabled=settings.cache_enabled)
