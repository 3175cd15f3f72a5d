"""
Investment Tracker - Redis Client
"""
import json

import redis.asyncio as redis
from loguru import logger

from investment_tracker.config import settings


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self):
        self._client: redis.Redis | None = None

    async def initialize(self):
        """Initialize Redis connection."""
        try:
            redis_url = settings.redis_url
            self._client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self._client.ping()
            logger.info(f"Redis connected: {redis_url.split('@')[-1] if '@' in redis_url else redis_url}")
        except Exception as e:
            logger.error(f"Redis connection failed: {e}")
            self._client = None
            raise

    async def close(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # =========================
    # Performance Cache Methods
    # =========================
    async def get_json(self, key: str) -> dict | None:
        """Get a cached JSON document."""
        if not self._client:
            return None
        data = await self._client.get(key)
        return json.loads(data) if data else None

    async def set_json(self, key: str, data: dict, ttl: int = 3600) -> bool:
        """Cache a JSON document with TTL (default 1 hour)."""
        if not self._client:
            return False
        await self._client.setex(key, ttl, json.dumps(data, default=str))
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern."""
        if not self._client:
            return 0
        deleted = 0
        async for key in self._client.scan_iter(match=pattern):
            deleted += await self._client.delete(key)
        return deleted


# Global Redis client instance
redis_client = RedisClient()
