"""Redis store for best-effort caching.

Handles:
- Caching with TTL policies
- Raw bytes in and out: values are never decoded by the client, so foreign
  or corrupt entries are judged by the payload parser, not raised as errors
- Degradation: Redis is optional, so no call here ever raises on a
  connectivity or protocol failure. Each call reports a CacheStatus and
  the caller decides what to do on DEGRADED.

TTL policies:
- Post list: posts_cache_ttl (default 30 seconds), invalidated on every write
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError
import redis.asyncio as redis
from redis.exceptions import RedisError

from postboard.schemas.posts import PostRead
from postboard.settings import Settings

# TTL constants (in seconds)
TTL_POSTS_DEFAULT = 30

# Keys
KEY_POSTS_ALL = "posts:all"

# Connectivity, timeouts and protocol errors all count as degradation.
CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)

logger = logging.getLogger("uvicorn.error")

_post_list_adapter = TypeAdapter(list[PostRead])


class CacheStatus(str, Enum):
    """Outcome of a cache call."""

    HIT = "hit"
    MISS = "miss"
    OK = "ok"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class CacheResult:
    """Result of a cache lookup. value is set only on HIT."""

    status: CacheStatus
    value: Any = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


class PostCache:
    """Best-effort Redis cache for the post list."""

    def __init__(self, client: redis.Redis, ttl: int = TTL_POSTS_DEFAULT) -> None:
        self._redis = client
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostCache":
        """Create the client. No connection is opened until the first call."""
        client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            socket_connect_timeout=settings.cache_timeout,
            socket_timeout=settings.cache_timeout,
        )
        return cls(client, ttl=settings.posts_cache_ttl)

    async def close(self) -> None:
        """Close Redis connection."""
        await self._redis.aclose()

    # ============================================================
    # Generic cache operations
    # ============================================================

    async def get(self, key: str) -> CacheResult:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            HIT with the raw bytes, MISS, or DEGRADED if Redis failed.
        """
        try:
            value = await self._redis.get(key)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache get failed for {key}: {exc!r}")
            return CacheResult(CacheStatus.DEGRADED)
        if value is None:
            return CacheResult(CacheStatus.MISS)
        return CacheResult(CacheStatus.HIT, value)

    async def set(self, key: str, value: str | bytes, ttl: int | None = None) -> CacheStatus:
        """Set value in cache with TTL.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds (defaults to the cache's TTL).
        """
        try:
            await self._redis.setex(key, ttl or self.ttl, value)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache set failed for {key}: {exc!r}")
            return CacheStatus.DEGRADED
        return CacheStatus.OK

    async def delete(self, key: str) -> CacheStatus:
        """Delete value from cache.

        Args:
            key: Cache key.
        """
        try:
            await self._redis.delete(key)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache delete failed for {key}: {exc!r}")
            return CacheStatus.DEGRADED
        return CacheStatus.OK

    async def ping(self) -> bool:
        """Check that Redis answers PING."""
        try:
            return bool(await self._redis.ping())
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache ping failed: {exc!r}")
            return False

    # ============================================================
    # Post list
    # ============================================================

    async def get_posts(self) -> CacheResult:
        """Get the cached post list.

        Any payload that is not a valid post list (bad UTF-8, bad JSON, wrong shape)
        counts as a miss, so the next store read overwrites it.
        """
        result = await self.get(KEY_POSTS_ALL)
        if not result.hit:
            return result
        try:
            posts = _post_list_adapter.validate_json(result.value)
        except (ValidationError, UnicodeDecodeError):
            logger.warning(f"Discarding unreadable cache entry {KEY_POSTS_ALL}")
            return CacheResult(CacheStatus.MISS)
        return CacheResult(CacheStatus.HIT, posts)

    async def set_posts(self, posts: list[PostRead]) -> CacheStatus:
        """Cache the post list for the configured TTL."""
        payload = json.dumps([post.model_dump(mode="json") for post in posts])
        return await self.set(KEY_POSTS_ALL, payload)

    async def invalidate_posts(self) -> CacheStatus:
        """Drop the cached post list so the next read goes to Postgres."""
        return await self.delete(KEY_POSTS_ALL)
