"""Redis caching for content-metadata API responses.

The cache is optional: when Redis is unreachable every lookup is a miss and
writes are dropped, so callers never need to know whether it is connected.
"""

import hashlib
import json
from collections.abc import Callable
from datetime import timedelta
from functools import wraps
from typing import Any, TypeVar

import redis.asyncio as redis

from streamsense.config import get_settings
from streamsense.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

CACHE_TTL_SHORT = timedelta(minutes=15)  # trending lists
CACHE_TTL_MEDIUM = timedelta(hours=6)  # title details


class RedisCache:
    """Async Redis cache client with JSON serialization."""

    def __init__(self, url: str | None = None) -> None:
        self._url = url
        self._client: redis.Redis | None = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._url or get_settings().redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def connect(self) -> bool:
        """Test Redis connection."""
        try:
            await self._get_client().ping()
            self._connected = True
        except Exception as e:
            logger.warning(f"Redis cache unavailable: {e}")
            self._connected = False
        return self._connected

    async def ping(self) -> bool:
        return await self._get_client().ping()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._connected = False

    async def get(self, key: str) -> Any | None:
        """Get a cached value, or None if missing, expired or unavailable."""
        if not self._connected:
            return None
        try:
            data = await self._get_client().get(key)
            return json.loads(data) if data else None
        except Exception as e:
            logger.debug(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> bool:
        if not self._connected:
            return False
        try:
            expire_seconds = int((ttl or CACHE_TTL_MEDIUM).total_seconds())
            await self._get_client().setex(key, expire_seconds, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.debug(f"Cache set error for {key}: {e}")
            return False


cache = RedisCache()


def make_cache_key(namespace: str, *args: Any, **kwargs: Any) -> str:
    """Build a readable cache key from call arguments, hashed when too long."""
    parts = [namespace]
    parts.extend(str(arg) for arg in args if arg is not None)
    parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()) if v is not None)
    key_str = ":".join(parts)

    if len(key_str) > 200:
        key_str = f"{namespace}:{hashlib.md5(key_str.encode()).hexdigest()[:12]}"
    return key_str


def cached(namespace: str, ttl: timedelta | None = None) -> Callable[[F], F]:
    """Cache the JSON result of an async *method* in Redis.

    The first positional argument (``self``) is left out of the key.

        @cached("tmdb:trending", ttl=CACHE_TTL_SHORT)
        async def trending(self, window: str = "day"):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache_key = make_cache_key(namespace, *args[1:], **kwargs)

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                logger.debug(f"Cache HIT: {cache_key}")
                return cached_value

            logger.debug(f"Cache MISS: {cache_key}")
            result = await func(*args, **kwargs)
            if result is not None:
                await cache.set(cache_key, result, ttl or CACHE_TTL_MEDIUM)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
