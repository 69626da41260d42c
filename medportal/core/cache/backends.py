"""Key-value backends for the session cache."""

import asyncio
import fnmatch
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from medportal.constants import Cache
from medportal.utils.masking import mask_url

# Lua script for atomic fixed-window counting
# KEYS[1] = counter key
# ARGV[1] = window seconds
# Returns: counter value after increment
# The expiry is set only on the first increment, so the window starts at the
# first request and never slides.
_INCREMENT_LUA_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
end
return count
"""


class CacheBackend(ABC):
    """Abstract base class for cache backends. Implementations may raise."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def keys_matching(self, pattern: str) -> List[str]:
        """Return keys matching a glob pattern."""
        pass

    @abstractmethod
    async def increment(self, key: str, window_seconds: int) -> int:
        """
        Atomically increment a counter.

        The first increment sets the key to expire after ``window_seconds``.
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        """Release backend resources."""

    @property
    @abstractmethod
    def is_distributed(self) -> bool:
        """Check if backend uses distributed storage."""
        pass


class InMemoryCacheBackend(CacheBackend):
    """In-memory backend (single-process only). Used for development and tests."""

    def __init__(self, clock=time.monotonic):
        """
        Initialize in-memory backend.

        Args:
            clock: Monotonic clock returning seconds, injectable for tests
        """
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _live(self, key: str) -> Optional[str]:
        """Return the value if present and unexpired (must be called with lock held)."""
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        async with self._lock:
            expires_at = self._clock() + ttl if ttl else None
            self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            removed = 0
            for key in keys:
                if self._live(key) is not None:
                    removed += 1
                self._data.pop(key, None)
            return removed

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live(key) is not None

    async def keys_matching(self, pattern: str) -> List[str]:
        async with self._lock:
            return [
                key
                for key in list(self._data)
                if fnmatch.fnmatchcase(key, pattern) and self._live(key) is not None
            ]

    async def increment(self, key: str, window_seconds: int) -> int:
        async with self._lock:
            current = self._live(key)
            if current is None:
                self._data[key] = ("1", self._clock() + window_seconds)
                return 1
            count = int(current) + 1
            self._data[key] = (str(count), self._data[key][1])
            return count

    async def ping(self) -> bool:
        return True

    @property
    def is_distributed(self) -> bool:
        return False


class RedisCacheBackend(CacheBackend):
    """Redis-based distributed backend (redis.asyncio)."""

    def __init__(self, redis_client: Any):
        """
        Initialize Redis backend.

        Args:
            redis_client: redis.asyncio.Redis instance created with decode_responses=True
        """
        self._redis = redis_client
        # Register Lua script for atomic increment + first-hit expiry
        self._increment_script = self._redis.register_script(_INCREMENT_LUA_SCRIPT)

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCacheBackend":
        """Create a backend from a redis:// URL."""
        import redis.asyncio as redis

        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=Cache.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=Cache.REDIS_SOCKET_TIMEOUT_SECONDS,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info(f"Redis cache backend configured: {mask_url(redis_url)}")
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            await self._redis.setex(key, ttl, value)
        else:
            await self._redis.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._redis.delete(*keys))

    async def exists(self, key: str) -> bool:
        return bool(await self._redis.exists(key))

    async def keys_matching(self, pattern: str) -> List[str]:
        # SCAN instead of KEYS so large keyspaces never block the server
        return [
            key async for key in self._redis.scan_iter(match=pattern, count=Cache.SCAN_BATCH_SIZE)
        ]

    async def increment(self, key: str, window_seconds: int) -> int:
        result = await self._increment_script(keys=[key], args=[window_seconds])
        return int(result)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()

    @property
    def is_distributed(self) -> bool:
        return True


def create_cache_backend(redis_url: Optional[str] = None) -> CacheBackend:
    """
    Choose a backend: Redis when a URL is configured, in-memory otherwise.

    Args:
        redis_url: Redis connection URL (optional)

    Returns:
        CacheBackend instance
    """
    if redis_url:
        return RedisCacheBackend.from_url(redis_url)
    logger.warning(
        "REDIS_URL not set; using in-memory cache backend. "
        "Rate limits and sessions will not be shared across workers."
    )
    return InMemoryCacheBackend()
