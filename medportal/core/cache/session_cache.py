"""Fail-open key-value cache used for sessions, counters and revocations."""

import json
from typing import Any, Optional

from loguru import logger

from medportal.constants import Cache

from .backends import CacheBackend


class SessionCache:
    """
    Thin wrapper over a cache backend that never raises.

    Every backend failure is logged and degraded to a miss or no-op:
    ``get`` returns None, ``set``/``delete`` do nothing, ``exists`` returns
    False, ``invalidate_pattern`` returns 0 and ``increment`` returns None so
    callers can tell a degraded counter apart from a real count.
    """

    def __init__(self, backend: CacheBackend, session_ttl: int = Cache.SESSION_TTL_SECONDS):
        """
        Initialize session cache.

        Args:
            backend: Storage backend (Redis or in-memory)
            session_ttl: Default lifetime of session records in seconds
        """
        self.backend = backend
        self.session_ttl = session_ttl

    async def get(self, key: str) -> Optional[Any]:
        """Get a JSON value, or None on miss or failure."""
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            logger.error(f"Cache get failed for {key!r}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Cache value for {key!r} is not valid JSON, treating as miss")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a JSON-serializable value, optionally expiring after ``ttl`` seconds."""
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Cache set skipped for {key!r}: value not serializable ({e})")
            return
        try:
            await self.backend.set(key, payload, ttl)
        except Exception as e:
            logger.error(f"Cache set failed for {key!r}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self.backend.delete(key)
        except Exception as e:
            logger.error(f"Cache delete failed for {key!r}: {e}")

    async def exists(self, key: str) -> bool:
        try:
            return await self.backend.exists(key)
        except Exception as e:
            logger.error(f"Cache exists failed for {key!r}: {e}")
            return False

    async def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Returns:
            Number of keys deleted (0 on failure)
        """
        try:
            keys = await self.backend.keys_matching(pattern)
            if not keys:
                return 0
            return await self.backend.delete(*keys)
        except Exception as e:
            logger.error(f"Cache invalidate_pattern failed for {pattern!r}: {e}")
            return 0

    async def increment(self, key: str, window_seconds: int) -> Optional[int]:
        """
        Increment a fixed-window counter.

        Returns:
            Count after increment, or None if the backend failed
        """
        try:
            return await self.backend.increment(key, window_seconds)
        except Exception as e:
            logger.error(f"Cache increment failed for {key!r}: {e}")
            return None

    async def ping(self) -> bool:
        try:
            return await self.backend.ping()
        except Exception as e:
            logger.warning(f"Cache health check failed: {e}")
            return False

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as e:
            logger.debug(f"Error closing cache backend: {e}")

    # Session helpers

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{Cache.SESSION_KEY_PREFIX}:{session_id}"

    async def set_session(self, session_id: str, data: Any, ttl: Optional[int] = None) -> None:
        await self.set(self.session_key(session_id), data, ttl or self.session_ttl)

    async def get_session(self, session_id: str) -> Optional[Any]:
        return await self.get(self.session_key(session_id))

    async def delete_session(self, session_id: str) -> None:
        await self.delete(self.session_key(session_id))
