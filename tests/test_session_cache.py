"""Tests for the session cache and its backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from medportal.core.cache import InMemoryCacheBackend, RedisCacheBackend, SessionCache
from medportal.core.cache.backends import create_cache_backend


class TestInMemoryBackend:
    """Tests for InMemoryCacheBackend."""

    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        """Test basic storage operations."""
        backend = InMemoryCacheBackend()
        await backend.set("k", "v")

        assert await backend.get("k") == "v"
        assert await backend.exists("k") is True
        assert await backend.delete("k", "missing") == 1
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, clock):
        """Test that values disappear after their TTL."""
        backend = InMemoryCacheBackend(clock=clock)
        await backend.set("k", "v", ttl=10)

        clock.advance(9)
        assert await backend.get("k") == "v"
        clock.advance(1)
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_increment_window_starts_at_first_hit(self, clock):
        """Test that later increments do not extend the window."""
        backend = InMemoryCacheBackend(clock=clock)

        assert await backend.increment("c", 60) == 1
        clock.advance(30)
        assert await backend.increment("c", 60) == 2
        clock.advance(30)
        assert await backend.increment("c", 60) == 1

    @pytest.mark.asyncio
    async def test_keys_matching(self):
        """Test glob matching over keys."""
        backend = InMemoryCacheBackend()
        await backend.set("session:1", "a")
        await backend.set("session:2", "b")
        await backend.set("other:1", "c")

        assert sorted(await backend.keys_matching("session:*")) == ["session:1", "session:2"]


class TestRedisBackend:
    """Tests for RedisCacheBackend against a mocked client."""

    def _backend(self):
        client = MagicMock()
        script = AsyncMock(return_value=3)
        client.register_script.return_value = script
        client.setex = AsyncMock()
        client.set = AsyncMock()
        return RedisCacheBackend(client), client, script

    @pytest.mark.asyncio
    async def test_increment_uses_script(self):
        """Test that increments go through the atomic Lua script."""
        backend, _, script = self._backend()

        assert await backend.increment("rate_limit:1.2.3.4:/login", 900) == 3
        script.assert_awaited_once_with(keys=["rate_limit:1.2.3.4:/login"], args=[900])

    @pytest.mark.asyncio
    async def test_set_with_ttl_uses_setex(self):
        """Test that TTL writes use SETEX."""
        backend, client, _ = self._backend()

        await backend.set("k", "v", ttl=30)
        client.setex.assert_awaited_once_with("k", 30, "v")

        await backend.set("k", "v")
        client.set.assert_awaited_once_with("k", "v")

    def test_factory_without_url_is_in_memory(self):
        """Test that no Redis URL selects the in-memory backend."""
        assert isinstance(create_cache_backend(None), InMemoryCacheBackend)


class TestSessionCache:
    """Tests for SessionCache."""

    @pytest.mark.asyncio
    async def test_json_round_trip(self, cache):
        """Test that structured values survive storage."""
        await cache.set("k", {"id": 1, "roles": ["doctor"]})
        assert await cache.get("k") == {"id": 1, "roles": ["doctor"]}

    @pytest.mark.asyncio
    async def test_session_helpers(self, cache):
        """Test the session key namespace helpers."""
        await cache.set_session("42", {"id": 42})

        assert await cache.get("session:42") == {"id": 42}
        assert await cache.get_session("42") == {"id": 42}
        await cache.delete_session("42")
        assert await cache.get_session("42") is None

    @pytest.mark.asyncio
    async def test_invalidate_pattern(self, cache):
        """Test deleting all keys matching a pattern."""
        await cache.set("session:1", 1)
        await cache.set("session:2", 2)
        await cache.set("keep", 3)

        assert await cache.invalidate_pattern("session:*") == 2
        assert await cache.exists("keep") is True

    @pytest.mark.asyncio
    async def test_invalid_json_is_a_miss(self):
        """Test that a non-JSON value is treated as absent."""
        backend = InMemoryCacheBackend()
        await backend.set("k", "{not json")
        assert await SessionCache(backend).get("k") is None

    @pytest.mark.asyncio
    async def test_backend_failures_degrade(self):
        """Test that every operation degrades instead of raising when the backend fails."""
        backend = MagicMock(spec=InMemoryCacheBackend)
        error = ConnectionError("redis down")
        for name in ("get", "set", "delete", "exists", "keys_matching", "increment", "ping", "close"):
            setattr(backend, name, AsyncMock(side_effect=error))
        cache = SessionCache(backend)

        assert await cache.get("k") is None
        await cache.set("k", 1)
        await cache.delete("k")
        assert await cache.exists("k") is False
        assert await cache.invalidate_pattern("*") == 0
        assert await cache.increment("c", 60) is None
        assert await cache.ping() is False
        await cache.close()
