"""Session cache and its storage backends."""

from .backends import (
    CacheBackend,
    InMemoryCacheBackend,
    RedisCacheBackend,
    create_cache_backend,
)
from .session_cache import SessionCache

__all__ = [
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "SessionCache",
    "create_cache_backend",
]
