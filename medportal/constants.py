"""Unified constants and configuration defaults for MedPortal."""

from typing import Final


class RateLimits:
    """Fixed-window rate limit presets (requests per window, window in seconds)."""

    # Login / register: narrow ceiling to blunt credential stuffing
    AUTH_MAX_REQUESTS: Final[int] = 5
    AUTH_WINDOW_SECONDS: Final[int] = 15 * 60
    AUTH_MESSAGE: Final[str] = "Too many login attempts, please try again later"

    API_MAX_REQUESTS: Final[int] = 100
    API_WINDOW_SECONDS: Final[int] = 15 * 60

    STRICT_MAX_REQUESTS: Final[int] = 10
    STRICT_WINDOW_SECONDS: Final[int] = 60

    DEFAULT_MESSAGE: Final[str] = "Too many requests, please try again later"
    KEY_PREFIX: Final[str] = "rate_limit"


class Security:
    """Security configuration."""

    MIN_SECRET_KEY_LENGTH: Final[int] = 32
    JWT_ALGORITHM: Final[str] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: Final[int] = 24 * 60
    REFRESH_TOKEN_EXPIRE_MINUTES: Final[int] = 7 * 24 * 60
    PASSWORD_HASH_ROUNDS: Final[int] = 12
    MIN_PASSWORD_LENGTH: Final[int] = 6


class Cache:
    """Session cache configuration."""

    SESSION_TTL_SECONDS: Final[int] = 24 * 60 * 60
    SESSION_KEY_PREFIX: Final[str] = "session"
    REVOKED_TOKEN_PREFIX: Final[str] = "revoked_token"
    SCAN_BATCH_SIZE: Final[int] = 500
    REDIS_SOCKET_TIMEOUT_SECONDS: Final[float] = 5.0


class Database:
    """Database configuration."""

    DEFAULT_URL: Final[str] = "postgresql://localhost:5432/medportal"
    TEST_URL: Final[str] = "postgresql://localhost:5432/medportal_test"
    POOL_SIZE: Final[int] = 10
    CONNECTION_TIMEOUT_SECONDS: Final[float] = 30.0
    AUDIT_LOG_LIMIT: Final[int] = 100


class Pagination:
    """List endpoint limits."""

    DEFAULT_LIMIT: Final[int] = 50
    MAX_LIMIT: Final[int] = 200
