"""Database operations for MedPortal using PostgreSQL."""

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import asyncpg

from medportal.constants import Database as DatabaseDefaults
from medportal.core.exceptions import (
    DatabaseNotConnectedError,
    DatabasePoolTimeoutError,
)
from medportal.utils.masking import mask_url

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class DatabaseState:
    """Database connection state constants."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def require_connection(func: F) -> F:
    """
    Decorator to ensure database connection exists before method execution.

    Raises:
        DatabaseNotConnectedError: If database connection is not established
    """

    @wraps(func)
    async def wrapper(self: "Database", *args: Any, **kwargs: Any) -> Any:
        if self.pool is None:
            raise DatabaseNotConnectedError()
        return await func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class Database:
    """PostgreSQL database manager with connection pooling."""

    def __init__(self, database_url: str, pool_size: int = DatabaseDefaults.POOL_SIZE):
        """
        Initialize database manager. No connection is made until ``connect()``.

        Args:
            database_url: PostgreSQL connection URL
            pool_size: Maximum number of concurrent connections
        """
        self.database_url = database_url
        self.pool_size = pool_size
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

    @property
    def state(self) -> str:
        return DatabaseState.DISCONNECTED if self.pool is None else DatabaseState.CONNECTED

    async def connect(self) -> None:
        """Establish database connection pool and create tables."""
        async with self._pool_lock:
            try:
                # Examples: pool=5 → min=3, pool=4 → min=2, pool=10 → min=5
                min_pool = max(2, (self.pool_size + 1) // 2)
                min_pool = min(min_pool, self.pool_size)

                self.pool = await asyncpg.create_pool(
                    self.database_url,
                    min_size=min_pool,
                    max_size=self.pool_size,
                    timeout=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
                    command_timeout=60.0,
                    max_inactive_connection_lifetime=300.0,
                )

                await self._create_tables()

                logger.info(
                    f"Database connected with pool size {min_pool}-{self.pool_size}: "
                    f"{mask_url(self.database_url)}"
                )
            except Exception:
                # Clean up on error
                if self.pool:
                    await self.pool.close()
                    self.pool = None
                raise

    async def close(self) -> None:
        """Close database connection pool."""
        async with self._pool_lock:
            if self.pool:
                await self.pool.close()
                self.pool = None
            logger.info("Database connection pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def get_connection(
        self, timeout: float = DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS
    ) -> AsyncIterator[asyncpg.Connection]:
        """
        Get a connection from the pool with timeout.

        Args:
            timeout: Maximum time to wait for a connection

        Yields:
            Database connection from pool

        Raises:
            DatabaseNotConnectedError: If ``connect()`` has not been called
            DatabasePoolTimeoutError: If connection cannot be acquired within timeout
        """
        if self.pool is None:
            raise DatabaseNotConnectedError()
        try:
            conn = await self.pool.acquire(timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"Database connection pool exhausted "
                f"(timeout: {timeout}s, pool_size: {self.pool_size})"
            )
            raise DatabasePoolTimeoutError(timeout=timeout, pool_size=self.pool_size)
        try:
            yield conn
        finally:
            await self.pool.release(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection inside a transaction; commits on success, rolls back on error."""
        async with self.get_connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> bool:
        """
        Perform a health check on the database connection.

        Returns:
            True if database is healthy
        """
        try:
            async with self.get_connection(timeout=5.0) as conn:
                result = await conn.fetchval("SELECT 1")
                return result is not None
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @require_connection
    async def _create_tables(self) -> None:
        """Create baseline tables if they don't exist."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS users (
                        id BIGSERIAL PRIMARY KEY,
                        email TEXT UNIQUE NOT NULL,
                        password_hash TEXT NOT NULL,
                        role TEXT NOT NULL
                            CHECK (role IN ('admin', 'doctor', 'nurse', 'patient')),
                        status TEXT NOT NULL DEFAULT 'active'
                            CHECK (status IN ('active', 'inactive', 'suspended', 'deleted')),
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        phone TEXT,
                        date_of_birth DATE,
                        gender TEXT,
                        last_login TIMESTAMPTZ,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)

                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS patients (
                        id BIGSERIAL PRIMARY KEY,
                        user_id BIGINT UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                        medical_record_number TEXT UNIQUE NOT NULL,
                        blood_type TEXT,
                        allergies TEXT,
                        emergency_contact_name TEXT,
                        emergency_contact_phone TEXT,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)

                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS medical_staff (
                        id BIGSERIAL PRIMARY KEY,
                        user_id BIGINT UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                        license_number TEXT UNIQUE NOT NULL,
                        specialization TEXT,
                        department TEXT,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)

                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS audit_logs (
                        id BIGSERIAL PRIMARY KEY,
                        user_id BIGINT REFERENCES users(id) ON DELETE SET NULL,
                        action TEXT NOT NULL,
                        details JSONB,
                        ip_address TEXT,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)

                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_users_role_status ON users(role, status)"
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_audit_logs_created_at "
                    "ON audit_logs(created_at DESC)"
                )
