"""FastAPI application factory for the MedPortal API."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

import medportal
from medportal.core.auth import PasswordHasher, TokenRevocationList, TokenService
from medportal.core.cache import SessionCache, create_cache_backend
from medportal.core.config.settings import Settings, get_settings
from medportal.core.exceptions import ConfigurationError
from medportal.core.rate_limiting import RateLimitPresets
from medportal.models.database import Database
from medportal.repositories import AuditLogRepository, AuditStore, UserRepository, UserStore
from medportal.services.auth_service import AuthService
from web.api_versioning import setup_versioned_routes
from web.cors import validate_cors_origins
from web.exception_handlers import register_exception_handlers
from web.middleware import (
    CorrelationMiddleware,
    RateLimitHeadersMiddleware,
    SecurityHeadersMiddleware,
)
from web.routes import health_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Connects the database pool (when one is configured) on startup and
    releases the database and cache connections on shutdown.
    """
    logger.info("MedPortal API starting up...")
    database: Optional[Database] = app.state.database
    if database is not None:
        try:
            await database.connect()
        except Exception as e:
            logger.error(f"Failed to connect database during startup: {e}")
            raise

    if not await app.state.cache.ping():
        logger.warning("Session cache unreachable at startup; continuing fail-open")

    yield

    logger.info("MedPortal API shutting down...")
    if database is not None:
        try:
            await asyncio.wait_for(database.close(), timeout=10)
        except asyncio.TimeoutError:
            logger.error("Database close timed out after 10s")
    await app.state.cache.close()


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    cache: Optional[SessionCache] = None,
    user_store: Optional[UserStore] = None,
    audit_store: Optional[AuditStore] = None,
) -> FastAPI:
    """
    Factory function to create the FastAPI application.

    Every collaborator is constructed here (or injected) and stored on
    ``app.state``; nothing is held in module globals.

    Args:
        settings: Application settings (defaults to environment-loaded settings)
        database: Database manager (built from settings when stores are not injected)
        cache: Session cache (built from settings.redis_url when omitted)
        user_store: Identity persistence (defaults to UserRepository)
        audit_store: Audit persistence (defaults to AuditLogRepository)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    is_dev = settings.is_development()

    if user_store is None or audit_store is None:
        database = database or Database(settings.database_url, settings.db_pool_size)
        user_store = user_store or UserRepository(database)
        audit_store = audit_store or AuditLogRepository(database)

    if cache is None:
        cache = SessionCache(create_cache_backend(settings.redis_url), settings.session_ttl_seconds)

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(settings)
    revocations = TokenRevocationList(cache)

    app = FastAPI(
        title="MedPortal API",
        version=medportal.__version__,
        lifespan=lifespan,
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
        openapi_url="/openapi.json" if is_dev else None,
        description="Role-based patient management API with JWT authentication.",
        openapi_tags=[
            {"name": "auth", "description": "Registration, login and token refresh"},
            {"name": "admin", "description": "User administration and audit trail"},
            {"name": "patients", "description": "Patient directory for clinical staff"},
            {"name": "health", "description": "Service health"},
        ],
    )

    app.state.settings = settings
    app.state.database = database
    app.state.cache = cache
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.revocations = revocations
    app.state.user_store = user_store
    app.state.audit_store = audit_store
    app.state.rate_limits = RateLimitPresets.from_settings(cache, settings)
    app.state.auth_service = AuthService(
        user_store, hasher, tokens, revocations=revocations, sessions=cache
    )

    register_exception_handlers(app)

    # Middleware (last added runs first)
    app.add_middleware(RateLimitHeadersMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=not is_dev)
    app.add_middleware(CorrelationMiddleware)

    allowed_origins = validate_cors_origins(settings.cors_allowed_origins, settings.env)
    if not allowed_origins and not is_dev:
        raise ConfigurationError(
            "No valid CORS origins configured for production. "
            "Set CORS_ALLOWED_ORIGINS in .env (e.g., 'https://yourdomain.com')."
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=3600,
    )

    app.include_router(health_router)
    setup_versioned_routes(app)

    logger.info(
        f"MedPortal API configured (env={settings.env}, "
        f"rate_limiting={'on' if settings.rate_limit_enabled else 'off'}, "
        f"cache={'redis' if cache.backend.is_distributed else 'memory'})"
    )
    return app
