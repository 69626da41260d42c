"""FastAPI dependencies: component access, authentication, authorization, rate limiting.

Every component is read from ``request.app.state``, where ``create_app``
placed it, so tests can build an app around in-memory collaborators.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from fastapi import Request
from loguru import logger

from medportal.core.auth.tokens import TokenClaims, TokenService
from medportal.core.config.settings import Settings
from medportal.core.enums import Role
from medportal.core.exceptions import (
    InsufficientPermissionsError,
    InvalidTokenError,
    MissingTokenError,
    RateLimitExceededError,
)
from medportal.core.rate_limiting import RateLimitDecision, RateLimitPresets
from medportal.repositories import AuditStore, UserStore
from medportal.services.auth_service import AuthService
from web.ip_utils import get_real_client_ip


@dataclass(frozen=True)
class AuthContext:
    """Authenticated identity attached to ``request.state.user``."""

    id: int
    email: str
    role: Role
    claims: TokenClaims


# Component accessors


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_audit_store(request: Request) -> AuditStore:
    return request.app.state.audit_store


def get_client_ip(request: Request) -> str:
    """Client IP honoring X-Forwarded-For only from configured trusted proxies."""
    settings: Settings = request.app.state.settings
    return get_real_client_ip(request, settings.get_trusted_proxies())


# Authentication


async def _authenticate(request: Request) -> AuthContext:
    token = TokenService.extract_bearer(request.headers.get("Authorization"))
    if token is None:
        raise MissingTokenError()

    tokens: TokenService = request.app.state.tokens
    claims = tokens.verify_access_token(token)

    auth_service: AuthService = request.app.state.auth_service
    if await auth_service.is_access_revoked(claims):
        logger.info(f"Revoked access token presented for user {claims.id}")
        raise InvalidTokenError()

    context = AuthContext(id=claims.id, email=claims.email, role=claims.role, claims=claims)
    request.state.user = context
    return context


async def require_auth(request: Request) -> AuthContext:
    """
    Require a valid access token.

    Raises:
        MissingTokenError: No or malformed Authorization header (401)
        InvalidTokenError: Bad signature, expired or revoked token (401)
    """
    return await _authenticate(request)


async def optional_auth(request: Request) -> Optional[AuthContext]:
    """Attach the identity if a valid token is present; never rejects."""
    try:
        return await _authenticate(request)
    except (MissingTokenError, InvalidTokenError):
        request.state.user = None
        return None


def require_roles(*roles: Role) -> Callable[[Request], Awaitable[AuthContext]]:
    """
    Build a dependency that requires one of ``roles``.

    Example:
        ``user: AuthContext = Depends(require_roles(Role.DOCTOR))``
    """
    allowed = frozenset(roles)
    if not allowed:
        raise ValueError("require_roles needs at least one role")

    async def dependency(request: Request) -> AuthContext:
        context = await _authenticate(request)
        if context.role not in allowed:
            logger.warning(
                f"User {context.id} ({context.role.value}) denied {request.method} "
                f"{request.url.path}"
            )
            raise InsufficientPermissionsError()
        return context

    return dependency


# Rate limiting


RateLimitDependency = Callable[[Request], Awaitable[Optional[RateLimitDecision]]]


def rate_limit(preset: str) -> RateLimitDependency:
    """
    Build a dependency applying the named preset (``auth``, ``api`` or ``strict``).

    Leaves the X-RateLimit-* headers on ``request.state`` for
    RateLimitHeadersMiddleware and raises RateLimitExceededError (429, with
    Retry-After) when the window is exhausted.
    """
    if preset not in {"auth", "api", "strict"}:
        raise ValueError(f"Unknown rate limit preset: {preset}")

    async def dependency(request: Request) -> Optional[RateLimitDecision]:
        settings: Settings = request.app.state.settings
        if not settings.rate_limit_enabled:
            return None

        presets: RateLimitPresets = request.app.state.rate_limits
        limiter = getattr(presets, preset)
        decision = await limiter.check(get_client_ip(request), request.url.path)

        headers = decision.headers()
        request.state.rate_limit_headers = headers
        if not decision.allowed:
            raise RateLimitExceededError(
                decision.message, retry_after=decision.retry_after, headers=headers
            )
        return decision

    return dependency
