"""Fixed-window request rate limiting over the session cache."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from loguru import logger

from medportal.constants import RateLimits
from medportal.core.cache import SessionCache
from medportal.core.config.settings import Settings


class RateLimitOutcome(str, Enum):
    """Result of a rate limit check."""

    ALLOWED = "allowed"
    # Counter store failed; request let through without counting
    ALLOWED_DEGRADED = "allowed_degraded"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RateLimitDecision:
    """Typed outcome of one rate limit check."""

    outcome: RateLimitOutcome
    limit: int
    remaining: int
    reset: int
    retry_after: int
    message: str

    @property
    def allowed(self) -> bool:
        return self.outcome is not RateLimitOutcome.REJECTED

    @property
    def degraded(self) -> bool:
        return self.outcome is RateLimitOutcome.ALLOWED_DEGRADED

    def headers(self) -> Dict[str, str]:
        """Response headers describing the limit state."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class FixedWindowRateLimiter:
    """
    Counts requests per (client, path) in fixed windows.

    The first request in a window creates the counter with an expiry equal to
    the window length; later requests only increment it. Requests are allowed
    while the count is at most ``max_requests``.
    """

    def __init__(
        self,
        cache: SessionCache,
        max_requests: int,
        window_seconds: int,
        message: str = RateLimits.DEFAULT_MESSAGE,
        name: str = "custom",
    ):
        """
        Initialize rate limiter.

        Args:
            cache: Session cache providing the atomic increment
            max_requests: Maximum requests allowed per window
            window_seconds: Window length in seconds
            message: Message returned with rejected requests
            name: Preset name used in log lines
        """
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self.cache = cache
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self.name = name

    @staticmethod
    def counter_key(client_id: str, path: str) -> str:
        return f"{RateLimits.KEY_PREFIX}:{client_id}:{path}"

    async def check(self, client_id: str, path: str) -> RateLimitDecision:
        """
        Count one request and decide whether it may proceed.

        Args:
            client_id: Client identifier (IP address)
            path: Request path

        Returns:
            RateLimitDecision; ALLOWED_DEGRADED when the counter store failed
        """
        reset = int(time.time()) + self.window_seconds
        count = await self.cache.increment(self.counter_key(client_id, path), self.window_seconds)

        if count is None:
            logger.warning(
                f"Rate limiter '{self.name}' degraded: counter store unavailable, "
                f"allowing {path} for {client_id}"
            )
            return RateLimitDecision(
                outcome=RateLimitOutcome.ALLOWED_DEGRADED,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset=reset,
                retry_after=0,
                message=self.message,
            )

        if count > self.max_requests:
            logger.warning(
                f"Rate limit '{self.name}' exceeded for {client_id} on {path} "
                f"({count}/{self.max_requests})"
            )
            return RateLimitDecision(
                outcome=RateLimitOutcome.REJECTED,
                limit=self.max_requests,
                remaining=0,
                reset=reset,
                retry_after=self.window_seconds,
                message=self.message,
            )

        return RateLimitDecision(
            outcome=RateLimitOutcome.ALLOWED,
            limit=self.max_requests,
            remaining=self.max_requests - count,
            reset=reset,
            retry_after=0,
            message=self.message,
        )


@dataclass(frozen=True)
class RateLimitPresets:
    """The three named limiters, sized from settings."""

    auth: FixedWindowRateLimiter
    api: FixedWindowRateLimiter
    strict: FixedWindowRateLimiter

    @classmethod
    def from_settings(cls, cache: SessionCache, settings: Settings) -> "RateLimitPresets":
        return cls(
            auth=FixedWindowRateLimiter(
                cache,
                settings.rate_limit_auth_max,
                settings.rate_limit_auth_window,
                RateLimits.AUTH_MESSAGE,
                name="auth",
            ),
            api=FixedWindowRateLimiter(
                cache,
                settings.rate_limit_api_max,
                settings.rate_limit_api_window,
                name="api",
            ),
            strict=FixedWindowRateLimiter(
                cache,
                settings.rate_limit_strict_max,
                settings.rate_limit_strict_window,
                name="strict",
            ),
        )
