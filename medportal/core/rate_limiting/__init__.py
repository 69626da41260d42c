"""Fixed-window rate limiting package."""

from .fixed_window import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitOutcome,
    RateLimitPresets,
)

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitOutcome",
    "RateLimitPresets",
]
