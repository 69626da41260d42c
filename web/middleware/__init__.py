"""Middleware package for the MedPortal API."""

from .correlation import CorrelationMiddleware
from .rate_limit_headers import RateLimitHeadersMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "CorrelationMiddleware",
    "RateLimitHeadersMiddleware",
    "SecurityHeadersMiddleware",
]
