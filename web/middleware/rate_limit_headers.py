"""Rate limiting headers middleware for API responses."""

from typing import Callable, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add rate limit information to response headers.

    The rate limit dependency stores its decision headers on
    ``request.state.rate_limit_headers``; this copies them onto whatever
    response the route produced, including error responses:
    - X-RateLimit-Limit: Maximum requests allowed in the window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset: Unix timestamp when the rate limit resets
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Add rate limit headers to response.

        Args:
            request: Incoming request
            call_next: Next middleware/handler in chain

        Returns:
            Response with rate limit headers
        """
        response = await call_next(request)

        rate_headers: Optional[Dict[str, str]] = getattr(
            request.state, "rate_limit_headers", None
        )
        if rate_headers:
            for name, value in rate_headers.items():
                response.headers.setdefault(name, value)

        return response
