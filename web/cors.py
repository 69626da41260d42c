"""CORS validation utilities for FastAPI web application."""

import re
from typing import List

from loguru import logger

_NON_PROD_ENVS = frozenset({"development", "testing"})

# Loopback hosts with optional port and path
_LOCALHOST_PATTERN = re.compile(
    r"^https?://"
    r"(localhost|127\.0\.0\.1|\[::1\]|0\.0\.0\.0)"
    r"(:\d+)?"
    r"(/.*)?$",
    re.IGNORECASE,
)


def _is_localhost_origin(origin: str) -> bool:
    """Check if origin is a localhost variant (including IPv6)."""
    # Extract hostname after protocol to avoid false positives
    if "://" in origin:
        after_protocol = origin.split("://", 1)[1]
        hostname = after_protocol.split(":")[0].split("/")[0].lower()
        if hostname.startswith("localhost.") or hostname.endswith(".localhost"):
            return True
    return bool(_LOCALHOST_PATTERN.match(origin))


def validate_cors_origins(origins_str: str, env: str) -> List[str]:
    """
    Validate and parse CORS origins, blocking wildcard and localhost in production.

    Args:
        origins_str: Comma-separated list of allowed origins
        env: Validated environment name from settings

    Returns:
        List of validated origin strings

    Raises:
        ValueError: If wildcard is used in production environment
    """
    origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]

    # Fail-fast: Block wildcard in production BEFORE filtering
    if env == "production" and "*" in origins:
        raise ValueError("Wildcard CORS origin ('*') not allowed in production")

    if env not in _NON_PROD_ENVS:
        invalid = [o for o in origins if o == "*" or _is_localhost_origin(o)]
        if invalid:
            logger.warning(f"Removing insecure CORS origins in {env}: {invalid}")
            origins = [o for o in origins if o not in invalid]

            if not origins:
                logger.error("All CORS origins were insecure and removed. Using empty list.")

    return origins
