"""IP address validation and proxy utilities for FastAPI web application."""

import ipaddress
from typing import FrozenSet

from fastapi import Request


def _is_valid_ip(ip_str: str) -> bool:
    """Validate IP address format."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_real_client_ip(request: Request, trusted_proxies: FrozenSet[str] = frozenset()) -> str:
    """
    Get real client IP with trusted proxy validation and IP format verification.

    Security: Only trust X-Forwarded-For from known proxies and validate
    IPs to prevent rate limit bypass attacks.

    Args:
        request: FastAPI request object
        trusted_proxies: Proxy addresses whose forwarding headers are trusted

    Returns:
        Client IP address, or "unknown"
    """
    client_host = request.client.host if request.client else "unknown"

    # Only trust forwarded headers from known proxies
    if trusted_proxies and client_host in trusted_proxies:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ips = [ip.strip() for ip in forwarded.split(",")]
            # Rightmost IP that is not one of our proxies
            for ip in reversed(ips):
                if ip not in trusted_proxies and _is_valid_ip(ip):
                    return ip

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            real_ip = real_ip.strip()
            if real_ip not in trusted_proxies and _is_valid_ip(real_ip):
                return real_ip

    return client_host if _is_valid_ip(client_host) else "unknown"
