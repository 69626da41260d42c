"""Configuration package."""

from .settings import SUPPORTED_JWT_ALGORITHMS, Settings, get_settings, reset_settings

__all__ = ["SUPPORTED_JWT_ALGORITHMS", "Settings", "get_settings", "reset_settings"]
