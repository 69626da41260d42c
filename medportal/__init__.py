"""MedPortal - Role-based patient management API."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"
__license__ = "MIT"

if TYPE_CHECKING:
    from .core.auth.password import PasswordHasher as PasswordHasher
    from .core.auth.tokens import TokenService as TokenService
    from .core.cache import SessionCache as SessionCache
    from .core.config.settings import Settings as Settings
    from .core.config.settings import get_settings as get_settings
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .models.database import Database as Database
    from .services.auth_service import AuthService as AuthService

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    "Settings": ("medportal.core.config.settings", "Settings"),
    "get_settings": ("medportal.core.config.settings", "get_settings"),
    "setup_structured_logging": ("medportal.core.logger", "setup_structured_logging"),
    "PasswordHasher": ("medportal.core.auth.password", "PasswordHasher"),
    "TokenService": ("medportal.core.auth.tokens", "TokenService"),
    "SessionCache": ("medportal.core.cache", "SessionCache"),
    "Database": ("medportal.models.database", "Database"),
    "AuthService": ("medportal.services.auth_service", "AuthService"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
