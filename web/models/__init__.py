"""Request and response models for the MedPortal API."""

from .auth import LoginRequest, LogoutRequest, RefreshTokenRequest, RegisterRequest
from .common import CamelModel
from .users import UpdateUserStatusRequest

__all__ = [
    "CamelModel",
    "LoginRequest",
    "LogoutRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "UpdateUserStatusRequest",
]
