"""Application services."""

from .auth_service import AuthResult, AuthService, RegistrationData

__all__ = ["AuthResult", "AuthService", "RegistrationData"]
