"""Custom exception classes for MedPortal.

Every error carries an HTTP status and a stable machine-readable ``reason``
so a single set of exception handlers can format responses uniformly.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class MedPortalError(Exception):
    """Base exception for MedPortal."""

    status_code: int = 500
    reason: str = "internal_error"
    title: str = "Internal Server Error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize MedPortal error.

        Args:
            message: Human-readable error message
            details: Additional error details (exposed as extension members)
        """
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    @property
    def error_type_uri(self) -> str:
        """RFC 7807 ``type`` member for this error."""
        return f"urn:medportal:error:{self.reason.replace('_', '-')}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "reason": self.reason,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Validation Errors
class ValidationError(MedPortalError):
    """Missing or malformed input."""

    status_code = 400
    reason = "validation_error"
    title = "Bad Request"

    def __init__(self, message: str = "Validation error", field: Optional[str] = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
        """
        self.field = field
        super().__init__(message, details={"field": field} if field else {})


# Authentication Errors
class AuthenticationError(MedPortalError):
    """Authentication failed. Messages stay generic to avoid user enumeration."""

    status_code = 401
    reason = "authentication_failed"
    title = "Unauthorized"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password; the two are indistinguishable."""

    reason = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class MissingTokenError(AuthenticationError):
    """No bearer token on a protected route."""

    reason = "no_token"

    def __init__(self):
        super().__init__("No token provided")


class InvalidTokenError(AuthenticationError):
    """Token signature, expiry or type check failed."""

    reason = "invalid_token"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


# Authorization Errors
class ForbiddenError(MedPortalError):
    """Authenticated but not allowed."""

    status_code = 403
    reason = "forbidden"
    title = "Forbidden"

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AccountInactiveError(ForbiddenError):
    """Account status is not active."""

    reason = "account_inactive"

    def __init__(self, status: Optional[str] = None):
        super().__init__(
            "Account is suspended or inactive",
            details={"status": status} if status else None,
        )


class InsufficientPermissionsError(ForbiddenError):
    """Identity role is not in the route's allowed-role set."""

    reason = "insufficient_permissions"

    def __init__(self):
        super().__init__("Insufficient permissions")


# Conflict Errors
class ConflictError(MedPortalError):
    """Resource state conflict."""

    status_code = 409
    reason = "conflict"
    title = "Conflict"

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class EmailAlreadyRegisteredError(ConflictError):
    """An identity with this email already exists."""

    reason = "email_taken"

    def __init__(self):
        super().__init__("Email already registered")


# Rate limiting
class RateLimitExceededError(MedPortalError):
    """Fixed-window ceiling exceeded."""

    status_code = 429
    reason = "rate_limited"
    title = "Too Many Requests"

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        retry_after: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds the client should wait before retrying
            headers: Rate limit headers to send with the 429 response
        """
        self.retry_after = retry_after
        self.headers = headers or {}
        super().__init__(message, details={"retryAfter": retry_after})


# Not found
class RecordNotFoundError(MedPortalError):
    """Raised when a database record is not found."""

    status_code = 404
    reason = "not_found"
    title = "Not Found"

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


# Internal Errors
class InternalError(MedPortalError):
    """Unexpected failure; message is never exposed verbatim in production."""


class ConfigurationError(MedPortalError):
    """Configuration error occurred."""

    reason = "configuration_error"

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)


# Database Errors
class DatabaseError(MedPortalError):
    """Base class for database-related errors."""

    reason = "database_error"

    def __init__(
        self,
        message: str = "Database error occurred",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)


class DatabaseNotConnectedError(DatabaseError):
    """Raised when operation attempted without connection."""

    def __init__(self):
        super().__init__("Database connection is not established. Call connect() first.")


class DatabasePoolTimeoutError(DatabaseError):
    """Raised when database connection pool is exhausted and timeout occurs."""

    status_code = 503
    reason = "database_unavailable"
    title = "Service Unavailable"

    def __init__(self, timeout: float, pool_size: int):
        super().__init__(
            f"Database connection pool exhausted after {timeout}s (pool size: {pool_size}). "
            "Consider increasing DB_POOL_SIZE or optimizing database queries.",
            details={"timeout": timeout, "pool_size": pool_size},
        )
