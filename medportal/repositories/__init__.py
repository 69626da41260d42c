"""Repository pattern implementation for data access layer."""

from medportal.repositories.audit_log_repository import (
    AuditLogEntry,
    AuditLogRepository,
    AuditStore,
)
from medportal.repositories.base import BaseRepository
from medportal.repositories.user_repository import UserRepository, UserStore

__all__ = [
    "AuditLogEntry",
    "AuditLogRepository",
    "AuditStore",
    "BaseRepository",
    "UserRepository",
    "UserStore",
]
