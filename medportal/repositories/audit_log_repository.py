"""Audit log repository implementation."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from medportal.constants import Database as DatabaseDefaults
from medportal.models.database import Database
from medportal.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class AuditLogEntry:
    """Audit log entry entity model."""

    def __init__(
        self,
        id: int,
        action: str,
        user_id: Optional[int],
        details: Optional[Dict[str, Any]],
        ip_address: Optional[str],
        created_at: Optional[datetime],
    ):
        """Initialize audit log entry entity."""
        self.id = id
        self.action = action
        self.user_id = user_id
        self.details = details
        self.ip_address = ip_address
        self.created_at = created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert audit log entry to dictionary."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "details": self.details,
            "ipAddress": self.ip_address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class AuditStore(Protocol):
    """Audit persistence needed by admin actions."""

    async def record(
        self,
        user_id: Optional[int],
        action: str,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> int: ...

    async def list_recent(
        self, limit: int = DatabaseDefaults.AUDIT_LOG_LIMIT
    ) -> List[AuditLogEntry]: ...


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """Repository for the ``audit_logs`` table."""

    def __init__(self, database: Database):
        """
        Initialize audit log repository.

        Args:
            database: Database instance
        """
        super().__init__(database)

    def _row_to_entry(self, row: Any) -> AuditLogEntry:
        details = row["details"]
        if isinstance(details, str):
            details = json.loads(details)
        return AuditLogEntry(
            id=row["id"],
            action=row["action"],
            user_id=row["user_id"],
            details=details,
            ip_address=row["ip_address"],
            created_at=row["created_at"],
        )

    async def get_by_id(self, id: int) -> Optional[AuditLogEntry]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM audit_logs WHERE id = $1", id)
            return self._row_to_entry(row) if row else None

    async def record(
        self,
        user_id: Optional[int],
        action: str,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> int:
        """
        Append an audit entry.

        Args:
            user_id: Acting user's ID
            action: Action name, e.g. ``UPDATE_USER_STATUS``
            details: JSON-serializable context
            ip_address: Client IP address

        Returns:
            Created entry ID
        """
        async with self.db.get_connection() as conn:
            entry_id = await conn.fetchval(
                """
                INSERT INTO audit_logs (user_id, action, details, ip_address)
                VALUES ($1, $2, $3::jsonb, $4)
                RETURNING id
                """,
                user_id,
                action,
                json.dumps(details) if details is not None else None,
                ip_address,
            )
        logger.info(f"Audit: {action} by user {user_id}")
        return int(entry_id)

    async def list_recent(
        self, limit: int = DatabaseDefaults.AUDIT_LOG_LIMIT
    ) -> List[AuditLogEntry]:
        """Get the most recent entries, newest first."""
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT * FROM audit_logs ORDER BY created_at DESC, id DESC LIMIT $1",
                limit,
            )
            return [self._row_to_entry(row) for row in rows]
