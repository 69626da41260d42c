"""User repository implementation."""

import logging
from typing import Any, Dict, List, Optional, Protocol

import asyncpg

from medportal.constants import Pagination
from medportal.core.enums import STAFF_PROFILE_ROLES, AccountStatus, Role
from medportal.core.exceptions import EmailAlreadyRegisteredError
from medportal.models.database import Database
from medportal.models.identity import Identity, NewIdentity
from medportal.repositories.base import BaseRepository
from medportal.utils.identifiers import (
    generate_license_number,
    generate_medical_record_number,
)

logger = logging.getLogger(__name__)

_USER_COLUMNS = (
    "id, email, password_hash, role, status, first_name, last_name, "
    "phone, date_of_birth, gender, created_at, last_login"
)

_PATIENT_SELECT = f"""
    SELECT u.{_USER_COLUMNS.replace(", ", ", u.")},
           p.medical_record_number, p.blood_type, p.allergies
    FROM users u
    JOIN patients p ON p.user_id = u.id
"""


class UserStore(Protocol):
    """Identity persistence needed by the auth and admin flows."""

    async def get_by_email(self, email: str) -> Optional[Identity]: ...

    async def get_by_id(self, id: int) -> Optional[Identity]: ...

    async def create_with_profile(self, new: NewIdentity) -> Identity: ...

    async def record_login(self, id: int) -> None: ...

    async def update_status(self, id: int, status: AccountStatus) -> Optional[Identity]: ...

    async def list_users(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Identity]: ...

    async def list_patients(
        self,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]: ...

    async def get_patient(self, user_id: int) -> Optional[Dict[str, Any]]: ...


def patient_row_to_dict(row: Any) -> Dict[str, Any]:
    """Shape a users+patients join row for the patient directory."""
    identity = Identity.from_record(row)
    return {
        **identity.profile_dict(),
        "medicalRecordNumber": row["medical_record_number"],
        "bloodType": row["blood_type"],
        "allergies": row["allergies"],
    }


class UserRepository(BaseRepository[Identity]):
    """Repository for the ``users`` table and its role profile rows."""

    def __init__(self, database: Database):
        """
        Initialize user repository.

        Args:
            database: Database instance
        """
        super().__init__(database)

    async def get_by_id(self, id: int) -> Optional[Identity]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", id)
            return Identity.from_record(row) if row else None

    async def get_by_email(self, email: str) -> Optional[Identity]:
        """
        Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            Identity or None if not found
        """
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = $1", email.lower()
            )
            return Identity.from_record(row) if row else None

    async def create_with_profile(self, new: NewIdentity) -> Identity:
        """
        Insert a user and its role profile row in one transaction.

        Patients get a ``patients`` row with a generated medical record number;
        doctors and nurses get a ``medical_staff`` row with a placeholder
        license number.

        Raises:
            EmailAlreadyRegisteredError: If the email is already taken
        """
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO users
                        (email, password_hash, role, first_name, last_name,
                         phone, date_of_birth, gender)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    RETURNING {_USER_COLUMNS}
                    """,
                    new.email.lower(),
                    new.password_hash,
                    new.role.value,
                    new.first_name,
                    new.last_name,
                    new.phone,
                    new.date_of_birth,
                    new.gender,
                )
                user_id = row["id"]

                if new.role == Role.PATIENT:
                    await conn.execute(
                        """
                        INSERT INTO patients
                            (user_id, medical_record_number, blood_type, allergies,
                             emergency_contact_name, emergency_contact_phone)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        """,
                        user_id,
                        generate_medical_record_number(),
                        new.profile.get("blood_type"),
                        new.profile.get("allergies"),
                        new.profile.get("emergency_contact_name"),
                        new.profile.get("emergency_contact_phone"),
                    )
                elif new.role in STAFF_PROFILE_ROLES:
                    await conn.execute(
                        """
                        INSERT INTO medical_staff
                            (user_id, license_number, specialization, department)
                        VALUES ($1, $2, $3, $4)
                        """,
                        user_id,
                        new.profile.get("license_number") or generate_license_number(),
                        new.profile.get("specialization"),
                        new.profile.get("department"),
                    )
        except asyncpg.UniqueViolationError as e:
            if e.constraint_name and "email" in e.constraint_name:
                raise EmailAlreadyRegisteredError()
            raise

        logger.info(f"Created {new.role.value} user with ID {user_id}")
        return Identity.from_record(row)

    async def record_login(self, id: int) -> None:
        async with self.db.get_connection() as conn:
            await conn.execute(
                "UPDATE users SET last_login = NOW() WHERE id = $1",
                id,
            )

    async def update_status(self, id: int, status: AccountStatus) -> Optional[Identity]:
        """
        Set a user's account status.

        Returns:
            Updated identity, or None if the user does not exist
        """
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users SET status = $1, updated_at = NOW()
                WHERE id = $2
                RETURNING {_USER_COLUMNS}
                """,
                status.value,
                id,
            )
            return Identity.from_record(row) if row else None

    async def list_users(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Identity]:
        """
        List users, newest first.

        Args:
            role: Optional filter by role
            status: Optional filter by status
            search: Optional case-insensitive match on name or email
            limit: Maximum number of users to return
            offset: Number of users to skip
        """
        query = f"SELECT {_USER_COLUMNS} FROM users WHERE 1=1"
        params: List[Any] = []

        if role is not None:
            params.append(role.value)
            query += f" AND role = ${len(params)}"
        if status is not None:
            params.append(status.value)
            query += f" AND status = ${len(params)}"
        if search:
            params.append(f"%{search}%")
            n = len(params)
            query += f" AND (first_name ILIKE ${n} OR last_name ILIKE ${n} OR email ILIKE ${n})"

        params.extend([limit, offset])
        query += f" ORDER BY created_at DESC LIMIT ${len(params) - 1} OFFSET ${len(params)}"

        async with self.db.get_connection() as conn:
            rows = await conn.fetch(query, *params)
            return [Identity.from_record(row) for row in rows]

    async def list_patients(
        self,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """List active patients with their medical record numbers."""
        query = _PATIENT_SELECT + " WHERE u.status = 'active'"
        params: List[Any] = []
        if search:
            params.append(f"%{search}%")
            query += (
                " AND (u.first_name ILIKE $1 OR u.last_name ILIKE $1"
                " OR p.medical_record_number ILIKE $1)"
            )
        params.extend([limit, offset])
        query += f" ORDER BY u.last_name, u.first_name LIMIT ${len(params) - 1} OFFSET ${len(params)}"

        async with self.db.get_connection() as conn:
            rows = await conn.fetch(query, *params)
            return [patient_row_to_dict(row) for row in rows]

    async def get_patient(self, user_id: int) -> Optional[Dict[str, Any]]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                _PATIENT_SELECT + " WHERE u.id = $1 AND u.status <> 'deleted'",
                user_id,
            )
            return patient_row_to_dict(row) if row else None
