"""Tests for the asyncpg repositories against a mocked connection."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import asyncpg
import pytest

from medportal.core.enums import AccountStatus, Role
from medportal.core.exceptions import EmailAlreadyRegisteredError
from medportal.models.identity import NewIdentity
from medportal.repositories import AuditLogRepository, UserRepository

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _user_row(**overrides):
    row = {
        "id": 1,
        "email": "a@x.com",
        "password_hash": "$2b$04$hash",
        "role": "patient",
        "status": "active",
        "first_name": "A",
        "last_name": "B",
        "phone": None,
        "date_of_birth": None,
        "gender": None,
        "created_at": NOW,
        "last_login": None,
    }
    row.update(overrides)
    return row


class FakeDatabase:
    """Stands in for Database, handing out one mocked connection."""

    def __init__(self):
        self.conn = AsyncMock()
        self.transactions = 0

    @asynccontextmanager
    async def get_connection(self, timeout=None):
        yield self.conn

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self.conn


def _new_identity(role: Role, **profile) -> NewIdentity:
    return NewIdentity(
        email="A@X.com",
        password_hash="$2b$04$hash",
        role=role,
        first_name="A",
        last_name="B",
        profile=profile,
    )


class TestUserRepository:
    """Tests for UserRepository."""

    @pytest.mark.asyncio
    async def test_get_by_email_lowercases(self):
        """Test that lookups use the lowercased email."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row()
        repo = UserRepository(db)

        user = await repo.get_by_email("A@X.COM")

        assert user.email == "a@x.com"
        assert user.role is Role.PATIENT
        assert db.conn.fetchrow.await_args.args[1] == "a@x.com"

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self):
        """Test that a missing row maps to None."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = None

        assert await UserRepository(db).get_by_id(5) is None

    @pytest.mark.asyncio
    async def test_create_patient_inserts_profile_in_transaction(self):
        """Test that a patient gets a patients row with a record number."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row()
        repo = UserRepository(db)

        user = await repo.create_with_profile(_new_identity(Role.PATIENT, blood_type="O+"))

        assert user.id == 1
        assert db.transactions == 1
        sql, *args = db.conn.execute.await_args.args
        assert "INSERT INTO patients" in sql
        assert args[1].startswith("MRN-")
        assert args[2] == "O+"

    @pytest.mark.asyncio
    async def test_create_doctor_inserts_staff_row(self):
        """Test that a doctor gets a medical_staff row."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row(role="doctor")
        repo = UserRepository(db)

        await repo.create_with_profile(_new_identity(Role.DOCTOR, specialization="Cardiology"))

        sql, *args = db.conn.execute.await_args.args
        assert "INSERT INTO medical_staff" in sql
        assert args[1].startswith("LIC-")
        assert args[2] == "Cardiology"

    @pytest.mark.asyncio
    async def test_create_admin_has_no_profile_row(self):
        """Test that admins only get a users row."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row(role="admin")

        await UserRepository(db).create_with_profile(_new_identity(Role.ADMIN))

        db.conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_email_maps_to_conflict(self):
        """Test that a unique violation on email becomes EmailAlreadyRegisteredError."""
        db = FakeDatabase()
        error = asyncpg.UniqueViolationError("duplicate key value")
        error.constraint_name = "users_email_key"
        db.conn.fetchrow.side_effect = error

        with pytest.raises(EmailAlreadyRegisteredError):
            await UserRepository(db).create_with_profile(_new_identity(Role.PATIENT))

    @pytest.mark.asyncio
    async def test_list_users_builds_filters(self):
        """Test that filters become numbered parameters."""
        db = FakeDatabase()
        db.conn.fetch.return_value = [_user_row(), _user_row(id=2, email="b@x.com")]

        users = await UserRepository(db).list_users(
            role=Role.PATIENT, status=AccountStatus.ACTIVE, search="ann", limit=10, offset=5
        )

        assert [u.id for u in users] == [1, 2]
        query, *params = db.conn.fetch.await_args.args
        assert params == ["patient", "active", "%ann%", 10, 5]
        assert "role = $1" in query
        assert "status = $2" in query
        assert "ILIKE $3" in query
        assert "LIMIT $4 OFFSET $5" in query

    @pytest.mark.asyncio
    async def test_update_status(self):
        """Test that status updates return the updated identity."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row(status="suspended")

        user = await UserRepository(db).update_status(1, AccountStatus.SUSPENDED)

        assert user.status is AccountStatus.SUSPENDED
        assert db.conn.fetchrow.await_args.args[1:] == ("suspended", 1)

    @pytest.mark.asyncio
    async def test_get_patient_shapes_row(self):
        """Test that the join row is shaped for the directory."""
        db = FakeDatabase()
        db.conn.fetchrow.return_value = _user_row(
            medical_record_number="MRN-1-ABC", blood_type="B+", allergies=None
        )

        patient = await UserRepository(db).get_patient(1)

        assert patient["medicalRecordNumber"] == "MRN-1-ABC"
        assert patient["bloodType"] == "B+"
        assert patient["email"] == "a@x.com"
        assert "password_hash" not in patient
        assert "passwordHash" not in patient


class TestAuditLogRepository:
    """Tests for AuditLogRepository."""

    @pytest.mark.asyncio
    async def test_record_serializes_details(self):
        """Test that details are stored as JSON."""
        db = FakeDatabase()
        db.conn.fetchval.return_value = 42

        entry_id = await AuditLogRepository(db).record(
            1, "UPDATE_USER_STATUS", {"targetUserId": 2}, "10.0.0.1"
        )

        assert entry_id == 42
        args = db.conn.fetchval.await_args.args
        assert '{"targetUserId": 2}' in args
        assert "10.0.0.1" in args

    @pytest.mark.asyncio
    async def test_list_recent_decodes_details(self):
        """Test that JSON text details are decoded."""
        db = FakeDatabase()
        db.conn.fetch.return_value = [
            {
                "id": 1,
                "user_id": 1,
                "action": "DELETE_USER",
                "details": '{"targetUserId": 3}',
                "ip_address": None,
                "created_at": NOW,
            }
        ]

        [entry] = await AuditLogRepository(db).list_recent()

        assert entry.details == {"targetUserId": 3}
        assert entry.to_dict()["createdAt"] == NOW.isoformat()


class TestDatabase:
    """Tests for Database before a pool exists."""

    @pytest.mark.asyncio
    async def test_not_connected(self):
        """Test that an unconnected database refuses connections and reports unhealthy."""
        from medportal.core.exceptions import DatabaseNotConnectedError
        from medportal.models import Database, DatabaseState

        db = Database("postgresql://localhost:5432/medportal_test")

        assert db.state == DatabaseState.DISCONNECTED
        with pytest.raises(DatabaseNotConnectedError):
            async with db.get_connection():
                pass
        assert await db.health_check() is False


class TestBaseRepository:
    """Tests for the repository base class."""

    def test_only_primary_key_lookup_is_abstract(self):
        """Test that subclasses only have to provide get_by_id."""
        from medportal.repositories.base import BaseRepository

        assert BaseRepository.__abstractmethods__ == frozenset({"get_by_id"})
        assert not hasattr(UserRepository, "get_all")
        assert not hasattr(AuditLogRepository, "get_all")
