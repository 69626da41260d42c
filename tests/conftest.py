"""Pytest configuration and common fixtures."""

import os
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

os.environ.setdefault("ENV", "testing")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from medportal.constants import Pagination
from medportal.core.auth import PasswordHasher, TokenRevocationList, TokenService
from medportal.core.cache import InMemoryCacheBackend, SessionCache
from medportal.core.config.settings import Settings, reset_settings
from medportal.core.enums import STAFF_PROFILE_ROLES, AccountStatus, Role
from medportal.core.exceptions import EmailAlreadyRegisteredError
from medportal.models.identity import Identity, NewIdentity
from medportal.repositories.audit_log_repository import AuditLogEntry
from medportal.services.auth_service import AuthService, RegistrationData
from medportal.utils.identifiers import generate_license_number, generate_medical_record_number

# Lowest bcrypt cost keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


class InMemoryUserStore:
    """UserStore backed by dicts, mirroring UserRepository semantics."""

    def __init__(self):
        self.users: Dict[int, Identity] = {}
        self.patient_profiles: Dict[int, Dict[str, Any]] = {}
        self.staff_profiles: Dict[int, Dict[str, Any]] = {}
        self.logins: List[int] = []
        self._next_id = 1

    async def get_by_email(self, email: str) -> Optional[Identity]:
        email = email.lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def get_by_id(self, id: int) -> Optional[Identity]:
        return self.users.get(id)

    async def create_with_profile(self, new: NewIdentity) -> Identity:
        if await self.get_by_email(new.email) is not None:
            raise EmailAlreadyRegisteredError()
        identity = Identity(
            id=self._next_id,
            email=new.email.lower(),
            password_hash=new.password_hash,
            role=new.role,
            status=AccountStatus.ACTIVE,
            first_name=new.first_name,
            last_name=new.last_name,
            phone=new.phone,
            date_of_birth=new.date_of_birth,
            gender=new.gender,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self.users[identity.id] = identity
        if new.role == Role.PATIENT:
            self.patient_profiles[identity.id] = {
                "medicalRecordNumber": generate_medical_record_number(),
                "bloodType": new.profile.get("blood_type"),
                "allergies": new.profile.get("allergies"),
            }
        elif new.role in STAFF_PROFILE_ROLES:
            self.staff_profiles[identity.id] = {"licenseNumber": generate_license_number()}
        return identity

    async def record_login(self, id: int) -> None:
        self.users[id].last_login = datetime.now(timezone.utc)
        self.logins.append(id)

    async def update_status(self, id: int, status: AccountStatus) -> Optional[Identity]:
        identity = self.users.get(id)
        if identity is None:
            return None
        identity.status = status
        return identity

    async def list_users(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Identity]:
        result = [
            u
            for u in self.users.values()
            if (role is None or u.role == role)
            and (status is None or u.status == status)
            and (
                not search
                or search.lower() in f"{u.first_name} {u.last_name} {u.email}".lower()
            )
        ]
        return result[offset : offset + limit]

    def _patient_view(self, identity: Identity) -> Dict[str, Any]:
        return {**identity.profile_dict(), **self.patient_profiles[identity.id]}

    async def list_patients(
        self,
        search: Optional[str] = None,
        limit: int = Pagination.DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        patients = [
            self._patient_view(u)
            for u in self.users.values()
            if u.id in self.patient_profiles and u.status == AccountStatus.ACTIVE
        ]
        return patients[offset : offset + limit]

    async def get_patient(self, user_id: int) -> Optional[Dict[str, Any]]:
        identity = self.users.get(user_id)
        if identity is None or user_id not in self.patient_profiles:
            return None
        if identity.status == AccountStatus.DELETED:
            return None
        return self._patient_view(identity)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryAuditStore:
    """AuditStore backed by a list."""

    def __init__(self):
        self.entries: List[AuditLogEntry] = []

    async def record(
        self,
        user_id: Optional[int],
        action: str,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> int:
        entry = AuditLogEntry(
            id=len(self.entries) + 1,
            action=action,
            user_id=user_id,
            details=details,
            ip_address=ip_address,
            created_at=datetime.now(timezone.utc),
        )
        self.entries.append(entry)
        return entry.id

    async def list_recent(self, limit: int = 100) -> List[AuditLogEntry]:
        return list(reversed(self.entries))[:limit]


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Automatically set up test environment for all tests."""
    monkeypatch.setenv("ENV", "testing")
    monkeypatch.setenv("JWT_SECRET", secrets.token_urlsafe(48))
    monkeypatch.setenv("JWT_REFRESH_SECRET", secrets.token_urlsafe(48))
    monkeypatch.setenv("BCRYPT_ROUNDS", str(TEST_BCRYPT_ROUNDS))
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost:5432/medportal_test")
    monkeypatch.delenv("REDIS_URL", raising=False)

    # Reset settings singleton so each test gets fresh settings
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    """Test settings with distinct secrets and fast hashing."""
    return Settings(
        env="testing",
        jwt_secret=secrets.token_urlsafe(48),
        jwt_refresh_secret=secrets.token_urlsafe(48),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> SessionCache:
    return SessionCache(InMemoryCacheBackend())


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def auth_service(user_store, hasher, token_service, cache) -> AuthService:
    return AuthService(
        user_store,
        hasher,
        token_service,
        revocations=TokenRevocationList(cache),
        sessions=cache,
    )


@pytest_asyncio.fixture
async def registered_patient(auth_service):
    """A registered, active patient; returns (AuthResult, password)."""
    password = "secret123"
    result = await auth_service.register(
        RegistrationData(
            email="a@x.com",
            password=password,
            role="patient",
            first_name="A",
            last_name="B",
        )
    )
    return result, password


@pytest.fixture
def app(settings, cache, user_store, audit_store):
    """FastAPI app wired to in-memory collaborators."""
    from web.app import create_app

    return create_app(settings, cache=cache, user_store=user_store, audit_store=audit_store)


@pytest.fixture
def client(app):
    """Test client; entering the context runs the app lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Register a user through the API and return the response payload's ``data``."""

    def _register(email: str, role: str, password: str = "secret123", **extra) -> Dict[str, Any]:
        body = {
            "email": email,
            "password": password,
            "role": role,
            "firstName": extra.pop("firstName", "Test"),
            "lastName": extra.pop("lastName", role.title()),
            **extra,
        }
        response = client.post("/api/v1/auth/register", json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _register


def bearer(token: str) -> Dict[str, str]:
    """Authorization header for ``token``."""
    return {"Authorization": f"Bearer {token}"}
