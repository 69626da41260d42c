"""Identity entities shared by the persistence and auth layers."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from medportal.core.enums import AccountStatus, Role


@dataclass(frozen=True)
class IdentitySummary:
    """The claim subset embedded in access tokens."""

    id: int
    email: str
    role: Role


@dataclass
class Identity:
    """User account as stored in the ``users`` table."""

    id: int
    email: str
    password_hash: str
    role: Role
    status: AccountStatus
    first_name: str
    last_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "Identity":
        """Build from an asyncpg Record or any mapping with the same keys."""
        row = dict(record)
        return cls(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            status=AccountStatus(row["status"]),
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row.get("phone"),
            date_of_birth=row.get("date_of_birth"),
            gender=row.get("gender"),
            created_at=row.get("created_at"),
            last_login=row.get("last_login"),
        )

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def summary(self) -> IdentitySummary:
        return IdentitySummary(id=self.id, email=self.email, role=self.role)

    def public_dict(self) -> Dict[str, Any]:
        """Fields returned alongside freshly issued tokens."""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }

    def profile_dict(self) -> Dict[str, Any]:
        """Full profile; the password hash is never included."""
        return {
            **self.public_dict(),
            "phone": self.phone,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class NewIdentity:
    """Validated registration input, ready for insertion."""

    email: str
    password_hash: str
    role: Role
    first_name: str
    last_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)
