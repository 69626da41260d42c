"""Centralized enum definitions for MedPortal."""

from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    """Identity roles. Route permissions are expressed as sets of these."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    PATIENT = "patient"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class AccountStatus(str, Enum):
    """Identity status values. DELETED is a soft delete."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    DELETED = "deleted"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class TokenType(str, Enum):
    """JWT `type` claim values."""

    ACCESS = "access"
    REFRESH = "refresh"


# Role sets used by route wiring
CLINICAL_STAFF: FrozenSet[Role] = frozenset({Role.DOCTOR, Role.NURSE, Role.ADMIN})
STAFF_PROFILE_ROLES: FrozenSet[Role] = frozenset({Role.DOCTOR, Role.NURSE})
