"""Authentication request models.

Required fields are optional at the schema level so that the service layer
reports missing fields with its own 400 message.
"""

from datetime import date
from typing import Optional

from medportal.services.auth_service import RegistrationData
from web.models.common import CamelModel


class RegisterRequest(CamelModel):
    """Registration request model."""

    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    allergies: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    specialization: Optional[str] = None
    department: Optional[str] = None

    def to_registration(self) -> RegistrationData:
        profile = self.model_dump(
            include={
                "blood_type",
                "allergies",
                "emergency_contact_name",
                "emergency_contact_phone",
                "specialization",
                "department",
            },
            exclude_none=True,
        )
        return RegistrationData(
            email=self.email,
            password=self.password,
            role=self.role,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            profile=profile,
        )


class LoginRequest(CamelModel):
    """Login request model."""

    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(CamelModel):
    """Refresh token request model."""

    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    """Logout request model; the refresh token is revoked when supplied."""

    refresh_token: Optional[str] = None
