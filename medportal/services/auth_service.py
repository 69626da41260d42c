"""Authentication flows: register, login, refresh, logout, profile."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from loguru import logger

from medportal.core.auth.password import PasswordHasher
from medportal.core.auth.token_blacklist import TokenRevocationList
from medportal.core.auth.tokens import TokenClaims, TokenPair, TokenService
from medportal.core.cache import SessionCache
from medportal.core.enums import Role
from medportal.core.exceptions import (
    AccountInactiveError,
    AuthenticationError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
    RecordNotFoundError,
    ValidationError,
)
from medportal.models.identity import Identity, NewIdentity
from medportal.repositories.user_repository import UserStore
from medportal.utils.masking import mask_email


@dataclass
class RegistrationData:
    """Registration input as received from the client."""

    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthResult:
    """Identity plus freshly issued tokens."""

    user: Identity
    tokens: TokenPair

    @property
    def token(self) -> str:
        return self.tokens.access_token

    @property
    def refresh_token(self) -> str:
        return self.tokens.refresh_token

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user.public_dict(),
            "token": self.token,
            "refreshToken": self.refresh_token,
        }


class AuthService:
    """
    Orchestrates the authentication flows over injected collaborators.

    Login and refresh re-read the identity from persistence and require an
    active status; everything else trusts signed token claims.
    """

    def __init__(
        self,
        users: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        revocations: Optional[TokenRevocationList] = None,
        sessions: Optional[SessionCache] = None,
    ):
        """
        Initialize auth service.

        Args:
            users: Identity persistence
            hasher: Password hasher
            tokens: Token issuer/validator
            revocations: Optional logout revocation list
            sessions: Optional cache for per-user session records
        """
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.revocations = revocations
        self.sessions = sessions

    async def register(self, data: RegistrationData) -> AuthResult:
        """
        Create an identity with its role profile row and issue a token pair.

        Raises:
            ValidationError: Missing required fields, unknown role or bad password length
            EmailAlreadyRegisteredError: Email already taken
        """
        if not all([data.email, data.password, data.role, data.first_name, data.last_name]):
            raise ValidationError("Missing required fields")

        try:
            role = Role(data.role)
        except ValueError:
            raise ValidationError(
                f"Invalid role. Must be one of: {', '.join(Role.values())}", field="role"
            )

        email = data.email.strip().lower()
        # create_with_profile also maps a unique violation to this error, which
        # covers a concurrent registration between the check and the insert
        if await self.users.get_by_email(email) is not None:
            raise EmailAlreadyRegisteredError()

        password_hash = await self.hasher.hash_async(data.password)

        user = await self.users.create_with_profile(
            NewIdentity(
                email=email,
                password_hash=password_hash,
                role=role,
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                phone=data.phone,
                date_of_birth=data.date_of_birth,
                gender=data.gender,
                profile=data.profile,
            )
        )

        logger.info(f"Registered {role.value} account {mask_email(email)} (id={user.id})")
        return AuthResult(user=user, tokens=self.tokens.issue_token_pair(user.summary()))

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Verify credentials and issue a token pair.

        Raises:
            ValidationError: Email or password missing
            InvalidCredentialsError: Unknown email or wrong password
            AccountInactiveError: Account is not active
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        normalized = email.strip().lower()
        user = await self.users.get_by_email(normalized)

        if user is None:
            # Equalize timing with the known-account path
            await self.hasher.dummy_verify_async()
            logger.warning(f"Failed login for unknown account {mask_email(normalized)}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(
                f"Login refused for {user.status.value} account {mask_email(normalized)}"
            )
            raise AccountInactiveError(status=user.status.value)

        if not await self.hasher.verify_async(password, user.password_hash):
            logger.warning(f"Failed login for {mask_email(normalized)}: wrong password")
            raise InvalidCredentialsError()

        await self.users.record_login(user.id)
        if self.sessions is not None:
            await self.sessions.set_session(
                str(user.id),
                {"id": user.id, "email": user.email, "role": user.role.value},
            )
        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, tokens=self.tokens.issue_token_pair(user.summary()))

    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """
        Exchange a valid refresh token for a new token pair.

        The presented refresh token is not consumed; it stays valid until it
        expires or is revoked by logout.

        Raises:
            ValidationError: Token missing
            AuthenticationError: Token invalid, revoked, or identity not active
        """
        if not refresh_token:
            raise ValidationError("Refresh token is required", field="refreshToken")

        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except InvalidTokenError:
            raise AuthenticationError("Invalid refresh token")

        if self.revocations is not None and await self.revocations.is_revoked(claims.jti):
            logger.warning(f"Revoked refresh token presented for user {claims.id}")
            raise AuthenticationError("Invalid refresh token")

        user = await self.users.get_by_id(claims.id)
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid refresh token")

        return self.tokens.issue_token_pair(user.summary())

    async def logout(
        self, access_claims: TokenClaims, refresh_token: Optional[str] = None
    ) -> bool:
        """
        Revoke the current access token and, if given, the refresh token.

        Best-effort: without a revocation list this only logs the event.

        Returns:
            True if at least one token was recorded as revoked
        """
        await self.end_sessions(access_claims.id)
        if self.revocations is None:
            logger.info(f"User {access_claims.id} logged out (no revocation list configured)")
            return False

        revoked = await self.revocations.revoke(access_claims)
        if refresh_token:
            try:
                refresh_claims = self.tokens.verify_refresh_token(refresh_token)
            except InvalidTokenError:
                logger.debug(f"Logout for user {access_claims.id} ignored an invalid refresh token")
            else:
                if refresh_claims.id == access_claims.id:
                    revoked = await self.revocations.revoke(refresh_claims) or revoked
        logger.info(f"User {access_claims.id} logged out")
        return revoked

    async def end_sessions(self, user_id: int) -> None:
        """Drop the cached session record for a user (logout, suspension, deletion)."""
        if self.sessions is not None:
            await self.sessions.delete_session(str(user_id))

    async def is_access_revoked(self, claims: TokenClaims) -> bool:
        if self.revocations is None:
            return False
        return await self.revocations.is_revoked(claims.jti)

    async def get_profile(self, user_id: int) -> Identity:
        """
        Load the full profile for an authenticated identity.

        Raises:
            RecordNotFoundError: Identity no longer exists
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise RecordNotFoundError("User", user_id)
        return user
