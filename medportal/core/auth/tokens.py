"""JWT access/refresh token issuance and verification."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import InvalidTokenError as JWTError
from loguru import logger

from medportal.core.config.settings import Settings
from medportal.core.enums import Role, TokenType
from medportal.core.exceptions import InvalidTokenError
from medportal.models.identity import IdentitySummary


@dataclass(frozen=True)
class TokenClaims:
    """Decoded and verified token claims."""

    id: int
    email: str
    role: Optional[Role]
    issued_at: datetime
    expires_at: datetime
    jti: str
    token_type: TokenType


@dataclass(frozen=True)
class TokenPair:
    """Access token plus refresh token issued together."""

    access_token: str
    refresh_token: str


class TokenService:
    """
    Issues and validates signed access and refresh tokens.

    Access and refresh tokens are signed with separate secrets and carry a
    ``type`` claim, so neither can stand in for the other.
    """

    def __init__(self, settings: Settings):
        """
        Initialize token service.

        Args:
            settings: Application settings holding both secrets and lifetimes
        """
        self._access_secret = settings.jwt_secret.get_secret_value()
        self._refresh_secret = settings.jwt_refresh_secret.get_secret_value()
        self._algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=settings.jwt_access_expire_minutes)
        self.refresh_ttl = timedelta(minutes=settings.jwt_refresh_expire_minutes)

    def _encode(
        self, claims: Dict[str, Any], token_type: TokenType, secret: str, ttl: timedelta
    ) -> str:
        iat = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": iat,
            "exp": iat + ttl,
            # Unique id so two tokens minted in the same second still differ
            "jti": str(uuid.uuid4()),
            "type": token_type.value,
        }
        return str(jwt.encode(payload, secret, algorithm=self._algorithm))

    def issue_access_token(self, summary: IdentitySummary) -> str:
        """Create a short-lived access token for ``summary``."""
        return self._encode(
            {"sub": str(summary.id), "email": summary.email, "role": summary.role.value},
            TokenType.ACCESS,
            self._access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, summary: IdentitySummary) -> str:
        """Create a long-lived refresh token for ``summary``."""
        return self._encode(
            {"sub": str(summary.id), "email": summary.email},
            TokenType.REFRESH,
            self._refresh_secret,
            self.refresh_ttl,
        )

    def issue_token_pair(self, summary: IdentitySummary) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(summary),
            refresh_token=self.issue_refresh_token(summary),
        )

    def _decode(self, token: str, secret: str, expected_type: TokenType) -> TokenClaims:
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat", "jti", "type"]},
            )
        except JWTError as e:
            logger.debug(f"{expected_type.value} token rejected: {type(e).__name__}")
            raise InvalidTokenError()

        if payload.get("type") != expected_type.value:
            logger.debug(f"Token type mismatch: expected {expected_type.value}")
            raise InvalidTokenError()

        try:
            role = Role(payload["role"]) if payload.get("role") is not None else None
            return TokenClaims(
                id=int(payload["sub"]),
                email=str(payload.get("email", "")),
                role=role,
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                jti=str(payload["jti"]),
                token_type=expected_type,
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError()

    def verify_access_token(self, token: str) -> TokenClaims:
        """
        Verify an access token.

        Raises:
            InvalidTokenError: Bad signature, expired, malformed or wrong type
        """
        claims = self._decode(token, self._access_secret, TokenType.ACCESS)
        if claims.role is None:
            raise InvalidTokenError()
        return claims

    def verify_refresh_token(self, token: str) -> TokenClaims:
        """
        Verify a refresh token.

        Raises:
            InvalidTokenError: Bad signature, expired, malformed or wrong type
        """
        return self._decode(token, self._refresh_secret, TokenType.REFRESH)

    @staticmethod
    def extract_bearer(header: Optional[str]) -> Optional[str]:
        """
        Extract the token from an ``Authorization: Bearer <token>`` header.

        Returns None unless the header is exactly two space-separated parts
        with the ``Bearer`` scheme.
        """
        if not header:
            return None
        parts = header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            return None
        return parts[1]
