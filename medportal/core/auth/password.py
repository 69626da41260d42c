"""Password hashing and verification."""

import asyncio
from typing import Optional

from loguru import logger

from medportal.constants import Security
from medportal.core.exceptions import ValidationError

# Bcrypt has a maximum password length of 72 bytes
MAX_PASSWORD_BYTES = 72

# Monkey-patch passlib to handle bcrypt 5.0.0 compatibility
# passlib 1.7.4's detect_wrap_bug creates a 200-char test password which exceeds
# bcrypt 5.0.0's strict 72-byte limit. We patch it to truncate test passwords.
import passlib.handlers.bcrypt as _pbcrypt  # noqa: E402

_original_calc_checksum = _pbcrypt._BcryptBackend._calc_checksum


def _patched_calc_checksum(self, secret):
    """Patched _calc_checksum that truncates passwords to 72 bytes for bcrypt 5.0.0."""
    if isinstance(secret, bytes) and len(secret) > MAX_PASSWORD_BYTES:
        secret = _truncate_bytes(secret)
    return _original_calc_checksum(self, secret)


_pbcrypt._BcryptBackend._calc_checksum = _patched_calc_checksum

from passlib.context import CryptContext  # noqa: E402
from passlib.exc import InternalBackendError  # noqa: E402


def _truncate_bytes(raw: bytes) -> bytes:
    """Cut ``raw`` to at most 72 bytes without splitting a UTF-8 character."""
    truncated = raw[:MAX_PASSWORD_BYTES]
    for i in range(len(truncated), 0, -1):
        try:
            truncated[:i].decode("utf-8")
            return truncated[:i]
        except UnicodeDecodeError:
            continue
    return truncated


def _truncate_password(password: str) -> str:
    """
    Truncate password to 72 bytes for bcrypt, handling UTF-8 safely.

    Args:
        password: Plain text password

    Returns:
        Truncated password (max 72 bytes when encoded as UTF-8)
    """
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return _truncate_bytes(password_bytes).decode("utf-8")
    return password


def validate_password_length(password: str) -> None:
    """
    Validate password is within the accepted length range.

    Raises:
        ValidationError: If password is too short or exceeds bcrypt's byte limit
    """
    if len(password) < Security.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {Security.MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password exceeds maximum length of {MAX_PASSWORD_BYTES} bytes. "
            f"Current length: {len(password_bytes)} bytes. "
            "Please use a shorter password.",
            field="password",
        )


class PasswordHasher:
    """Salted, work-factor-tunable one-way password hashing (bcrypt)."""

    def __init__(self, rounds: int = Security.PASSWORD_HASH_ROUNDS):
        """
        Initialize hasher.

        Args:
            rounds: bcrypt cost factor (4-31)
        """
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )
        self._dummy_digest: Optional[str] = None

    def hash(self, plaintext: str) -> str:
        """
        Hash a password using bcrypt.

        Raises:
            ValidationError: If password is too short or too long
        """
        validate_password_length(plaintext)
        return str(self._context.hash(plaintext))

    def verify(self, plaintext: str, digest: str) -> bool:
        """
        Verify a password against its digest.

        Never raises: a malformed digest or backend failure counts as a mismatch.
        """
        if not plaintext or not digest:
            return False
        try:
            return bool(self._context.verify(_truncate_password(plaintext), digest))
        except (ValueError, TypeError, InternalBackendError) as e:
            logger.warning(f"Password verification failed on malformed digest: {type(e).__name__}")
            return False

    def dummy_verify(self) -> None:
        """Spend one bcrypt verification so unknown accounts cost the same as known ones."""
        if self._dummy_digest is None:
            self._dummy_digest = self._context.hash("medportal-timing-equalizer")
        self._context.verify("not-the-password", self._dummy_digest)

    async def hash_async(self, plaintext: str) -> str:
        """Hash in a worker thread."""
        return await asyncio.to_thread(self.hash, plaintext)

    async def verify_async(self, plaintext: str, digest: str) -> bool:
        """Verify in a worker thread."""
        return await asyncio.to_thread(self.verify, plaintext, digest)

    async def dummy_verify_async(self) -> None:
        await asyncio.to_thread(self.dummy_verify)


_default_hasher: Optional[PasswordHasher] = None


def _get_default_hasher() -> PasswordHasher:
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = PasswordHasher()
    return _default_hasher


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt with the default cost factor.

    Raises:
        ValidationError: If password is too short or too long
    """
    return _get_default_hasher().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return _get_default_hasher().verify(plain_password, hashed_password)
