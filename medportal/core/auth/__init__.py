"""Authentication primitives: password hashing, tokens, revocation."""

from .password import PasswordHasher, hash_password, verify_password
from .token_blacklist import TokenRevocationList
from .tokens import TokenClaims, TokenPair, TokenService

__all__ = [
    "PasswordHasher",
    "TokenClaims",
    "TokenPair",
    "TokenRevocationList",
    "TokenService",
    "hash_password",
    "verify_password",
]
