"""Cache-backed revocation list for logged-out tokens."""

import math
from datetime import datetime, timezone

from loguru import logger

from medportal.constants import Cache
from medportal.core.cache import SessionCache

from .tokens import TokenClaims


class TokenRevocationList:
    """
    Best-effort token revocation keyed by ``jti``.

    Entries live in the session cache until the token's natural expiry. The
    cache is fail-open, so a lost or unreachable cache forgets revocations.
    """

    def __init__(self, cache: SessionCache):
        """
        Initialize revocation list.

        Args:
            cache: Session cache holding revocation markers
        """
        self._cache = cache

    @staticmethod
    def _key(jti: str) -> str:
        return f"{Cache.REVOKED_TOKEN_PREFIX}:{jti}"

    async def revoke(self, claims: TokenClaims) -> bool:
        """
        Revoke a verified token until it expires.

        Returns:
            False if the token has already expired (nothing to store)
        """
        remaining = (claims.expires_at - datetime.now(timezone.utc)).total_seconds()
        if remaining <= 0:
            return False
        await self._cache.set(
            self._key(claims.jti),
            {"user_id": claims.id, "type": claims.token_type.value},
            ttl=math.ceil(remaining),
        )
        logger.info(f"Token {claims.jti[:8]}... revoked ({claims.token_type.value})")
        return True

    async def is_revoked(self, jti: str) -> bool:
        return await self._cache.exists(self._key(jti))
