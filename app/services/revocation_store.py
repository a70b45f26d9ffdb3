"""Redis-backed list of tokens revoked before their natural expiry."""

import asyncio

import structlog
from redis.exceptions import RedisError

from app.core.exceptions import RevocationStoreUnavailable

logger = structlog.get_logger()

REVOKED_MARKER = "1"

# Failures treated as "store unreachable".
STORE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class RevocationStore:
    """Revocation entries keyed by token id, evicted by Redis once the token would have expired.

    Reads raise RevocationStoreUnavailable on failure so the caller can reject
    the request. Writes are best-effort: a failed revoke is logged and dropped,
    the token still expires on its own.
    """

    def __init__(self, client, key_prefix: str = "jwt:blacklist:", timeout: float = 1.0):
        self.client = client
        self.key_prefix = key_prefix
        self.timeout = timeout

    def _key(self, token_id: str) -> str:
        return f"{self.key_prefix}{token_id}"

    async def is_revoked(self, token_id: str) -> bool:
        try:
            found = await asyncio.wait_for(
                self.client.exists(self._key(token_id)),
                timeout=self.timeout,
            )
        except STORE_ERRORS as exc:
            logger.error(
                "revocation_check_failed",
                token_id=token_id,
                error_type=type(exc).__name__,
                detail=str(exc),
            )
            raise RevocationStoreUnavailable(token_id, exc) from exc
        return bool(found)

    async def revoke(self, token_id: str, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            # Already expired, verification rejects it anyway.
            return

        try:
            await asyncio.wait_for(
                self.client.set(self._key(token_id), REVOKED_MARKER, px=ttl_ms),
                timeout=self.timeout,
            )
        except STORE_ERRORS as exc:
            logger.warning(
                "token_revocation_failed",
                token_id=token_id,
                ttl_ms=ttl_ms,
                error_type=type(exc).__name__,
                detail=str(exc),
            )
            return

        logger.info("token_revoked", token_id=token_id, ttl_ms=ttl_ms)

    async def ping(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self.client.ping(), timeout=self.timeout))
        except STORE_ERRORS:
            return False
