import enum
from dataclasses import dataclass
from typing import Optional, Union

import structlog

from app.core.exceptions import RevocationStoreUnavailable
from app.core.security import (
    Expired,
    Malformed,
    MissingTokenId,
    TokenClaims,
    TokenVerifier,
    Valid,
)
from app.services.revocation_store import RevocationStore

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


class RejectionReason(str, enum.Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    MISSING_TOKEN_ID = "missing_token_id"
    BLACKLISTED = "blacklisted"
    STORE_UNAVAILABLE = "store_unavailable"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.MISSING_CREDENTIALS: "Unauthorized: Missing or invalid Authorization header.",
    RejectionReason.EXPIRED: "Token has expired",
    RejectionReason.MALFORMED: "Invalid token",
    RejectionReason.MISSING_TOKEN_ID: "Invalid token: missing token id",
    RejectionReason.BLACKLISTED: "Token has been blacklisted and cannot be used.",
    # Store state is not reported to clients.
    RejectionReason.STORE_UNAVAILABLE: "Unauthorized",
}


@dataclass(frozen=True)
class Admitted:
    subject: str
    claims: TokenClaims


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason

    @property
    def message(self) -> str:
        return self.reason.message


GuardOutcome = Union[Admitted, Rejected]


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class SessionGuard:
    """Admits or rejects a request based on its bearer token.

    Verification and revocation failures are folded into a Rejected outcome,
    nothing raises past check().
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        revocation_store: RevocationStore,
        fail_open: bool = False,
    ):
        self.verifier = verifier
        self.revocation_store = revocation_store
        self.fail_open = fail_open

    async def check(self, authorization: Optional[str]) -> GuardOutcome:
        token = extract_bearer_token(authorization)
        if token is None:
            return Rejected(RejectionReason.MISSING_CREDENTIALS)
        return await self.check_token(token)

    async def check_token(self, token: str) -> GuardOutcome:
        result = self.verifier.verify(token)

        if isinstance(result, Expired):
            return Rejected(RejectionReason.EXPIRED)
        if isinstance(result, MissingTokenId):
            logger.warning("token_without_id", subject=result.subject)
            return Rejected(RejectionReason.MISSING_TOKEN_ID)
        if isinstance(result, Malformed):
            logger.info("token_malformed", detail=result.detail)
            return Rejected(RejectionReason.MALFORMED)
        if not isinstance(result, Valid):
            return Rejected(RejectionReason.MALFORMED)

        claims = result.claims
        try:
            revoked = await self.revocation_store.is_revoked(claims.token_id)
        except RevocationStoreUnavailable:
            if not self.fail_open:
                return Rejected(RejectionReason.STORE_UNAVAILABLE)
            logger.warning(
                "revocation_check_skipped",
                token_id=claims.token_id,
                subject=claims.subject,
            )
            revoked = False

        if revoked:
            logger.info("token_blacklisted", token_id=claims.token_id, subject=claims.subject)
            return Rejected(RejectionReason.BLACKLISTED)

        return Admitted(subject=claims.subject, claims=claims)
