import time

import structlog
from sqlalchemy.orm import Session

from app.core.exceptions import InactiveAccount, InvalidCredentials
from app.core.security import (
    Clock,
    IssuedToken,
    TokenIssuer,
    TokenVerifier,
    Valid,
    hash_password,
    verify_password,
)
from app.models.user import User
from app.services.revocation_store import RevocationStore

logger = structlog.get_logger()

# Compared against when the account does not exist, keeps timing uniform.
_DUMMY_PASSWORD_HASH = hash_password("dummy-password")


class AuthService:
    """Login and logout on top of the token issuer, verifier and revocation store."""

    def __init__(
        self,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        revocation_store: RevocationStore,
        clock: Clock = time.time,
    ):
        self.issuer = issuer
        self.verifier = verifier
        self.revocation_store = revocation_store
        self._clock = clock

    def authenticate(self, db: Session, username_or_email: str, password: str) -> User:
        """Look up the account by username, then email, and check the password.

        Unknown account and wrong password both raise InvalidCredentials.
        """
        user = db.query(User).filter(User.username == username_or_email).first()
        if user is None:
            user = db.query(User).filter(User.email == username_or_email).first()

        if user is None:
            verify_password(password, _DUMMY_PASSWORD_HASH)
            logger.info("login_failed", reason="unknown_account")
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash):
            logger.info("login_failed", reason="bad_password", user_id=user.id)
            raise InvalidCredentials()

        if not user.is_active:
            raise InactiveAccount()

        return user

    def login(self, user: User) -> IssuedToken:
        issued = self.issuer.issue(str(user.id), username=user.username, email=user.email)
        logger.info("login_succeeded", user_id=user.id, token_id=issued.token_id)
        return issued

    async def logout(self, token: str) -> None:
        """Revoke the token for the rest of its lifetime. Best effort, never raises."""
        result = self.verifier.verify(token)
        if not isinstance(result, Valid):
            # Expired or invalid tokens already fail verification.
            logger.debug("logout_without_valid_token", result=type(result).__name__)
            return

        claims = result.claims
        await self.revocation_store.revoke(claims.token_id, claims.remaining_ms(self._clock()))
