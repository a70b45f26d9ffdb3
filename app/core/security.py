import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.keys import SigningKey

logger = structlog.get_logger()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MAX_PASSWORD_BYTES = 72

Clock = Callable[[], float]


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError("Password is too long")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify plain password against hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def generate_token_id() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    token_id: Optional[str]
    issued_at: float
    expires_at: float
    username: Optional[str] = None
    email: Optional[str] = None

    def remaining_ms(self, now: float) -> int:
        return int((self.expires_at - now) * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sub": self.subject,
            "jti": self.token_id,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "username": self.username,
            "email": self.email,
        }


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: str
    issued_at: float
    expires_at: float
    expires_in_ms: int
    token_type: str = "Bearer"


# Verification outcomes. verify() returns exactly one of these.

@dataclass(frozen=True)
class Valid:
    claims: TokenClaims


@dataclass(frozen=True)
class Expired:
    expired_at: float


@dataclass(frozen=True)
class Malformed:
    detail: str


@dataclass(frozen=True)
class MissingTokenId:
    subject: Optional[str] = None


VerificationResult = Union[Valid, Expired, Malformed, MissingTokenId]


class TokenIssuer:
    """Builds and signs access tokens for already-authenticated subjects."""

    def __init__(
        self,
        key: SigningKey,
        ttl_ms: int,
        clock: Clock = time.time,
        id_factory: Callable[[], str] = generate_token_id,
    ):
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self.key = key
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._id_factory = id_factory

    def issue(
        self,
        subject: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> IssuedToken:
        issued_at = round(self._clock(), 3)
        expires_at = round(issued_at + self.ttl_ms / 1000, 3)
        token_id = self._id_factory()

        to_encode: dict[str, Any] = {
            "sub": str(subject),
            "jti": token_id,
            "iat": issued_at,
            "exp": expires_at,
        }
        if username is not None:
            to_encode["username"] = username
        if email is not None:
            to_encode["email"] = email

        encoded_jwt = jwt.encode(to_encode, self.key.material, algorithm=self.key.algorithm)
        logger.debug("token_issued", subject=str(subject), token_id=token_id)
        return IssuedToken(
            token=encoded_jwt,
            token_id=token_id,
            issued_at=issued_at,
            expires_at=expires_at,
            expires_in_ms=self.ttl_ms,
        )


def _numeric_claim(payload: dict, name: str) -> Optional[float]:
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class TokenVerifier:
    """Checks signature and expiry of presented tokens without side effects."""

    def __init__(self, key: SigningKey, clock: Clock = time.time):
        self.key = key
        self._clock = clock

    def verify(self, token: str) -> VerificationResult:
        if not token or token.count(".") != 2:
            return Malformed("Token is not in compact serialization")

        try:
            # Expiry is checked below with millisecond precision.
            payload = jwt.decode(
                token,
                self.key.material,
                algorithms=[self.key.algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as exc:
            return Malformed(str(exc))

        expires_at = _numeric_claim(payload, "exp")
        issued_at = _numeric_claim(payload, "iat")
        if expires_at is None or issued_at is None:
            return Malformed("Token is missing iat or exp")

        if self._clock() >= expires_at:
            return Expired(expired_at=expires_at)

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return Malformed("Token is missing a subject")

        token_id = payload.get("jti")
        if not isinstance(token_id, str) or not token_id:
            return MissingTokenId(subject=subject)

        return Valid(
            TokenClaims(
                subject=subject,
                token_id=token_id,
                issued_at=issued_at,
                expires_at=expires_at,
                username=payload.get("username"),
                email=payload.get("email"),
            )
        )
