"""Signing key material for token issuance and verification."""

import base64
import binascii
from dataclasses import dataclass

import structlog

from app.core.config import HMAC_MIN_KEY_BYTES
from app.core.exceptions import SigningKeyError

logger = structlog.get_logger()


def _decode_secret(secret: str) -> bytes:
    """Decode a base64 secret, falling back to the raw UTF-8 bytes.

    Missing trailing padding is accepted.
    """
    padded = secret + "=" * (-len(secret) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return secret.encode("utf-8")


@dataclass(frozen=True)
class SigningKey:
    """Immutable HMAC key, built once at startup and handed to issuer and verifier."""

    material: bytes
    algorithm: str = "HS512"

    def __repr__(self) -> str:
        return f"SigningKey(algorithm={self.algorithm!r}, length={len(self.material)})"

    @classmethod
    def from_secret(cls, secret: str, algorithm: str = "HS512") -> "SigningKey":
        """Derive the key from a configured secret.

        A short secret is zero-padded up to the algorithm minimum, keeping the
        original bytes as prefix, so the same secret always yields the same key.
        """
        if algorithm not in HMAC_MIN_KEY_BYTES:
            raise SigningKeyError(f"Unsupported signing algorithm: {algorithm}")
        if secret is None or not secret.strip():
            raise SigningKeyError("Signing secret is not configured")

        key_bytes = _decode_secret(secret.strip())
        if not key_bytes:
            raise SigningKeyError("Signing secret decodes to an empty key")

        min_length = HMAC_MIN_KEY_BYTES[algorithm]
        if len(key_bytes) < min_length:
            logger.warning(
                "signing_key_padded",
                algorithm=algorithm,
                configured_bytes=len(key_bytes),
                required_bytes=min_length,
            )
            key_bytes = key_bytes.ljust(min_length, b"\x00")

        return cls(material=key_bytes, algorithm=algorithm)
