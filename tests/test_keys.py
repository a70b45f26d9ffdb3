import base64

import pytest

from app.core.exceptions import SigningKeyError
from app.core.keys import SigningKey
from app.core.security import TokenIssuer, TokenVerifier, Valid


def test_base64_secret_is_decoded():
    raw = bytes(range(64))
    key = SigningKey.from_secret(base64.b64encode(raw).decode())

    assert key.material == raw
    assert key.algorithm == "HS512"


def test_unpadded_base64_secret_is_decoded():
    raw = bytes(range(64))
    unpadded = base64.b64encode(raw).decode().rstrip("=")

    assert len(unpadded) == 86
    assert SigningKey.from_secret(unpadded).material == raw


def test_short_unpadded_base64_secret_is_decoded_then_padded():
    key = SigningKey.from_secret("0123456789")

    assert len(key.material) == 64
    assert key.material.startswith(b"\xd3]\xb7\xe3\x9e\xbb\xf3")
    assert key.material[7:] == b"\x00" * 57


def test_base64_length_off_by_one_falls_back_to_utf8_bytes():
    key = SigningKey.from_secret("abcde")

    assert key.material.startswith(b"abcde\x00")


def test_passphrase_falls_back_to_utf8_bytes():
    secret = "not base64 at all! " * 4
    key = SigningKey.from_secret(secret)

    assert key.material == secret.strip().encode("utf-8")


def test_short_secret_is_zero_padded_keeping_prefix():
    key = SigningKey.from_secret("pass-phrase")

    assert len(key.material) == 64
    assert key.material.startswith(b"pass-phrase")
    assert key.material[11:] == b"\x00" * 53


def test_short_secret_for_hs256_pads_to_32_bytes():
    key = SigningKey.from_secret("short-passphrase", algorithm="HS256")

    assert len(key.material) == 32
    assert key.material.startswith(b"short-passphrase")


@pytest.mark.parametrize("secret", ["", "   "])
def test_blank_secret_is_rejected(secret):
    with pytest.raises(SigningKeyError):
        SigningKey.from_secret(secret)


def test_unsupported_algorithm_is_rejected():
    with pytest.raises(SigningKeyError):
        SigningKey.from_secret("0123456789", algorithm="RS256")


def test_padded_key_is_stable_across_instances(clock):
    # Two separately built keys stand in for two process starts.
    first = SigningKey.from_secret("0123456789")
    second = SigningKey.from_secret("0123456789")

    issued_by_first = TokenIssuer(first, ttl_ms=60_000, clock=clock).issue("alice")
    issued_by_second = TokenIssuer(second, ttl_ms=60_000, clock=clock).issue("bob")

    assert first == second
    assert isinstance(TokenVerifier(second, clock=clock).verify(issued_by_first.token), Valid)
    assert isinstance(TokenVerifier(first, clock=clock).verify(issued_by_second.token), Valid)


def test_repr_does_not_leak_key_material():
    key = SigningKey.from_secret("0123456789")

    assert "0123456789" not in repr(key)
