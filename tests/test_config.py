import pytest
from pydantic import ValidationError

from app.core.config import Settings


def _settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite:///./config-test.db",
        "JWT_SECRET": "config-test-secret",
    }
    values.update(overrides)
    return Settings(**values)


def test_defaults():
    config = _settings()

    assert config.JWT_ALGORITHM == "HS512"
    assert config.min_key_bytes == 64
    assert config.REVOCATION_KEY_PREFIX == "jwt:blacklist:"
    assert config.REVOCATION_FAIL_OPEN is False
    assert config.protected_paths == ["/api"]
    assert config.public_paths == ["/api/v1/auth"]


def test_path_lists_accept_json_and_csv():
    config = _settings(
        AUTH_PROTECTED_PATHS='["/api/", "/admin"]',
        AUTH_PUBLIC_PATHS="/api/v1/auth, /api/v1/docs",
    )

    assert config.protected_paths == ["/api", "/admin"]
    assert config.public_paths == ["/api/v1/auth", "/api/v1/docs"]


def test_relative_path_prefix_is_rejected():
    with pytest.raises(ValidationError):
        _settings(AUTH_PROTECTED_PATHS="api")


@pytest.mark.parametrize("secret", ["", "   "])
def test_blank_secret_is_rejected(secret):
    with pytest.raises(ValidationError):
        _settings(JWT_SECRET=secret)


def test_non_positive_expiration_is_rejected():
    with pytest.raises(ValidationError):
        _settings(JWT_EXPIRATION_MS=0)


def test_algorithm_is_normalized_and_checked():
    assert _settings(JWT_ALGORITHM="hs256").min_key_bytes == 32

    with pytest.raises(ValidationError):
        _settings(JWT_ALGORITHM="RS256")


def test_placeholder_secret_is_rejected_in_production():
    with pytest.raises(ValidationError):
        _settings(ENVIRONMENT="production", JWT_SECRET="changeme")

    assert _settings(ENVIRONMENT=" Production ", JWT_SECRET="a-real-secret").ENVIRONMENT == "production"
