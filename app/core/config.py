from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import List
import json


# Minimum HMAC key length in bytes for each supported algorithm.
HMAC_MIN_KEY_BYTES = {
    "HS256": 32,
    "HS384": 48,
    "HS512": 64,
}


class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "User Auth Service"
    API_V1_STR: str = "/api/v1"

    # Database (credential lookup for login)
    DATABASE_URL: str

    # Token signing
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS512"
    JWT_EXPIRATION_MS: int = 86400000  # 24h

    # Revocation store (Redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: float = 0.5
    REDIS_CONNECT_TIMEOUT: float = 0.5
    REVOCATION_STORE_TIMEOUT: float = 1.0
    REVOCATION_KEY_PREFIX: str = "jwt:blacklist:"
    REVOCATION_FAIL_OPEN: bool = False

    # Session guard path predicates
    AUTH_PROTECTED_PATHS: str = "/api"
    AUTH_PUBLIC_PATHS: str = "/api/v1/auth"

    # Rate limiting
    LOGIN_RATE_LIMIT: str = "5/minute"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]

    # Environment
    ENVIRONMENT: str = "development"

    DEBUG: bool = False

    # Monitoring (Optional - Add to .env for production)
    SENTRY_DSN: str = ""

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_secret_present(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("JWT_SECRET must be set")
        return value

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_algorithm(cls, value: str) -> str:
        normalized = value.upper().strip()
        if normalized not in HMAC_MIN_KEY_BYTES:
            raise ValueError(f"Unsupported JWT_ALGORITHM: {value}")
        return normalized

    @field_validator("JWT_EXPIRATION_MS")
    @classmethod
    def validate_expiration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("JWT_EXPIRATION_MS must be positive")
        return value

    @classmethod
    def _parse_path_list(cls, value) -> List[str]:
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return [str(path).strip() for path in parsed if str(path).strip()]
                except json.JSONDecodeError as exc:
                    raise ValueError("Path lists must be valid JSON or comma-separated paths") from exc
            return [path.strip() for path in raw.split(",") if path.strip()]
        if isinstance(value, list):
            return [str(path).strip() for path in value if str(path).strip()]
        return value

    @field_validator("AUTH_PROTECTED_PATHS", "AUTH_PUBLIC_PATHS")
    @classmethod
    def validate_path_format(cls, value: str) -> str:
        normalized = cls._parse_path_list(value)
        for path in normalized:
            if not path.startswith("/"):
                raise ValueError(f"Invalid path prefix: {path}")
        return ",".join(path.rstrip("/") or "/" for path in normalized)

    @model_validator(mode="after")
    def validate_production_secret(self):
        if self.ENVIRONMENT == "production":
            normalized_secret = self.JWT_SECRET.strip().lower()
            if "changeme" in normalized_secret or "your-secret-key-here" in normalized_secret:
                raise ValueError("JWT_SECRET must not use placeholders in production")
        return self

    @property
    def protected_paths(self) -> List[str]:
        return self._parse_path_list(self.AUTH_PROTECTED_PATHS)

    @property
    def public_paths(self) -> List[str]:
        return self._parse_path_list(self.AUTH_PUBLIC_PATHS)

    @property
    def min_key_bytes(self) -> int:
        return HMAC_MIN_KEY_BYTES[self.JWT_ALGORITHM]

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
