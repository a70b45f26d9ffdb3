from fastapi import HTTPException, status
from typing import Any, List, Optional


class InvalidCredentials(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )


class InactiveAccount(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )


class APIError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[List[Any]] = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class SigningKeyError(Exception):
    """Signing secret is missing or unusable. Raised at startup only."""


class RevocationStoreUnavailable(Exception):
    """The revocation store could not answer within its timeout."""

    def __init__(self, token_id: str, cause: Optional[BaseException] = None):
        super().__init__(f"Revocation store unavailable while checking token {token_id}")
        self.token_id = token_id
        self.cause = cause
