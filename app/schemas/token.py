from pydantic import BaseModel, Field, field_validator
from typing import Optional


class LoginRequest(BaseModel):
    username_or_email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)

    @field_validator("username_or_email")
    @classmethod
    def strip_identifier(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username or email is required")
        return v


class ValidateRequest(BaseModel):
    token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_in_ms: int


class TokenClaimsResponse(BaseModel):
    sub: str
    jti: str
    iat: float
    exp: float
    username: Optional[str] = None
    email: Optional[str] = None
