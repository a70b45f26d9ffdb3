from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_auth_service, get_session_guard
from app.core.config import settings
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.schemas.token import LoginRequest, TokenClaimsResponse, TokenResponse, ValidateRequest
from app.services.auth_service import AuthService
from app.services.session_guard import Admitted, SessionGuard, extract_bearer_token
from app.utils.response import success

router = APIRouter()


@router.post(
    "/login",
    response_model=dict,
    summary="Login user",
    description="""
Authenticates a user by username or email and issues a bearer token.

Behavior:
1. Looks up the account by username, then by email
2. Verifies the password
3. Issues a signed token carrying a fresh token id
""",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
    },
)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.authenticate(db, credentials.username_or_email, credentials.password)
    issued = auth_service.login(user)

    return success(
        data=TokenResponse(
            token=issued.token,
            token_type=issued.token_type,
            expires_in_ms=issued.expires_in_ms,
        ).model_dump(),
        message="Login successful",
    )


@router.post(
    "/logout",
    response_model=dict,
    summary="Logout user",
    description="""
Revokes the presented bearer token for the rest of its lifetime.

Revocation is best effort: the call succeeds even if the revocation store is
unreachable, the token then simply expires on schedule.
""",
    responses={
        200: {"description": "Logout successful"},
        401: {"description": "Authorization header missing or invalid"},
    },
)
async def logout(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing or invalid.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    await auth_service.logout(token)
    return success(message="Logout successful")


@router.post("/validate", response_model=dict, summary="Validate token")
async def validate_token(
    payload: ValidateRequest,
    guard: SessionGuard = Depends(get_session_guard),
):
    """Run the full session check on a token and return its claims."""
    outcome = await guard.check_token(payload.token)
    if not isinstance(outcome, Admitted):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=outcome.message,
        )

    claims = outcome.claims
    return success(
        data=TokenClaimsResponse(
            sub=claims.subject,
            jti=claims.token_id,
            iat=claims.issued_at,
            exp=claims.expires_at,
            username=claims.username,
            email=claims.email,
        ).model_dump(),
        message="Token is valid",
    )
