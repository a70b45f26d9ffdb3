from fastapi import HTTPException, Request, status

from app.core.security import TokenClaims
from app.services.auth_service import AuthService
from app.services.revocation_store import RevocationStore
from app.services.session_guard import SessionGuard


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_guard(request: Request) -> SessionGuard:
    return request.app.state.session_guard


def get_revocation_store(request: Request) -> RevocationStore:
    return request.app.state.revocation_store


def get_current_user_id(request: Request) -> str:
    """Subject attached by SessionGuardMiddleware."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        # Route mounted outside the guarded prefixes.
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_current_claims(request: Request) -> TokenClaims:
    get_current_user_id(request)
    return request.state.token_claims
