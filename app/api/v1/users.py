from fastapi import APIRouter, Depends

from app.api.deps import get_current_claims
from app.core.security import TokenClaims
from app.schemas.user import CurrentUserResponse
from app.utils.response import success

router = APIRouter()


@router.get("/me", response_model=dict)
def get_current_user_profile(claims: TokenClaims = Depends(get_current_claims)):
    """Identity of the caller as carried by the token (display only)"""
    return success(
        data=CurrentUserResponse(
            id=claims.subject,
            username=claims.username,
            email=claims.email,
        ).model_dump(),
        message="User profile retrieved",
    )
