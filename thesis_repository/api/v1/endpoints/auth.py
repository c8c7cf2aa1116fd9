from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.core.database import get_db
from thesis_repository.core.exceptions import AuthenticationError, UserNotFoundError
from thesis_repository.core.logging_config import logger, set_user_id
from thesis_repository.core.rate_limiter import auth_rate_limit, strict_rate_limit
from thesis_repository.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from thesis_repository.models.user import User
from thesis_repository.modules.auth.dependencies import get_current_user
from thesis_repository.modules.workflow.permissions import permissions_for
from thesis_repository.schemas.auth import (
    CurrentUserResponse,
    LoginResponse,
    RefreshTokenRequest,
    Token,
    UserLogin,
    UserRegister,
    UserResponse,
)
from thesis_repository.services.user_service import UserService

router = APIRouter()


def _token_claims(user: User) -> dict:
    return {"sub": str(user.id), "email": user.email, "role": user.role.value}


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Create a student or faculty account"""
    user = await UserService(db).register(user_data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    user = await UserService(db).authenticate(credentials.email, credentials.password)
    set_user_id(str(user.id))

    claims = _token_claims(user)
    return LoginResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token({"sub": str(user.id)}),
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new access/refresh pair"""
    payload = decode_token(body.refresh_token, expected_type="refresh")
    try:
        user = await UserService(db).get_user(payload.get("sub", ""))
    except UserNotFoundError:
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.log_auth_event("refresh", False, user_email=user.email, reason="inactive account")
        raise AuthenticationError("User account is inactive")

    return Token(
        access_token=create_access_token(_token_claims(user)),
        refresh_token=create_refresh_token({"sub": str(user.id)}),
    )


@router.get("/me", response_model=CurrentUserResponse)
async def me(current_user: User = Depends(get_current_user)):
    """Current user plus the capability map the UI gates actions on"""
    return CurrentUserResponse(
        user=UserResponse.model_validate(current_user),
        permissions=permissions_for(current_user.role),
    )
