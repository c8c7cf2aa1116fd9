from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Callable, Optional
import uuid

from thesis_repository.core.database import get_db
from thesis_repository.core.exceptions import AuthenticationError, PermissionDeniedError
from thesis_repository.core.logging_config import set_user_id
from thesis_repository.core.security import decode_token
from thesis_repository.models.user import User
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, resolve

security = HTTPBearer(auto_error=False)


async def _load_user(db: AsyncSession, user_id: Optional[str]) -> User:
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        uuid.UUID(user_id)
    except ValueError:
        raise AuthenticationError("Invalid user ID format")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(credentials.credentials, expected_type="access")
    user = await _load_user(db, payload.get("sub"))

    set_user_id(str(user.id))
    request.state.user_id = str(user.id)
    return user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Current user when a valid bearer token is sent, otherwise None"""
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials, expected_type="access")
        return await _load_user(db, payload.get("sub"))
    except (AuthenticationError, PermissionDeniedError):
        return None


async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(current_user)


def require_capability(*capabilities: Capability) -> Callable:
    """
    Dependency factory: the current user must hold at least one of the
    given capabilities.

    Usage:
        @router.get("/users")
        async def list_users(user: User = Depends(require_capability(Capability.MANAGE_USERS))):
            ...
    """
    required = frozenset(capabilities)

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not required & resolve(current_user.role):
            raise PermissionDeniedError(
                "Insufficient permissions",
                required=list(required),
                role=getattr(current_user.role, "value", current_user.role),
            )
        return current_user

    return dependency
