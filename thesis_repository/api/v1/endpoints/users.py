from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from thesis_repository.core.database import get_db
from thesis_repository.core.exceptions import PermissionDeniedError
from thesis_repository.models.user import User
from thesis_repository.modules.auth.dependencies import (
    get_current_actor,
    get_current_user,
    require_capability,
)
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, has_capability
from thesis_repository.schemas.auth import UserResponse
from thesis_repository.schemas.user import (
    UserListResponse,
    UserStats,
    UserStatusUpdate,
    UserUpdate,
)
from thesis_repository.services.document_service import DocumentService
from thesis_repository.services.user_service import UserService

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db)
):
    users, total = await UserService(db).list_users(role=role, search=search, page=page, page_size=page_size)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    if user_id != actor.id and not has_capability(actor.role, Capability.MANAGE_USERS):
        raise PermissionDeniedError("You can only view your own profile")
    return UserResponse.model_validate(await UserService(db).get_user(user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService(db).update_user(user_id, data, actor)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/status", response_model=UserResponse)
async def set_user_status(
    user_id: str,
    data: UserStatusUpdate,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db)
):
    """Activate or deactivate an account"""
    user = await UserService(db).set_active(user_id, data.is_active, Actor.from_user(current_user))
    return UserResponse.model_validate(user)


@router.get("/{user_id}/stats", response_model=UserStats)
async def get_user_stats(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if user_id != str(current_user.id) and not has_capability(current_user.role, Capability.VIEW_ANALYTICS):
        raise PermissionDeniedError("Viewing other users' statistics is not allowed")
    await UserService(db).get_user(user_id)
    return UserStats(**await DocumentService(db).user_document_stats(user_id))
