"""
User Service - registration, authentication and administration
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.core.exceptions import (
    AuthenticationError,
    DuplicateResourceError,
    PermissionDeniedError,
    UserNotFoundError,
    ValidationError,
)
from thesis_repository.core.logging_config import logger
from thesis_repository.core.security import get_password_hash, verify_password
from thesis_repository.models.user import User, UserRole
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, has_capability
from thesis_repository.schemas.auth import UserRegister
from thesis_repository.schemas.user import UserUpdate
from thesis_repository.services.audit_service import AuditService


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == str(user_id)))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def register(self, data: UserRegister) -> User:
        if await self.get_by_email(data.email):
            raise DuplicateResourceError("Email already registered", field="email")

        user = User(
            email=data.email.lower(),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            hashed_password=get_password_hash(data.password),
            role=UserRole(data.role),
            program=data.program,
            department=data.department,
            student_id=data.student_id,
            employee_id=data.employee_id,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.log_auth_event("register", True, user_email=user.email, role=user.role.value)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.log_auth_event("login", False, user_email=email, reason="invalid credentials")
            raise AuthenticationError("Incorrect email or password")
        if not user.is_active:
            logger.log_auth_event("login", False, user_email=email, reason="inactive account")
            raise PermissionDeniedError("User account is inactive")

        user.last_login_at = datetime.utcnow()
        await self.db.commit()
        logger.log_auth_event("login", True, user_email=user.email)
        return user

    async def list_users(
        self,
        role: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[User], int]:
        filters = []
        if role:
            try:
                filters.append(User.role == UserRole(role))
            except ValueError:
                raise ValidationError(f"Unknown role '{role}'", field="role")
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            ))

        total = (await self.db.execute(select(func.count(User.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return list(result.scalars().all()), total

    async def update_user(self, user_id: str, data: UserUpdate, actor: Actor) -> User:
        is_manager = has_capability(actor.role, Capability.MANAGE_USERS)
        if str(user_id) != str(actor.id) and not is_manager:
            raise PermissionDeniedError("You can only update your own profile")

        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True)

        if "role" in changes:
            if not is_manager:
                raise PermissionDeniedError("Changing roles is not allowed", required=[Capability.MANAGE_USERS])
            try:
                changes["role"] = UserRole(changes["role"])
            except ValueError:
                raise ValidationError(f"Unknown role '{changes['role']}'", field="role")

        for field, value in changes.items():
            setattr(user, field, value)

        if changes:
            await self.audit.log_event(
                "user_updated", "user", user.id, actor_id=str(actor.id),
                details={k: getattr(v, "value", v) for k, v in changes.items()},
            )
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def set_active(self, user_id: str, is_active: bool, actor: Actor) -> User:
        if str(user_id) == str(actor.id):
            raise ValidationError("You cannot change your own account status")
        user = await self.get_user(user_id)
        user.is_active = is_active
        await self.audit.log_event(
            "user_activated" if is_active else "user_deactivated",
            "user", user.id, actor_id=str(actor.id),
        )
        await self.db.commit()
        await self.db.refresh(user)
        return user
