from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from thesis_repository.schemas.auth import UserResponse


class UserUpdate(BaseModel):
    """Profile update; role can only be changed by a user manager"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    program: Optional[str] = None
    department: Optional[str] = None
    student_id: Optional[str] = None
    employee_id: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Optional[str] = None

    @field_validator('first_name', 'last_name', 'role')
    @classmethod
    def not_null(cls, value, info):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserListResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int


class UserStats(BaseModel):
    user_id: str
    total_documents: int
    published_documents: int
    pending_documents: int
    total_downloads: int
    total_views: int
