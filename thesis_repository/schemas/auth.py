from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator, model_validator
from typing import Dict, Optional
from datetime import datetime
from uuid import UUID

# Roles a user may pick when registering; librarian/admin are granted by an admin
SELF_SERVICE_ROLES = ("student", "faculty")


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: str = "student"

    program: Optional[str] = None
    department: Optional[str] = None
    student_id: Optional[str] = None
    employee_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_role_fields(self):
        if self.role not in SELF_SERVICE_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}")
        if self.role == 'faculty' and not (self.department and self.department.strip()):
            raise ValueError("Department is required for faculty accounts")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    program: Optional[str] = None
    department: Optional[str] = None
    student_id: Optional[str] = None
    employee_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None

    @field_validator('role', mode='before')
    @classmethod
    def role_value(cls, value):
        return getattr(value, 'value', value)

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    class Config:
        from_attributes = True


class CurrentUserResponse(BaseModel):
    user: UserResponse
    permissions: Dict[str, bool]


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
