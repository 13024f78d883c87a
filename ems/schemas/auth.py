from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional
from ems.models.user import UserRole
from datetime import datetime
from ems.schemas.employee import EmployeeProfile


class UserBase(BaseModel):
    email: EmailStr
    role: UserRole = UserRole.EMPLOYEE
    full_name: Optional[str] = None


class UserCreate(UserBase):
    password: str


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool = True
    employee_id: Optional[int] = None
    created_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class SessionState(BaseModel):
    employee: Optional[EmployeeProfile] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None
