"""Administration schemas: users, roles, colleges, departments, audit."""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    university_id: str = Field(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9]+$")
    full_name: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=3)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9+\-\s()]*$")
    role_id: UUID
    department_id: Optional[UUID] = None


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    password: Optional[str] = Field(default=None, min_length=3)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9+\-\s()]*$")
    role_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    university_id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role_id: UUID
    role_name: str
    department_id: Optional[UUID] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
    page: int
    limit: int


class RoleCreate(BaseModel):
    role_name: str = Field(min_length=2, max_length=50)
    permissions: list[str] = []


class RoleResponse(BaseModel):
    id: UUID
    role_name: str
    permissions: Optional[list[str]] = None

    model_config = ConfigDict(from_attributes=True)


class CollegeCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    dean_id: Optional[UUID] = None


class CollegeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    dean_id: Optional[UUID] = None


class CollegeResponse(BaseModel):
    id: UUID
    name: str
    dean_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DepartmentCreate(BaseModel):
    dept_name: str = Field(min_length=2, max_length=200)
    college_id: UUID
    manager_id: Optional[UUID] = None


class DepartmentUpdate(BaseModel):
    dept_name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    college_id: Optional[UUID] = None
    manager_id: Optional[UUID] = None


class DepartmentResponse(BaseModel):
    id: UUID
    dept_name: str
    college_id: UUID
    manager_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminStats(BaseModel):
    total_users: int
    total_requests: int
    pending_requests: int
    active_forms: int
