"""Authentication-related Pydantic schemas."""
from typing import Optional
from uuid import UUID
from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Credentials login: university id (student/employee number) and password."""
    university_id: str
    password: str


class AuthResponse(BaseModel):
    """Response after successful authentication."""
    access_token: str
    token_type: str = "cookie"
    user_id: UUID
    university_id: str
    full_name: str
    role: str
    department_id: Optional[UUID] = None


class CurrentUserResponse(BaseModel):
    user_id: UUID
    university_id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    department_id: Optional[UUID] = None
    college_id: Optional[UUID] = None
