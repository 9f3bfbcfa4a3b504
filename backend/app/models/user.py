from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship
import uuid
import enum

from app.database import Base
from app.database_types import GUID, JSON


class RoleName(str, enum.Enum):
    """Built-in roles seeded on install. Admins may add more."""
    STUDENT = "student"
    EMPLOYEE = "employee"
    HEAD_OF_DEPARTMENT = "head_of_department"
    DEAN = "dean"
    ADMIN = "admin"


class Role(Base):
    __tablename__ = "roles"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    role_name = Column(String(50), unique=True, nullable=False, index=True)

    # e.g. ["approve_college_requests"]
    permissions = Column(JSON, nullable=True, default=list)


class User(Base):
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)

    # Login name: student number or employee number
    university_id = Column(String(50), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)

    role_id = Column(GUID, ForeignKey("roles.id"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Security & audit fields
    last_login_at = Column(DateTime, nullable=True)
    last_login_ip = Column(String(45), nullable=True)  # IPv4 or IPv6
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    account_locked_until = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    role = relationship("Role", lazy="selectin")
    department = relationship("Department", foreign_keys=[department_id], lazy="selectin")

    @property
    def role_name(self) -> str:
        return self.role.role_name if self.role else ""

    def has_role(self, *names: str) -> bool:
        return self.role_name in names

    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.has_role(RoleName.ADMIN.value)

    def is_account_locked(self) -> bool:
        """Check if account is currently locked due to failed login attempts."""
        if not self.account_locked_until:
            return False
        return datetime.utcnow() < self.account_locked_until

    @property
    def college_id(self):
        if self.department is None:
            return None
        return self.department.college_id
