"""Colleges and departments."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
import uuid

from app.database import Base
from app.database_types import GUID


class College(Base):
    __tablename__ = "colleges"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), unique=True, nullable=False)

    # Delegation requests from this college are routed to the dean
    dean_id = Column(GUID, ForeignKey("users.id", use_alter=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Department(Base):
    __tablename__ = "departments"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    dept_name = Column(String(200), nullable=False)
    college_id = Column(GUID, ForeignKey("colleges.id"), nullable=False, index=True)
    manager_id = Column(GUID, ForeignKey("users.id", use_alter=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
