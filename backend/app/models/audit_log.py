from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
import uuid

from app.database import Base
from app.database_types import GUID, JSON


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    user_id = Column(GUID, ForeignKey("users.id"), nullable=True, index=True)

    action = Column(String(50), nullable=False)        # CREATE | UPDATE | DELETE | ...
    entity_type = Column(String(50), nullable=False)   # WORKFLOW | USER | DELEGATION | ...
    entity_id = Column(String(255), nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
