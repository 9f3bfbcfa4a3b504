from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.database_types import GUID


class Delegation(Base):
    """Temporary transfer of a grantor's approval authority to a grantee."""
    __tablename__ = "delegations"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    grantor_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    grantee_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Delegation request that granted this, None when created by an admin
    request_id = Column(GUID, ForeignKey("requests.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    grantor = relationship("User", foreign_keys=[grantor_id], lazy="selectin")
    grantee = relationship("User", foreign_keys=[grantee_id], lazy="selectin")

    def is_current(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        return bool(self.is_active) and self.starts_at <= now <= self.ends_at
