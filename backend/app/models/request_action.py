from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.database_types import GUID


class ActionType(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    APPROVE_WITH_CHANGES = "approve_with_changes"
    REJECT_WITH_CHANGES = "reject_with_changes"


class RequestAction(Base):
    """Append-only audit trail of approver decisions."""
    __tablename__ = "request_actions"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    request_id = Column(GUID, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    step_id = Column(GUID, ForeignKey("workflow_steps.id"), nullable=True)

    # Set when the actor acted through a delegation
    on_behalf_of_id = Column(GUID, ForeignKey("users.id"), nullable=True)

    action = Column(String, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    actor = relationship("User", foreign_keys=[actor_id], lazy="selectin")

    @property
    def actor_name(self) -> str:
        return self.actor.full_name if self.actor else ""
