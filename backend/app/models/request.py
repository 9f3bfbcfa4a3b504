from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.database_types import GUID, JSON


class RequestStatus(str, Enum):
    """Valid statuses for a request"""
    PENDING = "pending"          # Submitted (or resubmitted), waiting at its current step
    PROCESSING = "processing"    # Approved at least once, waiting at a later step
    APPROVED = "approved"        # Terminal
    REJECTED = "rejected"        # Terminal
    RETURNED = "returned"        # Sent back to the requester for changes


IN_FLIGHT_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.PROCESSING.value,
    RequestStatus.RETURNED.value,
)
ACTIONABLE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.PROCESSING.value)
COMPLETED_STATUSES = (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value)


class RequestKind(str, Enum):
    FORM = "form"
    DELEGATION = "delegation"  # Grants a Delegation when approved


class Request(Base):
    __tablename__ = "requests"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    reference_no = Column(String(64), unique=True, nullable=False, index=True)

    requester_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    form_id = Column(GUID, ForeignKey("form_templates.id"), nullable=True, index=True)

    # Step pointer; None once the request is terminal or has no workflow
    current_step_id = Column(GUID, ForeignKey("workflow_steps.id"), nullable=True)

    status = Column(String, nullable=False, default=RequestStatus.PENDING.value)
    request_type = Column(String, nullable=False, default=RequestKind.FORM.value)

    submission_data = Column(JSON, nullable=False, default=dict)

    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    requester = relationship("User", lazy="selectin")
    form = relationship("FormTemplate", lazy="selectin")
    current_step = relationship("WorkflowStep", lazy="selectin")

    __table_args__ = (
        # Inbox lookup
        Index("idx_requests_inbox", "status", "current_step_id", "submitted_at"),
    )

    @property
    def form_name(self) -> str:
        if self.request_type == RequestKind.DELEGATION.value:
            return "Delegation request"
        return self.form.name if self.form else "General"
