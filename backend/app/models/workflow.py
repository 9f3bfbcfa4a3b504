from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.database_types import GUID


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    steps = relationship(
        "WorkflowStep",
        back_populates="workflow",
        order_by="WorkflowStep.order",
        lazy="selectin",
    )


class WorkflowStep(Base):
    """
    One stage of an approval chain.

    Exactly one of approver_role_id / approver_user_id is normally set.
    Steps with workflow_id=None are either ad-hoc (delegation requests) or
    detached from a workflow whose steps were replaced; they are kept so
    history keeps pointing at real rows.
    """
    __tablename__ = "workflow_steps"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    workflow_id = Column(GUID, ForeignKey("workflows.id"), nullable=True, index=True)

    name = Column(String(200), nullable=False)
    order = Column(Integer, nullable=False, default=1)

    approver_role_id = Column(GUID, ForeignKey("roles.id"), nullable=True)
    approver_user_id = Column(GUID, ForeignKey("users.id"), nullable=True)

    sla_hours = Column(Integer, nullable=True)
    is_final = Column(Boolean, nullable=False, default=False)
    escalation_role_id = Column(GUID, ForeignKey("roles.id"), nullable=True)

    workflow = relationship("Workflow", back_populates="steps")
