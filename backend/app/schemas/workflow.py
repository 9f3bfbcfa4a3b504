"""Workflow template schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class WorkflowStepIn(BaseModel):
    """One step as submitted by a workflow editor."""
    name: str = Field(min_length=1, max_length=200)
    order: int = Field(ge=1)
    approver_role_id: Optional[UUID] = None
    approver_user_id: Optional[UUID] = None
    sla_hours: Optional[int] = Field(default=None, gt=0)
    is_final: bool = False
    escalation_role_id: Optional[UUID] = None


class WorkflowCreate(BaseModel):
    name: str = Field(min_length=3, max_length=200)
    steps: list[WorkflowStepIn] = Field(min_length=1)


class WorkflowUpdate(BaseModel):
    """Partial update; `steps`, when given, replaces the whole chain."""
    name: Optional[str] = Field(default=None, min_length=3, max_length=200)
    is_active: Optional[bool] = None
    steps: Optional[list[WorkflowStepIn]] = None


class WorkflowStepResponse(BaseModel):
    id: UUID
    name: str
    order: int
    approver_role_id: Optional[UUID] = None
    approver_user_id: Optional[UUID] = None
    sla_hours: Optional[int] = None
    is_final: bool
    escalation_role_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class WorkflowResponse(BaseModel):
    id: UUID
    name: str
    is_active: bool
    created_at: datetime
    steps: list[WorkflowStepResponse] = []

    model_config = ConfigDict(from_attributes=True)


class WorkflowDeleteResponse(BaseModel):
    deleted: bool
    deactivated: bool
    message: str
