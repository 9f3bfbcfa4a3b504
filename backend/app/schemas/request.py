"""Request-related Pydantic schemas."""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from app.models.request_action import ActionType


class RequestSubmit(BaseModel):
    """Schema for submitting a form request."""
    form_id: UUID
    data: dict[str, Any] = {}


class RequestResubmit(BaseModel):
    """Updated form data for a returned request."""
    data: dict[str, Any]


class StepSummary(BaseModel):
    id: UUID
    name: str
    order: int
    sla_hours: Optional[int] = None
    is_final: bool = False

    model_config = ConfigDict(from_attributes=True)


class RequestResponse(BaseModel):
    """Schema for request response."""
    id: UUID
    reference_no: str
    requester_id: UUID
    form_id: Optional[UUID] = None
    form_name: str
    request_type: str
    status: str
    current_step_id: Optional[UUID] = None
    current_step: Optional[StepSummary] = None
    submission_data: dict[str, Any]
    submitted_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActionRequest(BaseModel):
    """An approver's decision."""
    action: ActionType
    comment: Optional[str] = None


class ActionResponse(BaseModel):
    id: UUID
    request_id: UUID
    actor_id: UUID
    actor_name: Optional[str] = None
    step_id: Optional[UUID] = None
    on_behalf_of_id: Optional[UUID] = None
    action: str
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProcessActionResponse(BaseModel):
    request: RequestResponse
    action: ActionResponse


class RequestStats(BaseModel):
    total: int
    in_progress: int
    completed: int


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RequestListResponse(BaseModel):
    requests: list[RequestResponse]
    stats: RequestStats
    pagination: PaginationInfo


class InboxStats(BaseModel):
    total_actions: int
    approvals: int
    rejections: int
    pending_inbox: int
