"""Reporting schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel


class SLARecord(BaseModel):
    """SLA outcome of a request's first decision."""
    request_id: UUID
    reference_no: str
    form_name: str
    step_name: str
    sla_hours: int
    elapsed_hours: float
    compliant: bool


class SLASummary(BaseModel):
    total: int
    compliant: int
    violated: int
    compliance_rate: int  # percent


class SLAComplianceReport(BaseModel):
    summary: SLASummary
    records: list[SLARecord]


class OverdueRecord(BaseModel):
    request_id: UUID
    reference_no: str
    form_name: str
    status: str
    step_id: UUID
    step_name: str
    deadline: datetime
    hours_overdue: float
    escalation_role_id: Optional[UUID] = None
    escalation_role_name: Optional[str] = None


class FormBreakdown(BaseModel):
    form_name: str
    count: int


class EmployeePerformance(BaseModel):
    user_id: UUID
    full_name: str
    total_actions: int
    approvals: int
    rejections: int
    approval_rate: int  # percent
    avg_response_hours: float
    by_form: list[FormBreakdown]


class ProcessingTime(BaseModel):
    form_id: UUID
    form_name: str
    completed_requests: int
    avg_hours: float
    avg_days: float


class StatusCount(BaseModel):
    status: str
    count: int


class DepartmentStatistics(BaseModel):
    department_id: UUID
    dept_name: str
    total_users: int
    total_requests: int
    by_status: list[StatusCount]
    by_form: list[FormBreakdown]


class RequestSLAResponse(BaseModel):
    """SLA view of one request: first-decision compliance and live deadline."""
    request_id: UUID
    sla_hours: Optional[int] = None
    elapsed_hours: Optional[float] = None
    compliant: Optional[bool] = None
    deadline: Optional[datetime] = None
    is_overdue: bool = False
