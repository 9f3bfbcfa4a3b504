"""
Reporting API endpoints.
Read-only aggregations for admins, deans and heads of department.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_roles
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.report import (
    DepartmentStatistics,
    EmployeePerformance,
    OverdueRecord,
    ProcessingTime,
    SLAComplianceReport,
)
from app.services import reports as report_service
from app.services.errors import WorkflowError
from app.services.sla import list_overdue
from app.services.workflows import WORKFLOW_MANAGER_ROLES

logger = logging.getLogger(__name__)
router = APIRouter()

require_report_viewer = require_roles(*WORKFLOW_MANAGER_ROLES)


@router.get("/sla-compliance", response_model=SLAComplianceReport)
async def sla_compliance(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_report_viewer)
):
    """
    First-decision SLA compliance for requests submitted in the window.

    Requests without actions, or whose first action was on a step without
    SLA hours, are left out.
    """
    return await report_service.sla_compliance_report(db, start_date, end_date)


@router.get("/overdue", response_model=list[OverdueRecord])
async def overdue_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_report_viewer)
):
    """In-flight requests past their step deadline, with the escalation role."""
    return await list_overdue(db)


@router.get("/employees/{user_id}", response_model=EmployeePerformance)
async def employee_performance(
    user_id: UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_report_viewer)
):
    try:
        return await report_service.employee_performance(db, user_id, start_date, end_date)
    except WorkflowError as e:
        raise_http(e)


@router.get("/forms/{form_id}/processing-time", response_model=ProcessingTime)
async def processing_time(
    form_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_report_viewer)
):
    try:
        return await report_service.average_processing_time(db, form_id)
    except WorkflowError as e:
        raise_http(e)


@router.get("/departments/{department_id}", response_model=DepartmentStatistics)
async def department_statistics(
    department_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_report_viewer)
):
    try:
        return await report_service.department_statistics(db, department_id)
    except WorkflowError as e:
        raise_http(e)
