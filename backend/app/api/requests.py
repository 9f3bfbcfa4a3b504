"""
Requests API endpoints.
Submission, tracking and approver decisions on correspondence requests.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.report import RequestSLAResponse
from app.schemas.request import (
    ActionRequest,
    ActionResponse,
    ProcessActionResponse,
    RequestListResponse,
    RequestResponse,
    RequestResubmit,
    RequestSubmit,
)
from app.services import requests as request_service
from app.services.approvals import process_action
from app.services.errors import WorkflowError
from app.services.sla import sla_for_request, step_deadline

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=RequestResponse, status_code=201)
async def submit_request(
    body: RequestSubmit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Submit a request from a published form.

    Returns 422 when required fields are missing or the form is closed,
    403 when the form is not offered to the user.
    """
    try:
        return await request_service.submit_request(db, current_user, body.form_id, body.data)
    except WorkflowError as e:
        raise_http(e)


@router.get("/", response_model=RequestListResponse)
async def list_my_requests(
    status: Optional[list[str]] = Query(None),
    form_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    q: Optional[str] = Query(None, description="Search reference number or form name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the current user's own requests, newest first."""
    return await request_service.list_user_requests(
        db,
        current_user,
        statuses=status,
        form_id=form_id,
        start_date=start_date,
        end_date=end_date,
        query=q,
        page=page,
        limit=limit,
    )


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Requests the user may not see are reported as not found."""
    try:
        return await request_service.get_request_for_user(db, request_id, current_user)
    except WorkflowError as e:
        raise_http(e)


@router.post("/{request_id}/resubmit", response_model=RequestResponse)
async def resubmit_request(
    request_id: UUID,
    body: RequestResubmit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await request_service.resubmit_request(db, request_id, current_user, body.data)
    except WorkflowError as e:
        raise_http(e)


@router.post("/{request_id}/actions", response_model=ProcessActionResponse)
async def act_on_request(
    request_id: UUID,
    body: ActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Approve or reject a request at its current step.

    - approve / approve_with_changes: advance to the next step, or finish as approved
    - reject: finish as rejected
    - reject_with_changes: return to the requester for changes

    Returns 409 if the request is no longer actionable, 403 if the user
    is neither the step's approver nor acting under a delegation.
    """
    try:
        result = await process_action(db, request_id, current_user, body.action, body.comment)
    except WorkflowError as e:
        raise_http(e)

    return ProcessActionResponse(
        request=RequestResponse.model_validate(result.request),
        action=ActionResponse.model_validate(result.action),
    )


@router.get("/{request_id}/actions", response_model=list[ActionResponse])
async def get_request_actions(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Action history, newest first."""
    try:
        await request_service.get_request_for_user(db, request_id, current_user)
    except WorkflowError as e:
        raise_http(e)
    return await request_service.action_history(db, request_id)


@router.get("/{request_id}/sla", response_model=RequestSLAResponse)
async def get_request_sla(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        request = await request_service.get_request_for_user(db, request_id, current_user)
    except WorkflowError as e:
        raise_http(e)

    sla = await sla_for_request(db, request)
    deadline = await step_deadline(db, request)

    return RequestSLAResponse(
        request_id=request.id,
        sla_hours=sla.sla_hours if sla else None,
        elapsed_hours=round(sla.elapsed_hours, 2) if sla else None,
        compliant=sla.compliant if sla else None,
        deadline=deadline.deadline if deadline else None,
        is_overdue=deadline.is_overdue() if deadline else False,
    )
