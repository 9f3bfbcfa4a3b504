"""
Workflow template API endpoints.
Managed by admins, deans and heads of department.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_client_ip, require_roles
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.workflow import (
    WorkflowCreate,
    WorkflowDeleteResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from app.services import workflows as workflow_service
from app.services.audit import log_audit_action
from app.services.errors import WorkflowError

logger = logging.getLogger(__name__)
router = APIRouter()

require_workflow_manager = require_roles(*workflow_service.WORKFLOW_MANAGER_ROLES)


@router.get("/", response_model=list[WorkflowResponse])
async def list_workflows(
    include_inactive: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_manager)
):
    return await workflow_service.list_workflows(db, include_inactive)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_manager)
):
    try:
        return await workflow_service.get_workflow(db, workflow_id)
    except WorkflowError as e:
        raise_http(e)


@router.post("/", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    body: WorkflowCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_manager)
):
    """
    Create a workflow with its steps.

    Returns 422 for structural problems (duplicate orders, missing
    approvers) and 403 when a dean or head of department names an
    approver outside their college or department.
    """
    try:
        workflow = await workflow_service.create_workflow(db, body.name, body.steps, current_user)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, current_user.id, "CREATE", "WORKFLOW", str(workflow.id),
        {"name": workflow.name, "steps": len(body.steps)}, get_client_ip(request),
    )
    return workflow


@router.patch("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: UUID,
    body: WorkflowUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_manager)
):
    """Update name/active flag; a `steps` list replaces the whole chain."""
    try:
        workflow = await workflow_service.update_workflow(
            db, workflow_id, current_user,
            name=body.name, is_active=body.is_active, steps=body.steps,
        )
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, current_user.id, "UPDATE", "WORKFLOW", str(workflow_id),
        {"updated_fields": sorted(body.model_dump(exclude_unset=True).keys())},
        get_client_ip(request),
    )
    return workflow


@router.delete("/{workflow_id}", response_model=WorkflowDeleteResponse)
async def delete_workflow(
    workflow_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_manager)
):
    try:
        deleted = await workflow_service.delete_workflow(db, workflow_id)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, current_user.id, "DELETE" if deleted else "DEACTIVATE", "WORKFLOW", str(workflow_id),
        None, get_client_ip(request),
    )
    return WorkflowDeleteResponse(
        deleted=deleted,
        deactivated=not deleted,
        message="Workflow deleted" if deleted else "Workflow has request history and was deactivated",
    )
