"""
Form template API endpoints.
Admins build and publish forms; everyone lists what is offered to them.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_client_ip, get_current_user, require_admin
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.form import (
    FormDeleteResponse,
    FormPublish,
    FormResponse,
    FormSave,
    FormToggle,
)
from app.services import forms as form_service
from app.services.audit import log_audit_action
from app.services.errors import WorkflowError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/available", response_model=list[FormResponse])
async def list_available_forms(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Published forms whose audience includes the current user."""
    return await form_service.list_available_forms(db, current_user)


@router.get("/{form_id}/schema")
async def get_form_schema(
    form_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        form = await form_service.get_form(db, form_id)
    except WorkflowError as e:
        raise_http(e)
    if not form.schema:
        raise HTTPException(status_code=404, detail="Form schema not found")
    return {"id": form.id, "name": form.name, "schema": form.schema}


@router.get("/", response_model=list[FormResponse])
async def list_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    forms, _ = await form_service.list_forms(db, page, limit)
    return forms


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    form_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        return await form_service.get_form(db, form_id)
    except WorkflowError as e:
        raise_http(e)


@router.post("/", response_model=FormResponse, status_code=201)
async def create_form(
    body: FormSave,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Create a draft form (inactive until published)."""
    try:
        form = await form_service.save_draft(
            db,
            name=body.name,
            schema=body.schema_.model_dump(),
            audience_config=body.audience_config.model_dump(mode="json") if body.audience_config else None,
            workflow_id=body.workflow_id,
        )
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "CREATE", "FORM", str(form.id), {"name": form.name}, get_client_ip(request))
    return form


@router.put("/{form_id}", response_model=FormResponse)
async def update_form(
    form_id: UUID,
    body: FormSave,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        form = await form_service.save_draft(
            db,
            name=body.name,
            schema=body.schema_.model_dump(),
            audience_config=body.audience_config.model_dump(mode="json") if body.audience_config else None,
            workflow_id=body.workflow_id,
            form_id=form_id,
        )
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "UPDATE", "FORM", str(form_id), {"name": form.name}, get_client_ip(request))
    return form


@router.post("/{form_id}/publish", response_model=FormResponse)
async def publish_form(
    form_id: UUID,
    body: FormPublish,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Activate a form for an audience, optionally (re)assigning its workflow."""
    try:
        form = await form_service.publish_form(db, form_id, body, admin)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, admin.id, "PUBLISH", "FORM", str(form_id),
        {"workflow_mode": body.workflow_mode, "workflow_id": str(form.workflow_id) if form.workflow_id else None},
        get_client_ip(request),
    )
    return form


@router.post("/{form_id}/toggle", response_model=FormResponse)
async def toggle_form(
    form_id: UUID,
    body: FormToggle,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        return await form_service.set_form_active(db, form_id, body.is_active)
    except WorkflowError as e:
        raise_http(e)


@router.delete("/{form_id}", response_model=FormDeleteResponse)
async def delete_form(
    form_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Hard delete when unused; forms with requests are only deactivated."""
    try:
        deleted = await form_service.delete_form(db, form_id)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, admin.id, "DELETE" if deleted else "DEACTIVATE", "FORM", str(form_id), None, get_client_ip(request)
    )
    return FormDeleteResponse(
        deleted=deleted,
        deactivated=not deleted,
        message="Form deleted" if deleted else "Form has requests and was deactivated",
    )
