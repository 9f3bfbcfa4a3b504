"""Form template lifecycle and audience filtering."""
import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.form_template import FormTemplate
from app.models.request import Request
from app.models.user import RoleName, User
from app.models.workflow import Workflow
from app.schemas.form import FormPublish
from app.services.errors import NotFoundError, ValidationFailedError
from app.services.workflows import create_workflow

logger = logging.getLogger(__name__)


def is_available_to(form: FormTemplate, user: User) -> bool:
    """
    Audience check for a published form.

    A missing config means everyone. `student`/`employee` set to false hide
    the form from that role; non-empty college/department lists restrict it
    to users inside them.
    """
    config = form.audience_config
    if not config:
        return True

    if user.has_role(RoleName.STUDENT.value) and config.get("student") is False:
        return False
    if user.has_role(RoleName.EMPLOYEE.value) and config.get("employee") is False:
        return False

    colleges = [str(c) for c in (config.get("colleges") or [])]
    if colleges and (not user.college_id or str(user.college_id) not in colleges):
        return False

    departments = [str(d) for d in (config.get("departments") or [])]
    if departments and (not user.department_id or str(user.department_id) not in departments):
        return False

    return True


async def get_form(db: AsyncSession, form_id: UUID) -> FormTemplate:
    form = await db.get(FormTemplate, form_id)
    if not form:
        raise NotFoundError(f"Form {form_id} not found")
    return form


async def list_forms(db: AsyncSession, page: int = 1, limit: int = 20) -> tuple[list[FormTemplate], int]:
    total = (await db.execute(select(func.count(FormTemplate.id)))).scalar_one()
    result = await db.execute(
        select(FormTemplate)
        .order_by(FormTemplate.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_available_forms(db: AsyncSession, user: User) -> list[FormTemplate]:
    result = await db.execute(
        select(FormTemplate)
        .where(FormTemplate.is_active.is_(True))
        .order_by(FormTemplate.name)
    )
    return [form for form in result.scalars().all() if is_available_to(form, user)]


async def _ensure_workflow(db: AsyncSession, workflow_id: Optional[UUID]) -> None:
    if workflow_id and not await db.get(Workflow, workflow_id):
        raise ValidationFailedError(f"Workflow {workflow_id} not found")


async def save_draft(
    db: AsyncSession,
    name: str,
    schema: dict[str, Any],
    audience_config: Optional[dict[str, Any]] = None,
    workflow_id: Optional[UUID] = None,
    form_id: Optional[UUID] = None,
) -> FormTemplate:
    """Create a new draft, or update the named form in place."""
    await _ensure_workflow(db, workflow_id)

    if form_id:
        form = await get_form(db, form_id)
        form.name = name
        form.schema = schema
        form.audience_config = audience_config
        form.workflow_id = workflow_id
    else:
        form = FormTemplate(
            name=name,
            schema=schema,
            is_active=False,
            audience_config=audience_config,
            workflow_id=workflow_id,
        )
        db.add(form)

    await db.commit()
    await db.refresh(form)
    logger.info(f"Form '{name}' saved ({form.id})")
    return form


async def publish_form(db: AsyncSession, form_id: UUID, publish: FormPublish, editor: User) -> FormTemplate:
    form = await get_form(db, form_id)

    if publish.workflow_mode == "existing":
        if not publish.workflow_id:
            raise ValidationFailedError("workflow_id is required when assigning an existing workflow")
        await _ensure_workflow(db, publish.workflow_id)
        form.workflow_id = publish.workflow_id
    elif publish.workflow_mode == "new":
        if not publish.new_workflow:
            raise ValidationFailedError("new_workflow is required when creating a workflow")
        workflow = await create_workflow(
            db, publish.new_workflow.name, publish.new_workflow.steps, editor, commit=False
        )
        form.workflow_id = workflow.id
    elif publish.workflow_mode == "none":
        form.workflow_id = None

    form.audience_config = publish.audience_config.model_dump(mode="json")
    form.is_active = True

    await db.commit()
    await db.refresh(form)
    logger.info(f"Form {form_id} published (workflow={form.workflow_id})")
    return form


async def set_form_active(db: AsyncSession, form_id: UUID, is_active: bool) -> FormTemplate:
    form = await get_form(db, form_id)
    form.is_active = is_active
    await db.commit()
    await db.refresh(form)
    return form


async def delete_form(db: AsyncSession, form_id: UUID) -> bool:
    """
    Hard-delete a form without requests; otherwise deactivate it.
    Returns True when the row was deleted.
    """
    form = await get_form(db, form_id)

    used = await db.execute(select(func.count(Request.id)).where(Request.form_id == form_id))
    if used.scalar_one():
        form.is_active = False
        await db.commit()
        logger.info(f"Form {form_id} has requests; deactivated instead of deleted")
        return False

    await db.delete(form)
    await db.commit()
    logger.info(f"Form {form_id} deleted")
    return True


def missing_required_fields(form: FormTemplate, data: dict[str, Any]) -> list[str]:
    """Labels of required fields that are absent or blank in `data`."""
    missing = []
    for field in form.required_fields():
        value = data.get(field.get("name"))
        if value is None or (isinstance(value, str) and not value.strip()) or value in ([], {}):
            missing.append(field.get("label") or field.get("name"))
    return missing
