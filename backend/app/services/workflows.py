"""Workflow template management."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.form_template import FormTemplate
from app.models.request import IN_FLIGHT_STATUSES, Request
from app.models.request_action import RequestAction
from app.models.user import Role, RoleName, User
from app.models.workflow import Workflow, WorkflowStep
from app.schemas.workflow import WorkflowStepIn
from app.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

WORKFLOW_MANAGER_ROLES = (
    RoleName.ADMIN.value,
    RoleName.DEAN.value,
    RoleName.HEAD_OF_DEPARTMENT.value,
)


def validate_steps(steps: list[WorkflowStepIn]) -> None:
    """Structural checks the schema layer cannot express on its own."""
    if not steps:
        raise ValidationFailedError("A workflow needs at least one step")

    orders = [step.order for step in steps]
    if len(set(orders)) != len(orders):
        raise ValidationFailedError("Step orders must be unique")

    for step in steps:
        if step.order < 1:
            raise ValidationFailedError(f"Step '{step.name}' must have an order of 1 or more")
        if not step.approver_role_id and not step.approver_user_id:
            raise ValidationFailedError(f"Step '{step.name}' needs an approver role or user")
        if step.sla_hours is not None and step.sla_hours <= 0:
            raise ValidationFailedError(f"Step '{step.name}' SLA hours must be positive")


async def _check_references(db: AsyncSession, steps: list[WorkflowStepIn]) -> None:
    for step in steps:
        for role_id in (step.approver_role_id, step.escalation_role_id):
            if role_id and not await db.get(Role, role_id):
                raise ValidationFailedError(f"Role {role_id} not found")
        if step.approver_user_id and not await db.get(User, step.approver_user_id):
            raise ValidationFailedError(f"User {step.approver_user_id} not found")


async def check_scope(db: AsyncSession, editor: User, steps: list[WorkflowStepIn]) -> None:
    """
    Deans may only name approvers from their own college, heads of
    department only from their own department. Admins are unrestricted.
    """
    if editor.is_admin():
        return

    for step in steps:
        if not step.approver_user_id:
            continue
        approver = await db.get(User, step.approver_user_id)
        if approver is None:
            continue

        if editor.has_role(RoleName.DEAN.value):
            if editor.college_id and editor.college_id != approver.college_id:
                raise PermissionDeniedError(
                    f"You cannot add an approver from outside your college ({approver.full_name})"
                )
        elif editor.has_role(RoleName.HEAD_OF_DEPARTMENT.value):
            if editor.department_id != approver.department_id:
                raise PermissionDeniedError(
                    f"You cannot add an approver from outside your department ({approver.full_name})"
                )


def _build_steps(workflow_id: UUID, steps: list[WorkflowStepIn]) -> list[WorkflowStep]:
    return [
        WorkflowStep(
            workflow_id=workflow_id,
            name=step.name,
            order=step.order,
            approver_role_id=step.approver_role_id,
            approver_user_id=step.approver_user_id,
            sla_hours=step.sla_hours,
            is_final=step.is_final,
            escalation_role_id=step.escalation_role_id,
        )
        for step in sorted(steps, key=lambda s: s.order)
    ]


async def get_workflow(db: AsyncSession, workflow_id: UUID) -> Workflow:
    workflow = await db.get(Workflow, workflow_id)
    if not workflow:
        raise NotFoundError(f"Workflow {workflow_id} not found")
    return workflow


async def list_workflows(db: AsyncSession, include_inactive: bool = True) -> list[Workflow]:
    query = select(Workflow)
    if not include_inactive:
        query = query.where(Workflow.is_active.is_(True))
    result = await db.execute(query.order_by(Workflow.created_at.desc()))
    return list(result.scalars().all())


async def create_workflow(
    db: AsyncSession,
    name: str,
    steps: list[WorkflowStepIn],
    editor: User,
    commit: bool = True,
) -> Workflow:
    validate_steps(steps)
    await _check_references(db, steps)
    await check_scope(db, editor, steps)

    workflow = Workflow(name=name, is_active=True)
    db.add(workflow)
    await db.flush()
    db.add_all(_build_steps(workflow.id, steps))

    if commit:
        await db.commit()
    else:
        await db.flush()
    await db.refresh(workflow)

    logger.info(f"Workflow '{name}' ({workflow.id}) created with {len(steps)} steps by {editor.university_id}")
    return workflow


async def _in_flight_count(db: AsyncSession, step_ids: list[UUID]) -> int:
    if not step_ids:
        return 0
    result = await db.execute(
        select(func.count(Request.id)).where(
            Request.current_step_id.in_(step_ids),
            Request.status.in_(IN_FLIGHT_STATUSES),
        )
    )
    return result.scalar_one()


async def update_workflow(
    db: AsyncSession,
    workflow_id: UUID,
    editor: User,
    name: Optional[str] = None,
    is_active: Optional[bool] = None,
    steps: Optional[list[WorkflowStepIn]] = None,
) -> Workflow:
    """
    Update a workflow. A new `steps` list replaces the chain: the old rows
    are detached (workflow_id=None) so action history keeps resolving.
    Refused while any in-flight request sits on one of the old steps.
    """
    workflow = await get_workflow(db, workflow_id)

    if name is not None:
        workflow.name = name
    if is_active is not None:
        workflow.is_active = is_active

    if steps is not None:
        validate_steps(steps)
        await _check_references(db, steps)
        await check_scope(db, editor, steps)

        old_steps = list(workflow.steps)
        busy = await _in_flight_count(db, [s.id for s in old_steps])
        if busy:
            raise ConflictError(
                f"Cannot replace steps: {busy} in-flight request(s) are still using this workflow"
            )

        for old in old_steps:
            old.workflow_id = None
        await db.flush()
        db.add_all(_build_steps(workflow.id, steps))

    await db.commit()
    # Steps collection changed underneath the identity map
    db.expire(workflow, ["steps"])
    await db.refresh(workflow)

    logger.info(f"Workflow {workflow_id} updated by {editor.university_id} (steps replaced: {steps is not None})")
    return workflow


async def delete_workflow(db: AsyncSession, workflow_id: UUID) -> bool:
    """
    Delete a workflow, or deactivate it when requests have history on its
    steps. Returns True when the row was actually deleted.

    Raises ConflictError while a form template still uses it.
    """
    workflow = await get_workflow(db, workflow_id)

    in_use = await db.execute(
        select(func.count(FormTemplate.id)).where(FormTemplate.workflow_id == workflow_id)
    )
    if in_use.scalar_one():
        raise ConflictError("Cannot delete a workflow that is assigned to a form")

    step_ids = [s.id for s in workflow.steps]
    has_history = False
    if step_ids:
        requests_on_steps = await db.execute(
            select(func.count(Request.id)).where(Request.current_step_id.in_(step_ids))
        )
        actions_on_steps = await db.execute(
            select(func.count(RequestAction.id)).where(RequestAction.step_id.in_(step_ids))
        )
        has_history = bool(requests_on_steps.scalar_one() or actions_on_steps.scalar_one())

    if has_history:
        workflow.is_active = False
        await db.commit()
        logger.info(f"Workflow {workflow_id} has history; deactivated instead of deleted")
        return False

    for step in workflow.steps:
        await db.delete(step)
    await db.delete(workflow)
    await db.commit()

    logger.info(f"Workflow {workflow_id} deleted")
    return True


async def first_step(db: AsyncSession, workflow_id: Optional[UUID]) -> Optional[WorkflowStep]:
    """Lowest-order step of a workflow, or None."""
    if workflow_id is None:
        return None
    result = await db.execute(
        select(WorkflowStep)
        .where(WorkflowStep.workflow_id == workflow_id)
        .order_by(WorkflowStep.order)
        .limit(1)
    )
    return result.scalar_one_or_none()
