"""
Approval engine: authorizes an approver and moves a request along its
workflow.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.request import ACTIONABLE_STATUSES, Request, RequestKind, RequestStatus
from app.models.request_action import ActionType, RequestAction
from app.models.user import User
from app.models.workflow import WorkflowStep
from app.services.delegations import find_covering_delegation, grant_from_request
from app.services.errors import ConflictError, PermissionDeniedError
from app.services.notifications import notification_service
from app.services.state_machine import load_request, transition_request

logger = logging.getLogger(__name__)


@dataclass
class Authorization:
    allowed: bool
    on_behalf_of_id: Optional[UUID] = None


@dataclass
class ActionResult:
    request: Request
    action: RequestAction


def actor_owns_step(actor: User, step: WorkflowStep) -> bool:
    if step.approver_user_id and step.approver_user_id == actor.id:
        return True
    if step.approver_role_id and step.approver_role_id == actor.role_id:
        return True
    return False


async def authorize_actor(db: AsyncSession, actor: User, step: Optional[WorkflowStep]) -> Authorization:
    """
    Decide whether `actor` may act on a request sitting at `step`.

    Step-less requests (forms without a workflow) are handled by admins.
    Otherwise the actor must own the step directly or hold an active
    delegation from someone who does.
    """
    if step is None:
        return Authorization(allowed=actor.is_admin())

    if actor_owns_step(actor, step):
        return Authorization(allowed=True)

    delegation = await find_covering_delegation(db, actor, step)
    if delegation:
        return Authorization(allowed=True, on_behalf_of_id=delegation.grantor_id)

    return Authorization(allowed=False)


async def next_step_after(db: AsyncSession, step: WorkflowStep) -> Optional[WorkflowStep]:
    """The step with the next greater order in the same workflow, if any."""
    if step.is_final or step.workflow_id is None:
        return None
    result = await db.execute(
        select(WorkflowStep)
        .where(
            WorkflowStep.workflow_id == step.workflow_id,
            WorkflowStep.order > step.order,
        )
        .order_by(WorkflowStep.order)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def process_action(
    db: AsyncSession,
    request_id: UUID,
    actor: User,
    action: ActionType,
    comment: Optional[str] = None,
) -> ActionResult:
    """
    Apply an approver's decision to a request.

    The action row, the status change and (for delegation requests) the
    granted Delegation are committed together; notifications follow in
    their own transactions.

    Raises:
        NotFoundError: request does not exist
        ConflictError: request is not pending/processing
        PermissionDeniedError: actor may not act on the current step
    """
    request = await load_request(db, request_id)

    if request.status not in ACTIONABLE_STATUSES:
        raise ConflictError(f"Request {request.reference_no} is already {request.status}")

    step = request.current_step
    auth = await authorize_actor(db, actor, step)
    if not auth.allowed:
        logger.warning(
            f"User {actor.university_id} attempted {action.value} on {request.reference_no} without authority"
        )
        raise PermissionDeniedError("You are not authorized to act on this request")

    record = RequestAction(
        request_id=request.id,
        actor_id=actor.id,
        step_id=step.id if step else None,
        on_behalf_of_id=auth.on_behalf_of_id,
        action=action.value,
        comment=comment,
    )
    db.add(record)

    next_step = None
    metadata = {"actor_id": str(actor.id), "action": action.value}

    if action == ActionType.REJECT:
        transition_request(request, RequestStatus.REJECTED, metadata=metadata)
    elif action == ActionType.REJECT_WITH_CHANGES:
        # Same approver reviews the resubmission
        transition_request(request, RequestStatus.RETURNED, metadata=metadata)
    else:
        next_step = await next_step_after(db, step) if step else None
        if next_step:
            transition_request(request, RequestStatus.PROCESSING, next_step_id=next_step.id, metadata=metadata)
        else:
            transition_request(request, RequestStatus.APPROVED, metadata=metadata)
            # Only a plain approve grants the delegation
            if request.request_type == RequestKind.DELEGATION.value and action == ActionType.APPROVE:
                grant_from_request(db, request)

    await db.commit()
    await db.refresh(request)
    await db.refresh(record)

    logger.info(
        f"Request {request.reference_no}: {action.value} by {actor.university_id}"
        + (f" on behalf of {auth.on_behalf_of_id}" if auth.on_behalf_of_id else "")
        + f" -> {request.status}"
    )

    await notification_service.notify_request_status_change(db, request, request.status, actor.full_name)
    if next_step:
        await notification_service.notify_step_approvers(
            db, next_step, request, request.requester.full_name if request.requester else ""
        )

    return ActionResult(request=request, action=record)
