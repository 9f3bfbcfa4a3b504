"""
SLA tracking. Compliance and deadlines are derived from timestamps on
every read; nothing here is stored.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.request import ACTIONABLE_STATUSES, Request, RequestStatus
from app.models.request_action import RequestAction
from app.models.user import Role
from app.models.workflow import WorkflowStep

logger = logging.getLogger(__name__)


@dataclass
class SLAResult:
    sla_hours: int
    elapsed_hours: float
    compliant: bool
    step: WorkflowStep


@dataclass
class StepDeadline:
    step: WorkflowStep
    entered_at: datetime
    deadline: datetime

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) > self.deadline

    def hours_overdue(self, now: Optional[datetime] = None) -> float:
        delta = (now or datetime.utcnow()) - self.deadline
        return max(delta.total_seconds() / 3600, 0.0)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def evaluate_sla(submitted_at: datetime, first_action_at: datetime, step: Optional[WorkflowStep]) -> Optional[SLAResult]:
    """Compliant iff the first decision came within the step's SLA hours."""
    if step is None or not step.sla_hours:
        return None
    elapsed = hours_between(submitted_at, first_action_at)
    return SLAResult(
        sla_hours=step.sla_hours,
        elapsed_hours=elapsed,
        compliant=elapsed <= step.sla_hours,
        step=step,
    )


async def first_action(db: AsyncSession, request_id) -> Optional[RequestAction]:
    result = await db.execute(
        select(RequestAction)
        .where(RequestAction.request_id == request_id)
        .order_by(RequestAction.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def sla_for_request(db: AsyncSession, request: Request) -> Optional[SLAResult]:
    """None when the request has no actions yet or the step has no SLA."""
    action = await first_action(db, request.id)
    if action is None or action.step_id is None:
        return None
    step = await db.get(WorkflowStep, action.step_id)
    return evaluate_sla(request.submitted_at, action.created_at, step)


async def step_deadline(db: AsyncSession, request: Request) -> Optional[StepDeadline]:
    """
    Deadline of an in-flight request at its current step: the moment it
    entered the step (last action, else submission) plus the step's SLA.
    """
    step = request.current_step
    if request.status not in ACTIONABLE_STATUSES or step is None or not step.sla_hours:
        return None

    result = await db.execute(
        select(func.max(RequestAction.created_at)).where(RequestAction.request_id == request.id)
    )
    last_action_at = result.scalar_one_or_none()
    entered_at = last_action_at or request.submitted_at
    if last_action_at and request.status == RequestStatus.PENDING.value:
        # Pending after an action means returned and resubmitted
        entered_at = max(last_action_at, request.updated_at)

    return StepDeadline(step=step, entered_at=entered_at, deadline=entered_at + timedelta(hours=step.sla_hours))


async def list_overdue(db: AsyncSession, now: Optional[datetime] = None) -> list[dict]:
    """In-flight requests past their step deadline, most overdue first."""
    now = now or datetime.utcnow()
    result = await db.execute(
        select(Request)
        .join(WorkflowStep, Request.current_step_id == WorkflowStep.id)
        .where(
            Request.status.in_(ACTIONABLE_STATUSES),
            WorkflowStep.sla_hours.is_not(None),
        )
    )

    overdue = []
    for request in result.scalars().all():
        deadline = await step_deadline(db, request)
        if deadline is None or not deadline.is_overdue(now):
            continue

        escalation_role = None
        if deadline.step.escalation_role_id:
            escalation_role = await db.get(Role, deadline.step.escalation_role_id)

        overdue.append({
            "request_id": request.id,
            "reference_no": request.reference_no,
            "form_name": request.form_name,
            "status": request.status,
            "step_id": deadline.step.id,
            "step_name": deadline.step.name,
            "deadline": deadline.deadline,
            "hours_overdue": round(deadline.hours_overdue(now), 2),
            "escalation_role_id": deadline.step.escalation_role_id,
            "escalation_role_name": escalation_role.role_name if escalation_role else None,
        })

    overdue.sort(key=lambda r: r["hours_overdue"], reverse=True)
    if overdue:
        logger.warning(f"{len(overdue)} request(s) past their SLA deadline")
    return overdue
