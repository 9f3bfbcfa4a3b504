"""Reporting aggregations over requests and actions."""
import logging
from collections import Counter
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database_types import to_naive_utc
from app.models.form_template import FormTemplate
from app.models.organization import Department
from app.models.request import COMPLETED_STATUSES, Request
from app.models.request_action import RequestAction
from app.models.user import User
from app.models.workflow import WorkflowStep
from app.services.errors import NotFoundError
from app.services.inbox import APPROVE_ACTIONS, REJECT_ACTIONS
from app.services.sla import evaluate_sla, hours_between

logger = logging.getLogger(__name__)


def _rate(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


async def sla_compliance_report(
    db: AsyncSession,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    query = select(Request)
    if start_date:
        query = query.where(Request.submitted_at >= start_date)
    if end_date:
        query = query.where(Request.submitted_at <= end_date)
    requests = (await db.execute(query.order_by(Request.submitted_at))).scalars().all()

    # First action per request, in one pass
    first_actions: dict = {}
    if requests:
        actions = await db.execute(
            select(RequestAction)
            .where(RequestAction.request_id.in_([r.id for r in requests]))
            .order_by(RequestAction.created_at.asc())
        )
        for action in actions.scalars().all():
            first_actions.setdefault(action.request_id, action)

    records = []
    for request in requests:
        action = first_actions.get(request.id)
        if action is None or action.step_id is None:
            continue
        step = await db.get(WorkflowStep, action.step_id)
        result = evaluate_sla(request.submitted_at, action.created_at, step)
        if result is None:
            continue
        records.append({
            "request_id": request.id,
            "reference_no": request.reference_no,
            "form_name": request.form_name,
            "step_name": step.name,
            "sla_hours": result.sla_hours,
            "elapsed_hours": round(result.elapsed_hours, 2),
            "compliant": result.compliant,
        })

    compliant = sum(1 for r in records if r["compliant"])
    return {
        "summary": {
            "total": len(records),
            "compliant": compliant,
            "violated": len(records) - compliant,
            "compliance_rate": _rate(compliant, len(records)),
        },
        "records": records,
    }


async def employee_performance(
    db: AsyncSession,
    user_id: UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)

    query = (
        select(RequestAction, Request)
        .join(Request, RequestAction.request_id == Request.id)
        .where(RequestAction.actor_id == user_id)
    )
    if start_date:
        query = query.where(RequestAction.created_at >= start_date)
    if end_date:
        query = query.where(RequestAction.created_at <= end_date)
    rows = (await db.execute(query)).all()

    approvals = sum(1 for action, _ in rows if action.action in APPROVE_ACTIONS)
    rejections = sum(1 for action, _ in rows if action.action in REJECT_ACTIONS)
    response_hours = [hours_between(request.submitted_at, action.created_at) for action, request in rows]
    by_form = Counter(request.form_name for _, request in rows)

    return {
        "user_id": user.id,
        "full_name": user.full_name,
        "total_actions": len(rows),
        "approvals": approvals,
        "rejections": rejections,
        "approval_rate": _rate(approvals, len(rows)),
        "avg_response_hours": round(sum(response_hours) / len(response_hours), 2) if response_hours else 0.0,
        "by_form": [{"form_name": name, "count": count} for name, count in by_form.most_common()],
    }


async def average_processing_time(db: AsyncSession, form_id: UUID) -> dict:
    """Submission to final decision, over the form's completed requests."""
    form = await db.get(FormTemplate, form_id)
    if not form:
        raise NotFoundError(f"Form {form_id} not found")

    last_action = (
        select(RequestAction.request_id, func.max(RequestAction.created_at).label("finished_at"))
        .group_by(RequestAction.request_id)
        .subquery()
    )
    rows = (await db.execute(
        select(Request.submitted_at, last_action.c.finished_at)
        .outerjoin(last_action, last_action.c.request_id == Request.id)
        .where(Request.form_id == form_id, Request.status.in_(COMPLETED_STATUSES))
    )).all()

    durations = [hours_between(submitted, finished) for submitted, finished in rows if finished]
    avg_hours = round(sum(durations) / len(durations), 2) if durations else 0.0

    return {
        "form_id": form.id,
        "form_name": form.name,
        "completed_requests": len(rows),
        "avg_hours": avg_hours,
        "avg_days": round(avg_hours / 24, 2),
    }


async def department_statistics(db: AsyncSession, department_id: UUID) -> dict:
    department = await db.get(Department, department_id)
    if not department:
        raise NotFoundError(f"Department {department_id} not found")

    user_ids = select(User.id).where(User.department_id == department_id)
    total_users = (await db.execute(
        select(func.count(User.id)).where(User.department_id == department_id)
    )).scalar_one()

    by_status = (await db.execute(
        select(Request.status, func.count(Request.id))
        .where(Request.requester_id.in_(user_ids))
        .group_by(Request.status)
    )).all()

    by_form = (await db.execute(
        select(FormTemplate.name, func.count(Request.id))
        .select_from(Request)
        .outerjoin(FormTemplate, Request.form_id == FormTemplate.id)
        .where(Request.requester_id.in_(user_ids))
        .group_by(FormTemplate.name)
    )).all()

    return {
        "department_id": department.id,
        "dept_name": department.dept_name,
        "total_users": total_users,
        "total_requests": sum(count for _, count in by_status),
        "by_status": [{"status": status, "count": count} for status, count in by_status],
        "by_form": [{"form_name": name or "General", "count": count} for name, count in by_form],
    }


async def admin_overview(db: AsyncSession) -> dict:
    total_users = (await db.execute(select(func.count(User.id)))).scalar_one()
    total_requests = (await db.execute(select(func.count(Request.id)))).scalar_one()
    pending = (await db.execute(
        select(func.count(Request.id)).where(Request.status.not_in(COMPLETED_STATUSES))
    )).scalar_one()
    active_forms = (await db.execute(
        select(func.count(FormTemplate.id)).where(FormTemplate.is_active.is_(True))
    )).scalar_one()
    return {
        "total_users": total_users,
        "total_requests": total_requests,
        "pending_requests": pending,
        "active_forms": active_forms,
    }
