"""
Request submission, resubmission, visibility and tracking.
"""
import logging
import math
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.database_types import to_naive_utc
from app.models.form_template import FormTemplate
from app.models.request import COMPLETED_STATUSES, Request, RequestStatus
from app.models.request_action import RequestAction
from app.models.user import User
from app.services.approvals import authorize_actor
from app.services.errors import NotFoundError, PermissionDeniedError, ValidationFailedError, ConflictError
from app.services.forms import get_form, is_available_to, missing_required_fields
from app.services.notifications import notification_service
from app.services.reference import generate_reference_no
from app.services.state_machine import load_request, transition_request
from app.services.workflows import first_step

logger = logging.getLogger(__name__)


def _check_required(form: FormTemplate, data: dict[str, Any]) -> None:
    missing = missing_required_fields(form, data)
    if missing:
        raise ValidationFailedError(f"Missing required fields: {', '.join(missing)}")


async def submit_request(
    db: AsyncSession,
    user: User,
    form_id: UUID,
    data: dict[str, Any],
) -> Request:
    """
    Create a request from a published form.

    The request starts `pending` at the first step of the form's workflow,
    or with no step when the form has no workflow (admins handle those).
    """
    form = await get_form(db, form_id)
    if not form.is_active:
        raise ValidationFailedError("This form is not accepting submissions")
    if not is_available_to(form, user):
        raise PermissionDeniedError("This form is not available to you")

    _check_required(form, data)

    step = await first_step(db, form.workflow_id)

    request = Request(
        reference_no=generate_reference_no(),
        requester_id=user.id,
        form_id=form.id,
        current_step_id=step.id if step else None,
        status=RequestStatus.PENDING.value,
        submission_data=data,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(
        f"Request {request.reference_no} submitted by {user.university_id} "
        f"(form={form.name}, step={step.name if step else None})"
    )

    await notification_service.notify_step_approvers(db, step, request, user.full_name)
    return request


async def resubmit_request(
    db: AsyncSession,
    request_id: UUID,
    user: User,
    data: dict[str, Any],
) -> Request:
    """Requester answers a `returned` request; it goes back to the same step."""
    request = await load_request(db, request_id)

    if request.requester_id != user.id:
        raise PermissionDeniedError("Only the requester can resubmit this request")
    if request.status != RequestStatus.RETURNED.value:
        raise ConflictError(f"Only returned requests can be resubmitted (currently {request.status})")

    if request.form is not None:
        _check_required(request.form, data)

    request.submission_data = data
    transition_request(request, RequestStatus.PENDING, metadata={"resubmitted_by": str(user.id)})

    await db.commit()
    await db.refresh(request)

    logger.info(f"Request {request.reference_no} resubmitted by {user.university_id}")

    await notification_service.notify_step_approvers(
        db, request.current_step, request, user.full_name, title="Request resubmitted"
    )
    return request


async def can_view_request(db: AsyncSession, request: Request, user: User) -> bool:
    """
    Requester, admins, anyone who has acted on the request, and whoever
    can currently act on it (directly or through a delegation).
    """
    if request.requester_id == user.id or user.is_admin():
        return True

    acted = await db.execute(
        select(func.count(RequestAction.id)).where(
            RequestAction.request_id == request.id,
            or_(RequestAction.actor_id == user.id, RequestAction.on_behalf_of_id == user.id),
        )
    )
    if acted.scalar_one():
        return True

    if request.current_step is not None:
        auth = await authorize_actor(db, user, request.current_step)
        return auth.allowed
    return False


async def get_request_for_user(db: AsyncSession, request_id: UUID, user: User) -> Request:
    """Load a request the user may see. Hidden requests read as not found."""
    request = await load_request(db, request_id)
    if not await can_view_request(db, request, user):
        raise NotFoundError(f"Request {request_id} not found")
    return request


async def list_user_requests(
    db: AsyncSession,
    user: User,
    statuses: Optional[list[str]] = None,
    form_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    query: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Own requests, newest first, with filters, stats and pagination."""
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    conditions = [Request.requester_id == user.id]
    if statuses:
        conditions.append(Request.status.in_(statuses))
    if form_id:
        conditions.append(Request.form_id == form_id)
    if start_date:
        conditions.append(Request.submitted_at >= start_date)
    if end_date:
        conditions.append(Request.submitted_at <= end_date)

    base = select(Request).where(*conditions)
    if query:
        pattern = f"%{query.lower()}%"
        base = base.outerjoin(FormTemplate, Request.form_id == FormTemplate.id).where(
            or_(
                func.lower(Request.reference_no).like(pattern),
                func.lower(FormTemplate.name).like(pattern),
            )
        )

    filtered_total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar_one()

    result = await db.execute(
        base.order_by(Request.submitted_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return {
        "requests": requests,
        "stats": await request_stats(db, user.id),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": filtered_total,
            "total_pages": math.ceil(filtered_total / limit) if limit else 0,
        },
    }


async def request_stats(db: AsyncSession, requester_id: UUID) -> dict[str, int]:
    result = await db.execute(
        select(Request.status, func.count(Request.id))
        .where(Request.requester_id == requester_id)
        .group_by(Request.status)
    )
    counts = dict(result.all())
    total = sum(counts.values())
    completed = sum(counts.get(s, 0) for s in COMPLETED_STATUSES)
    return {"total": total, "in_progress": total - completed, "completed": completed}


async def action_history(db: AsyncSession, request_id: UUID) -> list[RequestAction]:
    result = await db.execute(
        select(RequestAction)
        .where(RequestAction.request_id == request_id)
        .order_by(RequestAction.created_at.desc())
    )
    return list(result.scalars().all())
