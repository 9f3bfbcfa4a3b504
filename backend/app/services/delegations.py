"""
Delegation of approval authority.

A delegation lets the grantee act on any step the grantor could act on,
for as long as it is active and inside its time window.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.delegation import Delegation
from app.models.organization import College
from app.models.request import Request, RequestKind, RequestStatus
from app.models.user import Role, RoleName, User
from app.models.workflow import WorkflowStep
from app.services.errors import NotFoundError, ValidationFailedError
from app.services.notifications import notification_service
from app.services.reference import generate_reference_no

logger = logging.getLogger(__name__)


def _validate_window(grantor_id, grantee_id, starts_at: datetime, ends_at: datetime) -> None:
    if ends_at <= starts_at:
        raise ValidationFailedError("End date must be after start date")
    if str(grantor_id) == str(grantee_id):
        raise ValidationFailedError("A user cannot delegate to themselves")


async def active_delegations_for(
    db: AsyncSession,
    grantee_id: UUID,
    now: Optional[datetime] = None,
) -> list[Delegation]:
    """Delegations the user currently holds as grantee."""
    now = now or datetime.utcnow()
    result = await db.execute(
        select(Delegation).where(
            Delegation.grantee_id == grantee_id,
            Delegation.is_active.is_(True),
            Delegation.starts_at <= now,
            Delegation.ends_at >= now,
        )
    )
    return list(result.scalars().all())


def grantor_covers_step(delegation: Delegation, step: WorkflowStep) -> bool:
    """True when the delegation's grantor is an approver of `step`."""
    grantor = delegation.grantor
    if grantor is None or not grantor.is_active:
        return False
    if step.approver_user_id and step.approver_user_id == grantor.id:
        return True
    if step.approver_role_id and step.approver_role_id == grantor.role_id:
        return True
    return False


async def find_covering_delegation(
    db: AsyncSession,
    actor: User,
    step: WorkflowStep,
    now: Optional[datetime] = None,
) -> Optional[Delegation]:
    for delegation in await active_delegations_for(db, actor.id, now):
        if grantor_covers_step(delegation, step):
            return delegation
    return None


async def get_delegation(db: AsyncSession, delegation_id: UUID) -> Delegation:
    delegation = await db.get(Delegation, delegation_id)
    if not delegation:
        raise NotFoundError(f"Delegation {delegation_id} not found")
    return delegation


async def create_delegation(
    db: AsyncSession,
    grantor_id: UUID,
    grantee_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
) -> Delegation:
    _validate_window(grantor_id, grantee_id, starts_at, ends_at)

    for user_id in (grantor_id, grantee_id):
        if not await db.get(User, user_id):
            raise NotFoundError(f"User {user_id} not found")

    delegation = Delegation(
        grantor_id=grantor_id,
        grantee_id=grantee_id,
        starts_at=starts_at,
        ends_at=ends_at,
        is_active=True,
    )
    db.add(delegation)
    await db.commit()
    await db.refresh(delegation)

    logger.info(f"Created delegation {delegation.id}: {grantor_id} -> {grantee_id} until {ends_at}")
    return delegation


async def update_delegation(
    db: AsyncSession,
    delegation_id: UUID,
    starts_at: Optional[datetime] = None,
    ends_at: Optional[datetime] = None,
    is_active: Optional[bool] = None,
) -> Delegation:
    delegation = await get_delegation(db, delegation_id)

    new_start = starts_at or delegation.starts_at
    new_end = ends_at or delegation.ends_at
    if new_end <= new_start:
        raise ValidationFailedError("End date must be after start date")

    delegation.starts_at = new_start
    delegation.ends_at = new_end
    if is_active is not None:
        delegation.is_active = is_active

    await db.commit()
    await db.refresh(delegation)
    return delegation


async def set_delegation_active(db: AsyncSession, delegation_id: UUID, is_active: bool) -> Delegation:
    """Toggle a delegation; deactivating is how delegations are deleted."""
    delegation = await get_delegation(db, delegation_id)
    delegation.is_active = is_active
    await db.commit()
    await db.refresh(delegation)

    logger.info(f"Delegation {delegation_id} {'activated' if is_active else 'deactivated'}")
    return delegation


async def list_user_delegations(
    db: AsyncSession,
    user_id: UUID,
    include_inactive: bool = False,
) -> list[Delegation]:
    query = select(Delegation).where(
        or_(Delegation.grantor_id == user_id, Delegation.grantee_id == user_id)
    )
    if not include_inactive:
        query = query.where(Delegation.is_active.is_(True))
    result = await db.execute(query.order_by(Delegation.starts_at.desc()))
    return list(result.scalars().all())


async def list_all_delegations(db: AsyncSession) -> list[Delegation]:
    result = await db.execute(select(Delegation).order_by(Delegation.created_at.desc()))
    return list(result.scalars().all())


async def _delegation_approver(db: AsyncSession, requester: User) -> UUID:
    """
    Dean of the requester's college, or the first active admin when the
    requester is that dean.
    """
    college_id = requester.college_id
    college = await db.get(College, college_id) if college_id else None
    dean_id = college.dean_id if college else None
    if not dean_id:
        raise ValidationFailedError("No college dean found to approve the delegation")

    if dean_id != requester.id:
        return dean_id

    result = await db.execute(
        select(User.id)
        .join(Role, User.role_id == Role.id)
        .where(Role.role_name == RoleName.ADMIN.value, User.is_active.is_(True))
        .order_by(User.created_at)
        .limit(1)
    )
    admin_id = result.scalar_one_or_none()
    if not admin_id:
        raise ValidationFailedError("No administrator available to approve the dean's delegation")
    return admin_id


async def submit_delegation_request(
    db: AsyncSession,
    requester: User,
    grantee_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
    reason: str,
) -> Request:
    """
    File a self-service delegation as a request.

    It is routed through a single ad-hoc final step owned by the approver
    chosen above; approving it creates the Delegation.
    """
    _validate_window(requester.id, grantee_id, starts_at, ends_at)

    grantee = await db.get(User, grantee_id)
    if not grantee or not grantee.is_active:
        raise NotFoundError(f"User {grantee_id} not found")

    approver_id = await _delegation_approver(db, requester)

    step = WorkflowStep(
        workflow_id=None,
        name="Dean / manager approval",
        order=1,
        approver_user_id=approver_id,
        sla_hours=settings.delegation_sla_hours,
        is_final=True,
    )
    db.add(step)
    await db.flush()

    request = Request(
        reference_no=generate_reference_no(),
        requester_id=requester.id,
        current_step_id=step.id,
        status=RequestStatus.PENDING.value,
        request_type=RequestKind.DELEGATION.value,
        submission_data={
            "grantee_id": str(grantee.id),
            "grantee_name": grantee.full_name,
            "starts_at": starts_at.isoformat(),
            "ends_at": ends_at.isoformat(),
            "reason": reason,
        },
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(
        f"Delegation request {request.reference_no} from {requester.university_id} "
        f"to {grantee.university_id}, approver {approver_id}"
    )

    await notification_service.notify_step_approvers(
        db, step, request, requester.full_name, title="New delegation request"
    )
    return request


def grant_from_request(db: AsyncSession, request: Request) -> Delegation:
    """
    Build the Delegation an approved delegation request grants.

    Added to the session only; the caller commits it together with the
    approving action.
    """
    data = request.submission_data or {}
    try:
        grantee_id = UUID(data["grantee_id"])
        starts_at = datetime.fromisoformat(data["starts_at"])
        ends_at = datetime.fromisoformat(data["ends_at"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationFailedError(f"Malformed delegation request data: {str(e)}")

    delegation = Delegation(
        grantor_id=request.requester_id,
        grantee_id=grantee_id,
        starts_at=starts_at,
        ends_at=ends_at,
        is_active=True,
        request_id=request.id,
    )
    db.add(delegation)
    return delegation
