"""Approver inbox: what is waiting for a user, and what they have done."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.request import ACTIONABLE_STATUSES, Request
from app.models.request_action import ActionType, RequestAction
from app.models.user import User
from app.models.workflow import WorkflowStep
from app.services.delegations import active_delegations_for

logger = logging.getLogger(__name__)

APPROVE_ACTIONS = (ActionType.APPROVE.value, ActionType.APPROVE_WITH_CHANGES.value)
REJECT_ACTIONS = (ActionType.REJECT.value, ActionType.REJECT_WITH_CHANGES.value)


async def _inbox_condition(db: AsyncSession, user: User):
    """WHERE clause matching requests the user (or a grantor) can act on."""
    target_user_ids = [user.id]
    target_role_ids = [user.role_id]
    for delegation in await active_delegations_for(db, user.id):
        grantor = delegation.grantor
        if grantor is None or not grantor.is_active:
            continue
        target_user_ids.append(grantor.id)
        target_role_ids.append(grantor.role_id)

    step_ids = select(WorkflowStep.id).where(
        or_(
            WorkflowStep.approver_user_id.in_(target_user_ids),
            WorkflowStep.approver_role_id.in_(target_role_ids),
        )
    )
    matches = Request.current_step_id.in_(step_ids)
    if user.is_admin():
        matches = or_(matches, Request.current_step_id.is_(None))

    return and_(Request.status.in_(ACTIONABLE_STATUSES), matches)


async def get_inbox(db: AsyncSession, user: User, limit: Optional[int] = None) -> list[Request]:
    """Actionable requests for the user, oldest first."""
    condition = await _inbox_condition(db, user)
    result = await db.execute(
        select(Request)
        .where(condition)
        .order_by(Request.submitted_at.asc())
        .limit(limit or settings.inbox_limit)
    )
    requests = list(result.scalars().all())
    logger.info(f"Inbox for {user.university_id}: {len(requests)} request(s)")
    return requests


async def inbox_stats(db: AsyncSession, user: User) -> dict[str, int]:
    result = await db.execute(
        select(RequestAction.action, func.count(RequestAction.id))
        .where(RequestAction.actor_id == user.id)
        .group_by(RequestAction.action)
    )
    counts = dict(result.all())

    condition = await _inbox_condition(db, user)
    pending = (await db.execute(select(func.count(Request.id)).where(condition))).scalar_one()

    return {
        "total_actions": sum(counts.values()),
        "approvals": sum(counts.get(a, 0) for a in APPROVE_ACTIONS),
        "rejections": sum(counts.get(a, 0) for a in REJECT_ACTIONS),
        "pending_inbox": pending,
    }


async def action_history_for_actor(db: AsyncSession, actor_id: UUID) -> list[RequestAction]:
    """The actor's latest action on each request they touched, newest first."""
    result = await db.execute(
        select(RequestAction)
        .where(RequestAction.actor_id == actor_id)
        .order_by(RequestAction.created_at.desc())
    )
    seen: set = set()
    history = []
    for action in result.scalars().all():
        if action.request_id in seen:
            continue
        seen.add(action.request_id)
        history.append(action)
    return history
