"""In-app notifications for requesters and approvers."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.request import Request
from app.models.user import User
from app.models.workflow import WorkflowStep

logger = logging.getLogger(__name__)


STATUS_MESSAGES = {
    "approved": "Your request {ref} was approved by {actor}",
    "rejected": "Your request {ref} was rejected by {actor}",
    "pending": "Your request {ref} is under review",
    "processing": "Your request {ref} was approved by {actor} and moved to the next step",
    "returned": "Your request {ref} was returned for changes by {actor}",
}


class NotificationService:
    """
    Writes notification rows.

    Every public method commits on its own. A failed delivery only rolls
    back its own savepoint and is logged and reported as False.
    """

    async def notify_request_status_change(
        self,
        db: AsyncSession,
        request: Request,
        new_status: str,
        actor_name: str,
    ) -> bool:
        """Tell the requester their request changed status."""
        template = STATUS_MESSAGES.get(new_status, "Your request {ref} was updated")
        message = template.format(ref=request.reference_no, actor=actor_name)
        return await self._deliver(
            db,
            [request.requester_id],
            title="Request status update",
            message=message,
            link=f"/requests/{request.id}",
        )

    async def notify_step_approvers(
        self,
        db: AsyncSession,
        step: Optional[WorkflowStep],
        request: Request,
        requester_name: str,
        title: str = "New request for review",
    ) -> bool:
        """Tell whoever owns `step` that a request is waiting for them."""
        if step is None:
            return False

        recipients = await self._step_recipients(db, step)
        if not recipients:
            logger.warning(f"No active approvers for step {step.id} ({step.name})")
            return False

        message = (
            f"{request.form_name} from {requester_name} "
            f"- reference: {request.reference_no}"
        )
        return await self._deliver(
            db, recipients, title=title, message=message, link=f"/requests/{request.id}"
        )

    async def _step_recipients(self, db: AsyncSession, step: WorkflowStep) -> list[UUID]:
        if step.approver_user_id:
            return [step.approver_user_id]
        if step.approver_role_id:
            result = await db.execute(
                select(User.id).where(
                    User.role_id == step.approver_role_id,
                    User.is_active.is_(True),
                )
            )
            return list(result.scalars().all())
        return []

    async def _deliver(
        self,
        db: AsyncSession,
        user_ids: list[UUID],
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> bool:
        # A failed savepoint leaves the caller's loaded objects untouched
        try:
            async with db.begin_nested():
                db.add_all([
                    Notification(user_id=user_id, title=title, message=message, link=link)
                    for user_id in user_ids
                ])
        except Exception as e:
            logger.error(f"Error creating notifications '{title}': {str(e)}")
            return False

        await db.commit()
        logger.info(f"Notification '{title}' sent to {len(user_ids)} user(s)")
        return True


async def list_notifications(db: AsyncSession, user_id: UUID, limit: int = 20) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_read(db: AsyncSession, user_id: UUID, notification_id: Optional[UUID] = None) -> int:
    """Mark one (or, without an id, all) of the user's notifications as read."""
    stmt = update(Notification).where(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    if notification_id is not None:
        stmt = stmt.where(Notification.id == notification_id)
    result = await db.execute(stmt.values(is_read=True))
    await db.commit()
    return result.rowcount or 0


# Global notification service instance
notification_service = NotificationService()
