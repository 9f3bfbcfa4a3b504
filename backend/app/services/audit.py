"""Audit trail for administrative changes."""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database_types import to_naive_utc
from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_audit_action(
    db: AsyncSession,
    user_id: Optional[UUID],
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    details: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> bool:
    """
    Record an audit entry in its own commit.

    The write runs in a savepoint. A failure rolls back only that
    savepoint and is logged and reported as False.
    """
    try:
        async with db.begin_nested():
            db.add(AuditLog(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details,
                ip_address=ip_address,
            ))
    except Exception as e:
        logger.error(f"Audit log write failed ({action} {entity_type} {entity_id}): {str(e)}")
        return False

    await db.commit()
    return True


async def list_audit_logs(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    user_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 100,
) -> list[AuditLog]:
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    query = select(AuditLog)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if user_id:
        query = query.where(AuditLog.user_id == user_id)
    if start_date:
        query = query.where(AuditLog.created_at >= start_date)
    if end_date:
        query = query.where(AuditLog.created_at <= end_date)

    result = await db.execute(query.order_by(AuditLog.created_at.desc()).limit(limit))
    return list(result.scalars().all())
