"""Notification API endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.notification import MarkReadResponse, NotificationResponse
from app.services.notifications import list_notifications, mark_read

router = APIRouter()


@router.get("/", response_model=list[NotificationResponse])
async def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recent notifications first."""
    return await list_notifications(db, current_user.id, limit)


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return MarkReadResponse(updated=await mark_read(db, current_user.id))


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_one_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updated = await mark_read(db, current_user.id, notification_id)
    if not updated:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found or already read")
    return MarkReadResponse(updated=updated)
