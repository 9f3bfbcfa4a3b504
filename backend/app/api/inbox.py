"""
Inbox API endpoints.
What is waiting for the current user, directly or through a delegation.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.request import ActionResponse, InboxStats, RequestResponse
from app.services.inbox import action_history_for_actor, get_inbox, inbox_stats

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[RequestResponse])
async def list_inbox(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Pending and processing requests the user can act on, oldest first."""
    return await get_inbox(db, current_user)


@router.get("/stats", response_model=InboxStats)
async def get_inbox_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await inbox_stats(db, current_user)


@router.get("/history", response_model=list[ActionResponse])
async def get_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The user's latest action on each request they handled."""
    return await action_history_for_actor(db, current_user.id)
