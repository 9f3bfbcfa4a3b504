"""
Attachment API endpoints.
Multipart upload to the local upload directory.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.attachment import AttachmentResponse
from app.services import attachments as attachment_service
from app.services.errors import WorkflowError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/requests/{request_id}/attachments", response_model=AttachmentResponse, status_code=201)
async def upload_attachment(
    request_id: UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Upload a file to a request the user can see.

    Max 10MB; PDF, JPG, PNG, DOC and DOCX only. The stored file is served
    from the returned `storage_location` (/uploads/...).
    """
    try:
        return await attachment_service.upload_attachment(db, request_id, current_user, file)
    except WorkflowError as e:
        raise_http(e)


@router.get("/requests/{request_id}/attachments", response_model=list[AttachmentResponse])
async def list_attachments(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await attachment_service.list_attachments(db, request_id, current_user)
    except WorkflowError as e:
        raise_http(e)


@router.delete("/attachments/{attachment_id}", status_code=204)
async def delete_attachment(
    attachment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Uploader, request owner or admin only."""
    try:
        await attachment_service.delete_attachment(db, attachment_id, current_user)
    except WorkflowError as e:
        raise_http(e)
