"""Attachment file management service."""
import logging
import os
import re
import time
from pathlib import Path
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.attachment import Attachment
from app.models.request import Request
from app.models.user import User
from app.services.errors import NotFoundError, PermissionDeniedError, WorkflowError
from app.services.requests import get_request_for_user

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

UPLOAD_URL_PREFIX = "/uploads"


def get_upload_dir() -> Path:
    return Path(settings.upload_dir)


def sanitize_filename(filename: str) -> str:
    """Keep letters, digits, dots and dashes; everything else becomes '_'."""
    return re.sub(r"[^a-zA-Z0-9.\-]", "_", filename or "file")


def validate_attachment(content_type: str, size_bytes: int) -> None:
    """
    Raises:
        WorkflowError (400): If the file is too large or of a disallowed type
    """
    max_size = settings.max_upload_mb * 1024 * 1024
    if size_bytes > max_size:
        raise WorkflowError(f"File too large. Maximum size: {settings.max_upload_mb}MB")
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise WorkflowError("File type not allowed. Allowed types: PDF, JPG, PNG, DOC, DOCX")


def store_file(filename: str, content: bytes) -> str:
    """Write bytes to the upload directory and return the relative URL."""
    upload_dir = get_upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)

    stored_name = f"{int(time.time() * 1000)}_{sanitize_filename(filename)}"
    (upload_dir / stored_name).write_bytes(content)
    return f"{UPLOAD_URL_PREFIX}/{stored_name}"


def delete_stored_file(storage_location: str) -> None:
    """Delete an uploaded file from disk."""
    try:
        path = get_upload_dir() / Path(storage_location).name
        if path.exists():
            os.remove(path)
    except Exception as e:
        logger.warning(f"Failed to delete attachment file {storage_location}: {str(e)}")


async def upload_attachment(
    db: AsyncSession,
    request_id: UUID,
    user: User,
    file: UploadFile,
) -> Attachment:
    await get_request_for_user(db, request_id, user)

    content = await file.read()
    content_type = file.content_type or ""
    validate_attachment(content_type, len(content))

    storage_location = store_file(file.filename, content)

    attachment = Attachment(
        request_id=request_id,
        uploader_id=user.id,
        file_name=file.filename or "file",
        file_type=content_type,
        size_bytes=len(content),
        storage_location=storage_location,
    )
    db.add(attachment)
    await db.commit()
    await db.refresh(attachment)

    logger.info(f"Attachment {attachment.file_name} ({len(content)} bytes) added to request {request_id}")
    return attachment


async def list_attachments(db: AsyncSession, request_id: UUID, user: User) -> list[Attachment]:
    await get_request_for_user(db, request_id, user)
    result = await db.execute(
        select(Attachment)
        .where(Attachment.request_id == request_id)
        .order_by(Attachment.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def delete_attachment(db: AsyncSession, attachment_id: UUID, user: User) -> None:
    """Uploader, request owner or admin only."""
    attachment = await db.get(Attachment, attachment_id)
    if not attachment:
        raise NotFoundError(f"Attachment {attachment_id} not found")

    owner_id = (await db.execute(
        select(Request.requester_id).where(Request.id == attachment.request_id)
    )).scalar_one_or_none()

    if not (user.is_admin() or attachment.uploader_id == user.id or owner_id == user.id):
        raise PermissionDeniedError("You are not allowed to delete this attachment")

    storage_location = attachment.storage_location
    await db.delete(attachment)
    await db.commit()
    delete_stored_file(storage_location)

    logger.info(f"Attachment {attachment_id} deleted by {user.university_id}")
