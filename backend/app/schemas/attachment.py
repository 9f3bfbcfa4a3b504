"""Attachment schemas."""
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class AttachmentResponse(BaseModel):
    id: UUID
    request_id: UUID
    uploader_id: UUID
    file_name: str
    file_type: str
    size_bytes: int
    storage_location: str
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)
