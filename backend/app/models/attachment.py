from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
import uuid

from app.database import Base
from app.database_types import GUID


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    request_id = Column(GUID, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    uploader_id = Column(GUID, ForeignKey("users.id"), nullable=False)

    file_name = Column(String(255), nullable=False)  # Original filename
    file_type = Column(String(100), nullable=False)  # MIME type
    size_bytes = Column(Integer, nullable=False)

    # Relative URL under /uploads
    storage_location = Column(String(500), nullable=False)

    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
