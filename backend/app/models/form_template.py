from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
import uuid

from app.database import Base
from app.database_types import GUID, JSON


class FormTemplate(Base):
    __tablename__ = "form_templates"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # Structure: {"fields": [{"name": "reason", "label": "Reason", "type": "text", "required": true}]}
    schema = Column(JSON, nullable=False, default=dict)

    # Drafts are inactive until published
    is_active = Column(Boolean, nullable=False, default=False)

    # Structure: {"student": true, "employee": false, "colleges": [...], "departments": [...]}
    audience_config = Column(JSON, nullable=True)

    workflow_id = Column(GUID, ForeignKey("workflows.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def required_fields(self) -> list[dict]:
        fields = (self.schema or {}).get("fields") or []
        return [f for f in fields if f.get("required")]
