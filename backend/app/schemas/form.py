"""Form template schemas."""
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.workflow import WorkflowCreate


class FormField(BaseModel):
    """A single field in a form schema."""
    name: str
    label: Optional[str] = None
    type: str = "text"  # text, textarea, date, select, file, ...
    required: bool = False
    options: Optional[list[str]] = None


class FormSchema(BaseModel):
    fields: list[FormField] = []


class AudienceConfig(BaseModel):
    student: Optional[bool] = None
    employee: Optional[bool] = None
    colleges: list[UUID] = []
    departments: list[UUID] = []


class FormSave(BaseModel):
    """Create or update a draft."""
    name: str = Field(min_length=3, max_length=200)
    schema_: FormSchema = Field(alias="schema")
    audience_config: Optional[AudienceConfig] = None
    workflow_id: Optional[UUID] = None

    model_config = ConfigDict(populate_by_name=True)


class FormPublish(BaseModel):
    """
    Publish a form to an audience.

    workflow_mode: "keep" leaves the current workflow, "existing" assigns
    workflow_id, "new" creates new_workflow, "none" clears it.
    """
    audience_config: AudienceConfig
    workflow_mode: Literal["keep", "existing", "new", "none"] = "keep"
    workflow_id: Optional[UUID] = None
    new_workflow: Optional[WorkflowCreate] = None


class FormToggle(BaseModel):
    is_active: bool


class FormResponse(BaseModel):
    id: UUID
    name: str
    schema_: dict[str, Any] = Field(alias="schema")
    is_active: bool
    audience_config: Optional[dict[str, Any]] = None
    workflow_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class FormDeleteResponse(BaseModel):
    deleted: bool
    deactivated: bool
    message: str
