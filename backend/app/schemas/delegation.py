"""Delegation schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.database_types import to_naive_utc


class DelegationWindow(BaseModel):
    """Base for payloads carrying a delegation window."""

    @field_validator("starts_at", "ends_at", check_fields=False)
    @classmethod
    def naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class DelegationCreate(DelegationWindow):
    """Admin-created delegation."""
    grantor_id: UUID
    grantee_id: UUID
    starts_at: datetime
    ends_at: datetime

    @model_validator(mode="after")
    def check_window(self):
        if self.ends_at <= self.starts_at:
            raise ValueError("End date must be after start date")
        return self


class DelegationUpdate(DelegationWindow):
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class DelegationToggle(BaseModel):
    is_active: bool


class DelegationRequestCreate(DelegationWindow):
    """Self-service delegation filed as a request."""
    grantee_id: UUID
    starts_at: datetime
    ends_at: datetime
    reason: str = Field(min_length=1)


class DelegationResponse(BaseModel):
    id: UUID
    grantor_id: UUID
    grantee_id: UUID
    grantor_name: Optional[str] = None
    grantee_name: Optional[str] = None
    starts_at: datetime
    ends_at: datetime
    is_active: bool
    is_current: bool = False
    request_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
