"""Pydantic schemas for audit log responses."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    """Response schema for a single audit log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Audit log entry ID")
    actor_id: UUID | None = Field(None, description="User who performed the action")
    company_id: UUID | None = Field(None, description="Company affected")
    subject_type: str = Field(..., description="user | company | module | role | template")
    subject_id: UUID | None = Field(None, description="ID of the affected subject")
    action: str = Field(..., description="Action type (e.g., 'company_module_disabled')")
    before_state: dict[str, Any] | None = Field(None, description="State before the change")
    after_state: dict[str, Any] | None = Field(None, description="State after the change")
    details: dict[str, Any] | None = Field(None, description="Additional details as JSON")
    ip_address: str | None = Field(None, description="Client IP address")
    user_agent: str | None = Field(None, description="Client user agent")
    created_at: datetime = Field(..., description="Timestamp when the action occurred")
