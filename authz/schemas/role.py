"""Schemas for custom roles, role templates and role assignments."""

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from authz.core.auth.permissions import PermissionKey, SystemRole


class CustomRoleCreate(BaseModel):
    """Request body to create a custom role."""

    company_id: UUID | None = Field(None, description="Defaults to the caller's company")
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    based_on_role: SystemRole | None = None
    permissions: list[PermissionKey] = Field(default_factory=list)


class CustomRoleUpdate(BaseModel):
    """Partial update; ``permissions`` replaces the full set when given."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    is_active: bool | None = None
    permissions: list[PermissionKey] | None = None


class CustomRoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    name: str
    description: str | None = None
    based_on_role: str | None = None
    is_active: bool
    created_by: UUID | None = None
    created_at: datetime | None = None
    permissions: list[str] = Field(default_factory=list)


class RoleTemplateCreate(BaseModel):
    template_name: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_\-]+$")
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    target_role: SystemRole | None = None
    base_permissions: list[PermissionKey] = Field(default_factory=list)
    required_modules: list[str] = Field(default_factory=list)
    target_use_cases: list[str] = Field(default_factory=list)


class RoleTemplateUpdate(BaseModel):
    """Editable template fields; ``template_name`` and ``target_role`` are fixed."""

    display_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    base_permissions: list[PermissionKey] | None = None
    required_modules: list[str] | None = None
    target_use_cases: list[str] | None = None


class RoleTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    template_name: str
    display_name: str
    description: str | None = None
    target_role: str | None = None
    base_permissions: list[str] = Field(default_factory=list)
    required_modules: list[str] = Field(default_factory=list)
    target_use_cases: list[str] = Field(default_factory=list)
    is_system_template: bool = False


class RoleFromTemplateRequest(BaseModel):
    """Customizations applied to a template: base ∪ additional \\ removed."""

    company_id: UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    additional_permissions: list[PermissionKey] = Field(default_factory=list)
    removed_permissions: list[PermissionKey] = Field(default_factory=list)


class RoleAssignmentCreate(BaseModel):
    user_id: UUID
    company_id: UUID | None = None
    custom_role_id: UUID | None = None
    system_role: SystemRole | None = None
    expires_at: AwareDatetime | None = None

    @model_validator(mode="after")
    def check_one_role(self) -> "RoleAssignmentCreate":
        if (self.custom_role_id is None) == (self.system_role is None):
            raise ValueError("Exactly one of custom_role_id or system_role is required")
        return self


class RoleAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    company_id: UUID
    custom_role_id: UUID | None = None
    system_role: str | None = None
    is_active: bool
    assigned_by: UUID | None = None
    assigned_at: datetime | None = None
    expires_at: datetime | None = None
    superseded_at: datetime | None = None


class RoleValidationResponse(BaseModel):
    is_valid: bool
    issues: list[str] = Field(default_factory=list)
