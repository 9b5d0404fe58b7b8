"""Schemas for data permission overrides, the catalog and resolution results."""

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from authz.core.auth.permissions import PermissionKey


class DataPermissionGrant(BaseModel):
    """Grant (``is_granted=true``) or revoke one capability for a user."""

    permission_key: PermissionKey
    is_granted: bool = True
    company_id: UUID | None = Field(None, description="Defaults to the target user's company")
    expires_at: AwareDatetime | None = None
    reason: str | None = Field(None, max_length=500)


class BulkGrantItem(BaseModel):
    permission_key: PermissionKey
    is_granted: bool = True
    expires_at: AwareDatetime | None = None


class BulkGrantRequest(BaseModel):
    company_id: UUID | None = None
    permissions: list[BulkGrantItem] = Field(..., min_length=1)
    reason: str | None = Field(None, max_length=500)


class DataPermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    company_id: UUID
    permission_key: str
    is_granted: bool
    granted_by: UUID | None = None
    granted_at: datetime | None = None
    expires_at: datetime | None = None
    reason: str | None = None


class PermissionCatalogEntry(BaseModel):
    key: str
    name: str
    group: str
    module_key: str | None = None
    requires: list[str] = Field(default_factory=list)


class PermissionDependenciesResponse(BaseModel):
    permission_key: str
    requires: list[str]


class PermissionCheckResponse(BaseModel):
    user_id: UUID
    company_id: UUID
    permission_key: str
    has_permission: bool


class EffectivePermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    permission_key: str
    is_granted: bool
    source: str
    module_key: str | None = None


class EffectivePermissionsRequest(BaseModel):
    user_id: UUID
    company_id: UUID | None = None


class HasPermissionRequest(BaseModel):
    user_id: UUID
    permission_key: str
    company_id: UUID | None = None


class SafeActionsRequest(BaseModel):
    permission_keys: list[str] = Field(..., min_length=1)
    company_id: UUID | None = None


class SafeActionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allowed: list[str]
    disabled: list[str]
    hidden: list[str]
    readonly_mode: bool
