"""Data permissions router: catalog, per-user overrides and the audit log."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from authz.core.auth.context import AuthContext
from authz.core.auth.dependencies import CurrentUser, get_repositories, require_permission
from authz.core.auth.permissions import PermissionKey
from authz.core.config import get_settings
from authz.repositories import Repositories
from authz.schemas.audit import AuditLogResponse
from authz.schemas.common import PaginationMeta, StandardListResponse, StandardResponse
from authz.schemas.permission import (
    BulkGrantRequest,
    DataPermissionGrant,
    DataPermissionResponse,
    PermissionCatalogEntry,
    PermissionCheckResponse,
    PermissionDependenciesResponse,
)
from authz.services.audit_service import AuditService
from authz.services.data_permission_service import DataPermissionService, OverrideChange
from authz.services.permission_service import PermissionService

router = APIRouter()

CatalogPayload = list[PermissionCatalogEntry] | dict[str, list[PermissionCatalogEntry]]

ManagePermissions = Annotated[
    AuthContext, Depends(require_permission(PermissionKey.USERS_MANAGE_PERMISSIONS))
]


def get_data_permission_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> DataPermissionService:
    """Dependency to get DataPermissionService."""
    return DataPermissionService(repos)


def get_permission_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> PermissionService:
    """Dependency to get PermissionService."""
    return PermissionService(repos)


def get_audit_service(repos: Annotated[Repositories, Depends(get_repositories)]) -> AuditService:
    """Dependency to get AuditService."""
    return AuditService(repos)


@router.get(
    "",
    response_model=StandardResponse[CatalogPayload],
    status_code=status.HTTP_200_OK,
    summary="Permission catalog",
    description="List capability keys. With company_id, only foundation keys and "
    "keys of modules enabled for that company.",
)
async def list_permission_catalog(
    current_user: CurrentUser,
    service: Annotated[DataPermissionService, Depends(get_data_permission_service)],
    company_id: UUID | None = Query(default=None, description="Filter by company-enabled modules"),
    grouped: bool = Query(default=False, description="Group entries by permission group"),
) -> StandardResponse[CatalogPayload]:
    """List the permission catalog."""
    entries = service.list_permission_catalog(current_user, company_id=company_id)
    data: CatalogPayload = service.group_catalog(entries) if grouped else entries
    return StandardResponse(data=data)


@router.get(
    "/audit",
    response_model=StandardListResponse[AuditLogResponse],
    status_code=status.HTTP_200_OK,
    summary="Audit log",
    description="Query administrative audit entries, newest first. Requires super-admin.",
)
async def get_audit_logs(
    current_user: CurrentUser,
    service: Annotated[AuditService, Depends(get_audit_service)],
    actor_id: UUID | None = Query(default=None, description="Filter by actor"),
    subject_id: UUID | None = Query(default=None, description="Filter by affected subject"),
    company_id: UUID | None = Query(default=None, description="Filter by company"),
    action: str | None = Query(default=None, description="Filter by action"),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, description="Page size"),
) -> StandardListResponse[AuditLogResponse]:
    """Get audit logs."""
    page_size = min(page_size, get_settings().AUDIT_LOG_MAX_PAGE_SIZE)
    logs, total = service.get_audit_logs(
        current_user,
        actor_id=actor_id,
        subject_id=subject_id,
        company_id=company_id,
        action=action,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return StandardListResponse(
        data=logs,
        meta=PaginationMeta.build(total=total, page=page, page_size=page_size),
    )


@router.get(
    "/{permission_key}/dependencies",
    response_model=StandardResponse[PermissionDependenciesResponse],
    status_code=status.HTTP_200_OK,
    summary="Permission dependencies",
    description="Prerequisite keys that must be held before a key can be granted.",
)
async def get_permission_dependencies(
    permission_key: Annotated[str, Path(..., description="Permission key")],
    current_user: CurrentUser,
    service: Annotated[DataPermissionService, Depends(get_data_permission_service)],
) -> StandardResponse[PermissionDependenciesResponse]:
    """Get prerequisites of a permission."""
    return StandardResponse(data=service.get_permission_dependencies(permission_key))


@router.get(
    "/user/{user_id}",
    response_model=StandardListResponse[DataPermissionResponse],
    status_code=status.HTTP_200_OK,
    summary="List user overrides",
    description="Non-expired overrides of a user. Self, admin of the same company or super-admin.",
)
async def list_user_overrides(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    current_user: CurrentUser,
    service: Annotated[DataPermissionService, Depends(get_data_permission_service)],
    company_id: UUID | None = Query(default=None, description="Company scope"),
) -> StandardListResponse[DataPermissionResponse]:
    """List a user's overrides."""
    rows = service.list_user_overrides(user_id, current_user, company_id=company_id)
    return StandardListResponse(
        data=[DataPermissionResponse.model_validate(r) for r in rows],
        meta=PaginationMeta.build(total=len(rows), page=1, page_size=max(1, len(rows))),
    )


@router.post(
    "/user/{user_id}/grant",
    response_model=StandardResponse[DataPermissionResponse],
    status_code=status.HTTP_200_OK,
    summary="Grant or revoke a permission",
    description="Set one override for a user. Requires admin or super-admin holding "
    "users.manage_permissions.",
    responses={
        400: {
            "description": "Missing prerequisite grants",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "message": None,
                        "error": {
                            "code": "MISSING_DEPENDENCIES",
                            "message": "Permission expenses.approve requires: expenses.view",
                            "details": {"missing_dependencies": ["expenses.view"]},
                        },
                    }
                }
            },
        }
    },
)
async def grant_data_permission(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    body: DataPermissionGrant,
    current_user: ManagePermissions,
    service: Annotated[DataPermissionService, Depends(get_data_permission_service)],
) -> StandardResponse[DataPermissionResponse]:
    """Set a data permission override."""
    row = service.set_data_permission(
        user_id,
        current_user,
        body.permission_key,
        is_granted=body.is_granted,
        company_id=body.company_id,
        expires_at=body.expires_at,
        reason=body.reason,
    )
    return StandardResponse(
        data=DataPermissionResponse.model_validate(row),
        message="Permission granted" if body.is_granted else "Permission revoked",
    )


@router.post(
    "/user/{user_id}/bulk-grant",
    response_model=StandardResponse[list[DataPermissionResponse]],
    status_code=status.HTTP_200_OK,
    summary="Bulk grant or revoke",
    description="Apply several overrides atomically. Any failure rolls back the batch.",
)
async def bulk_grant_data_permissions(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    body: BulkGrantRequest,
    current_user: ManagePermissions,
    service: Annotated[DataPermissionService, Depends(get_data_permission_service)],
) -> StandardResponse[list[DataPermissionResponse]]:
    """Bulk set overrides."""
    changes = [
        OverrideChange(item.permission_key, item.is_granted, item.expires_at, body.reason)
        for item in body.permissions
    ]
    rows = service.bulk_set_data_permissions(
        user_id, current_user, changes, company_id=body.company_id
    )
    return StandardResponse(
        data=[DataPermissionResponse.model_validate(r) for r in rows],
        message=f"{len(rows)} permissions updated",
    )


@router.get(
    "/user/{user_id}/check/{permission_key}",
    response_model=StandardResponse[PermissionCheckResponse],
    status_code=status.HTTP_200_OK,
    summary="Check a permission",
    description="Resolve a single key for a user. Unknown keys resolve to false.",
)
async def check_user_permission(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    permission_key: Annotated[str, Path(..., description="Permission key")],
    current_user: CurrentUser,
    service: Annotated[PermissionService, Depends(get_permission_service)],
    company_id: UUID | None = Query(default=None, description="Company scope"),
) -> StandardResponse[PermissionCheckResponse]:
    """Check one permission."""
    company, allowed = service.user_has_permission(
        user_id, permission_key, current_user, company_id=company_id
    )
    return StandardResponse(
        data=PermissionCheckResponse(
            user_id=user_id,
            company_id=company,
            permission_key=permission_key,
            has_permission=allowed,
        )
    )
