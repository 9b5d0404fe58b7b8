"""Effective permissions router, including the RPC-style endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from authz.api.v1.data_permissions import get_permission_service
from authz.api.v1.modules import get_module_service
from authz.core.auth.dependencies import CurrentUser
from authz.core.auth.resolver import EffectivePermission
from authz.schemas.common import StandardResponse
from authz.schemas.module import CompanyHasModuleRequest, CompanyHasModuleResponse
from authz.schemas.permission import (
    EffectivePermissionResponse,
    EffectivePermissionsRequest,
    HasPermissionRequest,
    PermissionCheckResponse,
    SafeActionsRequest,
    SafeActionsResponse,
)
from authz.services.module_service import ModuleService
from authz.services.permission_service import PermissionService

router = APIRouter()


def _to_response(decisions: list[EffectivePermission]) -> list[EffectivePermissionResponse]:
    return [
        EffectivePermissionResponse(
            permission_key=d.permission_key.value,
            is_granted=d.is_granted,
            source=d.source.value,
            module_key=d.module_key,
        )
        for d in decisions
    ]


@router.get(
    "/permissions/effective/{user_id}",
    response_model=StandardResponse[list[EffectivePermissionResponse]],
    status_code=status.HTTP_200_OK,
    summary="Effective permissions",
    description="One resolved decision per catalog key, with its source.",
)
async def get_effective_permissions(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    current_user: CurrentUser,
    service: Annotated[PermissionService, Depends(get_permission_service)],
    company_id: UUID | None = Query(default=None, description="Company scope"),
) -> StandardResponse[list[EffectivePermissionResponse]]:
    """Resolve a user's permissions."""
    _, decisions = service.get_effective_permissions(user_id, current_user, company_id)
    return StandardResponse(data=_to_response(decisions))


@router.post(
    "/permissions/safe-actions",
    response_model=StandardResponse[SafeActionsResponse],
    status_code=status.HTTP_200_OK,
    summary="Safe actions",
    description="Partition requested keys into allowed, disabled and hidden for the caller.",
)
async def get_safe_actions(
    body: SafeActionsRequest,
    current_user: CurrentUser,
    service: Annotated[PermissionService, Depends(get_permission_service)],
) -> StandardResponse[SafeActionsResponse]:
    """Compute UI-safe actions."""
    result = service.get_safe_actions(current_user, body.permission_keys, body.company_id)
    return StandardResponse(data=SafeActionsResponse.model_validate(result))


@router.post(
    "/rpc/get_user_effective_permissions",
    response_model=StandardResponse[list[EffectivePermissionResponse]],
    status_code=status.HTTP_200_OK,
    summary="Effective permissions (RPC)",
)
async def rpc_get_user_effective_permissions(
    body: EffectivePermissionsRequest,
    current_user: CurrentUser,
    service: Annotated[PermissionService, Depends(get_permission_service)],
) -> StandardResponse[list[EffectivePermissionResponse]]:
    """RPC form of the effective permissions read."""
    _, decisions = service.get_effective_permissions(body.user_id, current_user, body.company_id)
    return StandardResponse(data=_to_response(decisions))


@router.post(
    "/rpc/user_has_permission",
    response_model=StandardResponse[PermissionCheckResponse],
    status_code=status.HTTP_200_OK,
    summary="Has permission (RPC)",
)
async def rpc_user_has_permission(
    body: HasPermissionRequest,
    current_user: CurrentUser,
    service: Annotated[PermissionService, Depends(get_permission_service)],
) -> StandardResponse[PermissionCheckResponse]:
    """RPC form of a single permission check."""
    company, allowed = service.user_has_permission(
        body.user_id, body.permission_key, current_user, body.company_id
    )
    return StandardResponse(
        data=PermissionCheckResponse(
            user_id=body.user_id,
            company_id=company,
            permission_key=body.permission_key,
            has_permission=allowed,
        )
    )


@router.post(
    "/rpc/company_has_module",
    response_model=StandardResponse[CompanyHasModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Company has module (RPC)",
)
async def rpc_company_has_module(
    body: CompanyHasModuleRequest,
    current_user: CurrentUser,
    service: Annotated[ModuleService, Depends(get_module_service)],
) -> StandardResponse[CompanyHasModuleResponse]:
    """RPC form of a company provisioning check."""
    has_module = service.company_has_module(body.company_id, body.module_key, current_user)
    return StandardResponse(
        data=CompanyHasModuleResponse(
            company_id=body.company_id, module_key=body.module_key, has_module=has_module
        )
    )
