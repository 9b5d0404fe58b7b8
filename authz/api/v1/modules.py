"""Modules router: catalog, company provisioning and user module grants."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from authz.core.auth.context import AuthContext
from authz.core.auth.dependencies import CurrentUser, get_repositories, require_roles
from authz.core.auth.permissions import SystemRole
from authz.core.exceptions import ModuleNotEnabledError
from authz.repositories import Repositories
from authz.schemas.common import PaginationMeta, StandardListResponse, StandardResponse
from authz.schemas.module import (
    CompanyModuleCosts,
    CompanyModulePricingUpdate,
    CompanyModuleResponse,
    CompanyModuleStatus,
    ModuleClassificationUpdate,
    ModuleResponse,
    ProvisioningResponse,
    UserModuleResponse,
    UserModuleStatus,
)
from authz.services.module_service import ModuleService
from authz.services.provisioning_service import ProvisioningService
from authz.services.user_module_service import UserModuleService

router = APIRouter()

SuperAdmin = Annotated[AuthContext, Depends(require_roles(SystemRole.SUPER_ADMIN))]


def get_module_service(repos: Annotated[Repositories, Depends(get_repositories)]) -> ModuleService:
    """Dependency to get ModuleService."""
    return ModuleService(repos)


def get_provisioning_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> ProvisioningService:
    """Dependency to get ProvisioningService."""
    return ProvisioningService(repos)


def get_user_module_service(
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> UserModuleService:
    """Dependency to get UserModuleService."""
    return UserModuleService(repos)


def _list_meta(total: int) -> PaginationMeta:
    return PaginationMeta.build(total=total, page=1, page_size=max(1, total))


@router.get(
    "",
    response_model=StandardListResponse[ModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="List modules",
    description="List the active module catalog.",
)
async def list_modules(
    current_user: CurrentUser,
    service: Annotated[ModuleService, Depends(get_module_service)],
) -> StandardListResponse[ModuleResponse]:
    """List active catalog modules."""
    modules = service.list_modules()
    return StandardListResponse(data=modules, meta=_list_meta(len(modules)))


@router.get(
    "/company/{company_id}",
    response_model=StandardListResponse[CompanyModuleStatus],
    status_code=status.HTTP_200_OK,
    summary="List company modules",
    description="Every module with its provisioning state for a company. "
    "Admins may only read their own company.",
)
async def list_company_modules(
    company_id: Annotated[UUID, Path(..., description="Company ID")],
    current_user: CurrentUser,
    service: Annotated[ModuleService, Depends(get_module_service)],
) -> StandardListResponse[CompanyModuleStatus]:
    """List modules with provisioning state."""
    rows = service.list_company_modules(company_id, current_user)
    return StandardListResponse(data=rows, meta=_list_meta(len(rows)))


@router.get(
    "/company/{company_id}/costs",
    response_model=StandardResponse[CompanyModuleCosts],
    status_code=status.HTTP_200_OK,
    summary="Company module costs",
    description="Licensed versus actual monthly cost of each enabled module. "
    "Admins may only read their own company.",
)
async def get_company_module_costs(
    company_id: Annotated[UUID, Path(..., description="Company ID")],
    current_user: CurrentUser,
    service: Annotated[ProvisioningService, Depends(get_provisioning_service)],
) -> StandardResponse[CompanyModuleCosts]:
    """Cost summary for a company's modules."""
    costs = service.get_company_module_costs(company_id, current_user)
    return StandardResponse(data=costs)


@router.post(
    "/company/{company_id}/enable/{module_id}",
    response_model=StandardResponse[ProvisioningResponse],
    status_code=status.HTTP_200_OK,
    summary="Enable company module",
    description="Enable a module for a company. Idempotent. Requires super-admin.",
)
async def enable_company_module(
    company_id: Annotated[UUID, Path(..., description="Company ID")],
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    current_user: SuperAdmin,
    service: Annotated[ProvisioningService, Depends(get_provisioning_service)],
) -> StandardResponse[ProvisioningResponse]:
    """Enable a module for a company."""
    outcome = service.enable_module(company_id, module_id, current_user)
    return StandardResponse(
        data=ProvisioningResponse(
            company_module=CompanyModuleResponse.model_validate(outcome.company_module),
            affected_users=0,
        ),
        message="Module enabled" if outcome.changed else "Module already enabled",
    )


@router.post(
    "/company/{company_id}/disable/{module_id}",
    response_model=StandardResponse[ProvisioningResponse],
    status_code=status.HTTP_200_OK,
    summary="Disable company module",
    description="Disable a module for a company and every user grant beneath it. "
    "Requires super-admin.",
    responses={
        200: {
            "description": "Module disabled",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "data": {"company_module": None, "affected_users": 3},
                        "message": "Module disabled",
                        "error": None,
                    }
                }
            },
        }
    },
)
async def disable_company_module(
    company_id: Annotated[UUID, Path(..., description="Company ID")],
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    current_user: SuperAdmin,
    service: Annotated[ProvisioningService, Depends(get_provisioning_service)],
) -> StandardResponse[ProvisioningResponse]:
    """Disable a module for a company."""
    try:
        outcome = service.disable_module(company_id, module_id, current_user)
    except ModuleNotEnabledError:
        return StandardResponse(
            data=ProvisioningResponse(company_module=None, affected_users=0),
            message="Module is not enabled",
        )
    return StandardResponse(
        data=ProvisioningResponse(
            company_module=CompanyModuleResponse.model_validate(outcome.company_module),
            affected_users=outcome.affected_user_count,
        ),
        message="Module disabled",
    )


@router.patch(
    "/company/{company_id}/pricing/{module_id}",
    response_model=StandardResponse[CompanyModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Update company module pricing",
    description="Set pricing overrides for a provisioned module. Requires super-admin.",
)
async def update_company_module_pricing(
    company_id: Annotated[UUID, Path(..., description="Company ID")],
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    pricing: CompanyModulePricingUpdate,
    current_user: SuperAdmin,
    service: Annotated[ProvisioningService, Depends(get_provisioning_service)],
) -> StandardResponse[CompanyModuleResponse]:
    """Update pricing overrides."""
    row = service.update_company_module_pricing(
        company_id,
        module_id,
        current_user,
        monthly_price=pricing.monthly_price,
        per_user_price=pricing.per_user_price,
        users_licensed=pricing.users_licensed,
    )
    return StandardResponse(
        data=CompanyModuleResponse.model_validate(row),
        message="Pricing updated",
    )


@router.get(
    "/user/accessible",
    response_model=StandardListResponse[ModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="List accessible modules",
    description="Modules the caller can open: enabled for their company and granted to them.",
)
async def list_accessible_modules(
    current_user: CurrentUser,
    service: Annotated[UserModuleService, Depends(get_user_module_service)],
) -> StandardListResponse[ModuleResponse]:
    """List the caller's accessible modules."""
    modules = service.get_accessible_modules(current_user)
    return StandardListResponse(data=modules, meta=_list_meta(len(modules)))


@router.get(
    "/user/{user_id}",
    response_model=StandardListResponse[UserModuleStatus],
    status_code=status.HTTP_200_OK,
    summary="List user modules",
    description="Company-enabled modules with the user's access state.",
)
async def list_user_modules(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    current_user: CurrentUser,
    service: Annotated[UserModuleService, Depends(get_user_module_service)],
) -> StandardListResponse[UserModuleStatus]:
    """List a user's modules."""
    rows = service.get_user_modules(user_id, current_user)
    return StandardListResponse(data=rows, meta=_list_meta(len(rows)))


@router.post(
    "/user/{user_id}/enable/{module_id}",
    response_model=StandardResponse[UserModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Grant user module",
    description="Give a user access to a module enabled for their company.",
)
async def enable_user_module(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    current_user: CurrentUser,
    service: Annotated[UserModuleService, Depends(get_user_module_service)],
) -> StandardResponse[UserModuleResponse]:
    """Grant a module to a user."""
    row = service.grant_user_module(user_id, module_id, current_user)
    return StandardResponse(data=UserModuleResponse.model_validate(row), message="Module granted")


@router.post(
    "/user/{user_id}/disable/{module_id}",
    response_model=StandardResponse[UserModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Revoke user module",
    description="Remove a user's access to a module.",
)
async def disable_user_module(
    user_id: Annotated[UUID, Path(..., description="User ID")],
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    current_user: CurrentUser,
    service: Annotated[UserModuleService, Depends(get_user_module_service)],
) -> StandardResponse[UserModuleResponse]:
    """Revoke a module from a user."""
    row = service.revoke_user_module(user_id, module_id, current_user)
    return StandardResponse(data=UserModuleResponse.model_validate(row), message="Module revoked")


@router.patch(
    "/{module_id}/classification",
    response_model=StandardResponse[ModuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Change module classification",
    description="Move a module between core and add-on billing. Requires super-admin.",
)
async def update_module_classification(
    module_id: Annotated[UUID, Path(..., description="Module ID")],
    body: ModuleClassificationUpdate,
    current_user: SuperAdmin,
    service: Annotated[ModuleService, Depends(get_module_service)],
) -> StandardResponse[ModuleResponse]:
    """Change billing classification."""
    module = service.update_classification(
        module_id, body.module_classification, current_user, reason=body.reason
    )
    return StandardResponse(
        data=ModuleResponse.model_validate(module),
        message="Classification updated",
    )
