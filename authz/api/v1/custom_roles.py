"""Custom roles router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from authz.core.auth.dependencies import CurrentUser, get_repositories
from authz.repositories import Repositories
from authz.schemas.common import PaginationMeta, StandardListResponse, StandardResponse
from authz.schemas.role import (
    CustomRoleCreate,
    CustomRoleResponse,
    CustomRoleUpdate,
    RoleValidationResponse,
)
from authz.services.role_service import RoleService

router = APIRouter()


def get_role_service(repos: Annotated[Repositories, Depends(get_repositories)]) -> RoleService:
    """Dependency to get RoleService."""
    return RoleService(repos)


@router.get(
    "",
    response_model=StandardListResponse[CustomRoleResponse],
    status_code=status.HTTP_200_OK,
    summary="List custom roles",
    description="List roles of a company (defaults to the caller's). Requires admin.",
)
async def list_custom_roles(
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
    company_id: UUID | None = Query(default=None, description="Company ID"),
    include_inactive: bool = Query(default=False, description="Include deactivated roles"),
) -> StandardListResponse[CustomRoleResponse]:
    """List custom roles."""
    roles = service.list_custom_roles(current_user, company_id, include_inactive)
    return StandardListResponse(
        data=[service.to_response(r) for r in roles],
        meta=PaginationMeta.build(total=len(roles), page=1, page_size=max(1, len(roles))),
    )


@router.post(
    "",
    response_model=StandardResponse[CustomRoleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create custom role",
    description="Create a company role with an exact permission set. Requires admin.",
)
async def create_custom_role(
    body: CustomRoleCreate,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[CustomRoleResponse]:
    """Create a custom role."""
    role = service.create_custom_role(
        current_user,
        name=body.name,
        permissions=body.permissions,
        company_id=body.company_id,
        based_on_role=body.based_on_role,
        description=body.description,
    )
    return StandardResponse(data=service.to_response(role), message="Role created")


@router.get(
    "/{role_id}",
    response_model=StandardResponse[CustomRoleResponse],
    status_code=status.HTTP_200_OK,
    summary="Get custom role",
)
async def get_custom_role(
    role_id: Annotated[UUID, Path(..., description="Role ID")],
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[CustomRoleResponse]:
    """Get a custom role."""
    role = service.get_custom_role(role_id, current_user)
    return StandardResponse(data=service.to_response(role))


@router.put(
    "/{role_id}",
    response_model=StandardResponse[CustomRoleResponse],
    status_code=status.HTTP_200_OK,
    summary="Update custom role",
    description="Update role fields. A permissions list replaces the whole set.",
)
async def update_custom_role(
    role_id: Annotated[UUID, Path(..., description="Role ID")],
    body: CustomRoleUpdate,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[CustomRoleResponse]:
    """Update a custom role."""
    role = service.update_custom_role(
        role_id,
        current_user,
        name=body.name,
        description=body.description,
        is_active=body.is_active,
        permissions=body.permissions,
    )
    return StandardResponse(data=service.to_response(role), message="Role updated")


@router.delete(
    "/{role_id}",
    response_model=StandardResponse[CustomRoleResponse],
    status_code=status.HTTP_200_OK,
    summary="Deactivate custom role",
    description="Soft-delete a role. Assigned users fall back to their system role.",
)
async def delete_custom_role(
    role_id: Annotated[UUID, Path(..., description="Role ID")],
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[CustomRoleResponse]:
    """Deactivate a custom role."""
    role = service.deactivate_custom_role(role_id, current_user)
    return StandardResponse(data=service.to_response(role), message="Role deactivated")


@router.get(
    "/{role_id}/validate",
    response_model=StandardResponse[RoleValidationResponse],
    status_code=status.HTTP_200_OK,
    summary="Validate role assignment",
    description="Report every reason the role cannot be assigned in the company.",
)
async def validate_custom_role(
    role_id: Annotated[UUID, Path(..., description="Role ID")],
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
    company_id: UUID | None = Query(default=None, description="Company ID"),
) -> StandardResponse[RoleValidationResponse]:
    """Validate a role for assignment."""
    result = service.check_role_assignment(role_id, company_id, current_user)
    return StandardResponse(
        data=RoleValidationResponse(is_valid=result.is_valid, issues=result.issues)
    )
