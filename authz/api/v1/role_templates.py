"""Role templates router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from authz.api.v1.custom_roles import get_role_service
from authz.core.auth.dependencies import CurrentUser
from authz.schemas.common import PaginationMeta, StandardListResponse, StandardResponse
from authz.schemas.role import (
    CustomRoleResponse,
    RoleFromTemplateRequest,
    RoleTemplateCreate,
    RoleTemplateResponse,
    RoleTemplateUpdate,
)
from authz.services.role_service import RoleService

router = APIRouter()


@router.get(
    "",
    response_model=StandardListResponse[RoleTemplateResponse],
    status_code=status.HTTP_200_OK,
    summary="List role templates",
)
async def list_role_templates(
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardListResponse[RoleTemplateResponse]:
    """List role templates."""
    templates = service.list_role_templates(current_user)
    return StandardListResponse(
        data=templates,
        meta=PaginationMeta.build(total=len(templates), page=1, page_size=max(1, len(templates))),
    )


@router.post(
    "",
    response_model=StandardResponse[RoleTemplateResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create role template",
    description="Create a global template. Requires super-admin.",
)
async def create_role_template(
    body: RoleTemplateCreate,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[RoleTemplateResponse]:
    """Create a role template."""
    template = service.create_role_template(
        current_user,
        template_name=body.template_name,
        display_name=body.display_name,
        base_permissions=body.base_permissions,
        required_modules=body.required_modules,
        target_use_cases=body.target_use_cases,
        target_role=body.target_role,
        description=body.description,
    )
    return StandardResponse(
        data=RoleTemplateResponse.model_validate(template), message="Template created"
    )


@router.get(
    "/{template_id}",
    response_model=StandardResponse[RoleTemplateResponse],
    status_code=status.HTTP_200_OK,
    summary="Get role template",
)
async def get_role_template(
    template_id: Annotated[UUID, Path(..., description="Template ID")],
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[RoleTemplateResponse]:
    """Get a role template."""
    template = service.get_role_template(template_id, current_user)
    return StandardResponse(data=RoleTemplateResponse.model_validate(template))


@router.put(
    "/{template_id}",
    response_model=StandardResponse[RoleTemplateResponse],
    status_code=status.HTTP_200_OK,
    summary="Update role template",
    description="Edit a non-system template. Requires super-admin.",
)
async def update_role_template(
    template_id: Annotated[UUID, Path(..., description="Template ID")],
    body: RoleTemplateUpdate,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[RoleTemplateResponse]:
    """Update a role template."""
    template = service.update_role_template(
        template_id,
        current_user,
        display_name=body.display_name,
        description=body.description,
        base_permissions=body.base_permissions,
        required_modules=body.required_modules,
        target_use_cases=body.target_use_cases,
    )
    return StandardResponse(
        data=RoleTemplateResponse.model_validate(template), message="Template updated"
    )


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete role template",
    description="Delete a non-system template. Requires super-admin.",
)
async def delete_role_template(
    template_id: Annotated[UUID, Path(..., description="Template ID")],
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> None:
    service.delete_role_template(template_id, current_user)


@router.post(
    "/{template_id}/create-role",
    response_model=StandardResponse[CustomRoleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create role from template",
    description="Seed a custom role with base ∪ additional \\ removed permissions.",
)
async def create_role_from_template(
    template_id: Annotated[UUID, Path(..., description="Template ID")],
    body: RoleFromTemplateRequest,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[CustomRoleResponse]:
    """Create a custom role from a template."""
    role = service.create_role_from_template(
        template_id,
        current_user,
        company_id=body.company_id,
        name=body.name,
        description=body.description,
        additional_permissions=body.additional_permissions,
        removed_permissions=body.removed_permissions,
    )
    return StandardResponse(data=service.to_response(role), message="Role created")
