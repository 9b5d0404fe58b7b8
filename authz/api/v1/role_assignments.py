"""User role assignments router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from authz.api.v1.custom_roles import get_role_service
from authz.core.auth.dependencies import CurrentUser
from authz.schemas.common import PaginationMeta, StandardListResponse, StandardResponse
from authz.schemas.role import RoleAssignmentCreate, RoleAssignmentResponse
from authz.services.role_service import RoleService

router = APIRouter()


@router.get(
    "",
    response_model=StandardListResponse[RoleAssignmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List role assignments",
    description="Active assignments of a company, or the active assignment of one user.",
)
async def list_role_assignments(
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
    company_id: UUID | None = Query(default=None, description="Company ID"),
    user_id: UUID | None = Query(default=None, description="Only this user's assignment"),
) -> StandardListResponse[RoleAssignmentResponse]:
    """List active role assignments."""
    if user_id is not None:
        active = service.get_active_assignment(user_id, current_user, company_id)
        rows = [active] if active is not None else []
    else:
        rows = service.list_assignments(current_user, company_id)
    return StandardListResponse(
        data=[RoleAssignmentResponse.model_validate(r) for r in rows],
        meta=PaginationMeta.build(total=len(rows), page=1, page_size=max(1, len(rows))),
    )


@router.post(
    "",
    response_model=StandardResponse[RoleAssignmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Assign role",
    description="Give a user exactly one active role in a company, superseding any previous one.",
)
async def assign_role(
    body: RoleAssignmentCreate,
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> StandardResponse[RoleAssignmentResponse]:
    """Assign a role to a user."""
    assignment = service.assign_role_to_user(
        body.user_id,
        current_user,
        company_id=body.company_id,
        custom_role_id=body.custom_role_id,
        system_role=body.system_role,
        expires_at=body.expires_at,
    )
    return StandardResponse(
        data=RoleAssignmentResponse.model_validate(assignment), message="Role assigned"
    )


@router.delete(
    "",
    response_model=StandardResponse[RoleAssignmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Remove role assignment",
    description="Deactivate a user's active assignment; the profile role applies again.",
)
async def remove_role_assignment(
    current_user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
    user_id: UUID = Query(..., description="User ID"),
    company_id: UUID | None = Query(default=None, description="Company ID"),
) -> StandardResponse[RoleAssignmentResponse]:
    """Remove a role assignment."""
    assignment = service.remove_role_assignment(user_id, current_user, company_id)
    return StandardResponse(
        data=RoleAssignmentResponse.model_validate(assignment), message="Role assignment removed"
    )
