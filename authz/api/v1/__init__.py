"""API v1 router aggregation."""

from fastapi import APIRouter

from authz.api.v1 import (
    custom_roles,
    data_permissions,
    modules,
    permissions,
    role_assignments,
    role_templates,
)

api_router = APIRouter()

api_router.include_router(modules.router, prefix="/modules", tags=["modules"])
api_router.include_router(data_permissions.router, prefix="/data-permissions", tags=["data-permissions"])
api_router.include_router(custom_roles.router, prefix="/custom-roles", tags=["custom-roles"])
api_router.include_router(role_templates.router, prefix="/role-templates", tags=["role-templates"])
api_router.include_router(
    role_assignments.router, prefix="/user-role-assignments", tags=["role-assignments"]
)
api_router.include_router(permissions.router, tags=["permissions"])
