"""Business services of the authorization engine."""

from authz.services.audit_service import AuditService
from authz.services.data_permission_service import DataPermissionService, OverrideChange
from authz.services.module_service import ModuleService
from authz.services.permission_service import PermissionService
from authz.services.provisioning_service import ProvisioningOutcome, ProvisioningService
from authz.services.role_service import RoleService
from authz.services.user_module_service import UserModuleService

__all__ = [
    "AuditService",
    "DataPermissionService",
    "ModuleService",
    "OverrideChange",
    "PermissionService",
    "ProvisioningOutcome",
    "ProvisioningService",
    "RoleService",
    "UserModuleService",
]
