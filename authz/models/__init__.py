"""SQLAlchemy models."""

from authz.models.audit_log import AuditLog
from authz.models.company import Company
from authz.models.company_module import CompanyModule
from authz.models.custom_role import CustomRole, CustomRolePermission
from authz.models.module import Module
from authz.models.role_template import RoleTemplate
from authz.models.user import User
from authz.models.user_data_permission import UserDataPermission
from authz.models.user_module import UserModule
from authz.models.user_role_assignment import UserRoleAssignment

__all__ = [
    "AuditLog",
    "Company",
    "CompanyModule",
    "CustomRole",
    "CustomRolePermission",
    "Module",
    "RoleTemplate",
    "User",
    "UserDataPermission",
    "UserModule",
    "UserRoleAssignment",
]
