"""Repositories: interfaces plus SQLAlchemy implementations."""

from sqlalchemy.orm import Session

from authz.core.db.transaction import SqlAlchemyTransactionManager
from authz.repositories.audit_repository import AuditRepository
from authz.repositories.data_permission_repository import DataPermissionRepository
from authz.repositories.interfaces import Repositories
from authz.repositories.module_repository import (
    CompanyModuleRepository,
    ModuleRepository,
    UserModuleRepository,
)
from authz.repositories.role_repository import (
    CustomRoleRepository,
    RoleAssignmentRepository,
    RoleTemplateRepository,
)
from authz.repositories.user_repository import CompanyRepository, UserRepository


def build_repositories(db: Session) -> Repositories:
    """Wire every SQLAlchemy repository to one session."""
    return Repositories(
        transactions=SqlAlchemyTransactionManager(db),
        companies=CompanyRepository(db),
        users=UserRepository(db),
        modules=ModuleRepository(db),
        company_modules=CompanyModuleRepository(db),
        user_modules=UserModuleRepository(db),
        custom_roles=CustomRoleRepository(db),
        role_templates=RoleTemplateRepository(db),
        role_assignments=RoleAssignmentRepository(db),
        data_permissions=DataPermissionRepository(db),
        audit=AuditRepository(db),
    )


__all__ = ["Repositories", "build_repositories"]
