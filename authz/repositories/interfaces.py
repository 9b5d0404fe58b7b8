"""Repository interfaces consumed by services and the permission resolver."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

from authz.core.db.transaction import TransactionManager
from authz.models import (
    AuditLog,
    Company,
    CompanyModule,
    CustomRole,
    CustomRolePermission,
    Module,
    RoleTemplate,
    User,
    UserDataPermission,
    UserModule,
    UserRoleAssignment,
)


class ICompanyRepository(ABC):
    """Interfaz para repositorio de empresas."""

    @abstractmethod
    def get_by_id(self, company_id: UUID) -> Company | None:
        pass

    @abstractmethod
    def add(self, company: Company) -> Company:
        pass


class IUserRepository(ABC):
    """Interfaz para repositorio de usuarios."""

    @abstractmethod
    def get_by_id(self, user_id: UUID) -> User | None:
        pass

    @abstractmethod
    def add(self, user: User) -> User:
        pass


class IModuleRepository(ABC):
    """Module catalog access."""

    @abstractmethod
    def get_by_id(self, module_id: UUID) -> Module | None:
        pass

    @abstractmethod
    def get_by_key(self, key: str) -> Module | None:
        pass

    @abstractmethod
    def list_modules(self, active_only: bool = True) -> list[Module]:
        """List catalog modules ordered by category and name."""
        pass

    @abstractmethod
    def add(self, module: Module) -> Module:
        pass


class ICompanyModuleRepository(ABC):
    """Company-level provisioning rows."""

    @abstractmethod
    def get(
        self, company_id: UUID, module_id: UUID, for_update: bool = False
    ) -> CompanyModule | None:
        """Get the row for a (company, module) pair, optionally locking it."""
        pass

    @abstractmethod
    def add(self, company_module: CompanyModule) -> CompanyModule:
        pass

    @abstractmethod
    def list_for_company(self, company_id: UUID) -> list[CompanyModule]:
        pass

    @abstractmethod
    def list_enabled_module_ids(self, company_id: UUID) -> set[UUID]:
        pass

    @abstractmethod
    def list_companies_with_module_enabled(self, module_id: UUID) -> list[UUID]:
        pass


class IUserModuleRepository(ABC):
    """User-level module grants."""

    @abstractmethod
    def get(self, user_id: UUID, module_id: UUID, company_id: UUID) -> UserModule | None:
        pass

    @abstractmethod
    def add(self, user_module: UserModule) -> UserModule:
        pass

    @abstractmethod
    def list_for_user(self, user_id: UUID, company_id: UUID) -> list[UserModule]:
        pass

    @abstractmethod
    def count_enabled_by_module(self, company_id: UUID) -> dict[UUID, int]:
        """Number of enabled user grants per module in a company."""
        pass

    @abstractmethod
    def disable_for_company_module(self, company_id: UUID, module_id: UUID) -> list[UUID]:
        """Disable every enabled row for (company, module).

        Returns:
            Ids of the users whose row changed.
        """
        pass


class ICustomRoleRepository(ABC):
    """Custom roles and their permission rows."""

    @abstractmethod
    def get_by_id(self, role_id: UUID) -> CustomRole | None:
        pass

    @abstractmethod
    def get_by_name(self, company_id: UUID, name: str) -> CustomRole | None:
        pass

    @abstractmethod
    def list_for_company(
        self, company_id: UUID, include_inactive: bool = False
    ) -> list[CustomRole]:
        pass

    @abstractmethod
    def add(self, role: CustomRole) -> CustomRole:
        pass

    @abstractmethod
    def get_permissions(self, role_id: UUID) -> list[CustomRolePermission]:
        pass

    @abstractmethod
    def replace_permissions(
        self, role_id: UUID, permissions: dict[str, bool]
    ) -> list[CustomRolePermission]:
        """Delete every permission row of the role, then insert ``permissions``."""
        pass


class IRoleTemplateRepository(ABC):
    """Global role templates."""

    @abstractmethod
    def get_by_id(self, template_id: UUID) -> RoleTemplate | None:
        pass

    @abstractmethod
    def get_by_name(self, template_name: str) -> RoleTemplate | None:
        pass

    @abstractmethod
    def list_templates(self) -> list[RoleTemplate]:
        pass

    @abstractmethod
    def add(self, template: RoleTemplate) -> RoleTemplate:
        pass

    @abstractmethod
    def delete(self, template: RoleTemplate) -> None:
        pass


class IRoleAssignmentRepository(ABC):
    """User role assignments."""

    @abstractmethod
    def get_active(self, user_id: UUID, company_id: UUID) -> UserRoleAssignment | None:
        """Get the row flagged active for (user, company), expired or not."""
        pass

    @abstractmethod
    def list_for_company(
        self, company_id: UUID, active_only: bool = True
    ) -> list[UserRoleAssignment]:
        pass

    @abstractmethod
    def add(self, assignment: UserRoleAssignment) -> UserRoleAssignment:
        pass


class IDataPermissionRepository(ABC):
    """Per-user capability overrides."""

    @abstractmethod
    def get(
        self, user_id: UUID, company_id: UUID, permission_key: str
    ) -> UserDataPermission | None:
        pass

    @abstractmethod
    def list_for_user(self, user_id: UUID, company_id: UUID) -> list[UserDataPermission]:
        """All rows for (user, company), including expired ones."""
        pass

    @abstractmethod
    def add(self, permission: UserDataPermission) -> UserDataPermission:
        pass


class IAuditRepository(ABC):
    """Append-only audit ledger."""

    @abstractmethod
    def add(self, entry: AuditLog) -> AuditLog:
        pass

    @abstractmethod
    def get_audit_logs(
        self,
        actor_id: UUID | None = None,
        subject_id: UUID | None = None,
        company_id: UUID | None = None,
        action: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[AuditLog], int]:
        """Filtered entries, newest first, plus the unpaginated total."""
        pass


@dataclass
class Repositories:
    """Repositories and transaction manager for one unit of work."""

    transactions: TransactionManager
    companies: ICompanyRepository
    users: IUserRepository
    modules: IModuleRepository
    company_modules: ICompanyModuleRepository
    user_modules: IUserModuleRepository
    custom_roles: ICustomRoleRepository
    role_templates: IRoleTemplateRepository
    role_assignments: IRoleAssignmentRepository
    data_permissions: IDataPermissionRepository
    audit: IAuditRepository
