"""Repositories for the module catalog and module provisioning rows."""

from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from authz.models.company_module import CompanyModule
from authz.models.module import Module
from authz.models.user_module import UserModule
from authz.repositories.interfaces import (
    ICompanyModuleRepository,
    IModuleRepository,
    IUserModuleRepository,
)


class ModuleRepository(IModuleRepository):
    """Repository for module catalog data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, module_id: UUID) -> Module | None:
        return self.db.query(Module).filter(Module.id == module_id).first()

    def get_by_key(self, key: str) -> Module | None:
        return self.db.query(Module).filter(Module.key == key).first()

    def list_modules(self, active_only: bool = True) -> list[Module]:
        query = self.db.query(Module)
        if active_only:
            query = query.filter(Module.is_active.is_(True))
        return query.order_by(Module.category, Module.name).all()

    def add(self, module: Module) -> Module:
        self.db.add(module)
        self.db.flush()
        return module


class CompanyModuleRepository(ICompanyModuleRepository):
    """Repository for company module provisioning rows."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get(
        self, company_id: UUID, module_id: UUID, for_update: bool = False
    ) -> CompanyModule | None:
        """
        Get the provisioning row for a (company, module) pair.

        Args:
            company_id: Company UUID.
            module_id: Module UUID.
            for_update: Lock the row (SELECT ... FOR UPDATE) until the
                transaction ends.

        Returns:
            CompanyModule instance or None if never provisioned.
        """
        query = self.db.query(CompanyModule).filter(
            CompanyModule.company_id == company_id,
            CompanyModule.module_id == module_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def add(self, company_module: CompanyModule) -> CompanyModule:
        self.db.add(company_module)
        self.db.flush()
        return company_module

    def list_for_company(self, company_id: UUID) -> list[CompanyModule]:
        return (
            self.db.query(CompanyModule)
            .filter(CompanyModule.company_id == company_id)
            .all()
        )

    def list_enabled_module_ids(self, company_id: UUID) -> set[UUID]:
        rows = (
            self.db.query(CompanyModule.module_id)
            .filter(
                CompanyModule.company_id == company_id,
                CompanyModule.is_enabled.is_(True),
            )
            .all()
        )
        return {row.module_id for row in rows}

    def list_companies_with_module_enabled(self, module_id: UUID) -> list[UUID]:
        rows = (
            self.db.query(CompanyModule.company_id)
            .filter(
                CompanyModule.module_id == module_id,
                CompanyModule.is_enabled.is_(True),
            )
            .all()
        )
        return [row.company_id for row in rows]


class UserModuleRepository(IUserModuleRepository):
    """Repository for user module grants."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get(self, user_id: UUID, module_id: UUID, company_id: UUID) -> UserModule | None:
        return (
            self.db.query(UserModule)
            .filter(
                UserModule.user_id == user_id,
                UserModule.module_id == module_id,
                UserModule.company_id == company_id,
            )
            .first()
        )

    def add(self, user_module: UserModule) -> UserModule:
        self.db.add(user_module)
        self.db.flush()
        return user_module

    def list_for_user(self, user_id: UUID, company_id: UUID) -> list[UserModule]:
        return (
            self.db.query(UserModule)
            .filter(UserModule.user_id == user_id, UserModule.company_id == company_id)
            .all()
        )

    def count_enabled_by_module(self, company_id: UUID) -> dict[UUID, int]:
        rows = (
            self.db.query(UserModule.module_id, func.count(UserModule.id))
            .filter(UserModule.company_id == company_id, UserModule.is_enabled.is_(True))
            .group_by(UserModule.module_id)
            .all()
        )
        return {module_id: count for module_id, count in rows}

    def disable_for_company_module(self, company_id: UUID, module_id: UUID) -> list[UUID]:
        """
        Disable every enabled user grant under a (company, module) pair.

        Runs as one UPDATE ... RETURNING so the cascade and its count come
        from the same statement.

        Returns:
            Ids of the users whose grant was disabled.
        """
        result = self.db.execute(
            update(UserModule)
            .where(
                UserModule.company_id == company_id,
                UserModule.module_id == module_id,
                UserModule.is_enabled.is_(True),
            )
            .values(is_enabled=False)
            .returning(UserModule.user_id)
            .execution_options(synchronize_session="fetch")
        )
        return [row.user_id for row in result]
