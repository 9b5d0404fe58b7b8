"""User module grants, bounded by company provisioning."""

from datetime import UTC, datetime
from uuid import UUID

from authz.core.auth.access import ensure_admin, load_user_in_scope
from authz.core.auth.context import AuthContext
from authz.core.exceptions import NotFoundError, PreconditionFailedError, ValidationError
from authz.core.logging import log_module_change
from authz.models.module import Module
from authz.models.user import User
from authz.models.user_module import UserModule
from authz.repositories.interfaces import Repositories
from authz.schemas.module import ModuleResponse, UserModuleStatus
from authz.services.audit_service import AuditService, snapshot

_STATE_FIELDS = ("is_enabled", "granted_by", "granted_at")


class UserModuleService:
    """Service for per-user module access."""

    def __init__(self, repos: Repositories):
        self.repos = repos
        self.audit = AuditService(repos)

    def _target(
        self, user_id: UUID, module_id: UUID, actor: AuthContext, company_id: UUID | None
    ) -> tuple[User, UUID, Module]:
        ensure_admin(actor)
        user = load_user_in_scope(self.repos.users, actor, user_id)
        if user.company_id is None:
            raise ValidationError(
                code="USER_HAS_NO_COMPANY", message="User does not belong to a company"
            )
        if company_id is not None and company_id != user.company_id:
            raise NotFoundError(code="USER_NOT_FOUND", message="User not found")
        module = self.repos.modules.get_by_id(module_id)
        if module is None or not module.is_active:
            raise NotFoundError(code="MODULE_NOT_FOUND", message="Module not found")
        return user, user.company_id, module

    def grant_user_module(
        self,
        user_id: UUID,
        module_id: UUID,
        actor: AuthContext,
        company_id: UUID | None = None,
    ) -> UserModule:
        """
        Give a user access to a module their company has enabled.

        Args:
            user_id: Target user.
            module_id: Module UUID.
            actor: Admin of the user's company, or super-admin.
            company_id: Optional explicit company; must match the user's.

        Returns:
            The enabled UserModule row.

        Raises:
            PreconditionFailedError: The company module is not enabled.
        """
        with self.repos.transactions.atomic():
            user, company, module = self._target(user_id, module_id, actor, company_id)
            parent = self.repos.company_modules.get(company, module_id, for_update=True)
            if parent is None or not parent.is_enabled:
                raise PreconditionFailedError(
                    code="COMPANY_MODULE_DISABLED",
                    message="Module is not enabled for this company",
                    details={"company_id": str(company), "module_id": str(module_id)},
                )

            row = self.repos.user_modules.get(user.id, module_id, company)
            if row is not None and row.is_enabled:
                return row

            before = snapshot(row, *_STATE_FIELDS)
            now = datetime.now(UTC)
            if row is None:
                row = self.repos.user_modules.add(
                    UserModule(
                        user_id=user.id,
                        module_id=module_id,
                        company_id=company,
                        is_enabled=True,
                        granted_by=actor.user_id,
                        granted_at=now,
                    )
                )
            else:
                row.is_enabled = True
                row.granted_by = actor.user_id
                row.granted_at = now

            self.audit.record(
                actor,
                action="user_module_granted",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                before=before,
                after=snapshot(row, *_STATE_FIELDS),
                details={"module_id": module.id, "module_key": module.key},
            )

        log_module_change(
            "user_module_granted", str(actor.user_id), str(company), module.key, str(user.id)
        )
        return row

    def revoke_user_module(
        self,
        user_id: UUID,
        module_id: UUID,
        actor: AuthContext,
        company_id: UUID | None = None,
    ) -> UserModule:
        """
        Remove a user's access to a module.

        Always allowed. When no row exists a disabled one is created so the
        revocation is recorded explicitly.
        """
        with self.repos.transactions.atomic():
            user, company, module = self._target(user_id, module_id, actor, company_id)
            row = self.repos.user_modules.get(user.id, module_id, company)
            if row is not None and not row.is_enabled:
                return row

            before = snapshot(row, *_STATE_FIELDS)
            now = datetime.now(UTC)
            if row is None:
                row = self.repos.user_modules.add(
                    UserModule(
                        user_id=user.id,
                        module_id=module_id,
                        company_id=company,
                        is_enabled=False,
                        granted_by=actor.user_id,
                        granted_at=now,
                    )
                )
            else:
                row.is_enabled = False
                row.granted_by = actor.user_id
                row.granted_at = now

            self.audit.record(
                actor,
                action="user_module_revoked",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                before=before,
                after=snapshot(row, *_STATE_FIELDS),
                details={"module_id": module.id, "module_key": module.key},
            )

        log_module_change(
            "user_module_revoked", str(actor.user_id), str(company), module.key, str(user.id)
        )
        return row

    def get_user_modules(self, user_id: UUID, actor: AuthContext) -> list[UserModuleStatus]:
        """
        Modules enabled for the user's company, with the user's access.

        Modules the company has not enabled are left out entirely.
        """
        ensure_admin(actor)
        user = load_user_in_scope(self.repos.users, actor, user_id)
        if user.company_id is None:
            return []

        enabled_ids = self.repos.company_modules.list_enabled_module_ids(user.company_id)
        grants = {
            row.module_id: row
            for row in self.repos.user_modules.list_for_user(user.id, user.company_id)
        }
        result = []
        for module in self.repos.modules.list_modules():
            if module.id not in enabled_ids:
                continue
            row = grants.get(module.id)
            if row is None:
                source = "never_granted"
            elif row.is_enabled:
                source = "granted"
            else:
                source = "explicitly_revoked"
            result.append(
                UserModuleStatus(
                    module=ModuleResponse.model_validate(module),
                    is_enabled=bool(row is not None and row.is_enabled),
                    company_enabled=True,
                    access_source=source,
                )
            )
        return result

    def get_accessible_modules(self, actor: AuthContext) -> list[ModuleResponse]:
        """Modules the caller can open: enabled for their company and for them."""
        if actor.company_id is None:
            return []
        enabled_ids = self.repos.company_modules.list_enabled_module_ids(actor.company_id)
        granted_ids = {
            row.module_id
            for row in self.repos.user_modules.list_for_user(actor.user_id, actor.company_id)
            if row.is_enabled
        }
        return [
            ModuleResponse.model_validate(module)
            for module in self.repos.modules.list_modules()
            if module.id in enabled_ids and module.id in granted_ids
        ]
