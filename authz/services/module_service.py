"""Module registry service: catalog reads and classification changes."""

from datetime import UTC, datetime
from uuid import UUID

from authz.core.auth.access import ensure_admin, ensure_company_access, ensure_super_admin
from authz.core.auth.context import AuthContext
from authz.core.exceptions import NotFoundError, ValidationError
from authz.core.logging import app_logger
from authz.models.module import Module
from authz.repositories.interfaces import Repositories
from authz.schemas.module import CompanyModuleStatus, ModuleResponse
from authz.services.audit_service import AuditService, snapshot

_CLASSIFICATION_FIELDS = (
    "module_classification",
    "classification_changed_by",
    "classification_changed_at",
)


class ModuleService:
    """Service for the module catalog."""

    def __init__(self, repos: Repositories):
        self.repos = repos
        self.audit = AuditService(repos)

    def list_modules(self) -> list[ModuleResponse]:
        """Active catalog modules."""
        return [ModuleResponse.model_validate(m) for m in self.repos.modules.list_modules()]

    def get_module(self, module_id: UUID) -> Module:
        module = self.repos.modules.get_by_id(module_id)
        if module is None:
            raise NotFoundError(code="MODULE_NOT_FOUND", message="Module not found")
        return module

    def company_has_module(self, company_id: UUID, module_key: str, actor: AuthContext) -> bool:
        """
        Whether a company has an active catalog module enabled.

        Unknown and inactive module keys answer False. Callers outside the
        company other than super-admins get a not-found error.
        """
        ensure_company_access(actor, company_id)
        module = self.repos.modules.get_by_key(module_key)
        if module is None or not module.is_active:
            return False
        row = self.repos.company_modules.get(company_id, module.id)
        return bool(row is not None and row.is_enabled)

    def list_company_modules(
        self, company_id: UUID, actor: AuthContext
    ) -> list[CompanyModuleStatus]:
        """
        Every active module with its provisioning state for a company.

        Admins may only read their own company; any other company is
        reported as not found.
        """
        ensure_admin(actor)
        ensure_company_access(actor, company_id)
        if self.repos.companies.get_by_id(company_id) is None:
            raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")

        rows = {row.module_id: row for row in self.repos.company_modules.list_for_company(company_id)}
        result = []
        for module in self.repos.modules.list_modules():
            row = rows.get(module.id)
            status = CompanyModuleStatus(module=ModuleResponse.model_validate(module))
            if row is not None:
                status.is_enabled = row.is_enabled
                status.enabled_by = row.enabled_by
                status.enabled_at = row.enabled_at
                status.monthly_price = row.monthly_price
                status.per_user_price = row.per_user_price
            result.append(status)
        return result

    def update_classification(
        self,
        module_id: UUID,
        classification: str,
        actor: AuthContext,
        reason: str | None = None,
    ) -> Module:
        """
        Change a module's billing classification.

        Args:
            module_id: Module UUID.
            classification: 'core' or 'addon'.
            actor: Caller (must be super-admin).
            reason: Optional free-text reason kept in the audit entry.

        Returns:
            The updated module.

        Raises:
            ValidationError: Moving a core module to add-on while companies
                have it enabled.
        """
        ensure_super_admin(actor)
        with self.repos.transactions.atomic():
            module = self.get_module(module_id)
            if module.module_classification == classification:
                return module

            if module.module_classification == "core" and classification == "addon":
                companies = self.repos.company_modules.list_companies_with_module_enabled(module_id)
                if companies:
                    raise ValidationError(
                        code="MODULE_IN_USE",
                        message="Cannot change core module to add-on while companies are using it",
                        details={"affected_companies": [str(c) for c in companies]},
                    )

            before = snapshot(module, *_CLASSIFICATION_FIELDS)
            module.module_classification = classification
            module.classification_changed_by = actor.user_id
            module.classification_changed_at = datetime.now(UTC)
            self.audit.record(
                actor,
                action="module_classification_changed",
                subject_type="module",
                subject_id=module.id,
                company_id=None,
                before=before,
                after=snapshot(module, *_CLASSIFICATION_FIELDS),
                details={"module_key": module.key, "reason": reason},
            )

        app_logger.info(
            f"Module {module.key} classification changed to {classification} by {actor.user_id}"
        )
        return module
