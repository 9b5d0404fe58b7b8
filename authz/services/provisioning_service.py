"""Company provisioning: enable, disable (with cascade), price and cost modules."""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from authz.core.auth.access import ensure_admin, ensure_company_access, ensure_super_admin
from authz.core.auth.context import AuthContext
from authz.core.exceptions import ModuleNotEnabledError, NotFoundError
from authz.core.logging import log_module_change
from authz.models.company_module import CompanyModule
from authz.models.module import Module
from authz.repositories.interfaces import Repositories
from authz.schemas.module import CompanyModuleCosts, ModuleCostLine, ModuleCostSummary
from authz.services.audit_service import AuditService, snapshot

_STATE_FIELDS = ("is_enabled", "enabled_by", "enabled_at")
_PRICING_FIELDS = ("monthly_price", "per_user_price", "users_licensed")


@dataclass
class ProvisioningOutcome:
    company_module: CompanyModule
    affected_user_count: int = 0
    changed: bool = True


class ProvisioningService:
    """Service for company-level module provisioning.

    Writes are super-admin only; company admins may read their own costs.
    """

    def __init__(self, repos: Repositories):
        self.repos = repos
        self.audit = AuditService(repos)

    def _load(self, company_id: UUID, module_id: UUID) -> Module:
        if self.repos.companies.get_by_id(company_id) is None:
            raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")
        module = self.repos.modules.get_by_id(module_id)
        if module is None or not module.is_active:
            raise NotFoundError(code="MODULE_NOT_FOUND", message="Module not found")
        return module

    def enable_module(
        self, company_id: UUID, module_id: UUID, actor: AuthContext
    ) -> ProvisioningOutcome:
        """
        Enable a module for a company (idempotent upsert).

        Enabling never grants any user access. Enabling an already enabled
        module changes nothing and writes no audit entry.

        Args:
            company_id: Company UUID.
            module_id: Module UUID.
            actor: Caller (must be super-admin).

        Returns:
            ProvisioningOutcome with ``affected_user_count`` 0.
        """
        ensure_super_admin(actor)
        with self.repos.transactions.atomic():
            module = self._load(company_id, module_id)
            row = self.repos.company_modules.get(company_id, module_id, for_update=True)
            if row is not None and row.is_enabled:
                return ProvisioningOutcome(company_module=row, changed=False)

            before = snapshot(row, *_STATE_FIELDS)
            now = datetime.now(UTC)
            if row is None:
                row = self.repos.company_modules.add(
                    CompanyModule(
                        company_id=company_id,
                        module_id=module_id,
                        is_enabled=True,
                        enabled_by=actor.user_id,
                        enabled_at=now,
                        monthly_price=module.default_monthly_price,
                        per_user_price=module.default_per_user_price,
                    )
                )
            else:
                row.is_enabled = True
                row.enabled_by = actor.user_id
                row.enabled_at = now

            self.audit.record(
                actor,
                action="company_module_enabled",
                subject_type="company",
                subject_id=company_id,
                company_id=company_id,
                before=before,
                after=snapshot(row, *_STATE_FIELDS),
                details={"module_id": module.id, "module_key": module.key},
            )

        log_module_change("company_module_enabled", str(actor.user_id), str(company_id), module.key)
        return ProvisioningOutcome(company_module=row)

    def disable_module(
        self, company_id: UUID, module_id: UUID, actor: AuthContext
    ) -> ProvisioningOutcome:
        """
        Disable a company module and every user grant beneath it.

        The company row flip, the user cascade and the audit entry commit
        together or not at all.

        Returns:
            ProvisioningOutcome with the number of user grants disabled.

        Raises:
            ModuleNotEnabledError: No enabled row exists for the pair.
        """
        ensure_super_admin(actor)
        with self.repos.transactions.atomic():
            module = self._load(company_id, module_id)
            row = self.repos.company_modules.get(company_id, module_id, for_update=True)
            if row is None or not row.is_enabled:
                raise ModuleNotEnabledError(
                    message="Module is not enabled for this company",
                    details={"company_id": str(company_id), "module_id": str(module_id)},
                )

            before = snapshot(row, *_STATE_FIELDS)
            row.is_enabled = False
            affected = self.repos.user_modules.disable_for_company_module(company_id, module_id)

            self.audit.record(
                actor,
                action="company_module_disabled",
                subject_type="company",
                subject_id=company_id,
                company_id=company_id,
                before=before,
                after=snapshot(row, *_STATE_FIELDS),
                details={
                    "module_id": module.id,
                    "module_key": module.key,
                    "affected_user_count": len(affected),
                    "affected_user_ids": affected,
                },
            )

        log_module_change(
            "company_module_disabled",
            str(actor.user_id),
            str(company_id),
            module.key,
            affected_user_count=len(affected),
        )
        return ProvisioningOutcome(company_module=row, affected_user_count=len(affected))

    def update_company_module_pricing(
        self,
        company_id: UUID,
        module_id: UUID,
        actor: AuthContext,
        monthly_price: Decimal | None = None,
        per_user_price: Decimal | None = None,
        users_licensed: int | None = None,
    ) -> CompanyModule:
        """Set pricing overrides on an existing company module row.

        ``users_licensed`` is left unchanged when not given.
        """
        ensure_super_admin(actor)
        with self.repos.transactions.atomic():
            module = self._load(company_id, module_id)
            row = self.repos.company_modules.get(company_id, module_id, for_update=True)
            if row is None:
                raise NotFoundError(
                    code="COMPANY_MODULE_NOT_FOUND",
                    message="Module has never been provisioned for this company",
                )
            before = snapshot(row, *_PRICING_FIELDS)
            row.monthly_price = monthly_price
            row.per_user_price = per_user_price
            if users_licensed is not None:
                row.users_licensed = users_licensed
            self.audit.record(
                actor,
                action="company_module_pricing_updated",
                subject_type="company",
                subject_id=company_id,
                company_id=company_id,
                before=before,
                after=snapshot(row, *_PRICING_FIELDS),
                details={"module_id": module.id, "module_key": module.key},
            )
        return row

    def get_company_module_costs(self, company_id: UUID, actor: AuthContext) -> CompanyModuleCosts:
        """
        Licensed versus actual monthly cost of every module a company has enabled.

        Prices fall back from the company override to the module default.
        Licensed cost bills ``users_licensed`` seats; actual cost bills the
        users that currently hold an enabled grant.

        Args:
            company_id: Company UUID.
            actor: Admin of the company, or super-admin.

        Returns:
            Per-module cost lines and their totals.
        """
        ensure_admin(actor)
        ensure_company_access(actor, company_id)
        if self.repos.companies.get_by_id(company_id) is None:
            raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")

        modules = {m.id: m for m in self.repos.modules.list_modules(active_only=False)}
        users_with_access = self.repos.user_modules.count_enabled_by_module(company_id)
        lines: list[ModuleCostLine] = []
        for row in self.repos.company_modules.list_for_company(company_id):
            module = modules.get(row.module_id)
            if not row.is_enabled or module is None:
                continue
            monthly = _price(row.monthly_price, module.default_monthly_price)
            per_user = _price(row.per_user_price, module.default_per_user_price)
            licensed = row.users_licensed or 0
            active = users_with_access.get(module.id, 0)
            lines.append(
                ModuleCostLine(
                    module_id=module.id,
                    module_key=module.key,
                    module_name=module.name,
                    module_classification=module.module_classification,
                    monthly_price=monthly,
                    per_user_price=per_user,
                    users_licensed=licensed,
                    users_with_access=active,
                    licensed_monthly_cost=monthly + per_user * licensed,
                    actual_monthly_cost=monthly + per_user * active,
                )
            )
        lines.sort(key=lambda line: (line.module_classification, line.module_name))

        total_licensed = sum((line.licensed_monthly_cost for line in lines), Decimal("0"))
        total_actual = sum((line.actual_monthly_cost for line in lines), Decimal("0"))
        by_classification: dict[str, int] = {}
        for line in lines:
            by_classification[line.module_classification] = (
                by_classification.get(line.module_classification, 0) + 1
            )
        return CompanyModuleCosts(
            company_id=company_id,
            modules=lines,
            summary=ModuleCostSummary(
                total_modules=len(lines),
                total_licensed_cost=total_licensed,
                total_actual_cost=total_actual,
                cost_difference=total_licensed - total_actual,
                by_classification=by_classification,
            ),
        )


def _price(override: Decimal | None, default: Decimal | None) -> Decimal:
    if override is not None:
        return Decimal(override)
    if default is not None:
        return Decimal(default)
    return Decimal("0")
