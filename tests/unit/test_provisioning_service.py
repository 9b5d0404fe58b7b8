"""Unit tests for ProvisioningService."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from authz.core.exceptions import AuthorizationError, ModuleNotEnabledError, NotFoundError
from authz.models import AuditLog, CompanyModule, UserModule
from authz.services.provisioning_service import ProvisioningService
from authz.services.user_module_service import UserModuleService
from tests.conftest import make_context

pytestmark = pytest.mark.unit


@pytest.fixture
def provisioning(repos):
    """Create ProvisioningService instance."""
    return ProvisioningService(repos)


@pytest.fixture
def root(world):
    return make_context(world.super_admin)


def _audit(repos, action):
    return [e for e in repos.audit.store.rows(AuditLog) if e.action == action]


def test_enable_module(provisioning, repos, world, root):
    """Test enabling creates the row with catalog pricing and audits it."""
    module = world.module(repos, "expense-ocr")
    outcome = provisioning.enable_module(world.acme.id, module.id, root)

    assert outcome.changed is True
    assert outcome.affected_user_count == 0
    row = outcome.company_module
    assert row.is_enabled is True
    assert row.enabled_by == world.super_admin.id
    assert row.monthly_price == module.default_monthly_price

    entries = _audit(repos, "company_module_enabled")
    assert len(entries) == 1
    assert entries[0].before_state is None
    assert entries[0].after_state["is_enabled"] is True
    assert entries[0].details["module_key"] == "expense-ocr"
    assert entries[0].ip_address == "127.0.0.1"


def test_enable_does_not_grant_users(provisioning, repos, world, root):
    """Test enabling a company module leaves user grants untouched."""
    module = world.module(repos, "expense-ocr")
    provisioning.enable_module(world.acme.id, module.id, root)
    assert repos.user_modules.list_for_user(world.acme_user.id, world.acme.id) == []


def test_enable_is_idempotent(provisioning, repos, world, root):
    """Test a second enable changes nothing and is not audited."""
    module = world.module(repos, "analytics")
    first = provisioning.enable_module(world.acme.id, module.id, root)
    second = provisioning.enable_module(world.acme.id, module.id, root)

    assert second.changed is False
    assert second.company_module is first.company_module
    assert len(repos.company_modules.list_for_company(world.acme.id)) == 1
    assert len(_audit(repos, "company_module_enabled")) == 1


def test_enable_requires_super_admin(provisioning, repos, world):
    """Test company admins cannot provision modules."""
    module = world.module(repos, "analytics")
    with pytest.raises(AuthorizationError) as exc_info:
        provisioning.enable_module(world.acme.id, module.id, make_context(world.acme_admin))
    assert exc_info.value.status_code == 403


def test_enable_unknown_company_or_module(provisioning, repos, world, root):
    """Test missing company and module are 404."""
    module = world.module(repos, "analytics")
    with pytest.raises(NotFoundError) as exc_info:
        provisioning.enable_module(uuid4(), module.id, root)
    assert exc_info.value.code == "COMPANY_NOT_FOUND"

    with pytest.raises(NotFoundError) as exc_info:
        provisioning.enable_module(world.acme.id, uuid4(), root)
    assert exc_info.value.code == "MODULE_NOT_FOUND"


def test_disable_cascades_to_users(provisioning, repos, world, root):
    """Test disabling flips every enabled user grant beneath the company module."""
    module = world.module(repos, "expense-ocr")
    provisioning.enable_module(world.acme.id, module.id, root)
    users = UserModuleService(repos)
    users.grant_user_module(world.acme_user.id, module.id, root)
    users.grant_user_module(world.acme_user2.id, module.id, root)

    outcome = provisioning.disable_module(world.acme.id, module.id, root)

    assert outcome.affected_user_count == 2
    assert outcome.company_module.is_enabled is False
    assert all(
        not row.is_enabled for row in repos.user_modules.store.rows(UserModule)
    )
    entry = _audit(repos, "company_module_disabled")[0]
    assert entry.details["affected_user_count"] == 2
    assert set(entry.details["affected_user_ids"]) == {
        str(world.acme_user.id),
        str(world.acme_user2.id),
    }


def test_disable_leaves_other_companies(provisioning, repos, world, root):
    """Test the cascade is scoped to one company."""
    module = world.module(repos, "expense-ocr")
    users = UserModuleService(repos)
    for company, user in ((world.acme, world.acme_user), (world.globex, world.globex_user)):
        provisioning.enable_module(company.id, module.id, root)
        users.grant_user_module(user.id, module.id, root)

    provisioning.disable_module(world.acme.id, module.id, root)

    globex_row = repos.user_modules.get(world.globex_user.id, module.id, world.globex.id)
    assert globex_row.is_enabled is True


def test_disable_not_enabled(provisioning, repos, world, root):
    """Test disabling a module that was never enabled raises ModuleNotEnabledError."""
    module = world.module(repos, "automation")
    with pytest.raises(ModuleNotEnabledError) as exc_info:
        provisioning.disable_module(world.acme.id, module.id, root)
    assert exc_info.value.status_code == 409
    assert _audit(repos, "company_module_disabled") == []


def test_disable_rolls_back_when_audit_fails(provisioning, repos, world, root):
    """Test a failing audit write leaves company and user rows enabled."""
    module = world.module(repos, "expense-ocr")
    provisioning.enable_module(world.acme.id, module.id, root)
    UserModuleService(repos).grant_user_module(world.acme_user.id, module.id, root)
    commits = repos.transactions.commits

    repos.audit.fail_with = OperationalError("INSERT", {}, Exception("disk full"))
    with pytest.raises(OperationalError):
        provisioning.disable_module(world.acme.id, module.id, root)

    assert repos.transactions.rollbacks == 1
    assert repos.transactions.commits == commits
    assert repos.company_modules.get(world.acme.id, module.id).is_enabled is True
    assert repos.user_modules.get(world.acme_user.id, module.id, world.acme.id).is_enabled is True


def test_reenable_does_not_restore_users(provisioning, repos, world, root):
    """Test user grants stay disabled after the company module comes back."""
    module = world.module(repos, "expense-ocr")
    provisioning.enable_module(world.acme.id, module.id, root)
    UserModuleService(repos).grant_user_module(world.acme_user.id, module.id, root)
    provisioning.disable_module(world.acme.id, module.id, root)

    outcome = provisioning.enable_module(world.acme.id, module.id, root)

    assert outcome.changed is True
    assert repos.user_modules.get(world.acme_user.id, module.id, world.acme.id).is_enabled is False


def test_update_pricing(provisioning, repos, world, root):
    """Test pricing overrides are stored and audited."""
    module = world.module(repos, "analytics")
    provisioning.enable_module(world.acme.id, module.id, root)

    row = provisioning.update_company_module_pricing(
        world.acme.id, module.id, root, monthly_price=Decimal("99.00"), per_user_price=None
    )

    assert row.monthly_price == Decimal("99.00")
    assert row.per_user_price is None
    entry = _audit(repos, "company_module_pricing_updated")[0]
    assert entry.after_state["monthly_price"] == "99.00"


def test_update_pricing_requires_row(provisioning, repos, world, root):
    """Test pricing a module never provisioned is 404."""
    module = world.module(repos, "analytics")
    with pytest.raises(NotFoundError) as exc_info:
        provisioning.update_company_module_pricing(world.acme.id, module.id, root)
    assert exc_info.value.code == "COMPANY_MODULE_NOT_FOUND"


def test_company_module_row_defaults(repos, world):
    """Test the in-memory store applies column defaults like the database."""
    module = world.module(repos, "analytics")
    row = repos.company_modules.add(CompanyModule(company_id=world.acme.id, module_id=module.id))
    assert row.id is not None
    assert row.is_enabled is False


def test_update_pricing_users_licensed(provisioning, repos, world, root):
    """Test licensed seats are stored and left alone when not given."""
    module = world.module(repos, "analytics")
    provisioning.enable_module(world.acme.id, module.id, root)

    row = provisioning.update_company_module_pricing(world.acme.id, module.id, root, users_licensed=12)
    assert row.users_licensed == 12
    row = provisioning.update_company_module_pricing(
        world.acme.id, module.id, root, monthly_price=Decimal("10.00")
    )
    assert row.users_licensed == 12
    assert _audit(repos, "company_module_pricing_updated")[0].after_state["users_licensed"] == 12


class TestCompanyModuleCosts:
    @pytest.fixture
    def provisioned(self, provisioning, repos, world, root):
        """Acme with analytics, expense-ocr and vendors enabled and automation disabled."""
        modules = {k: world.module(repos, k) for k in ("analytics", "expense-ocr", "vendors", "automation")}
        for module in modules.values():
            provisioning.enable_module(world.acme.id, module.id, root)
        provisioning.disable_module(world.acme.id, modules["automation"].id, root)

        provisioning.update_company_module_pricing(
            world.acme.id, modules["analytics"].id, root, monthly_price=Decimal("40.00"), users_licensed=10
        )
        provisioning.update_company_module_pricing(
            world.acme.id, modules["expense-ocr"].id, root, users_licensed=5
        )
        users = UserModuleService(repos)
        users.grant_user_module(world.acme_user.id, modules["expense-ocr"].id, root)
        users.grant_user_module(world.acme_user2.id, modules["expense-ocr"].id, root)
        users.grant_user_module(world.acme_user.id, modules["analytics"].id, root)
        return modules

    def test_cost_lines(self, provisioning, world, provisioned):
        """Test each enabled module is billed for licensed seats and for actual users."""
        costs = provisioning.get_company_module_costs(world.acme.id, make_context(world.acme_admin))
        lines = {line.module_key: line for line in costs.modules}

        assert [line.module_key for line in costs.modules] == ["analytics", "expense-ocr", "vendors"]
        assert lines["analytics"].monthly_price == Decimal("40.00")
        assert lines["analytics"].per_user_price == Decimal("5.00")
        assert lines["analytics"].licensed_monthly_cost == Decimal("90.00")
        assert lines["analytics"].actual_monthly_cost == Decimal("45.00")
        assert lines["expense-ocr"].users_with_access == 2
        assert lines["expense-ocr"].licensed_monthly_cost == Decimal("29.00")
        assert lines["expense-ocr"].actual_monthly_cost == Decimal("23.00")
        assert lines["vendors"].actual_monthly_cost == Decimal("0")

    def test_summary(self, provisioning, world, root, provisioned):
        """Test totals, their difference and the count per classification."""
        summary = provisioning.get_company_module_costs(world.acme.id, root).summary
        assert summary.total_modules == 3
        assert summary.total_licensed_cost == Decimal("119.00")
        assert summary.total_actual_cost == Decimal("68.00")
        assert summary.cost_difference == Decimal("51.00")
        assert summary.by_classification == {"addon": 2, "core": 1}

    def test_empty_company(self, provisioning, world, root):
        """Test a company with nothing enabled costs nothing."""
        costs = provisioning.get_company_module_costs(world.globex.id, root)
        assert costs.modules == []
        assert costs.summary.total_licensed_cost == Decimal("0")

    def test_access_rules(self, provisioning, world):
        """Test plain users are refused and other companies are not found."""
        with pytest.raises(AuthorizationError):
            provisioning.get_company_module_costs(world.acme.id, make_context(world.acme_user))
        with pytest.raises(NotFoundError) as exc_info:
            provisioning.get_company_module_costs(world.globex.id, make_context(world.acme_admin))
        assert exc_info.value.code == "COMPANY_NOT_FOUND"
        with pytest.raises(NotFoundError):
            provisioning.get_company_module_costs(uuid4(), make_context(world.super_admin))
