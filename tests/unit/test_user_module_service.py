"""Unit tests for UserModuleService."""

from uuid import uuid4

import pytest

from authz.core.exceptions import AuthorizationError, NotFoundError, PreconditionFailedError
from authz.models import AuditLog
from authz.services.provisioning_service import ProvisioningService
from authz.services.user_module_service import UserModuleService
from tests.conftest import make_context

pytestmark = pytest.mark.unit


@pytest.fixture
def service(repos):
    """Create UserModuleService instance."""
    return UserModuleService(repos)


@pytest.fixture
def ocr(repos, world):
    """expense-ocr enabled for Acme."""
    module = world.module(repos, "expense-ocr")
    ProvisioningService(repos).enable_module(world.acme.id, module.id, make_context(world.super_admin))
    return module


def test_grant_requires_company_module(service, repos, world):
    """Test granting a module the company lacks is a precondition failure."""
    module = world.module(repos, "analytics")
    with pytest.raises(PreconditionFailedError) as exc_info:
        service.grant_user_module(world.acme_user.id, module.id, make_context(world.acme_admin))
    assert exc_info.value.status_code == 412
    assert exc_info.value.code == "COMPANY_MODULE_DISABLED"
    assert repos.user_modules.get(world.acme_user.id, module.id, world.acme.id) is None


def test_grant_and_idempotence(service, repos, world, ocr):
    """Test a grant is stored once and audited once."""
    admin = make_context(world.acme_admin)
    first = service.grant_user_module(world.acme_user.id, ocr.id, admin)
    second = service.grant_user_module(world.acme_user.id, ocr.id, admin)

    assert first is second
    assert first.is_enabled is True
    assert first.granted_by == world.acme_admin.id
    entries = [e for e in repos.audit.store.rows(AuditLog) if e.action == "user_module_granted"]
    assert len(entries) == 1
    assert entries[0].subject_id == world.acme_user.id


def test_revoke_without_row_records_explicit_revocation(service, repos, world, ocr):
    """Test revoking a never-granted module stores a disabled row."""
    row = service.revoke_user_module(world.acme_user.id, ocr.id, make_context(world.acme_admin))
    assert row.is_enabled is False
    assert repos.user_modules.get(world.acme_user.id, ocr.id, world.acme.id) is row


def test_revoke_is_allowed_after_company_disable(service, repos, world, ocr):
    """Test revocation does not depend on company provisioning."""
    admin = make_context(world.acme_admin)
    service.grant_user_module(world.acme_user.id, ocr.id, admin)
    ProvisioningService(repos).disable_module(world.acme.id, ocr.id, make_context(world.super_admin))

    row = service.revoke_user_module(world.acme_user.id, ocr.id, admin)
    assert row.is_enabled is False


def test_cross_tenant_user_is_not_found(service, repos, world, ocr):
    """Test an admin cannot reach users of another company."""
    with pytest.raises(NotFoundError) as exc_info:
        service.grant_user_module(world.globex_user.id, ocr.id, make_context(world.acme_admin))
    assert exc_info.value.code == "USER_NOT_FOUND"


def test_non_admin_is_forbidden(service, world, ocr):
    """Test plain users cannot manage module access."""
    with pytest.raises(AuthorizationError):
        service.grant_user_module(world.acme_user2.id, ocr.id, make_context(world.acme_user))


def test_unknown_module(service, world):
    """Test an unknown module id is 404."""
    with pytest.raises(NotFoundError) as exc_info:
        service.grant_user_module(world.acme_user.id, uuid4(), make_context(world.acme_admin))
    assert exc_info.value.code == "MODULE_NOT_FOUND"


def test_explicit_company_must_match(service, world, ocr):
    """Test an explicit company other than the user's is rejected."""
    with pytest.raises(NotFoundError):
        service.grant_user_module(
            world.acme_user.id, ocr.id, make_context(world.super_admin), company_id=world.globex.id
        )


def test_get_user_modules_access_source(service, repos, world, ocr):
    """Test only company-enabled modules are listed, each with its access source."""
    admin = make_context(world.acme_admin)
    analytics = world.module(repos, "analytics")
    ProvisioningService(repos).enable_module(world.acme.id, analytics.id, make_context(world.super_admin))

    assert {s.access_source for s in service.get_user_modules(world.acme_user.id, admin)} == {
        "never_granted"
    }

    service.grant_user_module(world.acme_user.id, ocr.id, admin)
    service.revoke_user_module(world.acme_user.id, analytics.id, admin)
    statuses = {s.module.key: s for s in service.get_user_modules(world.acme_user.id, admin)}

    assert set(statuses) == {"expense-ocr", "analytics"}
    assert statuses["expense-ocr"].access_source == "granted"
    assert statuses["expense-ocr"].is_enabled is True
    assert statuses["analytics"].access_source == "explicitly_revoked"
    assert statuses["analytics"].company_enabled is True


def test_get_user_modules_after_reenable(service, repos, world, ocr):
    """Test a cascaded grant shows as revoked once the module is enabled again."""
    root = make_context(world.super_admin)
    service.grant_user_module(world.acme_user.id, ocr.id, make_context(world.acme_admin))
    provisioning = ProvisioningService(repos)
    provisioning.disable_module(world.acme.id, ocr.id, root)
    assert service.get_user_modules(world.acme_user.id, root) == []

    provisioning.enable_module(world.acme.id, ocr.id, root)
    [status] = service.get_user_modules(world.acme_user.id, root)
    assert status.access_source == "explicitly_revoked"


def test_get_user_modules_foreign_user(service, world, ocr):
    """Test an admin listing another company's user gets not found."""
    with pytest.raises(NotFoundError) as exc_info:
        service.get_user_modules(world.globex_user.id, make_context(world.acme_admin))
    assert exc_info.value.code == "USER_NOT_FOUND"


def test_get_user_modules_requires_admin(service, world, ocr):
    """Test a plain user cannot list modules, even their own."""
    with pytest.raises(AuthorizationError):
        service.get_user_modules(world.acme_user.id, make_context(world.acme_user))


def test_accessible_modules(service, repos, world, ocr):
    """Test the caller sees modules enabled for both the company and them."""
    admin = make_context(world.acme_admin)
    analytics = world.module(repos, "analytics")
    ProvisioningService(repos).enable_module(world.acme.id, analytics.id, make_context(world.super_admin))
    service.grant_user_module(world.acme_user.id, ocr.id, admin)
    service.grant_user_module(world.acme_user.id, analytics.id, admin)
    service.revoke_user_module(world.acme_user.id, analytics.id, admin)

    me = make_context(world.acme_user)
    assert [m.key for m in service.get_accessible_modules(me)] == ["expense-ocr"]
    assert service.get_accessible_modules(make_context(world.acme_user2)) == []


def test_accessible_modules_drop_after_company_disable(service, repos, world, ocr):
    """Test disabling the company module removes it from the user's list."""
    service.grant_user_module(world.acme_user.id, ocr.id, make_context(world.acme_admin))
    ProvisioningService(repos).disable_module(world.acme.id, ocr.id, make_context(world.super_admin))
    assert service.get_accessible_modules(make_context(world.acme_user)) == []


def test_accessible_modules_without_company(service, world):
    """Test a company-less caller has no accessible modules."""
    assert service.get_accessible_modules(make_context(world.super_admin)) == []
