"""Unit tests for tenant scoping checks."""

from uuid import uuid4

import pytest

from authz.core.auth.access import (
    ensure_admin,
    ensure_company_access,
    ensure_super_admin,
    load_user_in_scope,
    resolve_company_id,
)
from authz.core.exceptions import AuthorizationError, NotFoundError
from tests.conftest import make_context

pytestmark = pytest.mark.unit


def test_role_guards(world):
    """Test admin and super-admin guards."""
    ensure_admin(make_context(world.acme_admin))
    ensure_admin(make_context(world.super_admin))
    ensure_super_admin(make_context(world.super_admin))
    with pytest.raises(AuthorizationError):
        ensure_admin(make_context(world.acme_user))
    with pytest.raises(AuthorizationError) as exc_info:
        ensure_super_admin(make_context(world.acme_admin))
    assert exc_info.value.code == "AUTH_SUPER_ADMIN_REQUIRED"


def test_company_access(world):
    """Test other companies are invisible except to super-admins."""
    ensure_company_access(make_context(world.acme_user), world.acme.id)
    ensure_company_access(make_context(world.super_admin), world.globex.id)
    with pytest.raises(NotFoundError) as exc_info:
        ensure_company_access(make_context(world.acme_admin), world.globex.id)
    assert exc_info.value.status_code == 404


def test_resolve_company_id(world):
    """Test defaulting to the caller's company."""
    assert resolve_company_id(make_context(world.acme_admin), None) == world.acme.id
    assert resolve_company_id(make_context(world.super_admin), world.globex.id) == world.globex.id
    with pytest.raises(NotFoundError):
        resolve_company_id(make_context(world.super_admin), None)


class TestLoadUserInScope:
    def test_missing_user(self, repos, world):
        """Test an unknown user is 404."""
        with pytest.raises(NotFoundError):
            load_user_in_scope(repos.users, make_context(world.super_admin), uuid4())

    def test_cross_tenant_is_404(self, repos, world):
        """Test other tenants' users are not found, even for admins."""
        with pytest.raises(NotFoundError):
            load_user_in_scope(repos.users, make_context(world.acme_admin), world.globex_user.id)

    def test_same_company_non_admin_is_403(self, repos, world):
        """Test a colleague is forbidden, not hidden."""
        with pytest.raises(AuthorizationError):
            load_user_in_scope(repos.users, make_context(world.acme_user), world.acme_user2.id)

    def test_self_when_allowed(self, repos, world):
        """Test self access only when allow_self is set."""
        me = make_context(world.acme_user)
        assert load_user_in_scope(repos.users, me, world.acme_user.id, allow_self=True) is world.acme_user
        with pytest.raises(AuthorizationError):
            load_user_in_scope(repos.users, me, world.acme_user.id)

    def test_admin_and_super_admin(self, repos, world):
        """Test admins reach their company and super-admins reach anyone."""
        assert load_user_in_scope(repos.users, make_context(world.acme_admin), world.acme_user.id)
        assert load_user_in_scope(repos.users, make_context(world.super_admin), world.globex_user.id)

    def test_company_less_target(self, repos, world):
        """Test an admin cannot reach a user without a company."""
        with pytest.raises(NotFoundError):
            load_user_in_scope(repos.users, make_context(world.acme_admin), world.super_admin.id)
