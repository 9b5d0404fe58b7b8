"""Unit tests for RoleService: custom roles, templates and assignments."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from authz.core.auth.permissions import PermissionKey, SystemRole
from authz.core.auth.resolver import PermissionResolver
from authz.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from authz.models import AuditLog, UserRoleAssignment
from authz.services.provisioning_service import ProvisioningService
from authz.services.role_service import RoleService, compose_template_permissions
from tests.conftest import make_context

pytestmark = pytest.mark.unit

P = PermissionKey


@pytest.fixture
def service(repos):
    """Create RoleService instance."""
    return RoleService(repos)


@pytest.fixture
def admin(world):
    return make_context(world.acme_admin)


def _enable(repos, world, *keys):
    root = make_context(world.super_admin)
    for key in keys:
        ProvisioningService(repos).enable_module(world.acme.id, world.module(repos, key).id, root)


def test_compose_template_permissions():
    """Test base plus additions minus removals, removal winning."""
    result = compose_template_permissions(
        ["dashboard.view", "expenses.view"],
        additional=["expenses.approve", "users.view"],
        removed=["users.view", "dashboard.view"],
    )
    assert result == ["expenses.approve", "expenses.view"]


class TestCustomRoles:
    def test_create_stores_exact_permissions(self, service, repos, world, admin):
        """Test the role is created in the caller's company with its keys."""
        role = service.create_custom_role(
            admin, name="Approver", permissions=[P.EXPENSES_VIEW, "expenses.approve", P.EXPENSES_VIEW]
        )
        assert role.company_id == world.acme.id
        assert role.created_by == world.acme_admin.id
        assert service.to_response(role).permissions == ["expenses.approve", "expenses.view"]

        entry = [e for e in repos.audit.store.rows(AuditLog) if e.action == "custom_role_created"][0]
        assert entry.after_state["permissions"] == ["expenses.approve", "expenses.view"]

    def test_duplicate_name_conflicts(self, service, admin):
        """Test role names are unique per company."""
        service.create_custom_role(admin, name="Approver")
        with pytest.raises(ConflictError) as exc_info:
            service.create_custom_role(admin, name="Approver")
        assert exc_info.value.code == "ROLE_NAME_EXISTS"

    def test_same_name_in_other_company(self, service, world, admin):
        """Test another company may reuse the name."""
        service.create_custom_role(admin, name="Approver")
        other = service.create_custom_role(make_context(world.globex_admin), name="Approver")
        assert other.company_id == world.globex.id

    def test_unknown_permission_rejected(self, service, admin):
        """Test keys outside the catalog are refused."""
        with pytest.raises(ValueError):
            service.create_custom_role(admin, name="Bad", permissions=["payroll.run"])

    def test_admin_cannot_target_other_company(self, service, world, admin):
        """Test cross-tenant creation is reported as not found."""
        with pytest.raises(NotFoundError):
            service.create_custom_role(admin, name="X", company_id=world.globex.id)

    def test_user_cannot_create(self, service, world):
        """Test plain users are forbidden."""
        with pytest.raises(AuthorizationError):
            service.create_custom_role(make_context(world.acme_user), name="X")

    def test_update_replaces_permission_set(self, service, admin):
        """Test permissions given on update replace the whole set."""
        role = service.create_custom_role(admin, name="Viewer", permissions=[P.USERS_VIEW])
        service.update_custom_role(role.id, admin, name="Reader", permissions=[P.DASHBOARD_VIEW])
        response = service.to_response(role)
        assert response.name == "Reader"
        assert response.permissions == ["dashboard.view"]

    def test_update_rename_conflict(self, service, admin):
        """Test renaming onto an existing name conflicts."""
        service.create_custom_role(admin, name="A")
        role = service.create_custom_role(admin, name="B")
        with pytest.raises(ConflictError):
            service.update_custom_role(role.id, admin, name="A")

    def test_other_company_role_is_not_found(self, service, world, admin):
        """Test roles of another company are invisible."""
        role = service.create_custom_role(make_context(world.globex_admin), name="Theirs")
        with pytest.raises(NotFoundError):
            service.get_custom_role(role.id, admin)

    def test_deactivate_falls_back_to_system_role(self, service, repos, world, admin):
        """Test deactivating a role returns assigned users to their profile role."""
        role = service.create_custom_role(admin, name="Viewer", permissions=[P.USERS_VIEW])
        service.assign_role_to_user(world.acme_user.id, admin, custom_role_id=role.id)
        resolver = PermissionResolver(repos)
        assert resolver.check_permission(world.acme_user.id, P.USERS_VIEW, world.acme.id)

        service.deactivate_custom_role(role.id, admin)

        assert role.is_active is False
        assert not resolver.check_permission(world.acme_user.id, P.USERS_VIEW, world.acme.id)
        assert resolver.check_permission(world.acme_user.id, P.DASHBOARD_VIEW, world.acme.id)
        assert [r.name for r in service.list_custom_roles(admin)] == []
        assert [r.name for r in service.list_custom_roles(admin, include_inactive=True)] == ["Viewer"]


class TestRoleTemplates:
    def test_seeded_templates_are_listed(self, service, admin):
        """Test system templates are visible to admins."""
        names = {t.template_name for t in service.list_role_templates(admin)}
        assert {"basic_user", "expense_reviewer", "department_manager", "controller"} <= names

    def test_create_template_requires_super_admin(self, service, admin):
        """Test company admins cannot add global templates."""
        with pytest.raises(AuthorizationError):
            service.create_role_template(admin, template_name="x", display_name="X")

    def test_create_template_duplicate(self, service, world):
        """Test template names are unique."""
        root = make_context(world.super_admin)
        with pytest.raises(ConflictError) as exc_info:
            service.create_role_template(root, template_name="basic_user", display_name="Again")
        assert exc_info.value.code == "TEMPLATE_NAME_EXISTS"

    def test_create_template(self, service, world):
        """Test a super-admin template stores sorted keys."""
        template = service.create_role_template(
            make_context(world.super_admin),
            template_name="ocr_clerk",
            display_name="OCR Clerk",
            base_permissions=[P.EXPENSE_OCR_USE, P.DASHBOARD_VIEW],
            required_modules=["expense-ocr"],
            target_role=SystemRole.USER,
        )
        assert template.base_permissions == ["dashboard.view", "expense-ocr.use"]
        assert template.target_role == "user"

    def test_create_role_from_template(self, service, repos, admin):
        """Test the role gets base plus additions minus removals and copies the template name."""
        template = repos.role_templates.get_by_name("basic_user")
        role = service.create_role_from_template(
            template.id,
            admin,
            additional_permissions=[P.EXPENSES_APPROVE],
            removed_permissions=[P.NOTIFICATIONS_VIEW],
        )
        assert role.name == "Basic User"
        assert role.based_on_role == "user"
        assert service.to_response(role).permissions == [
            "dashboard.view",
            "expenses.approve",
            "expenses.create",
            "expenses.view",
        ]
        entry = [e for e in repos.audit.store.rows(AuditLog) if e.action == "custom_role_created"][0]
        assert entry.details["template_name"] == "basic_user"

    def test_role_is_independent_of_template(self, service, repos, admin):
        """Test later template edits do not reach existing roles."""
        template = repos.role_templates.get_by_name("basic_user")
        role = service.create_role_from_template(template.id, admin, name="Staff")
        template.base_permissions = ["dashboard.view"]
        assert "expenses.create" in service.to_response(role).permissions

    def test_unknown_template(self, service, admin):
        """Test an unknown template id is 404."""
        with pytest.raises(NotFoundError):
            service.create_role_from_template(uuid4(), admin)

    def _custom_template(self, service, world):
        return service.create_role_template(
            make_context(world.super_admin),
            template_name="ocr_clerk",
            display_name="OCR Clerk",
            base_permissions=[P.EXPENSE_OCR_USE],
            required_modules=["expense-ocr"],
        )

    def test_update_template(self, service, repos, world):
        """Test a super-admin edits a non-system template and the change is audited."""
        template = self._custom_template(service, world)
        updated = service.update_role_template(
            template.id,
            make_context(world.super_admin),
            display_name="Receipt Clerk",
            base_permissions=[P.EXPENSE_OCR_USE, P.DASHBOARD_VIEW],
        )
        assert updated.display_name == "Receipt Clerk"
        assert updated.base_permissions == ["dashboard.view", "expense-ocr.use"]
        assert updated.required_modules == ["expense-ocr"]
        entry = [e for e in repos.audit.store.rows(AuditLog) if e.action == "role_template_updated"][0]
        assert entry.before_state["display_name"] == "OCR Clerk"
        assert entry.after_state["display_name"] == "Receipt Clerk"

    def test_update_template_without_fields(self, service, world):
        """Test an update naming no field is refused."""
        template = self._custom_template(service, world)
        with pytest.raises(ValidationError) as exc_info:
            service.update_role_template(template.id, make_context(world.super_admin))
        assert exc_info.value.code == "NO_FIELDS_TO_UPDATE"

    def test_system_template_is_immutable(self, service, repos, world):
        """Test seeded system templates can be neither edited nor deleted."""
        root = make_context(world.super_admin)
        template = repos.role_templates.get_by_name("basic_user")
        with pytest.raises(AuthorizationError) as exc_info:
            service.update_role_template(template.id, root, display_name="Changed")
        assert exc_info.value.code == "TEMPLATE_IMMUTABLE"
        with pytest.raises(AuthorizationError) as exc_info:
            service.delete_role_template(template.id, root)
        assert exc_info.value.code == "TEMPLATE_IMMUTABLE"
        assert template.display_name == "Basic User"

    def test_admin_cannot_edit_templates(self, service, world, admin):
        """Test company admins can neither edit nor delete templates."""
        template = self._custom_template(service, world)
        with pytest.raises(AuthorizationError) as exc_info:
            service.update_role_template(template.id, admin, display_name="Mine")
        assert exc_info.value.code == "AUTH_SUPER_ADMIN_REQUIRED"
        with pytest.raises(AuthorizationError):
            service.delete_role_template(template.id, admin)

    def test_delete_template_keeps_roles(self, service, repos, world, admin):
        """Test deleting a template removes it and leaves roles built from it."""
        template = self._custom_template(service, world)
        role = service.create_role_from_template(template.id, admin)
        service.delete_role_template(template.id, make_context(world.super_admin))

        assert repos.role_templates.get_by_id(template.id) is None
        assert service.to_response(role).permissions == ["expense-ocr.use"]
        entry = [e for e in repos.audit.store.rows(AuditLog) if e.action == "role_template_deleted"][0]
        assert entry.subject_id == template.id
        assert entry.before_state["template_name"] == "ocr_clerk"

    def test_delete_unknown_template(self, service, world):
        """Test deleting an unknown template is 404."""
        with pytest.raises(NotFoundError):
            service.delete_role_template(uuid4(), make_context(world.super_admin))


class TestRoleAssignments:
    def test_validate_reports_every_issue(self, service, repos, world, admin):
        """Test inactive role and missing modules are reported together."""
        role = service.create_custom_role(
            admin, name="Analyst", permissions=[P.ANALYTICS_VIEW, P.EXPENSES_VIEW]
        )
        role.is_active = False
        result = service.validate_role_assignment(role.id, world.acme.id)
        assert result.is_valid is False
        assert result.issues == [
            "Role is not active",
            "Required modules not enabled: analytics, expenses",
        ]

    def test_validate_wrong_company_and_missing(self, service, world, admin):
        """Test company mismatch and unknown roles are issues, not exceptions."""
        role = service.create_custom_role(admin, name="Plain", permissions=[P.DASHBOARD_VIEW])
        assert service.validate_role_assignment(role.id, world.globex.id).issues == [
            "Role does not belong to the specified company"
        ]
        assert service.validate_role_assignment(uuid4(), world.acme.id).issues == ["Role not found"]

    def test_assign_requires_valid_role(self, service, world, admin):
        """Test assigning a role whose modules are off is a precondition failure."""
        role = service.create_custom_role(admin, name="Analyst", permissions=[P.ANALYTICS_VIEW])
        with pytest.raises(PreconditionFailedError) as exc_info:
            service.assign_role_to_user(world.acme_user.id, admin, custom_role_id=role.id)
        assert exc_info.value.details["issues"] == ["Required modules not enabled: analytics"]

    def test_assign_supersedes_previous(self, service, repos, world, admin):
        """Test a new assignment deactivates the old one in the same step."""
        _enable(repos, world, "analytics")
        role = service.create_custom_role(admin, name="Analyst", permissions=[P.ANALYTICS_VIEW])
        first = service.assign_role_to_user(world.acme_user.id, admin, system_role=SystemRole.ADMIN)
        second = service.assign_role_to_user(world.acme_user.id, admin, custom_role_id=role.id)

        assert first.is_active is False
        assert first.superseded_at is not None
        assert second.is_active is True
        active = [r for r in repos.role_assignments.store.rows(UserRoleAssignment) if r.is_active]
        assert active == [second]
        assert service.get_active_assignment(world.acme_user.id, admin) is second

    def test_assign_needs_exactly_one_role(self, service, world, admin):
        """Test both or neither role is a validation error."""
        with pytest.raises(ValidationError):
            service.assign_role_to_user(world.acme_user.id, admin)
        with pytest.raises(ValidationError):
            service.assign_role_to_user(
                world.acme_user.id, admin, custom_role_id=uuid4(), system_role=SystemRole.USER
            )

    def test_assign_past_expiry(self, service, world, admin):
        """Test an expiry in the past is refused."""
        with pytest.raises(ValidationError) as exc_info:
            service.assign_role_to_user(
                world.acme_user.id,
                admin,
                system_role=SystemRole.ADMIN,
                expires_at=datetime.now(UTC) - timedelta(minutes=1),
            )
        assert exc_info.value.code == "INVALID_EXPIRY"

    def test_assign_naive_expiry(self, service, repos, world, admin):
        """Test an expiry without a timezone offset is refused before any write."""
        with pytest.raises(ValidationError) as exc_info:
            service.assign_role_to_user(
                world.acme_user.id,
                admin,
                system_role=SystemRole.ADMIN,
                expires_at=datetime(2099, 1, 1),
            )
        assert exc_info.value.code == "INVALID_EXPIRY"
        assert repos.role_assignments.store.rows(UserRoleAssignment) == []

    def test_only_super_admin_assigns_super_admin(self, service, world, admin):
        """Test admins cannot escalate anyone to super-admin."""
        with pytest.raises(AuthorizationError) as exc_info:
            service.assign_role_to_user(world.acme_user.id, admin, system_role=SystemRole.SUPER_ADMIN)
        assert exc_info.value.code == "AUTH_SUPER_ADMIN_REQUIRED"

        assignment = service.assign_role_to_user(
            world.acme_user.id, make_context(world.super_admin), system_role=SystemRole.SUPER_ADMIN
        )
        assert assignment.system_role == "super-admin"

    def test_assign_cross_tenant_user(self, service, world, admin):
        """Test users of another company are not found."""
        with pytest.raises(NotFoundError):
            service.assign_role_to_user(world.globex_user.id, admin, system_role=SystemRole.USER)

    def test_assign_role_of_other_company(self, service, world, admin):
        """Test a role from another company cannot be assigned."""
        role = service.create_custom_role(make_context(world.globex_admin), name="Theirs")
        with pytest.raises(NotFoundError) as exc_info:
            service.assign_role_to_user(world.acme_user.id, admin, custom_role_id=role.id)
        assert exc_info.value.code == "ROLE_NOT_FOUND"

    def test_remove_assignment(self, service, world, admin):
        """Test removal deactivates the active assignment."""
        service.assign_role_to_user(world.acme_user.id, admin, system_role=SystemRole.ADMIN)
        removed = service.remove_role_assignment(world.acme_user.id, admin)
        assert removed.is_active is False
        assert service.get_active_assignment(world.acme_user.id, admin) is None
        with pytest.raises(NotFoundError):
            service.remove_role_assignment(world.acme_user.id, admin)

    def test_list_assignments(self, service, world, admin):
        """Test listing is scoped to the company."""
        service.assign_role_to_user(world.acme_user.id, admin, system_role=SystemRole.ADMIN)
        service.assign_role_to_user(
            world.globex_user.id, make_context(world.globex_admin), system_role=SystemRole.ADMIN
        )
        rows = service.list_assignments(admin)
        assert [r.user_id for r in rows] == [world.acme_user.id]
