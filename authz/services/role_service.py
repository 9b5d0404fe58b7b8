"""Custom roles, role templates and role assignments."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from authz.core.auth.access import (
    ensure_admin,
    ensure_company_access,
    ensure_super_admin,
    load_user_in_scope,
    resolve_company_id,
)
from authz.core.auth.context import AuthContext
from authz.core.auth.permissions import (
    PermissionKey,
    SystemRole,
    is_permission_key,
    modules_required_by,
)
from authz.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from authz.core.logging import log_role_change
from authz.models.custom_role import CustomRole
from authz.models.role_template import RoleTemplate
from authz.models.user_role_assignment import UserRoleAssignment
from authz.repositories.interfaces import Repositories
from authz.schemas.role import CustomRoleResponse, RoleTemplateResponse
from authz.services.audit_service import AuditService, snapshot
from authz.services.data_permission_service import check_expiry

_ROLE_FIELDS = ("name", "description", "based_on_role", "is_active")
_TEMPLATE_FIELDS = (
    "template_name",
    "display_name",
    "description",
    "target_role",
    "base_permissions",
    "required_modules",
    "target_use_cases",
)
_ASSIGNMENT_FIELDS = (
    "id",
    "custom_role_id",
    "system_role",
    "is_active",
    "expires_at",
    "superseded_at",
)


@dataclass
class RoleValidationResult:
    is_valid: bool
    issues: list[str] = field(default_factory=list)


def _key_values(keys: Iterable[PermissionKey | str]) -> list[str]:
    return sorted({PermissionKey(k).value for k in keys})


def compose_template_permissions(
    base: Iterable[str],
    additional: Iterable[str] = (),
    removed: Iterable[str] = (),
) -> list[str]:
    """``base ∪ additional \\ removed``; a removal beats an addition of the same key."""
    final = set(_key_values(base)) | set(_key_values(additional))
    final -= set(_key_values(removed))
    return sorted(final)


class RoleService:
    """Service for custom roles, templates and assignments."""

    def __init__(self, repos: Repositories):
        self.repos = repos
        self.audit = AuditService(repos)

    # Custom roles

    def to_response(self, role: CustomRole) -> CustomRoleResponse:
        granted = [p.permission_key for p in self.repos.custom_roles.get_permissions(role.id) if p.is_granted]
        response = CustomRoleResponse.model_validate(role)
        response.permissions = sorted(granted)
        return response

    def get_custom_role(self, role_id: UUID, actor: AuthContext) -> CustomRole:
        """Load a role visible to the caller; other companies' roles are 404."""
        ensure_admin(actor)
        role = self.repos.custom_roles.get_by_id(role_id)
        if role is None or not (actor.is_super_admin or role.company_id == actor.company_id):
            raise NotFoundError(code="ROLE_NOT_FOUND", message="Role not found")
        return role

    def list_custom_roles(
        self,
        actor: AuthContext,
        company_id: UUID | None = None,
        include_inactive: bool = False,
    ) -> list[CustomRole]:
        ensure_admin(actor)
        company = resolve_company_id(actor, company_id)
        return self.repos.custom_roles.list_for_company(company, include_inactive)

    def create_custom_role(
        self,
        actor: AuthContext,
        name: str,
        permissions: Iterable[PermissionKey | str] = (),
        company_id: UUID | None = None,
        based_on_role: SystemRole | None = None,
        description: str | None = None,
        details: dict | None = None,
    ) -> CustomRole:
        """
        Create a company role and store its exact permission set.

        Args:
            actor: Admin of the company, or super-admin.
            name: Role name, unique within the company.
            permissions: Granted capability keys.
            company_id: Target company (defaults to the caller's).
            based_on_role: Optional system role the role was derived from.
            description: Optional description.
            details: Extra audit context.

        Returns:
            The new role.

        Raises:
            ConflictError: A role with the same name exists in the company.
        """
        ensure_admin(actor)
        company = resolve_company_id(actor, company_id)
        keys = _key_values(permissions)
        with self.repos.transactions.atomic():
            if self.repos.companies.get_by_id(company) is None:
                raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")
            if self.repos.custom_roles.get_by_name(company, name) is not None:
                raise ConflictError(
                    code="ROLE_NAME_EXISTS",
                    message=f"A role named '{name}' already exists in this company",
                )
            role = self.repos.custom_roles.add(
                CustomRole(
                    company_id=company,
                    name=name,
                    description=description,
                    based_on_role=SystemRole(based_on_role).value if based_on_role else None,
                    is_active=True,
                    created_by=actor.user_id,
                )
            )
            self.repos.custom_roles.replace_permissions(role.id, {k: True for k in keys})
            self.audit.record(
                actor,
                action="custom_role_created",
                subject_type="role",
                subject_id=role.id,
                company_id=company,
                after={**snapshot(role, *_ROLE_FIELDS), "permissions": keys},
                details=details,
            )

        log_role_change("custom_role_created", str(actor.user_id), str(company), str(role.id))
        return role

    def update_custom_role(
        self,
        role_id: UUID,
        actor: AuthContext,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
        permissions: Iterable[PermissionKey | str] | None = None,
    ) -> CustomRole:
        """Update role fields; ``permissions`` replaces the whole set when given."""
        with self.repos.transactions.atomic():
            role = self.get_custom_role(role_id, actor)
            before_keys = [p.permission_key for p in self.repos.custom_roles.get_permissions(role.id) if p.is_granted]
            before = {**snapshot(role, *_ROLE_FIELDS), "permissions": sorted(before_keys)}

            if name is not None and name != role.name:
                existing = self.repos.custom_roles.get_by_name(role.company_id, name)
                if existing is not None and existing.id != role.id:
                    raise ConflictError(
                        code="ROLE_NAME_EXISTS",
                        message=f"A role named '{name}' already exists in this company",
                    )
                role.name = name
            if description is not None:
                role.description = description
            if is_active is not None:
                role.is_active = is_active
            after_keys = sorted(before_keys)
            if permissions is not None:
                after_keys = _key_values(permissions)
                self.repos.custom_roles.replace_permissions(role.id, {k: True for k in after_keys})

            self.audit.record(
                actor,
                action="custom_role_updated",
                subject_type="role",
                subject_id=role.id,
                company_id=role.company_id,
                before=before,
                after={**snapshot(role, *_ROLE_FIELDS), "permissions": after_keys},
            )

        log_role_change("custom_role_updated", str(actor.user_id), str(role.company_id), str(role.id))
        return role

    def deactivate_custom_role(self, role_id: UUID, actor: AuthContext) -> CustomRole:
        """Soft-delete a role. Users assigned to it fall back to their system role."""
        with self.repos.transactions.atomic():
            role = self.get_custom_role(role_id, actor)
            if not role.is_active:
                return role
            before = snapshot(role, *_ROLE_FIELDS)
            role.is_active = False
            self.audit.record(
                actor,
                action="custom_role_deactivated",
                subject_type="role",
                subject_id=role.id,
                company_id=role.company_id,
                before=before,
                after=snapshot(role, *_ROLE_FIELDS),
            )

        log_role_change("custom_role_deactivated", str(actor.user_id), str(role.company_id), str(role.id))
        return role

    # Templates

    def list_role_templates(self, actor: AuthContext) -> list[RoleTemplateResponse]:
        ensure_admin(actor)
        return [RoleTemplateResponse.model_validate(t) for t in self.repos.role_templates.list_templates()]

    def get_role_template(self, template_id: UUID, actor: AuthContext) -> RoleTemplate:
        ensure_admin(actor)
        template = self.repos.role_templates.get_by_id(template_id)
        if template is None:
            raise NotFoundError(code="TEMPLATE_NOT_FOUND", message="Role template not found")
        return template

    def create_role_template(
        self,
        actor: AuthContext,
        template_name: str,
        display_name: str,
        base_permissions: Iterable[PermissionKey | str] = (),
        required_modules: Iterable[str] = (),
        target_use_cases: Iterable[str] = (),
        target_role: SystemRole | None = None,
        description: str | None = None,
        is_system_template: bool = False,
    ) -> RoleTemplate:
        """Create a global template. Super-admin only."""
        ensure_super_admin(actor)
        with self.repos.transactions.atomic():
            if self.repos.role_templates.get_by_name(template_name) is not None:
                raise ConflictError(
                    code="TEMPLATE_NAME_EXISTS",
                    message=f"Template '{template_name}' already exists",
                )
            template = self.repos.role_templates.add(
                RoleTemplate(
                    template_name=template_name,
                    display_name=display_name,
                    description=description,
                    target_role=SystemRole(target_role).value if target_role else None,
                    base_permissions=_key_values(base_permissions),
                    required_modules=sorted(set(required_modules)),
                    target_use_cases=list(target_use_cases),
                    is_system_template=is_system_template,
                    created_by=actor.user_id,
                )
            )
            self.audit.record(
                actor,
                action="role_template_created",
                subject_type="template",
                subject_id=template.id,
                company_id=None,
                after=snapshot(template, *_TEMPLATE_FIELDS),
            )
        return template

    def _mutable_template(self, template_id: UUID, actor: AuthContext) -> RoleTemplate:
        ensure_super_admin(actor)
        template = self.repos.role_templates.get_by_id(template_id)
        if template is None:
            raise NotFoundError(code="TEMPLATE_NOT_FOUND", message="Role template not found")
        if template.is_system_template:
            raise AuthorizationError(
                code="TEMPLATE_IMMUTABLE",
                message="System templates cannot be modified",
                details={"template_id": str(template.id)},
            )
        return template

    def update_role_template(
        self,
        template_id: UUID,
        actor: AuthContext,
        display_name: str | None = None,
        description: str | None = None,
        base_permissions: Iterable[PermissionKey | str] | None = None,
        required_modules: Iterable[str] | None = None,
        target_use_cases: Iterable[str] | None = None,
    ) -> RoleTemplate:
        """
        Edit a non-system template. Super-admin only.

        Roles already created from the template keep their permissions.

        Raises:
            ValidationError: No field given.
            AuthorizationError: System template.
        """
        ensure_super_admin(actor)
        changes = {
            "display_name": display_name,
            "description": description,
            "base_permissions": _key_values(base_permissions) if base_permissions is not None else None,
            "required_modules": sorted(set(required_modules)) if required_modules is not None else None,
            "target_use_cases": list(target_use_cases) if target_use_cases is not None else None,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError(code="NO_FIELDS_TO_UPDATE", message="No fields to update")

        with self.repos.transactions.atomic():
            template = self._mutable_template(template_id, actor)
            before = snapshot(template, *_TEMPLATE_FIELDS)
            for name, value in changes.items():
                setattr(template, name, value)
            self.audit.record(
                actor,
                action="role_template_updated",
                subject_type="template",
                subject_id=template.id,
                company_id=None,
                before=before,
                after=snapshot(template, *_TEMPLATE_FIELDS),
            )
        return template

    def delete_role_template(self, template_id: UUID, actor: AuthContext) -> None:
        """Remove a non-system template. Super-admin only."""
        with self.repos.transactions.atomic():
            template = self._mutable_template(template_id, actor)
            before = snapshot(template, *_TEMPLATE_FIELDS)
            self.repos.role_templates.delete(template)
            self.audit.record(
                actor,
                action="role_template_deleted",
                subject_type="template",
                subject_id=template.id,
                company_id=None,
                before=before,
            )

    def create_role_from_template(
        self,
        template_id: UUID,
        actor: AuthContext,
        company_id: UUID | None = None,
        name: str | None = None,
        description: str | None = None,
        additional_permissions: Iterable[PermissionKey | str] = (),
        removed_permissions: Iterable[PermissionKey | str] = (),
    ) -> CustomRole:
        """
        Seed a custom role from a template.

        The template is not referenced again after the role exists.
        """
        template = self.get_role_template(template_id, actor)
        final = compose_template_permissions(
            template.base_permissions, additional_permissions, removed_permissions
        )
        return self.create_custom_role(
            actor,
            name=name or template.display_name,
            permissions=final,
            company_id=company_id,
            based_on_role=SystemRole(template.target_role) if template.target_role else None,
            description=description if description is not None else template.description,
            details={"template_id": template.id, "template_name": template.template_name},
        )

    # Assignments

    def validate_role_assignment(self, role_id: UUID, company_id: UUID) -> RoleValidationResult:
        """
        Check whether a custom role can be assigned in a company.

        All problems are reported together.
        """
        role = self.repos.custom_roles.get_by_id(role_id)
        if role is None:
            return RoleValidationResult(is_valid=False, issues=["Role not found"])

        issues: list[str] = []
        if role.company_id != company_id:
            issues.append("Role does not belong to the specified company")
        if not role.is_active:
            issues.append("Role is not active")

        granted = {
            PermissionKey(p.permission_key)
            for p in self.repos.custom_roles.get_permissions(role.id)
            if p.is_granted and is_permission_key(p.permission_key)
        }
        required = modules_required_by(granted)
        if required:
            module_keys = {m.id: m.key for m in self.repos.modules.list_modules()}
            enabled = {
                module_keys[i]
                for i in self.repos.company_modules.list_enabled_module_ids(company_id)
                if i in module_keys
            }
            missing = sorted(required - enabled)
            if missing:
                issues.append(f"Required modules not enabled: {', '.join(missing)}")

        return RoleValidationResult(is_valid=not issues, issues=issues)

    def check_role_assignment(
        self, role_id: UUID, company_id: UUID | None, actor: AuthContext
    ) -> RoleValidationResult:
        """validate_role_assignment behind the caller's tenant checks."""
        company = resolve_company_id(actor, company_id)
        self.get_custom_role(role_id, actor)
        return self.validate_role_assignment(role_id, company)

    def get_active_assignment(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None = None
    ) -> UserRoleAssignment | None:
        ensure_admin(actor)
        user = load_user_in_scope(self.repos.users, actor, user_id)
        company = resolve_company_id(actor, company_id or user.company_id)
        return self.repos.role_assignments.get_active(user.id, company)

    def list_assignments(
        self, actor: AuthContext, company_id: UUID | None = None
    ) -> list[UserRoleAssignment]:
        ensure_admin(actor)
        return self.repos.role_assignments.list_for_company(resolve_company_id(actor, company_id))

    def assign_role_to_user(
        self,
        user_id: UUID,
        actor: AuthContext,
        company_id: UUID | None = None,
        custom_role_id: UUID | None = None,
        system_role: SystemRole | str | None = None,
        expires_at: datetime | None = None,
    ) -> UserRoleAssignment:
        """
        Give a user exactly one active role in a company.

        Any previous active assignment is superseded in the same transaction.

        Raises:
            ValidationError: Both or neither role given, or expiry in the past.
            AuthorizationError: A non-super-admin assigning super-admin.
            NotFoundError: User or role outside the company.
            PreconditionFailedError: The custom role fails validation; the
                issue list is in ``details['issues']``.
        """
        ensure_admin(actor)
        if (custom_role_id is None) == (system_role is None):
            raise ValidationError(
                code="INVALID_ROLE_ASSIGNMENT",
                message="Exactly one of custom_role_id or system_role is required",
            )
        now = datetime.now(UTC)
        check_expiry(expires_at, now)
        role_value = SystemRole(system_role) if system_role is not None else None
        if role_value == SystemRole.SUPER_ADMIN and not actor.is_super_admin:
            raise AuthorizationError(
                code="AUTH_SUPER_ADMIN_REQUIRED",
                message="Only a super-admin can assign the super-admin role",
            )

        with self.repos.transactions.atomic():
            user = load_user_in_scope(self.repos.users, actor, user_id)
            company = resolve_company_id(actor, company_id or user.company_id)
            if user.company_id != company:
                raise NotFoundError(code="USER_NOT_FOUND", message="User not found")

            if custom_role_id is not None:
                role = self.repos.custom_roles.get_by_id(custom_role_id)
                if role is None or role.company_id != company:
                    raise NotFoundError(code="ROLE_NOT_FOUND", message="Role not found")
                result = self.validate_role_assignment(custom_role_id, company)
                if not result.is_valid:
                    raise PreconditionFailedError(
                        code="ROLE_ASSIGNMENT_INVALID",
                        message="Role cannot be assigned",
                        details={"issues": result.issues},
                    )

            previous = self.repos.role_assignments.get_active(user.id, company)
            before = snapshot(previous, *_ASSIGNMENT_FIELDS)
            if previous is not None:
                previous.is_active = False
                previous.superseded_at = now

            assignment = self.repos.role_assignments.add(
                UserRoleAssignment(
                    user_id=user.id,
                    company_id=company,
                    custom_role_id=custom_role_id,
                    system_role=role_value.value if role_value else None,
                    is_active=True,
                    assigned_by=actor.user_id,
                    assigned_at=now,
                    expires_at=expires_at,
                )
            )
            self.audit.record(
                actor,
                action="role_assigned",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                before=before,
                after=snapshot(assignment, *_ASSIGNMENT_FIELDS),
            )

        log_role_change("role_assigned", str(actor.user_id), str(company), str(user.id))
        return assignment

    def remove_role_assignment(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None = None
    ) -> UserRoleAssignment:
        """Deactivate the active assignment; the user falls back to their profile role."""
        ensure_admin(actor)
        with self.repos.transactions.atomic():
            user = load_user_in_scope(self.repos.users, actor, user_id)
            company = resolve_company_id(actor, company_id or user.company_id)
            ensure_company_access(actor, company)
            assignment = self.repos.role_assignments.get_active(user.id, company)
            if assignment is None:
                raise NotFoundError(
                    code="ROLE_ASSIGNMENT_NOT_FOUND", message="No active role assignment"
                )
            before = snapshot(assignment, *_ASSIGNMENT_FIELDS)
            assignment.is_active = False
            assignment.superseded_at = datetime.now(UTC)
            self.audit.record(
                actor,
                action="role_assignment_removed",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                before=before,
                after=snapshot(assignment, *_ASSIGNMENT_FIELDS),
            )

        log_role_change("role_assignment_removed", str(actor.user_id), str(company), str(user.id))
        return assignment
