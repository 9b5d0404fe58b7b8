"""Repositories for custom roles, role templates and role assignments."""

from uuid import UUID

from sqlalchemy.orm import Session

from authz.models.custom_role import CustomRole, CustomRolePermission
from authz.models.role_template import RoleTemplate
from authz.models.user_role_assignment import UserRoleAssignment
from authz.repositories.interfaces import (
    ICustomRoleRepository,
    IRoleAssignmentRepository,
    IRoleTemplateRepository,
)


class CustomRoleRepository(ICustomRoleRepository):
    """Repository for custom role data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, role_id: UUID) -> CustomRole | None:
        return self.db.query(CustomRole).filter(CustomRole.id == role_id).first()

    def get_by_name(self, company_id: UUID, name: str) -> CustomRole | None:
        return (
            self.db.query(CustomRole)
            .filter(CustomRole.company_id == company_id, CustomRole.name == name)
            .first()
        )

    def list_for_company(
        self, company_id: UUID, include_inactive: bool = False
    ) -> list[CustomRole]:
        query = self.db.query(CustomRole).filter(CustomRole.company_id == company_id)
        if not include_inactive:
            query = query.filter(CustomRole.is_active.is_(True))
        return query.order_by(CustomRole.name).all()

    def add(self, role: CustomRole) -> CustomRole:
        self.db.add(role)
        self.db.flush()
        return role

    def get_permissions(self, role_id: UUID) -> list[CustomRolePermission]:
        return (
            self.db.query(CustomRolePermission)
            .filter(CustomRolePermission.role_id == role_id)
            .order_by(CustomRolePermission.permission_key)
            .all()
        )

    def replace_permissions(
        self, role_id: UUID, permissions: dict[str, bool]
    ) -> list[CustomRolePermission]:
        """
        Replace the full permission set of a role.

        Args:
            role_id: Custom role UUID.
            permissions: Mapping of permission key to granted flag.

        Returns:
            The newly inserted rows.
        """
        self.db.query(CustomRolePermission).filter(
            CustomRolePermission.role_id == role_id
        ).delete(synchronize_session=False)
        rows = [
            CustomRolePermission(role_id=role_id, permission_key=key, is_granted=granted)
            for key, granted in sorted(permissions.items())
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows


class RoleTemplateRepository(IRoleTemplateRepository):
    """Repository for role template data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, template_id: UUID) -> RoleTemplate | None:
        return self.db.query(RoleTemplate).filter(RoleTemplate.id == template_id).first()

    def get_by_name(self, template_name: str) -> RoleTemplate | None:
        return (
            self.db.query(RoleTemplate)
            .filter(RoleTemplate.template_name == template_name)
            .first()
        )

    def list_templates(self) -> list[RoleTemplate]:
        return self.db.query(RoleTemplate).order_by(RoleTemplate.display_name).all()

    def add(self, template: RoleTemplate) -> RoleTemplate:
        self.db.add(template)
        self.db.flush()
        return template

    def delete(self, template: RoleTemplate) -> None:
        self.db.delete(template)
        self.db.flush()


class RoleAssignmentRepository(IRoleAssignmentRepository):
    """Repository for user role assignments."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_active(self, user_id: UUID, company_id: UUID) -> UserRoleAssignment | None:
        return (
            self.db.query(UserRoleAssignment)
            .filter(
                UserRoleAssignment.user_id == user_id,
                UserRoleAssignment.company_id == company_id,
                UserRoleAssignment.is_active.is_(True),
            )
            .first()
        )

    def list_for_company(
        self, company_id: UUID, active_only: bool = True
    ) -> list[UserRoleAssignment]:
        query = self.db.query(UserRoleAssignment).filter(
            UserRoleAssignment.company_id == company_id
        )
        if active_only:
            query = query.filter(UserRoleAssignment.is_active.is_(True))
        return query.order_by(UserRoleAssignment.assigned_at.desc()).all()

    def add(self, assignment: UserRoleAssignment) -> UserRoleAssignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment
