"""Effective permission reads for users and for UI gating."""

from uuid import UUID

from authz.core.auth.access import ensure_company_access, load_user_in_scope
from authz.core.auth.context import AuthContext
from authz.core.auth.resolver import EffectivePermission, PermissionResolver, SafeActions
from authz.core.exceptions import NotFoundError, ValidationError
from authz.models.user import User
from authz.repositories.interfaces import Repositories


class PermissionService:
    """Read-only access to the resolver with tenant checks applied."""

    def __init__(self, repos: Repositories, resolver: PermissionResolver | None = None):
        self.repos = repos
        self.resolver = resolver or PermissionResolver(repos)

    def _scope(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None
    ) -> tuple[User, UUID]:
        user = load_user_in_scope(self.repos.users, actor, user_id, allow_self=True)
        company = company_id or user.company_id
        if company is None:
            raise ValidationError(
                code="COMPANY_REQUIRED",
                message="company_id is required for users without a company",
            )
        ensure_company_access(actor, company)
        if self.repos.companies.get_by_id(company) is None:
            raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")
        return user, company

    def get_effective_permissions(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None = None
    ) -> tuple[UUID, list[EffectivePermission]]:
        """
        Resolve every catalog key for a user.

        Args:
            user_id: Target user.
            actor: Self, an admin of the same company, or super-admin.
            company_id: Company scope (defaults to the user's company).

        Returns:
            Tuple of (company_id, decisions ordered by key).
        """
        user, company = self._scope(user_id, actor, company_id)
        return company, self.resolver.resolve(user.id, company)

    def user_has_permission(
        self,
        user_id: UUID,
        permission_key: str,
        actor: AuthContext,
        company_id: UUID | None = None,
    ) -> tuple[UUID, bool]:
        """Unknown keys resolve to False."""
        user, company = self._scope(user_id, actor, company_id)
        return company, self.resolver.check_permission(user.id, permission_key, company)

    def get_safe_actions(
        self, actor: AuthContext, permission_keys: list[str], company_id: UUID | None = None
    ) -> SafeActions:
        """Partition ``permission_keys`` for the caller."""
        _, company = self._scope(actor.user_id, actor, company_id)
        return self.resolver.get_safe_actions(actor.user_id, company, permission_keys)
