"""Tenant scoping checks shared by services.

Cross-tenant access is reported as 404 so callers cannot probe for other
companies' data.
"""

from uuid import UUID

from authz.core.auth.context import AuthContext
from authz.core.exceptions import AuthorizationError, NotFoundError
from authz.core.logging import log_access_denied
from authz.models.user import User
from authz.repositories.interfaces import IUserRepository


def ensure_super_admin(actor: AuthContext) -> None:
    """Raise 403 unless the caller is a super-admin."""
    if not actor.is_super_admin:
        log_access_denied(str(actor.user_id), "super_admin_required", "super-admin")
        raise AuthorizationError(
            code="AUTH_SUPER_ADMIN_REQUIRED",
            message="Super-admin access required",
        )


def ensure_admin(actor: AuthContext) -> None:
    """Raise 403 unless the caller is an admin or super-admin."""
    if not actor.is_admin:
        log_access_denied(str(actor.user_id), "admin_required", "admin")
        raise AuthorizationError(
            code="AUTH_ADMIN_REQUIRED",
            message="Admin access required",
        )


def ensure_company_access(actor: AuthContext, company_id: UUID) -> None:
    """Raise 404 when a non-super-admin targets another company."""
    if actor.is_super_admin:
        return
    if actor.company_id != company_id:
        log_access_denied(str(actor.user_id), "cross_tenant_company")
        raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")


def resolve_company_id(actor: AuthContext, company_id: UUID | None) -> UUID:
    """Default a missing company to the caller's and check access to it."""
    target = company_id or actor.company_id
    if target is None:
        raise NotFoundError(code="COMPANY_NOT_FOUND", message="Company not found")
    ensure_company_access(actor, target)
    return target


def load_user_in_scope(
    users: IUserRepository,
    actor: AuthContext,
    user_id: UUID,
    allow_self: bool = False,
) -> User:
    """
    Load a target user the caller may act on.

    Args:
        users: User repository.
        actor: Caller.
        user_id: Target user id.
        allow_self: Let non-admins target themselves.

    Returns:
        The target user.

    Raises:
        NotFoundError: User missing or in another company.
        AuthorizationError: Same-company target, but the caller is neither
            an admin nor (when allowed) the user themself.
    """
    user = users.get_by_id(user_id)
    if user is None:
        raise NotFoundError(code="USER_NOT_FOUND", message="User not found")
    if actor.is_super_admin:
        return user
    if allow_self and user.id == actor.user_id:
        return user
    if user.company_id is None or user.company_id != actor.company_id:
        log_access_denied(str(actor.user_id), "cross_tenant_user")
        raise NotFoundError(code="USER_NOT_FOUND", message="User not found")
    if not actor.is_admin:
        log_access_denied(str(actor.user_id), "admin_required", "admin")
        raise AuthorizationError(
            code="AUTH_ADMIN_REQUIRED",
            message="Admin access required",
        )
    return user
