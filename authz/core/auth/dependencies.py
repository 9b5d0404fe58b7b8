"""FastAPI dependencies for authentication and authorization."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from authz.core.auth.context import AuthContext
from authz.core.auth.jwt import decode_token
from authz.core.auth.permissions import PermissionKey, SystemRole
from authz.core.auth.resolver import PermissionResolver
from authz.core.db.deps import get_db
from authz.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from authz.core.logging import get_client_info, log_access_denied
from authz.repositories import Repositories, build_repositories

bearer_scheme = HTTPBearer(auto_error=False)


def get_repositories(db: Annotated[Session, Depends(get_db)]) -> Repositories:
    """Repository bundle bound to the request session."""
    return build_repositories(db)


def _parse_uuid(value: str | None, what: str) -> UUID | None:
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise AuthenticationError(
            code="AUTH_INVALID_TOKEN", message=f"Invalid {what} in token"
        ) from None


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    repos: Annotated[Repositories, Depends(get_repositories)],
) -> AuthContext:
    """
    Resolve the bearer token to the calling user.

    Raises:
        AuthenticationError: Missing, invalid or expired token, or unknown user.
        AuthorizationError: Inactive user or token company mismatch.
    """
    if credentials is None:
        raise AuthenticationError(code="AUTH_UNAUTHORIZED", message="Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError(code="AUTH_INVALID_TOKEN", message="Invalid or expired token")
    if payload.get("type") != "access":
        raise AuthenticationError(code="AUTH_INVALID_TOKEN", message="Invalid token type")

    user_id = _parse_uuid(payload.get("sub"), "user ID")
    if user_id is None:
        raise AuthenticationError(code="AUTH_INVALID_TOKEN", message="Token missing user ID")
    token_company_id = _parse_uuid(payload.get("company_id"), "company ID")

    user = repos.users.get_by_id(user_id)
    if user is None:
        raise AuthenticationError(code="AUTH_USER_NOT_FOUND", message="User not found")

    # Multi-tenant: el token debe coincidir con la empresa del usuario
    if user.company_id != token_company_id:
        log_access_denied(str(user_id), "token_company_mismatch")
        raise AuthorizationError(
            code="AUTH_COMPANY_MISMATCH", message="Token company does not match user company"
        )
    if not user.is_active:
        raise AuthorizationError(code="AUTH_USER_INACTIVE", message="User account is inactive")

    try:
        role = SystemRole(user.role)
    except ValueError:
        raise AuthorizationError(code="AUTH_INVALID_ROLE", message="User role is not recognized") from None

    ip_address, user_agent = get_client_info(request)
    return AuthContext(
        user_id=user.id,
        role=role,
        company_id=user.company_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )


CurrentUser = Annotated[AuthContext, Depends(get_current_user)]


def require_roles(*roles: SystemRole | str):
    """
    Dependency factory to require one of the given system roles.

    Usage:
        @router.post("/modules/company/{company_id}/enable/{module_id}")
        async def enable(actor: AuthContext = Depends(require_roles("super-admin"))):
            ...
    """
    allowed = {SystemRole(r).value for r in roles}

    async def roles_check(current_user: CurrentUser) -> AuthContext:
        if current_user.role.value not in allowed:
            log_access_denied(str(current_user.user_id), "insufficient_role", ",".join(sorted(allowed)))
            raise AuthorizationError(
                code="AUTH_INSUFFICIENT_ROLES",
                message="Insufficient roles",
                details={"required_roles": sorted(allowed), "user_role": current_user.role.value},
            )
        return current_user

    return roles_check


def require_permission(permission: PermissionKey | str):
    """
    Dependency factory to require a resolved permission in the caller's company.

    Super-admins hold every capability and pass without a company. Any other
    caller without a company is rejected with COMPANY_REQUIRED.

    Usage:
        @router.post("/data-permissions/user/{user_id}/grant")
        async def grant(actor: ManagePermissions):
            ...
    """
    key = PermissionKey(permission)

    async def permission_check(
        current_user: CurrentUser,
        repos: Annotated[Repositories, Depends(get_repositories)],
    ) -> AuthContext:
        if current_user.is_super_admin:
            return current_user
        if current_user.company_id is None:
            raise ValidationError(code="COMPANY_REQUIRED", message="Caller has no company")
        resolver = PermissionResolver(repos)
        if not resolver.check_permission(current_user.user_id, key, current_user.company_id):
            log_access_denied(str(current_user.user_id), "missing_permission", key.value)
            raise AuthorizationError(
                code="AUTH_INSUFFICIENT_PERMISSIONS",
                message="Insufficient permissions",
                details={"required_permission": key.value},
            )
        return current_user

    return permission_check
