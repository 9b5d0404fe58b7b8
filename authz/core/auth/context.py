"""Authenticated caller passed from the enforcement layer into services."""

from dataclasses import dataclass
from uuid import UUID

from authz.core.auth.permissions import SystemRole


@dataclass(frozen=True)
class AuthContext:
    """Caller identity resolved from the bearer token."""

    user_id: UUID
    role: SystemRole
    company_id: UUID | None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == SystemRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        """Company admin or platform super-admin."""
        return self.role in (SystemRole.ADMIN, SystemRole.SUPER_ADMIN)
