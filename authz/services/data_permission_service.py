"""Data permission overrides and the permission catalog."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from authz.core.auth.access import ensure_admin, load_user_in_scope, resolve_company_id
from authz.core.auth.context import AuthContext
from authz.core.auth.permissions import (
    PERMISSION_CATALOG,
    PermissionKey,
    get_permission_dependencies,
)
from authz.core.auth.resolver import PermissionResolver
from authz.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from authz.core.logging import log_access_denied, log_permission_change
from authz.models.user import User
from authz.models.user_data_permission import UserDataPermission
from authz.repositories.interfaces import Repositories
from authz.schemas.permission import PermissionCatalogEntry, PermissionDependenciesResponse
from authz.services.audit_service import AuditService, snapshot

_STATE_FIELDS = ("permission_key", "is_granted", "expires_at", "reason")


def check_expiry(expires_at: datetime | None, now: datetime, details: dict | None = None) -> None:
    """Reject an expiry without a UTC offset or not after ``now``."""
    if expires_at is None:
        return
    if expires_at.tzinfo is None:
        raise ValidationError(
            code="INVALID_EXPIRY",
            message="expires_at must include a timezone offset",
            details=details,
        )
    if expires_at <= now:
        raise ValidationError(
            code="INVALID_EXPIRY", message="expires_at must be in the future", details=details
        )


@dataclass(frozen=True)
class OverrideChange:
    permission_key: PermissionKey
    is_granted: bool = True
    expires_at: datetime | None = None
    reason: str | None = None


class DataPermissionService:
    """Service for per-user capability overrides."""

    def __init__(self, repos: Repositories, resolver: PermissionResolver | None = None):
        self.repos = repos
        self.resolver = resolver or PermissionResolver(repos)
        self.audit = AuditService(repos)

    def _authorize(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None
    ) -> tuple[User, UUID]:
        ensure_admin(actor)
        if company_id is not None and not actor.is_super_admin and company_id != actor.company_id:
            log_access_denied(str(actor.user_id), "company_mismatch")
            raise AuthorizationError(
                code="AUTH_COMPANY_MISMATCH",
                message="Cannot manage permissions in another company",
            )
        user = load_user_in_scope(self.repos.users, actor, user_id)
        company = company_id or user.company_id
        if company is None or user.company_id != company:
            raise NotFoundError(code="USER_NOT_FOUND", message="User not found")
        return user, company

    def _check_dependencies(
        self,
        change: OverrideChange,
        decisions: dict[PermissionKey, bool],
    ) -> None:
        """
        Refuse a grant whose prerequisite keys do not resolve as granted.

        An override therefore only decides a key once its prerequisites are
        held; a grant of ``company.settings.edit`` to a user without
        ``company.settings.view`` is rejected rather than stored. Revocations
        are never checked.
        """
        if not change.is_granted:
            return
        missing = [
            dep.value
            for dep in get_permission_dependencies(change.permission_key)
            if not decisions.get(dep, False)
        ]
        if missing:
            raise ValidationError(
                code="MISSING_DEPENDENCIES",
                message=f"Permission {change.permission_key.value} requires: {', '.join(missing)}",
                details={
                    "permission_key": change.permission_key.value,
                    "missing_dependencies": missing,
                },
            )

    def _upsert(
        self,
        user: User,
        company_id: UUID,
        change: OverrideChange,
        actor: AuthContext,
        now: datetime,
    ) -> tuple[UserDataPermission, dict | None]:
        row = self.repos.data_permissions.get(user.id, company_id, change.permission_key.value)
        before = snapshot(row, *_STATE_FIELDS)
        if row is None:
            row = self.repos.data_permissions.add(
                UserDataPermission(
                    user_id=user.id,
                    company_id=company_id,
                    permission_key=change.permission_key.value,
                    is_granted=change.is_granted,
                    granted_by=actor.user_id,
                    granted_at=now,
                    expires_at=change.expires_at,
                    reason=change.reason,
                )
            )
        else:
            row.is_granted = change.is_granted
            row.granted_by = actor.user_id
            row.granted_at = now
            row.expires_at = change.expires_at
            row.reason = change.reason
        return row, before

    def _current_decisions(self, user_id: UUID, company_id: UUID) -> dict[PermissionKey, bool]:
        return {
            d.permission_key: d.is_granted for d in self.resolver.resolve(user_id, company_id)
        }

    def set_data_permission(
        self,
        user_id: UUID,
        actor: AuthContext,
        permission_key: PermissionKey | str,
        is_granted: bool = True,
        company_id: UUID | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> UserDataPermission:
        """
        Grant or revoke one capability for a user.

        Args:
            user_id: Target user.
            actor: Admin of the user's company, or super-admin. Routes also
                require users.manage_permissions.
            permission_key: Capability key.
            is_granted: True to grant, False to revoke.
            company_id: Company scope (defaults to the user's company).
            expires_at: Optional expiry; must be in the future.
            reason: Optional free-text reason.

        Returns:
            The stored override.

        Raises:
            AuthorizationError: Foreign company.
            NotFoundError: User outside the company.
            ValidationError: Naive or past expiry, or missing prerequisite grants.
        """
        change = OverrideChange(PermissionKey(permission_key), is_granted, expires_at, reason)
        now = datetime.now(UTC)
        check_expiry(expires_at, now)

        with self.repos.transactions.atomic():
            user, company = self._authorize(user_id, actor, company_id)
            self._check_dependencies(change, self._current_decisions(user.id, company))
            row, before = self._upsert(user, company, change, actor, now)
            self.audit.record(
                actor,
                action="data_permission_granted" if is_granted else "data_permission_revoked",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                before=before,
                after=snapshot(row, *_STATE_FIELDS),
            )

        log_permission_change(
            str(actor.user_id), str(user.id), str(company), change.permission_key.value, is_granted, expires_at
        )
        return row

    def bulk_set_data_permissions(
        self,
        user_id: UUID,
        actor: AuthContext,
        changes: list[OverrideChange],
        company_id: UUID | None = None,
    ) -> list[UserDataPermission]:
        """
        Apply several overrides as one unit.

        Items are checked in order against the effective set plus the
        earlier items of the batch. Any failure rolls back the whole batch.
        One audit entry lists every change.
        """
        if not changes:
            raise ValidationError(code="EMPTY_BATCH", message="No permissions given")
        now = datetime.now(UTC)
        for change in changes:
            check_expiry(
                change.expires_at,
                now,
                details={"permission_key": PermissionKey(change.permission_key).value},
            )

        rows: list[UserDataPermission] = []
        entries: list[dict] = []
        with self.repos.transactions.atomic():
            user, company = self._authorize(user_id, actor, company_id)
            decisions = self._current_decisions(user.id, company)
            for change in changes:
                self._check_dependencies(change, decisions)
                row, before = self._upsert(user, company, change, actor, now)
                decisions[change.permission_key] = change.is_granted
                rows.append(row)
                entries.append({"before": before, "after": snapshot(row, *_STATE_FIELDS)})
            self.audit.record(
                actor,
                action="data_permissions_bulk_updated",
                subject_type="user",
                subject_id=user.id,
                company_id=company,
                details={"count": len(rows), "changes": entries},
            )

        for change in changes:
            log_permission_change(
                str(actor.user_id),
                str(user.id),
                str(company),
                change.permission_key.value,
                change.is_granted,
                change.expires_at,
            )
        return rows

    def list_user_overrides(
        self, user_id: UUID, actor: AuthContext, company_id: UUID | None = None
    ) -> list[UserDataPermission]:
        """Non-expired overrides of a user. Self, same-company admin or super-admin."""
        user = load_user_in_scope(self.repos.users, actor, user_id, allow_self=True)
        company = company_id or user.company_id
        if company is None or company != user.company_id:
            raise NotFoundError(code="USER_NOT_FOUND", message="User not found")
        now = datetime.now(UTC)
        return [
            row
            for row in self.repos.data_permissions.list_for_user(user.id, company)
            if not row.is_expired(now)
        ]

    def list_permission_catalog(
        self, actor: AuthContext, company_id: UUID | None = None
    ) -> list[PermissionCatalogEntry]:
        """
        Catalog entries. With a company, only foundation keys and keys of
        modules that company has enabled.
        """
        available: set[str] | None = None
        if company_id is not None:
            company = resolve_company_id(actor, company_id)
            module_keys = {m.id: m.key for m in self.repos.modules.list_modules()}
            available = {
                module_keys[i]
                for i in self.repos.company_modules.list_enabled_module_ids(company)
                if i in module_keys
            }
        entries = []
        for definition in PERMISSION_CATALOG.values():
            if (
                available is not None
                and definition.module_key is not None
                and definition.module_key not in available
            ):
                continue
            entries.append(
                PermissionCatalogEntry(
                    key=definition.key.value,
                    name=definition.name,
                    group=definition.group,
                    module_key=definition.module_key,
                    requires=[r.value for r in definition.requires],
                )
            )
        return entries

    @staticmethod
    def group_catalog(entries: list[PermissionCatalogEntry]) -> dict[str, list[PermissionCatalogEntry]]:
        grouped: dict[str, list[PermissionCatalogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[entry.group].append(entry)
        return dict(grouped)

    def get_permission_dependencies(self, permission_key: str) -> PermissionDependenciesResponse:
        try:
            key = PermissionKey(permission_key)
        except ValueError:
            raise NotFoundError(
                code="PERMISSION_NOT_FOUND", message="Permission not found"
            ) from None
        return PermissionDependenciesResponse(
            permission_key=key.value,
            requires=[r.value for r in get_permission_dependencies(key)],
        )

