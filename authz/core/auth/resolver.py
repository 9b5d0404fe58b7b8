"""Effective permission resolution.

Combines four sources into one decision per catalog key for a
(user, company) pair:

1. System-role baseline (profile role, or the system role of an active
   system-role assignment for the company).
2. An active custom-role assignment replaces the baseline entirely.
3. Module gating drops role grants whose module is not enabled for both the
   company and the user. The super-admin system baseline is not gated.
4. Non-expired data permission overrides win in either direction.

``resolve_effective_permissions`` is pure; ``PermissionResolver`` gathers its
inputs from the repositories on every call, so decisions always reflect the
latest committed state.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from authz.core.auth.permissions import (
    DESTRUCTIVE_ACTIONS,
    EDIT_ACTIONS,
    PERMISSION_CATALOG,
    PermissionKey,
    SystemRole,
    get_system_role_permissions,
    permission_action,
)
from authz.repositories.interfaces import Repositories


class PermissionSource(str, Enum):
    """Provenance of an effective decision."""

    OVERRIDE = "override"
    CUSTOM_ROLE = "custom_role"
    SYSTEM_ROLE = "system_role"
    MODULE_GATE = "module_gate"
    DEFAULT = "default"


@dataclass(frozen=True)
class EffectivePermission:
    permission_key: PermissionKey
    is_granted: bool
    source: PermissionSource
    module_key: str | None = None


@dataclass(frozen=True)
class OverrideInput:
    permission_key: str
    is_granted: bool
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass
class ResolutionInputs:
    """Snapshot of everything the resolver reads for one (user, company)."""

    system_role: SystemRole | None
    custom_role_permissions: dict[str, bool] | None = None
    company_modules: set[str] = field(default_factory=set)
    user_modules: set[str] = field(default_factory=set)
    overrides: list[OverrideInput] = field(default_factory=list)


@dataclass(frozen=True)
class SafeActions:
    """Partition of requested keys for UI gating."""

    allowed: list[str]
    disabled: list[str]
    hidden: list[str]
    readonly_mode: bool


def _catalog_keys(keys: Iterable[str]) -> set[PermissionKey]:
    valid = {k.value for k in PermissionKey}
    raw = (k.value if isinstance(k, PermissionKey) else k for k in keys)
    return {PermissionKey(k) for k in raw if k in valid}


def resolve_effective_permissions(
    inputs: ResolutionInputs, now: datetime
) -> dict[PermissionKey, EffectivePermission]:
    """
    Resolve one decision for every catalog key.

    Tie-break, most to least authoritative: non-expired override, module-gated
    role result, default deny.

    Args:
        inputs: Resolution snapshot.
        now: Reference time for override expiry.

    Returns:
        Mapping of permission key to its effective decision.
    """
    if inputs.custom_role_permissions is not None:
        role_grants = _catalog_keys(
            key for key, granted in inputs.custom_role_permissions.items() if granted
        )
        role_source = PermissionSource.CUSTOM_ROLE
        gated = True
    else:
        role_grants = set(get_system_role_permissions(inputs.system_role)) if inputs.system_role else set()
        role_source = PermissionSource.SYSTEM_ROLE
        gated = inputs.system_role != SystemRole.SUPER_ADMIN

    # Expired overrides are dropped before they can shadow the role result
    overrides: dict[PermissionKey, bool] = {}
    for override in inputs.overrides:
        if override.is_expired(now):
            continue
        for key in _catalog_keys([override.permission_key]):
            overrides[key] = override.is_granted

    licensed = inputs.company_modules & inputs.user_modules
    result: dict[PermissionKey, EffectivePermission] = {}
    for key, definition in PERMISSION_CATALOG.items():
        module = definition.module_key
        if key in overrides:
            decision = EffectivePermission(key, overrides[key], PermissionSource.OVERRIDE, module)
        elif key in role_grants:
            if gated and module is not None and module not in licensed:
                decision = EffectivePermission(key, False, PermissionSource.MODULE_GATE, module)
            else:
                decision = EffectivePermission(key, True, role_source, module)
        else:
            decision = EffectivePermission(key, False, PermissionSource.DEFAULT, module)
        result[key] = decision
    return result


def partition_safe_actions(
    decisions: dict[PermissionKey, EffectivePermission],
    company_modules: set[str],
    requested: Iterable[str],
) -> SafeActions:
    """
    Split requested keys into allowed, disabled and hidden.

    Denied keys are hidden when their module is not licensed to the company
    or their action is destructive; other denials are shown disabled.
    Unknown keys are hidden.
    """
    allowed: list[str] = []
    disabled: list[str] = []
    hidden: list[str] = []
    for raw in requested:
        keys = _catalog_keys([raw])
        if not keys:
            hidden.append(raw)
            continue
        key = keys.pop()
        decision = decisions[key]
        if decision.is_granted:
            allowed.append(raw)
        elif (
            decision.module_key is not None and decision.module_key not in company_modules
        ) or permission_action(key) in DESTRUCTIVE_ACTIONS:
            hidden.append(raw)
        else:
            disabled.append(raw)
    readonly = not any(permission_action(k) in EDIT_ACTIONS for k in allowed)
    return SafeActions(allowed=allowed, disabled=disabled, hidden=hidden, readonly_mode=readonly)


class PermissionResolver:
    """Reads resolver inputs from repositories and resolves them."""

    def __init__(
        self,
        repos: Repositories,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.repos = repos
        self.clock = clock

    def gather_inputs(self, user_id: UUID, company_id: UUID, now: datetime) -> ResolutionInputs:
        """
        Load the resolution snapshot for a (user, company) pair.

        Unknown or inactive users, and users outside the company who are not
        super-admins, get an empty baseline.
        """
        user = self.repos.users.get_by_id(user_id)
        if user is None or not user.is_active:
            return ResolutionInputs(system_role=None)

        try:
            profile_role = SystemRole(user.role)
        except ValueError:
            profile_role = None
        if profile_role != SystemRole.SUPER_ADMIN and user.company_id != company_id:
            return ResolutionInputs(system_role=None)

        inputs = ResolutionInputs(system_role=profile_role)

        assignment = self.repos.role_assignments.get_active(user_id, company_id)
        if assignment is not None and assignment.is_current(now):
            if assignment.custom_role_id is not None:
                role = self.repos.custom_roles.get_by_id(assignment.custom_role_id)
                if role is not None and role.is_active and role.company_id == company_id:
                    inputs.custom_role_permissions = {
                        row.permission_key: row.is_granted
                        for row in self.repos.custom_roles.get_permissions(role.id)
                    }
            elif assignment.system_role is not None:
                inputs.system_role = SystemRole(assignment.system_role)

        module_keys = {m.id: m.key for m in self.repos.modules.list_modules(active_only=True)}
        enabled_ids = self.repos.company_modules.list_enabled_module_ids(company_id)
        inputs.company_modules = {module_keys[i] for i in enabled_ids if i in module_keys}
        inputs.user_modules = {
            module_keys[row.module_id]
            for row in self.repos.user_modules.list_for_user(user_id, company_id)
            if row.is_enabled and row.module_id in enabled_ids and row.module_id in module_keys
        }
        inputs.overrides = [
            OverrideInput(row.permission_key, row.is_granted, row.expires_at)
            for row in self.repos.data_permissions.list_for_user(user_id, company_id)
        ]
        return inputs

    def resolve(self, user_id: UUID, company_id: UUID) -> list[EffectivePermission]:
        """Resolve every catalog key, ordered by key."""
        now = self.clock()
        decisions = resolve_effective_permissions(self.gather_inputs(user_id, company_id, now), now)
        return sorted(decisions.values(), key=lambda d: d.permission_key.value)

    def check_permission(
        self, user_id: UUID, permission_key: PermissionKey | str, company_id: UUID
    ) -> bool:
        """True when the resolved decision for ``permission_key`` is a grant."""
        keys = _catalog_keys([permission_key])
        if not keys:
            return False
        now = self.clock()
        decisions = resolve_effective_permissions(self.gather_inputs(user_id, company_id, now), now)
        return decisions[keys.pop()].is_granted

    def get_safe_actions(
        self, user_id: UUID, company_id: UUID, permission_keys: Iterable[str]
    ) -> SafeActions:
        now = self.clock()
        inputs = self.gather_inputs(user_id, company_id, now)
        decisions = resolve_effective_permissions(inputs, now)
        return partition_safe_actions(decisions, inputs.company_modules, permission_keys)
