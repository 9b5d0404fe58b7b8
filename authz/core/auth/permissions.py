"""Permission catalog, system role baselines and module gating tables."""

from dataclasses import dataclass, field
from enum import Enum


class SystemRole(str, Enum):
    """Static roles carried on every user profile."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"


class PermissionKey(str, Enum):
    """Closed enumeration of capability keys."""

    DASHBOARD_VIEW = "dashboard.view"
    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_EDIT = "users.edit"
    USERS_DELETE = "users.delete"
    USERS_MANAGE_PERMISSIONS = "users.manage_permissions"
    ROLES_MANAGE = "roles.manage"
    COMPANY_SETTINGS_VIEW = "company.settings.view"
    COMPANY_SETTINGS_EDIT = "company.settings.edit"
    NOTIFICATIONS_VIEW = "notifications.view"
    VENDORS_VIEW = "vendors.view"
    VENDORS_CREATE = "vendors.create"
    VENDORS_EDIT = "vendors.edit"
    VENDORS_DELETE = "vendors.delete"
    CUSTOMERS_VIEW = "customers.view"
    CUSTOMERS_CREATE = "customers.create"
    CUSTOMERS_EDIT = "customers.edit"
    CUSTOMERS_DELETE = "customers.delete"
    GL_ACCOUNTS_VIEW = "gl_accounts.view"
    GL_ACCOUNTS_CREATE = "gl_accounts.create"
    GL_ACCOUNTS_EDIT = "gl_accounts.edit"
    EXPENSE_CATEGORIES_VIEW = "expense_categories.view"
    EXPENSE_CATEGORIES_CREATE = "expense_categories.create"
    EXPENSE_CATEGORIES_EDIT = "expense_categories.edit"
    EXPENSES_VIEW = "expenses.view"
    EXPENSES_CREATE = "expenses.create"
    EXPENSES_EDIT = "expenses.edit"
    EXPENSES_APPROVE = "expenses.approve"
    EXPENSES_DELETE = "expenses.delete"
    EXPENSE_OCR_USE = "expense-ocr.use"
    INGRID_CHAT = "ingrid.chat"
    INGRID_SUGGESTIONS_VIEW = "ingrid.suggestions.view"
    INGRID_SUGGESTIONS_APPROVE = "ingrid.suggestions.approve"
    INGRID_CONFIGURE = "ingrid.configure"
    INGRID_ANALYTICS_VIEW = "ingrid.analytics.view"
    AUTOMATION_VIEW = "automation.view"
    AUTOMATION_CREATE = "automation.create"
    AUTOMATION_EDIT = "automation.edit"
    ANALYTICS_VIEW = "analytics.view"
    ANALYTICS_EXPORT = "analytics.export"
    API_MANAGE = "api.manage"


@dataclass(frozen=True)
class PermissionDefinition:
    """Static metadata for one capability key.

    ``module_key`` of None marks a foundation key that is never module-gated.
    """

    key: PermissionKey
    name: str
    group: str
    module_key: str | None = None
    requires: tuple[PermissionKey, ...] = field(default_factory=tuple)


P = PermissionKey

# (key, name, group, module, requires)
_CATALOG_ROWS: list[tuple[PermissionKey, str, str, str | None, tuple[PermissionKey, ...]]] = [
    (P.DASHBOARD_VIEW, "View Dashboard", "core", None, ()),
    (P.USERS_VIEW, "View Users", "admin", None, ()),
    (P.USERS_CREATE, "Create Users", "admin", None, (P.USERS_VIEW,)),
    (P.USERS_EDIT, "Edit Users", "admin", None, (P.USERS_VIEW,)),
    (P.USERS_DELETE, "Delete Users", "admin", None, (P.USERS_VIEW,)),
    (P.USERS_MANAGE_PERMISSIONS, "Manage User Permissions", "admin", None, (P.USERS_VIEW,)),
    (P.ROLES_MANAGE, "Manage Roles", "admin", None, (P.USERS_VIEW,)),
    (P.COMPANY_SETTINGS_VIEW, "View Company Settings", "core", None, ()),
    (P.COMPANY_SETTINGS_EDIT, "Edit Company Settings", "core", None, (P.COMPANY_SETTINGS_VIEW,)),
    (P.NOTIFICATIONS_VIEW, "View Notifications", "core", None, ()),
    (P.VENDORS_VIEW, "View Vendors", "operations", "vendors", ()),
    (P.VENDORS_CREATE, "Create Vendors", "operations", "vendors", (P.VENDORS_VIEW,)),
    (P.VENDORS_EDIT, "Edit Vendors", "operations", "vendors", (P.VENDORS_VIEW,)),
    (P.VENDORS_DELETE, "Delete Vendors", "operations", "vendors", (P.VENDORS_VIEW,)),
    (P.CUSTOMERS_VIEW, "View Customers", "operations", "customers", ()),
    (P.CUSTOMERS_CREATE, "Create Customers", "operations", "customers", (P.CUSTOMERS_VIEW,)),
    (P.CUSTOMERS_EDIT, "Edit Customers", "operations", "customers", (P.CUSTOMERS_VIEW,)),
    (P.CUSTOMERS_DELETE, "Delete Customers", "operations", "customers", (P.CUSTOMERS_VIEW,)),
    (P.GL_ACCOUNTS_VIEW, "View GL Accounts", "accounting", "gl-accounts", ()),
    (P.GL_ACCOUNTS_CREATE, "Create GL Accounts", "accounting", "gl-accounts", (P.GL_ACCOUNTS_VIEW,)),
    (P.GL_ACCOUNTS_EDIT, "Edit GL Accounts", "accounting", "gl-accounts", (P.GL_ACCOUNTS_VIEW,)),
    (P.EXPENSE_CATEGORIES_VIEW, "View Expense Categories", "accounting", "expense-categories", ()),
    (P.EXPENSE_CATEGORIES_CREATE, "Create Expense Categories", "accounting", "expense-categories", (P.EXPENSE_CATEGORIES_VIEW,)),
    (P.EXPENSE_CATEGORIES_EDIT, "Edit Expense Categories", "accounting", "expense-categories", (P.EXPENSE_CATEGORIES_VIEW,)),
    (P.EXPENSES_VIEW, "View Expenses", "operations", "expenses", ()),
    (P.EXPENSES_CREATE, "Create Expenses", "operations", "expenses", (P.EXPENSES_VIEW,)),
    (P.EXPENSES_EDIT, "Edit Expenses", "operations", "expenses", (P.EXPENSES_VIEW,)),
    (P.EXPENSES_APPROVE, "Approve Expenses", "operations", "expenses", (P.EXPENSES_VIEW,)),
    (P.EXPENSES_DELETE, "Delete Expenses", "operations", "expenses", (P.EXPENSES_VIEW,)),
    (P.EXPENSE_OCR_USE, "Use Receipt OCR", "ai", "expense-ocr", ()),
    (P.INGRID_CHAT, "Chat with Ingrid AI", "ai", "ingrid-ai", ()),
    (P.INGRID_SUGGESTIONS_VIEW, "View AI Suggestions", "ai", "ingrid-ai", ()),
    (P.INGRID_SUGGESTIONS_APPROVE, "Approve AI Suggestions", "ai", "ingrid-ai", (P.INGRID_SUGGESTIONS_VIEW,)),
    (P.INGRID_CONFIGURE, "Configure Ingrid AI", "ai", "ingrid-ai", ()),
    (P.INGRID_ANALYTICS_VIEW, "View AI Analytics", "ai", "ingrid-ai", ()),
    (P.AUTOMATION_VIEW, "View Automations", "automation", "automation", ()),
    (P.AUTOMATION_CREATE, "Create Automations", "automation", "automation", (P.AUTOMATION_VIEW,)),
    (P.AUTOMATION_EDIT, "Edit Automations", "automation", "automation", (P.AUTOMATION_VIEW,)),
    (P.ANALYTICS_VIEW, "View Analytics", "analytics", "analytics", ()),
    (P.ANALYTICS_EXPORT, "Export Analytics", "analytics", "analytics", (P.ANALYTICS_VIEW,)),
    (P.API_MANAGE, "Manage API Keys", "integration", "api-management", ()),
]

PERMISSION_CATALOG: dict[PermissionKey, PermissionDefinition] = {
    key: PermissionDefinition(key=key, name=name, group=group, module_key=module, requires=requires)
    for key, name, group, module, requires in _CATALOG_ROWS
}

# Permisos del rol "user": lectura y captura de gastos
_USER_PERMISSIONS: frozenset[PermissionKey] = frozenset(
    {
        P.DASHBOARD_VIEW,
        P.NOTIFICATIONS_VIEW,
        P.VENDORS_VIEW,
        P.CUSTOMERS_VIEW,
        P.GL_ACCOUNTS_VIEW,
        P.EXPENSE_CATEGORIES_VIEW,
        P.EXPENSES_VIEW,
        P.EXPENSES_CREATE,
        P.EXPENSES_EDIT,
        P.EXPENSE_OCR_USE,
        P.INGRID_CHAT,
        P.INGRID_SUGGESTIONS_VIEW,
        P.AUTOMATION_VIEW,
        P.ANALYTICS_VIEW,
    }
)

_ADMIN_PERMISSIONS: frozenset[PermissionKey] = frozenset(PermissionKey) - {
    P.EXPENSES_DELETE,
    P.INGRID_ANALYTICS_VIEW,
}

SYSTEM_ROLE_PERMISSIONS: dict[SystemRole, frozenset[PermissionKey]] = {
    SystemRole.USER: _USER_PERMISSIONS,
    SystemRole.ADMIN: _ADMIN_PERMISSIONS,
    SystemRole.SUPER_ADMIN: frozenset(PermissionKey),
}

# Actions treated as destructive when deciding what the UI hides
DESTRUCTIVE_ACTIONS = frozenset({"delete", "manage", "manage_permissions", "configure"})
EDIT_ACTIONS = frozenset({"edit", "update"})


def get_definition(key: PermissionKey | str) -> PermissionDefinition:
    """Return catalog metadata for a key.

    Raises:
        ValueError: If the key is not part of the catalog.
    """
    return PERMISSION_CATALOG[PermissionKey(key)]


def module_for(key: PermissionKey | str) -> str | None:
    """Return the module key gating ``key``, or None for foundation keys."""
    return get_definition(key).module_key


def permission_action(key: PermissionKey | str) -> str:
    """Return the trailing action segment of a key (``expenses.approve`` -> ``approve``)."""
    return PermissionKey(key).value.rsplit(".", 1)[-1]


def get_system_role_permissions(role: SystemRole | str) -> frozenset[PermissionKey]:
    """Get the static baseline for a system role.

    Unknown roles get an empty baseline.
    """
    try:
        return SYSTEM_ROLE_PERMISSIONS[SystemRole(role)]
    except ValueError:
        return frozenset()


def get_permission_dependencies(key: PermissionKey | str) -> tuple[PermissionKey, ...]:
    """Return the prerequisite keys that must be held before ``key`` can be granted."""
    return get_definition(key).requires


def modules_required_by(keys: set[PermissionKey] | frozenset[PermissionKey]) -> set[str]:
    """Collect the module keys referenced by a permission set."""
    return {module for key in keys if (module := module_for(key)) is not None}


def is_permission_key(value: str) -> bool:
    """Check if a string is a catalog permission key."""
    return value in {k.value for k in PermissionKey}
