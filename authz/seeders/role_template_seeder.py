"""Role Template Seeder
Populates the system role templates.
"""

from authz.core.auth.permissions import PermissionKey, SystemRole, modules_required_by
from authz.core.logging import app_logger
from authz.core.seeders.base import Seeder
from authz.models.role_template import RoleTemplate
from authz.repositories.interfaces import Repositories

P = PermissionKey

SYSTEM_TEMPLATES: list[dict] = [
    {
        "template_name": "basic_user",
        "display_name": "Basic User",
        "description": "Standard employee with basic data access",
        "target_role": SystemRole.USER,
        "permissions": [P.DASHBOARD_VIEW, P.EXPENSES_VIEW, P.EXPENSES_CREATE, P.NOTIFICATIONS_VIEW],
        "target_use_cases": ["Employees submitting expenses"],
    },
    {
        "template_name": "expense_reviewer",
        "display_name": "Expense Reviewer",
        "description": "Can review and approve expenses",
        "target_role": SystemRole.USER,
        "permissions": [
            P.DASHBOARD_VIEW,
            P.EXPENSES_VIEW,
            P.EXPENSES_CREATE,
            P.EXPENSES_APPROVE,
            P.ANALYTICS_VIEW,
        ],
        "target_use_cases": ["Team leads approving expenses"],
    },
    {
        "template_name": "department_manager",
        "display_name": "Department Manager",
        "description": "Manager with full operational access",
        "target_role": SystemRole.ADMIN,
        "permissions": [
            P.DASHBOARD_VIEW,
            P.ANALYTICS_VIEW,
            P.EXPENSES_VIEW,
            P.EXPENSES_CREATE,
            P.EXPENSES_EDIT,
            P.EXPENSES_APPROVE,
            P.VENDORS_VIEW,
            P.VENDORS_CREATE,
            P.VENDORS_EDIT,
            P.CUSTOMERS_VIEW,
            P.CUSTOMERS_CREATE,
            P.CUSTOMERS_EDIT,
            P.USERS_VIEW,
            P.NOTIFICATIONS_VIEW,
        ],
        "target_use_cases": ["Department heads"],
    },
    {
        "template_name": "controller",
        "display_name": "Controller",
        "description": "Full financial and accounting access",
        "target_role": SystemRole.ADMIN,
        "permissions": [
            P.DASHBOARD_VIEW,
            P.ANALYTICS_VIEW,
            P.ANALYTICS_EXPORT,
            P.EXPENSES_VIEW,
            P.EXPENSES_CREATE,
            P.EXPENSES_EDIT,
            P.EXPENSES_APPROVE,
            P.EXPENSES_DELETE,
            P.VENDORS_VIEW,
            P.VENDORS_CREATE,
            P.VENDORS_EDIT,
            P.VENDORS_DELETE,
            P.CUSTOMERS_VIEW,
            P.CUSTOMERS_CREATE,
            P.CUSTOMERS_EDIT,
            P.CUSTOMERS_DELETE,
            P.GL_ACCOUNTS_VIEW,
            P.GL_ACCOUNTS_CREATE,
            P.GL_ACCOUNTS_EDIT,
            P.EXPENSE_CATEGORIES_VIEW,
            P.EXPENSE_CATEGORIES_CREATE,
            P.EXPENSE_CATEGORIES_EDIT,
            P.USERS_VIEW,
            P.USERS_CREATE,
            P.USERS_EDIT,
            P.COMPANY_SETTINGS_VIEW,
            P.COMPANY_SETTINGS_EDIT,
            P.NOTIFICATIONS_VIEW,
        ],
        "target_use_cases": ["Finance controllers", "Accountants"],
    },
]


class RoleTemplateSeeder(Seeder):
    """Seeder for system role templates."""

    def run(self, repos: Repositories) -> int:
        created = 0
        with repos.transactions.atomic():
            for entry in SYSTEM_TEMPLATES:
                if repos.role_templates.get_by_name(entry["template_name"]) is not None:
                    continue
                permissions = set(entry["permissions"])
                repos.role_templates.add(
                    RoleTemplate(
                        template_name=entry["template_name"],
                        display_name=entry["display_name"],
                        description=entry["description"],
                        target_role=entry["target_role"].value,
                        base_permissions=sorted(k.value for k in permissions),
                        required_modules=sorted(modules_required_by(permissions)),
                        target_use_cases=list(entry["target_use_cases"]),
                        is_system_template=True,
                    )
                )
                created += 1
        app_logger.info(f"Role templates seeded - created={created}")
        return created
