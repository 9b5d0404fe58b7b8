"""Module Catalog Seeder
Populates the licensable module catalog.
"""

from decimal import Decimal

from authz.core.logging import app_logger
from authz.core.seeders.base import Seeder
from authz.models.module import Module
from authz.repositories.interfaces import Repositories

# (key, name, description, module_type, category, is_core_required, monthly, per_user)
DEFAULT_MODULES: list[tuple[str, str, str, str, str, bool, str, str]] = [
    ("dashboard", "Dashboard", "Main dashboard and analytics", "core", "core", True, "0", "0"),
    ("user-management", "User Management", "User and permission management", "core", "core", True, "0", "0"),
    ("company-settings", "Company Settings", "Company configuration and settings", "core", "core", True, "0", "0"),
    ("notifications", "Notifications", "User notification system", "core", "core", True, "0", "0"),
    ("vendors", "Vendors", "Vendor and supplier management", "core", "operations", True, "0", "0"),
    ("customers", "Customers", "Customer relationship management", "core", "operations", True, "0", "0"),
    ("gl-accounts", "GL Accounts", "General ledger account management", "core", "accounting", True, "0", "0"),
    ("expense-categories", "Expense Categories", "Expense categorization", "core", "accounting", True, "0", "0"),
    ("ingrid-ai", "Ingrid AI", "AI-powered document processing assistant", "add-on", "ai", False, "29.99", "4.99"),
    ("expenses", "Expense Management", "Advanced expense tracking and approval", "add-on", "operations", False, "25.00", "3.00"),
    ("expense-ocr", "Expense OCR", "Receipt scanning for expenses", "add-on", "ai", False, "19.00", "2.00"),
    ("automation", "Process Automation", "Email-based document processing automation", "add-on", "automation", False, "75.00", "8.00"),
    ("analytics", "Advanced Analytics", "Detailed reporting and analytics", "add-on", "analytics", False, "50.00", "5.00"),
    ("api-management", "API Management", "API key management and integration tools", "add-on", "integration", False, "15.00", "1.50"),
]


class ModuleCatalogSeeder(Seeder):
    """Seeder for the default module catalog."""

    def run(self, repos: Repositories) -> int:
        """
        Create every default module whose key is not yet in the catalog.

        Args:
            repos: Repository bundle
        """
        created = 0
        with repos.transactions.atomic():
            for key, name, description, module_type, category, core_required, monthly, per_user in DEFAULT_MODULES:
                if repos.modules.get_by_key(key) is not None:
                    continue
                repos.modules.add(
                    Module(
                        key=key,
                        name=name,
                        description=description,
                        module_type=module_type,
                        category=category,
                        module_classification="core" if module_type == "core" else "addon",
                        is_core_required=core_required,
                        is_active=True,
                        default_monthly_price=Decimal(monthly),
                        default_per_user_price=Decimal(per_user),
                    )
                )
                created += 1
        app_logger.info(f"Module catalog seeded - created={created}")
        return created
